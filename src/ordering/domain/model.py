"""
Modèle de domaine pour la prise de commandes.

Ce module contient les entités du domaine : le Produit (porteur du
compteur de stock), la Commande (agrégat racine qui possède ses lignes)
et la LigneDeCommande (OrderItem), ainsi que les erreurs métier.

Les classes ne connaissent pas SQLAlchemy : le mapping est fait
dans adapters/orm.py.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from ordering.domain import events, pricing


# --- Erreurs métier ---


class OrderError(Exception):
    """
    Classe de base de toutes les erreurs classifiées.

    Chaque sous-classe porte un `code` stable ; l'appelant décide
    de la formulation à présenter à l'utilisateur.
    """

    code = "order_error"

    def to_dict(self) -> dict:
        return {"error": self.code, "message": str(self)}


class ValidationError(OrderError):
    """Entrée malformée ou hors des limites de stockage."""

    code = "validation_error"


class InsufficientStock(OrderError):
    """Levée quand la quantité demandée dépasse le stock disponible."""

    code = "insufficient_stock"

    def __init__(self, product_id: int, requested: int, available: int):
        super().__init__(
            f"Stock insuffisant pour le produit {product_id} :"
            f" {requested} demandé(s), {available} disponible(s)"
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available

    def to_dict(self) -> dict:
        return {
            **super().to_dict(),
            "product_id": self.product_id,
            "requested": self.requested,
            "available": self.available,
        }


class AlreadyCancelled(OrderError):
    """Levée quand on annule une commande déjà annulée."""

    code = "already_cancelled"

    def __init__(self, order_id: int):
        super().__init__(f"La commande {order_id} est déjà annulée")
        self.order_id = order_id

    def to_dict(self) -> dict:
        return {**super().to_dict(), "order_id": self.order_id}


class InvalidStatusTransition(OrderError):
    """Levée pour toute transition absente de la table TRANSITIONS."""

    code = "invalid_status_transition"

    def __init__(self, order_id: int, current: OrderStatus, requested: OrderStatus):
        super().__init__(
            f"Transition interdite pour la commande {order_id} :"
            f" {current.value} -> {requested.value}"
        )
        self.order_id = order_id
        self.current = current
        self.requested = requested

    def to_dict(self) -> dict:
        return {
            **super().to_dict(),
            "order_id": self.order_id,
            "current": self.current.value,
            "requested": self.requested.value,
        }


# --- Statuts ---


class OrderStatus(enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


# Statut courant -> statuts cibles autorisés.
# L'annulation est terminale.
TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset(
        {OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.CANCELLED}
    ),
    OrderStatus.CONFIRMED: frozenset(
        {OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.CANCELLED}
    ),
    OrderStatus.CANCELLED: frozenset(),
}


# --- Entités ---


class Product:
    """
    Entité produit, porteuse du compteur de stock.

    Le stock n'est jamais négatif : decrement() refuse plutôt que
    de laisser passer une survente. Les appels à decrement() et
    increment() ne doivent se faire que sur un produit verrouillé
    (voir service_layer/inventory.py).
    """

    def __init__(
        self,
        name: str,
        sku: str,
        price: Decimal,
        stock_quantity: int = 0,
        id: Optional[int] = None,
    ):
        self.id = id
        self.name = name
        self.sku = sku
        self.price = price
        self.stock_quantity = stock_quantity
        self.events: list[events.Event] = []

    def __repr__(self) -> str:
        return f"<Product {self.sku}>"

    def can_supply(self, quantity: int) -> bool:
        return self.stock_quantity >= quantity

    def decrement(self, quantity: int) -> None:
        """Retire `quantity` du stock ; émet OutOfStock si le stock tombe à zéro."""
        if not self.can_supply(quantity):
            raise InsufficientStock(self.id, quantity, self.stock_quantity)
        self.stock_quantity -= quantity
        if self.stock_quantity == 0:
            self.events.append(events.OutOfStock(product_id=self.id, sku=self.sku))

    def increment(self, quantity: int) -> None:
        self.stock_quantity += quantity


class OrderItem:
    """
    Ligne de commande.

    Le prix unitaire et le sous-total sont figés à la création ;
    product_id n'est qu'une clé de recherche, pas une référence vivante.
    """

    def __init__(
        self,
        product_id: int,
        quantity: int,
        unit_price: Decimal,
        subtotal: Decimal,
    ):
        self.product_id = product_id
        self.quantity = quantity
        self.unit_price = unit_price
        self.subtotal = subtotal

    def __repr__(self) -> str:
        return f"<OrderItem product={self.product_id} x{self.quantity}>"


class Order:
    """
    Agrégat racine pour les commandes.

    Une Commande possède ses lignes (elles disparaissent avec elle).
    Le montant total n'est jamais fixé de l'extérieur : il est toujours
    la somme des sous-totaux des lignes ajoutées via add_item().
    """

    def __init__(
        self,
        customer_name: str,
        items: Optional[list[OrderItem]] = None,
        status: OrderStatus = OrderStatus.PENDING,
        total_amount: Decimal = Decimal("0"),
        created_at: Optional[datetime] = None,
        id: Optional[int] = None,
    ):
        self.id = id
        self.customer_name = customer_name
        self.items = items or []
        self.status = status
        self.total_amount = total_amount
        self.created_at = created_at or datetime.now(timezone.utc)
        self.events: list[events.Event] = []

    def __repr__(self) -> str:
        return f"<Order {self.id} {self.status.value}>"

    def add_item(self, product: Product, quantity: int) -> OrderItem:
        """
        Ajoute une ligne pour `product` en figeant son prix courant.

        Le produit doit déjà avoir été décrémenté par l'appelant.
        """
        price = pricing.unit_price(product)
        item = OrderItem(
            product_id=product.id,
            quantity=quantity,
            unit_price=price,
            subtotal=pricing.subtotal(price, quantity),
        )
        self.items.append(item)
        self.total_amount = Decimal(self.total_amount) + item.subtotal
        return item

    @property
    def is_cancelled(self) -> bool:
        return self.status == OrderStatus.CANCELLED

    def product_ids(self) -> list[int]:
        """Identifiants distincts des produits référencés, en ordre croissant."""
        return sorted({item.product_id for item in self.items if item.product_id is not None})

    def change_status(self, new_status: OrderStatus) -> None:
        """
        Applique une transition hors annulation.

        L'annulation a un effet de bord (restitution du stock) et
        passe donc obligatoirement par cancel().
        """
        if new_status == OrderStatus.CANCELLED:
            self.cancel()
            return
        self._check_transition(new_status)
        if new_status == self.status:
            return
        old_status = self.status
        self.status = new_status
        self.events.append(
            events.OrderStatusChanged(
                order_id=self.id,
                old_status=old_status.value,
                new_status=new_status.value,
            )
        )

    def cancel(self) -> None:
        """Passe la commande en annulée. Le stock doit avoir été restitué avant."""
        self._check_transition(OrderStatus.CANCELLED)
        old_status = self.status
        self.status = OrderStatus.CANCELLED
        self.events.append(
            events.OrderStatusChanged(
                order_id=self.id,
                old_status=old_status.value,
                new_status=OrderStatus.CANCELLED.value,
            )
        )
        self.events.append(events.OrderCancelled(order_id=self.id))

    def _check_transition(self, new_status: OrderStatus) -> None:
        if self.is_cancelled and new_status == OrderStatus.CANCELLED:
            raise AlreadyCancelled(self.id)
        if new_status not in TRANSITIONS[self.status]:
            raise InvalidStatusTransition(self.id, self.status, new_status)
