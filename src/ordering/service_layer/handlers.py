"""
Handlers pour les commands et events.

Les handlers sont les fonctions qui traitent les commands et events
transitant par le message bus.

- Command handlers : exécutent une action (peuvent échouer)
- Event handlers : réagissent à un fait passé (ne doivent pas échouer)
"""

from __future__ import annotations

import functools
import logging
from collections import defaultdict
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Callable

from ordering import config
from ordering.domain import commands, events, model
from ordering.service_layer import inventory
from ordering.service_layer.unit_of_work import TransientConflict

if TYPE_CHECKING:
    from ordering.adapters.notifications import AbstractNotifications
    from ordering.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 2


# --- Exceptions ---


ValidationError = model.ValidationError


class OrderNotFound(model.OrderError):
    """Levée quand la commande visée n'existe pas."""

    code = "order_not_found"

    def __init__(self, order_id: int):
        super().__init__(f"Commande introuvable : {order_id}")
        self.order_id = order_id

    def to_dict(self) -> dict:
        return {**super().to_dict(), "order_id": self.order_id}


ProductNotFound = inventory.ProductNotFound


# --- Validation ---

# Limites des colonnes : String(255), Numeric(12, 2), Integer.
MAX_TEXT_LENGTH = 255
MAX_AMOUNT = Decimal("9999999999.99")
MAX_INTEGER = 2**31 - 1


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_text(value: Any, label: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} est obligatoire")
    if len(value.strip()) > MAX_TEXT_LENGTH:
        raise ValidationError(f"{label} dépasse {MAX_TEXT_LENGTH} caractères")


def _validate_place_order(cmd: commands.PlaceOrder) -> None:
    _check_text(cmd.customer_name, "Le nom du client")
    if not cmd.items:
        raise ValidationError("La commande doit contenir au moins un article")
    for line in cmd.items:
        if not _is_int(line.product_id) or abs(line.product_id) > MAX_INTEGER:
            raise ValidationError(f"Identifiant de produit invalide : {line.product_id!r}")
        if not _is_int(line.quantity) or not 1 <= line.quantity <= MAX_INTEGER:
            raise ValidationError(
                f"Quantité invalide pour le produit {line.product_id} : {line.quantity!r}"
            )


def _parse_status(value: Any) -> model.OrderStatus:
    try:
        return model.OrderStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in model.OrderStatus)
        raise ValidationError(f"Statut inconnu : {value!r} (attendu : {allowed})") from None


def _validate_product_fields(
    name: Any = None, sku: Any = None, price: Any = None, stock_quantity: Any = None
) -> Decimal | None:
    """Valide les champs fournis ; retourne le prix converti en Decimal."""
    if name is not None:
        _check_text(name, "Le nom du produit")
    if sku is not None:
        _check_text(sku, "Le SKU")
    if stock_quantity is not None and (
        not _is_int(stock_quantity) or not 0 <= stock_quantity <= MAX_INTEGER
    ):
        raise ValidationError(f"Stock invalide : {stock_quantity!r}")
    if price is None:
        return None
    try:
        parsed = Decimal(str(price))
    except InvalidOperation:
        raise ValidationError(f"Prix invalide : {price!r}") from None
    if not parsed.is_finite() or parsed < 0 or parsed > MAX_AMOUNT:
        raise ValidationError(f"Prix invalide : {price!r}")
    if parsed.as_tuple().exponent < -2:
        raise ValidationError(f"Prix invalide, deux décimales au plus : {price!r}")
    return parsed


# --- Retry ---


def retry_on_conflict(handler: Callable) -> Callable:
    """
    Rejoue une fois un handler dont la transaction a perdu un conflit
    de verrou ; le second échec remonte à l'appelant.
    """

    @functools.wraps(handler)
    def wrapper(cmd, *args, **kwargs):
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                return handler(cmd, *args, **kwargs)
            except TransientConflict:
                if attempt == MAX_ATTEMPTS:
                    raise
                logger.warning(
                    "Conflit sur %s, nouvelle tentative (%d/%d)",
                    type(cmd).__name__, attempt + 1, MAX_ATTEMPTS,
                )

    return wrapper


# --- Command Handlers ---


@retry_on_conflict
def place_order(
    cmd: commands.PlaceOrder,
    uow: AbstractUnitOfWork,
) -> model.Order:
    """
    Transforme un panier en commande, dans une seule transaction.

    Les produits sont verrouillés par id croissant, puis chaque ligne
    est traitée dans l'ordre du panier : contrôle du stock, déduction,
    instantané du prix. Une erreur sur n'importe quelle ligne annule
    tout (commande, lignes et déductions).
    """
    _validate_place_order(cmd)
    with uow:
        order = model.Order(customer_name=cmd.customer_name.strip())
        products = inventory.lock_many(uow, (line.product_id for line in cmd.items))
        for line in cmd.items:
            product = products[line.product_id]
            inventory.decrement(product, line.quantity)
            order.add_item(product, line.quantity)
        if order.total_amount > MAX_AMOUNT:
            raise ValidationError(f"Montant total hors limite : {order.total_amount}")
        uow.orders.add(order)
        uow.commit()
        order.events.append(
            events.OrderPlaced(
                order_id=order.id,
                customer_name=order.customer_name,
                total_amount=order.total_amount,
            )
        )
    logger.info(
        "Commande %s créée pour %s (%d ligne(s), total %s)",
        order.id, order.customer_name, len(order.items), order.total_amount,
    )
    return order


@retry_on_conflict
def change_order_status(
    cmd: commands.ChangeOrderStatus,
    uow: AbstractUnitOfWork,
) -> model.Order:
    """
    Applique un changement de statut.

    L'annulation restitue d'abord le stock de chaque ligne (produits
    verrouillés par id croissant), puis passe la commande en annulée,
    le tout dans la même transaction.
    """
    new_status = _parse_status(cmd.status)
    with uow:
        order = uow.orders.get_for_update(cmd.order_id)
        if order is None:
            raise OrderNotFound(cmd.order_id)
        if new_status == model.OrderStatus.CANCELLED:
            _cancel(order, uow)
        else:
            order.change_status(new_status)
        uow.commit()
    return order


def _cancel(order: model.Order, uow: AbstractUnitOfWork) -> None:
    if order.is_cancelled:
        raise model.AlreadyCancelled(order.id)
    quantities: dict[int, int] = defaultdict(int)
    for item in order.items:
        if item.product_id is not None:
            quantities[item.product_id] += item.quantity
    for product_id in order.product_ids():
        inventory.increment(uow, product_id, quantities[product_id])
    order.cancel()


@retry_on_conflict
def create_product(
    cmd: commands.CreateProduct,
    uow: AbstractUnitOfWork,
) -> int:
    """Ajoute un produit au catalogue et retourne son identifiant."""
    if cmd.name is None or cmd.sku is None or cmd.price is None or cmd.stock_quantity is None:
        raise ValidationError("name, sku, price et stock_quantity sont obligatoires")
    price = _validate_product_fields(cmd.name, cmd.sku, cmd.price, cmd.stock_quantity)
    with uow:
        if uow.products.get_by_sku(cmd.sku.strip()) is not None:
            raise ValidationError(f"SKU déjà utilisé : {cmd.sku}")
        product = model.Product(
            name=cmd.name.strip(),
            sku=cmd.sku.strip(),
            price=price,
            stock_quantity=cmd.stock_quantity,
        )
        uow.products.add(product)
        uow.commit()
        product_id = product.id
    return product_id


@retry_on_conflict
def update_product(
    cmd: commands.UpdateProduct,
    uow: AbstractUnitOfWork,
) -> None:
    """
    Modifie un produit existant (ligne verrouillée).

    Un changement de prix n'affecte jamais les lignes de commande
    existantes, qui portent leur propre instantané.
    """
    price = _validate_product_fields(cmd.name, cmd.sku, cmd.price, cmd.stock_quantity)
    with uow:
        product = inventory.lock_and_get(uow, cmd.product_id)
        if product is None:
            raise ProductNotFound(cmd.product_id)
        if cmd.sku is not None and cmd.sku.strip() != product.sku:
            sku = cmd.sku.strip()
            if uow.products.get_by_sku(sku) is not None:
                raise ValidationError(f"SKU déjà utilisé : {sku}")
            product.sku = sku
        if cmd.name is not None:
            product.name = cmd.name.strip()
        if price is not None:
            product.price = price
        if cmd.stock_quantity is not None:
            product.stock_quantity = cmd.stock_quantity
        uow.commit()


@retry_on_conflict
def delete_product(
    cmd: commands.DeleteProduct,
    uow: AbstractUnitOfWork,
) -> None:
    with uow:
        product = inventory.lock_and_get(uow, cmd.product_id)
        if product is None:
            raise ProductNotFound(cmd.product_id)
        uow.products.delete(product)
        uow.commit()


# --- Event Handlers ---


def publish_order_event(
    event: events.Event,
    uow: AbstractUnitOfWork,
) -> None:
    """
    Publie un événement de commande vers l'extérieur.

    Dans un système complet, cela publierait vers Redis, Kafka, etc.
    Ici l'événement est seulement journalisé.
    """
    logger.info("Événement publié : %s", event)


def send_out_of_stock_notification(
    event: events.OutOfStock,
    notifications: AbstractNotifications,
) -> None:
    """Prévient le service stock quand un produit est épuisé."""
    notifications.send(
        destination=config.get_stock_desk_email(),
        message=f"Rupture de stock pour le produit {event.sku} (id {event.product_id})",
    )
