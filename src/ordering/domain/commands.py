"""
Commands du domaine.

Les commands représentent des intentions : quelque chose que
le système doit faire. Contrairement aux events (faits passés),
les commands sont des demandes qui peuvent échouer.

Les valeurs arrivent telles quelles depuis l'extérieur (JSON) ;
leur validation est faite par les handlers avant toute transaction.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional


class Command:
    """Classe de base pour toutes les commands."""
    pass


@dataclass(frozen=True)
class OrderLine:
    """Une ligne du panier : quel produit, en quelle quantité."""

    product_id: Any
    quantity: Any


@dataclass(frozen=True)
class PlaceOrder(Command):
    """Demande de création d'une commande à partir d'un panier."""

    customer_name: str
    items: tuple[OrderLine, ...]


@dataclass(frozen=True)
class ChangeOrderStatus(Command):
    """Demande de changement de statut (confirmation, annulation...)."""

    order_id: int
    status: str


@dataclass(frozen=True)
class CreateProduct(Command):
    """Demande d'ajout d'un produit au catalogue."""

    name: str
    sku: str
    price: Decimal
    stock_quantity: int


@dataclass(frozen=True)
class UpdateProduct(Command):
    """Modification partielle d'un produit ; None signifie « inchangé »."""

    product_id: int
    name: Optional[str] = None
    sku: Optional[str] = None
    price: Optional[Decimal] = None
    stock_quantity: Optional[int] = None


@dataclass(frozen=True)
class DeleteProduct(Command):
    """Demande de retrait d'un produit du catalogue."""

    product_id: int
