"""
Events du domaine.

Les events représentent des faits qui se sont produits dans le système.
Ils sont immuables et nommés au passé (quelque chose s'est passé).
"""

from dataclasses import dataclass
from decimal import Decimal


class Event:
    """Classe de base pour tous les events du domaine."""
    pass


@dataclass(frozen=True)
class OrderPlaced(Event):
    """Une commande a été créée et le stock correspondant déduit."""

    order_id: int
    customer_name: str
    total_amount: Decimal


@dataclass(frozen=True)
class OrderStatusChanged(Event):
    """Le statut d'une commande est passé de old_status à new_status."""

    order_id: int
    old_status: str
    new_status: str


@dataclass(frozen=True)
class OrderCancelled(Event):
    """Une commande a été annulée et son stock restitué."""

    order_id: int


@dataclass(frozen=True)
class OutOfStock(Event):
    """Le stock d'un produit vient de tomber à zéro."""

    product_id: int
    sku: str
