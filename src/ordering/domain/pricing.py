"""
Instantané de prix.

Le prix unitaire est lu sur le produit au moment de la commande,
puis stocké sur la ligne. Les modifications ultérieures du catalogue
n'ont donc aucun effet sur les commandes passées.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ordering.domain.model import Product


def unit_price(product: Product) -> Decimal:
    """Prix unitaire courant du produit, tel qu'il sera figé sur la ligne."""
    return Decimal(product.price)


def subtotal(price: Decimal, quantity: int) -> Decimal:
    return price * quantity
