"""
Inventory Store : accès verrouillé aux compteurs de stock.

Toute lecture qui conditionne une déduction se fait sous verrou,
dans la même transaction que la déduction. Quand plusieurs produits
sont concernés, ils sont verrouillés par identifiant croissant :
deux transactions sur la même paire de produits ne peuvent pas
se verrouiller en ordre inverse.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from ordering.domain import model

if TYPE_CHECKING:
    from ordering.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


class ProductNotFound(model.OrderError):
    """Levée quand un produit référencé n'existe pas."""

    code = "product_not_found"

    def __init__(self, product_id: int):
        super().__init__(f"Produit introuvable : {product_id}")
        self.product_id = product_id

    def to_dict(self) -> dict:
        return {**super().to_dict(), "product_id": self.product_id}


def lock_and_get(uow: AbstractUnitOfWork, product_id: int) -> model.Product | None:
    return uow.products.get_for_update(product_id)


def lock_many(uow: AbstractUnitOfWork, product_ids: Iterable[int]) -> dict[int, model.Product]:
    """
    Verrouille les produits distincts de `product_ids` par id croissant.

    Lève ProductNotFound pour le premier id absent.
    """
    locked: dict[int, model.Product] = {}
    for product_id in sorted(set(product_ids)):
        product = lock_and_get(uow, product_id)
        if product is None:
            raise ProductNotFound(product_id)
        locked[product_id] = product
    return locked


def decrement(product: model.Product, quantity: int) -> None:
    product.decrement(quantity)
    logger.debug(
        "Stock de %s : -%d (reste %d)", product.sku, quantity, product.stock_quantity
    )


def increment(uow: AbstractUnitOfWork, product_id: int, quantity: int) -> None:
    """
    Restitue `quantity` au stock du produit.

    Sans effet si le produit a été supprimé entre-temps : il n'y a
    plus de stock auquel rendre les unités.
    """
    product = lock_and_get(uow, product_id)
    if product is None:
        logger.info(
            "Produit %s supprimé : restitution de %d unité(s) ignorée",
            product_id, quantity,
        )
        return
    product.increment(quantity)
