"""
Views (lecture) pour le pattern CQRS.

Les views sont des fonctions de lecture pure qui interrogent
directement la base de données, sans passer par le modèle de domaine.

Chaque commande est rendue avec ses lignes, et chaque ligne avec
son produit (ou None si le produit a été supprimé depuis) : le
résultat est prêt à être sérialisé tel quel.
"""

from __future__ import annotations

from collections import defaultdict

from sqlalchemy import select

from ordering.adapters.orm import order_items, orders, products
from ordering.service_layer import unit_of_work


def _money(value) -> str:
    return str(value)


def _product_dict(row) -> dict:
    return {
        "id": row.id,
        "name": row.name,
        "sku": row.sku,
        "price": _money(row.price),
        "stock_quantity": row.stock_quantity,
    }


def _items_by_order(uow: unit_of_work.AbstractUnitOfWork, order_ids: list[int]) -> dict:
    query = (
        select(
            order_items.c.order_id,
            order_items.c.product_id,
            order_items.c.quantity,
            order_items.c.unit_price,
            order_items.c.subtotal,
            products.c.name.label("product_name"),
            products.c.sku.label("product_sku"),
        )
        .select_from(order_items.outerjoin(products, order_items.c.product_id == products.c.id))
        .where(order_items.c.order_id.in_(order_ids))
        .order_by(order_items.c.id)
    )
    items: dict[int, list[dict]] = defaultdict(list)
    for row in uow.session.execute(query):
        product = None
        if row.product_sku is not None:
            product = {"id": row.product_id, "name": row.product_name, "sku": row.product_sku}
        items[row.order_id].append({
            "product_id": row.product_id,
            "quantity": row.quantity,
            "unit_price": _money(row.unit_price),
            "subtotal": _money(row.subtotal),
            "product": product,
        })
    return items


def _order_dict(row, items: list[dict]) -> dict:
    return {
        "id": row.id,
        "customer_name": row.customer_name,
        "total_amount": _money(row.total_amount),
        "status": row.status.value,
        "created_at": row.created_at.isoformat(),
        "items": items,
    }


def orders_list(uow: unit_of_work.AbstractUnitOfWork) -> list[dict]:
    """Toutes les commandes, avec lignes et produits résolus."""
    with uow:
        rows = uow.session.execute(select(orders).order_by(orders.c.id)).all()
        items = _items_by_order(uow, [r.id for r in rows])
        return [_order_dict(r, items[r.id]) for r in rows]


def order(order_id: int, uow: unit_of_work.AbstractUnitOfWork) -> dict | None:
    with uow:
        row = uow.session.execute(
            select(orders).where(orders.c.id == order_id)
        ).first()
        if row is None:
            return None
        items = _items_by_order(uow, [row.id])
        return _order_dict(row, items[row.id])


def products_list(uow: unit_of_work.AbstractUnitOfWork) -> list[dict]:
    with uow:
        rows = uow.session.execute(select(products).order_by(products.c.id))
        return [_product_dict(r) for r in rows]


def product(product_id: int, uow: unit_of_work.AbstractUnitOfWork) -> dict | None:
    with uow:
        row = uow.session.execute(
            select(products).where(products.c.id == product_id)
        ).first()
        return _product_dict(row) if row is not None else None
