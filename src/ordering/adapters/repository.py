"""
Pattern Repository.

Le repository fournit une abstraction sur la couche de persistance.
Il expose une interface de type collection (add, get) qui masque
les détails de l'accès aux données.

Deux repositories : un pour les produits (qui expose la lecture
verrouillée du stock), un pour les commandes.
"""

from __future__ import annotations

import abc

from sqlalchemy import select
from sqlalchemy.orm import Session

from ordering.domain import model


class AbstractProductRepository(abc.ABC):
    """
    Interface abstraite du repository de produits.

    Le pattern Template Method est utilisé : les méthodes publiques
    gèrent le tracking via `seen`, puis délèguent aux méthodes
    abstraites préfixées _ que les sous-classes implémentent.
    """

    def __init__(self) -> None:
        # `seen` trace les produits consultés pendant la transaction,
        # ce qui permet au Unit of Work de collecter leurs événements.
        self.seen: set[model.Product] = set()

    def add(self, product: model.Product) -> None:
        self._add(product)
        self.seen.add(product)

    def get(self, product_id: int) -> model.Product | None:
        """Lecture simple, sans verrou."""
        product = self._get(product_id)
        if product:
            self.seen.add(product)
        return product

    def get_for_update(self, product_id: int) -> model.Product | None:
        """
        Lecture sous verrou exclusif de la ligne produit.

        Le verrou est tenu jusqu'à la fin de la transaction courante
        (commit ou rollback).
        """
        product = self._get_for_update(product_id)
        if product:
            self.seen.add(product)
        return product

    def get_by_sku(self, sku: str) -> model.Product | None:
        return self._get_by_sku(sku)

    def delete(self, product: model.Product) -> None:
        self._delete(product)
        self.seen.discard(product)

    @abc.abstractmethod
    def _add(self, product: model.Product) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def _get(self, product_id: int) -> model.Product | None:
        raise NotImplementedError

    @abc.abstractmethod
    def _get_for_update(self, product_id: int) -> model.Product | None:
        raise NotImplementedError

    @abc.abstractmethod
    def _get_by_sku(self, sku: str) -> model.Product | None:
        raise NotImplementedError

    @abc.abstractmethod
    def _delete(self, product: model.Product) -> None:
        raise NotImplementedError


class AbstractOrderRepository(abc.ABC):
    """Interface abstraite du repository de commandes."""

    def __init__(self) -> None:
        self.seen: set[model.Order] = set()

    def add(self, order: model.Order) -> None:
        self._add(order)
        self.seen.add(order)

    def get(self, order_id: int) -> model.Order | None:
        order = self._get(order_id)
        if order:
            self.seen.add(order)
        return order

    def get_for_update(self, order_id: int) -> model.Order | None:
        """
        Lecture sous verrou de la commande : deux changements de statut
        concurrents sur la même commande se sérialisent.
        """
        order = self._get_for_update(order_id)
        if order:
            self.seen.add(order)
        return order

    @abc.abstractmethod
    def _add(self, order: model.Order) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def _get(self, order_id: int) -> model.Order | None:
        raise NotImplementedError

    @abc.abstractmethod
    def _get_for_update(self, order_id: int) -> model.Order | None:
        raise NotImplementedError


class SqlAlchemyProductRepository(AbstractProductRepository):
    """Implémentation concrète du repository de produits avec SQLAlchemy."""

    def __init__(self, session: Session):
        super().__init__()
        self.session = session

    def _add(self, product: model.Product) -> None:
        self.session.add(product)

    def _get(self, product_id: int) -> model.Product | None:
        return self.session.get(model.Product, product_id)

    def _get_for_update(self, product_id: int) -> model.Product | None:
        # populate_existing : une ligne déjà présente dans la session
        # est relue, on ne décide jamais sur une valeur en cache.
        return self.session.execute(
            select(model.Product)
            .filter_by(id=product_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _get_by_sku(self, sku: str) -> model.Product | None:
        return self.session.execute(
            select(model.Product).filter_by(sku=sku)
        ).scalar_one_or_none()

    def _delete(self, product: model.Product) -> None:
        self.session.delete(product)


class SqlAlchemyOrderRepository(AbstractOrderRepository):
    """Implémentation concrète du repository de commandes avec SQLAlchemy."""

    def __init__(self, session: Session):
        super().__init__()
        self.session = session

    def _add(self, order: model.Order) -> None:
        self.session.add(order)

    def _get(self, order_id: int) -> model.Order | None:
        return self.session.get(model.Order, order_id)

    def _get_for_update(self, order_id: int) -> model.Order | None:
        return self.session.execute(
            select(model.Order)
            .filter_by(id=order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
