"""
Pattern Unit of Work.

Le Unit of Work (UoW) gère la notion de transaction atomique.
Il coordonne l'écriture en base de données et la collecte
des événements émis par les agrégats au cours de la transaction.

Le UoW agit comme un context manager :
    with uow:
        # ... opérations sur les repositories ...
        uow.commit()

Toute sortie du bloc sans commit() se termine par un rollback :
aucune déduction partielle de stock n'est jamais visible.
"""

from __future__ import annotations

import abc
import logging
import threading

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DataError, IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from ordering import config
from ordering.adapters import repository
from ordering.domain import model

logger = logging.getLogger(__name__)

SQLITE_BUSY_TIMEOUT = 30


class TransientConflict(model.OrderError):
    """Contention de verrou ou deadlock détecté par la base de données."""

    code = "transient_conflict"


def create_db_engine(uri: str) -> Engine:
    """
    Construit l'engine SQLAlchemy pour `uri`.

    SQLite n'a pas de verrou de ligne : chaque transaction y est ouverte
    en BEGIN IMMEDIATE, ce qui sérialise les écrivains sur le verrou
    de la base. Les clés étrangères (CASCADE, SET NULL) y sont activées
    à chaque connexion. Les autres bases tournent en READ COMMITTED,
    pour que SELECT ... FOR UPDATE lise la dernière valeur committée.
    """
    if not uri.startswith("sqlite"):
        return create_engine(uri, isolation_level="READ COMMITTED")

    engine = create_engine(
        uri,
        connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT},
    )

    @event.listens_for(engine, "connect")
    def _configure_sqlite_connection(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


DEFAULT_SESSION_FACTORY = sessionmaker(
    bind=create_db_engine(config.get_db_uri()),
    expire_on_commit=False,
)


class AbstractUnitOfWork(abc.ABC):
    """
    Interface abstraite du Unit of Work.

    Fournit les repositories `products` et `orders` et gère commit/rollback.
    Le rollback est automatique si commit() n'est pas appelé
    (grâce au __exit__ du context manager).
    """

    products: repository.AbstractProductRepository
    orders: repository.AbstractOrderRepository

    def __enter__(self) -> AbstractUnitOfWork:
        return self

    def __exit__(self, *args: object) -> None:
        self.rollback()

    def commit(self) -> None:
        self._commit()

    def collect_new_events(self):
        """
        Collecte tous les événements émis par les agrégats vus
        pendant cette transaction.
        """
        for aggregate in (*self.products.seen, *self.orders.seen):
            while aggregate.events:
                yield aggregate.events.pop(0)

    @abc.abstractmethod
    def _commit(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def rollback(self) -> None:
        raise NotImplementedError


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    """
    Implémentation concrète du UoW avec SQLAlchemy.

    Crée une session à l'entrée du context manager,
    la ferme à la sortie. Rollback automatique si pas de commit.

    Un même UoW est partagé par toutes les requêtes : la session et
    les repositories sont donc propres à chaque thread.
    """

    def __init__(self, session_factory: sessionmaker = DEFAULT_SESSION_FACTORY):
        self.session_factory = session_factory
        self._local = threading.local()

    @property
    def session(self) -> Session:
        return self._local.session

    @property
    def products(self) -> repository.AbstractProductRepository:
        return self._local.products

    @property
    def orders(self) -> repository.AbstractOrderRepository:
        return self._local.orders

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        session = self.session_factory()
        self._local.session = session
        self._local.products = repository.SqlAlchemyProductRepository(session)
        self._local.orders = repository.SqlAlchemyOrderRepository(session)
        return super().__enter__()

    def __exit__(self, exc_type, exc, tb) -> None:
        super().__exit__(exc_type, exc, tb)
        self.session.close()
        if isinstance(exc, OperationalError):
            logger.warning("Conflit de transaction : %s", exc.orig)
            raise TransientConflict(
                "Conflit de verrou avec une transaction concurrente"
            ) from exc
        if isinstance(exc, (IntegrityError, DataError)):
            logger.warning("Écriture refusée par la base : %s", exc.orig)
            raise model.ValidationError(
                f"Donnée refusée par la base : {exc.orig}"
            ) from exc

    def _commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
