"""
Configuration partagée pour les tests.

Le mapping ORM est démarré une seule fois pour toute la session de tests.
Cela permet aux tests d'intégration et e2e d'utiliser SQLAlchemy
sans interférer avec les tests unitaires.
"""

import pytest
from sqlalchemy.orm import sessionmaker

from ordering.adapters import orm
from ordering.service_layer import unit_of_work


@pytest.fixture(scope="session", autouse=True)
def mappers():
    """Démarre le mapping ORM une fois pour toute la session."""
    orm.start_mappers()


@pytest.fixture
def sqlite_session_factory():
    """Fabrique de sessions sur une base SQLite en mémoire, tables créées."""
    engine = unit_of_work.create_db_engine("sqlite:///:memory:")
    orm.metadata.create_all(engine)
    yield sessionmaker(bind=engine, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def file_session_factory(tmp_path):
    """
    Fabrique de sessions sur un fichier SQLite.

    Nécessaire dès que plusieurs threads doivent voir la même base.
    """
    engine = unit_of_work.create_db_engine(f"sqlite:///{tmp_path / 'ordering.db'}")
    orm.metadata.create_all(engine)
    yield sessionmaker(bind=engine, expire_on_commit=False)
    engine.dispose()
