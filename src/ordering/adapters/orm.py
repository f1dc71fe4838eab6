"""
Mapping ORM avec SQLAlchemy (classical mapping).

On définit les tables séparément, puis on mappe les classes
du domaine sur ces tables. Cela permet au modèle de domaine
de rester ignorant de la persistance (persistence ignorance).

Trois tables : products, orders et order_items. Une ligne appartient
à sa commande (cascade) et ne fait que référencer un produit.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    event,
    inspect,
)
from sqlalchemy.orm import registry, relationship

from ordering.domain import model

metadata = MetaData()
mapper_registry = registry(metadata=metadata)

MONEY = Numeric(12, 2)

# --- Définition des tables ---

products = Table(
    "products",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("sku", String(255), nullable=False, unique=True),
    Column("price", MONEY, nullable=False),
    Column("stock_quantity", Integer, nullable=False, server_default="0"),
    CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
    CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
    # Un id supprimé n'est jamais réattribué.
    sqlite_autoincrement=True,
)

orders = Table(
    "orders",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("customer_name", String(255), nullable=False),
    Column("total_amount", MONEY, nullable=False, server_default="0"),
    Column(
        "status",
        Enum(
            model.OrderStatus,
            name="order_status",
            native_enum=False,
            length=16,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        nullable=False,
    ),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

order_items = Table(
    "order_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "order_id",
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "product_id",
        Integer,
        ForeignKey("products.id", ondelete="SET NULL"),
        nullable=True,
    ),
    Column("quantity", Integer, nullable=False),
    Column("unit_price", MONEY, nullable=False),
    Column("subtotal", MONEY, nullable=False),
    CheckConstraint("quantity >= 1", name="ck_order_items_quantity_positive"),
)


def start_mappers() -> None:
    """
    Configure le mapping entre les classes du domaine et les tables SQL.

    Utilise le classical mapping : les classes du domaine ne connaissent
    pas SQLAlchemy. Sans effet si le mapping est déjà en place.
    """
    if inspect(model.Product, raiseerr=False) is not None:
        return

    mapper_registry.map_imperatively(model.Product, products)
    items_mapper = mapper_registry.map_imperatively(model.OrderItem, order_items)
    mapper_registry.map_imperatively(
        model.Order,
        orders,
        properties={
            "items": relationship(
                items_mapper,
                cascade="all, delete-orphan",
                order_by=order_items.c.id,
            ),
        },
    )


@event.listens_for(model.Product, "load")
def receive_product_load(product: model.Product, _: object) -> None:
    """Initialise la liste d'événements quand un Produit est chargé depuis la BDD."""
    product.events = []


@event.listens_for(model.Order, "load")
def receive_order_load(order: model.Order, _: object) -> None:
    order.events = []
