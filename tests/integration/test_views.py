"""
Tests des views (côté lecture CQRS).

Les commandes sont écrites via le bus, puis relues par les views :
chaque ligne doit arriver avec son produit résolu.
"""

import pytest

from ordering.adapters.notifications import AbstractNotifications
from ordering.domain import commands
from ordering.service_layer import bootstrap, unit_of_work
from ordering.views import views


class NullNotifications(AbstractNotifications):
    def send(self, destination: str, message: str) -> None:
        pass


@pytest.fixture
def bus(sqlite_session_factory):
    return bootstrap.bootstrap(
        start_orm=False,
        uow=unit_of_work.SqlAlchemyUnitOfWork(sqlite_session_factory),
        notifications_adapter=NullNotifications(),
    )


def créer_produit(bus, sku, prix="5.00", stock=10) -> int:
    return bus.handle(commands.CreateProduct(sku.title(), sku, prix, stock)).pop(0)


def test_vue_d_une_commande(bus):
    lampe = créer_produit(bus, "LAMPE", prix="5.00")
    chaise = créer_produit(bus, "CHAISE", prix="12.25")
    commande = bus.handle(
        commands.PlaceOrder(
            "Alice", (commands.OrderLine(lampe, 3), commands.OrderLine(chaise, 2))
        )
    ).pop(0)

    vue = views.order(commande.id, bus.uow)

    assert vue["id"] == commande.id
    assert vue["customer_name"] == "Alice"
    assert vue["status"] == "pending"
    assert vue["total_amount"] == "39.50"
    assert vue["created_at"]
    assert vue["items"] == [
        {
            "product_id": lampe,
            "quantity": 3,
            "unit_price": "5.00",
            "subtotal": "15.00",
            "product": {"id": lampe, "name": "Lampe", "sku": "LAMPE"},
        },
        {
            "product_id": chaise,
            "quantity": 2,
            "unit_price": "12.25",
            "subtotal": "24.50",
            "product": {"id": chaise, "name": "Chaise", "sku": "CHAISE"},
        },
    ]


def test_produit_supprimé_rendu_à_none(bus):
    lampe = créer_produit(bus, "LAMPE")
    commande = bus.handle(commands.PlaceOrder("Alice", (commands.OrderLine(lampe, 1),))).pop(0)
    bus.handle(commands.DeleteProduct(lampe))

    vue = views.order(commande.id, bus.uow)

    assert vue["items"][0]["product"] is None
    assert vue["items"][0]["unit_price"] == "5.00"


def test_liste_des_commandes(bus):
    lampe = créer_produit(bus, "LAMPE")
    for client in ("Alice", "Bob"):
        bus.handle(commands.PlaceOrder(client, (commands.OrderLine(lampe, 1),)))

    vues = views.orders_list(bus.uow)

    assert [v["customer_name"] for v in vues] == ["Alice", "Bob"]
    assert all(len(v["items"]) == 1 for v in vues)


def test_commande_inexistante(bus):
    assert views.order(404, bus.uow) is None


def test_vues_produits(bus):
    lampe = créer_produit(bus, "LAMPE", prix="7.5", stock=3)

    assert views.product(lampe, bus.uow) == {
        "id": lampe,
        "name": "Lampe",
        "sku": "LAMPE",
        "price": "7.50",
        "stock_quantity": 3,
    }
    assert [p["sku"] for p in views.products_list(bus.uow)] == ["LAMPE"]
    assert views.product(999, bus.uow) is None
