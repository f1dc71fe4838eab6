"""
Tests unitaires du modèle de domaine.

Ces tests vérifient le comportement du modèle de domaine
en isolation complète, sans base de données ni I/O.
C'est le "low gear" : on teste la logique métier au plus près.
"""

from decimal import Decimal

import pytest

from ordering.domain import events, pricing
from ordering.domain.model import (
    AlreadyCancelled,
    InsufficientStock,
    InvalidStatusTransition,
    Order,
    OrderStatus,
    Product,
)


# --- Helpers ---


def créer_produit(stock: int = 10, prix: str = "5.00", id: int = 1) -> Product:
    return Product(name="Lampe", sku=f"LAMPE-{id}", price=Decimal(prix), stock_quantity=stock, id=id)


def commande_avec_ligne(status: OrderStatus = OrderStatus.PENDING) -> Order:
    produit = créer_produit()
    commande = Order(customer_name="Alice", id=42)
    produit.decrement(2)
    commande.add_item(produit, 2)
    commande.status = status
    return commande


# --- Tests du Produit ---


class TestProduct:
    def test_decrement_réduit_le_stock(self):
        produit = créer_produit(stock=10)
        produit.decrement(3)
        assert produit.stock_quantity == 7

    def test_decrement_jusqu_à_zéro_est_autorisé(self):
        produit = créer_produit(stock=3)
        produit.decrement(3)
        assert produit.stock_quantity == 0

    def test_decrement_refuse_la_survente(self):
        produit = créer_produit(stock=2, id=7)

        with pytest.raises(InsufficientStock) as exc_info:
            produit.decrement(5)

        assert produit.stock_quantity == 2
        assert exc_info.value.product_id == 7
        assert exc_info.value.requested == 5
        assert exc_info.value.available == 2

    def test_insufficient_stock_est_une_erreur_classifiée(self):
        erreur = InsufficientStock(7, 5, 2)
        assert erreur.to_dict() == {
            "error": "insufficient_stock",
            "message": str(erreur),
            "product_id": 7,
            "requested": 5,
            "available": 2,
        }

    def test_émet_out_of_stock_quand_le_stock_tombe_à_zéro(self):
        produit = créer_produit(stock=3, id=9)
        produit.decrement(3)
        assert produit.events == [events.OutOfStock(product_id=9, sku="LAMPE-9")]

    def test_pas_d_événement_si_du_stock_reste(self):
        produit = créer_produit(stock=3)
        produit.decrement(2)
        assert produit.events == []

    def test_increment_restitue_le_stock(self):
        produit = créer_produit(stock=0)
        produit.increment(4)
        assert produit.stock_quantity == 4


# --- Tests de l'instantané de prix ---


class TestPricing:
    def test_le_prix_unitaire_est_celui_du_produit(self):
        assert pricing.unit_price(créer_produit(prix="12.50")) == Decimal("12.50")

    def test_sous_total(self):
        assert pricing.subtotal(Decimal("5.00"), 3) == Decimal("15.00")


# --- Tests de la Commande ---


class TestOrder:
    def test_une_nouvelle_commande_est_en_attente_avec_un_total_nul(self):
        commande = Order(customer_name="Alice")
        assert commande.status == OrderStatus.PENDING
        assert commande.total_amount == Decimal("0")
        assert commande.items == []
        assert commande.created_at is not None

    def test_add_item_fige_le_prix_et_calcule_le_sous_total(self):
        produit = créer_produit(prix="5.00")
        commande = Order(customer_name="Alice")

        ligne = commande.add_item(produit, 3)

        assert ligne.product_id == produit.id
        assert ligne.unit_price == Decimal("5.00")
        assert ligne.subtotal == Decimal("15.00")
        assert commande.total_amount == Decimal("15.00")

    def test_le_total_est_la_somme_des_sous_totaux(self):
        lampe = créer_produit(prix="5.00", id=1)
        chaise = créer_produit(prix="19.99", id=2)
        commande = Order(customer_name="Bob")

        commande.add_item(lampe, 3)
        commande.add_item(chaise, 2)

        assert commande.total_amount == sum(i.subtotal for i in commande.items)
        assert commande.total_amount == Decimal("54.98")

    def test_un_changement_de_prix_ultérieur_ne_modifie_pas_la_ligne(self):
        produit = créer_produit(prix="5.00")
        commande = Order(customer_name="Alice")
        ligne = commande.add_item(produit, 2)

        produit.price = Decimal("99.00")

        assert ligne.unit_price == Decimal("5.00")
        assert ligne.subtotal == Decimal("10.00")
        assert commande.total_amount == Decimal("10.00")

    def test_product_ids_distincts_et_triés(self):
        commande = Order(customer_name="Alice")
        commande.add_item(créer_produit(id=3), 1)
        commande.add_item(créer_produit(id=1), 1)
        commande.add_item(créer_produit(id=3), 2)

        assert commande.product_ids() == [1, 3]


class TestTransitions:
    def test_confirmer_une_commande_en_attente(self):
        commande = commande_avec_ligne()

        commande.change_status(OrderStatus.CONFIRMED)

        assert commande.status == OrderStatus.CONFIRMED
        assert commande.events[-1] == events.OrderStatusChanged(
            order_id=42, old_status="pending", new_status="confirmed"
        )

    def test_repasser_une_commande_confirmée_en_attente(self):
        commande = commande_avec_ligne(OrderStatus.CONFIRMED)
        commande.change_status(OrderStatus.PENDING)
        assert commande.status == OrderStatus.PENDING

    def test_même_statut_sans_effet(self):
        commande = commande_avec_ligne(OrderStatus.CONFIRMED)
        commande.change_status(OrderStatus.CONFIRMED)
        assert commande.status == OrderStatus.CONFIRMED
        assert commande.events == []

    @pytest.mark.parametrize("statut", [OrderStatus.PENDING, OrderStatus.CONFIRMED])
    def test_annuler(self, statut):
        commande = commande_avec_ligne(statut)

        commande.cancel()

        assert commande.status == OrderStatus.CANCELLED
        assert events.OrderCancelled(order_id=42) in commande.events

    def test_change_status_vers_annulée_passe_par_cancel(self):
        commande = commande_avec_ligne()
        commande.change_status(OrderStatus.CANCELLED)
        assert commande.is_cancelled

    def test_annuler_deux_fois_lève_already_cancelled(self):
        commande = commande_avec_ligne(OrderStatus.CANCELLED)

        with pytest.raises(AlreadyCancelled) as exc_info:
            commande.cancel()

        assert exc_info.value.order_id == 42
        assert exc_info.value.to_dict()["error"] == "already_cancelled"

    @pytest.mark.parametrize("cible", [OrderStatus.PENDING, OrderStatus.CONFIRMED])
    def test_l_annulation_est_terminale(self, cible):
        commande = commande_avec_ligne(OrderStatus.CANCELLED)

        with pytest.raises(InvalidStatusTransition) as exc_info:
            commande.change_status(cible)

        assert commande.status == OrderStatus.CANCELLED
        assert exc_info.value.to_dict()["current"] == "cancelled"
        assert exc_info.value.to_dict()["requested"] == cible.value
