"""
Point d'entrée Flask.

L'API Flask est un thin adapter : elle se contente de
convertir les requêtes HTTP en commands, les envoie au
message bus, et convertit les résultats en réponses HTTP.

L'API ne contient aucune logique métier.
"""

from __future__ import annotations

import logging

from flask import Flask, jsonify, request

from ordering import config
from ordering.domain import commands, model
from ordering.service_layer import bootstrap, handlers, inventory, unit_of_work
from ordering.views import views

logging.basicConfig(
    level=config.get_log_level(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = Flask(__name__)
bus = bootstrap.bootstrap()

HTTP_STATUS: dict[type[model.OrderError], int] = {
    handlers.ValidationError: 422,
    inventory.ProductNotFound: 404,
    handlers.OrderNotFound: 404,
    model.InsufficientStock: 409,
    model.AlreadyCancelled: 409,
    model.InvalidStatusTransition: 409,
    unit_of_work.TransientConflict: 503,
}


@app.errorhandler(model.OrderError)
def order_error_handler(error: model.OrderError):
    return jsonify(error.to_dict()), HTTP_STATUS.get(type(error), 400)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise handlers.ValidationError("Le corps de la requête doit être un objet JSON")
    return data


# --- Commandes ---


@app.route("/orders", methods=["POST"])
def place_order_endpoint():
    """
    POST /orders
    Body JSON : { customer_name, items: [{ product_id, quantity }] }

    Crée une commande et déduit le stock. Retourne la commande complète.
    """
    data = _json_body()
    items = data.get("items")
    if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
        raise handlers.ValidationError("items doit être une liste d'objets")

    cmd = commands.PlaceOrder(
        customer_name=data.get("customer_name"),
        items=tuple(
            commands.OrderLine(product_id=i.get("product_id"), quantity=i.get("quantity"))
            for i in items
        ),
    )
    order = bus.handle(cmd).pop(0)
    return jsonify(views.order(order.id, bus.uow)), 201


@app.route("/orders/<int:order_id>", methods=["PATCH"])
def change_order_status_endpoint(order_id: int):
    """
    PATCH /orders/<order_id>
    Body JSON : { status }

    Change le statut ; "cancelled" restitue le stock.
    """
    data = _json_body()
    bus.handle(commands.ChangeOrderStatus(order_id=order_id, status=data.get("status")))
    return jsonify(views.order(order_id, bus.uow)), 200


@app.route("/orders", methods=["GET"])
def orders_view_endpoint():
    return jsonify(views.orders_list(bus.uow)), 200


@app.route("/orders/<int:order_id>", methods=["GET"])
def order_view_endpoint(order_id: int):
    result = views.order(order_id, bus.uow)
    if result is None:
        raise handlers.OrderNotFound(order_id)
    return jsonify(result), 200


# --- Catalogue ---


@app.route("/products", methods=["POST"])
def create_product_endpoint():
    """
    POST /products
    Body JSON : { name, sku, price, stock_quantity }
    """
    data = _json_body()
    cmd = commands.CreateProduct(
        name=data.get("name"),
        sku=data.get("sku"),
        price=data.get("price"),
        stock_quantity=data.get("stock_quantity"),
    )
    product_id = bus.handle(cmd).pop(0)
    return jsonify(views.product(product_id, bus.uow)), 201


@app.route("/products/<int:product_id>", methods=["PATCH"])
def update_product_endpoint(product_id: int):
    data = _json_body()
    cmd = commands.UpdateProduct(
        product_id=product_id,
        name=data.get("name"),
        sku=data.get("sku"),
        price=data.get("price"),
        stock_quantity=data.get("stock_quantity"),
    )
    bus.handle(cmd)
    return jsonify(views.product(product_id, bus.uow)), 200


@app.route("/products/<int:product_id>", methods=["DELETE"])
def delete_product_endpoint(product_id: int):
    bus.handle(commands.DeleteProduct(product_id=product_id))
    return "", 204


@app.route("/products", methods=["GET"])
def products_view_endpoint():
    return jsonify(views.products_list(bus.uow)), 200


@app.route("/products/<int:product_id>", methods=["GET"])
def product_view_endpoint(product_id: int):
    result = views.product(product_id, bus.uow)
    if result is None:
        raise inventory.ProductNotFound(product_id)
    return jsonify(result), 200
