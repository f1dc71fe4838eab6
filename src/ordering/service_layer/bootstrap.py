"""
Bootstrap : assemblage du bus de commandes.

Seul module qui choisit les implémentations concrètes : Unit of Work
SQLAlchemy, notifications par e-mail, mappers ORM. Les tests y
substituent leurs fakes.
"""

from __future__ import annotations

from typing import Any

from ordering.adapters import notifications, orm
from ordering.domain import commands, events
from ordering.service_layer import handlers, messagebus, unit_of_work


def bootstrap(
    start_orm: bool = True,
    uow: unit_of_work.AbstractUnitOfWork | None = None,
    notifications_adapter: notifications.AbstractNotifications | None = None,
    **extra_dependencies: Any,
) -> messagebus.MessageBus:
    """Construit le bus ; chaque dépendance omise prend sa valeur de production."""
    if start_orm:
        orm.start_mappers()

    if uow is None:
        uow = unit_of_work.SqlAlchemyUnitOfWork()

    if notifications_adapter is None:
        notifications_adapter = notifications.EmailNotifications()

    dependencies: dict[str, Any] = {
        "notifications": notifications_adapter,
        **extra_dependencies,
    }

    return messagebus.MessageBus(
        uow=uow,
        event_handlers=EVENT_HANDLERS,
        command_handlers=COMMAND_HANDLERS,
        dependencies=dependencies,
    )


# --- Routage des messages vers les handlers ---

EVENT_HANDLERS: dict[type[events.Event], list] = {
    events.OrderPlaced: [handlers.publish_order_event],
    events.OrderStatusChanged: [handlers.publish_order_event],
    events.OrderCancelled: [handlers.publish_order_event],
    events.OutOfStock: [handlers.send_out_of_stock_notification],
}

COMMAND_HANDLERS: dict[type[commands.Command], Any] = {
    commands.PlaceOrder: handlers.place_order,
    commands.ChangeOrderStatus: handlers.change_order_status,
    commands.CreateProduct: handlers.create_product,
    commands.UpdateProduct: handlers.update_product,
    commands.DeleteProduct: handlers.delete_product,
}
