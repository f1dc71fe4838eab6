"""
Message Bus.

Point d'entrée unique des commandes de l'application : passer une
commande, changer son statut, maintenir le catalogue. Chaque commande
est routée vers son handler ; les événements levés par les agrégats
(OrderPlaced, OutOfStock...) sont ensuite dispatchés dans la foulée.

Une commande en échec fait échouer l'appel. Un événement en échec
est seulement journalisé : la transaction est déjà validée.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Union

from ordering.domain import commands, events
from ordering.service_layer import unit_of_work

logger = logging.getLogger(__name__)

Message = Union[commands.Command, events.Event]


class MessageBus:
    """
    Bus partagé par toutes les requêtes HTTP.

    Les handlers déclarent leurs dépendances par le nom de leurs
    paramètres (`uow`, `notifications`) ; le bus les fournit.
    La file d'attente vit le temps d'un appel à handle(), jamais
    sur l'instance.
    """

    def __init__(
        self,
        uow: unit_of_work.AbstractUnitOfWork,
        event_handlers: dict[type[events.Event], list[Callable]],
        command_handlers: dict[type[commands.Command], Callable],
        dependencies: dict[str, Any] | None = None,
    ):
        self.uow = uow
        self.event_handlers = event_handlers
        self.command_handlers = command_handlers
        self.dependencies = dependencies or {}

    def handle(self, message: Message) -> list[Any]:
        """Traite le message puis les événements qu'il a produits.

        Retourne les résultats des commandes traitées, dans l'ordre.
        """
        queue: list[Message] = [message]
        results: list[Any] = []
        while queue:
            message = queue.pop(0)
            if isinstance(message, events.Event):
                self._handle_event(message, queue)
            elif isinstance(message, commands.Command):
                results.append(self._handle_command(message, queue))
            else:
                raise ValueError(f"Message de type inconnu : {type(message)}")
        return results

    def _handle_event(self, event: events.Event, queue: list[Message]) -> None:
        for handler in self.event_handlers.get(type(event), []):
            try:
                logger.debug("Event %s -> %s", event, handler)
                self._call_handler(handler, event)
                queue.extend(self.uow.collect_new_events())
            except Exception:
                logger.exception("Échec du traitement de l'event %s", event)

    def _handle_command(self, command: commands.Command, queue: list[Message]) -> Any:
        logger.debug("Command %s", command)
        handler = self.command_handlers.get(type(command))
        if handler is None:
            raise ValueError(f"Aucun handler pour la command {type(command)}")
        result = self._call_handler(handler, command)
        queue.extend(self.uow.collect_new_events())
        return result

    def _call_handler(self, handler: Callable, message: Message) -> Any:
        # Le message est toujours le premier paramètre positionnel.
        names = list(inspect.signature(handler).parameters)[1:]
        kwargs: dict[str, Any] = {}
        for name in names:
            if name == "uow":
                kwargs[name] = self.uow
            elif name in self.dependencies:
                kwargs[name] = self.dependencies[name]
        return handler(message, **kwargs)
