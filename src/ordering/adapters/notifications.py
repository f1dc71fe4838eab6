"""
Alertes envoyées au service stock.

Le seul message sortant de l'application est l'alerte de rupture :
quand une commande épuise un produit, le service stock est prévenu
par e-mail. Les handlers ne voient que `AbstractNotifications`.
"""

from __future__ import annotations

import abc
import smtplib
from email.message import EmailMessage

from ordering import config

SUBJECT = "[Stock] Rupture de stock"


class AbstractNotifications(abc.ABC):
    @abc.abstractmethod
    def send(self, destination: str, message: str) -> None:
        raise NotImplementedError


class EmailNotifications(AbstractNotifications):
    """Alertes par SMTP ; hôte, port et expéditeur viennent de la configuration."""

    def __init__(
        self,
        smtp_host: str | None = None,
        smtp_port: int | None = None,
        sender: str | None = None,
    ):
        defaults = config.get_email_host_and_port()
        self.smtp_host = smtp_host or defaults["smtp_host"]
        self.smtp_port = smtp_port or defaults["smtp_port"]
        self.sender = sender or config.get_alerts_sender_email()

    def build(self, destination: str, message: str) -> EmailMessage:
        email = EmailMessage()
        email["From"] = self.sender
        email["To"] = destination
        email["Subject"] = SUBJECT
        email.set_content(message)
        return email

    def send(self, destination: str, message: str) -> None:
        with smtplib.SMTP(self.smtp_host, self.smtp_port) as smtp:
            smtp.send_message(self.build(destination, message))
