"""
Configuration de l'application.

Toutes les valeurs viennent de variables d'environnement, avec des
valeurs par défaut adaptées au développement local.
"""

from __future__ import annotations

import os


def get_db_uri() -> str:
    return os.environ.get("ORDERING_DB_URI", "sqlite:///ordering.db")


def get_email_host_and_port() -> dict:
    host = os.environ.get("EMAIL_HOST", "localhost")
    port = 11025 if host == "localhost" else 587
    return dict(smtp_host=host, smtp_port=port)


def get_stock_desk_email() -> str:
    return os.environ.get("STOCK_DESK_EMAIL", "stock@example.com")


def get_log_level() -> str:
    return os.environ.get("LOG_LEVEL", "INFO").upper()


def get_alerts_sender_email() -> str:
    return os.environ.get("ALERTS_SENDER_EMAIL", "ordering-alerts@example.com")
