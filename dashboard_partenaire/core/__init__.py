"""
Module core - Fonctionnalités centrales de l'application.
Contient la sécurité, le logging et les exceptions métier.
"""

from .security import (
    create_access_token,
    verify_password,
    get_password_hash,
    verify_token,
    verify_webhook_signature,
)
from .logging import setup_logging, logger

__all__ = [
    "create_access_token",
    "verify_password",
    "get_password_hash",
    "verify_token",
    "verify_webhook_signature",
    "setup_logging",
    "logger",
]
