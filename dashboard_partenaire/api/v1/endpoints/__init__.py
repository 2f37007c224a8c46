"""
Endpoints de l'API v1.
"""

from . import auth, payment_webhook, remboursements, notifications

__all__ = [
    "auth",
    "payment_webhook",
    "remboursements",
    "notifications",
]
