"""
Module des services métier du tableau de bord partenaire.
"""

from .lengo_client import LengoPayClient, parse_provider_date
from .notification_service import NotificationEmitter, NotificationInbox
from .reconciliation_service import ReconciliationService, map_provider_status
from .remboursement_service import RemboursementService
from .status_poller import StatusPoller
from .webhook_service import WebhookService

__all__ = [
    "LengoPayClient",
    "parse_provider_date",
    "NotificationEmitter",
    "NotificationInbox",
    "ReconciliationService",
    "map_provider_status",
    "RemboursementService",
    "StatusPoller",
    "WebhookService",
]
