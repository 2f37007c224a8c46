"""
Module des schémas Pydantic du tableau de bord partenaire.
"""

from .lengo import ProviderStatusSnapshot, WebhookPayload, WebhookAck
from .remboursement import (
    EmployeSummary,
    PartenaireSummary,
    RemboursementResponse,
    HistoriqueResponse,
    RemboursementStats,
    RemboursementStatusDetail,
    LengoStatus,
    Synchronisation,
    StatusCheckResponse,
    ForceSyncRequest,
    ForceSyncRemboursement,
    ForceSyncResponse,
    MarkPaidRequest,
    MarkMultiplePaidRequest,
    MarkLateRequest,
    CancelRequest,
    BulkUpdateResult,
)
from .notification import NotificationResponse, NotificationListResponse
from .auth import LoginRequest, Token, AdminUserResponse

__all__ = [
    # Lengo Pay
    "ProviderStatusSnapshot",
    "WebhookPayload",
    "WebhookAck",
    # Remboursements
    "EmployeSummary",
    "PartenaireSummary",
    "RemboursementResponse",
    "HistoriqueResponse",
    "RemboursementStats",
    "RemboursementStatusDetail",
    "LengoStatus",
    "Synchronisation",
    "StatusCheckResponse",
    "ForceSyncRequest",
    "ForceSyncRemboursement",
    "ForceSyncResponse",
    "MarkPaidRequest",
    "MarkMultiplePaidRequest",
    "MarkLateRequest",
    "CancelRequest",
    "BulkUpdateResult",
    # Notifications
    "NotificationResponse",
    "NotificationListResponse",
    # Auth
    "LoginRequest",
    "Token",
    "AdminUserResponse",
]
