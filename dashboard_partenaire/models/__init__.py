"""
Module des modèles SQLAlchemy du tableau de bord partenaire.
"""

from .partner import Partner, PartnerStatus, Employee
from .avance import SalaryAdvanceRequest, Transaction
from .admin_user import AdminUser, AdminRole
from .remboursement import (
    Remboursement,
    RemboursementStatus,
    TypeRemboursement,
    TERMINAL_STATUSES,
    PENDING_STATUSES,
)
from .historique import HistoriqueRemboursement, HistoriqueAction
from .notification import Notification, NotificationType

__all__ = [
    # Partenaires
    "Partner",
    "PartnerStatus",
    "Employee",
    # Avances
    "SalaryAdvanceRequest",
    "Transaction",
    # Comptes
    "AdminUser",
    "AdminRole",
    # Remboursements
    "Remboursement",
    "RemboursementStatus",
    "TypeRemboursement",
    "TERMINAL_STATUSES",
    "PENDING_STATUSES",
    "HistoriqueRemboursement",
    "HistoriqueAction",
    # Notifications
    "Notification",
    "NotificationType",
]
