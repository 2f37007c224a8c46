"""
Modèle Notification - Boîte de réception des partenaires.
Créées comme effet de bord des transitions de statut; seul l'état lu/non lu évolue.
"""

import enum
from datetime import datetime

from sqlalchemy import (
    Column, String, Boolean, DateTime, Text,
    ForeignKey, Index, JSON,
)
from sqlalchemy.orm import relationship

from dashboard_partenaire.database import Base, generate_id


class NotificationType(str, enum.Enum):
    """Types de notifications affichées dans le tableau de bord."""
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"
    WARNING = "warning"
    PAYMENT_CHECK = "payment_check"   # Vérification différée d'un pay_id


class Notification(Base):
    """
    Modèle représentant une notification partenaire.

    Attributes:
        partenaire_id: Partenaire destinataire
        titre: Titre court
        message: Message complet
        type: Type de notification
        lu: Indicateur de lecture
        meta: Données supplémentaires (colonne "metadata")
        idempotency_key: Clé de déduplication des rejeux (webhooks, synchronisations)
    """

    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=generate_id)

    partenaire_id = Column(String(36), ForeignKey("partners.id"), nullable=True)

    titre = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(20), default=NotificationType.INFO.value, nullable=False)
    lu = Column(Boolean, default=False, nullable=False)

    # "metadata" est réservé par SQLAlchemy sur les classes déclaratives
    meta = Column("metadata", JSON, nullable=True)

    idempotency_key = Column(String(255), unique=True, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    read_at = Column(DateTime, nullable=True)

    partenaire = relationship("Partner", back_populates="notifications")

    __table_args__ = (
        Index("idx_notification_partenaire", "partenaire_id"),
        Index("idx_notification_partenaire_lu", "partenaire_id", "lu"),
        Index("idx_notification_type", "type"),
    )

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, partenaire={self.partenaire_id}, type={self.type}, lu={self.lu})>"
