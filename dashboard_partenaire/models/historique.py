"""
Modèle HistoriqueRemboursement - Journal d'audit append-only.
Les entrées sont écrites une fois et ne sont jamais modifiées ni supprimées.
"""

import enum
from datetime import datetime

from sqlalchemy import (
    Column, String, DateTime, Text,
    Numeric, ForeignKey, Index,
)
from sqlalchemy.orm import relationship

from dashboard_partenaire.database import Base, generate_id


class HistoriqueAction(str, enum.Enum):
    """Actions tracées sur un remboursement."""
    SYNCHRONISATION_LENGO = "SYNCHRONISATION_LENGO"   # Statut aligné sur Lengo Pay
    WEBHOOK_PAIEMENT = "WEBHOOK_PAIEMENT"             # Notification poussée par Lengo Pay
    PAIEMENT_LOT = "PAIEMENT_LOT"                     # Paiement groupé d'un partenaire
    PAIEMENT_MANUEL = "PAIEMENT_MANUEL"               # Marqué payé depuis le tableau de bord
    RETARD = "RETARD"
    ANNULATION = "ANNULATION"


class HistoriqueRemboursement(Base):
    """Entrée d'historique d'un remboursement."""

    __tablename__ = "historique_remboursements"

    id = Column(String(36), primary_key=True, default=generate_id)
    remboursement_id = Column(String(36), ForeignKey("remboursements.id"), nullable=False)

    action = Column(String(40), nullable=False)
    description = Column(Text, nullable=True)

    montant_avant = Column(Numeric(14, 2), nullable=True)
    montant_apres = Column(Numeric(14, 2), nullable=True)
    statut_avant = Column(String(20), nullable=True)
    statut_apres = Column(String(20), nullable=True)

    # Administrateur à l'origine de l'action (None pour Lengo Pay / système)
    utilisateur_id = Column(String(36), ForeignKey("admin_users.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    remboursement = relationship("Remboursement", back_populates="historique")
    utilisateur = relationship("AdminUser")

    __table_args__ = (
        Index("idx_historique_remboursement", "remboursement_id"),
        Index("idx_historique_created", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<HistoriqueRemboursement(remboursement={self.remboursement_id}, "
            f"action={self.action}, {self.statut_avant}->{self.statut_apres})>"
        )
