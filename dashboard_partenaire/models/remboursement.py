"""
Modèle Remboursement - Obligations de remboursement des avances sur salaire.
Chaque remboursement est dû par un employé au partenaire prêteur et peut être
réglé via Lengo Pay (corrélé par pay_id).
"""

import enum
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, DateTime, Text,
    Numeric, ForeignKey, Index, CheckConstraint,
)
from sqlalchemy.orm import relationship

from dashboard_partenaire.database import Base, generate_id


class RemboursementStatus(str, enum.Enum):
    """Statuts possibles d'un remboursement."""
    EN_ATTENTE = "EN_ATTENTE"       # Échéance ouverte, aucun paiement constaté
    EN_COURS = "EN_COURS"           # Paiement signalé en cours par Lengo Pay
    PAYE = "PAYE"                   # Paiement confirmé
    EN_RETARD = "EN_RETARD"         # Date limite dépassée
    ANNULE = "ANNULE"               # Annulé manuellement depuis le tableau de bord
    ANNULEE = "ANNULEE"             # Annulé/échoué côté Lengo Pay


class TypeRemboursement(str, enum.Enum):
    """Discriminant entre remboursements standards et intégraux."""
    STANDARD = "STANDARD"
    INTEGRAL = "INTEGRAL"


# Statuts après lesquels le suivi côté tableau de bord s'arrête
TERMINAL_STATUSES = frozenset({
    RemboursementStatus.PAYE.value,
    RemboursementStatus.ANNULE.value,
    RemboursementStatus.ANNULEE.value,
})

# Statuts considérés comme "en attente" pour l'interface
PENDING_STATUSES = frozenset({
    RemboursementStatus.EN_ATTENTE.value,
    RemboursementStatus.EN_COURS.value,
})


class Remboursement(Base):
    """
    Modèle représentant un remboursement d'avance sur salaire.

    Attributes:
        id: Identifiant interne
        pay_id: Clé de corrélation Lengo Pay, immuable une fois attribuée
        type_remboursement: STANDARD ou INTEGRAL
        statut: Statut courant
        montant_total_remboursement: Montant dû
        date_remboursement_effectue: Renseignée si et seulement si statut == PAYE
        version: Compteur de concurrence optimiste, incrémenté à chaque écriture de statut
    """

    __tablename__ = "remboursements"

    id = Column(String(36), primary_key=True, default=generate_id)
    pay_id = Column(String(100), unique=True, nullable=True, index=True)
    type_remboursement = Column(
        String(20),
        default=TypeRemboursement.STANDARD.value,
        nullable=False,
    )

    # Références
    employe_id = Column(String(36), ForeignKey("employees.id"), nullable=False)
    partenaire_id = Column(String(36), ForeignKey("partners.id"), nullable=False)
    demande_avance_id = Column(String(36), ForeignKey("salary_advance_requests.id"), nullable=True)
    transaction_ref_id = Column(String(36), ForeignKey("transactions.id"), nullable=True)

    # Montants
    montant_total_remboursement = Column(Numeric(14, 2), nullable=False)
    frais_service = Column(Numeric(14, 2), default=0, nullable=False)

    # Statut
    statut = Column(
        String(20),
        default=RemboursementStatus.EN_ATTENTE.value,
        nullable=False,
    )

    # Dates métier
    date_creation = Column(DateTime, default=datetime.utcnow, nullable=False)
    date_limite_remboursement = Column(DateTime, nullable=True)
    date_remboursement_effectue = Column(DateTime, nullable=True)
    date_annulation = Column(DateTime, nullable=True)

    # Informations de paiement reçues de Lengo Pay
    numero_reception = Column(String(30), nullable=True)
    transaction_id = Column(String(100), nullable=True)
    message_paiement = Column(Text, nullable=True)

    # Commentaires
    commentaire_partenaire = Column(Text, nullable=True)
    commentaire_admin = Column(Text, nullable=True)
    motif_retard = Column(Text, nullable=True)

    version = Column(Integer, default=1, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relations
    employe = relationship("Employee", back_populates="remboursements")
    partenaire = relationship("Partner", back_populates="remboursements")
    demande_avance = relationship("SalaryAdvanceRequest")
    transaction = relationship("Transaction")
    historique = relationship(
        "HistoriqueRemboursement",
        back_populates="remboursement",
        order_by="HistoriqueRemboursement.created_at.desc()",
    )

    __table_args__ = (
        Index("idx_remboursement_partenaire", "partenaire_id"),
        Index("idx_remboursement_statut", "statut"),
        Index("idx_remboursement_partenaire_statut", "partenaire_id", "statut"),
        Index("idx_remboursement_echeance", "date_limite_remboursement"),
        CheckConstraint("montant_total_remboursement >= 0", name="non_negative_montant"),
        CheckConstraint("version >= 1", name="positive_version"),
    )

    def __repr__(self) -> str:
        return (
            f"<Remboursement(id={self.id}, pay_id={self.pay_id}, "
            f"statut={self.statut}, version={self.version})>"
        )

    @property
    def is_terminal(self) -> bool:
        """Vérifie si le statut ne doit plus évoluer côté fournisseur."""
        return self.statut in TERMINAL_STATUSES

    @property
    def is_pending(self) -> bool:
        return self.statut in PENDING_STATUSES

    @property
    def is_cancelled(self) -> bool:
        return self.statut in (
            RemboursementStatus.ANNULE.value,
            RemboursementStatus.ANNULEE.value,
        )

    @property
    def is_late(self) -> bool:
        """Échéance dépassée sans paiement."""
        return (
            self.statut in PENDING_STATUSES
            and self.date_limite_remboursement is not None
            and self.date_limite_remboursement < datetime.utcnow()
        )
