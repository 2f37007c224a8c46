"""
Modèles SalaryAdvanceRequest et Transaction - Origine des remboursements.
"""

from datetime import datetime

from sqlalchemy import (
    Column, String, DateTime, Text,
    Numeric, ForeignKey, Index,
)
from sqlalchemy.orm import relationship

from dashboard_partenaire.database import Base, generate_id


class SalaryAdvanceRequest(Base):
    """Demande d'avance sur salaire ayant donné lieu à un remboursement."""

    __tablename__ = "salary_advance_requests"

    id = Column(String(36), primary_key=True, default=generate_id)
    employe_id = Column(String(36), ForeignKey("employees.id"), nullable=False)
    partenaire_id = Column(String(36), ForeignKey("partners.id"), nullable=False)

    montant_demande = Column(Numeric(14, 2), nullable=False)
    frais_service = Column(Numeric(14, 2), default=0, nullable=False)
    type_motif = Column(String(50), nullable=True)
    motif = Column(Text, nullable=True)
    statut = Column(String(20), default="EN_ATTENTE", nullable=False)

    date_creation = Column(DateTime, default=datetime.utcnow, nullable=False)
    date_validation = Column(DateTime, nullable=True)

    employe = relationship("Employee")

    __table_args__ = (
        Index("idx_demande_avance_partenaire", "partenaire_id"),
    )


class Transaction(Base):
    """Transaction financière (décaissement de l'avance)."""

    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=generate_id)
    demande_avance_id = Column(String(36), ForeignKey("salary_advance_requests.id"), nullable=True)
    entreprise_id = Column(String(36), ForeignKey("partners.id"), nullable=True)

    numero_transaction = Column(String(100), nullable=True, index=True)
    methode_paiement = Column(String(30), default="MOBILE_MONEY", nullable=False)
    montant = Column(Numeric(14, 2), nullable=False)
    numero_compte = Column(String(30), nullable=True)
    numero_reception = Column(String(30), nullable=True)
    statut = Column(String(20), default="EFFECTUEE", nullable=False)

    date_transaction = Column(DateTime, default=datetime.utcnow, nullable=False)
