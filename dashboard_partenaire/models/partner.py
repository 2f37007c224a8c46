"""
Modèles Partner et Employee - Entreprises partenaires et leurs salariés.
Seuls les champs consommés par les remboursements et le tableau de bord sont modélisés.
"""

import enum
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime,
    Numeric, ForeignKey, Index,
)
from sqlalchemy.orm import relationship

from dashboard_partenaire.database import Base, generate_id


class PartnerStatus(str, enum.Enum):
    """Statuts d'une demande de partenariat."""
    PENDING = "pending"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class Partner(Base):
    """Entreprise partenaire dont les salariés bénéficient d'avances."""

    __tablename__ = "partners"

    id = Column(String(36), primary_key=True, default=generate_id)
    company_name = Column(String(200), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(30), nullable=True)
    rep_full_name = Column(String(200), nullable=True)
    rep_email = Column(String(255), nullable=True)
    hr_full_name = Column(String(200), nullable=True)
    hr_email = Column(String(255), nullable=True)
    payment_day = Column(Integer, nullable=True)
    status = Column(String(20), default=PartnerStatus.PENDING.value, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    employees = relationship("Employee", back_populates="partner")
    remboursements = relationship("Remboursement", back_populates="partenaire")
    notifications = relationship("Notification", back_populates="partenaire")

    def __repr__(self) -> str:
        return f"<Partner(id={self.id}, company={self.company_name})>"


class Employee(Base):
    """Salarié d'un partenaire."""

    __tablename__ = "employees"

    id = Column(String(36), primary_key=True, default=generate_id)
    partner_id = Column(String(36), ForeignKey("partners.id"), nullable=False)

    nom = Column(String(100), nullable=False)
    prenom = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)
    telephone = Column(String(30), nullable=True)
    poste = Column(String(100), nullable=True)
    salaire_net = Column(Numeric(14, 2), nullable=True)
    actif = Column(Boolean, default=True, nullable=False)
    date_embauche = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    partner = relationship("Partner", back_populates="employees")
    remboursements = relationship("Remboursement", back_populates="employe")

    __table_args__ = (
        Index("idx_employee_partner", "partner_id"),
    )

    def __repr__(self) -> str:
        return f"<Employee(id={self.id}, nom={self.nom} {self.prenom})>"

    @property
    def full_name(self) -> str:
        return f"{self.prenom} {self.nom}"
