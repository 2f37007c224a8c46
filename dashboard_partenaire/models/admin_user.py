"""
Modèle AdminUser - Comptes d'accès au tableau de bord partenaire.
Chaque compte est rattaché à exactement un partenaire.
"""

import enum
from datetime import datetime

from sqlalchemy import (
    Column, String, Boolean, DateTime,
    ForeignKey, Index,
)
from sqlalchemy.orm import relationship

from dashboard_partenaire.database import Base, generate_id


class AdminRole(str, enum.Enum):
    """Rôles disponibles pour les comptes partenaires."""
    RH = "rh"                       # Ressources humaines
    RESPONSABLE = "responsable"     # Représentant légal
    ADMIN = "admin"                 # Administrateur de la plateforme


class AdminUser(Base):
    """Compte administrateur d'un partenaire."""

    __tablename__ = "admin_users"

    id = Column(String(36), primary_key=True, default=generate_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    display_name = Column(String(200), nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(20), default=AdminRole.RH.value, nullable=False)
    partenaire_id = Column(String(36), ForeignKey("partners.id"), nullable=True)
    active = Column(Boolean, default=True, nullable=False)
    require_password_change = Column(Boolean, default=False, nullable=False)

    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    partenaire = relationship("Partner")

    __table_args__ = (
        Index("idx_admin_user_partenaire", "partenaire_id"),
    )

    def __repr__(self) -> str:
        return f"<AdminUser(id={self.id}, email={self.email}, role={self.role})>"
