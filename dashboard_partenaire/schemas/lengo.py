"""
Schémas Pydantic pour Lengo Pay: instantané de statut et webhook entrant.
"""

from typing import Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProviderStatusSnapshot(BaseModel):
    """
    Statut d'une transaction tel que rapporté par Lengo Pay au moment de la requête.
    Jamais persisté: recalculé à chaque vérification.
    """
    model_config = ConfigDict(extra="ignore")

    status: Optional[str] = Field(None, description="Code de statut Lengo Pay (SUCCESS, FAILED, ...)")
    pay_id: Optional[str] = None
    date: Optional[str] = Field(None, description="Date du paiement côté Lengo Pay")
    amount: Optional[Union[int, float, str]] = None
    phone: Optional[str] = Field(None, description="Numéro ayant reçu le paiement, si fourni")

    @field_validator("date", "pay_id", "phone", mode="before")
    @classmethod
    def stringify(cls, v):
        if v is None or isinstance(v, str):
            return v
        return str(v)

    def public_dict(self) -> dict:
        """Représentation exposée dans les réponses API (sans le numéro de réception)."""
        return {
            "status": self.status,
            "pay_id": self.pay_id,
            "date": self.date,
            "amount": self.amount,
        }


class WebhookPayload(BaseModel):
    """
    Notification de paiement poussée par Lengo Pay.
    Tous les champs sont optionnels; chaque branche de traitement s'active
    selon les champs présents.
    """
    model_config = ConfigDict(extra="allow")

    transaction_id: Optional[str] = None
    status: Optional[str] = None
    amount: Optional[Union[int, float, str]] = None
    currency: Optional[str] = None
    reference: Optional[str] = None
    remboursement_id: Optional[str] = None
    partenaire_id: Optional[str] = None
    message: Optional[str] = None
    pay_id: Optional[str] = None

    @field_validator("transaction_id", "remboursement_id", "partenaire_id", "pay_id", "reference", mode="before")
    @classmethod
    def stringify_ids(cls, v):
        if v is None or isinstance(v, str):
            return v or None
        return str(v)

    @property
    def normalized_status(self) -> str:
        return (self.status or "").strip().lower()

    @property
    def is_success(self) -> bool:
        """Paiement abouti pour la mise à jour unitaire (success ou completed)."""
        return self.normalized_status in ("success", "completed")


class WebhookAck(BaseModel):
    """Accusé de réception renvoyé à Lengo Pay."""
    success: bool = True
