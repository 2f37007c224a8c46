"""
Schémas Pydantic pour les remboursements et leur synchronisation avec Lengo Pay.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Union
from pydantic import BaseModel, ConfigDict, Field


class EmployeSummary(BaseModel):
    """Informations employé jointes au remboursement."""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = None
    nom: Optional[str] = None
    prenom: Optional[str] = None
    telephone: Optional[str] = None
    poste: Optional[str] = None


class PartenaireSummary(BaseModel):
    """Informations partenaire jointes au remboursement."""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = None
    company_name: Optional[str] = None
    hr_email: Optional[str] = None


class RemboursementResponse(BaseModel):
    """Schéma de réponse pour un remboursement."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    pay_id: Optional[str]
    type_remboursement: str
    statut: str
    montant_total_remboursement: Decimal
    frais_service: Decimal
    date_creation: datetime
    date_limite_remboursement: Optional[datetime]
    date_remboursement_effectue: Optional[datetime]
    date_annulation: Optional[datetime]
    transaction_id: Optional[str]
    message_paiement: Optional[str]
    commentaire_partenaire: Optional[str]
    motif_retard: Optional[str]
    is_late: bool
    employe: Optional[EmployeSummary] = None


class HistoriqueResponse(BaseModel):
    """Entrée d'historique d'un remboursement."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    remboursement_id: str
    action: str
    description: Optional[str]
    montant_avant: Optional[Decimal]
    montant_apres: Optional[Decimal]
    statut_avant: Optional[str]
    statut_apres: Optional[str]
    utilisateur_id: Optional[str]
    created_at: datetime


class RemboursementStats(BaseModel):
    """Statistiques des remboursements d'un partenaire."""
    total_remboursements: int
    total_montant: Decimal
    total_frais_service: Decimal
    en_attente: int
    en_cours: int
    paye: int
    en_retard: int
    annule: int
    montant_en_attente: Decimal
    montant_paye: Decimal
    montant_en_retard: Decimal


# ============== Synchronisation Lengo Pay ==============

class RemboursementStatusDetail(BaseModel):
    """Remboursement tel que renvoyé par la vérification de statut."""
    id: str
    pay_id: Optional[str]
    montant: Decimal
    statut: str
    methode_remboursement: str = "MOBILE_MONEY"
    date_creation: Optional[datetime]
    date_remboursement: Optional[datetime]
    employe: EmployeSummary
    partenaire: PartenaireSummary


class LengoStatus(BaseModel):
    """Instantané Lengo Pay exposé au tableau de bord."""
    status: Optional[str] = None
    pay_id: Optional[str] = None
    date: Optional[str] = None
    amount: Optional[Union[int, float, str]] = None


class Synchronisation(BaseModel):
    """Écart entre le statut stocké et le statut résolu auprès de Lengo Pay."""
    statut_synchronise: bool
    ancien_statut: Optional[str]
    nouveau_statut: Optional[str]
    erreur: Optional[str] = Field(
        None,
        description="Raison pour laquelle la synchronisation n'a pas pu être effectuée",
    )


class StatusCheckResponse(BaseModel):
    """Réponse de GET /remboursements/status/{pay_id}."""
    remboursement: RemboursementStatusDetail
    lengo_status: Optional[LengoStatus]
    synchronisation: Synchronisation


class ForceSyncRequest(BaseModel):
    """Corps de POST /remboursements/status/{pay_id}."""
    force_sync: bool = Field(..., description="Doit valoir true")


class ForceSyncRemboursement(BaseModel):
    pay_id: Optional[str]
    ancien_statut: Optional[str]
    nouveau_statut: str
    synchronise: bool = True


class ForceSyncResponse(BaseModel):
    """Réponse de la synchronisation forcée."""
    success: bool = True
    message: str = "Synchronisation effectuée avec succès"
    remboursement: ForceSyncRemboursement
    lengo_status: LengoStatus


# ============== Actions manuelles ==============

class MarkPaidRequest(BaseModel):
    commentaire_partenaire: Optional[str] = Field(None, max_length=1000)


class MarkMultiplePaidRequest(BaseModel):
    ids: List[str] = Field(..., min_length=1)
    commentaire_partenaire: Optional[str] = Field(None, max_length=1000)


class MarkLateRequest(BaseModel):
    motif_retard: Optional[str] = Field(None, max_length=1000)


class CancelRequest(BaseModel):
    motif_annulation: Optional[str] = Field(None, max_length=1000)


class BulkUpdateResult(BaseModel):
    updated: int
    ids: List[str]
