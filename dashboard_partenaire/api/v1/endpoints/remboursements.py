"""
Routes des remboursements.
Vérification et synchronisation du statut Lengo Pay, consultation et actions du tableau de bord.
"""

from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from dashboard_partenaire.database import get_db
from dashboard_partenaire.core.logging import logger
from dashboard_partenaire.models import AdminUser, RemboursementStatus, TypeRemboursement
from dashboard_partenaire.schemas.remboursement import (
    RemboursementResponse,
    HistoriqueResponse,
    RemboursementStats,
    StatusCheckResponse,
    ForceSyncRequest,
    ForceSyncResponse,
    MarkPaidRequest,
    MarkMultiplePaidRequest,
    MarkLateRequest,
    CancelRequest,
    BulkUpdateResult,
)
from dashboard_partenaire.services.lengo_client import LengoPayClient
from dashboard_partenaire.services.reconciliation_service import ReconciliationService
from dashboard_partenaire.services.remboursement_service import RemboursementService
from dashboard_partenaire.api.deps import (
    get_current_admin,
    get_partner_admin,
    get_lengo_client,
    require_manager,
)


router = APIRouter()


# ============== Synchronisation Lengo Pay ==============

@router.get(
    "/status/{pay_id}",
    response_model=StatusCheckResponse,
    summary="Vérifier le statut d'un remboursement auprès de Lengo Pay",
)
async def check_status(
    pay_id: str,
    db: Session = Depends(get_db),
    client: LengoPayClient = Depends(get_lengo_client),
    current_admin: AdminUser = Depends(get_current_admin),
) -> Any:
    """
    Interroge Lengo Pay et synchronise le statut stocké s'il diffère.

    Si Lengo Pay est indisponible, le statut stocké est renvoyé avec
    `lengo_status` à null et `synchronisation.statut_synchronise` à false.
    """
    logger.info(f"Vérification du statut pour pay_id: {pay_id}")
    service = ReconciliationService(db, client)
    return await service.get_status(pay_id, current_admin.partenaire_id)


@router.post(
    "/status/{pay_id}",
    response_model=ForceSyncResponse,
    summary="Forcer la synchronisation avec Lengo Pay",
)
async def force_sync(
    pay_id: str,
    request: ForceSyncRequest,
    db: Session = Depends(get_db),
    client: LengoPayClient = Depends(get_lengo_client),
    current_admin: AdminUser = Depends(get_current_admin),
) -> Any:
    """
    Réécrit le statut stocké à partir de Lengo Pay, même s'il n'a pas changé.
    Un conflit de version renvoie 409: l'appelant peut relancer.
    """
    if not request.force_sync:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="force_sync doit valoir true",
        )

    logger.info(f"Synchronisation forcée pour pay_id: {pay_id}")
    service = ReconciliationService(db, client)
    result = await service.force_sync(pay_id, current_admin.partenaire_id)
    logger.info(
        f"Synchronisation forcée effectuée: {pay_id} "
        f"{result.remboursement.ancien_statut} -> {result.remboursement.nouveau_statut}"
    )
    return result


# ============== Tableau de bord ==============

@router.get(
    "",
    response_model=List[RemboursementResponse],
    summary="Liste des remboursements du partenaire",
)
async def list_remboursements(
    statut: Optional[RemboursementStatus] = Query(None, description="Filtrer par statut"),
    type_remboursement: Optional[TypeRemboursement] = Query(None, description="STANDARD ou INTEGRAL"),
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_partner_admin),
) -> Any:
    return RemboursementService(db).list(
        current_admin.partenaire_id,
        statut=statut.value if statut else None,
        type_remboursement=type_remboursement.value if type_remboursement else None,
    )


@router.get(
    "/stats",
    response_model=RemboursementStats,
    summary="Statistiques des remboursements",
)
async def get_stats(
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_partner_admin),
) -> Any:
    return RemboursementService(db).stats(current_admin.partenaire_id)


@router.get(
    "/en-retard",
    response_model=List[RemboursementResponse],
    summary="Remboursements dont l'échéance est dépassée",
)
async def list_late(
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_partner_admin),
) -> Any:
    return RemboursementService(db).check_late(current_admin.partenaire_id)


@router.post(
    "/payer",
    response_model=BulkUpdateResult,
    summary="Marquer plusieurs remboursements comme payés",
)
async def mark_multiple_paid(
    request: MarkMultiplePaidRequest,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_partner_admin),
) -> Any:
    return RemboursementService(db).mark_multiple_paid(
        current_admin.partenaire_id,
        request.ids,
        request.commentaire_partenaire,
        utilisateur_id=current_admin.id,
    )


@router.get(
    "/{remboursement_id}",
    response_model=RemboursementResponse,
    summary="Détails d'un remboursement",
)
async def get_remboursement(
    remboursement_id: str,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_partner_admin),
) -> Any:
    return RemboursementService(db).get(current_admin.partenaire_id, remboursement_id)


@router.get(
    "/{remboursement_id}/historique",
    response_model=List[HistoriqueResponse],
    summary="Historique d'un remboursement",
)
async def get_history(
    remboursement_id: str,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_partner_admin),
) -> Any:
    return RemboursementService(db).history(current_admin.partenaire_id, remboursement_id)


@router.post(
    "/{remboursement_id}/payer",
    response_model=RemboursementResponse,
    summary="Marquer un remboursement comme payé",
)
async def mark_paid(
    remboursement_id: str,
    request: MarkPaidRequest,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_partner_admin),
) -> Any:
    return RemboursementService(db).mark_paid(
        current_admin.partenaire_id,
        remboursement_id,
        request.commentaire_partenaire,
        utilisateur_id=current_admin.id,
    )


@router.post(
    "/{remboursement_id}/retard",
    response_model=RemboursementResponse,
    summary="Marquer un remboursement en retard",
)
async def mark_late(
    remboursement_id: str,
    request: MarkLateRequest,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_partner_admin),
) -> Any:
    return RemboursementService(db).mark_late(
        current_admin.partenaire_id,
        remboursement_id,
        request.motif_retard,
        utilisateur_id=current_admin.id,
    )


@router.post(
    "/{remboursement_id}/annuler",
    response_model=RemboursementResponse,
    summary="Annuler un remboursement",
)
async def cancel(
    remboursement_id: str,
    request: CancelRequest,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(require_manager),
) -> Any:
    return RemboursementService(db).cancel(
        current_admin.partenaire_id,
        remboursement_id,
        request.motif_annulation,
        utilisateur_id=current_admin.id,
    )
