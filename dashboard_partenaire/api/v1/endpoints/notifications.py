"""
Routes de la boîte de notifications du partenaire.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from dashboard_partenaire.database import get_db
from dashboard_partenaire.models import AdminUser
from dashboard_partenaire.schemas.notification import NotificationResponse, NotificationListResponse
from dashboard_partenaire.services.notification_service import NotificationInbox
from dashboard_partenaire.api.deps import get_partner_admin


router = APIRouter()


@router.get(
    "",
    response_model=NotificationListResponse,
    summary="Liste des notifications",
)
async def list_notifications(
    unread_only: bool = Query(False, description="Uniquement les non lues"),
    type_filter: Optional[str] = Query(None, alias="type"),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_partner_admin),
) -> Any:
    inbox = NotificationInbox(db)
    partenaire_id = current_admin.partenaire_id
    items, total = inbox.list(
        partenaire_id, unread_only=unread_only, type_filter=type_filter, skip=skip, limit=limit
    )

    return NotificationListResponse(
        items=[NotificationResponse.model_validate(n) for n in items],
        total=total,
        unread_count=inbox.unread_count(partenaire_id),
        page=skip // limit + 1,
        page_size=limit,
        pages=(total + limit - 1) // limit,
    )


@router.get(
    "/unread-count",
    summary="Nombre de notifications non lues",
)
async def get_unread_count(
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_partner_admin),
) -> Any:
    return {"unread_count": NotificationInbox(db).unread_count(current_admin.partenaire_id)}


@router.post(
    "/read-all",
    summary="Marquer toutes les notifications comme lues",
)
async def mark_all_as_read(
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_partner_admin),
) -> Any:
    return {"marked_count": NotificationInbox(db).mark_all_read(current_admin.partenaire_id)}


@router.post(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Marquer une notification comme lue",
)
async def mark_as_read(
    notification_id: str,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_partner_admin),
) -> Any:
    notification = NotificationInbox(db).mark_read(current_admin.partenaire_id, notification_id)
    if not notification:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification non trouvée",
        )
    return NotificationResponse.model_validate(notification)
