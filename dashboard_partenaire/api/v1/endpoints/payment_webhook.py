"""
Réception des webhooks de paiement Lengo Pay.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from dashboard_partenaire.database import get_db
from dashboard_partenaire.core.logging import logger
from dashboard_partenaire.core.security import WEBHOOK_SIGNATURE_HEADER, verify_webhook_signature
from dashboard_partenaire.schemas.lengo import WebhookPayload, WebhookAck
from dashboard_partenaire.services.webhook_service import WebhookService


router = APIRouter()


@router.post(
    "/payment-webhook",
    response_model=WebhookAck,
    summary="Webhook de paiement Lengo Pay",
)
async def payment_webhook(
    request: Request,
    db: Session = Depends(get_db),
) -> Any:
    """
    Applique une notification de paiement Lengo Pay.

    Le corps brut est signé (HMAC-SHA256, en-tête X-Lengopay-Signature).
    Réponses: 200 `{success: true}`, 401 signature invalide, 500 `{error}`
    si une mise à jour de remboursement échoue.
    """
    body = await request.body()
    verify_webhook_signature(body, request.headers.get(WEBHOOK_SIGNATURE_HEADER))

    try:
        payload = WebhookPayload.model_validate_json(body)
    except ValidationError as e:
        logger.warning(f"Webhook illisible: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Corps du webhook invalide",
        )

    WebhookService(db).ingest(payload)
    return WebhookAck()
