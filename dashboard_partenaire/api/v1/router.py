"""
Routeur principal de l'API v1.
Regroupe toutes les routes des différents modules.
"""

from fastapi import APIRouter

from dashboard_partenaire.api.v1.endpoints import (
    auth,
    payment_webhook,
    remboursements,
    notifications,
)

api_router = APIRouter()

# Routes d'authentification
api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["Authentification"],
)

# Webhook Lengo Pay (authentifié par signature)
api_router.include_router(
    payment_webhook.router,
    tags=["Webhooks"],
)

# Routes remboursements
api_router.include_router(
    remboursements.router,
    prefix="/remboursements",
    tags=["Remboursements"],
)

# Routes notifications
api_router.include_router(
    notifications.router,
    prefix="/notifications",
    tags=["Notifications"],
)
