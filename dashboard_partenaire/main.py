"""
Tableau de bord partenaire ZaLaMa - Point d'entrée principal de l'application.
Suivi des remboursements d'avances sur salaire et synchronisation avec Lengo Pay.
"""

import time
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError

from dashboard_partenaire.config import settings
from dashboard_partenaire.database import check_db_connection, init_db
from dashboard_partenaire.core.exceptions import (
    ConcurrentUpdateError,
    InvalidRequestError,
    PersistenceFailure,
    ProviderError,
    ProviderUnauthorized,
    RemboursementNotFound,
    WebhookSignatureError,
)
from dashboard_partenaire.core.logging import setup_logging, logger, log_request
from dashboard_partenaire.core.security import decode_token_unsafe
from dashboard_partenaire.api.v1.router import api_router


# Configuration du logging au démarrage
setup_logging(
    log_level="DEBUG" if settings.DEBUG else "INFO",
    log_file=settings.LOG_FILE,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Gestionnaire de cycle de vie de l'application.
    Exécuté au démarrage et à l'arrêt.
    """
    logger.info("=" * 60)
    logger.info(f"Démarrage de {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environnement: {settings.ENVIRONMENT}")
    logger.info("=" * 60)

    if not check_db_connection():
        logger.error("Impossible de se connecter à la base de données!")
    elif settings.DEBUG and not settings.is_production:
        # Les migrations Alembic font foi hors développement
        init_db()

    if not settings.LENGO_API_KEY:
        logger.warning("LENGO_API_KEY absente: la vérification des statuts Lengo Pay échouera")
    if not settings.LENGO_WEBHOOK_SECRET and settings.WEBHOOK_SIGNATURE_REQUIRED:
        logger.warning("LENGO_WEBHOOK_SECRET absent: tous les webhooks seront rejetés")

    logger.info("Application prête à recevoir des requêtes")

    yield

    logger.info("Arrêt de l'application...")


app = FastAPI(
    title=settings.APP_NAME,
    description="""
    ## Tableau de bord partenaire ZaLaMa

    * **Remboursements** - Suivi des remboursements d'avances sur salaire
    * **Lengo Pay** - Vérification et synchronisation des statuts de paiement
    * **Webhooks** - Notifications de paiement signées
    * **Notifications** - Boîte de réception du partenaire
    """,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_tags=[
        {"name": "Authentification", "description": "Connexion des administrateurs partenaires"},
        {"name": "Remboursements", "description": "Remboursements et synchronisation Lengo Pay"},
        {"name": "Webhooks", "description": "Notifications de paiement Lengo Pay"},
        {"name": "Notifications", "description": "Boîte de réception du partenaire"},
    ],
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.FRONTEND_URL,
        "http://localhost:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def logging_middleware(request: Request, call_next: Callable) -> Response:
    """
    Middleware pour logger toutes les requêtes HTTP.
    """
    start_time = time.time()

    user_id = None
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        payload = decode_token_unsafe(auth_header[7:])
        if payload:
            user_id = payload.get("sub")

    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000
    log_request(
        method=request.method,
        url=str(request.url.path),
        status_code=response.status_code,
        duration_ms=duration_ms,
        user_id=user_id,
    )

    response.headers["X-Process-Time"] = f"{duration_ms:.2f}ms"
    return response


# ============== Erreurs métier ==============

@app.exception_handler(RemboursementNotFound)
async def not_found_handler(request: Request, exc: RemboursementNotFound) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"error": exc.message},
    )


@app.exception_handler(ProviderError)
async def provider_error_handler(request: Request, exc: ProviderError) -> JSONResponse:
    """
    Erreurs Lengo Pay. Un refus d'authentification est distingué par le
    statut amont (401/403) reporté dans la réponse.
    """
    logger.error(f"Erreur Lengo Pay: {exc.message}")
    content = {
        "error": "Erreur lors de la vérification du statut",
        "details": exc.message,
    }
    if isinstance(exc, ProviderUnauthorized):
        content["details"] = exc.raw_body or exc.message
        content["status"] = exc.status_code or status.HTTP_401_UNAUTHORIZED
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=content,
    )


@app.exception_handler(ConcurrentUpdateError)
async def conflict_handler(request: Request, exc: ConcurrentUpdateError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={
            "error": "Le remboursement a été modifié entre-temps, veuillez réessayer",
            "details": exc.message,
        },
    )


@app.exception_handler(PersistenceFailure)
async def persistence_handler(request: Request, exc: PersistenceFailure) -> JSONResponse:
    logger.error(f"Erreur de persistance: {exc.message} ({exc.details})")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": exc.message, "details": exc.details},
    )


@app.exception_handler(WebhookSignatureError)
async def webhook_signature_handler(request: Request, exc: WebhookSignatureError) -> JSONResponse:
    logger.warning(f"Webhook rejeté: {exc.message}")
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"error": "Signature invalide", "details": exc.message},
    )


@app.exception_handler(InvalidRequestError)
async def invalid_request_handler(request: Request, exc: InvalidRequestError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": exc.message},
    )


# Gestionnaire d'erreurs de validation
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """
    Gestionnaire personnalisé pour les erreurs de validation Pydantic.
    """
    logger.warning(f"Erreur de validation: {exc.errors()}")

    errors = []
    for error in exc.errors():
        errors.append({
            "field": ".".join(str(x) for x in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        })

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Erreur de validation des données",
            "errors": errors,
        },
    )


# Gestionnaire d'erreurs SQLAlchemy
@app.exception_handler(SQLAlchemyError)
async def sqlalchemy_exception_handler(
    request: Request,
    exc: SQLAlchemyError
) -> JSONResponse:
    logger.error(f"Erreur SQLAlchemy: {exc}")

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Erreur de base de données",
            "details": "Une erreur est survenue lors de l'accès aux données",
        },
    )


# Inclusion du routeur API v1
app.include_router(api_router, prefix="/api/v1")


@app.get(
    "/health",
    tags=["Système"],
    summary="Vérification de l'état de l'application",
)
async def health_check():
    """
    Endpoint de health check pour les load balancers et monitoring.
    """
    db_status = "ok" if check_db_connection() else "error"

    return {
        "status": "ok" if db_status == "ok" else "degraded",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "database": db_status,
        "lengo_configured": bool(settings.LENGO_API_KEY),
    }


@app.get("/", tags=["Système"])
async def root():
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "description": "Tableau de bord partenaire: remboursements et synchronisation Lengo Pay",
        "docs": "/docs" if settings.DEBUG else "Documentation désactivée en production",
        "health": "/health",
        "api": "/api/v1",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "dashboard_partenaire.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info",
    )
