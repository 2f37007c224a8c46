"""
Routes d'authentification des administrateurs partenaires.
"""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from dashboard_partenaire.config import settings
from dashboard_partenaire.database import get_db
from dashboard_partenaire.core.logging import logger
from dashboard_partenaire.core.security import verify_password, create_access_token
from dashboard_partenaire.models import AdminUser
from dashboard_partenaire.schemas.auth import LoginRequest, Token, AdminUserResponse
from dashboard_partenaire.api.deps import get_current_admin


router = APIRouter()


@router.post(
    "/login",
    response_model=Token,
    summary="Connexion d'un administrateur",
)
async def login(
    credentials: LoginRequest,
    db: Session = Depends(get_db),
) -> Any:
    """
    Authentifie un administrateur et retourne un token JWT
    rattaché à son partenaire.
    """
    logger.info(f"Tentative de connexion: {credentials.email}")

    admin = db.query(AdminUser).filter(AdminUser.email == credentials.email).first()

    if not admin or not verify_password(credentials.password, admin.hashed_password):
        logger.warning(f"Identifiants incorrects pour: {credentials.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Email ou mot de passe incorrect",
        )

    if not admin.active:
        logger.warning(f"Compte désactivé: {admin.email}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Votre compte a été désactivé",
        )

    admin.last_login = datetime.utcnow()
    db.commit()

    access_token = create_access_token(
        subject=admin.id,
        role=admin.role,
        partenaire_id=admin.partenaire_id,
    )

    logger.info(f"Connexion réussie: {admin.email}")

    return Token(
        access_token=access_token,
        token_type="bearer",
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


@router.get(
    "/me",
    response_model=AdminUserResponse,
    summary="Profil de l'administrateur connecté",
)
async def read_me(
    current_admin: AdminUser = Depends(get_current_admin),
) -> Any:
    return current_admin
