"""
Dépendances FastAPI pour l'injection de dépendances.
Gère l'authentification des administrateurs partenaires et l'accès à Lengo Pay.
"""

from typing import List

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from dashboard_partenaire.database import get_db
from dashboard_partenaire.core.security import verify_token
from dashboard_partenaire.core.logging import logger
from dashboard_partenaire.models import AdminUser, AdminRole
from dashboard_partenaire.services.lengo_client import LengoPayClient, lengo_client


# Schéma de sécurité Bearer Token
security = HTTPBearer(auto_error=False)


async def get_current_admin(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> AdminUser:
    """
    Récupère l'administrateur courant à partir du token JWT.

    Raises:
        HTTPException: 401 si le token est invalide ou le compte introuvable,
            403 si le compte est désactivé
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Token d'authentification invalide ou expiré",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not credentials:
        logger.warning("Tentative d'accès sans token")
        raise credentials_exception

    payload = verify_token(credentials.credentials, token_type="access")
    if payload is None:
        logger.warning("Token invalide ou expiré")
        raise credentials_exception

    admin_id = payload.get("sub")
    if admin_id is None:
        logger.warning("Token sans identifiant administrateur")
        raise credentials_exception

    admin = db.query(AdminUser).filter(AdminUser.id == admin_id).first()
    if admin is None:
        logger.warning(f"Administrateur {admin_id} non trouvé")
        raise credentials_exception

    if not admin.active:
        logger.warning(f"Tentative d'accès par un compte désactivé: {admin.email}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Compte administrateur désactivé",
        )

    logger.debug(f"Administrateur authentifié: {admin.email}")
    return admin


async def get_partner_admin(
    current_admin: AdminUser = Depends(get_current_admin),
) -> AdminUser:
    """Administrateur rattaché à un partenaire (requis pour le tableau de bord)."""
    if not current_admin.partenaire_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Aucun partenaire associé à ce compte",
        )
    return current_admin


def require_roles(allowed_roles: List[str]):
    """
    Dépendance restreignant l'accès à certains rôles.

    Usage:
        @router.post("/{id}/annuler")
        def cancel(admin: AdminUser = Depends(require_manager)):
            ...
    """
    async def role_checker(
        current_admin: AdminUser = Depends(get_partner_admin),
    ) -> AdminUser:
        if current_admin.role not in allowed_roles:
            logger.warning(
                f"Accès refusé pour {current_admin.email}: "
                f"rôle {current_admin.role} non autorisé"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Accès refusé. Rôles requis: {allowed_roles}",
            )
        return current_admin

    return role_checker


require_manager = require_roles([AdminRole.RESPONSABLE.value, AdminRole.ADMIN.value])


def get_lengo_client() -> LengoPayClient:
    """Client Lengo Pay partagé (remplacé dans les tests)."""
    return lengo_client
