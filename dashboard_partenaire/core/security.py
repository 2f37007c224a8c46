"""
Module de sécurité du tableau de bord partenaire.
Authentification JWT des administrateurs, hashage des mots de passe
et vérification de la signature des webhooks Lengo Pay.
"""

import hashlib
import hmac
from datetime import datetime, timedelta
from typing import Any, Optional, Dict, Union

import bcrypt
from jose import JWTError, jwt

from dashboard_partenaire.config import settings
from dashboard_partenaire.core.exceptions import WebhookSignatureError
from dashboard_partenaire.core.logging import logger


WEBHOOK_SIGNATURE_HEADER = "X-Lengopay-Signature"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Compare un mot de passe en clair au hash bcrypt stocké. Un hash illisible vaut refus."""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError as e:
        logger.error(f"Hash de mot de passe illisible: {e}")
        return False


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def create_access_token(
    subject: Union[str, int],
    role: str,
    partenaire_id: Optional[str],
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Crée un token JWT d'accès pour un administrateur partenaire.

    Args:
        subject: Identifiant de l'administrateur
        role: Rôle de l'administrateur (rh, responsable, admin)
        partenaire_id: Partenaire auquel la session est rattachée
        expires_delta: Durée de validité (ACCESS_TOKEN_EXPIRE_MINUTES par défaut)

    Returns:
        Token JWT encodé
    """
    issued_at = datetime.utcnow()
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {
        "sub": str(subject),
        "role": role,
        "partenaire_id": partenaire_id,
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "type": "access",
    }
    logger.debug(f"Token d'accès émis pour {subject} (partenaire {partenaire_id})")
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str, token_type: str = "access") -> Optional[Dict[str, Any]]:
    """Claims du token s'il est valide, non expiré et du type attendu, None sinon."""
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.warning(f"Token JWT rejeté: {e}")
        return None

    if claims.get("type") != token_type:
        logger.warning(f"Type de token inattendu: {claims.get('type')} (attendu {token_type})")
        return None
    return claims


def decode_token_unsafe(token: str) -> Optional[Dict[str, Any]]:
    """Décode un token sans vérifier l'expiration (journalisation uniquement)."""
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"verify_exp": False}
        )
    except JWTError:
        return None


def compute_webhook_signature(body: bytes, secret: str) -> str:
    """Signature HMAC-SHA256 (hexadécimale) du corps brut d'un webhook."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_webhook_signature(
    body: bytes,
    signature: Optional[str],
    secret: Optional[str] = None,
    required: Optional[bool] = None,
) -> None:
    """
    Vérifie la signature d'un webhook Lengo Pay.

    Args:
        body: Corps brut de la requête
        signature: Valeur de l'en-tête X-Lengopay-Signature
        secret: Secret partagé (par défaut LENGO_WEBHOOK_SECRET)
        required: Rejeter si la vérification est impossible
            (par défaut WEBHOOK_SIGNATURE_REQUIRED)

    Raises:
        WebhookSignatureError: Signature absente, invalide ou secret non configuré
    """
    secret = secret if secret is not None else settings.LENGO_WEBHOOK_SECRET
    required = settings.WEBHOOK_SIGNATURE_REQUIRED if required is None else required

    if not secret:
        if required:
            logger.error("LENGO_WEBHOOK_SECRET non configuré: webhook rejeté")
            raise WebhookSignatureError("Vérification de signature impossible: secret non configuré")
        logger.warning("Webhook accepté sans vérification de signature (WEBHOOK_SIGNATURE_REQUIRED=false)")
        return

    if not signature:
        raise WebhookSignatureError("Signature du webhook absente")

    expected = compute_webhook_signature(body, secret)
    if not hmac.compare_digest(expected, signature.strip().lower()):
        raise WebhookSignatureError("Signature du webhook invalide")


__all__ = [
    "WEBHOOK_SIGNATURE_HEADER",
    "verify_password",
    "get_password_hash",
    "create_access_token",
    "verify_token",
    "decode_token_unsafe",
    "compute_webhook_signature",
    "verify_webhook_signature",
]
