"""
Client Lengo Pay.
Interroge l'API de statut de transaction et normalise la réponse.
Aucune nouvelle tentative n'est faite ici: la politique de retry appartient à l'appelant.
"""

from datetime import datetime, timezone
from typing import Optional

import httpx
from dateutil import parser as date_parser

from dashboard_partenaire.config import settings
from dashboard_partenaire.core.exceptions import (
    InvalidRequestError,
    ProviderConfigurationError,
    ProviderUnauthorized,
    ProviderUnavailable,
)
from dashboard_partenaire.core.logging import logger
from dashboard_partenaire.schemas.lengo import ProviderStatusSnapshot


def parse_provider_date(value: Optional[str]) -> Optional[datetime]:
    """
    Convertit une date Lengo Pay en datetime UTC naïf.

    Returns:
        La date convertie, ou None si absente ou illisible
    """
    if not value:
        return None
    try:
        parsed = date_parser.parse(value)
    except (ValueError, OverflowError) as e:
        logger.warning(f"Date Lengo Pay illisible '{value}': {e}")
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


class LengoPayClient:
    """
    Client HTTP pour l'API de statut Lengo Pay.
    Documentation: https://portal.lengopay.com
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        site_id: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url or settings.LENGO_API_URL
        self.site_id = site_id if site_id is not None else settings.LENGO_SITE_ID
        self.api_key = api_key if api_key is not None else settings.LENGO_API_KEY
        self.timeout = timeout or settings.LENGO_TIMEOUT_SECONDS
        self._transport = transport

    def _headers(self) -> dict:
        if not self.api_key:
            logger.error("LENGO_API_KEY non configurée: vérification de statut impossible")
            raise ProviderConfigurationError("Clé API Lengo Pay non configurée")
        return {
            "Authorization": f"Basic {self.api_key}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    async def check_status(self, pay_id: str) -> ProviderStatusSnapshot:
        """
        Vérifie le statut d'une transaction Lengo Pay.

        Args:
            pay_id: Identifiant de paiement attribué à l'initiation

        Returns:
            Instantané normalisé {status, pay_id, date, amount}

        Raises:
            InvalidRequestError: pay_id vide
            ProviderConfigurationError: clé API absente
            ProviderUnauthorized: identifiants refusés (401/403)
            ProviderUnavailable: délai dépassé, erreur réseau, réponse non 2xx ou illisible
        """
        if not pay_id or not pay_id.strip():
            raise InvalidRequestError("pay_id requis")

        headers = self._headers()
        logger.info(f"Vérification du statut Lengo Pay pour: {pay_id}")

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(
                    self.api_url,
                    headers=headers,
                    json={"site_id": self.site_id, "pay_id": pay_id},
                )
            except httpx.TimeoutException as e:
                logger.error(f"Délai dépassé Lengo Pay ({self.timeout}s) pour {pay_id}")
                raise ProviderUnavailable(
                    f"Lengo Pay n'a pas répondu en {self.timeout}s"
                ) from e
            except httpx.HTTPError as e:
                logger.error(f"Erreur réseau Lengo Pay pour {pay_id}: {e}")
                raise ProviderUnavailable(f"Erreur réseau Lengo Pay: {e}") from e

        if response.status_code in (401, 403):
            logger.error(f"Lengo Pay a refusé l'authentification: {response.status_code} {response.text}")
            raise ProviderUnauthorized(
                f"Erreur API Lengo Pay: {response.status_code} - Unauthorized",
                status_code=response.status_code,
                raw_body=response.text,
            )

        if not response.is_success:
            logger.error(f"Erreur API Lengo Pay: {response.status_code} {response.text}")
            raise ProviderUnavailable(
                f"Erreur API Lengo Pay: {response.status_code}",
                status_code=response.status_code,
                raw_body=response.text,
            )

        try:
            data = response.json()
            snapshot = ProviderStatusSnapshot.model_validate(data)
        except ValueError as e:
            logger.error(f"Réponse Lengo Pay illisible: {response.text}")
            raise ProviderUnavailable(
                "Réponse Lengo Pay illisible",
                status_code=response.status_code,
                raw_body=response.text,
            ) from e

        logger.info(f"Réponse Lengo Pay pour {pay_id}: {snapshot.status}")
        return snapshot


# Instance partagée, configurée depuis les variables d'environnement
lengo_client = LengoPayClient()
