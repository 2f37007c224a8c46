"""
Suivi périodique du statut d'un remboursement.
Consommateur de GET /remboursements/status/{pay_id}, utilisé pendant qu'un
écran de résultat de paiement est ouvert.
"""

import asyncio
from typing import Any, Callable, Dict, Optional

import httpx

from dashboard_partenaire.config import settings
from dashboard_partenaire.core.logging import logger
from dashboard_partenaire.models import TERMINAL_STATUSES


class StatusPoller:
    """
    Interroge l'endpoint de statut à intervalle fixe jusqu'à un statut final.

    Le suivi s'arrête sur PAYE, ANNULE ou ANNULEE, sur appel à stop()
    (fermeture de l'écran) ou après max_attempts interrogations.

    Args:
        pay_id: Identifiant de paiement suivi
        client: Client HTTP configuré (base_url, authentification)
        interval: Secondes entre deux interrogations
        max_attempts: Nombre maximal d'interrogations
        on_update: Appelé avec chaque réponse reçue
    """

    def __init__(
        self,
        pay_id: str,
        client: httpx.AsyncClient,
        interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        on_update: Optional[Callable[[Dict[str, Any]], None]] = None,
        path_prefix: str = "/api/v1",
    ):
        self.pay_id = pay_id
        self.client = client
        self.interval = settings.STATUS_POLL_INTERVAL_SECONDS if interval is None else interval
        self.max_attempts = settings.STATUS_POLL_MAX_ATTEMPTS if max_attempts is None else max_attempts
        self.on_update = on_update
        self.path = f"{path_prefix}/remboursements/status/{pay_id}"
        self.attempts = 0
        self.last_result: Optional[Dict[str, Any]] = None
        self._stopped = asyncio.Event()

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def stop(self) -> None:
        """Interrompt le suivi; l'interrogation en cours se termine normalement."""
        self._stopped.set()

    @staticmethod
    def is_final(result: Optional[Dict[str, Any]]) -> bool:
        if not result:
            return False
        statut = (result.get("remboursement") or {}).get("statut")
        return statut in TERMINAL_STATUSES

    async def poll_once(self) -> Optional[Dict[str, Any]]:
        """Une interrogation. None si la réponse est une erreur."""
        self.attempts += 1
        try:
            response = await self.client.get(self.path)
        except httpx.HTTPError as e:
            logger.warning(f"Vérification du statut {self.pay_id} impossible: {e}")
            return None

        if response.status_code != 200:
            logger.warning(
                f"Vérification du statut {self.pay_id}: HTTP {response.status_code} {response.text}"
            )
            return None

        try:
            result = response.json()
        except ValueError:
            logger.warning(f"Vérification du statut {self.pay_id}: réponse illisible {response.text}")
            return None

        self.last_result = result
        if self.on_update:
            self.on_update(result)
        return result

    async def run(self) -> Optional[Dict[str, Any]]:
        """
        Interroge jusqu'à l'arrêt.

        Returns:
            La dernière réponse valide reçue
        """
        logger.info(f"Suivi du statut {self.pay_id} (toutes les {self.interval}s)")
        while not self.stopped and self.attempts < self.max_attempts:
            result = await self.poll_once()
            if self.is_final(result):
                logger.info(
                    f"Statut final pour {self.pay_id}: {result['remboursement']['statut']}"
                )
                break
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

        if self.attempts >= self.max_attempts and not self.is_final(self.last_result):
            logger.warning(f"Suivi du statut {self.pay_id} abandonné après {self.attempts} tentatives")
        self._stopped.set()
        return self.last_result
