"""
Traitement des webhooks de paiement Lengo Pay.
Applique les mises à jour de statut poussées par Lengo Pay sans re-interroger l'API.
"""

from typing import Optional

from sqlalchemy.orm import Session

from dashboard_partenaire.config import settings
from dashboard_partenaire.core.exceptions import ConcurrentUpdateError, PersistenceFailure
from dashboard_partenaire.core.logging import logger, log_reconciliation_event
from dashboard_partenaire.models import (
    HistoriqueAction,
    NotificationType,
    RemboursementStatus,
)
from dashboard_partenaire.schemas.lengo import WebhookPayload
from dashboard_partenaire.services.notification_service import NotificationEmitter
from dashboard_partenaire.services.reconciliation_service import build_status_values
from dashboard_partenaire.services.remboursement_repository import RemboursementRepository


class WebhookService:
    """
    Ingestion d'un webhook Lengo Pay.

    Chaque branche (remboursement unitaire, paiement en lot, notification
    partenaire, vérification différée) s'active selon les champs présents
    et s'exécute indépendamment des autres.
    """

    def __init__(self, db: Session, max_conflict_retries: Optional[int] = None):
        self.db = db
        self.repository = RemboursementRepository(db)
        self.emitter = NotificationEmitter(db)
        self.max_conflict_retries = (
            max_conflict_retries
            if max_conflict_retries is not None
            else settings.WEBHOOK_MAX_CONFLICT_RETRIES
        )

    @staticmethod
    def _payment_values(payload: WebhookPayload, nouveau_statut: str) -> dict:
        values = build_status_values(nouveau_statut)
        if payload.transaction_id is not None:
            values["transaction_id"] = payload.transaction_id
        if payload.message is not None:
            values["message_paiement"] = payload.message
        return values

    def _update_remboursement(self, payload: WebhookPayload) -> Optional[str]:
        """
        Met à jour le remboursement désigné par remboursement_id.
        Relit et réapplique en cas de conflit de version.

        Returns:
            Le partenaire du remboursement, ou None s'il est introuvable
        """
        nouveau_statut = (
            RemboursementStatus.PAYE.value
            if payload.is_success
            else RemboursementStatus.EN_ATTENTE.value
        )

        attempt = 0
        while True:
            remboursement = self.repository.get_by_id(payload.remboursement_id)
            if not remboursement:
                logger.warning(f"Webhook pour un remboursement inconnu: {payload.remboursement_id}")
                return None

            ancien_statut = remboursement.statut
            partenaire_id = remboursement.partenaire_id
            try:
                self.repository.compare_and_swap(
                    remboursement,
                    remboursement.version,
                    self._payment_values(payload, nouveau_statut),
                )
            except ConcurrentUpdateError:
                attempt += 1
                if attempt > self.max_conflict_retries:
                    logger.error(
                        f"Abandon du webhook pour {payload.remboursement_id} "
                        f"après {attempt} conflits de version"
                    )
                    raise
                continue

            self.repository.add_history(
                remboursement,
                action=HistoriqueAction.WEBHOOK_PAIEMENT.value,
                description=(
                    f"Webhook Lengo Pay: statut {payload.status}, "
                    f"transaction {payload.transaction_id}"
                ),
                statut_avant=ancien_statut,
                statut_apres=nouveau_statut,
            )
            self.repository.commit()

            log_reconciliation_event(
                event_type="webhook",
                pay_id=remboursement.pay_id,
                ancien_statut=ancien_statut,
                nouveau_statut=nouveau_statut,
                source="webhook",
                details={"transaction_id": payload.transaction_id, "tentatives": attempt + 1},
            )
            return partenaire_id

    def _notify(self, partenaire_id: Optional[str], payload: WebhookPayload, success: bool) -> None:
        default_message = (
            "Votre paiement a été traité avec succès" if success else "Le paiement a échoué"
        )
        idempotency_key = (
            f"webhook:{payload.transaction_id}:{payload.normalized_status}"
            if payload.transaction_id
            else None
        )
        try:
            self.emitter.emit(
                partner_id=partenaire_id,
                titre="Paiement réussi" if success else "Paiement échoué",
                message=payload.message or default_message,
                type=NotificationType.SUCCESS.value if success else NotificationType.ERROR.value,
                idempotency_key=idempotency_key,
            )
        except PersistenceFailure as e:
            logger.error(f"Notification de paiement non créée pour {partenaire_id}: {e.message}")

    def _notify_payment_check(self, partenaire_id: Optional[str], payload: WebhookPayload) -> None:
        idempotency_key = (
            f"payment_check:{payload.pay_id}:{payload.transaction_id}"
            if payload.transaction_id
            else None
        )
        try:
            self.emitter.emit(
                partner_id=partenaire_id,
                titre="Vérification de paiement requise",
                message=f"Vérification automatique du paiement {payload.pay_id}",
                type=NotificationType.PAYMENT_CHECK.value,
                metadata={
                    "pay_id": payload.pay_id,
                    "transaction_id": payload.transaction_id,
                    "status": payload.status,
                },
                idempotency_key=idempotency_key,
            )
        except PersistenceFailure as e:
            logger.error(f"Notification de vérification non créée pour {payload.pay_id}: {e.message}")

    def ingest(self, payload: WebhookPayload) -> None:
        """
        Applique un webhook Lengo Pay.

        Raises:
            PersistenceFailure: une écriture de remboursement a échoué. Les
                branches déjà validées ne sont pas annulées.
        """
        logger.info(
            f"Webhook reçu: transaction={payload.transaction_id} status={payload.status} "
            f"remboursement={payload.remboursement_id} partenaire={payload.partenaire_id} "
            f"pay_id={payload.pay_id}"
        )
        target_partner = payload.partenaire_id
        # Sans mise à jour unitaire, seul "success" vaut réussite (comme le paiement en lot)
        success = payload.normalized_status == "success"

        if payload.remboursement_id:
            try:
                remboursement_partner = self._update_remboursement(payload)
            except PersistenceFailure as e:
                logger.error(f"Erreur mise à jour remboursement {payload.remboursement_id}: {e.message}")
                raise PersistenceFailure("Erreur mise à jour", e.message) from e
            target_partner = target_partner or remboursement_partner
            if remboursement_partner:
                success = payload.is_success

        if payload.partenaire_id and payload.normalized_status == "success":
            try:
                self.repository.batch_mark_partner_paid(
                    payload.partenaire_id,
                    self._payment_values(payload, RemboursementStatus.PAYE.value),
                    action=HistoriqueAction.PAIEMENT_LOT.value,
                    description=f"Paiement en lot Lengo Pay, transaction {payload.transaction_id}",
                )
            except PersistenceFailure as e:
                logger.error(f"Erreur mise à jour remboursements en lot: {e.message}")
                raise PersistenceFailure("Erreur mise à jour en lot", e.message) from e

        if target_partner:
            self._notify(target_partner, payload, success)

        if payload.pay_id:
            self._notify_payment_check(target_partner, payload)
