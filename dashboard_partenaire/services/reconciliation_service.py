"""
Synchronisation des statuts de remboursement avec Lengo Pay.

Lengo Pay fait foi sur l'état réel du paiement. Ce service compare le statut
stocké au statut rapporté, applique la mise à jour de statut et trace le
résultat (historique et notification partenaire).
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from dashboard_partenaire.core.exceptions import (
    ConcurrentUpdateError,
    InvalidRequestError,
    PersistenceFailure,
    ProviderUnavailable,
    RemboursementNotFound,
)
from dashboard_partenaire.core.logging import logger, log_reconciliation_event
from dashboard_partenaire.models import (
    HistoriqueAction,
    NotificationType,
    Remboursement,
    RemboursementStatus,
)
from dashboard_partenaire.schemas.lengo import ProviderStatusSnapshot
from dashboard_partenaire.schemas.remboursement import (
    EmployeSummary,
    ForceSyncRemboursement,
    ForceSyncResponse,
    LengoStatus,
    PartenaireSummary,
    RemboursementStatusDetail,
    StatusCheckResponse,
    Synchronisation,
)
from dashboard_partenaire.services.lengo_client import LengoPayClient, parse_provider_date
from dashboard_partenaire.services.notification_service import NotificationEmitter
from dashboard_partenaire.services.remboursement_repository import RemboursementRepository


# Statuts Lengo Pay -> statuts internes
STATUS_MAPPING = {
    "SUCCESS": RemboursementStatus.PAYE.value,
    "FAILED": RemboursementStatus.ANNULEE.value,
    "CANCELLED": RemboursementStatus.ANNULEE.value,
    "PENDING": RemboursementStatus.EN_COURS.value,
}

# Titre et type de la notification émise à chaque changement de statut
_CHANGE_NOTIFICATIONS = {
    RemboursementStatus.PAYE.value: ("Remboursement payé", NotificationType.SUCCESS.value),
    RemboursementStatus.ANNULEE.value: ("Remboursement annulé", NotificationType.ERROR.value),
}


def map_provider_status(provider_status: Optional[str]) -> str:
    """
    Convertit un code de statut Lengo Pay en statut interne.
    Tout code inconnu (ou absent) est considéré comme EN_ATTENTE.
    """
    if not provider_status:
        return RemboursementStatus.EN_ATTENTE.value
    return STATUS_MAPPING.get(
        provider_status.strip().upper(),
        RemboursementStatus.EN_ATTENTE.value,
    )


def build_status_values(
    nouveau_statut: str,
    snapshot: Optional[ProviderStatusSnapshot] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Champs à écrire pour un passage au statut donné.
    La date de paiement n'est renseignée que pour PAYE et effacée sinon.
    """
    now = now or datetime.utcnow()
    values: Dict[str, Any] = {"statut": nouveau_statut, "updated_at": now}

    if nouveau_statut == RemboursementStatus.PAYE.value:
        paid_at = parse_provider_date(snapshot.date) if snapshot else None
        values["date_remboursement_effectue"] = paid_at or now
        if snapshot and snapshot.phone:
            values["numero_reception"] = snapshot.phone
    else:
        values["date_remboursement_effectue"] = None
        if nouveau_statut == RemboursementStatus.ANNULEE.value:
            values["date_annulation"] = now

    return values


class ReconciliationService:
    """
    Vérification et synchronisation du statut d'un remboursement par pay_id.

    Args:
        db: Session SQLAlchemy
        client: Client Lengo Pay (instance par défaut si absent)

    Le partenaire éventuel est passé à chaque opération et restreint la
    recherche à ses remboursements.
    """

    def __init__(
        self,
        db: Session,
        client: Optional[LengoPayClient] = None,
    ):
        self.db = db
        self.client = client or LengoPayClient()
        self.repository = RemboursementRepository(db)
        self.emitter = NotificationEmitter(db)

    def _load(self, pay_id: str, partenaire_id: Optional[str]) -> Remboursement:
        if not pay_id or not pay_id.strip():
            raise InvalidRequestError("Pay ID requis")
        remboursement = self.repository.get_by_pay_id(pay_id, partenaire_id)
        if not remboursement:
            logger.warning(f"Remboursement introuvable pour pay_id {pay_id}")
            raise RemboursementNotFound("Remboursement non trouvé")
        return remboursement

    def apply_status_update(
        self,
        remboursement: Remboursement,
        nouveau_statut: str,
        snapshot: Optional[ProviderStatusSnapshot],
        source: str,
    ) -> None:
        """
        Écrit le nouveau statut avec ses champs dérivés, puis l'historique.

        L'écriture est conditionnée à la version lue au chargement. Une
        notification est émise si le statut change effectivement.

        Raises:
            ConcurrentUpdateError: la ligne a changé depuis sa lecture
            PersistenceFailure: erreur d'écriture
        """
        ancien_statut = remboursement.statut
        pay_id = remboursement.pay_id
        partenaire_id = remboursement.partenaire_id
        montant = remboursement.montant_total_remboursement
        version = remboursement.version + 1

        values = build_status_values(nouveau_statut, snapshot)
        self.repository.compare_and_swap(remboursement, remboursement.version, values)
        self.repository.add_history(
            remboursement,
            action=HistoriqueAction.SYNCHRONISATION_LENGO.value,
            description=(
                f"Synchronisation Lengo Pay ({source}): statut "
                f"{snapshot.status if snapshot else 'inconnu'}"
            ),
            statut_avant=ancien_statut,
            statut_apres=nouveau_statut,
        )
        self.repository.commit()

        log_reconciliation_event(
            event_type="synchronisation",
            pay_id=pay_id,
            ancien_statut=ancien_statut,
            nouveau_statut=nouveau_statut,
            source=source,
            details={"lengo_status": snapshot.status if snapshot else None},
        )

        if ancien_statut != nouveau_statut:
            self._notify_change(pay_id, partenaire_id, montant, ancien_statut, nouveau_statut, version)

    def _notify_change(
        self,
        pay_id: Optional[str],
        partenaire_id: str,
        montant,
        ancien_statut: str,
        nouveau_statut: str,
        version: int,
    ) -> None:
        # Une notification par écriture: la version suit chaque mise à jour
        titre, notif_type = _CHANGE_NOTIFICATIONS.get(
            nouveau_statut,
            ("Statut de remboursement mis à jour", NotificationType.INFO.value),
        )
        try:
            self.emitter.emit(
                partner_id=partenaire_id,
                titre=titre,
                message=(
                    f"Le remboursement {pay_id} ({montant} GNF) est passé "
                    f"de {ancien_statut} à {nouveau_statut}"
                ),
                type=notif_type,
                metadata={
                    "pay_id": pay_id,
                    "ancien_statut": ancien_statut,
                    "nouveau_statut": nouveau_statut,
                },
                idempotency_key=f"sync:{pay_id}:{version}",
            )
        except PersistenceFailure as e:
            logger.error(f"Notification de synchronisation non créée pour {pay_id}: {e.message}")

    @staticmethod
    def _detail(remboursement: Remboursement, statut: str) -> RemboursementStatusDetail:
        return RemboursementStatusDetail(
            id=remboursement.id,
            pay_id=remboursement.pay_id,
            montant=remboursement.montant_total_remboursement,
            statut=statut,
            date_creation=remboursement.date_creation,
            date_remboursement=remboursement.date_remboursement_effectue,
            employe=EmployeSummary.model_validate(remboursement.employe)
            if remboursement.employe else EmployeSummary(),
            partenaire=PartenaireSummary.model_validate(remboursement.partenaire)
            if remboursement.partenaire else PartenaireSummary(),
        )

    async def get_status(self, pay_id: str, partenaire_id: Optional[str] = None) -> StatusCheckResponse:
        """
        Vérifie le statut auprès de Lengo Pay et synchronise si nécessaire.

        Lengo Pay indisponible ou échec d'écriture ne font pas échouer la
        lecture: le statut stocké est renvoyé avec statut_synchronise à False.

        Raises:
            RemboursementNotFound: aucun remboursement pour ce pay_id
            ProviderUnauthorized: identifiants Lengo Pay refusés
            ProviderConfigurationError: clé API absente
        """
        remboursement = self._load(pay_id, partenaire_id)
        ancien_statut = remboursement.statut

        try:
            snapshot = await self.client.check_status(pay_id)
        except ProviderUnavailable as e:
            logger.warning(f"Lengo Pay indisponible pour {pay_id}, statut stocké renvoyé: {e.message}")
            return StatusCheckResponse(
                remboursement=self._detail(remboursement, ancien_statut),
                lengo_status=None,
                synchronisation=Synchronisation(
                    statut_synchronise=False,
                    ancien_statut=ancien_statut,
                    nouveau_statut=ancien_statut,
                    erreur=e.message,
                ),
            )

        nouveau_statut = map_provider_status(snapshot.status)
        synchronise = False
        erreur = None

        if nouveau_statut != ancien_statut:
            try:
                self.apply_status_update(remboursement, nouveau_statut, snapshot, source="lecture")
                synchronise = True
            except ConcurrentUpdateError as e:
                erreur = e.message
                log_reconciliation_event(
                    event_type="conflit",
                    pay_id=pay_id,
                    ancien_statut=ancien_statut,
                    nouveau_statut=nouveau_statut,
                    source="lecture",
                )
            except PersistenceFailure as e:
                erreur = e.message
                logger.error(f"Erreur lors de la synchronisation (non bloquante) de {pay_id}: {e.message}")
            # La ligne a été rechargée après commit ou rollback
            remboursement = self.repository.get_by_pay_id(pay_id) or remboursement

        statut = nouveau_statut if synchronise else ancien_statut
        logger.info(
            f"Statut du remboursement {pay_id}: base={statut} lengo={snapshot.status} "
            f"synchronise={synchronise}"
        )

        return StatusCheckResponse(
            remboursement=self._detail(remboursement, statut),
            lengo_status=LengoStatus(**snapshot.public_dict()),
            synchronisation=Synchronisation(
                statut_synchronise=synchronise,
                ancien_statut=ancien_statut,
                nouveau_statut=nouveau_statut,
                erreur=erreur,
            ),
        )

    async def force_sync(self, pay_id: str, partenaire_id: Optional[str] = None) -> ForceSyncResponse:
        """
        Aligne inconditionnellement le statut stocké sur Lengo Pay.

        Contrairement à get_status, toute erreur est remontée à l'appelant.

        Raises:
            RemboursementNotFound, ProviderError, ConcurrentUpdateError, PersistenceFailure
        """
        remboursement = self._load(pay_id, partenaire_id)
        ancien_statut = remboursement.statut

        snapshot = await self.client.check_status(pay_id)
        nouveau_statut = map_provider_status(snapshot.status)

        self.apply_status_update(remboursement, nouveau_statut, snapshot, source="force_sync")

        return ForceSyncResponse(
            remboursement=ForceSyncRemboursement(
                pay_id=pay_id,
                ancien_statut=ancien_statut,
                nouveau_statut=nouveau_statut,
                synchronise=True,
            ),
            lengo_status=LengoStatus(**snapshot.public_dict()),
        )
