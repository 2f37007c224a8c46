"""
Service des remboursements du tableau de bord partenaire.
Consultation, statistiques et actions manuelles (payé, en retard, annulé).
"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Union

from sqlalchemy.orm import Session

from dashboard_partenaire.config import settings
from dashboard_partenaire.core.exceptions import InvalidRequestError, RemboursementNotFound
from dashboard_partenaire.core.logging import logger
from dashboard_partenaire.models import (
    HistoriqueAction,
    HistoriqueRemboursement,
    Remboursement,
    RemboursementStatus,
)
from dashboard_partenaire.schemas.remboursement import BulkUpdateResult, RemboursementStats
from dashboard_partenaire.services.remboursement_repository import RemboursementRepository


Number = Union[int, float, Decimal]


def calculate_frais_service(montant_demande: Number) -> Decimal:
    """Frais de service ZaLaMa (6,5 % du montant demandé par défaut)."""
    frais = Decimal(str(montant_demande)) * Decimal(str(settings.FRAIS_SERVICE_TAUX))
    return frais.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def calculate_montant_recu(montant_demande: Number, frais_service: Number) -> Decimal:
    """Montant effectivement versé à l'employé (avance moins frais)."""
    return Decimal(str(montant_demande)) - Decimal(str(frais_service))


def calculate_remboursement_du(montant_demande: Number) -> Decimal:
    return Decimal(str(montant_demande))


def calculate_salaire_restant(salaire_net: Number, montant_demande: Number) -> Decimal:
    return max(Decimal("0"), Decimal(str(salaire_net)) - Decimal(str(montant_demande)))


def format_gnf(value: Number) -> str:
    """Formate un montant en francs guinéens, ex. 1 500 000 GNF."""
    return f"{int(Decimal(str(value))):,}".replace(",", " ") + " GNF"


class RemboursementService:
    """
    Opérations du tableau de bord sur les remboursements.

    Chaque opération reçoit le partenaire de l'administrateur connecté:
    un remboursement d'un autre partenaire est traité comme introuvable.
    Les actions manuelles passent par le même compare-and-swap que la
    synchronisation Lengo Pay et sont tracées dans l'historique avec
    l'administrateur à l'origine de l'action.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repository = RemboursementRepository(db)

    def list(
        self,
        partenaire_id: str,
        statut: Optional[str] = None,
        type_remboursement: Optional[str] = None,
    ) -> List[Remboursement]:
        return self.repository.list_for_partner(partenaire_id, statut, type_remboursement)

    def get(self, partenaire_id: str, remboursement_id: str) -> Remboursement:
        remboursement = self.repository.get_by_id(remboursement_id, partenaire_id)
        if not remboursement:
            raise RemboursementNotFound("Remboursement non trouvé")
        return remboursement

    def history(self, partenaire_id: str, remboursement_id: str) -> List[HistoriqueRemboursement]:
        self.get(partenaire_id, remboursement_id)
        return self.repository.history(remboursement_id)

    def stats(self, partenaire_id: str) -> RemboursementStats:
        """Agrégats par statut pour les cartes du tableau de bord."""
        by_status = self.repository.count_and_sum_by_status(partenaire_id)
        empty = {"count": 0, "montant": Decimal("0"), "frais": Decimal("0")}

        def bucket(statut: RemboursementStatus) -> dict:
            return by_status.get(statut.value, empty)

        annules = [bucket(RemboursementStatus.ANNULE), bucket(RemboursementStatus.ANNULEE)]
        return RemboursementStats(
            total_remboursements=sum(b["count"] for b in by_status.values()),
            total_montant=sum((b["montant"] for b in by_status.values()), Decimal("0")),
            total_frais_service=sum((b["frais"] for b in by_status.values()), Decimal("0")),
            en_attente=bucket(RemboursementStatus.EN_ATTENTE)["count"],
            en_cours=bucket(RemboursementStatus.EN_COURS)["count"],
            paye=bucket(RemboursementStatus.PAYE)["count"],
            en_retard=bucket(RemboursementStatus.EN_RETARD)["count"],
            annule=sum(b["count"] for b in annules),
            montant_en_attente=bucket(RemboursementStatus.EN_ATTENTE)["montant"],
            montant_paye=bucket(RemboursementStatus.PAYE)["montant"],
            montant_en_retard=bucket(RemboursementStatus.EN_RETARD)["montant"],
        )

    def check_late(self, partenaire_id: str) -> List[Remboursement]:
        """Remboursements en attente dont la date limite est dépassée."""
        return self.repository.list_overdue(partenaire_id, datetime.utcnow())

    def _transition(
        self,
        remboursement: Remboursement,
        values: dict,
        action: HistoriqueAction,
        description: str,
        utilisateur_id: Optional[str],
    ) -> None:
        ancien_statut = remboursement.statut
        values.setdefault("updated_at", datetime.utcnow())
        self.repository.compare_and_swap(remboursement, remboursement.version, values)
        self.repository.add_history(
            remboursement,
            action=action.value,
            description=description,
            statut_avant=ancien_statut,
            statut_apres=values["statut"],
            utilisateur_id=utilisateur_id,
        )

    def _paid_values(self, commentaire: Optional[str]) -> dict:
        values = {
            "statut": RemboursementStatus.PAYE.value,
            "date_remboursement_effectue": datetime.utcnow(),
        }
        if commentaire is not None:
            values["commentaire_partenaire"] = commentaire
        return values

    def mark_paid(
        self,
        partenaire_id: str,
        remboursement_id: str,
        commentaire: Optional[str] = None,
        utilisateur_id: Optional[str] = None,
    ) -> Remboursement:
        """
        Marque un remboursement comme payé depuis le tableau de bord.

        Raises:
            RemboursementNotFound: remboursement absent ou d'un autre partenaire
            InvalidRequestError: remboursement annulé
            ConcurrentUpdateError: modifié entre la lecture et l'écriture
        """
        remboursement = self.get(partenaire_id, remboursement_id)
        if remboursement.is_cancelled:
            raise InvalidRequestError("Un remboursement annulé ne peut pas être marqué comme payé")

        self._transition(
            remboursement,
            self._paid_values(commentaire),
            HistoriqueAction.PAIEMENT_MANUEL,
            "Remboursement marqué comme payé par le partenaire",
            utilisateur_id,
        )
        self.repository.commit()
        logger.info(f"Remboursement {remboursement_id} marqué comme payé")
        return self.get(partenaire_id, remboursement_id)

    def mark_multiple_paid(
        self,
        partenaire_id: str,
        ids: List[str],
        commentaire: Optional[str] = None,
        utilisateur_id: Optional[str] = None,
    ) -> BulkUpdateResult:
        """
        Marque plusieurs remboursements comme payés dans une seule transaction.
        Les identifiants inconnus, annulés ou déjà payés sont ignorés.
        """
        updated = []
        for remboursement_id in dict.fromkeys(ids):
            remboursement = self.repository.get_by_id(remboursement_id, partenaire_id)
            if not remboursement or remboursement.is_cancelled:
                continue
            if remboursement.statut == RemboursementStatus.PAYE.value:
                continue
            self._transition(
                remboursement,
                self._paid_values(commentaire),
                HistoriqueAction.PAIEMENT_MANUEL,
                "Paiement groupé depuis le tableau de bord",
                utilisateur_id,
            )
            updated.append(remboursement_id)

        self.repository.commit()
        logger.info(f"{len(updated)}/{len(ids)} remboursements marqués comme payés")
        return BulkUpdateResult(updated=len(updated), ids=updated)

    def mark_late(
        self,
        partenaire_id: str,
        remboursement_id: str,
        motif_retard: Optional[str] = None,
        utilisateur_id: Optional[str] = None,
    ) -> Remboursement:
        remboursement = self.get(partenaire_id, remboursement_id)
        if remboursement.is_terminal:
            raise InvalidRequestError(f"Remboursement déjà clôturé ({remboursement.statut})")

        self._transition(
            remboursement,
            {
                "statut": RemboursementStatus.EN_RETARD.value,
                "motif_retard": motif_retard,
                "date_remboursement_effectue": None,
            },
            HistoriqueAction.RETARD,
            motif_retard or "Remboursement marqué en retard",
            utilisateur_id,
        )
        self.repository.commit()
        logger.info(f"Remboursement {remboursement_id} marqué en retard")
        return self.get(partenaire_id, remboursement_id)

    def cancel(
        self,
        partenaire_id: str,
        remboursement_id: str,
        motif_annulation: Optional[str] = None,
        utilisateur_id: Optional[str] = None,
    ) -> Remboursement:
        """Annulation manuelle (statut ANNULE). Un remboursement payé n'est pas annulable."""
        remboursement = self.get(partenaire_id, remboursement_id)
        if remboursement.statut == RemboursementStatus.PAYE.value:
            raise InvalidRequestError("Un remboursement payé ne peut pas être annulé")

        self._transition(
            remboursement,
            {
                "statut": RemboursementStatus.ANNULE.value,
                "commentaire_admin": motif_annulation,
                "date_annulation": datetime.utcnow(),
                "date_remboursement_effectue": None,
            },
            HistoriqueAction.ANNULATION,
            motif_annulation or "Remboursement annulé",
            utilisateur_id,
        )
        self.repository.commit()
        logger.info(f"Remboursement {remboursement_id} annulé")
        return self.get(partenaire_id, remboursement_id)
