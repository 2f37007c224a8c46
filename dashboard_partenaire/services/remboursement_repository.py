"""
Accès aux remboursements en base.
Toutes les écritures de statut passent par un compare-and-swap sur la colonne version.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from dashboard_partenaire.core.exceptions import ConcurrentUpdateError, PersistenceFailure
from dashboard_partenaire.core.logging import logger
from dashboard_partenaire.models import (
    HistoriqueRemboursement,
    PENDING_STATUSES,
    Remboursement,
    RemboursementStatus,
)


class RemboursementRepository:
    """Lecture et écriture des remboursements pour une session donnée."""

    def __init__(self, db: Session):
        self.db = db

    def _base_query(self):
        return self.db.query(Remboursement).options(
            joinedload(Remboursement.employe),
            joinedload(Remboursement.partenaire),
        )

    def get_by_pay_id(
        self,
        pay_id: str,
        partenaire_id: Optional[str] = None,
    ) -> Optional[Remboursement]:
        """Charge un remboursement avec son employé et son partenaire."""
        try:
            query = self._base_query().filter(Remboursement.pay_id == pay_id)
            if partenaire_id:
                query = query.filter(Remboursement.partenaire_id == partenaire_id)
            return query.first()
        except SQLAlchemyError as e:
            logger.error(f"Erreur de lecture du remboursement {pay_id}: {e}")
            raise PersistenceFailure("Erreur lors de la récupération du remboursement", str(e)) from e

    def get_by_id(
        self,
        remboursement_id: str,
        partenaire_id: Optional[str] = None,
    ) -> Optional[Remboursement]:
        try:
            query = self._base_query().filter(Remboursement.id == remboursement_id)
            if partenaire_id:
                query = query.filter(Remboursement.partenaire_id == partenaire_id)
            return query.first()
        except SQLAlchemyError as e:
            logger.error(f"Erreur de lecture du remboursement {remboursement_id}: {e}")
            raise PersistenceFailure("Erreur lors de la récupération du remboursement", str(e)) from e

    def list_for_partner(
        self,
        partenaire_id: str,
        statut: Optional[str] = None,
        type_remboursement: Optional[str] = None,
    ) -> List[Remboursement]:
        """Remboursements d'un partenaire, par échéance croissante."""
        query = self._base_query().filter(Remboursement.partenaire_id == partenaire_id)
        if statut:
            query = query.filter(Remboursement.statut == statut)
        if type_remboursement:
            query = query.filter(Remboursement.type_remboursement == type_remboursement)
        return query.order_by(
            Remboursement.date_limite_remboursement.asc(),
            Remboursement.date_creation.desc(),
        ).all()

    def list_overdue(self, partenaire_id: str, now: datetime) -> List[Remboursement]:
        """Remboursements en attente dont l'échéance est dépassée."""
        return (
            self._base_query()
            .filter(
                Remboursement.partenaire_id == partenaire_id,
                Remboursement.statut.in_(sorted(PENDING_STATUSES)),
                Remboursement.date_limite_remboursement < now,
            )
            .order_by(Remboursement.date_limite_remboursement.asc())
            .all()
        )

    def history(self, remboursement_id: str) -> List[HistoriqueRemboursement]:
        return (
            self.db.query(HistoriqueRemboursement)
            .filter(HistoriqueRemboursement.remboursement_id == remboursement_id)
            .order_by(HistoriqueRemboursement.created_at.desc())
            .all()
        )

    def count_and_sum_by_status(self, partenaire_id: str) -> Dict[str, Dict[str, Any]]:
        """
        Agrège nombre, montant et frais par statut pour un partenaire.

        Returns:
            {statut: {"count": int, "montant": Decimal, "frais": Decimal}}
        """
        rows = (
            self.db.query(
                Remboursement.statut,
                func.count(Remboursement.id),
                func.coalesce(func.sum(Remboursement.montant_total_remboursement), 0),
                func.coalesce(func.sum(Remboursement.frais_service), 0),
            )
            .filter(Remboursement.partenaire_id == partenaire_id)
            .group_by(Remboursement.statut)
            .all()
        )
        return {
            statut: {
                "count": count,
                "montant": Decimal(str(montant)),
                "frais": Decimal(str(frais)),
            }
            for statut, count, montant, frais in rows
        }

    def compare_and_swap(
        self,
        remboursement: Remboursement,
        expected_version: int,
        values: Dict[str, Any],
    ) -> None:
        """
        Écrit les valeurs si la version stockée correspond encore à celle lue.

        La ligne est ciblée par pay_id lorsqu'il est attribué, sinon par id.
        Ne valide pas la transaction: l'appelant commit après avoir ajouté l'historique.

        Raises:
            ConcurrentUpdateError: aucune ligne ne correspondait à (clé, version)
            PersistenceFailure: erreur SQL
        """
        if remboursement.pay_id:
            key = Remboursement.pay_id == remboursement.pay_id
        else:
            key = Remboursement.id == remboursement.id

        stmt = (
            update(Remboursement)
            .where(key, Remboursement.version == expected_version)
            .values(**values, version=Remboursement.version + 1)
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.db.execute(stmt)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Erreur d'écriture du remboursement {remboursement.pay_id}: {e}")
            raise PersistenceFailure("Erreur lors de la mise à jour du remboursement", str(e)) from e

        if result.rowcount == 0:
            self.db.rollback()
            logger.warning(
                f"Conflit de version sur {remboursement.pay_id or remboursement.id} "
                f"(version attendue {expected_version})"
            )
            raise ConcurrentUpdateError(remboursement.pay_id or remboursement.id, expected_version)

    def add_history(
        self,
        remboursement: Remboursement,
        action: str,
        description: str,
        statut_avant: Optional[str],
        statut_apres: Optional[str],
        utilisateur_id: Optional[str] = None,
    ) -> HistoriqueRemboursement:
        entry = HistoriqueRemboursement(
            remboursement_id=remboursement.id,
            action=action,
            description=description,
            montant_avant=remboursement.montant_total_remboursement,
            montant_apres=remboursement.montant_total_remboursement,
            statut_avant=statut_avant,
            statut_apres=statut_apres,
            utilisateur_id=utilisateur_id,
        )
        self.db.add(entry)
        return entry

    def commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Erreur de validation de la transaction: {e}")
            raise PersistenceFailure("Erreur lors de l'enregistrement", str(e)) from e

    def batch_mark_partner_paid(
        self,
        partenaire_id: str,
        values: Dict[str, Any],
        action: str,
        description: str,
    ) -> List[str]:
        """
        Passe en PAYE tous les remboursements EN_ATTENTE d'un partenaire.
        Une seule transaction: mise à jour groupée puis une entrée d'historique par ligne.

        Returns:
            Les identifiants des remboursements mis à jour
        """
        en_attente = RemboursementStatus.EN_ATTENTE.value
        try:
            rows = (
                self.db.query(Remboursement)
                .filter(
                    Remboursement.partenaire_id == partenaire_id,
                    Remboursement.statut == en_attente,
                )
                .with_for_update()
                .all()
            )
            ids = [r.id for r in rows]
            if not ids:
                return []

            self.db.execute(
                update(Remboursement)
                .where(Remboursement.id.in_(ids), Remboursement.statut == en_attente)
                .values(**values, version=Remboursement.version + 1)
                .execution_options(synchronize_session=False)
            )
            for r in rows:
                self.add_history(
                    r,
                    action=action,
                    description=description,
                    statut_avant=en_attente,
                    statut_apres=values.get("statut"),
                )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Erreur de paiement groupé pour le partenaire {partenaire_id}: {e}")
            raise PersistenceFailure("Erreur lors de la mise à jour des remboursements", str(e)) from e

        logger.info(f"{len(ids)} remboursement(s) du partenaire {partenaire_id} passés en PAYE")
        return ids
