"""
Service de notifications partenaires.
Émission idempotente depuis la synchronisation et les webhooks, et lecture de la boîte de réception.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from dashboard_partenaire.core.exceptions import PersistenceFailure
from dashboard_partenaire.core.logging import logger, log_notification_emitted
from dashboard_partenaire.models import Notification, NotificationType


class NotificationEmitter:
    """
    Crée les notifications affichées dans le tableau de bord partenaire.

    Une clé d'idempotence identifie l'événement source: un rejeu du même
    webhook ou une seconde synchronisation vers le même statut retrouve la
    notification existante au lieu d'en créer une nouvelle.
    """

    def __init__(self, db: Session):
        self.db = db

    def _find_by_key(self, idempotency_key: str) -> Optional[Notification]:
        return (
            self.db.query(Notification)
            .filter(Notification.idempotency_key == idempotency_key)
            .first()
        )

    def emit(
        self,
        partner_id: Optional[str],
        titre: str,
        message: str,
        type: str = NotificationType.INFO.value,
        metadata: Optional[Dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
    ) -> Tuple[Notification, bool]:
        """
        Enregistre une notification non lue.

        Args:
            partner_id: Partenaire destinataire
            titre: Titre court
            message: Corps du message
            type: success, error, info, warning ou payment_check
            metadata: Données libres jointes à la notification
            idempotency_key: Clé de déduplication

        Returns:
            (notification, created) où created vaut False si la clé existait déjà

        Raises:
            PersistenceFailure: l'insertion a échoué pour une autre raison qu'un doublon
        """
        if idempotency_key:
            existing = self._find_by_key(idempotency_key)
            if existing:
                log_notification_emitted(type, partner_id, created=False, titre=titre)
                return existing, False

        notification = Notification(
            partenaire_id=partner_id,
            titre=titre,
            message=message,
            type=type,
            lu=False,
            meta=metadata,
            idempotency_key=idempotency_key,
        )
        self.db.add(notification)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if idempotency_key:
                # Insertion concurrente de la même clé
                existing = self._find_by_key(idempotency_key)
                if existing:
                    log_notification_emitted(type, partner_id, created=False, titre=titre)
                    return existing, False
            logger.error(f"Erreur lors de la création de la notification: {e}")
            raise PersistenceFailure("Erreur lors de la création de la notification", str(e)) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Erreur lors de la création de la notification: {e}")
            raise PersistenceFailure("Erreur lors de la création de la notification", str(e)) from e

        self.db.refresh(notification)
        log_notification_emitted(type, partner_id, created=True, titre=titre)
        return notification, True


class NotificationInbox:
    """Lecture et marquage des notifications, toujours filtrés par partenaire."""

    def __init__(self, db: Session):
        self.db = db

    def _query(self, partenaire_id: str):
        return self.db.query(Notification).filter(Notification.partenaire_id == partenaire_id)

    def list(
        self,
        partenaire_id: str,
        unread_only: bool = False,
        type_filter: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Notification], int]:
        query = self._query(partenaire_id)
        if unread_only:
            query = query.filter(Notification.lu == False)  # noqa: E712
        if type_filter:
            query = query.filter(Notification.type == type_filter)

        total = query.count()
        items = query.order_by(Notification.created_at.desc()).offset(skip).limit(limit).all()
        return items, total

    def unread_count(self, partenaire_id: str) -> int:
        count = self.db.query(func.count(Notification.id)).filter(
            Notification.partenaire_id == partenaire_id,
            Notification.lu == False,  # noqa: E712
        ).scalar()
        return count or 0

    def mark_read(self, partenaire_id: str, notification_id: str) -> Optional[Notification]:
        """Marque une notification comme lue. None si elle n'appartient pas au partenaire."""
        notification = self._query(partenaire_id).filter(Notification.id == notification_id).first()
        if not notification:
            return None
        if not notification.lu:
            notification.lu = True
            notification.read_at = datetime.utcnow()
            self.db.commit()
            self.db.refresh(notification)
        return notification

    def mark_all_read(self, partenaire_id: str) -> int:
        notifications = self._query(partenaire_id).filter(Notification.lu == False).all()  # noqa: E712
        now = datetime.utcnow()
        for notif in notifications:
            notif.lu = True
            notif.read_at = now
        self.db.commit()

        logger.info(
            f"Toutes les notifications ({len(notifications)}) marquées comme lues "
            f"pour le partenaire {partenaire_id}"
        )
        return len(notifications)
