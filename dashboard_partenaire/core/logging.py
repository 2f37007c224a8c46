"""
Configuration du système de logging du tableau de bord partenaire.
Utilise Loguru: console, fichier applicatif, fichier d'erreurs et journal
des synchronisations Lengo Pay.
"""

import sys
from pathlib import Path
from typing import Optional, Dict, Any
from loguru import logger


CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"

# Enregistrements portant un pay_id: synchronisations et webhooks
RECONCILIATION_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {extra[source]: <10} | {extra[pay_id]} | "
    "{extra[ancien_statut]} -> {extra[nouveau_statut]} | {message}"
)


def _is_reconciliation_record(record: Dict[str, Any]) -> bool:
    return "event_type" in record["extra"] and "pay_id" in record["extra"]


def setup_logging(
    log_level: str = "INFO",
    log_file: str = "logs/dashboard_partenaire.log",
    rotation: str = "10 MB",
    retention: str = "30 days",
) -> None:
    """
    Configure le système de logging de l'application.

    Les fichiers d'erreurs et de synchronisation sont créés à côté de log_file.

    Args:
        log_level: Niveau de log (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Chemin du fichier de log principal
        rotation: Taille maximale avant rotation
        retention: Durée de rétention des logs
    """
    logger.remove()

    logger.add(
        sys.stdout,
        format=CONSOLE_FORMAT,
        level=log_level,
        colorize=True,
        backtrace=True,
        diagnose=True,
    )

    log_dir = Path(log_file).parent
    log_dir.mkdir(parents=True, exist_ok=True)
    file_options = dict(
        rotation=rotation,
        retention=retention,
        compression="zip",
        enqueue=True,
    )

    logger.add(log_file, format=FILE_FORMAT, level=log_level, backtrace=True, **file_options)
    logger.add(
        str(log_dir / "errors.log"),
        format=FILE_FORMAT,
        level="ERROR",
        backtrace=True,
        diagnose=True,
        **file_options,
    )
    # Piste d'audit des changements de statut, conservée même en niveau WARNING
    logger.add(
        str(log_dir / "reconciliation.log"),
        format=RECONCILIATION_FORMAT,
        level="INFO",
        filter=_is_reconciliation_record,
        **file_options,
    )

    logger.debug(f"Logging initialisé (niveau {log_level}, fichier {log_file})")


def log_request(
    method: str,
    url: str,
    status_code: int,
    duration_ms: float,
    user_id: Optional[str] = None,
) -> None:
    """
    Log une requête HTTP. Le niveau suit le code de réponse:
    ERROR pour 5xx, WARNING pour 4xx, INFO sinon.
    """
    if status_code >= 500:
        level = "ERROR"
    elif status_code >= 400:
        level = "WARNING"
    else:
        level = "INFO"

    who = f" admin={user_id}" if user_id else ""
    logger.bind(
        method=method,
        url=url,
        status_code=status_code,
        duration_ms=duration_ms,
        user_id=user_id,
    ).log(level, f"{method} {url} -> {status_code} en {duration_ms:.1f}ms{who}")


def log_database_query(
    query: str,
    duration_ms: float,
    slow_threshold_ms: float = 200.0,
) -> None:
    """Trace SQL en DEBUG, remontée en WARNING au-delà de slow_threshold_ms."""
    statement = " ".join(query.split())
    if duration_ms >= slow_threshold_ms:
        logger.warning(f"Requête SQL lente ({duration_ms:.0f}ms): {statement[:300]}")
    else:
        logger.debug(f"SQL ({duration_ms:.2f}ms): {statement[:120]}")


def log_reconciliation_event(
    event_type: str,
    pay_id: Optional[str],
    ancien_statut: Optional[str],
    nouveau_statut: Optional[str],
    source: str,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Log un événement de synchronisation de statut de remboursement.

    Args:
        event_type: Type d'événement (verification, synchronisation, conflit, webhook)
        pay_id: Identifiant de paiement Lengo Pay
        ancien_statut: Statut stocké avant l'opération
        nouveau_statut: Statut résolu après l'opération
        source: Origine (lecture, force_sync, webhook)
        details: Détails supplémentaires
    """
    logger.bind(
        event_type=event_type,
        pay_id=pay_id,
        ancien_statut=ancien_statut,
        nouveau_statut=nouveau_statut,
        source=source,
        details=details,
    ).info(
        f"Remboursement {event_type} [{source}]: {pay_id} - "
        f"{ancien_statut} -> {nouveau_statut}"
    )


def log_notification_emitted(
    notification_type: str,
    partenaire_id: Optional[str],
    created: bool,
    titre: str = "",
) -> None:
    """
    Log la création (ou la déduplication) d'une notification partenaire.
    """
    if created:
        logger.info(
            f"Notification {notification_type} pour partenaire {partenaire_id}: {titre[:50]}"
        )
    else:
        logger.debug(
            f"Notification {notification_type} déjà émise pour partenaire {partenaire_id}, ignorée"
        )


__all__ = [
    "logger",
    "setup_logging",
    "log_request",
    "log_database_query",
    "log_reconciliation_event",
    "log_notification_emitted",
]
