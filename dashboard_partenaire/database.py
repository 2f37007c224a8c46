"""
Accès à la base de données: moteur, sessions et modèle de base SQLAlchemy.
PostgreSQL en production, SQLite accepté pour le développement et les tests.
"""

from typing import Any, Dict, Generator
import time
import uuid

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import QueuePool

from dashboard_partenaire.config import settings
from dashboard_partenaire.core.logging import logger, log_database_query


def _engine_options(database_url: str) -> Dict[str, Any]:
    """SQLite n'accepte ni pool dimensionné ni partage de connexion entre threads par défaut."""
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "poolclass": QueuePool,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": 30,
        "pool_recycle": settings.DB_POOL_RECYCLE_SECONDS,
        "pool_pre_ping": True,
    }


engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def generate_id() -> str:
    """Identifiant texte (UUID4) utilisé comme clé primaire."""
    return str(uuid.uuid4())


@event.listens_for(engine, "before_cursor_execute")
def _start_timer(conn, cursor, statement, parameters, context, executemany):
    conn.info.setdefault("query_start_time", []).append(time.perf_counter())


@event.listens_for(engine, "after_cursor_execute")
def _log_duration(conn, cursor, statement, parameters, context, executemany):
    duration_ms = (time.perf_counter() - conn.info["query_start_time"].pop()) * 1000
    if settings.DEBUG or duration_ms >= settings.SLOW_QUERY_MS:
        log_database_query(statement, duration_ms, slow_threshold_ms=settings.SLOW_QUERY_MS)


def get_db() -> Generator[Session, None, None]:
    """
    Session par requête pour l'injection de dépendances FastAPI.
    Toute exception non traitée annule la transaction en cours.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Transaction annulée: {e}")
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    """
    Crée les tables manquantes. Réservé au développement:
    hors développement, le schéma est géré par Alembic.
    """
    import dashboard_partenaire.models  # noqa: F401

    logger.info("Création des tables (développement)")
    Base.metadata.create_all(bind=engine)


def check_db_connection() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.error(f"Base de données injoignable: {e}")
        return False


__all__ = [
    "engine",
    "SessionLocal",
    "Base",
    "generate_id",
    "get_db",
    "init_db",
    "check_db_connection",
]
