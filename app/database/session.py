"""
Configuration de la session SQLAlchemy - Connexion PostgreSQL
Fournit l'engine, la factory de sessions, et la dependency FastAPI
"""
import logging
from typing import Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session

from app.core.config import settings

logger = logging.getLogger(__name__)


# === 1. ENGINE ===
#
# Pool de connexions réutilisables. Les options PostgreSQL ne sont
# appliquées que si l'URL pointe vers PostgreSQL (SQLite en local/tests).

def _engine_options(database_url: str) -> dict:
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": 5,
        "max_overflow": 10,
        "pool_timeout": 30,
        "pool_recycle": 1800,      # Recycler les connexions après 30 min
        "pool_pre_ping": True,
        "connect_args": {
            "application_name": "chaine_impact",
            "options": "-c timezone=UTC",
        },
    }


engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.ENVIRONMENT == "development" and settings.DEBUG,
    **_engine_options(settings.DATABASE_URL),
)


# === 2. SESSION LOCAL ===
#
# Une session = une unité de travail. Les services font un seul commit
# par mutation (cascade de suppression comprise).

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    expire_on_commit=False,   # Garder les objets accessibles après commit
)


# === 3. DÉPENDANCE FASTAPI ===

def get_db() -> Generator[Session, None, None]:
    """
    Dépendance FastAPI : une session par requête.

    Commit si la requête s'est bien passée, rollback sinon.

    Example:
        @router.get("/networks")
        async def list_networks(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


class db_session:
    """
    Context manager pour utiliser une session hors FastAPI (scripts, init).

    Usage:
        with db_session() as db:
            ImpactChainRebuilder(db).rebuild(church_id)
            # Commit automatique si pas d'erreur
    """

    def __init__(self, commit_on_exit: bool = True):
        self.db: Optional[Session] = None
        self.commit_on_exit = commit_on_exit

    def __enter__(self) -> Session:
        self.db = SessionLocal()
        return self.db

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None and self.commit_on_exit:
                self.db.commit()
            else:
                self.db.rollback()
        finally:
            self.db.close()

        # Propager l'exception éventuelle
        return False


# === 4. VÉRIFICATION DE CONNEXION ===

def check_database_connection() -> bool:
    """
    Vérifie que la connexion à la base de données fonctionne.

    Utilisé par le health check.
    """
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"❌ Erreur de connexion à la base de données : {e}")
        return False
