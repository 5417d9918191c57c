"""
Initialisation de la base de données ChaineImpact.

Crée (ou supprime) toutes les tables déclarées dans app/models/base.py.
En production, préférer les migrations Alembic (alembic upgrade head).

Usage:
    python -m app.database.init_db          # création
    python -m app.database.init_db --drop   # suppression puis création
"""

import logging
import sys

from app.database.session import engine, check_database_connection
from app.models.base import Base

logger = logging.getLogger(__name__)


# =============================================================================
# CRÉATION / SUPPRESSION DES TABLES
# =============================================================================

def create_tables() -> list[str]:
    """
    Crée toutes les tables absentes.

    Returns:
        Noms des tables connues des métadonnées
    """
    Base.metadata.create_all(bind=engine)
    table_names = sorted(Base.metadata.tables.keys())
    logger.info(f"{len(table_names)} tables prêtes : {', '.join(table_names)}")
    return table_names


def drop_tables() -> None:
    """Supprime toutes les tables (irréversible)."""
    Base.metadata.drop_all(bind=engine)
    logger.warning("Toutes les tables ont été supprimées")


# =============================================================================
# POINT D'ENTRÉE
# =============================================================================

def main(argv: list[str]) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")

    if not check_database_connection():
        logger.error("Base de données injoignable, initialisation annulée")
        return 1

    if "--drop" in argv:
        drop_tables()
    create_tables()
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
