"""
Import centralisé de tous les modèles.

Ce fichier importe tous les modèles pour que SQLAlchemy et Alembic
puissent découvrir les métadonnées de toutes les tables.

Usage dans Alembic (env.py):
    from app.models.base import Base
    target_metadata = Base.metadata
"""

from app.database.base_class import Base

# L'ordre suit les dépendances de clés étrangères
from app.models.user.user import User  # noqa: F401
from app.models.church.church import Church  # noqa: F401
from app.models.network.network import Network, NetworkCompanion  # noqa: F401
from app.models.group.group import Group  # noqa: F401
from app.models.group.group_member import GroupMember, GroupMemberHistory  # noqa: F401
from app.models.sessions.session import ChurchSession  # noqa: F401
from app.models.sessions.unit import Unit, UnitMember, UnitMemberHistory  # noqa: F401
from app.models.hierarchy.impact_chain import ImpactChain  # noqa: F401
from app.models.hierarchy.responsibility_assignment import ResponsibilityAssignment  # noqa: F401

__all__ = ["Base"]
