"""
ChaineImpact Models - Export centralisé de tous les modèles SQLAlchemy.

Ce fichier permet d'importer tous les modèles depuis un seul endroit :
    from app.models import User, Church, Network, Group, ImpactChain, ...

Structure des sous-dossiers :
    user/       - Membres (User)
    church/     - Églises (Church)
    network/    - Réseaux et compagnons d'œuvre (Network, NetworkCompanion)
    group/      - GR, membres et historique (Group, GroupMember, GroupMemberHistory)
    sessions/   - Sessions et unités (ChurchSession, Unit, UnitMember, UnitMemberHistory)
    hierarchy/  - Chaîne d'impact et registre des responsabilités
"""

# === Enums ===
from app.models.enums import (
    UserRole,
    Qualification,
    EntityKind,
    MembershipAction,
    GROUP_EXCLUDED_QUALIFICATIONS,
    UNIT_EXCLUDED_QUALIFICATIONS,
)

# === Mixins ===
from app.models.mixins import TimestampMixin, ResponsablePairMixin

# === Modèles ===
from app.models.user import User
from app.models.church import Church
from app.models.network import Network, NetworkCompanion
from app.models.group import Group, GroupMember, GroupMemberHistory
from app.models.sessions import ChurchSession, Unit, UnitMember, UnitMemberHistory
from app.models.hierarchy import ImpactChain, ResponsibilityAssignment

__all__ = [
    # Enums
    "UserRole",
    "Qualification",
    "EntityKind",
    "MembershipAction",
    "GROUP_EXCLUDED_QUALIFICATIONS",
    "UNIT_EXCLUDED_QUALIFICATIONS",
    # Mixins
    "TimestampMixin",
    "ResponsablePairMixin",
    # Modèles
    "User",
    "Church",
    "Network",
    "NetworkCompanion",
    "Group",
    "GroupMember",
    "GroupMemberHistory",
    "ChurchSession",
    "Unit",
    "UnitMember",
    "UnitMemberHistory",
    "ImpactChain",
    "ResponsibilityAssignment",
]
