"""
Enums ChaineImpact - Définitions de tous les types énumérés.

Ce module centralise tous les enums utilisés dans les modèles SQLAlchemy.
Ils sont convertis en types ENUM PostgreSQL via SQLEnum.
"""

from enum import Enum


# =============================================================================
# MODULE: USER - Accès système
# =============================================================================

class UserRole(str, Enum):
    """Rôle d'accès à l'application (indépendant du rang hiérarchique)."""
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    SUPERVISEUR = "SUPERVISEUR"
    COLLECTEUR_RESEAU = "COLLECTEUR_RESEAU"
    COLLECTEUR_CULTE = "COLLECTEUR_CULTE"
    MEMBRE = "MEMBRE"


# =============================================================================
# MODULE: HIÉRARCHIE - Qualifications
# =============================================================================

class Qualification(str, Enum):
    """
    Rang courant d'un utilisateur dans la hiérarchie.

    Valeur dérivée (cache) : elle est recalculée par le QualificationService
    à chaque création, transfert ou suppression de responsabilité.
    """
    # Membres
    MEMBRE = "MEMBRE"
    EN_INTEGRATION = "EN_INTEGRATION"
    REGULIER = "REGULIER"
    IRREGULIER = "IRREGULIER"
    MEMBRE_IRREGULIER = "MEMBRE_IRREGULIER"

    # Encadrement
    LEADER = "LEADER"
    LEADERSHIP = "LEADERSHIP"
    RESPONSABLE_GR = "RESPONSABLE_GR"
    GOUVERNANCE = "GOUVERNANCE"
    ECODIM = "ECODIM"
    RESPONSABLE_ECODIM = "RESPONSABLE_ECODIM"
    RESPONSABLE_DEPARTEMENT = "RESPONSABLE_DEPARTEMENT"

    # Niveaux 0 et 1 de la chaîne d'impact
    RESPONSABLE_EGLISE = "RESPONSABLE_EGLISE"
    RESPONSABLE_RESEAU = "RESPONSABLE_RESEAU"

    # Axe sessions / unités
    RESPONSABLE_SESSION = "RESPONSABLE_SESSION"
    RESPONSABLE_UNITE = "RESPONSABLE_UNITE"
    MEMBRE_SESSION = "MEMBRE_SESSION"

    # Paliers de GR (niveaux 2 à 6)
    QUALIFICATION_12 = "QUALIFICATION_12"
    QUALIFICATION_144 = "QUALIFICATION_144"
    QUALIFICATION_1728 = "QUALIFICATION_1728"
    QUALIFICATION_20738 = "QUALIFICATION_20738"
    QUALIFICATION_248832 = "QUALIFICATION_248832"


# Qualifications interdites à l'ajout comme membre de GR
GROUP_EXCLUDED_QUALIFICATIONS = frozenset({
    Qualification.GOUVERNANCE,
    Qualification.RESPONSABLE_RESEAU,
    Qualification.ECODIM,
    Qualification.RESPONSABLE_ECODIM,
})

# Qualifications interdites à l'ajout comme membre d'unité
UNIT_EXCLUDED_QUALIFICATIONS = frozenset({
    Qualification.GOUVERNANCE,
    Qualification.RESPONSABLE_SESSION,
})


# =============================================================================
# MODULE: HIÉRARCHIE - Responsabilités et historique
# =============================================================================

class EntityKind(str, Enum):
    """Type d'entité pouvant porter des responsables."""
    CHURCH = "CHURCH"
    NETWORK = "NETWORK"
    GROUP = "GROUP"
    SESSION = "SESSION"
    UNIT = "UNIT"


class MembershipAction(str, Enum):
    """Action tracée dans l'historique des membres (append-only)."""
    JOINED = "JOINED"
    LEFT = "LEFT"
