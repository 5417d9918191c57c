"""
Résolution des niveaux hiérarchiques.

Chaque qualification "rangée" correspond à une profondeur de la chaîne
d'impact :

    RESPONSABLE_EGLISE    -> 0
    RESPONSABLE_RESEAU    -> 1
    QUALIFICATION_12      -> 2
    QUALIFICATION_144     -> 3
    QUALIFICATION_1728    -> 4
    QUALIFICATION_20738   -> 5
    QUALIFICATION_248832  -> 6

Toute autre valeur (LEADER, REGULIER, chaîne inconnue...) retombe sur
UNRANKED_LEVEL. Ce repli n'est pas une erreur.
"""

from typing import Optional, Union

from app.models.enums import Qualification

UNRANKED_LEVEL = 0

CHURCH_LEVEL = 0
NETWORK_LEVEL = 1
MIN_GROUP_LEVEL = 2
MAX_GROUP_LEVEL = 6

LEVEL_BY_QUALIFICATION: dict[Qualification, int] = {
    Qualification.RESPONSABLE_EGLISE: CHURCH_LEVEL,
    Qualification.RESPONSABLE_RESEAU: NETWORK_LEVEL,
    Qualification.QUALIFICATION_12: 2,
    Qualification.QUALIFICATION_144: 3,
    Qualification.QUALIFICATION_1728: 4,
    Qualification.QUALIFICATION_20738: 5,
    Qualification.QUALIFICATION_248832: 6,
}

# Paliers de GR, du plus haut (2) au plus profond (6)
GROUP_TIERS: tuple[Qualification, ...] = tuple(
    q for q, level in sorted(LEVEL_BY_QUALIFICATION.items(), key=lambda item: item[1])
    if level >= MIN_GROUP_LEVEL
)

LEVEL_NAMES: dict[int, str] = {
    0: "Responsable d'église",
    1: "Responsable de réseau",
    2: "Responsable de GR (12)",
    3: "Responsable de GR (144)",
    4: "Responsable de GR (1728)",
    5: "Responsable de GR (20738)",
    6: "Responsable de GR (248832)",
}


def as_qualification(value: Union[Qualification, str, None]) -> Optional[Qualification]:
    """Convertit une chaîne en Qualification, None si hors vocabulaire."""
    if value is None or isinstance(value, Qualification):
        return value
    try:
        return Qualification(value)
    except ValueError:
        return None


def level_of(qualification: Union[Qualification, str, None]) -> int:
    """Niveau hiérarchique d'une qualification (UNRANKED_LEVEL par défaut)."""
    resolved = as_qualification(qualification)
    if resolved is None:
        return UNRANKED_LEVEL
    return LEVEL_BY_QUALIFICATION.get(resolved, UNRANKED_LEVEL)


def is_group_tier(qualification: Union[Qualification, str, None]) -> bool:
    """Vrai pour les paliers de GR valides (niveaux 2 à 6)."""
    return as_qualification(qualification) in GROUP_TIERS


def tier_for_level(level: int) -> Optional[Qualification]:
    """Palier de GR correspondant à un niveau 2..6."""
    for qualification in GROUP_TIERS:
        if LEVEL_BY_QUALIFICATION[qualification] == level:
            return qualification
    return None


def level_name(level: int) -> str:
    return LEVEL_NAMES.get(level, f"Niveau {level}")
