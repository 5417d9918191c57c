"""
Moteur de cohérence de la hiérarchie.

- levels : qualification -> niveau (0 à 6)
- naming : noms générés des GR et unités
- qualification : transitions de qualification (promotion / rétrogradation)
- responsibilities : unicité des responsabilités par type d'entité
- impact_chain : reconstruction de la chaîne d'impact et arbre imbriqué
"""

from app.services.hierarchy.impact_chain import ImpactChainRebuilder, build_tree, group_superior_id
from app.services.hierarchy.levels import UNRANKED_LEVEL, level_of, level_name, is_group_tier
from app.services.hierarchy.naming import generate_group_name, generate_unit_name
from app.services.hierarchy.qualification import QualificationService
from app.services.hierarchy.responsibilities import (
    ResponsibilityRegistry,
    ResponsableAlreadyAssignedError,
)

__all__ = [
    "ImpactChainRebuilder",
    "build_tree",
    "group_superior_id",
    "UNRANKED_LEVEL",
    "level_of",
    "level_name",
    "is_group_tier",
    "generate_group_name",
    "generate_unit_name",
    "QualificationService",
    "ResponsibilityRegistry",
    "ResponsableAlreadyAssignedError",
]
