"""
Tests unitaires de la résolution des niveaux hiérarchiques.
"""

import pytest

from app.models.enums import Qualification
from app.services.hierarchy.levels import (
    GROUP_TIERS,
    UNRANKED_LEVEL,
    as_qualification,
    is_group_tier,
    level_name,
    level_of,
    tier_for_level,
)


class TestLevelOf:
    """Tests pour level_of()."""

    @pytest.mark.parametrize("qualification, expected", [
        (Qualification.RESPONSABLE_EGLISE, 0),
        (Qualification.RESPONSABLE_RESEAU, 1),
        (Qualification.QUALIFICATION_12, 2),
        (Qualification.QUALIFICATION_144, 3),
        (Qualification.QUALIFICATION_1728, 4),
        (Qualification.QUALIFICATION_20738, 5),
        (Qualification.QUALIFICATION_248832, 6),
    ])
    def test_ranked_qualifications(self, qualification, expected):
        assert level_of(qualification) == expected

    def test_accepts_raw_strings(self):
        assert level_of("QUALIFICATION_1728") == 4

    @pytest.mark.parametrize("value", [
        Qualification.LEADER,
        Qualification.REGULIER,
        Qualification.RESPONSABLE_SESSION,
        "PAS_UNE_QUALIFICATION",
        "",
        None,
    ])
    def test_unranked_values_fall_back(self, value):
        """Toute valeur hors barème retombe sur le niveau par défaut, sans erreur."""
        assert level_of(value) == UNRANKED_LEVEL

    def test_unknown_string_is_not_converted(self):
        assert as_qualification("INCONNUE") is None
        assert as_qualification("LEADER") is Qualification.LEADER


class TestGroupTiers:
    """Tests des paliers de GR (niveaux 2 à 6)."""

    def test_tiers_are_ordered_by_level(self):
        assert [level_of(q) for q in GROUP_TIERS] == [2, 3, 4, 5, 6]

    def test_is_group_tier(self):
        assert is_group_tier(Qualification.QUALIFICATION_144)
        assert is_group_tier("QUALIFICATION_248832")
        assert not is_group_tier(Qualification.RESPONSABLE_RESEAU)
        assert not is_group_tier(Qualification.LEADER)
        assert not is_group_tier(None)

    def test_tier_for_level(self):
        assert tier_for_level(2) is Qualification.QUALIFICATION_12
        assert tier_for_level(6) is Qualification.QUALIFICATION_248832
        assert tier_for_level(1) is None
        assert tier_for_level(7) is None


class TestLevelName:

    def test_known_levels(self):
        assert level_name(0) == "Responsable d'église"
        assert level_name(1) == "Responsable de réseau"
        assert level_name(4) == "Responsable de GR (1728)"

    def test_unknown_level(self):
        assert level_name(9) == "Niveau 9"
