"""
Tests du nommage automatique des GR et des unités.
"""

from app.models import User
from app.services.hierarchy.naming import (
    clean_name,
    generate_group_name,
    generate_unit_name,
    responsable_display_name,
)


class TestResponsableDisplayName:

    def test_first_word(self):
        assert responsable_display_name("Jean Dupont") == "Jean"

    def test_status_prefix_is_skipped(self):
        assert responsable_display_name("Past. Jean-Marc Dupont") == "Jean-Marc"
        assert responsable_display_name("MC. Awa Diallo") == "Awa"

    def test_falls_back_to_pseudo(self):
        assert responsable_display_name("Resp.", pseudo="kofi") == "kofi"
        assert responsable_display_name("", pseudo="kofi") == "kofi"
        assert responsable_display_name(None) is None


class TestCleanName:

    def test_removes_forbidden_characters(self):
        assert clean_name("Jean-Marc") == "JeanMarc"
        assert clean_name("O'Brien!") == "OBrien"

    def test_keeps_accents_and_replaces_spaces(self):
        assert clean_name("Éloïse  Anne") == "Éloïse_Anne"

    def test_empty_result(self):
        assert clean_name("!!!") is None
        assert clean_name(None) is None


class TestGenerateNames:

    def test_group_name_from_responsable1(self):
        alice = User(username="Past. Alice Martin", pseudo="am")
        assert generate_group_name([alice, None]) == "GR_Alice"

    def test_group_name_uses_responsable2_when_first_unusable(self):
        empty = User(username="PE.", pseudo=None)
        bob = User(username="Bob Leroy")
        assert generate_group_name([empty, bob]) == "GR_Bob"

    def test_group_name_without_responsable(self):
        assert generate_group_name([None, None]) == "GR_Sans_Responsable"

    def test_unit_prefix(self):
        carol = User(username="Carol Petit")
        assert generate_unit_name([carol]) == "Unité_Carol"
        assert generate_unit_name([]) == "Unité_Sans_Responsable"
