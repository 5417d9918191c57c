"""
Tests de la reconstruction de la chaîne d'impact.

Hiérarchie de référence (fixture `hierarchy`) :

    Past. Paul Martin        niveau 0 (responsable de l'église)
    └── Nina Roux            niveau 1 (responsable du réseau)
        └── Alice Durand     niveau 2 (GR QUALIFICATION_12)
            ├── Bob Leroy    niveau 3 (GR QUALIFICATION_144, supérieur Alice)
            └── Dan Morel    niveau 4 (QUALIFICATION_1728, membre du GR de Bob)
"""

import logging
from types import SimpleNamespace

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.models import ImpactChain, Qualification
from app.services.hierarchy.impact_chain import ImpactChainRebuilder, build_tree


def _chain_rows(db: Session, church_id: int) -> list[ImpactChain]:
    return list(db.execute(
        select(ImpactChain).where(ImpactChain.eglise_id == church_id).order_by(ImpactChain.niveau)
    ).scalars().all())


def _signature(rows: list[ImpactChain]) -> set[tuple]:
    """Contenu comparable des lignes, positions exclues."""
    return {
        (r.user_id, r.niveau, r.qualification, r.responsable_id, r.eglise_id, r.network_id, r.group_id)
        for r in rows
    }


@pytest.fixture
def hierarchy(church, pastor, make_user, make_network, make_group):
    nina = make_user("Nina Roux", church=church)
    alice = make_user("Alice Durand", church=church)
    bob = make_user("Bob Leroy", church=church)
    dan = make_user("Dan Morel", church=church, qualification=Qualification.QUALIFICATION_1728)

    network = make_network(church, nina)
    group_alice = make_group(network, alice)
    group_bob = make_group(
        network,
        bob,
        qualification=Qualification.QUALIFICATION_144,
        superieur_hierarchique_id=alice.id,
        members_ids=[dan.id],
    )
    return SimpleNamespace(
        church=church, pastor=pastor, nina=nina, alice=alice, bob=bob, dan=dan,
        network=network, group_alice=group_alice, group_bob=group_bob,
    )


class TestRebuild:

    def test_levels_and_superiors(self, db_session: Session, hierarchy):
        h = hierarchy
        entries = ImpactChainRebuilder(db_session).rebuild(h.church.id)
        by_user = {(e.user_id, e.niveau): e for e in entries}

        assert by_user[(h.pastor.id, 0)].responsable_id is None
        assert by_user[(h.nina.id, 1)].responsable_id == h.pastor.id
        assert by_user[(h.nina.id, 1)].network_id == h.network.id

        alice_row = by_user[(h.alice.id, 2)]
        assert alice_row.responsable_id == h.nina.id
        assert alice_row.group_id == h.group_alice.id

        # Supérieur explicite du GR
        assert by_user[(h.bob.id, 3)].responsable_id == h.alice.id
        assert by_user[(h.dan.id, 4)].responsable_id == h.alice.id
        assert by_user[(h.dan.id, 4)].group_id == h.group_bob.id

        assert len(entries) == 5

    def test_replaces_existing_rows(self, db_session: Session, hierarchy):
        rebuilder = ImpactChainRebuilder(db_session)
        rebuilder.upsert(
            hierarchy.dan.id, 6, hierarchy.church.id, qualification=Qualification.QUALIFICATION_248832
        )

        rebuilder.rebuild(hierarchy.church.id)

        levels = {(r.user_id, r.niveau) for r in _chain_rows(db_session, hierarchy.church.id)}
        assert (hierarchy.dan.id, 6) not in levels

    def test_is_idempotent(self, db_session: Session, hierarchy):
        rebuilder = ImpactChainRebuilder(db_session)
        rebuilder.rebuild(hierarchy.church.id)
        first = _signature(_chain_rows(db_session, hierarchy.church.id))

        rebuilder.rebuild(hierarchy.church.id)
        second = _signature(_chain_rows(db_session, hierarchy.church.id))

        assert first == second

    def test_other_church_untouched(self, db_session: Session, hierarchy, make_church, make_user, make_network):
        other_pastor = make_user("Past. Marc Blanc")
        other = make_church("Église Lyon", responsable=other_pastor)
        make_network(other, make_user("Resp Lyon", church=other))
        before = _signature(_chain_rows(db_session, other.id))
        assert len(before) == 2

        ImpactChainRebuilder(db_session).rebuild(hierarchy.church.id)

        assert _signature(_chain_rows(db_session, other.id)) == before

    def test_church_without_structure(self, db_session: Session, make_church):
        church = make_church("Église vide")
        assert ImpactChainRebuilder(db_session).rebuild(church.id) == []

    def test_missing_church(self, db_session: Session):
        with pytest.raises(NotFoundError):
            ImpactChainRebuilder(db_session).rebuild(424242)

    def test_holder_without_group(self, db_session: Session, church, make_user, caplog):
        """Qualification de palier sans GR : nœud sans supérieur, avertissement."""
        lonely = make_user("Eve Seule", church=church, qualification=Qualification.QUALIFICATION_144)

        with caplog.at_level(logging.WARNING):
            entries = ImpactChainRebuilder(db_session).rebuild(church.id)

        row = next(e for e in entries if e.user_id == lonely.id)
        assert row.niveau == 3
        assert row.responsable_id is None
        assert row.group_id is None
        assert "sans GR" in caplog.text

    def test_one_node_per_user(self, db_session: Session, church, make_user, make_network, make_group):
        """Le palier du GR dirigé l'emporte sur la qualification détenue."""
        network = make_network(church, make_user("Nina Roux", church=church))
        bob = make_user("Bob Leroy", church=church)
        group = make_group(network, bob)
        bob.qualification = Qualification.QUALIFICATION_144
        db_session.commit()

        entries = ImpactChainRebuilder(db_session).rebuild(church.id)

        bob_rows = [(e.niveau, e.group_id) for e in entries if e.user_id == bob.id]
        assert bob_rows == [(2, group.id)]


class TestRebuildSafely:

    def test_without_church(self, db_session: Session):
        assert ImpactChainRebuilder(db_session).rebuild_safely(None) is False

    def test_success(self, db_session: Session, hierarchy):
        assert ImpactChainRebuilder(db_session).rebuild_safely(hierarchy.church.id) is True

    def test_failure_is_swallowed(self, db_session: Session, church, monkeypatch, caplog):
        rebuilder = ImpactChainRebuilder(db_session)

        def boom(church_id):
            raise RuntimeError("base indisponible")

        monkeypatch.setattr(rebuilder, "rebuild", boom)

        with caplog.at_level(logging.ERROR):
            assert rebuilder.rebuild_safely(church.id) is False
        assert "en échec" in caplog.text

    def test_disabled_by_settings(self, db_session: Session, church, monkeypatch):
        from app.core.config import settings
        monkeypatch.setattr(settings, "IMPACT_CHAIN_AUTO_REBUILD", False)
        assert ImpactChainRebuilder(db_session).rebuild_safely(church.id) is False


class TestTargetedOperations:

    def test_delete_for_group(self, db_session: Session, hierarchy):
        rebuilder = ImpactChainRebuilder(db_session)
        deleted = rebuilder.delete_for_group(hierarchy.group_bob.id)
        assert deleted == 2  # Bob et Dan
        remaining = {r.user_id for r in _chain_rows(db_session, hierarchy.church.id)}
        assert hierarchy.alice.id in remaining

    def test_delete_for_network_level(self, db_session: Session, hierarchy):
        deleted = ImpactChainRebuilder(db_session).delete_for_network_level(hierarchy.network.id)
        assert deleted == 1
        rows = _chain_rows(db_session, hierarchy.church.id)
        assert all(r.niveau != 1 for r in rows)
        assert any(r.network_id == hierarchy.network.id for r in rows)

    def test_upsert_updates_in_place(self, db_session: Session, church, make_user):
        user = make_user("Fanny Noir", church=church)
        rebuilder = ImpactChainRebuilder(db_session)

        first = rebuilder.upsert(user.id, 2, church.id, qualification=Qualification.QUALIFICATION_12)
        second = rebuilder.upsert(user.id, 2, church.id, position_x=1)

        assert first.id == second.id
        assert second.position_x == 1
        assert second.position_y == 2


class TestBuildTree:
    """Construction d'arbre sur des nœuds en mémoire."""

    @staticmethod
    def _node(id, user_id, responsable_id, niveau):
        return ImpactChain(
            id=id, user_id=user_id, responsable_id=responsable_id, niveau=niveau,
            eglise_id=1, position_x=0, position_y=niveau,
        )

    def test_nesting(self):
        nodes = [
            self._node(1, 10, None, 0),
            self._node(2, 20, 10, 1),
            self._node(3, 30, 20, 2),
            self._node(4, 40, 20, 2),
        ]
        tree = build_tree(nodes, names={10: "Paul"})

        assert len(tree) == 1
        assert tree[0]["username"] == "Paul"
        network_node = tree[0]["children"][0]
        assert [c["user_id"] for c in network_node["children"]] == [30, 40]

    def test_orphan_becomes_root(self):
        """Un responsable sans nœud rend le nœud racine."""
        tree = build_tree([self._node(1, 10, 999, 2)])
        assert [n["user_id"] for n in tree] == [10]

    def test_cycle_terminates(self):
        nodes = [
            self._node(1, 10, None, 0),
            self._node(2, 20, 10, 1),
            # Le même utilisateur 10 réapparaît sous 20 : cycle 10 -> 20 -> 10
            self._node(3, 10, 20, 2),
        ]
        tree = build_tree(nodes)

        level1 = tree[0]["children"]
        assert [n["id"] for n in level1] == [2]
        level2 = level1[0]["children"]
        assert [n["id"] for n in level2] == [3]
        assert level2[0]["children"] == []
