"""
Tests du QualificationService : promotions, rétrogradations et nettoyages.
"""

import logging

import pytest
from sqlalchemy.orm import Session

from app.core.exceptions import UserNotFoundError
from app.models import Qualification, UnitMember
from app.services.hierarchy.qualification import QualificationService


class TestSetQualification:

    def test_overwrites_value(self, db_session: Session, make_user):
        user = make_user("Alice Durand")
        QualificationService(db_session).set_qualification(user.id, Qualification.REGULIER)
        assert user.qualification == Qualification.REGULIER

    def test_unknown_user(self, db_session: Session):
        with pytest.raises(UserNotFoundError) as exc_info:
            QualificationService(db_session).set_qualification(99999, Qualification.LEADER)
        assert exc_info.value.status_code == 404


class TestResponsableSwaps:
    """Promotion des entrants, rétrogradation des sortants."""

    def test_group_swap(self, db_session: Session, make_user):
        alice = make_user("Alice Durand", qualification=Qualification.LEADER)
        bob = make_user("Bob Leroy", qualification=Qualification.REGULIER)

        QualificationService(db_session).update_group_responsables_qualification(
            1, alice.id, None, bob.id, None
        )

        assert alice.qualification == Qualification.REGULIER
        assert bob.qualification == Qualification.LEADER

    def test_slot_move_is_a_noop(self, db_session: Session, make_user):
        """Passer du slot 1 au slot 2 ne rétrograde personne."""
        alice = make_user("Alice Durand", qualification=Qualification.RESPONSABLE_RESEAU)
        bob = make_user("Bob Leroy", qualification=Qualification.RESPONSABLE_RESEAU)

        QualificationService(db_session).update_network_responsables_qualification(
            1, alice.id, bob.id, bob.id, alice.id
        )

        assert alice.qualification == Qualification.RESPONSABLE_RESEAU
        assert bob.qualification == Qualification.RESPONSABLE_RESEAU

    def test_network_demotion_to_leader(self, db_session: Session, make_user):
        alice = make_user("Alice Durand", qualification=Qualification.RESPONSABLE_RESEAU)
        carol = make_user("Carol Petit")

        QualificationService(db_session).update_network_responsables_qualification(
            1, alice.id, None, carol.id, None
        )

        assert alice.qualification == Qualification.LEADER
        assert carol.qualification == Qualification.RESPONSABLE_RESEAU

    def test_session_and_unit_transitions(self, db_session: Session, make_user):
        old_session_resp = make_user("Ancien Session", qualification=Qualification.RESPONSABLE_SESSION)
        old_unit_resp = make_user("Ancien Unite", qualification=Qualification.RESPONSABLE_UNITE)
        newcomer = make_user("Nouveau Venu")
        service = QualificationService(db_session)

        service.update_session_responsables_qualification(1, old_session_resp.id, None, newcomer.id, None)
        assert old_session_resp.qualification == Qualification.LEADER
        assert newcomer.qualification == Qualification.RESPONSABLE_SESSION

        service.update_unit_responsables_qualification(1, old_unit_resp.id, None, None, None)
        assert old_unit_resp.qualification == Qualification.MEMBRE_SESSION


class TestMembershipTransitions:

    def test_membership_marks(self, db_session: Session, make_user):
        user = make_user("Dan Morel", qualification=Qualification.REGULIER)
        service = QualificationService(db_session)

        service.mark_group_member_left(user.id)
        assert user.qualification == Qualification.MEMBRE_IRREGULIER

        service.mark_unit_member_joined(user.id)
        assert user.qualification == Qualification.MEMBRE_SESSION

        service.mark_unit_member_left(user.id)
        assert user.qualification == Qualification.IRREGULIER


class TestCleanups:
    """Nettoyages avant suppression : jamais bloquants."""

    def test_cleanup_group(self, db_session: Session, church, make_user, make_network, make_group):
        network = make_network(church, make_user("Resp Reseau", church=church))
        alice = make_user("Alice Durand", church=church)
        bob = make_user("Bob Leroy", church=church)
        group = make_group(network, alice, bob)

        QualificationService(db_session).cleanup_group_qualification(group.id)

        assert alice.qualification == Qualification.REGULIER
        assert bob.qualification == Qualification.REGULIER

    def test_cleanup_missing_group_is_ignored(self, db_session: Session, caplog):
        with caplog.at_level(logging.WARNING):
            QualificationService(db_session).cleanup_group_qualification(424242)
        assert "introuvable" in caplog.text

    def test_cleanup_failure_is_logged_and_swallowed(
            self, db_session: Session, church, make_user, make_network, monkeypatch, caplog
    ):
        """Une erreur de nettoyage est annulée (SAVEPOINT) puis ignorée."""
        alice = make_user("Alice Durand", church=church)
        network = make_network(church, alice)
        service = QualificationService(db_session)

        def boom(user_id):
            raise RuntimeError("panne simulée")

        monkeypatch.setattr(service, "demote_former_network_responsible", boom)

        with caplog.at_level(logging.ERROR):
            service.cleanup_network_qualification(network.id)

        assert "Nettoyage des qualifications en échec" in caplog.text
        # La session reste utilisable
        db_session.refresh(alice)
        assert alice.qualification == Qualification.RESPONSABLE_RESEAU

    def test_cleanup_session_resets_units(
            self, db_session: Session, church, make_user, make_session, make_unit
    ):
        session_resp = make_user("Resp Session", church=church)
        unit_resp = make_user("Resp Unite", church=church)
        member = make_user("Membre Unite", church=church)
        church_session = make_session(church, session_resp)
        make_unit(church_session, unit_resp, members_ids=[member.id])

        QualificationService(db_session).cleanup_session_qualification(church_session.id)

        assert session_resp.qualification == Qualification.LEADER
        assert unit_resp.qualification == Qualification.IRREGULIER
        assert member.qualification == Qualification.IRREGULIER

    def test_cleanup_unit(self, db_session: Session, church, make_user, make_session, make_unit):
        church_session = make_session(church, make_user("Resp Session", church=church))
        unit_resp = make_user("Resp Unite", church=church)
        member = make_user("Membre Unite", church=church)
        unit = make_unit(church_session, unit_resp, members_ids=[member.id])
        assert db_session.query(UnitMember).filter_by(unit_id=unit.id).count() == 2

        QualificationService(db_session).cleanup_unit_qualification(unit.id)

        assert unit_resp.qualification == Qualification.IRREGULIER
        assert member.qualification == Qualification.IRREGULIER
