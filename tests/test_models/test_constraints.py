"""
Tests des modèles : contraintes d'unicité et helpers.
"""

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models import (
    EntityKind,
    GroupMember,
    ImpactChain,
    Network,
    NetworkCompanion,
    Qualification,
    ResponsibilityAssignment,
    User,
    UserRole,
)


class TestUniqueConstraints:

    def test_email_is_unique(self, db_session: Session, make_user):
        make_user("Premier", email="unique@test.fr")
        db_session.add(User(username="Second", email="unique@test.fr"))
        with pytest.raises(IntegrityError):
            db_session.flush()

    def test_one_group_per_member(self, db_session: Session, church, make_user, make_network, make_group):
        network = make_network(church, make_user("Nina Roux"))
        group_a = make_group(network, make_user("Alice Durand"))
        group_b = make_group(network, make_user("Bob Leroy"))
        dan = make_user("Dan Morel")

        db_session.add(GroupMember(group_id=group_a.id, user_id=dan.id))
        db_session.flush()
        db_session.add(GroupMember(group_id=group_b.id, user_id=dan.id))
        with pytest.raises(IntegrityError):
            db_session.flush()

    def test_one_network_per_companion(self, db_session: Session, church, make_user, make_network):
        net_a = make_network(church, make_user("Resp A"))
        net_b = make_network(church, make_user("Resp B"))
        carla = make_user("Carla Bruni")

        db_session.add(NetworkCompanion(network_id=net_a.id, user_id=carla.id))
        db_session.flush()
        db_session.add(NetworkCompanion(network_id=net_b.id, user_id=carla.id))
        with pytest.raises(IntegrityError):
            db_session.flush()

    def test_one_chain_row_per_user_level_church(self, db_session: Session, church, make_user):
        user = make_user("Eve Seule")
        db_session.add(ImpactChain(
            user_id=user.id, niveau=2, eglise_id=church.id, qualification=Qualification.QUALIFICATION_12
        ))
        db_session.flush()
        db_session.add(ImpactChain(
            user_id=user.id, niveau=2, eglise_id=church.id, qualification=Qualification.QUALIFICATION_12
        ))
        with pytest.raises(IntegrityError):
            db_session.flush()

    def test_one_holder_per_slot(self, db_session: Session, make_user):
        a = make_user("Slot A")
        b = make_user("Slot B")
        db_session.add(ResponsibilityAssignment(user_id=a.id, entity_kind=EntityKind.GROUP, entity_id=1, slot=1))
        db_session.flush()
        db_session.add(ResponsibilityAssignment(user_id=b.id, entity_kind=EntityKind.GROUP, entity_id=1, slot=1))
        with pytest.raises(IntegrityError):
            db_session.flush()


class TestHelpers:

    def test_responsable_ids(self):
        network = Network(nom="Réseau", eglise_id=1, responsable1_id=10, responsable2_id=None)
        assert network.responsable_ids == [10]
        assert network.is_responsable(10)
        assert not network.is_responsable(11)

        network.responsable2_id = 11
        assert network.responsable_ids == [10, 11]

    def test_has_role(self):
        user = User(username="Gestion", email="gestion@test.fr", role=UserRole.MANAGER)
        assert user.has_role("ADMIN", "MANAGER")
        assert user.has_role(UserRole.MANAGER)
        assert not user.has_role("ADMIN")
        assert not user.is_admin

    def test_defaults_after_insert(self, db_session: Session):
        user = User(username="Défauts", email="defauts@test.fr")
        db_session.add(user)
        db_session.flush()
        assert user.role == UserRole.MEMBRE
        assert user.qualification == Qualification.EN_INTEGRATION
        assert user.is_active is True
