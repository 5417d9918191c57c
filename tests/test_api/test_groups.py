"""
Tests des endpoints /groups (GR, membres, historique).
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models import GroupMember, ImpactChain, NetworkCompanion, Qualification, User

API = "/api/v1/groups"


@pytest.fixture
def network(church, make_user, make_network):
    return make_network(church, make_user("Nina Roux", church=church))


class TestGroupCreate:

    def test_create_promotes_and_names(self, client: TestClient, db_session: Session, church, network, make_user):
        alice = make_user("Alice Durand", church=church)

        response = client.post(API, json={
            "network_id": network.id,
            "responsable1_id": alice.id,
            "qualification": "QUALIFICATION_12",
        })

        assert response.status_code == 201
        data = response.json()
        assert data["nom"] == "GR_Alice"
        assert [m["user_id"] for m in data["members"]] == [alice.id]

        db_session.refresh(alice)
        assert alice.qualification == Qualification.LEADER

        row = db_session.execute(
            select(ImpactChain).where(ImpactChain.user_id == alice.id)
        ).scalar_one()
        assert row.niveau == 2
        assert row.responsable_id == network.responsable1_id

    def test_invalid_tier(self, client: TestClient, network, make_user):
        response = client.post(API, json={
            "network_id": network.id,
            "responsable1_id": make_user("Alice Durand").id,
            "qualification": "LEADER",
        })
        assert response.status_code == 400

    def test_missing_network(self, client: TestClient, make_user):
        response = client.post(API, json={
            "network_id": 999999,
            "responsable1_id": make_user("Alice Durand").id,
            "qualification": "QUALIFICATION_12",
        })
        assert response.status_code == 404

    def test_responsable_of_another_group(self, client: TestClient, network, make_user, make_group):
        alice = make_user("Alice Durand")
        make_group(network, alice)

        response = client.post(API, json={
            "network_id": network.id,
            "responsable1_id": alice.id,
            "qualification": "QUALIFICATION_12",
        })
        assert response.status_code == 409

    def test_duplicate_explicit_name(self, client: TestClient, network, make_user, make_group):
        make_group(network, make_user("Alice Durand"), nom="GR Étoile")

        response = client.post(API, json={
            "network_id": network.id,
            "responsable1_id": make_user("Bob Leroy").id,
            "qualification": "QUALIFICATION_12",
            "nom": "GR Étoile",
        })
        assert response.status_code == 409

    def test_invalid_superior(self, client: TestClient, network, make_user):
        outsider = make_user("Hors Reseau")
        response = client.post(API, json={
            "network_id": network.id,
            "responsable1_id": make_user("Bob Leroy").id,
            "qualification": "QUALIFICATION_144",
            "superieur_hierarchique_id": outsider.id,
        })
        assert response.status_code == 400

    def test_responsable_is_transferred_from_previous_group(
            self, client: TestClient, db_session: Session, network, make_user, make_group
    ):
        """Un responsable membre d'un autre GR y est désinscrit (LEFT puis JOINED)."""
        carol = make_user("Carol Petit")
        old_group = make_group(network, make_user("Alice Durand"), members_ids=[carol.id])

        response = client.post(API, json={
            "network_id": network.id,
            "responsable1_id": carol.id,
            "qualification": "QUALIFICATION_12",
        })

        assert response.status_code == 201
        membership = db_session.execute(
            select(GroupMember).where(GroupMember.user_id == carol.id)
        ).scalar_one()
        assert membership.group_id == response.json()["id"]

        actions = [h["action"] for h in client.get(f"{API}/{old_group.id}/history").json()]
        assert "LEFT" in actions

    def test_network_responsable_cannot_lead_group(
            self, client: TestClient, db_session: Session, network, make_user
    ):
        nina_id = network.responsable1_id

        response = client.post(API, json={
            "network_id": network.id,
            "responsable1_id": nina_id,
            "qualification": "QUALIFICATION_12",
        })

        assert response.status_code == 409
        assert "responsable de réseau" in response.json()["detail"]
        nina = db_session.get(User, nina_id)
        db_session.refresh(nina)
        assert nina.qualification == Qualification.RESPONSABLE_RESEAU
        assert db_session.execute(
            select(GroupMember).where(GroupMember.user_id == nina_id)
        ).first() is None

    def test_companion_cannot_lead_group(self, client: TestClient, db_session: Session, network, make_user):
        carla = make_user("Carla Bruni")
        db_session.add(NetworkCompanion(network_id=network.id, user_id=carla.id))
        db_session.commit()

        response = client.post(API, json={
            "network_id": network.id,
            "responsable1_id": make_user("Alice Durand").id,
            "responsable2_id": carla.id,
            "qualification": "QUALIFICATION_12",
        })
        assert response.status_code == 409
        assert "compagnon" in response.json()["detail"]


class TestGroupUpdate:

    def test_replace_responsable(self, client: TestClient, db_session: Session, church, network, make_user, make_group):
        alice = make_user("Alice Durand", church=church)
        bob = make_user("Bob Leroy", church=church)
        group = make_group(network, alice)

        response = client.patch(f"{API}/{group.id}", json={"responsable1_id": bob.id})

        assert response.status_code == 200
        assert response.json()["nom"] == "GR_Bob"
        db_session.refresh(alice)
        db_session.refresh(bob)
        assert alice.qualification == Qualification.REGULIER
        assert bob.qualification == Qualification.LEADER

    def test_swap_slots_keeps_qualifications(
            self, client: TestClient, db_session: Session, network, make_user, make_group
    ):
        alice = make_user("Alice Durand")
        bob = make_user("Bob Leroy")
        group = make_group(network, alice, bob)

        response = client.patch(f"{API}/{group.id}", json={
            "responsable1_id": bob.id,
            "responsable2_id": alice.id,
        })

        assert response.status_code == 200
        db_session.refresh(alice)
        db_session.refresh(bob)
        assert alice.qualification == Qualification.LEADER
        assert bob.qualification == Qualification.LEADER

    def test_responsable_already_leading(self, client: TestClient, network, make_user, make_group):
        carol = make_user("Carol Petit")
        make_group(network, carol)
        group = make_group(network, make_user("Alice Durand"))

        response = client.patch(f"{API}/{group.id}", json={"responsable1_id": carol.id})
        assert response.status_code == 409

    def test_explicit_name_is_kept(self, client: TestClient, network, make_user, make_group):
        group = make_group(network, make_user("Alice Durand"))
        bob = make_user("Bob Leroy")

        response = client.patch(f"{API}/{group.id}", json={"responsable1_id": bob.id, "nom": "GR Horizon"})
        assert response.json()["nom"] == "GR Horizon"

    def test_network_responsable_cannot_become_group_responsable(
            self, client: TestClient, db_session: Session, church, network, make_user, make_group, make_network
    ):
        omar = make_user("Omar Diallo", church=church)
        make_network(church, omar, nom="Réseau Jeunesse")
        group = make_group(network, make_user("Alice Durand"))

        response = client.patch(f"{API}/{group.id}", json={"responsable2_id": omar.id})

        assert response.status_code == 409
        db_session.refresh(omar)
        assert omar.qualification == Qualification.RESPONSABLE_RESEAU

    def test_companion_cannot_become_group_responsable(
            self, client: TestClient, db_session: Session, network, make_user, make_group
    ):
        group = make_group(network, make_user("Alice Durand"))
        carla = make_user("Carla Bruni")
        db_session.add(NetworkCompanion(network_id=network.id, user_id=carla.id))
        db_session.commit()

        response = client.patch(f"{API}/{group.id}", json={"responsable1_id": carla.id})
        assert response.status_code == 409


class TestGroupMembers:

    def test_add_and_remove_member(self, client: TestClient, db_session: Session, network, make_user, make_group):
        group = make_group(network, make_user("Alice Durand"))
        dan = make_user("Dan Morel")

        response = client.post(f"{API}/{group.id}/members", json={"user_id": dan.id})
        assert response.status_code == 201

        response = client.delete(f"{API}/{group.id}/members/{dan.id}")
        assert response.status_code == 204
        db_session.refresh(dan)
        assert dan.qualification == Qualification.MEMBRE_IRREGULIER

        actions = [h["action"] for h in client.get(f"{API}/{group.id}/history").json()]
        assert actions.count("LEFT") == 1

    def test_member_of_any_group_is_rejected(self, client: TestClient, network, make_user, make_group):
        dan = make_user("Dan Morel")
        make_group(network, make_user("Alice Durand"), members_ids=[dan.id])
        other = make_group(network, make_user("Bob Leroy"))

        response = client.post(f"{API}/{other.id}/members", json={"user_id": dan.id})
        assert response.status_code == 409

    def test_network_responsable_is_rejected(self, client: TestClient, network, make_user, make_group):
        group = make_group(network, make_user("Alice Durand"))
        response = client.post(f"{API}/{group.id}/members", json={"user_id": network.responsable1_id})
        assert response.status_code == 409

    def test_companion_is_rejected(self, client: TestClient, db_session: Session, network, make_user, make_group):
        group = make_group(network, make_user("Alice Durand"))
        carla = make_user("Carla Bruni")
        db_session.add(NetworkCompanion(network_id=network.id, user_id=carla.id))
        db_session.commit()

        response = client.post(f"{API}/{group.id}/members", json={"user_id": carla.id})
        assert response.status_code == 409

    @pytest.mark.parametrize("qualification", [
        Qualification.GOUVERNANCE,
        Qualification.RESPONSABLE_RESEAU,
        Qualification.ECODIM,
        Qualification.RESPONSABLE_ECODIM,
    ])
    def test_excluded_qualification(self, client: TestClient, network, make_user, make_group, qualification):
        group = make_group(network, make_user("Alice Durand"))
        user = make_user("Exclu Dupont", qualification=qualification)

        response = client.post(f"{API}/{group.id}/members", json={"user_id": user.id})
        assert response.status_code == 400

    def test_responsable_cannot_be_removed(self, client: TestClient, network, make_user, make_group):
        alice = make_user("Alice Durand")
        group = make_group(network, alice)

        response = client.delete(f"{API}/{group.id}/members/{alice.id}")
        assert response.status_code == 400

    def test_remove_non_member(self, client: TestClient, network, make_user, make_group):
        group = make_group(network, make_user("Alice Durand"))
        response = client.delete(f"{API}/{group.id}/members/{make_user('Etranger').id}")
        assert response.status_code == 404


class TestGroupDelete:

    def test_delete_demotes_and_keeps_history(
            self, client: TestClient, db_session: Session, network, make_user, make_group
    ):
        alice = make_user("Alice Durand")
        dan = make_user("Dan Morel")
        group = make_group(network, alice, members_ids=[dan.id])

        response = client.delete(f"{API}/{group.id}")

        assert response.status_code == 204
        assert client.get(f"{API}/{group.id}").status_code == 404
        db_session.refresh(alice)
        assert alice.qualification == Qualification.REGULIER
        assert db_session.execute(select(GroupMember)).first() is None
        assert db_session.execute(
            select(ImpactChain).where(ImpactChain.group_id == group.id)
        ).first() is None

        history = client.get(f"{API}/{group.id}/history")
        assert history.status_code == 200
        assert {h["user_id"] for h in history.json()} == {alice.id, dan.id}


class TestAvailableResponsables:

    def test_excludes_current_leaders(self, client: TestClient, church, network, make_user, make_group):
        alice = make_user("Alice Durand", church=church)
        free = make_user("Libre Dupont", church=church)
        group = make_group(network, alice)

        response = client.get(f"{API}/available-responsables", params={"network_id": network.id})
        ids = {u["id"] for u in response.json()}
        assert free.id in ids
        assert alice.id not in ids
        assert network.responsable1_id not in ids

        response = client.get(
            f"{API}/available-responsables",
            params={"network_id": network.id, "exclude_group_id": group.id},
        )
        assert alice.id in {u["id"] for u in response.json()}
