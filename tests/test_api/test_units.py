"""
Tests des endpoints /units (unités, membres, historique).
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models import Qualification, UnitMember, User

API = "/api/v1/units"


@pytest.fixture
def church_session(church, make_user, make_session):
    return make_session(church, make_user("Sara Lune", church=church))


class TestUnitCreate:

    def test_create_unit(self, client: TestClient, db_session: Session, church_session, make_user):
        ugo = make_user("Ugo Vent")
        vera = make_user("Vera Mer")

        response = client.post(API, json={
            "session_id": church_session.id,
            "responsable1_id": ugo.id,
            "members_ids": [vera.id],
        })

        assert response.status_code == 201
        data = response.json()
        assert data["nom"] == "Unité_Ugo"
        assert {m["user_id"] for m in data["members"]} == {ugo.id, vera.id}

        db_session.refresh(ugo)
        db_session.refresh(vera)
        assert ugo.qualification == Qualification.RESPONSABLE_UNITE
        assert vera.qualification == Qualification.MEMBRE_SESSION

    def test_missing_session(self, client: TestClient, make_user):
        response = client.post(API, json={"session_id": 999999, "responsable1_id": make_user("Ugo Vent").id})
        assert response.status_code == 404

    def test_responsable_of_another_unit(self, client: TestClient, church_session, make_user, make_unit):
        ugo = make_user("Ugo Vent")
        make_unit(church_session, ugo)
        response = client.post(API, json={"session_id": church_session.id, "responsable1_id": ugo.id})
        assert response.status_code == 409

    def test_session_responsable_cannot_lead_unit(
            self, client: TestClient, db_session: Session, church_session
    ):
        sara_id = church_session.responsable1_id

        response = client.post(API, json={"session_id": church_session.id, "responsable1_id": sara_id})

        assert response.status_code == 409
        sara = db_session.get(User, sara_id)
        db_session.refresh(sara)
        assert sara.qualification == Qualification.RESPONSABLE_SESSION
        assert db_session.execute(select(UnitMember).where(UnitMember.user_id == sara_id)).first() is None


class TestUnitUpdate:

    def test_replace_responsable(self, client: TestClient, db_session: Session, church_session, make_user, make_unit):
        ugo = make_user("Ugo Vent")
        wil = make_user("Wil Bois")
        unit = make_unit(church_session, ugo)

        response = client.patch(f"{API}/{unit.id}", json={"responsable1_id": wil.id})

        assert response.status_code == 200
        assert response.json()["nom"] == "Unité_Wil"
        db_session.refresh(ugo)
        db_session.refresh(wil)
        assert ugo.qualification == Qualification.MEMBRE_SESSION
        assert wil.qualification == Qualification.RESPONSABLE_UNITE

    def test_session_responsable_cannot_become_unit_responsable(
            self, client: TestClient, church_session, make_user, make_unit
    ):
        unit = make_unit(church_session, make_user("Ugo Vent"))
        response = client.patch(f"{API}/{unit.id}", json={"responsable2_id": church_session.responsable1_id})
        assert response.status_code == 409


class TestUnitMembers:

    def test_add_and_remove(self, client: TestClient, db_session: Session, church_session, make_user, make_unit):
        unit = make_unit(church_session, make_user("Ugo Vent"))
        vera = make_user("Vera Mer")

        assert client.post(f"{API}/{unit.id}/members", json={"user_id": vera.id}).status_code == 201
        db_session.refresh(vera)
        assert vera.qualification == Qualification.MEMBRE_SESSION

        assert client.delete(f"{API}/{unit.id}/members/{vera.id}").status_code == 204
        db_session.refresh(vera)
        assert vera.qualification == Qualification.IRREGULIER

        actions = [h["action"] for h in client.get(f"{API}/{unit.id}/history").json()]
        assert actions.count("JOINED") == 2
        assert actions.count("LEFT") == 1

    def test_member_of_any_unit(self, client: TestClient, church_session, make_user, make_unit):
        vera = make_user("Vera Mer")
        make_unit(church_session, make_user("Ugo Vent"), members_ids=[vera.id])
        other = make_unit(church_session, make_user("Wil Bois"))

        response = client.post(f"{API}/{other.id}/members", json={"user_id": vera.id})
        assert response.status_code == 409

    def test_session_responsable_is_rejected(self, client: TestClient, church_session, make_user, make_unit):
        unit = make_unit(church_session, make_user("Ugo Vent"))
        response = client.post(f"{API}/{unit.id}/members", json={"user_id": church_session.responsable1_id})
        assert response.status_code == 400

    def test_excluded_qualification(self, client: TestClient, church_session, make_user, make_unit):
        unit = make_unit(church_session, make_user("Ugo Vent"))
        gov = make_user("Gouv Ernance", qualification=Qualification.GOUVERNANCE)
        response = client.post(f"{API}/{unit.id}/members", json={"user_id": gov.id})
        assert response.status_code == 400

    def test_responsable_cannot_be_removed(self, client: TestClient, church_session, make_user, make_unit):
        ugo = make_user("Ugo Vent")
        unit = make_unit(church_session, ugo)
        assert client.delete(f"{API}/{unit.id}/members/{ugo.id}").status_code == 400

    def test_remove_non_member(self, client: TestClient, church_session, make_user, make_unit):
        unit = make_unit(church_session, make_user("Ugo Vent"))
        assert client.delete(f"{API}/{unit.id}/members/{make_user('Etranger').id}").status_code == 404


class TestUnitDelete:

    def test_delete_resets_people(self, client: TestClient, db_session: Session, church_session, make_user, make_unit):
        ugo = make_user("Ugo Vent")
        vera = make_user("Vera Mer")
        unit = make_unit(church_session, ugo, members_ids=[vera.id])

        assert client.delete(f"{API}/{unit.id}").status_code == 204
        assert client.get(f"{API}/{unit.id}").status_code == 404

        db_session.refresh(ugo)
        db_session.refresh(vera)
        assert ugo.qualification == Qualification.IRREGULIER
        assert vera.qualification == Qualification.IRREGULIER

        # Historique conservé après suppression
        assert len(client.get(f"{API}/{unit.id}/history").json()) == 2
