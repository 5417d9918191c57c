"""
Fixtures pytest partagées pour les tests ChaineImpact.

Ce module fournit :
- Une base de données SQLite en mémoire pour les tests (rapide, isolé)
- Des fabriques pour créer la hiérarchie de test (User, Church, Network,
  Group, ChurchSession, Unit) en passant par les services métier, pour
  que le registre des responsabilités et les qualifications soient cohérents
- Des clients HTTP avec authentification mockée

IMPORTANT :
- ENVIRONMENT=test est positionné avant tout import de l'application :
  les verrous Redis sont alors désactivés (settings.locks_active)
- Les commit() des services et des fabriques libèrent un SAVEPOINT :
  tout est annulé en fin de test
"""

import itertools
import os

os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["IMPACT_CHAIN_AUTO_REBUILD"] = "true"

from typing import Callable, Generator, Optional  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.api.v1.church.schemas import ChurchCreate  # noqa: E402
from app.api.v1.church.services import ChurchService  # noqa: E402
from app.api.v1.group.schemas import GroupCreate  # noqa: E402
from app.api.v1.group.services import GroupService  # noqa: E402
from app.api.v1.network.schemas import NetworkCreate  # noqa: E402
from app.api.v1.network.services import NetworkService  # noqa: E402
from app.api.v1.session.schemas import SessionCreate  # noqa: E402
from app.api.v1.session.services import SessionService  # noqa: E402
from app.api.v1.unit.schemas import UnitCreate  # noqa: E402
from app.api.v1.unit.services import UnitService  # noqa: E402
from app.core.auth.user_auth import get_current_user  # noqa: E402
from app.core.security.hashing import hash_password  # noqa: E402
from app.database.session import get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import (  # noqa: E402
    Church,
    ChurchSession,
    Group,
    Network,
    Qualification,
    Unit,
    User,
    UserRole,
)
from app.models.base import Base  # noqa: E402

# Coût bcrypt minimal pour garder les tests rapides
TEST_BCRYPT_ROUNDS = 4


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def engine():
    """
    Crée un engine SQLite en mémoire pour les tests.

    pysqlite gère mal les SAVEPOINT : on désactive sa gestion implicite
    des transactions et on émet BEGIN nous-mêmes.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,  # Mettre True pour debug SQL
    )

    @event.listens_for(engine, "connect")
    def disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine) -> Generator[Session, None, None]:
    """
    Session isolée pour chaque test.

    La session rejoint une transaction externe : chaque commit() du code
    testé ne libère qu'un SAVEPOINT, et tout est annulé à la fin.
    """
    connection = engine.connect()
    transaction = connection.begin()
    session = Session(bind=connection, join_transaction_mode="create_savepoint")

    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


# =============================================================================
# FABRIQUES - Utilisateurs
# =============================================================================

@pytest.fixture
def make_user(db_session: Session) -> Callable[..., User]:
    """
    Fabrique d'utilisateurs.

    Usage:
        alice = make_user("Alice Durand", church=church)
    """
    counter = itertools.count(1)

    def _make(
            username: str,
            *,
            church: Optional[Church] = None,
            qualification: Qualification = Qualification.EN_INTEGRATION,
            role: UserRole = UserRole.MEMBRE,
            pseudo: Optional[str] = None,
            email: Optional[str] = None,
            password: Optional[str] = None,
            is_active: bool = True,
    ) -> User:
        user = User(
            username=username,
            pseudo=pseudo,
            email=email or f"user{next(counter)}@test.fr",
            role=role,
            qualification=qualification,
            eglise_locale_id=church.id if church is not None else None,
            is_active=is_active,
            password_hash=hash_password(password, rounds=TEST_BCRYPT_ROUNDS) if password else None,
        )
        db_session.add(user)
        # commit = RELEASE SAVEPOINT : survit au rollback d'une requête en erreur
        db_session.commit()
        return user

    return _make


@pytest.fixture
def admin_user(make_user) -> User:
    """Super administrateur, rattaché à aucune église."""
    return make_user("Admin Test", role=UserRole.SUPER_ADMIN, email="admin@test.fr")


@pytest.fixture
def member_user(make_user) -> User:
    """Utilisateur sans droit de modification."""
    return make_user("Simple Membre", role=UserRole.MEMBRE, email="membre@test.fr")


# =============================================================================
# FABRIQUES - Hiérarchie
# =============================================================================

@pytest.fixture
def make_church(db_session: Session) -> Callable[..., Church]:
    counter = itertools.count(1)

    def _make(nom: Optional[str] = None, responsable: Optional[User] = None) -> Church:
        return ChurchService(db_session).create(ChurchCreate(
            nom=nom or f"Église {next(counter)}",
            ville="Paris",
            responsable_id=responsable.id if responsable is not None else None,
        ))

    return _make


@pytest.fixture
def pastor(make_user) -> User:
    return make_user("Past. Paul Martin", pseudo="paulm")


@pytest.fixture
def church(make_church, pastor) -> Church:
    """Église dirigée par le pasteur (niveau 0)."""
    return make_church("Église Paris Centre", responsable=pastor)


@pytest.fixture
def make_network(db_session: Session) -> Callable[..., Network]:
    counter = itertools.count(1)

    def _make(
            church: Church,
            responsable1: User,
            responsable2: Optional[User] = None,
            nom: Optional[str] = None,
    ) -> Network:
        return NetworkService(db_session).create(NetworkCreate(
            nom=nom or f"Réseau {next(counter)}",
            eglise_id=church.id,
            responsable1_id=responsable1.id,
            responsable2_id=responsable2.id if responsable2 is not None else None,
        ))

    return _make


@pytest.fixture
def make_group(db_session: Session) -> Callable[..., Group]:
    def _make(
            network: Network,
            responsable1: User,
            responsable2: Optional[User] = None,
            qualification: Qualification = Qualification.QUALIFICATION_12,
            **kwargs,
    ) -> Group:
        return GroupService(db_session).create(GroupCreate(
            network_id=network.id,
            responsable1_id=responsable1.id,
            responsable2_id=responsable2.id if responsable2 is not None else None,
            qualification=qualification,
            **kwargs,
        ))

    return _make


@pytest.fixture
def make_session(db_session: Session) -> Callable[..., ChurchSession]:
    counter = itertools.count(1)

    def _make(
            church: Church,
            responsable1: User,
            responsable2: Optional[User] = None,
            nom: Optional[str] = None,
    ) -> ChurchSession:
        return SessionService(db_session).create(SessionCreate(
            nom=nom or f"Session {next(counter)}",
            eglise_id=church.id,
            responsable1_id=responsable1.id,
            responsable2_id=responsable2.id if responsable2 is not None else None,
        ))

    return _make


@pytest.fixture
def make_unit(db_session: Session) -> Callable[..., Unit]:
    def _make(
            church_session: ChurchSession,
            responsable1: User,
            responsable2: Optional[User] = None,
            **kwargs,
    ) -> Unit:
        return UnitService(db_session).create(UnitCreate(
            session_id=church_session.id,
            responsable1_id=responsable1.id,
            responsable2_id=responsable2.id if responsable2 is not None else None,
            **kwargs,
        ))

    return _make


# =============================================================================
# CLIENTS HTTP
# =============================================================================

def _override_db(db_session: Session):
    def override_get_db():
        try:
            yield db_session
        except Exception:
            db_session.rollback()
            raise

    return override_get_db


def _client_as(db_session: Session, user: Optional[User]) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_db] = _override_db(db_session)
    if user is not None:
        async def override_get_current_user():
            return user

        app.dependency_overrides[get_current_user] = override_get_current_user

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def client(db_session: Session, admin_user: User) -> Generator[TestClient, None, None]:
    """Client de test authentifié en super administrateur."""
    yield from _client_as(db_session, admin_user)


@pytest.fixture
def member_client(db_session: Session, member_user: User) -> Generator[TestClient, None, None]:
    """Client de test authentifié en simple membre (403 sur les mutations)."""
    yield from _client_as(db_session, member_user)


@pytest.fixture
def anonymous_client(db_session: Session) -> Generator[TestClient, None, None]:
    """Client sans authentification mockée : le vrai get_current_user s'applique."""
    yield from _client_as(db_session, None)
