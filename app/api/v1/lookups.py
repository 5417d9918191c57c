"""
Chargement des entités de la hiérarchie, avec erreurs 404 dédiées.

Partagé par tous les modules métier (église, réseau, GR, session,
unité, utilisateur). for_update=True pose un verrou de ligne
(SELECT ... FOR UPDATE) pour la durée de la transaction.
"""
from typing import Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.exceptions import BusinessValidationError, NotFoundError, UserNotFoundError
from app.models.church.church import Church
from app.models.group.group import Group
from app.models.network.network import Network
from app.models.sessions.session import ChurchSession
from app.models.sessions.unit import Unit
from app.models.user.user import User

ModelT = TypeVar("ModelT")


# =============================================================================
# EXCEPTIONS 404
# =============================================================================

class ChurchNotFoundError(NotFoundError):
    """Église introuvable."""

    def __init__(self, church_id: int):
        super().__init__(f"Église avec l'ID {church_id} introuvable")


class NetworkNotFoundError(NotFoundError):
    """Réseau introuvable."""

    def __init__(self, network_id: int):
        super().__init__(f"Réseau avec l'ID {network_id} introuvable")


class GroupNotFoundError(NotFoundError):
    """GR introuvable."""

    def __init__(self, group_id: int):
        super().__init__(f"GR avec l'ID {group_id} introuvable")


class SessionNotFoundError(NotFoundError):
    """Session introuvable."""

    def __init__(self, session_id: int):
        super().__init__(f"Session avec l'ID {session_id} introuvable")


class UnitNotFoundError(NotFoundError):
    """Unité introuvable."""

    def __init__(self, unit_id: int):
        super().__init__(f"Unité avec l'ID {unit_id} introuvable")


class SameResponsableTwiceError(BusinessValidationError):
    """Le même utilisateur occupe les deux slots."""

    def __init__(self):
        super().__init__("Le responsable 1 et le responsable 2 doivent être deux personnes différentes")


# =============================================================================
# CHARGEMENT
# =============================================================================

def _load(db: Session, model: Type[ModelT], entity_id: int, for_update: bool) -> Optional[ModelT]:
    if not for_update:
        return db.get(model, entity_id)
    return db.execute(
        select(model).where(model.id == entity_id).with_for_update()
    ).scalar_one_or_none()


def get_user_or_404(db: Session, user_id: int, for_update: bool = False) -> User:
    user = _load(db, User, user_id, for_update)
    if user is None:
        raise UserNotFoundError(user_id)
    return user


def get_church_or_404(db: Session, church_id: int, for_update: bool = False) -> Church:
    church = _load(db, Church, church_id, for_update)
    if church is None:
        raise ChurchNotFoundError(church_id)
    return church


def get_network_or_404(db: Session, network_id: int, for_update: bool = False) -> Network:
    network = _load(db, Network, network_id, for_update)
    if network is None:
        raise NetworkNotFoundError(network_id)
    return network


def get_group_or_404(db: Session, group_id: int, for_update: bool = False) -> Group:
    group = _load(db, Group, group_id, for_update)
    if group is None:
        raise GroupNotFoundError(group_id)
    return group


def get_session_or_404(db: Session, session_id: int, for_update: bool = False) -> ChurchSession:
    church_session = _load(db, ChurchSession, session_id, for_update)
    if church_session is None:
        raise SessionNotFoundError(session_id)
    return church_session


def get_unit_or_404(db: Session, unit_id: int, for_update: bool = False) -> Unit:
    unit = _load(db, Unit, unit_id, for_update)
    if unit is None:
        raise UnitNotFoundError(unit_id)
    return unit


def check_responsables(
        db: Session,
        responsable1_id: Optional[int],
        responsable2_id: Optional[int] = None,
) -> None:
    """
    Vérifie la paire de responsables avant écriture.

    Raises:
        BusinessValidationError: responsable1 absent, ou même personne dans les deux slots
        UserNotFoundError: utilisateur inexistant
    """
    if responsable1_id is None:
        raise BusinessValidationError("Le responsable 1 est obligatoire")
    if responsable2_id is not None and responsable2_id == responsable1_id:
        raise SameResponsableTwiceError()
    get_user_or_404(db, responsable1_id)
    if responsable2_id is not None:
        get_user_or_404(db, responsable2_id)
