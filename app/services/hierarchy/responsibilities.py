"""
Registre des responsabilités.

Deux niveaux de garantie pour la règle "un utilisateur dirige au plus
une entité de chaque type" :

1. ensure_available() : lecture préalable des entités existantes,
   pour renvoyer un message clair (409) avant toute écriture
2. assign() : écriture dans responsibility_assignments, dont les
   contraintes d'unicité rejettent les doublons issus de requêtes
   concurrentes qui auraient toutes deux passé l'étape 1
"""
import logging
from typing import Iterable, Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError
from app.models.church.church import Church
from app.models.enums import EntityKind
from app.models.group.group import Group
from app.models.hierarchy.responsibility_assignment import ResponsibilityAssignment
from app.models.network.network import Network
from app.models.sessions.session import ChurchSession
from app.models.sessions.unit import Unit

logger = logging.getLogger(__name__)

ENTITY_LABELS = {
    EntityKind.CHURCH: "d'une autre église",
    EntityKind.NETWORK: "d'un autre réseau",
    EntityKind.GROUP: "d'un autre GR",
    EntityKind.SESSION: "d'une autre session",
    EntityKind.UNIT: "d'une autre unité",
}

PAIR_MODELS = {
    EntityKind.NETWORK: Network,
    EntityKind.GROUP: Group,
    EntityKind.SESSION: ChurchSession,
    EntityKind.UNIT: Unit,
}


class ResponsableAlreadyAssignedError(ConflictError):
    """L'utilisateur dirige déjà une autre entité du même type."""

    def __init__(self, kind: EntityKind, user_id: Optional[int] = None):
        who = f"L'utilisateur {user_id}" if user_id is not None else "Un des responsables"
        super().__init__(f"{who} est déjà responsable {ENTITY_LABELS[kind]}")


class ResponsibilityRegistry:
    """Lecture et écriture des responsabilités, par type d'entité."""

    def __init__(self, db: Session):
        self.db = db

    def led_entity_ids(self, kind: EntityKind, user_id: int) -> list[int]:
        """Ids des entités du type donné dirigées par l'utilisateur."""
        if kind == EntityKind.CHURCH:
            query = select(Church.id).where(Church.responsable_id == user_id).order_by(Church.id)
        else:
            model = PAIR_MODELS[kind]
            query = select(model.id).where(
                or_(model.responsable1_id == user_id, model.responsable2_id == user_id)
            ).order_by(model.id)
        return list(self.db.execute(query).scalars().all())

    def ensure_available(
            self,
            kind: EntityKind,
            user_ids: Iterable[Optional[int]],
            entity_id: Optional[int] = None,
    ) -> None:
        """
        Vérifie qu'aucun des utilisateurs ne dirige une autre entité du type.

        Args:
            entity_id: Entité en cours de modification (ignorée), None à la création

        Raises:
            ResponsableAlreadyAssignedError
        """
        for user_id in user_ids:
            if user_id is None:
                continue
            others = [i for i in self.led_entity_ids(kind, user_id) if i != entity_id]
            if others:
                raise ResponsableAlreadyAssignedError(kind, user_id)

    def responsibilities_of(self, user_id: int) -> list[tuple[EntityKind, int]]:
        """Toutes les responsabilités actives d'un utilisateur."""
        held = []
        for kind in EntityKind:
            held.extend((kind, entity_id) for entity_id in self.led_entity_ids(kind, user_id))
        return held

    def assign(
            self,
            kind: EntityKind,
            entity_id: int,
            responsable1_id: Optional[int],
            responsable2_id: Optional[int] = None,
    ) -> None:
        """
        Remplace les slots enregistrés pour l'entité.

        Raises:
            ResponsableAlreadyAssignedError: contrainte d'unicité violée
        """
        self.release(kind, entity_id)

        rows = [
            ResponsibilityAssignment(user_id=user_id, entity_kind=kind, entity_id=entity_id, slot=slot)
            for slot, user_id in ((1, responsable1_id), (2, responsable2_id))
            if user_id is not None
        ]
        if not rows:
            return

        try:
            with self.db.begin_nested():
                self.db.add_all(rows)
                self.db.flush()
        except IntegrityError as exc:
            logger.warning(f"Conflit d'assignation {kind.value} {entity_id} : {exc.orig}")
            raise ResponsableAlreadyAssignedError(kind) from exc

    def release(self, kind: EntityKind, entity_id: int) -> None:
        """Supprime les slots enregistrés pour l'entité."""
        self.db.execute(
            delete(ResponsibilityAssignment).where(
                ResponsibilityAssignment.entity_kind == kind,
                ResponsibilityAssignment.entity_id == entity_id,
            )
        )
