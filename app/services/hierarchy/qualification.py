"""
Service de qualification.

Applique au champ User.qualification les transitions déclenchées par
les changements de responsabilité :

    Promotion                         Rétrogradation
    --------------------------------  ---------------------------------
    responsable de GR      -> LEADER  ancien resp. de GR      -> REGULIER
    responsable de réseau  -> RESP_RESEAU  ancien resp. de réseau -> LEADER
    responsable de session -> RESP_SESSION ancien resp. de session -> LEADER
    responsable d'unité    -> RESP_UNITE   ancien resp. d'unité   -> MEMBRE_SESSION

Le service n'ouvre ni ne valide de transaction : l'appelant (service
d'entité) commit une seule fois à la fin de sa mutation.

Les nettoyages (cleanup_*) précèdent la suppression d'une entité et ne
doivent jamais la bloquer : ils s'exécutent dans un SAVEPOINT, et toute
erreur est journalisée puis ignorée.
"""
import logging
from contextlib import contextmanager
from typing import Callable, Iterable, Iterator, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.exceptions import UserNotFoundError
from app.models.enums import Qualification
from app.models.group.group import Group
from app.models.network.network import Network
from app.models.sessions.session import ChurchSession
from app.models.sessions.unit import Unit, UnitMember
from app.models.user.user import User

logger = logging.getLogger(__name__)


class QualificationService:
    """Transitions de qualification, sans validation de légalité."""

    def __init__(self, db: Session):
        self.db = db

    # =========================================================================
    # ÉCRITURE BRUTE
    # =========================================================================

    def set_qualification(self, user_id: int, value: Qualification) -> User:
        """
        Écrase la qualification d'un utilisateur.

        Raises:
            UserNotFoundError: utilisateur inexistant
        """
        user = self.db.get(User, user_id)
        if user is None:
            raise UserNotFoundError(user_id)

        previous = user.qualification
        user.qualification = value
        if previous != value:
            logger.info(
                f"Qualification utilisateur {user_id} : "
                f"{previous.value if previous else None} -> {value.value}"
            )
        return user

    # =========================================================================
    # LECTURE
    # =========================================================================

    def count_by_qualification(self, user_ids: Iterable[int]) -> dict[str, int]:
        """Répartition par qualification d'un ensemble d'utilisateurs distincts."""
        ids = set(user_ids)
        if not ids:
            return {}
        rows = self.db.execute(
            select(User.qualification, func.count(User.id))
            .where(User.id.in_(ids))
            .group_by(User.qualification)
        ).all()
        return {qualification.value: count for qualification, count in rows}

    # =========================================================================
    # GR ET RÉSEAUX
    # =========================================================================

    def promote_to_group_responsible(self, user_id: int) -> User:
        return self.set_qualification(user_id, Qualification.LEADER)

    def promote_to_network_responsible(self, user_id: int) -> User:
        return self.set_qualification(user_id, Qualification.RESPONSABLE_RESEAU)

    def demote_former_group_responsible(self, user_id: int) -> User:
        # Un utilisateur ne dirige qu'un GR : il n'en dirige donc plus aucun
        return self.set_qualification(user_id, Qualification.REGULIER)

    def demote_former_network_responsible(self, user_id: int) -> User:
        return self.set_qualification(user_id, Qualification.LEADER)

    def update_group_responsables_qualification(
            self,
            group_id: int,
            old_responsable1_id: Optional[int],
            old_responsable2_id: Optional[int],
            new_responsable1_id: Optional[int],
            new_responsable2_id: Optional[int],
    ) -> None:
        """Promeut les nouveaux responsables du GR, rétrograde les sortants."""
        logger.debug(f"Mise à jour des qualifications des responsables du GR {group_id}")
        self._swap_responsables(
            (old_responsable1_id, old_responsable2_id),
            (new_responsable1_id, new_responsable2_id),
            promote=self.promote_to_group_responsible,
            demote=self.demote_former_group_responsible,
        )

    def update_network_responsables_qualification(
            self,
            network_id: int,
            old_responsable1_id: Optional[int],
            old_responsable2_id: Optional[int],
            new_responsable1_id: Optional[int],
            new_responsable2_id: Optional[int],
    ) -> None:
        """Promeut les nouveaux responsables du réseau, rétrograde les sortants."""
        logger.debug(f"Mise à jour des qualifications des responsables du réseau {network_id}")
        self._swap_responsables(
            (old_responsable1_id, old_responsable2_id),
            (new_responsable1_id, new_responsable2_id),
            promote=self.promote_to_network_responsible,
            demote=self.demote_former_network_responsible,
        )

    # =========================================================================
    # SESSIONS ET UNITÉS
    # =========================================================================

    def promote_to_session_responsible(self, user_id: int) -> User:
        return self.set_qualification(user_id, Qualification.RESPONSABLE_SESSION)

    def demote_former_session_responsible(self, user_id: int) -> User:
        return self.set_qualification(user_id, Qualification.LEADER)

    def promote_to_unit_responsible(self, user_id: int) -> User:
        return self.set_qualification(user_id, Qualification.RESPONSABLE_UNITE)

    def demote_former_unit_responsible(self, user_id: int) -> User:
        # Il reste membre de l'unité
        return self.set_qualification(user_id, Qualification.MEMBRE_SESSION)

    def update_session_responsables_qualification(
            self,
            session_id: int,
            old_responsable1_id: Optional[int],
            old_responsable2_id: Optional[int],
            new_responsable1_id: Optional[int],
            new_responsable2_id: Optional[int],
    ) -> None:
        logger.debug(f"Mise à jour des qualifications des responsables de la session {session_id}")
        self._swap_responsables(
            (old_responsable1_id, old_responsable2_id),
            (new_responsable1_id, new_responsable2_id),
            promote=self.promote_to_session_responsible,
            demote=self.demote_former_session_responsible,
        )

    def update_unit_responsables_qualification(
            self,
            unit_id: int,
            old_responsable1_id: Optional[int],
            old_responsable2_id: Optional[int],
            new_responsable1_id: Optional[int],
            new_responsable2_id: Optional[int],
    ) -> None:
        logger.debug(f"Mise à jour des qualifications des responsables de l'unité {unit_id}")
        self._swap_responsables(
            (old_responsable1_id, old_responsable2_id),
            (new_responsable1_id, new_responsable2_id),
            promote=self.promote_to_unit_responsible,
            demote=self.demote_former_unit_responsible,
        )

    # =========================================================================
    # APPARTENANCES
    # =========================================================================

    def mark_group_member_left(self, user_id: int) -> User:
        return self.set_qualification(user_id, Qualification.MEMBRE_IRREGULIER)

    def mark_unit_member_joined(self, user_id: int) -> User:
        return self.set_qualification(user_id, Qualification.MEMBRE_SESSION)

    def mark_unit_member_left(self, user_id: int) -> User:
        return self.set_qualification(user_id, Qualification.IRREGULIER)

    # =========================================================================
    # NETTOYAGES AVANT SUPPRESSION
    # =========================================================================

    def cleanup_group_qualification(self, group_id: int) -> None:
        """Rétrograde les responsables d'un GR sur le point d'être supprimé."""
        with self._best_effort(f"GR {group_id}"):
            group = self.db.get(Group, group_id)
            if group is None:
                logger.warning(f"Nettoyage ignoré : GR {group_id} introuvable")
                return
            for user_id in group.responsable_ids:
                self.demote_former_group_responsible(user_id)

    def cleanup_network_qualification(self, network_id: int) -> None:
        """Rétrograde les responsables d'un réseau sur le point d'être supprimé."""
        with self._best_effort(f"réseau {network_id}"):
            network = self.db.get(Network, network_id)
            if network is None:
                logger.warning(f"Nettoyage ignoré : réseau {network_id} introuvable")
                return
            for user_id in network.responsable_ids:
                self.demote_former_network_responsible(user_id)

    def cleanup_session_qualification(self, session_id: int) -> None:
        """
        Rétrograde les responsables de la session (LEADER), puis tous les
        responsables et membres de ses unités (IRREGULIER).
        """
        with self._best_effort(f"session {session_id}"):
            church_session = self.db.get(ChurchSession, session_id)
            if church_session is None:
                logger.warning(f"Nettoyage ignoré : session {session_id} introuvable")
                return
            for user_id in church_session.responsable_ids:
                self.demote_former_session_responsible(user_id)

            units = self.db.execute(
                select(Unit).where(Unit.session_id == session_id)
            ).scalars().all()
            for unit in units:
                self._reset_unit_people(unit)

    def cleanup_unit_qualification(self, unit_id: int) -> None:
        """Passe les responsables et membres d'une unité à IRREGULIER."""
        with self._best_effort(f"unité {unit_id}"):
            unit = self.db.get(Unit, unit_id)
            if unit is None:
                logger.warning(f"Nettoyage ignoré : unité {unit_id} introuvable")
                return
            self._reset_unit_people(unit)

    # =========================================================================
    # INTERNES
    # =========================================================================

    def _reset_unit_people(self, unit: Unit) -> None:
        member_ids = self.db.execute(
            select(UnitMember.user_id).where(UnitMember.unit_id == unit.id)
        ).scalars().all()
        for user_id in dict.fromkeys([*unit.responsable_ids, *member_ids]):
            self.set_qualification(user_id, Qualification.IRREGULIER)

    @staticmethod
    def _swap_responsables(
            old_pair: Iterable[Optional[int]],
            new_pair: Iterable[Optional[int]],
            promote: Callable[[int], User],
            demote: Callable[[int], User],
    ) -> None:
        old_ids = [i for i in old_pair if i is not None]
        new_ids = [i for i in new_pair if i is not None]

        # Un passage du slot 1 au slot 2 (ou l'inverse) ne change rien
        for user_id in old_ids:
            if user_id not in new_ids:
                demote(user_id)
        for user_id in new_ids:
            if user_id not in old_ids:
                promote(user_id)

    @contextmanager
    def _best_effort(self, label: str) -> Iterator[None]:
        try:
            with self.db.begin_nested():
                yield
        except Exception:
            logger.exception(
                f"Nettoyage des qualifications en échec ({label}), suppression poursuivie"
            )
