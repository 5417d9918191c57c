"""
Services métier pour le module Unit.

Structure parallèle aux GR, rattachée à une session :
- Responsables promus RESPONSABLE_UNITE, rétrogradés MEMBRE_SESSION
- Membres MEMBRE_SESSION à l'entrée, IRREGULIER à la sortie
- Nom généré Unité_<prénom>
"""
import logging
from typing import Optional, List, Tuple

from sqlalchemy import select, func, delete
from sqlalchemy.orm import Session

from app.core.exceptions import BusinessValidationError, ConflictError, NotFoundError
from app.core.locks import get_lock_manager
from app.models.enums import EntityKind, MembershipAction, UNIT_EXCLUDED_QUALIFICATIONS
from app.models.sessions.unit import Unit, UnitMember, UnitMemberHistory
from app.models.user.user import User
from app.services.hierarchy.impact_chain import ImpactChainRebuilder
from app.services.hierarchy.naming import generate_unit_name
from app.services.hierarchy.qualification import QualificationService
from app.services.hierarchy.responsibilities import ResponsibilityRegistry
from ..lookups import (
    check_responsables,
    get_session_or_404,
    get_unit_or_404,
    get_user_or_404,
)
from .schemas import UnitCreate, UnitUpdate

logger = logging.getLogger(__name__)


# =============================================================================
# EXCEPTIONS MÉTIER
# =============================================================================

class DuplicateUnitNameError(ConflictError):
    def __init__(self, nom: str):
        super().__init__(f"Une unité nommée '{nom}' existe déjà dans cette session")


class AlreadyUnitMemberError(ConflictError):
    def __init__(self, user_id: int):
        super().__init__(f"L'utilisateur {user_id} est déjà membre d'une unité")


class UnitMemberNotAllowedError(BusinessValidationError):
    """Responsable de la session, ou qualification exclue."""
    pass


class SessionResponsableUnitError(ConflictError):
    def __init__(self, user_id: int):
        super().__init__(f"L'utilisateur {user_id} est responsable de session et ne peut pas diriger une unité")


class NotUnitMemberError(NotFoundError):
    def __init__(self, user_id: int, unit_id: int):
        super().__init__(f"L'utilisateur {user_id} n'est pas membre de l'unité {unit_id}")


class UnitResponsableRemovalError(BusinessValidationError):
    def __init__(self, user_id: int):
        super().__init__(
            f"L'utilisateur {user_id} est responsable de cette unité : "
            f"modifiez d'abord les responsables"
        )


# =============================================================================
# UNIT SERVICE
# =============================================================================

class UnitService:
    """Service pour la gestion des unités."""

    def __init__(self, db: Session):
        self.db = db
        self.registry = ResponsibilityRegistry(db)
        self.qualifications = QualificationService(db)
        self.rebuilder = ImpactChainRebuilder(db)
        self.locks = get_lock_manager()

    def get_all(
            self,
            *,
            page: int = 1,
            size: int = 20,
            session_id: Optional[int] = None,
    ) -> Tuple[List[Unit], int]:
        query = select(Unit)
        if session_id is not None:
            query = query.where(Unit.session_id == session_id)

        total = self.db.execute(select(func.count()).select_from(query.subquery())).scalar_one()

        query = query.order_by(Unit.id).offset((page - 1) * size).limit(size)
        return list(self.db.execute(query).scalars().all()), total

    def get_by_id(self, unit_id: int) -> Unit:
        return get_unit_or_404(self.db, unit_id)

    def get_members(self, unit_id: int) -> List[UnitMember]:
        return list(self.get_by_id(unit_id).members)

    def get_history(self, unit_id: int) -> List[UnitMemberHistory]:
        query = (
            select(UnitMemberHistory)
            .where(UnitMemberHistory.unit_id == unit_id)
            .order_by(UnitMemberHistory.created_at.desc(), UnitMemberHistory.id.desc())
        )
        return list(self.db.execute(query).scalars().all())

    def create(self, data: UnitCreate, changed_by_id: Optional[int] = None) -> Unit:
        church_session = get_session_or_404(self.db, data.session_id)
        check_responsables(self.db, data.responsable1_id, data.responsable2_id)
        self.registry.ensure_available(EntityKind.UNIT, [data.responsable1_id, data.responsable2_id])
        self._ensure_not_session_responsable([data.responsable1_id, data.responsable2_id])
        if data.superieur_hierarchique_id is not None:
            get_user_or_404(self.db, data.superieur_hierarchique_id)

        if data.nom:
            self._ensure_unique_name(church_session.id, data.nom)
            nom = data.nom
        else:
            nom = self._generated_name(data.responsable1_id, data.responsable2_id)

        unit = Unit(
            nom=nom,
            description=data.description,
            session_id=church_session.id,
            responsable1_id=data.responsable1_id,
            responsable2_id=data.responsable2_id,
            superieur_hierarchique_id=data.superieur_hierarchique_id,
        )
        self.db.add(unit)
        self.db.flush()

        self.registry.assign(EntityKind.UNIT, unit.id, unit.responsable1_id, unit.responsable2_id)
        self.qualifications.update_unit_responsables_qualification(
            unit.id, None, None, unit.responsable1_id, unit.responsable2_id
        )
        for user_id in unit.responsable_ids:
            self._enroll(unit, user_id, changed_by_id)
        for user_id in dict.fromkeys(data.members_ids):
            if unit.is_responsable(user_id):
                continue
            self._add_member(unit, get_user_or_404(self.db, user_id), changed_by_id)

        self.db.commit()
        self.db.refresh(unit)
        logger.info(f"Unité {unit.id} '{unit.nom}' créée dans la session {church_session.id}")

        self.rebuilder.rebuild_safely(church_session.eglise_id)
        return unit

    def update(self, unit_id: int, data: UnitUpdate, changed_by_id: Optional[int] = None) -> Unit:
        with self.locks.hold(EntityKind.UNIT, unit_id):
            unit = get_unit_or_404(self.db, unit_id, for_update=True)
            update_data = data.model_dump(exclude_unset=True)

            old_pair = (unit.responsable1_id, unit.responsable2_id)
            new_pair = (
                update_data.get("responsable1_id", unit.responsable1_id),
                update_data["responsable2_id"] if "responsable2_id" in update_data else unit.responsable2_id,
            )
            responsables_changed = new_pair != old_pair

            if responsables_changed:
                check_responsables(self.db, *new_pair)
                self.registry.ensure_available(EntityKind.UNIT, new_pair, entity_id=unit.id)
                self._ensure_not_session_responsable([i for i in new_pair if i not in old_pair])
            if update_data.get("superieur_hierarchique_id") is not None:
                get_user_or_404(self.db, update_data["superieur_hierarchique_id"])

            nom = (update_data.get("nom") or "").strip()
            if nom and nom != unit.nom:
                self._ensure_unique_name(unit.session_id, nom, exclude_unit_id=unit.id)
                unit.nom = nom
            elif not nom and responsables_changed:
                unit.nom = self._generated_name(*new_pair)

            for field in ("description", "superieur_hierarchique_id"):
                if field in update_data:
                    setattr(unit, field, update_data[field])
            unit.responsable1_id, unit.responsable2_id = new_pair
            self.db.flush()

            if responsables_changed:
                self.registry.assign(EntityKind.UNIT, unit.id, *new_pair)
                self.qualifications.update_unit_responsables_qualification(unit.id, *old_pair, *new_pair)
                for user_id in unit.responsable_ids:
                    if user_id not in old_pair:
                        self._enroll(unit, user_id, changed_by_id)

            self.db.commit()
            self.db.refresh(unit)
            church_id = unit.session.eglise_id

        self.rebuilder.rebuild_safely(church_id)
        return unit

    def delete(self, unit_id: int) -> None:
        with self.locks.hold(EntityKind.UNIT, unit_id):
            unit = get_unit_or_404(self.db, unit_id, for_update=True)
            church_id = unit.session.eglise_id
            self.delete_cascade(unit)
            self.db.commit()
            logger.info(f"Unité {unit_id} supprimée")

        self.rebuilder.rebuild_safely(church_id)

    def delete_cascade(self, unit: Unit, cleanup: bool = True) -> None:
        """
        Cascade de suppression, sans commit.

        Le nettoyage des qualifications lit les membres : il passe donc
        avant leur suppression. cleanup=False quand la session parente a
        déjà nettoyé ses unités.
        """
        if cleanup:
            self.qualifications.cleanup_unit_qualification(unit.id)
        self.db.execute(delete(UnitMember).where(UnitMember.unit_id == unit.id))
        self.registry.release(EntityKind.UNIT, unit.id)

        self.db.flush()
        self.db.expire(unit)
        self.db.delete(unit)
        self.db.flush()

    # === Membres ===

    def add_member(self, unit_id: int, user_id: int, changed_by_id: Optional[int] = None) -> UnitMember:
        with self.locks.hold(EntityKind.UNIT, unit_id):
            unit = get_unit_or_404(self.db, unit_id, for_update=True)
            user = get_user_or_404(self.db, user_id)
            membership = self._add_member(unit, user, changed_by_id)
            self.db.commit()
            self.db.refresh(membership)
            church_id = unit.session.eglise_id

        self.rebuilder.rebuild_safely(church_id)
        return membership

    def remove_member(self, unit_id: int, user_id: int, changed_by_id: Optional[int] = None) -> None:
        with self.locks.hold(EntityKind.UNIT, unit_id):
            unit = get_unit_or_404(self.db, unit_id, for_update=True)
            get_user_or_404(self.db, user_id)

            if unit.is_responsable(user_id):
                raise UnitResponsableRemovalError(user_id)

            membership = self.db.execute(
                select(UnitMember).where(UnitMember.unit_id == unit.id, UnitMember.user_id == user_id)
            ).scalar_one_or_none()
            if membership is None:
                raise NotUnitMemberError(user_id, unit.id)

            self.db.delete(membership)
            self._log(unit, user_id, MembershipAction.LEFT, changed_by_id)
            self.qualifications.mark_unit_member_left(user_id)
            self.db.commit()
            church_id = unit.session.eglise_id

        self.rebuilder.rebuild_safely(church_id)

    # =========================================================================
    # INTERNES
    # =========================================================================

    def _add_member(self, unit: Unit, user: User, changed_by_id: Optional[int]) -> UnitMember:
        existing = self.db.execute(
            select(UnitMember.id).where(UnitMember.user_id == user.id)
        ).first()
        if existing:
            raise AlreadyUnitMemberError(user.id)

        if unit.session.is_responsable(user.id):
            raise UnitMemberNotAllowedError(
                f"L'utilisateur {user.id} est responsable de la session et ne peut pas être membre d'une unité"
            )
        if user.qualification in UNIT_EXCLUDED_QUALIFICATIONS:
            raise UnitMemberNotAllowedError(
                f"La qualification {user.qualification.value} ne permet pas d'être membre d'une unité"
            )

        membership = UnitMember(unit_id=unit.id, user_id=user.id)
        self.db.add(membership)
        self._log(unit, user.id, MembershipAction.JOINED, changed_by_id)
        self.qualifications.mark_unit_member_joined(user.id)
        self.db.flush()
        return membership

    def _enroll(self, unit: Unit, user_id: int, changed_by_id: Optional[int]) -> None:
        """Inscription d'un responsable (transfert depuis une autre unité), qualification inchangée."""
        self._ensure_not_session_responsable([user_id])
        existing = self.db.execute(
            select(UnitMember).where(UnitMember.user_id == user_id)
        ).scalar_one_or_none()

        if existing is not None:
            if existing.unit_id == unit.id:
                return
            self._log(existing.unit, user_id, MembershipAction.LEFT, changed_by_id)
            self.db.delete(existing)
            self.db.flush()

        self.db.add(UnitMember(unit_id=unit.id, user_id=user_id))
        self._log(unit, user_id, MembershipAction.JOINED, changed_by_id)
        self.db.flush()

    def _ensure_not_session_responsable(self, user_ids) -> None:
        """Un responsable de session garde sa qualification : il ne dirige pas d'unité."""
        for user_id in user_ids:
            if user_id is not None and self.registry.led_entity_ids(EntityKind.SESSION, user_id):
                raise SessionResponsableUnitError(user_id)

    def _log(self, unit: Unit, user_id: int, action: MembershipAction, changed_by_id: Optional[int]) -> None:
        self.db.add(UnitMemberHistory(
            unit_id=unit.id,
            unit_nom=unit.nom,
            user_id=user_id,
            action=action,
            changed_by_id=changed_by_id,
        ))

    def _ensure_unique_name(self, session_id: int, nom: str, exclude_unit_id: Optional[int] = None) -> None:
        query = select(Unit.id).where(Unit.session_id == session_id, Unit.nom == nom)
        if exclude_unit_id is not None:
            query = query.where(Unit.id != exclude_unit_id)
        if self.db.execute(query).first() is not None:
            raise DuplicateUnitNameError(nom)

    def _generated_name(self, responsable1_id: Optional[int], responsable2_id: Optional[int]) -> str:
        users = [self.db.get(User, i) if i is not None else None for i in (responsable1_id, responsable2_id)]
        return generate_unit_name(users)
