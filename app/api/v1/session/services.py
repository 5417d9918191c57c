"""
Services métier pour le module Session.

Une session est l'équivalent d'un réseau sur l'axe des unités :
responsables promus RESPONSABLE_SESSION, rétrogradés LEADER.
"""
import logging
from datetime import date
from typing import Optional, List, Tuple

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from app.core.exceptions import BusinessValidationError, ConflictError
from app.core.locks import get_lock_manager
from app.models.enums import EntityKind
from app.models.sessions.session import ChurchSession
from app.models.sessions.unit import Unit, UnitMember
from app.services.hierarchy.impact_chain import ImpactChainRebuilder
from app.services.hierarchy.qualification import QualificationService
from app.services.hierarchy.responsibilities import ResponsibilityRegistry
from ..lookups import check_responsables, get_church_or_404, get_session_or_404
from ..unit.services import UnitService
from .schemas import SessionCreate, SessionUpdate

logger = logging.getLogger(__name__)


class DuplicateSessionNameError(ConflictError):
    def __init__(self, nom: str):
        super().__init__(f"Une session nommée '{nom}' existe déjà dans cette église")


class UnitParticipantError(ConflictError):
    """Un responsable de session ne dirige ni ne fréquente d'unité."""

    def __init__(self, user_id: int):
        super().__init__(f"L'utilisateur {user_id} dirige ou fréquente une unité et ne peut pas diriger une session")


class SessionService:
    """Service pour la gestion des sessions."""

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
            eglise_id: Optional[int] = None,
    ) -> Tuple[List[ChurchSession], int]:
        query = select(ChurchSession)
        if eglise_id is not None:
            query = query.where(ChurchSession.eglise_id == eglise_id)

        total = self.db.execute(select(func.count()).select_from(query.subquery())).scalar_one()

        query = query.order_by(ChurchSession.id).offset((page - 1) * size).limit(size)
        return list(self.db.execute(query).scalars().all()), total

    def get_by_id(self, session_id: int) -> ChurchSession:
        return get_session_or_404(self.db, session_id)

    def create(self, data: SessionCreate) -> ChurchSession:
        church = get_church_or_404(self.db, data.eglise_id)
        check_responsables(self.db, data.responsable1_id, data.responsable2_id)
        self._ensure_unique_name(church.id, data.nom)
        self.registry.ensure_available(EntityKind.SESSION, [data.responsable1_id, data.responsable2_id])
        self._ensure_outside_units([data.responsable1_id, data.responsable2_id])

        church_session = ChurchSession(**data.model_dump())
        self.db.add(church_session)
        self.db.flush()

        self.registry.assign(
            EntityKind.SESSION, church_session.id,
            church_session.responsable1_id, church_session.responsable2_id,
        )
        self.qualifications.update_session_responsables_qualification(
            church_session.id, None, None, church_session.responsable1_id, church_session.responsable2_id
        )

        self.db.commit()
        self.db.refresh(church_session)
        logger.info(f"Session {church_session.id} '{church_session.nom}' créée dans l'église {church.id}")

        self.rebuilder.rebuild_safely(church.id)
        return church_session

    def update(self, session_id: int, data: SessionUpdate) -> ChurchSession:
        with self.locks.hold(EntityKind.SESSION, session_id):
            church_session = get_session_or_404(self.db, session_id, for_update=True)
            update_data = data.model_dump(exclude_unset=True)

            old_pair = (church_session.responsable1_id, church_session.responsable2_id)
            new_pair = (
                update_data.pop("responsable1_id", None) or church_session.responsable1_id,
                update_data.pop("responsable2_id") if "responsable2_id" in update_data
                else church_session.responsable2_id,
            )
            responsables_changed = new_pair != old_pair

            if responsables_changed:
                check_responsables(self.db, *new_pair)
                self.registry.ensure_available(EntityKind.SESSION, new_pair, entity_id=church_session.id)
                self._ensure_outside_units([i for i in new_pair if i not in old_pair])

            nom = (update_data.pop("nom", None) or "").strip()
            if nom and nom != church_session.nom:
                self._ensure_unique_name(church_session.eglise_id, nom, exclude_session_id=church_session.id)
                church_session.nom = nom

            for field, value in update_data.items():
                setattr(church_session, field, value)
            self._check_dates(church_session.date_debut, church_session.date_fin)
            church_session.responsable1_id, church_session.responsable2_id = new_pair
            self.db.flush()

            if responsables_changed:
                self.registry.assign(EntityKind.SESSION, church_session.id, *new_pair)
                self.qualifications.update_session_responsables_qualification(
                    church_session.id, *old_pair, *new_pair
                )

            self.db.commit()
            self.db.refresh(church_session)

        self.rebuilder.rebuild_safely(church_session.eglise_id)
        return church_session

    def delete(self, session_id: int) -> None:
        with self.locks.hold(EntityKind.SESSION, session_id):
            church_session = get_session_or_404(self.db, session_id, for_update=True)
            church_id = church_session.eglise_id
            self.delete_cascade(church_session)
            self.db.commit()
            logger.info(f"Session {session_id} supprimée")

        self.rebuilder.rebuild_safely(church_id)

    def delete_cascade(self, church_session: ChurchSession) -> None:
        """
        Cascade de suppression, sans commit.

        Ordre : nettoyage des qualifications (responsables de session,
        responsables et membres des unités) -> unités et leurs membres
        (historique conservé) -> responsabilités -> session.
        """
        self.qualifications.cleanup_session_qualification(church_session.id)

        units = self.db.execute(
            select(Unit).where(Unit.session_id == church_session.id).order_by(Unit.id)
        ).scalars().all()
        unit_service = UnitService(self.db)
        for unit in units:
            unit_service.delete_cascade(unit, cleanup=False)

        self.registry.release(EntityKind.SESSION, church_session.id)

        self.db.flush()
        self.db.expire(church_session)
        self.db.delete(church_session)
        self.db.flush()

    def stats(self, session_id: int) -> dict:
        """Effectifs distincts : responsables de session, responsables et membres des unités."""
        church_session = self.get_by_id(session_id)

        unit_responsables = {uid for unit in church_session.units for uid in unit.responsable_ids}
        members = set(self.db.execute(
            select(UnitMember.user_id)
            .join(Unit, UnitMember.unit_id == Unit.id)
            .where(Unit.session_id == church_session.id)
        ).scalars().all())

        population = set(church_session.responsable_ids) | unit_responsables | members
        return {
            "session_id": church_session.id,
            "total_units": len(church_session.units),
            "total_members": len(population),
            "unit_responsables": len(unit_responsables),
            "by_qualification": self.qualifications.count_by_qualification(population),
        }

    def _ensure_outside_units(self, user_ids) -> None:
        for user_id in user_ids:
            if user_id is None:
                continue
            if self.registry.led_entity_ids(EntityKind.UNIT, user_id) or self.db.execute(
                select(UnitMember.id).where(UnitMember.user_id == user_id)
            ).first():
                raise UnitParticipantError(user_id)

    def _ensure_unique_name(self, eglise_id: int, nom: str, exclude_session_id: Optional[int] = None) -> None:
        query = select(ChurchSession.id).where(ChurchSession.eglise_id == eglise_id, ChurchSession.nom == nom)
        if exclude_session_id is not None:
            query = query.where(ChurchSession.id != exclude_session_id)
        if self.db.execute(query).first() is not None:
            raise DuplicateSessionNameError(nom)

    @staticmethod
    def _check_dates(date_debut: Optional[date], date_fin: Optional[date]) -> None:
        if date_debut and date_fin and date_fin < date_debut:
            raise BusinessValidationError("La date de fin doit être postérieure à la date de début")
