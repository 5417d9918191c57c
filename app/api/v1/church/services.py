"""
Services métier pour le module Church.

Contient la logique business séparée des routes HTTP :
- CRUD des églises
- Responsable d'église (niveau 0, une église au plus par responsable)
- Suppression en cascade (sessions, réseaux, chaîne d'impact)
"""
import logging
from typing import Optional, List, Tuple

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError
from app.core.locks import get_lock_manager
from app.models.church.church import Church
from app.models.enums import EntityKind
from app.models.network.network import Network
from app.models.sessions.session import ChurchSession
from app.models.user.user import User
from app.services.hierarchy.impact_chain import ImpactChainRebuilder
from app.services.hierarchy.responsibilities import ResponsibilityRegistry
from ..lookups import get_church_or_404, get_user_or_404
from ..network.services import NetworkService
from ..session.services import SessionService
from .schemas import ChurchCreate, ChurchUpdate

logger = logging.getLogger(__name__)


# =============================================================================
# EXCEPTIONS MÉTIER
# =============================================================================

class DuplicateChurchNameError(ConflictError):
    def __init__(self, nom: str):
        super().__init__(f"Une église nommée '{nom}' existe déjà")


class ChurchHasMembersError(ConflictError):
    def __init__(self, count: int):
        super().__init__(
            f"Impossible de supprimer l'église : {count} utilisateur(s) y sont encore rattaché(s)"
        )


# =============================================================================
# CHURCH SERVICE
# =============================================================================

class ChurchService:
    """Service pour la gestion des églises."""

    def __init__(self, db: Session):
        self.db = db
        self.registry = ResponsibilityRegistry(db)
        self.rebuilder = ImpactChainRebuilder(db)
        self.locks = get_lock_manager()

    def get_all(
            self,
            *,
            page: int = 1,
            size: int = 20,
            search: Optional[str] = None,
    ) -> Tuple[List[Church], int]:
        query = select(Church)
        if search:
            pattern = f"%{search}%"
            query = query.where(Church.nom.ilike(pattern) | Church.ville.ilike(pattern))

        total = self.db.execute(select(func.count()).select_from(query.subquery())).scalar_one()

        query = query.order_by(Church.nom).offset((page - 1) * size).limit(size)
        return list(self.db.execute(query).scalars().all()), total

    def get_by_id(self, church_id: int) -> Church:
        return get_church_or_404(self.db, church_id)

    def create(self, data: ChurchCreate) -> Church:
        self._ensure_unique_name(data.nom)
        if data.responsable_id is not None:
            get_user_or_404(self.db, data.responsable_id)
            self.registry.ensure_available(EntityKind.CHURCH, [data.responsable_id])

        church = Church(**data.model_dump())
        self.db.add(church)
        self.db.flush()
        self.registry.assign(EntityKind.CHURCH, church.id, church.responsable_id)

        self.db.commit()
        self.db.refresh(church)
        logger.info(f"Église {church.id} '{church.nom}' créée")

        self.rebuilder.rebuild_safely(church.id)
        return church

    def update(self, church_id: int, data: ChurchUpdate) -> Church:
        with self.locks.hold(EntityKind.CHURCH, church_id):
            church = get_church_or_404(self.db, church_id, for_update=True)
            update_data = data.model_dump(exclude_unset=True)

            nom = (update_data.pop("nom", None) or "").strip()
            if nom and nom != church.nom:
                self._ensure_unique_name(nom, exclude_church_id=church.id)
                church.nom = nom

            responsable_changed = (
                "responsable_id" in update_data
                and update_data["responsable_id"] != church.responsable_id
            )
            if responsable_changed and update_data["responsable_id"] is not None:
                get_user_or_404(self.db, update_data["responsable_id"])
                self.registry.ensure_available(
                    EntityKind.CHURCH, [update_data["responsable_id"]], entity_id=church.id
                )

            for field, value in update_data.items():
                setattr(church, field, value)
            self.db.flush()

            if responsable_changed:
                self.registry.assign(EntityKind.CHURCH, church.id, church.responsable_id)

            self.db.commit()
            self.db.refresh(church)

        self.rebuilder.rebuild_safely(church.id)
        return church

    def delete(self, church_id: int) -> None:
        """
        Supprime une église et toute sa hiérarchie, en une transaction.

        Raises:
            ChurchHasMembersError: des utilisateurs y sont encore rattachés
        """
        with self.locks.hold(EntityKind.CHURCH, church_id):
            church = get_church_or_404(self.db, church_id, for_update=True)

            members = self.db.execute(
                select(func.count(User.id)).where(User.eglise_locale_id == church.id)
            ).scalar_one()
            if members:
                raise ChurchHasMembersError(members)

            sessions = self.db.execute(
                select(ChurchSession).where(ChurchSession.eglise_id == church.id).order_by(ChurchSession.id)
            ).scalars().all()
            session_service = SessionService(self.db)
            for church_session in sessions:
                session_service.delete_cascade(church_session)

            networks = self.db.execute(
                select(Network).where(Network.eglise_id == church.id).order_by(Network.id)
            ).scalars().all()
            network_service = NetworkService(self.db)
            for network in networks:
                network_service.delete_cascade(network)

            self.rebuilder.clear(church.id)
            self.registry.release(EntityKind.CHURCH, church.id)

            self.db.flush()
            self.db.expire(church)
            self.db.delete(church)
            self.db.commit()
            logger.info(f"Église {church_id} supprimée")

    def _ensure_unique_name(self, nom: str, exclude_church_id: Optional[int] = None) -> None:
        query = select(Church.id).where(Church.nom == nom)
        if exclude_church_id is not None:
            query = query.where(Church.id != exclude_church_id)
        if self.db.execute(query).first() is not None:
            raise DuplicateChurchNameError(nom)
