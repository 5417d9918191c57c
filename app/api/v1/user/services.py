"""
Services métier pour le module User.

Contient la logique business séparée des routes HTTP :
- CRUD utilisateurs
- Écrasement manuel de la qualification
- Suppression gardée : refusée tant que l'utilisateur est responsable
"""
import logging
from typing import Optional, List, Tuple

from sqlalchemy import select, func, or_, update, delete
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError
from app.core.security.hashing import hash_password
from app.models.enums import EntityKind, MembershipAction, Qualification
from app.models.group.group import Group
from app.models.group.group_member import GroupMember, GroupMemberHistory
from app.models.hierarchy.impact_chain import ImpactChain
from app.models.network.network import NetworkCompanion
from app.models.sessions.unit import Unit, UnitMember, UnitMemberHistory
from app.models.user.user import User
from app.services.hierarchy.impact_chain import ImpactChainRebuilder
from app.services.hierarchy.qualification import QualificationService
from app.services.hierarchy.responsibilities import ResponsibilityRegistry
from ..lookups import get_church_or_404, get_user_or_404
from .schemas import UserCreate, UserUpdate

logger = logging.getLogger(__name__)


# =============================================================================
# EXCEPTIONS MÉTIER
# =============================================================================

class DuplicateEmailError(ConflictError):
    """Email déjà utilisé."""

    def __init__(self, email: str):
        super().__init__(f"L'email {email} est déjà utilisé")


class DuplicatePseudoError(ConflictError):
    """Pseudo déjà utilisé."""

    def __init__(self, pseudo: str):
        super().__init__(f"Le pseudo {pseudo} est déjà utilisé")


class UserHasResponsibilitiesError(ConflictError):
    """Suppression refusée : l'utilisateur dirige encore au moins une entité."""

    def __init__(self, held: list[tuple[EntityKind, int]]):
        summary = ", ".join(f"{kind.value} {entity_id}" for kind, entity_id in held)
        super().__init__(
            f"Impossible de supprimer l'utilisateur : il est encore responsable ({summary})"
        )


# =============================================================================
# USER SERVICE
# =============================================================================

class UserService:
    """Service pour la gestion des utilisateurs."""

    def __init__(self, db: Session):
        self.db = db
        self.registry = ResponsibilityRegistry(db)

    def get_all(
            self,
            *,
            page: int = 1,
            size: int = 20,
            eglise_id: Optional[int] = None,
            qualification: Optional[Qualification] = None,
            search: Optional[str] = None,
    ) -> Tuple[List[User], int]:
        """
        Récupère la liste paginée des utilisateurs.

        Returns:
            Tuple (items, total_count)
        """
        query = select(User)

        if eglise_id is not None:
            query = query.where(User.eglise_locale_id == eglise_id)
        if qualification is not None:
            query = query.where(User.qualification == qualification)
        if search:
            pattern = f"%{search}%"
            query = query.where(or_(
                User.username.ilike(pattern),
                User.pseudo.ilike(pattern),
                User.email.ilike(pattern),
            ))

        count_query = select(func.count()).select_from(query.subquery())
        total = self.db.execute(count_query).scalar_one()

        query = query.order_by(User.username, User.id)
        query = query.offset((page - 1) * size).limit(size)

        items = self.db.execute(query).scalars().all()
        return list(items), total

    def get_by_id(self, user_id: int) -> User:
        return get_user_or_404(self.db, user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        query = select(User).where(func.lower(User.email) == email.lower())
        return self.db.execute(query).scalar_one_or_none()

    def get_by_pseudo(self, pseudo: str) -> Optional[User]:
        return self.db.execute(select(User).where(User.pseudo == pseudo)).scalar_one_or_none()

    def create(self, data: UserCreate) -> User:
        """Crée un utilisateur (mot de passe hashé avec bcrypt)."""
        if self.get_by_email(data.email):
            raise DuplicateEmailError(data.email)
        if data.pseudo and self.get_by_pseudo(data.pseudo):
            raise DuplicatePseudoError(data.pseudo)
        if data.eglise_locale_id is not None:
            get_church_or_404(self.db, data.eglise_locale_id)

        user_data = data.model_dump(exclude={"password"})
        user = User(**user_data)
        if data.password:
            user.password_hash = hash_password(data.password)

        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def update(self, user_id: int, data: UserUpdate) -> User:
        """
        Met à jour le profil (jamais la qualification).

        Un changement d'église reconstruit la chaîne d'impact de l'ancienne
        et de la nouvelle église.
        """
        user = self.get_by_id(user_id)
        update_data = data.model_dump(exclude_unset=True)

        if update_data.get("email"):
            existing = self.get_by_email(update_data["email"])
            if existing and existing.id != user_id:
                raise DuplicateEmailError(update_data["email"])
        if update_data.get("pseudo"):
            existing = self.get_by_pseudo(update_data["pseudo"])
            if existing and existing.id != user_id:
                raise DuplicatePseudoError(update_data["pseudo"])
        if update_data.get("eglise_locale_id") is not None:
            get_church_or_404(self.db, update_data["eglise_locale_id"])

        old_church_id = user.eglise_locale_id
        for field, value in update_data.items():
            setattr(user, field, value)

        self.db.commit()
        self.db.refresh(user)

        if user.eglise_locale_id != old_church_id:
            rebuilder = ImpactChainRebuilder(self.db)
            for church_id in (old_church_id, user.eglise_locale_id):
                rebuilder.rebuild_safely(church_id)
            self.db.refresh(user)
        return user

    def set_qualification(self, user_id: int, qualification: Qualification) -> User:
        """Écrasement manuel, sans contrôle de cohérence avec les responsabilités."""
        user = QualificationService(self.db).set_qualification(user_id, qualification)
        self.db.commit()
        self.db.refresh(user)
        return user

    def responsibilities(self, user_id: int) -> list[tuple[EntityKind, int]]:
        self.get_by_id(user_id)
        return self.registry.responsibilities_of(user_id)

    def delete(self, user_id: int, changed_by_id: Optional[int] = None) -> None:
        """
        Supprime un utilisateur.

        Ordre :
            1. Refus si responsable (église, réseau, GR, session, unité)
            2. Retrait des GR et unités (ligne LEFT conservée) et des compagnonnages
            3. Détachement des supérieurs hiérarchiques et des nœuds enfants
            4. Suppression des nœuds de chaîne d'impact puis de l'utilisateur
        """
        user = get_user_or_404(self.db, user_id, for_update=True)

        held = self.registry.responsibilities_of(user_id)
        if held:
            raise UserHasResponsibilitiesError(held)

        church_id = user.eglise_locale_id

        for membership in self.db.execute(
            select(GroupMember).where(GroupMember.user_id == user_id)
        ).scalars().all():
            self.db.add(GroupMemberHistory(
                group_id=membership.group_id,
                group_nom=membership.group.nom,
                user_id=user_id,
                action=MembershipAction.LEFT,
                changed_by_id=changed_by_id,
            ))
        for membership in self.db.execute(
            select(UnitMember).where(UnitMember.user_id == user_id)
        ).scalars().all():
            self.db.add(UnitMemberHistory(
                unit_id=membership.unit_id,
                unit_nom=membership.unit.nom,
                user_id=user_id,
                action=MembershipAction.LEFT,
                changed_by_id=changed_by_id,
            ))
        self.db.flush()

        self.db.execute(delete(GroupMember).where(GroupMember.user_id == user_id))
        self.db.execute(delete(UnitMember).where(UnitMember.user_id == user_id))
        self.db.execute(delete(NetworkCompanion).where(NetworkCompanion.user_id == user_id))

        self.db.execute(
            update(Group).where(Group.superieur_hierarchique_id == user_id).values(superieur_hierarchique_id=None)
        )
        self.db.execute(
            update(Unit).where(Unit.superieur_hierarchique_id == user_id).values(superieur_hierarchique_id=None)
        )
        self.db.execute(
            update(ImpactChain).where(ImpactChain.responsable_id == user_id).values(responsable_id=None)
        )

        rebuilder = ImpactChainRebuilder(self.db)
        rebuilder.delete_for_user(user_id)

        self.db.delete(user)
        self.db.commit()
        logger.info(f"Utilisateur {user_id} supprimé")

        rebuilder.rebuild_safely(church_id)
