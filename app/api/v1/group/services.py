"""
Services métier pour le module Group (GR).

Contient la logique business séparée des routes HTTP :
- Création / mise à jour / suppression des GR
- Nommage automatique (GR_<prénom>)
- Inscription automatique des responsables
- Ajout / retrait de membres avec historique
- Responsables disponibles pour un réseau

Chaque mutation s'exécute dans une seule transaction (un commit), sous
verrou du GR concerné ; la chaîne d'impact est reconstruite ensuite,
en "best effort".
"""
import logging
from typing import Optional, List, Tuple

from sqlalchemy import select, func, delete
from sqlalchemy.orm import Session

from app.core.exceptions import BusinessValidationError, ConflictError, NotFoundError
from app.core.locks import get_lock_manager
from app.models.enums import EntityKind, GROUP_EXCLUDED_QUALIFICATIONS, MembershipAction
from app.models.group.group import Group
from app.models.group.group_member import GroupMember, GroupMemberHistory
from app.models.network.network import Network, NetworkCompanion
from app.models.user.user import User
from app.services.hierarchy.impact_chain import ImpactChainRebuilder, group_superior_id
from app.services.hierarchy.levels import is_group_tier, level_of
from app.services.hierarchy.naming import generate_group_name
from app.services.hierarchy.qualification import QualificationService
from app.services.hierarchy.responsibilities import ResponsibilityRegistry
from ..lookups import (
    check_responsables,
    get_group_or_404,
    get_network_or_404,
    get_user_or_404,
)
from .schemas import GroupCreate, GroupUpdate

logger = logging.getLogger(__name__)


# =============================================================================
# EXCEPTIONS MÉTIER
# =============================================================================

class InvalidGroupTierError(BusinessValidationError):
    """Le palier demandé n'est pas un palier de GR."""

    def __init__(self, qualification: str):
        super().__init__(
            f"Qualification de GR invalide : {qualification} "
            f"(attendu QUALIFICATION_12 à QUALIFICATION_248832)"
        )


class DuplicateGroupNameError(ConflictError):
    def __init__(self, nom: str):
        super().__init__(f"Un GR nommé '{nom}' existe déjà dans ce réseau")


class InvalidSuperiorError(BusinessValidationError):
    """Le supérieur doit diriger le réseau ou un GR du même réseau."""

    def __init__(self, user_id: int):
        super().__init__(
            f"L'utilisateur {user_id} n'est ni responsable du réseau "
            f"ni responsable principal d'un GR de ce réseau"
        )


class AlreadyGroupMemberError(ConflictError):
    def __init__(self, user_id: int, same_group: bool = False):
        where = "de ce GR" if same_group else "d'un GR"
        super().__init__(f"L'utilisateur {user_id} est déjà membre {where}")


class NetworkResponsableMemberError(ConflictError):
    def __init__(self, user_id: int):
        super().__init__(f"L'utilisateur {user_id} est responsable de réseau et ne peut pas être membre d'un GR")


class CompanionMemberError(ConflictError):
    def __init__(self, user_id: int):
        super().__init__(f"L'utilisateur {user_id} est compagnon d'œuvre d'un réseau")


class ExcludedQualificationError(BusinessValidationError):
    def __init__(self, qualification: str):
        super().__init__(f"La qualification {qualification} ne permet pas d'être membre d'un GR")


class NotGroupMemberError(NotFoundError):
    def __init__(self, user_id: int, group_id: int):
        super().__init__(f"L'utilisateur {user_id} n'est pas membre du GR {group_id}")


class ResponsableRemovalError(BusinessValidationError):
    """Un responsable ne se retire pas comme simple membre."""

    def __init__(self, user_id: int):
        super().__init__(
            f"L'utilisateur {user_id} est responsable de ce GR : "
            f"modifiez d'abord les responsables"
        )


# =============================================================================
# GROUP SERVICE
# =============================================================================

class GroupService:
    """Service pour la gestion des GR."""

    def __init__(self, db: Session):
        self.db = db
        self.registry = ResponsibilityRegistry(db)
        self.qualifications = QualificationService(db)
        self.rebuilder = ImpactChainRebuilder(db)
        self.locks = get_lock_manager()

    # === Lecture ===

    def get_all(
            self,
            *,
            page: int = 1,
            size: int = 20,
            network_id: Optional[int] = None,
    ) -> Tuple[List[Group], int]:
        query = select(Group)
        if network_id is not None:
            query = query.where(Group.network_id == network_id)

        total = self.db.execute(select(func.count()).select_from(query.subquery())).scalar_one()

        query = query.order_by(Group.id).offset((page - 1) * size).limit(size)
        return list(self.db.execute(query).scalars().all()), total

    def get_by_id(self, group_id: int) -> Group:
        return get_group_or_404(self.db, group_id)

    def get_members(self, group_id: int) -> List[GroupMember]:
        group = self.get_by_id(group_id)
        return list(group.members)

    def get_history(self, group_id: int) -> List[GroupMemberHistory]:
        """Journal du GR, du plus récent au plus ancien (survit à la suppression)."""
        query = (
            select(GroupMemberHistory)
            .where(GroupMemberHistory.group_id == group_id)
            .order_by(GroupMemberHistory.created_at.desc(), GroupMemberHistory.id.desc())
        )
        return list(self.db.execute(query).scalars().all())

    def available_responsables(
            self,
            network_id: int,
            exclude_group_id: Optional[int] = None,
    ) -> List[User]:
        """
        Utilisateurs de l'église du réseau qui ne dirigent aucun GR.

        Les responsables du GR exclude_group_id restent proposés (formulaire
        d'édition) ; les responsables du réseau ne le sont jamais.
        """
        network = get_network_or_404(self.db, network_id)

        groups_query = select(Group)
        if exclude_group_id is not None:
            groups_query = groups_query.where(Group.id != exclude_group_id)
        excluded = {
            user_id
            for group in self.db.execute(groups_query).scalars().all()
            for user_id in group.responsable_ids
        }
        excluded.update(network.responsable_ids)

        query = select(User).where(
            User.eglise_locale_id == network.eglise_id,
            User.is_active.is_(True),
        )
        if excluded:
            query = query.where(User.id.not_in(excluded))

        return list(self.db.execute(query.order_by(User.username, User.id)).scalars().all())

    # === Création ===

    def create(self, data: GroupCreate, changed_by_id: Optional[int] = None) -> Group:
        """
        Crée un GR.

        Étapes :
            1. Validations (réseau, palier, responsables, supérieur, nom)
            2. Écriture du GR et des responsabilités
            3. Lignes de chaîne d'impact des responsables
            4. Promotion LEADER des responsables
            5. Inscription des responsables puis des membres demandés
        """
        network = get_network_or_404(self.db, data.network_id)
        if not is_group_tier(data.qualification):
            raise InvalidGroupTierError(data.qualification.value)

        check_responsables(self.db, data.responsable1_id, data.responsable2_id)
        self.registry.ensure_available(EntityKind.GROUP, [data.responsable1_id, data.responsable2_id])
        self._ensure_can_join([data.responsable1_id, data.responsable2_id])

        if data.superieur_hierarchique_id is not None:
            self._validate_superior(network, data.superieur_hierarchique_id)

        if data.nom:
            self._ensure_unique_name(network.id, data.nom)
            nom = data.nom
        else:
            nom = self._generated_name(data.responsable1_id, data.responsable2_id)

        group = Group(
            nom=nom,
            description=data.description,
            network_id=network.id,
            qualification=data.qualification,
            responsable1_id=data.responsable1_id,
            responsable2_id=data.responsable2_id,
            superieur_hierarchique_id=data.superieur_hierarchique_id,
        )
        self.db.add(group)
        self.db.flush()

        self.registry.assign(EntityKind.GROUP, group.id, group.responsable1_id, group.responsable2_id)
        self._write_responsable_rows(group, network)
        self.qualifications.update_group_responsables_qualification(
            group.id, None, None, group.responsable1_id, group.responsable2_id
        )

        for user_id in group.responsable_ids:
            self._enroll(group, user_id, changed_by_id)
        for user_id in dict.fromkeys(data.members_ids):
            if group.is_responsable(user_id):
                continue
            self._add_member(group, get_user_or_404(self.db, user_id), changed_by_id)

        self.db.commit()
        self.db.refresh(group)
        logger.info(f"GR {group.id} '{group.nom}' créé dans le réseau {network.id}")

        self.rebuilder.rebuild_safely(network.eglise_id)
        return group

    # === Mise à jour ===

    def update(self, group_id: int, data: GroupUpdate, changed_by_id: Optional[int] = None) -> Group:
        """
        Met à jour un GR.

        Un changement de responsables promeut les entrants, rétrograde les
        sortants et régénère le nom si aucun nom explicite n'est fourni.
        """
        with self.locks.hold(EntityKind.GROUP, group_id):
            group = get_group_or_404(self.db, group_id, for_update=True)
            network = group.network
            update_data = data.model_dump(exclude_unset=True)

            old_pair = (group.responsable1_id, group.responsable2_id)
            new_pair = (
                update_data.get("responsable1_id", group.responsable1_id),
                update_data["responsable2_id"] if "responsable2_id" in update_data else group.responsable2_id,
            )
            responsables_changed = new_pair != old_pair

            if responsables_changed:
                check_responsables(self.db, *new_pair)
                self.registry.ensure_available(EntityKind.GROUP, new_pair, entity_id=group.id)
                self._ensure_can_join([i for i in new_pair if i not in old_pair])

            if update_data.get("superieur_hierarchique_id") is not None:
                self._validate_superior(network, update_data["superieur_hierarchique_id"], exclude_group_id=group.id)

            nom = (update_data.pop("nom", None) or "").strip()
            if nom and nom != group.nom:
                self._ensure_unique_name(network.id, nom, exclude_group_id=group.id)
                group.nom = nom
            elif not nom and responsables_changed:
                group.nom = self._generated_name(*new_pair)

            for field in ("description", "superieur_hierarchique_id"):
                if field in update_data:
                    setattr(group, field, update_data[field])
            group.responsable1_id, group.responsable2_id = new_pair
            self.db.flush()

            if responsables_changed:
                self.registry.assign(EntityKind.GROUP, group.id, *new_pair)
                self.qualifications.update_group_responsables_qualification(group.id, *old_pair, *new_pair)
                for user_id in group.responsable_ids:
                    if user_id not in old_pair:
                        self._enroll(group, user_id, changed_by_id)

            self.rebuilder.delete_for_group(group.id)
            self._write_responsable_rows(group, network)

            self.db.commit()
            self.db.refresh(group)

        self.rebuilder.rebuild_safely(network.eglise_id)
        return group

    # === Suppression ===

    def delete(self, group_id: int) -> None:
        """Supprime un GR (cascade ordonnée, une transaction)."""
        with self.locks.hold(EntityKind.GROUP, group_id):
            group = get_group_or_404(self.db, group_id, for_update=True)
            church_id = group.network.eglise_id
            self.delete_cascade(group)
            self.db.commit()
            logger.info(f"GR {group_id} supprimé")

        self.rebuilder.rebuild_safely(church_id)

    def delete_cascade(self, group: Group) -> None:
        """
        Cascade de suppression, sans commit (réutilisée par la suppression
        d'un réseau).

        Ordre : membres (historique conservé) -> lignes de chaîne d'impact
        -> nettoyage des qualifications -> responsabilités -> GR.
        """
        self.db.execute(delete(GroupMember).where(GroupMember.group_id == group.id))
        self.rebuilder.delete_for_group(group.id)
        self.qualifications.cleanup_group_qualification(group.id)
        self.registry.release(EntityKind.GROUP, group.id)

        self.db.flush()
        self.db.expire(group)
        self.db.delete(group)
        self.db.flush()

    # === Membres ===

    def add_member(self, group_id: int, user_id: int, changed_by_id: Optional[int] = None) -> GroupMember:
        with self.locks.hold(EntityKind.GROUP, group_id):
            group = get_group_or_404(self.db, group_id, for_update=True)
            user = get_user_or_404(self.db, user_id)
            membership = self._add_member(group, user, changed_by_id)
            self.db.commit()
            self.db.refresh(membership)
            church_id = group.network.eglise_id

        self.rebuilder.rebuild_safely(church_id)
        return membership

    def remove_member(self, group_id: int, user_id: int, changed_by_id: Optional[int] = None) -> None:
        """
        Retire un membre : qualification MEMBRE_IRREGULIER, ligne LEFT.

        Raises:
            ResponsableRemovalError: l'utilisateur dirige ce GR
            NotGroupMemberError: l'utilisateur n'est pas membre de ce GR
        """
        with self.locks.hold(EntityKind.GROUP, group_id):
            group = get_group_or_404(self.db, group_id, for_update=True)
            get_user_or_404(self.db, user_id)

            if group.is_responsable(user_id):
                raise ResponsableRemovalError(user_id)

            membership = self.db.execute(
                select(GroupMember).where(
                    GroupMember.group_id == group.id,
                    GroupMember.user_id == user_id,
                )
            ).scalar_one_or_none()
            if membership is None:
                raise NotGroupMemberError(user_id, group.id)

            self.db.delete(membership)
            self._log(group, user_id, MembershipAction.LEFT, changed_by_id)
            self.qualifications.mark_group_member_left(user_id)
            self.db.commit()
            church_id = group.network.eglise_id

        self.rebuilder.rebuild_safely(church_id)

    # =========================================================================
    # INTERNES
    # =========================================================================

    def _add_member(self, group: Group, user: User, changed_by_id: Optional[int]) -> GroupMember:
        """Règles d'ajout d'un membre, sans commit."""
        existing = self.db.execute(
            select(GroupMember).where(GroupMember.user_id == user.id)
        ).scalar_one_or_none()
        if existing is not None:
            raise AlreadyGroupMemberError(user.id, same_group=existing.group_id == group.id)

        self._ensure_can_join([user.id])

        if user.qualification in GROUP_EXCLUDED_QUALIFICATIONS:
            raise ExcludedQualificationError(user.qualification.value)

        membership = GroupMember(group_id=group.id, user_id=user.id)
        self.db.add(membership)
        self._log(group, user.id, MembershipAction.JOINED, changed_by_id)
        self.db.flush()
        return membership

    def _enroll(self, group: Group, user_id: int, changed_by_id: Optional[int]) -> None:
        """
        Inscrit un responsable dans son GR.

        Déjà membre du GR : rien à faire. Membre d'un autre GR : transfert
        (LEFT dans l'ancien, JOINED dans le nouveau).
        """
        self._ensure_can_join([user_id])
        existing = self.db.execute(
            select(GroupMember).where(GroupMember.user_id == user_id)
        ).scalar_one_or_none()

        if existing is not None:
            if existing.group_id == group.id:
                return
            previous = existing.group
            logger.info(f"Responsable {user_id} transféré du GR {previous.id} vers le GR {group.id}")
            self._log(previous, user_id, MembershipAction.LEFT, changed_by_id)
            self.db.delete(existing)
            self.db.flush()

        self.db.add(GroupMember(group_id=group.id, user_id=user_id))
        self._log(group, user_id, MembershipAction.JOINED, changed_by_id)
        self.db.flush()

    def _ensure_can_join(self, user_ids: List[Optional[int]]) -> None:
        """Responsables de réseau et compagnons d'œuvre restent hors des GR."""
        for user_id in user_ids:
            if user_id is None:
                continue
            if self.registry.led_entity_ids(EntityKind.NETWORK, user_id):
                raise NetworkResponsableMemberError(user_id)
            is_companion = self.db.execute(
                select(NetworkCompanion.id).where(NetworkCompanion.user_id == user_id)
            ).first()
            if is_companion:
                raise CompanionMemberError(user_id)

    def _log(self, group: Group, user_id: int, action: MembershipAction, changed_by_id: Optional[int]) -> None:
        self.db.add(GroupMemberHistory(
            group_id=group.id,
            group_nom=group.nom,
            user_id=user_id,
            action=action,
            changed_by_id=changed_by_id,
        ))

    def _write_responsable_rows(self, group: Group, network: Network) -> None:
        """Une ligne de chaîne d'impact par slot (position_x 0 puis 1)."""
        niveau = level_of(group.qualification)
        superior_id = group_superior_id(group, network)
        for position, user_id in enumerate((group.responsable1_id, group.responsable2_id)):
            if user_id is None:
                continue
            self.rebuilder.upsert(
                user_id,
                niveau,
                network.eglise_id,
                qualification=group.qualification,
                responsable_id=superior_id,
                network_id=network.id,
                group_id=group.id,
                position_x=position,
            )

    def _validate_superior(
            self,
            network: Network,
            user_id: int,
            exclude_group_id: Optional[int] = None,
    ) -> None:
        get_user_or_404(self.db, user_id)
        if network.is_responsable(user_id):
            return

        query = select(Group.id).where(
            Group.network_id == network.id,
            Group.responsable1_id == user_id,
        )
        if exclude_group_id is not None:
            query = query.where(Group.id != exclude_group_id)
        if self.db.execute(query).first() is None:
            raise InvalidSuperiorError(user_id)

    def _ensure_unique_name(self, network_id: int, nom: str, exclude_group_id: Optional[int] = None) -> None:
        query = select(Group.id).where(Group.network_id == network_id, Group.nom == nom)
        if exclude_group_id is not None:
            query = query.where(Group.id != exclude_group_id)
        if self.db.execute(query).first() is not None:
            raise DuplicateGroupNameError(nom)

    def _generated_name(self, responsable1_id: Optional[int], responsable2_id: Optional[int]) -> str:
        users = [self.db.get(User, i) if i is not None else None for i in (responsable1_id, responsable2_id)]
        return generate_group_name(users)
