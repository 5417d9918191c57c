"""
Services métier pour le module Network.

Contient la logique business séparée des routes HTTP :
- CRUD des réseaux (niveau 1 de la chaîne d'impact)
- Compagnons d'œuvre
- Statistiques par qualification
- Suppression en cascade (GR, membres, lignes de chaîne d'impact)
"""
import logging
from typing import Optional, List, Tuple

from sqlalchemy import select, func, delete
from sqlalchemy.orm import Session

from app.core.exceptions import BusinessValidationError, ConflictError, NotFoundError
from app.core.locks import get_lock_manager
from app.models.enums import EntityKind, Qualification
from app.models.group.group import Group
from app.models.group.group_member import GroupMember
from app.models.network.network import Network, NetworkCompanion
from app.services.hierarchy.impact_chain import ImpactChainRebuilder
from app.services.hierarchy.levels import NETWORK_LEVEL
from app.services.hierarchy.qualification import QualificationService
from app.services.hierarchy.responsibilities import ResponsibilityRegistry
from ..group.services import GroupService
from ..lookups import (
    check_responsables,
    get_church_or_404,
    get_network_or_404,
    get_user_or_404,
)
from .schemas import NetworkCreate, NetworkUpdate

logger = logging.getLogger(__name__)


# =============================================================================
# EXCEPTIONS MÉTIER
# =============================================================================

class DuplicateNetworkNameError(ConflictError):
    def __init__(self, nom: str):
        super().__init__(f"Un réseau nommé '{nom}' existe déjà dans cette église")


class CompanionConflictError(ConflictError):
    """Compagnon ailleurs, déjà compagnon ici, ou membre d'un GR."""
    pass


class CompanionIsResponsableError(BusinessValidationError):
    def __init__(self, user_id: int):
        super().__init__(f"L'utilisateur {user_id} est responsable de ce réseau")


class GroupParticipantError(ConflictError):
    """Un responsable de réseau ne dirige ni ne fréquente de GR."""

    def __init__(self, user_id: int):
        super().__init__(f"L'utilisateur {user_id} dirige ou fréquente un GR et ne peut pas diriger un réseau")


class CompanionNotFoundError(NotFoundError):
    def __init__(self, user_id: int, network_id: int):
        super().__init__(f"L'utilisateur {user_id} n'est pas compagnon d'œuvre du réseau {network_id}")


# =============================================================================
# NETWORK SERVICE
# =============================================================================

class NetworkService:
    """Service pour la gestion des réseaux."""

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
    ) -> Tuple[List[Network], int]:
        query = select(Network)
        if eglise_id is not None:
            query = query.where(Network.eglise_id == eglise_id)

        total = self.db.execute(select(func.count()).select_from(query.subquery())).scalar_one()

        query = query.order_by(Network.nom, Network.id).offset((page - 1) * size).limit(size)
        return list(self.db.execute(query).scalars().all()), total

    def get_by_id(self, network_id: int) -> Network:
        return get_network_or_404(self.db, network_id)

    def create(self, data: NetworkCreate) -> Network:
        """
        Crée un réseau.

        Raises:
            ChurchNotFoundError / UserNotFoundError
            DuplicateNetworkNameError: nom déjà pris dans l'église
            ResponsableAlreadyAssignedError: responsable d'un autre réseau
        """
        church = get_church_or_404(self.db, data.eglise_id)
        check_responsables(self.db, data.responsable1_id, data.responsable2_id)
        self._ensure_unique_name(church.id, data.nom)
        self.registry.ensure_available(EntityKind.NETWORK, [data.responsable1_id, data.responsable2_id])
        self._ensure_outside_groups([data.responsable1_id, data.responsable2_id])

        network = Network(**data.model_dump())
        self.db.add(network)
        self.db.flush()

        self.registry.assign(EntityKind.NETWORK, network.id, network.responsable1_id, network.responsable2_id)
        self._write_responsable_rows(network, church.responsable_id)
        self.qualifications.update_network_responsables_qualification(
            network.id, None, None, network.responsable1_id, network.responsable2_id
        )

        self.db.commit()
        self.db.refresh(network)
        logger.info(f"Réseau {network.id} '{network.nom}' créé dans l'église {church.id}")

        self.rebuilder.rebuild_safely(church.id)
        return network

    def update(self, network_id: int, data: NetworkUpdate) -> Network:
        with self.locks.hold(EntityKind.NETWORK, network_id):
            network = get_network_or_404(self.db, network_id, for_update=True)
            update_data = data.model_dump(exclude_unset=True)

            old_pair = (network.responsable1_id, network.responsable2_id)
            new_pair = (
                update_data.get("responsable1_id", network.responsable1_id),
                update_data["responsable2_id"] if "responsable2_id" in update_data else network.responsable2_id,
            )
            responsables_changed = new_pair != old_pair

            if responsables_changed:
                check_responsables(self.db, *new_pair)
                self.registry.ensure_available(EntityKind.NETWORK, new_pair, entity_id=network.id)
                self._ensure_outside_groups([i for i in new_pair if i not in old_pair])

            nom = (update_data.get("nom") or "").strip()
            if nom and nom != network.nom:
                self._ensure_unique_name(network.eglise_id, nom, exclude_network_id=network.id)
                network.nom = nom
            if "description" in update_data:
                network.description = update_data["description"]
            network.responsable1_id, network.responsable2_id = new_pair
            self.db.flush()

            if responsables_changed:
                self.registry.assign(EntityKind.NETWORK, network.id, *new_pair)
                self.qualifications.update_network_responsables_qualification(network.id, *old_pair, *new_pair)
                self.rebuilder.delete_for_network_level(network.id)
                self._write_responsable_rows(network, network.church.responsable_id)

            self.db.commit()
            self.db.refresh(network)

        self.rebuilder.rebuild_safely(network.eglise_id)
        return network

    def delete(self, network_id: int) -> None:
        with self.locks.hold(EntityKind.NETWORK, network_id):
            network = get_network_or_404(self.db, network_id, for_update=True)
            church_id = network.eglise_id
            self.delete_cascade(network)
            self.db.commit()
            logger.info(f"Réseau {network_id} supprimé")

        self.rebuilder.rebuild_safely(church_id)

    def delete_cascade(self, network: Network) -> None:
        """
        Cascade de suppression, sans commit (réutilisée par la suppression
        d'une église).

        Ordre : chaque GR (cascade complète) -> lignes de chaîne d'impact du
        réseau -> compagnons -> nettoyage des qualifications ->
        responsabilités -> réseau.
        """
        groups = self.db.execute(
            select(Group).where(Group.network_id == network.id).order_by(Group.id)
        ).scalars().all()
        group_service = GroupService(self.db)
        for group in groups:
            group_service.delete_cascade(group)

        self.rebuilder.delete_for_network(network.id)
        self.db.execute(delete(NetworkCompanion).where(NetworkCompanion.network_id == network.id))
        self.qualifications.cleanup_network_qualification(network.id)
        self.registry.release(EntityKind.NETWORK, network.id)

        self.db.flush()
        self.db.expire(network)
        self.db.delete(network)
        self.db.flush()

    # === Compagnons d'œuvre ===

    def get_companions(self, network_id: int) -> List[NetworkCompanion]:
        return list(self.get_by_id(network_id).companions)

    def add_companion(self, network_id: int, user_id: int) -> NetworkCompanion:
        """
        Rattache un compagnon d'œuvre au réseau.

        Raises:
            CompanionIsResponsableError: responsable de ce réseau (400)
            CompanionConflictError: compagnon ailleurs ou ici, ou membre d'un GR (409)
        """
        with self.locks.hold(EntityKind.NETWORK, network_id):
            network = get_network_or_404(self.db, network_id, for_update=True)
            user = get_user_or_404(self.db, user_id)

            if network.is_responsable(user.id):
                raise CompanionIsResponsableError(user.id)

            existing = self.db.execute(
                select(NetworkCompanion).where(NetworkCompanion.user_id == user.id)
            ).scalar_one_or_none()
            if existing is not None:
                if existing.network_id == network.id:
                    raise CompanionConflictError(f"L'utilisateur {user.id} est déjà compagnon de ce réseau")
                raise CompanionConflictError(
                    f"L'utilisateur {user.id} est déjà compagnon du réseau {existing.network_id}"
                )

            in_group = self.db.execute(
                select(GroupMember.id).where(GroupMember.user_id == user.id)
            ).first()
            if in_group:
                raise CompanionConflictError(f"L'utilisateur {user.id} est membre d'un GR")

            companion = NetworkCompanion(network_id=network.id, user_id=user.id)
            self.db.add(companion)
            self.db.commit()
            self.db.refresh(companion)
            return companion

    def remove_companion(self, network_id: int, user_id: int) -> None:
        self.get_by_id(network_id)
        companion = self.db.execute(
            select(NetworkCompanion).where(
                NetworkCompanion.network_id == network_id,
                NetworkCompanion.user_id == user_id,
            )
        ).scalar_one_or_none()
        if companion is None:
            raise CompanionNotFoundError(user_id, network_id)

        self.db.delete(companion)
        self.db.commit()

    def get_members(self, network_id: int) -> List[GroupMember]:
        """Membres de tous les GR du réseau."""
        self.get_by_id(network_id)
        query = (
            select(GroupMember)
            .join(Group, GroupMember.group_id == Group.id)
            .where(Group.network_id == network_id)
            .order_by(Group.id, GroupMember.id)
        )
        return list(self.db.execute(query).scalars().all())

    def stats(self, network_id: int) -> dict:
        """
        Effectifs du réseau, chaque utilisateur compté une seule fois.

        Population : responsables du réseau, responsables et membres des GR,
        compagnons d'œuvre.
        """
        network = self.get_by_id(network_id)

        group_responsables = {uid for group in network.groups for uid in group.responsable_ids}
        members = set(self.db.execute(
            select(GroupMember.user_id)
            .join(Group, GroupMember.group_id == Group.id)
            .where(Group.network_id == network.id)
        ).scalars().all())
        companions = {companion.user_id for companion in network.companions}

        population = set(network.responsable_ids) | group_responsables | members | companions
        return {
            "network_id": network.id,
            "total_groups": len(network.groups),
            "total_members": len(population),
            "group_responsables": len(group_responsables),
            "companions": len(companions),
            "by_qualification": self.qualifications.count_by_qualification(population),
        }

    # =========================================================================
    # INTERNES
    # =========================================================================

    def _write_responsable_rows(self, network: Network, church_responsable_id: Optional[int]) -> None:
        for position, user_id in enumerate((network.responsable1_id, network.responsable2_id)):
            if user_id is None:
                continue
            self.rebuilder.upsert(
                user_id,
                NETWORK_LEVEL,
                network.eglise_id,
                qualification=Qualification.RESPONSABLE_RESEAU,
                responsable_id=church_responsable_id,
                network_id=network.id,
                group_id=None,
                position_x=position,
            )

    def _ensure_outside_groups(self, user_ids) -> None:
        for user_id in user_ids:
            if user_id is None:
                continue
            if self.registry.led_entity_ids(EntityKind.GROUP, user_id) or self.db.execute(
                select(GroupMember.id).where(GroupMember.user_id == user_id)
            ).first():
                raise GroupParticipantError(user_id)

    def _ensure_unique_name(self, eglise_id: int, nom: str, exclude_network_id: Optional[int] = None) -> None:
        query = select(Network.id).where(Network.eglise_id == eglise_id, Network.nom == nom)
        if exclude_network_id is not None:
            query = query.where(Network.id != exclude_network_id)
        if self.db.execute(query).first() is not None:
            raise DuplicateNetworkNameError(nom)
