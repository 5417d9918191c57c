"""
Reconstruction de la chaîne d'impact d'une église.

La chaîne d'impact est une vue matérialisée : rebuild(church_id) efface
toutes les lignes de l'église puis les recalcule depuis l'état de
référence (responsables, qualifications, appartenances aux GR).

Algorithme :
    1. Supprimer les lignes de l'église
    2. Niveau 0 : responsable d'église (responsable_id = None)
    3. Niveau 1 : responsables des réseaux de l'église (rend compte au
       responsable d'église)
    4. Niveaux 2 à 6, par ordre croissant : utilisateurs du palier
       correspondant (qualification détenue, ou GR dirigé de ce palier).
       Supérieur = superieur_hierarchique du GR, sinon responsable1 du réseau
       Un utilisateur n'a qu'un nœud : le palier du GR dirigé l'emporte
    5. Insertion en un seul lot

L'ordre d'énumération est stable (tri par id) : deux reconstructions
successives sans écriture intermédiaire produisent les mêmes lignes.
"""
import logging
from typing import Any, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.models.church.church import Church
from app.models.enums import Qualification
from app.models.group.group import Group
from app.models.group.group_member import GroupMember
from app.models.hierarchy.impact_chain import ImpactChain
from app.models.network.network import Network
from app.models.user.user import User
from app.services.hierarchy.levels import (
    CHURCH_LEVEL,
    MAX_GROUP_LEVEL,
    MIN_GROUP_LEVEL,
    NETWORK_LEVEL,
    level_name,
    tier_for_level,
)

logger = logging.getLogger(__name__)


def group_superior_id(group: Group, network: Optional[Network] = None) -> Optional[int]:
    """Supérieur d'un GR : explicite, sinon responsable1 du réseau."""
    if group.superieur_hierarchique_id is not None:
        return group.superieur_hierarchique_id
    network = network or group.network
    return network.responsable1_id if network is not None else None


# =============================================================================
# REBUILDER
# =============================================================================

class ImpactChainRebuilder:
    """Recalcul et maintenance des lignes de chaîne d'impact."""

    def __init__(self, db: Session):
        self.db = db

    # === Reconstruction complète ===

    def rebuild(self, church_id: int) -> list[ImpactChain]:
        """
        Recalcule la chaîne d'impact d'une église (delete puis insert).

        Ne commit pas : l'appelant décide de la transaction.

        Raises:
            NotFoundError: église inexistante
        """
        church = self.db.get(Church, church_id)
        if church is None:
            raise NotFoundError(f"Église avec l'ID {church_id} introuvable")

        removed = self.clear(church_id)

        entries: list[ImpactChain] = []
        entries.extend(self._church_level(church))
        entries.extend(self._network_level(church))
        entries.extend(self._group_levels(church, placed={e.user_id for e in entries}))

        self.db.add_all(entries)
        self.db.flush()

        logger.info(
            f"Chaîne d'impact de l'église {church_id} reconstruite : "
            f"{removed} ligne(s) supprimée(s), {len(entries)} créée(s)"
        )
        return entries

    def rebuild_safely(self, church_id: Optional[int]) -> bool:
        """
        Reconstruction "best effort" après une mutation déjà validée.

        Toute erreur est journalisée et absorbée : la mutation qui a
        déclenché la reconstruction reste un succès pour l'appelant.

        Returns:
            True si la chaîne a été reconstruite et validée
        """
        if church_id is None or not settings.IMPACT_CHAIN_AUTO_REBUILD:
            return False
        try:
            self.rebuild(church_id)
            self.db.commit()
            return True
        except Exception:
            self.db.rollback()
            logger.exception(f"Reconstruction de la chaîne d'impact de l'église {church_id} en échec")
            return False

    # === Opérations ciblées ===

    def clear(self, church_id: int) -> int:
        """Supprime toutes les lignes d'une église."""
        result = self.db.execute(delete(ImpactChain).where(ImpactChain.eglise_id == church_id))
        return result.rowcount or 0

    def delete_for_group(self, group_id: int) -> int:
        result = self.db.execute(delete(ImpactChain).where(ImpactChain.group_id == group_id))
        return result.rowcount or 0

    def delete_for_network(self, network_id: int) -> int:
        result = self.db.execute(delete(ImpactChain).where(ImpactChain.network_id == network_id))
        return result.rowcount or 0

    def delete_for_network_level(self, network_id: int) -> int:
        """Lignes de niveau 1 du réseau uniquement (les GR sont conservés)."""
        result = self.db.execute(
            delete(ImpactChain).where(
                ImpactChain.network_id == network_id,
                ImpactChain.niveau == NETWORK_LEVEL,
            )
        )
        return result.rowcount or 0

    def delete_for_user(self, user_id: int) -> int:
        result = self.db.execute(delete(ImpactChain).where(ImpactChain.user_id == user_id))
        return result.rowcount or 0

    def upsert(self, user_id: int, niveau: int, eglise_id: int, **fields: Any) -> ImpactChain:
        """
        Crée ou met à jour la ligne de clé (user_id, niveau, eglise_id).

        Args:
            fields: qualification, responsable_id, network_id, group_id,
                position_x, position_y
        """
        entry = self.db.execute(
            select(ImpactChain).where(
                ImpactChain.user_id == user_id,
                ImpactChain.niveau == niveau,
                ImpactChain.eglise_id == eglise_id,
            )
        ).scalar_one_or_none()

        if entry is None:
            entry = ImpactChain(user_id=user_id, niveau=niveau, eglise_id=eglise_id)
            self.db.add(entry)

        fields.setdefault("position_y", niveau)
        for field, value in fields.items():
            setattr(entry, field, value)

        self.db.flush()
        return entry

    # === Étapes de l'algorithme ===

    def _church_level(self, church: Church) -> list[ImpactChain]:
        if church.responsable_id is None:
            return []
        return [
            ImpactChain(
                user_id=church.responsable_id,
                niveau=CHURCH_LEVEL,
                qualification=Qualification.RESPONSABLE_EGLISE,
                responsable_id=None,
                eglise_id=church.id,
                position_x=0,
                position_y=CHURCH_LEVEL,
            )
        ]

    def _network_level(self, church: Church) -> list[ImpactChain]:
        networks = self.db.execute(
            select(Network).where(Network.eglise_id == church.id).order_by(Network.id)
        ).scalars().all()

        entries: list[ImpactChain] = []
        seen: set[int] = set()
        for network in networks:
            for user_id in network.responsable_ids:
                if user_id in seen:
                    continue
                seen.add(user_id)
                entries.append(ImpactChain(
                    user_id=user_id,
                    niveau=NETWORK_LEVEL,
                    qualification=Qualification.RESPONSABLE_RESEAU,
                    responsable_id=church.responsable_id,
                    eglise_id=church.id,
                    network_id=network.id,
                    position_x=len(entries),
                    position_y=NETWORK_LEVEL,
                ))
        return entries

    def _group_levels(self, church: Church, placed: set[int]) -> list[ImpactChain]:
        """
        Niveaux 2 à 6. Un utilisateur n'a qu'un nœud : le palier du GR qu'il
        dirige l'emporte sur sa qualification, et les niveaux 0 et 1
        (placed) ne sont pas répétés.
        """
        groups = self.db.execute(
            select(Group)
            .join(Network, Group.network_id == Network.id)
            .where(Network.eglise_id == church.id)
            .order_by(Group.id)
        ).scalars().all()
        groups_by_id = {group.id: group for group in groups}

        led_group: dict[int, Group] = {}
        for group in groups:
            for user_id in group.responsable_ids:
                led_group.setdefault(user_id, group)

        member_group: dict[int, Group] = {}
        if groups_by_id:
            memberships = self.db.execute(
                select(GroupMember).where(GroupMember.group_id.in_(list(groups_by_id)))
            ).scalars().all()
            member_group = {m.user_id: groups_by_id[m.group_id] for m in memberships}

        entries: list[ImpactChain] = []
        for level in range(MIN_GROUP_LEVEL, MAX_GROUP_LEVEL + 1):
            tier = tier_for_level(level)

            holders = {
                user_id
                for user_id in self.db.execute(
                    select(User.id).where(
                        User.eglise_locale_id == church.id,
                        User.qualification == tier,
                    )
                ).scalars().all()
                if user_id not in led_group
            }
            holders.update(uid for uid, group in led_group.items() if group.qualification == tier)
            holders -= placed

            for index, user_id in enumerate(sorted(holders)):
                group = led_group.get(user_id) or member_group.get(user_id)
                if group is None:
                    logger.warning(
                        f"Utilisateur {user_id} ({tier.value}) sans GR dans l'église {church.id} : "
                        f"nœud placé sans supérieur"
                    )
                entries.append(ImpactChain(
                    user_id=user_id,
                    niveau=level,
                    qualification=tier,
                    responsable_id=group_superior_id(group) if group is not None else None,
                    eglise_id=church.id,
                    network_id=group.network_id if group is not None else None,
                    group_id=group.id if group is not None else None,
                    position_x=index,
                    position_y=level,
                ))
            placed.update(holders)
        return entries



# =============================================================================
# CONSTRUCTION D'ARBRE
# =============================================================================

def node_to_dict(node: ImpactChain, names: Optional[dict[int, str]] = None) -> dict:
    return {
        "id": node.id,
        "user_id": node.user_id,
        "username": (names or {}).get(node.user_id),
        "niveau": node.niveau,
        "level_name": level_name(node.niveau),
        "qualification": node.qualification,
        "responsable_id": node.responsable_id,
        "eglise_id": node.eglise_id,
        "network_id": node.network_id,
        "group_id": node.group_id,
        "position_x": node.position_x,
        "position_y": node.position_y,
        "children": [],
    }


def build_tree(
        nodes: Sequence[ImpactChain],
        parent_id: Optional[int] = None,
        names: Optional[dict[int, str]] = None,
        _visited: Optional[set[int]] = None,
) -> list[dict]:
    """
    Construit l'arbre imbriqué à partir des lignes à plat.

    Au premier appel (parent_id=None), les racines sont les nœuds sans
    responsable ou dont le responsable n'a pas de nœud. Un nœud n'est
    visité qu'une fois : un cycle responsable_id ne boucle pas.
    """
    visited = set() if _visited is None else _visited
    known_users = {node.user_id for node in nodes}

    branch = []
    for node in sorted(nodes, key=lambda n: (n.niveau, n.position_x, n.user_id)):
        if node.id in visited:
            continue
        if parent_id is None:
            attached = node.responsable_id is None or node.responsable_id not in known_users
        else:
            attached = node.responsable_id == parent_id
        if not attached:
            continue

        visited.add(node.id)
        item = node_to_dict(node, names)
        item["children"] = build_tree(nodes, node.user_id, names, visited)
        branch.append(item)
    return branch
