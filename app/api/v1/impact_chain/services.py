"""
Services de consultation et de maintenance de la chaîne d'impact.

- Arbre imbriqué / liste à plat d'une église
- Reconstruction explicite (erreurs remontées, contrairement au post-traitement)
- Sous-arbre d'un utilisateur
"""
import logging
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.locks import get_lock_manager
from app.models.enums import EntityKind, Qualification
from app.models.group.group import Group
from app.models.hierarchy.impact_chain import ImpactChain
from app.models.network.network import Network
from app.models.user.user import User
from app.services.hierarchy.impact_chain import (
    ImpactChainRebuilder,
    build_tree,
    group_superior_id,
    node_to_dict,
)
from app.services.hierarchy.levels import NETWORK_LEVEL, level_name, level_of
from app.services.hierarchy.responsibilities import ResponsibilityRegistry
from ..lookups import get_church_or_404, get_user_or_404

logger = logging.getLogger(__name__)


class ImpactChainService:
    """Lecture et maintenance de la chaîne d'impact."""

    def __init__(self, db: Session):
        self.db = db
        self.rebuilder = ImpactChainRebuilder(db)
        self.registry = ResponsibilityRegistry(db)
        self.locks = get_lock_manager()

    # === Lecture ===

    def rows(self, church_id: int) -> List[ImpactChain]:
        get_church_or_404(self.db, church_id)
        query = (
            select(ImpactChain)
            .where(ImpactChain.eglise_id == church_id)
            .order_by(ImpactChain.niveau, ImpactChain.position_x, ImpactChain.user_id)
        )
        return list(self.db.execute(query).scalars().all())

    def flat(self, church_id: int) -> List[dict]:
        nodes = self.rows(church_id)
        names = self._names(node.user_id for node in nodes)
        return [node_to_dict(node, names) for node in nodes]

    def tree(self, church_id: int) -> List[dict]:
        nodes = self.rows(church_id)
        return build_tree(nodes, names=self._names(node.user_id for node in nodes))

    def user_tree(self, user_id: int) -> tuple[str, List[dict]]:
        """
        Sous-arbre d'un utilisateur.

        Responsable de réseau : arbre dérivé des GR de ses réseaux, en
        suivant les supérieurs hiérarchiques. Sinon : ses nœuds de chaîne
        d'impact et leurs descendants.

        Returns:
            (source, racines)
        """
        user = get_user_or_404(self.db, user_id)

        network_ids = self.registry.led_entity_ids(EntityKind.NETWORK, user.id)
        if network_ids:
            return "network", [self._network_tree(user, network_ids)]

        own = self.db.execute(
            select(ImpactChain).where(ImpactChain.user_id == user.id).order_by(ImpactChain.niveau)
        ).scalars().all()
        roots = []
        for node in own:
            nodes = self.db.execute(
                select(ImpactChain).where(ImpactChain.eglise_id == node.eglise_id)
            ).scalars().all()
            names = self._names(n.user_id for n in nodes)
            visited = {node.id}
            item = node_to_dict(node, names)
            item["children"] = build_tree(nodes, node.user_id, names, visited)
            roots.append(item)
        return "impact_chain", roots

    # === Maintenance ===

    def rebuild(self, church_id: int) -> int:
        """Reconstruction explicite ; toute erreur est remontée à l'appelant."""
        get_church_or_404(self.db, church_id)
        with self.locks.hold(EntityKind.CHURCH, church_id):
            entries = self.rebuilder.rebuild(church_id)
            self.db.commit()
        return len(entries)

    def clear(self, church_id: int) -> int:
        get_church_or_404(self.db, church_id)
        deleted = self.rebuilder.clear(church_id)
        self.db.commit()
        logger.info(f"Chaîne d'impact de l'église {church_id} vidée ({deleted} ligne(s))")
        return deleted

    # =========================================================================
    # INTERNES
    # =========================================================================

    def _names(self, user_ids: Iterable[int]) -> dict[int, str]:
        ids = set(user_ids)
        if not ids:
            return {}
        rows = self.db.execute(select(User.id, User.username).where(User.id.in_(ids))).all()
        return {row.id: row.username for row in rows}

    def _network_tree(self, user: User, network_ids: List[int]) -> dict:
        groups = self.db.execute(
            select(Group).where(Group.network_id.in_(network_ids)).order_by(Group.id)
        ).scalars().all()

        by_superior: dict[Optional[int], list[Group]] = {}
        for group in groups:
            by_superior.setdefault(group_superior_id(group), []).append(group)

        leader_ids = {uid for group in groups for uid in group.responsable_ids}
        names = self._names([user.id, *leader_ids])
        visited: set[int] = set()

        def attach(superior_id: int) -> list[dict]:
            branch = []
            for group in by_superior.get(superior_id, []):
                if group.id in visited:
                    continue
                visited.add(group.id)
                niveau = level_of(group.qualification)
                children = []
                for responsable_id in group.responsable_ids:
                    children.extend(attach(responsable_id))
                branch.append({
                    "user_id": group.responsable1_id,
                    "username": names.get(group.responsable1_id),
                    "niveau": niveau,
                    "level_name": level_name(niveau),
                    "qualification": group.qualification,
                    "responsable_id": superior_id,
                    "network_id": group.network_id,
                    "group_id": group.id,
                    "group_nom": group.nom,
                    "position_x": len(branch),
                    "position_y": niveau,
                    "children": children,
                })
            return branch

        # Racines : tous les responsables des réseaux dirigés, l'utilisateur
        # d'abord (les GR sans supérieur explicite relèvent du responsable1)
        networks = self.db.execute(
            select(Network).where(Network.id.in_(network_ids)).order_by(Network.id)
        ).scalars().all()
        root_ids = list(dict.fromkeys([user.id, *(rid for n in networks for rid in n.responsable_ids)]))
        children = [item for root_id in root_ids for item in attach(root_id)]

        return {
            "user_id": user.id,
            "username": names.get(user.id),
            "niveau": NETWORK_LEVEL,
            "level_name": level_name(NETWORK_LEVEL),
            "qualification": Qualification.RESPONSABLE_RESEAU,
            "responsable_id": None,
            "eglise_id": user.eglise_locale_id,
            "network_id": network_ids[0],
            "position_x": 0,
            "position_y": NETWORK_LEVEL,
            "children": children,
        }
