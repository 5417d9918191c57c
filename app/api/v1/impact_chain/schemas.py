"""
Schémas Pydantic pour la chaîne d'impact.
"""
from typing import Optional, List

from pydantic import BaseModel

from app.models.enums import Qualification


class ImpactChainEntry(BaseModel):
    """Ligne à plat de la chaîne d'impact."""
    id: Optional[int] = None
    user_id: int
    username: Optional[str] = None
    niveau: int
    level_name: str
    qualification: Optional[Qualification] = None
    responsable_id: Optional[int] = None
    eglise_id: Optional[int] = None
    network_id: Optional[int] = None
    group_id: Optional[int] = None
    position_x: int = 0
    position_y: int = 0


class ImpactChainNode(ImpactChainEntry):
    """Nœud de l'arbre imbriqué."""
    group_nom: Optional[str] = None
    children: List["ImpactChainNode"] = []


class ImpactChainTree(BaseModel):
    eglise_id: int
    total: int
    roots: List[ImpactChainNode]


class ImpactChainFlat(BaseModel):
    eglise_id: int
    total: int
    items: List[ImpactChainEntry]


class UserImpactTree(BaseModel):
    """
    Sous-arbre d'un utilisateur.

    source = "network" : arbre dérivé des GR du réseau qu'il dirige
    source = "impact_chain" : ses nœuds et leurs descendants
    """
    user_id: int
    source: str
    roots: List[ImpactChainNode]


class RebuildResult(BaseModel):
    eglise_id: int
    rows: int


class ClearResult(BaseModel):
    eglise_id: int
    deleted: int


ImpactChainNode.model_rebuild()
