"""
Schémas Pydantic pour le module Network.

Contient les schémas pour :
- Network (création, mise à jour, réponses)
- NetworkCompanion (compagnons d'œuvre)
- Membres du réseau (membres de tous ses GR)
"""
from datetime import datetime
from typing import Dict, Optional, List

from pydantic import BaseModel, Field, ConfigDict, field_validator

from app.models.enums import Qualification
from app.api.v1.user.schemas import UserSummary


class GroupSummary(BaseModel):
    """Référence compacte vers un GR."""
    id: int
    nom: str
    qualification: Qualification
    responsable1_id: int
    responsable2_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# NETWORK SCHEMAS
# =============================================================================

class NetworkBase(BaseModel):
    nom: str = Field(..., min_length=1, max_length=255, description="Nom du réseau")
    description: Optional[str] = None

    @field_validator("nom")
    @classmethod
    def strip_nom(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Le nom du réseau ne peut pas être vide")
        return v


class NetworkCreate(NetworkBase):
    """Schéma pour créer un réseau."""
    eglise_id: int = Field(..., description="Église propriétaire")
    responsable1_id: int = Field(..., description="Responsable principal")
    responsable2_id: Optional[int] = Field(None, description="Second responsable")


class NetworkUpdate(BaseModel):
    """Schéma pour mettre à jour un réseau (l'église est figée)."""
    nom: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    responsable1_id: Optional[int] = None
    responsable2_id: Optional[int] = None


class NetworkResponse(NetworkBase):
    """Schéma de réponse pour un réseau."""
    id: int
    eglise_id: int
    responsable1_id: int
    responsable2_id: Optional[int] = None
    responsable1: Optional[UserSummary] = None
    responsable2: Optional[UserSummary] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class NetworkDetail(NetworkResponse):
    """Réseau avec ses GR."""
    groups: List[GroupSummary] = []


class NetworkList(BaseModel):
    """Liste paginée de réseaux."""
    items: List[NetworkResponse]
    total: int
    page: int
    size: int
    pages: int


# =============================================================================
# COMPANIONS / MEMBERS
# =============================================================================

class CompanionAdd(BaseModel):
    user_id: int


class CompanionResponse(BaseModel):
    """Compagnon d'œuvre d'un réseau."""
    id: int
    network_id: int
    user_id: int
    created_at: datetime
    user: UserSummary

    model_config = ConfigDict(from_attributes=True)


class NetworkMemberResponse(BaseModel):
    """Membre d'un GR du réseau."""
    group_id: int
    group_nom: str
    user: UserSummary


# =============================================================================
# STATS
# =============================================================================

class NetworkStatsResponse(BaseModel):
    """Effectifs distincts du réseau et répartition par qualification."""
    network_id: int
    total_groups: int
    total_members: int
    group_responsables: int
    companions: int
    by_qualification: Dict[str, int] = Field(default_factory=dict)
