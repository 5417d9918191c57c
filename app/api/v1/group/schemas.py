"""
Schémas Pydantic pour le module Group (GR).

Contient les schémas pour :
- Group (création, mise à jour, réponses)
- GroupMember (ajout, réponse)
- GroupMemberHistory (journal des mouvements)
"""
from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field, ConfigDict, field_validator

from app.models.enums import MembershipAction, Qualification
from app.api.v1.user.schemas import UserSummary


# =============================================================================
# GROUP SCHEMAS
# =============================================================================

class GroupCreate(BaseModel):
    """Schéma pour créer un GR."""
    network_id: int = Field(..., description="Réseau propriétaire")
    responsable1_id: int = Field(..., description="Responsable principal")
    responsable2_id: Optional[int] = Field(None, description="Second responsable")
    qualification: Qualification = Field(..., description="Palier du GR (QUALIFICATION_12 à QUALIFICATION_248832)")
    nom: Optional[str] = Field(None, max_length=255, description="Nom explicite (généré sinon)")
    description: Optional[str] = None
    superieur_hierarchique_id: Optional[int] = Field(None, description="Supérieur explicite")
    members_ids: List[int] = Field(default_factory=list, description="Membres à inscrire")

    @field_validator("nom")
    @classmethod
    def strip_nom(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class GroupUpdate(BaseModel):
    """Schéma pour mettre à jour un GR (le palier est figé)."""
    nom: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    responsable1_id: Optional[int] = None
    responsable2_id: Optional[int] = None
    superieur_hierarchique_id: Optional[int] = None


class GroupResponse(BaseModel):
    """Schéma de réponse pour un GR."""
    id: int
    nom: str
    description: Optional[str] = None
    network_id: int
    qualification: Qualification
    responsable1_id: int
    responsable2_id: Optional[int] = None
    superieur_hierarchique_id: Optional[int] = None
    responsable1: Optional[UserSummary] = None
    responsable2: Optional[UserSummary] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class GroupMemberResponse(BaseModel):
    """Membre courant d'un GR."""
    id: int
    group_id: int
    user_id: int
    joined_at: datetime
    user: UserSummary

    model_config = ConfigDict(from_attributes=True)


class GroupDetail(GroupResponse):
    """GR avec ses membres."""
    members: List[GroupMemberResponse] = []


class GroupList(BaseModel):
    """Liste paginée de GR."""
    items: List[GroupResponse]
    total: int
    page: int
    size: int
    pages: int


# =============================================================================
# MEMBRES / HISTORIQUE
# =============================================================================

class GroupMemberAdd(BaseModel):
    user_id: int


class GroupHistoryResponse(BaseModel):
    """Ligne du journal des mouvements."""
    id: int
    group_id: int
    group_nom: str
    user_id: int
    action: MembershipAction
    changed_by_id: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
