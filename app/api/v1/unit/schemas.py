"""
Schémas Pydantic pour le module Unit.
"""
from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field, ConfigDict, field_validator

from app.models.enums import MembershipAction
from app.api.v1.user.schemas import UserSummary


class UnitCreate(BaseModel):
    """Schéma pour créer une unité."""
    session_id: int = Field(..., description="Session propriétaire")
    responsable1_id: int = Field(..., description="Responsable principal")
    responsable2_id: Optional[int] = None
    nom: Optional[str] = Field(None, max_length=255, description="Nom explicite (généré sinon)")
    description: Optional[str] = None
    superieur_hierarchique_id: Optional[int] = None
    members_ids: List[int] = Field(default_factory=list)

    @field_validator("nom")
    @classmethod
    def strip_nom(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class UnitUpdate(BaseModel):
    nom: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    responsable1_id: Optional[int] = None
    responsable2_id: Optional[int] = None
    superieur_hierarchique_id: Optional[int] = None


class UnitResponse(BaseModel):
    """Schéma de réponse pour une unité."""
    id: int
    nom: str
    description: Optional[str] = None
    session_id: int
    responsable1_id: int
    responsable2_id: Optional[int] = None
    superieur_hierarchique_id: Optional[int] = None
    responsable1: Optional[UserSummary] = None
    responsable2: Optional[UserSummary] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UnitMemberResponse(BaseModel):
    id: int
    unit_id: int
    user_id: int
    joined_at: datetime
    user: UserSummary

    model_config = ConfigDict(from_attributes=True)


class UnitDetail(UnitResponse):
    """Unité avec ses membres."""
    members: List[UnitMemberResponse] = []


class UnitList(BaseModel):
    items: List[UnitResponse]
    total: int
    page: int
    size: int
    pages: int


class UnitMemberAdd(BaseModel):
    user_id: int


class UnitHistoryResponse(BaseModel):
    id: int
    unit_id: int
    unit_nom: str
    user_id: int
    action: MembershipAction
    changed_by_id: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
