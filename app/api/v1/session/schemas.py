"""
Schémas Pydantic pour le module Session.
"""
from datetime import date, datetime
from typing import Dict, Optional, List

from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator

from app.api.v1.user.schemas import UserSummary


class UnitSummary(BaseModel):
    id: int
    nom: str
    responsable1_id: int
    responsable2_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class SessionBase(BaseModel):
    nom: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    date_debut: Optional[date] = None
    date_fin: Optional[date] = None

    @field_validator("nom")
    @classmethod
    def strip_nom(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Le nom de la session ne peut pas être vide")
        return v

    @model_validator(mode="after")
    def check_dates(self):
        if self.date_debut and self.date_fin and self.date_fin < self.date_debut:
            raise ValueError("La date de fin doit être postérieure à la date de début")
        return self


class SessionCreate(SessionBase):
    """Schéma pour créer une session."""
    eglise_id: int
    responsable1_id: int
    responsable2_id: Optional[int] = None


class SessionUpdate(BaseModel):
    nom: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    date_debut: Optional[date] = None
    date_fin: Optional[date] = None
    responsable1_id: Optional[int] = None
    responsable2_id: Optional[int] = None


class SessionResponse(SessionBase):
    id: int
    eglise_id: int
    responsable1_id: int
    responsable2_id: Optional[int] = None
    responsable1: Optional[UserSummary] = None
    responsable2: Optional[UserSummary] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SessionDetail(SessionResponse):
    """Session avec ses unités."""
    units: List[UnitSummary] = []


class SessionList(BaseModel):
    items: List[SessionResponse]
    total: int
    page: int
    size: int
    pages: int


class SessionStatsResponse(BaseModel):
    """Effectifs distincts de la session et répartition par qualification."""
    session_id: int
    total_units: int
    total_members: int
    unit_responsables: int
    by_qualification: Dict[str, int] = Field(default_factory=dict)
