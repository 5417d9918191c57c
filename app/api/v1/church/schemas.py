"""
Schémas Pydantic pour le module Church.
"""
from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field, ConfigDict, field_validator

from app.api.v1.user.schemas import UserSummary


class ChurchBase(BaseModel):
    """Champs communs pour Church."""
    nom: str = Field(..., min_length=1, max_length=255, description="Nom unique de l'église")
    ville: Optional[str] = Field(None, max_length=100)
    adresse: Optional[str] = None
    description: Optional[str] = None

    @field_validator("nom")
    @classmethod
    def strip_nom(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Le nom de l'église ne peut pas être vide")
        return v


class ChurchCreate(ChurchBase):
    responsable_id: Optional[int] = Field(None, description="Responsable d'église (niveau 0)")


class ChurchUpdate(BaseModel):
    nom: Optional[str] = Field(None, min_length=1, max_length=255)
    ville: Optional[str] = Field(None, max_length=100)
    adresse: Optional[str] = None
    description: Optional[str] = None
    responsable_id: Optional[int] = None


class ChurchResponse(ChurchBase):
    id: int
    responsable_id: Optional[int] = None
    responsable: Optional[UserSummary] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ChurchList(BaseModel):
    """Liste paginée d'églises."""
    items: List[ChurchResponse]
    total: int
    page: int
    size: int
    pages: int
