"""
Schémas Pydantic pour le module User.

Contient les schémas pour :
- User (création, mise à jour, réponses)
- Qualification (écrasement manuel)
- UserSummary (référence compacte réutilisée par les autres modules)
"""
from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, EmailStr, Field, ConfigDict, field_validator

from app.models.enums import Qualification, UserRole


# =============================================================================
# USER SUMMARY (partagé)
# =============================================================================

class UserSummary(BaseModel):
    """Référence compacte vers un utilisateur."""
    id: int
    username: str
    pseudo: Optional[str] = None
    qualification: Qualification

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# USER SCHEMAS
# =============================================================================

class UserBase(BaseModel):
    """Champs communs pour User."""
    username: str = Field(..., min_length=1, max_length=150, description="Nom d'usage (titre éventuel inclus)")
    pseudo: Optional[str] = Field(None, max_length=100, description="Pseudo unique")
    email: EmailStr = Field(..., description="Email de connexion")
    telephone: Optional[str] = Field(None, max_length=30)
    eglise_locale_id: Optional[int] = Field(None, description="Église de rattachement")

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Le nom d'usage ne peut pas être vide")
        return v


class UserCreate(UserBase):
    """Schéma pour créer un utilisateur."""
    password: Optional[str] = Field(None, min_length=8, max_length=128, description="Mot de passe en clair")
    role: UserRole = Field(UserRole.MEMBRE, description="Rôle d'accès")
    qualification: Qualification = Field(Qualification.EN_INTEGRATION, description="Qualification initiale")


class UserUpdate(BaseModel):
    """Schéma pour mettre à jour un utilisateur (la qualification a sa propre route)."""
    username: Optional[str] = Field(None, min_length=1, max_length=150)
    pseudo: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    telephone: Optional[str] = Field(None, max_length=30)
    eglise_locale_id: Optional[int] = None
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


class QualificationUpdate(BaseModel):
    """Écrasement manuel de la qualification."""
    qualification: Qualification


class UserResponse(BaseModel):
    """Schéma de réponse pour un utilisateur."""
    id: int
    username: str
    pseudo: Optional[str] = None
    email: str
    telephone: Optional[str] = None
    role: UserRole
    qualification: Qualification
    eglise_locale_id: Optional[int] = None
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UserList(BaseModel):
    """Liste paginée d'utilisateurs."""
    items: List[UserResponse]
    total: int
    page: int
    size: int
    pages: int


class ResponsibilityItem(BaseModel):
    """Responsabilité active d'un utilisateur."""
    entity_kind: str
    entity_id: int
