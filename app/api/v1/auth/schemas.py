"""
Schémas Pydantic pour l'authentification locale (email / mot de passe).
"""
from pydantic import BaseModel, EmailStr, Field

from app.api.v1.user.schemas import UserResponse


class LoginRequest(BaseModel):
    """Identifiants de connexion."""
    email: EmailStr
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    """Token d'accès émis après authentification."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Durée de validité en secondes")


class LoginResponse(TokenResponse):
    """Token + profil de l'utilisateur connecté."""
    user: UserResponse
