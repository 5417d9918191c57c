"""
Routes d'authentification.

Endpoints:
- POST /auth/login : connexion email / mot de passe
- GET /auth/me : profil de l'utilisateur connecté
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.auth.user_auth import get_current_user
from app.database.session import get_db
from app.models.user.user import User
from app.api.v1.user.schemas import UserResponse
from .schemas import LoginRequest, LoginResponse
from .services import AuthService

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=LoginResponse, summary="Connexion")
async def login(data: LoginRequest, db: Session = Depends(get_db)):
    service = AuthService(db)
    user = service.authenticate(data.email, data.password)
    token, expires_in = service.issue_token(user)
    return LoginResponse(
        access_token=token,
        expires_in=expires_in,
        user=UserResponse.model_validate(user),
    )


@router.get("/me", response_model=UserResponse, summary="Utilisateur connecté")
async def me(current_user: User = Depends(get_current_user)):
    return UserResponse.model_validate(current_user)
