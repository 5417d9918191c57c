"""
Dépendances d'authentification.

Flow:
    1. get_current_user() extrait le JWT Bearer et charge l'utilisateur
    2. require_role(...) restreint une route à certains rôles d'accès

Usage:
    @router.post("/networks")
    async def create_network(
        current_user: User = Depends(require_role("ADMIN", "MANAGER"))
    ):
        ...
"""

from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from sqlalchemy.orm import Session

from app.core.security.jwt import verify_token
from app.database.session import get_db
from app.models.enums import UserRole
from app.models.user.user import User

# Security scheme pour le token Bearer
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Dépendance pour obtenir l'utilisateur courant depuis le JWT.

    Raises:
        HTTPException 401: Token manquant ou invalide
        HTTPException 403: Utilisateur inactif
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token d'authentification requis",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = verify_token(credentials.credentials, token_type="access")
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Token invalide: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Le JWT stocke l'id sous forme de chaîne
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token invalide: user_id manquant",
        )

    user = db.get(User, user_id)

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Utilisateur non trouvé",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Compte utilisateur désactivé",
        )

    return user


def require_role(*role_names: str):
    """
    Factory de dépendance pour vérifier un rôle d'accès.

    SUPER_ADMIN passe toujours.

    Usage:
        @router.delete("/churches/{church_id}")
        async def delete_church(
            current_user: User = Depends(require_role("SUPER_ADMIN"))
        ):
            ...
    """
    async def role_checker(
        current_user: User = Depends(get_current_user),
    ) -> User:
        if current_user.role == UserRole.SUPER_ADMIN or current_user.has_role(*role_names):
            return current_user
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Rôle requis: {' ou '.join(role_names)}",
        )

    return role_checker
