"""
Service d'authentification - Logique métier.

Authentification locale uniquement : email + mot de passe (bcrypt),
puis émission d'un token JWT d'accès.
"""
import logging
from typing import Tuple

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security.hashing import verify_password
from app.core.security.jwt import create_access_token
from app.models.user.user import User

logger = logging.getLogger(__name__)


# =============================================================================
# EXCEPTIONS
# =============================================================================

class InvalidCredentialsError(HTTPException):
    """Identifiants invalides (message volontairement générique)."""

    def __init__(self):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Email ou mot de passe incorrect",
            headers={"WWW-Authenticate": "Bearer"},
        )


class InactiveUserError(HTTPException):
    def __init__(self):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail="Compte utilisateur désactivé")


# =============================================================================
# AUTH SERVICE
# =============================================================================

class AuthService:
    """Authentification locale et émission des tokens."""

    def __init__(self, db: Session):
        self.db = db

    def authenticate(self, email: str, password: str) -> User:
        """
        Vérifie les identifiants.

        Raises:
            InvalidCredentialsError: email inconnu, pas de mot de passe, ou mot de passe faux
            InactiveUserError: compte désactivé
        """
        user = self.db.execute(
            select(User).where(func.lower(User.email) == email.lower())
        ).scalar_one_or_none()

        if user is None or not verify_password(password, user.password_hash):
            logger.warning(f"Échec de connexion pour {email}")
            raise InvalidCredentialsError()

        if not user.is_active:
            raise InactiveUserError()

        return user

    @staticmethod
    def issue_token(user: User) -> Tuple[str, int]:
        """Retourne (token, durée de validité en secondes)."""
        token = create_access_token({"sub": str(user.id), "role": user.role.value})
        return token, settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
