"""Gestion des tokens JWT d'accès (python-jose, clé symétrique)."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt, JWTError

from app.core.config import settings

TOKEN_ISSUER = "chaine-impact"


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Crée un token JWT d'accès.

    Args:
        data: Claims à encoder (sub = id utilisateur, role...)
        expires_delta: Durée de validité personnalisée

    Returns:
        Token JWT signé
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))

    to_encode.update({
        "exp": expire,
        "iat": now,
        "iss": TOKEN_ISSUER,
        "type": "access",
    })

    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str, token_type: str = "access") -> Dict[str, Any]:
    """
    Vérifie et décode un token JWT.

    Raises:
        JWTError: Si le token est invalide, expiré, de mauvais type ou d'un autre émetteur
    """
    payload = jwt.decode(
        token,
        settings.JWT_SECRET_KEY,
        algorithms=[settings.ALGORITHM],
        options={"require_exp": True, "require_iat": True},
    )

    if payload.get("type") != token_type:
        raise JWTError(f"Type de token inattendu (attendu : {token_type})")

    if payload.get("iss") != TOKEN_ISSUER:
        raise JWTError("Émetteur du token invalide")

    return payload
