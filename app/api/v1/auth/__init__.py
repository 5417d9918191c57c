"""
Module Auth API.

Connexion locale (email / mot de passe) et émission du token JWT.
"""
from app.api.v1.auth.routes import router

__all__ = ["router"]
