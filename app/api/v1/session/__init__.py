"""
Module Session API.

Expose les routes de gestion des sessions (axe parallèle aux réseaux).
"""
from app.api.v1.session.routes import router

__all__ = ["router"]
