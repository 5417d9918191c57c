"""
Module User API.

Expose les routes de gestion des utilisateurs : profil, qualification
forcée, responsabilités actives et suppression gardée.
"""
from app.api.v1.user.routes import router

__all__ = ["router"]
