"""
Module Group API.

Expose les routes de gestion des GR : responsables, membres,
historique des mouvements.
"""
from app.api.v1.group.routes import router

__all__ = ["router"]
