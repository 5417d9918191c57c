"""
Module Church API.

Expose les routes de gestion des églises (racines de la hiérarchie).
"""
from app.api.v1.church.routes import router

__all__ = ["router"]
