"""
Module Network API.

Expose les routes de gestion des réseaux et de leurs compagnons d'œuvre.
"""
from app.api.v1.network.routes import router

__all__ = ["router"]
