"""
Module Unit API.

Expose les routes de gestion des unités d'une session et de leurs membres.
"""
from app.api.v1.unit.routes import router

__all__ = ["router"]
