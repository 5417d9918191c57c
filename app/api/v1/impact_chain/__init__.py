"""
Module Impact Chain API.

Consultation (arbre, liste à plat, sous-arbre) et maintenance
(reconstruction, vidage) de la chaîne d'impact.
"""
from app.api.v1.impact_chain.routes import router

__all__ = ["router"]
