"""
User models - Membres de l'église.

- User : toute personne connue de l'application
"""

from app.models.user.user import User

__all__ = ["User"]
