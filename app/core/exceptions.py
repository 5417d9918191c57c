"""
Exceptions métier partagées.

Trois familles, traduites directement en réponses HTTP :
- NotFoundError (404) : église, réseau, GR, utilisateur... introuvable
- ConflictError (409) : doublon de nom, responsable déjà assigné, membre ailleurs
- BusinessValidationError (400) : qualification exclue, champ requis manquant

Chaque module API dérive ses propres exceptions de ces bases
(ex: GroupNotFoundError, DuplicateNetworkNameError).
"""
from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """Ressource référencée inexistante."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ConflictError(HTTPException):
    """Conflit avec l'état courant de la hiérarchie."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class BusinessValidationError(HTTPException):
    """Règle métier violée par les données fournies."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class UserNotFoundError(NotFoundError):
    """Utilisateur introuvable."""

    def __init__(self, user_id: int):
        super().__init__(f"Utilisateur avec l'ID {user_id} introuvable")
