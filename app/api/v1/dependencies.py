# app/api/v1/dependencies.py
"""
Dépendances générales de l'API v1.

- PaginationParams : paramètres de pagination standardisés
- build_pages : nombre de pages d'une liste paginée
- HIERARCHY_EDITORS : rôles autorisés à modifier la hiérarchie
"""

from math import ceil
from typing import Annotated

from fastapi import Query, Depends


HIERARCHY_EDITORS = ("ADMIN", "MANAGER")


class PaginationParams:
    """
    Paramètres de pagination standardisés pour toutes les routes de liste.

    Usage:
        @router.get("/networks")
        async def list_networks(pagination: PaginationParams = Depends()):
            # pagination.page, pagination.size, pagination.offset
            ...
    """

    def __init__(
            self,
            page: Annotated[int, Query(ge=1, description="Numéro de page (commence à 1)")] = 1,
            size: Annotated[int, Query(ge=1, le=100, description="Nombre d'éléments par page")] = 20,
    ):
        self.page = page
        self.size = size

    @property
    def offset(self) -> int:
        """Calcule l'offset pour la requête SQL."""
        return (self.page - 1) * self.size

    @property
    def limit(self) -> int:
        return self.size


def build_pages(total: int, size: int) -> int:
    return ceil(total / size) if total > 0 else 0


Pagination = Annotated[PaginationParams, Depends()]
