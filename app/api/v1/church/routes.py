"""
Routes API pour le module Church.

Endpoints:
- /churches : CRUD des églises
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.auth.user_auth import get_current_user, require_role
from app.database.session import get_db
from app.models.user.user import User
from .schemas import ChurchCreate, ChurchUpdate, ChurchResponse, ChurchList
from .services import ChurchService
from ..dependencies import PaginationParams, build_pages

router = APIRouter(prefix="/churches", tags=["Churches"])


@router.get("", response_model=ChurchList, summary="Liste des églises")
async def list_churches(
        db: Session = Depends(get_db),
        pagination: PaginationParams = Depends(),
        search: Optional[str] = Query(None, min_length=2, description="Recherche nom ou ville"),
        current_user: User = Depends(get_current_user),
):
    items, total = ChurchService(db).get_all(page=pagination.page, size=pagination.size, search=search)
    return ChurchList(
        items=[ChurchResponse.model_validate(item) for item in items],
        total=total,
        page=pagination.page,
        size=pagination.size,
        pages=build_pages(total, pagination.size),
    )


@router.get("/{church_id}", response_model=ChurchResponse, summary="Détail d'une église")
async def get_church(
        church_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    return ChurchResponse.model_validate(ChurchService(db).get_by_id(church_id))


@router.post(
    "",
    response_model=ChurchResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Créer une église",
)
async def create_church(
        data: ChurchCreate,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_role("SUPER_ADMIN")),
):
    """
    Crée une église.

    **Requiert les droits SUPER_ADMIN.**
    """
    return ChurchResponse.model_validate(ChurchService(db).create(data))


@router.patch("/{church_id}", response_model=ChurchResponse, summary="Modifier une église")
async def update_church(
        church_id: int,
        data: ChurchUpdate,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_role("ADMIN")),
):
    return ChurchResponse.model_validate(ChurchService(db).update(church_id, data))


@router.delete("/{church_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Supprimer une église")
async def delete_church(
        church_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_role("SUPER_ADMIN")),
):
    """
    Supprime l'église, ses sessions, ses réseaux et sa chaîne d'impact.

    Refusé (409) tant que des utilisateurs y sont rattachés.
    """
    ChurchService(db).delete(church_id)
