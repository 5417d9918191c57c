"""
Routes API pour le module Unit.

Endpoints:
- /units : CRUD des unités
- /units/{id}/members : membres de l'unité
- /units/{id}/history : journal des mouvements
"""
from typing import Optional, List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.auth.user_auth import get_current_user, require_role
from app.database.session import get_db
from app.models.user.user import User
from .schemas import (
    UnitCreate,
    UnitUpdate,
    UnitResponse,
    UnitDetail,
    UnitList,
    UnitMemberAdd,
    UnitMemberResponse,
    UnitHistoryResponse,
)
from .services import UnitService
from ..dependencies import HIERARCHY_EDITORS, PaginationParams, build_pages

router = APIRouter(prefix="/units", tags=["Units"])


@router.get("", response_model=UnitList, summary="Liste des unités")
async def list_units(
        db: Session = Depends(get_db),
        pagination: PaginationParams = Depends(),
        session_id: Optional[int] = Query(None, description="Filtrer par session"),
        current_user: User = Depends(get_current_user),
):
    items, total = UnitService(db).get_all(page=pagination.page, size=pagination.size, session_id=session_id)
    return UnitList(
        items=[UnitResponse.model_validate(item) for item in items],
        total=total,
        page=pagination.page,
        size=pagination.size,
        pages=build_pages(total, pagination.size),
    )


@router.get("/{unit_id}", response_model=UnitDetail, summary="Détail d'une unité")
async def get_unit(
        unit_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    return UnitDetail.model_validate(UnitService(db).get_by_id(unit_id))


@router.post("", response_model=UnitDetail, status_code=status.HTTP_201_CREATED, summary="Créer une unité")
async def create_unit(
        data: UnitCreate,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_role(*HIERARCHY_EDITORS)),
):
    """Crée une unité ; les responsables passent RESPONSABLE_UNITE et sont inscrits."""
    unit = UnitService(db).create(data, changed_by_id=current_user.id)
    return UnitDetail.model_validate(unit)


@router.patch("/{unit_id}", response_model=UnitDetail, summary="Modifier une unité")
async def update_unit(
        unit_id: int,
        data: UnitUpdate,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_role(*HIERARCHY_EDITORS)),
):
    unit = UnitService(db).update(unit_id, data, changed_by_id=current_user.id)
    return UnitDetail.model_validate(unit)


@router.delete("/{unit_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Supprimer une unité")
async def delete_unit(
        unit_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_role(*HIERARCHY_EDITORS)),
):
    UnitService(db).delete(unit_id)


@router.get("/{unit_id}/members", response_model=List[UnitMemberResponse], summary="Membres de l'unité")
async def list_unit_members(
        unit_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    return [UnitMemberResponse.model_validate(m) for m in UnitService(db).get_members(unit_id)]


@router.post(
    "/{unit_id}/members",
    response_model=UnitMemberResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Ajouter un membre",
)
async def add_unit_member(
        unit_id: int,
        data: UnitMemberAdd,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_role(*HIERARCHY_EDITORS)),
):
    membership = UnitService(db).add_member(unit_id, data.user_id, changed_by_id=current_user.id)
    return UnitMemberResponse.model_validate(membership)


@router.delete(
    "/{unit_id}/members/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Retirer un membre",
)
async def remove_unit_member(
        unit_id: int,
        user_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_role(*HIERARCHY_EDITORS)),
):
    UnitService(db).remove_member(unit_id, user_id, changed_by_id=current_user.id)


@router.get("/{unit_id}/history", response_model=List[UnitHistoryResponse], summary="Historique des membres")
async def get_unit_history(
        unit_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    return [UnitHistoryResponse.model_validate(h) for h in UnitService(db).get_history(unit_id)]
