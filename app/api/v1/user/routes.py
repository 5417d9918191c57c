"""
Routes API pour le module User.

Endpoints:
- /users : CRUD utilisateurs
- /users/{id}/qualification : écrasement manuel de la qualification
- /users/{id}/responsibilities : responsabilités actives
"""
from typing import Optional, List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.auth.user_auth import get_current_user, require_role
from app.database.session import get_db
from app.models.enums import Qualification
from app.models.user.user import User
from .schemas import (
    UserCreate,
    UserUpdate,
    UserResponse,
    UserList,
    QualificationUpdate,
    ResponsibilityItem,
)
from .services import UserService
from ..dependencies import HIERARCHY_EDITORS, PaginationParams, build_pages

router = APIRouter(prefix="/users", tags=["Users"])


@router.get(
    "",
    response_model=UserList,
    summary="Liste des utilisateurs",
)
async def list_users(
        db: Session = Depends(get_db),
        pagination: PaginationParams = Depends(),
        eglise_id: Optional[int] = Query(None, description="Filtrer par église"),
        qualification: Optional[Qualification] = Query(None, description="Filtrer par qualification"),
        search: Optional[str] = Query(None, min_length=2, description="Recherche nom, pseudo, email"),
        current_user: User = Depends(get_current_user),
):
    service = UserService(db)
    items, total = service.get_all(
        page=pagination.page,
        size=pagination.size,
        eglise_id=eglise_id,
        qualification=qualification,
        search=search,
    )
    return UserList(
        items=[UserResponse.model_validate(item) for item in items],
        total=total,
        page=pagination.page,
        size=pagination.size,
        pages=build_pages(total, pagination.size),
    )


@router.get("/{user_id}", response_model=UserResponse, summary="Détail d'un utilisateur")
async def get_user(
        user_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    return UserResponse.model_validate(UserService(db).get_by_id(user_id))


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Créer un utilisateur",
)
async def create_user(
        data: UserCreate,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_role(*HIERARCHY_EDITORS)),
):
    return UserResponse.model_validate(UserService(db).create(data))


@router.patch("/{user_id}", response_model=UserResponse, summary="Modifier un utilisateur")
async def update_user(
        user_id: int,
        data: UserUpdate,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_role(*HIERARCHY_EDITORS)),
):
    return UserResponse.model_validate(UserService(db).update(user_id, data))


@router.put(
    "/{user_id}/qualification",
    response_model=UserResponse,
    summary="Forcer la qualification",
)
async def set_user_qualification(
        user_id: int,
        data: QualificationUpdate,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_role("ADMIN")),
):
    """
    Écrase la qualification sans vérifier sa cohérence avec les responsabilités.

    **Requiert les droits administrateur.**
    """
    user = UserService(db).set_qualification(user_id, data.qualification)
    return UserResponse.model_validate(user)


@router.get(
    "/{user_id}/responsibilities",
    response_model=List[ResponsibilityItem],
    summary="Responsabilités actives",
)
async def get_user_responsibilities(
        user_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    held = UserService(db).responsibilities(user_id)
    return [ResponsibilityItem(entity_kind=kind.value, entity_id=entity_id) for kind, entity_id in held]


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Supprimer un utilisateur",
)
async def delete_user(
        user_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_role("ADMIN")),
):
    """
    Supprime un utilisateur sans responsabilité active.

    Refusé (409) tant qu'il dirige une église, un réseau, un GR, une session ou une unité.
    """
    UserService(db).delete(user_id, changed_by_id=current_user.id)
