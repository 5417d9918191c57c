"""
Routes API pour le module Session.

Endpoints:
- /sessions : CRUD des sessions (axe unités)
- /sessions/{id}/stats : effectifs par qualification
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.auth.user_auth import get_current_user, require_role
from app.database.session import get_db
from app.models.user.user import User
from .schemas import (
    SessionCreate,
    SessionUpdate,
    SessionResponse,
    SessionDetail,
    SessionList,
    SessionStatsResponse,
)
from .services import SessionService
from ..dependencies import HIERARCHY_EDITORS, PaginationParams, build_pages

router = APIRouter(prefix="/sessions", tags=["Sessions"])


@router.get("", response_model=SessionList, summary="Liste des sessions")
async def list_sessions(
        db: Session = Depends(get_db),
        pagination: PaginationParams = Depends(),
        eglise_id: Optional[int] = Query(None, description="Filtrer par église"),
        current_user: User = Depends(get_current_user),
):
    items, total = SessionService(db).get_all(page=pagination.page, size=pagination.size, eglise_id=eglise_id)
    return SessionList(
        items=[SessionResponse.model_validate(item) for item in items],
        total=total,
        page=pagination.page,
        size=pagination.size,
        pages=build_pages(total, pagination.size),
    )


@router.get("/{session_id}", response_model=SessionDetail, summary="Détail d'une session")
async def get_session(
        session_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    return SessionDetail.model_validate(SessionService(db).get_by_id(session_id))


@router.post("", response_model=SessionDetail, status_code=status.HTTP_201_CREATED, summary="Créer une session")
async def create_session(
        data: SessionCreate,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_role(*HIERARCHY_EDITORS)),
):
    """Crée une session ; les responsables passent RESPONSABLE_SESSION."""
    return SessionDetail.model_validate(SessionService(db).create(data))


@router.patch("/{session_id}", response_model=SessionDetail, summary="Modifier une session")
async def update_session(
        session_id: int,
        data: SessionUpdate,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_role(*HIERARCHY_EDITORS)),
):
    return SessionDetail.model_validate(SessionService(db).update(session_id, data))


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Supprimer une session")
async def delete_session(
        session_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_role(*HIERARCHY_EDITORS)),
):
    """Supprime la session et ses unités ; responsables et membres sont rétrogradés."""
    SessionService(db).delete(session_id)


@router.get("/{session_id}/stats", response_model=SessionStatsResponse, summary="Statistiques de la session")
async def get_session_stats(
        session_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    return SessionStatsResponse(**SessionService(db).stats(session_id))
