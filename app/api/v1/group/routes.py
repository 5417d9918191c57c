"""
Routes API pour le module Group (GR).

Endpoints:
- /groups : CRUD des GR
- /groups/available-responsables : candidats responsables d'un réseau
- /groups/{id}/members : membres du GR
- /groups/{id}/history : journal des mouvements
"""
from typing import Optional, List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.auth.user_auth import get_current_user, require_role
from app.database.session import get_db
from app.models.user.user import User
from app.api.v1.user.schemas import UserSummary
from .schemas import (
    GroupCreate,
    GroupUpdate,
    GroupResponse,
    GroupDetail,
    GroupList,
    GroupMemberAdd,
    GroupMemberResponse,
    GroupHistoryResponse,
)
from .services import GroupService
from ..dependencies import HIERARCHY_EDITORS, PaginationParams, build_pages

router = APIRouter(prefix="/groups", tags=["Groups"])


# =============================================================================
# GROUPS
# =============================================================================

@router.get("", response_model=GroupList, summary="Liste des GR")
async def list_groups(
        db: Session = Depends(get_db),
        pagination: PaginationParams = Depends(),
        network_id: Optional[int] = Query(None, description="Filtrer par réseau"),
        current_user: User = Depends(get_current_user),
):
    items, total = GroupService(db).get_all(
        page=pagination.page,
        size=pagination.size,
        network_id=network_id,
    )
    return GroupList(
        items=[GroupResponse.model_validate(item) for item in items],
        total=total,
        page=pagination.page,
        size=pagination.size,
        pages=build_pages(total, pagination.size),
    )


@router.get(
    "/available-responsables",
    response_model=List[UserSummary],
    summary="Responsables disponibles",
)
async def list_available_responsables(
        network_id: int = Query(..., description="Réseau cible"),
        exclude_group_id: Optional[int] = Query(None, description="GR en cours d'édition"),
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    """Utilisateurs de l'église du réseau qui ne dirigent aucun GR."""
    users = GroupService(db).available_responsables(network_id, exclude_group_id)
    return [UserSummary.model_validate(u) for u in users]


@router.get("/{group_id}", response_model=GroupDetail, summary="Détail d'un GR")
async def get_group(
        group_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    return GroupDetail.model_validate(GroupService(db).get_by_id(group_id))


@router.post(
    "",
    response_model=GroupDetail,
    status_code=status.HTTP_201_CREATED,
    summary="Créer un GR",
)
async def create_group(
        data: GroupCreate,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_role(*HIERARCHY_EDITORS)),
):
    """
    Crée un GR.

    - Le nom est généré (GR_<prénom>) s'il n'est pas fourni
    - Les responsables passent LEADER et sont inscrits comme membres
    - 409 si un responsable dirige déjà un autre GR
    """
    group = GroupService(db).create(data, changed_by_id=current_user.id)
    return GroupDetail.model_validate(group)


@router.patch("/{group_id}", response_model=GroupDetail, summary="Modifier un GR")
async def update_group(
        group_id: int,
        data: GroupUpdate,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_role(*HIERARCHY_EDITORS)),
):
    group = GroupService(db).update(group_id, data, changed_by_id=current_user.id)
    return GroupDetail.model_validate(group)


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Supprimer un GR")
async def delete_group(
        group_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_role(*HIERARCHY_EDITORS)),
):
    """Supprime le GR, ses appartenances et ses lignes de chaîne d'impact (historique conservé)."""
    GroupService(db).delete(group_id)


# =============================================================================
# MEMBERS
# =============================================================================

@router.get("/{group_id}/members", response_model=List[GroupMemberResponse], summary="Membres du GR")
async def list_group_members(
        group_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    return [GroupMemberResponse.model_validate(m) for m in GroupService(db).get_members(group_id)]


@router.post(
    "/{group_id}/members",
    response_model=GroupMemberResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Ajouter un membre",
)
async def add_group_member(
        group_id: int,
        data: GroupMemberAdd,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_role(*HIERARCHY_EDITORS)),
):
    membership = GroupService(db).add_member(group_id, data.user_id, changed_by_id=current_user.id)
    return GroupMemberResponse.model_validate(membership)


@router.delete(
    "/{group_id}/members/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Retirer un membre",
)
async def remove_group_member(
        group_id: int,
        user_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_role(*HIERARCHY_EDITORS)),
):
    """Le membre passe MEMBRE_IRREGULIER. Un responsable du GR ne peut pas être retiré."""
    GroupService(db).remove_member(group_id, user_id, changed_by_id=current_user.id)


@router.get(
    "/{group_id}/history",
    response_model=List[GroupHistoryResponse],
    summary="Historique des membres",
)
async def get_group_history(
        group_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    return [GroupHistoryResponse.model_validate(h) for h in GroupService(db).get_history(group_id)]
