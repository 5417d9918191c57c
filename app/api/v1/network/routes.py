"""
Routes API pour le module Network.

Endpoints:
- /networks : CRUD des réseaux
- /networks/{id}/companions : compagnons d'œuvre
- /networks/{id}/members : membres de tous les GR du réseau
- /networks/{id}/stats : effectifs par qualification
"""
from typing import Optional, List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.auth.user_auth import get_current_user, require_role
from app.database.session import get_db
from app.models.user.user import User
from app.api.v1.user.schemas import UserSummary
from .schemas import (
    NetworkCreate,
    NetworkUpdate,
    NetworkResponse,
    NetworkDetail,
    NetworkList,
    CompanionAdd,
    CompanionResponse,
    NetworkMemberResponse,
    NetworkStatsResponse,
)
from .services import NetworkService
from ..dependencies import HIERARCHY_EDITORS, PaginationParams, build_pages

router = APIRouter(prefix="/networks", tags=["Networks"])


@router.get("", response_model=NetworkList, summary="Liste des réseaux")
async def list_networks(
        db: Session = Depends(get_db),
        pagination: PaginationParams = Depends(),
        eglise_id: Optional[int] = Query(None, description="Filtrer par église"),
        current_user: User = Depends(get_current_user),
):
    items, total = NetworkService(db).get_all(
        page=pagination.page,
        size=pagination.size,
        eglise_id=eglise_id,
    )
    return NetworkList(
        items=[NetworkResponse.model_validate(item) for item in items],
        total=total,
        page=pagination.page,
        size=pagination.size,
        pages=build_pages(total, pagination.size),
    )


@router.get("/{network_id}", response_model=NetworkDetail, summary="Détail d'un réseau")
async def get_network(
        network_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    return NetworkDetail.model_validate(NetworkService(db).get_by_id(network_id))


@router.post(
    "",
    response_model=NetworkDetail,
    status_code=status.HTTP_201_CREATED,
    summary="Créer un réseau",
)
async def create_network(
        data: NetworkCreate,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_role(*HIERARCHY_EDITORS)),
):
    """
    Crée un réseau et promeut ses responsables RESPONSABLE_RESEAU.

    - 409 si le nom existe déjà dans l'église
    - 409 si un responsable dirige déjà un autre réseau
    """
    return NetworkDetail.model_validate(NetworkService(db).create(data))


@router.patch("/{network_id}", response_model=NetworkDetail, summary="Modifier un réseau")
async def update_network(
        network_id: int,
        data: NetworkUpdate,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_role(*HIERARCHY_EDITORS)),
):
    return NetworkDetail.model_validate(NetworkService(db).update(network_id, data))


@router.delete("/{network_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Supprimer un réseau")
async def delete_network(
        network_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_role(*HIERARCHY_EDITORS)),
):
    """Supprime le réseau, ses GR et leurs membres ; les responsables sont rétrogradés."""
    NetworkService(db).delete(network_id)


# =============================================================================
# COMPANIONS
# =============================================================================

@router.get(
    "/{network_id}/companions",
    response_model=List[CompanionResponse],
    summary="Compagnons d'œuvre",
)
async def list_companions(
        network_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    return [CompanionResponse.model_validate(c) for c in NetworkService(db).get_companions(network_id)]


@router.post(
    "/{network_id}/companions",
    response_model=CompanionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Ajouter un compagnon d'œuvre",
)
async def add_companion(
        network_id: int,
        data: CompanionAdd,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_role(*HIERARCHY_EDITORS)),
):
    companion = NetworkService(db).add_companion(network_id, data.user_id)
    return CompanionResponse.model_validate(companion)


@router.delete(
    "/{network_id}/companions/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Retirer un compagnon d'œuvre",
)
async def remove_companion(
        network_id: int,
        user_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_role(*HIERARCHY_EDITORS)),
):
    NetworkService(db).remove_companion(network_id, user_id)


@router.get(
    "/{network_id}/members",
    response_model=List[NetworkMemberResponse],
    summary="Membres du réseau",
)
async def list_network_members(
        network_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    members = NetworkService(db).get_members(network_id)
    return [
        NetworkMemberResponse(
            group_id=m.group_id,
            group_nom=m.group.nom,
            user=UserSummary.model_validate(m.user),
        )
        for m in members
    ]


@router.get("/{network_id}/stats", response_model=NetworkStatsResponse, summary="Statistiques du réseau")
async def get_network_stats(
        network_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    """Responsables, membres des GR et compagnons, chacun compté une fois."""
    return NetworkStatsResponse(**NetworkService(db).stats(network_id))
