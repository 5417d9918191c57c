"""
Routes API pour la chaîne d'impact.

Endpoints:
- GET /impact-chain/churches/{id} : arbre imbriqué
- GET /impact-chain/churches/{id}/flat : lignes à plat
- POST /impact-chain/churches/{id}/rebuild : reconstruction explicite
- DELETE /impact-chain/churches/{id} : vidage
- GET /impact-chain/users/{id} : sous-arbre d'un utilisateur
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.auth.user_auth import get_current_user, require_role
from app.database.session import get_db
from app.models.user.user import User
from .schemas import (
    ImpactChainEntry,
    ImpactChainFlat,
    ImpactChainNode,
    ImpactChainTree,
    UserImpactTree,
    RebuildResult,
    ClearResult,
)
from .services import ImpactChainService

router = APIRouter(prefix="/impact-chain", tags=["Impact Chain"])


@router.get("/churches/{church_id}", response_model=ImpactChainTree, summary="Arbre de la chaîne d'impact")
async def get_church_tree(
        church_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    """Racines = nœuds sans responsable ; chaque nœud porte son level_name."""
    service = ImpactChainService(db)
    roots = service.tree(church_id)
    return ImpactChainTree(
        eglise_id=church_id,
        total=len(service.rows(church_id)),
        roots=[ImpactChainNode.model_validate(r) for r in roots],
    )


@router.get("/churches/{church_id}/flat", response_model=ImpactChainFlat, summary="Chaîne d'impact à plat")
async def get_church_flat(
        church_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    items = ImpactChainService(db).flat(church_id)
    return ImpactChainFlat(
        eglise_id=church_id,
        total=len(items),
        items=[ImpactChainEntry.model_validate(i) for i in items],
    )


@router.post("/churches/{church_id}/rebuild", response_model=RebuildResult, summary="Reconstruire")
async def rebuild_church_chain(
        church_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_role("ADMIN")),
):
    """
    Reconstruit la chaîne d'impact de l'église.

    Contrairement à la reconstruction automatique, une erreur est remontée.
    """
    rows = ImpactChainService(db).rebuild(church_id)
    return RebuildResult(eglise_id=church_id, rows=rows)


@router.delete("/churches/{church_id}", response_model=ClearResult, summary="Vider la chaîne d'impact")
async def clear_church_chain(
        church_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_role("ADMIN")),
):
    deleted = ImpactChainService(db).clear(church_id)
    return ClearResult(eglise_id=church_id, deleted=deleted)


@router.get("/users/{user_id}", response_model=UserImpactTree, summary="Sous-arbre d'un utilisateur")
async def get_user_tree(
        user_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    source, roots = ImpactChainService(db).user_tree(user_id)
    return UserImpactTree(
        user_id=user_id,
        source=source,
        roots=[ImpactChainNode.model_validate(r) for r in roots],
    )
