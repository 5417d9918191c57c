"""
Router principal API v1.

Agrège tous les routers des différents modules métier.

Usage dans main.py:
    from app.api.v1.router import api_router

    app = FastAPI(title="ChaineImpact API")
    app.include_router(api_router)
"""
from fastapi import APIRouter

from app.core import redis_client
from app.core.config import settings
from .auth import router as auth_router
from .user import router as user_router
from .church import router as church_router
from .network import router as network_router
from .group import router as group_router
from .session import router as session_router
from .unit import router as unit_router
from .impact_chain import router as impact_chain_router


# =============================================================================
# ROUTER PRINCIPAL
# =============================================================================

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(auth_router)
api_router.include_router(user_router)
api_router.include_router(church_router)
api_router.include_router(network_router)
api_router.include_router(group_router)
api_router.include_router(session_router)
api_router.include_router(unit_router)
api_router.include_router(impact_chain_router)


# =============================================================================
# HEALTH CHECK
# =============================================================================

@api_router.get(
    "/health",
    tags=["System"],
    summary="Health check",
    description="Vérifie que l'API est opérationnelle.",
)
async def health_check():
    """
    Endpoint de santé pour les load balancers et le monitoring.

    Redis n'est interrogé que si les verrous sont actifs ; sans Redis
    joignable, l'API répond "degraded" (les mutations seraient refusées).

    Returns:
        Statut de l'API et de Redis
    """
    if settings.locks_active:
        redis_status = "up" if redis_client.redis_available() else "down"
    else:
        redis_status = "disabled"

    return {
        "status": "degraded" if redis_status == "down" else "healthy",
        "service": "chaine-impact-api",
        "version": settings.APP_VERSION,
        "api_version": "v1",
        "redis": redis_status,
    }
