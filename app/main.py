"""
ChaineImpact - Application principale FastAPI
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1 import api_router
from app.core.config import settings
from app.core.redis_client import RedisClient

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Cycle de vie : le pool Redis des verrous est fermé à l'arrêt."""
    yield
    RedisClient.close()


# Créer l'application FastAPI
app = FastAPI(
    title=settings.APP_NAME,
    description="Gestion de la hiérarchie d'une église : réseaux, GR, sessions, unités et chaîne d'impact",
    version=settings.APP_VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    lifespan=lifespan,
)

# Configuration CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Inclure les routes API v1
app.include_router(api_router)


@app.get("/")
async def root():
    """Page d'accueil - Health check"""
    return {
        "app": settings.APP_NAME,
        "status": "running",
        "environment": settings.ENVIRONMENT,
    }
