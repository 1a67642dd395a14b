"""
Factory d'application utilisée par les entrypoints (marketplace.app, marketplace.asgi).
"""
from fastapi import FastAPI
from .lifespan import lifespan
from .middlewares import register_basic_middlewares, register_security_headers
from .exceptions import register_exception_handlers
from .routers import register_routers

def create_app() -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - middlewares de base et en-têtes de sécurité
      - gestionnaires d'exceptions (MarketplaceError, HTTPException)
      - tous les routers (API v1, health)
    """
    app = FastAPI(title="FlashPro Marketplace", lifespan=lifespan)
    register_basic_middlewares(app)
    register_security_headers(app)
    register_exception_handlers(app)
    register_routers(app)
    return app
