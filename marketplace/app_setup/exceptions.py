"""
Gestionnaires d'exceptions.
- MarketplaceError: {"detail": <message>, "error": <kind>} avec le status_code de l'erreur.
- HTTPException: corps JSON FastAPI standard ({"detail": ...}).
"""
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from marketplace.errors import MarketplaceError

logger = logging.getLogger(__name__)

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(MarketplaceError)
    async def marketplace_error(request: Request, exc: MarketplaceError):
        if exc.status_code >= 500:
            logger.error("%s %s -> %s: %s context=%s", request.method, request.url.path, exc.kind, exc.message, exc.context)
        else:
            logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.kind, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "error": exc.kind})

    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))
