"""
Limitation de débit optionnelle (fastapi-limiter / Redis).
- LOCAL_RATE_LIMIT_FALLBACK=1: fenêtre glissante en mémoire (dev/tests), stockée sur app.state.
- app.state.rate_limit_enabled is False: aucune limitation (Redis indisponible au démarrage).
- Sinon: RateLimiter de fastapi-limiter; une erreur du limiteur ne bloque jamais la requête.
"""
from typing import Any, Dict
import hashlib
import logging
import os
import time

from fastapi import HTTPException, Request, Response

from marketplace.utils.security import COOKIE_NAME

logger = logging.getLogger(__name__)

def client_key(request: Request) -> str:
    """Clé de limitation: session (hashée) si présente, sinon IP; toujours suffixée du chemin."""
    token = request.cookies.get(COOKIE_NAME)
    if token:
        return f"user:{hashlib.sha256(token.encode('utf-8')).hexdigest()[:16]}:{request.url.path}"
    ip = request.client.host if request.client else "local"
    return f"ip:{ip}:{request.url.path}"

def _local_hit(request: Request, times: int, seconds: int) -> None:
    now = time.time()
    key = client_key(request)
    stores = getattr(request.app.state, "_rl_store", None)
    if stores is None:
        stores = {}
        request.app.state._rl_store = stores
    # un compteur par durée de fenêtre
    store = stores.setdefault(seconds, {})
    hits = [t for t in store.get(key, []) if now - t < seconds]
    if len(hits) >= times:
        store[key] = hits
        raise HTTPException(status_code=429, detail="Too Many Requests")
    hits.append(now)
    store[key] = hits
    _prune(store, now, seconds)

def _prune(store: Dict[str, list], now: float, seconds: int) -> None:
    # Clés des clients inactifs: dernier hit hors fenêtre
    for k in [k for k, v in store.items() if not v or now - v[-1] >= seconds]:
        del store[k]

def optional_rate_limit(times: int, seconds: int):
    async def _dep(request: Request, response: Response):
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            _local_hit(request, times, seconds)
            return
        if getattr(request.app.state, "rate_limit_enabled", None) is False:
            return
        try:
            from fastapi_limiter.depends import RateLimiter

            async def _identifier(req: Request) -> str:
                return client_key(req)
            limiter = RateLimiter(times=times, seconds=seconds, identifier=_identifier)
        except Exception as e:
            logger.warning("rate_limit unavailable: %s", e)
            return
        try:
            await limiter(request, response)
        except HTTPException:
            raise
        except Exception as e:
            logger.warning("rate_limit skipped path=%s: %s", request.url.path, e)
    return _dep

def rate_limit_health_info(request: Request) -> Dict[str, Any]:
    enabled = getattr(request.app.state, "rate_limit_enabled", None)
    try:
        from fastapi_limiter import FastAPILimiter
        ready = getattr(FastAPILimiter, "redis", None) is not None
    except Exception:
        ready = False
    return {
        "enabled": bool(enabled) if enabled is not None else None,
        "ready": ready,
        "backend": "redis" if ready else ("memory" if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1" else None),
    }
