"""Endpoints vendeurs.
- GET /onboarding: URL OAuth Stripe Connect pour l'utilisateur connecté.
- GET /oauth/callback: retour Stripe; redirige vers /seller/decks avec connected=1 ou stripe_error.
- GET /me: état de la liaison du compte de versement.
"""
import logging
import urllib.parse
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse
from starlette.status import HTTP_303_SEE_OTHER

from marketplace.deps import get_gateway, get_store
from marketplace.errors import MarketplaceError
from marketplace.utils.security import require_user
from . import service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/sellers", tags=["Sellers API"])

SELLER_PAGE = "/seller/decks"

def _redirect_error(reason: str) -> RedirectResponse:
    return RedirectResponse(
        url=f"{SELLER_PAGE}?stripe_error={urllib.parse.quote_plus(reason)}",
        status_code=HTTP_303_SEE_OTHER,
    )

@router.get("/onboarding")
def onboarding(user: Dict[str, Any] = Depends(require_user), gateway=Depends(get_gateway)):
    return {"url": service.onboarding_url(gateway, user["id"])}

@router.get("/oauth/callback", include_in_schema=False)
def oauth_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    error_description: Optional[str] = None,
    store=Depends(get_store),
    gateway=Depends(get_gateway),
):
    if error:
        logger.error("Stripe OAuth error: %s %s", error, error_description)
        return _redirect_error(error)
    try:
        service.complete_oauth(store, gateway, code=code, state=state)
    except MarketplaceError as e:
        logger.error("sellers.oauth callback failed state=%s: %s", state, e.message)
        return _redirect_error(e.message)
    return RedirectResponse(url=f"{SELLER_PAGE}?connected=1", status_code=HTTP_303_SEE_OTHER)

@router.get("/me")
def me(user: Dict[str, Any] = Depends(require_user), store=Depends(get_store)):
    return service.payout_status(store, user["id"])
