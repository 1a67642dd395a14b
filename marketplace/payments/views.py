"""Endpoints paiements.
- POST /checkout: crée une session Stripe Checkout pour une annonce et renvoie l'URL de redirection.
- GET|POST /webhook: réception des événements Stripe signés (checkout.session.completed).
- POST /customer: retrouve ou crée le client Stripe d'un acheteur.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

from marketplace.config import SITE_URL
from marketplace.deps import get_gateway, get_store, get_webhook_secrets
from marketplace.errors import MarketplaceError, ValidationError
from marketplace.utils.rate_limit import optional_rate_limit
from . import checkout
from . import reconcile

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])


class CheckoutBody(BaseModel):
    listingId: Optional[str] = None
    deckId: Optional[str] = None
    buyerUid: Optional[str] = None
    buyerEmail: Optional[str] = None


class CustomerBody(BaseModel):
    uid: Optional[str] = None
    email: Optional[str] = None


# module marketplace.payments.views
@router.post("/checkout", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def create_checkout_session(
    request: Request,
    body: CheckoutBody,
    store=Depends(get_store),
    gateway=Depends(get_gateway),
):
    """
    Crée une session Checkout pour une annonce active.
    - Entrée JSON: {listingId | deckId, buyerUid, buyerEmail}
    - Origine des URLs success/cancel: en-tête Origin, sinon SITE_URL
    - Erreurs: 400/404 (validation), 502 (Stripe), 500 (inattendue)
    """
    origin = request.headers.get("origin") or SITE_URL
    try:
        session = checkout.create_checkout_session(
            store,
            gateway,
            listing_id=body.listingId,
            deck_id=body.deckId,
            buyer_uid=body.buyerUid,
            buyer_email=body.buyerEmail,
            origin=origin,
        )
    except MarketplaceError:
        raise
    except Exception as e:
        logger.exception("Erreur create_checkout_session listing=%s buyer=%s", body.listingId, body.buyerUid)
        raise HTTPException(status_code=500, detail=str(e) or "Checkout error")
    return JSONResponse({"url": session.get("url"), "id": session.get("id")})


@router.get("/webhook", include_in_schema=False)
async def webhook_alive():
    return PlainTextResponse("Webhook endpoint is alive")


@router.post("/webhook", include_in_schema=False)
async def webhook_stripe(
    request: Request,
    store=Depends(get_store),
    secrets: List[str] = Depends(get_webhook_secrets),
):
    """
    Webhook Stripe: enregistre l'achat sur checkout.session.completed.
    - 400 si la signature ne correspond à aucun secret (Stripe réessaiera)
    - 200 pour les autres événements et les métadonnées incomplètes
    - 500 si l'écriture échoue (Stripe réessaiera)
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")
    try:
        outcome = reconcile.handle_confirmation_event(payload, sig_header, secrets, store)
    except Exception:
        logger.exception("Erreur webhook_stripe")
        return PlainTextResponse("Webhook handler failed", status_code=500)
    return PlainTextResponse(outcome.body, status_code=outcome.status_code)


@router.post("/customer")
async def get_or_create_customer(body: CustomerBody, gateway=Depends(get_gateway)):
    uid = (body.uid or "").strip()
    email = (body.email or "").strip()
    if not uid or not email:
        raise ValidationError("Missing uid or email")
    customer_id = gateway.get_or_create_customer(email=email, uid=uid)
    return {"customerId": customer_id}
