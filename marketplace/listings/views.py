# module marketplace.listings.views

"""Endpoints des annonces.
- GET /api/v1/listings: annonces actives (page marché), public.
- GET /api/v1/listings/mine: annonces du vendeur connecté.
- PUT /api/v1/listings/{deck_id}: crée/met à jour le brouillon (prix, titre).
- POST /api/v1/listings/{deck_id}/publish | /unpublish: cycle de vie.
- GET /api/v1/listings/estimate?price_cents=: estimation du net vendeur.
"""
from typing import Any, Dict, Optional, Union

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from marketplace.deps import get_store
from marketplace.payments.pricing import estimate_net
from marketplace.utils.security import require_user
from . import service

router = APIRouter(prefix="/api/v1/listings", tags=["Listings API"])


class ListingBody(BaseModel):
    title: Optional[str] = None
    price: Optional[Union[float, str]] = None


@router.get("")
def list_active(limit: int = Query(50, ge=1, le=200), store=Depends(get_store)) -> Dict[str, Any]:
    return {"listings": service.list_active(store, limit=limit)}


@router.get("/mine")
def list_mine(user: Dict[str, Any] = Depends(require_user), store=Depends(get_store)) -> Dict[str, Any]:
    return {"listings": service.list_seller_listings(store, user["id"])}


@router.get("/estimate")
def estimate(price_cents: int = Query(..., ge=0)) -> Dict[str, int]:
    return estimate_net(price_cents)


@router.put("/{deck_id}")
def save_draft(deck_id: str, body: ListingBody, user: Dict[str, Any] = Depends(require_user), store=Depends(get_store)):
    listing = service.save_draft(
        store,
        seller_uid=user["id"],
        deck_id=deck_id,
        title=body.title,
        price=body.price,
        seller_email=user.get("email"),
    )
    return {"listing": listing}


@router.post("/{deck_id}/publish")
def publish(deck_id: str, body: Optional[ListingBody] = None, user: Dict[str, Any] = Depends(require_user), store=Depends(get_store)):
    body = body or ListingBody()
    listing = service.publish(store, seller_uid=user["id"], deck_id=deck_id, price=body.price, title=body.title)
    return {"listing": listing}


@router.post("/{deck_id}/unpublish")
def unpublish(deck_id: str, user: Dict[str, Any] = Depends(require_user), store=Depends(get_store)):
    return {"listing": service.unpublish(store, seller_uid=user["id"], deck_id=deck_id)}
