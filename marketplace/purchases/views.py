"""Endpoints achats (utilisateur connecté).
- GET /api/v1/purchases: decks achetés.
- GET /api/v1/purchases/{deck_id}/owned: {"owned": bool}.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends

from marketplace.deps import get_store
from marketplace.utils.security import require_user
from . import service

router = APIRouter(prefix="/api/v1/purchases", tags=["Purchases API"])

@router.get("")
def my_purchases(user: Dict[str, Any] = Depends(require_user), store=Depends(get_store)):
    return {"purchases": service.list_purchases(store, user["id"])}

@router.get("/{deck_id}/owned")
def owned(deck_id: str, user: Dict[str, Any] = Depends(require_user), store=Depends(get_store)):
    return {"deckId": deck_id, "owned": service.owns_deck(store, user["id"], deck_id)}
