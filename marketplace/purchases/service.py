"""Couche service achats: bibliothèque de l'acheteur et vérification de propriété."""
from typing import Any, Dict, List
import logging

from marketplace.errors import PersistenceError
from . import repository

logger = logging.getLogger(__name__)

def list_purchases(store, buyer_uid: str) -> List[Dict[str, Any]]:
    """Entrées d'index de l'acheteur, les plus récentes d'abord."""
    if not buyer_uid:
        return []
    rows = repository.fetch_index_entries(store, buyer_uid)
    return sorted(rows, key=lambda r: str(r.get("createdAt") or ""), reverse=True)

def owns_deck(store, buyer_uid: str, deck_id: str) -> bool:
    """
    L'acheteur possède-t-il ce deck ?
    - Vérifie l'index {buyer}__{deck}, puis l'ancien ordre {deck}__{buyer}.
    - À défaut, cherche un achat enregistré; s'il existe, recrée l'entrée d'index manquante
      (cas d'un arrêt entre l'écriture de l'achat et celle de l'index).
    """
    if not buyer_uid or not deck_id:
        return False
    if repository.get_index_entry(store, buyer_uid, deck_id):
        return True
    if repository.get_legacy_index_entry(store, buyer_uid, deck_id):
        return True
    purchases = repository.fetch_purchases(store, buyer_uid, deck_id)
    if not purchases:
        return False
    purchase = purchases[0]
    try:
        repository.upsert_index_entry(store, buyer_uid, deck_id, {
            "purchaseId": purchase.get("id") or purchase.get("stripeSessionId"),
            "title": purchase.get("deckName"),
            "createdAt": purchase.get("createdAt"),
        })
        logger.info("purchases.owns_deck rebuilt index buyer=%s deck=%s", buyer_uid, deck_id)
    except PersistenceError:
        logger.exception("purchases.owns_deck index rebuild failed buyer=%s deck=%s", buyer_uid, deck_id)
    return True
