"""
Accès aux données pour la feature 'listings' (collection listings).
L'identifiant d'une annonce est {sellerUid}__{deckId}: une annonce par deck et par vendeur.
"""
from typing import Any, Dict, List, Optional

from marketplace.infra.document_store import server_timestamp

COLLECTION = "listings"

def listing_id_for(seller_uid: str, deck_id: str) -> str:
    return f"{seller_uid}__{deck_id}"

def get_listing(store, listing_id: str) -> Optional[Dict[str, Any]]:
    return store.get(COLLECTION, listing_id)

def save_listing(store, listing_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    return store.upsert(COLLECTION, listing_id, {**data, "updatedAt": server_timestamp()})

def update_listing(store, listing_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return store.update(COLLECTION, listing_id, {**data, "updatedAt": server_timestamp()})

def fetch_active_listings(store, limit: int = 50) -> List[Dict[str, Any]]:
    return store.query(COLLECTION, {"status": "active"}, limit=limit)

def fetch_seller_listings(store, seller_uid: str) -> List[Dict[str, Any]]:
    return store.query(COLLECTION, {"sellerUid": seller_uid})
