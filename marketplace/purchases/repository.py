"""
Accès aux données achats: purchases (un document par session Stripe) et
purchasesIndex ({buyerUid}__{deckId}, preuve de propriété).
"""
from typing import Any, Dict, List, Optional

from marketplace.payments.reconcile import index_key

def get_index_entry(store, buyer_uid: str, deck_id: str) -> Optional[Dict[str, Any]]:
    return store.get("purchasesIndex", index_key(buyer_uid, deck_id))

def get_legacy_index_entry(store, buyer_uid: str, deck_id: str) -> Optional[Dict[str, Any]]:
    # Anciennes entrées écrites dans l'ordre {deckId}__{buyerUid}
    return store.get("purchasesIndex", index_key(deck_id, buyer_uid))

def fetch_index_entries(store, buyer_uid: str) -> List[Dict[str, Any]]:
    return store.query("purchasesIndex", {"buyerUid": buyer_uid})

def fetch_purchases(store, buyer_uid: str, deck_id: str, limit: int = 1) -> List[Dict[str, Any]]:
    return store.query("purchases", {"buyerUid": buyer_uid, "deckId": deck_id}, limit=limit)

def upsert_index_entry(store, buyer_uid: str, deck_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    return store.upsert("purchasesIndex", index_key(buyer_uid, deck_id), {**data, "buyerUid": buyer_uid, "deckId": deck_id})
