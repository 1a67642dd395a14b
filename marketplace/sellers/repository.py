"""
Accès aux données vendeurs (collection users: liaison du compte Stripe Connect).
"""
from typing import Any, Dict, Optional

from marketplace.infra.document_store import server_timestamp

COLLECTION = "users"

def get_user(store, uid: str) -> Optional[Dict[str, Any]]:
    return store.get(COLLECTION, uid)

def upsert_payout_account(store, uid: str, stripe_account_id: str) -> Dict[str, Any]:
    """Merge sur users/{uid}: les autres champs du profil sont conservés."""
    now = server_timestamp()
    return store.upsert(COLLECTION, uid, {
        "stripeAccountId": stripe_account_id,
        "stripeConnectedAt": now,
        "updatedAt": now,
    })
