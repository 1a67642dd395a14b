"""
Adaptateur « document store » au-dessus de Supabase (PostgREST).

La logique métier ne connaît que quatre primitives, par collection logique:
- get(collection, id)                      -> dict | None (None = document inexistant)
- query(collection, filters, limit)        -> [dict] (filtres d'égalité uniquement)
- upsert(collection, id, data)             -> dict (merge: les colonnes absentes sont conservées)
- update(collection, id, data)             -> dict | None

Les collections sont mappées sur des tables dont la clé primaire texte est 'id'.
Toute exception du client est journalisée puis relevée en PersistenceError.
Aucune garantie transactionnelle multi-documents n'est fournie.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from marketplace.errors import PersistenceError

logger = logging.getLogger(__name__)

COLLECTIONS = {
    "listings": "listings",
    "users": "users",
    "purchases": "purchases",
    "purchasesIndex": "purchases_index",
}

def server_timestamp() -> str:
    """Horodatage UTC ISO-8601 utilisé pour createdAt/updatedAt."""
    return datetime.now(timezone.utc).isoformat()


class SupabaseDocumentStore:
    def __init__(self, client):
        if client is None:
            raise RuntimeError("Client Supabase requis pour SupabaseDocumentStore")
        self._client = client

    def _table(self, collection: str):
        try:
            name = COLLECTIONS[collection]
        except KeyError:
            raise ValueError(f"Collection inconnue: {collection}")
        return self._client.table(name)

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        if not doc_id:
            return None
        table = self._table(collection)
        try:
            res = table.select("*").eq("id", str(doc_id)).limit(1).execute()
        except Exception as e:
            logger.exception("document_store.get failed collection=%s id=%s", collection, doc_id)
            raise PersistenceError(str(e), context={"collection": collection, "id": doc_id}) from e
        rows = res.data or []
        return rows[0] if rows else None

    def query(self, collection: str, filters: Dict[str, Any], limit: Optional[int] = None) -> List[Dict[str, Any]]:
        table = self._table(collection)
        try:
            q = table.select("*")
            for field, value in (filters or {}).items():
                q = q.eq(field, value)
            if limit:
                q = q.limit(limit)
            res = q.execute()
        except Exception as e:
            logger.exception("document_store.query failed collection=%s filters=%s", collection, filters)
            raise PersistenceError(str(e), context={"collection": collection}) from e
        return res.data or []

    def upsert(self, collection: str, doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        row = {**data, "id": str(doc_id)}
        table = self._table(collection)
        try:
            res = table.upsert(row, on_conflict="id").execute()
        except Exception as e:
            logger.exception("document_store.upsert failed collection=%s id=%s", collection, doc_id)
            raise PersistenceError(str(e), context={"collection": collection, "id": doc_id}) from e
        rows = res.data or []
        return rows[0] if rows else row

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        table = self._table(collection)
        try:
            res = table.update(data).eq("id", str(doc_id)).execute()
        except Exception as e:
            logger.exception("document_store.update failed collection=%s id=%s", collection, doc_id)
            raise PersistenceError(str(e), context={"collection": collection, "id": doc_id}) from e
        rows = res.data or []
        return rows[0] if rows else None
