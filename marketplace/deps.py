"""
Dépendances FastAPI: construction explicite des collaborateurs externes.
- get_store: document store Supabase (service-role)
- get_gateway: passerelle Stripe
- get_webhook_secrets: secrets de signature webhook configurés
Les tests remplacent ces fonctions via app.dependency_overrides.
"""
from functools import lru_cache
from typing import List
import logging

from fastapi import HTTPException

from marketplace.config import STRIPE_CONNECT_CLIENT_ID, STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRETS
from marketplace.infra.document_store import SupabaseDocumentStore
from marketplace.infra.supabase_client import get_service_supabase
from marketplace.payments.stripe_client import StripeGateway

logger = logging.getLogger(__name__)

@lru_cache(maxsize=1)
def _build_gateway() -> StripeGateway:
    return StripeGateway(STRIPE_SECRET_KEY, connect_client_id=STRIPE_CONNECT_CLIENT_ID)

def get_store() -> SupabaseDocumentStore:
    try:
        return SupabaseDocumentStore(get_service_supabase())
    except RuntimeError as e:
        logger.error("deps.get_store: %s", e)
        raise HTTPException(status_code=500, detail=str(e))

def get_gateway() -> StripeGateway:
    try:
        return _build_gateway()
    except RuntimeError as e:
        logger.error("deps.get_gateway: %s", e)
        raise HTTPException(status_code=500, detail=str(e))

def get_webhook_secrets() -> List[str]:
    return list(STRIPE_WEBHOOK_SECRETS)
