import hashlib
import hmac
import json
import os
import time
from typing import Any, Dict, Generator, List, Optional

# Pas de Redis pendant les tests
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import pytest
from fastapi.testclient import TestClient

from marketplace.app import app as fastapi_app
from marketplace.deps import get_gateway, get_store, get_webhook_secrets
from marketplace.errors import GatewayError, PersistenceError
from marketplace.utils.security import require_user

WEBHOOK_SECRET = "whsec_test_platform"

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)


class FakeStore:
    """Document store en mémoire: mêmes primitives que SupabaseDocumentStore."""

    def __init__(self):
        self.docs: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.calls: List[tuple] = []
        self.fail_on: set = set()

    def _check(self, op: str, collection: str):
        self.calls.append((op, collection))
        if op in self.fail_on or (op, collection) in self.fail_on:
            raise PersistenceError(f"{op} failed on {collection}")

    def seed(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self.docs.setdefault(collection, {})[doc_id] = {**data, "id": doc_id}

    def all(self, collection: str) -> Dict[str, Dict[str, Any]]:
        return self.docs.get(collection, {})

    def get(self, collection, doc_id):
        self._check("get", collection)
        doc = self.all(collection).get(doc_id)
        return dict(doc) if doc else None

    def query(self, collection, filters, limit=None):
        self._check("query", collection)
        rows = [dict(d) for d in self.all(collection).values()
                if all(d.get(k) == v for k, v in (filters or {}).items())]
        return rows[:limit] if limit else rows

    def upsert(self, collection, doc_id, data):
        self._check("upsert", collection)
        current = self.docs.setdefault(collection, {}).get(doc_id, {})
        merged = {**current, **data, "id": doc_id}
        self.docs[collection][doc_id] = merged
        return dict(merged)

    def update(self, collection, doc_id, data):
        self._check("update", collection)
        current = self.all(collection).get(doc_id)
        if current is None:
            return None
        current.update(data)
        return dict(current)


class FakeGateway:
    """Passerelle Stripe factice: enregistre les appels, aucune requête réseau."""

    def __init__(self):
        self.sessions: List[Dict[str, Any]] = []
        self.error: Optional[str] = None
        self.connected_account = "acct_new"

    def create_session(self, params, *, stripe_account=None):
        if self.error:
            raise GatewayError(self.error)
        session_id = f"cs_test_{len(self.sessions) + 1}"
        self.sessions.append({"params": params, "stripe_account": stripe_account, "id": session_id})
        return {"id": session_id, "url": f"https://checkout.stripe.test/{session_id}"}

    def get_or_create_customer(self, *, email, uid):
        return f"cus_{uid}"

    def authorize_url(self, state):
        return f"https://connect.stripe.test/oauth/authorize?state={state}"

    def exchange_oauth_code(self, code):
        if self.error:
            raise GatewayError(self.error)
        return self.connected_account


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """En-tête Stripe-Signature valide (schéma v1: HMAC-SHA256 de '<t>.<payload>')."""
    ts = int(timestamp if timestamp is not None else time.time())
    signed = f"{ts}.{payload.decode('utf-8')}".encode("utf-8")
    sig = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={sig}"


def completed_event(metadata: Dict[str, Any], *, session_id: str = "cs_test_1", event_id: str = "evt_1",
                    amount_total: int = 490, event_type: str = "checkout.session.completed",
                    extra_session: Optional[Dict[str, Any]] = None) -> bytes:
    session = {
        "id": session_id,
        "object": "checkout.session",
        "amount_total": amount_total,
        "currency": "sgd",
        "metadata": metadata,
        **(extra_session or {}),
    }
    event = {"id": event_id, "object": "event", "created": 1760000000, "type": event_type, "data": {"object": session}}
    return json.dumps(event).encode("utf-8")


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def marketplace(store):
    """Annonce L1 active à 4,90 et vendeur S1 relié à Stripe."""
    store.seed("listings", "L1", {
        "status": "active", "priceCents": 490, "deckId": "D1", "sellerUid": "S1", "title": "Biology 101",
    })
    store.seed("users", "S1", {"stripeAccountId": "acct_1"})
    return store


@pytest.fixture(scope="session")
def app():
    return fastapi_app


@pytest.fixture
def seller_user() -> Dict[str, Any]:
    return {"id": "S1", "email": "s1@x.com"}


@pytest.fixture
def client(app, store, gateway, seller_user) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_webhook_secrets] = lambda: [WEBHOOK_SECRET]
    app.dependency_overrides[require_user] = lambda: seller_user
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def sign():
    return sign_payload


@pytest.fixture
def make_event():
    return completed_event


@pytest.fixture
def webhook_secret() -> str:
    return WEBHOOK_SECRET
