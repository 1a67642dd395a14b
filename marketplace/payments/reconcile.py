"""
Réconciliation des webhooks Stripe (checkout.session.completed -> achat enregistré).

Politique de réponse (Stripe réessaie tant qu'il ne reçoit pas de 2xx):
- signature invalide pour tous les secrets  -> 400 (réessai souhaité après correction de config)
- autre type d'événement                     -> 200, ignoré
- métadonnées incomplètes (email ou deck)    -> 200, ignoré (un réessai ne corrigerait rien)
- échec d'écriture                           -> 500 (réessai souhaité, rien n'a été acquitté)
- succès                                     -> 200

Idempotence: l'achat est stocké sous l'id de session Stripe et l'index de propriété sous
{buyerUid}__{deckId}; les deux écritures sont des upserts au contenu déterministe
(createdAt = horodatage de l'événement), une redélivrance converge donc vers le même état.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence
import logging

from marketplace.config import CHECKOUT_CURRENCY
from marketplace.errors import MalformedEvent, PersistenceError, SignatureInvalid
from marketplace.infra.document_store import server_timestamp
from .records import ConfirmedSale
from .stripe_client import verify_event

logger = logging.getLogger(__name__)

COMPLETED_EVENT = "checkout.session.completed"
PURCHASE_SOURCE = "stripe"


@dataclass(frozen=True)
class WebhookOutcome:
    status_code: int
    body: str
    action: str

    @property
    def acknowledged(self) -> bool:
        return 200 <= self.status_code < 300


def index_key(buyer_uid: str, deck_id: str) -> str:
    return f"{buyer_uid}__{deck_id}"


def extract_sale(session: Dict[str, Any], default_currency: str = CHECKOUT_CURRENCY) -> ConfirmedSale:
    """Résout les métadonnées de la session; MalformedEvent si email acheteur ou deck manquant."""
    sale = ConfirmedSale.from_session(session or {}, default_currency)
    if not sale.buyer_email or not sale.deck_id:
        raise MalformedEvent(
            "Missing buyerEmail or deckDocId",
            context={"sessionId": sale.session_id, "buyerEmail": sale.buyer_email, "deckId": sale.deck_id},
        )
    return sale


def _event_timestamp(event: Dict[str, Any]) -> str:
    created = event.get("created")
    if isinstance(created, int) and not isinstance(created, bool):
        return datetime.fromtimestamp(created, tz=timezone.utc).isoformat()
    return server_timestamp()


def purchase_key(sale: ConfirmedSale) -> str:
    # L'id de session est la clé naturelle; à défaut, le couple (acheteur, deck)
    return sale.session_id or index_key(sale.buyer_uid or sale.buyer_email, sale.deck_id)


def record_purchase(store, sale: ConfirmedSale, created_at: str) -> str:
    """
    Écrit l'achat puis l'entrée d'index (si buyerUid présent).
    Retourne l'identifiant du document d'achat.
    """
    purchase_id = purchase_key(sale)
    store.upsert("purchases", purchase_id, {
        "buyerEmail": sale.buyer_email,
        "buyerUid": sale.buyer_uid,
        "deckId": sale.deck_id,
        "deckName": sale.deck_name,
        "sellerAccountId": sale.seller_account_id,
        "sellerUid": sale.seller_uid,
        "listingId": sale.listing_id,
        "stripeSessionId": sale.session_id or None,
        "amount_total": sale.amount_total,
        "currency": sale.currency,
        "createdAt": created_at,
        "source": PURCHASE_SOURCE,
    })
    if sale.buyer_uid:
        store.upsert("purchasesIndex", index_key(sale.buyer_uid, sale.deck_id), {
            "buyerUid": sale.buyer_uid,
            "deckId": sale.deck_id,
            "purchaseId": purchase_id,
            "title": sale.deck_name,
            "createdAt": created_at,
        })
    return purchase_id


def handle_confirmation_event(
    payload: bytes,
    sig_header: Optional[str],
    secrets: Sequence[str],
    store,
    *,
    default_currency: str = CHECKOUT_CURRENCY,
) -> WebhookOutcome:
    try:
        event = verify_event(payload, sig_header, secrets)
    except SignatureInvalid as e:
        logger.error("payments.webhook signature verification failed secrets=%s: %s", len(secrets or []), e)
        return WebhookOutcome(400, str(e), "rejected")

    event_id = event.get("id")
    event_type = event.get("type")
    logger.info("payments.webhook event=%s type=%s", event_id, event_type)
    if event_type != COMPLETED_EVENT:
        return WebhookOutcome(200, "ok", "ignored")

    session = ((event.get("data") or {}).get("object")) or {}
    try:
        sale = extract_sale(session, default_currency)
    except MalformedEvent as e:
        logger.warning("payments.webhook skipping event=%s: %s context=%s", event_id, e, e.context)
        return WebhookOutcome(200, "ok", "skipped")

    try:
        purchase_id = record_purchase(store, sale, _event_timestamp(event))
    except PersistenceError as e:
        logger.error(
            "payments.webhook persistence failed event=%s session=%s buyer=%s deck=%s: %s",
            event_id, sale.session_id, sale.buyer_uid, sale.deck_id, e,
        )
        return WebhookOutcome(500, "Webhook handler failed", "failed")

    logger.info(
        "payments.webhook saved purchase=%s buyer=%s deck=%s amount=%s",
        purchase_id, sale.buyer_email, sale.deck_id, sale.amount_total,
    )
    return WebhookOutcome(200, "ok", "recorded")
