"""
Construction de la session Checkout (achat d'un deck).

Étapes:
  1) check_listing: préconditions sur l'annonce (ordre fixe, la première violée gagne)
  2) build_checkout_request: préconditions vendeur/prix, calcul de la commission, paramètres Stripe
  3) create_checkout_session: lectures store (annonce puis vendeur), appel Stripe, URL de redirection

Aucune écriture locale: la session et ses métadonnées sont la seule trace de l'intention d'achat
jusqu'à la réception de checkout.session.completed (voir reconcile).
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import logging

from marketplace.config import CHARGE_MODE, CHECKOUT_CURRENCY
from marketplace.errors import (
    Conflict,
    InvalidPrice,
    InvalidState,
    MalformedRecord,
    NotFound,
    SellerNotOnboarded,
    GatewayError,
    ValidationError,
)
from .pricing import PLATFORM_FEE_RATE, compute_split
from .records import STATUS_ACTIVE, Buyer, Listing, SellerAccount

logger = logging.getLogger(__name__)

CHARGE_MODE_DESTINATION = "destination"
CHARGE_MODE_DIRECT = "direct"
CHARGE_MODES = (CHARGE_MODE_DESTINATION, CHARGE_MODE_DIRECT)

DEFAULT_TITLE = "FlashPro Deck"


@dataclass(frozen=True)
class CheckoutRequest:
    params: Dict[str, Any]
    unit_amount: int
    fee_cents: int
    seller_net_cents: int
    charge_mode: str
    # Renseigné uniquement en charge directe: la session est créée sur le compte du vendeur
    stripe_account: Optional[str] = None
    redirect_hints: Dict[str, str] = field(default_factory=dict)

    @property
    def metadata(self) -> Dict[str, str]:
        return self.params["metadata"]


def redirect_urls(origin: str) -> Dict[str, str]:
    base = (origin or "").rstrip("/")
    return {
        "success_url": f"{base}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
        "cancel_url": f"{base}/checkout/cancel",
    }


def check_listing(listing_doc: Optional[Dict[str, Any]], deck_id_hint: Optional[str] = None, listing_id: Optional[str] = None) -> Listing:
    """Préconditions 1 à 4: existence, statut actif, champs deckId/sellerUid, cohérence du deckId fourni."""
    if not listing_doc:
        raise NotFound("Listing not found", context={"listingId": listing_id})
    listing = Listing.from_document(listing_doc, listing_id)
    if not listing.is_active:
        raise InvalidState("Listing is not active", context={"listingId": listing.id, "status": listing.status})
    if not listing.deck_id or not listing.seller_uid:
        raise MalformedRecord("Listing missing fields", context={"listingId": listing.id})
    if deck_id_hint and deck_id_hint != listing.deck_id:
        raise Conflict("Listing/deck mismatch", context={"listingId": listing.id, "deckId": deck_id_hint})
    return listing


def build_checkout_request(
    listing_doc: Optional[Dict[str, Any]],
    seller_doc: Optional[Dict[str, Any]],
    buyer: Buyer,
    *,
    origin: str,
    deck_id_hint: Optional[str] = None,
    listing_id: Optional[str] = None,
    currency: str = CHECKOUT_CURRENCY,
    charge_mode: str = CHARGE_MODE,
) -> CheckoutRequest:
    """
    Construit les paramètres stripe.checkout.Session.create pour une annonce.
    - Préconditions vérifiées dans l'ordre: NotFound, InvalidState, MalformedRecord, Conflict,
      SellerNotOnboarded, InvalidPrice.
    - Commission plateforme: compute_split(unit_amount, 12 %).
    - destination: session sur le compte plateforme, transfert au vendeur moins la commission.
    - direct: session sur le compte connecté du vendeur, commission via application_fee_amount.
    """
    listing = check_listing(listing_doc, deck_id_hint, listing_id)
    return _request_for_listing(listing, seller_doc, buyer, origin=origin, currency=currency, charge_mode=charge_mode)


def _request_for_listing(
    listing: Listing,
    seller_doc: Optional[Dict[str, Any]],
    buyer: Buyer,
    *,
    origin: str,
    currency: str,
    charge_mode: str,
) -> CheckoutRequest:
    """Préconditions 5 et 6 puis paramètres Stripe, pour une annonce déjà validée par check_listing."""
    if charge_mode not in CHARGE_MODES:
        raise RuntimeError(f"CHARGE_MODE invalide: {charge_mode}")
    seller = SellerAccount.from_document(seller_doc, listing.seller_uid)
    if not seller.is_onboarded:
        raise SellerNotOnboarded(
            "Seller not connected to Stripe (no stripeAccountId)",
            context={"sellerUid": listing.seller_uid},
        )
    if listing.unit_amount <= 0:
        raise InvalidPrice("Invalid price on listing (set price or priceCents)", context={"listingId": listing.id})

    split = compute_split(listing.unit_amount, PLATFORM_FEE_RATE)
    title = listing.title or DEFAULT_TITLE
    metadata = {
        "listingId": listing.id,
        "deckId": listing.deck_id,
        "sellerUid": listing.seller_uid,
        "buyerUid": buyer.uid,
        "buyerEmail": buyer.email,
        "deckName": title,
        "sellerAccountId": seller.stripe_account_id,
    }
    hints = redirect_urls(origin)

    payment_intent_data: Dict[str, Any] = {"application_fee_amount": split.fee_cents}
    stripe_account = None
    if charge_mode == CHARGE_MODE_DESTINATION:
        payment_intent_data["transfer_data"] = {"destination": seller.stripe_account_id}
    else:
        stripe_account = seller.stripe_account_id

    params = {
        "mode": "payment",
        "payment_method_types": ["card"],
        "customer_email": buyer.email,
        "line_items": [
            {
                "price_data": {
                    "currency": currency,
                    "product_data": {"name": title},
                    "unit_amount": listing.unit_amount,
                },
                "quantity": 1,
            }
        ],
        "success_url": hints["success_url"],
        "cancel_url": hints["cancel_url"],
        "metadata": metadata,
        "payment_intent_data": payment_intent_data,
    }
    return CheckoutRequest(
        params=params,
        unit_amount=listing.unit_amount,
        fee_cents=split.fee_cents,
        seller_net_cents=split.seller_net_cents,
        charge_mode=charge_mode,
        stripe_account=stripe_account,
        redirect_hints=hints,
    )


def find_listing(store, *, listing_id: Optional[str], deck_id: Optional[str]):
    """
    Charge l'annonce: par listingId (préféré), sinon par deckId.
    - Par deckId: l'annonce active du deck; à défaut une annonce inactive (pour signaler InvalidState
      plutôt que NotFound).
    Retour: (listing_id, document | None)
    """
    if listing_id:
        return listing_id, store.get("listings", listing_id)
    rows = store.query("listings", {"deckId": deck_id, "status": STATUS_ACTIVE}, limit=1)
    if not rows:
        rows = store.query("listings", {"deckId": deck_id}, limit=1)
    if not rows:
        return None, None
    chosen = rows[0]
    return chosen.get("id") or chosen.get("listingId"), chosen


def create_checkout_session(
    store,
    gateway,
    *,
    buyer_uid: Optional[str],
    buyer_email: Optional[str],
    origin: str,
    listing_id: Optional[str] = None,
    deck_id: Optional[str] = None,
    currency: str = CHECKOUT_CURRENCY,
    charge_mode: str = CHARGE_MODE,
) -> Dict[str, Any]:
    """
    Cas d'usage « acheter »: retourne {"id", "url"} de la session Stripe.
    - Lit l'annonce, puis le vendeur (dépend du sellerUid de l'annonce).
    - Toute erreur de validation est levée avant l'appel Stripe.
    """
    buyer_uid = (buyer_uid or "").strip()
    buyer_email = (buyer_email or "").strip()
    listing_id = (listing_id or "").strip() or None
    deck_id = (deck_id or "").strip() or None
    if not (listing_id or deck_id) or not buyer_uid or not buyer_email:
        raise ValidationError("Missing fields: need { listingId, buyerUid, buyerEmail }")

    resolved_id, listing_doc = find_listing(store, listing_id=listing_id, deck_id=deck_id)
    listing = check_listing(listing_doc, deck_id, resolved_id)
    seller_doc = store.get("users", listing.seller_uid)

    request = _request_for_listing(
        listing,
        seller_doc,
        Buyer(uid=buyer_uid, email=buyer_email),
        origin=origin,
        currency=currency,
        charge_mode=charge_mode,
    )
    session = gateway.create_session(request.params, stripe_account=request.stripe_account)
    if not session.get("url"):
        raise GatewayError("Session Stripe invalide (url manquante)")
    logger.info(
        "payments.checkout created session=%s listing=%s buyer=%s amount=%s fee=%s mode=%s",
        session.get("id"), listing.id, buyer_uid, request.unit_amount, request.fee_cents, request.charge_mode,
    )
    return session
