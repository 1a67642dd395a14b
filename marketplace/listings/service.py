"""Couche service des annonces (cycle de vie draft <-> active).
- save_draft: crée l'annonce en brouillon ou met à jour son prix/titre.
- publish: exige un compte Stripe relié et un prix > 0, passe en 'active'.
- unpublish: repasse en 'draft'.
Le prix n'est modifiable qu'en brouillon.
"""
from typing import Any, Dict, List, Optional
import logging

from marketplace.config import CHECKOUT_CURRENCY
from marketplace.errors import InvalidPrice, InvalidState, NotFound, ValidationError, SellerNotOnboarded
from marketplace.infra.document_store import server_timestamp
from marketplace.payments.pricing import resolve_unit_amount, to_cents
from marketplace.payments.records import STATUS_ACTIVE, STATUS_DRAFT, SellerAccount
from marketplace.sellers import repository as sellers_repository
from . import repository

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled Deck"

def _require_ids(seller_uid: str, deck_id: str) -> None:
    if not seller_uid or not deck_id:
        raise ValidationError("sellerUid et deckId requis")

def _parse_price(price: Any) -> Optional[int]:
    if price is None or (isinstance(price, str) and not price.strip()):
        return None
    cents = to_cents(price)
    if cents <= 0:
        raise InvalidPrice("Price must be a positive number.")
    return cents

def save_draft(
    store,
    *,
    seller_uid: str,
    deck_id: str,
    title: Optional[str] = None,
    price: Any = None,
    seller_email: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Crée l'annonce (statut draft) ou met à jour prix/titre.
    - price en unités majeures ("4.90", 4.9, 5), converti en centimes
    - InvalidPrice si le prix est fourni mais non positif
    - InvalidState si l'annonce est active et que le prix change
    """
    _require_ids(seller_uid, deck_id)
    cents = _parse_price(price)
    listing_id = repository.listing_id_for(seller_uid, deck_id)
    existing = repository.get_listing(store, listing_id)

    if existing is None:
        now = server_timestamp()
        doc = {
            "listingId": listing_id,
            "deckId": deck_id,
            "sellerUid": seller_uid,
            "sellerEmail": seller_email,
            "title": (title or "").strip() or DEFAULT_TITLE,
            "currency": CHECKOUT_CURRENCY.upper(),
            "priceCents": cents,
            "status": STATUS_DRAFT,
            "createdAt": now,
        }
        logger.info("listings.save_draft created listing=%s priceCents=%s", listing_id, cents)
        return repository.save_listing(store, listing_id, doc)

    changes: Dict[str, Any] = {}
    if cents is not None and cents != resolve_unit_amount(existing):
        if existing.get("status") == STATUS_ACTIVE:
            raise InvalidState("Unpublish the listing before changing its price", context={"listingId": listing_id})
        changes["priceCents"] = cents
    if title and title.strip():
        changes["title"] = title.strip()
    if not changes:
        return existing
    updated = repository.update_listing(store, listing_id, changes)
    return updated or {**existing, **changes}

def publish(store, *, seller_uid: str, deck_id: str, price: Any = None, title: Optional[str] = None) -> Dict[str, Any]:
    _require_ids(seller_uid, deck_id)
    seller = SellerAccount.from_document(sellers_repository.get_user(store, seller_uid), seller_uid)
    if not seller.is_onboarded:
        raise SellerNotOnboarded("You must connect your Stripe account before publishing.", context={"sellerUid": seller_uid})

    listing = save_draft(store, seller_uid=seller_uid, deck_id=deck_id, title=title, price=price)
    if resolve_unit_amount(listing) <= 0:
        raise InvalidPrice("Add a price before publishing.", context={"listingId": listing.get("listingId")})

    listing_id = repository.listing_id_for(seller_uid, deck_id)
    updated = repository.update_listing(store, listing_id, {"status": STATUS_ACTIVE})
    logger.info("listings.publish listing=%s", listing_id)
    return updated or {**listing, "status": STATUS_ACTIVE}

def unpublish(store, *, seller_uid: str, deck_id: str) -> Dict[str, Any]:
    _require_ids(seller_uid, deck_id)
    listing_id = repository.listing_id_for(seller_uid, deck_id)
    existing = repository.get_listing(store, listing_id)
    if existing is None:
        raise NotFound("Listing not found", context={"listingId": listing_id})
    updated = repository.update_listing(store, listing_id, {"status": STATUS_DRAFT})
    logger.info("listings.unpublish listing=%s", listing_id)
    return updated or {**existing, "status": STATUS_DRAFT}

def _normalize(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {**doc, "priceCents": resolve_unit_amount(doc)}

def list_active(store, limit: int = 50) -> List[Dict[str, Any]]:
    """Annonces visibles sur le marché (prix résolu en centimes, prix invalides exclus)."""
    rows = [_normalize(r) for r in repository.fetch_active_listings(store, limit=limit)]
    return [r for r in rows if r["priceCents"] > 0]

def list_seller_listings(store, seller_uid: str) -> List[Dict[str, Any]]:
    return [_normalize(r) for r in repository.fetch_seller_listings(store, seller_uid)]
