"""
Enregistrements canoniques résolus à la frontière (documents bruts -> dataclasses).
Les variantes historiques de noms de champs sont listées ici, par ordre de priorité,
et ne se propagent pas au-delà.
"""
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from .pricing import resolve_unit_amount

STATUS_DRAFT = "draft"
STATUS_ACTIVE = "active"

# Synonymes des métadonnées de session (nouveaux noms d'abord)
BUYER_EMAIL_KEYS = ("buyerEmail",)
BUYER_UID_KEYS = ("buyerUid", "uid")
DECK_ID_KEYS = ("deckDocId", "deckId")
DECK_NAME_KEYS = ("deckName",)
SELLER_ACCOUNT_KEYS = ("sellerAccountId",)
LISTING_ID_KEYS = ("listingId",)
SELLER_UID_KEYS = ("sellerUid",)


def first_present(source: Optional[Dict[str, Any]], keys: Iterable[str]) -> Optional[str]:
    """Retourne la première valeur non vide parmi keys (chaîne nettoyée), sinon None."""
    for key in keys:
        value = (source or {}).get(key)
        if value is None:
            continue
        value = str(value).strip()
        if value:
            return value
    return None


@dataclass(frozen=True)
class Listing:
    id: str
    status: str
    deck_id: Optional[str]
    seller_uid: Optional[str]
    title: str
    unit_amount: int

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE

    @classmethod
    def from_document(cls, doc: Dict[str, Any], doc_id: Optional[str] = None) -> "Listing":
        return cls(
            id=str(doc_id or doc.get("id") or doc.get("listingId") or ""),
            status=str(doc.get("status") or STATUS_DRAFT),
            deck_id=first_present(doc, ("deckId",)),
            seller_uid=first_present(doc, ("sellerUid",)),
            title=str(doc.get("title") or "").strip(),
            unit_amount=resolve_unit_amount(doc),
        )


@dataclass(frozen=True)
class SellerAccount:
    uid: str
    stripe_account_id: Optional[str]

    @property
    def is_onboarded(self) -> bool:
        return bool(self.stripe_account_id)

    @classmethod
    def from_document(cls, doc: Optional[Dict[str, Any]], uid: str) -> "SellerAccount":
        return cls(uid=uid, stripe_account_id=first_present(doc, ("stripeAccountId",)))


@dataclass(frozen=True)
class Buyer:
    uid: str
    email: str


@dataclass(frozen=True)
class ConfirmedSale:
    """Champs extraits d'une session Checkout complétée (voir reconcile)."""
    session_id: str
    buyer_email: Optional[str]
    buyer_uid: Optional[str]
    deck_id: Optional[str]
    deck_name: Optional[str]
    seller_account_id: str
    listing_id: Optional[str]
    seller_uid: Optional[str]
    amount_total: Optional[int]
    currency: str

    @classmethod
    def from_session(cls, session: Dict[str, Any], default_currency: str) -> "ConfirmedSale":
        md = session.get("metadata") or {}
        details = session.get("customer_details") or {}
        buyer_email = (
            first_present(md, BUYER_EMAIL_KEYS)
            or first_present(details, ("email",))
            or first_present(session, ("customer_email",))
        )
        amount_total = session.get("amount_total")
        return cls(
            session_id=str(session.get("id") or ""),
            buyer_email=buyer_email,
            buyer_uid=first_present(md, BUYER_UID_KEYS),
            deck_id=first_present(md, DECK_ID_KEYS),
            deck_name=first_present(md, DECK_NAME_KEYS),
            seller_account_id=first_present(md, SELLER_ACCOUNT_KEYS) or "",
            listing_id=first_present(md, LISTING_ID_KEYS),
            seller_uid=first_present(md, SELLER_UID_KEYS),
            amount_total=int(amount_total) if isinstance(amount_total, int) and not isinstance(amount_total, bool) else None,
            currency=str(session.get("currency") or default_currency),
        )
