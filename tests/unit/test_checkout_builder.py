import pytest

from marketplace.errors import (
    Conflict,
    InvalidPrice,
    InvalidState,
    MalformedRecord,
    NotFound,
    SellerNotOnboarded,
    ValidationError,
)
from marketplace.payments.checkout import build_checkout_request, redirect_urls
from marketplace.payments.records import Buyer

BUYER = Buyer(uid="U1", email="u1@x.com")
ORIGIN = "https://flashpro.test"


def _listing(**overrides):
    doc = {"id": "L1", "status": "active", "priceCents": 490, "deckId": "D1", "sellerUid": "S1", "title": "Biology 101"}
    doc.update(overrides)
    return doc


SELLER = {"stripeAccountId": "acct_1"}


def test_end_to_end_destination_charge():
    req = build_checkout_request(_listing(), SELLER, BUYER, origin=ORIGIN, listing_id="L1",
                                 currency="sgd", charge_mode="destination")

    line = req.params["line_items"][0]
    assert line["quantity"] == 1
    assert line["price_data"]["unit_amount"] == 490
    assert line["price_data"]["currency"] == "sgd"
    assert line["price_data"]["product_data"]["name"] == "Biology 101"
    assert req.fee_cents == 59
    assert req.seller_net_cents == 431
    assert req.params["payment_intent_data"] == {
        "application_fee_amount": 59,
        "transfer_data": {"destination": "acct_1"},
    }
    assert req.stripe_account is None
    md = req.metadata
    assert {k: md[k] for k in ("listingId", "deckId", "sellerUid", "buyerUid", "buyerEmail")} == {
        "listingId": "L1", "deckId": "D1", "sellerUid": "S1", "buyerUid": "U1", "buyerEmail": "u1@x.com",
    }
    assert md["sellerAccountId"] == "acct_1"
    assert all(isinstance(v, str) for v in md.values())
    assert req.params["mode"] == "payment"
    assert req.params["customer_email"] == "u1@x.com"


def test_direct_charge_routes_session_to_seller_account():
    req = build_checkout_request(_listing(), SELLER, BUYER, origin=ORIGIN, charge_mode="direct")
    assert req.stripe_account == "acct_1"
    assert req.params["payment_intent_data"] == {"application_fee_amount": 59}


def test_unknown_charge_mode_is_a_configuration_error():
    with pytest.raises(RuntimeError):
        build_checkout_request(_listing(), SELLER, BUYER, origin=ORIGIN, charge_mode="split")


def test_redirect_urls_keep_session_placeholder():
    hints = redirect_urls("https://flashpro.test/")
    assert hints["success_url"] == "https://flashpro.test/checkout/success?session_id={CHECKOUT_SESSION_ID}"
    assert hints["cancel_url"] == "https://flashpro.test/checkout/cancel"


def test_missing_listing_is_not_found():
    with pytest.raises(NotFound) as exc:
        build_checkout_request(None, None, BUYER, origin=ORIGIN)
    assert exc.value.status_code == 404


def test_inactive_listing_wins_over_later_failures():
    # deckId absent, vendeur non relié, prix nul: InvalidState est prioritaire
    with pytest.raises(InvalidState):
        build_checkout_request(_listing(status="draft", deckId=None, priceCents=0), None, BUYER, origin=ORIGIN)


def test_missing_ids_is_malformed_record():
    with pytest.raises(MalformedRecord):
        build_checkout_request(_listing(sellerUid=None, priceCents=0), None, BUYER, origin=ORIGIN)
    with pytest.raises(MalformedRecord):
        build_checkout_request(_listing(deckId=""), SELLER, BUYER, origin=ORIGIN)


def test_mismatched_deck_hint_is_conflict():
    with pytest.raises(Conflict):
        build_checkout_request(_listing(priceCents=0), None, BUYER, origin=ORIGIN, deck_id_hint="D2")


def test_matching_deck_hint_is_accepted():
    req = build_checkout_request(_listing(), SELLER, BUYER, origin=ORIGIN, deck_id_hint="D1")
    assert req.unit_amount == 490


def test_seller_without_payout_account():
    with pytest.raises(SellerNotOnboarded):
        build_checkout_request(_listing(priceCents=0), {"stripeAccountId": ""}, BUYER, origin=ORIGIN)
    with pytest.raises(SellerNotOnboarded):
        build_checkout_request(_listing(), None, BUYER, origin=ORIGIN)


def test_zero_price_is_invalid_price():
    with pytest.raises(InvalidPrice):
        build_checkout_request(_listing(priceCents=0, price="abc"), SELLER, BUYER, origin=ORIGIN)


def test_all_precondition_errors_are_validation_errors():
    for cls in (NotFound, InvalidState, MalformedRecord, Conflict, SellerNotOnboarded, InvalidPrice):
        assert issubclass(cls, ValidationError)


def test_dollar_priced_listing_and_default_title():
    req = build_checkout_request(_listing(priceCents=None, price="12.50", title=""), SELLER, BUYER, origin=ORIGIN)
    assert req.unit_amount == 1250
    assert req.fee_cents == 150
    assert req.params["line_items"][0]["price_data"]["product_data"]["name"] == "FlashPro Deck"
