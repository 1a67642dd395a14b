import json

from marketplace.payments.reconcile import handle_confirmation_event, index_key

METADATA = {
    "listingId": "L1",
    "deckId": "D1",
    "sellerUid": "S1",
    "buyerUid": "U1",
    "buyerEmail": "u1@x.com",
    "deckName": "Biology 101",
    "sellerAccountId": "acct_1",
}


def _deliver(store, payload, sign, secrets=("whsec_test_platform",), header=None):
    sig = header if header is not None else sign(payload)
    return handle_confirmation_event(payload, sig, list(secrets), store)


def test_completed_event_records_purchase_and_index(store, sign, make_event):
    outcome = _deliver(store, make_event(METADATA), sign)

    assert outcome.status_code == 200
    assert outcome.action == "recorded"
    purchase = store.all("purchases")["cs_test_1"]
    assert purchase["buyerEmail"] == "u1@x.com"
    assert purchase["buyerUid"] == "U1"
    assert purchase["deckId"] == "D1"
    assert purchase["amount_total"] == 490
    assert purchase["currency"] == "sgd"
    assert purchase["source"] == "stripe"
    assert purchase["sellerAccountId"] == "acct_1"
    entry = store.all("purchasesIndex")[index_key("U1", "D1")]
    assert entry["purchaseId"] == "cs_test_1"
    assert entry["title"] == "Biology 101"
    # l'achat est écrit avant l'index
    upserts = [c for c in store.calls if c[0] == "upsert"]
    assert upserts == [("upsert", "purchases"), ("upsert", "purchasesIndex")]


def test_redelivery_is_idempotent(store, sign, make_event):
    payload = make_event(METADATA)
    first = _deliver(store, payload, sign)
    snapshot = {k: dict(v) for k, v in store.docs.items()}
    second = _deliver(store, payload, sign)

    assert first.status_code == second.status_code == 200
    assert len(store.all("purchases")) == 1
    assert len(store.all("purchasesIndex")) == 1
    assert {k: dict(v) for k, v in store.docs.items()} == snapshot


def test_bad_signature_is_rejected_without_writes(store, sign, make_event):
    payload = make_event(METADATA)
    outcome = _deliver(store, payload, sign, header=sign(payload, secret="whsec_other"))

    assert outcome.status_code == 400
    assert not outcome.acknowledged
    assert store.calls == []


def test_missing_signature_header_is_rejected(store, sign, make_event):
    outcome = _deliver(store, make_event(METADATA), sign, header="")
    assert outcome.status_code == 400
    assert store.calls == []


def test_second_secret_is_accepted(store, sign, make_event):
    payload = make_event(METADATA)
    header = sign(payload, secret="whsec_connect")
    outcome = _deliver(store, payload, sign, secrets=("whsec_platform", "whsec_connect"), header=header)
    assert outcome.status_code == 200
    assert "cs_test_1" in store.all("purchases")


def test_incomplete_metadata_is_acknowledged_and_skipped(store, sign, make_event):
    md = {k: v for k, v in METADATA.items() if k != "deckId"}
    outcome = _deliver(store, make_event(md), sign)

    assert outcome.status_code == 200
    assert outcome.action == "skipped"
    assert store.calls == []


def test_missing_email_everywhere_is_skipped(store, sign, make_event):
    md = {k: v for k, v in METADATA.items() if k != "buyerEmail"}
    outcome = _deliver(store, make_event(md), sign)
    assert outcome.action == "skipped"
    assert store.all("purchases") == {}


def test_email_falls_back_to_customer_details(store, sign, make_event):
    md = {k: v for k, v in METADATA.items() if k != "buyerEmail"}
    payload = make_event(md, extra_session={"customer_details": {"email": "cd@x.com"}})
    outcome = _deliver(store, payload, sign)

    assert outcome.action == "recorded"
    assert store.all("purchases")["cs_test_1"]["buyerEmail"] == "cd@x.com"


def test_legacy_metadata_names(store, sign, make_event):
    md = {"deckDocId": "D9", "uid": "U9", "buyerEmail": "u9@x.com"}
    outcome = _deliver(store, make_event(md), sign)

    assert outcome.action == "recorded"
    assert index_key("U9", "D9") in store.all("purchasesIndex")


def test_purchase_without_buyer_uid_has_no_index_entry(store, sign, make_event):
    md = {"deckId": "D1", "buyerEmail": "guest@x.com"}
    outcome = _deliver(store, make_event(md), sign)

    assert outcome.action == "recorded"
    assert "cs_test_1" in store.all("purchases")
    assert store.all("purchasesIndex") == {}


def test_other_event_types_are_ignored(store, sign, make_event):
    outcome = _deliver(store, make_event(METADATA, event_type="payment_intent.succeeded"), sign)
    assert outcome.status_code == 200
    assert outcome.action == "ignored"
    assert store.calls == []


def test_persistence_failure_asks_for_retry(store, sign, make_event):
    store.fail_on.add(("upsert", "purchasesIndex"))
    outcome = _deliver(store, make_event(METADATA), sign)

    assert outcome.status_code == 500
    assert outcome.action == "failed"
    # l'achat est déjà là; la redélivrance complètera l'index
    assert "cs_test_1" in store.all("purchases")
    store.fail_on.clear()
    assert _deliver(store, make_event(METADATA), sign).status_code == 200
    assert index_key("U1", "D1") in store.all("purchasesIndex")


def test_created_at_comes_from_event(store, sign, make_event):
    _deliver(store, make_event(METADATA), sign)
    assert store.all("purchases")["cs_test_1"]["createdAt"].startswith("2025-10-09")


def test_signed_non_object_payload_is_rejected(store, sign):
    payload = json.dumps(["not", "an", "event"]).encode("utf-8")
    outcome = _deliver(store, payload, sign)
    assert outcome.status_code == 400


def test_undecodable_body_is_rejected_not_retried_as_server_error(store):
    outcome = handle_confirmation_event(b"\xff\xfe{}", "t=1,v1=abc", ["whsec_x"], store)
    assert outcome.status_code == 400
    assert outcome.action == "rejected"
    assert store.calls == []
