import dataclasses
from types import SimpleNamespace

import pytest
import stripe

from buildcheck import billing, db
from buildcheck.errors import BillingUnconfigured

from tests.conftest import checkout_event, sign_payload


@pytest.fixture
def account(conn):
    return db.create_account(conn, "founder@example.com", "hash")


def test_checkout_completed_upgrades_account(conn, settings, account):
    payload = checkout_event(account.id)
    assert billing.handle_event(conn, settings, payload, sign_payload(payload))
    assert db.get_account(conn, account.id).plan == "pro"


def test_replayed_event_is_idempotent(conn, settings, account):
    payload = checkout_event(account.id)
    for _ in range(3):
        assert billing.handle_event(conn, settings, payload, sign_payload(payload))
    assert db.get_account(conn, account.id).plan == "pro"


def test_bad_signature_changes_nothing(conn, settings, account):
    payload = checkout_event(account.id)
    assert not billing.handle_event(conn, settings, payload, sign_payload(payload, secret="whsec_wrong"))
    assert not billing.handle_event(conn, settings, payload, None)
    assert not billing.handle_event(conn, settings, payload, "garbage")
    assert db.get_account(conn, account.id).plan == "free"


def test_tampered_payload_is_rejected(conn, settings, account):
    other = db.create_account(conn, "other@example.com", "hash")
    signature = sign_payload(checkout_event(account.id))
    assert not billing.handle_event(conn, settings, checkout_event(other.id), signature)
    assert db.get_account(conn, other.id).plan == "free"


def test_missing_webhook_secret_rejects_everything(conn, settings, account):
    unsigned = dataclasses.replace(settings, stripe_webhook_secret="")
    payload = checkout_event(account.id)
    assert not billing.handle_event(conn, unsigned, payload, sign_payload(payload))
    assert db.get_account(conn, account.id).plan == "free"


def test_unknown_account_is_a_no_op(conn, settings, account):
    for reference in (account.id + 99, "not-a-number"):
        payload = checkout_event(reference)
        assert billing.handle_event(conn, settings, payload, sign_payload(payload))
    assert db.get_account(conn, account.id).plan == "free"


def test_other_event_types_are_ignored(conn, settings, account):
    payload = checkout_event(account.id, event_type="invoice.paid")
    assert billing.handle_event(conn, settings, payload, sign_payload(payload))
    assert db.get_account(conn, account.id).plan == "free"


def test_signed_but_malformed_payload(conn, settings):
    payload = b"not json"
    assert not billing.handle_event(conn, settings, payload, sign_payload(payload))


def test_create_checkout_requires_stripe_key(settings, account):
    with pytest.raises(BillingUnconfigured):
        billing.create_checkout(settings, account)


def test_create_checkout_session(settings, account, monkeypatch):
    captured = {}

    def fake_create(**kwargs):
        captured.update(kwargs)
        return SimpleNamespace(url="https://checkout.stripe.test/session")

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)
    configured = dataclasses.replace(settings, stripe_secret_key="sk_test_123",
                                     app_url="https://app.example.com")

    assert billing.create_checkout(configured, account) == "https://checkout.stripe.test/session"
    assert captured["api_key"] == "sk_test_123"
    assert captured["mode"] == "subscription"
    assert captured["client_reference_id"] == str(account.id)
    assert captured["success_url"] == "https://app.example.com/dashboard?success=true"
    price = captured["line_items"][0]["price_data"]
    assert price["unit_amount"] == 2900
    assert price["recurring"] == {"interval": "month"}


def test_create_checkout_stripe_error(settings, account, monkeypatch):
    def failing_create(**kwargs):
        raise stripe.StripeError("card network down")

    monkeypatch.setattr(stripe.checkout.Session, "create", failing_create)
    configured = dataclasses.replace(settings, stripe_secret_key="sk_test_123")
    with pytest.raises(BillingUnconfigured):
        billing.create_checkout(configured, account)


def test_signed_event_must_be_an_object(conn, settings):
    payload = b'["checkout.session.completed"]'
    assert not billing.handle_event(conn, settings, payload, sign_payload(payload))


def test_expired_signature_is_rejected(conn, settings, account):
    payload = checkout_event(account.id)
    stale = sign_payload(payload, timestamp=1_000_000_000)
    assert not billing.handle_event(conn, settings, payload, stale)
    assert db.get_account(conn, account.id).plan == "free"
