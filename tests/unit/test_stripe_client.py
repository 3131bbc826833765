import hashlib
import hmac
import json
import time

import pytest
import stripe

from storefront import config
from storefront.errors import InvalidSignature, PaymentProviderError
from storefront.payments import stripe_client

SECRET = "whsec_test_secret"


def sign(payload: str, secret: str = SECRET, timestamp: int = None) -> str:
    ts = int(time.time()) if timestamp is None else timestamp
    signature = hmac.new(secret.encode("utf-8"), f"{ts}.{payload}".encode("utf-8"), hashlib.sha256).hexdigest()
    return f"t={ts},v1={signature}"


PAYLOAD = json.dumps({"id": "evt_1", "type": "checkout.session.completed", "data": {"object": {"id": "cs_1"}}})


def test_parse_event_accepts_valid_signature():
    event = stripe_client.parse_event(PAYLOAD.encode("utf-8"), sign(PAYLOAD), secret=SECRET)
    assert event["type"] == "checkout.session.completed"
    assert event["data"]["object"]["id"] == "cs_1"


def test_parse_event_uses_configured_secret(monkeypatch):
    monkeypatch.setattr(config, "STRIPE_WEBHOOK_SECRET", SECRET)
    assert stripe_client.parse_event(PAYLOAD.encode("utf-8"), sign(PAYLOAD))["id"] == "evt_1"


@pytest.mark.parametrize("header", [None, "", "t=1,v1=deadbeef", sign(PAYLOAD, secret="whsec_other")])
def test_parse_event_rejects_missing_or_bad_signature(header):
    with pytest.raises(InvalidSignature):
        stripe_client.parse_event(PAYLOAD.encode("utf-8"), header, secret=SECRET)


def test_parse_event_rejects_stale_timestamp():
    header = sign(PAYLOAD, timestamp=int(time.time()) - 3600)
    with pytest.raises(InvalidSignature):
        stripe_client.parse_event(PAYLOAD.encode("utf-8"), header, secret=SECRET)


def test_parse_event_without_secret_is_rejected():
    with pytest.raises(InvalidSignature):
        stripe_client.parse_event(PAYLOAD.encode("utf-8"), sign(PAYLOAD), secret="")


def test_parse_event_rejects_tampered_body():
    header = sign(PAYLOAD)
    tampered = PAYLOAD.replace("cs_1", "cs_2")
    with pytest.raises(InvalidSignature):
        stripe_client.parse_event(tampered.encode("utf-8"), header, secret=SECRET)


def test_create_session_requires_secret_key(monkeypatch):
    monkeypatch.setattr(config, "STRIPE_SECRET_KEY", "")
    with pytest.raises(PaymentProviderError):
        stripe_client.create_session(mode="payment")


def test_create_session_wraps_stripe_errors(monkeypatch):
    monkeypatch.setattr(config, "STRIPE_SECRET_KEY", "sk_test_x")

    def boom(**params):
        raise stripe.APIConnectionError("network down")

    monkeypatch.setattr(stripe.checkout.Session, "create", boom)
    with pytest.raises(PaymentProviderError):
        stripe_client.create_session(mode="payment")


def test_create_session_returns_plain_dict(monkeypatch):
    monkeypatch.setattr(config, "STRIPE_SECRET_KEY", "sk_test_x")
    captured = {}

    def fake_create(**params):
        captured.update(params)
        return {"id": "cs_test_1", "url": "https://checkout.stripe.test/c/cs_test_1"}

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)
    session = stripe_client.create_session(mode="payment", line_items=[])
    assert session["id"] == "cs_test_1"
    assert captured["mode"] == "payment"
