from decimal import Decimal

import pytest

from storefront import config
from storefront.errors import BelowMinimumOrderAmount
from storefront.payments.checkout import (
    CheckoutLine,
    build_session_params,
    ensure_minimum,
    redirect_urls,
    to_line_items,
)
from storefront.payments.metadata import CheckoutMetadata


def test_to_line_items_builds_price_data_in_minor_units():
    lines = [
        CheckoutLine("Mug", Decimal("12.50"), 2),
        CheckoutLine("Free sample", Decimal("0"), 1),
        CheckoutLine("Skipped", Decimal("5"), 0),
    ]
    items, total = to_line_items(lines, "CAD", Decimal("1.25"))
    assert len(items) == 1
    assert items[0]["quantity"] == 2
    assert items[0]["price_data"]["unit_amount"] == 1250
    assert items[0]["price_data"]["currency"] == "cad"
    assert items[0]["price_data"]["product_data"]["name"] == "Mug"
    assert total == 2500


def test_to_line_items_converts_to_usd():
    items, total = to_line_items([CheckoutLine("Watch", Decimal("665.00"))], "USD", Decimal("1.25"))
    assert items[0]["price_data"]["currency"] == "usd"
    assert total == 53200


def test_to_line_items_with_nothing_billable_is_below_minimum():
    with pytest.raises(BelowMinimumOrderAmount) as exc:
        to_line_items([CheckoutLine("Nothing", Decimal("0"))], "CAD", Decimal("1.25"))
    assert exc.value.public_details() == {"minimum": 50, "currency": "cad"}
    assert exc.value.amount_minor == 0


def test_ensure_minimum():
    ensure_minimum(50, "CAD")
    with pytest.raises(BelowMinimumOrderAmount) as exc:
        ensure_minimum(49, "usd")
    assert exc.value.public_details() == {"minimum": 50, "currency": "usd"}


def test_redirect_urls_use_site_origin(monkeypatch):
    monkeypatch.setattr(config, "SITE_URL", "https://shop.example.com")
    success, cancel = redirect_urls("fr")
    assert success == "https://shop.example.com/fr/checkout/success?session_id={CHECKOUT_SESSION_ID}"
    assert cancel == "https://shop.example.com/fr/checkout/cancel"


def test_build_session_params_with_free_shipping():
    meta = CheckoutMetadata(flow="custom", locale="fr", configuration_id="cfg-9")
    items, _ = to_line_items([CheckoutLine("Watch", Decimal("665.00"))], "CAD", Decimal("1.25"))
    params = build_session_params(items, currency="CAD", free_shipping=True, metadata=meta)
    assert params["mode"] == "payment"
    assert params["locale"] == "fr"
    assert params["allow_promotion_codes"] is True
    assert params["client_reference_id"] == "cfg-9"
    assert params["metadata"]["configuration_id"] == "cfg-9"
    assert params["shipping_address_collection"]["allowed_countries"] == config.SHIPPING_COUNTRIES
    rate = params["shipping_options"][0]["shipping_rate_data"]
    assert rate["fixed_amount"] == {"amount": 0, "currency": "cad"}


def test_build_session_params_without_free_shipping():
    meta = CheckoutMetadata(flow="cart")
    items, _ = to_line_items([CheckoutLine("Mug", Decimal("18"))], "CAD", Decimal("1.25"))
    params = build_session_params(items, currency="CAD", free_shipping=False, metadata=meta)
    assert "shipping_options" not in params
    assert "client_reference_id" not in params
