"""
Construction de la requête de session Stripe Checkout (pas de Stripe, pas de DB).
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Tuple

from storefront import config
from storefront.errors import BelowMinimumOrderAmount
from storefront.payments.metadata import CheckoutMetadata, make_metadata
from storefront.pricing.currency import minimum_charge, normalize_currency, to_minor_units


@dataclass(frozen=True)
class CheckoutLine:
    title: str
    unit_price: Decimal
    quantity: int = 1

# module storefront.payments.checkout
def to_line_items(lines: List[CheckoutLine], currency: str, usd_to_cad: Decimal) -> Tuple[List[Dict[str, Any]], int]:
    """
    Construit les line_items Stripe (price_data, montant en unités mineures de la devise cible).
    Retourne (line_items, total en unités mineures).
    - Les lignes à quantité nulle ou à montant nul sont ignorées.
    - Aucune ligne facturable (total nul): BelowMinimumOrderAmount, comme tout total sous le minimum.
    """
    cur = normalize_currency(currency)
    line_items: List[Dict[str, Any]] = []
    total = 0
    for line in lines:
        if line.quantity <= 0:
            continue
        unit_amount = to_minor_units(line.unit_price, cur, usd_to_cad)
        if unit_amount <= 0:
            continue
        total += unit_amount * line.quantity
        line_items.append({
            "quantity": line.quantity,
            "price_data": {
                "currency": cur.lower(),
                "unit_amount": unit_amount,
                "product_data": {"name": (line.title or "Article")[:250]},
            },
        })
    if not line_items:
        raise BelowMinimumOrderAmount(total, minimum_charge(cur), cur)
    return line_items, total

def ensure_minimum(total_minor: int, currency: str) -> None:
    """BelowMinimumOrderAmount si le total converti est sous le minimum Stripe."""
    cur = normalize_currency(currency)
    minimum = minimum_charge(cur)
    if total_minor < minimum:
        raise BelowMinimumOrderAmount(total_minor, minimum, cur)

def free_shipping_option(currency: str) -> Dict[str, Any]:
    return {
        "shipping_rate_data": {
            "type": "fixed_amount",
            "fixed_amount": {"amount": 0, "currency": normalize_currency(currency).lower()},
            "display_name": "Free shipping",
        }
    }

def redirect_urls(locale: str) -> Tuple[str, str]:
    """
    URLs de retour Stripe, à partir de l'origine du site (évite les locales doublées).
    """
    loc = (locale or "en")[:5]
    success_path = config.CHECKOUT_SUCCESS_PATH.format(locale=loc)
    sep = "&" if "?" in success_path else "?"
    success_url = f"{config.SITE_URL}{success_path}{sep}session_id={{CHECKOUT_SESSION_ID}}"
    cancel_url = f"{config.SITE_URL}{config.CHECKOUT_CANCEL_PATH.format(locale=loc)}"
    return success_url, cancel_url

def build_session_params(
    line_items: List[Dict[str, Any]],
    *,
    currency: str,
    free_shipping: bool,
    metadata: CheckoutMetadata,
) -> Dict[str, Any]:
    """
    Paramètres de stripe.checkout.Session.create.
    - metadata: corrélation (configuration_id), manifeste panier, user_id, type, locale.
    - free_shipping: option de livraison à 0.
    """
    success_url, cancel_url = redirect_urls(metadata.locale)
    params: Dict[str, Any] = {
        "mode": "payment",
        "line_items": line_items,
        "success_url": success_url,
        "cancel_url": cancel_url,
        "metadata": make_metadata(metadata),
        "billing_address_collection": "required",
        "shipping_address_collection": {"allowed_countries": config.SHIPPING_COUNTRIES},
        "locale": "fr" if (metadata.locale or "").startswith("fr") else "en",
        "allow_promotion_codes": True,
    }
    reference = metadata.configuration_id or metadata.user_id
    if reference:
        params["client_reference_id"] = reference
    if free_shipping:
        params["shipping_options"] = [free_shipping_option(currency)]
    return params
