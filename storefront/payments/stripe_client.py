"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
"""
import json
import logging
from typing import Any, Dict, Optional

import stripe

from storefront import config
from storefront.errors import InvalidSignature, PaymentProviderError

logger = logging.getLogger(__name__)

# module storefront.payments.stripe_client
def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Configure stripe.api_key via STRIPE_SECRET_KEY.
    - Sans clé: PaymentProviderError (aucun appel Stripe ne peut aboutir).
    """
    if not config.STRIPE_SECRET_KEY:
        raise PaymentProviderError("STRIPE_SECRET_KEY manquant")
    stripe.api_key = config.STRIPE_SECRET_KEY
    return stripe

def _as_dict(obj: Any) -> Dict[str, Any]:
    # StripeObject: dict-compatible, to_dict() selon les versions du SDK
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)

def create_session(**params: Any) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout à partir des paramètres déjà construits
    (line_items, mode, success_url, cancel_url, metadata, shipping_options...).
    Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
    """
    require_stripe()
    try:
        session = stripe.checkout.Session.create(**params)
    except Exception as e:
        logger.exception("payments.stripe_client.create_session failed")
        raise PaymentProviderError("stripe session create failed") from e
    return _as_dict(session)

def parse_event(payload: bytes, sig_header: Optional[str], secret: Optional[str] = None) -> Dict[str, Any]:
    """
    Valide la signature Stripe-Signature puis décode l'événement en dict simple.
    - Signature absente, secret absent ou invalide => InvalidSignature.
    - La vérification (HMAC + tolérance d'horodatage) est déléguée au SDK.
    """
    secret = config.STRIPE_WEBHOOK_SECRET if secret is None else secret
    if not sig_header:
        raise InvalidSignature("missing Stripe-Signature header")
    if not secret:
        raise InvalidSignature("STRIPE_WEBHOOK_SECRET manquant")
    body = payload.decode("utf-8") if isinstance(payload, (bytes, bytearray)) else str(payload)
    try:
        stripe.WebhookSignature.verify_header(body, sig_header, secret, stripe.Webhook.DEFAULT_TOLERANCE)
    except Exception as e:
        raise InvalidSignature("invalid Stripe signature") from e
    try:
        event = json.loads(body)
    except ValueError as e:
        raise InvalidSignature("invalid webhook payload") from e
    if not isinstance(event, dict):
        raise InvalidSignature("invalid webhook payload")
    return event
