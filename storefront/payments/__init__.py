"""
Module 'payments' (feature-first): point d'entrée public.
Réunit construction de session Stripe, métadonnées, client Stripe, repository BD,
orchestration du checkout et exécution des commandes (webhook).
"""

from .checkout import CheckoutLine, build_session_params, ensure_minimum, to_line_items
from .metadata import CheckoutMetadata, decode_manifest, encode_manifest, extract_metadata, make_metadata
from .stripe_client import require_stripe, create_session, parse_event
from .repository import (
    create_pending_configuration,
    decrement_stock,
    get_order_by_session,
    insert_order,
    mark_configuration_paid,
)
from .service import create_checkout, get_exchange_rate, get_order_status
from .webhook import WebhookOutcome, handle_event

__all__ = [
    # checkout
    "CheckoutLine",
    "build_session_params",
    "ensure_minimum",
    "to_line_items",
    # metadata
    "CheckoutMetadata",
    "decode_manifest",
    "encode_manifest",
    "extract_metadata",
    "make_metadata",
    # stripe
    "require_stripe",
    "create_session",
    "parse_event",
    # repository
    "create_pending_configuration",
    "decrement_stock",
    "get_order_by_session",
    "insert_order",
    "mark_configuration_paid",
    # services
    "create_checkout",
    "get_exchange_rate",
    "get_order_status",
    "WebhookOutcome",
    "handle_event",
]
