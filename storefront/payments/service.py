"""
Cas d'usage 'payments': orchestre catalogue, panier, prix, Stripe et metadata.

Étapes d'un checkout, toujours dans cet ordre:
1) validation + prix faisant foi (aucune écriture),
2) contrôle du montant minimum,
3) persistance de la configuration 'pending' (flux custom/built),
4) création de la session Stripe.
"""
from dataclasses import replace
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
import logging

from storefront.cart import repository as cart_repository
from storefront.cart.service import aggregate_cart
from storefront.catalog import repository as catalog_repository
from storefront.catalog.models import SiteSettings
from storefront.configurator import service as configurator_service
from storefront.errors import CartUnavailable, CheckoutForbidden
from storefront.payments import repository
from storefront.payments import stripe_client
from storefront.payments.checkout import CheckoutLine, build_session_params, ensure_minimum, to_line_items
from storefront.payments.metadata import CheckoutMetadata
from storefront.payments.schemas import BuiltCheckout, CartCheckout, CustomCheckout
from storefront.pricing.calculator import round_money
from storefront.pricing.currency import get_usd_to_cad_rate, normalize_currency

logger = logging.getLogger(__name__)

FLOW_CUSTOM = "custom"
FLOW_BUILT = "built"
FLOW_CART = "cart"

# Résultat intermédiaire d'un flux: lignes, livraison gratuite, métadonnées, options à persister
Prepared = Tuple[List[CheckoutLine], bool, CheckoutMetadata, Optional[Dict[str, Any]]]


def _check_owner(requested_user_id: Optional[str], current_user_id: Optional[str]) -> None:
    # Un user_id du payload doit désigner l'utilisateur authentifié
    if requested_user_id and requested_user_id != current_user_id:
        logger.warning("payments.service checkout forbidden requested=%s current=%s", requested_user_id, current_user_id)
        raise CheckoutForbidden("checkout owner mismatch")

def _prepare_custom(req: CustomCheckout, settings: SiteSettings, current_user_id: Optional[str]) -> Prepared:
    _check_owner(req.user_id, current_user_id)
    breakdown = configurator_service.quote_configuration(req.configuration, settings, locale=req.locale)
    summary = " · ".join(line.label for line in breakdown.lines)
    title = "Création sur mesure" if req.locale.startswith("fr") else "Custom build"
    lines = [CheckoutLine(title=title, unit_price=breakdown.total, quantity=1)]
    meta = CheckoutMetadata(flow=FLOW_CUSTOM, locale=req.locale, user_id=current_user_id, summary=f"{title} · {summary}")
    options = req.configuration.model_dump(mode="json", exclude={"price"})
    return lines, settings.configurator_free_shipping, meta, options

def _prepare_built(req: BuiltCheckout, settings: SiteSettings, current_user_id: Optional[str]) -> Prepared:
    _check_owner(req.user_id, current_user_id)
    product = catalog_repository.get_product(req.product_id)
    if product is None:
        raise CartUnavailable(req.product_id, "not_found")
    if not product.active:
        raise CartUnavailable(req.product_id, "inactive", product.name)
    if product.stock < 1:
        raise CartUnavailable(req.product_id, "insufficient_stock", product.name)
    lines = [CheckoutLine(title=product.name, unit_price=product.price, quantity=1)]
    meta = CheckoutMetadata(
        flow=FLOW_BUILT,
        locale=req.locale,
        user_id=current_user_id,
        product_id=product.id,
        summary=product.name,
    )
    return lines, product.free_shipping, meta, {"product_id": product.id}

def _prepare_cart(req: CartCheckout, settings: SiteSettings, current_user_id: Optional[str]) -> Prepared:
    """
    Panier connecté: l'utilisateur demandé doit être l'utilisateur authentifié,
    les lignes sont relues en base. Panier invité: lignes du payload, prix recalculés.
    """
    if req.user_id:
        _check_owner(req.user_id, current_user_id)
        rows: List[Any] = cart_repository.fetch_cart_items(req.user_id)
        trusted = True
    else:
        rows = [row.model_dump(mode="json") for row in req.items or []]
        trusted = False
    cart = aggregate_cart(rows, settings, locale=req.locale, trusted_prices=trusted)
    lines = [CheckoutLine(title=i.title, unit_price=i.unit_price, quantity=i.quantity) for i in cart.items]
    summary = ", ".join(f"{i.quantity} x {i.title}" for i in cart.items)
    meta = CheckoutMetadata(
        flow=FLOW_CART,
        locale=req.locale,
        user_id=req.user_id,
        summary=summary,
        manifest=cart.manifest,
    )
    return lines, cart.free_shipping, meta, None

# module storefront.payments.service
def create_checkout(req, current_user_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout pour l'un des trois flux (custom, built, cart).
    - Réglages du site lus une seule fois par requête.
    - Retour: {"id": "cs_...", "url": "https://checkout.stripe.com/..."}
    """
    settings = catalog_repository.fetch_site_settings()
    currency = normalize_currency(req.currency)

    if isinstance(req, CustomCheckout):
        lines, free_shipping, meta, options = _prepare_custom(req, settings, current_user_id)
    elif isinstance(req, BuiltCheckout):
        lines, free_shipping, meta, options = _prepare_built(req, settings, current_user_id)
    else:
        lines, free_shipping, meta, options = _prepare_cart(req, settings, current_user_id)

    rate = get_usd_to_cad_rate(settings)
    line_items, total_minor = to_line_items(lines, currency, rate)
    ensure_minimum(total_minor, currency)

    if options is not None:
        price = round_money(sum((line.unit_price * line.quantity for line in lines), Decimal("0")))
        configuration_id = repository.create_pending_configuration(
            flow=meta.flow, options=options, price=price, user_id=meta.user_id,
        )
        meta = replace(meta, configuration_id=configuration_id)

    params = build_session_params(line_items, currency=currency, free_shipping=free_shipping, metadata=meta)
    session = stripe_client.create_session(**params)
    logger.info(
        "payments.service checkout created flow=%s session_id=%s total_minor=%s currency=%s",
        meta.flow, session.get("id"), total_minor, currency,
    )
    return {"id": session.get("id"), "url": session.get("url")}

def get_order_status(session_id: str) -> Dict[str, Any]:
    """
    État de commande pour la page de retour Stripe:
    'processing' tant que le webhook n'a pas créé la commande.
    """
    order = repository.get_order_by_session(session_id)
    if not order:
        return {"status": "processing"}
    return {
        "status": order.get("status") or repository.STATUS_PAID,
        "order_id": order.get("id"),
        "total": float(order.get("total") or 0),
        "currency": (order.get("currency") or "").lower(),
        "summary": order.get("summary") or "",
    }

def get_exchange_rate() -> Dict[str, float]:
    settings = catalog_repository.fetch_site_settings()
    return {"usd_to_cad": float(get_usd_to_cad_rate(settings))}
