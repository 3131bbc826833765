"""
Exécution des commandes à partir des événements Stripe Checkout.

Idempotence:
- une commande existante pour la session => 'duplicate' sans aucun effet;
- décrément de stock au plus une fois par (session, produit) côté base;
- contrainte unique sur orders.stripe_session_id: une livraison concurrente
  qui perd la course finit en 'duplicate'.
Une erreur de persistance remonte (HTTP 500) pour que Stripe relivre l'événement.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional
import logging

from storefront.cart import repository as cart_repository
from storefront.notifications import email
from storefront.payments import repository
from storefront.payments.metadata import CheckoutMetadata, extract_metadata

logger = logging.getLogger(__name__)

HANDLED_EVENTS = ("checkout.session.completed", "checkout.session.async_payment_succeeded")

OUTCOME_OK = "ok"
OUTCOME_DUPLICATE = "duplicate"
OUTCOME_IGNORED = "ignored"


@dataclass(frozen=True)
class WebhookOutcome:
    status: str
    session_id: Optional[str] = None
    order_id: Optional[str] = None


def shipping_address(session: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Adresse de livraison collectée par Checkout, selon la version d'API Stripe:
    collected_information.shipping_details, shipping_details, puis customer_details.
    """
    collected = (session.get("collected_information") or {}).get("shipping_details")
    details = collected or session.get("shipping_details")
    if details and details.get("address"):
        return {"name": details.get("name"), **(details.get("address") or {})}
    customer = session.get("customer_details") or {}
    if customer.get("address"):
        return {"name": customer.get("name"), **customer["address"]}
    return None

def customer_email(session: Dict[str, Any]) -> Optional[str]:
    return (session.get("customer_details") or {}).get("email") or session.get("customer_email") or None

def _fulfill(session_id: str, meta: CheckoutMetadata) -> None:
    """
    Effets de bord d'un paiement confirmé (avant l'insertion de la commande).
    """
    if meta.configuration_id:
        if not repository.mark_configuration_paid(meta.configuration_id):
            logger.warning("payments.webhook configuration not found id=%s session_id=%s", meta.configuration_id, session_id)
    if meta.flow == "built" and meta.product_id:
        repository.decrement_stock(session_id=session_id, product_id=meta.product_id, quantity=1)
    elif meta.flow == "cart":
        for product_id, quantity in meta.manifest.items():
            repository.decrement_stock(session_id=session_id, product_id=product_id, quantity=quantity)
        if meta.user_id:
            cart_repository.clear_cart(meta.user_id)

def build_order(session: Dict[str, Any], meta: CheckoutMetadata) -> Dict[str, Any]:
    amount_total = session.get("amount_total") or 0
    return {
        "configuration_id": meta.configuration_id,
        "user_id": meta.user_id,
        "total": f"{(Decimal(int(amount_total)) / 100):.2f}",
        "currency": (session.get("currency") or "").upper(),
        "status": repository.STATUS_PAID,
        "summary": meta.summary,
        "stripe_session_id": session.get("id"),
        "shipping_address": shipping_address(session),
        "customer_email": customer_email(session),
    }

# module storefront.payments.webhook
def handle_event(event: Dict[str, Any]) -> WebhookOutcome:
    """
    Traite un événement Stripe déjà authentifié (signature vérifiée en amont).
    - Événements non gérés ou paiement non 'paid' => ignored.
    - Commande déjà présente => duplicate.
    - Sinon: configuration 'paid', stock, panier, commande, e-mails (best-effort).
    """
    event_type = (event or {}).get("type")
    if event_type not in HANDLED_EVENTS:
        logger.info("payments.webhook ignored type=%s", event_type)
        return WebhookOutcome(OUTCOME_IGNORED)

    session = ((event.get("data") or {}).get("object")) or {}
    session_id = session.get("id")
    if not session_id or session.get("payment_status") != "paid":
        logger.info("payments.webhook ignored session_id=%s payment_status=%s", session_id, session.get("payment_status"))
        return WebhookOutcome(OUTCOME_IGNORED, session_id)

    if repository.get_order_by_session(session_id):
        logger.info("payments.webhook duplicate session_id=%s", session_id)
        return WebhookOutcome(OUTCOME_DUPLICATE, session_id)

    meta = extract_metadata(session)
    _fulfill(session_id, meta)

    order = repository.insert_order(build_order(session, meta))
    if order is None:
        logger.info("payments.webhook duplicate on insert session_id=%s", session_id)
        return WebhookOutcome(OUTCOME_DUPLICATE, session_id)

    email.send_order_emails(
        customer_email=customer_email(session),
        summary=meta.summary,
        total=Decimal(int(session.get("amount_total") or 0)) / 100,
        currency=session.get("currency") or "",
        locale=meta.locale,
    )
    order_id = order.get("id")
    logger.info("payments.webhook ok session_id=%s flow=%s order_id=%s", session_id, meta.flow, order_id)
    return WebhookOutcome(OUTCOME_OK, session_id, str(order_id) if order_id else None)
