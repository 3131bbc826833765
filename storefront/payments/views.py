import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Path, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from storefront.errors import InvalidCheckoutPayload, PersistenceError
from storefront.payments import service as payments_service
from storefront.payments import stripe_client
from storefront.payments import webhook as payments_webhook
from storefront.payments.schemas import checkout_request_adapter
from storefront.utils.rate_limit import optional_rate_limit
from storefront.utils.security import get_optional_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])

# module storefront.payments.views
@router.post("/checkout", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def create_checkout_session(request: Request, user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    """
    Crée une session Checkout Stripe.
    - Entrée JSON (union étiquetée par 'type'):
      { "type": "custom", "configuration": {...}, "currency": "CAD", "locale": "fr" }
      { "type": "built", "product_id": "<uuid>" }
      { "type": "cart", "user_id": "<uuid>" } ou { "type": "cart", "items": [...] }
    - Sécurité: rate limit (10 req / 60s); panier connecté réservé à son propriétaire
    - Réponse: {"id", "url"}; erreurs rendues par le handler StorefrontError
      sous la forme {"error": {"code", "message", ...}}
    """
    try:
        body = json.loads(await request.body() or b"null")
    except ValueError:
        raise InvalidCheckoutPayload("invalid JSON body")
    if isinstance(body, dict) and isinstance(body.get("locale"), str):
        request.state.locale = body["locale"]
    try:
        req = checkout_request_adapter.validate_python(body)
    except ValidationError as e:
        logger.info("payments.views checkout payload rejected errors=%s", e.error_count())
        raise InvalidCheckoutPayload("invalid checkout payload") from e
    current_user_id = (user or {}).get("id")
    result = await run_in_threadpool(payments_service.create_checkout, req, current_user_id)
    return JSONResponse(result)

@router.post("/webhook", include_in_schema=False)
async def webhook_stripe(request: Request):
    """
    Webhook Stripe (Checkout): exécution idempotente des commandes payées.
    - Signature: stripe_client.parse_event (Stripe-Signature + STRIPE_WEBHOOK_SECRET), 400 sinon
    - Réponses 200: {"status": "ok" | "duplicate" | "ignored"}
    - Erreur de persistance: 500 pour que Stripe relivre l'événement
    """
    payload = await request.body()
    event = stripe_client.parse_event(payload, request.headers.get("Stripe-Signature"))
    try:
        outcome = await run_in_threadpool(payments_webhook.handle_event, event)
    except PersistenceError:
        logger.exception("payments.views webhook persistence failed event_id=%s", event.get("id"))
        return JSONResponse(status_code=500, content={"status": "error", "code": PersistenceError.code})
    return JSONResponse({"status": outcome.status})

@router.get("/orders/{session_id}")
def get_order_status(session_id: str = Path(min_length=1, max_length=255)):
    """
    Statut d'une commande pour la page de succès:
    {"status": "processing"} tant que le webhook n'a pas enregistré la commande.
    """
    return payments_service.get_order_status(session_id)

@router.get("/exchange-rate")
def get_exchange_rate():
    """Taux courant 1 USD = X CAD (affichage des prix en USD côté front)."""
    return payments_service.get_exchange_rate()
