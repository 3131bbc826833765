"""
Accès aux données pour la feature 'payments' (configurations, commandes, stock).
Client service-role (bypass RLS): appelé depuis le checkout serveur et le webhook Stripe.
Toute erreur d'écriture remonte en PersistenceError pour que Stripe relivre l'événement.
"""
from decimal import Decimal
from typing import Any, Dict, Optional
import logging

from postgrest.exceptions import APIError

import storefront.infra.supabase_client as supabase_client
from storefront.errors import PersistenceError

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
STATUS_PENDING = "pending"
STATUS_PAID = "paid"

def _api_error_code(e: APIError) -> Optional[str]:
    code = getattr(e, "code", None)
    if not code and e.args and isinstance(e.args[0], dict):
        code = e.args[0].get("code")
    return code

# module storefront.payments.repository
def create_pending_configuration(*, flow: str, options: Dict[str, Any], price: Decimal, user_id: Optional[str]) -> str:
    """
    Insère une configuration 'pending' (ancre durable pour le webhook) et retourne son id.
    """
    payload = {
        "type": flow,
        "options": options,
        "status": STATUS_PENDING,
        "price": f"{price:.2f}",
        "user_id": user_id or None,
    }
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("configurations")
            .insert(payload)
            .execute()
        )
        rows = res.data or []
        row = rows[0] if isinstance(rows, list) and rows else None
    except Exception as e:
        logger.exception("payments.repository.create_pending_configuration failed flow=%s user_id=%s", flow, user_id)
        raise PersistenceError("insert configuration failed") from e
    if not row or not row.get("id"):
        raise PersistenceError("insert configuration returned no id")
    return str(row["id"])

def mark_configuration_paid(configuration_id: str) -> bool:
    """
    Passe une configuration à 'paid'; True si une ligne a été mise à jour.
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("configurations")
            .update({"status": STATUS_PAID})
            .eq("id", configuration_id)
            .execute()
        )
        return len(res.data or []) > 0
    except Exception as e:
        logger.exception("payments.repository.mark_configuration_paid failed id=%s", configuration_id)
        raise PersistenceError("update configuration failed") from e

def decrement_stock(*, session_id: str, product_id: str, quantity: int) -> Optional[int]:
    """
    Décrément atomique côté base (fonction SQL 'decrement_product_stock'):
    - stock = greatest(stock - quantity, 0) uniquement si stock > 0;
    - au plus une fois par (session, produit) grâce au registre 'stock_movements'.
    Retourne le nouveau stock, ou None si rien n'a été appliqué (déjà fait / stock nul).
    """
    try:
        res = supabase_client.get_service_supabase().rpc(
            "decrement_product_stock",
            {"p_session_id": session_id, "p_product_id": product_id, "p_quantity": int(quantity)},
        ).execute()
    except Exception as e:
        logger.exception("payments.repository.decrement_stock failed session_id=%s product_id=%s", session_id, product_id)
        raise PersistenceError("stock decrement failed") from e
    data = res.data
    if isinstance(data, list):
        data = data[0] if data else None
    return int(data) if data is not None else None

def get_order_by_session(session_id: str) -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .select("id, status, total, currency, summary, stripe_session_id, created_at")
            .eq("stripe_session_id", session_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception as e:
        logger.exception("payments.repository.get_order_by_session failed session_id=%s", session_id)
        raise PersistenceError("read order failed") from e

def insert_order(order: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Insère la commande; retourne None en cas de doublon (23505 sur stripe_session_id):
    le webhook traitera ce cas comme 'déjà traité'.
    """
    try:
        res = supabase_client.get_service_supabase().table("orders").insert(order).execute()
        rows = res.data or []
        if isinstance(rows, list):
            return rows[0] if rows else order
        return rows if isinstance(rows, dict) else order
    except APIError as e:
        if _api_error_code(e) == UNIQUE_VIOLATION:
            logger.info("payments.repository.insert_order duplicate session_id=%s", order.get("stripe_session_id"))
            return None
        logger.exception("payments.repository.insert_order failed session_id=%s", order.get("stripe_session_id"))
        raise PersistenceError("insert order failed") from e
    except Exception as e:
        logger.exception("payments.repository.insert_order failed session_id=%s", order.get("stripe_session_id"))
        raise PersistenceError("insert order failed") from e
