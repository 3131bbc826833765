"""
Accès aux données pour la feature 'cart' (table 'cart_items').
Client service-role: le checkout et le webhook lisent/vident le panier
d'un utilisateur identifié côté serveur.
"""
from typing import List
import logging

import storefront.infra.supabase_client as supabase_client
from storefront.errors import PersistenceError

logger = logging.getLogger(__name__)

CART_COLUMNS = "id, product_id, quantity, price, title, image_url, configuration"

# module storefront.cart.repository
def fetch_cart_items(user_id: str) -> List[dict]:
    """
    Lignes du panier persisté d'un utilisateur, dans l'ordre d'ajout.
    """
    if not user_id:
        return []
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("cart_items")
            .select(CART_COLUMNS)
            .eq("user_id", user_id)
            .order("created_at")
            .execute()
        )
        return res.data or []
    except Exception as e:
        logger.exception("cart.repository.fetch_cart_items failed user_id=%s", user_id)
        raise PersistenceError("read cart_items failed") from e

def clear_cart(user_id: str) -> int:
    """
    Supprime toutes les lignes du panier de l'utilisateur; retourne le nombre supprimé.
    """
    if not user_id:
        return 0
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("cart_items")
            .delete()
            .eq("user_id", user_id)
            .execute()
        )
        return len(res.data or [])
    except Exception as e:
        logger.exception("cart.repository.clear_cart failed user_id=%s", user_id)
        raise PersistenceError("delete cart_items failed") from e
