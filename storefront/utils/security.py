from typing import Any, Dict, Optional
import logging

from fastapi import Request

import storefront.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

def bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None

def get_user_from_token(token: str) -> Dict[str, Any]:
    """
    Valide un access token Supabase et retourne {"id", "email"}.
    """
    res = supabase_client.get_supabase().auth.get_user(token)
    user = getattr(res, "user", None)
    if not user:
        return {}
    return {"id": str(getattr(user, "id", "") or ""), "email": getattr(user, "email", None)}

def get_optional_user(request: Request) -> Optional[Dict[str, Any]]:
    """
    Utilisateur courant si un jeton Bearer valide est présent, sinon None (invité).
    Un jeton invalide ou expiré équivaut à un invité: le checkout d'un panier
    connecté sera alors refusé par le service.
    """
    token = bearer_token(request)
    if not token:
        return None
    try:
        user = get_user_from_token(token)
    except Exception:
        logger.info("utils.security token rejected")
        return None
    return user if user.get("id") else None
