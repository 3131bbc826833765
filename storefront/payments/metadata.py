"""
Sérialisation/désérialisation des métadonnées Stripe d'une session de checkout.

Le webhook reconstruit l'exécution (configuration à marquer payée, stock à décrémenter,
panier à vider) uniquement à partir de ces métadonnées: le panier a pu changer
entre le paiement et la livraison de l'événement.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# Limites Stripe: 50 clés, 500 caractères par valeur
STRIPE_METADATA_VALUE_MAX = 500
CART_KEY = "cart"
MAX_CART_CHUNKS = 40


@dataclass(frozen=True)
class CheckoutMetadata:
    flow: str
    locale: str = "en"
    configuration_id: Optional[str] = None
    user_id: Optional[str] = None
    product_id: Optional[str] = None
    summary: str = ""
    manifest: Dict[str, int] = field(default_factory=dict)


def _cart_key(index: int) -> str:
    return CART_KEY if index == 0 else f"{CART_KEY}_{index}"

# module storefront.payments.metadata
def encode_manifest(manifest: Dict[str, int]) -> Dict[str, str]:
    """
    {product_id: qty} -> {"cart": "...", "cart_1": "...", ...}
    JSON compact découpé en morceaux de 500 caractères (jamais tronqué).
    """
    if not manifest:
        return {}
    payload = json.dumps([{"id": pid, "quantity": qty} for pid, qty in manifest.items()], separators=(",", ":"))
    chunks = [payload[i:i + STRIPE_METADATA_VALUE_MAX] for i in range(0, len(payload), STRIPE_METADATA_VALUE_MAX)]
    if len(chunks) > MAX_CART_CHUNKS:
        raise ValueError("cart manifest too large for Stripe metadata")
    return {_cart_key(i): chunk for i, chunk in enumerate(chunks)}

def decode_manifest(metadata: Dict[str, Any]) -> Dict[str, int]:
    """
    Recompose et agrège le manifeste; lignes invalides ignorées.
    Lève ValueError si le JSON recomposé est illisible (métadonnées corrompues).
    """
    parts = []
    for i in range(MAX_CART_CHUNKS):
        chunk = (metadata or {}).get(_cart_key(i))
        if not chunk:
            break
        parts.append(chunk)
    if not parts:
        return {}
    rows = json.loads("".join(parts))
    manifest: Dict[str, int] = {}
    for row in rows if isinstance(rows, list) else []:
        if not isinstance(row, dict):
            continue
        pid = str(row.get("id") or "").strip()
        qty = int(row.get("quantity") or 0)
        if pid and qty > 0:
            manifest[pid] = manifest.get(pid, 0) + qty
    return manifest

def make_metadata(meta: CheckoutMetadata) -> Dict[str, str]:
    """
    Métadonnées Stripe (toutes les valeurs en str, vides plutôt que None).
    """
    data = {
        "type": meta.flow,
        "locale": meta.locale or "en",
        "configuration_id": meta.configuration_id or "",
        "user_id": meta.user_id or "",
        "product_id": meta.product_id or "",
        "summary": (meta.summary or "")[:STRIPE_METADATA_VALUE_MAX],
    }
    data.update(encode_manifest(meta.manifest))
    return data

def extract_metadata(session: Dict[str, Any]) -> CheckoutMetadata:
    """
    Extrait les métadonnées depuis un objet session Stripe (event.data.object).
    - Manifeste illisible: journalisé, la commande reste enregistrable sans décrément.
    """
    metadata = (session or {}).get("metadata") or {}
    try:
        manifest = decode_manifest(metadata)
    except (ValueError, TypeError):
        logger.error("payments.metadata unreadable cart manifest session_id=%s", (session or {}).get("id"))
        manifest = {}
    return CheckoutMetadata(
        flow=str(metadata.get("type") or ""),
        locale=str(metadata.get("locale") or "en"),
        configuration_id=metadata.get("configuration_id") or None,
        user_id=metadata.get("user_id") or None,
        product_id=metadata.get("product_id") or None,
        summary=str(metadata.get("summary") or ""),
        manifest=manifest,
    )
