"""
Conversion de devises pour le checkout.
- Tous les prix internes sont dans BASE_CURRENCY (CAD).
- Taux USD -> CAD: override d'environnement, puis override des réglages du site,
  puis API HTTP avec cache borné (EXCHANGE_RATE_CACHE_SECONDS), enfin repli fixe.
- Arrondi à l'unité mineure (centimes) en ROUND_HALF_UP.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
import logging
import threading
import time

import requests

from storefront import config
from storefront.catalog.models import SiteSettings, to_decimal

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_cached_rate: Optional[Decimal] = None
_cache_time: float = 0.0

# module storefront.pricing.currency
def normalize_currency(currency: Optional[str]) -> str:
    """Code ISO en majuscules; devise non supportée => devise de base."""
    code = (currency or "").strip().upper()
    return code if code in config.SUPPORTED_CURRENCIES else config.BASE_CURRENCY

def _fetch_usd_to_cad() -> Optional[Decimal]:
    res = requests.get(config.EXCHANGE_RATE_API_URL, timeout=5)
    res.raise_for_status()
    rate = to_decimal(((res.json() or {}).get("rates") or {}).get("CAD"))
    return rate if rate > 0 else None

def get_usd_to_cad_rate(settings: Optional[SiteSettings] = None) -> Decimal:
    """
    Retourne 1 USD = X CAD.
    - Échec de l'API: repli FALLBACK_USD_TO_CAD, mis en cache comme un taux normal
      pour ne pas marteler l'API à chaque requête.
    """
    global _cached_rate, _cache_time
    env_rate = to_decimal(config.EXCHANGE_RATE_USD_TO_CAD)
    if env_rate > 0:
        return env_rate
    if settings is not None and settings.exchange_rate_usd_to_cad:
        return settings.exchange_rate_usd_to_cad

    with _lock:
        now = time.monotonic()
        if _cached_rate is not None and now - _cache_time < config.EXCHANGE_RATE_CACHE_SECONDS:
            return _cached_rate
        rate: Optional[Decimal] = None
        try:
            rate = _fetch_usd_to_cad()
        except (requests.RequestException, ValueError):
            logger.warning("pricing.currency exchange rate lookup failed, using fallback=%s", config.FALLBACK_USD_TO_CAD)
        if rate is None:
            rate = Decimal(str(config.FALLBACK_USD_TO_CAD))
        _cached_rate = rate
        _cache_time = now
        return rate

def reset_rate_cache() -> None:
    global _cached_rate, _cache_time
    with _lock:
        _cached_rate = None
        _cache_time = 0.0

def convert_from_base(amount: Decimal, currency: str, usd_to_cad: Decimal) -> Decimal:
    """Montant en devise de base -> montant dans la devise demandée (non arrondi)."""
    target = normalize_currency(currency)
    if target == config.BASE_CURRENCY:
        return amount
    if config.BASE_CURRENCY == "CAD" and target == "USD":
        return amount / usd_to_cad
    if config.BASE_CURRENCY == "USD" and target == "CAD":
        return amount * usd_to_cad
    raise ValueError(f"conversion {config.BASE_CURRENCY}->{target} non supportée")

def to_minor_units(amount: Decimal, currency: str, usd_to_cad: Decimal) -> int:
    """Montant en devise de base -> entier en unités mineures de la devise cible."""
    converted = convert_from_base(amount, currency, usd_to_cad)
    return int((converted * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def minimum_charge(currency: str) -> int:
    return config.MIN_CHARGE_MINOR_UNITS.get(normalize_currency(currency), 50)
