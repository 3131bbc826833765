# storefront.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)

"""
Configuration centrale de la boutique.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Stripe, e-mail)
- Expose les paramètres monétaires (devise de base, taux de change, minimum Stripe)
- Expose CORS/hosts et le rate limiting
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _float_env(name: str, default: float) -> float:
    try:
        return float(_clean_env(os.getenv(name)) or default)
    except ValueError:
        return default

# Supabase: URL et clés (anon / service)
# - SUPABASE_URL peut parfois être sans schéma: on préfixe en https:// si nécessaire
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Stripe: clé secrète et secret webhook
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")

# URL publique du site (origine seule) pour les redirections Stripe
SITE_URL = _clean_env(os.getenv("SITE_URL") or os.getenv("NEXT_PUBLIC_SITE_URL") or "http://localhost:8000").rstrip("/")
CHECKOUT_SUCCESS_PATH = os.getenv("CHECKOUT_SUCCESS_PATH", "/{locale}/checkout/success")
CHECKOUT_CANCEL_PATH = os.getenv("CHECKOUT_CANCEL_PATH", "/{locale}/checkout/cancel")

# Monnaie: tous les prix du catalogue sont stockés dans la devise de base (CAD)
BASE_CURRENCY = _clean_env(os.getenv("BASE_CURRENCY") or "CAD").upper()
SUPPORTED_CURRENCIES = [c.strip().upper() for c in os.getenv("SUPPORTED_CURRENCIES", "CAD,USD").split(",") if c.strip()]

# Taux USD -> CAD (1 USD = X CAD): override env, sinon API avec cache, sinon repli fixe
EXCHANGE_RATE_USD_TO_CAD = _clean_env(os.getenv("EXCHANGE_RATE_USD_TO_CAD") or "")
EXCHANGE_RATE_API_URL = _clean_env(os.getenv("EXCHANGE_RATE_API_URL") or "https://api.exchangerate-api.com/v4/latest/USD")
EXCHANGE_RATE_CACHE_SECONDS = int(_float_env("EXCHANGE_RATE_CACHE_SECONDS", 3600))
FALLBACK_USD_TO_CAD = _float_env("FALLBACK_USD_TO_CAD", 1.36)

# Montant minimum accepté par Stripe (unités mineures) par devise
MIN_CHARGE_MINOR_UNITS = {"CAD": 50, "USD": 50}

# Pays autorisés pour l'adresse de livraison
SHIPPING_COUNTRIES = [c.strip().upper() for c in os.getenv("SHIPPING_COUNTRIES", "CA,US").split(",") if c.strip()]

# E-mails de confirmation (API HTTP compatible Resend)
RESEND_API_KEY = _clean_env(os.getenv("RESEND_API_KEY") or "")
EMAIL_API_URL = _clean_env(os.getenv("EMAIL_API_URL") or "https://api.resend.com/emails")
EMAIL_FROM = _clean_env(os.getenv("EMAIL_FROM") or "orders@example.com")
ORDER_NOTIFY_EMAIL = _clean_env(os.getenv("ORDER_NOTIFY_EMAIL") or "atelier@example.com")

# CORS / hosts
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]
COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")
