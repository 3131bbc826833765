"""
E-mails de confirmation de commande (best-effort).
- API HTTP compatible Resend (POST EMAIL_API_URL, Bearer RESEND_API_KEY).
- Un échec est journalisé et n'annule jamais la commande: aucune exception ne sort d'ici.
"""
from decimal import Decimal
from typing import Optional
import logging

import requests

from storefront import config

logger = logging.getLogger(__name__)

SUBJECTS = {
    "en": "Your order is confirmed",
    "fr": "Votre commande est confirmée",
}

def _post_email(to: str, subject: str, text: str) -> bool:
    res = requests.post(
        config.EMAIL_API_URL,
        json={"from": config.EMAIL_FROM, "to": [to], "subject": subject, "text": text},
        headers={"Authorization": f"Bearer {config.RESEND_API_KEY}"},
        timeout=10,
    )
    res.raise_for_status()
    return True

def send_order_emails(
    *,
    customer_email: Optional[str],
    summary: str,
    total: Decimal,
    currency: str,
    locale: str = "en",
) -> bool:
    """
    Envoie la confirmation au client et la notification à l'atelier.
    Retourne True si tous les envois ont réussi.
    """
    if not config.RESEND_API_KEY:
        logger.info("notifications.email skipped: RESEND_API_KEY manquant")
        return False
    amount = f"{total:.2f} {currency.upper()}"
    lang = "fr" if (locale or "").startswith("fr") else "en"
    ok = True
    # Envois indépendants: l'échec du premier n'empêche pas le second
    if customer_email:
        try:
            _post_email(customer_email, SUBJECTS[lang], f"{summary}\nTotal: {amount}")
        except Exception:
            logger.warning("notifications.email customer send failed customer=%s", customer_email, exc_info=True)
            ok = False
    if config.ORDER_NOTIFY_EMAIL:
        try:
            _post_email(config.ORDER_NOTIFY_EMAIL, f"New order: {amount}", f"{summary}\nCustomer: {customer_email or '-'}")
        except Exception:
            logger.warning("notifications.email atelier send failed to=%s", config.ORDER_NOTIFY_EMAIL, exc_info=True)
            ok = False
    return ok
