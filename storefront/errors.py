"""
Taxonomie des erreurs métier de la boutique.

Chaque erreur porte un `code` stable (consommé par le front) et un `status_code` HTTP.
Les détails internes restent dans les logs; le client ne reçoit qu'un message
générique traduit via `user_message(code, locale)`.
"""
from typing import Optional, Dict, Any

DEFAULT_LOCALE = "en"

MESSAGES: Dict[str, Dict[str, str]] = {
    "en": {
        "invalid_payload": "Your request could not be processed. Please review your selection.",
        "unresolvable_configuration": "This configuration is no longer available. Please start over.",
        "cart_unavailable": "An item in your cart is no longer available.",
        "below_minimum": "The order total is below the minimum amount accepted.",
        "invalid_signature": "Invalid webhook signature.",
        "persistence_error": "We could not save your order. Please try again in a moment.",
        "payment_provider_error": "Checkout failed. Please try again.",
        "forbidden": "You are not allowed to check out this cart.",
    },
    "fr": {
        "invalid_payload": "Votre demande n'a pas pu être traitée. Vérifiez votre sélection.",
        "unresolvable_configuration": "Cette configuration n'est plus disponible. Veuillez recommencer.",
        "cart_unavailable": "Un article de votre panier n'est plus disponible.",
        "below_minimum": "Le total de la commande est inférieur au montant minimum accepté.",
        "invalid_signature": "Signature du webhook invalide.",
        "persistence_error": "Impossible d'enregistrer votre commande. Réessayez dans un instant.",
        "payment_provider_error": "Échec du passage en caisse. Veuillez réessayer.",
        "forbidden": "Vous n'êtes pas autorisé à régler ce panier.",
    },
}

def user_message(code: str, locale: Optional[str] = None) -> str:
    table = MESSAGES.get((locale or DEFAULT_LOCALE)[:2].lower()) or MESSAGES[DEFAULT_LOCALE]
    return table.get(code) or MESSAGES[DEFAULT_LOCALE].get(code) or MESSAGES[DEFAULT_LOCALE]["invalid_payload"]


class StorefrontError(Exception):
    code = "invalid_payload"
    status_code = 400

    def __init__(self, message: str = "", code: Optional[str] = None):
        super().__init__(message or self.__class__.__name__)
        if code:
            self.code = code

    def public_details(self) -> Dict[str, Any]:
        """Champs supplémentaires exposables au client (jamais de détail interne)."""
        return {}


class InvalidCheckoutPayload(StorefrontError):
    code = "invalid_payload"
    status_code = 422


class UnresolvableConfiguration(StorefrontError):
    code = "unresolvable_configuration"
    status_code = 422


class CartUnavailable(StorefrontError):
    """Un article du panier est introuvable, inactif ou en rupture de stock."""
    code = "cart_unavailable"
    status_code = 409

    def __init__(self, item_id: str, reason: str, title: Optional[str] = None):
        super().__init__(f"cart item {item_id} unavailable: {reason}")
        self.item_id = item_id
        self.reason = reason
        self.title = title

    def public_details(self) -> Dict[str, Any]:
        return {"item_id": self.item_id, "reason": self.reason, "title": self.title}


class BelowMinimumOrderAmount(StorefrontError):
    code = "below_minimum"
    status_code = 422

    def __init__(self, amount_minor: int, minimum_minor: int, currency: str):
        super().__init__(f"total {amount_minor} {currency} below minimum {minimum_minor}")
        self.amount_minor = amount_minor
        self.minimum_minor = minimum_minor
        self.currency = currency

    def public_details(self) -> Dict[str, Any]:
        return {"minimum": self.minimum_minor, "currency": self.currency.lower()}


class CheckoutForbidden(StorefrontError):
    code = "forbidden"
    status_code = 403


class InvalidSignature(StorefrontError):
    code = "invalid_signature"
    status_code = 400


class PersistenceError(StorefrontError):
    """Échec d'écriture/lecture Supabase: transitoire, à réessayer."""
    code = "persistence_error"
    status_code = 503


class PaymentProviderError(StorefrontError):
    code = "payment_provider_error"
    status_code = 502
