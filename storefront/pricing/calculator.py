"""
Calcul de prix des configurations résolues.

Fonctions pures: ni Supabase ni lecture de réglages. La remise globale vient de
l'instantané SiteSettings lu une fois par requête par l'appelant.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, NamedTuple, Optional

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")

KIND_FUNCTION = "function"
KIND_OPTION = "option"
KIND_ADDON = "addon"


@dataclass(frozen=True)
class LineItem:
    """Ligne chiffrée d'une configuration résolue."""

    label: str
    step_key: str
    unit_price: Decimal
    discount_percent: Decimal = ZERO
    kind: str = KIND_OPTION
    ref_id: Optional[str] = None

    @property
    def effective_price(self) -> Decimal:
        if self.kind == KIND_ADDON:
            return effective_price(self.unit_price, ZERO)
        return effective_price(self.unit_price, self.discount_percent)


class PriceBreakdown(NamedTuple):
    """Détail du calcul: lignes, sous-total, remise globale, total arrondi."""

    lines: List[LineItem]
    subtotal: Decimal
    global_discount_percent: Decimal
    discount_amount: Decimal
    total: Decimal


def round_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def clamp_percent(value) -> Decimal:
    """Ramène un pourcentage de remise stocké dans [0, 100]."""
    pct = value if isinstance(value, Decimal) else Decimal(str(value or 0))
    if pct.is_nan() or pct < ZERO:
        return ZERO
    return min(pct, HUNDRED)


def effective_price(price, discount_percent) -> Decimal:
    """price * (1 - discount/100); un prix négatif compte pour zéro."""
    amount = price if isinstance(price, Decimal) else Decimal(str(price or 0))
    if amount.is_nan() or amount < ZERO:
        amount = ZERO
    return amount * (HUNDRED - clamp_percent(discount_percent)) / HUNDRED


def price_breakdown(lines: Iterable[LineItem], global_discount_percent=ZERO) -> PriceBreakdown:
    """
    Somme des prix effectifs des lignes, puis remise globale appliquée de la même façon.
    - Arrondi au centime (ROUND_HALF_UP) une seule fois, sur les montants finaux.
    """
    items = list(lines)
    subtotal = sum((item.effective_price for item in items), ZERO)
    pct = clamp_percent(global_discount_percent)
    total = effective_price(subtotal, pct)
    return PriceBreakdown(
        lines=items,
        subtotal=round_money(subtotal),
        global_discount_percent=pct,
        discount_amount=round_money(subtotal - total),
        total=round_money(max(total, ZERO)),
    )


def compute_total(lines: Iterable[LineItem], global_discount_percent=ZERO) -> Decimal:
    return price_breakdown(lines, global_discount_percent).total
