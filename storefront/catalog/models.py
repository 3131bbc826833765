"""
Lignes typées du catalogue (lecture seule pendant un checkout).

Les lignes Supabase arrivent sous forme de dict; `from_row` les normalise
(prix en Decimal, remises, ids en str). Les prix sont exprimés dans la devise de base.
"""
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

ADDITIVE_STEP_KEY = "extra"
CUSTOM_ITEM_PREFIX = "custom-"


def to_decimal(value: Any) -> Decimal:
    """Convertit str|int|float|None en Decimal; 0 si illisible."""
    if value is None or value == "":
        return Decimal("0")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")


def _label(row: Dict[str, Any], locale: str, fallback: str = "") -> str:
    lang = (locale or "en")[:2].lower()
    return row.get(f"label_{lang}") or row.get("label_en") or row.get("name") or fallback


@dataclass(frozen=True)
class FunctionOption:
    id: str
    labels: Dict[str, str]
    price: Decimal
    discount_percent: Decimal

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "FunctionOption":
        return cls(
            id=str(row.get("id")),
            labels={"en": _label(row, "en"), "fr": _label(row, "fr")},
            price=to_decimal(row.get("price")),
            discount_percent=to_decimal(row.get("discount_percent")),
        )

    def label(self, locale: str) -> str:
        return self.labels.get((locale or "en")[:2].lower()) or self.labels.get("en", "")


@dataclass(frozen=True)
class Step:
    id: str
    step_key: str
    labels: Dict[str, str]
    optional: bool = False
    sort_order: int = 0

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Step":
        return cls(
            id=str(row.get("id")),
            step_key=str(row.get("step_key") or "").strip().lower(),
            labels={"en": _label(row, "en"), "fr": _label(row, "fr")},
            optional=bool(row.get("optional")),
            sort_order=int(row.get("sort_order") or 0),
        )

    @property
    def is_additive(self) -> bool:
        return self.step_key == ADDITIVE_STEP_KEY

    def label(self, locale: str) -> str:
        return self.labels.get((locale or "en")[:2].lower()) or self.labels.get("en", "")


@dataclass(frozen=True)
class Option:
    id: str
    step_id: str
    function_option_id: Optional[str]
    labels: Dict[str, str]
    price: Decimal
    discount_percent: Decimal
    sort_order: int = 0

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Option":
        scope = row.get("function_option_id")
        return cls(
            id=str(row.get("id")),
            step_id=str(row.get("step_id")),
            function_option_id=str(scope) if scope else None,
            labels={"en": _label(row, "en"), "fr": _label(row, "fr")},
            price=to_decimal(row.get("price")),
            discount_percent=to_decimal(row.get("discount_percent")),
            sort_order=int(row.get("sort_order") or 0),
        )

    def available_for(self, function_option_id: str) -> bool:
        return self.function_option_id is None or self.function_option_id == function_option_id

    def label(self, locale: str) -> str:
        return self.labels.get((locale or "en")[:2].lower()) or self.labels.get("en", "")


@dataclass(frozen=True)
class Addon:
    id: str
    step_id: str
    labels: Dict[str, str]
    price: Decimal
    option_ids: Tuple[str, ...] = ()
    sort_order: int = 0

    @classmethod
    def from_row(cls, row: Dict[str, Any], option_ids: List[str]) -> "Addon":
        return cls(
            id=str(row.get("id")),
            step_id=str(row.get("step_id")),
            labels={"en": _label(row, "en"), "fr": _label(row, "fr")},
            price=to_decimal(row.get("price")),
            option_ids=tuple(str(o) for o in option_ids),
            sort_order=int(row.get("sort_order") or 0),
        )

    def label(self, locale: str) -> str:
        return self.labels.get((locale or "en")[:2].lower()) or self.labels.get("en", "")


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    price: Decimal
    stock: int
    active: bool
    free_shipping: bool

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Product":
        return cls(
            id=str(row.get("id")),
            name=row.get("name") or row.get("title") or "Product",
            price=to_decimal(row.get("price")),
            stock=max(int(row.get("stock") or 0), 0),
            active=bool(row.get("active")),
            free_shipping=bool(row.get("free_shipping")),
        )


@dataclass(frozen=True)
class SiteSettings:
    """
    Instantané des réglages globaux, lu une seule fois par requête et passé
    explicitement au calcul de prix.
    """
    global_discount_percent: Decimal = Decimal("0")
    configurator_free_shipping: bool = False
    exchange_rate_usd_to_cad: Optional[Decimal] = None

    @classmethod
    def from_rows(cls, rows: List[Dict[str, Any]]) -> "SiteSettings":
        values = {str(r.get("key")): r.get("value") for r in rows or [] if r.get("key")}
        rate = to_decimal(values.get("exchange_rate_usd_to_cad"))
        return cls(
            global_discount_percent=to_decimal(values.get("global_discount_percent")),
            configurator_free_shipping=str(values.get("configurator_free_shipping") or "").strip().lower() in ("1", "true", "yes", "on"),
            exchange_rate_usd_to_cad=rate if rate > 0 else None,
        )


@dataclass(frozen=True)
class CatalogSnapshot:
    """
    Données du configurateur nécessaires à la résolution d'une configuration:
    la fonction, ses étapes ordonnées, les options de ces étapes et les add-ons.
    """
    function_option: Optional[FunctionOption]
    steps: Tuple[Step, ...] = ()
    options: Tuple[Option, ...] = ()
    addons: Tuple[Addon, ...] = ()
    options_by_step: Dict[str, List[Option]] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        grouped: Dict[str, List[Option]] = {}
        for opt in self.options:
            grouped.setdefault(opt.step_id, []).append(opt)
        object.__setattr__(self, "options_by_step", grouped)

    def find_option(self, step_id: str, option_id: str) -> Optional[Option]:
        for opt in self.options_by_step.get(step_id, []):
            if opt.id == option_id:
                return opt
        return None
