"""
Agrégation du panier (catalogue + créations sur mesure) en lignes vendables.

Validation tout-ou-rien: la première ligne indisponible lève CartUnavailable
avant toute création de session ou écriture en base.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional
import logging

from pydantic import ValidationError

from storefront.catalog import repository as catalog_repository
from storefront.catalog.models import CUSTOM_ITEM_PREFIX, Product, SiteSettings, to_decimal
from storefront.configurator import service as configurator_service
from storefront.configurator.schemas import ConfigurationPayload
from storefront.errors import CartUnavailable, InvalidCheckoutPayload, UnresolvableConfiguration
from storefront.pricing.calculator import ZERO, round_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SellableItem:
    product_id: str
    title: str
    unit_price: Decimal
    quantity: int
    custom: bool = False
    configuration: Optional[Dict[str, Any]] = None

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class AggregatedCart:
    items: List[SellableItem]
    free_shipping: bool

    @property
    def total(self) -> Decimal:
        return round_money(sum((i.line_total for i in self.items), ZERO))

    @property
    def manifest(self) -> Dict[str, int]:
        """{product_id: quantité} des articles catalogue (base du décrément de stock)."""
        out: Dict[str, int] = {}
        for item in self.items:
            if not item.custom:
                out[item.product_id] = out.get(item.product_id, 0) + item.quantity
        return out

    @property
    def has_custom(self) -> bool:
        return any(i.custom for i in self.items)


def is_custom_item(product_id: str) -> bool:
    return str(product_id or "").startswith(CUSTOM_ITEM_PREFIX)

def _row_get(row: Any, key: str, default=None):
    if isinstance(row, dict):
        return row.get(key, default)
    return getattr(row, key, default)

# module storefront.cart.service
def merge_catalog_quantities(rows: List[Any]) -> Dict[str, int]:
    """
    Agrège les lignes catalogue [{product_id, quantity}, ...] en {product_id: total}.
    - Ignore les lignes invalides (id vide, quantité <= 0) et les créations.
    """
    quantities: Dict[str, int] = {}
    for row in rows or []:
        product_id = str(_row_get(row, "product_id") or "").strip()
        qty = int(_row_get(row, "quantity") or 0)
        if not product_id or qty <= 0 or is_custom_item(product_id):
            continue
        quantities[product_id] = quantities.get(product_id, 0) + qty
    return quantities

def _price_custom_row(row: Any, settings: SiteSettings, locale: str, trusted_prices: bool) -> Decimal:
    """
    Prix unitaire d'une création: prix enregistré si fiable et positif,
    sinon recalcul depuis l'instantané de configuration.
    """
    item_id = str(_row_get(row, "product_id"))
    recorded = to_decimal(_row_get(row, "price"))
    if trusted_prices and recorded > ZERO:
        return recorded
    raw = _row_get(row, "configuration")
    if not raw:
        raise CartUnavailable(item_id, "missing_configuration", _row_get(row, "title"))
    try:
        configuration = ConfigurationPayload.model_validate(raw)
        total = configurator_service.quote_configuration(configuration, settings, locale=locale).total
    except ValidationError:
        raise CartUnavailable(item_id, "invalid_configuration", _row_get(row, "title"))
    except UnresolvableConfiguration:
        raise CartUnavailable(item_id, "unresolvable_configuration", _row_get(row, "title"))
    if total <= ZERO:
        raise CartUnavailable(item_id, "unpriced", _row_get(row, "title"))
    return total

def aggregate_cart(
    rows: List[Any],
    settings: SiteSettings,
    *,
    locale: str = "en",
    trusted_prices: bool = True,
    products_loader: Optional[Callable[[List[str]], Dict[str, Product]]] = None,
) -> AggregatedCart:
    """
    Fusionne lignes catalogue et créations en une liste ordonnée de SellableItem.
    - rows: lignes 'cart_items' (utilisateur connecté) ou lignes invité.
    - trusted_prices: False pour un panier invité (prix client ignorés, repricing serveur).
    - Catalogue: produit existant, actif, quantité <= stock; prix = instantané sinon prix courant.
    - Livraison gratuite: tous les produits catalogue 'free_shipping' et, si une création
      est présente, réglage 'configurator_free_shipping' actif.
    """
    if not rows:
        raise InvalidCheckoutPayload("empty cart")

    quantities = merge_catalog_quantities(rows)
    load = products_loader or catalog_repository.fetch_products_by_ids
    products = load(list(quantities.keys())) if quantities else {}

    items: List[SellableItem] = []
    seen_catalog: Dict[str, bool] = {}
    all_free_shipping = True
    for row in rows:
        product_id = str(_row_get(row, "product_id") or "").strip()
        qty = int(_row_get(row, "quantity") or 0)
        if not product_id or qty <= 0:
            continue
        title = _row_get(row, "title")

        if is_custom_item(product_id):
            unit_price = _price_custom_row(row, settings, locale, trusted_prices)
            items.append(SellableItem(
                product_id=product_id,
                title=title or "Custom build",
                unit_price=unit_price,
                quantity=qty,
                custom=True,
                configuration=_row_get(row, "configuration"),
            ))
            continue

        if product_id in seen_catalog:
            continue
        seen_catalog[product_id] = True
        product = products.get(product_id)
        wanted = quantities[product_id]
        if product is None:
            raise CartUnavailable(product_id, "not_found", title)
        if not product.active:
            raise CartUnavailable(product_id, "inactive", product.name)
        if wanted > product.stock:
            raise CartUnavailable(product_id, "insufficient_stock", product.name)

        snapshot = to_decimal(_row_get(row, "price"))
        unit_price = snapshot if trusted_prices and snapshot > ZERO else product.price
        all_free_shipping = all_free_shipping and product.free_shipping
        items.append(SellableItem(
            product_id=product_id,
            title=title or product.name,
            unit_price=unit_price,
            quantity=wanted,
        ))

    if not items:
        raise InvalidCheckoutPayload("no valid cart rows")

    has_custom = any(i.custom for i in items)
    free_shipping = all_free_shipping and (not has_custom or settings.configurator_free_shipping)
    logger.info(
        "cart.aggregate items=%s custom=%s free_shipping=%s", len(items), has_custom, free_shipping,
    )
    return AggregatedCart(items=items, free_shipping=free_shipping)
