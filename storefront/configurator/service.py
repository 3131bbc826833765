"""
Cas d'usage 'configurator': charge le catalogue, résout, calcule le prix faisant foi.
"""
import logging

from storefront.catalog import repository as catalog_repository
from storefront.catalog.models import SiteSettings
from storefront.configurator.resolver import resolve_configuration
from storefront.configurator.schemas import ConfigurationPayload
from storefront.pricing.calculator import PriceBreakdown, price_breakdown

logger = logging.getLogger(__name__)

def quote_configuration(
    configuration: ConfigurationPayload,
    settings: SiteSettings,
    locale: str = "en",
    catalog=None,
) -> PriceBreakdown:
    """
    Prix d'une configuration recalculé à partir des données courantes du catalogue.
    - Le prix envoyé par le client n'est jamais utilisé; un écart est seulement journalisé.
    - catalog: snapshot déjà chargé (sinon chargé via le repository).
    """
    snapshot = catalog or catalog_repository.load_catalog_snapshot(configuration.function_option_id)
    lines = resolve_configuration(snapshot, configuration, locale=locale)
    breakdown = price_breakdown(lines, settings.global_discount_percent)
    if configuration.price is not None and configuration.price != breakdown.total:
        logger.warning(
            "configurator.quote client price ignored function=%s client=%s resolved=%s",
            configuration.function_option_id, configuration.price, breakdown.total,
        )
    return breakdown

def breakdown_to_dict(breakdown: PriceBreakdown) -> dict:
    return {
        "lines": [
            {
                "label": line.label,
                "step_key": line.step_key,
                "kind": line.kind,
                "unit_price": float(line.unit_price),
                "discount_percent": float(line.discount_percent),
                "effective_price": float(round(line.effective_price, 2)),
            }
            for line in breakdown.lines
        ],
        "subtotal": float(breakdown.subtotal),
        "global_discount_percent": float(breakdown.global_discount_percent),
        "discount_amount": float(breakdown.discount_amount),
        "total": float(breakdown.total),
    }
