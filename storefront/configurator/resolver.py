"""
Résolution d'une configuration client contre l'arbre d'options stocké.

Fonction pure: les données du catalogue arrivent dans un CatalogSnapshot,
le résultat est une liste ordonnée de LineItem prête pour le calcul de prix.
"""
from typing import Dict, List, Set
import logging

from storefront.catalog.models import CatalogSnapshot, Option, Step
from storefront.configurator.schemas import ConfigurationPayload
from storefront.errors import UnresolvableConfiguration
from storefront.pricing.calculator import KIND_ADDON, KIND_FUNCTION, KIND_OPTION, LineItem, ZERO

logger = logging.getLogger(__name__)

FUNCTION_STEP_KEY = "function"

# module storefront.configurator.resolver
def _dedupe(ids: List[str]) -> List[str]:
    seen: Set[str] = set()
    out: List[str] = []
    for i in ids:
        if i and i not in seen:
            seen.add(i)
            out.append(i)
    return out

def _option_line(step: Step, option: Option, locale: str) -> LineItem:
    return LineItem(
        label=f"{step.label(locale)}: {option.label(locale)}",
        step_key=step.step_key,
        unit_price=option.price,
        discount_percent=option.discount_percent,
        kind=KIND_OPTION,
        ref_id=option.id,
    )

def resolve_configuration(catalog: CatalogSnapshot, configuration: ConfigurationPayload, locale: str = "en") -> List[LineItem]:
    """
    Produit les lignes {label, step_key, prix} d'une configuration.
    - Fonction inconnue ou sans étape => UnresolvableConfiguration.
    - Étape additive: chaque id de `extras` appartenant à l'étape est retenu.
    - Étape simple: la sélection positionnelle, si elle existe pour cette étape et
      est disponible pour la fonction (portée nulle ou égale).
    - Sélections inconnues/absentes ignorées (étapes optionnelles).
    - Add-on retenu seulement si la sélection courante de son étape figure dans sa liste d'options.
    """
    fn = catalog.function_option
    if fn is None or fn.id != str(configuration.function_option_id):
        raise UnresolvableConfiguration(f"unknown function option {configuration.function_option_id}")
    if not catalog.steps:
        raise UnresolvableConfiguration(f"function option {fn.id} has no mapped steps")

    lines: List[LineItem] = []
    if fn.price > ZERO:
        lines.append(LineItem(
            label=fn.label(locale),
            step_key=FUNCTION_STEP_KEY,
            unit_price=fn.price,
            discount_percent=fn.discount_percent,
            kind=KIND_FUNCTION,
            ref_id=fn.id,
        ))

    extras = _dedupe(configuration.extras)
    consumed_extras: Set[str] = set()
    selected_by_step: Dict[str, Set[str]] = {}

    for index, step in enumerate(catalog.steps):
        if step.is_additive:
            for option_id in extras:
                option = catalog.find_option(step.id, option_id)
                if option is None or not option.available_for(fn.id):
                    continue
                consumed_extras.add(option_id)
                selected_by_step.setdefault(step.id, set()).add(option.id)
                lines.append(_option_line(step, option, locale))
            continue

        selection = configuration.steps[index] if index < len(configuration.steps) else None
        if not selection:
            continue
        option = catalog.find_option(step.id, selection)
        if option is None or not option.available_for(fn.id):
            logger.info("configurator.resolve skipped selection step=%s option=%s function=%s", step.id, selection, fn.id)
            continue
        selected_by_step[step.id] = {option.id}
        lines.append(_option_line(step, option, locale))

    dropped = [e for e in extras if e not in consumed_extras]
    if dropped:
        logger.warning("configurator.resolve dropped extras not in additive step function=%s ids=%s", fn.id, dropped)

    steps_by_id = {s.id: s for s in catalog.steps}
    addons_by_id = {a.id: a for a in catalog.addons}
    for addon_id in _dedupe(configuration.addon_ids):
        addon = addons_by_id.get(addon_id)
        if addon is None or addon.step_id not in steps_by_id:
            continue
        if not selected_by_step.get(addon.step_id, set()).intersection(addon.option_ids):
            logger.info("configurator.resolve addon not allowed addon=%s step=%s", addon.id, addon.step_id)
            continue
        lines.append(LineItem(
            label=addon.label(locale),
            step_key=steps_by_id[addon.step_id].step_key,
            unit_price=addon.price,
            kind=KIND_ADDON,
            ref_id=addon.id,
        ))
    return lines
