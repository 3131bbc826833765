"""
Accès en lecture au catalogue (produits, configurateur, réglages du site).
- Lectures via le client 'anon' (tables publiques).
- Pas de sélections imbriquées dépendantes des FKs: fetchs séparés puis assemblage.
- Toute erreur Supabase remonte en PersistenceError (transitoire), jamais en liste vide:
  un catalogue illisible ne doit pas ressembler à une configuration inconnue.
"""
from typing import Any, Dict, Iterable, List, Optional
import logging

import storefront.infra.supabase_client as supabase_client
from storefront.catalog.models import (
    Addon,
    CatalogSnapshot,
    FunctionOption,
    Option,
    Product,
    SiteSettings,
    Step,
)
from storefront.errors import PersistenceError

logger = logging.getLogger(__name__)

# module storefront.catalog.repository
def _select(table: str, columns: str = "*", **filters) -> List[dict]:
    """
    SELECT simple avec filtres eq/in_ et tri optionnel (order="col").
    """
    try:
        q = supabase_client.get_supabase().table(table).select(columns)
        order = filters.pop("order", None)
        for col, value in filters.items():
            if isinstance(value, (list, tuple, set)):
                q = q.in_(col, [str(v) for v in value])
            else:
                q = q.eq(col, value)
        if order:
            q = q.order(order)
        res = q.execute()
        return res.data or []
    except Exception as e:
        logger.exception("catalog.repository._select failed table=%s filters=%s", table, filters)
        raise PersistenceError(f"read {table} failed") from e

def fetch_site_settings() -> SiteSettings:
    """
    Lit la table clé/valeur 'site_settings' et retourne un instantané immuable.
    """
    rows = _select("site_settings", "key, value")
    return SiteSettings.from_rows(rows)

def fetch_function_option(function_option_id: str) -> Optional[FunctionOption]:
    if not function_option_id:
        return None
    rows = _select("function_options", "*", id=str(function_option_id))
    return FunctionOption.from_row(rows[0]) if rows else None

def fetch_function_steps(function_option_id: str) -> List[Step]:
    """
    Étapes applicables à une fonction, dans l'ordre du mapping 'function_steps'.
    """
    mapping = _select("function_steps", "step_id, sort_order", function_option_id=str(function_option_id), order="sort_order")
    step_ids = [str(m.get("step_id")) for m in mapping if m.get("step_id")]
    if not step_ids:
        return []
    steps_by_id = {str(r.get("id")): Step.from_row(r) for r in _select("configurator_steps", "*", id=step_ids)}
    return [steps_by_id[sid] for sid in step_ids if sid in steps_by_id]

def fetch_options(step_ids: Iterable[str]) -> List[Option]:
    ids = [str(s) for s in step_ids]
    if not ids:
        return []
    rows = _select("configurator_options", "*", step_id=ids, order="sort_order")
    return [Option.from_row(r) for r in rows]

def fetch_addons(step_ids: Iterable[str]) -> List[Addon]:
    """
    Add-ons des étapes données, avec leur liste d'options autorisantes
    (table de liaison 'configurator_addon_options').
    """
    ids = [str(s) for s in step_ids]
    if not ids:
        return []
    addon_rows = _select("configurator_addons", "*", step_id=ids, order="sort_order")
    if not addon_rows:
        return []
    links = _select("configurator_addon_options", "addon_id, option_id", addon_id=[r.get("id") for r in addon_rows])
    option_ids_by_addon: Dict[str, List[str]] = {str(r.get("id")): [] for r in addon_rows}
    for link in links:
        key = str(link.get("addon_id"))
        if key in option_ids_by_addon:
            option_ids_by_addon[key].append(str(link.get("option_id")))
    return [Addon.from_row(r, option_ids_by_addon[str(r.get("id"))]) for r in addon_rows]

def load_catalog_snapshot(function_option_id: str) -> CatalogSnapshot:
    """
    Charge tout ce qu'il faut pour résoudre une configuration de cette fonction.
    - Fonction inconnue => snapshot sans fonction (le resolver lèvera l'erreur).
    """
    function_option = fetch_function_option(function_option_id)
    if function_option is None:
        return CatalogSnapshot(function_option=None)
    steps = fetch_function_steps(function_option.id)
    step_ids = [s.id for s in steps]
    return CatalogSnapshot(
        function_option=function_option,
        steps=tuple(steps),
        options=tuple(fetch_options(step_ids)),
        addons=tuple(fetch_addons(step_ids)),
    )

def fetch_products_by_ids(ids: Iterable[str]) -> Dict[str, Product]:
    """
    Retourne un dict {id: Product} à partir d'une liste d'IDs (les absents sont omis).
    """
    id_list = sorted({str(i) for i in ids if i})
    if not id_list:
        return {}
    rows = _select("products", "id, name, price, stock, active, free_shipping", id=id_list)
    return {str(r.get("id")): Product.from_row(r) for r in rows}

def get_product(product_id: str) -> Optional[Product]:
    return fetch_products_by_ids([product_id]).get(str(product_id))
