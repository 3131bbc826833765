from fastapi import APIRouter, Depends, Request

from storefront.catalog import repository as catalog_repository
from storefront.configurator import service as configurator_service
from storefront.configurator.schemas import QuoteRequest
from storefront.utils.rate_limit import optional_rate_limit

router = APIRouter(prefix="/api/v1/configurator", tags=["Configurator API"])

# module storefront.configurator.views
@router.post("/quote", dependencies=[Depends(optional_rate_limit(times=60, seconds=60))])
def quote(payload: QuoteRequest, request: Request):
    """
    Prix faisant foi d'une configuration (lignes résolues + total).
    - Le total affiché par le configurateur est recalculé ici à partir du catalogue courant.
    - 422 si la configuration ne peut pas être résolue.
    """
    request.state.locale = payload.locale
    settings = catalog_repository.fetch_site_settings()
    breakdown = configurator_service.quote_configuration(payload.configuration, settings, locale=payload.locale)
    return configurator_service.breakdown_to_dict(breakdown)
