"""
Gestionnaires d'exceptions.
- StorefrontError: {"error": {"code", "message", ...détails publics}} avec le statut de l'erreur,
  message générique traduit (en/fr); le détail interne reste dans les logs.
- RequestValidationError (pydantic): 422 'invalid_payload', même format.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storefront.errors import InvalidCheckoutPayload, StorefrontError, user_message

logger = logging.getLogger(__name__)

def request_locale(request: Request) -> str:
    """
    Locale de la réponse d'erreur: locale du payload (request.state), ?locale=, Accept-Language.
    """
    locale = getattr(request.state, "locale", None) or request.query_params.get("locale")
    if not locale:
        locale = (request.headers.get("accept-language") or "en").split(",")[0]
    return "fr" if str(locale).strip().lower().startswith("fr") else "en"

def error_response(request: Request, exc: StorefrontError) -> JSONResponse:
    body = {"code": exc.code, "message": user_message(exc.code, request_locale(request))}
    body.update({k: v for k, v in exc.public_details().items() if v is not None})
    return JSONResponse(status_code=exc.status_code, content={"error": body})

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StorefrontError)
    async def storefront_error(request: Request, exc: StorefrontError):
        logger.info("storefront error path=%s code=%s detail=%s", request.url.path, exc.code, exc)
        return error_response(request, exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        logger.info("request validation failed path=%s errors=%s", request.url.path, len(exc.errors()))
        return error_response(request, InvalidCheckoutPayload("request validation failed"))
