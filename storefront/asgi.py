"""
ASGI entrypoint: expose `app` pour les process managers (uvicorn, gunicorn + UvicornWorker).
Toute la configuration FastAPI est centralisée dans storefront.app_setup.factory.
"""
import logging
import os

from storefront.app_setup.factory import create_app

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "info").upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = create_app()
