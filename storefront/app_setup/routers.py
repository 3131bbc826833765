"""
Registre central des routers (API v1 + health).
"""
from fastapi import FastAPI

from storefront.configurator import views as configurator_views
from storefront.health.router import router as health_router
from storefront.payments import views as payments_views

def register_routers(app: FastAPI) -> None:
    # API v1
    app.include_router(payments_views.router)
    app.include_router(configurator_views.router)
    # Health & monitoring
    app.include_router(health_router)
