"""
Registre central des routers.
- API v1: payments (checkout, webhook, customer), listings, sellers, purchases
- Health: health_router
"""
from fastapi import FastAPI
from marketplace.payments import views as payments_views
from marketplace.listings import views as listings_views
from marketplace.sellers import views as sellers_views
from marketplace.purchases import views as purchases_views
from marketplace.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    app.include_router(payments_views.router)
    app.include_router(listings_views.router)
    app.include_router(sellers_views.router)
    app.include_router(purchases_views.router)
    app.include_router(health_router)
