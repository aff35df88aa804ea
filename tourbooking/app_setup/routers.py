"""
Registre central des routers.
- API v1: payments (checkout, confirm, webhooks Stripe/VNPay, lectures)
- Health: health_router
"""
from fastapi import FastAPI
from tourbooking.payments import views as payments_views
from tourbooking.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    app.include_router(payments_views.router)
    app.include_router(health_router)
