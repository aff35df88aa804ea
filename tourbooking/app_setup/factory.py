"""
Factory de l’application de paiement (utilisée par tourbooking.app / tourbooking.asgi).
"""
from fastapi import FastAPI
from .lifespan import lifespan
from .middlewares import register_basic_middlewares, register_payment_access_log
from .exceptions import register_exception_handlers
from .routers import register_routers

def create_app() -> FastAPI:
    """
    Assemble le service:
      - lifespan (rate limiting, contrôle des réglages de passerelle)
      - CORS / hôtes / en-têtes proxy, puis journal d’accès des paiements
      - erreurs HTTP et erreurs métier de paiement rendues en {"detail": ...}
      - routers payments et health
    """
    app = FastAPI(title="Tour Booking Payments", version="0.1.0", lifespan=lifespan)
    register_basic_middlewares(app)
    register_payment_access_log(app)
    register_exception_handlers(app)
    register_routers(app)
    return app
