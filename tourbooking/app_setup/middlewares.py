"""
Middlewares transverses de l’application.
- register_basic_middlewares: CORS, hôtes autorisés, confiance en X-Forwarded-*
  (l’IP client transmise à VNPay en dépend)
- register_payment_access_log: une ligne de log par requête /api/v1/payments
Les webhooks (Stripe, VNPay) n’ont ni cookie ni CSRF: aucune exemption à gérer ici.
"""
import logging
import time
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware
from tourbooking.config import CORS_ORIGINS, ALLOWED_HOSTS

logger = logging.getLogger("tourbooking.access")

PAYMENTS_PREFIX = "/api/v1/payments"

def _allowed_hosts() -> list:
    # CORS ouvert => on n’impose pas d’hôte non plus
    return ALLOWED_HOSTS + ["*"] if "*" in CORS_ORIGINS else ALLOWED_HOSTS

def register_basic_middlewares(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Authorization", "Content-Type", "Stripe-Signature"],
    )
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=_allowed_hosts())
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])

def register_payment_access_log(app: FastAPI) -> None:
    """
    Trace chaque appel du module paiement: méthode, chemin, statut, durée.
    - La query string n’est pas loggée (elle porte vnp_SecureHash).
    """
    @app.middleware("http")
    async def payment_access_log(request: Request, call_next):
        if not request.url.path.startswith(PAYMENTS_PREFIX):
            return await call_next(request)
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "http.payments method=%s path=%s status=%s duration_ms=%.1f",
            request.method, request.url.path, response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response
