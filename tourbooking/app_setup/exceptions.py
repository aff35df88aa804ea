"""
Gestionnaires d’exceptions.
- HTTPException: réponse JSON standard {"detail": ...}
- PaymentError (Unauthorized, NotFound, UnsupportedMethod, ...): même format,
  code HTTP porté par l’erreur
"""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from tourbooking.payments.errors import PaymentError

logger = logging.getLogger(__name__)

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def http_exception_as_json(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))

    @app.exception_handler(PaymentError)
    async def payment_error_as_json(request: Request, exc: PaymentError):
        logger.info("payments.rejected path=%s error=%s status=%s", request.url.path, type(exc).__name__, exc.status_code)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})
