import logging
from typing import Any, Dict, Optional

import stripe
from fastapi import APIRouter, Request, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from tourbooking.config import get_stripe_settings, get_vnpay_settings
from tourbooking.utils.security import require_user, require_admin
from tourbooking.utils.rate_limit import optional_rate_limit
from tourbooking.payments import service as payments_service
from tourbooking.payments import stripe_client
from tourbooking.payments import webhooks
from tourbooking.payments.errors import InvalidSignature
from tourbooking.payments.vnpay_client import client_ip_from_request

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])


class CheckoutRequest(BaseModel):
    booking_id: str = Field(min_length=1)
    method: str = Field(min_length=1)


class ConfirmRequest(BaseModel):
    payment_id: Optional[str] = None
    transaction_id: Optional[str] = None

# module tourbooking.payments.views
@router.post("/checkout", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_checkout(body: CheckoutRequest, request: Request, user: Dict[str, Any] = Depends(require_user)):
    """
    Démarre (ou reprend) le paiement d'une réservation et renvoie l'URL de la passerelle.
    - Entrée JSON: { "booking_id": "...", "method": "VNPay" | "Stripe" }
    - Sortie: { "payment": {...}, "pay_url": "https://..." }
    - Erreurs: 401 (non propriétaire), 404 (réservation/tour), 400 (moyen non supporté),
      502 si Stripe refuse la création de session
    """
    try:
        return payments_service.checkout(
            booking_id=body.booking_id,
            method=body.method,
            caller=user,
            client_ip=client_ip_from_request(request),
        )
    except stripe.StripeError as e:
        logger.exception("payments.checkout.provider_error booking_id=%s", body.booking_id)
        raise HTTPException(status_code=502, detail=f"Erreur fournisseur de paiement: {getattr(e, 'user_message', None) or e}")

@router.post("/confirm")
def confirm_checkout(body: ConfirmRequest, user: Dict[str, Any] = Depends(require_user)):
    """
    Confirmation manuelle: par payment_id, sinon transaction_id (paiement puis réservation).
    - Rejouable: un paiement déjà confirmé est renvoyé tel quel.
    """
    return payments_service.confirm_payment(
        payment_id=body.payment_id,
        transaction_id=body.transaction_id,
        caller=user,
    )

@router.post("/webhook/stripe", include_in_schema=False)
async def webhook_stripe(request: Request):
    """
    Webhook Stripe: consomme checkout.session.completed.
    - Signature: body brut + en-tête Stripe-Signature (STRIPE_WEBHOOK_SECRET)
    - Réponses: {"received": true}; 400 si signature/payload invalide
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature") or ""
    try:
        event = stripe_client.parse_event(payload, sig_header, get_stripe_settings())
    except InvalidSignature as e:
        logger.warning("payments.stripe.invalid_signature error=%s", e)
        return JSONResponse(status_code=400, content={"received": False, "error": e.message})
    await run_in_threadpool(webhooks.handle_stripe_event, event)
    return {"received": True}

@router.get("/vnpay/return")
def vnpay_return(request: Request):
    """Retour navigateur VNPay: {success, message}."""
    outcome = webhooks.handle_vnpay_callback(dict(request.query_params), get_vnpay_settings())
    if outcome.status == webhooks.OUTCOME_INVALID_CHECKSUM:
        return JSONResponse(status_code=400, content={"success": False, "message": "Invalid checksum"})
    if outcome.status == webhooks.OUTCOME_BOOKING_NOT_FOUND:
        return JSONResponse(status_code=404, content={"success": False, "message": "Booking not found"})
    if outcome.status == webhooks.OUTCOME_PAID:
        return {"success": True, "message": "Payment successful"}
    return {"success": False, "message": "Payment failed"}

@router.get("/vnpay/ipn")
def vnpay_ipn(request: Request):
    """IPN VNPay (serveur à serveur): {RspCode, Message} selon les codes VNPay."""
    outcome = webhooks.handle_vnpay_callback(dict(request.query_params), get_vnpay_settings())
    if outcome.status == webhooks.OUTCOME_INVALID_CHECKSUM:
        return {"RspCode": "97", "Message": "Invalid checksum"}
    if outcome.status == webhooks.OUTCOME_BOOKING_NOT_FOUND:
        return {"RspCode": "01", "Message": "Booking not found"}
    if outcome.status == webhooks.OUTCOME_PAID:
        return {"RspCode": "00", "Message": "Success"}
    return {"RspCode": "00", "Message": "Payment failed"}

@router.get("")
def list_payments(limit: int = 100, user: Dict[str, Any] = Depends(require_admin)) -> Dict[str, Any]:
    return {"payments": payments_service.list_payments(limit=limit)}

@router.get("/by-booking/{booking_id}")
def get_booking_payment(booking_id: str, user: Dict[str, Any] = Depends(require_user)):
    return payments_service.get_booking_payment_for_user(booking_id, user)

@router.get("/{payment_id}")
def get_payment(payment_id: str, user: Dict[str, Any] = Depends(require_user)):
    return payments_service.get_payment_for_user(payment_id, user)
