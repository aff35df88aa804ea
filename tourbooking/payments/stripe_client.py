"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
"""
import logging
from decimal import Decimal
from typing import Any, Dict

import stripe

from tourbooking.config import StripeSettings
from tourbooking.payments.errors import InvalidSignature
from tourbooking.payments.ledger import passenger_count, round_half_up

logger = logging.getLogger(__name__)

# module tourbooking.payments.stripe_client
def require_stripe(settings: StripeSettings):
    """
    Prépare et retourne le module stripe prêt à l’emploi.
    - Configure stripe.api_key si une clé est fournie.
    - En absence de clé, les appels Stripe échoueront côté SDK (ex: No API key provided).
    """
    if settings.secret_key:
        stripe.api_key = settings.secret_key
    return stripe

def parse_event(payload: bytes, sig_header: str, settings: StripeSettings):
    """
    Valide la signature Stripe-Signature sur le body brut et retourne l'événement.
    - Lève InvalidSignature si la signature ou le payload est invalide.
    """
    require_stripe(settings)
    try:
        return stripe.Webhook.construct_event(payload, sig_header, settings.webhook_secret or "")
    except (ValueError, stripe.SignatureVerificationError) as e:
        raise InvalidSignature(f"Webhook Error: {e}") from e


class StripeGateway:
    method = "Stripe"

    def __init__(self, settings: StripeSettings):
        self.settings = settings

    def build_line_item(self, payment: Dict[str, Any], booking: Dict[str, Any], tour: Dict[str, Any] | None) -> Dict[str, Any]:
        """
        Une ligne: quantité = passagers, prix unitaire = montant / 100 / passagers (arrondi au cent).
        """
        count = passenger_count(booking)
        unit_price = Decimal(int(payment["amount"])) / 100 / count
        title = (tour or {}).get("title") or f"Booking {booking['id']}"
        return {
            "price_data": {
                "currency": self.settings.currency,
                "product_data": {
                    "name": f"Tour: {title}",
                    "description": f"Booking ID: {booking['id']} - {count} passenger(s) - ${unit_price:.2f} per person",
                },
                "unit_amount": round_half_up(unit_price * 100),
            },
            "quantity": count,
        }

    def build_session_params(self, payment: Dict[str, Any], booking: Dict[str, Any], context) -> Dict[str, Any]:
        base = self.settings.frontend_url
        booking_id = str(booking["id"])
        payment_id = str(payment["id"])
        params: Dict[str, Any] = {
            "payment_method_types": ["card"],
            "mode": "payment",
            "line_items": [self.build_line_item(payment, booking, context.tour)],
            "success_url": f"{base}/bookings/{booking_id}?payment=success&session_id={{CHECKOUT_SESSION_ID}}&payment_id={payment_id}",
            "cancel_url": f"{base}/bookings/{booking_id}?payment=cancelled&payment_id={payment_id}",
            "metadata": {
                "paymentId": payment_id,
                "bookingId": booking_id,
                "passengerCount": str(passenger_count(booking)),
            },
        }
        if context.user_email:
            params["customer_email"] = context.user_email
        return params

    def build_redirect(self, payment: Dict[str, Any], booking: Dict[str, Any], context) -> str:
        require_stripe(self.settings)
        session = stripe.checkout.Session.create(**self.build_session_params(payment, booking, context))
        session_id = getattr(session, "id", None) or (session.get("id") if isinstance(session, dict) else None)
        url = getattr(session, "url", None) or (session.get("url") if isinstance(session, dict) else None)
        logger.info(
            "payments.stripe.session_created payment_id=%s booking_id=%s session_id=%s",
            payment.get("id"), booking.get("id"), session_id,
        )
        return url
