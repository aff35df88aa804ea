"""
Module 'payments' (feature-first): point d'entrée public.
Réunit signature VNPay, adaptateurs Stripe/VNPay, registre, repository BD et services.
"""

from .checksum import sign, verify, canonical_query, encode_query
from .errors import PaymentError, Unauthorized, NotFound, UnsupportedMethod, InvalidAmount, InvalidSignature
from .gateways import CheckoutContext, get_gateway
from .service import checkout, confirm_payment, resolve_payment
from .webhooks import handle_stripe_event, handle_vnpay_callback

__all__ = [
    # checksum
    "sign",
    "verify",
    "canonical_query",
    "encode_query",
    # errors
    "PaymentError",
    "Unauthorized",
    "NotFound",
    "UnsupportedMethod",
    "InvalidAmount",
    "InvalidSignature",
    # gateways
    "CheckoutContext",
    "get_gateway",
    # services
    "checkout",
    "confirm_payment",
    "resolve_payment",
    # webhooks
    "handle_stripe_event",
    "handle_vnpay_callback",
]
