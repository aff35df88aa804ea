"""
Sélection de l'adaptateur de paiement par nom de moyen.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

from tourbooking.config import get_stripe_settings, get_vnpay_settings
from tourbooking.payments.errors import UnsupportedMethod
from tourbooking.payments.stripe_client import StripeGateway
from tourbooking.payments.vnpay_client import VNPayGateway

METHOD_VNPAY = "VNPay"
METHOD_STRIPE = "Stripe"


@dataclass(frozen=True)
class CheckoutContext:
    client_ip: str = "127.0.0.1"
    user_email: Optional[str] = None
    tour: Optional[Dict[str, Any]] = None


class Gateway(Protocol):
    method: str

    def build_redirect(self, payment: Dict[str, Any], booking: Dict[str, Any], context: CheckoutContext) -> str:
        ...

# module tourbooking.payments.gateways
def get_gateway(method: str) -> Gateway:
    """Correspondance exacte et sensible à la casse: 'VNPay' ou 'Stripe'."""
    if method == METHOD_VNPAY:
        return VNPayGateway(get_vnpay_settings())
    if method == METHOD_STRIPE:
        return StripeGateway(get_stripe_settings())
    raise UnsupportedMethod(f"Moyen de paiement non supporté: {method}")
