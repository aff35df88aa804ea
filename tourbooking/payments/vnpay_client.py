"""
Adaptateur VNPay: construit l'URL de paiement signée.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Request

from tourbooking.config import VNPaySettings
from tourbooking.payments import checksum

logger = logging.getLogger(__name__)

VNPAY_VERSION = "2.1.0"
VNPAY_COMMAND = "pay"
VNPAY_CURRENCY = "VND"
VNPAY_LOCALE = "vn"
LOOPBACK_IP = "127.0.0.1"

# module tourbooking.payments.vnpay_client
def client_ip_from_request(request: Optional[Request]) -> str:
    """
    IP de l'appelant:
    - 1re entrée de X-Forwarded-For
    - sinon adresse de la connexion
    - sinon 127.0.0.1
    """
    if request is None:
        return LOOPBACK_IP
    forwarded = (request.headers.get("x-forwarded-for") or "").split(",")[0].strip()
    if forwarded:
        return forwarded
    if request.client and request.client.host:
        return request.client.host
    return LOOPBACK_IP

def format_create_date(now: Optional[datetime] = None) -> str:
    """Horodatage UTC au format YYYYMMDDHHmmss."""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y%m%d%H%M%S")


class VNPayGateway:
    method = "VNPay"

    def __init__(self, settings: VNPaySettings):
        self.settings = settings

    def build_params(self, payment: Dict[str, Any], booking: Dict[str, Any], client_ip: str,
                     now: Optional[datetime] = None) -> Dict[str, str]:
        """Paramètres VNPay non signés (le montant du registre est remultiplié par 100)."""
        return {
            "vnp_Version": VNPAY_VERSION,
            "vnp_Command": VNPAY_COMMAND,
            "vnp_TmnCode": self.settings.tmn_code,
            "vnp_Amount": str(int(payment["amount"]) * 100),
            "vnp_CurrCode": VNPAY_CURRENCY,
            "vnp_TxnRef": str(payment["id"]),
            "vnp_OrderInfo": f"Thanh toan booking {booking['id']}",
            "vnp_Locale": VNPAY_LOCALE,
            "vnp_ReturnUrl": self.settings.return_url,
            "vnp_IpAddr": client_ip or LOOPBACK_IP,
            "vnp_CreateDate": format_create_date(now),
        }

    def build_redirect(self, payment: Dict[str, Any], booking: Dict[str, Any], context) -> str:
        params = self.build_params(payment, booking, context.client_ip)
        params["vnp_SecureHash"] = checksum.sign(params, self.settings.hash_secret)
        logger.info(
            "payments.vnpay.url_built payment_id=%s booking_id=%s amount=%s",
            payment.get("id"), booking.get("id"), params["vnp_Amount"],
        )
        return f"{self.settings.base_url}?{checksum.encode_query(params)}"

    def verify(self, params: Dict[str, str]) -> bool:
        return checksum.verify(params, params.get("vnp_SecureHash") or "", self.settings.hash_secret)
