"""
Rapprochement des retours passerelle (Stripe webhook, VNPay return/IPN).

Comportements par passerelle conservés tels quels:
- Stripe: met le paiement en success + transaction_id, sans garde ni mise à jour de la réservation
- VNPay: met la réservation en paid/confirmed, sans toucher au paiement
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from tourbooking.config import VNPaySettings
from . import ledger
from . import repository
from .vnpay_client import VNPayGateway

logger = logging.getLogger(__name__)

CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
VNPAY_SUCCESS_CODE = "00"

# Issues d'un retour VNPay
OUTCOME_INVALID_CHECKSUM = "invalid_checksum"
OUTCOME_BOOKING_NOT_FOUND = "booking_not_found"
OUTCOME_PAID = "paid"
OUTCOME_FAILED = "failed"


@dataclass(frozen=True)
class VNPayOutcome:
    status: str
    booking_id: Optional[str] = None
    response_code: Optional[str] = None

# module tourbooking.payments.webhooks
def _event_get(obj: Any, key: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(key)
    try:
        return obj[key]
    except (KeyError, TypeError):
        return getattr(obj, key, None)

def handle_stripe_event(event: Any) -> Dict[str, Any]:
    """
    Traite un événement Stripe déjà vérifié.
    - checkout.session.completed: paiement (metadata.paymentId) -> success + payment_intent
    - autres types: ignorés
    Retour: {"handled": bool, "payment_id": ...}
    """
    event_type = _event_get(event, "type")
    if event_type != CHECKOUT_SESSION_COMPLETED:
        logger.info("payments.stripe.event_ignored type=%s", event_type)
        return {"handled": False, "payment_id": None}

    session = _event_get(_event_get(event, "data") or {}, "object") or {}
    metadata = _event_get(session, "metadata") or {}
    payment_id = _event_get(metadata, "paymentId")
    transaction_id = _event_get(session, "payment_intent")

    updated = repository.update_payment(payment_id, ledger.confirmed_payment_patch(transaction_id)) if payment_id else None
    if not updated:
        logger.warning("payments.stripe.payment_missing payment_id=%s", payment_id)
    else:
        logger.info(
            "payments.stripe.succeeded payment_id=%s booking_id=%s transaction_id=%s",
            payment_id, updated.get("booking_id"), transaction_id,
        )
    return {"handled": True, "payment_id": payment_id}

# --- VNPay ---

def _booking_by_id(txn_ref: str) -> Optional[Dict[str, Any]]:
    return repository.get_booking(txn_ref)

def _booking_of_payment(txn_ref: str) -> Optional[Dict[str, Any]]:
    payment = repository.get_payment(txn_ref)
    return repository.get_booking(payment.get("booking_id")) if payment else None

BOOKING_LOOKUPS: List[Tuple[str, Callable[[str], Optional[Dict[str, Any]]]]] = [
    ("booking_id", _booking_by_id),
    ("payment_id", _booking_of_payment),
]

def resolve_booking_from_txn_ref(txn_ref: Optional[str]) -> Optional[Dict[str, Any]]:
    if not txn_ref:
        return None
    for tag, lookup in BOOKING_LOOKUPS:
        booking = lookup(txn_ref)
        if booking:
            logger.info("payments.vnpay.booking_resolved txn_ref=%s lookup=%s booking_id=%s", txn_ref, tag, booking.get("id"))
            return booking
    return None

def handle_vnpay_callback(params: Dict[str, str], settings: VNPaySettings) -> VNPayOutcome:
    """
    Vérifie la signature puis applique le code réponse VNPay à la réservation.
    - Signature invalide: aucune lecture, aucune écriture
    - '00': réservation paid/confirmed; autre code: aucune écriture
    """
    if not VNPayGateway(settings).verify(params):
        logger.warning("payments.vnpay.invalid_checksum txn_ref=%s", params.get("vnp_TxnRef"))
        return VNPayOutcome(OUTCOME_INVALID_CHECKSUM)

    response_code = params.get("vnp_ResponseCode")
    booking = resolve_booking_from_txn_ref(params.get("vnp_TxnRef"))
    if not booking:
        logger.warning("payments.vnpay.booking_missing txn_ref=%s", params.get("vnp_TxnRef"))
        return VNPayOutcome(OUTCOME_BOOKING_NOT_FOUND, response_code=response_code)

    booking_id = str(booking["id"])
    if response_code == VNPAY_SUCCESS_CODE:
        repository.update_booking(booking_id, ledger.confirmed_booking_patch())
        logger.info("payments.vnpay.succeeded booking_id=%s txn_ref=%s", booking_id, params.get("vnp_TxnRef"))
        return VNPayOutcome(OUTCOME_PAID, booking_id=booking_id, response_code=response_code)

    logger.info("payments.vnpay.failed booking_id=%s response_code=%s", booking_id, response_code)
    return VNPayOutcome(OUTCOME_FAILED, booking_id=booking_id, response_code=response_code)
