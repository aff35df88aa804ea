"""
Cas d'usage 'payments': orchestre repository, ledger, adaptateurs de paiement.

- checkout: réutilise/relance/ouvre le paiement actif puis produit l'URL de paiement
- confirm_payment: confirmation manuelle (idempotente) par paymentId/transactionId
- get_payment_for_user / get_booking_payment_for_user / list_payments: lectures
"""
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from . import ledger
from . import repository
from .errors import InvalidAmount, NotFound, Unauthorized
from .gateways import CheckoutContext, get_gateway
from .locks import booking_lock

logger = logging.getLogger(__name__)

LookupStrategy = Tuple[str, Callable[[Optional[str], Optional[str]], Optional[Dict[str, Any]]]]

# module tourbooking.payments.service
def _require_caller(caller: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not caller or not caller.get("id"):
        raise Unauthorized("Non authentifié")
    return caller

def _load_owned_booking(booking_id: str, caller: Dict[str, Any]) -> Dict[str, Any]:
    booking = repository.get_booking(booking_id)
    if not booking:
        raise NotFound("Réservation introuvable")
    if not ledger.owns_booking(booking, caller.get("id")):
        raise Unauthorized("Réservation appartenant à un autre utilisateur")
    return booking

def _open_or_reuse_payment(booking: Dict[str, Any], method: str, tour: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Sous verrou de réservation:
    - paiement actif existant: même moyen -> réutilisé, autre moyen -> moyen mis à jour + pending
    - sinon: montant = prix x passagers x 100, création + latest_payment_id en une RPC
    """
    booking_id = str(booking["id"])
    existing = repository.find_active_payment(booking_id)
    if ledger.is_active(existing):
        patch = ledger.method_switch(existing, method)
        if patch is None:
            logger.info("payments.checkout.reused payment_id=%s booking_id=%s method=%s", existing["id"], booking_id, method)
            return existing
        updated = repository.update_payment(existing["id"], patch) or {**existing, **patch}
        logger.info(
            "payments.checkout.method_switched payment_id=%s booking_id=%s from=%s to=%s",
            existing["id"], booking_id, existing.get("method"), method,
        )
        return updated

    if not tour:
        raise NotFound("Tour introuvable")
    amount = ledger.compute_amount(tour.get("price"), ledger.passenger_count(booking))
    if amount <= 0:
        raise InvalidAmount("Montant invalide")
    try:
        payment = repository.open_booking_payment(booking_id=booking_id, method=method, amount=amount)
    except repository.DuplicateActivePayment:
        # Un autre process a ouvert le paiement entre-temps: on repart de sa ligne
        logger.warning("payments.checkout.duplicate_active booking_id=%s", booking_id)
        existing = repository.find_active_payment(booking_id)
        if not existing:
            raise
        patch = ledger.method_switch(existing, method)
        return existing if patch is None else (repository.update_payment(existing["id"], patch) or {**existing, **patch})
    logger.info(
        "payments.checkout.created payment_id=%s booking_id=%s method=%s amount=%s",
        payment["id"], booking_id, method, amount,
    )
    return payment

def checkout(
    *,
    booking_id: str,
    method: str,
    caller: Optional[Dict[str, Any]],
    client_ip: str = "127.0.0.1",
) -> Dict[str, Any]:
    """
    Résout une réservation en intention de paiement et retourne {payment, pay_url}.
    - 401 sans appelant ou si l'appelant n'est pas propriétaire (admins compris)
    - 404 si la réservation (ou le tour, à la création) est introuvable
    - 400 si le moyen n'est pas supporté; le paiement déjà écrit reste en place
    Les erreurs Stripe remontent telles quelles.
    """
    caller = _require_caller(caller)
    booking = _load_owned_booking(booking_id, caller)
    tour = repository.get_tour(booking.get("tour_id"))

    with booking_lock(booking["id"]):
        payment = _open_or_reuse_payment(booking, method, tour)

    gateway = get_gateway(method)
    context = CheckoutContext(client_ip=client_ip, user_email=caller.get("email"), tour=tour)
    pay_url = gateway.build_redirect(payment, booking, context)
    return {"payment": payment, "pay_url": pay_url}

# --- Confirmation manuelle ---

def _by_payment_id(payment_id: Optional[str], transaction_id: Optional[str]) -> Optional[Dict[str, Any]]:
    return repository.get_payment(payment_id) if payment_id else None

def _by_transaction_id(payment_id: Optional[str], transaction_id: Optional[str]) -> Optional[Dict[str, Any]]:
    return repository.get_payment_by_transaction_id(transaction_id) if transaction_id else None

def _by_booking_id(payment_id: Optional[str], transaction_id: Optional[str]) -> Optional[Dict[str, Any]]:
    if not transaction_id:
        return None
    booking = repository.get_booking(transaction_id)
    if not booking:
        return None
    return repository.get_latest_payment(booking["id"])

PAYMENT_LOOKUPS: List[LookupStrategy] = [
    ("payment_id", _by_payment_id),
    ("transaction_id", _by_transaction_id),
    ("booking_id", _by_booking_id),
]

def resolve_payment(payment_id: Optional[str], transaction_id: Optional[str]) -> Tuple[str, Dict[str, Any]]:
    """Essaie les stratégies dans l'ordre; la première trouvée gagne."""
    for tag, lookup in PAYMENT_LOOKUPS:
        payment = lookup(payment_id, transaction_id)
        if payment:
            return tag, payment
    if transaction_id or not payment_id:
        raise NotFound(f"Paiement introuvable pour la transaction {transaction_id}")
    raise NotFound(f"Paiement introuvable (payment_id={payment_id})")

def confirm_payment(
    *,
    payment_id: Optional[str] = None,
    transaction_id: Optional[str] = None,
    caller: Optional[Dict[str, Any]],
) -> Dict[str, Any]:
    """
    Confirme un paiement et la réservation associée (une seule transaction).
    - Rejouable: un paiement déjà success est renvoyé tel quel.
    """
    caller = _require_caller(caller)
    tag, payment = resolve_payment(payment_id, transaction_id)
    booking = repository.get_booking(payment.get("booking_id"))
    if not booking:
        raise NotFound("Réservation introuvable")
    if not ledger.owns_booking(booking, caller.get("id")):
        raise Unauthorized("Paiement appartenant à un autre utilisateur")

    if ledger.is_confirmed(payment):
        logger.info("payments.confirm.already_confirmed payment_id=%s booking_id=%s", payment["id"], booking["id"])
        return payment

    with booking_lock(booking["id"]):
        confirmed = repository.confirm_booking_payment(payment_id=payment["id"], transaction_id=transaction_id)
        if not confirmed:
            # Confirmé entre la lecture et l'écriture: on renvoie l'état courant
            confirmed = repository.get_payment(payment["id"]) or payment
    logger.info(
        "payments.confirm.succeeded payment_id=%s booking_id=%s lookup=%s transaction_id=%s",
        payment["id"], booking["id"], tag, transaction_id,
    )
    return confirmed

# --- Lectures ---

def _can_read(booking: Optional[Dict[str, Any]], caller: Dict[str, Any]) -> bool:
    if caller.get("role") == "admin":
        return True
    return bool(booking) and ledger.owns_booking(booking, caller.get("id"))

def get_payment_for_user(payment_id: str, caller: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    caller = _require_caller(caller)
    payment = repository.get_payment(payment_id)
    if not payment:
        raise NotFound("Paiement introuvable")
    if not _can_read(repository.get_booking(payment.get("booking_id")), caller):
        raise Unauthorized("Accès interdit")
    return payment

def get_booking_payment_for_user(booking_id: str, caller: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    caller = _require_caller(caller)
    booking = repository.get_booking(booking_id)
    if not booking:
        raise NotFound("Réservation introuvable")
    if not _can_read(booking, caller):
        raise Unauthorized("Accès interdit")
    payment = repository.get_latest_payment(booking["id"])
    if not payment:
        raise NotFound("Aucun paiement pour cette réservation")
    return payment

def list_payments(limit: int = 100) -> List[Dict[str, Any]]:
    return repository.list_payments(limit=limit)
