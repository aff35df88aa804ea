"""
Registre réservation/paiement: états, transitions et calcul des montants.
Logique pure: les lignes sont des dicts tels que renvoyés par Supabase.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional

# Statuts de paiement
PAYMENT_PENDING = "pending"
PAYMENT_SUCCESS = "success"
PAYMENT_FAILED = "failed"
ACTIVE_PAYMENT_STATUSES = (PAYMENT_PENDING, PAYMENT_SUCCESS)

# Statuts de réservation
BOOKING_PENDING = "pending"
BOOKING_CONFIRMED = "confirmed"
BOOKING_CANCELLED = "cancelled"
BOOKING_UNPAID = "unpaid"
BOOKING_PAID = "paid"

# module tourbooking.payments.ledger
def round_half_up(value: Any) -> int:
    """Arrondi à l'entier, demi vers le haut (et non arrondi bancaire)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def passenger_count(booking: Dict[str, Any]) -> int:
    """Nombre de passagers; une réservation sans liste compte pour 1."""
    return len(booking.get("passengers") or []) or 1

def compute_amount(tour_price: Any, passengers: int) -> int:
    """
    Montant en unités mineures: prix du tour x passagers x 100.
    - Convention unique (Stripe et VNPay); VNPay remultiplie de son côté.
    """
    return round_half_up(Decimal(str(tour_price or 0)) * passengers * 100)

def is_active(payment: Optional[Dict[str, Any]]) -> bool:
    return bool(payment) and payment.get("status") in ACTIVE_PAYMENT_STATUSES

def is_confirmed(payment: Optional[Dict[str, Any]]) -> bool:
    return bool(payment) and payment.get("status") == PAYMENT_SUCCESS

def owns_booking(booking: Dict[str, Any], user_id: Optional[str]) -> bool:
    """Propriété stricte: le rôle admin n'ouvre aucun droit ici."""
    return bool(user_id) and str(booking.get("user_id") or "") == str(user_id)

def method_switch(payment: Dict[str, Any], method: str) -> Optional[Dict[str, Any]]:
    """
    Changement de moyen sur un paiement actif existant.
    - Retourne le patch à appliquer ({method, status=pending}) ou None si même moyen.
    - Le montant n'est jamais modifié.
    """
    if payment.get("method") == method:
        return None
    return {"method": method, "status": PAYMENT_PENDING}

def confirmed_booking_patch() -> Dict[str, str]:
    return {"payment_status": BOOKING_PAID, "status": BOOKING_CONFIRMED}

def confirmed_payment_patch(transaction_id: Optional[str]) -> Dict[str, Any]:
    return {"status": PAYMENT_SUCCESS, "transaction_id": transaction_id}
