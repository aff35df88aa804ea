"""
Accès aux données pour la feature 'payments' (tables bookings, payments, tours).

- Lecture/écriture via le client service-role (les webhooks n'ont pas d'utilisateur)
- Les écritures à deux documents passent par des fonctions RPC transactionnelles
  (voir sql/schema.sql): open_booking_payment, confirm_booking_payment
- Lectures par id: un id qui n'est pas un uuid (22P02) vaut "introuvable"
- Les autres erreurs PostgREST remontent à l'appelant, sauf sur les listes d'administration
"""
from typing import Any, Callable, Dict, List, Optional
import logging
from postgrest.exceptions import APIError
import tourbooking.infra.supabase_client as supabase_client
from tourbooking.payments.ledger import ACTIVE_PAYMENT_STATUSES

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
INVALID_TEXT_REPRESENTATION = "22P02"


class DuplicateActivePayment(Exception):
    """Un autre appel a déjà ouvert le paiement actif de cette réservation."""


def _first(res) -> Optional[Dict[str, Any]]:
    rows = getattr(res, "data", None)
    if isinstance(rows, list):
        return rows[0] if rows else None
    return rows or None

def _error_code(e: APIError) -> Optional[str]:
    code = getattr(e, "code", None)
    if not code and e.args and isinstance(e.args[0], dict):
        code = e.args[0].get("code")
    return code

def _first_by_id(table: str, value: Any, run: Callable[[], Any]) -> Optional[Dict[str, Any]]:
    try:
        return _first(run())
    except APIError as e:
        if _error_code(e) == INVALID_TEXT_REPRESENTATION:
            logger.info("payments.repository.invalid_id table=%s value=%s", table, value)
            return None
        raise

# module tourbooking.payments.repository
def get_booking(booking_id: str) -> Optional[Dict[str, Any]]:
    if not booking_id:
        return None
    return _first_by_id("bookings", booking_id, lambda: (
        supabase_client.get_service_supabase()
        .table("bookings")
        .select("*")
        .eq("id", str(booking_id))
        .limit(1)
        .execute()
    ))

def get_tour(tour_id: str) -> Optional[Dict[str, Any]]:
    if not tour_id:
        return None
    return _first_by_id("tours", tour_id, lambda: (
        supabase_client.get_service_supabase()
        .table("tours")
        .select("id, title, price")
        .eq("id", str(tour_id))
        .limit(1)
        .execute()
    ))

def get_payment(payment_id: str) -> Optional[Dict[str, Any]]:
    if not payment_id:
        return None
    return _first_by_id("payments", payment_id, lambda: (
        supabase_client.get_service_supabase()
        .table("payments")
        .select("*")
        .eq("id", str(payment_id))
        .limit(1)
        .execute()
    ))

def get_payment_by_transaction_id(transaction_id: str) -> Optional[Dict[str, Any]]:
    if not transaction_id:
        return None
    res = (
        supabase_client.get_service_supabase()
        .table("payments")
        .select("*")
        .eq("transaction_id", str(transaction_id))
        .order("created_at", desc=True)
        .limit(1)
        .execute()
    )
    return _first(res)

def find_active_payment(booking_id: str) -> Optional[Dict[str, Any]]:
    """Paiement le plus récent de la réservation en statut pending|success."""
    return _first_by_id("payments", booking_id, lambda: (
        supabase_client.get_service_supabase()
        .table("payments")
        .select("*")
        .eq("booking_id", str(booking_id))
        .in_("status", list(ACTIVE_PAYMENT_STATUSES))
        .order("created_at", desc=True)
        .limit(1)
        .execute()
    ))

def get_latest_payment(booking_id: str) -> Optional[Dict[str, Any]]:
    """Paiement le plus récemment créé, quel que soit son statut."""
    if not booking_id:
        return None
    return _first_by_id("payments", booking_id, lambda: (
        supabase_client.get_service_supabase()
        .table("payments")
        .select("*")
        .eq("booking_id", str(booking_id))
        .order("created_at", desc=True)
        .limit(1)
        .execute()
    ))

def list_payments(limit: int = 100) -> List[Dict[str, Any]]:
    """Paiements pour l'admin, plus récents d'abord. Retourne [] en cas d'erreur."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("payments")
            .select("*")
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("payments.repository.list_payments failed limit=%s", limit)
        return []

def update_payment(payment_id: str, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table("payments")
        .update(patch)
        .eq("id", str(payment_id))
        .execute()
    )
    return _first(res)

def update_booking(booking_id: str, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table("bookings")
        .update(patch)
        .eq("id", str(booking_id))
        .execute()
    )
    return _first(res)

def open_booking_payment(*, booking_id: str, method: str, amount: int) -> Dict[str, Any]:
    """
    Crée le paiement pending et pointe bookings.latest_payment_id dessus (une transaction).
    - Lève DuplicateActivePayment si l'index unique partiel refuse l'insertion.
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .rpc("open_booking_payment", {
                "p_booking_id": str(booking_id),
                "p_method": method,
                "p_amount": int(amount),
            })
            .execute()
        )
    except APIError as e:
        if _error_code(e) == UNIQUE_VIOLATION:
            raise DuplicateActivePayment(str(booking_id)) from e
        raise
    row = _first(res)
    if not row:
        raise RuntimeError(f"open_booking_payment n'a renvoyé aucune ligne (booking_id={booking_id})")
    return row

def confirm_booking_payment(*, payment_id: str, transaction_id: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Passe le paiement en success et la réservation en paid/confirmed (une transaction).
    - Gardé sur status <> 'success': retourne None si un autre appel a confirmé avant.
    """
    res = (
        supabase_client.get_service_supabase()
        .rpc("confirm_booking_payment", {
            "p_payment_id": str(payment_id),
            "p_transaction_id": transaction_id,
        })
        .execute()
    )
    return _first(res)
