from typing import Optional, Dict, Any
import logging
from tourbooking.infra import supabase_client

logger = logging.getLogger(__name__)

# --- Table users (profil applicatif) ---

def get_user_by_id(user_id: str) -> Optional[Dict[str, Any]]:
    """Profil applicatif {id, email, role}; None si absent ou en cas d'erreur."""
    if not user_id:
        return None
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("users")
            .select("id, email, role")
            .eq("id", str(user_id))
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("auth.repository.get_user_by_id failed user_id=%s", user_id)
        return None
