"""
Client Supabase service-role, créé à la demande (aucune connexion à l'import).

Utilisé par tout le cœur de paiement, webhooks compris: ils n'ont pas
d'utilisateur, donc pas de RLS possible.
"""
import logging
from typing import Optional
from supabase import create_client, Client
from tourbooking.config import SUPABASE_URL, SUPABASE_SERVICE_KEY

logger = logging.getLogger(__name__)

_service_supabase: Optional[Client] = None

def get_service_supabase() -> Client:
    global _service_supabase
    if _service_supabase is None:
        if not SUPABASE_URL or not SUPABASE_SERVICE_KEY:
            raise RuntimeError("SUPABASE_URL/SUPABASE_SERVICE_KEY manquants pour get_service_supabase()")
        _service_supabase = create_client(SUPABASE_URL, SUPABASE_SERVICE_KEY)
        logger.info("supabase.client_created role=service url=%s", SUPABASE_URL)
    return _service_supabase
