from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from tourbooking.config import SUPABASE_URL, SUPABASE_SERVICE_KEY
from tourbooking.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])

@router.get("")
def health_root():
    return {"ok": True}

@router.get("/ready")
def health_ready(request: Request):
    """Configuration Supabase présente + état du rate limiting (aucun appel réseau)."""
    supabase_ok = bool(SUPABASE_URL and SUPABASE_SERVICE_KEY)
    return JSONResponse(
        status_code=200 if supabase_ok else 503,
        content={
            "supabase": {"configured": supabase_ok, "url": SUPABASE_URL or None},
            "rate_limit": rate_limit_health_info(request),
        },
    )
