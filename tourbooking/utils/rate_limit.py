"""
Limitation de débit des endpoints de paiement (checkout surtout).

- Redis via fastapi-limiter quand le lifespan l'a initialisé
- LOCAL_RATE_LIMIT_FALLBACK=1: fenêtre glissante en mémoire (dev, tests)
- Sinon: aucune limite, jamais de 429 parce que Redis est absent
"""
from typing import Any, Callable, Dict, List
from fastapi import Request, Response, HTTPException
import hashlib
import logging
import os
import time
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter
from tourbooking.utils.security import bearer_or_cookie_token

logger = logging.getLogger(__name__)

TOO_MANY_REQUESTS = "Too Many Requests"

def caller_key(request: Request) -> str:
    """Clé par appelant et par chemin: hash du jeton si présent, sinon IP."""
    token = bearer_or_cookie_token(request)
    if token:
        digest = hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]
        return f"user:{digest}:{request.url.path}"
    ip = request.client.host if request.client else "local"
    return f"ip:{ip}:{request.url.path}"

def _local_hit(request: Request, times: int, seconds: int) -> None:
    now = time.time()
    key = caller_key(request)
    store: Dict[str, List[float]] = getattr(request.app.state, "local_rate_limit_hits", None) or {}
    recent = [t for t in store.get(key, []) if now - t < seconds]
    if len(recent) >= times:
        logger.info("rate_limit.blocked backend=memory key=%s", key.split(":")[0])
        raise HTTPException(status_code=429, detail=TOO_MANY_REQUESTS)
    recent.append(now)
    store[key] = recent
    request.app.state.local_rate_limit_hits = store

def optional_rate_limit(times: int, seconds: int) -> Callable:
    """Dépendance FastAPI: `Depends(optional_rate_limit(times=10, seconds=60))`."""
    async def _identifier(request: Request) -> str:
        return caller_key(request)

    async def _dep(request: Request, response: Response):
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            _local_hit(request, times, seconds)
            return
        if getattr(request.app.state, "rate_limit_enabled", None) is not True:
            return
        try:
            await RateLimiter(times=times, seconds=seconds, identifier=_identifier)(request, response)
        except HTTPException:
            raise
        except Exception as e:
            logger.warning("rate_limit.unavailable path=%s error=%s", request.url.path, e)
    return _dep

def rate_limit_health_info(request: Request) -> Dict[str, Any]:
    enabled = getattr(request.app.state, "rate_limit_enabled", None)
    limiter_ready = getattr(FastAPILimiter, "redis", None) is not None
    return {
        "enabled": (bool(enabled) if enabled is not None else None),
        "ready": limiter_ready,
        "backend": "redis" if limiter_ready else ("memory" if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1" else None),
    }
