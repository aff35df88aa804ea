"""
Lifespan FastAPI du service de paiement.

Au démarrage:
- signale les réglages de passerelle manquants (VNPay, Stripe) sans bloquer le boot
- branche fastapi-limiter sur Redis (ou fakeredis en tests)

Variables d’environnement:
  - DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS=1: aucun rate limiting (tests)
  - USE_FAKE_REDIS_FOR_TESTS=1: Redis en mémoire via fakeredis
  - RATE_LIMIT_REDIS_URL: URL Redis (défaut redis://127.0.0.1:6379/0)
  - LOCAL_RATE_LIMIT_FALLBACK=1: compteur en mémoire si Redis est injoignable
"""
import os
import logging
from contextlib import asynccontextmanager
from typing import List, Optional, Tuple
import redis.asyncio as aioredis
from fastapi import FastAPI
from fastapi_limiter import FastAPILimiter
from tourbooking.config import get_stripe_settings, get_vnpay_settings

logger = logging.getLogger("uvicorn.error")

def missing_gateway_settings() -> List[str]:
    vnpay = get_vnpay_settings()
    stripe_settings = get_stripe_settings()
    required = {
        "VNPAY_TMNCODE": vnpay.tmn_code,
        "VNPAY_HASH_SECRET": vnpay.hash_secret,
        "STRIPE_SECRET_KEY": stripe_settings.secret_key,
        "STRIPE_WEBHOOK_SECRET": stripe_settings.webhook_secret,
    }
    return [name for name, value in required.items() if not value]

def _limiter_redis() -> Tuple[str, object]:
    if os.getenv("USE_FAKE_REDIS_FOR_TESTS") == "1":
        from fakeredis.aioredis import FakeRedis
        return "fakeredis", FakeRedis(decode_responses=True)
    redis_url = os.getenv("RATE_LIMIT_REDIS_URL", "redis://127.0.0.1:6379/0")
    return "redis", aioredis.from_url(redis_url, encoding="utf-8", decode_responses=True)

@asynccontextmanager
async def lifespan(app: FastAPI):
    missing = missing_gateway_settings()
    if missing:
        logger.warning("payments.config.missing keys=%s", ",".join(missing))

    backend: Optional[str] = None
    if os.getenv("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS") == "1":
        app.state.rate_limit_enabled = False
        logger.info("rate_limit.disabled reason=tests")
    else:
        try:
            backend, client = _limiter_redis()
            await FastAPILimiter.init(client)
            app.state.rate_limit_enabled = True
            logger.info("rate_limit.enabled backend=%s", backend)
        except Exception as e:
            backend = None
            # Sans fallback, un Redis absent ne doit pas produire de 429
            app.state.rate_limit_enabled = os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1"
            logger.warning("rate_limit.init_failed fallback=%s error=%s", app.state.rate_limit_enabled, e)
    app.state.rate_limit_backend = backend

    yield

    if backend:
        await FastAPILimiter.close()
