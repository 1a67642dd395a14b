"""
Lifespan FastAPI: vérifications de démarrage et ressources partagées.
- Journalise la configuration de paiement effective (devise, mode de routage, secrets webhook)
  et signale tôt une configuration incomplète.
- Initialise FastAPILimiter (Redis) qui protège la création de sessions Checkout.
  - DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS=1: aucune limitation (tests)
  - USE_FAKE_REDIS_FOR_TESTS=1: fakeredis en mémoire
  - LOCAL_RATE_LIMIT_FALLBACK=1: fenêtre locale si Redis est injoignable
"""
import logging
import os
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI
from fastapi_limiter import FastAPILimiter

from marketplace.config import CHARGE_MODE, CHECKOUT_CURRENCY, STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRETS
from marketplace.payments.checkout import CHARGE_MODES

try:
    from fakeredis.aioredis import FakeRedis  # tests only
except ImportError:
    FakeRedis = None

logger = logging.getLogger("uvicorn.error")

def log_payment_config() -> None:
    logger.info(
        "payments config currency=%s charge_mode=%s webhook_secrets=%s",
        CHECKOUT_CURRENCY, CHARGE_MODE, len(STRIPE_WEBHOOK_SECRETS),
    )
    if CHARGE_MODE not in CHARGE_MODES:
        logger.error("CHARGE_MODE=%s invalide (attendu: %s): le checkout échouera", CHARGE_MODE, ", ".join(CHARGE_MODES))
    if not STRIPE_SECRET_KEY:
        logger.warning("STRIPE_SECRET_KEY absent: checkout et onboarding indisponibles")
    if not STRIPE_WEBHOOK_SECRETS:
        logger.warning("STRIPE_WEBHOOK_SECRET absent: tous les webhooks seront rejetés (400)")

async def _init_rate_limiter(app: FastAPI) -> None:
    if os.getenv("USE_FAKE_REDIS_FOR_TESTS") == "1":
        if not FakeRedis:
            raise RuntimeError("USE_FAKE_REDIS_FOR_TESTS=1 mais fakeredis n'est pas installé.")
        r = FakeRedis(decode_responses=True)
    else:
        redis_url = os.getenv("RATE_LIMIT_REDIS_URL", "redis://127.0.0.1:6379/0")
        r = aioredis.from_url(redis_url, encoding="utf-8", decode_responses=True)
    await FastAPILimiter.init(r)
    app.state.rate_limit_enabled = True

@asynccontextmanager
async def lifespan(app: FastAPI):
    log_payment_config()
    if os.getenv("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS") == "1":
        app.state.rate_limit_enabled = False
        logger.info("Rate limiting disabled by DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS")
        yield
        return

    try:
        await _init_rate_limiter(app)
        logger.info("Rate limiting enabled")
    except Exception as e:
        # Redis indisponible: le checkout reste accessible, avec ou sans fenêtre locale
        app.state.rate_limit_enabled = os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1"
        logger.warning("Rate limiter init failed (local fallback=%s): %s", app.state.rate_limit_enabled, e)

    yield
