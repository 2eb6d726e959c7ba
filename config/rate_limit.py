# config/rate_limit.py
from typing import Optional
from fastapi import Request
from fastapi_limiter import FastAPILimiter
from redis.asyncio import Redis, from_url
from config.settings import settings
import logging

logger = logging.getLogger(__name__)

# Only limiter counters live in Redis; uploads and explanations are never stored.
LIMITER_PREFIX = "clause-explainer:limit"

_client: Optional[Redis] = None


async def client_ip(request: Request) -> str:
    if settings.TRUST_PROXY:
        fwd = request.headers.get("x-forwarded-for")
        if fwd:
            return fwd.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def init_rate_limiter() -> Redis:
    """
    Connect to Redis and register it with fastapi-limiter.
    Raises if Redis is unreachable so startup fails fast.
    """
    global _client
    if _client is None:
        _client = from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_keepalive=True,
            health_check_interval=30,
        )
        await _client.ping()
        await FastAPILimiter.init(_client, prefix=LIMITER_PREFIX, identifier=client_ip)
        logger.info(
            "ratelimit.ready times=%d seconds=%d trust_proxy=%s",
            settings.RATE_LIMIT_TIMES,
            settings.RATE_LIMIT_SECONDS,
            settings.TRUST_PROXY,
        )
    return _client


async def close_rate_limiter() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
