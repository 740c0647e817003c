"""
Hybrid in-memory + Redis rate limiting for guest-facing endpoints
Counts live in process memory and are synced to Redis periodically
"""

import logging
import os
import time
from threading import Lock
from typing import Optional

import redis
from fastapi import HTTPException, Request, status

from .config import RATE_LIMIT_ENABLED, REDIS_URL

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None

# {key: {"count": int, "reset_time": int, "last_redis_sync": int}}
memory_cache: dict[str, dict] = {}
cache_lock = Lock()

MEMORY_CACHE_SYNC_INTERVAL = 10
MEMORY_CACHE_CLEANUP_INTERVAL = 60
last_cleanup_time = 0


def _mask_url(url: str) -> str:
    if "@" not in url:
        return "****"
    scheme = url.split(":")[0]
    return f"{scheme}:****@{url.split('@', 1)[1]}"


def get_redis_client() -> redis.Redis:
    """Get or create the shared Redis client (REDIS_URL, else REDIS_HOST/REDIS_PORT)"""
    global redis_client

    if redis_client is not None:
        return redis_client

    connection_options = {
        "decode_responses": True,
        "socket_connect_timeout": 5,
        "socket_timeout": 10,
        "retry_on_timeout": True,
        "health_check_interval": 30,
        "max_connections": 20,
    }

    try:
        if REDIS_URL:
            logger.info(f"📡 Connecting to Redis: {_mask_url(REDIS_URL)}")
            client = redis.from_url(REDIS_URL, **connection_options)
        else:
            redis_host = os.getenv("REDIS_HOST", "localhost")
            redis_port = int(os.getenv("REDIS_PORT", "6379"))
            logger.info(f"📡 Connecting to Redis at {redis_host}:{redis_port}")
            client = redis.Redis(
                host=redis_host,
                port=redis_port,
                password=os.getenv("REDIS_PASSWORD"),
                db=int(os.getenv("REDIS_DB", "0")),
                **connection_options,
            )
        client.ping()
    except Exception as e:
        logger.error(f"❌ Failed to connect to Redis: {e}")
        raise

    logger.info("✅ Redis connected")
    redis_client = client
    return redis_client


def cleanup_expired_cache():
    """Remove expired windows from the in-memory cache"""
    global last_cleanup_time
    current_time = int(time.time())

    if current_time - last_cleanup_time < MEMORY_CACHE_CLEANUP_INTERVAL:
        return

    with cache_lock:
        expired_keys = [k for k, v in memory_cache.items() if current_time >= v["reset_time"]]
        for k in expired_keys:
            del memory_cache[k]

    last_cleanup_time = current_time


def _load_window(key: str, window_seconds: int, client: redis.Redis, current_time: int) -> dict:
    """Start a window, resuming the Redis count if another worker already has one"""
    try:
        redis_count = client.get(key)
        redis_ttl = client.ttl(key)
        if redis_count and redis_ttl > 0:
            return {
                "count": int(redis_count),
                "reset_time": current_time + redis_ttl,
                "last_redis_sync": current_time,
            }
    except Exception as e:
        logger.warning(f"⚠️ Failed to load {key} from Redis, using memory only: {e}")
    return {"count": 0, "reset_time": current_time + window_seconds, "last_redis_sync": current_time}


def check_rate_limit(key: str, limit: int, window_seconds: int, client: redis.Redis) -> tuple[bool, int, int]:
    """
    Fixed-window check against the in-memory count, synced to Redis every few seconds.

    Returns:
        Tuple of (is_allowed, current_count, ttl_seconds)
    """
    current_time = int(time.time())
    cleanup_expired_cache()

    with cache_lock:
        entry = memory_cache.get(key)
        if entry is None:
            entry = memory_cache[key] = _load_window(key, window_seconds, client, current_time)

        if current_time >= entry["reset_time"]:
            entry.update(count=0, reset_time=current_time + window_seconds, last_redis_sync=0)

        is_allowed = entry["count"] < limit
        if is_allowed:
            entry["count"] += 1

        if current_time - entry["last_redis_sync"] >= MEMORY_CACHE_SYNC_INTERVAL:
            try:
                client.set(key, entry["count"], ex=window_seconds)
                entry["last_redis_sync"] = current_time
            except Exception as e:
                logger.warning(f"⚠️ Failed to sync {key} to Redis: {e}")

        return is_allowed, entry["count"], max(0, entry["reset_time"] - current_time)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def rate_limit_dependency(
    request: Request,
    limit: int,
    window_seconds: int,
    key_prefix: str = "rate_limit",
    use_ip: bool = True,
):
    """
    FastAPI dependency for rate limiting.
    Fails closed with 503 when the limiter itself cannot run.
    """
    if not RATE_LIMIT_ENABLED:
        return

    key = f"{key_prefix}:{client_ip(request)}" if use_ip else f"{key_prefix}:global"

    try:
        is_allowed, current_count, ttl = check_rate_limit(key, limit, window_seconds, get_redis_client())
    except Exception as e:
        logger.error(f"❌ Rate limiting error: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Rate limiting service temporarily unavailable",
        ) from e

    if not is_allowed:
        logger.warning(f"🚫 Rate limit exceeded for {key} - {current_count}/{limit}")
        raise HTTPException(
            status_code=429,
            detail={
                "message": f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds.",
                "retry_after": ttl,
                "limit": limit,
                "window_seconds": window_seconds,
            },
            headers={"Retry-After": str(ttl)},
        )

    request.state.rate_limit_remaining = limit - current_count


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str = "rate_limit", use_ip: bool = True):
    """
    Create a rate limiter dependency with specific parameters

    Example usage:
        booking_limiter = create_rate_limiter(limit=10, window_seconds=600, key_prefix="guest_booking")

        @router.post("/public/bookings")
        async def create_booking(data: GuestBooking, _: None = Depends(booking_limiter)):
            ...
    """

    async def rate_limiter(request: Request):
        return await rate_limit_dependency(request, limit, window_seconds, key_prefix, use_ip)

    return rate_limiter
