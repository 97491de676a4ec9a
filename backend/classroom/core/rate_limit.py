"""Fixed-window request limits backed by Redis.

Authenticated calls are counted per learner, so a classroom sharing one NAT
address does not exhaust a single bucket. Anonymous calls fall back to the
client address.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request

from classroom.core import redis_client
from classroom.core.config import settings


@dataclass(frozen=True)
class RateLimit:
    key: str
    limit: int
    window_seconds: int


def _client_ip(request: Request) -> str:
    if bool(settings.trust_proxy_headers):
        xff = str(request.headers.get("x-forwarded-for") or "").split(",")[0].strip()
        if xff:
            return xff
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def rate_limit_key(key_prefix: str, request: Request) -> str:
    # Routes resolve the current user before this dependency runs.
    user_id = getattr(request.state, "user_id", None)
    if user_id:
        return f"rl:{key_prefix}:user:{user_id}"
    return f"rl:{key_prefix}:ip:{_client_ip(request)}"


def rate_limit(*, key_prefix: str, limit: int, window_seconds: int):
    async def _dep(request: Request) -> RateLimit:
        key = rate_limit_key(key_prefix, request)
        bucket = RateLimit(key=key, limit=int(limit), window_seconds=int(window_seconds))

        # Fail open: an unreachable Redis must not block learners.
        try:
            r = redis_client.get_redis()
            current = int(r.incr(key))
            if current == 1:
                r.expire(key, bucket.window_seconds)
        except Exception:
            return bucket

        if current > bucket.limit:
            ttl = r.ttl(key)
            retry_after = int(ttl) if ttl and ttl > 0 else bucket.window_seconds
            raise HTTPException(
                status_code=429,
                detail={"error_code": "rate_limited", "error_message": f"too many {key_prefix} requests"},
                headers={"Retry-After": str(retry_after)},
            )

        return bucket

    return Depends(_dep)
