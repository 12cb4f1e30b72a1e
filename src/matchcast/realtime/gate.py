"""Handshake gates: admit or reject a WebSocket before it is accepted.

A gate is any async callable taking the raw upgrade request and
returning a GateDecision. Gates run before the hub knows the connection
exists; a deny closes the socket without creating any hub state.
"""

import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import structlog
from starlette.requests import HTTPConnection

from matchcast.auth.jwt import TokenError, verify_token
from matchcast.redis_client import get_redis

logger = structlog.get_logger()

# Close codes sent on deny.
CLOSE_UNAUTHORIZED = 4001
CLOSE_TRY_AGAIN_LATER = 1013


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    reason: Optional[str] = None
    close_code: int = 1008

    @classmethod
    def allow(cls) -> "GateDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str, close_code: int = 1008) -> "GateDecision":
        return cls(allowed=False, reason=reason, close_code=close_code)


HandshakeGate = Callable[[HTTPConnection], Awaitable[GateDecision]]


async def allow_all(conn: HTTPConnection) -> GateDecision:
    return GateDecision.allow()


class TokenGate:
    """JWT from the ?token= query param.

    Without a token, connections are only admitted when `required` is
    False (development mode).
    """

    def __init__(self, required: bool = True):
        self.required = required

    async def __call__(self, conn: HTTPConnection) -> GateDecision:
        token = conn.query_params.get("token")
        if not token:
            if self.required:
                return GateDecision.deny("authentication_required", CLOSE_UNAUTHORIZED)
            return GateDecision.allow()
        try:
            verify_token(token)
        except TokenError:
            return GateDecision.deny("invalid_token", CLOSE_UNAUTHORIZED)
        return GateDecision.allow()


class RateLimitGate:
    """Per-IP handshake attempts per minute, counted in Redis.

    Steps aside (allows) when Redis is unavailable, same as the HTTP
    rate limiter.
    """

    def __init__(self, per_minute: int = 30):
        self.per_minute = per_minute

    async def __call__(self, conn: HTTPConnection) -> GateDecision:
        try:
            redis = get_redis()
        except RuntimeError:
            return GateDecision.allow()

        client_ip = conn.client.host if conn.client else "unknown"
        window = int(time.time() // 60)
        key = f"matchcast:ws-rl:{client_ip}:{window}"
        try:
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, 120)
        except Exception as e:
            logger.warning("matchcast.gate.redis_error", error=str(e))
            return GateDecision.allow()

        if count > self.per_minute:
            return GateDecision.deny("rate_limited", CLOSE_TRY_AGAIN_LATER)
        return GateDecision.allow()


class CompositeGate:
    """Run gates in order; the first deny wins."""

    def __init__(self, *gates: HandshakeGate):
        self.gates = gates

    async def __call__(self, conn: HTTPConnection) -> GateDecision:
        for gate in self.gates:
            decision = await gate(conn)
            if not decision.allowed:
                return decision
        return GateDecision.allow()
