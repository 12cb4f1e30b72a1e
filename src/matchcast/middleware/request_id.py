"""Request ID middleware: one trace id per HTTP request or /ws session.

The id comes from the incoming X-Request-ID header when it looks sane,
otherwise a fresh UUID is minted. It is bound to structlog's contextvars
for the lifetime of the ASGI call, so:
- every log line of an HTTP write carries it, including the hub's
  publish lines emitted after the commit
- every log line of a WebSocket session carries it, from the gate
  decision through registration to matchcast.ws.closed

HTTP responses echo it back in the X-Request-ID header.

Written as plain ASGI rather than BaseHTTPMiddleware, which only sees
HTTP requests and would leave /ws sessions untagged.
"""

import re
import uuid
from typing import Optional

import structlog
from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

HEADER = "X-Request-ID"

# Client-supplied ids end up in logs; anything else is replaced.
_VALID_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def resolve_request_id(incoming: Optional[str]) -> str:
    if incoming and _VALID_ID.match(incoming):
        return incoming
    return str(uuid.uuid4())


class RequestIdMiddleware:
    """Tag HTTP requests and WebSocket sessions with a request id."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        request_id = resolve_request_id(Headers(scope=scope).get(HEADER))
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            transport=scope["type"],
        )

        if scope["type"] == "websocket":
            await self.app(scope, receive, send)
            return

        async def send_with_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)[HEADER] = request_id
            await send(message)

        await self.app(scope, receive, send_with_id)
