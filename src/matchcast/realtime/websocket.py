"""WebSocket endpoint: live observers connect at /ws.

Each connection:
1. Passes the handshake gate (or is closed before accept)
2. Is registered with the hub and greeted with a welcome frame
3. Sends subscribe/unsubscribe/ping frames, each handled as one discrete
   call into the hub
4. Receives events through its outbox, drained by a writer task

Three tasks race: the client reader, the outbox writer, and the hub's
"closed" signal (set when the hub prunes the connection). Whichever
finishes first tears the other two down.
"""

import asyncio

import structlog
from fastapi import APIRouter, WebSocket
from starlette.websockets import WebSocketState

from matchcast.realtime.gate import HandshakeGate
from matchcast.realtime.hub import BroadcastHub, ConnectionNotFound, TopicLimitExceeded
from matchcast.realtime.protocol import (
    InvalidMessage,
    control_frame,
    error_frame,
    parse_client_message,
)
from matchcast.realtime.registry import ConnectionState

logger = structlog.get_logger()


def dispatch_client_frame(hub: BroadcastHub, connection_id: str, raw: str) -> None:
    """Apply one inbound text frame to the hub.

    Malformed frames get an error frame back and change nothing. Frames
    arriving after the connection started closing are ignored.
    """
    conn = hub.registry.get(connection_id)
    if conn is None or conn.state is not ConnectionState.OPEN:
        return
    conn.touch()

    try:
        message = parse_client_message(raw)
    except InvalidMessage as e:
        hub.send(connection_id, error_frame("invalid_message", str(e)))
        return

    if message.action == "ping":
        hub.send(connection_id, control_frame("pong"))
        return

    try:
        if message.action == "subscribe":
            topic = hub.subscribe(connection_id, message.topic)
            hub.send(connection_id, control_frame("subscribed", topic=topic))
        else:
            topic = hub.unsubscribe(connection_id, message.topic)
            hub.send(connection_id, control_frame("unsubscribed", topic=topic))
    except ConnectionNotFound as e:
        hub.send(connection_id, error_frame("connection_not_found", str(e)))
    except (InvalidMessage, TopicLimitExceeded) as e:
        hub.send(connection_id, error_frame("invalid_message", str(e)))


async def race(*coros) -> set[asyncio.Task]:
    """Run coroutines as tasks until the first one finishes.

    The rest are cancelled and awaited, so none of them is still inside a
    send when the caller goes on to close the socket. Returns the
    finished tasks.
    """
    tasks = [asyncio.create_task(coro) for coro in coros]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
    return done


def build_router(hub: BroadcastHub, gate: HandshakeGate) -> APIRouter:
    """Router for the /ws upgrade path, bound to one hub and one gate."""
    router = APIRouter()

    @router.websocket("/ws")
    async def observe(websocket: WebSocket):
        # ── Admission ───────────────────────────────────────
        decision = await gate(websocket)
        if not decision.allowed:
            logger.info(
                "matchcast.gate.denied",
                reason=decision.reason,
                client=websocket.client.host if websocket.client else None,
            )
            await websocket.close(code=decision.close_code, reason=decision.reason)
            return

        await websocket.accept()
        connection_id = hub.connect(websocket)
        conn = hub.registry.get(connection_id)
        welcome = {"connectionId": connection_id}
        if hub.idle_timeout is not None:
            welcome["idleTimeoutSeconds"] = hub.idle_timeout
        hub.send(connection_id, control_frame("welcome", **welcome))

        async def client_listener():
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    return
                text = message.get("text")
                if text is None:
                    hub.send(
                        connection_id,
                        error_frame("invalid_message", "binary frames are not supported"),
                    )
                    continue
                dispatch_client_frame(hub, connection_id, text)

        try:
            done = await race(
                client_listener(),
                hub.run_writer(connection_id),
                conn.closed.wait(),
            )
            for task in done:
                if not task.cancelled() and task.exception() is not None:
                    logger.warning(
                        "matchcast.ws.task_failed",
                        connection_id=connection_id,
                        error=str(task.exception()),
                    )
        finally:
            hub.begin_close(connection_id)
            hub.on_connection_closed(connection_id, reason="disconnect")
            if (
                websocket.client_state == WebSocketState.CONNECTED
                and websocket.application_state == WebSocketState.CONNECTED
            ):
                await websocket.close()

    return router
