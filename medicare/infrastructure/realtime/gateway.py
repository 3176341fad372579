import asyncio
import json
import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, ContextManager, Dict, Optional

from fastapi import WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder

from ...exceptions import APIException, AuthError, InvalidInput, StorageError, public_message
from ...application.actors import Actor, actor_from_user
from ...application.ports.notifier import Notifier, chat_room, personal_room
from ...application.ports.token_verifier import Claims, TokenVerifier
from ...application.services.chat_service import ChatService
from .room_directory import RoomDirectory

logger = logging.getLogger(__name__)

# Close code for refused or expired credentials (application range 4000-4999)
AUTH_CLOSE_CODE = 4401
SERVER_ERROR_CLOSE_CODE = 1011

ChatScope = Callable[[Notifier], ContextManager[ChatService]]


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    JOINED = "joined"
    CLOSED = "closed"


_CLOSE = object()


class Connection:
    """One live WebSocket. Outbound frames go through a queue drained by `pump`."""

    def __init__(self, websocket: WebSocket) -> None:
        self.id = str(uuid.uuid4())
        self.websocket = websocket
        self.state = ConnectionState.CONNECTING
        self.claims: Optional[Claims] = None
        self.actor: Optional[Actor] = None
        self._queue: asyncio.Queue = asyncio.Queue()

    def push(self, event: str, data: Any = None) -> None:
        self._queue.put_nowait({"event": event, "data": data})

    def close(self, code: int) -> None:
        self._queue.put_nowait((_CLOSE, code))

    async def pump(self) -> None:
        while True:
            message = await self._queue.get()
            if isinstance(message, tuple) and message[0] is _CLOSE:
                await self.websocket.close(code=message[1])
                return
            await self.websocket.send_json(message)

    def __hash__(self) -> int:
        return hash(self.id)

    def __eq__(self, other) -> bool:
        return isinstance(other, Connection) and other.id == self.id


def extract_token(websocket: WebSocket) -> Optional[str]:
    token = websocket.query_params.get("token")
    if token:
        return token
    authorization = websocket.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


class RealtimeGateway(Notifier):
    """Authenticated fan-out channel.

    Services only see the `Notifier` side (`emit_to_room`). Emits may arrive from
    worker threads (sync request handlers, persistence calls made off the loop);
    they are replayed on the gateway's loop in call order so the room directory
    is never shared across threads.
    """

    def __init__(self, verifier: TokenVerifier, chat_scope: ChatScope, clock: Callable[[], datetime] = datetime.utcnow) -> None:
        self.verifier = verifier
        self.chat_scope = chat_scope
        self.clock = clock
        self.rooms: RoomDirectory[Connection] = RoomDirectory()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._handlers: Dict[str, Callable[[Connection, dict], Awaitable[None]]] = {
            "join_chat": self._join_chat,
            "leave_chat": self._leave_chat,
            "send_message": self._send_message,
        }

    # ------------------------
    # Notifier
    # ------------------------
    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def emit_to_room(self, room: str, event: str, payload: Any = None) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            # Nobody has connected yet, so no room has members
            return
        data = jsonable_encoder(payload)
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self._fan_out(room, event, data)
        else:
            loop.call_soon_threadsafe(self._fan_out, room, event, data)

    def _fan_out(self, room: str, event: str, data: Any) -> int:
        members = self.rooms.members(room)
        for connection in members:
            connection.push(event, data)
        logger.debug(f"Emitted {event} to {room} ({len(members)} connections)")
        return len(members)

    # ------------------------
    # Connection lifecycle
    # ------------------------
    async def handle(self, websocket: WebSocket) -> None:
        self.bind_loop(asyncio.get_running_loop())
        connection = Connection(websocket)

        connection.state = ConnectionState.AUTHENTICATING
        try:
            claims = self.verifier.verify(extract_token(websocket))
            actor, conversations = await asyncio.to_thread(self._load_identity, claims)
        except AuthError as e:
            logger.warning(f"WebSocket authentication failed: {e.detail}")
            await self._refuse(connection, AUTH_CLOSE_CODE, str(e.detail))
            return
        except StorageError as e:
            logger.error(f"WebSocket handshake storage failure: {e.detail}")
            await self._refuse(connection, SERVER_ERROR_CLOSE_CODE, public_message(e))
            return

        connection.claims = claims
        connection.actor = actor
        await websocket.accept()
        connection.state = ConnectionState.JOINED
        user_id = actor.id
        self.rooms.join(connection, personal_room(user_id))
        for conversation in conversations:
            self.rooms.join(connection, chat_room(conversation.id))
        logger.info(f"User {claims.name or user_id} connected with socket ID: {connection.id}")
        connection.push("connected", {"user_id": user_id, "rooms": sorted(self.rooms.rooms_of(connection))})

        reader = asyncio.create_task(self._read(connection))
        writer = asyncio.create_task(connection.pump())
        try:
            await asyncio.wait({reader, writer}, return_when=asyncio.FIRST_COMPLETED)
            if reader.done() and not reader.cancelled() and reader.exception() is None:
                # Closed from our side; let the writer flush the close frame
                await asyncio.wait({writer})
        finally:
            connection.state = ConnectionState.CLOSED
            self.rooms.discard(connection)
            for task in (reader, writer):
                if not task.done():
                    task.cancel()
            results = await asyncio.gather(reader, writer, return_exceptions=True)
            for name, result in zip(("reader", "writer"), results):
                if isinstance(result, Exception) and not isinstance(result, WebSocketDisconnect):
                    logger.warning(f"WebSocket {name} for {connection.id} failed: {result!r}")
            logger.info(f"User {claims.name or user_id} disconnected")

    async def _refuse(self, connection: Connection, code: int, reason: str) -> None:
        # Accept first so the close code reaches the client instead of a bare HTTP 403
        connection.state = ConnectionState.CLOSED
        await connection.websocket.accept()
        await connection.websocket.close(code=code, reason=reason)

    async def _read(self, connection: Connection) -> None:
        while connection.state == ConnectionState.JOINED:
            raw = await connection.websocket.receive_text()
            await self.dispatch(connection, raw)

    def _load_identity(self, claims: Claims):
        """Blocking lookups for the handshake; runs in a worker thread."""
        with self.chat_scope(self) as chat:
            user = chat.users.get_by_id(claims.id)
            if not user:
                raise AuthError("User not found")
            actor = actor_from_user(user)
            conversations = chat.list_conversations(actor)
        return actor, conversations

    # ------------------------
    # Client actions
    # ------------------------
    async def dispatch(self, connection: Connection, raw: str) -> None:
        if connection.claims.is_expired(self.clock()):
            connection.push("error", {"code": AuthError.code, "message": "Session expired"})
            connection.state = ConnectionState.CLOSED
            connection.close(AUTH_CLOSE_CODE)
            return

        try:
            frame = json.loads(raw)
        except ValueError:
            self._reject(connection, InvalidInput("Malformed frame"))
            return
        if not isinstance(frame, dict):
            self._reject(connection, InvalidInput("Malformed frame"))
            return

        event = frame.get("event")
        data = frame.get("data") or {}
        handler = self._handlers.get(event)
        if handler is None:
            self._reject(connection, InvalidInput(f"Unknown event: {event}"))
            return
        if not isinstance(data, dict):
            self._reject(connection, InvalidInput("Event data must be an object"))
            return

        try:
            await handler(connection, data)
        except APIException as e:
            self._reject(connection, e)

    async def _join_chat(self, connection: Connection, data: dict) -> None:
        chat_id = data.get("chat_id")
        if not chat_id:
            raise InvalidInput("chat_id is required")
        await asyncio.to_thread(self._check_access, connection.actor, chat_id)
        if connection.state != ConnectionState.JOINED:
            return
        self.rooms.join(connection, chat_room(chat_id))
        connection.push("chat_joined", {"chat_id": chat_id})

    async def _leave_chat(self, connection: Connection, data: dict) -> None:
        chat_id = data.get("chat_id")
        if not chat_id:
            raise InvalidInput("chat_id is required")
        self.rooms.leave(connection, chat_room(chat_id))
        connection.push("chat_left", {"chat_id": chat_id})

    async def _send_message(self, connection: Connection, data: dict) -> None:
        chat_id = data.get("chat_id")
        if not chat_id:
            raise InvalidInput("chat_id is required")
        # Fan-out from the worker thread is marshalled back through emit_to_room
        await asyncio.to_thread(self._append, connection.actor, chat_id, data.get("content"))

    def _check_access(self, actor: Actor, chat_id: str) -> None:
        with self.chat_scope(self) as chat:
            chat.get_conversation(actor, chat_id)

    def _append(self, actor: Actor, chat_id: str, content) -> None:
        with self.chat_scope(self) as chat:
            chat.append_message(actor, chat_id, content)

    def _reject(self, connection: Connection, error: APIException) -> None:
        # Rejections go back to the sender only
        connection.push("error", {"code": error.code, "message": public_message(error)})
