"""Session Transport Manager.

Turns stateless HTTP requests into session-scoped protocol conversations.
Each session owns exactly one protocol engine and one transport; both are
created on an initialize call that carries no session id and destroyed
together when the transport closes.

Session lifecycle: absent -> active -> closed. Closed is terminal and a
session id is never reused.
"""

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional

from shared.logging import get_logger
from shared.models import (
    JsonRpcErrorCode,
    RequestContext,
    jsonrpc_error,
    utcnow,
)
from gateway.protocol import ProtocolEngine, is_initialize_request

logger = get_logger(__name__)

SESSION_ID_HEADER = "mcp-session-id"
BAD_REQUEST_MESSAGE = "Bad Request: invalid session ID or method"
INTERNAL_ERROR_MESSAGE = "Internal server error"


def generate_session_id() -> str:
    return str(uuid.uuid4())


class SessionState(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"


@dataclass
class TransportResponse:
    """What the HTTP layer should send back."""
    status_code: int
    payload: Any = None
    headers: dict[str, str] = field(default_factory=dict)


class SessionTransport:
    """
    Binds one protocol engine to the HTTP request stream of one session.

    The session id is assigned only once the engine has successfully
    answered an initialize request.
    """

    def __init__(
        self,
        engine: ProtocolEngine,
        session_id_generator: Callable[[], str] = generate_session_id
    ) -> None:
        self.engine = engine
        self.session_id: Optional[str] = None
        self.closed = False
        self._generate_session_id = session_id_generator
        self._close_callbacks: list[Callable[[], None]] = []

    def on_close(self, callback: Callable[[], None]) -> None:
        self._close_callbacks.append(callback)

    async def handle_request(self, body: Any, context: RequestContext) -> TransportResponse:
        """Dispatch a single message or a batch to the engine."""
        if self.closed:
            return TransportResponse(
                400, jsonrpc_error(None, JsonRpcErrorCode.BAD_REQUEST, BAD_REQUEST_MESSAGE)
            )

        is_batch = isinstance(body, list)
        messages = body if is_batch else [body]
        if not messages:
            return TransportResponse(
                400, jsonrpc_error(None, JsonRpcErrorCode.INVALID_REQUEST, "Invalid Request")
            )

        responses = []
        for message in messages:
            initializing = is_initialize_request(message)
            if initializing and self.session_id is not None:
                response = jsonrpc_error(
                    message.get("id"),
                    JsonRpcErrorCode.INVALID_REQUEST,
                    "Invalid Request: session already initialized"
                )
            else:
                response = await self.engine.handle_message(message, context)
                if initializing and response and "result" in response:
                    self.session_id = self._generate_session_id()

            if response is not None:
                responses.append(response)

        headers = {SESSION_ID_HEADER: self.session_id} if self.session_id else {}

        if not responses:
            return TransportResponse(202, None, headers)
        return TransportResponse(200, responses if is_batch else responses[0], headers)

    def close(self) -> None:
        """Close the transport. Idempotent; callbacks fire once."""
        if self.closed:
            return
        self.closed = True
        callbacks, self._close_callbacks = self._close_callbacks, []
        for callback in callbacks:
            callback()


@dataclass
class Session:
    """One client conversation: an id bound to its engine and transport."""
    id: str
    engine: ProtocolEngine
    transport: SessionTransport
    created_at: datetime = field(default_factory=utcnow)
    closed_at: Optional[datetime] = None

    @property
    def state(self) -> SessionState:
        return SessionState.CLOSED if self.closed_at else SessionState.ACTIVE


class SessionStore:
    """
    Active-session map.

    Only mutated from synchronous methods, so under asyncio's cooperative
    scheduling every add/remove runs without interleaving. The check-then-insert
    in ``add`` relies on this; running the store on a preemptive (threaded)
    server would require guarding it with a lock.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    def add(self, session: Session) -> None:
        if session.id in self._sessions:
            raise ValueError(f"Session '{session.id}' is already registered")
        self._sessions[session.id] = session

    def get(self, session_id: str) -> Optional[Session]:
        """Return the session if it is active."""
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> Optional[Session]:
        """Remove a session; unknown ids are ignored."""
        return self._sessions.pop(session_id, None)

    def ids(self) -> list[str]:
        return list(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions


class SessionManager:
    """
    Routes protocol traffic to sessions.

    - Known session id: hand the body to that session's transport.
    - No session id and an initialize body: create engine + transport,
      process the request, register the session if it got an id.
    - Anything else: JSON-RPC error -32000.
    """

    def __init__(
        self,
        engine_factory: Callable[[], ProtocolEngine],
        store: Optional[SessionStore] = None,
        session_id_generator: Callable[[], str] = generate_session_id
    ) -> None:
        self.engine_factory = engine_factory
        self.store = store if store is not None else SessionStore()
        self.session_id_generator = session_id_generator

    async def handle_post(
        self,
        raw_body: bytes,
        session_id: Optional[str],
        context: RequestContext
    ) -> TransportResponse:
        """
        Handle one POST to the protocol endpoint.

        Never raises: unexpected exceptions become a 500 with -32603.
        """
        try:
            body = json.loads(raw_body)
        except (ValueError, UnicodeDecodeError):
            logger.warning("Unparseable protocol request", session_id=session_id)
            return TransportResponse(
                400, jsonrpc_error(None, JsonRpcErrorCode.PARSE_ERROR, "Parse error")
            )

        try:
            return await self._dispatch(body, session_id, context)
        except Exception as e:
            logger.error(
                "Error handling protocol request",
                session_id=session_id,
                error=str(e),
                exc_info=True
            )
            return TransportResponse(
                500,
                jsonrpc_error(None, JsonRpcErrorCode.INTERNAL_ERROR, INTERNAL_ERROR_MESSAGE)
            )

    async def _dispatch(
        self,
        body: Any,
        session_id: Optional[str],
        context: RequestContext
    ) -> TransportResponse:
        if session_id:
            session = self.store.get(session_id)
            if session is None:
                logger.info("Rejected unknown session", session_id=session_id)
                return self._bad_request(body)
            return await session.transport.handle_request(
                body, context.model_copy(update={"session_id": session_id})
            )

        if not is_initialize_request(body):
            return self._bad_request(body)

        engine = self.engine_factory()
        transport = SessionTransport(engine, self.session_id_generator)
        response = await transport.handle_request(body, context)

        if transport.session_id:
            session = Session(id=transport.session_id, engine=engine, transport=transport)
            self.store.add(session)
            transport.on_close(lambda: self._on_session_closed(session))
            logger.info(
                "Session established",
                session_id=session.id,
                tenant=context.tenant.base_url,
                active_sessions=len(self.store)
            )

        return response

    def _on_session_closed(self, session: Session) -> None:
        if session.closed_at is None:
            session.closed_at = utcnow()
        self.store.remove(session.id)
        logger.info("Session closed", session_id=session.id, active_sessions=len(self.store))

    def terminate(self, session_id: str) -> bool:
        """
        Close a session on explicit client request.

        Returns:
            True if an active session was closed
        """
        session = self.store.get(session_id)
        if session is None:
            return False
        session.transport.close()
        return True

    def close_all(self) -> None:
        """Close every active session, e.g. at shutdown."""
        for session_id in self.store.ids():
            self.terminate(session_id)

    def bad_request_response(self) -> TransportResponse:
        return self._bad_request(None)

    @staticmethod
    def _bad_request(body: Any) -> TransportResponse:
        request_id = body.get("id") if isinstance(body, dict) else None
        return TransportResponse(
            400,
            jsonrpc_error(request_id, JsonRpcErrorCode.BAD_REQUEST, BAD_REQUEST_MESSAGE)
        )
