"""Streaming chat session controller.

One `ChatStreamSession` serves one POST /api/chat request:

    AUTHORIZING -> PERSISTING_INBOUND -> ASSEMBLING    (before the response)
    INVOKING -> RELAYING -> FINALIZING_SUCCESS | FINALIZING_ERROR -> CLOSED

Everything up to ASSEMBLING runs inside the request handler, so a rejected
request gets a plain HTTP error and writes nothing. The remaining states run
in a worker task that feeds encoded frames to the response body through a
queue. If the client goes away the response generator stops reading, but the
worker keeps draining the backend and always writes the outbound turn.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from dataclasses import asdict, dataclass
from enum import StrEnum

import structlog

from bucketwise.auth.context import Principal
from bucketwise.chat.context import assemble_context
from bucketwise.chat.frames import (
    DoneFrame,
    ErrorFrame,
    TokenFrame,
    encode_frame,
    wrap_error_message,
)
from bucketwise.chat.ownership import authorize_node
from bucketwise.chat.providers.base import ChatProvider
from bucketwise.chat.repositories import ConversationStore, DirectiveStore, TenantLookup
from bucketwise.errors import ProviderError
from bucketwise.models.chat import NodeKind, PromptMessage, Turn, TurnRole

log = structlog.get_logger()


class SessionState(StrEnum):
    AUTHORIZING = "authorizing"
    PERSISTING_INBOUND = "persisting_inbound"
    ASSEMBLING = "assembling"
    INVOKING = "invoking"
    RELAYING = "relaying"
    FINALIZING_SUCCESS = "finalizing_success"
    FINALIZING_ERROR = "finalizing_error"
    CLOSED = "closed"


@dataclass
class ChatMetrics:
    """Process-wide chat counters, reported by the health endpoint."""

    streams_started: int = 0
    streams_completed: int = 0
    streams_failed: int = 0
    client_disconnects: int = 0
    outbound_persist_failures: int = 0

    def snapshot(self) -> dict[str, int]:
        return asdict(self)


class DetachedWorkers:
    """Workers still writing a reply after their client went away.

    Owned by the app lifespan, which drains them before closing the backend
    and the database.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def add(self, task: asyncio.Task[None]) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self, timeout: float) -> int:
        """Wait up to `timeout` seconds, then cancel stragglers.

        Returns:
            How many workers had to be cancelled.
        """
        if not self._tasks:
            return 0
        log.info("chat_workers_draining", workers=len(self._tasks), timeout=timeout)
        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            log.warning("chat_workers_cancelled", workers=len(pending))
        return len(pending)


class ChatStreamSession:
    """Drive one chat turn from authorization to the terminal frame."""

    def __init__(
        self,
        *,
        principal: Principal,
        tenants: TenantLookup,
        directives: DirectiveStore,
        conversations: ConversationStore,
        provider: ChatProvider,
        workers: DetachedWorkers,
        metrics: ChatMetrics | None = None,
    ) -> None:
        self.principal = principal
        self.tenants = tenants
        self.directives = directives
        self.conversations = conversations
        self.provider = provider
        self.workers = workers
        self.metrics = metrics or ChatMetrics()

        self.state = SessionState.AUTHORIZING
        self.history: list[SessionState] = [SessionState.AUTHORIZING]
        self.parent_id: str | None = None
        self.parent_kind: NodeKind | None = None
        self.inbound: Turn | None = None
        self.outbound: Turn | None = None
        self.client_disconnected = False
        self._messages: list[PromptMessage] = []
        self._worker: asyncio.Task[None] | None = None
        self._queue: asyncio.Queue[str | None] | None = None

    def _enter(self, state: SessionState) -> None:
        self.state = state
        self.history.append(state)

    # -- pre-response ---------------------------------------------------------

    async def authorize(self, parent_id: str, parent_type: str) -> NodeKind:
        """Reject the request unless the principal owns the addressed node.

        Raises:
            NodeAccessDeniedError: unknown kind, unknown node, or foreign project.
        """
        self.parent_kind = await authorize_node(
            self.tenants, self.principal, parent_id, parent_type
        )
        self.parent_id = parent_id
        return self.parent_kind

    async def prepare(self, parent_id: str, parent_type: str, content: str) -> None:
        """Authorize, persist the user's turn, and build the backend context.

        Any exception raised here happens before the response starts and
        leaves nothing written unless the inbound turn was committed.
        """
        parent_kind = await self.authorize(parent_id, parent_type)

        self._enter(SessionState.PERSISTING_INBOUND)
        self.inbound = await self.conversations.append(
            parent_id, parent_kind, TurnRole.USER, content, extractable=False
        )

        self._enter(SessionState.ASSEMBLING)
        self._messages = await assemble_context(
            self.directives, self.conversations, parent_id, parent_kind
        )

    # -- response body --------------------------------------------------------

    async def frames(self) -> AsyncIterator[str]:
        """Encoded frames for the response body.

        The backend is driven by a separate task so that cancelling this
        generator (client disconnect) never cancels the backend call or the
        outbound write.
        """
        if self.inbound is None:
            raise RuntimeError("prepare() must complete before streaming")

        self._queue = asyncio.Queue()
        self._worker = asyncio.create_task(self._run())
        try:
            while True:
                frame = await self._queue.get()
                if frame is None:
                    return
                yield frame
        finally:
            if not self._worker.done():
                self.client_disconnected = True
                self.metrics.client_disconnects += 1
                log.info(
                    "chat_client_disconnected",
                    parent_id=self.parent_id,
                    parent_type=self.parent_kind,
                    state=self.state.value,
                )
                while not self._queue.empty():
                    self._queue.get_nowait()
                self.workers.add(self._worker)

    async def wait_closed(self) -> None:
        """Wait for the worker to finish writing the outbound turn."""
        if self._worker is not None:
            await self._worker

    async def _run(self) -> None:
        assert self.parent_id is not None and self.parent_kind is not None
        self.metrics.streams_started += 1
        log.info(
            "chat_stream_started",
            parent_id=self.parent_id,
            parent_type=self.parent_kind.value,
            provider=self.provider.name,
            context_messages=len(self._messages),
        )
        self._enter(SessionState.INVOKING)
        fragments: list[str] = []
        try:
            try:
                async for fragment in self.provider.stream_completion(self._messages):
                    if self.state is SessionState.INVOKING:
                        self._enter(SessionState.RELAYING)
                    fragments.append(fragment)
                    self._emit(encode_frame(TokenFrame(text=fragment)))
            except Exception as e:
                if isinstance(e, ProviderError):
                    message = e.message
                else:
                    message = str(e) or type(e).__name__
                log.warning(
                    "chat_provider_failed",
                    parent_id=self.parent_id,
                    provider=self.provider.name,
                    tokens_relayed=len(fragments),
                    error=message,
                    exc_info=not isinstance(e, ProviderError),
                )
                self._emit(await self._finalize_error(message))
                return
            self._emit(await self._finalize_success("".join(fragments)))
        finally:
            self._enter(SessionState.CLOSED)
            self._emit(None)

    def _emit(self, frame: str | None) -> None:
        # Nobody reads the queue once the client is gone.
        if self._queue is not None and not self.client_disconnected:
            self._queue.put_nowait(frame)

    async def _finalize_success(self, reply: str) -> str:
        self._enter(SessionState.FINALIZING_SUCCESS)
        assert self.inbound is not None
        self.outbound = await self._persist_outbound(reply, extractable=True)
        self.metrics.streams_completed += 1
        log.info(
            "chat_stream_completed",
            parent_id=self.parent_id,
            user_message_id=self.inbound.id,
            ai_message_id=self.outbound.id if self.outbound else None,
            length=len(reply),
            client_connected=not self.client_disconnected,
        )
        return encode_frame(
            DoneFrame(
                user_message_id=self.inbound.id,
                ai_message_id=self.outbound.id if self.outbound else "",
            )
        )

    async def _finalize_error(self, message: str) -> str:
        self._enter(SessionState.FINALIZING_ERROR)
        self.outbound = await self._persist_outbound(wrap_error_message(message), extractable=False)
        self.metrics.streams_failed += 1
        return encode_frame(ErrorFrame(message=message))

    async def _persist_outbound(self, content: str, *, extractable: bool) -> Turn | None:
        assert self.parent_id is not None and self.parent_kind is not None
        try:
            return await self.conversations.append(
                self.parent_id,
                self.parent_kind,
                TurnRole.ASSISTANT,
                content,
                extractable=extractable,
            )
        except Exception:
            self.metrics.outbound_persist_failures += 1
            log.exception(
                "chat_outbound_persist_failed",
                parent_id=self.parent_id,
                parent_type=self.parent_kind.value,
                extractable=extractable,
            )
            return None
