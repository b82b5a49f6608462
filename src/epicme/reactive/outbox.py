"""Outbound notification channel between the reactive layer and MCP sessions.

Producers (capability gate, subscription registry) enqueue without
waiting; a consumer task delivers to every attached session.

Delivery semantics:

- FIFO over a single memory stream; delivery is serialized under a lock,
  so two notifications about the same identity never arrive out of order
  even when several consumers run.
- At-most-once: a message is dropped (and logged) when no session is
  attached or a send fails.
- A list-changed message for a category that is still queued is not
  queued again; one pending "re-fetch" covers both.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass
from typing import Any, Literal, Protocol

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from mcp import types
from pydantic import AnyUrl

logger = logging.getLogger(__name__)

ListCategory = Literal["prompts", "resources", "tools"]


@dataclass(frozen=True)
class ListChanged:
    """Bulk signal: re-fetch the list of this category."""

    category: ListCategory


@dataclass(frozen=True)
class ResourceUpdated:
    """Point signal for one identity."""

    uri: str
    label: str


Notification = ListChanged | ResourceUpdated


class NotificationSink(Protocol):
    """What producers need: non-blocking enqueue of the two signal kinds."""

    def list_changed(self, category: ListCategory) -> None: ...

    def resource_updated(self, uri: str, label: str) -> None: ...


class NotificationOutbox:
    """Queue of pending notifications plus the set of sessions to deliver to."""

    def __init__(self) -> None:
        send: MemoryObjectSendStream[Notification]
        receive: MemoryObjectReceiveStream[Notification]
        send, receive = anyio.create_memory_object_stream(max_buffer_size=math.inf)
        self._send = send
        self._receive = receive
        self._sessions: list[Any] = []
        self._pending_lists: set[ListCategory] = set()
        self._inflight: deque[Notification] = deque()
        self._lock = anyio.Lock()

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def attach(self, session: Any) -> None:
        """Start delivering to *session* (idempotent)."""
        if not any(s is session for s in self._sessions):
            self._sessions.append(session)
            logger.debug("Attached session %r", session)

    def detach(self, session: Any) -> None:
        self._sessions = [s for s in self._sessions if s is not session]

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    # ------------------------------------------------------------------
    # Producers
    # ------------------------------------------------------------------

    def list_changed(self, category: ListCategory) -> None:
        if category in self._pending_lists:
            return
        self._pending_lists.add(category)
        self._send.send_nowait(ListChanged(category))

    def resource_updated(self, uri: str, label: str) -> None:
        self._send.send_nowait(ResourceUpdated(uri, label))

    # ------------------------------------------------------------------
    # Consumer
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Deliver queued notifications until the outbox is closed."""
        while True:
            try:
                message = await self._receive.receive()
            except (anyio.EndOfStream, anyio.ClosedResourceError):
                return
            self._inflight.append(message)
            async with self._lock:
                await self._flush()

    async def drain(self) -> int:
        """Deliver everything currently queued. Returns the number delivered."""
        async with self._lock:
            delivered = await self._flush()
            while True:
                try:
                    message = self._receive.receive_nowait()
                except (anyio.WouldBlock, anyio.EndOfStream, anyio.ClosedResourceError):
                    return delivered
                self._inflight.append(message)
                delivered += await self._flush()

    def close(self) -> None:
        self._send.close()

    async def _flush(self) -> int:
        # Messages taken off the stream but not yet delivered, oldest first.
        delivered = 0
        while self._inflight:
            await self._deliver(self._inflight.popleft())
            delivered += 1
        return delivered

    async def _deliver(self, message: Notification) -> None:
        if isinstance(message, ListChanged):
            self._pending_lists.discard(message.category)
        if not self._sessions:
            logger.debug("No session attached, dropping %s", message)
            return
        for session in list(self._sessions):
            try:
                await _send(session, message)
            except (anyio.BrokenResourceError, anyio.ClosedResourceError):
                logger.debug("Session %r is gone, detaching", session)
                self.detach(session)
            except Exception:
                logger.warning("Failed to deliver %s", message, exc_info=True)


async def _send(session: Any, message: Notification) -> None:
    if isinstance(message, ResourceUpdated):
        params = types.ResourceUpdatedNotificationParams(
            uri=AnyUrl(message.uri),
            title=message.label,
        )
        await session.send_notification(
            types.ServerNotification(types.ResourceUpdatedNotification(params=params))
        )
    elif message.category == "prompts":
        await session.send_prompt_list_changed()
    elif message.category == "resources":
        await session.send_resource_list_changed()
    else:
        await session.send_tool_list_changed()
