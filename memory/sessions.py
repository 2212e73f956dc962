import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from errors import SessionExistsError
from models import StreamFrame

UTC = timezone.utc

_CLOSED = object()


class StreamingChannel:
    """Per-session output sink.

    Frames are queued in send order and drained by the HTTP stream. A turn
    accepts frames until one of them carries ``done=True``; anything sent
    after that, or outside a turn, is dropped.
    """

    def __init__(self, session_id: str, on_close: Optional[Callable[["StreamingChannel"], None]] = None):
        self.session_id = session_id
        self._on_close = on_close
        self._queue: "asyncio.Queue[Any]" = asyncio.Queue()
        self._opened = False
        self._closed = False
        self._turn_open = False
        self.logger = logging.getLogger("app")

    @property
    def is_open(self) -> bool:
        return self._opened and not self._closed

    @property
    def closed(self) -> bool:
        return self._closed

    def open(self) -> "StreamingChannel":
        self._opened = True
        return self

    def begin_turn(self) -> None:
        self._turn_open = True

    def send(self, frame: StreamFrame) -> bool:
        if not self.is_open:
            self.logger.warning(f"Dropping frame for closed channel {self.session_id}")
            return False
        if not self._turn_open:
            self.logger.warning(f"Dropping frame outside an open turn on {self.session_id}")
            return False
        self._queue.put_nowait(frame)
        if frame.done:
            self._turn_open = False
        return True

    async def receive(self, timeout: Optional[float] = None) -> Optional[StreamFrame]:
        """Wait for the next frame; None on timeout or once the channel closes."""
        if self._closed and self._queue.empty():
            return None
        try:
            if timeout is None:
                item = await self._queue.get()
            else:
                item = await asyncio.wait_for(self._queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None
        if item is _CLOSED:
            return None
        return item

    async def frames(self, idle_timeout: Optional[float] = None) -> AsyncIterator[Optional[StreamFrame]]:
        """Yield frames until the channel closes; None marks an idle period."""
        while True:
            frame = await self.receive(timeout=idle_timeout)
            if frame is None and self._closed:
                return
            yield frame

    def drain(self) -> List[StreamFrame]:
        """Pop every queued frame without waiting."""
        frames = []
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if item is not _CLOSED:
                frames.append(item)
        return frames

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._turn_open = False
        self._queue.put_nowait(_CLOSED)
        if self._on_close is not None:
            self._on_close(self)


@dataclass
class Session:
    id: str
    channel: StreamingChannel
    created_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    history: List[Dict[str, Any]] = field(default_factory=list)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class SessionRegistry:
    """In-memory map of session id to its open stream, scoped to the process."""

    def __init__(self):
        self._sessions: Dict[str, Session] = {}
        self.logger = logging.getLogger("app")

    def create(self, session_id: str) -> Session:
        if session_id in self._sessions:
            raise SessionExistsError(f"session {session_id} already has an open stream")
        channel = StreamingChannel(session_id, on_close=self._channel_closed).open()
        session = Session(id=session_id, channel=channel)
        self._sessions[session_id] = session
        self.logger.info("Session opened", extra={"extra_data": {"session_id": session_id}})
        return session

    def _channel_closed(self, channel: StreamingChannel) -> None:
        session = self._sessions.get(channel.session_id)
        if session is not None and session.channel is channel:
            self.remove(channel.session_id)

    def lookup(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return
        self.logger.info("Session closed", extra={"extra_data": {"session_id": session_id}})
        session.channel.close()

    def ids(self) -> List[str]:
        return list(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
