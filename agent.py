import logging
import time
import uuid
from typing import Any, Dict, List, Optional

from base import CompletionProvider
from config.settings import Settings
from errors import SessionNotFoundError, UpstreamError
from memory.sessions import Session, SessionRegistry
from metrics import TURN_LATENCY
from models import ProviderReply, StreamFrame, ToolCallRequest, ToolOutcome
from prompts import PROMPTS
from tools.registry import ToolDispatcher


class ConversationRouter:
    """Runs one inbound message through provider, tools and back to the stream.

    Turns for the same session are serialized on the session lock; a second
    message waits until the first one has been delivered.
    """

    name = "ConversationRouter"

    def __init__(
        self,
        sessions: SessionRegistry,
        dispatcher: ToolDispatcher,
        provider: CompletionProvider,
        settings: Settings,
    ):
        self.sessions = sessions
        self.dispatcher = dispatcher
        self.provider = provider
        self.settings = settings
        self.logger = logging.getLogger("app")

    def log(self, request_id: str, session_id: str, msg: str, level: str = "info"):
        extra = {'extra_data': {"request_id": request_id, "session_id": session_id, "agent": self.name}}
        getattr(self.logger, level)(msg, extra=extra)

    async def handle(self, session_id: str, content: str, request_id: Optional[str] = None) -> bool:
        """Process one message. Returns True when a terminal frame was delivered."""
        request_id = request_id or str(uuid.uuid4())
        try:
            session = self._require(session_id)
        except SessionNotFoundError:
            self.log(request_id, session_id, "No open stream for session; dropping message", "warning")
            return False

        async with session.lock:
            # the stream may have closed while this message was queued
            if self.sessions.lookup(session_id) is not session or not session.channel.is_open:
                self.log(request_id, session_id, "Session closed before turn started; dropping message", "warning")
                return False
            start = time.perf_counter()
            session.channel.begin_turn()
            try:
                return await self._run_turn(session, content, request_id)
            finally:
                TURN_LATENCY.observe(time.perf_counter() - start)

    def _require(self, session_id: str) -> Session:
        session = self.sessions.lookup(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    async def _run_turn(self, session: Session, content: str, request_id: str) -> bool:
        history = session.history
        history.append({"role": "user", "content": content})
        self._trim(history)

        answer: Optional[str] = None
        reply = await self._query(request_id, session.id, history, self.dispatcher.registry.catalog())

        if reply.tool_call is not None:
            outcome = await self._run_tool(session, reply.tool_call, request_id)
            if self.settings.stream.stream_tokens:
                answer = await self._stream_answer(session, request_id)
                if answer is not None:
                    history.append({"role": "assistant", "content": answer})
                    return session.channel.is_open
            else:
                final = await self._query(request_id, session.id, history)
                answer = final.text if final.text and final.text.strip() else None
            if answer is None:
                answer = outcome.as_content() if outcome.ok else PROMPTS["tool_failure"].format(error=outcome.error)
        elif reply.text and reply.text.strip():
            answer = reply.text

        if answer is None and content.strip():
            self.log(request_id, session.id, "Provider produced no output; falling back to direct completion")
            try:
                answer = await self.provider.complete(content)
            except UpstreamError as e:
                self.log(request_id, session.id, f"Fallback completion failed: {e.message}", "warning")
                answer = PROMPTS["no_answer"]

        if answer is None:
            self.log(request_id, session.id, "Nothing to deliver for this turn")
            return False

        history.append({"role": "assistant", "content": answer})
        return self._deliver(session, request_id, StreamFrame(content=answer, done=True))

    async def _query(
        self,
        request_id: str,
        session_id: str,
        history: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> ProviderReply:
        try:
            return await self.provider.respond(list(history), tools)
        except UpstreamError as e:
            self.log(request_id, session_id, f"Provider query failed: {e.message}", "warning")
            return ProviderReply()

    async def _run_tool(self, session: Session, call: ToolCallRequest, request_id: str) -> ToolOutcome:
        self.log(request_id, session.id, f"Dispatching tool {call.name}")
        outcome = await self.dispatcher.dispatch(call.name, call.arguments, session_id=session.id)
        session.history.append({
            "role": "assistant",
            "content": None,
            "tool_calls": [{
                "id": call.id,
                "type": "function",
                "function": {"name": call.name, "arguments": call.arguments_json()},
            }],
        })
        session.history.append({"role": "tool", "tool_call_id": call.id, "content": outcome.as_content()})
        return outcome

    async def _stream_answer(self, session: Session, request_id: str) -> Optional[str]:
        """Stream the requery token by token; the last token carries done=True."""
        pending: Optional[str] = None
        parts: List[str] = []
        try:
            async for token in self.provider.stream(list(session.history)):
                if not token:
                    continue
                if pending is not None:
                    self._deliver(session, request_id, StreamFrame(content=pending, done=False))
                pending = token
                parts.append(token)
        except UpstreamError as e:
            self.log(request_id, session.id, f"Provider stream failed: {e.message}", "warning")
        if pending is None:
            return None
        self._deliver(session, request_id, StreamFrame(content=pending, done=True))
        return "".join(parts)

    def _deliver(self, session: Session, request_id: str, frame: StreamFrame) -> bool:
        sent = session.channel.send(frame)
        if not sent:
            self.log(request_id, session.id, "Stream closed mid-turn; frame dropped", "warning")
        elif frame.done:
            self.log(request_id, session.id, "Delivered answer")
        return sent

    def _trim(self, history: List[Dict[str, Any]]) -> None:
        user_turns = [i for i, m in enumerate(history) if m.get("role") == "user"]
        excess = len(user_turns) - self.settings.orchestrator.max_history_turns
        if excess <= 0:
            return
        if excess >= len(user_turns):
            history.clear()
        else:
            del history[: user_turns[excess]]
