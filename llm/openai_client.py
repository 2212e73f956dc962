import logging
from typing import Any, AsyncIterator, Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError

from base import CompletionProvider
from config import NO_ANSWER
from config.settings import OpenAIConfig
from errors import UpstreamError
from models import ProviderReply, ToolCallRequest
from prompts import PROMPTS


class OpenAIProvider(CompletionProvider):
    """Chat-completions provider with function calling.

    One attempt per call, bounded by ``request_timeout_seconds``.
    """

    def __init__(self, cfg: OpenAIConfig, client: Optional[AsyncOpenAI] = None):
        self.cfg = cfg
        self._client = client
        self.logger = logging.getLogger("app")

    @property
    def client(self) -> AsyncOpenAI:
        # built on first use so the app can start without OPENAI_API_KEY
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.cfg.api_key or None, max_retries=0)
        return self._client

    def _with_system(self, messages: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if messages and messages[0].get("role") == "system":
            return messages
        system = self.cfg.system_prompt or PROMPTS["system"].strip()
        return [{"role": "system", "content": system}, *messages]

    async def _create(self, **kwargs: Any) -> Any:
        try:
            return await self.client.chat.completions.create(
                model=self.cfg.chat_model,
                temperature=self.cfg.temperature,
                timeout=self.cfg.request_timeout_seconds,
                **kwargs,
            )
        except OpenAIError as e:
            self.logger.warning(f"OpenAI request failed: {e}")
            raise UpstreamError(f"completion provider failed: {e}", status_code=getattr(e, "status_code", None))

    async def respond(self, messages: List[Dict[str, Any]], tools: Optional[List[Dict[str, Any]]] = None) -> ProviderReply:
        kwargs: Dict[str, Any] = {"messages": self._with_system(messages)}
        if tools:
            kwargs["tools"] = [{"type": "function", "function": spec} for spec in tools]
        resp = await self._create(**kwargs)
        if not resp.choices:
            return ProviderReply()
        message = resp.choices[0].message
        if message.tool_calls:
            call = message.tool_calls[0]
            if len(message.tool_calls) > 1:
                self.logger.warning(f"Provider requested {len(message.tool_calls)} tool calls; running the first")
            return ProviderReply(
                tool_call=ToolCallRequest(id=call.id, name=call.function.name, arguments=call.function.arguments)
            )
        return ProviderReply(text=message.content)

    async def complete(self, prompt: str) -> str:
        resp = await self._create(messages=self._with_system([{"role": "user", "content": prompt}]))
        if not resp.choices:
            return NO_ANSWER
        return resp.choices[0].message.content or NO_ANSWER

    async def stream(self, messages: List[Dict[str, Any]]) -> AsyncIterator[str]:
        stream = await self._create(messages=self._with_system(messages), stream=True)
        try:
            async for chunk in stream:
                if chunk.choices and chunk.choices[0].delta.content:
                    yield chunk.choices[0].delta.content
        except OpenAIError as e:
            raise UpstreamError(f"completion stream failed: {e}")
