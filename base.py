from abc import ABC, abstractmethod
from typing import (
    Any,
    AsyncIterator,
    Dict,
    List,
    Optional
)

from models import ProviderReply


class CompletionProvider(ABC):

    @abstractmethod
    async def respond(self, messages: List[Dict[str, Any]], tools: Optional[List[Dict[str, Any]]] = None) -> ProviderReply:
        """Answer a conversation with text or a tool call"""

    @abstractmethod
    async def complete(self, prompt: str) -> str:
        """Answer a single prompt with text"""

    async def stream(self, messages: List[Dict[str, Any]]) -> AsyncIterator[str]:
        """Yield the answer to a conversation token by token.

        Providers without native streaming yield their whole reply at once.
        """
        reply = await self.respond(messages)
        if reply.text:
            yield reply.text
