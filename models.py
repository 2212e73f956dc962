import json
import uuid
from dataclasses import dataclass, field
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Literal, Optional, Union


class MessageRequest(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    content: str = Field("", description="User message")
    session_id: Optional[str] = Field(None, alias="sessionId")
    id: Optional[str] = None


class StreamFrame(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: str
    done: bool = False


@dataclass(frozen=True)
class Credential:
    api_key: str
    access_token: str


@dataclass(frozen=True)
class ToolCallRequest:
    name: str
    arguments: Union[str, Dict[str, Any], None] = None
    id: str = field(default_factory=lambda: f"call_{uuid.uuid4().hex[:12]}")

    def arguments_json(self) -> str:
        if isinstance(self.arguments, str):
            return self.arguments
        return json.dumps(self.arguments or {})


@dataclass(frozen=True)
class ToolOutcome:
    ok: bool
    value: Any = None
    error: Optional[str] = None

    @staticmethod
    def success(value: Any) -> "ToolOutcome":
        return ToolOutcome(ok=True, value=value, error=None)

    @staticmethod
    def failure(message: str) -> "ToolOutcome":
        return ToolOutcome(ok=False, value=None, error=message)

    def as_content(self) -> str:
        """Render the outcome as text for the conversation transcript."""
        if not self.ok:
            return f"Error: {self.error}"
        if isinstance(self.value, str):
            return self.value
        return json.dumps(self.value, ensure_ascii=False)


@dataclass(frozen=True)
class ProviderReply:
    text: Optional[str] = None
    tool_call: Optional[ToolCallRequest] = None

