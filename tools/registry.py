import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from errors import ToolNotFoundError, ToolRegistrationError, ValidationError
from metrics import TOOL_CALLS, TOOL_LATENCY
from models import ToolOutcome

Handler = Callable[[Any], Awaitable[ToolOutcome]]

TOOL_NOT_FOUND = "tool not found"


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    schema: Type[BaseModel]
    handler: Handler
    description: str = ""

    def spec(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.schema.model_json_schema(),
        }


class ToolRegistry:
    """Name -> tool map, filled once at startup and read-only afterwards."""

    def __init__(self):
        self._tools: Dict[str, ToolDefinition] = {}
        self._frozen = False

    def register(
        self,
        name: str,
        schema: Type[BaseModel],
        handler: Handler,
        description: str = "",
    ) -> ToolDefinition:
        if self._frozen:
            raise ToolRegistrationError(f"registry is frozen; cannot register {name!r}")
        if name in self._tools:
            raise ToolRegistrationError(f"tool {name!r} registered twice")
        definition = ToolDefinition(name=name, schema=schema, handler=handler, description=description)
        self._tools[name] = definition
        return definition

    def freeze(self) -> "ToolRegistry":
        self._frozen = True
        return self

    def get(self, name: str) -> ToolDefinition:
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFoundError(name) from None

    def names(self) -> List[str]:
        return list(self._tools)

    def catalog(self) -> List[Dict[str, Any]]:
        return [tool.spec() for tool in self._tools.values()]

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


def _validate(schema: Type[BaseModel], raw_arguments: Any) -> BaseModel:
    if raw_arguments is None or raw_arguments == "":
        raw_arguments = {}
    if isinstance(raw_arguments, str):
        try:
            raw_arguments = json.loads(raw_arguments)
        except json.JSONDecodeError as e:
            raise ValidationError(f"arguments are not valid JSON ({e.msg})")
    try:
        return schema.model_validate(raw_arguments)
    except PydanticValidationError as e:
        detail = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}" for err in e.errors()
        )
        raise ValidationError(detail)


class ToolDispatcher:
    """Resolves, validates and runs tool calls; always returns a ToolOutcome."""

    def __init__(self, registry: ToolRegistry):
        self.registry = registry
        self.logger = logging.getLogger("app")

    async def dispatch(self, name: str, raw_arguments: Any = None, session_id: Optional[str] = None) -> ToolOutcome:
        extra = {"extra_data": {"session_id": session_id, "tool": name}}
        try:
            tool = self.registry.get(name)
        except ToolNotFoundError:
            self.logger.warning("Unknown tool requested", extra=extra)
            TOOL_CALLS.labels(tool="unknown", outcome="not_found").inc()
            return ToolOutcome.failure(TOOL_NOT_FOUND)

        try:
            args = _validate(tool.schema, raw_arguments)
        except ValidationError as e:
            self.logger.warning(f"Invalid arguments: {e}", extra=extra)
            TOOL_CALLS.labels(tool=name, outcome="invalid").inc()
            return ToolOutcome.failure(f"invalid arguments: {e}")

        start = time.perf_counter()
        try:
            outcome = await tool.handler(args)
            if not isinstance(outcome, ToolOutcome):
                outcome = ToolOutcome.success(outcome)
        except Exception as e:
            self.logger.exception("Tool handler raised", extra=extra)
            outcome = ToolOutcome.failure(str(e) or type(e).__name__)
        finally:
            TOOL_LATENCY.labels(tool=name).observe(time.perf_counter() - start)

        TOOL_CALLS.labels(tool=name, outcome="success" if outcome.ok else "failure").inc()
        self.logger.info(f"Tool finished ok={outcome.ok}", extra=extra)
        return outcome
