import re
from typing import Any, Dict, List, Optional

from base import CompletionProvider
from config.settings import OpenAIConfig
from models import ProviderReply, ToolCallRequest
from prompts import PROMPTS

WEATHER_RE = re.compile(r"\bweather\b.*?\b(?:in|for|at)\s+([^?.!,]+)", re.IGNORECASE)
CANDIDATE_RE = re.compile(r"\bcandidates?\b", re.IGNORECASE)
EMPLOYEE_RE = re.compile(r"\bemployees?\b", re.IGNORECASE)


class NaiveProvider(CompletionProvider):
    """A local keyword provider. Useful offline and in tests."""

    def __init__(self, cfg: Optional[OpenAIConfig] = None):
        self.cfg = cfg

    @staticmethod
    def _pick_tool(text: str, available: List[str]) -> Optional[ToolCallRequest]:
        m = WEATHER_RE.search(text)
        if m and "getWeather" in available:
            return ToolCallRequest(name="getWeather", arguments={"city": m.group(1).strip()})
        if CANDIDATE_RE.search(text) and "getCandidateDetails" in available:
            return ToolCallRequest(name="getCandidateDetails", arguments={"dynamicFilter": []})
        if EMPLOYEE_RE.search(text) and "getEmployeeDetails" in available:
            return ToolCallRequest(name="getEmployeeDetails", arguments={"dynamicFilter": []})
        return None

    async def respond(self, messages: List[Dict[str, Any]], tools: Optional[List[Dict[str, Any]]] = None) -> ProviderReply:
        if not messages:
            return ProviderReply()
        last = messages[-1]
        content = last.get("content") or ""
        if last.get("role") == "tool":
            if content.startswith("Error: "):
                return ProviderReply(text=PROMPTS["tool_failure"].format(error=content[len("Error: "):]))
            return ProviderReply(text=content)
        if last.get("role") == "user":
            call = self._pick_tool(content, [t["name"] for t in tools or []])
            if call is not None:
                return ProviderReply(tool_call=call)
        return ProviderReply()

    async def complete(self, prompt: str) -> str:
        return PROMPTS["naive_answer"].format(prompt=prompt.strip())
