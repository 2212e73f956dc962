import asyncio
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

from agent import ConversationRouter
from api.credentials import CredentialBroker
from api.external_client import ExternalClient
from base import CompletionProvider
from config.settings import Settings
from llm.naive_local import NaiveProvider
from memory.sessions import SessionRegistry
from models import ProviderReply
from tools import ToolDispatcher, build_registry

API_KEY_URL = "https://auth.example.test/kong/fetchPlaygroundInitObject"
TOKEN_URL = "https://auth.example.test/token"
HR_BASE = "https://hr.example.test"
EMPLOYEE_URL = f"{HR_BASE}/api/integration/Outbound/PeopleStrongHRServices_HRIS_testAgent"
DELHI_URL = "https://wttr.in/Delhi?format=j1"
DELHI_WEATHER = {"current_condition": [{"temp_C": "31", "weatherDesc": [{"value": "Sunny"}]}]}


class ScriptedProvider(CompletionProvider):
    """Replays canned replies and records every call it receives."""

    def __init__(
        self,
        replies: Optional[List[Any]] = None,
        completion: Any = "direct answer",
        tokens: Optional[List[str]] = None,
        delay: float = 0.0,
    ):
        self.replies = list(replies or [])
        self.completion = completion
        self.tokens = tokens
        self.delay = delay
        self.calls: List[Dict[str, Any]] = []

    async def respond(self, messages, tools=None):
        self.calls.append({"kind": "respond", "messages": [dict(m) for m in messages], "tools": tools})
        if self.delay:
            await asyncio.sleep(self.delay)
        reply = self.replies.pop(0) if self.replies else ProviderReply()
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def complete(self, prompt):
        self.calls.append({"kind": "complete", "prompt": prompt})
        if isinstance(self.completion, Exception):
            raise self.completion
        return self.completion

    async def stream(self, messages):
        self.calls.append({"kind": "stream", "messages": [dict(m) for m in messages]})
        for token in self.tokens or []:
            yield token

    def kinds(self) -> List[str]:
        return [c["kind"] for c in self.calls]


def make_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = dict(
        orchestrator={"provider_name": "NaiveProvider", "max_history_turns": 8},
        credentials={
            "token_url": TOKEN_URL,
            "api_key_url": API_KEY_URL,
            "session_token": "sess-token",
            "client_id": "default-client",
            "client_secret": "default-secret",
            "timeout_seconds": 1.0,
        },
        integrations={"base_url": HR_BASE, "timeout_seconds": 1.0},
        weather={"base_url": "https://wttr.in", "timeout_seconds": 1.0},
        stream={"heartbeat_seconds": 0.05, "stream_tokens": False},
        auth={"enabled": False},
        logging={"json_logging": False},
    )
    values.update(overrides)
    return Settings(**values)


def build_stack(settings: Settings, provider: Optional[CompletionProvider] = None, registry=None):
    provider = provider or NaiveProvider()
    client = ExternalClient(timeout_seconds=1.0)
    broker = CredentialBroker(settings.credentials)
    registry = registry or build_registry(client, broker, provider, settings)
    sessions = SessionRegistry()
    dispatcher = ToolDispatcher(registry)
    router = ConversationRouter(sessions, dispatcher, provider, settings)
    return SimpleNamespace(
        provider=provider,
        client=client,
        broker=broker,
        registry=registry,
        sessions=sessions,
        dispatcher=dispatcher,
        router=router,
    )
