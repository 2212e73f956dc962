from api.credentials import CredentialBroker
from base import CompletionProvider
from config.settings import CredentialsConfig
from errors import CredentialError, UpstreamError
from models import ToolOutcome
from schema import ChatArgs, TokenArgs


def make_chat_handler(provider: CompletionProvider):
    async def handler(args: ChatArgs) -> ToolOutcome:
        try:
            return ToolOutcome.success(await provider.complete(args.prompt))
        except UpstreamError as e:
            return ToolOutcome.failure(f"chat completion failed: {e.message}")

    return handler


def make_token_handler(broker: CredentialBroker, cfg: CredentialsConfig):
    async def handler(args: TokenArgs) -> ToolOutcome:
        client_id = args.client_id or cfg.client_id
        client_secret = args.client_secret or cfg.client_secret
        if not client_id or not client_secret:
            return ToolOutcome.failure("client_id and client_secret are required")
        try:
            return ToolOutcome.success(await broker.fetch_oauth_token(client_id, client_secret))
        except CredentialError as e:
            return ToolOutcome.failure(e.message)

    return handler
