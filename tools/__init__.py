from api.credentials import CredentialBroker
from api.external_client import ExternalClient
from base import CompletionProvider
from config.settings import Settings
from schema import ChatArgs, TokenArgs, WeatherArgs
from tools.general import make_chat_handler, make_token_handler
from tools.hr import INTEGRATIONS, make_hr_handler
from tools.registry import ToolDefinition, ToolDispatcher, ToolRegistry
from tools.weather import make_weather_handler


def build_registry(
    client: ExternalClient,
    broker: CredentialBroker,
    provider: CompletionProvider,
    settings: Settings,
) -> ToolRegistry:
    """Register the full tool set and freeze the registry."""
    registry = ToolRegistry()
    registry.register("chatLLM", ChatArgs, make_chat_handler(provider),
                      "Answer a free-form prompt with the chat model.")
    registry.register("getWeather", WeatherArgs, make_weather_handler(client, settings.weather),
                      "Current weather for a city.")
    registry.register("getPSToken", TokenArgs, make_token_handler(broker, settings.credentials),
                      "Fetch a PeopleStrong OAuth client-credentials token.")
    for integration in INTEGRATIONS:
        registry.register(
            integration.tool_name,
            integration.schema,
            make_hr_handler(integration, client, broker, settings.integrations),
            integration.description,
        )
    return registry.freeze()


__all__ = ["build_registry", "ToolDefinition", "ToolDispatcher", "ToolRegistry"]
