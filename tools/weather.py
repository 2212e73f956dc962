from urllib.parse import quote

from api.external_client import ExternalClient
from config.settings import WeatherConfig
from models import ToolOutcome
from schema import WeatherArgs


def format_weather(city: str, data: dict) -> str:
    current = data["current_condition"][0]
    return f"Weather in {city}: {current['temp_C']} °C, {current['weatherDesc'][0]['value']}"


def make_weather_handler(client: ExternalClient, cfg: WeatherConfig):
    async def handler(args: WeatherArgs) -> ToolOutcome:
        url = f"{cfg.base_url.rstrip('/')}/{quote(args.city, safe='')}?format=j1"
        outcome = await client.get_json(url, timeout=cfg.timeout_seconds)
        if not outcome.ok:
            return ToolOutcome.failure(f"weather lookup failed: {outcome.error}")
        try:
            return ToolOutcome.success(format_weather(args.city, outcome.value))
        except (KeyError, IndexError, TypeError):
            return ToolOutcome.failure(f"weather lookup failed: unexpected response for {args.city}")

    return handler
