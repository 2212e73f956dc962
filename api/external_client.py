import asyncio
import logging
from typing import Any, Dict, Optional, Sequence

import httpx

from config import HR_LIST_PATH
from errors import UpstreamError
from models import Credential, ToolOutcome

BODY_SNIPPET_CHARS = 200


class ExternalClient:
    """Single-attempt outbound HTTP calls that never raise to the caller.

    Transport errors, timeouts, non-2xx statuses and bodies of the wrong
    shape all come back as ``ToolOutcome.failure``.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = 8.0,
        page_size: int = 5,
    ):
        self.timeout_seconds = timeout_seconds
        self.page_size = page_size
        self.client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self.logger = logging.getLogger("app")

    async def _request(self, method: str, url: str, timeout: float, **kwargs: Any) -> Any:
        try:
            resp = await asyncio.wait_for(
                self.client.request(method, url, timeout=timeout, **kwargs),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            raise UpstreamError(f"request to {url} timed out after {timeout}s")
        except httpx.HTTPError as e:
            raise UpstreamError(f"request to {url} failed: {e}")

        if resp.is_error:
            raise UpstreamError(
                f"API error {resp.status_code}: {resp.text[:BODY_SNIPPET_CHARS]}",
                status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError:
            raise UpstreamError(f"malformed JSON from {url}", status_code=resp.status_code)

    def extract_list(self, data: Any, path: Sequence[str]) -> list:
        node = data
        for key in path:
            if not isinstance(node, dict) or key not in node:
                raise UpstreamError(f"response is missing {'.'.join(path)}")
            node = node[key]
        if not isinstance(node, list):
            raise UpstreamError(f"{'.'.join(path)} is not a list")
        return node[: self.page_size]

    async def post(
        self,
        url: str,
        body: Dict[str, Any],
        credential: Credential,
        timeout: Optional[float] = None,
        list_path: Optional[Sequence[str]] = HR_LIST_PATH,
    ) -> ToolOutcome:
        """POST an authenticated JSON body; return the (truncated) list it holds."""
        headers = {
            "apikey": credential.api_key,
            "Authorization": f"Bearer {credential.access_token}",
            "Content-Type": "application/json",
        }
        deadline = timeout if timeout is not None else self.timeout_seconds
        try:
            data = await self._request("POST", url, deadline, json=body, headers=headers)
            if list_path:
                data = self.extract_list(data, list_path)
        except UpstreamError as e:
            self.logger.warning(f"POST {url} failed: {e.message}")
            return ToolOutcome.failure(e.message)
        self.logger.info(f"POST {url} succeeded")
        return ToolOutcome.success(data)

    async def get_json(self, url: str, timeout: Optional[float] = None) -> ToolOutcome:
        deadline = timeout if timeout is not None else self.timeout_seconds
        try:
            data = await self._request("GET", url, deadline)
        except UpstreamError as e:
            self.logger.warning(f"GET {url} failed: {e.message}")
            return ToolOutcome.failure(e.message)
        return ToolOutcome.success(data)

    async def aclose(self) -> None:
        await self.client.aclose()
