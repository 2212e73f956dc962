import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from config.settings import CredentialsConfig
from errors import CredentialError
from models import Credential

BODY_SNIPPET_CHARS = 200


class CredentialBroker:
    """Exchanges client credentials for the tokens the HR system expects.

    Every call goes to the network; nothing is cached between tool calls.
    """

    def __init__(self, cfg: CredentialsConfig, client: Optional[httpx.AsyncClient] = None):
        self.cfg = cfg
        self.client = client or httpx.AsyncClient(timeout=cfg.timeout_seconds)
        self.logger = logging.getLogger("app")

    async def _post(self, op: str, url: str, timeout: Optional[float], **kwargs: Any) -> Dict[str, Any]:
        deadline = timeout if timeout is not None else self.cfg.timeout_seconds
        try:
            resp = await asyncio.wait_for(self.client.post(url, timeout=deadline, **kwargs), timeout=deadline)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            self.logger.warning(f"{op} timed out after {deadline}s")
            raise CredentialError(f"{op} failed: request timed out after {deadline}s")
        except httpx.HTTPError as e:
            self.logger.warning(f"{op} request failed: {e}")
            raise CredentialError(f"{op} failed: {e}")

        if resp.is_error:
            snippet = resp.text[:BODY_SNIPPET_CHARS]
            self.logger.warning(f"{op} rejected with HTTP {resp.status_code}")
            raise CredentialError(f"{op} failed: HTTP {resp.status_code}: {snippet}", status_code=resp.status_code)
        try:
            data = resp.json()
        except ValueError:
            raise CredentialError(f"{op} failed: response is not JSON", status_code=resp.status_code)
        if not isinstance(data, dict):
            raise CredentialError(f"{op} failed: unexpected response shape", status_code=resp.status_code)
        return data

    async def fetch_oauth_token(self, client_id: str, client_secret: str, timeout: Optional[float] = None) -> str:
        """Run the OAuth2 client-credentials grant and return the access token."""
        data = await self._post(
            "fetch_oauth_token",
            self.cfg.token_url,
            timeout,
            data={
                "grant_type": "client_credentials",
                "client_id": client_id,
                "client_secret": client_secret,
            },
        )
        token = data.get("access_token")
        if not token:
            raise CredentialError("fetch_oauth_token failed: no access_token in response")
        return token

    async def fetch_credential(
        self,
        sys_module_name: str,
        route_path: str,
        organization_id: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> Credential:
        """Fetch the apiKey/accessToken pair bound to one integration route."""
        body = {
            "body": None, "subject": None, "sendTo": None, "cc": None, "bcc": None,
            "routePath": route_path,
            "organizationId": organization_id if organization_id is not None else self.cfg.organization_id,
            "sysModuleName": sys_module_name,
        }
        data = await self._post(
            "fetch_credential",
            self.cfg.api_key_url,
            timeout,
            json=body,
            headers={"Accept": "*/*", "session-Token": self.cfg.session_token},
        )
        missing = [k for k in ("apiKey", "accessToken") if not data.get(k)]
        if missing:
            raise CredentialError(f"fetch_credential failed: no {', '.join(missing)} in response")
        return Credential(api_key=data["apiKey"], access_token=data["accessToken"])

    async def aclose(self) -> None:
        await self.client.aclose()
