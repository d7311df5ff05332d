"""
Zoom Server-to-Server OAuth client.

Fetches account-credential tokens, caches them until shortly before expiry
and performs authenticated REST calls.
"""

import logging
import time

import httpx

from core.automation.errors import ExternalGatewayError
from core.automation_logs import create_log
from core.config import get_zoom_credentials
from core.enums import LogStatus, LogType

logger = logging.getLogger(__name__)

ZOOM_TOKEN_URL = "https://zoom.us/oauth/token"
ZOOM_API_URL = "https://api.zoom.us/v2"

# Refresh tokens this many seconds before Zoom says they expire
TOKEN_EXPIRY_MARGIN_SECONDS = 300


def _error_payload(response: httpx.Response):
    try:
        return response.json()
    except ValueError:
        return response.text


class ZoomOAuthClient:
    def __init__(
        self,
        account_id: str | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        token_url: str = ZOOM_TOKEN_URL,
        api_url: str = ZOOM_API_URL,
        timeout: float = 30.0,
    ):
        env_account, env_client, env_secret = get_zoom_credentials()
        self.account_id = account_id if account_id is not None else env_account
        self.client_id = client_id if client_id is not None else env_client
        self.client_secret = client_secret if client_secret is not None else env_secret
        self.token_url = token_url
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

        self._access_token: str | None = None
        self._token_expires_at = 0.0

    def is_configured(self) -> bool:
        return bool(self.account_id and self.client_id and self.client_secret)

    def invalidate_token(self) -> None:
        self._access_token = None
        self._token_expires_at = 0.0

    async def get_access_token(self) -> str:
        """
        Get a valid access token, fetching a new one when the cached one is stale.

        Raises:
            ExternalGatewayError: If credentials are missing or Zoom rejects them
        """
        if self._access_token and time.monotonic() < self._token_expires_at:
            return self._access_token

        if not self.is_configured():
            raise ExternalGatewayError(
                "ZOOM_ACCOUNT_ID, ZOOM_CLIENT_ID and ZOOM_CLIENT_SECRET must be set"
            )

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.token_url,
                    params={
                        "grant_type": "account_credentials",
                        "account_id": self.account_id,
                    },
                    auth=(self.client_id, self.client_secret),
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            payload = _error_payload(e.response)
            await create_log(
                LogType.zoom_auth,
                LogStatus.error,
                "Failed to obtain Zoom OAuth token",
                {"error": payload},
            )
            raise ExternalGatewayError(
                f"Zoom OAuth token request failed: {e}", payload=payload
            ) from e
        except httpx.HTTPError as e:
            await create_log(
                LogType.zoom_auth,
                LogStatus.error,
                "Failed to obtain Zoom OAuth token",
                {"error": str(e)},
            )
            raise ExternalGatewayError(f"Zoom OAuth token request failed: {e}") from e

        data = response.json()
        self._access_token = data["access_token"]
        self._token_expires_at = (
            time.monotonic() + data.get("expires_in", 3600) - TOKEN_EXPIRY_MARGIN_SECONDS
        )

        await create_log(
            LogType.zoom_auth,
            LogStatus.success,
            "Zoom OAuth token obtained",
            {
                "expiresIn": data.get("expires_in"),
                "tokenType": data.get("token_type"),
                "scope": data.get("scope"),
            },
        )
        return self._access_token

    async def request(self, method: str, endpoint: str, json: dict | None = None) -> dict:
        """
        Perform an authenticated Zoom API request.

        Args:
            method: HTTP method
            endpoint: Path below /v2, e.g. "/users/me/meetings"
            json: Request body

        Raises:
            httpx.HTTPStatusError: On non-2xx responses (401 also drops the cached token)
        """
        token = await self.get_access_token()

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.request(
                method,
                f"{self.api_url}{endpoint}",
                json=json,
                headers={"Authorization": f"Bearer {token}"},
            )

        if response.status_code == 401:
            self.invalidate_token()
            await create_log(
                LogType.zoom_auth,
                LogStatus.error,
                "Zoom authentication error: invalid token",
                {"error": _error_payload(response), "endpoint": endpoint},
            )
        elif response.status_code == 403:
            await create_log(
                LogType.zoom_auth,
                LogStatus.error,
                "Zoom authorization error: missing scope",
                {"error": _error_payload(response), "endpoint": endpoint},
            )

        response.raise_for_status()
        if not response.content:
            return {}
        return response.json()
