"""Xray Cloud API client."""

import json
import logging
from typing import Any

import httpx

from xray_reporter.config import DEFAULT_BASE_URL
from xray_reporter.exceptions import AuthenticationError, XrayImportError
from xray_reporter.models.xray import XrayImportResponse, XrayInfoMultipart, XrayReport

logger = logging.getLogger(__name__)


class XrayClient:
    """Client for the Xray Cloud REST API (v2).

    Example:
        async with XrayClient(client_id="...", client_secret="...") as client:
            await client.authenticate()
            response = await client.import_execution(report)
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize Xray client.

        Args:
            client_id: Xray API key client id.
            client_secret: Xray API key client secret.
            base_url: API root, e.g. https://xray.cloud.getxray.app/api/v2.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (tests).
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._token: str | None = None
        self._client: httpx.AsyncClient | None = None

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    async def __aenter__(self) -> "XrayClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _auth_headers(self) -> dict[str, str]:
        if self._token is None:
            raise AuthenticationError("Not authenticated to Xray, call authenticate() first")
        return {"Authorization": f"Bearer {self._token}"}

    async def authenticate(self) -> str:
        """Exchange the client credentials for a bearer token.

        Returns:
            The token.

        Raises:
            AuthenticationError: On rejected credentials or any non-200 answer.
        """
        client = await self._get_client()
        try:
            response = await client.post(
                "/authenticate",
                json={"client_id": self.client_id, "client_secret": self.client_secret},
            )
        except httpx.RequestError as e:
            raise AuthenticationError(f"Cannot reach Xray to authenticate: {e}") from e

        if response.status_code == 401:
            raise AuthenticationError(
                "Error while authenticating to Xray. Check the client id and client secret",
                status_code=401,
            )
        if response.status_code != 200:
            raise AuthenticationError(
                f"Error while authenticating to Xray: {response.status_code} -> "
                f"{response.reason_phrase}",
                status_code=response.status_code,
            )

        self._token = str(response.json())
        logger.info("[XrayClient] Authenticated to Xray")
        return self._token

    async def import_execution(self, report: XrayReport) -> XrayImportResponse:
        """Import results with the Xray JSON endpoint.

        Raises:
            XrayImportError: If Xray rejects the import.
        """
        client = await self._get_client()
        try:
            response = await client.post(
                "/import/execution",
                headers=self._auth_headers(),
                json=report.to_wire(),
            )
        except httpx.RequestError as e:
            raise XrayImportError(f"Error while importing to Xray: {e}") from e
        return self._parse_import(response, "import")

    async def import_execution_multipart(
        self, info: XrayInfoMultipart, report: XrayReport
    ) -> XrayImportResponse:
        """Import results and create the execution issue in one call.

        Raises:
            XrayImportError: If Xray rejects the import.
        """
        client = await self._get_client()
        files = {
            "info": ("info.json", json.dumps(info.to_wire()), "application/json"),
            "results": ("results.json", json.dumps(report.to_wire()), "application/json"),
        }
        try:
            response = await client.post(
                "/import/execution/multipart",
                headers=self._auth_headers(),
                files=files,
            )
        except httpx.RequestError as e:
            raise XrayImportError(f"Error while importing to Xray (multipart): {e}") from e
        return self._parse_import(response, "multipart import")

    @staticmethod
    def _parse_import(response: httpx.Response, operation: str) -> XrayImportResponse:
        if response.status_code != 200:
            raise XrayImportError(
                f"Xray {operation} failed. Status Code: {response.status_code} -> "
                f"{response.text[:500]}",
                status_code=response.status_code,
            )
        return XrayImportResponse.model_validate(response.json())
