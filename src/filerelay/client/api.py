"""HTTP client for the filerelay origin API.

This module provides:
- HTTPClient: async HTTP client for the presign/finalize/download endpoints
- The PUT to a presigned destination (sent without origin credentials)
- APIError hierarchy raised for non-success responses
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterable, Mapping
from typing import Any

import httpx

from filerelay.core.config import Credentials, ServerConfig

logger = logging.getLogger(__name__)

PRESIGN_PATH = "/api/files/presign"
FINALIZE_PATH = "/api/files/upload"


class APIError(Exception):
    """Base exception for API errors.

    Attributes:
        status_code: HTTP status of the failed response, if any.
        detail: Message supplied by the server, if the body carried one.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        detail: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class AuthenticationError(APIError):
    """Authentication failed or expired."""


class ForbiddenError(APIError):
    """Access to the resource is not allowed."""


class NotFoundError(APIError):
    """Resource not found."""


def response_detail(response: httpx.Response) -> str | None:
    """Extract the server-supplied message from an error body, if any."""
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        detail = data.get("message") or data.get("detail")
        if isinstance(detail, str):
            return detail
    return None


class HTTPClient:
    """Async HTTP client for the filerelay origin API."""

    def __init__(
        self,
        config: ServerConfig,
    ) -> None:
        """Initialize the client.

        Args:
            config: Server configuration with URL and timeouts.
        """
        self._config = config
        self._client = httpx.AsyncClient(
            base_url=config.server_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
        )

    @property
    def config(self) -> ServerConfig:
        """Get the server configuration."""
        return self._config

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> HTTPClient:
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.aclose()

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Handle API response and raise appropriate exceptions."""
        if response.status_code == 401:
            raise AuthenticationError("Authentication expired. Please login again.", 401)
        status = response.status_code
        if status < 400:
            return response
        detail = response_detail(response)
        if status == 403:
            raise ForbiddenError(detail or "Forbidden", 403, detail)
        if status == 404:
            raise NotFoundError(detail or "Resource not found", 404, detail)
        raise APIError(detail or f"HTTP {status}", status, detail)

    @staticmethod
    def _headers(credentials: Credentials | None) -> dict[str, str]:
        return (credentials or Credentials()).headers()

    # === Upload protocol ===

    async def presign(
        self,
        filename: str,
        mimetype: str,
        size: int,
        credentials: Credentials | None = None,
    ) -> dict[str, Any]:
        """Request a presigned destination for an upload.

        Args:
            filename: Name of the file.
            mimetype: Declared MIME type.
            size: Size in bytes.
            credentials: Origin credentials.

        Returns:
            Raw presign response body.
        """
        response = self._handle_response(
            await self._client.post(
                PRESIGN_PATH,
                json={"filename": filename, "mimetype": mimetype, "size": size},
                headers=self._headers(credentials),
            )
        )
        data = response.json()
        return data if isinstance(data, dict) else {}

    async def put_object(
        self,
        upload_url: str,
        content: bytes | AsyncIterable[bytes],
        headers: Mapping[str, str],
    ) -> None:
        """Store the raw file bytes at a presigned destination.

        Origin credentials are never attached here; the URL is pre-authorized.
        No timeout applies to this call.

        Args:
            upload_url: Absolute presigned URL.
            content: File bytes or an async byte stream.
            headers: Presign headers plus Content-Type (and Content-Length
                when streaming).
        """
        self._handle_response(
            await self._client.put(
                upload_url,
                content=content,
                headers=dict(headers),
                timeout=None,
            )
        )

    async def finalize(
        self,
        upload_id: str,
        credentials: Credentials | None = None,
    ) -> httpx.Response:
        """Tell the origin that the upload to the presigned URL completed.

        The uploadId is sent as a multipart form field.

        Args:
            upload_id: Correlation token from the presign call.
            credentials: Origin credentials.

        Returns:
            The finalize response (status already checked).
        """
        return self._handle_response(
            await self._client.post(
                FINALIZE_PATH,
                files={"uploadId": (None, upload_id)},
                headers=self._headers(credentials),
            )
        )

    # === Download protocol ===

    async def probe(self, url: str, credentials: Credentials | None = None) -> int:
        """Check that a download exists and is accessible.

        Statuses below 500 are returned for the caller to interpret;
        401 and 5xx raise.

        Args:
            url: Download URL.
            credentials: Origin credentials.

        Returns:
            HTTP status code of the HEAD request.
        """
        response = await self._client.head(url, headers=self._headers(credentials))
        if response.status_code == 401 or response.status_code >= 500:
            self._handle_response(response)
        return response.status_code

    async def fetch(
        self,
        url: str,
        credentials: Credentials | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Fetch a download body.

        Args:
            url: Download URL.
            credentials: Origin credentials.
            timeout: Timeout for the whole fetch, in seconds.

        Returns:
            The response with its body loaded.

        Raises:
            TimeoutError: If the request and body together take longer than
                the timeout. httpx only bounds each connect, read and write.
        """
        limit = timeout if timeout is not None else self._config.download_timeout
        async with asyncio.timeout(limit):
            response = await self._client.get(
                url,
                headers=self._headers(credentials),
                timeout=limit,
            )
        return self._handle_response(response)
