"""Resource URL construction for preview and download."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal
from urllib.parse import quote

import httpx

from filerelay.core.config import Credentials

UrlMode = Literal["preview", "download"]

_ENDPOINTS: dict[str, str] = {"preview": "view", "download": "download"}


class UrlResolver:
    """Builds deterministic file URLs against one server base URL."""

    def __init__(self, server_url: str) -> None:
        self._server_url = server_url.rstrip("/")

    def resource_url(self, filename: str | None, mode: UrlMode = "preview") -> str:
        """Get the view or download URL of a stored file.

        Args:
            filename: Stored file name as returned by finalize.
            mode: "preview" for the view endpoint, "download" otherwise.

        Returns:
            Absolute URL, or "" when filename is empty.
        """
        if not filename:
            return ""
        endpoint = _ENDPOINTS[mode]
        return f"{self._server_url}/api/files/{endpoint}/{quote(filename, safe='')}"

    def preview_url(
        self,
        file: Mapping[str, Any] | None,
        credentials: Credentials | None = None,
        with_auth: bool = True,
    ) -> str:
        """Get the preview URL, optionally carrying auth query parameters.

        Auth parameters are only added when with_auth is set and both token
        and session id are present.
        """
        filename = (file or {}).get("filename")
        url = self.resource_url(filename, "preview")
        if not url or not with_auth or credentials is None or not credentials.is_complete:
            return url
        return str(
            httpx.URL(url).copy_merge_params(
                {"token": credentials.token, "sessionId": credentials.session_id}
            )
        )
