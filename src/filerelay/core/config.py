"""Shared configuration classes for filerelay.

This module defines the configuration objects handed to the HTTP client,
the orchestrators and the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass

MB = 1024 * 1024


@dataclass
class ServerConfig:
    """Configuration for connecting to a filerelay origin server.

    Attributes:
        server_url: Base URL of the server (e.g., "https://files.example.com").
        timeout: Default request timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
        download_timeout: Timeout for fetching a download body, in seconds.
    """

    server_url: str
    timeout: float = 30.0
    verify_ssl: bool = True
    download_timeout: float = 30.0

    def __post_init__(self) -> None:
        """Normalize server URL."""
        self.server_url = self.server_url.rstrip("/")

    @property
    def is_secure(self) -> bool:
        """Check if using HTTPS.

        Returns:
            True if server uses HTTPS.
        """
        return self.server_url.startswith("https://")


@dataclass(frozen=True)
class Credentials:
    """Origin credentials attached to every call except the presigned PUT.

    Attributes:
        token: Authentication token.
        session_id: Session identifier paired with the token.
    """

    token: str | None = None
    session_id: str | None = None

    @property
    def is_complete(self) -> bool:
        """Check that both token and session id are present."""
        return bool(self.token and self.session_id)

    def headers(self) -> dict[str, str]:
        """Build request headers for the origin API.

        Returns:
            Header mapping; auth headers are only included when complete.
        """
        if not self.is_complete:
            return {"Accept": "application/json, */*"}
        return {
            "x-auth-token": str(self.token),
            "x-session-id": str(self.session_id),
            "Accept": "application/json, */*",
        }


@dataclass(frozen=True)
class TransferLimits:
    """Fixed limits used by the transfer orchestrators.

    Attributes:
        max_file_size: Global size ceiling checked before any per-type ceiling.
        chunk_size: Size of body chunks streamed during the PUT phase.
        release_delay: Seconds before a materialized download is released.
    """

    max_file_size: int = 50 * MB
    chunk_size: int = 64 * 1024
    release_delay: float = 0.1


DEFAULT_LIMITS = TransferLimits()
