"""Tests for core configuration classes."""

from __future__ import annotations

from filerelay.core.config import DEFAULT_LIMITS, MB, Credentials, ServerConfig, TransferLimits


class TestServerConfig:
    """Tests for ServerConfig class."""

    def test_init_basic(self) -> None:
        """Should initialize with required fields."""
        config = ServerConfig(server_url="https://example.com")
        assert config.server_url == "https://example.com"
        assert config.timeout == 30.0
        assert config.verify_ssl is True
        assert config.download_timeout == 30.0

    def test_init_custom_timeouts(self) -> None:
        """Should accept custom timeouts."""
        config = ServerConfig(
            server_url="https://example.com",
            timeout=60.0,
            download_timeout=5.0,
        )
        assert config.timeout == 60.0
        assert config.download_timeout == 5.0

    def test_url_trailing_slash_removed(self) -> None:
        """Should strip trailing slash from server URL."""
        config = ServerConfig(server_url="https://example.com/")
        assert config.server_url == "https://example.com"

    def test_is_secure_https(self) -> None:
        """Should return True for HTTPS URLs."""
        assert ServerConfig(server_url="https://example.com").is_secure is True

    def test_is_secure_http(self) -> None:
        """Should return False for HTTP URLs."""
        assert ServerConfig(server_url="http://localhost:8000").is_secure is False


class TestCredentials:
    """Tests for Credentials."""

    def test_complete_headers(self) -> None:
        """Should send token and session id headers when both are set."""
        headers = Credentials("tok", "sess").headers()
        assert headers == {
            "x-auth-token": "tok",
            "x-session-id": "sess",
            "Accept": "application/json, */*",
        }

    def test_incomplete_headers_omit_auth(self) -> None:
        """Should only send Accept when a credential is missing."""
        assert Credentials("tok", None).headers() == {"Accept": "application/json, */*"}
        assert Credentials().headers() == {"Accept": "application/json, */*"}

    def test_is_complete(self) -> None:
        """Should require both values."""
        assert Credentials("a", "b").is_complete is True
        assert Credentials("a", "").is_complete is False


class TestTransferLimits:
    """Tests for TransferLimits defaults."""

    def test_defaults(self) -> None:
        """Should default to a 50 MB ceiling."""
        assert DEFAULT_LIMITS.max_file_size == 50 * MB
        assert DEFAULT_LIMITS.release_delay == 0.1

    def test_custom(self) -> None:
        """Should accept custom values."""
        limits = TransferLimits(max_file_size=10, chunk_size=2)
        assert limits.max_file_size == 10
        assert limits.chunk_size == 2
