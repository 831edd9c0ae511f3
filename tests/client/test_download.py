"""Tests for the probe, fetch and save download flow."""

from __future__ import annotations

import asyncio
from pathlib import Path

import httpx
import pytest

from filerelay.client.api import AuthenticationError
from filerelay.client.transfer import (
    DirectorySaver,
    ErrorKind,
    FileTransferService,
    TransferState,
    TransferTask,
    resolve_filename,
)
from filerelay.client.transfer.download import PREPARE_FAILED_MESSAGE, safe_filename
from filerelay.core.config import Credentials, ServerConfig, TransferLimits

URL = "http://test/api/files/download/report.pdf"

CREDS = Credentials(token="token123", session_id="session456")


class RecordingSaver:
    """DirectorySaver that remembers the transient files it was given."""

    def __init__(self, directory: Path) -> None:
        self.inner = DirectorySaver(directory)
        self.sources: list[Path] = []

    def save(self, source: Path, filename: str, content_type: str) -> Path:
        assert source.exists()
        self.sources.append(source)
        return self.inner.save(source, filename, content_type)


def make_service(saver: RecordingSaver, download_timeout: float = 30.0) -> FileTransferService:
    """Create a service for the test server."""
    return FileTransferService(
        ServerConfig(server_url="http://test", download_timeout=download_timeout),
        credentials=CREDS,
        saver=saver,
        limits=TransferLimits(release_delay=0.0),
    )


class TestResolveFilename:
    """Tests for resolve_filename."""

    def test_extended_syntax(self) -> None:
        """RFC 5987 names are decoded."""
        header = "attachment; filename*=UTF-8''r%C3%A9sum%C3%A9.pdf"
        assert resolve_filename(header, "x") == "résumé.pdf"

    def test_extended_wins_over_quoted(self) -> None:
        """The extended form takes priority wherever it appears."""
        header = "attachment; filename=\"plain.pdf\"; filename*=UTF-8''fancy%20name.pdf"
        assert resolve_filename(header, "x") == "fancy name.pdf"

    def test_quoted(self) -> None:
        """Quoted names keep their spaces."""
        assert resolve_filename('attachment; filename="Report 2024.pdf"', "x") == "Report 2024.pdf"

    def test_bare(self) -> None:
        """Bare names stop at the next parameter."""
        assert resolve_filename("attachment; filename=report.pdf; size=10", "x") == "report.pdf"

    def test_report_names(self) -> None:
        """Plain and percent-encoded names both resolve."""
        assert resolve_filename("attachment; filename=report.pdf", "x") == "report.pdf"
        header = "attachment; filename*=UTF-8''report%20final.pdf"
        assert resolve_filename(header, "x") == "report final.pdf"

    def test_case_insensitive(self) -> None:
        """Parameter names are matched case-insensitively."""
        assert resolve_filename('attachment; FILENAME="a.pdf"', "x") == "a.pdf"

    def test_fallback(self) -> None:
        """Missing header or parameter gives the fallback."""
        assert resolve_filename(None, "fallback.pdf") == "fallback.pdf"
        assert resolve_filename("inline", "fallback.pdf") == "fallback.pdf"

    def test_safe_filename(self) -> None:
        """Directory parts are stripped."""
        assert safe_filename("../../etc/passwd", "x") == "passwd"
        assert safe_filename("..\\evil.pdf", "x") == "evil.pdf"
        assert safe_filename("..", "fallback") == "fallback"


class TestDownload:
    """Tests for DownloadOrchestrator through the service."""

    @pytest.mark.asyncio
    async def test_happy_path(self, httpx_mock, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
        """Should probe, fetch and save under the server-supplied name."""
        httpx_mock.add_response(method="HEAD", url=URL)
        httpx_mock.add_response(
            method="GET",
            url=URL,
            content=b"%PDF-1.4",
            headers={
                "Content-Type": "application/pdf",
                "Content-Disposition": 'attachment; filename="Report 2024.pdf"',
            },
        )
        saver = RecordingSaver(tmp_path)

        async with make_service(saver) as service:
            result = await service.download("report.pdf")

        assert result.success is True
        assert result.message == "Download complete."
        assert result.data == {
            "filename": "Report 2024.pdf",
            "path": str(tmp_path / "Report 2024.pdf"),
            "content_type": "application/pdf",
            "size": 8,
        }
        assert (tmp_path / "Report 2024.pdf").read_bytes() == b"%PDF-1.4"

    @pytest.mark.asyncio
    async def test_transient_file_released(self, httpx_mock, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
        """The materialized payload is deleted after the save."""
        httpx_mock.add_response(method="HEAD", url=URL)
        httpx_mock.add_response(method="GET", url=URL, content=b"data")
        saver = RecordingSaver(tmp_path / "out")

        async with make_service(saver) as service:
            await service.download("report.pdf")

        assert len(saver.sources) == 1
        assert not saver.sources[0].exists()

    @pytest.mark.asyncio
    async def test_fallback_name_and_type(self, httpx_mock, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
        """Without headers the display name and octet-stream are used."""
        httpx_mock.add_response(method="HEAD", url=URL)
        httpx_mock.add_response(method="GET", url=URL, content=b"data")

        async with make_service(RecordingSaver(tmp_path)) as service:
            result = await service.download("report.pdf", display_name="My report.pdf")

        assert result.data is not None
        assert result.data["filename"] == "My report.pdf"
        assert result.data["content_type"] == "application/octet-stream"

    @pytest.mark.asyncio
    async def test_requests_carry_credentials(self, httpx_mock, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
        """Probe and fetch send origin credentials; fetch uses the download timeout."""
        httpx_mock.add_response(method="HEAD", url=URL)
        httpx_mock.add_response(method="GET", url=URL, content=b"data")

        async with make_service(RecordingSaver(tmp_path)) as service:
            await service.download("report.pdf")

        assert httpx_mock.get_request(method="HEAD").headers["x-auth-token"] == "token123"
        get = httpx_mock.get_request(method="GET")
        assert get.headers["x-session-id"] == "session456"
        assert get.extensions["timeout"]["read"] == 30.0

    @pytest.mark.asyncio
    async def test_not_found_skips_fetch(self, httpx_mock, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
        """A 404 probe returns immediately without a GET."""
        httpx_mock.add_response(method="HEAD", url=URL, status_code=404)

        async with make_service(RecordingSaver(tmp_path)) as service:
            result = await service.download("report.pdf")

        assert result.success is False
        assert result.message == "File not found."
        assert result.error_kind is ErrorKind.NOT_FOUND
        assert httpx_mock.get_requests(method="GET") == []

    @pytest.mark.asyncio
    async def test_forbidden(self, httpx_mock, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
        """A 403 probe reports missing permission."""
        httpx_mock.add_response(method="HEAD", url=URL, status_code=403)

        async with make_service(RecordingSaver(tmp_path)) as service:
            result = await service.download("report.pdf")

        assert result.message == "You do not have permission to access this file."
        assert result.error_kind is ErrorKind.FORBIDDEN
        assert httpx_mock.get_requests(method="GET") == []

    @pytest.mark.asyncio
    async def test_other_probe_status(self, httpx_mock, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
        """Other non-200 probes report a preparation failure."""
        httpx_mock.add_response(method="HEAD", url=URL, status_code=409)

        async with make_service(RecordingSaver(tmp_path)) as service:
            result = await service.download("report.pdf")

        assert result.message == PREPARE_FAILED_MESSAGE
        assert httpx_mock.get_requests(method="GET") == []

    @pytest.mark.asyncio
    async def test_probe_server_error(self, httpx_mock, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
        """A 5xx probe is a retryable server error."""
        httpx_mock.add_response(method="HEAD", url=URL, status_code=500)

        async with make_service(RecordingSaver(tmp_path)) as service:
            result = await service.download("report.pdf")

        assert result.message == "A server error occurred."
        assert result.error_kind is ErrorKind.SERVER_ERROR
        assert result.retryable is True

    @pytest.mark.asyncio
    async def test_fetch_timeout(self, httpx_mock, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
        """A slow body fails with a timeout message."""
        httpx_mock.add_response(method="HEAD", url=URL)
        httpx_mock.add_exception(httpx.ReadTimeout("slow"), method="GET", url=URL)

        async with make_service(RecordingSaver(tmp_path)) as service:
            result = await service.download("report.pdf")

        assert result.message == "File download timed out."
        assert result.error_kind is ErrorKind.TIMEOUT
        assert result.retryable is True

    @pytest.mark.asyncio
    async def test_trickling_body_times_out(self, httpx_mock, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
        """The download timeout bounds the whole fetch, not each read."""

        async def trickle():  # type: ignore[no-untyped-def]
            for _ in range(40):
                await asyncio.sleep(0.05)
                yield b"x"

        async def slow_body(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=trickle())

        httpx_mock.add_response(method="HEAD", url=URL)
        httpx_mock.add_callback(slow_body, method="GET", url=URL)

        async with make_service(RecordingSaver(tmp_path), download_timeout=0.3) as service:
            result = await service.download("report.pdf")

        assert result.success is False
        assert result.message == "File download timed out."
        assert result.error_kind is ErrorKind.TIMEOUT
        assert result.retryable is True
        assert not (tmp_path / "report.pdf").exists()

    @pytest.mark.asyncio
    async def test_unauthorized_raises(self, httpx_mock, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
        """401 propagates as AuthenticationError."""
        httpx_mock.add_response(method="HEAD", url=URL, status_code=401)

        async with make_service(RecordingSaver(tmp_path)) as service:
            with pytest.raises(AuthenticationError):
                await service.download("report.pdf")
            assert len(service.registry) == 0

    @pytest.mark.asyncio
    async def test_empty_filename(self, httpx_mock, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
        """No file name means no request."""
        async with make_service(RecordingSaver(tmp_path)) as service:
            result = await service.download("")

        assert result.message == "No file specified."
        assert result.error_kind is ErrorKind.VALIDATION
        assert httpx_mock.get_requests() == []

    @pytest.mark.asyncio
    async def test_cancel_during_fetch(self, httpx_mock, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
        """Cancelling while the body is in flight aborts the download."""
        fetching = asyncio.Event()

        async def slow_body(request: httpx.Request) -> httpx.Response:
            fetching.set()
            await asyncio.sleep(10)
            return httpx.Response(200, content=b"late")

        httpx_mock.add_response(method="HEAD", url=URL)
        httpx_mock.add_callback(slow_body, method="GET", url=URL)
        tasks: list[TransferTask] = []

        async with make_service(RecordingSaver(tmp_path)) as service:
            running = asyncio.create_task(service.download("report.pdf", on_task=tasks.append))
            await fetching.wait()
            assert service.cancel(tasks[0].id).success is True
            result = await running

        assert result.message == "Download canceled."
        assert result.error_kind is ErrorKind.CANCELED
        assert tasks[0].state is TransferState.CANCELED
        assert not (tmp_path / "report.pdf").exists()
