"""Tests for client-side file validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from filerelay.client.transfer.types import FileDescriptor
from filerelay.client.transfer.validation import (
    DEFAULT_TYPE_RULES,
    TypeRule,
    format_file_size,
    get_file_extension,
    get_file_type,
    validate,
)
from filerelay.core.config import MB


def make_file(name: str = "photo.png", size: int = 1024, mimetype: str = "image/png") -> FileDescriptor:
    """Create a FileDescriptor without content for validation tests."""
    return FileDescriptor(name=name, size=size, mimetype=mimetype)


class TestFormatFileSize:
    """Tests for format_file_size."""

    @pytest.mark.parametrize(
        ("size", "expected"),
        [
            (0, "0 B"),
            (None, "0 B"),
            (1023, "1023 B"),
            (1024, "1 KB"),
            (1536, "1.5 KB"),
            (1_500_000, "1.43 MB"),
            (10 * MB, "10 MB"),
            (50 * MB, "50 MB"),
            (1024**3, "1 GB"),
        ],
    )
    def test_format(self, size: int | None, expected: str) -> None:
        """Should pick the largest unit and drop trailing zeros."""
        assert format_file_size(size) == expected


class TestExtensions:
    """Tests for extension and type helpers."""

    def test_extension_lowercased(self) -> None:
        """Should return the last extension lower-cased with the dot."""
        assert get_file_extension("Photo.Archive.PNG") == ".png"

    def test_extension_missing(self) -> None:
        """Should return empty string without an extension."""
        assert get_file_extension("README") == ""
        assert get_file_extension("") == ""
        assert get_file_extension(None) == ""

    def test_file_type(self) -> None:
        """Should map extensions to rule keys."""
        assert get_file_type("a.jpeg") == "image"
        assert get_file_type("a.pdf") == "document"
        assert get_file_type("a.txt") == "unknown"
        assert get_file_type(None) == "unknown"


class TestValidate:
    """Tests for validate()."""

    def test_accepts_image(self) -> None:
        """Should accept a small PNG and report the matched rule."""
        result = validate(make_file())
        assert result.success is True
        assert result.message is None
        assert result.rule is not None
        assert result.rule.key == "image"

    def test_accepts_uppercase_extension(self) -> None:
        """Should compare extensions case-insensitively."""
        assert validate(make_file(name="PHOTO.JPG", mimetype="image/jpeg")).success is True

    def test_rejects_missing_file(self) -> None:
        """Should reject when no file is given."""
        result = validate(None)
        assert result.success is False
        assert result.message == "No file selected."

    def test_global_ceiling_checked_first(self) -> None:
        """Global ceiling should win over the MIME check."""
        result = validate(make_file(name="a.txt", size=50 * MB + 1, mimetype="text/plain"))
        assert result.message == "File size cannot exceed 50 MB."

    def test_exactly_at_global_ceiling_is_not_too_large(self) -> None:
        """A file of exactly 50 MB should pass the global check."""
        result = validate(make_file(name="a.pdf", size=50 * MB, mimetype="application/pdf"))
        assert result.message == "PDF document files cannot exceed 20 MB."

    def test_rejects_unknown_mimetype(self) -> None:
        """Should reject MIME types with no rule."""
        result = validate(make_file(name="notes.txt", mimetype="text/plain"))
        assert result.success is False
        assert result.message == "Unsupported file type."

    def test_rejects_large_image(self) -> None:
        """Should apply the image ceiling."""
        result = validate(make_file(size=10 * MB + 1))
        assert result.message == "Image files cannot exceed 10 MB."

    def test_accepts_image_at_ceiling(self) -> None:
        """An image of exactly 10 MB should be accepted."""
        assert validate(make_file(size=10 * MB)).success is True

    def test_rejects_large_pdf(self) -> None:
        """Should apply the document ceiling."""
        result = validate(make_file(name="a.pdf", size=21 * MB, mimetype="application/pdf"))
        assert result.message == "PDF document files cannot exceed 20 MB."

    def test_rejects_mismatched_extension(self) -> None:
        """Extension must belong to the rule chosen by MIME type."""
        result = validate(make_file(name="photo.pdf", mimetype="image/png"))
        assert result.message == "Invalid file extension."

    def test_rejects_missing_extension(self) -> None:
        """A name without extension never matches a rule."""
        result = validate(make_file(name="photo", mimetype="image/png"))
        assert result.message == "Invalid file extension."

    def test_custom_rules_and_ceiling(self) -> None:
        """Should honor caller-supplied rules and ceiling."""
        rules = (
            TypeRule(
                key="text",
                extensions=frozenset({".txt"}),
                mimetypes=frozenset({"text/plain"}),
                max_size=100,
                display_name="Text",
            ),
        )
        assert validate(make_file("a.txt", 50, "text/plain"), rules, 1000).success is True
        assert validate(make_file("a.txt", 150, "text/plain"), rules, 1000).message == (
            "Text files cannot exceed 100 B."
        )
        assert validate(make_file("a.png"), rules, 1000).message == "Unsupported file type."

    def test_default_rules_order(self) -> None:
        """Images are declared before documents."""
        assert [rule.key for rule in DEFAULT_TYPE_RULES] == ["image", "document"]


class TestFileDescriptor:
    """Tests for FileDescriptor constructors."""

    def test_from_path_guesses_mimetype(self, tmp_path: Path) -> None:
        """Should read size from disk and guess MIME type from the name."""
        path = tmp_path / "photo.png"
        path.write_bytes(b"x" * 42)

        file = FileDescriptor.from_path(path)

        assert file.name == "photo.png"
        assert file.size == 42
        assert file.mimetype == "image/png"
        assert file.path == path

    def test_from_path_unknown_type(self, tmp_path: Path) -> None:
        """Should fall back to octet-stream."""
        path = tmp_path / "blob.zzzunknown"
        path.write_bytes(b"x")
        assert FileDescriptor.from_path(path).mimetype == "application/octet-stream"

    def test_from_bytes(self) -> None:
        """Should take size from the payload."""
        file = FileDescriptor.from_bytes("a.pdf", b"%PDF-1.4", "application/pdf")
        assert file.size == 8
        assert file.content == b"%PDF-1.4"
