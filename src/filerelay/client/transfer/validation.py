"""Client-side file validation before any network call.

Rules are evaluated in declaration order; the first rule whose MIME set
contains the file's MIME type decides the per-type ceiling and the allowed
extensions.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from filerelay.client.transfer.types import FileDescriptor
from filerelay.core.config import DEFAULT_LIMITS, MB

logger = logging.getLogger(__name__)

SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


@dataclass(frozen=True)
class TypeRule:
    """Allowed extensions, MIME types and size ceiling for a file category."""

    key: str
    extensions: frozenset[str]
    mimetypes: frozenset[str]
    max_size: int
    display_name: str


DEFAULT_TYPE_RULES: tuple[TypeRule, ...] = (
    TypeRule(
        key="image",
        extensions=frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp"}),
        mimetypes=frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"}),
        max_size=10 * MB,
        display_name="Image",
    ),
    TypeRule(
        key="document",
        extensions=frozenset({".pdf"}),
        mimetypes=frozenset({"application/pdf"}),
        max_size=20 * MB,
        display_name="PDF document",
    ),
)


@dataclass
class ValidationResult:
    """Outcome of validate()."""

    success: bool
    message: str | None = None
    rule: TypeRule | None = None


def format_file_size(size: int | None) -> str:
    """Format a byte count for display.

    Examples:
        >>> format_file_size(0)
        '0 B'
        >>> format_file_size(1536)
        '1.5 KB'
    """
    if not size or size <= 0:
        return "0 B"
    exponent = 0
    while size >= 1024 ** (exponent + 1) and exponent < len(SIZE_UNITS) - 1:
        exponent += 1
    value = round(size / 1024**exponent, 2)
    return f"{value:g} {SIZE_UNITS[exponent]}"


def get_file_extension(filename: str | None) -> str:
    """Get the lower-cased extension including the dot, or "" if none."""
    if not filename:
        return ""
    parts = filename.split(".")
    return f".{parts[-1].lower()}" if len(parts) > 1 else ""


def get_file_type(
    filename: str | None, rules: Sequence[TypeRule] = DEFAULT_TYPE_RULES
) -> str:
    """Get the key of the rule matching the file's extension, or "unknown"."""
    if not filename:
        return "unknown"
    ext = get_file_extension(filename)
    for rule in rules:
        if ext in rule.extensions:
            return rule.key
    return "unknown"


def match_rule(mimetype: str, rules: Sequence[TypeRule]) -> TypeRule | None:
    """Get the first rule whose MIME set contains mimetype."""
    for rule in rules:
        if mimetype in rule.mimetypes:
            return rule
    return None


def validate(
    file: FileDescriptor | None,
    rules: Sequence[TypeRule] = DEFAULT_TYPE_RULES,
    max_file_size: int = DEFAULT_LIMITS.max_file_size,
) -> ValidationResult:
    """Accept or reject a file before it reaches the network.

    Checks run in a fixed order and stop at the first failure:
    presence, global ceiling, MIME type, per-type ceiling, extension.

    Args:
        file: Candidate file.
        rules: Ordered type rules.
        max_file_size: Global ceiling in bytes.

    Returns:
        ValidationResult; on success it carries the matched rule.
    """
    if file is None:
        return _reject("No file selected.")

    if file.size > max_file_size:
        return _reject(f"File size cannot exceed {format_file_size(max_file_size)}.")

    rule = match_rule(file.mimetype, rules)
    if rule is None:
        return _reject("Unsupported file type.")

    if file.size > rule.max_size:
        return _reject(
            f"{rule.display_name} files cannot exceed {format_file_size(rule.max_size)}."
        )

    if get_file_extension(file.name) not in rule.extensions:
        return _reject("Invalid file extension.")

    return ValidationResult(success=True, rule=rule)


def _reject(message: str) -> ValidationResult:
    logger.debug(f"Validation failed: {message}")
    return ValidationResult(success=False, message=message)
