"""Core module - Shared configuration."""

from filerelay.core.config import (
    DEFAULT_LIMITS,
    MB,
    Credentials,
    ServerConfig,
    TransferLimits,
)

__all__ = [
    "DEFAULT_LIMITS",
    "MB",
    "Credentials",
    "ServerConfig",
    "TransferLimits",
]
