"""filerelay - presigned file transfer client."""

__version__ = "0.1.0"
