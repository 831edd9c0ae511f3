"""Client module - HTTP client, transfer orchestration and CLI."""
