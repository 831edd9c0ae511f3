"""Allow running as ``python -m filerelay``."""

from filerelay.client.cli import cli

if __name__ == "__main__":
    cli()
