"""Allow running as ``python -m lightguide``."""

from lightguide.cli.main import cli

if __name__ == "__main__":
    cli()
