"""Entry point for the effectcheck CLI."""

from effectcheck.cli import cli
from effectcheck.utils import load_config


def main():
    """Main entry point."""
    config = load_config()
    cli(default_map=config)


if __name__ == "__main__":
    main()
