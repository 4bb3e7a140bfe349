#!/usr/bin/env python3
"""
Main CLI entry point using Typer.
"""

import logging
import sys

import typer

from calico_install.cli.commands import installation

app = typer.Typer(
    name="calico-install",
    help="Calico Installation resource validation tool",
    add_completion=False,
)

app.add_typer(installation.app, name="installation", help="Installation resource commands")


@app.callback()
def configure(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")):
    """Calico Installation resource validation tool."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)


def main() -> int:
    """Main entry point."""
    try:
        app()
        return 0
    except KeyboardInterrupt:
        typer.echo("\nOperation cancelled by user", err=True)
        return 130
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
