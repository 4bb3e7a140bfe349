"""
Installation resource commands.
"""

from enum import Enum
from pathlib import Path

import typer

from calico_install.cli.lib.defaults import fill_defaults
from calico_install.cli.lib.errors import InstallationValidationError
from calico_install.cli.lib.manifest import dump_manifest, load_manifest
from calico_install.cli.lib.validation import collect_violations, validate_custom_resource

app = typer.Typer(help="Installation resource commands")


class OutputFormat(str, Enum):
    yaml = "yaml"
    json = "json"


@app.command()
def validate(
    manifest: Path = typer.Argument(..., help="Installation manifest (YAML or JSON)"),
    fill: bool = typer.Option(False, "--fill-defaults", help="Fill in defaults before validating"),
):
    """
    Validate an Installation manifest.

    Exits with status 1 and lists every violated rule if the manifest is invalid.
    """
    try:
        instance = load_manifest(manifest)
        if fill:
            fill_defaults(instance)
        validate_custom_resource(instance)
        typer.echo(f"Installation {instance.metadata.name} is valid")

    except InstallationValidationError as e:
        for violation in e.violations:
            typer.echo(f"Error: {violation.field}: {violation.detail}", err=True)
        raise typer.Exit(1)
    except Exception as e:
        typer.echo(f"Error validating Installation: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def defaults(
    manifest: Path = typer.Argument(..., help="Installation manifest (YAML or JSON)"),
    output: OutputFormat = typer.Option(OutputFormat.yaml, "--output", "-o", help="Output format"),
):
    """
    Print an Installation manifest with defaults filled in.
    """
    try:
        instance = fill_defaults(load_manifest(manifest))
        typer.echo(dump_manifest(instance, output.value), nl=False)

    except Exception as e:
        typer.echo(f"Error filling defaults: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def check(
    manifest: Path = typer.Argument(..., help="Installation manifest (YAML or JSON)"),
):
    """
    Fill in defaults, then report every violated rule.

    Shows one line per violation with its rule, kind, and field.
    """
    try:
        instance = fill_defaults(load_manifest(manifest))
        violations = collect_violations(instance)

    except Exception as e:
        typer.echo(f"Error checking Installation: {e}", err=True)
        raise typer.Exit(1)

    if not violations:
        typer.echo(f"Installation {instance.metadata.name}: no violations")
        return

    for violation in violations:
        typer.echo(f"{violation.rule} kind={violation.kind.value} field={violation.field} value={violation.value!r}")
        typer.echo(f"  {violation.detail}")
    typer.echo(f"Installation {instance.metadata.name}: {len(violations)} violation(s)", err=True)
    raise typer.Exit(1)
