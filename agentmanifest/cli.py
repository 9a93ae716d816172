"""CLI entry point"""

import asyncio
import json
import logging
import sys

import click
from rich.console import Console
from rich.table import Table

from agentmanifest import __version__
from agentmanifest.config import get_config
from agentmanifest.loader import load_manifest
from agentmanifest.models import Severity, ValidationResult
from agentmanifest.validator import ManifestValidator

console = Console()

SEVERITY_STYLE = {
    Severity.ERROR: ("✖", "red"),
    Severity.WARNING: ("⚠", "yellow"),
    Severity.INFO: ("✓", "green"),
}


def render_result(result: ValidationResult) -> None:
    """Print the check table and summary"""
    table = Table(show_header=True, header_style="bold cyan", title="Validation Checks")
    table.add_column("", width=2)
    table.add_column("Status", width=6)
    table.add_column("Check", style="cyan")
    table.add_column("Message")

    for check in result.checks:
        icon, color = SEVERITY_STYLE[check.severity]
        status = "PASS" if check.passed else "FAIL"
        table.add_row(f"[{color}]{icon}[/{color}]", f"[{color}]{status}[/{color}]", check.name, check.message)

    console.print(table)

    console.print("\n[bold]Validation Summary[/bold]")
    console.print(f"URL: {result.url}")
    console.print(f"Spec Version: {result.spec_version or 'unknown'}")
    console.print(f"Validated At: {result.validated_at}")
    if result.passed:
        console.print("Status: [green]PASSED ✓[/green]")
    else:
        console.print("Status: [red]FAILED ✖[/red]")

    if result.errors:
        console.print(f"[red]Errors: {len(result.errors)}[/red]")
    if result.warnings:
        console.print(f"[yellow]Warnings: {len(result.warnings)}[/yellow]")
    if result.badges:
        console.print(f"Badges: [blue]{', '.join(result.badges)}[/blue]")

    if result.verification_token:
        console.print("\n[green]Verification Token:[/green]")
        console.print(result.verification_token, soft_wrap=True)


@click.group()
@click.version_option(version=__version__, prog_name="agentmanifest")
@click.option("--log-level", default=None, help="Override the configured log level")
def cli(log_level):
    """AgentManifest validator - check API capability manifests"""
    config = get_config()
    logging.basicConfig(
        level=(log_level or config.log_level).upper(),
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


@cli.command("validate")
@click.argument("url", required=False)
@click.option("--file", "manifest_file", type=click.Path(exists=True, dir_okay=False),
              help="Validate a local manifest file (JSON or YAML) instead of fetching a URL")
@click.option("--source", default=None, help="Source label recorded for a local manifest")
@click.option("--json", "as_json", is_flag=True, help="Print the raw result as JSON")
def validate_cmd(url, manifest_file, source, as_json):
    """Validate the manifest served by URL, or a local manifest file"""
    if not url and not manifest_file:
        raise click.UsageError("Provide a URL or --file")
    if url and manifest_file:
        raise click.UsageError("Provide either a URL or --file, not both")

    validator = ManifestValidator()

    if manifest_file:
        try:
            manifest = load_manifest(manifest_file)
        except ValueError as e:
            console.print(f"❌ [red]Invalid manifest in {manifest_file}: {e}[/red]")
            sys.exit(1)
        if not as_json:
            console.print(f"ℹ️  Validating local file: [cyan]{manifest_file}[/cyan]")
        result = asyncio.run(validator.validate_document(manifest, source or manifest_file))
    else:
        if not as_json:
            console.print(f"ℹ️  Validating: [cyan]{url}[/cyan]")
        result = asyncio.run(validator.validate_url(url))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        render_result(result)

    sys.exit(0 if result.passed else 1)


def main():
    cli()


if __name__ == "__main__":
    main()
