"""CLI entrypoint for nova-scanner."""

import logging
from pathlib import Path

import typer

from . import __version__
from .config import Config
from .exceptions import ConfigError
from .github_client import GitHubClient
from .inventory.scanner import NovaScanner
from .issues import IssueManager
from .logs import configure_logging
from .metrics import Metrics
from .report import render_markdown
from .runner import RunReport, run, scan_inventory

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="nova-scanner",
    help="Turn outdated Helm releases and container images into GitHub issues",
)


def _print_summary(report: RunReport) -> None:
    typer.echo("\n" + "=" * 50)
    typer.echo("📊 Summary")
    typer.echo("=" * 50)
    if report.helm is not None:
        typer.echo(f"Helm releases:      {len(report.helm.all_releases)} ({len(report.helm.outdated)} outdated)")
    if report.containers is not None:
        typer.echo(
            f"Container images:   {len(report.containers.all_containers)} "
            f"({len(report.containers.outdated)} outdated, {len(report.containers.skipped)} covered by Helm)"
        )
    typer.echo(f"Issues created:     {report.created}")
    typer.echo(f"Duplicates skipped: {report.duplicates}")
    if report.would_create:
        typer.echo(f"Would create:       {report.would_create}")

    for error in report.scan_errors:
        typer.echo(f"❌ {error}", err=True)
    for outcome in report.issue_errors:
        typer.echo(f"❌ {outcome.kind} {outcome.name}: {outcome.operation} failed: {outcome.error}", err=True)
    if report.metrics_error:
        typer.echo(f"❌ {report.metrics_error}", err=True)


def _run_markdown(config: Config, scanner: NovaScanner) -> None:
    report = scan_inventory(config, scanner, RunReport())
    if report.scan_errors:
        for error in report.scan_errors:
            typer.echo(f"❌ {error}", err=True)
        raise typer.Exit(1)

    markdown = render_markdown(report)
    if config.markdown_output:
        try:
            Path(config.markdown_output).write_text(markdown, encoding="utf-8")
        except OSError as e:
            typer.echo(f"❌ Failed to write {config.markdown_output}: {e}", err=True)
            raise typer.Exit(1)
        typer.echo(f"📄 Markdown saved to {config.markdown_output}")
    else:
        typer.echo(markdown)


@app.command()
def scan(
    config_path: str = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML configuration file",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-n",
        help="Check for duplicates but do not create issues",
    ),
    output_mode: str = typer.Option(
        None,
        "--output-mode",
        "-o",
        help="Output mode: github or markdown",
    ),
) -> None:
    """Scan the cluster with Nova and create issues for outdated components."""
    overrides: dict = {}
    if dry_run:
        overrides["dry_run"] = True
    if output_mode:
        overrides["output_mode"] = output_mode

    try:
        config = Config.load(config_path, overrides)
    except ConfigError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(1)

    trace_id = configure_logging(config.log_level)
    logger.info(
        f"nova-scanner {__version__} starting (trace_id={trace_id}, dry_run={config.dry_run}, "
        f"scan_helm={config.scan_helm}, scan_containers={config.scan_containers}, "
        f"min_severity={config.min_severity}, output_mode={config.output_mode})"
    )

    scanner = NovaScanner(config)

    if config.is_markdown_mode:
        _run_markdown(config, scanner)
        return

    issue_manager = IssueManager(
        GitHubClient(config),
        owner=config.github_owner,
        repo=config.github_repo,
        marker_label=config.issue_label,
        extra_labels=config.extra_issue_labels,
        dry_run=config.dry_run,
    )
    metrics = Metrics(config.pushgateway_url, config.job_name)

    report = run(config, scanner, issue_manager, metrics)
    _print_summary(report)

    if report.had_error:
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version and exit."""
    typer.echo(f"nova-scanner version: {__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
