"""CLI command implementations"""

from datetime import datetime
from pathlib import Path
from typing import Annotated, Iterable, Optional

import typer

from mdsite.config import Settings, load_config
from mdsite.core.errors import Diagnostic, DiagnosticKind, Severity, SourceUnavailable
from mdsite.core.export import write_result
from mdsite.core.models import BuildResult
from mdsite.core.pipeline import SiteBuilder
from mdsite.core.source import FileSystemSource
from mdsite.theme.basic import BasicTheme


EXCLUSIONS = {DiagnosticKind.excluded_draft, DiagnosticKind.excluded_future}


def _fail(msg: str, cause: Exception = None) -> None:
    """Print a user-friendly error to stderr and exit 1."""
    typer.echo(f"Error: {msg}", err=True)
    if cause:
        typer.echo(f"  {cause}", err=True)
    raise typer.Exit(1)


def _settings(overrides: dict = None) -> Settings:
    """Load config with standard CLI error handling."""
    try:
        return load_config(overrides=overrides)
    except ValueError as e:
        _fail(str(e))


def _builder(settings: Settings) -> SiteBuilder:
    """SiteBuilder over the configured content directory, rendered with the basic theme."""
    theme = BasicTheme(site_title=settings.site_title, parser_config=settings.parser_config)
    return SiteBuilder.from_settings(
        settings, FileSystemSource(settings.content_dir), theme.render, render_list=theme.render_list,
    )


def _echo_diagnostics(diagnostics: Iterable[Diagnostic], verbose: bool = False) -> None:
    """Print warnings and errors; info-level entries (exclusions, shadowed list pages) only when verbose."""
    for d in diagnostics:
        if d.severity == Severity.info and not verbose:
            continue
        typer.echo(f"  {d}", err=d.severity == Severity.error)


def _summarize(result: BuildResult, strict: bool) -> None:
    """Print a summary line and exit 1 if the build should be considered failed."""
    excluded = sum(1 for d in result.diagnostics if d.kind in EXCLUSIONS)
    typer.echo(
        f"Build {result.state.value} - "
        f"{len(result.artifacts)} page(s), "
        f"{excluded} excluded, "
        f"{len(result.warnings)} warning(s), "
        f"{len(result.errors)} error(s)"
    )
    if result.failed(strict):
        raise typer.Exit(1)


def _run(settings: Settings, now: Optional[datetime]) -> BuildResult:
    """Run a build; a missing source comes back as a failed result, not an exception."""
    return _builder(settings).run(reference_time=now)


def build_cmd(
    path: Annotated[Optional[str], typer.Argument(help="Content directory")] = None,
    out: Annotated[Optional[str], typer.Option("--out-dir", help="Output directory")] = None,
    page_size: Annotated[Optional[int], typer.Option("--page-size", help="Documents per list page; 0 = single page")] = None,
    workers: Annotated[Optional[int], typer.Option("--workers", help="Parallel render workers")] = None,
    strict: Annotated[Optional[bool], typer.Option("--strict/--no-strict", help="Fail the build on warnings")] = None,
    now: Annotated[Optional[datetime], typer.Option("--now", help="Reference time for future-dated content")] = None,
    report: Annotated[Optional[str], typer.Option("--report", help="Write a JSON build report with this file name")] = None,
    show_excluded: Annotated[bool, typer.Option("--show-excluded", help="List drafts and future-dated entries")] = False,
    ):
    """Run the full pipeline and write rendered pages to the output directory."""
    settings = _settings(overrides={
        "content_dir": path, "output_dir": out, "page_size": page_size,
        "workers": workers, "strict": strict,
    })
    result = _run(settings, now)
    _echo_diagnostics(result.diagnostics, verbose=show_excluded)

    if result.artifacts:
        output_dir = Path(settings.output_dir)
        try:
            written = write_result(result, output_dir, report=report)
        except (OSError, ValueError) as e:
            _fail("Writing output failed", e)
        typer.echo(f"Wrote {len(written)} file(s) to {output_dir}/")
    _summarize(result, settings.strict)


def check_cmd(
    path: Annotated[Optional[str], typer.Argument(help="Content directory")] = None,
    strict: Annotated[Optional[bool], typer.Option("--strict/--no-strict", help="Fail on warnings")] = None,
    now: Annotated[Optional[datetime], typer.Option("--now", help="Reference time for future-dated content")] = None,
    show_excluded: Annotated[bool, typer.Option("--show-excluded", help="List drafts and future-dated entries")] = False,
    ):
    """Build in memory and report diagnostics without writing any files."""
    settings = _settings(overrides={"content_dir": path, "strict": strict})
    result = _run(settings, now)
    _echo_diagnostics(result.diagnostics, verbose=show_excluded)
    _summarize(result, settings.strict)


def list_cmd(
    path: Annotated[Optional[str], typer.Argument(help="Content directory")] = None,
    now: Annotated[Optional[datetime], typer.Option("--now", help="Reference time for future-dated content")] = None,
    ):
    """List sections with their visible documents in build order."""
    settings = _settings(overrides={"content_dir": path})
    try:
        plan = _builder(settings).plan(reference_time=now)
    except SourceUnavailable as e:
        _fail("Content source unavailable", e)

    documents = plan.site.documents
    if not documents:
        typer.echo("No visible documents found.")
        raise typer.Exit(1)
    for section in plan.site.sections.values():
        typer.echo(f"{section.route} ({len(section)} document(s), {len(section.pages)} page(s))")
        for doc in section:
            stamp = f"{doc.publish_time:%Y-%m-%d}" if doc.publish_time else "undated"
            typer.echo(f"  {stamp}  {doc.route}  {doc.title}")
    typer.echo(f"{len(documents)} visible document(s) in {len(plan.site.sections)} section(s)")
