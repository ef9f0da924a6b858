import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from agent_convert.agents import AgentId, display_name
from agent_convert.diff import diff_specs
from agent_convert.errors import ConversionError, ErrorCode, enrich_error, format_error
from agent_convert.mapping import get_compatibility_matrix
from agent_convert.models import ParseOptions, TransformOptions
from agent_convert.registry import default_registry
from agent_convert.reports import (
    fidelity_style,
    format_diff,
    format_matrix_markdown,
    format_report,
    format_report_markdown,
    format_validation,
    to_json,
)
from agent_convert.transformer import parse, transform_file
from agent_convert.validation import ValidatorOptions, validate
from agent_convert.versioning import (
    adapt_version,
    analyze_migration_path,
    detect_version,
    detection_summary,
    format_guide_markdown,
    generate_migration_guide,
)

app = typer.Typer(
    help="Convert skills, commands, rules and memory files between AI coding assistants"
)
console = Console()

logger = logging.getLogger(__name__)


def _fail(message: str) -> None:
    console.print(f"[red]{escape(message)}[/red]", highlight=False)
    raise typer.Exit(code=1)


def _read(path: Path) -> str:
    if not path.is_file():
        _fail(format_error(enrich_error(ErrorCode.FILE_NOT_FOUND, f"File not found: {path}")))
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        info = enrich_error(ErrorCode.FILE_READ_ERROR, f"Could not read {path}: {e}")
        _fail(format_error(info))
    return ""


@app.command()
def convert(
    file: Path = typer.Argument(..., help="Source file to convert"),
    to: AgentId = typer.Option(..., "--to", "-t", help="Target agent"),
    source: Optional[AgentId] = typer.Option(
        None, "--from", "-f", help="Source agent (default: detect from path and content)"
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Directory the converted file is written under (default: current directory)",
    ),
    comments: bool = typer.Option(
        False, "--comments", help="Add a comment naming the source agent and file"
    ),
    check: bool = typer.Option(
        False, "--validate", help="Validate the converted output for the target agent"
    ),
    source_version: Optional[str] = typer.Option(
        None, "--source-version", help="Version of the source dialect"
    ),
    target_version: Optional[str] = typer.Option(
        None, "--target-version", help="Version of the target dialect"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", "-n", help="Print the converted file instead of writing it"
    ),
    report_path: Optional[Path] = typer.Option(
        None, "--report", help="Also write the conversion report as markdown to this file"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the full result as JSON"),
):
    """
    Convert one file to another agent's format.

    Example usage:
        agent-convert convert .claude/skills/review/SKILL.md --to windsurf
        agent-convert convert .windsurf/workflows/deploy.md --to cursor --dry-run
    """
    options = TransformOptions(
        source_agent=source,
        target_agent=to,
        include_comments=comments,
        validate_output=check,
        source_version=source_version,
        target_version=target_version,
    )
    result = transform_file(file, options, default_registry())

    if as_json:
        typer.echo(to_json(result))
        if not result.success:
            raise typer.Exit(code=1)
        return

    if not result.success:
        console.print("[red]Conversion failed:[/red]")
        for error in result.errors:
            console.print(f"  [red]- {escape(error)}[/red]", highlight=False)
        raise typer.Exit(code=1)

    if result.warnings:
        console.print("\n[yellow]Warnings:[/yellow]")
        for warning in result.warnings:
            console.print(f"  [yellow]![/yellow] {warning}", markup=False, highlight=False)

    if dry_run:
        console.print("\n[yellow]DRY RUN - No files will be written.[/yellow]")
        console.print(f"[dim]Would write: {result.filename}[/dim]\n")
        typer.echo(result.output)
    else:
        base = (output or Path.cwd()).expanduser()
        target = base / (result.filename or file.name)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(result.output or "", encoding="utf-8")
        except OSError as e:
            _fail(
                format_error(
                    enrich_error(ErrorCode.FILE_WRITE_ERROR, f"Could not write {target}: {e}")
                )
            )
        console.print(f"[green]Converted to {display_name(to)}:[/green] {target}")

    if result.report:
        console.print()
        console.print(format_report(result.report, verbose=logger.isEnabledFor(logging.DEBUG)))
        if report_path is not None:
            try:
                report_path.write_text(format_report_markdown(result.report), encoding="utf-8")
            except OSError as e:
                info = enrich_error(
                    ErrorCode.FILE_WRITE_ERROR, f"Could not write {report_path}: {e}"
                )
                _fail(format_error(info))
            console.print(f"[dim]Report written to {report_path}[/dim]", highlight=False)


@app.command("validate")
def validate_command(
    file: Path = typer.Argument(..., help="File to validate"),
    agent: AgentId = typer.Option(..., "--agent", "-a", help="Agent whose rules apply"),
    component_type: str = typer.Option(
        ..., "--type", "-t", help="Component type (skill, command, rule, ...)"
    ),
    strict: bool = typer.Option(False, "--strict", help="Treat warnings as failures"),
    version: Optional[str] = typer.Option(
        None, "--version", help="Agent version to validate against"
    ),
    allow_future: bool = typer.Option(
        False, "--allow-future", help="Report newer-version features as warnings only"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
):
    """Check a file against an agent's structural rules."""
    content = _read(file)
    result = validate(
        content,
        agent,
        component_type,
        ValidatorOptions(strict=strict, version=version, allow_future_features=allow_future),
        default_registry().validators,
    )
    if as_json:
        typer.echo(to_json(result))
    else:
        console.print(format_validation(result), highlight=False)
    if not result.valid:
        raise typer.Exit(code=1)


@app.command()
def diff(
    file_a: Path = typer.Argument(..., help="First file"),
    file_b: Path = typer.Argument(..., help="Second file"),
    agent_a: Optional[AgentId] = typer.Option(
        None, "--agent-a", help="Agent of the first file"
    ),
    agent_b: Optional[AgentId] = typer.Option(
        None, "--agent-b", help="Agent of the second file"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the diff as JSON"),
):
    """Compare two files semantically, across agents if needed."""
    specs = []
    for path, agent in ((file_a, agent_a), (file_b, agent_b)):
        parsed = parse(
            _read(path),
            ParseOptions(agent_id=agent, source_file=path.as_posix()),
            default_registry(),
        )
        if not parsed.success or parsed.spec is None:
            _fail(f"Error with {path}: " + "; ".join(parsed.errors))
        specs.append(parsed.spec)

    result = diff_specs(specs[0], specs[1])
    if as_json:
        typer.echo(to_json(result))
        return
    console.print(f"\n[bold]Comparing: {file_a} <-> {file_b}[/bold]\n", highlight=False)
    console.print(format_diff(result), highlight=False)


@app.command()
def matrix(
    markdown: bool = typer.Option(False, "--markdown", help="Print a markdown table"),
):
    """Show estimated conversion fidelity for every pair of agents."""
    registry = default_registry()
    scores = get_compatibility_matrix(registry)
    if markdown:
        typer.echo(format_matrix_markdown(scores))
        return

    table = Table(title="Compatibility matrix (source -> target)")
    table.add_column("source")
    for target in scores:
        table.add_column(target.value, justify="right")
    for source, row in scores.items():
        cells = [f"[{fidelity_style(v)}]{v}[/{fidelity_style(v)}]" for v in row.values()]
        table.add_row(source.value, *cells)
    console.print(table)


@app.command("detect-version")
def detect_version_command(
    file: Path = typer.Argument(..., help="File to inspect"),
    agent: AgentId = typer.Option(..., "--agent", "-a", help="Agent the file belongs to"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
):
    """Guess which release of an agent a file was written for."""
    result = detect_version(agent, _read(file), file.as_posix())
    if as_json:
        typer.echo(to_json(result))
        return
    console.print(detection_summary(result), highlight=False)
    for marker in result.matched_markers:
        console.print(f"  [dim]- {marker}[/dim]", highlight=False)


@app.command()
def adapt(
    file: Path = typer.Argument(..., help="File to adapt"),
    agent: AgentId = typer.Option(..., "--agent", "-a", help="Agent the file belongs to"),
    from_version: str = typer.Option(..., "--from", help="Version the file targets now"),
    to_version: str = typer.Option(..., "--to", help="Version to adapt to"),
    strict: bool = typer.Option(
        False, "--strict", help="Refuse downgrades that would delete fields"
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the result here instead of printing it"
    ),
):
    """Migrate a file between two releases of the same agent."""
    content = _read(file)
    try:
        result = adapt_version(agent, content, from_version, to_version, strict=strict)
    except ConversionError as e:
        _fail(format_error(e.to_info()))

    for transformation in result.transformations:
        console.print(f"[green]+[/green] {transformation}", highlight=False)
    for warning in result.warnings:
        console.print(f"[yellow]![/yellow] {warning}", markup=False, highlight=False)

    if output is None:
        typer.echo(result.content)
        return
    try:
        output.write_text(result.content.rstrip("\n") + "\n", encoding="utf-8")
    except OSError as e:
        info = enrich_error(ErrorCode.FILE_WRITE_ERROR, f"Could not write {output}: {e}")
        _fail(format_error(info))
    console.print(f"[green]Adapted file written to {output}[/green]", highlight=False)


@app.command("migration-guide")
def migration_guide(
    agent: AgentId = typer.Option(..., "--agent", "-a", help="Agent to migrate"),
    from_version: str = typer.Option(..., "--from", help="Current version"),
    to_version: str = typer.Option(..., "--to", help="Target version"),
):
    """Print a markdown guide for moving between two releases of an agent."""
    guide = generate_migration_guide(agent, from_version, to_version)
    if guide is None:
        _fail(
            f"Unknown {display_name(agent)} version: {from_version} or {to_version}. "
            "Only catalogued releases have guides."
        )
    analysis = analyze_migration_path(agent, from_version, to_version)
    typer.echo(format_guide_markdown(guide))
    console.print(
        f"[dim]Complexity: {analysis.complexity} ({analysis.estimated_effort})[/dim]",
        highlight=False,
    )


def _version_callback(value: bool):
    if value:
        from agent_convert import __version__

        typer.echo(f"agent-convert version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V", callback=_version_callback, is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    level = logging.DEBUG if verbose else logging.WARNING
    package_logger = logging.getLogger("agent_convert")
    package_logger.handlers.clear()
    package_logger.addHandler(
        RichHandler(console=Console(stderr=True), show_path=False, markup=False)
    )
    package_logger.setLevel(level)


if __name__ == "__main__":
    app()
