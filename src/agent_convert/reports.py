"""Text, markdown and JSON renderings of conversion reports, diffs and validation results.

Text output uses rich console markup when ``markup`` is true; the CLI prints it
through a ``rich.console.Console``.
"""

import json
from typing import Any, Dict, List

from pydantic import BaseModel
from rich.markup import escape

from agent_convert.agents import AgentId
from agent_convert.diff import SemanticDiff
from agent_convert.models import ConversionReport
from agent_convert.validation import ValidationResult

SEVERITY_STYLES = {
    "identical": "green",
    "minor": "yellow",
    "moderate": "yellow",
    "significant": "red",
    "breaking": "red",
    "critical": "red",
    "warning": "yellow",
    "info": "blue",
    "error": "red",
}


def _style(text: str, style: str, markup: bool) -> str:
    return f"[{style}]{text}[/{style}]" if markup else text


def _escape(text: str, markup: bool) -> str:
    return escape(text) if markup else text


def fidelity_style(score: int) -> str:
    if score >= 80:
        return "green"
    if score >= 60:
        return "yellow"
    return "red"


def to_json(data: Any) -> str:
    """Serialize a pydantic model (or plain data holding models) as indented JSON."""
    if isinstance(data, BaseModel):
        return data.model_dump_json(indent=2)
    return json.dumps(_jsonable(data), indent=2, ensure_ascii=False)


def _jsonable(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, dict):
        return {str(k): _jsonable(v) for k, v in data.items()}
    if isinstance(data, (list, tuple)):
        return [_jsonable(v) for v in data]
    if isinstance(data, AgentId):
        return data.value
    return data


def format_report(
    report: ConversionReport, verbose: bool = False, markup: bool = True
) -> str:
    lines = [_style("Conversion Report", "bold", markup), ""]
    lines.append(
        f"  From: {report.source.agent.value} {report.source.component_type} "
        f'"{_escape(report.source.id, markup)}"'
    )
    lines.append(
        f"  To: {report.target.agent.value} {report.target.component_type} "
        f'"{_escape(report.target.id, markup)}"'
    )
    score = report.fidelity_score
    lines.append(f"  Fidelity: {_style(f'{score}%', fidelity_style(score), markup)}")
    lines.append(f"  Duration: {report.duration_ms:.1f}ms")
    lines.append("")

    if report.preserved_semantics:
        lines.append(_style("Preserved", "bold blue", markup))
        for item in report.preserved_semantics:
            lines.append(f"  {_style('+', 'green', markup)} {_escape(item, markup)}")
        lines.append("")

    if report.losses:
        lines.append(_style("Losses", "bold blue", markup))
        for loss in report.losses:
            mark = "x" if loss.severity == "critical" else "!"
            icon = _style(mark, SEVERITY_STYLES[loss.severity], markup)
            lines.append(
                f"  {icon} {_escape(f'[{loss.category}]', markup)} "
                f"{_escape(loss.description, markup)}"
            )
            if loss.recommendation and verbose:
                lines.append(f"      -> {_escape(loss.recommendation, markup)}")
        lines.append("")

    if report.warnings:
        lines.append(_style("Warnings", "bold blue", markup))
        for warning in report.warnings:
            lines.append(
                f"  {_style('!', 'yellow', markup)} "
                f"{_escape(f'[{warning.code}] {warning.message}', markup)}"
            )
        lines.append("")

    if report.suggestions and verbose:
        lines.append(_style("Suggestions", "bold blue", markup))
        for suggestion in report.suggestions:
            lines.append(f"  - {_escape(suggestion, markup)}")
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"


def format_report_markdown(report: ConversionReport) -> str:
    lines = [
        f"# Conversion Report: {report.source.id}",
        "",
        f"- **From:** {report.source.agent.value} {report.source.component_type}",
        f"- **To:** {report.target.agent.value} {report.target.component_type}",
        f"- **Fidelity:** {report.fidelity_score}%",
        "",
    ]
    if report.preserved_semantics:
        lines += ["## Preserved", ""]
        lines += [f"- {item}" for item in report.preserved_semantics]
        lines.append("")
    if report.losses:
        lines += [
            "## Losses",
            "",
            "| Severity | Category | Field | Description |",
            "|---|---|---|---|",
        ]
        for loss in report.losses:
            lines.append(
                f"| {loss.severity} | {loss.category} | `{loss.source_field}` "
                f"| {loss.description} |"
            )
        lines.append("")
    if report.warnings:
        lines += ["## Warnings", ""]
        lines += [f"- `{w.code}`: {w.message}" for w in report.warnings]
        lines.append("")
    if report.suggestions:
        lines += ["## Suggestions", ""]
        lines += [f"- {s}" for s in report.suggestions]
        lines.append("")
    return "\n".join(lines)


def format_diff(diff: SemanticDiff, markup: bool = True) -> str:
    style = SEVERITY_STYLES[diff.overall_severity]
    lines = [
        _style(f"Overall: {diff.overall_severity.upper()}", style, markup),
        "",
        _escape(diff.summary, markup),
    ]
    if diff.field_diffs:
        lines += ["", "Changes:"]
        for d in diff.field_diffs:
            tag = _style(_escape(f"[{d.severity}]", markup), SEVERITY_STYLES[d.severity], markup)
            lines.append(f"  {tag} {d.label}: {_escape(d.description, markup)}")
    return "\n".join(lines) + "\n"


def format_validation(result: ValidationResult, markup: bool = True) -> str:
    status = (
        _style("VALID", "green", markup) if result.valid else _style("INVALID", "red", markup)
    )
    lines = [
        f"{status} {result.agent.value} {result.component_type} (version {result.version})"
    ]
    for severity, issues in (
        ("error", result.issues),
        ("warning", result.warnings),
        ("info", result.info),
    ):
        for issue in issues:
            tag = _style(_escape(f"[{issue.code}]", markup), SEVERITY_STYLES[severity], markup)
            where = f" ({issue.field})" if issue.field else ""
            lines.append(f"  {tag} {_escape(issue.message, markup)}{where}")
            if issue.suggestion:
                lines.append(f"      -> {_escape(issue.suggestion, markup)}")
    return "\n".join(lines) + "\n"


def format_matrix_markdown(matrix: Dict[AgentId, Dict[AgentId, int]]) -> str:
    agents: List[AgentId] = list(matrix)
    header = "| source \\ target | " + " | ".join(a.value for a in agents) + " |"
    lines = [header, "|" + "---|" * (len(agents) + 1)]
    for source in agents:
        cells = (str(matrix[source].get(target, 0)) for target in agents)
        lines.append(f"| {source.value} | " + " | ".join(cells) + " |")
    return "\n".join(lines) + "\n"
