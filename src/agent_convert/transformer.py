"""Parse, optionally version-adapt, and render: the conversion pipeline in one call."""

import logging
from pathlib import Path
from typing import List, Optional, Union

from agent_convert.agents import AgentId, display_name
from agent_convert.errors import ConversionError, ErrorCode, enrich_error
from agent_convert.models import (
    ComponentSpec,
    ConversionReport,
    ParseOptions,
    ParseResult,
    RenderOptions,
    RenderResult,
    TransformOptions,
    TransformResult,
)
from agent_convert.registry import Registry, default_registry

logger = logging.getLogger(__name__)


def _registry(registry: Optional[Registry]) -> Registry:
    return registry or default_registry()


def parse(
    content: str,
    options: Optional[ParseOptions] = None,
    registry: Optional[Registry] = None,
) -> ParseResult:
    """Parse ``content`` with the parser for ``options.agent_id``, detecting it when unset."""
    registry = _registry(registry)
    options = options or ParseOptions()
    agent = options.agent_id or registry.detect_agent(content, options.source_file)
    if agent is None:
        info = enrich_error(ErrorCode.UNKNOWN_AGENT, "Could not detect the source agent")
        return ParseResult(success=False, errors=[str(info)])
    if not registry.has_parser(agent):
        info = enrich_error(
            ErrorCode.UNKNOWN_AGENT, f"No parser available for {display_name(agent)}"
        )
        return ParseResult(success=False, errors=[str(info)])
    parser = registry.get_parser(agent)
    try:
        return parser.parse(content, options.model_copy(update={"agent_id": agent}))
    except Exception as e:
        logger.exception("Unexpected error parsing %s as %s", options.source_file, agent.value)
        info = enrich_error(ErrorCode.PARSE_FAILED, f"Unexpected parse error: {e}")
        return ParseResult(success=False, errors=[str(info)])


def render(
    spec: ComponentSpec,
    target: AgentId,
    options: Optional[RenderOptions] = None,
    registry: Optional[Registry] = None,
) -> RenderResult:
    registry = _registry(registry)
    if not registry.has_renderer(target):
        info = enrich_error(
            ErrorCode.UNSUPPORTED_CONVERSION,
            f"No renderer available for {display_name(target)}",
        )
        return RenderResult(success=False, errors=[str(info)])
    try:
        return registry.get_renderer(target).render(spec, options)
    except ConversionError as e:
        logger.warning("Rendering '%s' for %s failed: %s", spec.id, target.value, e.message)
        info = enrich_error(ErrorCode.RENDER_FAILED, e.message)
        return RenderResult(success=False, errors=[str(info)])
    except Exception as e:
        logger.exception("Unexpected error rendering '%s' for %s", spec.id, target.value)
        info = enrich_error(ErrorCode.RENDER_FAILED, f"Unexpected render error: {e}")
        return RenderResult(success=False, errors=[str(info)])


def report_warnings(report: Optional[ConversionReport]) -> List[str]:
    """Flatten a report's warnings and significant losses into display strings."""
    if report is None:
        return []
    warnings = [f"[{w.code}] {w.message}" for w in report.warnings]
    warnings += [
        f"[LOSS:{loss.category}] {loss.description}"
        for loss in report.losses
        if loss.severity in ("warning", "critical")
    ]
    return warnings


def transform(
    content: str,
    options: TransformOptions,
    registry: Optional[Registry] = None,
) -> TransformResult:
    registry = _registry(registry)
    parsed = parse(
        content,
        ParseOptions(agent_id=options.source_agent, source_file=options.source_file),
        registry,
    )
    if not parsed.success or parsed.spec is None:
        return TransformResult(
            success=False,
            errors=parsed.errors,
            warnings=parsed.warnings,
            error_code=ErrorCode.PARSE_FAILED.value,
        )

    warnings = list(parsed.warnings)
    rendered = render(
        parsed.spec,
        options.target_agent,
        RenderOptions(
            include_comments=options.include_comments,
            validate_output=options.validate_output,
            source_version=options.source_version,
            target_version=options.target_version,
        ),
        registry,
    )
    if not rendered.success:
        return TransformResult(
            success=False,
            spec=parsed.spec,
            errors=rendered.errors,
            warnings=warnings,
            error_code=ErrorCode.RENDER_FAILED.value,
        )

    warnings += report_warnings(rendered.report)
    return TransformResult(
        success=True,
        output=rendered.content,
        filename=rendered.filename,
        spec=parsed.spec,
        report=rendered.report,
        warnings=warnings,
        fidelity_score=rendered.report.fidelity_score if rendered.report else None,
    )


def transform_spec(
    spec: ComponentSpec,
    target: AgentId,
    options: Optional[RenderOptions] = None,
    registry: Optional[Registry] = None,
) -> RenderResult:
    return render(spec, target, options, registry)


def transform_file(
    path: Union[str, Path],
    options: TransformOptions,
    registry: Optional[Registry] = None,
) -> TransformResult:
    """Read a UTF-8 file and convert it; the path doubles as the source file name."""
    path = Path(path)
    if not path.is_file():
        info = enrich_error(ErrorCode.FILE_NOT_FOUND, f"File not found: {path}")
        return TransformResult(
            success=False, errors=[str(info)], error_code=ErrorCode.FILE_NOT_FOUND.value
        )
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        info = enrich_error(ErrorCode.FILE_READ_ERROR, f"Could not read {path}: {e}")
        return TransformResult(
            success=False, errors=[str(info)], error_code=ErrorCode.FILE_READ_ERROR.value
        )
    if options.source_file is None:
        options = options.model_copy(update={"source_file": path.as_posix()})
    return transform(content, options, registry)
