"""Shared parser/renderer plumbing.

Parsers turn one dialect into a ``ComponentSpec``; renderers go the other way
and account for everything the target cannot express in a ``ConversionReport``.
"""

import logging
import re
import time
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from agent_convert.agents import AgentId, display_name, native_component_type
from agent_convert.errors import ConversionError, ErrorCode, enrich_error
from agent_convert.inference import merge_capabilities
from agent_convert.models import (
    AgentDescriptor,
    CodexMetadata,
    ComponentRef,
    ComponentSpec,
    ConversionLoss,
    ConversionReport,
    ConversionWarning,
    GeminiMetadata,
    LossCategory,
    LossSeverity,
    OpenCodeMetadata,
    ParseOptions,
    ParseResult,
    RenderOptions,
    RenderResult,
    TriggerSpec,
)
from agent_convert.utils import FrontmatterFormat, as_list, compose_document
from agent_convert.validation import validate
from agent_convert.versioning import (
    VersionDetectionResult,
    adapt_version,
    default_target_version,
    detect_version,
    needs_adaptation,
)

logger = logging.getLogger(__name__)

EMPTY_CONTENT_MESSAGE = "Content is empty. Please provide valid component content."


def normalize_path(source_file: Optional[str]) -> Optional[str]:
    return source_file.replace("\\", "/") if source_file else None


def id_from_path(source_file: Optional[str]) -> Optional[str]:
    """``.../<id>/SKILL.md`` gives the directory name, anything else its stem."""
    path = normalize_path(source_file)
    if not path:
        return None
    p = PurePosixPath(path)
    if p.name.upper() in ("SKILL.MD", "COMMAND.MD") and p.parent.name:
        return p.parent.name
    stem = p.name.lstrip(".").split(".")[0]
    return stem or None


def glob_triggers(globs: Any) -> Optional[List[TriggerSpec]]:
    patterns = as_list(globs)
    if not patterns:
        return None
    return [TriggerSpec(type="glob", pattern=p) for p in patterns]


def trigger_globs(spec: ComponentSpec) -> List[str]:
    return [
        t.pattern
        for t in spec.activation.triggers or []
        if t.type == "glob" and t.pattern
    ]


_EXAMPLES_HEADING = re.compile(r"^#{1,3}\s*(?:Examples?|Usage)\b.*$", re.I | re.M)


def extract_examples(body: str, limit: int = 3) -> Optional[List[str]]:
    """Code blocks that follow an Examples/Usage heading."""
    match = _EXAMPLES_HEADING.search(body)
    if not match:
        return None
    blocks = re.findall(r"```[\s\S]*?```", body[match.end() :])
    return blocks[:limit] or None


def has_examples_section(body: str) -> bool:
    return _EXAMPLES_HEADING.search(body) is not None


def source_descriptor(agent: AgentId, version: Optional[str] = None) -> AgentDescriptor:
    return AgentDescriptor(id=agent, version=version)


class BaseParser:
    """Raw dialect text to ``ComponentSpec``.

    Subclasses implement ``can_parse`` and ``_parse``; ``parse`` wraps the
    empty-content check and turns pipeline exceptions into a failed result.
    """

    agent: AgentId

    def can_parse(self, content: str, filename: Optional[str] = None) -> bool:
        raise NotImplementedError

    def _parse(
        self, content: str, options: ParseOptions
    ) -> Tuple[ComponentSpec, List[str]]:
        raise NotImplementedError

    def parse(self, content: str, options: Optional[ParseOptions] = None) -> ParseResult:
        options = options or ParseOptions()
        if not content or not content.strip():
            return ParseResult(success=False, errors=[EMPTY_CONTENT_MESSAGE])

        try:
            spec, warnings = self._parse(content, options)
        except ConversionError as e:
            logger.debug("%s parser rejected input: %s", self.agent.value, e.message)
            return ParseResult(success=False, errors=[str(e.to_info())])
        except ValidationError as e:
            logger.debug("%s parser produced an invalid spec: %s", self.agent.value, e)
            info = enrich_error(
                ErrorCode.SCHEMA_INVALID,
                f"Frontmatter does not fit the component schema ({e.error_count()} error(s))",
                str(e),
            )
            return ParseResult(success=False, errors=[str(info)])

        logger.debug(
            "Parsed %s %s '%s'", self.agent.value, spec.component_type, spec.id
        )
        if options.validate_on_parse:
            result = validate(content, self.agent, spec.component_type)
            warnings = warnings + [f"[Validation] {w.message}" for w in result.warnings]
            warnings += [f"[Validation] {e.message}" for e in result.issues]
        return ParseResult(success=True, spec=spec, warnings=warnings)

    def detect_version(
        self, content: str, file_path: Optional[str] = None
    ) -> VersionDetectionResult:
        return detect_version(self.agent, content, file_path)


# --- Rendering ---


@dataclass(frozen=True)
class FidelityPolicy:
    """Per-target scoring constants."""

    base: int = 100
    critical: int = 20
    warning: int = 10
    info: int = 5
    per_warning: int = 3
    cross_agent: int = 0
    # Sources exempt from the cross-agent penalty besides the target itself.
    native_sources: Tuple[AgentId, ...] = ()

    def penalty(self, severity: LossSeverity) -> int:
        return {"critical": self.critical, "warning": self.warning, "info": self.info}[
            severity
        ]


def fidelity_score(
    losses: Iterable[ConversionLoss],
    warnings: Iterable[ConversionWarning],
    policy: FidelityPolicy,
    source: Optional[AgentId],
    target: AgentId,
) -> int:
    same_agent = source == target
    score = 100 if same_agent else policy.base
    score -= sum(policy.penalty(loss.severity) for loss in losses)
    score -= policy.per_warning * len(list(warnings))
    if not same_agent and policy.cross_agent and source not in policy.native_sources:
        score -= policy.cross_agent
    return max(0, min(100, score))


@dataclass
class RenderNotes:
    """Accumulates what a render kept, lost and warned about."""

    preserved: List[str] = field(default_factory=list)
    losses: List[ConversionLoss] = field(default_factory=list)
    warnings: List[ConversionWarning] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    def keep(self, *semantics: str) -> None:
        for item in semantics:
            if item not in self.preserved:
                self.preserved.append(item)

    def lose(
        self,
        category: LossCategory,
        severity: LossSeverity,
        source_field: str,
        description: str,
        recommendation: Optional[str] = None,
    ) -> None:
        self.losses.append(
            ConversionLoss(
                category=category,
                severity=severity,
                source_field=source_field,
                description=description,
                recommendation=recommendation,
            )
        )

    def warn(self, code: str, message: str, field: Optional[str] = None) -> None:
        self.warnings.append(ConversionWarning(code=code, message=message, field=field))

    def suggest(self, suggestion: str) -> None:
        if suggestion not in self.suggestions:
            self.suggestions.append(suggestion)


@dataclass
class RenderedDocument:
    frontmatter: Dict[str, Any]
    body: str
    fmt: FrontmatterFormat = "yaml"


# (metadata model, field, category, severity, description) for agent-only settings
# that other dialects have no key for.
EXTENSION_LOSSES = [
    (CodexMetadata, "sandbox_mode", "capability", "info", "Codex sandbox_mode '{value}' has no equivalent"),
    (CodexMetadata, "approval_policy", "capability", "warning", "Codex approval_policy '{value}' has no equivalent"),
    (CodexMetadata, "web_search", "capability", "info", "Codex web_search '{value}' has no equivalent"),
    (CodexMetadata, "mcp_servers", "capability", "warning", "MCP server configuration is not carried over"),
    (CodexMetadata, "features", "metadata", "info", "Codex feature toggles are not carried over"),
    (GeminiMetadata, "temperature", "metadata", "info", "Gemini temperature {value} is not carried over"),
    (GeminiMetadata, "max_tokens", "metadata", "info", "Gemini max_tokens {value} is not carried over"),
    (GeminiMetadata, "include_directories", "metadata", "info", "Gemini include_directories are not carried over"),
    (GeminiMetadata, "instruction", "content", "info", "Gemini instruction field is not carried over"),
    (OpenCodeMetadata, "mode", "metadata", "info", "OpenCode mode '{value}' is not directly supported"),
    (OpenCodeMetadata, "temperature", "metadata", "info", "OpenCode temperature {value} is not carried over"),
]


class BaseRenderer:
    """``ComponentSpec`` to dialect text plus a ``ConversionReport``.

    Subclasses implement ``_render``, ``target_directory`` and
    ``target_filename``. Everything after the document is built (overrides,
    version adaptation, the conversion comment, scoring) happens here.
    """

    agent: AgentId
    fidelity = FidelityPolicy()
    # Extension fields this dialect can write, as (metadata model, field name).
    expressible: Tuple[Tuple[type, str], ...] = ()

    def _render(
        self, spec: ComponentSpec, notes: RenderNotes, options: RenderOptions
    ) -> RenderedDocument:
        raise NotImplementedError

    def target_directory(self, spec: ComponentSpec) -> str:
        raise NotImplementedError

    def target_filename(self, spec: ComponentSpec) -> str:
        raise NotImplementedError

    def target_path(self, spec: ComponentSpec) -> str:
        directory = self.target_directory(spec)
        filename = self.target_filename(spec)
        return filename if directory in ("", ".") else f"{directory}/{filename}"

    def target_component_type(self, spec: ComponentSpec) -> str:
        return native_component_type(spec.component_type, self.agent) or spec.component_type

    def render(
        self, spec: ComponentSpec, options: Optional[RenderOptions] = None
    ) -> RenderResult:
        options = options or RenderOptions()
        started = time.perf_counter()
        notes = RenderNotes()

        override = spec.override_for(self.agent)
        if override and override.capability_overrides:
            spec = spec.model_copy(
                update={
                    "capabilities": merge_capabilities(
                        spec.capabilities, **override.capability_overrides
                    )
                }
            )

        self.note_extension_losses(spec, notes)
        doc = self._render(spec, notes, options)

        body = doc.body.strip()
        if override:
            if override.frontmatter_overrides:
                doc.frontmatter.update(override.frontmatter_overrides)
            if override.body_prefix:
                body = f"{override.body_prefix}\n\n{body}"
            if override.body_suffix:
                body = f"{body}\n\n{override.body_suffix}"

        content = compose_document(doc.frontmatter, body, doc.fmt)
        content = self.adapt_for_version(content, notes, options)
        if options.include_comments:
            content = insert_after_frontmatter(content, self.conversion_comment(spec))

        if options.validate_output:
            self.check_output(content, spec, notes)

        report = self.create_report(spec, notes, started)
        logger.debug(
            "Rendered '%s' for %s: fidelity %d, %d loss(es)",
            spec.id,
            self.agent.value,
            report.fidelity_score,
            len(report.losses),
        )
        return RenderResult(
            success=True,
            content=content,
            filename=self.target_path(spec),
            report=report,
        )

    def note_extension_losses(self, spec: ComponentSpec, notes: RenderNotes) -> None:
        ext = spec.metadata.extension
        if ext is None or ext.agent == self.agent.value:
            return
        for model, name, category, severity, description in EXTENSION_LOSSES:
            if not isinstance(ext, model) or (model, name) in self.expressible:
                continue
            value = getattr(ext, name)
            if value is None:
                continue
            notes.lose(
                category,
                severity,
                f"metadata.{name}",
                description.format(value=value),
            )

    def conversion_comment(self, spec: ComponentSpec) -> str:
        source = spec.source_agent_id.value if spec.source_agent_id else "unknown"
        original = spec.metadata.source_file or "unknown"
        return (
            f"<!-- Converted from {source} to {display_name(self.agent)} -->\n"
            f"<!-- Original: {original} -->"
        )

    def adapt_for_version(
        self, content: str, notes: RenderNotes, options: RenderOptions
    ) -> str:
        source_version = options.source_version
        if not source_version:
            return content
        target_version = options.target_version or default_target_version(self.agent)
        if not needs_adaptation(self.agent, source_version, target_version):
            return content

        result = adapt_version(self.agent, content, source_version, target_version)
        for warning in result.warnings:
            notes.warn("VERSION_ADAPTATION", warning, "body")
        if result.has_breaking_changes:
            notes.warn(
                "VERSION_ADAPTATION",
                f"Breaking changes encountered when adapting from v{source_version} "
                f"to v{target_version}",
                "body",
            )
        if result.transformations:
            notes.keep("Version-adapted content")
        return result.content.rstrip("\n") + "\n"

    def check_output(self, content: str, spec: ComponentSpec, notes: RenderNotes) -> None:
        result = validate(content, self.agent, self.target_component_type(spec))
        for issue in result.issues:
            notes.warn("OUTPUT_VALIDATION", issue.message, issue.field)

    def create_report(
        self, spec: ComponentSpec, notes: RenderNotes, started: float
    ) -> ConversionReport:
        source = spec.source_agent_id or self.agent
        return ConversionReport(
            source=ComponentRef(
                agent=source, component_type=spec.component_type, id=spec.id
            ),
            target=ComponentRef(
                agent=self.agent,
                component_type=self.target_component_type(spec),
                id=spec.id,
            ),
            preserved_semantics=notes.preserved,
            losses=notes.losses,
            warnings=notes.warnings,
            suggestions=notes.suggestions,
            fidelity_score=fidelity_score(
                notes.losses, notes.warnings, self.fidelity, source, self.agent
            ),
            duration_ms=(time.perf_counter() - started) * 1000,
        )


def insert_after_frontmatter(content: str, comment: str) -> str:
    """Place ``comment`` right after the closing ``---`` (or at the top)."""
    lines = content.splitlines(keepends=True)
    if lines and lines[0].strip() == "---":
        for index in range(1, len(lines)):
            if lines[index].strip() == "---":
                head = "".join(lines[: index + 1])
                rest = "".join(lines[index + 1 :]).lstrip("\n")
                return f"{head}{comment}\n\n{rest}"
    return f"{comment}\n\n{content}"
