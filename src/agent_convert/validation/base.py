"""Validator framework: issues, results, the shared checks and the registry."""

import logging
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Literal, Mapping, Optional, Tuple

from pydantic import BaseModel, Field

from agent_convert.agents import AgentId, display_name
from agent_convert.errors import FrontmatterError
from agent_convert.utils import parse_frontmatter
from agent_convert.versioning import VersionCatalog, default_catalog

logger = logging.getLogger(__name__)

IssueSeverity = Literal["error", "warning", "info"]

_LEADING_COMMENT_RE = re.compile(r"^\s*<!--[\s\S]*?-->\s*\n---\s*$", re.M)


class ValidationIssue(BaseModel):
    code: str
    message: str
    severity: IssueSeverity
    field: Optional[str] = None
    suggestion: Optional[str] = None


class ValidationResult(BaseModel):
    valid: bool
    agent: AgentId
    component_type: str
    version: str
    issues: List[ValidationIssue] = Field(default_factory=list)
    warnings: List[ValidationIssue] = Field(default_factory=list)
    info: List[ValidationIssue] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def all_issues(self) -> List[ValidationIssue]:
        return self.issues + self.warnings + self.info


class ValidatorOptions(BaseModel):
    strict: bool = False
    version: Optional[str] = None
    allow_future_features: bool = False
    skip_deprecated_warnings: bool = False


@dataclass
class IssueCollector:
    """Mutable scratchpad for one validation pass."""

    issues: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)
    info: List[ValidationIssue] = field(default_factory=list)

    def add(
        self,
        code: str,
        message: str,
        severity: IssueSeverity,
        field: Optional[str] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        issue = ValidationIssue(
            code=code, message=message, severity=severity, field=field, suggestion=suggestion
        )
        bucket = {"error": self.issues, "warning": self.warnings, "info": self.info}
        bucket[severity].append(issue)

    def error(
        self,
        code: str,
        message: str,
        field: Optional[str] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        self.add(code, message, "error", field, suggestion)

    def warning(
        self,
        code: str,
        message: str,
        field: Optional[str] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        self.add(code, message, "warning", field, suggestion)

    def note(self, code: str, message: str, field: Optional[str] = None) -> None:
        self.add(code, message, "info", field)


def has_leading_comment(content: str) -> bool:
    """An HTML comment placed in front of the frontmatter block."""
    stripped = content.lstrip()
    return stripped.startswith("<!--") and _LEADING_COMMENT_RE.match(stripped) is not None


class BaseValidator:
    """Per-agent rule set.

    Subclasses list their ``component_types`` and implement ``check_<type>``
    for each of them; ``validate`` runs the shared checks first.
    """

    agent: AgentId
    component_types: Tuple[str, ...] = ()

    def __init__(self, catalog: Optional[VersionCatalog] = None) -> None:
        self.catalog = catalog or default_catalog()

    @property
    def supported_versions(self) -> List[str]:
        return [v.version for v in self.catalog.get_agent_versions(self.agent)]

    def default_version(self) -> str:
        return self.catalog.default_version(self.agent)

    def validate(
        self,
        content: str,
        component_type: str,
        options: Optional[ValidatorOptions] = None,
    ) -> ValidationResult:
        options = options or ValidatorOptions()
        version = options.version or self.default_version()
        report = IssueCollector()
        metadata: Dict[str, Any] = {}

        if not content or not content.strip():
            report.error(
                "EMPTY_CONTENT",
                "Content is empty",
                suggestion="Provide frontmatter and instruction text",
            )
            return self.result(report, component_type, version, options, metadata)

        if has_leading_comment(content):
            report.error(
                "LEADING_COMMENT",
                "Content must not start with a comment before the frontmatter block",
                suggestion="Move comments below the closing --- of the frontmatter",
            )

        try:
            fm, body = parse_frontmatter(content)
        except FrontmatterError as e:
            report.error("PARSE_ERROR", f"Failed to parse content: {e.message}")
            metadata["parse_error"] = True
            return self.result(report, component_type, version, options, metadata)

        body = body.strip()
        metadata.update(
            has_frontmatter=bool(fm), body_length=len(body), detected_fields=list(fm)
        )
        if self.supported_versions and version not in self.supported_versions:
            report.note(
                "UNKNOWN_VERSION",
                f"Version '{version}' is not in the {display_name(self.agent)} catalog; "
                "version-specific checks skipped",
            )

        check = getattr(self, f"check_{component_type}", None)
        if component_type not in self.component_types or check is None:
            report.error(
                "UNSUPPORTED_TYPE",
                f"Component type {component_type} not supported for {display_name(self.agent)}",
            )
        else:
            check(fm, body, version, report, options)
        return self.result(report, component_type, version, options, metadata)

    def result(
        self,
        report: IssueCollector,
        component_type: str,
        version: str,
        options: ValidatorOptions,
        metadata: Dict[str, Any],
    ) -> ValidationResult:
        valid = not report.issues and not (options.strict and report.warnings)
        return ValidationResult(
            valid=valid,
            agent=self.agent,
            component_type=component_type,
            version=version,
            issues=report.issues,
            warnings=report.warnings,
            info=report.info,
            metadata=metadata,
        )

    # --- helpers shared by the per-agent rule sets ---

    def require_feature(
        self,
        feature_id: str,
        version: str,
        report: IssueCollector,
        options: ValidatorOptions,
        field: Optional[str] = None,
    ) -> None:
        """Flag use of a catalog feature the target version does not have yet."""
        if self.catalog.get_version(self.agent, version) is None:
            return
        if self.catalog.is_feature_available(self.agent, feature_id, version):
            return
        feature = self.catalog.get_feature(self.agent, feature_id)
        if feature is None:
            return
        report.add(
            "FEATURE_UNAVAILABLE",
            f"{feature.name} requires {display_name(self.agent)} {feature.introduced_in} "
            f"or later (validating against {version})",
            "warning" if options.allow_future_features else "error",
            field,
            f"Target {display_name(self.agent)} {feature.introduced_in}+ or remove the field",
        )

    def is_deprecated(self, feature_id: str, version: str) -> bool:
        feature = self.catalog.get_feature(self.agent, feature_id)
        if feature is None or not feature.deprecated_in:
            return False
        if self.catalog.get_version(self.agent, version) is None:
            return False
        return self.catalog.compare_versions(self.agent, version, feature.deprecated_in) >= 0

    @staticmethod
    def check_enum(
        fm: Mapping[str, Any],
        key: str,
        allowed: Iterable[Any],
        report: IssueCollector,
    ) -> None:
        allowed = tuple(allowed)
        if key in fm and fm[key] not in allowed:
            report.error(
                f"INVALID_{key.upper()}",
                f'Invalid {key} "{fm[key]}". Valid options: '
                + ", ".join(str(a) for a in allowed),
                key,
            )

    @staticmethod
    def check_range(
        fm: Mapping[str, Any],
        key: str,
        low: float,
        high: float,
        report: IssueCollector,
    ) -> None:
        if key not in fm:
            return
        value = fm[key]
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            report.error(f"INVALID_{key.upper()}", f"{key} must be a number", key)
        elif not low <= value <= high:
            report.error(
                f"INVALID_{key.upper()}",
                f"{key} {value} is outside the range {low}-{high}",
                key,
            )

    @staticmethod
    def check_bool(fm: Mapping[str, Any], key: str, report: IssueCollector) -> None:
        if key in fm and not isinstance(fm[key], bool):
            report.error(
                f"INVALID_{key.upper()}", f"{key} must be true or false", key
            )

    @staticmethod
    def check_body_length(
        body: str, minimum: int, report: IssueCollector, code: str = "SHORT_BODY"
    ) -> None:
        if len(body) < minimum:
            report.warning(
                code,
                "Body is very short. Consider adding more detailed instructions.",
                "body",
            )


class ValidatorRegistry:
    """Read-only (agent, component type) -> validator table."""

    def __init__(self, validators: Iterable[BaseValidator]) -> None:
        table: Dict[Tuple[AgentId, str], BaseValidator] = {}
        for validator in validators:
            for component_type in validator.component_types:
                table[(validator.agent, component_type)] = validator
        self._table: Mapping[Tuple[AgentId, str], BaseValidator] = MappingProxyType(table)

    def get(self, agent: AgentId, component_type: str) -> Optional[BaseValidator]:
        return self._table.get((agent, component_type))

    def pairs(self) -> List[Tuple[AgentId, str]]:
        return list(self._table)

    def agents(self) -> List[AgentId]:
        return list(dict.fromkeys(agent for agent, _ in self._table))

    def validate(
        self,
        content: str,
        agent: AgentId,
        component_type: str,
        options: Optional[ValidatorOptions] = None,
    ) -> ValidationResult:
        options = options or ValidatorOptions()
        validator = self.get(agent, component_type)
        if validator is None:
            logger.debug("No validator for %s %s", agent.value, component_type)
            return ValidationResult(
                valid=False,
                agent=agent,
                component_type=component_type,
                version=options.version or "unknown",
                issues=[
                    ValidationIssue(
                        code="VALIDATOR_NOT_FOUND",
                        message=f"No validator available for {agent.value} {component_type}",
                        severity="error",
                    )
                ],
            )
        return validator.validate(content, component_type, options)
