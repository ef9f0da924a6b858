"""Semantic comparison of two ``ComponentSpec`` values."""

from typing import Any, List, Literal

from pydantic import BaseModel, Field

from agent_convert.models import CAPABILITY_FLAGS, ComponentSpec
from agent_convert.utils import normalize_whitespace

DiffSeverity = Literal["identical", "minor", "moderate", "significant", "breaking"]

SEVERITY_ORDER: List[str] = ["identical", "minor", "moderate", "significant", "breaking"]


class FieldDiff(BaseModel):
    path: str
    label: str
    old_value: Any = None
    new_value: Any = None
    severity: DiffSeverity
    description: str


class SemanticDiff(BaseModel):
    overall_severity: DiffSeverity
    field_diffs: List[FieldDiff] = Field(default_factory=list)
    summary: str
    preserved_aspects: List[str] = Field(default_factory=list)
    changed_aspects: List[str] = Field(default_factory=list)

    @property
    def identical(self) -> bool:
        return not self.field_diffs


def body_similarity(a: str, b: str) -> float:
    """1.0 for equal text, 0.95 when only whitespace differs, else word-set Jaccard."""
    if a == b:
        return 1.0
    norm_a, norm_b = normalize_whitespace(a), normalize_whitespace(b)
    if norm_a == norm_b:
        return 0.95
    words_a = set(norm_a.lower().split())
    words_b = set(norm_b.lower().split())
    union = words_a | words_b
    if not union:
        return 1.0
    return len(words_a & words_b) / len(union)


def capability_label(flag: str) -> str:
    """``needs_code_search`` -> ``Needs code search``."""
    return flag.replace("_", " ").capitalize()


def max_severity(severities: List[str]) -> DiffSeverity:
    if not severities:
        return "identical"
    return max(severities, key=SEVERITY_ORDER.index)  # type: ignore[return-value]


class _DiffBuilder:
    def __init__(self) -> None:
        self.diffs: List[FieldDiff] = []
        self.preserved: List[str] = []
        self.changed: List[str] = []

    def compare(
        self,
        path: str,
        label: str,
        old: Any,
        new: Any,
        severity: DiffSeverity,
        description: str,
        aspect: str = "",
    ) -> None:
        if old != new:
            self.diffs.append(
                FieldDiff(
                    path=path,
                    label=label,
                    old_value=old,
                    new_value=new,
                    severity=severity,
                    description=description,
                )
            )
            if aspect:
                self.changed.append(aspect)
        elif aspect:
            self.preserved.append(aspect)


def diff_specs(a: ComponentSpec, b: ComponentSpec) -> SemanticDiff:
    d = _DiffBuilder()

    d.compare(
        "id", "Component ID", a.id, b.id, "moderate", "Component identifier changed", "identity"
    )
    d.compare(
        "component_type",
        "Component Type",
        a.component_type,
        b.component_type,
        "significant",
        f"Type changed from {a.component_type} to {b.component_type}",
        "component type",
    )
    d.compare(
        "intent.summary",
        "Summary",
        a.intent.summary,
        b.intent.summary,
        "minor",
        "Summary text differs",
        "summary",
    )
    d.compare(
        "intent.purpose",
        "Purpose",
        a.intent.purpose,
        b.intent.purpose,
        "minor",
        "Purpose description differs",
    )
    d.compare(
        "activation.mode",
        "Activation Mode",
        a.activation.mode,
        b.activation.mode,
        "significant",
        f"Activation changed from {a.activation.mode} to {b.activation.mode}",
        "activation mode",
    )
    d.compare(
        "activation.safety_level",
        "Safety Level",
        a.activation.safety_level,
        b.activation.safety_level,
        "moderate",
        f"Safety level changed from {a.activation.safety_level} "
        f"to {b.activation.safety_level}",
        "safety level",
    )
    d.compare(
        "execution.context",
        "Execution Context",
        a.execution.context,
        b.execution.context,
        "significant",
        f"Execution context changed from {a.execution.context} to {b.execution.context}",
        "execution context",
    )

    tools_a = sorted(a.execution.allowed_tools or [])
    tools_b = sorted(b.execution.allowed_tools or [])
    if tools_a != tools_b:
        d.compare(
            "execution.allowed_tools",
            "Allowed Tools",
            tools_a or "unrestricted",
            tools_b or "unrestricted",
            "significant" if tools_a and not tools_b else "moderate",
            "Tool restrictions changed",
            "tool restrictions",
        )
    elif tools_a:
        d.preserved.append("tool restrictions")

    similarity = body_similarity(a.body, b.body)
    if similarity < 0.5:
        body_severity: DiffSeverity = "significant"
    elif similarity < 0.8:
        body_severity = "moderate"
    else:
        body_severity = "minor"
    if similarity < 1.0:
        d.diffs.append(
            FieldDiff(
                path="body",
                label="Body Content",
                old_value=f"{len(a.body)} chars",
                new_value=f"{len(b.body)} chars",
                severity=body_severity,
                description=f"Body content {round(similarity * 100)}% similar",
            )
        )
        d.changed.append("body content")
    else:
        d.preserved.append("body content")

    before = len(d.diffs)
    for flag in CAPABILITY_FLAGS:
        old, new = getattr(a.capabilities, flag), getattr(b.capabilities, flag)
        label = capability_label(flag)
        d.compare(f"capabilities.{flag}", label, old, new, "minor", f"{label}: {old} -> {new}")
    if len(d.diffs) == before:
        d.preserved.append("capabilities")
    else:
        d.changed.append("capabilities")

    return SemanticDiff(
        overall_severity=max_severity([x.severity for x in d.diffs]),
        field_diffs=d.diffs,
        summary=diff_summary(d.diffs, d.preserved, d.changed),
        preserved_aspects=d.preserved,
        changed_aspects=d.changed,
    )


def diff_summary(diffs: List[FieldDiff], preserved: List[str], changed: List[str]) -> str:
    if not diffs:
        return "Components are semantically identical."
    parts = []
    if changed:
        parts.append(f"Changed: {', '.join(changed)}")
    if preserved:
        parts.append(f"Preserved: {', '.join(preserved)}")
    return ". ".join(parts) + "."
