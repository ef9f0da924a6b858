"""Weighted-vote guess of which agent release an artifact was written for."""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from agent_convert.agents import AgentId
from agent_convert.errors import FrontmatterError
from agent_convert.utils import parse_frontmatter
from agent_convert.versioning.catalog import (
    DetectionMarker,
    VersionCatalog,
    default_catalog,
)

logger = logging.getLogger(__name__)

NO_SIGNAL_CONFIDENCE = 40
UNCATALOGUED_CONFIDENCE = 30


class VersionDetectionResult(BaseModel):
    version: str
    confidence: int = Field(ge=0, le=100)
    matched_markers: List[str] = Field(default_factory=list)
    is_definitive: bool = False


@dataclass
class DetectionContext:
    content: str
    frontmatter: Dict[str, Any]
    body: str
    file_path: Optional[str] = None

    @classmethod
    def build(cls, content: str, file_path: Optional[str] = None) -> "DetectionContext":
        try:
            frontmatter, body = parse_frontmatter(content)
        except FrontmatterError:
            # Undecodable frontmatter only removes the field-based signals.
            frontmatter, body = {}, content
        path = file_path.replace("\\", "/") if file_path else None
        return cls(content=content, frontmatter=frontmatter, body=body, file_path=path)


def evaluate_marker(marker: DetectionMarker, ctx: DetectionContext) -> Optional[str]:
    """Return a description of the match, or None when the marker does not fire."""
    if marker.type == "field_present":
        if marker.field and marker.field in ctx.frontmatter:
            return f'Field "{marker.field}" is present'
    elif marker.type == "field_absent":
        if marker.field and marker.field not in ctx.frontmatter:
            return f'Field "{marker.field}" is absent'
    elif marker.type == "field_value":
        if marker.field and ctx.frontmatter.get(marker.field) == marker.value:
            return f'Field "{marker.field}" equals {marker.value!r}'
    elif marker.type == "file_pattern":
        if ctx.file_path and marker.pattern and re.search(marker.pattern, ctx.file_path):
            return f'File path matches pattern "{marker.pattern}"'
    elif marker.type == "syntax_pattern":
        if marker.pattern and re.search(marker.pattern, ctx.content, re.M):
            return f'Content matches syntax pattern "{marker.pattern}"'
    elif marker.type == "structure_pattern":
        if marker.pattern and re.search(marker.pattern, ctx.body, re.M):
            return f'Body matches structure pattern "{marker.pattern}"'
    return None


def confidence_for(score: int, max_score: int) -> int:
    """Map a winning score onto 40..100, proportional to the best obtainable."""
    if score <= 0 or max_score <= 0:
        return NO_SIGNAL_CONFIDENCE
    ratio = min(1.0, score / max_score)
    return min(100, round(NO_SIGNAL_CONFIDENCE + (100 - NO_SIGNAL_CONFIDENCE) * ratio))


def detect_version(
    agent: AgentId,
    content: str,
    file_path: Optional[str] = None,
    catalog: Optional[VersionCatalog] = None,
) -> VersionDetectionResult:
    catalog = catalog or default_catalog()
    versions = catalog.get_agent_versions(agent)
    if not versions:
        return VersionDetectionResult(
            version=catalog.default_version(agent),
            confidence=UNCATALOGUED_CONFIDENCE,
        )

    ctx = DetectionContext.build(content, file_path)
    current = catalog.default_version(agent)

    best_version = current
    best_score = 0
    best_markers: List[str] = []
    for entry in versions:
        matched = []
        score = 0
        for marker in entry.detection_markers:
            description = evaluate_marker(marker, ctx)
            if description is not None:
                score += marker.weight
                matched.append(description)
        if score == 0:
            continue
        # On a tie the earlier release wins, unless the later one is current.
        if score > best_score or (score == best_score and entry.version == current):
            best_version, best_score, best_markers = entry.version, score, matched

    max_score = max(entry.max_score for entry in versions)
    result = VersionDetectionResult(
        version=best_version,
        confidence=confidence_for(best_score, max_score),
        matched_markers=best_markers,
        is_definitive=best_score >= catalog.threshold(agent),
    )
    logger.debug(
        "Detected %s version %s (score %d, confidence %d)",
        agent.value,
        result.version,
        best_score,
        result.confidence,
    )
    return result


def detection_summary(result: VersionDetectionResult) -> str:
    if result.confidence >= 80:
        label = "high"
    elif result.confidence >= 50:
        label = "medium"
    else:
        label = "low"

    summary = (
        f"Detected version: {result.version} ({label} confidence: {result.confidence}%)"
    )
    if result.matched_markers:
        summary += "\nMatched indicators:"
        for marker in result.matched_markers:
            summary += f"\n  - {marker}"
    if not result.is_definitive:
        summary += (
            "\n\nNote: This detection is heuristic. Specify explicit version if needed."
        )
    return summary
