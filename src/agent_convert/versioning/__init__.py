"""Agent release catalog, version detection and same-agent adaptation."""

from agent_convert.versioning.adapter import (
    VersionAdapter,
    VersionAdaptResult,
    adapt_version,
    default_target_version,
    needs_adaptation,
)
from agent_convert.versioning.catalog import (
    BreakingChange,
    DetectionMarker,
    FeatureFlag,
    VersionCatalog,
    VersionCatalogEntry,
    default_catalog,
)
from agent_convert.versioning.detector import (
    VersionDetectionResult,
    detect_version,
    detection_summary,
)
from agent_convert.versioning.migration import (
    MigrationGuide,
    analyze_migration_path,
    format_guide_markdown,
    generate_migration_guide,
)

__all__ = [
    "BreakingChange",
    "DetectionMarker",
    "FeatureFlag",
    "MigrationGuide",
    "VersionAdapter",
    "VersionAdaptResult",
    "VersionCatalog",
    "VersionCatalogEntry",
    "VersionDetectionResult",
    "adapt_version",
    "analyze_migration_path",
    "default_catalog",
    "default_target_version",
    "detect_version",
    "detection_summary",
    "format_guide_markdown",
    "generate_migration_guide",
    "needs_adaptation",
]
