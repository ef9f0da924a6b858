"""Version catalog: named releases, features and breaking changes per agent."""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field

from agent_convert.agents import AgentId

logger = logging.getLogger(__name__)

CATALOG_PATH = Path(__file__).with_name("catalog.yaml")

# Version reported for agents that have no catalog entries.
FALLBACK_VERSION = "1.0"

MarkerType = Literal[
    "field_present",
    "field_absent",
    "field_value",
    "file_pattern",
    "syntax_pattern",
    "structure_pattern",
]

BreakingChangeType = Literal[
    "field_renamed",
    "field_removed",
    "field_added_required",
    "format_changed",
    "location_changed",
    "behavior_changed",
    "syntax_changed",
]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class DetectionMarker(_Frozen):
    type: MarkerType
    field: Optional[str] = None
    value: Any = None
    pattern: Optional[str] = None
    weight: int = Field(gt=0)
    indicates_version_or_later: bool = True


class FeatureFlag(_Frozen):
    id: str
    name: str
    description: str
    introduced_in: str
    deprecated_in: Optional[str] = None
    removed_in: Optional[str] = None


class BreakingChange(_Frozen):
    id: str
    type: BreakingChangeType
    version: str
    description: str
    affected: str
    migration: str
    auto_migratable: bool = False
    transform_fn: Optional[str] = None


class VersionCatalogEntry(_Frozen):
    agent: AgentId
    version: str
    semver: Optional[str] = None
    release_date: Optional[str] = None
    is_current: bool = False
    is_supported: bool = True
    features_introduced: Tuple[str, ...] = ()
    features_deprecated: Tuple[str, ...] = ()
    features_removed: Tuple[str, ...] = ()
    breaking_changes: Tuple[str, ...] = ()
    detection_markers: Tuple[DetectionMarker, ...] = ()

    @property
    def max_score(self) -> int:
        return sum(m.weight for m in self.detection_markers)


class AgentCatalog(_Frozen):
    agent: AgentId
    threshold: int = 10
    features: Tuple[FeatureFlag, ...] = ()
    breaking_changes: Tuple[BreakingChange, ...] = ()
    versions: Tuple[VersionCatalogEntry, ...] = ()


class VersionSummary(BaseModel):
    agent: AgentId
    versions: List[Dict[str, Any]]
    current_version: Optional[str]
    total_features: int
    total_breaking_changes: int


class VersionCatalog:
    """Read-only view over every agent's release history.

    Versions are kept in release order; all comparisons go by position in that
    order, since most agents use named releases rather than semver.
    """

    def __init__(self, agents: Dict[AgentId, AgentCatalog]) -> None:
        self._agents = dict(agents)

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "VersionCatalog":
        agents: Dict[AgentId, AgentCatalog] = {}
        for agent_name, section in data.items():
            agent = AgentId(agent_name)
            versions = [
                VersionCatalogEntry(agent=agent, **entry)
                for entry in section.get("versions", [])
            ]
            agents[agent] = AgentCatalog(
                agent=agent,
                threshold=section.get("threshold", 10),
                features=section.get("features", []),
                breaking_changes=section.get("breaking_changes", []),
                versions=versions,
            )
        return cls(agents)

    @classmethod
    def load(cls, path: Path = CATALOG_PATH) -> "VersionCatalog":
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        catalog = cls.from_mapping(data)
        logger.debug("Loaded version catalog for %d agents", len(catalog._agents))
        return catalog

    def agents(self) -> List[AgentId]:
        return list(self._agents)

    def threshold(self, agent: AgentId) -> int:
        section = self._agents.get(agent)
        return section.threshold if section else 10

    def get_agent_versions(self, agent: AgentId) -> List[VersionCatalogEntry]:
        section = self._agents.get(agent)
        return list(section.versions) if section else []

    def get_current_version(self, agent: AgentId) -> Optional[VersionCatalogEntry]:
        return next(
            (v for v in self.get_agent_versions(agent) if v.is_current), None
        )

    def get_version(
        self, agent: AgentId, version: str
    ) -> Optional[VersionCatalogEntry]:
        return next(
            (v for v in self.get_agent_versions(agent) if v.version == version), None
        )

    def get_features(self, agent: AgentId) -> List[FeatureFlag]:
        section = self._agents.get(agent)
        return list(section.features) if section else []

    def get_feature(self, agent: AgentId, feature_id: str) -> Optional[FeatureFlag]:
        return next((f for f in self.get_features(agent) if f.id == feature_id), None)

    def get_breaking_changes(self, agent: AgentId) -> List[BreakingChange]:
        section = self._agents.get(agent)
        return list(section.breaking_changes) if section else []

    def _index(self, agent: AgentId, version: str) -> int:
        for index, entry in enumerate(self.get_agent_versions(agent)):
            if entry.version == version:
                return index
        return -1

    def is_feature_available(
        self, agent: AgentId, feature_id: str, version: str
    ) -> bool:
        feature = self.get_feature(agent, feature_id)
        if feature is None:
            return False
        introduced = self._index(agent, feature.introduced_in)
        target = self._index(agent, version)
        if introduced == -1 or target == -1 or target < introduced:
            return False
        if feature.removed_in:
            removed = self._index(agent, feature.removed_in)
            if removed != -1 and target >= removed:
                return False
        return True

    def get_breaking_changes_between(
        self, agent: AgentId, from_version: str, to_version: str
    ) -> List[BreakingChange]:
        """Breaking changes registered on versions in (min, max] of the pair."""
        start = self._index(agent, from_version)
        end = self._index(agent, to_version)
        if start == -1 or end == -1:
            return []
        versions = self.get_agent_versions(agent)
        relevant = versions[min(start, end) + 1 : max(start, end) + 1]
        ids = [change_id for v in relevant for change_id in v.breaking_changes]
        return [c for c in self.get_breaking_changes(agent) if c.id in ids]

    def compare_versions(self, agent: AgentId, v1: str, v2: str) -> int:
        """-1, 0 or 1 by release order; unknown versions compare equal."""
        i1 = self._index(agent, v1)
        i2 = self._index(agent, v2)
        if i1 == -1 or i2 == -1:
            return 0
        return (i1 > i2) - (i1 < i2)

    def default_version(self, agent: AgentId) -> str:
        current = self.get_current_version(agent)
        return current.version if current else FALLBACK_VERSION

    def get_version_summary(self, agent: AgentId) -> VersionSummary:
        current = self.get_current_version(agent)
        return VersionSummary(
            agent=agent,
            versions=[
                {
                    "version": v.version,
                    "is_current": v.is_current,
                    "is_supported": v.is_supported,
                }
                for v in self.get_agent_versions(agent)
            ],
            current_version=current.version if current else None,
            total_features=len(self.get_features(agent)),
            total_breaking_changes=len(self.get_breaking_changes(agent)),
        )


@lru_cache(maxsize=1)
def default_catalog() -> VersionCatalog:
    return VersionCatalog.load()
