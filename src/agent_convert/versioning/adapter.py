"""Rewrite an artifact written for one agent release so it suits another.

Breaking changes between the two releases are looked up in the catalog. The
auto-migratable ones name a transform function registered here; the rest are
reported as warnings. Downgrades drop fields the older release does not know,
which is the only lossy step in the pipeline, so ``strict=True`` refuses them.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from agent_convert.agents import AgentId
from agent_convert.errors import FrontmatterError, VersionAdaptationError
from agent_convert.utils import compose_document, parse_frontmatter
from agent_convert.versioning.catalog import VersionCatalog, default_catalog

logger = logging.getLogger(__name__)


class VersionAdaptResult(BaseModel):
    content: str
    transformations: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    has_breaking_changes: bool = False


@dataclass
class AdapterOutcome:
    body: str
    frontmatter: Dict[str, Any]
    transformation: str = ""
    warning: Optional[str] = None


AdapterFn = Callable[[str, Dict[str, Any]], AdapterOutcome]


def add_model_default(body: str, fm: Dict[str, Any]) -> AdapterOutcome:
    if fm.get("agent") and not fm.get("model"):
        return AdapterOutcome(
            body,
            {**fm, "model": "sonnet"},
            'Added default model "sonnet" for agent usage',
        )
    return AdapterOutcome(body, fm)


def migrate_cursor_rules(body: str, fm: Dict[str, Any]) -> AdapterOutcome:
    if not fm:
        return AdapterOutcome(
            body,
            {"description": "Migrated from .cursorrules", "globs": ["**/*"]},
            "Added MDC frontmatter for v1.7+ compatibility",
        )
    return AdapterOutcome(body, fm)


def convert_to_mdc_format(body: str, fm: Dict[str, Any]) -> AdapterOutcome:
    if not fm.get("globs") and not fm.get("description"):
        return AdapterOutcome(
            body,
            {**fm, "description": fm.get("title") or "Rule"},
            "Added MDC format metadata",
        )
    return AdapterOutcome(body, fm)


def migrate_windsurf_skill_location(body: str, fm: Dict[str, Any]) -> AdapterOutcome:
    return AdapterOutcome(
        body,
        fm,
        warning="Skills should be moved to .windsurf/skills/<name>/SKILL.md format",
    )


def add_auto_execution_mode(body: str, fm: Dict[str, Any]) -> AdapterOutcome:
    if "auto_execution_mode" not in fm:
        return AdapterOutcome(
            body,
            {**fm, "auto_execution_mode": 0},
            "Added auto_execution_mode: 0 for wave-8+ compatibility",
        )
    return AdapterOutcome(body, fm)


ADAPTERS: Dict[AgentId, Dict[str, AdapterFn]] = {
    AgentId.CLAUDE: {"add_model_default": add_model_default},
    AgentId.CURSOR: {
        "migrate_cursor_rules": migrate_cursor_rules,
        "convert_to_mdc_format": convert_to_mdc_format,
    },
    AgentId.WINDSURF: {
        "migrate_windsurf_skill_location": migrate_windsurf_skill_location,
        "add_auto_execution_mode": add_auto_execution_mode,
    },
}

# (agent, minimum release, adapter) applied after an upgrade reaches that release.
UPGRADE_STEPS = [
    (AgentId.CLAUDE, "1.5", "add_model_default"),
    (AgentId.WINDSURF, "wave-8", "add_auto_execution_mode"),
    (AgentId.CURSOR, "1.7", "convert_to_mdc_format"),
]

# (agent, release that introduced the fields, fields) removed on downgrade below it.
DOWNGRADE_REMOVALS = [
    (AgentId.CLAUDE, "1.5", ("agent", "model")),
    (AgentId.WINDSURF, "wave-8", ("auto_execution_mode",)),
]

DOWNGRADE_NOTICES = [
    (
        AgentId.CURSOR,
        "1.7",
        "globs",
        "Globs frontmatter is not supported before v1.7. Use .cursorrules format.",
    ),
]


class VersionAdapter:
    """Same-agent release migration backed by a catalog and adapter table."""

    def __init__(
        self,
        catalog: Optional[VersionCatalog] = None,
        adapters: Optional[Dict[AgentId, Dict[str, AdapterFn]]] = None,
    ) -> None:
        self.catalog = catalog or default_catalog()
        self.adapters = adapters if adapters is not None else ADAPTERS

    def adapt(
        self,
        agent: AgentId,
        content: str,
        from_version: str,
        to_version: str,
        strict: bool = False,
    ) -> VersionAdaptResult:
        try:
            fm, body = parse_frontmatter(content)
        except FrontmatterError as e:
            return VersionAdaptResult(
                content=content,
                warnings=[f"Failed to parse content frontmatter: {e.message}"],
            )

        transformations: List[str] = []
        warnings: List[str] = []
        agent_adapters = self.adapters.get(agent, {})

        changes = self.catalog.get_breaking_changes_between(
            agent, from_version, to_version
        )
        direction = self.catalog.compare_versions(agent, from_version, to_version)
        for change in changes:
            # Transforms only migrate forward.
            if direction < 0 and change.auto_migratable and change.transform_fn:
                adapter = agent_adapters.get(change.transform_fn)
                if adapter is None:
                    raise VersionAdaptationError(
                        f"Transform '{change.transform_fn}' for {change.id} is not registered"
                    )
                outcome = adapter(body, fm)
                body, fm = outcome.body, outcome.frontmatter
                if outcome.transformation:
                    transformations.append(outcome.transformation)
                if outcome.warning:
                    warnings.append(outcome.warning)
            else:
                warnings.append(
                    f"Breaking change: {change.description}. {change.migration}"
                )

        if direction < 0:
            fm = self._upgrade(agent, to_version, body, fm, transformations)
        elif direction > 0:
            fm = self._downgrade(agent, to_version, fm, warnings, strict)

        logger.debug(
            "Adapted %s content %s -> %s: %d transformation(s), %d warning(s)",
            agent.value,
            from_version,
            to_version,
            len(transformations),
            len(warnings),
        )
        return VersionAdaptResult(
            content=rebuild_content(fm, body),
            transformations=transformations,
            warnings=warnings,
            has_breaking_changes=bool(changes),
        )

    def _upgrade(
        self,
        agent: AgentId,
        to_version: str,
        body: str,
        fm: Dict[str, Any],
        transformations: List[str],
    ) -> Dict[str, Any]:
        for step_agent, minimum, name in UPGRADE_STEPS:
            if step_agent != agent:
                continue
            if self.catalog.compare_versions(agent, to_version, minimum) < 0:
                continue
            adapter = self.adapters.get(agent, {}).get(name)
            if adapter is None:
                continue
            outcome = adapter(body, fm)
            if outcome.transformation and outcome.transformation not in transformations:
                fm = outcome.frontmatter
                transformations.append(outcome.transformation)
        return fm

    def _downgrade(
        self,
        agent: AgentId,
        to_version: str,
        fm: Dict[str, Any],
        warnings: List[str],
        strict: bool,
    ) -> Dict[str, Any]:
        fm = dict(fm)
        for step_agent, introduced, fields in DOWNGRADE_REMOVALS:
            if step_agent != agent:
                continue
            if self.catalog.compare_versions(agent, to_version, introduced) >= 0:
                continue
            for name in fields:
                if name not in fm:
                    continue
                if strict:
                    raise VersionAdaptationError(
                        f'Refusing to drop "{name}": not supported before '
                        f"{agent.value} {introduced}"
                    )
                del fm[name]
                warnings.append(
                    f"'{name}' field is not supported in versions before {introduced}"
                )
        for step_agent, introduced, name, message in DOWNGRADE_NOTICES:
            if step_agent == agent and name in fm:
                if self.catalog.compare_versions(agent, to_version, introduced) < 0:
                    warnings.append(message)
        return fm

    def default_target_version(self, agent: AgentId) -> str:
        return self.catalog.default_version(agent)

    def needs_adaptation(self, agent: AgentId, from_version: str, to_version: str) -> bool:
        if from_version == to_version:
            return False
        return bool(
            self.catalog.get_breaking_changes_between(agent, from_version, to_version)
        )


def rebuild_content(fm: Dict[str, Any], body: str) -> str:
    """Frontmatter in insertion order, a blank line, then the trimmed body."""
    fm = {k: v for k, v in fm.items() if v is not None}
    if not fm:
        return body.strip()
    return compose_document(fm, body).rstrip("\n")


def adapt_version(
    agent: AgentId,
    content: str,
    from_version: str,
    to_version: str,
    strict: bool = False,
    catalog: Optional[VersionCatalog] = None,
) -> VersionAdaptResult:
    return VersionAdapter(catalog).adapt(agent, content, from_version, to_version, strict)


def default_target_version(agent: AgentId, catalog: Optional[VersionCatalog] = None) -> str:
    return VersionAdapter(catalog).default_target_version(agent)


def needs_adaptation(
    agent: AgentId,
    from_version: str,
    to_version: str,
    catalog: Optional[VersionCatalog] = None,
) -> bool:
    return VersionAdapter(catalog).needs_adaptation(agent, from_version, to_version)
