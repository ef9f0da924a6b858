"""Human-readable migration guides between two releases of one agent."""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from agent_convert.agents import AgentId
from agent_convert.versioning.catalog import (
    BreakingChange,
    VersionCatalog,
    default_catalog,
)

STEP_TITLES: Dict[str, str] = {
    "field_renamed": "Rename field",
    "field_removed": "Remove field",
    "field_added_required": "Add required field",
    "format_changed": "Update format",
    "location_changed": "Move files",
    "behavior_changed": "Update behavior",
    "syntax_changed": "Update syntax",
}

BEFORE_EXAMPLES: Dict[str, str] = {
    "cursor-rules-migration": "# File: .cursorrules\n\nYou are a helpful assistant...",
    "cursor-mdc-format": "# File: .cursor/rules/my-rule.md\n\nRule content without frontmatter...",
    "claude-rules-location": (
        "# File: CLAUDE.md\n\n## Rules\n\n- Always use TypeScript\n"
        "- Follow clean code principles"
    ),
    "claude-hooks-format": "# File: CLAUDE.md (inline hooks)\n\n<!-- hooks defined inline -->",
    "windsurf-skills-location": (
        "# File: .windsurf/workflows/my-skill.md\n\n---\ndescription: My skill\n---\n\n"
        "Skill content..."
    ),
}

AFTER_EXAMPLES: Dict[str, str] = {
    "cursor-rules-migration": (
        "# File: .cursor/rules/default.mdc\n\n---\ndescription: Migrated from .cursorrules\n"
        'globs:\n  - "**/*"\n---\n\nYou are a helpful assistant...'
    ),
    "cursor-mdc-format": (
        "# File: .cursor/rules/my-rule.mdc\n\n---\ndescription: My rule\nglobs:\n"
        '  - "**/*.ts"\n---\n\nRule content with frontmatter...'
    ),
    "claude-rules-location": (
        "# File: .claude/rules/typescript.md\n\nAlways use TypeScript\n\n"
        "# File: .claude/rules/clean-code.md\n\nFollow clean code principles"
    ),
    "claude-hooks-format": (
        '# File: .claude/settings.json\n\n{\n  "hooks": [\n    {\n'
        '      "event": "PostToolUse",\n      "command": "./format.sh"\n    }\n  ]\n}'
    ),
    "windsurf-skills-location": (
        "# File: .windsurf/skills/my-skill/SKILL.md\n\n---\ndescription: My skill\n---\n\n"
        "Skill content..."
    ),
}

AGENT_NOTES: Dict[AgentId, List[str]] = {
    AgentId.CURSOR: [
        "Cursor version upgrades may require IDE restart for full effect.",
        "Check .cursorrules is removed after migration to avoid conflicts.",
    ],
    AgentId.CLAUDE: [
        "Claude Code will auto-detect version from file structure.",
        "Test skills in isolation after migration.",
    ],
    AgentId.WINDSURF: [
        "Windsurf may require reload to pick up new skill locations.",
    ],
}

AGENT_LINKS: Dict[AgentId, List[str]] = {
    AgentId.CLAUDE: [
        "https://github.com/anthropics/claude-code/blob/main/CHANGELOG.md",
        "https://docs.anthropic.com/claude-code",
    ],
    AgentId.CURSOR: ["https://cursor.com/changelog", "https://docs.cursor.com"],
    AgentId.WINDSURF: ["https://windsurf.com/changelog", "https://docs.windsurf.com"],
}


class MigrationGuideStep(BaseModel):
    step: int
    title: str
    description: str
    before: Optional[str] = None
    after: Optional[str] = None
    is_breaking: bool = True


class MigrationGuide(BaseModel):
    agent: AgentId
    from_version: str
    to_version: str
    title: str
    overview: str
    steps: List[MigrationGuideStep] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)
    links: List[str] = Field(default_factory=list)


class MigrationAnalysis(BaseModel):
    breaking_changes: int
    auto_migratable: int
    manual_steps: int
    complexity: Literal["low", "medium", "high"]
    estimated_effort: str


class MigrationPath(BaseModel):
    from_version: str
    to_version: str
    breaking_changes: int


def _step_for(index: int, change: BreakingChange) -> MigrationGuideStep:
    how = (
        "*This change can be automatically migrated.*"
        if change.auto_migratable
        else "*This change requires manual migration.*"
    )
    return MigrationGuideStep(
        step=index,
        title=f"{STEP_TITLES.get(change.type, 'Update')}: {change.affected}",
        description=f"{change.description}\n\n**Migration:** {change.migration}\n\n{how}",
        before=BEFORE_EXAMPLES.get(change.id),
        after=AFTER_EXAMPLES.get(change.id),
    )


def generate_migration_guide(
    agent: AgentId,
    from_version: str,
    to_version: str,
    catalog: Optional[VersionCatalog] = None,
) -> Optional[MigrationGuide]:
    """Build a guide, or None when either release is not in the catalog."""
    catalog = catalog or default_catalog()
    if not catalog.get_version(agent, from_version) or not catalog.get_version(
        agent, to_version
    ):
        return None

    title = f"Migration Guide: {from_version} to {to_version}"
    changes = catalog.get_breaking_changes_between(agent, from_version, to_version)
    if not changes:
        return MigrationGuide(
            agent=agent,
            from_version=from_version,
            to_version=to_version,
            title=title,
            overview=(
                f"No breaking changes between {from_version} and {to_version}. "
                "Direct upgrade is safe."
            ),
            notes=["This is a non-breaking upgrade. No manual changes required."],
        )

    auto = sum(1 for c in changes if c.auto_migratable)
    manual = len(changes) - auto
    notes: List[str] = []
    if auto:
        notes.append(
            f"{auto} change(s) can be automatically migrated using `agent-convert adapt`."
        )
    if manual:
        notes.append(f"{manual} change(s) require manual intervention.")
    notes.extend(AGENT_NOTES.get(agent, []))

    return MigrationGuide(
        agent=agent,
        from_version=from_version,
        to_version=to_version,
        title=title,
        overview=(
            f"This guide covers {len(changes)} breaking change(s) when upgrading "
            f"from {from_version} to {to_version}."
        ),
        steps=[_step_for(i, c) for i, c in enumerate(changes, start=1)],
        notes=notes,
        links=AGENT_LINKS.get(agent, []),
    )


def format_guide_markdown(guide: MigrationGuide) -> str:
    lines = [
        f"# {guide.title}",
        "",
        f"**Agent:** {guide.agent.value}",
        f"**From:** {guide.from_version}",
        f"**To:** {guide.to_version}",
        "",
        "## Overview",
        "",
        guide.overview,
        "",
    ]

    if guide.steps:
        lines += ["## Migration Steps", ""]
        for step in guide.steps:
            lines += [f"### Step {step.step}: {step.title}", "", step.description, ""]
            for label, example in (("Before", step.before), ("After", step.after)):
                if example:
                    lines += [f"**{label}:**", "", "```", example, "```", ""]

    if guide.notes:
        lines += ["## Notes", ""]
        lines += [f"- {note}" for note in guide.notes]
        lines.append("")

    if guide.links:
        lines += ["## Related Links", ""]
        lines += [f"- {link}" for link in guide.links]
        lines.append("")

    return "\n".join(lines)


def analyze_migration_path(
    agent: AgentId,
    from_version: str,
    to_version: str,
    catalog: Optional[VersionCatalog] = None,
) -> MigrationAnalysis:
    catalog = catalog or default_catalog()
    changes = catalog.get_breaking_changes_between(agent, from_version, to_version)
    auto = sum(1 for c in changes if c.auto_migratable)
    manual = len(changes) - auto

    if not changes:
        complexity, effort = "low", "Minimal - no breaking changes"
    elif manual == 0:
        complexity, effort = "low", "Quick - all changes auto-migratable"
    elif manual <= 2:
        complexity, effort = "medium", "Moderate - some manual steps required"
    else:
        complexity, effort = "high", "Significant - multiple manual changes needed"

    return MigrationAnalysis(
        breaking_changes=len(changes),
        auto_migratable=auto,
        manual_steps=manual,
        complexity=complexity,
        estimated_effort=effort,
    )


def available_migration_paths(
    agent: AgentId, catalog: Optional[VersionCatalog] = None
) -> List[MigrationPath]:
    catalog = catalog or default_catalog()
    names = [v.version for v in catalog.get_agent_versions(agent)]
    return [
        MigrationPath(
            from_version=a,
            to_version=b,
            breaking_changes=len(catalog.get_breaking_changes_between(agent, a, b)),
        )
        for i, a in enumerate(names)
        for b in names[i + 1 :]
    ]


def recommended_upgrade_path(
    agent: AgentId,
    from_version: str,
    to_version: str,
    catalog: Optional[VersionCatalog] = None,
) -> List[str]:
    """Every release from ``from_version`` to ``to_version`` inclusive, or []."""
    catalog = catalog or default_catalog()
    names = [v.version for v in catalog.get_agent_versions(agent)]
    if from_version not in names or to_version not in names:
        return []
    start, end = names.index(from_version), names.index(to_version)
    if start >= end:
        return []
    return names[start : end + 1]
