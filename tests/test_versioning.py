import pytest

from agent_convert.agents import AgentId
from agent_convert.errors import VersionAdaptationError
from agent_convert.utils import parse_frontmatter
from agent_convert.versioning import (
    VersionCatalog,
    adapt_version,
    analyze_migration_path,
    default_catalog,
    default_target_version,
    detect_version,
    detection_summary,
    format_guide_markdown,
    generate_migration_guide,
    needs_adaptation,
)
from agent_convert.versioning.migration import (
    available_migration_paths,
    recommended_upgrade_path,
)


@pytest.fixture(scope="module")
def catalog():
    return default_catalog()


def test_catalog_current_versions(catalog):
    assert catalog.default_version(AgentId.CLAUDE) == "2.0"
    assert catalog.default_version(AgentId.WINDSURF) == "wave-13"
    assert catalog.default_version(AgentId.CURSOR) == "2.3"
    assert catalog.default_version(AgentId.CODEX) == "1.0"


def test_catalog_feature_availability(catalog):
    assert not catalog.is_feature_available(AgentId.CURSOR, "cursor-mdc-rules", "1.6")
    assert catalog.is_feature_available(AgentId.CURSOR, "cursor-mdc-rules", "1.7")
    assert catalog.is_feature_available(AgentId.CURSOR, "cursor-mdc-rules", "2.3")
    assert not catalog.is_feature_available(AgentId.CURSOR, "no-such-feature", "2.3")
    assert not catalog.is_feature_available(AgentId.CURSOR, "cursor-mdc-rules", "9.9")


def test_catalog_version_order(catalog):
    assert catalog.compare_versions(AgentId.WINDSURF, "wave-1", "wave-10") == -1
    assert catalog.compare_versions(AgentId.WINDSURF, "wave-13", "wave-8") == 1
    assert catalog.compare_versions(AgentId.WINDSURF, "wave-99", "wave-8") == 0


def test_breaking_changes_between_is_symmetric(catalog):
    up = catalog.get_breaking_changes_between(AgentId.CLAUDE, "1.0", "2.0")
    down = catalog.get_breaking_changes_between(AgentId.CLAUDE, "2.0", "1.0")
    assert [c.id for c in up] == ["claude-hooks-format", "claude-rules-location"]
    assert up == down
    assert catalog.get_breaking_changes_between(AgentId.CLAUDE, "1.0", "3.0") == []


def test_version_summary(catalog):
    summary = catalog.get_version_summary(AgentId.CLAUDE)
    assert summary.current_version == "2.0"
    assert [v["version"] for v in summary.versions] == ["1.0", "1.5", "2.0"]
    assert summary.total_breaking_changes == 2


def test_catalog_from_mapping():
    catalog = VersionCatalog.from_mapping(
        {
            "codex": {
                "versions": [
                    {"version": "0.1"},
                    {"version": "0.2", "is_current": True},
                ]
            }
        }
    )
    assert catalog.default_version(AgentId.CODEX) == "0.2"
    assert catalog.default_version(AgentId.CLAUDE) == "1.0"


def test_detect_claude_subagent_release():
    content = "---\nname: x\nagent: explore\nmodel: opus\n---\nbody"
    result = detect_version(AgentId.CLAUDE, content)
    assert result.version == "1.5"
    assert result.matched_markers == ['Field "agent" is present', 'Field "model" is present']
    assert result.confidence == 88
    assert result.is_definitive is False


def test_detect_claude_rules_path_is_definitive():
    result = detect_version(
        AgentId.CLAUDE, "---\npaths: [src/**]\n---\nbody", ".claude/rules/api.md"
    )
    assert result.version == "2.0"
    assert result.is_definitive is True
    assert result.confidence == 100


def test_detect_legacy_cursorrules():
    result = detect_version(AgentId.CURSOR, "Always write tests.", ".cursorrules")
    assert result.version == "0.34"
    assert result.is_definitive is True


def test_detect_uncatalogued_agent():
    result = detect_version(AgentId.CODEX, "---\nname: x\n---\nbody")
    assert result.version == "1.0"
    assert result.confidence == 30
    assert result.matched_markers == []


def test_detect_tolerates_broken_frontmatter():
    result = detect_version(AgentId.CURSOR, "---\nglobs: [\n---\nbody", ".cursor/rules/a.mdc")
    assert result.version == "1.7"


def test_detection_summary():
    result = detect_version(AgentId.CLAUDE, "---\nname: x\nagent: explore\nmodel: opus\n---\n")
    summary = detection_summary(result)
    assert summary.startswith("Detected version: 1.5 (high confidence: 88%)")
    assert "Matched indicators:" in summary
    assert "heuristic" in summary


def test_adapt_cursorrules_to_mdc():
    result = adapt_version(AgentId.CURSOR, "Always write tests.", "1.6", "1.7")
    fm, body = parse_frontmatter(result.content)
    assert fm == {"description": "Migrated from .cursorrules", "globs": ["**/*"]}
    assert body.strip() == "Always write tests."
    assert result.transformations == ["Added MDC frontmatter for v1.7+ compatibility"]
    assert result.has_breaking_changes is True


def test_adapt_claude_downgrade_drops_fields():
    content = "---\nname: x\nagent: explore\nmodel: opus\n---\nbody"
    result = adapt_version(AgentId.CLAUDE, content, "2.0", "1.0")
    fm, _ = parse_frontmatter(result.content)
    assert fm == {"name": "x"}
    assert "'agent' field is not supported in versions before 1.5" in result.warnings
    assert "'model' field is not supported in versions before 1.5" in result.warnings
    assert sum(w.startswith("Breaking change:") for w in result.warnings) == 2


def test_adapt_downgrade_skips_forward_transforms():
    result = adapt_version(AgentId.CURSOR, "Always write tests.", "2.3", "0.34")
    assert result.transformations == []
    assert "Migrated from .cursorrules" not in result.content
    assert sum(w.startswith("Breaking change:") for w in result.warnings) == 2


def test_adapt_strict_downgrade_refuses():
    content = "---\nname: x\nagent: explore\n---\nbody"
    with pytest.raises(VersionAdaptationError) as exc:
        adapt_version(AgentId.CLAUDE, content, "1.5", "1.0", strict=True)
    assert '"agent"' in exc.value.message


def test_adapt_claude_upgrade_adds_model():
    content = "---\nname: x\nagent: explore\n---\nbody"
    result = adapt_version(AgentId.CLAUDE, content, "1.0", "1.5")
    fm, _ = parse_frontmatter(result.content)
    assert fm["model"] == "sonnet"
    assert result.transformations == ['Added default model "sonnet" for agent usage']


def test_adapt_windsurf_upgrade_without_breaking_changes():
    content = "---\ndescription: Deploy\n---\n1. Build"
    result = adapt_version(AgentId.WINDSURF, content, "wave-1", "wave-8")
    assert parse_frontmatter(result.content)[0]["auto_execution_mode"] == 0
    assert result.has_breaking_changes is False


def test_adapt_windsurf_skills_location_warns():
    content = "---\ndescription: Deploy\nauto_execution_mode: 1\n---\n1. Build"
    result = adapt_version(AgentId.WINDSURF, content, "wave-8", "wave-10")
    assert result.warnings == [
        "Skills should be moved to .windsurf/skills/<name>/SKILL.md format"
    ]


def test_adapt_keeps_unparseable_content():
    content = "---\nname: [broken\n---\nbody"
    result = adapt_version(AgentId.CLAUDE, content, "1.0", "2.0")
    assert result.content == content
    assert result.warnings[0].startswith("Failed to parse content frontmatter")


def test_needs_adaptation_and_default_target():
    assert needs_adaptation(AgentId.CURSOR, "1.6", "1.7")
    assert not needs_adaptation(AgentId.CURSOR, "2.2", "2.3")
    assert not needs_adaptation(AgentId.CURSOR, "1.7", "1.7")
    assert default_target_version(AgentId.CLAUDE) == "2.0"


def test_migration_guide():
    guide = generate_migration_guide(AgentId.CURSOR, "1.6", "1.7")
    assert guide.title == "Migration Guide: 1.6 to 1.7"
    assert [s.step for s in guide.steps] == [1, 2]
    assert guide.steps[0].title == "Move files: .cursorrules"
    assert guide.notes[0] == (
        "2 change(s) can be automatically migrated using `agent-convert adapt`."
    )
    text = format_guide_markdown(guide)
    assert text.startswith("# Migration Guide: 1.6 to 1.7")
    assert "## Migration Steps" in text
    assert "**Before:**" in text
    assert "## Related Links" in text


def test_migration_guide_without_breaking_changes():
    guide = generate_migration_guide(AgentId.CURSOR, "2.2", "2.3")
    assert guide.steps == []
    assert guide.overview.startswith("No breaking changes")


def test_migration_guide_unknown_version():
    assert generate_migration_guide(AgentId.CURSOR, "1.6", "9.0") is None


def test_analyze_migration_path():
    manual = analyze_migration_path(AgentId.CLAUDE, "1.0", "2.0")
    assert manual.complexity == "medium"
    assert manual.manual_steps == 2
    auto = analyze_migration_path(AgentId.CURSOR, "1.6", "1.7")
    assert auto.complexity == "low"
    assert auto.estimated_effort == "Quick - all changes auto-migratable"
    none = analyze_migration_path(AgentId.CURSOR, "2.2", "2.3")
    assert none.breaking_changes == 0


def test_migration_paths():
    paths = available_migration_paths(AgentId.CLAUDE)
    assert [(p.from_version, p.to_version) for p in paths] == [
        ("1.0", "1.5"),
        ("1.0", "2.0"),
        ("1.5", "2.0"),
    ]
    assert recommended_upgrade_path(AgentId.CURSOR, "0.50", "1.7") == ["0.50", "1.6", "1.7"]
    assert recommended_upgrade_path(AgentId.CURSOR, "1.7", "0.50") == []


def marker_catalog(agent):
    return VersionCatalog.from_mapping(
        {
            agent.value: {
                "versions": [
                    {
                        "version": "old",
                        "detection_markers": [
                            {"type": "field_present", "field": "legacy", "weight": 4},
                            {"type": "field_present", "field": "shared", "weight": 5},
                        ],
                    },
                    {
                        "version": "mid",
                        "detection_markers": [
                            {"type": "field_present", "field": "shared", "weight": 5},
                        ],
                    },
                    {
                        "version": "new",
                        "is_current": True,
                        "detection_markers": [
                            {"type": "field_present", "field": "a", "weight": 5},
                            {"type": "field_present", "field": "b", "weight": 3},
                            {"type": "structure_pattern", "pattern": "^## Steps", "weight": 2},
                        ],
                    },
                ]
            }
        }
    )


@pytest.mark.parametrize("agent", [AgentId.CLAUDE, AgentId.WINDSURF, AgentId.CURSOR])
def test_more_markers_never_lower_confidence(agent):
    catalog = marker_catalog(agent)
    documents = [
        "---\na: 1\n---\nbody",
        "---\na: 1\nb: 2\n---\nbody",
        "---\na: 1\nb: 2\n---\n## Steps\nbody",
    ]
    results = [detect_version(agent, doc, catalog=catalog) for doc in documents]
    assert [r.version for r in results] == ["new", "new", "new"]
    assert [r.confidence for r in results] == [70, 88, 100]


@pytest.mark.parametrize("agent", [AgentId.CLAUDE, AgentId.WINDSURF, AgentId.CURSOR])
def test_detect_ties_keep_the_earlier_release(agent):
    catalog = marker_catalog(agent)
    assert detect_version(agent, "---\nshared: 1\n---\nbody", catalog=catalog).version == "old"
    result = detect_version(agent, "---\nshared: 1\na: 1\n---\nbody", catalog=catalog)
    assert result.version == "new"
