import pytest

from agent_convert.agents import AgentId
from agent_convert.formats.base import (
    FidelityPolicy,
    fidelity_score,
    id_from_path,
    insert_after_frontmatter,
)
from agent_convert.models import (
    AgentOverride,
    ConversionLoss,
    ConversionWarning,
    ParseOptions,
    RenderOptions,
)
from agent_convert.registry import build_registry
from agent_convert.utils import parse_frontmatter

CLAUDE_SKILL = """---
name: code-review
description: Review code for bugs
allowed-tools: Read, Grep
context: fork
agent: explore
---
Analyze the diff and report issues.
"""

CLAUDE_COMMAND = """---
description: Deploy
disable-model-invocation: true
argument-hint: "[env]"
---
Deploy to $ARGUMENTS
"""

CLAUDE_MEMORY = """# Project

See @docs/setup.md for setup.

## Testing
Run pytest before pushing.
"""


@pytest.fixture(scope="module")
def registry():
    return build_registry()


@pytest.fixture(scope="module")
def parse_spec(registry):
    def _parse(agent, content, source_file):
        result = registry.get_parser(agent).parse(
            content, ParseOptions(agent_id=agent, source_file=source_file)
        )
        assert result.success, result.errors
        return result.spec

    return _parse


@pytest.fixture
def skill(parse_spec):
    return parse_spec(AgentId.CLAUDE, CLAUDE_SKILL, ".claude/skills/code-review/SKILL.md")


@pytest.fixture
def command(parse_spec):
    return parse_spec(AgentId.CLAUDE, CLAUDE_COMMAND, ".claude/commands/deploy.md")


def render(registry, spec, target, **options):
    result = registry.get_renderer(target).render(spec, RenderOptions(**options))
    assert result.success
    return result


def loss_fields(report):
    return [loss.source_field for loss in report.losses]


def test_claude_skill_to_windsurf(registry, skill):
    result = render(registry, skill, AgentId.WINDSURF)
    assert result.filename == ".windsurf/workflows/code-review.md"
    fm, body = parse_frontmatter(result.content)
    assert fm["description"] == "Review code for bugs"
    assert fm["auto_execution_mode"] == 1
    assert body.strip() == "Analyze the diff and report issues."

    report = result.report
    assert report.source.agent is AgentId.CLAUDE
    assert report.target.component_type == "workflow"
    assert loss_fields(report) == ["execution.context", "execution.sub_agent"]
    assert [w.code for w in report.warnings] == ["TOOL_RESTRICTION_LOST"]
    assert report.fidelity_score == 100 - 10 - 10 - 3


def test_claude_command_to_windsurf_rewrites_arguments(registry, command):
    result = render(registry, command, AgentId.WINDSURF)
    fm, body = parse_frontmatter(result.content)
    assert "auto_execution_mode" not in fm
    assert body.strip() == (
        "> **Arguments**: [env]\n\nDeploy to <user-provided arguments>"
    )
    assert [w.code for w in result.report.warnings] == ["ARGUMENT_HINT_DEGRADED"]


def test_claude_command_to_cursor(registry, command):
    result = render(registry, command, AgentId.CURSOR)
    assert result.filename == ".cursor/commands/deploy.md"
    assert result.content == (
        "# Deploy\n\n## Objective\n\nDeploy\n\n## Arguments\n\n"
        "Expected input: [env]\n\n## Requirements\n\nDeploy to {user input}\n"
    )
    assert [w.code for w in result.report.warnings] == ["NO_STRUCTURED_ARGS"]
    assert result.report.losses == []


def test_claude_skill_to_cursor_skill(registry, skill):
    result = render(registry, skill, AgentId.CURSOR)
    assert result.filename == ".cursor/skills/code-review/SKILL.md"
    fm, _ = parse_frontmatter(result.content)
    assert fm == {"name": "code-review", "description": "Review code for bugs"}
    assert loss_fields(result.report) == [
        "execution.context",
        "execution.sub_agent",
        "execution.allowed_tools",
    ]
    assert result.report.fidelity_score == 70


def test_windsurf_rule_to_cursor_rule(registry, parse_spec):
    spec = parse_spec(
        AgentId.WINDSURF,
        '---\ntrigger: glob\nglobs: "*.py"\ndescription: Python style\n---\nUse black.',
        ".windsurf/rules/style.md",
    )
    result = render(registry, spec, AgentId.CURSOR)
    assert result.filename == ".cursor/rules/style.mdc"
    fm, body = parse_frontmatter(result.content)
    assert fm == {"description": "Python style", "globs": ["*.py"], "alwaysApply": False}
    assert body.strip() == "Use black."


def test_claude_skill_to_codex(registry, skill):
    result = render(registry, skill, AgentId.CODEX)
    assert result.filename == ".codex/skills/code-review/SKILL.md"
    fm, _ = parse_frontmatter(result.content)
    assert fm["slash_command"] == "code-review"
    assert fm["sandbox_mode"] == "read-only"
    assert fm["tools"] == ["Read", "Grep"]
    # Claude is a native source for Codex, so no cross-agent penalty.
    assert result.report.fidelity_score == 95 - 8 - 8


def test_codex_toml_round_trip_keeps_toml(registry, parse_spec):
    content = (
        '---\nname = "deploy"\ndescription = "Deploy service"\n'
        'sandbox_mode = "workspace-write"\n---\nDeploy the service.'
    )
    spec = parse_spec(AgentId.CODEX, content, ".codex/skills/deploy/SKILL.md")
    result = render(registry, spec, AgentId.CODEX)
    assert result.content.startswith('---\nname = "deploy"\n')
    assert 'sandbox_mode = "workspace-write"' in result.content
    assert result.report.fidelity_score == 100


def test_codex_settings_are_reported_as_losses(registry, parse_spec):
    content = (
        "---\nname: deploy\ndescription: Deploy service\n"
        "sandbox_mode: workspace-write\napproval_policy: never\n---\nDeploy the service."
    )
    spec = parse_spec(AgentId.CODEX, content, ".codex/skills/deploy/SKILL.md")
    result = render(registry, spec, AgentId.CLAUDE)
    assert loss_fields(result.report) == ["metadata.sandbox_mode", "metadata.approval_policy"]
    assert result.report.fidelity_score == 100 - 5 - 10


CODEX_SETTINGS = (
    "---\nname: deploy\ndescription: Deploy service\n"
    "sandbox_mode: workspace-write\napproval_policy: on-request\n"
    "mcp_servers:\n  db:\n    command: pg-mcp\n---\nDeploy the service."
)


def test_codex_settings_lost_once_on_gemini(registry, parse_spec):
    spec = parse_spec(AgentId.CODEX, CODEX_SETTINGS, ".codex/skills/deploy/SKILL.md")
    result = render(registry, spec, AgentId.GEMINI)
    fields = loss_fields(result.report)
    assert fields.count("metadata.sandbox_mode") == 1
    assert fields.count("metadata.approval_policy") == 1
    assert fields.count("metadata.mcp_servers") == 1


def test_each_lost_field_is_reported_once(registry, parse_spec):
    spec = parse_spec(AgentId.CODEX, CODEX_SETTINGS, ".codex/skills/deploy/SKILL.md")
    for target in registry.agents:
        fields = loss_fields(render(registry, spec, target).report)
        assert len(fields) == len(set(fields)), (target, fields)


def test_claude_command_to_gemini(registry, command):
    result = render(registry, command, AgentId.GEMINI)
    assert result.filename == ".gemini/commands/deploy.md"
    fm, _ = parse_frontmatter(result.content)
    assert fm["slash_command"] == "deploy"
    assert loss_fields(result.report) == ["invocation.argument_hint"]
    assert result.report.fidelity_score == 90 - 3 - 5


def test_claude_skill_to_opencode(registry, skill):
    result = render(registry, skill, AgentId.OPENCODE)
    assert result.filename == ".opencode/skills/code-review.md"
    fm, _ = parse_frontmatter(result.content)
    assert fm["subtask"] is True
    assert fm["agent"] == "explore"
    assert loss_fields(result.report) == ["execution.allowed_tools"]
    assert result.report.fidelity_score == 95 - 8


def test_claude_command_to_opencode_wraps_template(registry, command):
    result = render(registry, command, AgentId.OPENCODE)
    assert result.filename == ".opencode/commands/deploy.md"
    fm, body = parse_frontmatter(result.content)
    assert fm["argumentHint"] == "[env]"
    assert "<command-instruction>\nDeploy to $ARGUMENTS\n</command-instruction>" in body
    assert "<user-request>\n$ARGUMENTS\n</user-request>" in body


def test_claude_memory_to_agents_md(registry, parse_spec):
    spec = parse_spec(AgentId.CLAUDE, CLAUDE_MEMORY, "CLAUDE.md")
    result = render(registry, spec, AgentId.UNIVERSAL)
    assert result.filename == "AGENTS.md"
    assert not result.content.startswith("---")
    assert "need manual resolution:\n  @docs/setup.md\n-->" in result.content
    assert loss_fields(result.report) == ["metadata.imports"]
    assert result.report.suggestions == ["Review and inline any @imports manually"]
    assert result.report.fidelity_score == 95 - 5


def test_claude_memory_round_trip(registry, parse_spec):
    spec = parse_spec(AgentId.CLAUDE, CLAUDE_MEMORY, "CLAUDE.md")
    result = render(registry, spec, AgentId.CLAUDE)
    assert result.filename == "CLAUDE.md"
    assert result.content == CLAUDE_MEMORY.strip() + "\n"


def test_include_comments_goes_after_frontmatter(registry, skill):
    result = render(registry, skill, AgentId.WINDSURF, include_comments=True)
    lines = result.content.splitlines()
    closing = lines.index("---", 1)
    assert lines[closing + 1] == "<!-- Converted from claude to Windsurf (Cascade) -->"
    assert lines[closing + 2] == "<!-- Original: .claude/skills/code-review/SKILL.md -->"


def test_include_comments_without_frontmatter(registry, command):
    result = render(registry, command, AgentId.CURSOR, include_comments=True)
    assert result.content.startswith("<!-- Converted from claude to Cursor -->")


def test_agent_overrides_apply_to_matching_target(registry, skill):
    spec = skill.model_copy(
        update={
            "agent_overrides": {
                AgentId.WINDSURF: AgentOverride(
                    frontmatter_overrides={"tags": ["ops"]},
                    body_prefix="Read this first.",
                    body_suffix="Done.",
                )
            }
        }
    )
    fm, body = parse_frontmatter(render(registry, spec, AgentId.WINDSURF).content)
    assert fm["tags"] == ["ops"]
    assert body.strip().startswith("Read this first.")
    assert body.strip().endswith("Done.")

    cursor = render(registry, spec, AgentId.CURSOR).content
    assert "Done." not in cursor


def test_validate_output_reports_only_errors(registry, skill):
    result = render(registry, skill, AgentId.WINDSURF, validate_output=True)
    assert "OUTPUT_VALIDATION" not in [w.code for w in result.report.warnings]


def test_version_adaptation_during_render(registry, skill):
    result = render(
        registry, skill, AgentId.CLAUDE, source_version="1.0", target_version="2.0"
    )
    fm, _ = parse_frontmatter(result.content)
    assert fm["model"] == "sonnet"
    codes = [w.code for w in result.report.warnings]
    assert codes == ["VERSION_ADAPTATION"] * 3
    assert "Version-adapted content" in result.report.preserved_semantics


def test_same_version_skips_adaptation(registry, skill):
    result = render(
        registry, skill, AgentId.CLAUDE, source_version="2.0", target_version="2.0"
    )
    assert "model" not in parse_frontmatter(result.content)[0]
    assert result.report.warnings == []


def test_fidelity_score_is_clamped():
    policy = FidelityPolicy()
    losses = [
        ConversionLoss(
            category="execution", severity="critical", description="x", source_field="x"
        )
    ] * 10
    assert fidelity_score(losses, [], policy, AgentId.CLAUDE, AgentId.CURSOR) == 0
    assert fidelity_score([], [], policy, AgentId.CLAUDE, AgentId.CURSOR) == 100


def test_fidelity_cross_agent_penalty():
    policy = FidelityPolicy(base=90, cross_agent=5, native_sources=(AgentId.CLAUDE,))
    warning = ConversionWarning(code="X", message="x")
    assert fidelity_score([], [warning], policy, AgentId.WINDSURF, AgentId.GEMINI) == 82
    assert fidelity_score([], [], policy, AgentId.CLAUDE, AgentId.GEMINI) == 90
    assert fidelity_score([], [], policy, AgentId.GEMINI, AgentId.GEMINI) == 100


def test_insert_after_frontmatter():
    assert insert_after_frontmatter("---\na: 1\n---\n\nbody\n", "<!-- c -->") == (
        "---\na: 1\n---\n<!-- c -->\n\nbody\n"
    )
    assert insert_after_frontmatter("body\n", "<!-- c -->") == "<!-- c -->\n\nbody\n"


def test_id_from_path():
    assert id_from_path(".claude/skills/review/SKILL.md") == "review"
    assert id_from_path(".cursor/rules/python.mdc") == "python"
    assert id_from_path("C:\\repo\\.windsurf\\workflows\\deploy.md") == "deploy"
    assert id_from_path(None) is None
