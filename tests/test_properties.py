"""Behaviour that must hold for every conversion, not just the hand-picked examples."""

import pytest

from agent_convert.agents import AgentId
from agent_convert.diff import diff_specs
from agent_convert.formats.base import fidelity_score
from agent_convert.mapping import get_compatibility_matrix
from agent_convert.models import ConversionLoss, ParseOptions, RenderOptions
from agent_convert.registry import build_registry
from agent_convert.transformer import parse, render

SAMPLES = {
    "claude-skill": (
        AgentId.CLAUDE,
        "---\nname: code-review\ndescription: Review code for bugs\n"
        "allowed-tools: Read, Grep\ncontext: fork\nagent: explore\n---\n"
        "Analyze the diff and report issues.\n",
        ".claude/skills/code-review/SKILL.md",
    ),
    "claude-command": (
        AgentId.CLAUDE,
        '---\ndescription: Deploy\ndisable-model-invocation: true\nargument-hint: "[env]"\n'
        "---\nDeploy to $ARGUMENTS\n",
        ".claude/commands/deploy.md",
    ),
    "claude-memory": (
        AgentId.CLAUDE,
        "# Project\n\nSee @docs/setup.md for setup.\n\n## Testing\nRun pytest before pushing.\n",
        "CLAUDE.md",
    ),
    "windsurf-rule": (
        AgentId.WINDSURF,
        '---\ntrigger: glob\nglobs: "*.py"\ndescription: Python style\n---\nUse black.\n',
        ".windsurf/rules/style.md",
    ),
    "codex-skill": (
        AgentId.CODEX,
        '---\nname = "deploy"\ndescription = "Deploy service"\n'
        'sandbox_mode = "workspace-write"\n---\nDeploy the service.\n',
        ".codex/skills/deploy/SKILL.md",
    ),
    "agents-md": (
        AgentId.UNIVERSAL,
        "# Instructions\n\nInstructions for agents.\n\n## Style\nUse ruff.\n",
        "AGENTS.md",
    ),
}


@pytest.fixture(scope="module")
def registry():
    return build_registry()


def parse_sample(registry, name):
    agent, content, path = SAMPLES[name]
    result = parse(content, ParseOptions(agent_id=agent, source_file=path), registry)
    assert result.success, result.errors
    return result.spec


@pytest.mark.parametrize("name", ["claude-skill", "claude-command", "codex-skill"])
def test_self_conversion_preserves_semantics(registry, name):
    spec = parse_sample(registry, name)
    agent = spec.source_agent_id
    rendered = render(spec, agent, RenderOptions(), registry)
    assert rendered.success
    assert rendered.report.fidelity_score >= 95

    reparsed = parse(
        rendered.content, ParseOptions(agent_id=agent, source_file=rendered.filename), registry
    )
    assert reparsed.success
    assert diff_specs(spec, reparsed.spec).overall_severity in ("identical", "minor")


@pytest.mark.parametrize("name", sorted(SAMPLES))
def test_fidelity_is_always_a_percentage(registry, name):
    spec = parse_sample(registry, name)
    for target in registry.agents:
        result = render(spec, target, RenderOptions(), registry)
        assert result.success, (name, target, result.errors)
        assert 0 <= result.report.fidelity_score <= 100
        assert result.report.source.agent is spec.source_agent_id
        assert result.report.target.agent is target


def test_fork_context_is_reported_when_dropped(registry):
    spec = parse_sample(registry, "claude-skill")
    result = render(spec, AgentId.WINDSURF, RenderOptions(), registry)
    execution = [
        loss
        for loss in result.report.losses
        if loss.category == "execution" and "fork" in loss.description.lower()
    ]
    assert len(execution) == 1
    assert result.report.fidelity_score < 100


@pytest.mark.parametrize("name", sorted(SAMPLES))
def test_conversion_comment_follows_frontmatter(registry, name):
    spec = parse_sample(registry, name)
    for target in registry.agents:
        content = render(spec, target, RenderOptions(include_comments=True), registry).content
        marker = f"<!-- Converted from {spec.source_agent_id.value} to "
        if content.startswith("---\n"):
            closing = content.index("\n---\n", 3)
            assert content[closing + 5 :].startswith(marker)
        else:
            assert content.startswith(marker)


def test_matrix_extremes(registry):
    matrix = get_compatibility_matrix(registry)
    assert matrix[AgentId.CLAUDE][AgentId.CLAUDE] == 100
    assert matrix[AgentId.AIDER][AgentId.CLAUDE] == 0
    assert matrix[AgentId.CLAUDE][AgentId.AIDER] == 0
    for row in matrix.values():
        assert all(0 <= score <= 100 for score in row.values())


def test_critical_loss_always_lowers_fidelity(registry):
    warning = ConversionLoss(
        category="execution", severity="warning", description="d", source_field="a"
    )
    critical = ConversionLoss(
        category="capability", severity="critical", description="d", source_field="b"
    )
    for target, renderer in registry.renderers.items():
        for source in (target, AgentId.CLAUDE, AgentId.GEMINI):
            for losses in ([], [warning], [warning, critical]):
                before = fidelity_score(losses, [], renderer.fidelity, source, target)
                after = fidelity_score(
                    losses + [critical], [], renderer.fidelity, source, target
                )
                assert after < before, (target, source, losses)
