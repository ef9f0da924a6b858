import pytest

from agent_convert.agents import AgentId
from agent_convert.models import (
    CodexMetadata,
    CursorMetadata,
    GeminiMetadata,
    MemoryMetadata,
    OpenCodeMetadata,
    ParseOptions,
    WindsurfMetadata,
)
from agent_convert.registry import build_registry, detect_agent
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

CLAUDE_MEMORY = """# Project

See @docs/setup.md for setup.

## Testing
Run pytest before pushing.
"""

WINDSURF_WORKFLOW = """---
description: Deploy the app
auto_execution_mode: 1
---
# Deploy

1. Build
2. Ship
"""

CURSOR_COMMAND = """# Code Review

## Objective

Review the current diff.

## Requirements

- Check for bugs
- Suggest fixes
"""

CODEX_TOML_SKILL = """---
name = "deploy"
description = "Deploy service"
sandbox_mode = "workspace-write"
approval_policy = "on-request"
---
Deploy the service to staging.
"""

OPENCODE_COMMAND = """---
description: Run tests
subtask: true
---
<command-instruction>
Run the test suite.
</command-instruction>

<user-request>
$ARGUMENTS
</user-request>
"""

AGENTS_MD = """Instructions for agents.

## Setup
Run `uv sync`.

## Code Style
Use ruff.
"""


@pytest.fixture(scope="module")
def registry():
    return build_registry()


def parse(registry, agent, content, source_file=None, **options):
    parser = registry.get_parser(agent)
    return parser.parse(
        content, ParseOptions(agent_id=agent, source_file=source_file, **options)
    )


def test_claude_skill(registry):
    result = parse(
        registry, AgentId.CLAUDE, CLAUDE_SKILL, ".claude/skills/code-review/SKILL.md"
    )
    assert result.success
    spec = result.spec
    assert spec.id == "code-review"
    assert spec.component_type == "skill"
    assert spec.source_agent_id is AgentId.CLAUDE
    assert spec.intent.summary == "Review code for bugs"
    assert spec.activation.mode == "suggested"
    assert spec.execution.context == "fork"
    assert spec.execution.allowed_tools == ["Read", "Grep"]
    assert spec.execution.sub_agent == "explore"
    assert spec.invocation.slash_command == "code-review"
    assert spec.capabilities.needs_code_search is True
    assert spec.capabilities.provides_analysis is True
    assert spec.body == "Analyze the diff and report issues."
    assert len(result.warnings) == 2
    assert any("fork" in w for w in result.warnings)


def test_claude_command_manual(registry):
    content = (
        "---\ndescription: Deploy\ndisable-model-invocation: true\n"
        "argument-hint: \"[env]\"\n---\nDeploy to $ARGUMENTS"
    )
    spec = parse(registry, AgentId.CLAUDE, content, ".claude/commands/deploy.md").spec
    assert spec.id == "deploy"
    assert spec.component_type == "command"
    assert spec.activation.mode == "manual"
    assert spec.activation.requires_confirmation is True
    assert spec.invocation.argument_hint == "[env]"


def test_claude_memory(registry):
    result = parse(registry, AgentId.CLAUDE, CLAUDE_MEMORY, "CLAUDE.md")
    spec = result.spec
    assert spec.component_type == "memory"
    assert spec.id == "claude"
    assert spec.intent.summary == "Project"
    assert spec.activation.mode == "auto"
    ext = spec.extension(MemoryMetadata)
    assert ext.scope == "project"
    assert [i.path for i in ext.imports] == ["docs/setup.md"]
    assert [s.title for s in ext.sections] == ["Project", "Testing"]
    assert result.warnings == ["Found 1 @imports that may need resolution"]


def test_claude_local_memory_scope(registry):
    spec = parse(registry, AgentId.CLAUDE, CLAUDE_MEMORY, "CLAUDE.local.md").spec
    assert spec.extension(MemoryMetadata).scope == "local"


def test_claude_rule(registry):
    content = "---\npaths:\n  - src/api/**\n---\nUse typed handlers."
    spec = parse(registry, AgentId.CLAUDE, content, ".claude/rules/api.md").spec
    assert spec.component_type == "rule"
    assert spec.id == "api"
    assert spec.activation.mode == "contextual"
    assert [t.pattern for t in spec.activation.triggers] == ["src/api/**"]


def test_windsurf_workflow(registry):
    result = parse(
        registry, AgentId.WINDSURF, WINDSURF_WORKFLOW, ".windsurf/workflows/deploy.md"
    )
    spec = result.spec
    assert spec.id == "deploy"
    assert spec.component_type == "workflow"
    assert spec.activation.mode == "suggested"
    assert spec.extension(WindsurfMetadata).auto_execution_mode == 1
    assert any("auto_execution_mode=1" in w for w in result.warnings)


def test_windsurf_manual_workflow_without_path(registry):
    content = "---\ndescription: Release\nauto_execution_mode: 0\n---\n# Cut Release\n\nTag it."
    spec = parse(registry, AgentId.WINDSURF, content).spec
    assert spec.id == "cut-release"
    assert spec.activation.mode == "manual"
    assert spec.activation.requires_confirmation is True


def test_windsurf_rule(registry):
    content = '---\ntrigger: glob\nglobs: "*.py"\ndescription: Python style\n---\nUse black.'
    spec = parse(registry, AgentId.WINDSURF, content, ".windsurf/rules/style.md").spec
    assert spec.component_type == "rule"
    assert spec.activation.mode == "contextual"
    assert [t.pattern for t in spec.activation.triggers] == ["*.py"]


def test_cursor_structured_command(registry):
    result = parse(registry, AgentId.CURSOR, CURSOR_COMMAND, ".cursor/commands/review.md")
    spec = result.spec
    assert spec.id == "review"
    assert spec.component_type == "command"
    assert spec.intent.summary == "Review the current diff."
    assert spec.body == "- Check for bugs\n- Suggest fixes"
    assert spec.activation.mode == "manual"
    assert spec.extension(CursorMetadata).title == "Code Review"
    assert result.warnings == [
        "Cursor commands have no structured argument system - arguments are free-form"
    ]
    assert spec.invocation.arguments is None


def test_cursor_command_arguments_section(registry):
    content = (
        "# Deploy\n\n## Objective\n\nDeploy the app\n\n## Arguments\n\n"
        "Expected input: [env] [tag]\n\n"
        "- **env** (required): Target environment\n"
        "- **tag** (optional): No description\n\n"
        "## Requirements\n\nDeploy to {user input}\n"
    )
    spec = parse(registry, AgentId.CURSOR, content, ".cursor/commands/deploy.md").spec
    assert spec.invocation.argument_hint == "[env] [tag]"
    env, tag = spec.invocation.arguments
    assert (env.name, env.required, env.description) == ("env", True, "Target environment")
    assert (tag.name, tag.required, tag.description) == ("tag", False, None)
    assert spec.body == "Deploy to {user input}"

    rendered = registry.get_renderer(AgentId.CURSOR).render(spec)
    assert "- **env** (required): Target environment" in rendered.content
    assert "- **tag** (optional): No description" in rendered.content


def test_cursor_mdc_rule(registry):
    content = (
        '---\ndescription: Python conventions\nglobs: "**/*.py"\n'
        "alwaysApply: false\n---\nUse type hints."
    )
    spec = parse(registry, AgentId.CURSOR, content, ".cursor/rules/python.mdc").spec
    assert spec.component_type == "rule"
    assert spec.id == "python"
    assert spec.activation.mode == "contextual"
    ext = spec.extension(CursorMetadata)
    assert ext.globs == ["**/*.py"]
    assert ext.always_apply is False


def test_legacy_cursorrules(registry):
    result = parse(registry, AgentId.CURSOR, "Always write tests.", ".cursorrules")
    spec = result.spec
    assert spec.id == "default"
    assert spec.activation.mode == "auto"
    assert spec.metadata.original_format == "cursorrules"
    assert result.warnings == [".cursorrules is deprecated; migrate to .cursor/rules/*.mdc"]


def test_codex_toml_skill(registry):
    spec = parse(
        registry, AgentId.CODEX, CODEX_TOML_SKILL, ".codex/skills/deploy/SKILL.md"
    ).spec
    assert spec.id == "deploy"
    assert spec.component_type == "skill"
    assert spec.metadata.original_format == "codex-toml"
    assert spec.activation.safety_level == "sensitive"
    assert spec.activation.requires_confirmation is True
    assert spec.capabilities.needs_shell is True
    ext = spec.extension(CodexMetadata)
    assert ext.sandbox_mode == "workspace-write"
    assert ext.approval_policy == "on-request"


def test_codex_unknown_enum_is_dropped_with_warning(registry):
    content = "---\nname: lookup\ndescription: Look things up\nweb_search: sometimes\n---\nLook it up."
    result = parse(registry, AgentId.CODEX, content, ".codex/skills/lookup/SKILL.md")
    assert result.success
    assert result.spec.extension(CodexMetadata).web_search is None
    assert any("Unknown web_search 'sometimes'" in w for w in result.warnings)


def test_codex_memory(registry):
    spec = parse(registry, AgentId.CODEX, "Use pnpm.", "CODEX.md").spec
    assert spec.component_type == "memory"
    assert spec.id == "codex-config"


def test_gemini_skill(registry):
    content = (
        "---\nname: explain\ndescription: Explain code\ntemperature: 0.2\n"
        "code_execution: true\n---\nExplain the selected code."
    )
    spec = parse(registry, AgentId.GEMINI, content, ".gemini/skills/explain/SKILL.md").spec
    assert spec.component_type == "skill"
    assert spec.capabilities.needs_shell is True
    assert spec.activation.safety_level == "sensitive"
    ext = spec.extension(GeminiMetadata)
    assert ext.temperature == 0.2
    assert ext.code_execution is True


def test_gemini_non_numeric_temperature(registry):
    content = "---\nname: explain\ntemperature: hot\n---\nExplain the selected code."
    result = parse(registry, AgentId.GEMINI, content, ".gemini/skills/explain/SKILL.md")
    assert result.spec.extension(GeminiMetadata).temperature is None
    assert "Ignoring invalid temperature 'hot'" in result.warnings


def test_gemini_memory(registry):
    spec = parse(registry, AgentId.GEMINI, "Prefer small diffs.", "GEMINI.md").spec
    assert spec.component_type == "memory"
    assert spec.id == "gemini-config"


def test_opencode_command(registry):
    result = parse(registry, AgentId.OPENCODE, OPENCODE_COMMAND, ".opencode/commands/test.md")
    spec = result.spec
    assert spec.component_type == "command"
    assert spec.id == "test"
    assert spec.body == "Run the test suite."
    assert spec.execution.context == "fork"
    assert spec.activation.mode == "manual"
    assert spec.extension(OpenCodeMetadata).subtask is True
    assert any("subtask" in w for w in result.warnings)


def test_opencode_agent(registry):
    content = (
        "---\ndescription: Reviews code\nmode: subagent\ntemperature: 0.1\n"
        "tools:\n  write: false\n  read: true\n---\nYou review code."
    )
    spec = parse(registry, AgentId.OPENCODE, content, ".opencode/agents/reviewer.md").spec
    assert spec.component_type == "agent"
    assert spec.execution.allowed_tools == ["read"]
    assert spec.execution.restricted_tools == ["write"]
    ext = spec.extension(OpenCodeMetadata)
    assert ext.mode == "subagent"
    assert ext.temperature == 0.1

    rendered = registry.get_renderer(AgentId.OPENCODE).render(spec)
    fm, _ = parse_frontmatter(rendered.content)
    assert fm["tools"] == {"read": True, "write": False}


def test_universal_agents_md(registry):
    spec = parse(registry, AgentId.UNIVERSAL, AGENTS_MD, "AGENTS.md").spec
    assert spec.id == "agents"
    assert spec.component_type == "memory"
    assert spec.activation.mode == "auto"
    assert spec.intent.summary == "Instructions for agents."
    assert [s.title for s in spec.extension(MemoryMetadata).sections] == [
        "Setup",
        "Code Style",
    ]


@pytest.mark.parametrize("agent", list(build_registry().parsers))
def test_empty_content_fails(registry, agent):
    result = parse(registry, agent, "   \n")
    assert not result.success
    assert result.spec is None
    assert "empty" in result.errors[0]


def test_invalid_frontmatter_fails(registry):
    result = parse(registry, AgentId.CLAUDE, "---\nname: [broken\n---\nbody")
    assert not result.success
    assert result.errors[0].startswith("[INVALID_FRONTMATTER]")


def test_schema_violation_fails(registry):
    result = parse(registry, AgentId.CLAUDE, "---\nname: x\nmodel: 5\n---\nbody")
    assert not result.success
    assert result.errors[0].startswith("[SCHEMA_INVALID]")


def test_validate_on_parse_adds_validation_warnings(registry):
    content = "---\nname: Bad Name\ndescription: Does things\n---\nDo the thing."
    result = parse(
        registry,
        AgentId.CLAUDE,
        content,
        ".claude/skills/bad/SKILL.md",
        validate_on_parse=True,
    )
    assert result.success
    assert any(w.startswith("[Validation]") and "Bad Name" in w for w in result.warnings)


@pytest.mark.parametrize(
    "path,agent",
    [
        (".claude/skills/x/SKILL.md", AgentId.CLAUDE),
        ("CLAUDE.md", AgentId.CLAUDE),
        (".windsurf/workflows/x.md", AgentId.WINDSURF),
        (".cursor/rules/x.mdc", AgentId.CURSOR),
        (".cursorrules", AgentId.CURSOR),
        (".codex/commands/x.md", AgentId.CODEX),
        ("GEMINI.md", AgentId.GEMINI),
        (".opencode/commands/x.md", AgentId.OPENCODE),
        ("docs/AGENTS.md", AgentId.UNIVERSAL),
    ],
)
def test_detect_agent_from_path(registry, path, agent):
    assert detect_agent("anything", path, registry) is agent


@pytest.mark.parametrize(
    "content,agent",
    [
        (CLAUDE_SKILL, AgentId.CLAUDE),
        (WINDSURF_WORKFLOW, AgentId.WINDSURF),
        (CURSOR_COMMAND, AgentId.CURSOR),
        ("---\ndescription: y\nsandbox_mode: read-only\n---\nbody", AgentId.CODEX),
        ("---\ndescription: y\ngoogle_search: true\n---\nbody", AgentId.GEMINI),
        (OPENCODE_COMMAND, AgentId.OPENCODE),
        ("# AGENTS.md\n\nUse uv.", AgentId.UNIVERSAL),
    ],
)
def test_detect_agent_from_content(registry, content, agent):
    assert detect_agent(content, None, registry) is agent


def test_detect_agent_gives_up(registry):
    assert detect_agent("just some text", "notes.txt", registry) is None


@pytest.mark.parametrize("value", [".inf", "-.inf", ".nan"])
def test_gemini_non_finite_numbers_are_ignored(registry, value):
    content = f"---\nname: explain\nmax_tokens: {value}\ntemperature: {value}\n---\nExplain it."
    result = parse(registry, AgentId.GEMINI, content, ".gemini/skills/explain/SKILL.md")
    assert result.success
    ext = result.spec.extension(GeminiMetadata)
    assert ext.max_tokens is None
    assert ext.temperature is None
    assert any(w.startswith("Ignoring invalid max_tokens") for w in result.warnings)
