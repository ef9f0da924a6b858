"""Agent identities and the static per-agent facts the converter relies on."""

import re
from enum import Enum
from typing import Dict, List, NamedTuple, Optional


class AgentId(str, Enum):
    """Every assistant dialect the converter knows about."""

    CLAUDE = "claude"
    WINDSURF = "windsurf"
    CURSOR = "cursor"
    CODEX = "codex"
    GEMINI = "gemini"
    OPENCODE = "opencode"
    UNIVERSAL = "universal"
    AIDER = "aider"
    CONTINUE = "continue"

    def __str__(self) -> str:
        return self.value


class AgentInfo(NamedTuple):
    display_name: str
    component_types: List[str]
    project_location: str
    user_location: str


AGENTS: Dict[AgentId, AgentInfo] = {
    AgentId.CLAUDE: AgentInfo(
        "Claude Code",
        ["skill", "command", "hook", "memory", "rule", "agent", "config"],
        ".claude/skills",
        "~/.claude/skills",
    ),
    AgentId.WINDSURF: AgentInfo(
        "Windsurf (Cascade)",
        ["skill", "workflow", "rule", "memory", "config"],
        ".windsurf/workflows",
        "~/.windsurf/workflows",
    ),
    AgentId.CURSOR: AgentInfo(
        "Cursor",
        ["command", "skill", "rule", "memory", "config"],
        ".cursor/commands",
        "~/.cursor/commands",
    ),
    AgentId.CODEX: AgentInfo(
        "OpenAI Codex CLI",
        ["skill", "command", "rule", "memory"],
        ".codex",
        "~/.codex",
    ),
    AgentId.GEMINI: AgentInfo(
        "Gemini CLI",
        ["skill", "command", "memory", "config"],
        ".gemini",
        "~/.gemini",
    ),
    AgentId.OPENCODE: AgentInfo(
        "OpenCode",
        ["skill", "command", "memory", "agent", "config"],
        ".opencode",
        "~/.config/opencode",
    ),
    AgentId.UNIVERSAL: AgentInfo(
        "Universal (AGENTS.md)",
        ["memory"],
        ".",
        "~",
    ),
    AgentId.AIDER: AgentInfo(
        "Aider",
        ["command", "config"],
        ".aider/commands",
        "~/.aider/commands",
    ),
    AgentId.CONTINUE: AgentInfo(
        "Continue",
        ["command", "config"],
        ".continue/commands",
        "~/.continue/commands",
    ),
}


# Closest native component type per agent for a given source type.
COMPONENT_TYPE_EQUIVALENTS: Dict[str, Dict[AgentId, str]] = {
    "skill": {
        AgentId.CLAUDE: "skill",
        AgentId.WINDSURF: "workflow",
        AgentId.CURSOR: "command",
        AgentId.CODEX: "skill",
        AgentId.GEMINI: "skill",
        AgentId.OPENCODE: "skill",
    },
    "workflow": {
        AgentId.CLAUDE: "skill",
        AgentId.WINDSURF: "workflow",
        AgentId.CURSOR: "command",
        AgentId.CODEX: "command",
        AgentId.GEMINI: "command",
        AgentId.OPENCODE: "command",
    },
    "command": {
        AgentId.CLAUDE: "skill",
        AgentId.WINDSURF: "workflow",
        AgentId.CURSOR: "command",
        AgentId.CODEX: "command",
        AgentId.GEMINI: "command",
        AgentId.OPENCODE: "command",
    },
    "rule": {
        AgentId.CLAUDE: "rule",
        AgentId.WINDSURF: "rule",
        AgentId.CURSOR: "rule",
        AgentId.CODEX: "rule",
        AgentId.OPENCODE: "skill",
    },
    "hook": {AgentId.CLAUDE: "hook"},
    "memory": {
        AgentId.CLAUDE: "memory",
        AgentId.WINDSURF: "memory",
        AgentId.CODEX: "memory",
        AgentId.GEMINI: "memory",
        AgentId.UNIVERSAL: "memory",
    },
    "agent": {AgentId.CLAUDE: "agent", AgentId.OPENCODE: "agent"},
    "config": {
        AgentId.CLAUDE: "config",
        AgentId.WINDSURF: "config",
        AgentId.CURSOR: "config",
    },
}


AGENT_FILE_PATTERNS: Dict[AgentId, List[re.Pattern]] = {
    AgentId.CLAUDE: [
        re.compile(r"\.claude/skills/.*/SKILL\.md$"),
        re.compile(r"\.claude/commands/.*\.md$"),
        re.compile(r"\.claude/agents/.*\.md$"),
        re.compile(r"\.claude/rules/.*\.md$"),
        re.compile(r"CLAUDE(\.local)?\.md$"),
    ],
    AgentId.WINDSURF: [
        re.compile(r"\.windsurf/workflows/.*\.md$"),
        re.compile(r"\.windsurf/rules/.*\.md$"),
        re.compile(r"\.windsurf/skills/.*/SKILL\.md$"),
    ],
    AgentId.CURSOR: [
        re.compile(r"\.cursor/commands/.*\.md$"),
        re.compile(r"\.cursor/skills/.*/SKILL\.md$"),
        re.compile(r"\.cursor/rules/.*\.mdc?$"),
        re.compile(r"(^|/)\.cursorrules$"),
    ],
    AgentId.CODEX: [
        re.compile(r"\.codex/.*\.md$"),
        re.compile(r"CODEX\.md$"),
    ],
    AgentId.GEMINI: [
        re.compile(r"\.gemini/.*\.md$"),
        re.compile(r"GEMINI\.md$"),
    ],
    AgentId.OPENCODE: [
        re.compile(r"\.opencode/skills/.*\.md$"),
        re.compile(r"\.opencode/commands/.*\.md$"),
        re.compile(r"\.opencode/agents/.*\.md$"),
    ],
    AgentId.UNIVERSAL: [re.compile(r"(^|/)AGENTS\.md$")],
    AgentId.AIDER: [re.compile(r"\.aider/commands/.*\.md$")],
    AgentId.CONTINUE: [re.compile(r"\.continue/commands/.*\.md$")],
}


def display_name(agent: AgentId) -> str:
    return AGENTS[agent].display_name


def agent_for_path(path: Optional[str]) -> Optional[AgentId]:
    """Guess the owning agent from file path conventions alone."""
    if not path:
        return None
    normalized = path.replace("\\", "/")
    for agent, patterns in AGENT_FILE_PATTERNS.items():
        if any(p.search(normalized) for p in patterns):
            return agent
    return None


def native_component_type(component_type: str, agent: AgentId) -> Optional[str]:
    return COMPONENT_TYPE_EQUIVALENTS.get(component_type, {}).get(agent)
