"""Per-agent structural rules."""

import re
from typing import Any, Dict

from agent_convert.agents import AgentId
from agent_convert.utils import as_list
from agent_convert.validation.base import BaseValidator, IssueCollector, ValidatorOptions

Frontmatter = Dict[str, Any]

CLAUDE_TOOLS = (
    "Read", "Edit", "MultiEdit", "Write", "Bash", "Task", "Search", "Grep", "Glob",
    "LS", "WebFetch", "WebSearch", "TodoWrite", "TodoRead", "NotebookEdit", "AskUser",
)
CLAUDE_MODELS = ("sonnet", "opus", "haiku", "inherit", "claude-")
CLAUDE_SUBAGENTS = ("explore", "plan", "general", "general-purpose")
HOOK_EVENTS = (
    "PreToolUse", "PostToolUse", "Notification", "UserPromptSubmit", "Stop",
    "SubagentStop", "PreCompact", "SessionStart", "SessionEnd",
)


def _tool_name(tool: str) -> str:
    """``Bash(git diff:*)`` -> ``Bash``."""
    return tool.split("(", 1)[0].strip()


class ClaudeValidator(BaseValidator):
    agent = AgentId.CLAUDE
    component_types = ("skill", "command", "rule", "hook", "memory", "agent")

    def check_skill(
        self,
        fm: Frontmatter,
        body: str,
        version: str,
        report: IssueCollector,
        options: ValidatorOptions,
    ) -> None:
        if not fm.get("name"):
            report.error(
                "MISSING_NAME",
                'Skill must have a "name" field in frontmatter',
                "name",
                "Add name: your-skill-name to the frontmatter",
            )
        elif not re.fullmatch(r"[a-z0-9][a-z0-9\-]*", str(fm["name"])):
            report.warning(
                "NAME_FORMAT",
                f'Skill name "{fm["name"]}" should use lowercase letters, digits and hyphens',
                "name",
            )
        self._check_common(fm, body, version, report, options, "Skill")

    def check_command(
        self,
        fm: Frontmatter,
        body: str,
        version: str,
        report: IssueCollector,
        options: ValidatorOptions,
    ) -> None:
        self._check_common(fm, body, version, report, options, "Command")
        if "$ARGUMENTS" not in body and fm.get("argument-hint"):
            report.warning(
                "UNUSED_ARGUMENT_HINT",
                "argument-hint is set but the body never references $ARGUMENTS",
                "argument-hint",
            )

    def check_agent(
        self,
        fm: Frontmatter,
        body: str,
        version: str,
        report: IssueCollector,
        options: ValidatorOptions,
    ) -> None:
        if not fm.get("name"):
            report.error("MISSING_NAME", 'Agent must have a "name" field', "name")
        if not fm.get("description"):
            report.error(
                "MISSING_DESCRIPTION",
                "Agent needs a description so Claude knows when to delegate to it",
                "description",
            )
        self._check_tools(fm, report)
        self._check_model(fm, version, report, options)
        self.check_body_length(body, 50, report)

    def check_rule(
        self,
        fm: Frontmatter,
        body: str,
        version: str,
        report: IssueCollector,
        options: ValidatorOptions,
    ) -> None:
        self.require_feature("claude-rules", version, report, options)
        for key in ("user-invocable", "disable-model-invocation", "argument-hint", "agent"):
            if key in fm:
                report.warning(
                    "RULE_FIELD",
                    f'Field "{key}" is not used by rules (meant for skills)',
                    key,
                )
        if "paths" in fm and not as_list(fm["paths"]):
            report.error("INVALID_PATHS", "paths must list at least one glob pattern", "paths")
        self.check_body_length(body, 20, report)

    def check_hook(
        self,
        fm: Frontmatter,
        body: str,
        version: str,
        report: IssueCollector,
        options: ValidatorOptions,
    ) -> None:
        self.require_feature("claude-hooks", version, report, options)
        if not any(event in body for event in HOOK_EVENTS):
            report.error(
                "HOOK_CONTENT",
                "Hook documentation should reference a valid hook event",
                suggestion="Valid events: " + ", ".join(HOOK_EVENTS),
            )

    def check_memory(
        self,
        fm: Frontmatter,
        body: str,
        version: str,
        report: IssueCollector,
        options: ValidatorOptions,
    ) -> None:
        self.check_body_length(body, 100, report, code="SHORT_MEMORY")
        references = re.findall(r"(?<![\w`])@[\w/.\-~]+", body)
        if references:
            report.note("IMPORTS", f"Found {len(references)} file references")

    def _check_common(
        self,
        fm: Frontmatter,
        body: str,
        version: str,
        report: IssueCollector,
        options: ValidatorOptions,
        label: str,
    ) -> None:
        if not fm.get("description"):
            report.warning(
                "MISSING_DESCRIPTION",
                f'{label} should have a "description" field for better discoverability',
                "description",
            )
        self.check_enum(fm, "context", ("main", "fork", "isolated"), report)
        if fm.get("context") == "fork":
            report.note("FORK_CONTEXT", "Runs in a forked sub-agent context", "context")
        for key in ("disable-model-invocation", "user-invocable"):
            self.check_bool(fm, key, report)

        if fm.get("agent"):
            self.require_feature("claude-subagents", version, report, options, "agent")
            if str(fm["agent"]).lower() not in CLAUDE_SUBAGENTS:
                report.warning(
                    "UNKNOWN_SUBAGENT",
                    f'Agent "{fm["agent"]}" is not a built-in sub-agent '
                    f"({', '.join(CLAUDE_SUBAGENTS)})",
                    "agent",
                )
        self._check_tools(fm, report)
        self._check_model(fm, version, report, options)
        self.check_body_length(body, 50, report)

    def _check_tools(self, fm: Frontmatter, report: IssueCollector) -> None:
        for tool in as_list(fm.get("allowed-tools") or fm.get("tools")):
            name = _tool_name(tool)
            if name not in CLAUDE_TOOLS and not name.startswith("mcp__"):
                report.warning(
                    "UNKNOWN_TOOL", f'Tool "{name}" may not be valid', "allowed-tools"
                )

    def _check_model(
        self, fm: Frontmatter, version: str, report: IssueCollector, options: ValidatorOptions
    ) -> None:
        if not fm.get("model"):
            return
        self.require_feature("claude-model-selection", version, report, options, "model")
        model = str(fm["model"]).lower()
        if not any(m in model for m in CLAUDE_MODELS):
            report.warning("UNKNOWN_MODEL", f'Model "{fm["model"]}" may not be valid', "model")


WINDSURF_TRIGGERS = ("manual", "model_decision", "glob", "always_on")


class WindsurfValidator(BaseValidator):
    agent = AgentId.WINDSURF
    component_types = ("skill", "workflow", "rule")

    def check_skill(
        self,
        fm: Frontmatter,
        body: str,
        version: str,
        report: IssueCollector,
        options: ValidatorOptions,
    ) -> None:
        self.require_feature("windsurf-agent-skills", version, report, options)
        if not fm.get("name"):
            report.error("MISSING_NAME", 'Skill must have a "name" field', "name")
        if not fm.get("description"):
            report.error(
                "MISSING_DESCRIPTION",
                "Skill needs a description for Cascade to decide when to use it",
                "description",
            )
        if re.search(r"^\s*\d+\.\s", body, re.M):
            report.note(
                "STEPS_IN_SKILL",
                "Numbered steps suggest this might work better as a workflow",
            )
        self.check_body_length(body, 50, report)

    def check_workflow(
        self,
        fm: Frontmatter,
        body: str,
        version: str,
        report: IssueCollector,
        options: ValidatorOptions,
    ) -> None:
        if not fm.get("description"):
            report.error(
                "MISSING_DESCRIPTION",
                'Workflow must have a "description" field',
                "description",
            )
        if "auto_execution_mode" in fm:
            self.require_feature(
                "windsurf-auto-execution", version, report, options, "auto_execution_mode"
            )
            self.check_enum(fm, "auto_execution_mode", (0, 1, 2, 3), report)
        if not re.search(r"^\s*(\d+\.|[-*])\s", body, re.M):
            report.note("NO_STEPS", "Workflows usually list numbered steps")
        if re.search(r"/[a-z][\w-]+", body):
            report.note("CHAINING", "Workflow appears to call other workflows")
        self.check_body_length(body, 50, report)

    def check_rule(
        self,
        fm: Frontmatter,
        body: str,
        version: str,
        report: IssueCollector,
        options: ValidatorOptions,
    ) -> None:
        if not fm.get("description") and fm.get("trigger") == "model_decision":
            report.error(
                "MISSING_DESCRIPTION",
                "model_decision rules need a description for Cascade to decide",
                "description",
            )
        self.check_enum(fm, "trigger", WINDSURF_TRIGGERS, report)
        if fm.get("trigger") == "glob" and not as_list(fm.get("globs")):
            report.warning(
                "MISSING_GLOBS", 'trigger "glob" without any globs never activates', "globs"
            )
        if len(body) > 6000:
            report.warning(
                "RULE_TOO_LONG", "Windsurf truncates rule files beyond 6000 characters", "body"
            )


CURSOR_RULE_FIELDS = ("description", "globs", "alwaysApply")


class CursorValidator(BaseValidator):
    agent = AgentId.CURSOR
    component_types = ("rule", "command", "skill")

    def check_rule(
        self,
        fm: Frontmatter,
        body: str,
        version: str,
        report: IssueCollector,
        options: ValidatorOptions,
    ) -> None:
        if not fm:
            if self.is_deprecated("cursor-cursorrules", version):
                if not options.skip_deprecated_warnings:
                    report.warning(
                        "DEPRECATED_FORMAT",
                        "Rules without frontmatter use the deprecated .cursorrules format",
                        suggestion="Move the rule to .cursor/rules/<name>.mdc with frontmatter",
                    )
            self.check_body_length(body, 100, report, code="SHORT_CURSORRULES")
            return

        self.require_feature("cursor-mdc-rules", version, report, options)
        if not fm.get("description"):
            report.warning(
                "MISSING_DESCRIPTION",
                "Rule should have a description so the agent can decide when to apply it",
                "description",
            )
        globs = fm.get("globs")
        if globs is not None and not isinstance(globs, (str, list)):
            report.error("INVALID_GLOBS", "globs must be a string or a list", "globs")
        for pattern in as_list(globs):
            if pattern.count("[") != pattern.count("]") or pattern.count("{") != pattern.count("}"):
                report.error("INVALID_GLOB", f'Unbalanced brackets in glob "{pattern}"', "globs")
        self.check_bool(fm, "alwaysApply", report)
        if fm.get("alwaysApply") is True and as_list(globs):
            report.note(
                "ALWAYS_APPLY",
                "alwaysApply: true makes the globs irrelevant",
                "alwaysApply",
            )
        for key in fm:
            if key not in CURSOR_RULE_FIELDS:
                report.warning("UNKNOWN_FIELD", f'Unknown rule field "{key}"', key)
        self.check_body_length(body, 50, report)

    def check_command(
        self,
        fm: Frontmatter,
        body: str,
        version: str,
        report: IssueCollector,
        options: ValidatorOptions,
    ) -> None:
        self.require_feature("cursor-commands", version, report, options)
        if fm:
            report.warning(
                "COMMAND_FRONTMATTER",
                "Cursor commands are plain markdown; frontmatter is ignored",
            )
        self.check_body_length(body, 30, report, code="SHORT_COMMAND")
        if re.search(r"(?<![\w`])@[\w/.\-]+", body):
            report.note("MENTIONS", "Command references files with @mentions")

    def check_skill(
        self,
        fm: Frontmatter,
        body: str,
        version: str,
        report: IssueCollector,
        options: ValidatorOptions,
    ) -> None:
        if not fm.get("name"):
            report.error("MISSING_NAME", 'Skill must have a "name" field', "name")
        if not fm.get("description"):
            report.warning("MISSING_DESCRIPTION", "Skill should have a description", "description")
        self.check_bool(fm, "disable-model-invocation", report)
        self.check_body_length(body, 50, report)


class CodexValidator(BaseValidator):
    agent = AgentId.CODEX
    component_types = ("skill", "command", "rule", "memory")

    def _check_settings(self, fm: Frontmatter, report: IssueCollector) -> None:
        self.check_enum(
            fm, "approval_policy", ("untrusted", "on-failure", "on-request", "never"), report
        )
        self.check_enum(
            fm, "sandbox_mode", ("read-only", "workspace-write", "danger-full-access"), report
        )
        self.check_enum(fm, "web_search", ("disabled", "cached", "live"), report)
        if fm.get("sandbox_mode") == "danger-full-access":
            report.warning(
                "DANGEROUS_SANDBOX",
                "danger-full-access disables the sandbox entirely",
                "sandbox_mode",
            )
            if fm.get("approval_policy") == "never":
                report.warning(
                    "NO_APPROVAL",
                    "Unsandboxed execution with approval_policy never runs without any checks",
                    "approval_policy",
                )
        if "mcp_servers" in fm and not isinstance(fm["mcp_servers"], dict):
            report.error("INVALID_MCP_SERVERS", "mcp_servers must be a table", "mcp_servers")
        features = fm.get("features")
        if features is not None:
            if not isinstance(features, dict) or not all(
                isinstance(v, bool) for v in features.values()
            ):
                report.error(
                    "INVALID_FEATURES", "features must map names to true/false", "features"
                )
            elif features:
                report.note(
                    "EXPERIMENTAL_FEATURES",
                    f"Enables feature flags: {', '.join(features)}",
                    "features",
                )

    def check_skill(
        self,
        fm: Frontmatter,
        body: str,
        version: str,
        report: IssueCollector,
        options: ValidatorOptions,
    ) -> None:
        if not fm.get("name"):
            report.error("MISSING_NAME", 'Skill must have a "name" field', "name")
        if not fm.get("description"):
            report.error(
                "MISSING_DESCRIPTION",
                "Skill needs a description so Codex can decide when to load it",
                "description",
            )
        self._check_settings(fm, report)
        self.check_body_length(body, 50, report)

    def check_command(
        self,
        fm: Frontmatter,
        body: str,
        version: str,
        report: IssueCollector,
        options: ValidatorOptions,
    ) -> None:
        if not fm.get("description"):
            report.warning("MISSING_DESCRIPTION", "Command should have a description", "description")
        self._check_settings(fm, report)
        if fm.get("argument_hint") and "$ARGUMENTS" not in body and "$1" not in body:
            report.warning(
                "UNUSED_ARGUMENT_HINT",
                "argument_hint is set but the body never references its arguments",
                "argument_hint",
            )
        self.check_body_length(body, 30, report)

    def check_rule(
        self,
        fm: Frontmatter,
        body: str,
        version: str,
        report: IssueCollector,
        options: ValidatorOptions,
    ) -> None:
        self._check_settings(fm, report)
        self.check_bool(fm, "alwaysApply", report)
        self.check_body_length(body, 30, report)

    def check_memory(
        self,
        fm: Frontmatter,
        body: str,
        version: str,
        report: IssueCollector,
        options: ValidatorOptions,
    ) -> None:
        self._check_settings(fm, report)
        self.check_body_length(body, 100, report, code="SHORT_MEMORY")


class GeminiValidator(BaseValidator):
    agent = AgentId.GEMINI
    component_types = ("skill", "command", "memory")

    def _check_settings(self, fm: Frontmatter, report: IssueCollector) -> None:
        self.check_range(fm, "temperature", 0, 2, report)
        if "max_tokens" in fm:
            value = fm["max_tokens"]
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                report.error(
                    "INVALID_MAX_TOKENS", "max_tokens must be a positive integer", "max_tokens"
                )
        self.check_bool(fm, "code_execution", report)
        self.check_bool(fm, "google_search", report)
        if "include_directories" in fm and not isinstance(
            fm["include_directories"], (list, str)
        ):
            report.error(
                "INVALID_INCLUDE_DIRECTORIES",
                "include_directories must be a list of paths",
                "include_directories",
            )
        if fm.get("code_execution") is True:
            report.note("CODE_EXECUTION", "Component can execute code", "code_execution")

    def check_skill(
        self,
        fm: Frontmatter,
        body: str,
        version: str,
        report: IssueCollector,
        options: ValidatorOptions,
    ) -> None:
        if not fm.get("name"):
            report.error("MISSING_NAME", 'Skill must have a "name" field', "name")
        if not fm.get("description"):
            report.warning("MISSING_DESCRIPTION", "Skill should have a description", "description")
        self._check_settings(fm, report)
        self.check_body_length(body, 50, report)

    def check_command(
        self,
        fm: Frontmatter,
        body: str,
        version: str,
        report: IssueCollector,
        options: ValidatorOptions,
    ) -> None:
        if not fm.get("description"):
            report.warning("MISSING_DESCRIPTION", "Command should have a description", "description")
        self._check_settings(fm, report)
        self.check_body_length(body, 30, report)

    def check_memory(
        self,
        fm: Frontmatter,
        body: str,
        version: str,
        report: IssueCollector,
        options: ValidatorOptions,
    ) -> None:
        self._check_settings(fm, report)
        self.check_body_length(body, 100, report, code="SHORT_MEMORY")


class OpenCodeValidator(BaseValidator):
    agent = AgentId.OPENCODE
    component_types = ("skill", "command", "agent")

    def check_skill(
        self,
        fm: Frontmatter,
        body: str,
        version: str,
        report: IssueCollector,
        options: ValidatorOptions,
    ) -> None:
        if not fm.get("name"):
            report.note("MISSING_NAME", "Skill name will be taken from the file name", "name")
        if not fm.get("description"):
            report.warning("MISSING_DESCRIPTION", "Skill should have a description", "description")
        self.check_bool(fm, "subtask", report)
        self.check_body_length(body, 50, report)

    def check_command(
        self,
        fm: Frontmatter,
        body: str,
        version: str,
        report: IssueCollector,
        options: ValidatorOptions,
    ) -> None:
        if not fm.get("description"):
            report.warning(
                "MISSING_DESCRIPTION", "Command should have a description", "description"
            )
        self.check_bool(fm, "subtask", report)
        if "$ARGUMENTS" not in body and not re.search(r"\$\d", body):
            report.note(
                "NO_ARGUMENTS_PLACEHOLDER", "Command does not reference $ARGUMENTS"
            )
        if "!`" in body:
            report.note("SHELL_INJECTION", "Command injects shell output with !`cmd`")
        if fm.get("subtask") is True:
            report.note("SUBTASK_COMMAND", "Command runs as a subtask", "subtask")

    def check_agent(
        self,
        fm: Frontmatter,
        body: str,
        version: str,
        report: IssueCollector,
        options: ValidatorOptions,
    ) -> None:
        if not fm.get("description"):
            report.error(
                "MISSING_DESCRIPTION",
                "Agent must have a description",
                "description",
            )
        self.check_enum(fm, "mode", ("primary", "subagent", "all"), report)
        self.check_range(fm, "temperature", 0, 1, report)
        tools = fm.get("tools")
        if tools is not None and not isinstance(tools, dict):
            report.warning(
                "AGENT_TOOLS",
                "Agent tools should map tool names to true/false",
                "tools",
            )
        self.check_body_length(body, 50, report)


class UniversalValidator(BaseValidator):
    agent = AgentId.UNIVERSAL
    component_types = ("memory",)

    def check_memory(
        self,
        fm: Frontmatter,
        body: str,
        version: str,
        report: IssueCollector,
        options: ValidatorOptions,
    ) -> None:
        if fm:
            report.warning(
                "UNEXPECTED_FRONTMATTER", "AGENTS.md is plain markdown without frontmatter"
            )
        if not re.search(r"^#{1,6}\s+\S", body, re.M):
            report.note("NO_SECTIONS", "AGENTS.md usually organises instructions under headings")
        self.check_body_length(body, 100, report, code="SHORT_MEMORY")


VALIDATOR_CLASSES = (
    ClaudeValidator,
    WindsurfValidator,
    CursorValidator,
    CodexValidator,
    GeminiValidator,
    OpenCodeValidator,
    UniversalValidator,
)
