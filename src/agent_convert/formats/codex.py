"""OpenAI Codex CLI skills, commands, rules and memory files.

Codex accepts either YAML frontmatter or a TOML-style ``key = value`` block;
the renderer writes back whichever style the source used.
"""

import re
from typing import Any, Dict, List, Optional, Tuple

from agent_convert.agents import AgentId
from agent_convert.errors import FrontmatterError
from agent_convert.formats.base import (
    BaseParser,
    BaseRenderer,
    FidelityPolicy,
    RenderedDocument,
    RenderNotes,
    extract_examples,
    glob_triggers,
    has_examples_section,
    id_from_path,
    normalize_path,
    source_descriptor,
    trigger_globs,
)
from agent_convert.inference import (
    infer_capabilities,
    infer_categories,
    infer_safety_level,
    merge_capabilities,
)
from agent_convert.models import (
    DEFAULT_VERSION,
    Activation,
    ActivationMode,
    CodexMetadata,
    ComponentMetadata,
    ComponentSpec,
    Execution,
    Intent,
    Invocation,
    OpenCodeMetadata,
    ParseOptions,
    RenderOptions,
    SafetyLevel,
)
from agent_convert.utils import (
    FrontmatterFormat,
    as_list,
    clean_description,
    first_paragraph,
    parse_frontmatter,
    parse_frontmatter_with_format,
)

CODEX_FIELDS = ("approval_policy", "sandbox_mode", "mcp_servers", "web_search")
OTHER_AGENT_MARKERS = (
    re.compile(r"^context:\s*fork", re.M),
    re.compile(r"^subtask:\s*true", re.M),
    re.compile(r"^mode:\s*(primary|subagent)", re.M),
    re.compile(r"^auto_execution_mode:", re.M),
)

SANDBOX_FOR_SAFETY: Dict[SafetyLevel, str] = {
    "safe": "read-only",
    "sensitive": "workspace-write",
    "dangerous": "danger-full-access",
}

SANDBOX_MODES = ("read-only", "workspace-write", "danger-full-access")
APPROVAL_POLICIES = ("untrusted", "on-failure", "on-request", "never")
WEB_SEARCH_MODES = ("disabled", "cached", "live")
CODEX_DIRECTORIES = {"command": ".codex/commands", "rule": ".codex/rules", "memory": ".codex/memory"}


def codex_component_type(source_file: Optional[str], fm: Dict[str, Any]) -> str:
    path = normalize_path(source_file) or ""
    if "/skills/" in path or path.endswith("SKILL.md"):
        return "skill"
    if "/commands/" in path or path.endswith("COMMAND.md"):
        return "command"
    if "/rules/" in path:
        return "rule"
    if "/memory/" in path or path.endswith("CODEX.md"):
        return "memory"
    if fm.get("slash_command") or fm.get("argument_hint"):
        return "command"
    if fm.get("globs") or "alwaysApply" in fm:
        return "rule"
    return "skill"


def codex_id(fm: Dict[str, Any], source_file: Optional[str]) -> str:
    if fm.get("name"):
        return str(fm["name"])
    path = normalize_path(source_file) or ""
    if path.endswith("CODEX.md"):
        return "codex-config"
    return id_from_path(source_file) or "unnamed"


def codex_activation(fm: Dict[str, Any]) -> ActivationMode:
    if as_list(fm.get("globs")):
        return "contextual"
    if fm.get("alwaysApply") is True:
        return "auto"
    if fm.get("slash_command"):
        return "manual"
    return "suggested"


def codex_safety(fm: Dict[str, Any]) -> Optional[SafetyLevel]:
    """Safety implied by sandbox/approval settings, or None when neither says."""
    sandbox = fm.get("sandbox_mode")
    if sandbox == "danger-full-access" or fm.get("approval_policy") == "never":
        return "dangerous"
    if sandbox == "workspace-write":
        return "sensitive"
    if sandbox == "read-only":
        return "safe"
    return None


class CodexParser(BaseParser):
    agent = AgentId.CODEX

    def can_parse(self, content: str, filename: Optional[str] = None) -> bool:
        path = normalize_path(filename) or ""
        if ".codex/" in path or path.endswith("CODEX.md"):
            return True
        try:
            fm, _ = parse_frontmatter(content)
        except FrontmatterError:
            return False
        if any(key in fm for key in CODEX_FIELDS):
            return True
        if any(marker.search(content) for marker in OTHER_AGENT_MARKERS):
            return False
        return "name" in fm and "description" in fm

    def _parse(
        self, content: str, options: ParseOptions
    ) -> Tuple[ComponentSpec, List[str]]:
        warnings: List[str] = []
        fm, body, fmt = parse_frontmatter_with_format(content)
        body = body.strip()

        component_type = codex_component_type(options.source_file, fm)
        component_id = codex_id(fm, options.source_file)
        description = clean_description(fm.get("description"))
        tools = as_list(fm.get("tools")) or None

        capabilities = infer_capabilities(body, tools)
        sandbox = fm.get("sandbox_mode")
        if sandbox in ("workspace-write", "danger-full-access"):
            capabilities = merge_capabilities(capabilities, needs_shell=True)
        if fm.get("web_search") == "live" or sandbox == "danger-full-access":
            capabilities = merge_capabilities(capabilities, needs_network=True)
        if fm.get("mcp_servers"):
            capabilities = merge_capabilities(capabilities, needs_mcp=True)

        safety = codex_safety(fm) or infer_safety_level(body, capabilities)
        mode = codex_activation(fm)

        spec = ComponentSpec(
            id=component_id,
            version=fm.get("version"),
            source_agent=source_descriptor(self.agent),
            component_type=component_type,
            category=infer_categories(f"{description} {body}"),
            intent=Intent(
                summary=description or first_paragraph(body) or f"Codex {component_type}",
                purpose=description or first_paragraph(body) or "No description provided",
                when_to_use=description or None,
                examples=extract_examples(body),
            ),
            activation=Activation(
                mode=mode,
                safety_level=safety,
                triggers=glob_triggers(fm.get("globs")),
                requires_confirmation=(
                    True if fm.get("approval_policy") in ("untrusted", "on-request") else None
                ),
            ),
            invocation=Invocation(
                slash_command=fm.get("slash_command"),
                argument_hint=fm.get("argument_hint"),
                user_invocable=bool(fm.get("slash_command")) or component_type == "command",
            ),
            execution=Execution(allowed_tools=tools, preferred_model=fm.get("model")),
            body=body,
            capabilities=capabilities,
            metadata=ComponentMetadata(
                source_file=options.source_file,
                original_format="codex-toml" if fmt == "toml" else "codex-yaml",
                extension=self._metadata(fm, tools, warnings),
            ),
        )
        return spec, warnings

    @staticmethod
    def _metadata(
        fm: Dict[str, Any], tools: Optional[List[str]], warnings: List[str]
    ) -> CodexMetadata:
        values: Dict[str, Any] = {}
        for key, allowed in (
            ("sandbox_mode", SANDBOX_MODES),
            ("approval_policy", APPROVAL_POLICIES),
            ("web_search", WEB_SEARCH_MODES),
        ):
            value = fm.get(key)
            if value is None:
                continue
            if value in allowed:
                values[key] = value
            else:
                warnings.append(
                    f"Unknown {key} '{value}' ignored (expected one of: {', '.join(allowed)})"
                )

        mcp_servers = fm.get("mcp_servers")
        if isinstance(mcp_servers, dict):
            values["mcp_servers"] = {
                str(k): v if isinstance(v, dict) else {"value": v}
                for k, v in mcp_servers.items()
            }
        features = fm.get("features")
        if isinstance(features, dict):
            values["features"] = {str(k): bool(v) for k, v in features.items()}
        if tools:
            values["tools"] = tools
        if fm.get("model"):
            values["model"] = str(fm["model"])
        return CodexMetadata(**values)


class CodexRenderer(BaseRenderer):
    agent = AgentId.CODEX
    fidelity = FidelityPolicy(
        base=95,
        critical=15,
        warning=8,
        info=3,
        cross_agent=5,
        native_sources=(AgentId.CLAUDE,),
    )
    expressible = (
        (CodexMetadata, "sandbox_mode"),
        (CodexMetadata, "approval_policy"),
        (CodexMetadata, "web_search"),
        (CodexMetadata, "mcp_servers"),
        (CodexMetadata, "features"),
    )

    def _render(
        self, spec: ComponentSpec, notes: RenderNotes, options: RenderOptions
    ) -> RenderedDocument:
        ext: Optional[CodexMetadata] = spec.extension(CodexMetadata)
        fm: Dict[str, Any] = {"name": spec.id, "description": spec.intent.summary}

        if spec.activation.mode == "manual":
            notes.keep("Manual activation (slash command)")
        globs = trigger_globs(spec)
        if globs:
            fm["globs"] = globs[0] if len(globs) == 1 else globs
            notes.keep("File pattern activation via globs")
        elif spec.activation.mode == "auto" and self.target_component_type(spec) == "rule":
            fm["alwaysApply"] = True
            notes.keep("Always-on rule activation")
        elif spec.activation.mode == "hooked":
            notes.lose(
                "activation",
                "warning",
                "activation.mode",
                "Hook-triggered activation has no Codex equivalent",
            )

        if spec.invocation.slash_command:
            fm["slash_command"] = spec.invocation.slash_command
            notes.keep("Slash command invocation")
        if spec.invocation.argument_hint:
            fm["argument_hint"] = spec.invocation.argument_hint
            notes.keep("Argument hints")

        model = spec.execution.preferred_model or (ext.model if ext else None)
        if model:
            fm["model"] = model
            notes.keep("Model specification")

        if ext and ext.approval_policy:
            fm["approval_policy"] = ext.approval_policy
        elif spec.activation.safety_level == "dangerous":
            fm["approval_policy"] = "on-request"
            notes.warn(
                "SAFETY_APPROVAL",
                "Component marked as dangerous - setting approval_policy to on-request",
                "activation.safety_level",
            )

        fm["sandbox_mode"] = (
            ext.sandbox_mode
            if ext and ext.sandbox_mode
            else SANDBOX_FOR_SAFETY[spec.activation.safety_level]
        )
        notes.keep("Safety level (sandbox_mode)")

        if ext and ext.web_search:
            fm["web_search"] = ext.web_search
        if ext and ext.mcp_servers:
            fm["mcp_servers"] = ext.mcp_servers
            notes.keep("MCP server configuration")

        tools = spec.execution.allowed_tools or (ext.tools if ext else None)
        if tools:
            fm["tools"] = list(tools)
            notes.keep("Tool permissions")
        if ext and ext.features:
            fm["features"] = ext.features
        if spec.version != DEFAULT_VERSION:
            fm["version"] = spec.version

        self._note_losses(spec, notes)

        body = spec.body or spec.intent.purpose
        if spec.intent.examples and not has_examples_section(body):
            lines = ["## Examples", ""]
            for index, example in enumerate(spec.intent.examples, 1):
                lines += [f"### Example {index}", example, ""]
            body = f"{body}\n\n" + "\n".join(lines).strip()
            notes.keep("Usage examples")

        return RenderedDocument(frontmatter=fm, body=body, fmt=self.frontmatter_format(spec))

    def _note_losses(self, spec: ComponentSpec, notes: RenderNotes) -> None:
        opencode = spec.extension(OpenCodeMetadata)
        if opencode and opencode.subtask:
            notes.lose(
                "execution",
                "warning",
                "metadata.subtask",
                "subtask: true not supported in Codex",
                "Use sandbox_mode for isolation control",
            )
            notes.suggest("Use sandbox_mode for isolation control")
        elif spec.execution.context != "main":
            notes.lose(
                "execution",
                "warning",
                "execution.context",
                f'"{spec.execution.context}" execution context has no Codex equivalent',
                "Use sandbox_mode for isolation control",
            )
        if spec.execution.sub_agent:
            notes.lose(
                "execution",
                "warning",
                "execution.sub_agent",
                f'Sub-agent "{spec.execution.sub_agent}" is not supported in Codex',
            )

    @staticmethod
    def frontmatter_format(spec: ComponentSpec) -> FrontmatterFormat:
        if spec.source_agent_id == AgentId.CODEX and spec.metadata.original_format == "codex-toml":
            return "toml"
        return "yaml"

    def target_component_type(self, spec: ComponentSpec) -> str:
        if spec.component_type in ("skill", "command", "rule", "memory"):
            return spec.component_type
        if spec.component_type == "workflow":
            return "command"
        return "skill"

    def target_directory(self, spec: ComponentSpec) -> str:
        kind = self.target_component_type(spec)
        if kind == "skill":
            return f".codex/skills/{spec.id}"
        return CODEX_DIRECTORIES[kind]

    def target_filename(self, spec: ComponentSpec) -> str:
        if self.target_component_type(spec) == "skill":
            return "SKILL.md"
        return f"{spec.id}.md"
