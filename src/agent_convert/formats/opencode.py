"""OpenCode skills, commands and agents.

Commands wrap their instructions in the ``<command-instruction>`` template with
the user's arguments in a ``<user-request>`` block; agents carry a ``tools``
mapping of tool name to enabled flag.
"""

import math
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
    id_from_path,
    normalize_path,
    source_descriptor,
)
from agent_convert.inference import infer_capabilities, infer_categories, infer_safety_level
from agent_convert.models import (
    DEFAULT_VERSION,
    Activation,
    ComponentMetadata,
    ComponentSpec,
    Execution,
    Intent,
    Invocation,
    OpenCodeMetadata,
    ParseOptions,
    RenderOptions,
)
from agent_convert.utils import as_list, clean_description, first_paragraph, parse_frontmatter

COMMAND_TEMPLATE = (
    "<command-instruction>\n{body}\n</command-instruction>\n\n"
    "<user-request>\n$ARGUMENTS\n</user-request>"
)
_INSTRUCTION_RE = re.compile(
    r"<command-instruction>\s*\n?(.*?)\n?\s*</command-instruction>", re.S
)
OPENCODE_MODES = ("primary", "subagent", "all")


def unwrap_command(body: str) -> str:
    """Instruction text from the command template, or ``body`` unchanged."""
    match = _INSTRUCTION_RE.search(body)
    return match.group(1).strip() if match else body


def opencode_component_type(source_file: Optional[str], fm: Dict[str, Any]) -> str:
    path = normalize_path(source_file) or ""
    for kind in ("skill", "command", "agent"):
        if re.search(rf"\.opencode/{kind}s?/", path):
            return kind
    if fm.get("mode"):
        return "agent"
    if fm.get("subtask") is not None or fm.get("agent"):
        return "command"
    return "skill"


class OpenCodeParser(BaseParser):
    agent = AgentId.OPENCODE

    def can_parse(self, content: str, filename: Optional[str] = None) -> bool:
        path = normalize_path(filename) or ""
        if ".opencode/" in path:
            return True
        if "<command-instruction>" in content:
            return True
        try:
            fm, _ = parse_frontmatter(content)
        except FrontmatterError:
            return False
        return fm.get("mode") in OPENCODE_MODES or isinstance(fm.get("subtask"), bool)

    def _parse(
        self, content: str, options: ParseOptions
    ) -> Tuple[ComponentSpec, List[str]]:
        warnings: List[str] = []
        fm, body = parse_frontmatter(content)
        component_type = opencode_component_type(options.source_file, fm)
        body = unwrap_command(body.strip())

        component_id = str(fm.get("name") or id_from_path(options.source_file) or "unnamed")
        description = clean_description(fm.get("description"))
        tools = as_list(fm.get("tools")) or None
        restricted = None
        if isinstance(fm.get("tools"), dict):
            disabled = [str(k) for k, enabled in fm["tools"].items() if enabled is False]
            restricted = disabled or None
        subtask = fm.get("subtask") if isinstance(fm.get("subtask"), bool) else None
        mode = fm.get("mode")
        if mode is not None and mode not in OPENCODE_MODES:
            warnings.append(f"Unknown agent mode '{mode}' ignored")
            mode = None
        temperature = fm.get("temperature")
        if (
            isinstance(temperature, bool)
            or not isinstance(temperature, (int, float))
            or not math.isfinite(temperature)
        ):
            temperature = None

        capabilities = infer_capabilities(body, tools)
        spec = ComponentSpec(
            id=component_id,
            version=fm.get("version"),
            source_agent=source_descriptor(self.agent),
            component_type=component_type,
            category=infer_categories(f"{description} {body}"),
            intent=Intent(
                summary=description or first_paragraph(body) or f"OpenCode {component_type}",
                purpose=description or "No description provided",
                when_to_use=description or None,
            ),
            activation=Activation(
                mode="manual" if component_type == "command" else "suggested",
                safety_level=infer_safety_level(body, capabilities),
                requires_confirmation=True if component_type == "command" else None,
            ),
            invocation=Invocation(
                slash_command=component_id if component_type == "command" else None,
                argument_hint=fm.get("argumentHint"),
                user_invocable=True,
            ),
            execution=Execution(
                context="fork" if subtask else "main",
                allowed_tools=tools,
                restricted_tools=restricted,
                preferred_model=fm.get("model"),
                sub_agent=str(fm["agent"]) if fm.get("agent") else None,
            ),
            body=body,
            capabilities=capabilities,
            metadata=ComponentMetadata(
                source_file=options.source_file,
                original_format=f"opencode-{component_type}",
                extension=OpenCodeMetadata(
                    subtask=subtask, mode=mode, temperature=temperature
                ),
            ),
        )
        if subtask:
            warnings.append(
                "subtask: true runs in an isolated session; other agents may not support it"
            )
        return spec, warnings


class OpenCodeRenderer(BaseRenderer):
    agent = AgentId.OPENCODE
    fidelity = FidelityPolicy(base=95, critical=15, warning=8, info=3)
    expressible = ((OpenCodeMetadata, "mode"), (OpenCodeMetadata, "temperature"))

    def _render(
        self, spec: ComponentSpec, notes: RenderNotes, options: RenderOptions
    ) -> RenderedDocument:
        kind = self.target_component_type(spec)
        ext: Optional[OpenCodeMetadata] = spec.extension(OpenCodeMetadata)
        fm: Dict[str, Any] = {"description": spec.intent.summary or spec.intent.purpose}
        notes.keep("Description")

        if kind == "agent":
            fm["mode"] = ext.mode if ext and ext.mode else "subagent"
            if spec.execution.preferred_model:
                fm["model"] = spec.execution.preferred_model
                notes.keep("Model specification")
            if ext and ext.temperature is not None:
                fm["temperature"] = ext.temperature
            tools = {tool: True for tool in spec.execution.allowed_tools or []}
            tools.update((tool, False) for tool in spec.execution.restricted_tools or [])
            if tools:
                fm["tools"] = tools
                notes.keep("Tool permissions")
        else:
            if spec.execution.sub_agent:
                fm["agent"] = spec.execution.sub_agent
                notes.keep("Agent delegation")
            if spec.execution.preferred_model:
                fm["model"] = spec.execution.preferred_model
                notes.keep("Model specification")
            if spec.execution.allowed_tools:
                notes.lose(
                    "capability",
                    "warning",
                    "execution.allowed_tools",
                    f"OpenCode {kind}s cannot restrict tools",
                    "Move the tool restrictions into an OpenCode agent",
                )

        if spec.execution.context == "fork" and kind != "agent":
            fm["subtask"] = True
            notes.keep("Subtask isolation")
        elif spec.execution.context != "main":
            notes.lose(
                "execution",
                "warning",
                "execution.context",
                f"{spec.execution.context.capitalize()} execution context has no "
                f"OpenCode {kind} equivalent",
            )

        if spec.invocation.argument_hint:
            if kind == "command":
                fm["argumentHint"] = spec.invocation.argument_hint
                notes.keep("Argument hints")
            else:
                notes.lose(
                    "content",
                    "info",
                    "invocation.argument_hint",
                    "Argument hints are only supported on OpenCode commands",
                )

        if kind == "skill" and spec.activation.mode == "manual":
            notes.lose(
                "activation",
                "info",
                "activation.mode",
                "OpenCode skills cannot be restricted to manual invocation",
            )
        elif spec.activation.mode in ("contextual", "hooked"):
            notes.lose(
                "activation",
                "warning",
                "activation.mode",
                f"{spec.activation.mode.capitalize()} activation has no OpenCode equivalent",
            )

        if spec.version != DEFAULT_VERSION:
            fm["version"] = spec.version

        body = spec.body
        if kind == "command":
            body = COMMAND_TEMPLATE.format(body=body.strip())
            notes.suggest("Review $ARGUMENTS placeholders for command inputs")
        notes.keep("Body content")
        return RenderedDocument(frontmatter=fm, body=body)

    def target_component_type(self, spec: ComponentSpec) -> str:
        if spec.component_type in ("command", "workflow"):
            return "command"
        if spec.component_type == "agent":
            return "agent"
        return "skill"

    def target_directory(self, spec: ComponentSpec) -> str:
        return f".opencode/{self.target_component_type(spec)}s"

    def target_filename(self, spec: ComponentSpec) -> str:
        return f"{spec.id}.md"
