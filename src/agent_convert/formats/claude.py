"""Claude Code skills, slash commands and sub-agent definitions."""

import re
from typing import Any, Dict, List, Optional, Tuple

from agent_convert.agents import AgentId
from agent_convert.errors import FrontmatterError
from agent_convert.formats.base import (
    BaseParser,
    BaseRenderer,
    RenderedDocument,
    RenderNotes,
    id_from_path,
    normalize_path,
    source_descriptor,
)
from agent_convert.formats.claude_memory import (
    ClaudeMemoryParser,
    is_memory_path,
    render_memory,
)
from agent_convert.inference import (
    infer_capabilities,
    infer_categories,
    infer_safety_level,
)
from agent_convert.models import (
    DEFAULT_VERSION,
    Activation,
    ClaudeMetadata,
    ComponentMetadata,
    ComponentSpec,
    Execution,
    ExecutionContext,
    Intent,
    Invocation,
    ParseOptions,
    ParseResult,
    RenderOptions,
)
from agent_convert.utils import as_list, clean_description, parse_frontmatter

CLAUDE_FIELDS = ("name", "disable-model-invocation", "user-invocable", "allowed-tools")


def map_context(value: Any) -> ExecutionContext:
    if value in ("fork", "isolated"):
        return value
    return "main"


def claude_component_type(source_file: Optional[str]) -> str:
    path = normalize_path(source_file) or ""
    if ".claude/agents/" in path:
        return "agent"
    if ".claude/commands/" in path:
        return "command"
    return "skill"


class ClaudeParser(BaseParser):
    """Skills, commands and agents; memory files go to ``ClaudeMemoryParser``."""

    agent = AgentId.CLAUDE

    def __init__(self, memory_parser: Optional[ClaudeMemoryParser] = None) -> None:
        self.memory_parser = memory_parser or ClaudeMemoryParser()

    def can_parse(self, content: str, filename: Optional[str] = None) -> bool:
        path = normalize_path(filename) or ""
        if re.search(r"\.claude/(skills|commands|agents)/", path):
            return True
        if is_memory_path(path):
            return True
        try:
            fm, _ = parse_frontmatter(content)
        except FrontmatterError:
            return False
        return any(key in fm for key in CLAUDE_FIELDS)

    def parse(self, content: str, options: Optional[ParseOptions] = None) -> ParseResult:
        options = options or ParseOptions()
        if is_memory_path(options.source_file):
            return self.memory_parser.parse(content, options)
        return super().parse(content, options)

    def _parse(
        self, content: str, options: ParseOptions
    ) -> Tuple[ComponentSpec, List[str]]:
        warnings: List[str] = []
        fm, body = parse_frontmatter(content)
        body = body.strip()

        skill_id = str(fm.get("name") or id_from_path(options.source_file) or "unknown-skill")
        description = clean_description(fm.get("description"))
        tools = as_list(fm.get("allowed-tools") or fm.get("tools")) or None
        manual = fm.get("disable-model-invocation") is True
        user_invocable = fm.get("user-invocable")
        context = map_context(fm.get("context"))
        sub_agent = fm.get("agent")

        capabilities = infer_capabilities(body, tools)
        spec = ComponentSpec(
            id=skill_id,
            version=fm.get("version"),
            source_agent=source_descriptor(self.agent),
            component_type=claude_component_type(options.source_file),
            category=infer_categories(f"{description} {body}"),
            intent=Intent(
                summary=description or f"Claude skill: {skill_id}",
                purpose=description or "No description provided",
                when_to_use=description or None,
            ),
            activation=Activation(
                mode="manual" if manual else "suggested",
                safety_level=infer_safety_level(body, capabilities),
                requires_confirmation=True if manual else None,
            ),
            invocation=Invocation(
                slash_command=skill_id,
                argument_hint=fm.get("argument-hint"),
                user_invocable=user_invocable is not False,
            ),
            execution=Execution(
                context=context,
                allowed_tools=tools,
                preferred_model=fm.get("model"),
                sub_agent=str(sub_agent) if sub_agent else None,
            ),
            body=body,
            capabilities=capabilities,
            metadata=ComponentMetadata(
                source_file=options.source_file,
                original_format="claude-skill",
                extension=ClaudeMetadata(
                    user_invocable_explicit=(
                        user_invocable if isinstance(user_invocable, bool) else None
                    )
                ),
            ),
        )

        if context == "fork":
            warnings.append('Claude "fork" context has no direct equivalent in other agents')
        if sub_agent:
            warnings.append(f'Sub-agent "{sub_agent}" is Claude-specific')
        return spec, warnings


class ClaudeRenderer(BaseRenderer):
    agent = AgentId.CLAUDE

    def _render(
        self, spec: ComponentSpec, notes: RenderNotes, options: RenderOptions
    ) -> RenderedDocument:
        if spec.component_type in ("memory", "rule"):
            return render_memory(spec, notes)

        fm: Dict[str, Any] = {"name": spec.id, "description": spec.intent.summary}
        source = spec.source_agent_id

        if spec.activation.mode == "manual":
            fm["disable-model-invocation"] = True
            notes.keep("Manual activation mode")
        else:
            notes.keep("Auto/suggested activation mode")
            if spec.activation.mode in ("auto", "contextual", "hooked"):
                notes.warn(
                    "ACTIVATION_DEGRADED",
                    f"{spec.activation.mode.capitalize()} activation mapped to "
                    "suggested activation",
                    "activation.mode",
                )

        ext = spec.extension(ClaudeMetadata)
        if ext and ext.user_invocable_explicit is not None:
            fm["user-invocable"] = ext.user_invocable_explicit
        elif source != self.agent or not spec.invocation.user_invocable:
            fm["user-invocable"] = spec.invocation.user_invocable

        if spec.invocation.argument_hint:
            fm["argument-hint"] = spec.invocation.argument_hint
            notes.keep("Argument hint")

        if spec.execution.context != "main":
            fm["context"] = spec.execution.context
            notes.keep(f"{spec.execution.context.capitalize()} execution context")

        if spec.execution.allowed_tools:
            fm["allowed-tools"] = list(spec.execution.allowed_tools)
            notes.keep("Tool restrictions")

        if spec.execution.preferred_model:
            fm["model"] = spec.execution.preferred_model
            notes.keep("Preferred model")

        if spec.execution.sub_agent:
            fm["agent"] = spec.execution.sub_agent
            notes.keep("Sub-agent assignment")

        if spec.version != DEFAULT_VERSION:
            fm["version"] = spec.version

        if source == AgentId.CURSOR:
            notes.lose(
                "content",
                "info",
                "invocation.arguments",
                "Cursor commands have no structured argument system",
                "Arguments will be handled via $ARGUMENTS placeholder",
            )

        return RenderedDocument(frontmatter=fm, body=spec.body)

    def target_component_type(self, spec: ComponentSpec) -> str:
        if spec.component_type in ("command", "agent", "rule", "memory"):
            return spec.component_type
        return "skill"

    def target_directory(self, spec: ComponentSpec) -> str:
        kind = self.target_component_type(spec)
        if kind == "memory":
            return "."
        if kind == "rule":
            return ".claude/rules"
        if kind == "command":
            return ".claude/commands"
        if kind == "agent":
            return ".claude/agents"
        return f".claude/skills/{spec.id}"

    def target_filename(self, spec: ComponentSpec) -> str:
        kind = self.target_component_type(spec)
        if kind == "memory":
            return "CLAUDE.md"
        if kind == "skill":
            return "SKILL.md"
        return f"{spec.id}.md"
