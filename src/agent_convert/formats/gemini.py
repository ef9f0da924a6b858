"""Gemini CLI skills, commands and memory files."""

import math
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
    ComponentMetadata,
    ComponentSpec,
    Execution,
    GeminiMetadata,
    Intent,
    Invocation,
    OpenCodeMetadata,
    ParseOptions,
    RenderOptions,
)
from agent_convert.utils import as_list, clean_description, first_paragraph, parse_frontmatter

GEMINI_FIELDS = ("code_execution", "google_search", "temperature", "include_directories")
SHELL_TOOLS = ("shell", "bash", "code_execution", "run_shell_command")
# Short bodies with nothing skill-like in the frontmatter are context files.
MEMORY_BODY_LIMIT = 500


def gemini_component_type(
    source_file: Optional[str], fm: Dict[str, Any], body: str
) -> str:
    path = normalize_path(source_file) or ""
    if "/skills/" in path or path.endswith("SKILL.md"):
        return "skill"
    if "/commands/" in path:
        return "command"
    if "/memory/" in path or path.endswith("GEMINI.md"):
        return "memory"
    if fm.get("slash_command"):
        return "command"
    if fm.get("instruction") or fm.get("examples"):
        return "skill"
    if len(body) < MEMORY_BODY_LIMIT:
        return "memory"
    return "skill"


def gemini_id(fm: Dict[str, Any], source_file: Optional[str]) -> str:
    if fm.get("name"):
        return str(fm["name"])
    path = normalize_path(source_file) or ""
    if path.endswith("GEMINI.md"):
        return "gemini-config"
    return id_from_path(source_file) or "unnamed"


def _number(value: Any, kind: type) -> Optional[Any]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return kind(value)


class GeminiParser(BaseParser):
    agent = AgentId.GEMINI

    def can_parse(self, content: str, filename: Optional[str] = None) -> bool:
        path = normalize_path(filename) or ""
        if ".gemini/" in path or path.endswith("GEMINI.md"):
            return True
        try:
            fm, _ = parse_frontmatter(content)
        except FrontmatterError:
            return False
        return any(key in fm for key in GEMINI_FIELDS)

    def _parse(
        self, content: str, options: ParseOptions
    ) -> Tuple[ComponentSpec, List[str]]:
        warnings: List[str] = []
        fm, body = parse_frontmatter(content)
        body = body.strip()

        component_type = gemini_component_type(options.source_file, fm, body)
        component_id = gemini_id(fm, options.source_file)
        description = clean_description(fm.get("description"))
        tools = as_list(fm.get("tools")) or None
        code_execution = fm.get("code_execution") is True
        google_search = fm.get("google_search") is True

        capabilities = infer_capabilities(body, tools)
        safety = infer_safety_level(body, capabilities)
        if code_execution or any(t.lower() in SHELL_TOOLS for t in tools or ()):
            capabilities = merge_capabilities(capabilities, needs_shell=True)
            if safety == "safe":
                safety = "sensitive"
        if google_search:
            capabilities = merge_capabilities(capabilities, needs_network=True)

        examples = as_list(fm.get("examples")) or extract_examples(body)
        globs = fm.get("globs")
        if globs:
            mode = "contextual"
        elif fm.get("slash_command"):
            mode = "manual"
        else:
            mode = "suggested"

        temperature = _number(fm.get("temperature"), float)
        if fm.get("temperature") is not None and temperature is None:
            warnings.append(f"Ignoring invalid temperature '{fm['temperature']}'")
        max_tokens = _number(fm.get("max_tokens"), int)
        if fm.get("max_tokens") is not None and max_tokens is None:
            warnings.append(f"Ignoring invalid max_tokens '{fm['max_tokens']}'")

        spec = ComponentSpec(
            id=component_id,
            version=fm.get("version"),
            source_agent=source_descriptor(self.agent),
            component_type=component_type,
            category=infer_categories(f"{description} {body}"),
            intent=Intent(
                summary=description or first_paragraph(body) or f"Gemini {component_type}",
                purpose=description or first_paragraph(body) or "No description provided",
                when_to_use=description or None,
                examples=examples or None,
            ),
            activation=Activation(
                mode=mode,
                safety_level=safety,
                triggers=glob_triggers(globs),
                requires_confirmation=True if mode == "manual" else None,
            ),
            invocation=Invocation(
                slash_command=fm.get("slash_command"),
                user_invocable=bool(fm.get("slash_command")) or component_type == "command",
            ),
            execution=Execution(allowed_tools=tools, preferred_model=fm.get("model")),
            body=body,
            capabilities=capabilities,
            metadata=ComponentMetadata(
                source_file=options.source_file,
                original_format=f"gemini-{component_type}",
                extension=GeminiMetadata(
                    temperature=temperature,
                    max_tokens=max_tokens,
                    code_execution=code_execution or None,
                    google_search=google_search or None,
                    include_directories=as_list(fm.get("include_directories")) or None,
                    instruction=str(fm["instruction"]) if fm.get("instruction") else None,
                    tools=tools,
                    model=str(fm["model"]) if fm.get("model") else None,
                ),
            ),
        )
        return spec, warnings


class GeminiRenderer(BaseRenderer):
    agent = AgentId.GEMINI
    fidelity = FidelityPolicy(base=90, critical=15, warning=8, info=3, cross_agent=5)
    expressible = (
        (GeminiMetadata, "temperature"),
        (GeminiMetadata, "max_tokens"),
        (GeminiMetadata, "include_directories"),
        (GeminiMetadata, "instruction"),
        (OpenCodeMetadata, "temperature"),
    )

    def _render(
        self, spec: ComponentSpec, notes: RenderNotes, options: RenderOptions
    ) -> RenderedDocument:
        ext: Optional[GeminiMetadata] = spec.extension(GeminiMetadata)
        fm: Dict[str, Any] = {"name": spec.id, "description": spec.intent.summary}

        mode = spec.activation.mode
        globs = trigger_globs(spec)
        if mode == "manual":
            fm["slash_command"] = spec.invocation.slash_command or spec.id
            notes.keep("Manual activation (slash command)")
        elif globs:
            fm["globs"] = globs
            notes.keep("File pattern activation via globs")
        elif mode in ("auto", "hooked"):
            notes.lose(
                "activation",
                "info" if mode == "auto" else "warning",
                "activation.mode",
                f"{mode.capitalize()} activation becomes model-suggested in Gemini CLI",
            )
        else:
            notes.keep("Suggested activation")

        model = spec.execution.preferred_model or (ext.model if ext else None)
        if model:
            fm["model"] = model
            notes.keep("Model specification")

        temperature = ext.temperature if ext else None
        opencode = spec.extension(OpenCodeMetadata)
        if temperature is None and opencode:
            temperature = opencode.temperature
        if temperature is not None:
            fm["temperature"] = temperature
        if ext and ext.max_tokens:
            fm["max_tokens"] = ext.max_tokens

        tools = list(spec.execution.allowed_tools or (ext.tools if ext else None) or [])
        shell_tool = any(t.lower() in SHELL_TOOLS for t in tools)
        if spec.capabilities.needs_shell or shell_tool or (ext and ext.code_execution):
            fm["code_execution"] = True
            notes.keep("Shell access (code_execution)")
        if (ext and ext.google_search) or "google_search" in tools or spec.capabilities.needs_network:
            fm["google_search"] = True
            notes.keep("Network access (google_search)")
        if tools:
            fm["tools"] = tools
            notes.keep("Tool list")

        if ext and ext.include_directories:
            fm["include_directories"] = list(ext.include_directories)
        if ext and ext.instruction:
            fm["instruction"] = ext.instruction
        if spec.intent.examples:
            fm["examples"] = list(spec.intent.examples)
            notes.keep("Usage examples")
        if spec.version != DEFAULT_VERSION:
            fm["version"] = spec.version

        self._note_losses(spec, notes)
        notes.keep("Instruction body")
        return RenderedDocument(frontmatter=fm, body=spec.body or spec.intent.purpose)

    def _note_losses(self, spec: ComponentSpec, notes: RenderNotes) -> None:
        opencode = spec.extension(OpenCodeMetadata)
        if opencode and opencode.subtask:
            notes.lose(
                "execution",
                "warning",
                "metadata.subtask",
                "subtask: true not supported in Gemini CLI",
            )
        elif spec.execution.context != "main":
            notes.lose(
                "execution",
                "warning",
                "execution.context",
                f'"{spec.execution.context}" execution context has no Gemini equivalent',
            )
        if spec.execution.sub_agent:
            notes.lose(
                "execution",
                "warning",
                "execution.sub_agent",
                f'Sub-agent "{spec.execution.sub_agent}" is not supported in Gemini CLI',
            )
        if spec.invocation.argument_hint:
            notes.lose(
                "content",
                "info",
                "invocation.argument_hint",
                "Gemini CLI has no argument hint field",
            )

    def target_component_type(self, spec: ComponentSpec) -> str:
        if spec.component_type in ("skill", "command", "memory"):
            return spec.component_type
        if spec.component_type == "workflow":
            return "command"
        if spec.component_type == "rule":
            return "memory"
        return "skill"

    def target_directory(self, spec: ComponentSpec) -> str:
        kind = self.target_component_type(spec)
        if kind == "skill":
            return f".gemini/skills/{spec.id}"
        if kind == "command":
            return ".gemini/commands"
        return ".gemini/memory"

    def target_filename(self, spec: ComponentSpec) -> str:
        if self.target_component_type(spec) == "skill":
            return "SKILL.md"
        return f"{spec.id}.md"
