"""Cursor commands, skills and ``.mdc`` rules.

Commands are plain markdown with a conventional ``# Title`` / ``## Objective``
/ ``## Requirements`` layout; rules carry ``description``, ``globs`` and
``alwaysApply`` frontmatter.
"""

import re
from typing import Any, Dict, List, Optional, Tuple

from agent_convert.agents import AgentId
from agent_convert.formats.base import (
    BaseParser,
    BaseRenderer,
    RenderedDocument,
    RenderNotes,
    glob_triggers,
    id_from_path,
    normalize_path,
    source_descriptor,
    trigger_globs,
)
from agent_convert.inference import infer_capabilities, infer_categories, infer_safety_level
from agent_convert.models import (
    DEFAULT_VERSION,
    Activation,
    ActivationMode,
    ArgumentSpec,
    ComponentMetadata,
    ComponentSpec,
    CursorMetadata,
    Intent,
    Invocation,
    ParseOptions,
    RenderOptions,
)
from agent_convert.utils import (
    as_list,
    clean_description,
    first_heading,
    parse_frontmatter,
    slugify,
    title_case,
)

# Windsurf tool names that read as prose in a Cursor command.
TOOL_PROSE = {
    "code_search": "search the codebase",
    "grep_search": "search for patterns",
    "find_by_name": "find files",
    "read_file": "read files",
    "write_to_file": "write files",
    "run_command": "run commands",
    "browser_preview": "preview in browser",
}
_TOOL_RE = re.compile(r"\b(" + "|".join(TOOL_PROSE) + r")\b")


def section_block(body: str, title: str) -> Optional[str]:
    """Text under ``## title`` up to the next heading of level two or less."""
    match = re.search(rf"^##\s+{re.escape(title)}\s*$", body, re.I | re.M)
    if not match:
        return None
    rest = body[match.end() :]
    end = re.search(r"^#{1,2}\s+\S", rest, re.M)
    return (rest[: end.start()] if end else rest).strip()


_EXPECTED_INPUT = re.compile(r"^Expected input:\s*(?P<hint>.+)$", re.I)
_ARGUMENT_LINE = re.compile(
    r"^[-*]\s+\*\*(?P<name>[^*]+)\*\*\s*"
    r"\((?P<required>required|optional)\)\s*:?\s*(?P<description>.*)$",
    re.I,
)


def parse_arguments(
    section: Optional[str],
) -> Tuple[Optional[str], Optional[List[ArgumentSpec]]]:
    """Read an ``## Arguments`` section back into a hint and argument list."""
    if not section:
        return None, None
    hint: Optional[str] = None
    arguments: List[ArgumentSpec] = []
    for line in section.splitlines():
        line = line.strip()
        match = _EXPECTED_INPUT.match(line)
        if match:
            hint = match.group("hint").strip()
            continue
        match = _ARGUMENT_LINE.match(line)
        if match:
            description = match.group("description").strip()
            if description == "No description":
                description = ""
            arguments.append(
                ArgumentSpec(
                    name=match.group("name").strip(),
                    required=match.group("required").lower() == "required",
                    description=description or None,
                )
            )
    return hint, arguments or None


def cursor_component_type(source_file: Optional[str], fm: Dict[str, Any]) -> str:
    path = normalize_path(source_file) or ""
    if path.endswith(".mdc") or ".cursor/rules/" in path or path.endswith(".cursorrules"):
        return "rule"
    if ".cursor/skills/" in path or path.endswith("SKILL.md"):
        return "skill"
    if "alwaysApply" in fm or "globs" in fm:
        return "rule"
    return "command"


def rule_activation(fm: Dict[str, Any], legacy: bool) -> ActivationMode:
    if legacy or fm.get("alwaysApply") is True:
        return "auto"
    if as_list(fm.get("globs")):
        return "contextual"
    if fm.get("description"):
        return "suggested"
    return "manual"


class CursorParser(BaseParser):
    agent = AgentId.CURSOR

    def can_parse(self, content: str, filename: Optional[str] = None) -> bool:
        path = normalize_path(filename) or ""
        if re.search(r"\.cursor/(commands|rules|skills)/", path) or path.endswith(
            (".mdc", ".cursorrules")
        ):
            return True
        has_title = re.search(r"^#\s+.+", content, re.M) is not None
        has_objective = re.search(r"^##\s+Objective", content, re.I | re.M) is not None
        has_requirements = re.search(r"^##\s+Requirements", content, re.I | re.M) is not None
        return has_title and (has_objective or has_requirements)

    def _parse(
        self, content: str, options: ParseOptions
    ) -> Tuple[ComponentSpec, List[str]]:
        fm, body = parse_frontmatter(content)
        body = body.strip()
        component_type = cursor_component_type(options.source_file, fm)
        if component_type == "rule":
            return self._parse_rule(fm, body, options)
        if component_type == "skill":
            return self._parse_skill(fm, body, options)
        return self._parse_command(fm, body, options)

    def _parse_command(
        self, fm: Dict[str, Any], body: str, options: ParseOptions
    ) -> Tuple[ComponentSpec, List[str]]:
        title = str(fm.get("title") or first_heading(body) or "Unknown Command")
        command_id = id_from_path(options.source_file) or slugify(title) or "unknown-command"
        objective = section_block(body, "Objective")
        description = clean_description(fm.get("description")) or objective or title
        when_to_use = section_block(body, "When to Use")
        requirements = section_block(body, "Requirements")
        argument_hint, arguments = parse_arguments(section_block(body, "Arguments"))
        # A fully structured command keeps only its instructions as the body.
        if objective is not None and requirements:
            body = requirements
        tags = as_list(fm.get("tags")) or None

        capabilities = infer_capabilities(body)
        spec = ComponentSpec(
            id=command_id,
            version=fm.get("version"),
            source_agent=source_descriptor(self.agent),
            component_type="command",
            category=tags or infer_categories(f"{description} {body}"),
            intent=Intent(
                summary=description,
                purpose=description,
                when_to_use=when_to_use or description,
            ),
            activation=Activation(
                mode="manual",
                safety_level=infer_safety_level(body, capabilities),
                requires_confirmation=True,
            ),
            invocation=Invocation(
                slash_command=command_id,
                argument_hint=argument_hint,
                arguments=arguments,
                user_invocable=True,
            ),
            body=body,
            capabilities=capabilities,
            metadata=ComponentMetadata(
                source_file=options.source_file,
                original_format="cursor-command",
                extension=CursorMetadata(title=title),
            ),
        )
        return spec, [
            "Cursor commands have no structured argument system - arguments are free-form"
        ]

    def _parse_skill(
        self, fm: Dict[str, Any], body: str, options: ParseOptions
    ) -> Tuple[ComponentSpec, List[str]]:
        skill_id = str(fm.get("name") or id_from_path(options.source_file) or "unknown-skill")
        description = clean_description(fm.get("description"))
        manual = fm.get("disable-model-invocation") is True
        capabilities = infer_capabilities(body)
        spec = ComponentSpec(
            id=skill_id,
            version=fm.get("version"),
            source_agent=source_descriptor(self.agent),
            component_type="skill",
            category=infer_categories(f"{description} {body}"),
            intent=Intent(
                summary=description or f"Cursor skill: {skill_id}",
                purpose=description or "No description provided",
                when_to_use=description or None,
            ),
            activation=Activation(
                mode="manual" if manual else "suggested",
                safety_level=infer_safety_level(body, capabilities),
                requires_confirmation=True if manual else None,
            ),
            invocation=Invocation(slash_command=skill_id, user_invocable=True),
            body=body,
            capabilities=capabilities,
            metadata=ComponentMetadata(
                source_file=options.source_file, original_format="cursor-skill"
            ),
        )
        return spec, []

    def _parse_rule(
        self, fm: Dict[str, Any], body: str, options: ParseOptions
    ) -> Tuple[ComponentSpec, List[str]]:
        warnings: List[str] = []
        path = normalize_path(options.source_file) or ""
        legacy = path.endswith(".cursorrules")
        rule_id = id_from_path(options.source_file) or slugify(
            first_heading(body) or ""
        ) or "cursor-rule"
        if legacy:
            rule_id = "default"
            warnings.append(
                ".cursorrules is deprecated; migrate to .cursor/rules/*.mdc"
            )
        description = clean_description(fm.get("description"))
        globs = as_list(fm.get("globs"))
        always_apply = fm.get("alwaysApply") if isinstance(fm.get("alwaysApply"), bool) else None
        mode = rule_activation(fm, legacy)

        spec = ComponentSpec(
            id=rule_id,
            version=fm.get("version"),
            source_agent=source_descriptor(self.agent),
            component_type="rule",
            category=infer_categories(f"{description} {body}"),
            intent=Intent(
                summary=description or f"Cursor rule: {rule_id}",
                purpose=description or "Project rule for Cursor",
                when_to_use=(
                    f"When working with files matching: {', '.join(globs)}"
                    if globs
                    else None
                ),
            ),
            activation=Activation(
                mode=mode, safety_level="safe", triggers=glob_triggers(globs)
            ),
            invocation=Invocation(user_invocable=mode == "manual"),
            body=body,
            capabilities=infer_capabilities(body),
            metadata=ComponentMetadata(
                source_file=options.source_file,
                original_format="cursorrules" if legacy else "cursor-mdc",
                extension=CursorMetadata(
                    globs=globs or None, always_apply=always_apply
                ),
            ),
        )
        return spec, warnings


class CursorRenderer(BaseRenderer):
    agent = AgentId.CURSOR

    def _render(
        self, spec: ComponentSpec, notes: RenderNotes, options: RenderOptions
    ) -> RenderedDocument:
        kind = self.target_component_type(spec)
        if kind == "rule":
            return self._render_rule(spec, notes)
        if kind == "skill":
            return self._render_skill(spec, notes)
        return self._render_command(spec, notes)

    def _note_execution_losses(self, spec: ComponentSpec, notes: RenderNotes) -> None:
        if spec.execution.context != "main":
            notes.lose(
                "execution",
                "warning",
                "execution.context",
                f'Claude "{spec.execution.context}" context has no Cursor equivalent',
            )
        if spec.execution.sub_agent:
            notes.lose(
                "execution",
                "warning",
                "execution.sub_agent",
                f'Sub-agent "{spec.execution.sub_agent}" is not supported in Cursor',
            )
        if spec.execution.allowed_tools:
            notes.lose(
                "capability",
                "warning",
                "execution.allowed_tools",
                "Tool restrictions cannot be enforced in Cursor",
            )
        if spec.execution.preferred_model:
            notes.lose(
                "metadata",
                "info",
                "execution.preferred_model",
                f'Preferred model "{spec.execution.preferred_model}" cannot be pinned in Cursor',
            )

    def _render_skill(self, spec: ComponentSpec, notes: RenderNotes) -> RenderedDocument:
        fm: Dict[str, Any] = {"name": spec.id, "description": spec.intent.summary}
        if spec.activation.mode == "manual":
            fm["disable-model-invocation"] = True
            notes.keep("Manual-only invocation (disable-model-invocation)")
        else:
            notes.keep("Automatic/progressive skill invocation")
        if spec.version != DEFAULT_VERSION:
            fm["version"] = spec.version
        self._note_execution_losses(spec, notes)
        notes.keep("Skill instructions and workflow", "Skill name/description metadata")
        return RenderedDocument(frontmatter=fm, body=spec.body)

    def _render_rule(self, spec: ComponentSpec, notes: RenderNotes) -> RenderedDocument:
        globs = trigger_globs(spec)
        ext = spec.extension(CursorMetadata)
        if not globs and ext and ext.globs:
            globs = list(ext.globs)
        mode = spec.activation.mode
        fm: Dict[str, Any] = {"description": spec.intent.summary}
        if globs:
            fm["globs"] = globs
        fm["alwaysApply"] = mode == "auto" or spec.component_type == "memory"
        if mode == "contextual" and not globs:
            notes.lose(
                "activation",
                "warning",
                "activation.triggers",
                "Contextual activation without glob patterns falls back to agent-requested",
            )
        elif mode == "hooked":
            notes.lose(
                "activation",
                "warning",
                "activation.mode",
                "Hook-triggered activation has no Cursor rule equivalent",
            )
        notes.keep("Rule content", "Rule activation")
        return RenderedDocument(frontmatter=fm, body=spec.body)

    def _render_command(self, spec: ComponentSpec, notes: RenderNotes) -> RenderedDocument:
        if spec.activation.mode != "manual":
            notes.lose(
                "activation",
                "info" if spec.source_agent_id == AgentId.WINDSURF else "warning",
                "activation.mode",
                "Cursor commands are always manual - auto/suggested activation lost",
                "All Cursor commands require explicit /command invocation",
            )
        self._note_execution_losses(spec, notes)
        if spec.invocation.argument_hint:
            notes.warn(
                "NO_STRUCTURED_ARGS",
                "Cursor has no structured argument system - hint converted to prose",
                "invocation.argument_hint",
            )
        notes.keep("Core workflow instructions", "Semantic intent and purpose")

        parts = [f"# {title_case(spec.id)}", f"## Objective\n\n{spec.intent.purpose}"]
        if spec.intent.when_to_use and spec.intent.when_to_use != spec.intent.purpose:
            parts.append(f"## When to Use\n\n{spec.intent.when_to_use}")

        arguments = spec.invocation.arguments or []
        if spec.invocation.argument_hint or arguments:
            lines = ["## Arguments", ""]
            if spec.invocation.argument_hint:
                lines += [f"Expected input: {spec.invocation.argument_hint}", ""]
            for arg in arguments:
                required = "(required)" if arg.required else "(optional)"
                lines.append(
                    f"- **{arg.name}** {required}: {arg.description or 'No description'}"
                )
            parts.append("\n".join(lines).strip())

        parts.append(f"## Requirements\n\n{self.transform_body(spec.body)}")
        return RenderedDocument(frontmatter={}, body="\n\n".join(parts))

    @staticmethod
    def transform_body(body: str) -> str:
        body = body.replace("$ARGUMENTS", "{user input}")
        body = re.sub(r"!`([^`]+)`", r"`\1`", body)
        return _TOOL_RE.sub(lambda m: TOOL_PROSE[m.group(1)], body)

    def target_component_type(self, spec: ComponentSpec) -> str:
        if spec.component_type in ("rule", "memory"):
            return "rule"
        if spec.component_type == "skill":
            return "skill"
        return "command"

    def target_directory(self, spec: ComponentSpec) -> str:
        kind = self.target_component_type(spec)
        if kind == "rule":
            return ".cursor/rules"
        if kind == "skill":
            return f".cursor/skills/{spec.id}"
        return ".cursor/commands"

    def target_filename(self, spec: ComponentSpec) -> str:
        kind = self.target_component_type(spec)
        if kind == "rule":
            return f"{spec.id}.mdc"
        if kind == "skill":
            return "SKILL.md"
        return f"{spec.id}.md"
