"""Windsurf (Cascade) workflows and rules."""

import re
from typing import Any, Dict, List, Optional, Tuple

from agent_convert.agents import AgentId
from agent_convert.errors import FrontmatterError
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
from agent_convert.inference import (
    WINDSURF_RULES,
    infer_capabilities,
    infer_categories,
    infer_safety_level,
)
from agent_convert.models import (
    Activation,
    ActivationMode,
    ComponentMetadata,
    ComponentSpec,
    Intent,
    Invocation,
    ParseOptions,
    RenderOptions,
    WindsurfMetadata,
)
from agent_convert.utils import (
    as_list,
    clean_description,
    first_heading,
    parse_frontmatter,
    slugify,
)

# Rule files use ``trigger`` instead of ``auto_execution_mode``.
RULE_TRIGGERS: Dict[str, ActivationMode] = {
    "manual": "manual",
    "model_decision": "suggested",
    "glob": "contextual",
    "always_on": "auto",
}
TRIGGER_FOR_MODE = {mode: trigger for trigger, mode in RULE_TRIGGERS.items()}

AUTO_EXECUTION_FOR_MODE = {"manual": 0, "suggested": 1, "contextual": 2, "auto": 3, "hooked": 0}


def activation_for_auto_execution(value: Any) -> ActivationMode:
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        return "manual"
    if value == 1:
        return "suggested"
    if value == 2:
        return "contextual"
    return "auto"


def windsurf_component_type(source_file: Optional[str], fm: Dict[str, Any]) -> str:
    path = normalize_path(source_file) or ""
    if "/rules/" in path or path.startswith("rules/") or "trigger" in fm:
        return "rule"
    if re.search(r"\.windsurf/skills/", path):
        return "skill"
    return "workflow"


class WindsurfParser(BaseParser):
    agent = AgentId.WINDSURF

    def can_parse(self, content: str, filename: Optional[str] = None) -> bool:
        path = normalize_path(filename) or ""
        if re.search(r"\.windsurf/(workflows|rules|skills)/", path):
            return True
        try:
            fm, _ = parse_frontmatter(content)
        except FrontmatterError:
            return False
        return "description" in fm and "auto_execution_mode" in fm

    def _parse(
        self, content: str, options: ParseOptions
    ) -> Tuple[ComponentSpec, List[str]]:
        warnings: List[str] = []
        fm, body = parse_frontmatter(content)
        body = body.strip()

        component_type = windsurf_component_type(options.source_file, fm)
        heading = first_heading(body)
        workflow_id = (
            id_from_path(options.source_file)
            or (slugify(heading) if heading else "")
            or "unknown-workflow"
        )
        description = clean_description(fm.get("description"))
        tags = as_list(fm.get("tags")) or None
        auto_mode = fm.get("auto_execution_mode")

        if component_type == "rule":
            mode = RULE_TRIGGERS.get(str(fm.get("trigger", "")), "manual")
        else:
            mode = activation_for_auto_execution(auto_mode)

        capabilities = infer_capabilities(body, rules=WINDSURF_RULES)
        spec = ComponentSpec(
            id=workflow_id,
            version=fm.get("version"),
            source_agent=source_descriptor(self.agent),
            component_type=component_type,
            category=tags or infer_categories(f"{description} {body}", WINDSURF_RULES),
            intent=Intent(
                summary=description or f"Windsurf {component_type}: {workflow_id}",
                purpose=description or "No description provided",
                when_to_use=description or None,
            ),
            activation=Activation(
                mode=mode,
                safety_level=infer_safety_level(body, capabilities, WINDSURF_RULES),
                triggers=glob_triggers(fm.get("globs")),
                requires_confirmation=True if mode == "manual" else None,
            ),
            invocation=Invocation(slash_command=workflow_id, user_invocable=True),
            body=body,
            capabilities=capabilities,
            metadata=ComponentMetadata(
                source_file=options.source_file,
                original_format=f"windsurf-{component_type}",
                extension=WindsurfMetadata(
                    auto_execution_mode=(
                        auto_mode
                        if isinstance(auto_mode, int) and not isinstance(auto_mode, bool)
                        else None
                    ),
                    tags=tags,
                ),
            ),
        )

        if isinstance(auto_mode, int) and auto_mode > 0:
            warnings.append(
                f"auto_execution_mode={auto_mode} may not have direct equivalents "
                "in other agents"
            )
        return spec, warnings


class WindsurfRenderer(BaseRenderer):
    agent = AgentId.WINDSURF

    def _render(
        self, spec: ComponentSpec, notes: RenderNotes, options: RenderOptions
    ) -> RenderedDocument:
        fm: Dict[str, Any] = {"description": spec.intent.summary}
        mode = spec.activation.mode
        is_rule = self.target_component_type(spec) == "rule"

        if is_rule:
            fm["trigger"] = TRIGGER_FOR_MODE.get(mode, "manual")
            globs = trigger_globs(spec)
            if globs:
                fm["globs"] = ", ".join(globs)
        else:
            auto_mode = AUTO_EXECUTION_FOR_MODE.get(mode, 0)
            if auto_mode > 0:
                fm["auto_execution_mode"] = auto_mode
        notes.keep("Activation mode")
        if mode == "hooked":
            notes.lose(
                "activation",
                "warning",
                "activation.mode",
                "Hook-triggered activation has no Windsurf equivalent",
                "Invoke the workflow manually after the triggering event",
            )

        if spec.category:
            fm["tags"] = list(spec.category)
            notes.keep("Category tags")

        if spec.execution.context == "fork":
            notes.lose(
                "execution",
                "warning",
                "execution.context",
                'Claude "fork" context has no Windsurf equivalent',
                "Workflow will run in main context",
            )
        elif spec.execution.context == "isolated":
            notes.lose(
                "execution",
                "warning",
                "execution.context",
                "Isolated execution context has no Windsurf equivalent",
                "Workflow will run in main context",
            )

        if spec.execution.sub_agent:
            notes.lose(
                "execution",
                "warning",
                "execution.sub_agent",
                f'Sub-agent "{spec.execution.sub_agent}" is Claude-specific',
                "Remove sub-agent reference or add as prose instruction",
            )

        if spec.execution.allowed_tools:
            notes.warn(
                "TOOL_RESTRICTION_LOST",
                "Tool restrictions cannot be enforced in Windsurf",
                "execution.allowed_tools",
            )
            notes.suggest("Consider adding tool usage guidance in the workflow body")

        if spec.execution.preferred_model:
            notes.lose(
                "metadata",
                "info",
                "execution.preferred_model",
                f'Preferred model "{spec.execution.preferred_model}" cannot be set per workflow',
            )

        if spec.invocation.argument_hint:
            notes.warn(
                "ARGUMENT_HINT_DEGRADED",
                "Argument hints become prose instructions in Windsurf",
                "invocation.argument_hint",
            )

        notes.keep("Workflow instructions")
        return RenderedDocument(frontmatter=fm, body=self.transform_body(spec))

    @staticmethod
    def transform_body(spec: ComponentSpec) -> str:
        body = spec.body
        if "$ARGUMENTS" in body:
            body = body.replace("$ARGUMENTS", "<user-provided arguments>")
            if spec.invocation.argument_hint:
                body = f"> **Arguments**: {spec.invocation.argument_hint}\n\n{body}"
        return re.sub(r"!`([^`]+)`", r"(run: `\1`)", body)

    def target_component_type(self, spec: ComponentSpec) -> str:
        if spec.component_type in ("rule", "memory"):
            return "rule"
        return "workflow"

    def target_directory(self, spec: ComponentSpec) -> str:
        if self.target_component_type(spec) == "rule":
            return ".windsurf/rules"
        return ".windsurf/workflows"

    def target_filename(self, spec: ComponentSpec) -> str:
        return f"{spec.id}.md"
