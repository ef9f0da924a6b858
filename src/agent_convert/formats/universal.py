"""AGENTS.md, the cross-agent project instructions file."""

import re
from typing import List, Optional, Tuple

from agent_convert.agents import AgentId
from agent_convert.errors import FrontmatterError
from agent_convert.formats.base import (
    BaseParser,
    BaseRenderer,
    FidelityPolicy,
    RenderedDocument,
    RenderNotes,
    normalize_path,
    source_descriptor,
)
from agent_convert.formats.claude_memory import extract_imports, memory_id, memory_sections
from agent_convert.inference import UNIVERSAL_RULES, infer_capabilities
from agent_convert.models import (
    Activation,
    ComponentMetadata,
    ComponentSpec,
    Intent,
    Invocation,
    MemoryMetadata,
    MemorySection,
    ParseOptions,
    RenderOptions,
)
from agent_convert.utils import parse_frontmatter

_AGENTS_HEADER = re.compile(r"^#\s*AGENTS\.md", re.I | re.M)
_SETUP_SECTION = re.compile(r"^##?\s*(Setup|Build|Install)", re.I | re.M)
_STYLE_SECTION = re.compile(r"^##?\s*(Code\s*Style|Coding\s*Style|Style\s*Guide)", re.I | re.M)


def is_agents_md(content: str, filename: Optional[str] = None) -> bool:
    path = normalize_path(filename) or ""
    if path.endswith("AGENTS.md"):
        return True
    if _AGENTS_HEADER.search(content):
        return True
    return bool(_SETUP_SECTION.search(content) and _STYLE_SECTION.search(content))


def summarize(body: str, sections: List[MemorySection]) -> str:
    first = body.split("\n\n", 1)[0].strip()
    if first and not first.startswith("#"):
        return first[:200]
    if sections:
        titles = ", ".join(s.title for s in sections[:3])
        return f"Project instructions: {titles}"
    return "Project context and instructions"


class UniversalParser(BaseParser):
    agent = AgentId.UNIVERSAL

    def can_parse(self, content: str, filename: Optional[str] = None) -> bool:
        return is_agents_md(content, filename)

    def _parse(
        self, content: str, options: ParseOptions
    ) -> Tuple[ComponentSpec, List[str]]:
        try:
            _, body = parse_frontmatter(content)
        except FrontmatterError:
            # AGENTS.md has no frontmatter; a stray block is ordinary text.
            body = content
        body = body.strip()
        sections = memory_sections(body)

        spec = ComponentSpec(
            id=memory_id(options.source_file, "agents-md"),
            source_agent=source_descriptor(self.agent),
            component_type="memory",
            category=["context", "instructions"],
            intent=Intent(
                summary=summarize(body, sections),
                purpose="Provide project context and instructions to AI coding assistants",
                when_to_use="Always loaded when working in this project",
            ),
            activation=Activation(mode="auto", safety_level="safe"),
            invocation=Invocation(user_invocable=False),
            body=body,
            capabilities=infer_capabilities(body, rules=UNIVERSAL_RULES),
            metadata=ComponentMetadata(
                source_file=options.source_file,
                original_format="agents.md",
                extension=MemoryMetadata(
                    scope="project", hierarchical=True, sections=sections or None
                ),
            ),
        )
        return spec, []


class UniversalRenderer(BaseRenderer):
    agent = AgentId.UNIVERSAL
    fidelity = FidelityPolicy(base=95, critical=15, warning=5, info=5)

    def _render(
        self, spec: ComponentSpec, notes: RenderNotes, options: RenderOptions
    ) -> RenderedDocument:
        if spec.body:
            body = spec.body
            notes.keep("Body content")
        else:
            body = f"# {spec.intent.summary}\n\n{spec.intent.purpose}"

        memory = spec.extension(MemoryMetadata)
        imports = [i for i in (memory.imports if memory else None) or [] if not i.resolved]
        if not imports and spec.source_agent_id != AgentId.UNIVERSAL:
            imports = [i for i in extract_imports(spec.body) if not i.resolved]
        if imports:
            notes.lose(
                "content",
                "warning",
                "metadata.imports",
                f"{len(imports)} @imports cannot be converted (AGENTS.md doesn't support imports)",
                "Inline the imported content manually",
            )
            notes.suggest("Review and inline any @imports manually")
            listed = "\n".join(f"  @{i.path}" for i in imports)
            body = (
                f"{body}\n\n<!-- Note: The following imports from the source file "
                f"need manual resolution:\n{listed}\n-->"
            )

        if spec.component_type != "memory":
            notes.lose(
                "content",
                "info",
                "component_type",
                f"{spec.component_type.capitalize()} becomes always-loaded project instructions",
            )
        if spec.activation.mode == "manual":
            notes.lose(
                "activation",
                "info",
                "activation.mode",
                "AGENTS.md is always loaded; manual invocation is lost",
            )

        notes.keep("Markdown structure", "Sections", "Instructions")
        return RenderedDocument(frontmatter={}, body=body)

    def target_component_type(self, spec: ComponentSpec) -> str:
        return "memory"

    def target_directory(self, spec: ComponentSpec) -> str:
        return "."

    def target_filename(self, spec: ComponentSpec) -> str:
        return "AGENTS.md"
