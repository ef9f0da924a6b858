"""CLAUDE.md memory files and ``.claude/rules/*.md`` path-scoped rules."""

import re
from pathlib import Path
from typing import List, Optional, Tuple

from agent_convert.agents import AgentId
from agent_convert.formats.base import (
    BaseParser,
    RenderedDocument,
    RenderNotes,
    glob_triggers,
    normalize_path,
    source_descriptor,
    trigger_globs,
)
from agent_convert.inference import UNIVERSAL_RULES, infer_capabilities
from agent_convert.models import (
    Activation,
    ComponentMetadata,
    ComponentSpec,
    ImportSpec,
    Intent,
    Invocation,
    MemoryMetadata,
    MemorySection,
    ParseOptions,
    ScopeLevel,
)
from agent_convert.utils import as_list, extract_sections, parse_frontmatter

# ``@path/to/file`` outside inline code; e-mail addresses and decorators excluded.
IMPORT_RE = re.compile(r"(?<![\w`])@([A-Za-z0-9_\-./~]+[A-Za-z0-9_\-/~])(?![`\w])")
MEMORY_PATH_RE = re.compile(r"(^|/)CLAUDE(\.local)?\.md$|\.claude/rules/[^/].*\.md$")


def is_memory_path(source_file: Optional[str]) -> bool:
    path = normalize_path(source_file)
    return bool(path and MEMORY_PATH_RE.search(path))


def extract_imports(body: str) -> List[ImportSpec]:
    imports: List[ImportSpec] = []
    seen = set()
    in_fence = False
    for line in body.splitlines():
        if line.strip().startswith("```"):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        for match in IMPORT_RE.finditer(line):
            path = match.group(1)
            if path in seen or path.startswith(("ts-", "types/")):
                continue
            seen.add(path)
            imports.append(
                ImportSpec(path=path, type="url" if path.startswith("http") else "file")
            )
    return imports


def memory_sections(body: str) -> List[MemorySection]:
    return [
        MemorySection(title=title, content=content, level=level)
        for level, title, content in extract_sections(body)
    ]


def determine_scope(source_file: Optional[str]) -> ScopeLevel:
    path = normalize_path(source_file)
    if not path:
        return "project"
    if path.startswith("/etc/") or "/Library/Application Support/" in path:
        return "system"
    if path.endswith(".local.md"):
        return "local"
    home = Path.home().as_posix()
    if path.startswith(("~/.claude/", f"{home}/.claude/")):
        return "user"
    return "project"


def memory_id(source_file: Optional[str], default: str) -> str:
    path = normalize_path(source_file)
    if not path:
        return default
    name = path.rsplit("/", 1)[-1]
    stem = re.sub(r"\.md$", "", name, flags=re.I)
    return re.sub(r"\s+", "-", stem.lower()) or default


class ClaudeMemoryParser(BaseParser):
    """CLAUDE.md and rules files. Selected by path from ``ClaudeParser``."""

    agent = AgentId.CLAUDE

    def can_parse(self, content: str, filename: Optional[str] = None) -> bool:
        if is_memory_path(filename):
            return True
        return re.search(r"^#\s*CLAUDE", content, re.I | re.M) is not None

    def _parse(
        self, content: str, options: ParseOptions
    ) -> Tuple[ComponentSpec, List[str]]:
        warnings: List[str] = []
        fm, body = parse_frontmatter(content)
        body = body.strip()

        source_file = options.source_file
        imports = extract_imports(body)
        sections = memory_sections(body)
        paths = as_list(fm.get("paths") or fm.get("globs"))
        is_rule = bool(paths) or ".claude/rules/" in (normalize_path(source_file) or "")

        summary = "Claude Code project context"
        if sections:
            summary = sections[0].title
        if fm.get("description"):
            summary = str(fm["description"])

        spec = ComponentSpec(
            id=memory_id(source_file, "claude-md"),
            version=fm.get("version"),
            source_agent=source_descriptor(self.agent),
            component_type="rule" if is_rule else "memory",
            category=["context", "instructions"],
            intent=Intent(
                summary=summary,
                purpose="Provide project context and instructions to Claude Code",
                when_to_use=(
                    f"When working with files matching: {', '.join(paths)}"
                    if paths
                    else "Always loaded"
                ),
            ),
            activation=Activation(
                mode="contextual" if paths else "auto",
                safety_level="safe",
                triggers=glob_triggers(paths),
            ),
            invocation=Invocation(user_invocable=False),
            body=body,
            capabilities=infer_capabilities(body, rules=UNIVERSAL_RULES),
            metadata=ComponentMetadata(
                source_file=source_file,
                original_format="claude-rule" if is_rule else "claude.md",
                extension=MemoryMetadata(
                    scope=determine_scope(source_file),
                    hierarchical=True,
                    imports=imports or None,
                    sections=sections or None,
                ),
            ),
        )

        if imports:
            warnings.append(f"Found {len(imports)} @imports that may need resolution")
        return spec, warnings


def render_memory(spec: ComponentSpec, notes: RenderNotes) -> RenderedDocument:
    """CLAUDE.md is plain markdown; rules carry their globs as ``paths``."""
    fm = {}
    if spec.component_type == "rule":
        globs = trigger_globs(spec)
        if globs:
            fm["paths"] = globs
            notes.keep("Path-scoped rule activation")
        elif spec.activation.mode == "contextual":
            notes.lose(
                "activation",
                "warning",
                "activation.triggers",
                "Contextual activation without glob patterns becomes an always-loaded rule",
            )
    notes.keep("Memory content", "Markdown sections")
    return RenderedDocument(frontmatter=fm, body=spec.body)
