import json
import re
import tomllib
from typing import Any, Dict, List, Literal, Optional, Tuple

import yaml
from yaml.composer import ComposerError

from agent_convert.errors import FrontmatterError

FrontmatterFormat = Literal["yaml", "toml", "none"]

# Bound on the decoded frontmatter block; anything larger is rejected before
# it reaches the YAML/TOML loaders.
MAX_FRONTMATTER_CHARS = 64 * 1024

_TOML_LINE = re.compile(r"""^[A-Za-z0-9_.\-"']+\s*=\s*\S""")
_TOML_TABLE = re.compile(r"^\[\[?[A-Za-z0-9_.\-\"' ]+\]\]?\s*$")
_YAML_KEY = re.compile(r"^[A-Za-z0-9_\-]+\s*:")


class FrontmatterLoader(yaml.SafeLoader):
    """SafeLoader that refuses aliases.

    An aliased node is shared, not copied, so a few hundred bytes of nested
    anchors expand into billions of values once a parser walks them.
    """

    def compose_node(self, parent, index):
        if self.check_event(yaml.AliasEvent):
            event = self.peek_event()
            raise ComposerError(
                None, None, f"aliases are not allowed (found *{event.anchor})", event.start_mark
            )
        return super().compose_node(parent, index)


class FrontmatterDumper(yaml.Dumper):
    def ignore_aliases(self, data):
        return True


def _split_block(content: str) -> Optional[Tuple[str, str]]:
    """Return (raw frontmatter, body) or None when the file has no frontmatter."""
    text = content.lstrip("\ufeff")
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].strip() != "---":
        return None
    for index in range(1, len(lines)):
        if lines[index].strip() == "---":
            raw = "".join(lines[1:index])
            body = "".join(lines[index + 1 :])
            return raw, body
    raise FrontmatterError("Frontmatter block opened with '---' is never closed")


def detect_frontmatter_format(raw: str) -> FrontmatterFormat:
    """Tell YAML frontmatter from TOML-style ``key = value`` frontmatter.

    TOML is chosen only when every meaningful line is an assignment or a table
    header and no line reads like a YAML mapping key.
    """
    meaningful = [
        line.strip()
        for line in raw.splitlines()
        if line.strip() and not line.strip().startswith("#")
    ]
    if not meaningful:
        return "none"
    assignments = 0
    for line in meaningful:
        if _TOML_TABLE.match(line):
            continue
        if _YAML_KEY.match(line) and not _TOML_LINE.match(line):
            return "yaml"
        if _TOML_LINE.match(line):
            assignments += 1
            continue
        if line.startswith(("]", "}", '"', "'")) or line.endswith((",", "[")):
            # continuation of a multi-line TOML array or inline table
            continue
        return "yaml"
    return "toml" if assignments else "yaml"


def parse_frontmatter(content: str) -> Tuple[Dict[str, Any], str]:
    """
    Split frontmatter from a document.
    Returns a tuple of (frontmatter_dict, body_content).
    Accepts YAML or TOML-style ``key = value`` blocks; raises FrontmatterError
    when a block is present but cannot be decoded into a mapping.
    """
    data, body, _ = parse_frontmatter_with_format(content)
    return data, body


def parse_frontmatter_with_format(
    content: str,
) -> Tuple[Dict[str, Any], str, FrontmatterFormat]:
    split = _split_block(content)
    if split is None:
        return {}, content, "none"
    raw, body = split
    if len(raw) > MAX_FRONTMATTER_CHARS:
        raise FrontmatterError(
            f"Frontmatter exceeds {MAX_FRONTMATTER_CHARS} characters"
        )

    fmt = detect_frontmatter_format(raw)
    if fmt == "none":
        return {}, body, "none"

    if fmt == "toml":
        try:
            data: Any = tomllib.loads(raw)
        except tomllib.TOMLDecodeError as e:
            raise FrontmatterError(f"Invalid TOML frontmatter: {e}") from e
    else:
        try:
            data = yaml.load(raw, Loader=FrontmatterLoader)
        except yaml.YAMLError as e:
            raise FrontmatterError(f"Invalid YAML frontmatter: {e}") from e

    if data is None:
        return {}, body, fmt
    if not isinstance(data, dict):
        raise FrontmatterError(
            f"Frontmatter must be a mapping, got {type(data).__name__}"
        )
    return data, body, fmt


def dump_yaml_frontmatter(fm: Dict[str, Any]) -> str:
    return yaml.dump(
        fm,
        Dumper=FrontmatterDumper,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    ).strip()


def _toml_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_toml_value(v) for v in value) + "]"
    if isinstance(value, dict):
        inner = ", ".join(f"{_toml_key(k)} = {_toml_value(v)}" for k, v in value.items())
        return "{ " + inner + " }" if inner else "{}"
    return json.dumps(str(value), ensure_ascii=False)


def _toml_key(key: str) -> str:
    if re.fullmatch(r"[A-Za-z0-9_\-]+", key):
        return key
    return json.dumps(key)


def dump_toml_frontmatter(fm: Dict[str, Any]) -> str:
    """Write a flat ``key = value`` block; nested tables become inline tables."""
    return "\n".join(
        f"{_toml_key(k)} = {_toml_value(v)}" for k, v in fm.items() if v is not None
    )


def compose_document(
    fm: Dict[str, Any], body: str, fmt: FrontmatterFormat = "yaml"
) -> str:
    """Join frontmatter and body into the ``---`` delimited file layout."""
    body = body.strip()
    if not fm:
        return f"{body}\n"
    fm_str = dump_toml_frontmatter(fm) if fmt == "toml" else dump_yaml_frontmatter(fm)
    return f"---\n{fm_str}\n---\n\n{body}\n"


def slugify(text: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug


def title_case(identifier: str) -> str:
    """``code-review`` -> ``Code Review``."""
    words = re.split(r"[-_\s]+", identifier.strip())
    return " ".join(w[:1].upper() + w[1:] for w in words if w)


def clean_description(desc: Any) -> str:
    """Ensure description is a single line and clean of quotes."""
    if not desc:
        return ""
    cleaned = str(desc).replace("\n", " ").strip()
    if (cleaned.startswith('"') and cleaned.endswith('"')) or (
        cleaned.startswith("'") and cleaned.endswith("'")
    ):
        cleaned = cleaned[1:-1]
    return cleaned


def as_list(value: Any) -> List[str]:
    """Normalize list-or-comma-string fields (``tools: a, b``) to a list."""
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, dict):
        return [str(k) for k, enabled in value.items() if enabled]
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if str(item).strip()]
    return [str(value)]


def normalize_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def first_heading(body: str) -> Optional[str]:
    match = re.search(r"^#\s+(.+)$", body, re.M)
    return match.group(1).strip() if match else None


def first_paragraph(body: str, limit: int = 200) -> str:
    """First line of prose that is not a heading, comment or code fence."""
    for line in body.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith(("#", "```", "<!--", "---")):
            continue
        return stripped[:limit]
    return ""


def extract_sections(body: str) -> List[Tuple[int, str, str]]:
    """Split markdown into (level, title, content) triples, ignoring code fences."""
    sections: List[Tuple[int, str, str]] = []
    current: Optional[Tuple[int, str]] = None
    buffer: List[str] = []
    in_fence = False

    for line in body.splitlines():
        if line.strip().startswith("```"):
            in_fence = not in_fence
        match = None if in_fence else re.match(r"^(#{1,6})\s+(.+?)\s*#*\s*$", line)
        if match:
            if current is not None:
                sections.append((current[0], current[1], "\n".join(buffer).strip()))
            current = (len(match.group(1)), match.group(2).strip())
            buffer = []
        else:
            buffer.append(line)

    if current is not None:
        sections.append((current[0], current[1], "\n".join(buffer).strip()))
    return sections
