"""Per-agent parsers and renderers."""

from agent_convert.formats.base import BaseParser, BaseRenderer, FidelityPolicy
from agent_convert.formats.claude import ClaudeParser, ClaudeRenderer
from agent_convert.formats.claude_memory import ClaudeMemoryParser
from agent_convert.formats.codex import CodexParser, CodexRenderer
from agent_convert.formats.cursor import CursorParser, CursorRenderer
from agent_convert.formats.gemini import GeminiParser, GeminiRenderer
from agent_convert.formats.opencode import OpenCodeParser, OpenCodeRenderer
from agent_convert.formats.universal import UniversalParser, UniversalRenderer
from agent_convert.formats.windsurf import WindsurfParser, WindsurfRenderer

__all__ = [
    "BaseParser",
    "BaseRenderer",
    "ClaudeMemoryParser",
    "ClaudeParser",
    "ClaudeRenderer",
    "CodexParser",
    "CodexRenderer",
    "CursorParser",
    "CursorRenderer",
    "FidelityPolicy",
    "GeminiParser",
    "GeminiRenderer",
    "OpenCodeParser",
    "OpenCodeRenderer",
    "UniversalParser",
    "UniversalRenderer",
    "WindsurfParser",
    "WindsurfRenderer",
]
