"""The immutable bundle of parsers, renderers, validators and the capability mapper."""

import logging
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import List, Mapping, Optional

from agent_convert.agents import AgentId, agent_for_path
from agent_convert.errors import RegistryError
from agent_convert.formats import (
    BaseParser,
    BaseRenderer,
    ClaudeParser,
    ClaudeRenderer,
    CodexParser,
    CodexRenderer,
    CursorParser,
    CursorRenderer,
    GeminiParser,
    GeminiRenderer,
    OpenCodeParser,
    OpenCodeRenderer,
    UniversalParser,
    UniversalRenderer,
    WindsurfParser,
    WindsurfRenderer,
)
from agent_convert.mapping import CapabilityMapper
from agent_convert.validation import ValidatorRegistry, build_validator_registry
from agent_convert.versioning import VersionCatalog, default_catalog

logger = logging.getLogger(__name__)

SUPPORTED_AGENTS = (
    AgentId.CLAUDE,
    AgentId.WINDSURF,
    AgentId.CURSOR,
    AgentId.CODEX,
    AgentId.GEMINI,
    AgentId.OPENCODE,
    AgentId.UNIVERSAL,
)

# Content sniffing order when the path says nothing.
DETECTION_ORDER = SUPPORTED_AGENTS


@dataclass(frozen=True)
class Registry:
    parsers: Mapping[AgentId, BaseParser]
    renderers: Mapping[AgentId, BaseRenderer]
    validators: ValidatorRegistry
    mapper: CapabilityMapper
    catalog: VersionCatalog

    def get_parser(self, agent: AgentId) -> BaseParser:
        try:
            return self.parsers[agent]
        except KeyError:
            raise RegistryError(f"No parser registered for agent '{agent.value}'") from None

    def get_renderer(self, agent: AgentId) -> BaseRenderer:
        try:
            return self.renderers[agent]
        except KeyError:
            raise RegistryError(
                f"No renderer registered for agent '{agent.value}'"
            ) from None

    def has_parser(self, agent: AgentId) -> bool:
        return agent in self.parsers

    def has_renderer(self, agent: AgentId) -> bool:
        return agent in self.renderers

    def supports(self, agent: AgentId) -> bool:
        return self.has_parser(agent) and self.has_renderer(agent)

    @property
    def agents(self) -> List[AgentId]:
        return [agent for agent in AgentId if self.supports(agent)]

    def detect_agent(self, content: str, filename: Optional[str] = None) -> Optional[AgentId]:
        """Path conventions first, then each parser's ``can_parse`` in a fixed order."""
        agent = agent_for_path(filename)
        if agent is not None and self.has_parser(agent):
            logger.debug("Detected %s from path %s", agent.value, filename)
            return agent
        for candidate in DETECTION_ORDER:
            parser = self.parsers.get(candidate)
            if parser is not None and parser.can_parse(content, filename):
                logger.debug("Detected %s from content", candidate.value)
                return candidate
        return None


def build_registry(catalog: Optional[VersionCatalog] = None) -> Registry:
    catalog = catalog or default_catalog()
    parsers = {
        AgentId.CLAUDE: ClaudeParser(),
        AgentId.WINDSURF: WindsurfParser(),
        AgentId.CURSOR: CursorParser(),
        AgentId.CODEX: CodexParser(),
        AgentId.GEMINI: GeminiParser(),
        AgentId.OPENCODE: OpenCodeParser(),
        AgentId.UNIVERSAL: UniversalParser(),
    }
    renderers = {
        AgentId.CLAUDE: ClaudeRenderer(),
        AgentId.WINDSURF: WindsurfRenderer(),
        AgentId.CURSOR: CursorRenderer(),
        AgentId.CODEX: CodexRenderer(),
        AgentId.GEMINI: GeminiRenderer(),
        AgentId.OPENCODE: OpenCodeRenderer(),
        AgentId.UNIVERSAL: UniversalRenderer(),
    }
    missing = [
        agent.value
        for agent in SUPPORTED_AGENTS
        if agent not in parsers or agent not in renderers
    ]
    if missing:
        raise RegistryError(f"Supported agents without parser/renderer: {', '.join(missing)}")

    return Registry(
        parsers=MappingProxyType(parsers),
        renderers=MappingProxyType(renderers),
        validators=build_validator_registry(catalog),
        mapper=CapabilityMapper(),
        catalog=catalog,
    )


@lru_cache(maxsize=1)
def default_registry() -> Registry:
    return build_registry()


def detect_agent(
    content: str, filename: Optional[str] = None, registry: Optional[Registry] = None
) -> Optional[AgentId]:
    return (registry or default_registry()).detect_agent(content, filename)
