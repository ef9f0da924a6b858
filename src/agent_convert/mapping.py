"""How individual fields travel between two dialects, and the pairwise compatibility matrix."""

from typing import (
    TYPE_CHECKING,
    Annotated,
    Any,
    Dict,
    Iterable,
    List,
    Literal,
    Optional,
    Union,
)

from pydantic import BaseModel, ConfigDict, Field

from agent_convert.agents import AgentId

if TYPE_CHECKING:
    from agent_convert.registry import Registry


class _Strategy(BaseModel):
    model_config = ConfigDict(frozen=True)


class DirectMapping(_Strategy):
    type: Literal["direct"] = "direct"
    target_field: str


class TransformMapping(_Strategy):
    type: Literal["transform"] = "transform"
    transformer: str
    description: str


class FallbackMapping(_Strategy):
    type: Literal["fallback"] = "fallback"
    fallback_value: Any = None
    warning: str


class UnsupportedMapping(_Strategy):
    type: Literal["unsupported"] = "unsupported"
    loss_description: str


MappingStrategy = Annotated[
    Union[DirectMapping, TransformMapping, FallbackMapping, UnsupportedMapping],
    Field(discriminator="type"),
]


class CapabilityMapping(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_agent: AgentId
    target_agent: AgentId
    source_field: str
    strategy: MappingStrategy


def _m(source: AgentId, target: AgentId, field: str, strategy: Any) -> CapabilityMapping:
    return CapabilityMapping(
        source_agent=source, target_agent=target, source_field=field, strategy=strategy
    )


C, W, R = AgentId.CLAUDE, AgentId.WINDSURF, AgentId.CURSOR
X, G, O = AgentId.CODEX, AgentId.GEMINI, AgentId.OPENCODE

DEFAULT_MAPPINGS = (
    # claude -> windsurf
    _m(C, W, "disable-model-invocation", TransformMapping(
        transformer="map_to_auto_execution_mode",
        description="Maps disable-model-invocation: true to auto_execution_mode: 0",
    )),
    _m(C, W, "context: fork", UnsupportedMapping(
        loss_description="Claude fork context has no Windsurf equivalent",
    )),
    _m(C, W, "allowed-tools", FallbackMapping(
        warning="Tool restrictions cannot be enforced in Windsurf",
    )),
    _m(C, W, "$ARGUMENTS", TransformMapping(
        transformer="convert_arguments_to_prose_hint",
        description="Converts $ARGUMENTS placeholder to prose instruction",
    )),
    # claude -> cursor
    _m(C, R, "disable-model-invocation", FallbackMapping(
        fallback_value=True, warning="Cursor commands are always manual",
    )),
    _m(C, R, "context: fork", UnsupportedMapping(
        loss_description="Claude fork context not supported in Cursor",
    )),
    _m(C, R, "agent", UnsupportedMapping(
        loss_description="Sub-agent assignment not supported in Cursor",
    )),
    # claude -> codex / gemini / opencode
    _m(C, X, "allowed-tools", DirectMapping(target_field="tools")),
    _m(C, X, "context: fork", UnsupportedMapping(
        loss_description="Codex has no forked execution context",
    )),
    _m(C, G, "allowed-tools", DirectMapping(target_field="tools")),
    _m(C, G, "agent", UnsupportedMapping(
        loss_description="Sub-agent assignment not supported in Gemini CLI",
    )),
    _m(C, O, "context: fork", TransformMapping(
        transformer="map_fork_to_subtask",
        description="Maps context: fork to subtask: true",
    )),
    _m(C, O, "agent", DirectMapping(target_field="agent")),
    # windsurf -> claude
    _m(W, C, "auto_execution_mode", TransformMapping(
        transformer="map_from_auto_execution_mode",
        description="Maps auto_execution_mode to disable-model-invocation",
    )),
    _m(W, C, "tool_references", TransformMapping(
        transformer="convert_tool_references_to_allowed_tools",
        description="Infers allowed-tools from tool references in body",
    )),
    # windsurf -> cursor
    _m(W, R, "auto_execution_mode", FallbackMapping(
        warning="Cursor commands are always manual - auto_execution_mode ignored",
    )),
    _m(W, R, "tool_references", TransformMapping(
        transformer="convert_tool_references_to_prose",
        description="Converts tool references to prose instructions",
    )),
    # cursor -> claude / windsurf
    _m(R, C, "markdown_structure", DirectMapping(target_field="body")),
    _m(R, W, "markdown_structure", DirectMapping(target_field="body")),
    # codex -> others
    _m(X, C, "approval_policy", UnsupportedMapping(
        loss_description="Codex approval_policy has no Claude equivalent",
    )),
    _m(X, C, "sandbox_mode", FallbackMapping(
        warning="Codex sandbox_mode is reduced to the inferred safety level",
    )),
    _m(X, C, "tools", DirectMapping(target_field="allowed-tools")),
    _m(X, G, "mcp_servers", UnsupportedMapping(
        loss_description="MCP server configuration is not carried over",
    )),
    # gemini -> others
    _m(G, C, "temperature", UnsupportedMapping(
        loss_description="Gemini temperature has no Claude equivalent",
    )),
    _m(G, C, "tools", DirectMapping(target_field="allowed-tools")),
    _m(G, O, "temperature", DirectMapping(target_field="temperature")),
    # opencode -> others
    _m(O, C, "subtask", TransformMapping(
        transformer="map_subtask_to_fork",
        description="Maps subtask: true to context: fork",
    )),
    _m(O, C, "mode", FallbackMapping(
        warning="OpenCode agent mode is not directly supported",
    )),
    _m(O, W, "subtask", UnsupportedMapping(
        loss_description="OpenCode subtask isolation has no Windsurf equivalent",
    )),
)


STRATEGY_PENALTIES = {"direct": 0, "transform": 2, "fallback": 5, "unsupported": 15}


class CapabilityMapper:
    """Read-only lookup over the ``(source, target, field) -> strategy`` table."""

    def __init__(self, mappings: Optional[Iterable[CapabilityMapping]] = None) -> None:
        self._mappings = tuple(DEFAULT_MAPPINGS if mappings is None else mappings)

    @property
    def mappings(self) -> List[CapabilityMapping]:
        return list(self._mappings)

    def get_mappings(self, source: AgentId, target: AgentId) -> List[CapabilityMapping]:
        return [
            m for m in self._mappings if m.source_agent == source and m.target_agent == target
        ]

    def get_mapping(
        self, source: AgentId, target: AgentId, source_field: str
    ) -> Optional[CapabilityMapping]:
        for m in self.get_mappings(source, target):
            if m.source_field == source_field:
                return m
        return None

    def pair_score(self, source: AgentId, target: AgentId) -> int:
        score = 100
        for m in self.get_mappings(source, target):
            score -= STRATEGY_PENALTIES[m.strategy.type]
        return max(0, min(100, score))


def describe_strategy(strategy: MappingStrategy) -> str:
    if isinstance(strategy, DirectMapping):
        return f"Direct mapping to {strategy.target_field}"
    if isinstance(strategy, TransformMapping):
        return strategy.description
    if isinstance(strategy, FallbackMapping):
        return f"Fallback: {strategy.warning}"
    return f"Unsupported: {strategy.loss_description}"


def get_compatibility_matrix(
    registry: "Registry", agents: Optional[Iterable[AgentId]] = None
) -> Dict[AgentId, Dict[AgentId, int]]:
    """Estimated conversion fidelity for every ordered pair of agents."""
    agents = list(agents) if agents is not None else list(AgentId)
    matrix: Dict[AgentId, Dict[AgentId, int]] = {}
    for source in agents:
        row: Dict[AgentId, int] = {}
        for target in agents:
            if source == target:
                row[target] = 100
            elif not (registry.supports(source) and registry.supports(target)):
                row[target] = 0
            elif AgentId.UNIVERSAL in (source, target):
                row[target] = 95
            else:
                row[target] = registry.mapper.pair_score(source, target)
        matrix[source] = row
    return matrix
