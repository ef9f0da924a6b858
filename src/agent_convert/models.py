import re
from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator

from agent_convert.agents import AgentId

# --- Closed vocabularies ---

ComponentType = Literal[
    "skill", "command", "rule", "hook", "memory", "agent", "workflow", "config"
]
ActivationMode = Literal["manual", "suggested", "auto", "contextual", "hooked"]
SafetyLevel = Literal["safe", "sensitive", "dangerous"]
ExecutionContext = Literal["main", "fork", "isolated"]
LossCategory = Literal["activation", "execution", "capability", "metadata", "content"]
LossSeverity = Literal["info", "warning", "critical"]
ScopeLevel = Literal["system", "user", "project", "local"]

COMPONENT_TYPES: List[str] = list(get_args(ComponentType))

DEFAULT_VERSION = "1.0.0"

_SEMVER_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)(?:-(.+))?$")


def normalize_version(value: Any) -> str:
    """Coerce a version-ish value to ``major.minor.patch[-pre]``.

    Anything that does not look like a semantic version falls back to 1.0.0.
    """
    text = str(value).strip() if value is not None else ""
    if re.fullmatch(r"\d+", text):
        text = f"{text}.0.0"
    elif re.fullmatch(r"\d+\.\d+", text):
        text = f"{text}.0"
    if _SEMVER_RE.match(text):
        return text
    return DEFAULT_VERSION


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- IR sub-records ---


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class AgentDescriptor(_Record):
    id: AgentId
    version: Optional[str] = None
    detected_at: datetime = Field(default_factory=utcnow)


class TriggerSpec(_Record):
    type: Literal["glob", "keyword", "context", "hook"]
    pattern: Optional[str] = None
    keywords: Optional[List[str]] = None
    hook_name: Optional[str] = None


class ArgumentSpec(_Record):
    name: str
    description: Optional[str] = None
    required: bool = False
    default_value: Optional[str] = None
    type: Literal["string", "number", "boolean", "file", "directory"] = "string"


class Intent(_Record):
    summary: str
    purpose: str
    when_to_use: Optional[str] = None
    examples: Optional[List[str]] = None


class Activation(_Record):
    mode: ActivationMode = "suggested"
    safety_level: SafetyLevel = "safe"
    triggers: Optional[List[TriggerSpec]] = None
    requires_confirmation: Optional[bool] = None


class Invocation(_Record):
    slash_command: Optional[str] = None
    argument_hint: Optional[str] = None
    arguments: Optional[List[ArgumentSpec]] = None
    user_invocable: bool = True


class Execution(_Record):
    context: ExecutionContext = "main"
    allowed_tools: Optional[List[str]] = None
    restricted_tools: Optional[List[str]] = None
    preferred_model: Optional[str] = None
    sub_agent: Optional[str] = None


class Capabilities(_Record):
    """What a component needs from its host and what it provides."""

    needs_shell: bool = False
    needs_filesystem: bool = True
    needs_network: bool = False
    needs_git: bool = False
    needs_code_search: bool = True
    needs_browser: bool = False
    needs_mcp: bool = False
    provides_analysis: bool = False
    provides_code_generation: bool = False
    provides_refactoring: bool = False
    provides_documentation: bool = False


CAPABILITY_FLAGS: List[str] = list(Capabilities.model_fields)


# --- Agent-specific metadata (tagged by agent) ---


class ClaudeMetadata(_Record):
    agent: Literal["claude"] = "claude"
    user_invocable_explicit: Optional[bool] = None


class WindsurfMetadata(_Record):
    agent: Literal["windsurf"] = "windsurf"
    auto_execution_mode: Optional[int] = None
    tags: Optional[List[str]] = None


class CursorMetadata(_Record):
    agent: Literal["cursor"] = "cursor"
    title: Optional[str] = None
    globs: Optional[List[str]] = None
    always_apply: Optional[bool] = None


class CodexMetadata(_Record):
    agent: Literal["codex"] = "codex"
    sandbox_mode: Optional[
        Literal["read-only", "workspace-write", "danger-full-access"]
    ] = None
    approval_policy: Optional[
        Literal["untrusted", "on-failure", "on-request", "never"]
    ] = None
    web_search: Optional[Literal["disabled", "cached", "live"]] = None
    mcp_servers: Optional[Dict[str, Dict[str, Any]]] = None
    features: Optional[Dict[str, bool]] = None
    tools: Optional[List[str]] = None
    model: Optional[str] = None


class GeminiMetadata(_Record):
    agent: Literal["gemini"] = "gemini"
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    code_execution: Optional[bool] = None
    google_search: Optional[bool] = None
    include_directories: Optional[List[str]] = None
    instruction: Optional[str] = None
    tools: Optional[List[str]] = None
    model: Optional[str] = None


class OpenCodeMetadata(_Record):
    agent: Literal["opencode"] = "opencode"
    subtask: Optional[bool] = None
    mode: Optional[Literal["primary", "subagent", "all"]] = None
    temperature: Optional[float] = None


class ImportSpec(_Record):
    path: str
    type: Literal["file", "url", "package"] = "file"
    resolved: Optional[str] = None
    optional: bool = False


class MemorySection(_Record):
    title: str
    content: str
    level: int


class MemoryMetadata(_Record):
    agent: Literal["memory"] = "memory"
    scope: ScopeLevel = "project"
    hierarchical: bool = False
    imports: Optional[List[ImportSpec]] = None
    sections: Optional[List[MemorySection]] = None


AgentMetadata = Annotated[
    Union[
        ClaudeMetadata,
        WindsurfMetadata,
        CursorMetadata,
        CodexMetadata,
        GeminiMetadata,
        OpenCodeMetadata,
        MemoryMetadata,
    ],
    Field(discriminator="agent"),
]


class ComponentMetadata(_Record):
    source_file: Optional[str] = None
    original_format: Optional[str] = None
    extension: Optional[AgentMetadata] = None


class AgentOverride(_Record):
    frontmatter_overrides: Optional[Dict[str, Any]] = None
    body_prefix: Optional[str] = None
    body_suffix: Optional[str] = None
    capability_overrides: Optional[Dict[str, bool]] = None


# --- The IR ---


class ComponentSpec(_Record):
    """Agent-neutral representation of one configuration artifact."""

    id: str = Field(min_length=1)
    version: str = DEFAULT_VERSION
    source_agent: Optional[AgentDescriptor] = None
    component_type: ComponentType
    category: List[str] = Field(default_factory=list)
    intent: Intent
    activation: Activation = Field(default_factory=Activation)
    invocation: Invocation = Field(default_factory=Invocation)
    execution: Execution = Field(default_factory=Execution)
    body: str = ""
    capabilities: Capabilities = Field(default_factory=Capabilities)
    metadata: ComponentMetadata = Field(default_factory=ComponentMetadata)
    agent_overrides: Optional[Dict[AgentId, AgentOverride]] = None

    @field_validator("version", mode="before")
    @classmethod
    def _coerce_version(cls, value: Any) -> str:
        return normalize_version(value)

    @property
    def source_agent_id(self) -> Optional[AgentId]:
        return self.source_agent.id if self.source_agent else None

    def extension(self, kind: type) -> Optional[Any]:
        """Return the agent-specific metadata if it is of the given model type."""
        ext = self.metadata.extension
        return ext if isinstance(ext, kind) else None

    def override_for(self, agent: AgentId) -> Optional[AgentOverride]:
        if not self.agent_overrides:
            return None
        return self.agent_overrides.get(agent)


# --- Conversion reporting ---


class ConversionLoss(BaseModel):
    category: LossCategory
    severity: LossSeverity
    description: str
    source_field: str
    recommendation: Optional[str] = None


class ConversionWarning(BaseModel):
    code: str
    message: str
    field: Optional[str] = None


class ComponentRef(BaseModel):
    agent: AgentId
    component_type: ComponentType
    id: str


class ConversionReport(BaseModel):
    source: ComponentRef
    target: ComponentRef
    preserved_semantics: List[str] = Field(default_factory=list)
    losses: List[ConversionLoss] = Field(default_factory=list)
    warnings: List[ConversionWarning] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    fidelity_score: int = Field(100, ge=0, le=100)
    converted_at: datetime = Field(default_factory=utcnow)
    duration_ms: float = 0.0


# --- Options and results ---


class ParseOptions(BaseModel):
    agent_id: Optional[AgentId] = None
    source_file: Optional[str] = None
    validate_on_parse: bool = False


class RenderOptions(BaseModel):
    include_comments: bool = False
    validate_output: bool = False
    source_version: Optional[str] = None
    target_version: Optional[str] = None


class TransformOptions(BaseModel):
    source_agent: Optional[AgentId] = None
    target_agent: AgentId
    source_file: Optional[str] = None
    include_comments: bool = False
    validate_output: bool = False
    source_version: Optional[str] = None
    target_version: Optional[str] = None


class ParseResult(BaseModel):
    success: bool
    spec: Optional[ComponentSpec] = None
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class RenderResult(BaseModel):
    success: bool
    content: Optional[str] = None
    filename: Optional[str] = None
    report: Optional[ConversionReport] = None
    errors: List[str] = Field(default_factory=list)


class TransformResult(BaseModel):
    success: bool
    output: Optional[str] = None
    filename: Optional[str] = None
    spec: Optional[ComponentSpec] = None
    report: Optional[ConversionReport] = None
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    fidelity_score: Optional[int] = None
    error_code: Optional[str] = None
