"""Agent Convert - Convert skills, commands, rules and memory files between AI coding assistants."""

__version__ = "0.1.0"
from agent_convert.agents import AgentId
from agent_convert.diff import SemanticDiff, body_similarity, diff_specs
from agent_convert.mapping import get_compatibility_matrix
from agent_convert.models import (
    ComponentSpec,
    ConversionReport,
    ParseOptions,
    RenderOptions,
    TransformOptions,
    TransformResult,
)
from agent_convert.registry import Registry, build_registry, detect_agent
from agent_convert.transformer import parse, render, transform, transform_file, transform_spec
from agent_convert.validation import ValidatorOptions, validate
from agent_convert.versioning import adapt_version, detect_version

__all__ = [
    "__version__",
    "AgentId",
    "ComponentSpec",
    "ConversionReport",
    "ParseOptions",
    "Registry",
    "RenderOptions",
    "SemanticDiff",
    "TransformOptions",
    "TransformResult",
    "ValidatorOptions",
    "adapt_version",
    "body_similarity",
    "build_registry",
    "detect_agent",
    "detect_version",
    "diff_specs",
    "get_compatibility_matrix",
    "parse",
    "render",
    "transform",
    "transform_file",
    "transform_spec",
    "validate",
]
