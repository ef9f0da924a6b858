"""Structural validation of agent configuration files."""

from functools import lru_cache
from typing import Optional

from agent_convert.agents import AgentId
from agent_convert.validation.base import (
    BaseValidator,
    IssueCollector,
    ValidationIssue,
    ValidationResult,
    ValidatorOptions,
    ValidatorRegistry,
)
from agent_convert.validation.validators import (
    VALIDATOR_CLASSES,
    ClaudeValidator,
    CodexValidator,
    CursorValidator,
    GeminiValidator,
    OpenCodeValidator,
    UniversalValidator,
    WindsurfValidator,
)
from agent_convert.versioning import VersionCatalog


def build_validator_registry(catalog: Optional[VersionCatalog] = None) -> ValidatorRegistry:
    return ValidatorRegistry(cls(catalog) for cls in VALIDATOR_CLASSES)


@lru_cache(maxsize=1)
def default_validator_registry() -> ValidatorRegistry:
    return build_validator_registry()


def validate(
    content: str,
    agent: AgentId,
    component_type: str,
    options: Optional[ValidatorOptions] = None,
    registry: Optional[ValidatorRegistry] = None,
) -> ValidationResult:
    """Validate ``content`` as a ``component_type`` file for ``agent``."""
    registry = registry or default_validator_registry()
    return registry.validate(content, agent, component_type, options)


__all__ = [
    "BaseValidator",
    "ClaudeValidator",
    "CodexValidator",
    "CursorValidator",
    "GeminiValidator",
    "IssueCollector",
    "OpenCodeValidator",
    "UniversalValidator",
    "ValidationIssue",
    "ValidationResult",
    "ValidatorOptions",
    "ValidatorRegistry",
    "WindsurfValidator",
    "build_validator_registry",
    "default_validator_registry",
    "validate",
]
