"""Error codes and exception types used inside the conversion pipeline.

Exceptions never cross the parse/render/validate boundary: parsers, renderers and
the orchestrator convert them into result objects carrying ``ErrorInfo`` values.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    PARSE_FAILED = "PARSE_FAILED"
    INVALID_FRONTMATTER = "INVALID_FRONTMATTER"
    UNKNOWN_AGENT = "UNKNOWN_AGENT"
    UNSUPPORTED_CONVERSION = "UNSUPPORTED_CONVERSION"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    FILE_READ_ERROR = "FILE_READ_ERROR"
    FILE_WRITE_ERROR = "FILE_WRITE_ERROR"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    SCHEMA_INVALID = "SCHEMA_INVALID"
    RENDER_FAILED = "RENDER_FAILED"
    ROUND_TRIP_DRIFT = "ROUND_TRIP_DRIFT"


ERROR_SUGGESTIONS: Dict[ErrorCode, str] = {
    ErrorCode.PARSE_FAILED: (
        "Check that the file has valid frontmatter (--- delimiters) and "
        "non-empty markdown content."
    ),
    ErrorCode.INVALID_FRONTMATTER: (
        "Ensure the frontmatter is valid YAML, or flat `key = value` lines for Codex."
    ),
    ErrorCode.UNKNOWN_AGENT: (
        "Use --from <agent> to name the source agent, or check that the file path "
        "follows the agent's conventions."
    ),
    ErrorCode.UNSUPPORTED_CONVERSION: (
        "This conversion path is not supported. Run `agent-convert matrix` to "
        "see supported pairs."
    ),
    ErrorCode.FILE_NOT_FOUND: "Verify the file path exists and is accessible.",
    ErrorCode.FILE_READ_ERROR: (
        "Check file permissions and that the file is UTF-8 encoded text."
    ),
    ErrorCode.FILE_WRITE_ERROR: "Check write permissions for the output directory.",
    ErrorCode.VALIDATION_FAILED: (
        "Run `agent-convert validate <file>` for detailed validation errors."
    ),
    ErrorCode.SCHEMA_INVALID: (
        "The component does not match the expected schema. Check required fields."
    ),
    ErrorCode.RENDER_FAILED: (
        "The component could not be rendered for the target agent. Check the "
        "conversion warnings."
    ),
    ErrorCode.ROUND_TRIP_DRIFT: (
        "Significant semantic changes were detected after a round trip. Review "
        "the diff output."
    ),
}


class ErrorInfo(BaseModel):
    """A failure carried inside a result object."""

    code: ErrorCode
    message: str
    details: Optional[str] = None
    suggestion: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"


def enrich_error(
    code: ErrorCode,
    message: str,
    details: Optional[str] = None,
    **context: Any,
) -> ErrorInfo:
    """Build an ErrorInfo with the canned suggestion for its code."""
    return ErrorInfo(
        code=code,
        message=message,
        details=details,
        suggestion=ERROR_SUGGESTIONS.get(code),
        context=context,
    )


def format_error(error: ErrorInfo) -> str:
    lines = [f"Error [{error.code.value}]: {error.message}"]
    if error.details:
        lines.append(f"  Details: {error.details}")
    if error.suggestion:
        lines.append(f"  Suggestion: {error.suggestion}")
    if error.context:
        lines.append(f"  Context: {error.context}")
    return "\n".join(lines)


class ConversionError(Exception):
    """Base class for errors raised inside the pipeline."""

    code = ErrorCode.PARSE_FAILED

    def __init__(self, message: str, code: Optional[ErrorCode] = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_info(self, **context: Any) -> ErrorInfo:
        return enrich_error(self.code, self.message, **context)


class FrontmatterError(ConversionError):
    """Frontmatter block is present but cannot be decoded."""

    code = ErrorCode.INVALID_FRONTMATTER


class VersionAdaptationError(ConversionError):
    """A version change was refused (strict downgrade or unknown version)."""

    code = ErrorCode.UNSUPPORTED_CONVERSION


class RegistryError(ConversionError):
    """Registry lookup failed for an agent with no parser or renderer."""

    code = ErrorCode.UNKNOWN_AGENT
