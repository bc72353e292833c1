"""
Exception hierarchy for shellguard.

All shellguard exceptions inherit from ShellguardError, allowing callers to
catch every shellguard-specific failure with a single except clause.

Exception Categories:
    - InvalidConfigError: SafetyConfig values that cannot build a validator
    - PatternError: A regex source that does not compile
    - ValidationTimeoutError / InternalValidationError: Reserved for hosts
      that wrap the engine in their own execution environment
    - ConfigLoadError: A configuration file could not be read or parsed

Only construction and config loading raise. A validator that was built
successfully never raises from validate_command or validate_batch; length
overflows and allowlist hits are ordinary results.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Validation engine errors: 1xxx
ERROR_INVALID_CONFIG = 1001
ERROR_PATTERN_COMPILE = 1002
ERROR_VALIDATION_TIMEOUT = 1003
ERROR_VALIDATION_INTERNAL = 1004

# Configuration loading errors: 2xxx
ERROR_CONFIG_LOAD = 2001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class ShellguardError(Exception):
    """
    Base exception for all shellguard errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Validation Engine Errors
# =============================================================================


@dataclass
class ValidationError(ShellguardError):
    """Base class for errors raised by the safety validation engine."""


@dataclass
class InvalidConfigError(ValidationError):
    """
    Raised when a SafetyConfig cannot produce a working validator.

    Attributes:
        field_name: The config field that holds the bad value
        value: The offending value
    """

    field_name: str = ""
    value: Any = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid configuration: {self.field_name}={self.value!r}"
        if self.code == 0:
            self.code = ERROR_INVALID_CONFIG
        self.context.update({
            "field": self.field_name,
            "value": self.value,
        })


@dataclass
class PatternError(ValidationError):
    """
    Raised when a regex source fails to compile.

    Attributes:
        pattern: The regex source string as supplied
        reason: The compiler's error message
    """

    pattern: str = ""
    reason: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Pattern compilation failed: {self.pattern}: {self.reason}"
        if self.code == 0:
            self.code = ERROR_PATTERN_COMPILE
        if not self.suggestion:
            self.suggestion = "Fix the regular expression in the safety config and rebuild the validator"
        self.context.update({
            "pattern": self.pattern,
            "reason": self.reason,
        })


@dataclass
class ValidationTimeoutError(ValidationError):
    """Raised by hosts that bound validation time externally."""

    timeout_seconds: float = 0.0

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Validation timed out after {self.timeout_seconds}s"
        if self.code == 0:
            self.code = ERROR_VALIDATION_TIMEOUT
        self.context["timeout_seconds"] = self.timeout_seconds


@dataclass
class InternalValidationError(ValidationError):
    """Raised by hosts when the engine fails in an unexpected way."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Internal validation error: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_VALIDATION_INTERNAL
        self.context["underlying_error"] = self.underlying_error


# =============================================================================
# Configuration Loading Errors
# =============================================================================


@dataclass
class ConfigLoadError(ShellguardError):
    """
    Raised when a safety configuration file cannot be loaded.

    Attributes:
        path: The file that was being read ("<string>" for inline YAML)
        underlying_error: What went wrong while reading or validating it
    """

    path: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to load safety config {self.path}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_CONFIG_LOAD
        if not self.suggestion:
            self.suggestion = "Check the YAML syntax and field names of the config file"
        self.context.update({
            "path": self.path,
            "underlying_error": self.underlying_error,
        })
