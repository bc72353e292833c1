"""
Schema definitions for shellguard.

This module defines the enums and Pydantic models shared by the safety engine,
the configuration loader and the CLI:
- RiskLevel / SafetyLevel / ShellType: the closed vocabularies of the engine
- DangerPattern: one regex rule with its severity and optional shell scope
- SafetyConfig: what a validator is built from (presets or YAML)
- PolicyDecision / ValidationResult: what the engine hands back

Design Decisions:
    - Result models are immutable (frozen=True); SafetyConfig stays mutable
      only so the add_* builder methods can append while it is assembled
    - Enum values are lowercase strings so YAML and JSON stay readable
    - Enum lookups are case-insensitive ("Strict" and "strict" both work)
"""

import os
import re
import sys
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from shellguard.errors import ConfigLoadError, InvalidConfigError, PatternError


# Environment variable consulted by resolve_safety_config()
SAFETY_LEVEL_ENV_VAR = "SHELLGUARD_SAFETY_LEVEL"


# =============================================================================
# Enums
# =============================================================================


class _CaseInsensitiveEnum(str, Enum):
    """String enum whose lookup ignores case."""

    @classmethod
    def _missing_(cls, value: object) -> Any:
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class RiskLevel(_CaseInsensitiveEnum):
    """
    Severity assigned to a command from its pattern matches.

    Ordered Safe < Moderate < High < Critical, so max() over a collection
    of levels yields the governing one.
    """

    SAFE = "safe"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def severity(self) -> int:
        """Position of this level in the total order (0 = Safe)."""
        return _RISK_SEVERITY[self]

    @property
    def display_name(self) -> str:
        """Capitalized name used in explanations and warnings."""
        return self.value.capitalize()

    def requires_confirmation(self, safety_level: "SafetyLevel") -> bool:
        """Whether a command at this risk needs user confirmation."""
        return self in _CONFIRMATION_THRESHOLDS[safety_level]

    def is_blocked(self, safety_level: "SafetyLevel") -> bool:
        """Whether a command at this risk must be refused outright."""
        return self in _BLOCKING_THRESHOLDS[safety_level]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.severity < other.severity

    def __le__(self, other: object) -> bool:
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.severity <= other.severity

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.severity > other.severity

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.severity >= other.severity


class SafetyLevel(_CaseInsensitiveEnum):
    """
    Policy preset selecting the confirmation and blocking thresholds.

    STRICT blocks High and Critical, MODERATE blocks only Critical,
    PERMISSIVE never blocks (Critical still needs confirmation).
    """

    STRICT = "strict"
    MODERATE = "moderate"
    PERMISSIVE = "permissive"


_RISK_SEVERITY = {
    RiskLevel.SAFE: 0,
    RiskLevel.MODERATE: 1,
    RiskLevel.HIGH: 2,
    RiskLevel.CRITICAL: 3,
}

_CONFIRMATION_THRESHOLDS = {
    SafetyLevel.STRICT: frozenset({RiskLevel.MODERATE, RiskLevel.HIGH, RiskLevel.CRITICAL}),
    SafetyLevel.MODERATE: frozenset({RiskLevel.HIGH, RiskLevel.CRITICAL}),
    SafetyLevel.PERMISSIVE: frozenset({RiskLevel.CRITICAL}),
}

_BLOCKING_THRESHOLDS = {
    SafetyLevel.STRICT: frozenset({RiskLevel.HIGH, RiskLevel.CRITICAL}),
    SafetyLevel.MODERATE: frozenset({RiskLevel.CRITICAL}),
    SafetyLevel.PERMISSIVE: frozenset(),
}


class ShellType(_CaseInsensitiveEnum):
    """The shell dialect a command is meant for."""

    BASH = "bash"
    ZSH = "zsh"
    FISH = "fish"
    SH = "sh"
    POWERSHELL = "powershell"
    CMD = "cmd"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value: object) -> Any:
        if isinstance(value, str) and value.strip().lower() == "pwsh":
            return cls.POWERSHELL
        return super()._missing_(value)

    @classmethod
    def parse(cls, name: "str | ShellType | None") -> "ShellType":
        """
        Map a shell name to a ShellType.

        Unrecognized or empty names map to UNKNOWN instead of raising, so
        callers can pass whatever the environment reports.
        """
        if isinstance(name, ShellType):
            return name
        if not name:
            return cls.UNKNOWN
        try:
            return cls(name)
        except ValueError:
            return cls.UNKNOWN

    @classmethod
    def detect(
        cls,
        environ: Mapping[str, str] | None = None,
        platform: str | None = None,
    ) -> "ShellType":
        """
        Detect the current shell from the environment.

        Checks $SHELL first; on Windows falls back to PowerShell when
        PSModulePath is set, else Cmd.
        """
        env = os.environ if environ is None else environ
        platform = sys.platform if platform is None else platform

        shell = env.get("SHELL", "")
        if "bash" in shell:
            return cls.BASH
        if "zsh" in shell:
            return cls.ZSH
        if "fish" in shell:
            return cls.FISH
        if shell.endswith("/sh"):
            return cls.SH

        if platform.startswith("win"):
            if "PSModulePath" in env:
                return cls.POWERSHELL
            return cls.CMD

        return cls.UNKNOWN

    @property
    def is_posix(self) -> bool:
        """Whether this is a POSIX-family shell."""
        return self in (ShellType.BASH, ShellType.ZSH, ShellType.FISH, ShellType.SH)

    @property
    def is_windows(self) -> bool:
        """Whether this is a Windows shell."""
        return self in (ShellType.POWERSHELL, ShellType.CMD)


# =============================================================================
# Pattern and Config Models
# =============================================================================


class DangerPattern(BaseModel):
    """
    A single dangerous-command rule.

    Attributes:
        pattern: Regular expression source (Python re syntax, case-sensitive)
        risk_level: Severity assigned when the pattern matches
        description: Human-readable summary reported in matched_patterns
        shell_scope: Restricts the rule to one shell; None applies everywhere
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    pattern: str = Field(
        ...,
        description="Regular expression source",
        min_length=1,
    )
    risk_level: RiskLevel = Field(
        ...,
        description="Severity assigned on match",
    )
    description: str = Field(
        ...,
        description="Human-readable summary of the hazard",
    )
    shell_scope: ShellType | None = Field(
        default=None,
        description="Only fire for this shell (None = every shell)",
    )

    def applies_to(self, shell: ShellType) -> bool:
        """Whether this rule is evaluated for the given shell."""
        return self.shell_scope is None or self.shell_scope == shell


class SafetyConfig(BaseModel):
    """
    Configuration consumed once when a SafetyValidator is built.

    Use one of the presets (strict / moderate / permissive) or construct it
    directly; the default is Moderate with a 1000 character limit.

    Attributes:
        safety_level: Policy preset controlling confirmation and blocking
        max_command_length: Longest command (in characters) that is evaluated
        custom_patterns: Extra danger patterns evaluated after the builtins
        allowlist_patterns: Regexes that mark a command safe unconditionally
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    safety_level: SafetyLevel = Field(
        default=SafetyLevel.MODERATE,
        description="Policy preset",
    )
    max_command_length: int = Field(
        default=1000,
        description="Maximum command length in characters (must be positive)",
    )
    custom_patterns: list[DangerPattern] = Field(
        default_factory=list,
        description="Caller-supplied danger patterns",
    )
    allowlist_patterns: list[str] = Field(
        default_factory=list,
        description="Regexes that bypass pattern evaluation",
    )

    @classmethod
    def strict(cls) -> "SafetyConfig":
        """Blocks High and Critical; Moderate needs confirmation."""
        return cls(safety_level=SafetyLevel.STRICT, max_command_length=1000)

    @classmethod
    def moderate(cls) -> "SafetyConfig":
        """Blocks Critical; High needs confirmation."""
        return cls(safety_level=SafetyLevel.MODERATE, max_command_length=5000)

    @classmethod
    def permissive(cls) -> "SafetyConfig":
        """Never blocks; Critical still needs confirmation."""
        return cls(safety_level=SafetyLevel.PERMISSIVE, max_command_length=10000)

    @classmethod
    def from_preset(cls, name: "str | SafetyLevel") -> "SafetyConfig":
        """Build the preset named by a SafetyLevel or its string value."""
        try:
            level = SafetyLevel(name)
        except ValueError:
            raise InvalidConfigError(
                field_name="preset",
                value=name,
                suggestion="Use one of: strict, moderate, permissive",
            ) from None
        presets = {
            SafetyLevel.STRICT: cls.strict,
            SafetyLevel.MODERATE: cls.moderate,
            SafetyLevel.PERMISSIVE: cls.permissive,
        }
        return presets[level]()

    def add_custom_pattern(self, pattern: DangerPattern) -> None:
        """
        Append a custom danger pattern.

        The pattern is appended even when it does not compile, so the
        validator rejects the config again at construction; the PatternError
        raised here is early feedback for whoever is assembling the config.

        Raises:
            PatternError: If the regex source does not compile
        """
        self.custom_patterns.append(pattern)
        try:
            re.compile(pattern.pattern)
        except re.error as e:
            raise PatternError(pattern=pattern.pattern, reason=str(e)) from e

    def add_allowlist_pattern(self, pattern: str) -> None:
        """Append an allowlist regex (compiled when the validator is built)."""
        self.allowlist_patterns.append(pattern)


# =============================================================================
# Result Models
# =============================================================================


class PolicyDecision(BaseModel):
    """
    Verdict of the policy table for one risk level under one safety level.

    Attributes:
        allowed: True only when neither blocked nor requiring confirmation
        requires_confirmation: The user must approve before execution
        blocked: Execution must be refused
        risk_level: The governing risk that was judged
        safety_level: The policy preset that judged it
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    allowed: bool
    requires_confirmation: bool
    blocked: bool
    risk_level: RiskLevel
    safety_level: SafetyLevel


class ValidationResult(BaseModel):
    """
    Outcome of validating one command.

    Attributes:
        allowed: Whether the command may run without further interaction
        requires_confirmation: Whether the command needs user approval
        risk_level: Highest risk among live pattern matches
        explanation: One-line human-readable summary
        warnings: "{Risk}: {description}" for every matched pattern
        matched_patterns: Descriptions of matched patterns (or the allowlist
            regex that short-circuited evaluation)
        confidence_score: Coarse heuristic, 0.95 when nothing matched else 1.0
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    allowed: bool = Field(..., description="Command may execute")
    requires_confirmation: bool = Field(
        default=False,
        description="Command needs user approval before execution",
    )
    risk_level: RiskLevel = Field(..., description="Governing risk level")
    explanation: str = Field(..., description="Human-readable summary")
    warnings: list[str] = Field(default_factory=list, description="Per-match warnings")
    matched_patterns: list[str] = Field(
        default_factory=list,
        description="Descriptions of matched patterns",
    )
    confidence_score: float = Field(
        ...,
        description="Heuristic confidence in the verdict",
        ge=0.0,
        le=1.0,
    )


# =============================================================================
# YAML Loading Helpers
# =============================================================================


def _config_from_data(data: Any, source: str) -> SafetyConfig:
    """Validate parsed YAML into a SafetyConfig, applying an optional preset."""
    if data is None:
        return SafetyConfig()
    if not isinstance(data, dict):
        raise ConfigLoadError(
            path=source,
            underlying_error=f"expected a mapping at top level, got {type(data).__name__}",
        )

    data = dict(data)
    preset = data.pop("preset", None)
    if preset is not None:
        base = SafetyConfig.from_preset(preset).model_dump()
        data = {**base, **data}

    try:
        return SafetyConfig.model_validate(data)
    except PydanticValidationError as e:
        raise ConfigLoadError(path=source, underlying_error=str(e)) from e


def load_safety_config(path: Path | str) -> SafetyConfig:
    """
    Load a safety configuration from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Validated SafetyConfig

    Raises:
        ConfigLoadError: If the file cannot be read, parsed or validated
    """
    path = Path(path)
    try:
        with path.open() as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigLoadError(path=str(path), underlying_error=str(e)) from e

    return _config_from_data(data, str(path))


def load_safety_config_from_string(content: str) -> SafetyConfig:
    """Load a safety configuration from a YAML string."""
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigLoadError(path="<string>", underlying_error=str(e)) from e

    return _config_from_data(data, "<string>")


def resolve_safety_config(
    path: Path | str | None = None,
    safety_level: "str | SafetyLevel | None" = None,
    environ: Mapping[str, str] | None = None,
) -> SafetyConfig:
    """
    Build the effective config from defaults, file, environment and caller.

    Later layers win: defaults, then the YAML file (if given), then
    $SHELLGUARD_SAFETY_LEVEL, then the explicit safety_level argument.

    Raises:
        ConfigLoadError: If the file cannot be loaded
        InvalidConfigError: If a safety level string is not recognized
    """
    config = load_safety_config(path) if path is not None else SafetyConfig()
    env = os.environ if environ is None else environ

    for source, value in (
        (SAFETY_LEVEL_ENV_VAR, env.get(SAFETY_LEVEL_ENV_VAR)),
        ("safety_level", safety_level),
    ):
        if not value:
            continue
        try:
            level = SafetyLevel(value)
        except ValueError:
            raise InvalidConfigError(
                field_name=source,
                value=value,
                suggestion="Use one of: strict, moderate, permissive",
            ) from None
        config = config.model_copy(update={"safety_level": level})

    return config
