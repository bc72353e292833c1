"""
SafetyValidator: the public face of the safety engine.

A validator is built once from a SafetyConfig and is read-only afterwards.
Construction is the only place anything can fail; validate_command and
validate_batch are pure functions of (command, shell) and can be called
from any number of threads at once.

Evaluation order for one command (must not change):
    1. Length check against max_command_length
    2. Allowlist: a match returns Safe without looking at danger patterns
    3. Builtin then custom patterns for the shell, through the quote filter
    4. Governing risk = highest live match
    5. Policy table for the configured SafetyLevel
"""

import logging
from collections.abc import Iterable
from pathlib import Path

from shellguard.errors import InvalidConfigError, PatternError
from shellguard.safety.compiler import CompiledPattern, compile_allowlist, compile_patterns
from shellguard.safety.context import QuoteIndex, matches_in_executable_context
from shellguard.safety.patterns import get_compiled_patterns
from shellguard.safety.policy import PolicyEngine, confidence_for, explain
from shellguard.schema import (
    RiskLevel,
    SafetyConfig,
    SafetyLevel,
    ShellType,
    ValidationResult,
    load_safety_config,
)

logger = logging.getLogger(__name__)


class SafetyValidator:
    """
    Classifies shell commands and decides whether they may run.

    Usage:
        validator = SafetyValidator(SafetyConfig.strict())
        result = validator.validate_command("sudo rm -rf /", ShellType.BASH)
        if not result.allowed:
            # refuse, or prompt when result.requires_confirmation

    Raises (at construction only):
        InvalidConfigError: max_command_length is not positive
        PatternError: a custom or allowlist regex does not compile
    """

    def __init__(self, config: SafetyConfig | None = None) -> None:
        config = SafetyConfig() if config is None else config.model_copy(deep=True)

        if config.max_command_length <= 0:
            raise InvalidConfigError(
                message="max_command_length must be positive",
                field_name="max_command_length",
                value=config.max_command_length,
            )

        try:
            custom = compile_patterns(config.custom_patterns)
            allowlist = compile_allowlist(config.allowlist_patterns)
        except PatternError as e:
            logger.debug("Rejecting safety config, bad pattern: %s", e.pattern)
            raise

        self._config = config
        self._builtin_patterns = get_compiled_patterns()
        self._custom_patterns = custom
        self._allowlist = allowlist
        self._policy = PolicyEngine(config.safety_level)

        logger.debug(
            "SafetyValidator ready: level=%s builtin=%d custom=%d allowlist=%d",
            config.safety_level.value,
            len(self._builtin_patterns),
            len(self._custom_patterns),
            len(self._allowlist),
        )

    @classmethod
    def from_config_file(cls, path: Path | str) -> "SafetyValidator":
        """Load a YAML safety config and build a validator from it."""
        return cls(load_safety_config(path))

    @property
    def config(self) -> SafetyConfig:
        """A copy of the configuration this validator was built from."""
        return self._config.model_copy(deep=True)

    @property
    def safety_level(self) -> SafetyLevel:
        return self._config.safety_level

    @property
    def custom_pattern_count(self) -> int:
        return len(self._custom_patterns)

    def validate_command(
        self,
        command: str,
        shell: ShellType | str = ShellType.UNKNOWN,
    ) -> ValidationResult:
        """
        Validate a single command.

        Args:
            command: The command text, possibly machine-generated
            shell: Target shell (a ShellType or a shell name)

        Returns:
            A new ValidationResult describing the verdict
        """
        shell = ShellType.parse(shell)
        max_length = self._config.max_command_length

        if len(command) > max_length:
            logger.debug("Command rejected by length limit: %d > %d", len(command), max_length)
            return ValidationResult(
                allowed=False,
                requires_confirmation=False,
                risk_level=RiskLevel.MODERATE,
                explanation=f"Command exceeds maximum length of {max_length} characters",
                warnings=[f"Command is {len(command)} characters long (max: {max_length})"],
                matched_patterns=[],
                confidence_score=1.0,
            )

        for source, regex in self._allowlist:
            if regex.search(command):
                logger.debug("Command matched allowlist pattern %r", source)
                return ValidationResult(
                    allowed=True,
                    requires_confirmation=False,
                    risk_level=RiskLevel.SAFE,
                    explanation="Command matches allowlist pattern",
                    warnings=[],
                    matched_patterns=[source],
                    confidence_score=1.0,
                )

        matches = self._live_matches(command, shell)
        decision = self._policy.evaluate(matches)

        if not decision.allowed:
            logger.info(
                "Command %s: risk=%s matches=%d level=%s",
                "blocked" if decision.blocked else "needs confirmation",
                decision.risk_level.value,
                len(matches),
                self.safety_level.value,
            )

        return ValidationResult(
            allowed=decision.allowed,
            requires_confirmation=decision.requires_confirmation,
            risk_level=decision.risk_level,
            explanation=explain(matches, decision.risk_level),
            warnings=[f"{m.risk_level.display_name}: {m.description}" for m in matches],
            matched_patterns=[m.description for m in matches],
            confidence_score=confidence_for(matches),
        )

    def validate_batch(
        self,
        commands: Iterable[str],
        shell: ShellType | str = ShellType.UNKNOWN,
    ) -> list[ValidationResult]:
        """
        Validate commands one by one, in order.

        Each result is exactly what validate_command would return for that
        command on its own; nothing carries over between commands.
        """
        return [self.validate_command(command, shell) for command in commands]

    def _live_matches(self, command: str, shell: ShellType) -> list[CompiledPattern]:
        """Builtin then custom patterns for `shell` with an unquoted match."""
        quotes = QuoteIndex(command)
        return [
            pattern
            for pattern_set in (self._builtin_patterns, self._custom_patterns)
            for pattern in pattern_set
            if pattern.applies_to(shell)
            and matches_in_executable_context(command, pattern.regex, quotes)
        ]
