"""
Pattern compilation for the safety engine.

Every DangerPattern is compiled exactly once: builtins once per process
(see patterns.get_compiled_patterns), custom and allowlist patterns once per
validator. Compilation is atomic: the first bad source raises PatternError
and nothing partially compiled is handed out.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass

from shellguard.errors import PatternError
from shellguard.schema import DangerPattern, RiskLevel, ShellType


@dataclass(frozen=True, slots=True)
class CompiledPattern:
    """A DangerPattern paired with its compiled regex."""

    regex: re.Pattern[str]
    source: DangerPattern

    @property
    def risk_level(self) -> RiskLevel:
        return self.source.risk_level

    @property
    def description(self) -> str:
        return self.source.description

    @property
    def shell_scope(self) -> ShellType | None:
        return self.source.shell_scope

    def applies_to(self, shell: ShellType) -> bool:
        return self.source.applies_to(shell)


def compile_regex(source: str) -> re.Pattern[str]:
    """
    Compile a regex source, translating re.error into PatternError.

    Raises:
        PatternError: If the source does not compile
    """
    try:
        return re.compile(source)
    except re.error as e:
        raise PatternError(pattern=source, reason=str(e)) from e


def compile_pattern(pattern: DangerPattern) -> CompiledPattern:
    """Compile one danger pattern."""
    return CompiledPattern(regex=compile_regex(pattern.pattern), source=pattern)


def compile_patterns(patterns: Iterable[DangerPattern]) -> tuple[CompiledPattern, ...]:
    """Compile danger patterns in order; raises on the first failure."""
    return tuple(compile_pattern(p) for p in patterns)


def compile_allowlist(sources: Iterable[str]) -> tuple[tuple[str, re.Pattern[str]], ...]:
    """Compile allowlist regexes, keeping each source next to its regex."""
    return tuple((source, compile_regex(source)) for source in sources)
