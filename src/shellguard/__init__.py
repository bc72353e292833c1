"""
shellguard - Safety validation for machine-generated shell commands.

shellguard sits between whatever produces a shell command (an LLM, a script,
a user) and whatever would run it. It provides:
- A catalogue of dangerous-command patterns across POSIX and Windows shells
- Quote-aware matching that ignores dangerous text inside string literals
- Graduated policies (strict / moderate / permissive) that allow, ask, or block

Example usage:
    >>> from shellguard import SafetyConfig, SafetyValidator, ShellType
    >>> validator = SafetyValidator(SafetyConfig.strict())
    >>> validator.validate_command("rm -rf /", ShellType.BASH).allowed
    False

    $ shellguard check "sudo rm -rf /" --safety strict
"""

__version__ = "0.1.0"
__author__ = "shellguard Contributors"

from shellguard.errors import (
    InvalidConfigError,
    PatternError,
    ShellguardError,
    ValidationError,
)
from shellguard.safety import SafetyValidator
from shellguard.schema import (
    DangerPattern,
    RiskLevel,
    SafetyConfig,
    SafetyLevel,
    ShellType,
    ValidationResult,
)

__all__ = [
    "__version__",
    "__author__",
    "DangerPattern",
    "InvalidConfigError",
    "PatternError",
    "RiskLevel",
    "SafetyConfig",
    "SafetyLevel",
    "SafetyValidator",
    "ShellType",
    "ShellguardError",
    "ValidationError",
    "ValidationResult",
]
