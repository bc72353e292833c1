"""
Safety validation engine for shellguard.

This package classifies shell command strings into risk levels and decides,
under a configurable SafetyLevel, whether they may run, need confirmation,
or must be blocked.

Key concepts:
    - BUILTIN_PATTERNS: the process-wide catalogue of dangerous-command rules
    - Context-aware matching: matches inside quoted literals are ignored
    - PolicyEngine: maps the governing risk to allow / confirm / block
    - SafetyValidator: builds once from a SafetyConfig, then validates
"""

from shellguard.safety.compiler import CompiledPattern, compile_pattern, compile_patterns
from shellguard.safety.context import (
    QuoteIndex,
    is_in_executable_context,
    matches_in_executable_context,
)
from shellguard.safety.patterns import (
    BUILTIN_PATTERNS,
    get_compiled_patterns,
    get_compiled_patterns_for_shell,
    get_patterns_by_risk,
    get_patterns_for_shell,
    validate_patterns,
)
from shellguard.safety.policy import PolicyEngine, aggregate_risk
from shellguard.safety.validator import SafetyValidator

__all__ = [
    "BUILTIN_PATTERNS",
    "CompiledPattern",
    "PolicyEngine",
    "QuoteIndex",
    "SafetyValidator",
    "aggregate_risk",
    "compile_pattern",
    "compile_patterns",
    "get_compiled_patterns",
    "get_compiled_patterns_for_shell",
    "get_patterns_by_risk",
    "get_patterns_for_shell",
    "is_in_executable_context",
    "matches_in_executable_context",
    "validate_patterns",
]
