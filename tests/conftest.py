"""
Pytest configuration and fixtures for shellguard tests.

This module provides shared fixtures used across unit, integration,
and security tests.
"""

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from shellguard.safety import SafetyValidator
from shellguard.schema import SafetyConfig


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def strict_validator() -> SafetyValidator:
    """Validator built from the strict preset."""
    return SafetyValidator(SafetyConfig.strict())


@pytest.fixture
def moderate_validator() -> SafetyValidator:
    """Validator built from the moderate preset."""
    return SafetyValidator(SafetyConfig.moderate())


@pytest.fixture
def permissive_validator() -> SafetyValidator:
    """Validator built from the permissive preset."""
    return SafetyValidator(SafetyConfig.permissive())


@pytest.fixture
def sample_config_yaml() -> str:
    """Return a safety config YAML with a custom pattern and an allowlist."""
    return """
safety_level: strict
max_command_length: 2000
custom_patterns:
  - pattern: "deploy.*production"
    risk_level: high
    description: "Production deployment"
allowlist_patterns:
  - "^ls( |$)"
"""


@pytest.fixture
def sample_config_file(temp_dir: Path, sample_config_yaml: str) -> Path:
    """Write the sample config YAML to disk."""
    path = temp_dir / "shellguard.yaml"
    path.write_text(sample_config_yaml)
    return path
