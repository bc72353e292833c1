"""
CLI entry point for shellguard.

This module provides the Typer-based command-line interface for shellguard.

Commands:
    check       Validate a single command
    batch       Validate every command in a file (one per line)
    patterns    List the builtin dangerous-command catalogue
    doctor      Certify the builtin catalogue and the environment

Exit codes for check / batch:
    0  every command allowed
    1  at least one command blocked
    2  configuration or usage error
    3  nothing blocked, but at least one command needs confirmation

Architecture Note:
    The CLI is intentionally thin - it parses arguments, builds a
    SafetyValidator and renders results. All decisions live in the engine.
"""

import json
import logging
import sys
import traceback
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from shellguard import __version__
from shellguard.errors import ShellguardError
from shellguard.safety import SafetyValidator, get_patterns_by_risk, validate_patterns
from shellguard.schema import (
    RiskLevel,
    SafetyLevel,
    ShellType,
    ValidationResult,
    resolve_safety_config,
)

EXIT_ALLOWED = 0
EXIT_BLOCKED = 1
EXIT_ERROR = 2
EXIT_NEEDS_CONFIRMATION = 3

# Initialize Typer app with metadata
app = typer.Typer(
    name="shellguard",
    help="Classify shell commands by risk and decide whether they may run.",
    add_completion=False,
    no_args_is_help=True,
)

# Rich console for formatted output
console = Console()

_RISK_STYLES = {
    RiskLevel.SAFE: "green",
    RiskLevel.MODERATE: "yellow",
    RiskLevel.HIGH: "bright_red",
    RiskLevel.CRITICAL: "bold red",
}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]shellguard[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    shellguard - Safety validation for shell commands.

    Detects destructive, privilege-escalating and remote-execution patterns
    and applies a strict, moderate or permissive policy to them.
    """
    pass


# Options shared by check and batch
ShellOption = Annotated[
    Optional[str],
    typer.Option(
        "--shell",
        "-s",
        help="Target shell (bash, zsh, fish, sh, powershell, cmd). Detected from the environment if omitted.",
    ),
]
SafetyOption = Annotated[
    Optional[str],
    typer.Option(
        "--safety",
        help="Safety level: strict, moderate or permissive. Overrides config and environment.",
    ),
]
ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help="Path to a YAML safety config.",
        exists=True,
        readable=True,
        resolve_path=True,
    ),
]
JsonOption = Annotated[
    bool,
    typer.Option(
        "--json",
        help="Output results in JSON format.",
    ),
]
VerboseOption = Annotated[
    bool,
    typer.Option(
        "--verbose",
        "-v",
        help="Log engine decisions to stderr.",
    ),
]
DebugOption = Annotated[
    bool,
    typer.Option(
        "--debug",
        help="Show full tracebacks on errors.",
    ),
]


@app.command()
def check(
    command: Annotated[
        str,
        typer.Argument(help="The shell command to validate."),
    ],
    shell: ShellOption = None,
    safety: SafetyOption = None,
    config_path: ConfigOption = None,
    json_output: JsonOption = False,
    verbose: VerboseOption = False,
    debug: DebugOption = False,
) -> None:
    """
    Validate a single command.

    Example:
        $ shellguard check "sudo rm -rf /" --safety strict --shell bash
    """
    _configure_logging(verbose)
    validator = _build_validator(config_path, safety, json_output, debug)
    shell_type = _resolve_shell(shell)

    result = validator.validate_command(command, shell_type)

    if json_output:
        print(json.dumps(_result_to_json(command, result, validator.safety_level), indent=2))
    else:
        _display_result(command, result, shell_type, validator.safety_level)

    raise typer.Exit(code=_exit_code([result], validator.safety_level))


@app.command()
def batch(
    commands_file: Annotated[
        Path,
        typer.Argument(
            help="File with one command per line ('#' lines and blank lines are skipped).",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    shell: ShellOption = None,
    safety: SafetyOption = None,
    config_path: ConfigOption = None,
    json_output: JsonOption = False,
    verbose: VerboseOption = False,
    debug: DebugOption = False,
) -> None:
    """
    Validate every command in a file.

    Example:
        $ shellguard batch commands.txt --safety moderate --json
    """
    _configure_logging(verbose)
    validator = _build_validator(config_path, safety, json_output, debug)
    shell_type = _resolve_shell(shell)

    commands = [
        line.strip()
        for line in commands_file.read_text().splitlines()
        if line.strip() and not line.lstrip().startswith("#")
    ]
    results = validator.validate_batch(commands, shell_type)

    if json_output:
        output = {
            "shell": shell_type.value,
            "safety_level": validator.safety_level.value,
            "results": [
                _result_to_json(command, result, validator.safety_level)
                for command, result in zip(commands, results)
            ],
        }
        print(json.dumps(output, indent=2))
    else:
        _display_batch(commands, results, validator.safety_level)

    raise typer.Exit(code=_exit_code(results, validator.safety_level))


@app.command()
def patterns(
    shell: Annotated[
        Optional[str],
        typer.Option(
            "--shell",
            "-s",
            help="Only show patterns that apply to this shell.",
        ),
    ] = None,
    min_risk: Annotated[
        str,
        typer.Option(
            "--min-risk",
            help="Only show patterns at or above this risk (safe, moderate, high, critical).",
        ),
    ] = "safe",
    json_output: JsonOption = False,
) -> None:
    """
    List the builtin dangerous-command patterns.

    Example:
        $ shellguard patterns --shell powershell --min-risk high
    """
    try:
        risk = RiskLevel(min_risk)
    except ValueError:
        console.print(f"[red]Unknown risk level: {min_risk}[/red]")
        raise typer.Exit(code=EXIT_ERROR)

    selected = get_patterns_by_risk(risk)
    if shell is not None:
        shell_type = ShellType.parse(shell)
        selected = [p for p in selected if p.applies_to(shell_type)]

    if json_output:
        print(json.dumps([p.model_dump(mode="json") for p in selected], indent=2))
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Risk", width=9)
    table.add_column("Shell", style="dim", width=10)
    table.add_column("Description")
    table.add_column("Pattern", style="cyan")

    for pattern in selected:
        style = _RISK_STYLES[pattern.risk_level]
        table.add_row(
            f"[{style}]{pattern.risk_level.display_name}[/{style}]",
            pattern.shell_scope.value if pattern.shell_scope else "any",
            escape(pattern.description),
            escape(pattern.pattern),
        )

    console.print(table)
    console.print(f"[dim]{len(selected)} pattern(s)[/dim]")


@app.command()
def doctor(
    json_output: JsonOption = False,
) -> None:
    """
    Check the builtin catalogue and the environment.

    Verifies that:
    - Python version is 3.11+
    - Every builtin pattern compiles
    - The current shell can be detected

    Example:
        $ shellguard doctor
    """
    checks = []

    py_version = sys.version_info
    py_ok = py_version >= (3, 11)
    checks.append({
        "name": "Python version",
        "ok": py_ok,
        "value": f"{py_version.major}.{py_version.minor}.{py_version.micro}",
        "message": "OK" if py_ok else "Requires Python 3.11+",
    })

    pattern_errors = validate_patterns()
    checks.append({
        "name": "Builtin patterns",
        "ok": not pattern_errors,
        "value": f"{len(get_patterns_by_risk(RiskLevel.SAFE))} patterns",
        "message": "All patterns compile" if not pattern_errors else "; ".join(pattern_errors),
    })

    detected = ShellType.detect()
    checks.append({
        "name": "Shell detection",
        "ok": True,
        "value": detected.value,
        "message": "OK" if detected != ShellType.UNKNOWN else "Unknown shell; only unscoped patterns apply",
    })

    all_ok = all(c["ok"] for c in checks)

    if json_output:
        print(json.dumps({"ok": all_ok, "checks": checks}, indent=2))
    else:
        for c in checks:
            icon = "[green]✓[/green]" if c["ok"] else "[red]✗[/red]"
            console.print(f"{icon} {c['name']}: {escape(c['value'])} [dim]({escape(c['message'])})[/dim]")

    raise typer.Exit(code=0 if all_ok else 1)


# =============================================================================
# Helpers
# =============================================================================


def _configure_logging(verbose: bool) -> None:
    """Route shellguard log records to stderr through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _build_validator(
    config_path: Path | None,
    safety: str | None,
    json_output: bool,
    debug: bool,
) -> SafetyValidator:
    """Resolve the config and build a validator, exiting on config errors."""
    try:
        config = resolve_safety_config(config_path, safety_level=safety)
        return SafetyValidator(config)
    except ShellguardError as e:
        if json_output:
            _output_json_error(e, debug)
        else:
            console.print(f"[red]Configuration error: {escape(str(e))}[/red]")
            if debug:
                console.print(f"[dim]{traceback.format_exc()}[/dim]")
        raise typer.Exit(code=EXIT_ERROR)


def _resolve_shell(shell: str | None) -> ShellType:
    if shell is None:
        return ShellType.detect()
    return ShellType.parse(shell)


def _is_blocked(result: ValidationResult, level: SafetyLevel) -> bool:
    """
    Whether a result means "refuse" rather than "ask".

    Refusals that need no confirmation (the length limit) count as blocked.
    """
    if result.allowed:
        return False
    return not result.requires_confirmation or result.risk_level.is_blocked(level)


def _verdict(result: ValidationResult, level: SafetyLevel) -> str:
    if result.allowed:
        return "allowed"
    if _is_blocked(result, level):
        return "blocked"
    return "needs_confirmation"


def _exit_code(results: list[ValidationResult], level: SafetyLevel) -> int:
    verdicts = {_verdict(r, level) for r in results}
    if "blocked" in verdicts:
        return EXIT_BLOCKED
    if "needs_confirmation" in verdicts:
        return EXIT_NEEDS_CONFIRMATION
    return EXIT_ALLOWED


def _result_to_json(command: str, result: ValidationResult, level: SafetyLevel) -> dict:
    return {
        "command": command,
        "verdict": _verdict(result, level),
        **result.model_dump(mode="json"),
    }


_VERDICT_MARKUP = {
    "allowed": "[green]allowed[/green]",
    "needs_confirmation": "[yellow]needs confirmation[/yellow]",
    "blocked": "[red]blocked[/red]",
}


def _display_result(
    command: str,
    result: ValidationResult,
    shell: ShellType,
    level: SafetyLevel,
) -> None:
    """Display a single verdict in a formatted way."""
    style = _RISK_STYLES[result.risk_level]
    console.print(f"[bold]{escape(command)}[/bold] [dim]({shell.value}, {level.value})[/dim]")
    console.print(
        f"  Verdict: {_VERDICT_MARKUP[_verdict(result, level)]}  "
        f"Risk: [{style}]{result.risk_level.display_name}[/{style}]  "
        f"Confidence: {result.confidence_score:.2f}"
    )
    console.print(f"  {escape(result.explanation)}")
    for warning in result.warnings:
        console.print(f"  [dim]- {escape(warning)}[/dim]")


def _display_batch(
    commands: list[str],
    results: list[ValidationResult],
    level: SafetyLevel,
) -> None:
    """Display batch verdicts as a table."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("#", style="dim", width=3)
    table.add_column("Command", style="cyan")
    table.add_column("Risk", width=9)
    table.add_column("Verdict", width=18)
    table.add_column("Details")

    for index, (command, result) in enumerate(zip(commands, results), start=1):
        style = _RISK_STYLES[result.risk_level]
        display_command = command if len(command) <= 50 else command[:47] + "..."
        table.add_row(
            str(index),
            escape(display_command),
            f"[{style}]{result.risk_level.display_name}[/{style}]",
            _VERDICT_MARKUP[_verdict(result, level)],
            escape(result.explanation),
        )

    console.print(table)
    verdicts = [_verdict(r, level) for r in results]
    console.print(
        f"[dim]Total: {len(results)} | Allowed: {verdicts.count('allowed')} "
        f"| Needs confirmation: {verdicts.count('needs_confirmation')} "
        f"| Blocked: {verdicts.count('blocked')}[/dim]"
    )


def _output_json_error(error: ShellguardError, include_traceback: bool = False) -> None:
    """Output an error in JSON format."""
    output = {"error": True, **error.to_dict()}
    if include_traceback:
        output["traceback"] = traceback.format_exc()
    print(json.dumps(output, indent=2, default=str))


if __name__ == "__main__":
    app()
