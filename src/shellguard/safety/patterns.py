"""
Builtin dangerous-command pattern database.

BUILTIN_PATTERNS is a module-level tuple and is never mutated. Its compiled
form is built lazily on first use and then shared read-only by every
validator in the process.

Patterns are Python `re` sources, matched case-sensitively with re.search
semantics (unanchored unless the source anchors itself).

`re` backtracks, so a search must stay linear in the command length:
    - No unbounded `.*` between tokens; use _gap(), which stops at the next
      occurrence of the pattern's own command word, so scans started from
      different occurrences never cover the same text
    - A whitespace run in front of a gap is possessive (`\\s++`)
    - When a second gap follows, the first middle token is matched inside
      an atomic group, committing to its first occurrence
"""

import re
from functools import lru_cache

from shellguard.safety.compiler import CompiledPattern, compile_patterns
from shellguard.schema import DangerPattern, RiskLevel, ShellType


def _p(
    pattern: str,
    risk_level: RiskLevel,
    description: str,
    shell_scope: ShellType | None = None,
) -> DangerPattern:
    return DangerPattern(
        pattern=pattern,
        risk_level=risk_level,
        description=description,
        shell_scope=shell_scope,
    )


def _gap(words: str) -> str:
    """Shortest run on one line that does not reach another `words` command."""
    return rf"(?:(?!(?:{words})\s)[^\n])*?"


CRITICAL = RiskLevel.CRITICAL
HIGH = RiskLevel.HIGH
MODERATE = RiskLevel.MODERATE


BUILTIN_PATTERNS: tuple[DangerPattern, ...] = (
    # -------------------------------------------------------------------------
    # Filesystem destruction
    # -------------------------------------------------------------------------
    _p(r"rm\s+(-[rfRF]*\s+)*+(/|~|\$HOME|/\*|~/\*)", CRITICAL,
       "Recursive deletion of root or home directory"),
    _p(r"rm\s+-rf\s+/", CRITICAL,
       "Force recursive deletion from root"),
    _p(r"rm\s+-rf\s+--no-preserve-root\s+/", CRITICAL,
       "Bypass root protection and delete everything"),
    _p(r"rm\s+--recursive\s+--force\s+/", CRITICAL,
       "Force recursive deletion from root (long options)"),
    # -------------------------------------------------------------------------
    # Disk-level destruction
    # -------------------------------------------------------------------------
    _p(rf"dd\s++(?>{_gap('dd')}if=/dev/(zero|random|urandom))"
       rf"{_gap('dd')}of=/dev/(sd|hd|nvme)", CRITICAL,
       "Overwrite disk with random data"),
    _p(r"mkfs\.\w+\s+/dev/(sd|hd|nvme)", CRITICAL,
       "Format disk destroying all data"),
    _p(r"mkswap\s+/dev/(sd|hd|nvme)", CRITICAL,
       "Format disk partition as swap"),
    _p(r">\s*/dev/sd[a-z]", CRITICAL,
       "Direct write to disk device"),
    _p(r"shred\s+-[uvz]*\s+/dev/(sd|hd|nvme)", CRITICAL,
       "Securely delete disk device"),
    # -------------------------------------------------------------------------
    # Fork bombs
    # -------------------------------------------------------------------------
    _p(r":\(\)\s*\{\s*:\s*\|\s*:\s*&\s*\}\s*;\s*:", CRITICAL,
       "Fork bomb - exponential process creation", ShellType.BASH),
    _p(r"\|\s*&\s*\|", CRITICAL,
       "Potential fork bomb pattern"),
    # -------------------------------------------------------------------------
    # System directories and permissions
    # -------------------------------------------------------------------------
    _p(rf"(rm|mv|chmod|chown)\s++{_gap('rm|mv|chmod|chown')}"
       r"(/bin|/sbin|/usr/bin|/usr/sbin|/etc)", HIGH,
       "Modification of critical system directories"),
    _p(r"chmod\s+777\s+/", HIGH,
       "Recursive permission change from root"),
    _p(r"chmod\s+(-R|--recursive)\s+777\s+/", HIGH,
       "Recursive world-writable permissions from root"),
    # -------------------------------------------------------------------------
    # Privilege escalation
    # -------------------------------------------------------------------------
    _p(r"sudo\s+su\s*$", HIGH,
       "Switch to root user without specific command"),
    _p(rf"sudo\s++{_gap('sudo')}chmod\s+u\+s", HIGH,
       "Adding setuid bit with elevated privileges"),
    _p(r"sudo\s+(systemctl|service)\s+(restart|stop|disable)", HIGH,
       "Modify system services with elevated privileges"),
    _p(r"sudo\s+rm\s", HIGH,
       "Delete files with elevated privileges"),
    # -------------------------------------------------------------------------
    # Download and execute
    # -------------------------------------------------------------------------
    _p(rf"(curl|wget)\s++{_gap('curl|wget')}\|\s*(bash|sh|zsh|fish)", HIGH,
       "Download and execute remote script without inspection"),
    _p(rf"(curl|wget)\s++{_gap('curl|wget')}\|\s*sudo\s+(bash|sh)", CRITICAL,
       "Download and execute remote script with root privileges"),
    # -------------------------------------------------------------------------
    # Network backdoors and exfiltration
    # -------------------------------------------------------------------------
    _p(rf"nc\s++(?>{_gap('nc')}-[a-km-z]*+l[a-z]*+\s){_gap('nc')}-[a-z]*e", CRITICAL,
       "Netcat bind shell - creates network backdoor"),
    _p(r"nc\s+-[a-z]*e\s+/bin/(ba)?sh", CRITICAL,
       "Netcat shell binding"),
    _p(r"iptables\s+-F", MODERATE,
       "Flush all firewall rules"),
    _p(r"ufw\s+disable", MODERATE,
       "Disable firewall"),
    _p(r"ssh\s+[^\s]+@[^\s]+", MODERATE,
       "SSH connection to remote server"),
    _p(r"scp\s+", MODERATE,
       "Secure copy to/from remote server"),
    # -------------------------------------------------------------------------
    # Package and process management
    # -------------------------------------------------------------------------
    _p(rf"(apt|yum|dnf)\s+remove\s++{_gap('apt|yum|dnf')}--force", MODERATE,
       "Force removal of packages bypassing dependencies"),
    _p(rf"pip\s+install\s++{_gap('pip')}--break-system-packages", MODERATE,
       "Install Python packages bypassing system protections"),
    _p(r"pip\s+install\s+--user", MODERATE,
       "Installing Python packages in user directory"),
    _p(r"kill\s+-9\s+(-1|1)\s*$", MODERATE,
       "Force kill all processes or init"),
    _p(r"killall\s+-9\s+\w+", MODERATE,
       "Force kill all processes by name"),
    _p(r"kill\s+-9\s+\d+", MODERATE,
       "Force kill specific process by PID"),
    _p(rf"docker\s+run\s++{_gap('docker')}--privileged", HIGH,
       "Docker container with full host access"),
    # -------------------------------------------------------------------------
    # System configuration corruption
    # -------------------------------------------------------------------------
    _p(r">\s*/etc/", HIGH,
       "Redirect output to system configuration file"),
    _p(rf"(echo|cat|printf)\s++{_gap('echo|cat|printf')}>\s*/etc/", HIGH,
       "Write to system configuration directory"),
    _p(r"crontab\s+-r", HIGH,
       "Remove all cron jobs"),
    _p(rf"\(crontab\s+-l{_gap('crontab')};\s*echo", HIGH,
       "Add malicious cron job"),
    _p(r"export\s+PATH=", MODERATE,
       "Modify PATH environment variable"),
    _p(r"alias\s+(rm|mv|cp)=", MODERATE,
       "Override critical command with alias"),
    # -------------------------------------------------------------------------
    # Interpreters shelling out
    # -------------------------------------------------------------------------
    _p(rf"python\s+-c\s++(?>{_gap('python')}os\.system)"
       rf"{_gap('python')}rm\s+-rf", CRITICAL,
       "Python executing recursive deletion"),
    _p(rf"(python|perl|ruby)\s+-[ec]\s++{_gap('python|perl|ruby')}system\s*\(", HIGH,
       "Script language executing shell commands"),
    # -------------------------------------------------------------------------
    # Borderline file operations
    # -------------------------------------------------------------------------
    _p(r"rm\s+[^-\s][^\s]*\.(txt|doc|pdf|xlsx|pptx|zip|tar|sql|bak)", MODERATE,
       "Deleting important file types"),
    _p(r"chmod\s+[+\-]x\s+", MODERATE,
       "Making files executable"),
    _p(r"chmod\s+[0-7]{3,4}\s+", MODERATE,
       "Changing file permissions"),
    _p(r"chown\s+[^\s]+\s+", MODERATE,
       "Changing file ownership"),
    # -------------------------------------------------------------------------
    # Windows, WSL and PowerShell
    # -------------------------------------------------------------------------
    _p(r"rm\s+-r[f]*\s+[A-Z]:\\", CRITICAL,
       "Recursive deletion of Windows drive root", ShellType.BASH),
    _p(r"rm\s+-r[f]*\s+[A-Z]:[/\\]", CRITICAL,
       "Recursive deletion of Windows drive root (with backslash)"),
    _p(r"Remove-Item\s+-Recurse\s+-Force\s+[A-Z]:\\", CRITICAL,
       "Recursive deletion of Windows drive root", ShellType.POWERSHELL),
    _p(rf"Remove-Item\s++{_gap('Remove-Item')}-Force\s+-Recurse", HIGH,
       "Force recursive deletion in PowerShell", ShellType.POWERSHELL),
    _p(r"Set-ExecutionPolicy\s+Unrestricted", HIGH,
       "Disable PowerShell execution policy protection", ShellType.POWERSHELL),
    _p(r"Format-Volume\s+", CRITICAL,
       "Format disk volume from PowerShell", ShellType.POWERSHELL),
    _p(r"del\s+/[fFsS]\s+", CRITICAL,
       "Windows delete with force/subdirectory flags"),
    _p(rf"del\s++{_gap('del')}C:[/\\]", CRITICAL,
       "Windows delete on C drive root"),
    _p(r"(rd|rmdir)\s+/[sS]\s+(/[qQ]\s+)?[A-Z]:\\", CRITICAL,
       "Recursive deletion of Windows drive root", ShellType.CMD),
    _p(r"format\s+[A-Z]:", CRITICAL,
       "Format disk drive"),
)


def validate_patterns(patterns: tuple[DangerPattern, ...] = BUILTIN_PATTERNS) -> list[str]:
    """
    Try to compile every pattern and report the ones that fail.

    Returns:
        One message per pattern that does not compile; empty when all do
    """
    errors: list[str] = []
    for pattern in patterns:
        try:
            re.compile(pattern.pattern)
        except re.error as e:
            errors.append(f"Pattern '{pattern.pattern}' failed to compile: {e}")
    return errors


def get_patterns_for_shell(shell: ShellType) -> list[DangerPattern]:
    """Builtin patterns that apply to the given shell."""
    return [p for p in BUILTIN_PATTERNS if p.applies_to(shell)]


def get_patterns_by_risk(min_risk: RiskLevel) -> list[DangerPattern]:
    """Builtin patterns at or above the given risk level."""
    return [p for p in BUILTIN_PATTERNS if p.risk_level >= min_risk]


@lru_cache(maxsize=1)
def get_compiled_patterns() -> tuple[CompiledPattern, ...]:
    """The builtin table compiled once per process."""
    return compile_patterns(BUILTIN_PATTERNS)


def get_compiled_patterns_for_shell(shell: ShellType) -> list[CompiledPattern]:
    """Compiled builtin patterns that apply to the given shell."""
    return [p for p in get_compiled_patterns() if p.applies_to(shell)]
