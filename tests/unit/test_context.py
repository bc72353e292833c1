"""
Unit tests for quote-context detection.

Tests cover:
- Matches outside, inside and after quoted literals
- Escaped quotes
- Multiple occurrences of one pattern
- The per-command quote index
- The documented limitations of the heuristic
"""

import re

from shellguard.safety.context import (
    QuoteIndex,
    is_in_executable_context,
    matches_in_executable_context,
)

RM_ROOT = re.compile(r"rm\s+-rf\s+/")


class TestIsInExecutableContext:
    """Tests for the position-level check."""

    def test_start_of_command(self) -> None:
        """Position 0 is always executable."""
        assert is_in_executable_context("rm -rf /", 0)

    def test_inside_single_quotes(self) -> None:
        """An odd number of single quotes before the position means quoted."""
        command = "echo 'rm -rf /'"
        assert not is_in_executable_context(command, command.index("rm"))

    def test_inside_double_quotes(self) -> None:
        """An odd number of double quotes before the position means quoted."""
        command = 'echo "rm -rf /"'
        assert not is_in_executable_context(command, command.index("rm"))

    def test_after_closed_quotes(self) -> None:
        """Balanced quotes before the position mean executable."""
        command = "echo 'hi'; rm -rf /"
        assert is_in_executable_context(command, command.index("rm"))

    def test_escaped_quote_not_counted(self) -> None:
        """A backslash-escaped quote does not open a literal."""
        command = "echo \\' ; rm -rf /"
        assert is_in_executable_context(command, command.index("rm"))

    def test_escaped_double_quote_not_counted(self) -> None:
        """Escaped double quotes are ignored too."""
        command = 'echo \\" ; rm -rf /'
        assert is_in_executable_context(command, command.index("rm"))


class TestMatchesInExecutableContext:
    """Tests for the pattern-level check."""

    def test_no_match(self) -> None:
        """No occurrence means no live match."""
        assert not matches_in_executable_context("ls -la", RM_ROOT)

    def test_plain_match(self) -> None:
        """An unquoted occurrence is live."""
        assert matches_in_executable_context("rm -rf /", RM_ROOT)

    def test_quoted_only(self) -> None:
        """Text written to a script is not executed."""
        assert not matches_in_executable_context("echo 'rm -rf /' > script.sh", RM_ROOT)

    def test_quoted_then_live(self) -> None:
        """A later unquoted occurrence is still found."""
        assert matches_in_executable_context("echo 'rm -rf /'; rm -rf /", RM_ROOT)

    def test_git_commit_message(self) -> None:
        """Dangerous text in a commit message is ignored."""
        assert not matches_in_executable_context('git commit -m "fix rm -rf / bug"', RM_ROOT)


class TestDocumentedLimitations:
    """The heuristic is not a shell lexer; these behaviors are kept on purpose."""

    def test_command_substitution_in_double_quotes(self) -> None:
        """Command substitution inside double quotes counts as quoted text."""
        assert not matches_in_executable_context('echo "$(rm -rf /)"', RM_ROOT)

    def test_apostrophe_inside_double_quotes(self) -> None:
        """An apostrophe inside a double-quoted string skews the single count."""
        command = "echo \"it's\"; rm -rf /"
        assert not matches_in_executable_context(command, RM_ROOT)

    def test_later_live_occurrence_swallowed_by_greedy_pattern(self) -> None:
        """A `.*` match starting in quotes runs over the live occurrence after it."""
        greedy = re.compile(r"mv\s+.*/etc")
        assert not matches_in_executable_context("echo 'mv a'; mv b /etc/passwd", greedy)
        assert matches_in_executable_context("mv b /etc/passwd", greedy)


class TestQuoteIndex:
    """Tests for the quote positions computed once per command."""

    def test_agrees_with_prefix_count_at_every_position(self) -> None:
        """Lookups equal counting quotes in the text before each position."""
        command = "echo \"it's\" 'a \\' b' \\\" \"c\" ; rm -rf / 'x"
        quotes = QuoteIndex(command)
        for position in range(len(command) + 1):
            prefix = command[:position]
            single = len(re.findall(r"(?<!\\)'", prefix))
            double = len(re.findall(r'(?<!\\)"', prefix))
            expected = single % 2 == 0 and double % 2 == 0
            assert quotes.is_executable(position) is expected, position

    def test_quote_at_position_not_counted(self) -> None:
        """A quote opening at the position itself does not quote it."""
        quotes = QuoteIndex("'rm -rf /'")
        assert quotes.is_executable(0)
        assert not quotes.is_executable(1)

    def test_shared_index(self) -> None:
        """One index serves several patterns over the same command."""
        command = "echo 'rm -rf /'; chmod 777 /"
        quotes = QuoteIndex(command)
        assert not matches_in_executable_context(command, RM_ROOT, quotes)
        assert matches_in_executable_context(command, re.compile(r"chmod\s+777\s+/"), quotes)

    def test_many_quoted_occurrences(self) -> None:
        """Hundreds of quoted occurrences are all rejected."""
        command = "'" + "rm -rf / " * 500
        assert not matches_in_executable_context(command, RM_ROOT)
