"""
Quote-context detection for pattern matches.

A dangerous pattern that only appears inside a string literal, such as
`echo 'rm -rf /' > script.sh`, is text rather than something the shell runs.
For every match we look at the part of the command before the match start
and count the single and double quotes that are not escaped with a
backslash. An odd count of either kind means the match sits inside an open
literal and is ignored.

The quote positions of a command are found once (QuoteIndex); each match
start is then looked up with a binary search, so checking many matches costs
no more than one scan of the command.

Known limitations of this heuristic (kept as-is, it is not a shell lexer):
    - Interleaved quote types ("it's") skew the counts
    - Here-documents are not recognized
    - ANSI-C quoting ($'...') is counted like plain single quotes
    - Command substitution inside double quotes ("$(rm -rf /)") is treated
      as quoted text even though the shell would execute it
    - Occurrences are non-overlapping (re.finditer), so a quoted match whose
      span runs over a later live occurrence hides it. Builtin patterns stop
      their gaps at the next occurrence of their own command word; a custom
      pattern written with `.*` does not
"""

import re
from bisect import bisect_left

_UNESCAPED_SINGLE_QUOTE = re.compile(r"(?<!\\)'")
_UNESCAPED_DOUBLE_QUOTE = re.compile(r'(?<!\\)"')


class QuoteIndex:
    """
    Positions of the unescaped quotes in one command.

    Usage:
        quotes = QuoteIndex(command)
        live = quotes.is_executable(match.start())
    """

    __slots__ = ("_single", "_double")

    def __init__(self, command: str) -> None:
        self._single = [m.start() for m in _UNESCAPED_SINGLE_QUOTE.finditer(command)]
        self._double = [m.start() for m in _UNESCAPED_DOUBLE_QUOTE.finditer(command)]

    def is_executable(self, position: int) -> bool:
        """Whether an even number of each quote kind precedes `position`."""
        single_quotes = bisect_left(self._single, position)
        double_quotes = bisect_left(self._double, position)
        return single_quotes % 2 == 0 and double_quotes % 2 == 0


def is_in_executable_context(command: str, position: int) -> bool:
    """
    Whether the character at `position` lies outside any open quote.

    Args:
        command: The full command string
        position: Index of the start of a match within `command`
    """
    return QuoteIndex(command).is_executable(position)


def matches_in_executable_context(
    command: str,
    regex: re.Pattern[str],
    quotes: QuoteIndex | None = None,
) -> bool:
    """
    Whether `regex` has at least one live (unquoted) match in `command`.

    Every non-overlapping occurrence is checked in turn. Pass a QuoteIndex
    built for `command` when checking several patterns against it.
    """
    for match in regex.finditer(command):
        if quotes is None:
            quotes = QuoteIndex(command)
        if quotes.is_executable(match.start()):
            return True
    return False
