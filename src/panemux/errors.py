"""Error taxonomy for panemux.

Every fatal condition derives from :class:`PanemuxError` so the CLI can
report it with a single handler and exit nonzero.
"""

from __future__ import annotations

from typing import Optional


class PanemuxError(Exception):
    """Base class for fatal panemux errors."""


class ParseError(PanemuxError):
    """Malformed layout specification.

    Carries the 1-based line/column and 0-based offset of the failure so
    callers can point at the offending input.
    """

    def __init__(
        self,
        message: str,
        line: int,
        column: int,
        offset: int,
        source: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column
        self.offset = offset
        self.source = source

    def __str__(self) -> str:
        return f"line {self.line} (column {self.column}): {self.message}"

    def excerpt(self) -> str:
        """Return the offending source line with a caret under the column."""
        if self.source is None:
            return ""
        lines = self.source.splitlines() or [""]
        index = min(self.line - 1, len(lines) - 1)
        text = lines[index].expandtabs(1)
        return f"{text}\n{' ' * (self.column - 1)}^"

    def describe(self) -> str:
        """Full multi-line diagnostic: position, message and excerpt."""
        excerpt = self.excerpt()
        return f"{self}\n{excerpt}" if excerpt else str(self)


class ConfigError(PanemuxError):
    """Fatal configuration problem detected during provisioning or layout."""


class ScreenTooSmallError(ConfigError):
    """A split requests more panes than there are cells available."""

    def __init__(self, length: int, count: int) -> None:
        super().__init__(
            f"screen too small: cannot divide {length} cells into {count} panes"
        )
        self.length = length
        self.count = count


class SpecSourceError(PanemuxError):
    """The specification file is missing or unreadable."""
