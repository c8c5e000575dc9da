"""VT100 emulation for a pane using pyte.

Wraps a :class:`pyte.HistoryScreen` so panes keep scrollback and can be
browsed in scroll mode, and converts the screen buffer to Rich text for
rendering.

Terminology:
- cols = WIDTH, rows = HEIGHT
- pyte uses columns (width) and lines (height)
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional, Tuple

import pyte
from rich.style import Style
from rich.text import Text

SCROLLBACK_LINES = 1000

# pyte colour names that Rich spells differently
_COLOR_ALIASES = {"brown": "yellow"}
_HEX_DIGITS = set("0123456789abcdefABCDEF")


def _rich_color(value: str) -> Optional[str]:
    if not value or value == "default":
        return None
    if len(value) == 6 and set(value) <= _HEX_DIGITS:
        return f"#{value}"
    bright = value.startswith("bright")
    base = value[len("bright"):] if bright else value
    base = _COLOR_ALIASES.get(base, base)
    if base not in ("black", "red", "green", "yellow", "blue", "magenta", "cyan", "white"):
        return None
    return f"bright_{base}" if bright else base


@lru_cache(maxsize=1024)
def _style(fg: str, bg: str, bold: bool, italics: bool, underscore: bool, reverse: bool) -> Style:
    return Style(
        color=_rich_color(fg),
        bgcolor=_rich_color(bg),
        bold=bold or None,
        italic=italics or None,
        underline=underscore or None,
        reverse=reverse or None,
    )


class EmulatedTerminal:
    def __init__(self, cols: int = 80, rows: int = 24, history: int = SCROLLBACK_LINES) -> None:
        self.cols = cols
        self.rows = rows
        # pyte.HistoryScreen(columns, lines) - width first
        self._screen = pyte.HistoryScreen(columns=cols, lines=rows, history=history, ratio=0.5)
        self._stream = pyte.ByteStream(self._screen)

    def feed(self, data: bytes) -> None:
        self._stream.feed(data)

    def write(self, text: str) -> None:
        """Display text locally, as if the process had printed it."""
        self.feed(text.encode("utf-8"))

    def text(self) -> str:
        return "\n".join(line.rstrip() for line in self._screen.display)

    @property
    def cursor(self) -> Tuple[int, int]:
        return self._screen.cursor.x, self._screen.cursor.y

    @property
    def cursor_visible(self) -> bool:
        return not self._screen.cursor.hidden

    def render_lines(self, show_cursor: bool = False) -> List[Text]:
        """Return the visible screen as Rich text, one ``Text`` per row."""
        screen = self._screen
        cx, cy = self.cursor
        draw_cursor = show_cursor and self.cursor_visible and not self.is_scrolled
        lines: List[Text] = []
        for y in range(screen.lines):
            row = screen.buffer[y]
            line = Text(no_wrap=True, end="")
            run: List[str] = []
            run_key = None
            for x in range(screen.columns):
                char = row[x]
                key = (char.fg, char.bg, char.bold, char.italics, char.underscore,
                       char.reverse != (draw_cursor and x == cx and y == cy))
                if key != run_key and run:
                    line.append("".join(run), _style(*run_key))
                    run = []
                run_key = key
                run.append(char.data)
            if run:
                line.append("".join(run), _style(*run_key))
            lines.append(line)
        return lines

    # --- Scrollback --------------------------------------------------

    @property
    def is_scrolled(self) -> bool:
        history = self._screen.history
        return history.position < history.size and bool(history.bottom)

    def scroll_up(self) -> None:
        self._screen.prev_page()

    def scroll_down(self) -> None:
        self._screen.next_page()

    def scroll_top(self) -> None:
        history = self._screen.history
        while history.top:
            before = len(history.top)
            self._screen.prev_page()
            if len(history.top) == before:
                break

    def reset_scroll(self) -> None:
        """Return to the live screen (bottom of the scrollback)."""
        history = self._screen.history
        while history.bottom:
            before = len(history.bottom)
            self._screen.next_page()
            if len(history.bottom) == before:
                break

    def resize(self, cols: int, rows: int) -> None:
        self.cols = cols
        self.rows = rows
        # pyte.Screen.resize(lines, columns) - height first
        self._screen.resize(lines=rows, columns=cols)
