from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence

from rich.text import Text
from textual.events import Key
from textual.widget import Widget

from .layout import Rect
from .surface import EventCallback, PaneEvent
from .term_emulator import EmulatedTerminal
from .terminal_runner import TerminalRunner

Post = Callable[..., None]
KeyHandler = Callable[[str, Optional[str]], None]

_KEY_SEQUENCES = {
    "enter": b"\r",
    "backspace": b"\x7f",
    "tab": b"\t",
    "shift+tab": b"\x1b[Z",
    "escape": b"\x1b",
    "left": b"\x1b[D",
    "right": b"\x1b[C",
    "up": b"\x1b[A",
    "down": b"\x1b[B",
    "home": b"\x1b[H",
    "end": b"\x1b[F",
    "pageup": b"\x1b[5~",
    "pagedown": b"\x1b[6~",
    "delete": b"\x1b[3~",
    "insert": b"\x1b[2~",
    "f1": b"\x1bOP",
    "f2": b"\x1bOQ",
    "f3": b"\x1bOR",
    "f4": b"\x1bOS",
}


def key_to_sequence(key: str, character: Optional[str]) -> Optional[bytes]:
    """Translate a Textual key event into bytes for the PTY."""
    if key in _KEY_SEQUENCES:
        return _KEY_SEQUENCES[key]
    if character and len(character) == 1:
        return character.encode("utf-8")
    if key.startswith("ctrl+") and len(key) == 6 and key[5].isalpha():
        return bytes([ord(key[5].lower()) & 0x1F])
    return None


class PaneView(Widget):
    """Bordered terminal pane: a pyte screen fed by a PTY process.

    Keystrokes are not written to the process directly; they are handed
    to the key handler (the input multiplexer), which decides whether
    they come back through :meth:`send_key`.
    """

    DEFAULT_CSS = """
    PaneView {
        border: round $foreground;
        border-title-align: left;
        padding: 0;
    }
    PaneView:focus {
        border: round green;
    }
    PaneView.-scrolling {
        border: round red;
    }
    """

    can_focus = True

    def __init__(self, rect: Rect, label: str, *, id: Optional[str] = None) -> None:
        super().__init__(id=id)
        self.rect = rect
        self.label = label
        self.emulator = EmulatedTerminal(cols=max(1, rect.width - 2), rows=max(1, rect.height - 2))
        self.runner: Optional[TerminalRunner] = None
        self.input_enabled = True
        self.scrolling = False
        self._key_handler: Optional[KeyHandler] = None
        self._listeners: Dict[PaneEvent, List[EventCallback]] = {}

    # --- Events ------------------------------------------------------

    def add_listener(self, event: PaneEvent, callback: EventCallback) -> None:
        self._listeners.setdefault(event, []).append(callback)

    def emit(self, event: PaneEvent, *args) -> None:
        for callback in list(self._listeners.get(event, ())):
            callback(*args)

    def set_key_handler(self, handler: KeyHandler) -> None:
        self._key_handler = handler

    def on_mount(self) -> None:
        self.border_title = self.label

    def set_label(self, text: str) -> None:
        self.label = text
        if self.is_mounted:
            self.border_title = text

    def on_focus(self) -> None:
        self.emit(PaneEvent.FOCUS)

    def on_blur(self) -> None:
        self.emit(PaneEvent.BLUR)

    def check_consume_key(self, key: str, character: Optional[str]) -> bool:
        # Every key belongs to the multiplexer, never to app bindings
        return True

    def on_key(self, event: Key) -> None:
        if self._key_handler is None:
            return
        event.stop()
        event.prevent_default()
        self._key_handler(event.key, event.character)

    def on_resize(self) -> None:
        cols, rows = self.content_size.width, self.content_size.height
        if cols <= 0 or rows <= 0 or (cols, rows) == (self.emulator.cols, self.emulator.rows):
            return
        self.emulator.resize(cols=cols, rows=rows)
        if self.runner is not None:
            # PTY uses (rows, cols)
            self.runner.set_winsize(rows=rows, cols=cols)

    # --- Process -----------------------------------------------------

    def start_process(self, shell: str, args: Sequence[str], post: Post) -> None:
        """Run ``shell args...`` in a fresh PTY, replacing any previous one.

        ``post`` hands reader-thread callbacks over to the event loop.

        Raises:
            OSError: when the PTY or process cannot be created.
        """
        self.close()
        runner = TerminalRunner(
            name=self.id or "pane",
            command=[shell, *args],
            cols=self.emulator.cols,
            rows=self.emulator.rows,
        )
        runner.on_output(lambda data: post(self.feed, data))
        runner.on_exit(lambda code: post(self._process_exited, runner, code))
        self.runner = runner
        runner.start()

    def _process_exited(self, runner: TerminalRunner, code: int) -> None:
        if runner is not self.runner:
            return
        self.emit(PaneEvent.EXIT, code)

    def close(self) -> None:
        if self.runner is not None:
            self.runner.close()
            self.runner = None

    # --- Output ------------------------------------------------------

    def feed(self, data: bytes) -> None:
        self.emulator.feed(data)
        self.refresh()

    def write(self, text: str) -> None:
        self.emulator.write(text)
        self.refresh()

    def render(self) -> Text:
        lines = self.emulator.render_lines(show_cursor=self.has_focus and self.input_enabled)
        return Text("\n", no_wrap=True).join(lines)

    # --- Input -------------------------------------------------------

    def inject(self, data: bytes) -> None:
        if self.runner is not None:
            self.runner.write(data)

    def send_key(self, key: str, character: Optional[str]) -> None:
        if self.scrolling:
            self._scroll_key(key)
            return
        if not self.input_enabled:
            return
        seq = key_to_sequence(key, character)
        if seq is not None:
            self.inject(seq)

    def _scroll_key(self, key: str) -> None:
        if key in ("up", "pageup"):
            self.emulator.scroll_up()
        elif key in ("down", "pagedown"):
            self.emulator.scroll_down()
        elif key == "home":
            self.emulator.scroll_top()
        else:
            self.reset_scroll()
            return
        self.refresh()

    def set_input_enabled(self, enabled: bool) -> None:
        self.input_enabled = enabled
        self.refresh()

    # --- Scroll mode -------------------------------------------------

    def enter_scroll_mode(self) -> None:
        if self.scrolling:
            return
        self.scrolling = True
        self.add_class("-scrolling")
        self.refresh()
        self.emit(PaneEvent.SCROLL_START)

    def reset_scroll(self) -> None:
        self.emulator.reset_scroll()
        self.refresh()
        if not self.scrolling:
            return
        self.scrolling = False
        self.remove_class("-scrolling")
        self.emit(PaneEvent.SCROLL_END)
