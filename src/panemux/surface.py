"""Capability interface to the terminal surface and process layer.

Parser, layout and the state machines only talk to panes through this
protocol, so any concrete TUI/PTY backend can be substituted. The Textual
implementation lives in :mod:`panemux.app`.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Optional, Protocol, Sequence, runtime_checkable

from .layout import Rect


class PaneEvent(Enum):
    EXIT = "exit"
    FOCUS = "focus"
    BLUR = "blur"
    SCROLL_START = "scroll-start"
    SCROLL_END = "scroll-end"


# EXIT callbacks receive the exit code; all other events take no arguments.
EventCallback = Callable[..., None]


@runtime_checkable
class PaneSurface(Protocol):
    """Operations the session manager and multiplexer need from panes."""

    def create_pane(self, rect: Rect, label: str) -> Any:
        """Create a pane placed at ``rect`` and return an opaque handle."""
        ...

    def set_label(self, pane: Any, text: str) -> None: ...

    def focus(self, pane: Any) -> None: ...

    def spawn(self, pane: Any, shell: str, args: Sequence[str]) -> None:
        """Start ``shell`` with ``args`` attached to the pane's terminal."""
        ...

    def write(self, pane: Any, text: str) -> None:
        """Write text to the pane's display (not to the process)."""
        ...

    def inject_input(self, pane: Any, data: bytes) -> None:
        """Send raw bytes to the pane's process."""
        ...

    def send_key(self, pane: Any, key: str, character: Optional[str]) -> None:
        """Deliver an ordinary keystroke to the pane."""
        ...

    def reset_scroll(self, pane: Any) -> None: ...

    def enter_scroll_mode(self, pane: Any) -> None: ...

    def enable_input(self, pane: Any, enabled: bool) -> None: ...

    def on(self, pane: Any, event: PaneEvent, callback: EventCallback) -> None: ...

    def set_timer(self, delay: float, callback: Callable[[], None]) -> Any:
        """Run ``callback`` on the event loop after ``delay`` seconds."""
        ...

    def shutdown(self, return_code: int = 0) -> None:
        """Destroy the surface, terminate all processes and exit."""
        ...
