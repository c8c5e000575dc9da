"""Runtime state shared by the session manager and the input multiplexer.

All fields are mutated on the event loop only; nothing here is locked.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Union

from rich.markup import escape

from .layout import Rect


class SessionStatus(Enum):
    RUNNING = "running"
    EXITED = "exited"


class InputMode(Enum):
    NORMAL = "normal"
    PREFIX = "prefix"  # next key is a multiplexer command
    POST = "post"      # next key re-enables input and is swallowed


@dataclass
class Session:
    """One pane and the process running in it."""

    index: int
    rect: Rect
    title: str
    command: str
    restart: bool = False
    delay: Optional[Union[int, float]] = None
    focused: bool = False
    scrolling: bool = False
    pane: Any = None
    status: SessionStatus = SessionStatus.RUNNING
    exit_code: Optional[int] = None
    spawn_count: int = 0

    @property
    def label(self) -> str:
        return f"( [b]{escape(self.title)}[/b] )"


@dataclass
class MultiplexerState:
    sessions: List[Session] = field(default_factory=list)
    focused_index: int = 0
    mode: InputMode = InputMode.NORMAL
    terminated_count: int = 0

    @property
    def focused(self) -> Session:
        return self.sessions[self.focused_index]

    def set_focus(self, index: int) -> Session:
        """Move the focus flag so exactly ``sessions[index]`` carries it."""
        for session in self.sessions:
            session.focused = session.index == index
        self.focused_index = index
        return self.sessions[index]
