"""Shared fixtures: a recording fake of the pane surface."""

from typing import Callable, Dict, List, Optional

import pytest

from panemux.config import MuxConfig
from panemux.layout import Rect
from panemux.surface import PaneEvent


class FakePane:
    def __init__(self, rect: Rect, label: str) -> None:
        self.rect = rect
        self.label = label
        self.listeners: Dict[PaneEvent, List[Callable]] = {}
        self.spawns: List[tuple] = []
        self.written: List[str] = []
        self.injected: List[bytes] = []
        self.keys: List[tuple] = []
        self.input_enabled = True
        self.scrolling = False
        self.scroll_resets = 0


class FakeSurface:
    """Records every surface call; events are fired with :meth:`emit`."""

    def __init__(self) -> None:
        self.panes: List[FakePane] = []
        self.timers: List[tuple] = []
        self.shutdowns: List[int] = []
        self.focused: Optional[FakePane] = None

    def emit(self, pane: FakePane, event: PaneEvent, *args) -> None:
        for callback in pane.listeners.get(event, []):
            callback(*args)

    def create_pane(self, rect, label):
        pane = FakePane(rect, label)
        self.panes.append(pane)
        return pane

    def set_label(self, pane, text):
        pane.label = text

    def focus(self, pane):
        previous = self.focused
        if previous is pane:
            return
        self.focused = pane
        if previous is not None:
            self.emit(previous, PaneEvent.BLUR)
        self.emit(pane, PaneEvent.FOCUS)

    def spawn(self, pane, shell, args):
        pane.spawns.append((shell, list(args)))

    def write(self, pane, text):
        pane.written.append(text)

    def inject_input(self, pane, data):
        pane.injected.append(data)

    def send_key(self, pane, key, character):
        pane.keys.append((key, character))

    def reset_scroll(self, pane):
        pane.scroll_resets += 1
        if pane.scrolling:
            pane.scrolling = False
            self.emit(pane, PaneEvent.SCROLL_END)

    def enter_scroll_mode(self, pane):
        if not pane.scrolling:
            pane.scrolling = True
            self.emit(pane, PaneEvent.SCROLL_START)

    def enable_input(self, pane, enabled):
        pane.input_enabled = enabled

    def on(self, pane, event, callback):
        pane.listeners.setdefault(event, []).append(callback)

    def set_timer(self, delay, callback):
        self.timers.append((delay, callback))

    def shutdown(self, return_code=0):
        self.shutdowns.append(return_code)


@pytest.fixture
def surface() -> FakeSurface:
    return FakeSurface()


@pytest.fixture
def config() -> MuxConfig:
    return MuxConfig(shell="/bin/sh")


@pytest.fixture
def anyio_backend():
    return "asyncio"
