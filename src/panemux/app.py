"""Textual application hosting the panes.

The app is the concrete terminal surface:
- On mount it provisions one session per command leaf, then mounts
  nested Horizontal/Vertical containers whose fixed sizes reproduce the
  computed layout rectangles exactly
- Every keystroke is routed through the input multiplexer
- PTY reader threads hand their callbacks to the asyncio loop, so all
  session and multiplexer state is mutated on one loop
"""

from __future__ import annotations

import asyncio
import contextvars
from typing import Callable, Dict, Iterator, List, Optional, Sequence

from textual.app import App
from textual.containers import Horizontal, Vertical
from textual.events import DescendantFocus, Key
from textual.widget import Widget

from .config import MuxConfig
from .diagnostics import DiagnosticsManager
from .errors import ConfigError
from .grammar import CommandNode, Orientation, SpecNode
from .layout import Rect, walk
from .log_manager import LogManager
from .multiplexer import InputMultiplexer
from .pane_view import PaneView
from .sessions import SessionManager
from .state import MultiplexerState
from .surface import EventCallback, PaneEvent
from .terminal_runner import EXEC_FAILED


class TextualSurface:
    """:class:`~panemux.surface.PaneSurface` backed by :class:`PaneView` widgets."""

    def __init__(self, app: "PanemuxApp") -> None:
        self.app = app
        self.panes: List[PaneView] = []
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._context: Optional[contextvars.Context] = None

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Bind to the running loop; must be called from inside the app.

        The captured context carries Textual's active app, which the
        reader threads lack.
        """
        self._loop = loop
        self._context = contextvars.copy_context()

    def post(self, callback: Callable[..., None], *args) -> None:
        """Schedule ``callback`` on the event loop; safe from any thread."""
        if self._loop is None:
            return
        try:
            self._loop.call_soon_threadsafe(callback, *args, context=self._context)
        except RuntimeError:
            # Loop already closed: the app is gone and nobody is listening
            self.app.log_manager.debug(f"Dropped callback after loop shutdown: {callback!r}")

    # --- PaneSurface ---------------------------------------------------

    def create_pane(self, rect: Rect, label: str) -> PaneView:
        pane = PaneView(rect, label, id=f"pane-{len(self.panes)}")
        pane.set_key_handler(self.app.handle_key)
        self.panes.append(pane)
        return pane

    def set_label(self, pane: PaneView, text: str) -> None:
        pane.set_label(text)

    def focus(self, pane: PaneView) -> None:
        pane.focus()

    def spawn(self, pane: PaneView, shell: str, args: Sequence[str]) -> None:
        try:
            pane.start_process(shell, args, self.post)
        except OSError as exc:
            self.app.log_manager.error(f"[{pane.id}] spawn failed: {exc}")
            pane.write(f"\r\npanemux: cannot spawn {shell}: {exc}\r\n")
            self.app.call_later(pane.emit, PaneEvent.EXIT, EXEC_FAILED)

    def write(self, pane: PaneView, text: str) -> None:
        pane.write(text)

    def inject_input(self, pane: PaneView, data: bytes) -> None:
        pane.inject(data)

    def send_key(self, pane: PaneView, key: str, character: Optional[str]) -> None:
        pane.send_key(key, character)

    def reset_scroll(self, pane: PaneView) -> None:
        pane.reset_scroll()

    def enter_scroll_mode(self, pane: PaneView) -> None:
        pane.enter_scroll_mode()

    def enable_input(self, pane: PaneView, enabled: bool) -> None:
        pane.set_input_enabled(enabled)

    def on(self, pane: PaneView, event: PaneEvent, callback: EventCallback) -> None:
        pane.add_listener(event, callback)

    def set_timer(self, delay: float, callback: Callable[[], None]):
        return self.app.set_timer(delay, callback)

    def shutdown(self, return_code: int = 0) -> None:
        self.close_all()
        self.app.exit(return_code=return_code)

    def close_all(self) -> None:
        for pane in self.panes:
            pane.close()


class PanemuxApp(App, inherit_bindings=False):
    """Full-screen pane multiplexer.

    Default Textual bindings are not inherited: every key, including
    ``ctrl+c`` and ``ctrl+q``, belongs to the panes or the multiplexer.
    """

    ENABLE_COMMAND_PALETTE = False

    DEFAULT_CSS = """
    Screen {
        overflow: hidden;
    }
    .split {
        overflow: hidden;
    }
    """

    def __init__(self, tree: SpecNode, config: MuxConfig, log_manager: Optional[LogManager] = None) -> None:
        super().__init__()
        self.spec_tree = tree
        self.config = config
        self.title = config.title
        self.log_manager = log_manager or LogManager()
        self.surface = TextualSurface(self)
        self.session_manager = SessionManager(self.surface, config, self.log_manager)
        self.state: Optional[MultiplexerState] = None
        self.multiplexer: Optional[InputMultiplexer] = None
        self.error: Optional[str] = None
        self.diagnostics = DiagnosticsManager(
            log_manager=self.log_manager,
            get_state=lambda: self.state,
            get_key_history=lambda: self.multiplexer.key_history if self.multiplexer else [],
        )

    async def on_mount(self) -> None:
        self.surface.bind_loop(asyncio.get_running_loop())
        width, height = self.size
        root = Rect(0, 0, width, height)
        try:
            state = self.session_manager.provision(self.spec_tree, root)
        except ConfigError as exc:
            self.error = str(exc)
            self.log_manager.error(self.error)
            self.surface.close_all()
            self.exit(return_code=1)
            return

        self.state = state
        self.multiplexer = InputMultiplexer(
            state, self.surface, self.config.activator, self.log_manager
        )
        await self.mount(self._build_layout(root, iter(self.surface.panes)))
        state.focused.pane.focus()

    def _build_layout(self, root: Rect, panes: Iterator[PaneView]) -> Widget:
        rects: Dict[int, Rect] = {id(node): rect for node, rect in walk(self.spec_tree, root)}

        def build(node: SpecNode) -> Widget:
            rect = rects[id(node)]
            if isinstance(node, CommandNode):
                widget: Widget = next(panes)
            else:
                children = [build(child) for child in node.children]
                container = Vertical if node.orientation is Orientation.VERTICAL else Horizontal
                widget = container(*children, classes="split")
            widget.styles.width = rect.width
            widget.styles.height = rect.height
            return widget

        return build(self.spec_tree)

    def handle_key(self, key: str, character: Optional[str]) -> None:
        if self.multiplexer is not None:
            self.multiplexer.handle_key(key, character)

    def on_key(self, event: Key) -> None:
        # Keys that arrive while no pane holds Textual focus
        event.stop()
        self.handle_key(event.key, event.character)

    def on_descendant_focus(self, event: DescendantFocus) -> None:
        # Focus only moves through the multiplexer; undo clicks and tabbing
        if self.state is None or not isinstance(event.widget, PaneView):
            return
        pane = self.state.focused.pane
        if event.widget is not pane:
            self.log_manager.debug(f"Restoring focus to {pane.id} from {event.widget.id}")
            pane.focus()

    def on_unmount(self) -> None:
        self.surface.close_all()

    def finalize(self) -> None:
        """Release all processes and write diagnostics once the app has exited.

        Raises:
            OSError: if the diagnostics file cannot be written.
        """
        self.surface.close_all()
        if self.config.log_file is not None:
            self.log_manager.event("Writing diagnostics snapshot")
            self.diagnostics.export_to_file(self.config.log_file)
