"""Session provisioning and process exit policy.

One :class:`~panemux.state.Session` is created per command leaf, in
traversal order. Exits are handled according to each leaf's options:
restart (optionally delayed), or count towards automatic shutdown.
"""

from __future__ import annotations

from typing import Optional

from .config import MuxConfig
from .errors import ConfigError
from .grammar import SpecNode, leaves
from .layout import Rect, assign
from .log_manager import LogManager
from .state import MultiplexerState, Session, SessionStatus
from .surface import PaneEvent, PaneSurface

# SGR: 7 = inverse, 1/22 = bold on/off, 32/31 = green/red
_BANNER = "\r\n\x1b[{color};7m ..::\x1b[1m {text} \x1b[22m::.. \x1b[0m\r\n\r\n"


def exit_banner(code: int) -> str:
    """Pass/fail banner written into a pane when its process exits."""
    if code == 0:
        return _BANNER.format(color=32, text="PROGRAM TERMINATED")
    return _BANNER.format(color=31, text=f"PROGRAM TERMINATED (code: {code})")


def validate_focus(tree: SpecNode) -> None:
    """Reject trees in which more than one command carries ``--focus``."""
    focused = [leaf for leaf in leaves(tree) if leaf.options.focus]
    if len(focused) > 1:
        where = ", ".join(
            f"line {leaf.position.line} column {leaf.position.column}"
            if leaf.position else repr(leaf.command)
            for leaf in focused
        )
        raise ConfigError(f"only a single command can be focused (found {len(focused)}: {where})")


class SessionManager:
    """Creates sessions on a surface and owns their spawn/exit lifecycle."""

    def __init__(
        self,
        surface: PaneSurface,
        config: MuxConfig,
        log_manager: Optional[LogManager] = None,
    ) -> None:
        self.surface = surface
        self.config = config
        self.log = log_manager or LogManager()
        self.state: Optional[MultiplexerState] = None

    def provision(self, tree: SpecNode, rect: Rect) -> MultiplexerState:
        """Create and spawn one session per leaf of ``tree`` inside ``rect``.

        Focus validation and the complete layout run first, so a
        :class:`ConfigError` leaves no pane or process behind.
        """
        validate_focus(tree)
        placements = assign(tree, rect)

        state = MultiplexerState()
        self.state = state
        focus_index = 0
        for index, (leaf, leaf_rect) in enumerate(placements):
            session = Session(
                index=index,
                rect=leaf_rect,
                title=leaf.title,
                command=leaf.command,
                restart=leaf.options.restart,
                delay=leaf.options.delay,
            )
            if leaf.options.focus:
                focus_index = index
            session.pane = self.surface.create_pane(leaf_rect, session.label)
            self._subscribe(session)
            state.sessions.append(session)
            self.spawn(session)

        focused = state.set_focus(focus_index)
        self.surface.focus(focused.pane)
        self.log.event(
            f"Provisioned {len(state.sessions)} sessions in {rect.width}x{rect.height}, "
            f"focus={focus_index}"
        )
        return state

    def spawn(self, session: Session) -> None:
        session.status = SessionStatus.RUNNING
        session.exit_code = None
        session.spawn_count += 1
        self.surface.spawn(session.pane, self.config.shell, ["-c", session.command])
        self.log.event(f"[{session.index}] spawn #{session.spawn_count}: {session.command}")

    # --- Event handling ----------------------------------------------

    def _subscribe(self, session: Session) -> None:
        surface = self.surface
        surface.on(session.pane, PaneEvent.EXIT, lambda code: self.handle_exit(session, code))
        surface.on(session.pane, PaneEvent.FOCUS, lambda: self._on_focus(session))
        surface.on(session.pane, PaneEvent.BLUR, lambda: self._on_blur(session))
        surface.on(session.pane, PaneEvent.SCROLL_START, lambda: self._on_scroll(session, True))
        surface.on(session.pane, PaneEvent.SCROLL_END, lambda: self._on_scroll(session, False))

    def _on_focus(self, session: Session) -> None:
        color = "red" if session.scrolling else "green"
        self.surface.set_label(session.pane, f"[{color}]{session.label}[/{color}]")

    def _on_blur(self, session: Session) -> None:
        self.surface.set_label(session.pane, session.label)

    def _on_scroll(self, session: Session, scrolling: bool) -> None:
        session.scrolling = scrolling
        color = "red" if scrolling else "green"
        self.surface.set_label(session.pane, f"[{color}]{session.label}[/{color}]")

    def handle_exit(self, session: Session, code: int) -> None:
        """Apply the exit policy for ``session`` after its process ended."""
        self.surface.write(session.pane, exit_banner(code))
        session.status = SessionStatus.EXITED
        session.exit_code = code
        self.log.event(f"[{session.index}] exited with code {code}")

        if session.restart:
            if session.delay is None:
                self.spawn(session)
            else:
                seconds = max(0.0, session.delay / 1000.0)
                self.log.event(f"[{session.index}] restart in {session.delay}ms")
                self.surface.set_timer(seconds, lambda: self.spawn(session))
            return

        if self.config.wait or self.state is None:
            return
        self.state.terminated_count += 1
        if self.state.terminated_count >= len(self.state.sessions):
            self.log.event("All sessions terminated, shutting down")
            self.surface.shutdown(0)
