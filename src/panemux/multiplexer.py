"""Keyboard multiplexing: typing into the focused pane vs. prefix commands.

The state machine is a pure function, :func:`transition`, from
``(mode, focused index, key)`` to the next mode/index plus a list of
effects. :class:`InputMultiplexer` owns the live state and applies the
effects to sessions through the surface.

Key names follow Textual (``ctrl+a``, ``left``, ``space``, ``v``).

The key following a prefix command is swallowed: ``POST`` consumes it to
re-enable input unless it is the activator chord again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from .log_manager import LogManager
from .state import InputMode, MultiplexerState
from .surface import PaneSurface


@dataclass(frozen=True)
class SetInputEnabled:
    enabled: bool


@dataclass(frozen=True)
class Forward:
    key: str
    character: Optional[str] = None


@dataclass(frozen=True)
class InjectInput:
    data: bytes


@dataclass(frozen=True)
class ChangeFocus:
    previous: int
    current: int


@dataclass(frozen=True)
class EnterScrollMode:
    pass


@dataclass(frozen=True)
class Terminate:
    pass


Effect = Union[SetInputEnabled, Forward, InjectInput, ChangeFocus, EnterScrollMode, Terminate]


@dataclass(frozen=True)
class Transition:
    mode: InputMode
    focused_index: int
    effects: Tuple[Effect, ...] = field(default_factory=tuple)


def control_byte(activator: str) -> bytes:
    return bytes([ord(activator) - ord("a") + 1])


def _prefix_command(
    key: str, focused_index: int, session_count: int, activator: str
) -> Tuple[int, Tuple[Effect, ...]]:
    if key == activator:
        return focused_index, (InjectInput(control_byte(activator)),)
    if key in ("left", "right", "space"):
        step = -1 if key == "left" else 1
        target = (focused_index + step) % session_count
        return target, (ChangeFocus(focused_index, target),)
    if key == "v":
        return focused_index, (EnterScrollMode(),)
    if key == "k":
        return focused_index, (Terminate(),)
    return focused_index, ()


def transition(
    mode: InputMode,
    focused_index: int,
    session_count: int,
    key: str,
    activator: str,
    character: Optional[str] = None,
) -> Transition:
    """Compute the next input state for one key event."""
    chord = f"ctrl+{activator}"
    if mode is InputMode.PREFIX:
        index, effects = _prefix_command(key, focused_index, session_count, activator)
        return Transition(InputMode.POST, index, effects)
    if key == chord:
        return Transition(InputMode.PREFIX, focused_index, (SetInputEnabled(False),))
    if mode is InputMode.POST:
        return Transition(InputMode.NORMAL, focused_index, (SetInputEnabled(True),))
    return Transition(InputMode.NORMAL, focused_index, (Forward(key, character),))


class InputMultiplexer:
    """Single consumer of keyboard events for the whole surface."""

    def __init__(
        self,
        state: MultiplexerState,
        surface: PaneSurface,
        activator: str,
        log_manager: Optional[LogManager] = None,
    ) -> None:
        self.state = state
        self.surface = surface
        self.activator = activator
        self.log = log_manager or LogManager()
        self.key_history: List[str] = []

    def handle_key(self, key: str, character: Optional[str] = None) -> Transition:
        state = self.state
        before = state.mode
        result = transition(
            before, state.focused_index, len(state.sessions), key, self.activator, character
        )
        state.mode = result.mode
        self._record(key, character, before, result.mode)
        for effect in result.effects:
            self._apply(effect)
        return result

    def _record(
        self, key: str, character: Optional[str], before: InputMode, after: InputMode
    ) -> None:
        entry = f"key={key!r} char={character!r} {before.value}->{after.value}"
        self.key_history.append(entry)
        if len(self.key_history) > 100:
            self.key_history = self.key_history[-100:]
        self.log.add("keys", entry)

    def _apply(self, effect: Effect) -> None:
        state = self.state
        surface = self.surface
        if isinstance(effect, Forward):
            surface.send_key(state.focused.pane, effect.key, effect.character)
        elif isinstance(effect, SetInputEnabled):
            surface.enable_input(state.focused.pane, effect.enabled)
        elif isinstance(effect, InjectInput):
            surface.inject_input(state.focused.pane, effect.data)
        elif isinstance(effect, ChangeFocus):
            previous = state.sessions[effect.previous].pane
            surface.reset_scroll(previous)
            # input stays suspended on the focused pane until POST re-enables it
            surface.enable_input(previous, True)
            session = state.set_focus(effect.current)
            surface.enable_input(session.pane, False)
            surface.focus(session.pane)
            self.log.event(f"Focus {effect.previous} -> {effect.current}")
        elif isinstance(effect, EnterScrollMode):
            surface.enter_scroll_mode(state.focused.pane)
        elif isinstance(effect, Terminate):
            self.log.event("Kill requested from keyboard")
            surface.shutdown(0)
