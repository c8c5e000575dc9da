"""Tests for the keyboard state machine and its effects on sessions."""

import pytest

from panemux.grammar import parse_spec
from panemux.layout import Rect
from panemux.multiplexer import (
    ChangeFocus,
    EnterScrollMode,
    Forward,
    InjectInput,
    InputMultiplexer,
    SetInputEnabled,
    Terminate,
    control_byte,
    transition,
)
from panemux.sessions import SessionManager
from panemux.state import InputMode


def step(mode, key, focused=0, count=3, activator="a", character=None):
    return transition(mode, focused, count, key, activator, character)


class TestTransition:
    """The pure transition table."""

    def test_normal_forwards_keys(self):
        result = step(InputMode.NORMAL, "x", character="x")
        assert result.mode is InputMode.NORMAL
        assert result.effects == (Forward("x", "x"),)

    def test_chord_enters_prefix_and_disables_input(self):
        result = step(InputMode.NORMAL, "ctrl+a")
        assert result.mode is InputMode.PREFIX
        assert result.effects == (SetInputEnabled(False),)

    def test_chord_from_post_reenters_prefix(self):
        result = step(InputMode.POST, "ctrl+a")
        assert result.mode is InputMode.PREFIX

    def test_custom_activator(self):
        assert step(InputMode.NORMAL, "ctrl+b", activator="b").mode is InputMode.PREFIX
        assert step(InputMode.NORMAL, "ctrl+a", activator="b").effects == (Forward("ctrl+a"),)

    @pytest.mark.parametrize(
        "key, focused, target",
        [("right", 0, 1), ("space", 1, 2), ("right", 2, 0), ("left", 0, 2), ("left", 2, 1)],
    )
    def test_focus_cycles_with_wraparound(self, key, focused, target):
        result = step(InputMode.PREFIX, key, focused=focused)
        assert result.mode is InputMode.POST
        assert result.focused_index == target
        assert result.effects == (ChangeFocus(focused, target),)

    def test_activator_key_injects_control_byte(self):
        result = step(InputMode.PREFIX, "a")
        assert result.effects == (InjectInput(b"\x01"),)
        assert control_byte("b") == b"\x02"

    def test_scroll_and_kill_commands(self):
        assert step(InputMode.PREFIX, "v").effects == (EnterScrollMode(),)
        assert step(InputMode.PREFIX, "k").effects == (Terminate(),)

    def test_unknown_prefix_key_is_ignored(self):
        result = step(InputMode.PREFIX, "z")
        assert result.mode is InputMode.POST
        assert result.effects == ()

    def test_post_swallows_next_key_and_reenables_input(self):
        result = step(InputMode.POST, "y", character="y")
        assert result.mode is InputMode.NORMAL
        assert result.effects == (SetInputEnabled(True),)

    @pytest.mark.parametrize("mode", [InputMode.NORMAL, InputMode.POST])
    def test_chord_then_k_terminates_outside_prefix(self, mode):
        first = step(mode, "ctrl+a")
        second = step(first.mode, "k", focused=first.focused_index)
        assert Terminate() in second.effects

    def test_chord_inside_prefix_is_an_ignored_command(self):
        result = step(InputMode.PREFIX, "ctrl+a")
        assert result.mode is InputMode.POST
        assert result.effects == ()


@pytest.fixture
def mux(surface, config):
    manager = SessionManager(surface, config)
    state = manager.provision(parse_spec("[ a .. b .. c ]"), Rect(0, 0, 90, 30))
    return InputMultiplexer(state, surface, "a")


class TestInputMultiplexer:
    """Effects applied through the surface."""

    def test_forwards_to_focused_pane(self, mux, surface):
        mux.handle_key("x", "x")
        assert surface.panes[0].keys == [("x", "x")]
        assert surface.panes[1].keys == []

    def test_prefix_disables_then_reenables_input(self, mux, surface):
        mux.handle_key("ctrl+a")
        assert surface.panes[0].input_enabled is False
        mux.handle_key("z", "z")
        assert mux.state.mode is InputMode.POST
        mux.handle_key("y", "y")
        assert surface.panes[0].input_enabled is True
        assert surface.panes[0].keys == []
        mux.handle_key("w", "w")
        assert surface.panes[0].keys == [("w", "w")]

    def test_focus_change_moves_focus_and_resets_scroll(self, mux, surface):
        mux.handle_key("ctrl+a")
        mux.handle_key("left")
        assert mux.state.focused_index == 2
        assert surface.focused is surface.panes[2]
        assert surface.panes[0].scroll_resets == 1
        assert [s.focused for s in mux.state.sessions] == [False, False, True]
        assert surface.panes[2].label.startswith("[green]")
        assert not surface.panes[0].label.startswith("[")

    def test_input_reenabled_on_both_panes_after_focus_change(self, mux, surface):
        mux.handle_key("ctrl+a")
        mux.handle_key("right")
        assert surface.panes[0].input_enabled is True
        assert surface.panes[1].input_enabled is False
        mux.handle_key("q", "q")
        assert surface.panes[1].input_enabled is True
        assert surface.panes[1].keys == []

    def test_injects_activator_byte(self, mux, surface):
        mux.handle_key("ctrl+a")
        mux.handle_key("a", "a")
        assert surface.panes[0].injected == [b"\x01"]

    def test_scroll_mode(self, mux, surface):
        mux.handle_key("ctrl+a")
        mux.handle_key("v", "v")
        assert surface.panes[0].scrolling is True
        assert mux.state.sessions[0].scrolling is True

    def test_kill_shuts_down(self, mux, surface):
        mux.handle_key("ctrl+a")
        mux.handle_key("k", "k")
        assert surface.shutdowns == [0]

    def test_key_history_is_bounded(self, mux):
        for _ in range(150):
            mux.handle_key("x", "x")
        assert len(mux.key_history) == 100
        assert mux.key_history[-1] == "key='x' char='x' normal->normal"
        assert mux.log.lines("keys")
