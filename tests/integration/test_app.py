"""Integration tests for PanemuxApp running real shell commands in PTYs.

These drive the app headless with ``run_test`` at 80x24 and check the
mounted pane geometry, keyboard routing and the shutdown policy.
"""

import asyncio

import pytest
from textual.geometry import Region

from panemux.app import PanemuxApp
from panemux.config import MuxConfig
from panemux.grammar import parse_spec
from panemux.layout import Rect
from panemux.state import InputMode, SessionStatus

pytestmark = pytest.mark.anyio

SIZE = (80, 24)


def make_app(spec: str, **options) -> PanemuxApp:
    return PanemuxApp(parse_spec(spec), MuxConfig(shell="/bin/sh", **options))


async def wait_until(predicate, attempts: int = 60) -> bool:
    for _ in range(attempts):
        if predicate():
            return True
        await asyncio.sleep(0.05)
    return predicate()


class TestLayout:
    async def test_panes_match_layout_rectangles(self):
        app = make_app("[ 'sleep 30' .. [ 'sleep 30' : 'sleep 30' ] ]")
        async with app.run_test(size=SIZE) as pilot:
            await pilot.pause()
            regions = [pane.region for pane in app.surface.panes]
            assert regions == [
                Region(0, 0, 40, 24),
                Region(40, 0, 40, 12),
                Region(40, 12, 40, 12),
            ]
            assert [s.rect for s in app.state.sessions] == [Rect(*r) for r in regions]
            app.surface.close_all()

    async def test_focus_flag_sets_initial_focus(self):
        app = make_app("[ 'sleep 30' .. -f 'sleep 30' ]")
        async with app.run_test(size=SIZE) as pilot:
            await pilot.pause()
            assert app.state.focused_index == 1
            assert app.focused is app.surface.panes[1]
            app.surface.close_all()


class TestKeyboard:
    async def test_prefix_right_moves_focus(self):
        app = make_app("[ 'sleep 30' .. 'sleep 30' ]")
        async with app.run_test(size=SIZE) as pilot:
            await pilot.pause()
            await pilot.press("ctrl+a", "right")
            await pilot.pause()
            assert app.state.focused_index == 1
            assert app.state.mode is InputMode.POST
            assert app.focused is app.surface.panes[1]
            assert "green" in app.surface.panes[1].label

            await pilot.press("x")
            assert app.state.mode is InputMode.NORMAL
            app.surface.close_all()

    async def test_typed_keys_reach_focused_process(self):
        app = make_app("[ cat .. 'sleep 30' ]")
        async with app.run_test(size=SIZE) as pilot:
            await pilot.pause()
            await pilot.press("h", "i", "enter")
            pane = app.surface.panes[0]
            assert await wait_until(lambda: "hi" in pane.emulator.text())
            app.surface.close_all()

    async def test_prefix_k_terminates(self):
        app = make_app("[ 'sleep 30' .. 'sleep 30' ]")
        async with app.run_test(size=SIZE) as pilot:
            await pilot.pause()
            await pilot.press("ctrl+a", "k")
        assert app.return_code == 0
        assert all(pane.runner is None for pane in app.surface.panes)

    async def test_click_keeps_focus_on_multiplexer_session(self):
        app = make_app("[ 'sleep 30' .. 'sleep 30' ]")
        async with app.run_test(size=SIZE) as pilot:
            await pilot.pause()
            await pilot.click("#pane-1")
            await pilot.pause()
            assert await wait_until(lambda: app.focused is app.surface.panes[0])
            assert app.state.focused_index == 0
            assert "green" in app.surface.panes[0].label
            assert "green" not in app.surface.panes[1].label
            app.surface.close_all()


class TestExitPolicy:
    async def test_wait_mode_keeps_surface_with_banners(self):
        app = make_app("[ 'exit 3' .. true ]", wait=True)
        async with app.run_test(size=SIZE):
            def all_exited():
                sessions = app.state.sessions if app.state else []
                return bool(sessions) and all(s.status is SessionStatus.EXITED for s in sessions)

            assert await wait_until(all_exited)
            assert app.is_running
            assert "PROGRAM TERMINATED (code: 3)" in app.surface.panes[0].emulator.text()
            assert app.state.sessions[0].exit_code == 3

    async def test_shutdown_after_last_exit(self):
        app = make_app("[ true .. 'sleep 0.2' ]")
        async with app.run_test(size=SIZE):
            await wait_until(lambda: not app.is_running)
        assert app.return_code == 0
        assert app.state.terminated_count == 2

    async def test_restart_respawns_command(self):
        app = make_app("[ -r -d 50 'echo run' .. 'sleep 30' ]")
        async with app.run_test(size=SIZE):
            assert await wait_until(
                lambda: app.state is not None and app.state.sessions[0].spawn_count >= 2
            )
            assert app.state.terminated_count == 0
            app.surface.close_all()
