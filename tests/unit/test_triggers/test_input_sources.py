"""Tests for the pynput and window focus input sources."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from focuslens.triggers.events import ClickEvent, FocusEvent, KeyEvent
from focuslens.triggers.focus import WindowFocusSource
from focuslens.triggers.keyboard_mouse import PynputInputSource, key_name, modifier_of
from tests.fakes import wait_until


class TestKeyNames:
    def test_character_key(self) -> None:
        assert key_name(SimpleNamespace(char="q", name=None)) == "q"

    @pytest.mark.parametrize(
        "name, expected",
        [("backspace", "Backspace"), ("space", "Space"), ("enter", "Enter"), ("esc", "Escape"), ("page_down", "PageDown")],
    )
    def test_named_keys(self, name: str, expected: str) -> None:
        assert key_name(SimpleNamespace(char=None, name=name)) == expected

    def test_unidentified(self) -> None:
        assert key_name(object()) == "Unidentified"

    def test_modifiers(self) -> None:
        assert modifier_of(SimpleNamespace(name="ctrl_l")) == "ctrl"
        assert modifier_of(SimpleNamespace(name="cmd")) == "meta"
        assert modifier_of(SimpleNamespace(name="shift")) is None


class TestPynputInputSource:
    @pytest.mark.asyncio
    async def test_callbacks_reach_loop_thread(self) -> None:
        """Listener callbacks are marshalled onto the event loop with modifier state."""
        source = PynputInputSource()
        source._loop = asyncio.get_running_loop()
        events: list = []
        source.subscribe(events.append)

        source._on_click(5.0, 6.0, SimpleNamespace(name="left"), True)
        source._on_click(5.0, 6.0, SimpleNamespace(name="left"), False)
        source._on_press(SimpleNamespace(char=None, name="ctrl"))
        source._on_press(SimpleNamespace(char="c", name=None))
        source._on_release(SimpleNamespace(char=None, name="ctrl"))
        source._on_press(SimpleNamespace(char="c", name=None))
        await asyncio.sleep(0)

        assert events == [
            ClickEvent(x=5, y=6, button="left"),
            KeyEvent(key="c", ctrl=True),
            KeyEvent(key="c"),
        ]

    def test_events_without_loop_are_dropped(self) -> None:
        source = PynputInputSource()
        events: list = []
        source.subscribe(events.append)
        source._on_click(1, 1, "left", True)
        assert events == []

    def test_stop_without_start(self) -> None:
        source = PynputInputSource()
        source.stop()
        assert source.is_listening is False


class TestWindowFocusSource:
    @pytest.mark.asyncio
    async def test_emits_leave_and_return(self) -> None:
        titles = iter(["Terminal", "Terminal", "Browser", "Browser", "Terminal"])
        last = ["Terminal"]

        def provider() -> str:
            last[0] = next(titles, last[0])
            return last[0]

        source = WindowFocusSource(poll_interval=0.01, title_provider=provider)
        events: list[FocusEvent] = []
        source.subscribe(events.append)
        source.start()
        try:
            await wait_until(lambda: len(events) >= 2)
        finally:
            source.stop()

        assert source.home_title == "Terminal"
        assert [e.focused for e in events] == [False, True]
        assert events[0].window_title == "Browser"
        assert source.is_polling is False

    @pytest.mark.asyncio
    async def test_unreadable_home_window_disables_source(self) -> None:
        def provider() -> str:
            raise OSError("no window manager")

        source = WindowFocusSource(poll_interval=0.01, title_provider=provider)
        source.start()
        await wait_until(lambda: not source.is_polling)
        source.stop()
        assert source.home_title is None
