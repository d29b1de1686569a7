"""Tests for the trigger scheduler and input events."""

from __future__ import annotations

import asyncio

import pytest

from focuslens.domain.models import Trigger
from focuslens.triggers.base import InputSourceError
from focuslens.triggers.events import ActivityKind, ClickEvent, FocusEvent, KeyEvent
from focuslens.triggers.scheduler import TriggerScheduler
from tests.fakes import FakeInputSource


class BrokenInputSource(FakeInputSource):
    name = "broken"

    def start(self) -> None:
        raise InputSourceError("no display", source=self.name)


@pytest.fixture
def fired() -> list[Trigger]:
    return []


@pytest.fixture
def activity() -> list[ActivityKind]:
    return []


@pytest.fixture
def scheduler(
    fake_input: FakeInputSource, fired: list[Trigger], activity: list[ActivityKind]
) -> TriggerScheduler:
    return TriggerScheduler(
        sources=[fake_input],
        on_trigger=fired.append,
        on_activity=activity.append,
        periodic_interval=3600,
        keystroke_threshold=20,
    )


class TestKeyEvent:
    @pytest.mark.parametrize("key", ["a", "Z", "7", " ", "Backspace", "Delete", "Enter", "Tab", "Space"])
    def test_character_keys(self, key: str) -> None:
        assert KeyEvent(key=key).is_character

    @pytest.mark.parametrize("key", ["Shift", "Escape", "ArrowLeft", "F5"])
    def test_non_character_keys(self, key: str) -> None:
        assert not KeyEvent(key=key).is_character

    def test_modified_character_is_a_shortcut(self) -> None:
        assert not KeyEvent(key="c", ctrl=True).is_character
        assert not KeyEvent(key="v", meta=True).is_character
        assert KeyEvent(key="Enter", ctrl=True).is_character


class TestTriggerScheduler:
    def test_rejects_bad_settings(self, fired: list[Trigger]) -> None:
        with pytest.raises(ValueError):
            TriggerScheduler(sources=[], on_trigger=fired.append, periodic_interval=0)
        with pytest.raises(ValueError):
            TriggerScheduler(sources=[], on_trigger=fired.append, keystroke_threshold=0)

    @pytest.mark.asyncio
    async def test_start_subscribes(self, scheduler: TriggerScheduler, fake_input: FakeInputSource) -> None:
        scheduler.start()
        assert scheduler.is_running
        assert fake_input.started
        assert fake_input.subscriber_count == 1
        assert scheduler.timer_count == 1
        scheduler.stop()

    @pytest.mark.asyncio
    async def test_click_fires_trigger(
        self, scheduler: TriggerScheduler, fake_input: FakeInputSource,
        fired: list[Trigger], activity: list[ActivityKind],
    ) -> None:
        scheduler.start()
        fake_input.push(ClickEvent(x=10, y=20))
        fake_input.push(ClickEvent())
        scheduler.stop()
        assert fired == [Trigger.CLICK, Trigger.CLICK]
        assert activity == [ActivityKind.CLICK, ActivityKind.CLICK]

    @pytest.mark.asyncio
    async def test_keystroke_threshold(
        self, scheduler: TriggerScheduler, fake_input: FakeInputSource,
        fired: list[Trigger], activity: list[ActivityKind],
    ) -> None:
        """One keystrokes trigger per 20 qualifying keys, counter resets at 20."""
        scheduler.start()
        for _ in range(19):
            fake_input.push(KeyEvent(key="a"))
        assert fired == []
        assert scheduler.keystroke_count == 19

        fake_input.push(KeyEvent(key="Enter"))
        assert fired == [Trigger.KEYSTROKES]
        assert scheduler.keystroke_count == 0

        for _ in range(40):
            fake_input.push(KeyEvent(key="x"))
        scheduler.stop()
        assert fired == [Trigger.KEYSTROKES] * 3
        assert activity.count(ActivityKind.KEYSTROKE) == 60

    @pytest.mark.asyncio
    async def test_non_character_keys_ignored(
        self, scheduler: TriggerScheduler, fake_input: FakeInputSource, activity: list[ActivityKind],
    ) -> None:
        scheduler.start()
        fake_input.push(KeyEvent(key="Shift"))
        fake_input.push(KeyEvent(key="s", ctrl=True))
        assert scheduler.keystroke_count == 0
        assert activity == []
        scheduler.stop()

    @pytest.mark.asyncio
    async def test_focus_transitions(
        self, scheduler: TriggerScheduler, fake_input: FakeInputSource,
        fired: list[Trigger], activity: list[ActivityKind],
    ) -> None:
        scheduler.start()
        fake_input.push(FocusEvent(focused=False, window_title="Browser"))
        fake_input.push(FocusEvent(focused=True, window_title="Terminal"))
        scheduler.stop()
        assert fired == [Trigger.FOCUS_LEAVE, Trigger.FOCUS_RETURN]
        assert activity == [ActivityKind.WINDOW_CHANGE, ActivityKind.WINDOW_CHANGE]

    @pytest.mark.asyncio
    async def test_periodic_timer(self, fake_input: FakeInputSource, fired: list[Trigger]) -> None:
        scheduler = TriggerScheduler(sources=[fake_input], on_trigger=fired.append, periodic_interval=0.02)
        scheduler.start()
        await asyncio.sleep(0.09)
        scheduler.stop()
        assert len(fired) >= 2
        assert set(fired) == {Trigger.PERIODIC}

    @pytest.mark.asyncio
    async def test_every_requires_running(self, scheduler: TriggerScheduler) -> None:
        with pytest.raises(RuntimeError):
            scheduler.every(1.0, lambda: None)

    @pytest.mark.asyncio
    async def test_stop_twice_leaves_nothing_behind(
        self, scheduler: TriggerScheduler, fake_input: FakeInputSource,
    ) -> None:
        scheduler.start()
        scheduler.every(1.0, lambda: None)
        assert scheduler.timer_count == 2

        scheduler.stop()
        scheduler.stop()

        assert scheduler.timer_count == 0
        assert scheduler.subscription_count == 0
        assert fake_input.subscriber_count == 0
        assert fake_input.stop_calls == 1

    @pytest.mark.asyncio
    async def test_events_after_stop_are_ignored(
        self, scheduler: TriggerScheduler, fake_input: FakeInputSource, fired: list[Trigger],
    ) -> None:
        scheduler.start()
        handler = scheduler._handle_event
        scheduler.stop()
        handler(ClickEvent())
        assert fired == []

    @pytest.mark.asyncio
    async def test_restart_does_not_leak(
        self, scheduler: TriggerScheduler, fake_input: FakeInputSource, fired: list[Trigger],
    ) -> None:
        for _ in range(3):
            scheduler.start()
            scheduler.stop()
        scheduler.start()
        fake_input.push(ClickEvent())
        scheduler.stop()
        assert fired == [Trigger.CLICK]
        assert fake_input.start_calls == 4

    @pytest.mark.asyncio
    async def test_unavailable_source_is_skipped(self, fake_input: FakeInputSource, fired: list[Trigger]) -> None:
        broken = BrokenInputSource()
        scheduler = TriggerScheduler(sources=[broken, fake_input], on_trigger=fired.append, periodic_interval=3600)
        scheduler.start()
        assert broken.subscriber_count == 0
        assert scheduler.subscription_count == 1
        fake_input.push(ClickEvent())
        scheduler.stop()
        assert fired == [Trigger.CLICK]
