"""Trigger module for focuslens.

Decides when a screenshot should be taken: a fixed timer plus user
activity reported by pluggable input sources.

Public API:
    TriggerScheduler -- Timer + input event to trigger translation
    InputSource -- Abstract base class for input sources
    PynputInputSource -- Global mouse/keyboard hooks
    WindowFocusSource -- Home window focus watcher
"""

from focuslens.triggers.base import InputSource, InputSourceError, Subscription
from focuslens.triggers.events import (
    ActivityKind,
    ClickEvent,
    FocusEvent,
    InputEvent,
    KeyEvent,
)
from focuslens.triggers.focus import WindowFocusSource
from focuslens.triggers.keyboard_mouse import PynputInputSource
from focuslens.triggers.scheduler import TriggerScheduler

__all__ = [
    "ActivityKind",
    "ClickEvent",
    "FocusEvent",
    "InputEvent",
    "InputSource",
    "InputSourceError",
    "KeyEvent",
    "PynputInputSource",
    "Subscription",
    "TriggerScheduler",
    "WindowFocusSource",
]
