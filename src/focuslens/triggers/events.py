"""Input events delivered by input sources to the trigger scheduler."""

from __future__ import annotations

import enum
from typing import Union

from pydantic import BaseModel, ConfigDict, Field

# Non-character keys that still count as typing
ALLOWED_CONTROL_KEYS = frozenset({"Backspace", "Delete", "Enter", "Tab", "Space"})


class ActivityKind(str, enum.Enum):
    """Session counter bumped by an input event."""

    CLICK = "click"
    KEYSTROKE = "keystroke"
    WINDOW_CHANGE = "window_change"


class ClickEvent(BaseModel):
    """A mouse button press anywhere on the desktop."""

    model_config = ConfigDict(frozen=True)

    x: int = 0
    y: int = 0
    button: str = Field(default="left")


class KeyEvent(BaseModel):
    """A key press with the modifier state at the time of the press."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(description="Printable character or key name, e.g. 'a', 'Enter', 'Shift'")
    ctrl: bool = False
    alt: bool = False
    meta: bool = False

    @property
    def is_character(self) -> bool:
        """Whether the press produces text (or edits it) and counts as typing."""
        if len(self.key) == 1 and not (self.ctrl or self.alt or self.meta):
            return True
        return self.key in ALLOWED_CONTROL_KEYS


class FocusEvent(BaseModel):
    """The tracker's home window gained (focused=True) or lost focus."""

    model_config = ConfigDict(frozen=True)

    focused: bool
    window_title: str | None = None


InputEvent = Union[ClickEvent, KeyEvent, FocusEvent]
