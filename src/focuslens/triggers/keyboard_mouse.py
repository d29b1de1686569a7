"""Global mouse and keyboard hooks using pynput.

pynput runs its listeners on background threads; every event is handed
to the asyncio loop with ``call_soon_threadsafe`` so subscribers only
ever run on the loop thread.
"""

from __future__ import annotations

import asyncio
import logging

from focuslens.triggers.base import InputSource, InputSourceError
from focuslens.triggers.events import ClickEvent, KeyEvent

logger = logging.getLogger(__name__)

# pynput key names -> names used by KeyEvent
KEY_NAMES = {
    "backspace": "Backspace",
    "delete": "Delete",
    "enter": "Enter",
    "tab": "Tab",
    "space": "Space",
    "esc": "Escape",
}

MODIFIER_KEYS = {
    "ctrl": "ctrl", "ctrl_l": "ctrl", "ctrl_r": "ctrl",
    "alt": "alt", "alt_l": "alt", "alt_r": "alt", "alt_gr": "alt",
    "cmd": "meta", "cmd_l": "meta", "cmd_r": "meta",
}


def key_name(key: object) -> str:
    """Normalize a pynput ``Key``/``KeyCode`` into a KeyEvent key string."""
    char = getattr(key, "char", None)
    if isinstance(char, str) and char:
        return char
    name = getattr(key, "name", None)
    if not name:
        return "Unidentified"
    if name in KEY_NAMES:
        return KEY_NAMES[name]
    return "".join(part.capitalize() for part in name.split("_"))


def modifier_of(key: object) -> str | None:
    """Return 'ctrl', 'alt' or 'meta' if ``key`` is a modifier key."""
    name = getattr(key, "name", None)
    return MODIFIER_KEYS.get(name) if name else None


class PynputInputSource(InputSource):
    """Emits ClickEvent and KeyEvent from system-wide pynput listeners."""

    name = "pynput"

    def __init__(self, clicks: bool = True, keystrokes: bool = True) -> None:
        super().__init__()
        self._clicks = clicks
        self._keystrokes = keystrokes
        self._mouse_listener = None
        self._keyboard_listener = None
        self._modifiers: set[str] = set()

    @property
    def is_listening(self) -> bool:
        return self._mouse_listener is not None or self._keyboard_listener is not None

    def start(self) -> None:
        if self.is_listening:
            return
        try:
            from pynput import keyboard, mouse
        except ImportError as e:
            raise InputSourceError(f"pynput cannot hook this platform: {e}", source=self.name) from e

        self._loop = asyncio.get_running_loop()
        self._modifiers.clear()
        if self._clicks:
            self._mouse_listener = mouse.Listener(on_click=self._on_click)
            self._mouse_listener.start()
        if self._keystrokes:
            self._keyboard_listener = keyboard.Listener(
                on_press=self._on_press, on_release=self._on_release
            )
            self._keyboard_listener.start()
        logger.info("Listening for %s", " and ".join(
            kind for kind, on in (("clicks", self._clicks), ("keystrokes", self._keystrokes)) if on
        ) or "nothing")

    def stop(self) -> None:
        for listener in (self._mouse_listener, self._keyboard_listener):
            if listener is not None:
                listener.stop()
        if self.is_listening:
            logger.info("Stopped input listeners")
        self._mouse_listener = None
        self._keyboard_listener = None
        self._loop = None

    def _on_click(self, x: float, y: float, button: object, pressed: bool) -> None:
        if not pressed:
            return
        self._emit_threadsafe(ClickEvent(
            x=int(x), y=int(y), button=getattr(button, "name", str(button)),
        ))

    def _on_press(self, key: object) -> None:
        modifier = modifier_of(key)
        if modifier is not None:
            self._modifiers.add(modifier)
            return
        self._emit_threadsafe(KeyEvent(
            key=key_name(key),
            ctrl="ctrl" in self._modifiers,
            alt="alt" in self._modifiers,
            meta="meta" in self._modifiers,
        ))

    def _on_release(self, key: object) -> None:
        modifier = modifier_of(key)
        if modifier is not None:
            self._modifiers.discard(modifier)
