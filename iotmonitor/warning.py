"""State of the alert window shown when devices misbehave."""

from __future__ import annotations


class WarningWindow:
    """An alert window holding a message that shows only while open."""

    def __init__(self) -> None:
        self._open = False
        self._text = ""

    def open(self) -> None:
        """Mark the window as shown."""
        self._open = True

    def close(self) -> None:
        """Mark the window as dismissed."""
        self._open = False

    def is_open(self) -> bool:
        return self._open

    def set_text(self, text: str) -> None:
        """Show ``text``; ignored while the window is closed."""
        if self._open:
            self._text = text

    def text(self) -> str:
        """The message currently shown."""
        return self._text