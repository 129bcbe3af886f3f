"""Styling rules applied to text shown to the user."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum


class Style(StrEnum):
    """Key representing a single styling rule, either semantic or explicit."""

    # Semantic rules.
    TITLE = "title"
    PATH = "path"
    TERM = "term"
    EMPHASIS = "emphasis"
    UNDERSTATE = "understate"

    # Text attributes.
    BOLD = "bold"
    ITALIC = "italic"
    FAINT = "faint"
    UNDERLINE = "underline"
    STRIKETHROUGH = "strikethrough"
    BLINK = "blink"
    REVERSE = "reverse"
    HIDDEN = "hidden"

    # Foreground colors.
    BLACK = "black"
    RED = "red"
    GREEN = "green"
    YELLOW = "yellow"
    BLUE = "blue"
    MAGENTA = "magenta"
    CYAN = "cyan"
    WHITE = "white"

    # Background colors.
    BLACK_BG = "black-bg"
    RED_BG = "red-bg"
    GREEN_BG = "green-bg"
    YELLOW_BG = "yellow-bg"
    BLUE_BG = "blue-bg"
    MAGENTA_BG = "magenta-bg"
    CYAN_BG = "cyan-bg"
    WHITE_BG = "white-bg"

    # Bright foreground colors.
    BRIGHT_BLACK = "bright-black"
    BRIGHT_RED = "bright-red"
    BRIGHT_GREEN = "bright-green"
    BRIGHT_YELLOW = "bright-yellow"
    BRIGHT_BLUE = "bright-blue"
    BRIGHT_MAGENTA = "bright-magenta"
    BRIGHT_CYAN = "bright-cyan"
    BRIGHT_WHITE = "bright-white"

    # Bright background colors.
    BRIGHT_BLACK_BG = "bright-black-bg"
    BRIGHT_RED_BG = "bright-red-bg"
    BRIGHT_GREEN_BG = "bright-green-bg"
    BRIGHT_YELLOW_BG = "bright-yellow-bg"
    BRIGHT_BLUE_BG = "bright-blue-bg"
    BRIGHT_MAGENTA_BG = "bright-magenta-bg"
    BRIGHT_CYAN_BG = "bright-cyan-bg"
    BRIGHT_WHITE_BG = "bright-white-bg"


class Styler(ABC):
    """Stylizes text according to styling rules."""

    @abstractmethod
    def style(self, text: str, *args: str) -> str:
        """Format text with the given rules; raise ValueError on unknown rules."""

    def must_style(self, text: str, *args: str) -> str:
        """Format text with the given rules."""
        return self.style(text, *args)


@dataclass
class ProxyStyler(Styler):
    """Styler delegating to another styler, which can be swapped at runtime."""

    styler: Styler

    def style(self, text: str, *args: str) -> str:
        return self.styler.style(text, *args)

    def must_style(self, text: str, *args: str) -> str:
        return self.styler.must_style(text, *args)


class NullStyler(Styler):
    """Styler leaving the text untouched."""

    def style(self, text: str, *args: str) -> str:
        return text

    def must_style(self, text: str, *args: str) -> str:
        return text


class TagStyler(Styler):
    """Styler wrapping the text in XML-like tags named after the rules."""

    def style(self, text: str, *args: str) -> str:
        return self.must_style(text, *args)

    def must_style(self, text: str, *args: str) -> str:
        for rule in args:
            text = f"<{rule}>{text}</{rule}>"
        return text