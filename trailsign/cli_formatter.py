"""
Module: cli_formatter
Purpose: Terminal output helpers shared by every trailsign command.
"""

from __future__ import annotations

import os
import re
import sys
import textwrap
from dataclasses import dataclass
from typing import TextIO

from .utils import BOLD, COLOR_RESET, color_256, osc8_link

DEFAULT_LINE_WIDTH = 88
DEFAULT_KV_WIDTH = 24
PRIMARY_INDENT = "  "
BULLET_INDENT = f"{PRIMARY_INDENT}- "
ANSI_SGR_PATTERN = re.compile(r"\x1b\[[0-9;]*m")
OSC8_PATTERN = re.compile(r"\x1b]8;;.*?\x1b\\")
THEME_PALETTES: dict[str, dict[str, int]] = {
    "light": {
        "primary": 30,
        "ok": 64,
        "link": 33,
        "muted": 243,
    },
    "dark": {
        "primary": 79,
        "ok": 71,
        "link": 39,
        "muted": 245,
    },
}


@dataclass
class FormatterConfig:
    """
    Configuration options governing CLIFormatter output.
    """

    use_color: bool = True
    unicode_enabled: bool = True
    plain_mode: bool = False
    osc8_links: bool = True
    verbose: bool = False
    mode: str = "tty"
    pipe_mode: bool = False
    theme: str = "light"


class CLIFormatter:
    """
    Render trailsign CLI output.
    """

    def __init__(
        self,
        config: FormatterConfig | None = None,
        stream: TextIO | None = None,
    ) -> None:
        self.config = config or FormatterConfig()
        self.stream = stream or sys.stdout
        self.line_width = DEFAULT_LINE_WIDTH
        self.palette = _resolve_palette(self.config.theme)

    def line(self, text: str = "") -> None:
        """Print a plain line."""
        self._write(text)

    def blank(self) -> None:
        """Print an empty line."""
        self._write("")

    def section(self, title: str) -> None:
        """Print a section heading."""
        icon = "◆" if self.config.unicode_enabled and not self.config.plain_mode else ">"
        self.blank()
        self._write(self._style(f"{icon} {title}", self.palette["primary"], bold=True))

    def success(self, text: str) -> None:
        self._write(self._style(text, self.palette["ok"], bold=True))

    def muted(self, text: str) -> None:
        self._write(self._style(text, self.palette["muted"]))

    def verbose(self, text: str) -> None:
        """Print diagnostics only when --verbose is set."""
        if not self.config.verbose:
            return
        self.muted(f"[verbose] {text}")

    def failure_summary(self, *, reason: str, log_hint: str | None = None, required: str | None = None) -> None:
        """
        Render the STOP/BLOCKED frame shown when a command cannot finish.
        """
        if self.config.pipe_mode:
            return
        if not required:
            required = f"Review {log_hint} for details." if log_hint else "Review the error and rerun when ready."
        lines = [f"Reason: {reason}"]
        if log_hint:
            lines.append(f"Log file: {log_hint}")
        lines.append(f"Required: {required}")
        self.blank()
        self.frame("STOP/BLOCKED", lines)

    def frame(self, title: str, lines: list[str]) -> None:
        """
        Render a framed block with wrapped content.
        """
        width = self.line_width
        unicode = self.config.unicode_enabled and not self.config.plain_mode
        horiz = "─" if unicode else "-"
        vert = "│" if unicode else "|"
        tl, tr, bl, br = ("┌", "┐", "└", "┘") if unicode else ("+", "+", "+", "+")
        title_text = f"{horiz} {title} "
        self.line(f"{tl}{title_text}{horiz * max(0, width - 2 - len(title_text))}{tr}")
        content_width = width - 4
        for line in lines:
            for chunk in textwrap.wrap(line, width=content_width) or [""]:
                self.line(f"{vert} {chunk.ljust(content_width)} {vert}")
        self.line(f"{bl}{horiz * (width - 2)}{br}")

    def kv(self, label: str, value: str, width: int = DEFAULT_KV_WIDTH) -> None:
        """Print an aligned key/value line, wrapping long values."""
        prefix = f"{PRIMARY_INDENT}{label:<{width}} : "
        available = self.line_width - len(prefix)
        if self._contains_control(value) or available < 10 or self._visible_length(value) <= available:
            self._write(prefix + value)
            return
        wrapped = textwrap.wrap(value, width=available) or [value]
        self._write(prefix + wrapped[0])
        for chunk in wrapped[1:]:
            self._write(" " * len(prefix) + chunk)

    def bullet(self, text: str) -> None:
        self._write(f"{BULLET_INDENT}{text}")

    def link(self, path: str, label: str | None = None) -> str:
        """Return a hyperlink for capable terminals, else the label."""
        target = label or path
        if not self._osc8_enabled():
            return target
        return self._style(osc8_link(path, target), self.palette["link"])

    def _write(self, text: str) -> None:
        self.stream.write(text + "\n")

    def _style(self, text: str, color: str | None = None, bold: bool = False) -> str:
        if not self.config.use_color or not text:
            return text
        prefix = (BOLD if bold else "") + (color or "")
        if not prefix:
            return text
        return f"{prefix}{text}{COLOR_RESET}"

    @staticmethod
    def _visible_length(text: str) -> int:
        return len(OSC8_PATTERN.sub("", ANSI_SGR_PATTERN.sub("", text)))

    @staticmethod
    def _contains_control(text: str) -> bool:
        return bool(ANSI_SGR_PATTERN.search(text) or OSC8_PATTERN.search(text))

    def _osc8_enabled(self) -> bool:
        return self.config.osc8_links and self.config.use_color and not self.config.plain_mode


def detect_terminal_capabilities(
    *,
    no_color_flag: bool = False,
    stdout_isatty: bool | None = None,
    mode_preference: str = "auto",
    theme_preference: str | None = None,
) -> FormatterConfig:
    """
    Determine formatter configuration from flags and environment.

    Output to a non-terminal switches to pipe mode unless a mode is forced.
    """
    mode = (mode_preference or "auto").lower()
    if mode not in {"auto", "tty", "plain", "pipe"}:
        mode = "auto"
    if stdout_isatty is None:
        stdout_isatty = sys.stdout.isatty()

    pipe_mode = mode == "pipe" or (mode == "auto" and not stdout_isatty)
    plain_mode = pipe_mode or mode == "plain" or bool(os.environ.get("TRAILSIGN_PLAIN"))
    theme = _resolve_theme(theme_preference)
    if plain_mode:
        return FormatterConfig(
            use_color=False,
            unicode_enabled=False,
            plain_mode=True,
            osc8_links=False,
            mode="pipe" if pipe_mode else "plain",
            pipe_mode=pipe_mode,
            theme=theme,
        )

    term = os.environ.get("TERM", "").lower()
    use_color = not no_color_flag and not os.environ.get("NO_COLOR") and term != "dumb"
    ascii_forced = bool(os.environ.get("TRAILSIGN_FORCE_ASCII")) or term == "dumb"
    osc8_links = use_color and stdout_isatty and not os.environ.get("TRAILSIGN_DISABLE_OSC8")
    return FormatterConfig(
        use_color=use_color,
        unicode_enabled=not ascii_forced and _supports_unicode(),
        plain_mode=False,
        osc8_links=bool(osc8_links),
        mode="tty",
        pipe_mode=False,
        theme=theme,
    )


def _resolve_theme(theme_preference: str | None) -> str:
    theme = (theme_preference or os.environ.get("TRAILSIGN_THEME", "light")).strip().lower()
    return theme if theme in THEME_PALETTES else "light"


def _resolve_palette(theme: str) -> dict[str, str]:
    palette = THEME_PALETTES.get(theme, THEME_PALETTES["light"])
    return {key: color_256(code) for key, code in palette.items()}


def _supports_unicode() -> bool:
    encoding = getattr(sys.stdout, "encoding", None)
    if not encoding:
        return False
    try:
        "┌".encode(encoding)
        return True
    except UnicodeEncodeError:
        return False
