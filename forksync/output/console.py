"""Console output, which is also forksync's log.

There is no ``logging`` setup: components write through ConsoleProtocol.
Status lines use the leveled methods (``success``, ``warning``, ``error``,
``info``), which prefix the message; ``print`` with Style.DIM carries the
per-repository trace shown under --verbose and --dry-run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

__all__ = [
    "ConsoleProtocol",
    "MockConsole",
    "OutputRecord",
    "RichConsole",
    "Style",
]


class Style(Enum):
    DEFAULT = auto()
    SUCCESS = auto()
    ERROR = auto()
    WARNING = auto()
    INFO = auto()
    DIM = auto()
    HEADER = auto()

    def __str__(self) -> str:
        return self.name.lower()


_RICH_STYLES: dict[Style, str | None] = {
    Style.DEFAULT: None,
    Style.SUCCESS: "green",
    Style.ERROR: "red bold",
    Style.WARNING: "yellow",
    Style.INFO: "cyan",
    Style.DIM: "dim",
    Style.HEADER: "blue bold",
}

_PREFIXES: dict[Style, str] = {
    Style.SUCCESS: "OK",
    Style.ERROR: "error:",
    Style.WARNING: "warning:",
    Style.INFO: "info:",
}


class ConsoleProtocol(Protocol):
    def print(self, message: str, style: Style = Style.DEFAULT) -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def header(self, message: str) -> None: ...

    def newline(self) -> None: ...


class RichConsole:
    """Terminal console.

    Markup is never interpreted: repository names and git stderr may contain
    square brackets.
    """

    def __init__(self) -> None:
        from rich.console import Console

        self._console = Console(highlight=False)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self._console.print(message, style=_RICH_STYLES[style], markup=False)

    def _leveled(self, level: Style, message: str) -> None:
        from rich.text import Text

        line = Text(_PREFIXES[level], style=_RICH_STYLES[level] or "")
        line.append(f" {message}")
        self._console.print(line)

    def success(self, message: str) -> None:
        self._leveled(Style.SUCCESS, message)

    def error(self, message: str) -> None:
        self._leveled(Style.ERROR, message)

    def warning(self, message: str) -> None:
        self._leveled(Style.WARNING, message)

    def info(self, message: str) -> None:
        self._leveled(Style.INFO, message)

    def header(self, message: str) -> None:
        self.newline()
        self.print(message, Style.HEADER)

    def newline(self) -> None:
        self._console.print()


@dataclass
class OutputRecord:
    message: str
    style: Style


@dataclass
class MockConsole:
    """Records every line instead of printing it; leveled lines keep their prefix."""

    outputs: list[OutputRecord] = field(default_factory=list)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def _leveled(self, level: Style, message: str) -> None:
        self.print(f"{_PREFIXES[level]} {message}", level)

    def success(self, message: str) -> None:
        self._leveled(Style.SUCCESS, message)

    def error(self, message: str) -> None:
        self._leveled(Style.ERROR, message)

    def warning(self, message: str) -> None:
        self._leveled(Style.WARNING, message)

    def info(self, message: str) -> None:
        self._leveled(Style.INFO, message)

    def header(self, message: str) -> None:
        self.print(message, Style.HEADER)

    def newline(self) -> None:
        self.print("")

    def clear(self) -> None:
        self.outputs.clear()

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def find(self, substring: str, style: Style | None = None) -> list[OutputRecord]:
        return [
            o
            for o in self.outputs
            if substring in o.message and (style is None or o.style == style)
        ]

    def count(self, style: Style) -> int:
        return sum(1 for o in self.outputs if o.style == style)
