from __future__ import annotations

from typing import List, Protocol

from rich.console import Console
from rich.panel import Panel

from .logging import get_logger


class NotificationSink(Protocol):
    def post_to_gm(self, text: str) -> None: ...

    def warn_user(self, text: str) -> None: ...


class LogNotificationSink:
    """Default sink: GM summaries and user warnings go to the log."""

    def __init__(self, level: int | str | None = None) -> None:
        self._log = get_logger(__name__, level)

    def post_to_gm(self, text: str) -> None:
        self._log.info("GM notice:\n%s", text)

    def warn_user(self, text: str) -> None:
        self._log.warning(text)


class ConsoleNotificationSink:
    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def post_to_gm(self, text: str) -> None:
        self.console.print(Panel(text, title="GM notice", expand=False))

    def warn_user(self, text: str) -> None:
        self.console.print(f"[yellow]{text}[/]")


class RecordingNotificationSink:
    """Collects notifications in lists, for tests and batch tools."""

    def __init__(self) -> None:
        self.gm: List[str] = []
        self.warnings: List[str] = []

    def post_to_gm(self, text: str) -> None:
        self.gm.append(text)

    def warn_user(self, text: str) -> None:
        self.warnings.append(text)
