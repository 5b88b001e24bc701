"""User-visible notices emitted by the synchronization layer."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class NoticeLevel(Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Notice:
    level: NoticeLevel
    message: str


NoticeHandler = Callable[[Notice], None]


class Notifier:
    """Fans notices out to subscribed UI handlers.

    A failing handler is logged and skipped so that it cannot break the
    mutation or read path that emitted the notice.
    """

    def __init__(self) -> None:
        self._handlers: list[NoticeHandler] = []

    def subscribe(self, handler: NoticeHandler) -> Callable[[], None]:
        """Register ``handler``; returns a callable that unsubscribes it."""
        self._handlers.append(handler)
        return lambda: self.unsubscribe(handler)

    def unsubscribe(self, handler: NoticeHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def emit(self, level: NoticeLevel, message: str) -> None:
        notice = Notice(level, message)
        for handler in list(self._handlers):
            try:
                handler(notice)
            except Exception:
                logger.exception("Notice handler %r failed", handler)

    def info(self, message: str) -> None:
        self.emit(NoticeLevel.INFO, message)

    def success(self, message: str) -> None:
        self.emit(NoticeLevel.SUCCESS, message)

    def warning(self, message: str) -> None:
        self.emit(NoticeLevel.WARNING, message)

    def error(self, message: str) -> None:
        self.emit(NoticeLevel.ERROR, message)


class NoticeCollector:
    """Handler that records notices; handy for headless callers and tests."""

    def __init__(self) -> None:
        self.notices: list[Notice] = []

    def __call__(self, notice: Notice) -> None:
        self.notices.append(notice)

    def messages(self, level: NoticeLevel | None = None) -> list[str]:
        return [n.message for n in self.notices if level is None or n.level is level]

    def clear(self) -> None:
        self.notices.clear()
