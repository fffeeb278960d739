"""Discrete player-facing messages produced by engine operations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Protocol


class NoticeCategory(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"
    LOOT = "loot"


@dataclass(frozen=True, slots=True)
class Notice:
    message: str
    category: NoticeCategory = NoticeCategory.INFO


class NoticeSink(Protocol):
    """Anything that can receive notices. Delivery is fire-and-forget."""

    def publish(self, notice: Notice) -> None: ...


class CollectingSink:
    """Sink that keeps every notice in memory."""

    def __init__(self) -> None:
        self.notices: List[Notice] = []

    def publish(self, notice: Notice) -> None:
        self.notices.append(notice)

    @property
    def messages(self) -> list[str]:
        return [notice.message for notice in self.notices]


def deliver(sink: NoticeSink | None, notices: Iterable[Notice]) -> None:
    if sink is None:
        return
    for notice in notices:
        sink.publish(notice)


@dataclass(frozen=True, slots=True)
class ActionResult:
    """Outcome of a player-initiated operation.

    Failed results never come with a mutation of the player.
    """

    success: bool
    message: str
    category: NoticeCategory | None = None

    @classmethod
    def ok(cls, message: str, category: NoticeCategory = NoticeCategory.SUCCESS) -> "ActionResult":
        return cls(True, message, category)

    @classmethod
    def fail(cls, message: str) -> "ActionResult":
        return cls(False, message, NoticeCategory.ERROR)

    def __bool__(self) -> bool:
        return self.success

    @property
    def notice(self) -> Notice:
        if self.category is not None:
            category = self.category
        else:
            category = NoticeCategory.SUCCESS if self.success else NoticeCategory.ERROR
        return Notice(self.message, category)


__all__ = [
    "ActionResult",
    "CollectingSink",
    "Notice",
    "NoticeCategory",
    "NoticeSink",
    "deliver",
]
