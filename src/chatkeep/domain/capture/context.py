"""Explicit session context passed to the capture session at construction."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from chatkeep.domain.reconciliation.engine import ConversationReconciler

if TYPE_CHECKING:
    from collections.abc import Callable

    from chatkeep.domain.conversation_store import ConversationStore
    from chatkeep.domain.ports import MessageSource


@dataclass(frozen=True, slots=True)
class CaptureSettings:
    auto_save: bool = True
    debounce_seconds: float = 1.0
    creation_retries: int = 3
    creation_backoff_seconds: float = 1.0
    save_retries: int = 2
    save_backoff_seconds: float = 0.5


@dataclass(frozen=True, slots=True)
class SessionKey:
    """Logical capture session: platform plus link without query string."""

    platform: str
    link: str

    @classmethod
    def from_url(cls, platform: str, url: str) -> SessionKey:
        return cls(platform=platform, link=clean_link(url))


def clean_link(url: str) -> str:
    return url.split("?", 1)[0]


@dataclass(slots=True, kw_only=True)
class CaptureContext:
    """Everything a capture session needs; no ambient globals.

    ``page`` returns the currently rendered page each time it is called.
    """

    source: MessageSource[Any, Any]
    page: Callable[[], Any]
    store: ConversationStore
    settings: CaptureSettings = field(default_factory=CaptureSettings)
    reconciler: ConversationReconciler = field(init=False)

    def __post_init__(self) -> None:
        self.reconciler = ConversationReconciler(store=self.store)
