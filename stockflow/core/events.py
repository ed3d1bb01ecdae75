"""In-process event bus for workflow events."""

from __future__ import annotations

import threading
from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Dict, List, Type

from .logging import get_logger

logger = get_logger("business")


@dataclass(frozen=True)
class Event:
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc), kw_only=True)


@dataclass(frozen=True)
class GrnApproved(Event):
    grn_id: int
    po_id: int
    item_id: int
    warehouse_id: int
    quantity: int


@dataclass(frozen=True)
class TransferCompleted(Event):
    transfer_id: int
    item_id: int
    from_warehouse_id: int
    to_warehouse_id: int
    quantity: int


Handler = Callable[[Any], None]


class EventBus:
    """
    Synchronous publish/subscribe keyed by event class.

    Handlers run on the publishing thread after the publisher has committed.
    A failing handler is logged and does not affect the publisher or the
    remaining handlers.
    """

    def __init__(self, history: int = 200):
        self._handlers: Dict[Type[Event], List[Handler]] = defaultdict(list)
        self._lock = threading.Lock()
        self._recent: Deque[Event] = deque(maxlen=history)

    def subscribe(self, event_type: Type[Event], handler: Handler) -> None:
        with self._lock:
            if handler not in self._handlers[event_type]:
                self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: Type[Event], handler: Handler) -> None:
        with self._lock:
            if handler in self._handlers[event_type]:
                self._handlers[event_type].remove(handler)

    def publish(self, event: Event) -> None:
        with self._lock:
            handlers = list(self._handlers[type(event)])
            self._recent.append(event)

        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(f"Event handler failed for {type(event).__name__}")

    def recent(self, limit: int = 50) -> list[Event]:
        if limit <= 0:
            return []
        return list(self._recent)[-limit:]


event_bus = EventBus()
