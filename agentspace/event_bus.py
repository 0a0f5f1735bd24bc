"""
Fire-and-forget publish/subscribe bus.

Topics are ``category:action`` strings (``space:round_end``,
``entity:transform``). Subscribers filter by exact topic, by category, by
``"*"`` or by predicate. Nothing in the engines depends on a subscriber being
present, and a failing subscriber never interrupts the emitter.
"""

from __future__ import annotations

from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from itertools import count
from typing import Any, Callable, Deque, Dict, List, Optional, Union

from .config import Config
from .logging_utils import LOG_TAG_ERROR, log_error

MAX_EMIT_DEPTH = 16

EventFilter = Union[str, Callable[["Event"], bool]]
Listener = Callable[["Event"], None]


@dataclass
class Event:
    """One emitted notification."""

    id: int
    topic: str
    payload: Dict[str, Any] = field(default_factory=dict)
    source: Optional[str] = None
    depth: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def category(self) -> str:
        return self.topic.split(":", 1)[0]


@dataclass
class _Subscription:
    id: int
    filter: EventFilter
    listener: Listener

    def matches(self, event: Event) -> bool:
        if callable(self.filter):
            return bool(self.filter(event))
        if self.filter == "*":
            return True
        if ":" in self.filter:
            return self.filter == event.topic
        return self.filter == event.category


class EventBus:
    """In-process event bus with a bounded event log."""

    def __init__(self, log_limit: Optional[int] = None) -> None:
        self._subscriptions: List[_Subscription] = []
        self._ids = count(1)
        self._sub_ids = count(1)
        self._depth = 0
        self.log: Deque[Event] = deque(maxlen=log_limit or Config.EVENT_LOG_LIMIT)
        self.total_emitted = 0
        self.category_counts: Counter = Counter()

    def on(self, event_filter: EventFilter, listener: Listener) -> Callable[[], None]:
        """Subscribe and return a callable that removes the subscription."""
        subscription = _Subscription(next(self._sub_ids), event_filter, listener)
        self._subscriptions.append(subscription)

        def unsubscribe() -> None:
            self._subscriptions = [s for s in self._subscriptions if s.id != subscription.id]

        return unsubscribe

    def emit(
        self,
        topic: str,
        payload: Optional[Dict[str, Any]] = None,
        source: Optional[str] = None,
    ) -> Event:
        """Record an event and deliver it to matching subscribers."""
        if self._depth >= MAX_EMIT_DEPTH:
            # Runaway re-entrant emission: record the overflow instead of recursing further.
            event = Event(
                id=next(self._ids),
                topic="system:error",
                payload={"reason": "max emit depth exceeded", "topic": topic},
                source=source,
                depth=self._depth,
            )
            self._record(event)
            return event

        event = Event(
            id=next(self._ids),
            topic=topic,
            payload=dict(payload or {}),
            source=source,
            depth=self._depth,
        )
        self._record(event)

        self._depth += 1
        try:
            for subscription in list(self._subscriptions):
                if not subscription.matches(event):
                    continue
                try:
                    subscription.listener(event)
                except Exception as exc:  # listener errors never reach the emitter
                    log_error(f"  {LOG_TAG_ERROR} [EventBus] Listener for '{topic}' failed: {exc}")
        finally:
            self._depth -= 1
        return event

    def _record(self, event: Event) -> None:
        self.log.append(event)
        self.total_emitted += 1
        self.category_counts[event.category] += 1

    def recent(self, limit: int = 20, topic: Optional[str] = None) -> List[Event]:
        events = [e for e in self.log if topic is None or e.topic == topic]
        return events[-limit:]
