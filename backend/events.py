"""Typed in-process event bus signalling that persisted records changed."""

from __future__ import annotations

import itertools
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable
from uuid import UUID


logger = logging.getLogger(__name__)


class UpdateTopic(str, Enum):
    PROJECTS = "projects"
    EXPENSES = "expenses"
    PAYMENTS = "payments"
    WORKERS = "workers"
    EVIDENCE = "evidence"


@dataclass(frozen=True, slots=True)
class UpdateEvent:
    topic: UpdateTopic
    entity_id: UUID | None = None
    project_id: UUID | None = None
    sequence: int = 0
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Handler = Callable[[UpdateEvent], None]


class EventBus:
    """Synchronous observer registry.

    Every published event gets a strictly increasing `sequence`, so a
    subscriber can discard anything older than what it already applied.
    """

    def __init__(self) -> None:
        self._handlers: dict[UpdateTopic | None, list[Handler]] = defaultdict(list)
        self._sequence = itertools.count(1)
        self.last_sequence = 0

    def subscribe(self, topic: UpdateTopic | None, handler: Handler) -> Callable[[], None]:
        """Register `handler` for `topic` (`None` listens to every topic) and return an unsubscribe callable."""

        self._handlers[topic].append(handler)

        def _unsubscribe() -> None:
            handlers = self._handlers.get(topic, [])
            if handler in handlers:
                handlers.remove(handler)

        return _unsubscribe

    def publish(
        self,
        topic: UpdateTopic,
        *,
        entity_id: UUID | None = None,
        project_id: UUID | None = None,
    ) -> UpdateEvent:
        event = UpdateEvent(
            topic=topic,
            entity_id=entity_id,
            project_id=project_id,
            sequence=next(self._sequence),
        )
        self.last_sequence = event.sequence
        for handler in [*self._handlers.get(topic, []), *self._handlers.get(None, [])]:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "event_handler_failed topic=%s sequence=%s", topic.value, event.sequence
                )
        return event
