"""Tests for the typed update event bus."""

from uuid import uuid4

from backend.events import EventBus, UpdateEvent, UpdateTopic


def test_subscribers_receive_matching_topics_only() -> None:
    bus = EventBus()
    expense_events: list[UpdateEvent] = []
    all_events: list[UpdateEvent] = []
    bus.subscribe(UpdateTopic.EXPENSES, expense_events.append)
    bus.subscribe(None, all_events.append)

    entity_id = uuid4()
    bus.publish(UpdateTopic.EXPENSES, entity_id=entity_id)
    bus.publish(UpdateTopic.WORKERS)

    assert [event.entity_id for event in expense_events] == [entity_id]
    assert [event.topic for event in all_events] == [UpdateTopic.EXPENSES, UpdateTopic.WORKERS]


def test_sequence_is_strictly_increasing() -> None:
    bus = EventBus()

    first = bus.publish(UpdateTopic.PROJECTS)
    second = bus.publish(UpdateTopic.PROJECTS)

    assert second.sequence > first.sequence
    assert bus.last_sequence == second.sequence


def test_unsubscribe_removes_handler() -> None:
    bus = EventBus()
    received: list[UpdateEvent] = []
    unsubscribe = bus.subscribe(UpdateTopic.PAYMENTS, received.append)

    unsubscribe()
    unsubscribe()
    bus.publish(UpdateTopic.PAYMENTS)

    assert received == []


def test_failing_handler_does_not_block_others(caplog) -> None:
    bus = EventBus()
    received: list[UpdateEvent] = []

    def _boom(_event: UpdateEvent) -> None:
        raise RuntimeError("boom")

    bus.subscribe(UpdateTopic.EVIDENCE, _boom)
    bus.subscribe(UpdateTopic.EVIDENCE, received.append)

    bus.publish(UpdateTopic.EVIDENCE)

    assert len(received) == 1
    assert "event_handler_failed" in caplog.text
