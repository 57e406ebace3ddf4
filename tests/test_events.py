"""Tests for change events and the emitter."""

import json
from datetime import date
from uuid import uuid4

from wash_ledger.events import (
    ApprovalRequested,
    CutoffChanged,
    EventCategory,
    EventEmitter,
    EventMetadata,
    WashEntryRecorded,
    WashEntryRemoved,
)


def recorded() -> WashEntryRecorded:
    return WashEntryRecorded(
        metadata=EventMetadata.create(actor_id=uuid4()),
        entry_id=uuid4(),
        vehicle_id=uuid4(),
        wash_date=date(2024, 3, 10),
        location_id=uuid4(),
        employee_id=uuid4(),
    )


def cutoff_changed() -> CutoffChanged:
    return CutoffChanged(
        metadata=EventMetadata.create(),
        old_value=None,
        new_value=date(2024, 3, 15),
        reason="close",
    )


class TestDomainEvents:
    """Test event serialization."""

    def test_type_and_category(self):
        event = recorded()
        assert event.event_type == "WashEntryRecorded"
        assert event.category is EventCategory.LEDGER
        assert cutoff_changed().category is EventCategory.CUTOFF

    def test_to_json(self):
        event = recorded()
        data = json.loads(event.to_json())

        assert data["event_type"] == "WashEntryRecorded"
        assert data["category"] == "ledger"
        assert data["wash_date"] == "2024-03-10"
        assert data["entry_id"] == str(event.entry_id)
        assert data["metadata"]["event_id"] == str(event.metadata.event_id)


class TestEventEmitter:
    """Test routing and isolation."""

    def test_type_filter(self):
        emitter = EventEmitter()
        seen = []
        emitter.on([WashEntryRecorded, WashEntryRemoved], seen.append)

        emitter.emit(recorded())
        emitter.emit(cutoff_changed())

        assert [e.event_type for e in seen] == ["WashEntryRecorded"]

    def test_category_filter(self):
        emitter = EventEmitter()
        seen = []
        emitter.on_category(EventCategory.CUTOFF, seen.append)

        emitter.emit(recorded())
        emitter.emit(cutoff_changed())

        assert [e.event_type for e in seen] == ["CutoffChanged"]

    def test_failing_handler_is_isolated(self):
        """One broken subscriber does not starve the others."""
        emitter = EventEmitter()
        seen = []

        def broken(event):
            raise RuntimeError("boom")

        emitter.on_all(broken)
        emitter.on(ApprovalRequested, seen.append)
        emitter.on_all(seen.append)

        errors = emitter.emit(recorded())

        assert len(errors) == 1
        assert isinstance(errors[0], RuntimeError)
        assert len(seen) == 1

    def test_off(self):
        emitter = EventEmitter()
        seen = []

        def handler(event):
            seen.append(event)

        emitter.on_all(handler)
        emitter.off(handler)
        emitter.emit(recorded())
        assert seen == []

    def test_subscriber_failure_does_not_fail_mutation(self, service, world, emitter):
        """Ledger writes succeed even when a subscriber raises."""

        def broken(event):
            raise RuntimeError("notifier down")

        emitter.on(WashEntryRecorded, broken)
        entry = service.record_wash(
            world.t101.id, date(2024, 3, 10), world.e1.id, location_ids=[world.north.id]
        )
        assert service.ledger.get(entry.id).is_active
