"""Change notifications published after each committed mutation."""

from wash_ledger.events.emitter import EventEmitter
from wash_ledger.events.types import (
    ApprovalRequested,
    ApprovalResolved,
    CutoffChanged,
    DomainEvent,
    EventCategory,
    EventMetadata,
    WashEntryRecorded,
    WashEntryRemoved,
    WashEntryRestored,
)

__all__ = [
    "EventEmitter",
    "DomainEvent",
    "EventCategory",
    "EventMetadata",
    "WashEntryRecorded",
    "WashEntryRemoved",
    "WashEntryRestored",
    "ApprovalRequested",
    "ApprovalResolved",
    "CutoffChanged",
]
