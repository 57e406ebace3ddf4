"""Client-side access to the wash ledger: backends and the tile store."""

from wash_ledger.client.backend import LocalBackend, WashBackend
from wash_ledger.client.http_backend import HttpBackend
from wash_ledger.client.tile_store import (
    OptimisticStateStore,
    ToggleOutcome,
    ToggleResult,
    UndoRecord,
)

__all__ = [
    "WashBackend",
    "LocalBackend",
    "HttpBackend",
    "OptimisticStateStore",
    "ToggleOutcome",
    "ToggleResult",
    "UndoRecord",
]
