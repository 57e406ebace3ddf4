"""HTTP API for the wash ledger."""
