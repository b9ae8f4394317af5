"""
Task synchronization subsystem.

Components:
- models.py: data structures (TaskRecord, SyncCursor, enums)
- dto.py: camelCase wire format <-> models, ISO-8601 timestamps
- record_store.py: SQLite-backed (and in-memory) task record store
- cursor_registry.py: per-source push bookkeeping
- resolver.py: last-write-wins conflict policy
- locks.py: per-task-id mutual exclusion
- ingest.py: batch push with per-record isolation
- export.py: capped, echo-suppressed incremental pull
- api.py: request handlers producing response envelopes
"""
