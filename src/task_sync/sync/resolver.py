# src/task_sync/sync/resolver.py

"""
Whole-record conflict resolution (last-write-wins on updatedAt).

resolve() is pure: it only compares the two records and returns a decision.
Equal timestamps with different content are settled by a configurable tie-break.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum

from .models import SyncSource, TaskRecord

REASON_CREATED = "created"
REASON_ACCEPTED = "accepted"
REASON_UNCHANGED = "unchanged"
REASON_SERVER_NEWER = "Server version is newer"
REASON_SERVER_TIE = "Server version is equally recent"
REASON_SERVER_PRIORITY = "Server version has higher source priority"

RESOLUTION_SERVER_WINS = "server_wins"

DEFAULT_SOURCE_PRIORITY: tuple[SyncSource, ...] = (
    SyncSource.SERVER,
    SyncSource.VAULT,
    SyncSource.EXTENSION,
)


class TieBreak(StrEnum):
    INCOMING_WINS = "incoming_wins"
    EXISTING_WINS = "existing_wins"
    SOURCE_PRIORITY = "source_priority"


@dataclass(frozen=True, slots=True)
class Resolution:
    apply: bool
    reason: str
    resolution: str | None = None

    @property
    def unchanged(self) -> bool:
        return self.reason == REASON_UNCHANGED


def _rank(source: SyncSource, order: Sequence[SyncSource]) -> int:
    # Higher is stronger; unlisted sources rank below every listed one.
    try:
        return len(order) - list(order).index(source)
    except ValueError:
        return 0


def resolve(
    existing: TaskRecord | None,
    incoming: TaskRecord,
    *,
    tie_break: TieBreak = TieBreak.INCOMING_WINS,
    source_priority: Sequence[SyncSource] = DEFAULT_SOURCE_PRIORITY,
) -> Resolution:
    if existing is None:
        return Resolution(apply=True, reason=REASON_CREATED)

    if incoming.updated_at > existing.updated_at:
        return Resolution(apply=True, reason=REASON_ACCEPTED)

    if incoming.updated_at < existing.updated_at:
        return Resolution(
            apply=False, reason=REASON_SERVER_NEWER, resolution=RESOLUTION_SERVER_WINS
        )

    if incoming.content_key() == existing.content_key():
        return Resolution(apply=False, reason=REASON_UNCHANGED)

    if tie_break == TieBreak.EXISTING_WINS:
        return Resolution(
            apply=False, reason=REASON_SERVER_TIE, resolution=RESOLUTION_SERVER_WINS
        )

    if tie_break == TieBreak.SOURCE_PRIORITY:
        if _rank(existing.source, source_priority) > _rank(incoming.source, source_priority):
            return Resolution(
                apply=False, reason=REASON_SERVER_PRIORITY, resolution=RESOLUTION_SERVER_WINS
            )

    return Resolution(apply=True, reason=REASON_ACCEPTED)


@dataclass(frozen=True, slots=True)
class ConflictPolicy:
    """resolve() with its policy knobs bound; built once from settings."""

    tie_break: TieBreak = TieBreak.INCOMING_WINS
    source_priority: tuple[SyncSource, ...] = DEFAULT_SOURCE_PRIORITY

    def resolve(self, existing: TaskRecord | None, incoming: TaskRecord) -> Resolution:
        return resolve(
            existing,
            incoming,
            tie_break=self.tie_break,
            source_priority=self.source_priority,
        )
