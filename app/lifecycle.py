"""Storage lifecycle of an audio record.

Two status axes move together:

* ``ipfs_status``: pinned_local -> migrating -> migrated, or pinned_local -> expired
  for ephemeral (demo) uploads.
* ``migration_status``: pending -> queued -> in_progress -> completed, or skip for
  ephemeral uploads.

Only the external migration worker advances a record after creation, and only
through ``apply_migration_status``. Terminal states never move.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING

from app.errors import InvalidTransitionError

if TYPE_CHECKING:
    from app.models.audio import AudioRecord


class IpfsStatus(str, Enum):
    PINNED_LOCAL = "pinned_local"
    MIGRATING = "migrating"
    MIGRATED = "migrated"
    EXPIRED = "expired"


class MigrationStatus(str, Enum):
    PENDING = "pending"
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIP = "skip"


TERMINAL_MIGRATION_STATUSES = frozenset({MigrationStatus.COMPLETED, MigrationStatus.SKIP})
TERMINAL_IPFS_STATUSES = frozenset({IpfsStatus.EXPIRED})

# Statuses the migration worker scans, oldest migration_queued_at first.
MIGRATION_SCAN_STATUSES = (MigrationStatus.PENDING, MigrationStatus.QUEUED)

_ALLOWED_MIGRATION_MOVES: dict[MigrationStatus, frozenset[MigrationStatus]] = {
    MigrationStatus.PENDING: frozenset({MigrationStatus.QUEUED, MigrationStatus.SKIP}),
    MigrationStatus.QUEUED: frozenset({MigrationStatus.IN_PROGRESS}),
    MigrationStatus.IN_PROGRESS: frozenset({MigrationStatus.COMPLETED, MigrationStatus.QUEUED}),
    MigrationStatus.COMPLETED: frozenset(),
    MigrationStatus.SKIP: frozenset(),
}

# ipfs_status a record must end up in for each migration_status the worker sets
_IPFS_STATUS_FOR: dict[MigrationStatus, IpfsStatus] = {
    MigrationStatus.QUEUED: IpfsStatus.PINNED_LOCAL,
    MigrationStatus.IN_PROGRESS: IpfsStatus.MIGRATING,
    MigrationStatus.COMPLETED: IpfsStatus.MIGRATED,
}


@dataclass(frozen=True)
class LifecycleState:
    """Lifecycle fields assigned at creation."""

    ipfs_status: IpfsStatus
    migration_status: MigrationStatus
    migration_queued_at: datetime | None
    pin_until: datetime | None


def initial_lifecycle(
    ephemeral: bool,
    now: datetime,
    retention: timedelta = timedelta(hours=24),
    migration_delay: timedelta = timedelta(hours=24),
) -> LifecycleState:
    """Lifecycle fields for a freshly pinned upload.

    Ephemeral uploads are never migrated and expire after ``retention``.
    Everything else waits ``migration_delay`` before becoming eligible for
    migration so the local pin serves the first wave of traffic.
    """
    if ephemeral:
        return LifecycleState(
            ipfs_status=IpfsStatus.PINNED_LOCAL,
            migration_status=MigrationStatus.SKIP,
            migration_queued_at=None,
            pin_until=now + retention,
        )
    return LifecycleState(
        ipfs_status=IpfsStatus.PINNED_LOCAL,
        migration_status=MigrationStatus.PENDING,
        migration_queued_at=now + migration_delay,
        pin_until=None,
    )


def is_ephemeral(record: AudioRecord) -> bool:
    return record.pin_until is not None or record.migration_status == MigrationStatus.SKIP


def check_migration_transition(record: AudioRecord, target: MigrationStatus) -> None:
    """Raise InvalidTransitionError unless ``record`` may move to ``target``."""
    current = MigrationStatus(record.migration_status)
    if current in TERMINAL_MIGRATION_STATUSES:
        raise InvalidTransitionError(f"migration_status '{current.value}' is terminal")
    if IpfsStatus(record.ipfs_status) in TERMINAL_IPFS_STATUSES:
        raise InvalidTransitionError(f"ipfs_status '{record.ipfs_status}' is terminal")
    if target not in _ALLOWED_MIGRATION_MOVES[current]:
        raise InvalidTransitionError(f"cannot move migration_status from '{current.value}' to '{target.value}'")
    if target in _IPFS_STATUS_FOR and is_ephemeral(record):
        raise InvalidTransitionError("ephemeral records are never migrated")


def apply_migration_status(record: AudioRecord, target: MigrationStatus, now: datetime) -> AudioRecord:
    """Move ``record`` to ``target`` and keep ipfs_status in step.

    A requeue (in_progress -> queued) returns ipfs_status to pinned_local. The
    local pin is only released after migration completes, so a requeued record
    is still served from the local gateway first.
    """
    check_migration_transition(record, target)

    record.migration_status = target.value
    if target in _IPFS_STATUS_FOR:
        record.ipfs_status = _IPFS_STATUS_FOR[target].value
    if target == MigrationStatus.COMPLETED:
        record.migration_completed_at = now
    record.updated_at = now
    return record


def is_gc_eligible(record: AudioRecord, now: datetime) -> bool:
    return (
        record.pin_until is not None
        and record.pin_until < now
        and record.ipfs_status == IpfsStatus.PINNED_LOCAL
    )


def mark_expired(record: AudioRecord, now: datetime) -> AudioRecord:
    """Record that an ephemeral upload's pin has been garbage-collected."""
    if record.pin_until is None:
        raise InvalidTransitionError("only ephemeral records expire")
    if not is_gc_eligible(record, now):
        raise InvalidTransitionError(
            f"record cannot expire from ipfs_status '{record.ipfs_status}' before {record.pin_until.isoformat()}"
        )

    record.ipfs_status = IpfsStatus.EXPIRED.value
    record.pinned_nodes = []
    record.last_gc_check = now
    record.updated_at = now
    return record
