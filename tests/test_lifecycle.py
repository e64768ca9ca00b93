"""Tests for the record lifecycle state machine."""

from datetime import datetime, timedelta

import pytest

from app.errors import InvalidTransitionError
from app.gateways import GatewayConfig, resolve_gateways
from app.lifecycle import (
    IpfsStatus,
    MigrationStatus,
    apply_migration_status,
    initial_lifecycle,
    is_gc_eligible,
    mark_expired,
)
from app.models.audio import AudioRecord

NOW = datetime(2026, 10, 18, 12, 0, 0)


def _record(**overrides) -> AudioRecord:
    fields = {
        "permlink": "abcd1234",
        "owner": "alice",
        "content_id": "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG",
        "pinned_nodes": ["local"],
        "ipfs_status": "pinned_local",
        "migration_status": "pending",
        "migration_queued_at": NOW + timedelta(hours=24),
        "pin_until": None,
    }
    fields.update(overrides)
    return AudioRecord(**fields)


class TestInitialLifecycle:
    def test_regular_upload(self):
        state = initial_lifecycle(ephemeral=False, now=NOW)
        assert state.ipfs_status == IpfsStatus.PINNED_LOCAL
        assert state.migration_status == MigrationStatus.PENDING
        assert state.migration_queued_at == NOW + timedelta(hours=24)
        assert state.pin_until is None

    def test_ephemeral_upload(self):
        state = initial_lifecycle(ephemeral=True, now=NOW)
        assert state.ipfs_status == IpfsStatus.PINNED_LOCAL
        assert state.migration_status == MigrationStatus.SKIP
        assert state.pin_until == NOW + timedelta(hours=24)
        assert state.migration_queued_at is None

    def test_custom_windows(self):
        state = initial_lifecycle(ephemeral=False, now=NOW, migration_delay=timedelta(hours=1))
        assert state.migration_queued_at == NOW + timedelta(hours=1)


class TestMigrationTransitions:
    def test_full_migration_path(self):
        record = _record()

        apply_migration_status(record, MigrationStatus.QUEUED, NOW)
        assert (record.migration_status, record.ipfs_status) == ("queued", "pinned_local")

        apply_migration_status(record, MigrationStatus.IN_PROGRESS, NOW)
        assert (record.migration_status, record.ipfs_status) == ("in_progress", "migrating")

        apply_migration_status(record, MigrationStatus.COMPLETED, NOW)
        assert (record.migration_status, record.ipfs_status) == ("completed", "migrated")
        assert record.migration_completed_at == NOW

    def test_in_progress_can_be_requeued(self):
        record = _record(migration_status="in_progress", ipfs_status="migrating")
        apply_migration_status(record, MigrationStatus.QUEUED, NOW)
        assert (record.migration_status, record.ipfs_status) == ("queued", "pinned_local")
        assert record.pinned_nodes == ["local"]

        config = GatewayConfig(local="http://localhost:8080", primary="https://ipfs.io")
        assert resolve_gateways(record, config)[0].startswith("http://localhost:8080/")

    def test_pending_can_be_skipped(self):
        record = _record()
        apply_migration_status(record, MigrationStatus.SKIP, NOW)
        assert record.migration_status == "skip"
        assert record.ipfs_status == "pinned_local"

    @pytest.mark.parametrize(
        "current,target",
        [
            ("pending", MigrationStatus.IN_PROGRESS),
            ("pending", MigrationStatus.COMPLETED),
            ("queued", MigrationStatus.COMPLETED),
            ("queued", MigrationStatus.PENDING),
            ("in_progress", MigrationStatus.PENDING),
        ],
    )
    def test_skipping_steps_rejected(self, current: str, target: MigrationStatus):
        record = _record(migration_status=current)
        with pytest.raises(InvalidTransitionError):
            apply_migration_status(record, target, NOW)
        assert record.migration_status == current

    @pytest.mark.parametrize("target", list(MigrationStatus))
    def test_completed_is_terminal(self, target: MigrationStatus):
        record = _record(migration_status="completed", ipfs_status="migrated")
        with pytest.raises(InvalidTransitionError):
            apply_migration_status(record, target, NOW)

    @pytest.mark.parametrize("target", list(MigrationStatus))
    def test_skip_is_terminal(self, target: MigrationStatus):
        record = _record(migration_status="skip", pin_until=NOW + timedelta(hours=24), migration_queued_at=None)
        with pytest.raises(InvalidTransitionError):
            apply_migration_status(record, target, NOW)
        assert record.ipfs_status == "pinned_local"

    def test_ephemeral_with_pending_status_never_migrates(self):
        record = _record(pin_until=NOW + timedelta(hours=1))
        with pytest.raises(InvalidTransitionError, match="ephemeral"):
            apply_migration_status(record, MigrationStatus.QUEUED, NOW)

    def test_expired_record_cannot_migrate(self):
        record = _record(ipfs_status="expired")
        with pytest.raises(InvalidTransitionError):
            apply_migration_status(record, MigrationStatus.QUEUED, NOW)


class TestExpiry:
    def test_expired_ephemeral_record(self):
        record = _record(migration_status="skip", pin_until=NOW - timedelta(minutes=1))
        assert is_gc_eligible(record, NOW)

        mark_expired(record, NOW)
        assert record.ipfs_status == "expired"
        assert record.pinned_nodes == []
        assert record.last_gc_check == NOW

    def test_not_yet_expired(self):
        record = _record(migration_status="skip", pin_until=NOW + timedelta(hours=1))
        assert not is_gc_eligible(record, NOW)
        with pytest.raises(InvalidTransitionError):
            mark_expired(record, NOW)

    def test_permanent_record_never_expires(self):
        record = _record()
        assert not is_gc_eligible(record, NOW)
        with pytest.raises(InvalidTransitionError, match="ephemeral"):
            mark_expired(record, NOW)

    def test_expired_is_terminal(self):
        record = _record(migration_status="skip", pin_until=NOW - timedelta(hours=1), ipfs_status="expired")
        with pytest.raises(InvalidTransitionError):
            mark_expired(record, NOW)
