"""Tests for the restore engine."""

import json
import os

import pytest

from pinwatch.daemon.restore import RestoreEngine
from pinwatch.daemon.snapshot import capture
from pinwatch.daemon.types import RestoreOutcome

MACHINE_ID = "telemetry.machineId"
DEVICE_ID = "telemetry.devDeviceId"
KEYS = [MACHINE_ID, DEVICE_ID]


def make_engine(**kwargs):
    return RestoreEngine(KEYS, grace_period_seconds=0, **kwargs)


def test_end_to_end_restore(temp_dir, write_json, read_json):
    """Test a rewritten protected key goes back to its captured value."""
    path = write_json(temp_dir / "storage.json", {MACHINE_ID: "X"})
    store = capture([path], KEYS)

    write_json(path, {MACHINE_ID: "Y", "other": 1})
    result = make_engine().reconcile(path, store.get(path))

    assert result.outcome == RestoreOutcome.RESTORED
    assert result.restored_keys == [MACHINE_ID]
    assert read_json(path) == {MACHINE_ID: "X", "other": 1}


def test_reconcile_is_idempotent(temp_dir, write_json):
    """Test a file that already matches its snapshot is not written."""
    path = write_json(temp_dir / "storage.json", {MACHINE_ID: "X", "other": 1})
    store = capture([path], KEYS)
    before = path.stat().st_mtime_ns
    text = path.read_text()

    engine = make_engine()
    first = engine.reconcile(path, store.get(path))
    second = engine.reconcile(path, store.get(path))

    assert first.outcome == RestoreOutcome.UNCHANGED
    assert second.outcome == RestoreOutcome.UNCHANGED
    assert path.read_text() == text
    assert path.stat().st_mtime_ns == before


def test_selective_restore(temp_dir, write_json, read_json):
    """Test only protected keys are restored; other edits survive."""
    path = write_json(temp_dir / "storage.json", {MACHINE_ID: "A", "B": "old"})
    store = capture([path], KEYS)

    write_json(path, {MACHINE_ID: "changed", "B": "new"})
    make_engine().reconcile(path, store.get(path))

    assert read_json(path) == {MACHINE_ID: "A", "B": "new"}


def test_structural_equality_does_not_rewrite(temp_dir, write_json):
    """Test reformatted but equal values do not trigger a write."""
    path = write_json(temp_dir / "storage.json", {MACHINE_ID: {"a": 1, "b": [1, 2]}, DEVICE_ID: 5})
    store = capture([path], KEYS)

    reformatted = '{"telemetry.machineId":{ "b":[1.0,2], "a":1 },"telemetry.devDeviceId":5.0}'
    path.write_text(reformatted)
    result = make_engine().reconcile(path, store.get(path))

    assert result.outcome == RestoreOutcome.UNCHANGED
    assert path.read_text() == reformatted


def test_boolean_replacing_number_is_drift(temp_dir, write_json, read_json):
    """Test a JSON boolean is not considered equal to the number it replaced."""
    path = write_json(temp_dir / "storage.json", {MACHINE_ID: 1})
    store = capture([path], KEYS)

    write_json(path, {MACHINE_ID: True})
    result = make_engine().reconcile(path, store.get(path))

    assert result.outcome == RestoreOutcome.RESTORED
    assert read_json(path) == {MACHINE_ID: 1}


def test_no_snapshot_no_action(temp_dir, write_json):
    """Test a file absent at capture time is never rewritten."""
    path = temp_dir / "storage.json"
    store = capture([path], KEYS)

    write_json(path, {MACHINE_ID: "anything"})
    text = path.read_text()
    result = make_engine().reconcile(path, store.get(path))

    assert result.outcome == RestoreOutcome.NO_SNAPSHOT
    assert path.read_text() == text


def test_keys_are_never_added(temp_dir, write_json, read_json):
    """Test keys missing on either side are left alone."""
    path = write_json(temp_dir / "storage.json", {MACHINE_ID: "X"})
    store = capture([path], KEYS)

    # Protected key removed from the live document, a new one appears
    write_json(path, {DEVICE_ID: "new", "other": 1})
    result = make_engine().reconcile(path, store.get(path))

    assert result.outcome == RestoreOutcome.UNCHANGED
    assert read_json(path) == {DEVICE_ID: "new", "other": 1}


def test_malformed_read_then_valid_read(temp_dir, write_json, read_json):
    """Test a mid-write read is skipped and the next valid read is reconciled."""
    path = write_json(temp_dir / "storage.json", {MACHINE_ID: "X"})
    store = capture([path], KEYS)
    engine = make_engine()

    path.write_text('{"telemetry.machineId": "Y", "oth')
    malformed = engine.reconcile(path, store.get(path))

    assert malformed.outcome == RestoreOutcome.MALFORMED
    assert path.read_text() == '{"telemetry.machineId": "Y", "oth'

    write_json(path, {MACHINE_ID: "Y", "other": 2})
    restored = engine.reconcile(path, store.get(path))

    assert restored.outcome == RestoreOutcome.RESTORED
    assert read_json(path) == {MACHINE_ID: "X", "other": 2}


def test_unreadable_file(temp_dir, write_json):
    """Test a file deleted before the read is skipped."""
    path = write_json(temp_dir / "storage.json", {MACHINE_ID: "X"})
    store = capture([path], KEYS)
    path.unlink()

    result = make_engine().reconcile(path, store.get(path))

    assert result.outcome == RestoreOutcome.UNREADABLE
    assert not path.exists()


def test_write_failure_is_reported(temp_dir, write_json, monkeypatch):
    """Test a failed write returns WRITE_FAILED instead of raising."""
    path = write_json(temp_dir / "storage.json", {MACHINE_ID: "X"})
    store = capture([path], KEYS)
    write_json(path, {MACHINE_ID: "Y"})

    def failing_write(*args, **kwargs):
        raise PermissionError("read-only")

    monkeypatch.setattr("pinwatch.daemon.restore.write_document", failing_write)
    result = make_engine().reconcile(path, store.get(path))

    assert result.outcome == RestoreOutcome.WRITE_FAILED
    assert json.loads(path.read_text()) == {MACHINE_ID: "Y"}


def test_grace_period_sleeps_before_reading(temp_dir, write_json):
    """Test the grace period is waited out before the file is read."""
    path = write_json(temp_dir / "storage.json", {MACHINE_ID: "X"})
    store = capture([path], KEYS)
    slept = []

    def fake_sleep(seconds):
        slept.append(seconds)
        write_json(path, {MACHINE_ID: "written during grace period"})

    engine = RestoreEngine(KEYS, grace_period_seconds=0.05, sleep=fake_sleep)
    result = engine.reconcile(path, store.get(path))

    assert slept == [0.05]
    assert result.outcome == RestoreOutcome.RESTORED


def test_restored_nested_value_is_a_copy(temp_dir, write_json):
    """Test restoring does not hand out the snapshot's own objects."""
    path = write_json(temp_dir / "storage.json", {MACHINE_ID: {"parts": [1]}})
    store = capture([path], KEYS)
    document = {MACHINE_ID: {"parts": [2]}}

    make_engine().apply_snapshot(document, store.get(path))
    document[MACHINE_ID]["parts"].append(99)

    assert store.get(path)[MACHINE_ID] == {"parts": [1]}


@pytest.mark.skipif(os.name != "posix", reason="symlinks need privileges on Windows")
def test_restore_through_symlinked_tracked_file(temp_dir, write_json, read_json):
    """Test a tracked symlink stays a link and its target gets the restored value."""
    real = write_json(temp_dir / "real" / "storage.json", {MACHINE_ID: "X"})
    link = temp_dir / "link" / "storage.json"
    link.parent.mkdir()
    link.symlink_to(real)
    store = capture([link], KEYS)

    write_json(real, {MACHINE_ID: "Y"})
    result = make_engine().reconcile(link, store.get(link))

    assert result.outcome == RestoreOutcome.RESTORED
    assert link.is_symlink()
    assert read_json(real) == {MACHINE_ID: "X"}
