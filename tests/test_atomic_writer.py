"""
Tests for atomic writes and backup rotation
"""
import errno
import gc
import threading
from unittest.mock import patch

import pytest

from filegate.core.errors import IOFailure
from filegate.services import atomic_writer as atomic_writer_module
from filegate.services.atomic_writer import AtomicFileWriter


def _writer(max_backups=5):
    return AtomicFileWriter(lambda: max_backups)


def _leftover_temp_files(directory):
    return [p for p in directory.iterdir() if p.name.endswith(".tmp")]


def test_write_then_read_back(tmp_path):
    target = tmp_path / "a.json"
    written = _writer().write(target, b'{"x": 1}')

    assert written == target.resolve()
    assert target.read_bytes() == b'{"x": 1}'
    assert not (tmp_path / "backups").exists()
    assert _leftover_temp_files(tmp_path) == []


def test_overwrite_takes_backup_of_previous_content(tmp_path):
    writer = _writer()
    target = tmp_path / "a.json"
    writer.write(target, b"one")
    writer.write(target, b"two")

    backups = writer.backups_for(target)
    assert target.read_bytes() == b"two"
    assert len(backups) == 1
    assert backups[0].parent == tmp_path / "backups"
    assert backups[0].name.startswith("a.json.")
    assert backups[0].name.endswith(".bak")
    assert backups[0].read_bytes() == b"one"


def test_identical_rewrite_leaves_one_backup(tmp_path):
    writer = _writer()
    target = tmp_path / "same.json"
    writer.write(target, b"payload")
    writer.write(target, b"payload")
    writer.write(target, b"payload")

    assert target.read_bytes() == b"payload"
    assert len(writer.backups_for(target)) == 1


def test_identical_rewrite_of_existing_file_leaves_one_backup(tmp_path):
    writer = _writer()
    target = tmp_path / "same.json"
    target.write_bytes(b"older")
    writer.write(target, b"payload")
    writer.write(target, b"payload")

    backups = writer.backups_for(target)
    assert len(backups) == 1
    assert backups[0].read_bytes() == b"older"


def test_rotation_keeps_newest(tmp_path):
    writer = _writer(max_backups=3)
    target = tmp_path / "r.json"
    for i in range(7):
        writer.write(target, f"v{i}".encode())

    backups = writer.backups_for(target)
    assert len(backups) == 3
    # Oldest first: the three versions written just before the live one
    assert [b.read_bytes() for b in backups] == [b"v3", b"v4", b"v5"]
    assert target.read_bytes() == b"v6"


def test_zero_max_backups_disables_backups(tmp_path):
    writer = _writer(max_backups=0)
    target = tmp_path / "n.txt"
    writer.write(target, b"1")
    writer.write(target, b"2")

    assert writer.backups_for(target) == []
    assert not (tmp_path / "backups").exists()


def test_backups_of_other_files_are_untouched(tmp_path):
    writer = _writer(max_backups=1)
    a = tmp_path / "a.json"
    ab = tmp_path / "a.json.old"
    for i in range(3):
        writer.write(a, f"a{i}".encode())
        writer.write(ab, f"b{i}".encode())

    assert len(writer.backups_for(a)) == 1
    assert len(writer.backups_for(ab)) == 1


def test_backup_name_collision_gets_counter(tmp_path):
    writer = _writer()
    target = tmp_path / "c.json"
    with patch.object(atomic_writer_module, "_backup_stamp", return_value="20240101000000000000"):
        for i in range(4):
            writer.write(target, f"c{i}".encode())

    backups = writer.backups_for(target)
    assert [b.name for b in backups] == [
        "c.json.20240101000000000000.bak",
        "c.json.20240101000000000000-1.bak",
        "c.json.20240101000000000000-2.bak",
    ]
    assert [b.read_bytes() for b in backups] == [b"c0", b"c1", b"c2"]


def test_failed_replace_keeps_original_and_cleans_temp(tmp_path):
    writer = _writer()
    target = tmp_path / "keep.json"
    writer.write(target, b"original")

    with patch.object(atomic_writer_module.os, "replace", side_effect=PermissionError(errno.EACCES, "denied")):
        with pytest.raises(IOFailure):
            writer.write(target, b"replacement")

    assert target.read_bytes() == b"original"
    assert _leftover_temp_files(tmp_path) == []


def test_unsupported_replace_falls_back_to_move(tmp_path):
    writer = _writer()
    target = tmp_path / "fallback.json"
    writer.write(target, b"first")

    unsupported = OSError(errno.EXDEV, "cross-device link")
    with patch.object(atomic_writer_module.os, "replace", side_effect=unsupported):
        writer.write(target, b"second")

    assert target.read_bytes() == b"second"
    assert _leftover_temp_files(tmp_path) == []


def test_backup_failure_does_not_block_write(tmp_path):
    writer = _writer()
    target = tmp_path / "b.json"
    writer.write(target, b"first")

    with patch.object(atomic_writer_module.shutil, "copyfile", side_effect=OSError("no space")):
        writer.write(target, b"second")

    assert target.read_bytes() == b"second"


def test_missing_directory_is_io_failure(tmp_path):
    with pytest.raises(IOFailure):
        _writer().write(tmp_path / "nope" / "x.json", b"data")


def test_same_path_uses_same_lock(tmp_path):
    writer = _writer()
    first = writer._lock_for((tmp_path / "x.json").resolve())
    second = writer._lock_for((tmp_path / "x.json").resolve())
    other = writer._lock_for((tmp_path / "y.json").resolve())
    assert first is second
    assert first is not other


def test_idle_locks_are_released(tmp_path):
    writer = _writer()
    for i in range(20):
        writer.write(tmp_path / f"f{i}.json", b"{}")
    gc.collect()
    assert len(writer._locks) == 0

    held = writer._lock_for((tmp_path / "busy.json").resolve())
    gc.collect()
    assert len(writer._locks) == 1
    assert writer._lock_for((tmp_path / "busy.json").resolve()) is held


def test_concurrent_writes_to_same_path(tmp_path):
    writer = _writer()
    target = tmp_path / "shared.json"
    payloads = [b'{"writer": 1}', b'{"writer": 2}']
    barrier = threading.Barrier(len(payloads))
    errors = []

    def write(data):
        try:
            barrier.wait()
            writer.write(target, data)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=write, args=(data,)) for data in payloads]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert errors == []
    assert target.read_bytes() in payloads
    assert _leftover_temp_files(tmp_path) == []
    backups = writer.backups_for(target)
    assert len(backups) <= 1
    for backup in backups:
        assert backup.read_bytes() in payloads
