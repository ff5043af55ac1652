"""Tests for the file lock manager."""

import os

import pytest

from jobspine.core.scheduling import FileLockManager, safe_file_stem


@pytest.fixture
def manager(tmp_path):
    return FileLockManager(tmp_path / "locks")


class TestSafeFileStem:
    def test_dots_replaced(self):
        assert safe_file_stem("jobs.Heartbeat") == "jobs_Heartbeat"

    def test_safe_characters_kept(self):
        assert safe_file_stem("a-b_C9") == "a-b_C9"

    def test_unsafe_characters_replaced(self):
        assert safe_file_stem("my job/../x") == "my_job____x"


class TestFileLockManager:
    """Tests for acquire/release semantics."""

    def test_lock_path_is_deterministic(self, manager, tmp_path):
        assert manager.lock_path("jobs.Heartbeat") == tmp_path / "locks" / "job_lock_jobs_Heartbeat.lock"

    def test_acquire_creates_file_with_pid(self, manager):
        """First acquire wins and records the current pid."""
        assert manager.try_acquire("jobs.A") is True
        assert manager.is_locked("jobs.A")
        assert manager.get_lock_holder("jobs.A") == os.getpid()

    def test_second_acquire_fails(self, manager):
        """A held lock cannot be acquired again."""
        assert manager.try_acquire("jobs.A")
        assert manager.try_acquire("jobs.A") is False

    def test_release_then_acquire(self, manager):
        manager.try_acquire("jobs.A")
        assert manager.release("jobs.A") is True
        assert not manager.is_locked("jobs.A")
        assert manager.try_acquire("jobs.A") is True

    def test_release_is_idempotent(self, manager):
        assert manager.release("jobs.Missing") is False
        manager.try_acquire("jobs.A")
        assert manager.release("jobs.A") is True
        assert manager.release("jobs.A") is False

    def test_locks_are_per_identity(self, manager):
        assert manager.try_acquire("jobs.A")
        assert manager.try_acquire("jobs.B")

    def test_lock_holder_none_without_lock(self, manager):
        assert manager.get_lock_holder("jobs.A") is None

    def test_lock_holder_ignores_garbage(self, manager):
        path = manager.lock_path("jobs.A")
        path.parent.mkdir(parents=True)
        path.write_text("not-a-pid")
        assert manager.is_locked("jobs.A")
        assert manager.get_lock_holder("jobs.A") is None

    def test_list_active_locks(self, manager):
        manager.try_acquire("jobs.B")
        manager.try_acquire("jobs.A")
        locks = manager.list_active_locks()
        assert [lock["lock"] for lock in locks] == ["jobs_A", "jobs_B"]
        assert all(lock["pid"] == os.getpid() for lock in locks)

    def test_list_active_locks_without_directory(self, manager):
        assert manager.list_active_locks() == []

    def test_force_release_clears_stale_lock(self, manager):
        """A lock left by a dead process stays until force-released."""
        path = manager.lock_path("jobs.A")
        path.parent.mkdir(parents=True)
        path.write_text("999999")
        assert manager.try_acquire("jobs.A") is False
        assert manager.force_release("jobs.A") is True
        assert manager.try_acquire("jobs.A") is True
