"""Tests for the per-job JSON state store."""

import json

import pytest
from structlog.testing import capture_logs

from jobspine.core.errors import StateError
from jobspine.core.state import (
    CallbackShape,
    JobStateStore,
    StateCallback,
    no_args,
    one_arg,
    two_args,
)


@pytest.fixture
def store(tmp_path):
    return JobStateStore("jobs.PriceWatch", tmp_path / "state")


class TestGetSet:
    """Tests for basic reads and writes."""

    def test_path(self, store, tmp_path):
        assert store.path == tmp_path / "state" / "job_state_jobs_PriceWatch.json"

    def test_missing_key_returns_default(self, store):
        assert store.get("price") is None
        assert store.get("price", 0) == 0

    def test_document_created_lazily(self, store):
        store.get("price")
        assert not store.path.exists()
        store.set("price", 1)
        assert store.path.exists()

    def test_set_persists_whole_document(self, store):
        store.set("a", 1)
        store.set("b", {"nested": [1, 2]})
        assert json.loads(store.path.read_text()) == {"a": 1, "b": {"nested": [1, 2]}}

    def test_state_survives_new_store_instance(self, store, tmp_path):
        store.set("cursor", "abc")
        assert JobStateStore("jobs.PriceWatch", tmp_path / "state").get("cursor") == "abc"

    def test_set_returns_whether_changed(self, store):
        assert store.set("price", 42) is True
        assert store.set("price", 42) is False
        assert store.set("price", 43) is True

    def test_deep_equality(self, store):
        store.set("data", {"a": [1, 2]})
        assert store.set("data", {"a": [1, 2]}) is False

    def test_tuple_equals_stored_list(self, store):
        store.set("pair", [1, 2])
        assert store.set("pair", (1, 2)) is False

    def test_none_on_missing_key_is_noop(self, store):
        assert store.set("price", None) is False
        assert not store.path.exists()

    def test_all_returns_copy(self, store):
        store.set("a", 1)
        snapshot = store.all()
        snapshot["a"] = 2
        assert store.get("a") == 1

    def test_unserialisable_value_raises(self, store):
        with pytest.raises(StateError):
            store.set("bad", object())

    def test_no_temp_files_left_behind(self, store):
        store.set("a", 1)
        store.set("a", 2)
        assert [p.name for p in store.state_dir.iterdir()] == [store.path.name]


class TestCorruptDocument:
    """Unreadable documents are treated as empty."""

    def test_corrupt_json(self, store):
        store.state_dir.mkdir(parents=True)
        store.path.write_text("{not json")
        with capture_logs() as logs:
            assert store.get("a") is None
        assert logs[0]["event"] == "state_document_corrupt"

    def test_empty_file(self, store):
        store.state_dir.mkdir(parents=True)
        store.path.write_text("")
        assert store.all() == {}

    def test_non_object_document(self, store):
        store.state_dir.mkdir(parents=True)
        store.path.write_text("[1, 2]")
        assert store.all() == {}

    def test_write_after_corruption_recovers(self, store):
        store.state_dir.mkdir(parents=True)
        store.path.write_text("garbage")
        assert store.set("a", 1) is True
        assert store.get("a") == 1


class TestChangeCallbacks:
    """Callbacks fire once per change in their declared shape."""

    def test_no_callback_on_noop(self, store):
        calls = []
        store.set("price", 1)
        store.set("price", 1, two_args(lambda new, old: calls.append((new, old))))
        assert calls == []

    def test_two_args_receives_new_and_old(self, store):
        calls = []
        store.set("price", 1)
        store.set("price", 2, two_args(lambda new, old: calls.append((new, old))))
        assert calls == [(2, 1)]

    def test_one_arg_receives_new(self, store):
        calls = []
        store.set("price", 5, one_arg(calls.append))
        assert calls == [5]

    def test_no_args(self, store):
        calls = []
        store.set("price", 5, no_args(lambda: calls.append("changed")))
        assert calls == ["changed"]

    def test_bare_callable_defaults_to_two_args(self, store):
        calls = []
        store.set("price", 5, lambda new, old: calls.append((new, old)))
        assert calls == [(5, None)]

    def test_explicit_state_callback(self, store):
        callback = StateCallback(lambda new: new, CallbackShape.ONE_ARG)
        assert callback.invoke(1, 0, single=1) == 1

    def test_callback_runs_after_persist(self, store):
        seen = []
        store.set("price", 7, no_args(lambda: seen.append(store.get("price"))))
        assert seen == [7]


class TestCheckAndUpdate:
    """The predicate decides whether the candidate is committed."""

    def test_two_args_predicate_commits(self, store):
        store.set("low", 10)
        assert store.check_and_update("low", 8, two_args(lambda new, old: new < old)) is True
        assert store.get("low") == 8

    def test_two_args_predicate_rejects(self, store):
        store.set("low", 10)
        assert store.check_and_update("low", 12, two_args(lambda new, old: new < old)) is False
        assert store.get("low") == 10

    def test_one_arg_predicate_receives_old(self, store):
        seen = []

        def predicate(old):
            seen.append(old)
            return old is None

        assert store.check_and_update("first", "x", one_arg(predicate)) is True
        assert seen == [None]
        assert store.check_and_update("first", "y", one_arg(predicate)) is False
        assert store.get("first") == "x"

    def test_no_args_predicate(self, store):
        assert store.check_and_update("k", 1, no_args(lambda: True)) is True
        assert store.get("k") == 1
