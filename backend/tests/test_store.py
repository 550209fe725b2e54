"""Tests for MemoryStore and FileStore."""

import pytest

from area.core.store import FileStore, MemoryStore


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    if request.param == "memory":
        return MemoryStore()
    return FileStore(tmp_path / "data")


def _create(store, **kwargs):
    defaults = dict(
        user_id=1, name="wf", action_id=6, action_data=["python"],
        reaction_id=1, reaction_data=["123", "hello"],
    )
    defaults.update(kwargs)
    return store.create_workflow(**defaults)


def test_create_and_get_workflow(store):
    wf = _create(store, description="watch r/python")
    loaded = store.get_workflow(wf.id)
    assert loaded is not None
    assert loaded.name == "wf"
    assert loaded.description == "watch r/python"
    assert loaded.action_data == ["python"]
    assert loaded.cursor is None


def test_ids_increase(store):
    first = _create(store)
    second = _create(store)
    assert second.id > first.id


def test_list_workflows_filters(store):
    a = _create(store, user_id=1, action_id=6)
    b = _create(store, user_id=2, action_id=7)
    c = _create(store, user_id=1, action_id=2)

    assert [w.id for w in store.list_workflows()] == [a.id, b.id, c.id]
    assert [w.id for w in store.list_workflows(user_id=1)] == [a.id, c.id]
    assert [w.id for w in store.list_workflows(action_ids=[7, 2])] == [b.id, c.id]
    assert store.list_workflows(user_id=2, action_ids=[6]) == []


def test_update_cursor_leaves_action_data(store):
    wf = _create(store)
    store.update_cursor(wf.id, "t3_abc")
    loaded = store.get_workflow(wf.id)
    assert loaded.cursor == "t3_abc"
    assert loaded.action_data == ["python"]


def test_update_cursor_missing_workflow(store):
    with pytest.raises(KeyError):
        store.update_cursor(999, "x")


def test_update_action_data(store):
    wf = _create(store, action_id=4, action_data=["3"])
    store.update_action_data(wf.id, ["3", "2025-01-01T12:00:00+00:00"])
    assert store.get_workflow(wf.id).action_data == ["3", "2025-01-01T12:00:00+00:00"]


def test_delete_workflow(store):
    wf = _create(store)
    store.delete_workflow(wf.id)
    assert store.get_workflow(wf.id) is None
    store.delete_workflow(wf.id)  # idempotent


def test_returned_workflow_is_a_copy(store):
    wf = _create(store)
    wf.action_data.append("mutated")
    assert store.get_workflow(wf.id).action_data == ["python"]


def test_user_service_upsert(store):
    first = store.save_user_service(1, 3, "tok-1")
    second = store.save_user_service(1, 3, "tok-2", refresh_token="ref")
    assert second.created_at == first.created_at
    loaded = store.get_user_service(1, 3)
    assert loaded.token == "tok-2"
    assert loaded.refresh_token == "ref"
    assert len(store.list_user_services(1)) == 1


def test_list_and_delete_user_services(store):
    store.save_user_service(1, 5, "a")
    store.save_user_service(1, 1, "b")
    store.save_user_service(2, 1, "c")
    assert [c.service_id for c in store.list_user_services(1)] == [1, 5]

    store.delete_user_service(1, 5)
    assert store.get_user_service(1, 5) is None
    with pytest.raises(KeyError):
        store.delete_user_service(1, 5)


def test_logs_newest_first_and_filtered(store):
    store.add_log("info", "one", "Reddit Worker")
    store.add_log("error", "two", "Slack Worker", {"workflowId": 3})
    store.add_log("info", "three", "Reddit Worker")

    assert [e.message for e in store.list_logs()] == ["three", "two", "one"]
    assert [e.message for e in store.list_logs(context="Reddit Worker")] == ["three", "one"]
    assert [e.message for e in store.list_logs(limit=1)] == ["three"]
    assert store.list_logs(context="Slack Worker")[0].metadata == {"workflowId": 3}


def test_logs_filtered_by_owner(store):
    store.add_log("info", "mine", "Reddit Worker", user_id=1)
    store.add_log("info", "theirs", "Reddit Worker", user_id=2)
    store.add_log("error", "system", "Reddit Worker")

    assert [e.message for e in store.list_logs(user_id=1)] == ["mine"]
    assert [e.message for e in store.list_logs(context="Reddit Worker", user_id=2)] == ["theirs"]
    assert len(store.list_logs()) == 3


def test_file_store_survives_restart(tmp_path):
    data_dir = tmp_path / "data"
    store = FileStore(data_dir)
    wf = _create(store)
    store.update_cursor(wf.id, "abc")
    store.save_user_service(1, 3, "tok")
    store.add_log("info", "first", "Test", user_id=1)

    reopened = FileStore(data_dir)
    assert reopened.get_workflow(wf.id).cursor == "abc"
    assert reopened.get_user_service(1, 3).token == "tok"
    entry = reopened.add_log("info", "second", "Test")
    assert entry.id == 2
    assert [e.message for e in reopened.list_logs()] == ["second", "first"]
    assert reopened.list_logs(user_id=1)[0].message == "first"


def test_file_store_never_reuses_deleted_ids(tmp_path):
    store = FileStore(tmp_path / "data")
    first = _create(store)
    store.delete_workflow(first.id)
    second = _create(store)
    assert second.id == first.id + 1


def test_file_store_skips_corrupt_workflow(tmp_path):
    store = FileStore(tmp_path / "data")
    wf = _create(store)
    (tmp_path / "data" / "workflows" / "99.json").write_text("{not json")
    assert [w.id for w in store.list_workflows()] == [wf.id]
