"""Tests for the slot registry."""

import pytest
from hypothesis import given, strategies as st

from fetchkit.query.slots import EndpointScope, ParamsScope, SlotRegistry


@pytest.mark.unit
def test_insert_assigns_increasing_ids():
    """Test ids are per-entry and increasing."""
    registry = SlotRegistry[str]()

    assert registry.insert("get_todo", "a") == 0
    assert registry.insert("get_todo", "b") == 1
    assert registry.insert("list_todos", "c") == 0


@pytest.mark.unit
def test_ids_never_reused_while_entry_lives():
    """Test removed ids are not handed out again."""
    registry = SlotRegistry[str]()
    first = registry.insert("get_todo", "a")
    registry.insert("get_todo", "b")

    registry.remove("get_todo", first)

    assert registry.insert("get_todo", "c") == 2
    assert registry.payloads("get_todo") == ["b", "c"]


@pytest.mark.unit
def test_entry_removed_with_last_slot():
    """Test an entry exists only while it has slots."""
    registry = SlotRegistry[str]()
    slot = registry.insert("get_todo", "a")
    assert "get_todo" in registry

    assert registry.remove("get_todo", slot) == "a"
    assert "get_todo" not in registry
    assert len(registry) == 0


@pytest.mark.unit
def test_get_and_remove_missing():
    """Test lookups of unknown entries/slots."""
    registry = SlotRegistry[str]()
    registry.insert("get_todo", "a")

    assert registry.get("get_todo", 0) == "a"
    assert registry.get("get_todo", 5) is None
    assert registry.get("other", 0) is None
    assert registry.remove("other", 0) is None
    assert registry.payloads("other") == []


@pytest.mark.unit
def test_endpoint_scope_shares_one_entry():
    """Test all callers of an endpoint share its entry."""
    registry = SlotRegistry[str]()
    scope = EndpointScope()

    registry.insert(scope.entry_key("get_todo", "get_todo:aaa"), "a")
    registry.insert(scope.entry_key("get_todo", "get_todo:bbb"), "b")

    assert registry.entry_keys() == ["get_todo"]
    assert scope.broadcast_keys("get_todo", registry) == ["get_todo"]
    assert scope.broadcast_keys("list_todos", registry) == []


@pytest.mark.unit
def test_params_scope_splits_by_cache_key():
    """Test callers with different params get separate entries."""
    registry = SlotRegistry[str]()
    scope = ParamsScope()

    registry.insert(scope.entry_key("get_todo", "get_todo:aaa"), "a")
    registry.insert(scope.entry_key("get_todo", "get_todo:bbb"), "b")
    registry.insert(scope.entry_key("get_todos", "get_todos:ccc"), "c")

    assert len(registry) == 3
    assert sorted(scope.broadcast_keys("get_todo", registry)) == ["get_todo:aaa", "get_todo:bbb"]


@given(st.lists(st.booleans(), min_size=1, max_size=50))
def test_ids_unique_property(operations):
    """Property test: live slot ids are unique and strictly increasing."""
    registry = SlotRegistry[int]()
    live: list[int] = []
    issued: list[int] = []

    for insert in operations:
        if insert or not live:
            slot = registry.insert("entry", len(issued))
            issued.append(slot)
            live.append(slot)
        else:
            registry.remove("entry", live.pop(0))
            if not live:
                # Entry deleted; a new one starts counting from zero
                assert issued == sorted(set(issued))
                issued = []

    assert issued == sorted(set(issued))
    assert ("entry" in registry) == bool(live)
