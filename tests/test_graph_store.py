"""Tests for lazy per-scene script graph storage."""

import pytest

from novastate.errors import EntityNotFoundError
from novastate.graph_store import (
    MAIN_FLOW_GRAPH_ID,
    MAIN_FLOW_GRAPH_NAME,
    ScriptGraphStore,
)
from novastate.models import ScriptGraph, StartNode, TextNode


def test_initial_active_graph_is_empty_main_flow() -> None:
    store = ScriptGraphStore()

    assert store.active_graph.id == MAIN_FLOW_GRAPH_ID
    assert store.active_graph.name == MAIN_FLOW_GRAPH_NAME
    assert store.active_graph.nodes == []
    assert len(store) == 0


def test_initial_active_graph_reuses_stored_main_flow() -> None:
    stored = ScriptGraph(id=MAIN_FLOW_GRAPH_ID, name="Saga", nodes=[StartNode(id="go")])

    store = ScriptGraphStore({MAIN_FLOW_GRAPH_ID: stored})

    assert store.active_graph is stored


def test_graph_for_creates_once_and_returns_same_instance() -> None:
    store = ScriptGraphStore()

    first = store.graph_for("scene_1")
    second = store.graph_for("scene_1")

    assert first is second
    assert len(store) == 1
    assert [node.id for node in first.nodes] == ["start_scene_1"]
    assert first.connections == []
    assert first.name == "Script for scene_1"


def test_graph_for_keeps_existing_graph() -> None:
    existing = ScriptGraph(id="scene_1", name="Custom", nodes=[TextNode(id="t")])
    store = ScriptGraphStore({"scene_1": existing})

    assert store.graph_for("scene_1") is existing


def test_activate_switches_active_graph() -> None:
    store = ScriptGraphStore()

    graph = store.activate("scene_2")

    assert store.active_graph is graph
    assert "scene_2" in store


def test_set_active_graph_does_not_touch_storage() -> None:
    store = ScriptGraphStore()
    detached = ScriptGraph(id="preview", name="Preview")

    store.set_active_graph(detached)

    assert store.active_graph is detached
    assert "preview" not in store


def test_reset_active_graph_returns_to_main_flow() -> None:
    store = ScriptGraphStore()
    store.activate("scene_1")

    store.reset_active_graph()

    assert store.active_graph.id == MAIN_FLOW_GRAPH_ID


def test_resolve_prefers_active_graph() -> None:
    store = ScriptGraphStore()
    store.graph_for("scene_1")
    detached = ScriptGraph(id="scene_1", name="Edited copy")
    store.set_active_graph(detached)

    assert store.resolve("scene_1") is detached


def test_resolve_unknown_graph_raises() -> None:
    store = ScriptGraphStore()

    with pytest.raises(EntityNotFoundError):
        store.resolve("scene_missing")


def test_store_writes_under_graph_id() -> None:
    backing: dict = {}
    store = ScriptGraphStore(backing)
    graph = ScriptGraph(id="scene_9", name="Nine")

    store.store(graph)

    assert backing["scene_9"] is graph
    assert store.graphs["scene_9"] is graph
    with pytest.raises(TypeError):
        store.graphs["other"] = graph  # type: ignore[index]
