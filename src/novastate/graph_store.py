"""Per-scene script graph storage with lazy creation."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Mapping

from .errors import EntityNotFoundError
from .models import ScriptGraph, StartNode

logger = logging.getLogger(__name__)

MAIN_FLOW_GRAPH_ID = "main_flow"
MAIN_FLOW_GRAPH_NAME = "Main Story"
DEFAULT_START_POSITION = (100.0, 100.0)


def default_main_flow() -> ScriptGraph:
    """Return an empty top-level flow graph."""

    return ScriptGraph(id=MAIN_FLOW_GRAPH_ID, name=MAIN_FLOW_GRAPH_NAME)


def new_scene_graph(scene_id: str) -> ScriptGraph:
    """Return a fresh graph for ``scene_id`` holding only its start node."""

    x, y = DEFAULT_START_POSITION
    return ScriptGraph(
        id=scene_id,
        name=f"Script for {scene_id}",
        nodes=[StartNode(id=f"start_{scene_id}", x=x, y=y)],
        connections=[],
    )


class ScriptGraphStore:
    """Map scene identifiers to their script graphs.

    The store wraps the project's ``script_graphs`` mapping so graphs created
    here are persisted with the project. Graphs are never evicted, even when
    the owning scene is deleted.

    Separately the store tracks the *active* graph, the one currently surfaced
    in the editor. It usually belongs to the open scene, but callers may point
    it at any graph (for instance the main flow) with :meth:`set_active_graph`
    without touching the backing mapping.
    """

    def __init__(self, graphs: dict[str, ScriptGraph] | None = None) -> None:
        self._graphs: dict[str, ScriptGraph] = graphs if graphs is not None else {}
        self._active: ScriptGraph = self._main_flow()

    @property
    def graphs(self) -> Mapping[str, ScriptGraph]:
        """Return a read-only view of every stored graph."""

        return MappingProxyType(self._graphs)

    @property
    def active_graph(self) -> ScriptGraph:
        return self._active

    def __contains__(self, scene_id: object) -> bool:
        return scene_id in self._graphs

    def __len__(self) -> int:
        return len(self._graphs)

    def get(self, scene_id: str) -> ScriptGraph | None:
        return self._graphs.get(scene_id)

    def graph_for(self, scene_id: str) -> ScriptGraph:
        """Return the graph for ``scene_id``, creating it on first access."""

        graph = self._graphs.get(scene_id)
        if graph is None:
            graph = new_scene_graph(scene_id)
            self._graphs[scene_id] = graph
            logger.debug("Created script graph for scene '%s'", scene_id)
        return graph

    def activate(self, scene_id: str) -> ScriptGraph:
        """Load the graph for ``scene_id`` and make it the active graph."""

        graph = self.graph_for(scene_id)
        self._active = graph
        return graph

    def set_active_graph(self, graph: ScriptGraph) -> None:
        """Replace the active graph reference without touching stored graphs."""

        self._active = graph

    def reset_active_graph(self) -> None:
        self._active = self._main_flow()

    def _main_flow(self) -> ScriptGraph:
        return self._graphs.get(MAIN_FLOW_GRAPH_ID) or default_main_flow()

    def resolve(self, graph_id: str) -> ScriptGraph:
        """Return the active graph when its id matches, else the stored graph.

        Raises:
            EntityNotFoundError: If no graph with ``graph_id`` is known.
        """

        if self._active.id == graph_id:
            return self._active
        graph = self._graphs.get(graph_id)
        if graph is None:
            raise EntityNotFoundError("Script graph", graph_id)
        return graph

    def store(self, graph: ScriptGraph) -> None:
        """Write ``graph`` into the backing mapping under its own id."""

        self._graphs[graph.id] = graph


__all__ = [
    "DEFAULT_START_POSITION",
    "MAIN_FLOW_GRAPH_ID",
    "MAIN_FLOW_GRAPH_NAME",
    "ScriptGraphStore",
    "default_main_flow",
    "new_scene_graph",
]
