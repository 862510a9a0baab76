"""Reversible edits applied through :class:`~novastate.history.CommandHistory`.

Commands are small dataclasses that carry only what they need to apply and
reverse themselves. They operate on an :class:`EditorState` passed in by the
caller rather than reaching for shared state, so ``apply``/``reverse`` can be
exercised directly in tests.

``apply`` followed by ``reverse`` must leave the state exactly as it was,
including anything destroyed as a side effect. Removal commands therefore
snapshot what they delete, with original list positions, every time they are
applied.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import ClassVar, Sequence

from .content_tree import ContentTree
from .errors import EntityNotFoundError
from .graph_store import ScriptGraphStore
from .models import (
    SceneElement,
    SceneRef,
    ScriptConnection,
    ScriptGraph,
    ScriptNode,
)


@dataclass
class EditorState:
    """Handle on the state commands are allowed to mutate."""

    tree: ContentTree
    graphs: ScriptGraphStore

    @classmethod
    def for_tree(cls, tree: ContentTree) -> "EditorState":
        return cls(tree=tree, graphs=tree.graphs)


class Command(ABC):
    """A reversible mutation with a human readable label."""

    label: ClassVar[str] = "Edit"

    @abstractmethod
    def apply(self, state: EditorState) -> None:
        """Perform the edit."""

    @abstractmethod
    def reverse(self, state: EditorState) -> None:
        """Undo exactly what :meth:`apply` did."""


class SceneCommand(Command):
    """Command touching the elements of one scene."""

    scene: SceneRef


class GraphCommand(Command):
    """Command touching the nodes or connections of one script graph."""

    graph_id: str

    def _graph(self, state: EditorState) -> ScriptGraph:
        return state.graphs.resolve(self.graph_id)


# ---------------------------------------------------------------------------
# Scene element commands
# ---------------------------------------------------------------------------


@dataclass
class MoveElementCommand(SceneCommand):
    label: ClassVar[str] = "Move Element"

    scene: SceneRef
    element_id: str
    old_x: float
    old_y: float
    new_x: float
    new_y: float

    def apply(self, state: EditorState) -> None:
        self._move(state, self.new_x, self.new_y)

    def reverse(self, state: EditorState) -> None:
        self._move(state, self.old_x, self.old_y)

    def _move(self, state: EditorState, x: float, y: float) -> None:
        scene = state.tree.scene_at(self.scene)
        state.tree.move_element(scene, self.element_id, x, y)


@dataclass
class AddElementCommand(SceneCommand):
    label: ClassVar[str] = "Add Element"

    scene: SceneRef
    element: SceneElement

    def apply(self, state: EditorState) -> None:
        scene = state.tree.scene_at(self.scene)
        state.tree.insert_element(scene, len(scene.elements), self.element)

    def reverse(self, state: EditorState) -> None:
        scene = state.tree.scene_at(self.scene)
        state.tree.remove_element(scene, self.element.id)


@dataclass
class RemoveElementCommand(SceneCommand):
    label: ClassVar[str] = "Remove Element"

    scene: SceneRef
    element_id: str
    _removed: tuple[int, SceneElement] | None = field(
        default=None, init=False, repr=False
    )

    def apply(self, state: EditorState) -> None:
        scene = state.tree.scene_at(self.scene)
        self._removed = state.tree.remove_element(scene, self.element_id)

    def reverse(self, state: EditorState) -> None:
        if self._removed is None:
            return
        index, element = self._removed
        scene = state.tree.scene_at(self.scene)
        state.tree.insert_element(scene, index, element)
        self._removed = None


@dataclass
class ReorderElementsCommand(SceneCommand):
    label: ClassVar[str] = "Reorder Elements"

    scene: SceneRef
    new_order: Sequence[str]
    _previous_order: list[str] = field(default_factory=list, init=False, repr=False)

    def apply(self, state: EditorState) -> None:
        scene = state.tree.scene_at(self.scene)
        self._previous_order = [element.id for element in scene.elements]
        state.tree.reorder_scene_elements(scene, list(self.new_order))

    def reverse(self, state: EditorState) -> None:
        scene = state.tree.scene_at(self.scene)
        state.tree.reorder_scene_elements(scene, self._previous_order)


# ---------------------------------------------------------------------------
# Script graph commands
# ---------------------------------------------------------------------------


@dataclass
class AddNodeCommand(GraphCommand):
    label: ClassVar[str] = "Add Node"

    graph_id: str
    node: ScriptNode

    def apply(self, state: EditorState) -> None:
        graph = self._graph(state)
        if graph.node_index(self.node.id) is not None:
            raise ValueError(
                f"Node '{self.node.id}' already exists in graph '{graph.id}'"
            )
        graph.nodes.append(self.node)

    def reverse(self, state: EditorState) -> None:
        graph = self._graph(state)
        index = graph.node_index(self.node.id)
        if index is not None:
            del graph.nodes[index]


@dataclass
class RemoveNodeCommand(GraphCommand):
    """Remove a node together with every connection that touches it."""

    label: ClassVar[str] = "Remove Node"

    graph_id: str
    node_id: str
    _removed_node: tuple[int, ScriptNode] | None = field(
        default=None, init=False, repr=False
    )
    _removed_connections: list[tuple[int, ScriptConnection]] = field(
        default_factory=list, init=False, repr=False
    )

    def apply(self, state: EditorState) -> None:
        graph = self._graph(state)
        index = graph.node_index(self.node_id)
        if index is None:
            raise EntityNotFoundError("Node", self.node_id)

        self._removed_node = (index, graph.nodes.pop(index))

        removed: list[tuple[int, ScriptConnection]] = []
        kept: list[ScriptConnection] = []
        for position, connection in enumerate(graph.connections):
            if connection.from_node == self.node_id or connection.to_node == self.node_id:
                removed.append((position, connection))
            else:
                kept.append(connection)
        graph.connections[:] = kept
        self._removed_connections = removed

    def reverse(self, state: EditorState) -> None:
        if self._removed_node is None:
            return
        graph = self._graph(state)
        index, node = self._removed_node
        graph.nodes.insert(index, node)
        # Ascending original positions, so earlier inserts never shift later ones.
        for position, connection in self._removed_connections:
            graph.connections.insert(position, connection)
        self._removed_node = None
        self._removed_connections = []


@dataclass
class UpdateNodeCommand(GraphCommand):
    """Replace a node with an edited copy sharing the same id."""

    label: ClassVar[str] = "Update Node"

    graph_id: str
    node: ScriptNode
    _previous: ScriptNode | None = field(default=None, init=False, repr=False)

    def apply(self, state: EditorState) -> None:
        graph = self._graph(state)
        index = graph.node_index(self.node.id)
        if index is None:
            raise EntityNotFoundError("Node", self.node.id)
        self._previous = graph.nodes[index]
        graph.nodes[index] = self.node

    def reverse(self, state: EditorState) -> None:
        if self._previous is None:
            return
        graph = self._graph(state)
        index = graph.node_index(self.node.id)
        if index is not None:
            graph.nodes[index] = self._previous
        self._previous = None


@dataclass
class ConnectNodesCommand(GraphCommand):
    label: ClassVar[str] = "Connect Nodes"

    graph_id: str
    connection: ScriptConnection

    def apply(self, state: EditorState) -> None:
        graph = self._graph(state)
        for endpoint in (self.connection.from_node, self.connection.to_node):
            if graph.node_index(endpoint) is None:
                raise EntityNotFoundError("Node", endpoint)
        graph.connections.append(self.connection)

    def reverse(self, state: EditorState) -> None:
        graph = self._graph(state)
        index = graph.connection_index(self.connection.id)
        if index is not None:
            del graph.connections[index]


@dataclass
class DisconnectCommand(GraphCommand):
    label: ClassVar[str] = "Remove Connection"

    graph_id: str
    connection_id: str
    _removed: tuple[int, ScriptConnection] | None = field(
        default=None, init=False, repr=False
    )

    def apply(self, state: EditorState) -> None:
        graph = self._graph(state)
        index = graph.connection_index(self.connection_id)
        if index is None:
            raise EntityNotFoundError("Connection", self.connection_id)
        self._removed = (index, graph.connections.pop(index))

    def reverse(self, state: EditorState) -> None:
        if self._removed is None:
            return
        index, connection = self._removed
        self._graph(state).connections.insert(index, connection)
        self._removed = None


__all__ = [
    "AddElementCommand",
    "AddNodeCommand",
    "Command",
    "ConnectNodesCommand",
    "DisconnectCommand",
    "EditorState",
    "GraphCommand",
    "MoveElementCommand",
    "RemoveElementCommand",
    "RemoveNodeCommand",
    "ReorderElementsCommand",
    "SceneCommand",
    "UpdateNodeCommand",
]
