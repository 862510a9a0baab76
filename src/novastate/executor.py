"""Read-only traversal over a single script graph."""

from __future__ import annotations

from typing import Iterable, Iterator

from .models import ChoiceNode, ChoiceOption, ScriptGraph, ScriptNode

DEFAULT_MAX_STEPS = 256


class ScriptExecutor:
    """Resolve start nodes, successors and choices for playback or preview.

    The executor never mutates the graph it was constructed with. Ambiguous
    edges are resolved by insertion order: the first matching connection in
    :attr:`ScriptGraph.connections` always wins.
    """

    def __init__(self, graph: ScriptGraph) -> None:
        self._graph = graph

    @property
    def graph(self) -> ScriptGraph:
        return self._graph

    def get_start_node(self) -> ScriptNode | None:
        """Return the first ``start`` node in node order, if any."""

        for node in self._graph.nodes:
            if node.type == "start":
                return node
        return None

    def get_node_by_id(self, node_id: str) -> ScriptNode | None:
        for node in self._graph.nodes:
            if node.id == node_id:
                return node
        return None

    def get_next_node(
        self, from_node_id: str, output_port: str | None = None
    ) -> ScriptNode | None:
        """Follow the first connection leaving ``from_node_id``.

        Args:
            from_node_id: Identifier of the originating node.
            output_port: When given, only connections leaving through this port
                are considered. When omitted or empty any port matches.

        Returns:
            The target node, or ``None`` when no connection matches or the
            connection points at a node that no longer exists.
        """

        for connection in self._graph.connections:
            if connection.from_node != from_node_id:
                continue
            if output_port and connection.from_port != output_port:
                continue
            return self.get_node_by_id(connection.to_node)
        return None

    def get_choices(self, node: ScriptNode) -> list[ChoiceOption]:
        if not isinstance(node, ChoiceNode):
            return []
        return list(node.data.choices)

    def walk(
        self,
        selections: Iterable[str] = (),
        *,
        max_steps: int = DEFAULT_MAX_STEPS,
    ) -> Iterator[ScriptNode]:
        """Yield the nodes visited when playing the graph from its start node.

        At each choice node the next entry of ``selections`` is used as the
        output port. Playback stops at an ``end`` node, at a dead end, at a
        choice when no selections remain, or after ``max_steps`` nodes so that
        cyclic graphs terminate.
        """

        if max_steps < 0:
            raise ValueError("max_steps must be zero or a positive integer")

        pending = iter(selections)
        node = self.get_start_node()
        visited = 0
        while node is not None and visited < max_steps:
            yield node
            visited += 1

            if node.type == "end":
                return
            if node.type == "choice":
                port = next(pending, None)
                if port is None:
                    return
                node = self.get_next_node(node.id, port)
            else:
                node = self.get_next_node(node.id)


__all__ = ["DEFAULT_MAX_STEPS", "ScriptExecutor"]
