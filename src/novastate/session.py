"""Editing session tying the content tree, graphs, history and storage together.

A :class:`ProjectSession` replaces module-level shared state: hosts create one
per running editor, call :meth:`ProjectSession.init_project` once, pass the
session to whatever needs it and call :meth:`ProjectSession.teardown` (or
:meth:`ProjectSession.close`) when done.

All mutations run on one logical thread. In-memory state changes happen
synchronously; persistence is either awaited (explicit saves and deletes) or
scheduled in the background through :class:`~novastate.autosave.PersistenceScheduler`.
Persistence failures are logged and never roll back in-memory state.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Mapping, Sequence

from .autosave import PersistenceOutcome, PersistenceScheduler
from .commands import (
    AddElementCommand,
    AddNodeCommand,
    Command,
    ConnectNodesCommand,
    DisconnectCommand,
    EditorState,
    MoveElementCommand,
    RemoveElementCommand,
    RemoveNodeCommand,
    ReorderElementsCommand,
    SceneCommand,
    UpdateNodeCommand,
)
from .content_tree import ContentTree, allocate_identifier
from .errors import NoActiveProjectError, NoActiveSceneError
from .executor import ScriptExecutor
from .gateway import PersistenceGateway
from .history import CommandHistory
from .migrations import migrate_project
from .models import (
    Character,
    CharacterUpdate,
    ElementType,
    Episode,
    NodeType,
    Project,
    Scene,
    SceneElement,
    SceneRef,
    ScriptConnection,
    ScriptGraph,
    ScriptNode,
    Season,
    parse_script_node,
)
from .settings import EngineSettings

logger = logging.getLogger(__name__)


class ProjectSession:
    """Own the single live project of an editor process."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        *,
        settings: EngineSettings | None = None,
    ) -> None:
        self._gateway = gateway
        self._settings = settings or EngineSettings()
        self._tree: ContentTree | None = None
        self._state: EditorState | None = None
        self.history = CommandHistory(limit=self._settings.history_limit)
        self.persistence = PersistenceScheduler()
        self.offline = False

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    @property
    def project(self) -> Project | None:
        return self._tree.project if self._tree is not None else None

    @property
    def tree(self) -> ContentTree:
        if self._tree is None:
            raise NoActiveProjectError("No project is loaded; call init_project() first")
        return self._tree

    @property
    def state(self) -> EditorState:
        if self._state is None:
            raise NoActiveProjectError("No project is loaded; call init_project() first")
        return self._state

    @property
    def active_scene(self) -> Scene | None:
        return self._tree.active_scene() if self._tree is not None else None

    @property
    def active_graph(self) -> ScriptGraph:
        return self.tree.graphs.active_graph

    def executor(self) -> ScriptExecutor:
        """Return an executor over the currently active graph."""

        return ScriptExecutor(self.active_graph)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def init_project(self) -> Project:
        """Fetch or create the backend's current project.

        When the backend is unavailable the session continues with an
        unsaved in-memory project whose name marks it as offline; later saves
        are still attempted.
        """

        try:
            payload = await self._gateway.get_current_project()
            if payload is None:
                logger.info("No active project found. Creating new default project...")
                payload = await self._gateway.create_project(
                    self._settings.default_project_name
                )
            project = migrate_project(payload)
        except Exception:
            logger.exception("Failed to initialise project; continuing offline")
            project = Project(name=self._settings.offline_project_name)
            self.offline = True
        else:
            self.offline = False

        self._install(project)
        return project

    async def load_project(self, path: str) -> Project | None:
        """Replace the current project with the one stored at ``path``.

        Returns ``None`` and keeps the current project when loading fails.
        """

        try:
            payload = await self._gateway.load_project(path)
            project = migrate_project(payload)
        except Exception:
            logger.exception("Failed to load project from %s", path)
            return None

        self._install(project)
        self.offline = False
        return project

    def teardown(self) -> None:
        """Drop the live project and forget all history."""

        self._tree = None
        self._state = None
        self.history.clear()

    async def close(self) -> None:
        """Wait for background persistence, then tear the session down."""

        await self.persistence.flush()
        self.teardown()

    def _install(self, project: Project) -> None:
        tree = ContentTree(project)
        if tree.active_scene() is not None:
            tree.graphs.activate(project.active_scene_id)  # type: ignore[arg-type]
        self._tree = tree
        self._state = EditorState.for_tree(tree)
        self.history.clear()

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    def sync_active_state(self) -> None:
        """Fold the open scene and the active graph back into the project."""

        tree = self.tree
        ref = tree.active_scene_ref()
        scene = tree.active_scene()
        if ref is not None and scene is not None:
            tree.store_scene(ref, scene)
        tree.graphs.store(tree.graphs.active_graph)

    async def save_project(self) -> str | None:
        """Persist the open scene and then the whole project.

        Returns:
            The path reported by the gateway, or ``None`` if saving failed.
        """

        self.sync_active_state()
        ref = self.tree.active_scene_ref()
        scene = self.tree.active_scene()
        if ref is not None and scene is not None:
            try:
                await self._gateway.save_scene(ref.season_id, ref.episode_id, scene)
            except Exception:
                logger.exception("Failed to save scene '%s'", ref.scene_id)

        try:
            path = await self._gateway.save_project(self.tree.project)
        except Exception:
            logger.exception("Failed to save project")
            return None

        self.offline = False
        logger.info("Project saved to %s", path)
        return path

    async def save_project_as(self, path: str) -> bool:
        self.sync_active_state()
        try:
            await self._gateway.save_project_as(path, self.tree.project)
        except Exception:
            logger.exception("Failed to save project to %s", path)
            return False

        self.offline = False
        return True

    def _autosave_project(self, reason: str) -> None:
        if not self._settings.autosave:
            return
        self.sync_active_state()
        project = self.tree.project
        self.persistence.submit(
            f"save project ({reason})", lambda: self._save_project_quietly(project)
        )

    async def _save_project_quietly(self, project: Project) -> None:
        await self._gateway.save_project(project)
        self.offline = False

    def _autosave_scene(self, ref: SceneRef) -> None:
        if not self._settings.autosave:
            return
        scene = self.tree.scene_at(ref)
        self.persistence.submit(
            f"save scene {ref.scene_id}",
            lambda: self._gateway.save_scene(ref.season_id, ref.episode_id, scene),
        )

    async def _attempt(self, label: str, operation: Awaitable[object]) -> PersistenceOutcome:
        try:
            await operation
        except Exception as exc:
            logger.exception("Persistence call failed: %s", label)
            return PersistenceOutcome(error=exc)
        return PersistenceOutcome()

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def open_scene(self, season_id: str, episode_id: str, scene_id: str) -> Scene:
        """Open a scene for editing and load (or create) its script graph."""

        return self.tree.open_scene(season_id, episode_id, scene_id)

    def set_active_graph(self, graph: ScriptGraph) -> None:
        self.tree.graphs.set_active_graph(graph)

    def graph_for(self, scene_id: str) -> ScriptGraph:
        return self.tree.graphs.graph_for(scene_id)

    # ------------------------------------------------------------------
    # Content CRUD
    # ------------------------------------------------------------------

    def create_season(self, name: str) -> Season:
        season = self.tree.create_season(name)
        self._autosave_project(f"create season {season.id}")
        return season

    def create_episode(self, season_id: str, name: str) -> Episode:
        episode = self.tree.create_episode(season_id, name)
        self._autosave_project(f"create episode {episode.id}")
        return episode

    def create_scene(self, season_id: str, episode_id: str, name: str) -> Scene:
        scene = self.tree.create_scene(season_id, episode_id, name)
        self._autosave_project(f"create scene {scene.id}")
        return scene

    async def delete_season(self, season_id: str) -> PersistenceOutcome:
        """Delete a season from storage and from memory.

        The in-memory removal happens even when the storage call fails; the
        failure is reported through the returned outcome.
        """

        self.tree.season(season_id)
        outcome = await self._attempt(
            f"delete season {season_id}", self._gateway.delete_season(season_id)
        )
        self.tree.delete_season(season_id)
        self._autosave_project(f"delete season {season_id}")
        return outcome

    async def delete_episode(self, season_id: str, episode_id: str) -> PersistenceOutcome:
        self.tree.episode(season_id, episode_id)
        outcome = await self._attempt(
            f"delete episode {episode_id}",
            self._gateway.delete_episode(season_id, episode_id),
        )
        self.tree.delete_episode(season_id, episode_id)
        self._autosave_project(f"delete episode {episode_id}")
        return outcome

    async def delete_scene(
        self, season_id: str, episode_id: str, scene_id: str
    ) -> PersistenceOutcome:
        self.tree.scene(season_id, episode_id, scene_id)
        outcome = await self._attempt(
            f"delete scene {scene_id}",
            self._gateway.delete_scene(season_id, episode_id, scene_id),
        )
        self.tree.delete_scene(season_id, episode_id, scene_id)
        self._autosave_project(f"delete scene {scene_id}")
        return outcome

    def create_character(
        self, name: str, *, color: str = "#ffffff", default_sprite: str | None = None
    ) -> Character:
        character = self.tree.create_character(
            name, color=color, default_sprite=default_sprite
        )
        self._autosave_project(f"create character {character.id}")
        return character

    def update_character(
        self, character_id: str, changes: CharacterUpdate | Mapping[str, object]
    ) -> Character:
        character = self.tree.update_character(character_id, changes)
        self._autosave_project(f"update character {character_id}")
        return character

    def delete_character(self, character_id: str) -> Character:
        character = self.tree.delete_character(character_id)
        self._autosave_project(f"delete character {character_id}")
        return character

    # ------------------------------------------------------------------
    # Command history
    # ------------------------------------------------------------------

    def execute(self, command: Command) -> None:
        self.history.execute(command, self.state)
        self._after_command(command)

    def undo(self) -> Command | None:
        command = self.history.undo(self.state)
        if command is not None:
            self._after_command(command)
        return command

    def redo(self) -> Command | None:
        command = self.history.redo(self.state)
        if command is not None:
            self._after_command(command)
        return command

    def _after_command(self, command: Command) -> None:
        if isinstance(command, SceneCommand):
            self._autosave_scene(command.scene)

    def _require_active_scene(self) -> tuple[SceneRef, Scene]:
        ref = self.tree.active_scene_ref()
        scene = self.tree.active_scene()
        if ref is None or scene is None:
            raise NoActiveSceneError("No scene is open")
        return ref, scene

    # Element helpers operate on the open scene.

    def add_element(
        self,
        kind: ElementType,
        x: float,
        y: float,
        *,
        content: str | None = None,
        properties: Mapping[str, str] | None = None,
    ) -> SceneElement:
        ref, scene = self._require_active_scene()
        element = self.tree.build_element(
            scene, kind, x, y, content=content, properties=properties
        )
        self.execute(AddElementCommand(scene=ref, element=element))
        return element

    def move_element(self, element_id: str, x: float, y: float) -> None:
        ref, scene = self._require_active_scene()
        _, element = self.tree.find_element(scene, element_id)
        self.execute(
            MoveElementCommand(
                scene=ref,
                element_id=element_id,
                old_x=element.x,
                old_y=element.y,
                new_x=x,
                new_y=y,
            )
        )

    def remove_element(self, element_id: str) -> None:
        ref, _ = self._require_active_scene()
        self.execute(RemoveElementCommand(scene=ref, element_id=element_id))

    def reorder_scene_elements(self, order: Sequence[str]) -> None:
        ref, _ = self._require_active_scene()
        self.execute(ReorderElementsCommand(scene=ref, new_order=list(order)))

    # Node helpers operate on the active graph.

    def add_node(self, node: ScriptNode) -> None:
        self.execute(AddNodeCommand(graph_id=self.active_graph.id, node=node))

    def create_node(
        self,
        node_type: NodeType,
        x: float,
        y: float,
        *,
        data: Mapping[str, Any] | None = None,
    ) -> ScriptNode:
        """Build a node with a fresh id and add it to the active graph."""

        graph = self.active_graph
        node = parse_script_node(
            {
                "id": allocate_identifier("node", {n.id for n in graph.nodes}),
                "type": node_type,
                "x": x,
                "y": y,
                "data": dict(data or {}),
            }
        )
        self.add_node(node)
        return node

    def remove_node(self, node_id: str) -> None:
        self.execute(RemoveNodeCommand(graph_id=self.active_graph.id, node_id=node_id))

    def update_node(self, node: ScriptNode) -> None:
        self.execute(UpdateNodeCommand(graph_id=self.active_graph.id, node=node))

    def connect(
        self,
        from_node: str,
        to_node: str,
        *,
        from_port: str = "out",
        to_port: str = "in",
    ) -> ScriptConnection:
        graph = self.active_graph
        connection = ScriptConnection(
            id=allocate_identifier(
                "conn", {existing.id for existing in graph.connections}
            ),
            from_node=from_node,
            from_port=from_port,
            to_node=to_node,
            to_port=to_port,
        )
        self.execute(ConnectNodesCommand(graph_id=graph.id, connection=connection))
        return connection

    def disconnect(self, connection_id: str) -> None:
        self.execute(
            DisconnectCommand(graph_id=self.active_graph.id, connection_id=connection_id)
        )

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    async def import_asset(self, file_path: str) -> str | None:
        try:
            return await self._gateway.import_asset(file_path)
        except Exception:
            logger.exception("Failed to import asset %s", file_path)
            return None

    async def list_assets(self) -> list[str]:
        try:
            return list(await self._gateway.get_project_assets())
        except Exception:
            logger.exception("Failed to list project assets")
            return []


__all__ = ["ProjectSession"]
