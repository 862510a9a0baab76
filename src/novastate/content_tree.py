"""In-memory CRUD over the season/episode/scene hierarchy.

The :class:`ContentTree` owns a :class:`~novastate.models.Project` and keeps
its selection cursor consistent with the entities that actually exist. It
performs no I/O; persistence is requested by
:class:`~novastate.session.ProjectSession` after each mutation.

Element lists are the one place where order carries meaning: the position of
an element in :attr:`Scene.elements` is its stacking order, and ``z_index`` is
re-derived from that position after every structural change.
"""

from __future__ import annotations

import logging
import uuid
from typing import Container, Mapping, Sequence

from .errors import EntityNotFoundError
from .graph_store import ScriptGraphStore
from .models import (
    Character,
    CharacterUpdate,
    ElementType,
    Episode,
    Project,
    Scene,
    SceneElement,
    SceneRef,
    Season,
    SelectionCursor,
)

logger = logging.getLogger(__name__)

DEFAULT_ELEMENT_CONTENT = "New Element"
_IMAGE_ELEMENT_SIZE = (200.0, 200.0)
_DEFAULT_ELEMENT_SIZE = (300.0, 100.0)


def allocate_identifier(prefix: str, taken: Container[str] = ()) -> str:
    """Return ``<prefix>_<token>`` that does not collide with ``taken``."""

    while True:
        candidate = f"{prefix}_{uuid.uuid4().hex[:12]}"
        if candidate not in taken:
            return candidate


def resolve_active_scene(project: Project, cursor: SelectionCursor) -> Scene | None:
    """Return the scene addressed by ``cursor`` or ``None`` when it is incomplete
    or points at something that no longer exists."""

    if not cursor.is_complete:
        return None
    season = project.seasons.get(cursor.season_id)  # type: ignore[arg-type]
    if season is None:
        return None
    episode = season.episodes.get(cursor.episode_id)  # type: ignore[arg-type]
    if episode is None:
        return None
    return episode.scenes.get(cursor.scene_id)  # type: ignore[arg-type]


def restack(scene: Scene) -> None:
    """Rewrite every element's ``z_index`` to match its list position."""

    for index, element in enumerate(scene.elements):
        element.z_index = index


def default_element_size(kind: ElementType) -> tuple[float, float]:
    return _IMAGE_ELEMENT_SIZE if kind == "image" else _DEFAULT_ELEMENT_SIZE


class ContentTree:
    """Own a project, its selection cursor and its script graph store."""

    def __init__(
        self, project: Project, *, graphs: ScriptGraphStore | None = None
    ) -> None:
        self._project = project
        self._graphs = (
            graphs if graphs is not None else ScriptGraphStore(project.script_graphs)
        )

    @property
    def project(self) -> Project:
        return self._project

    @property
    def graphs(self) -> ScriptGraphStore:
        return self._graphs

    @property
    def cursor(self) -> SelectionCursor:
        return self._project.cursor

    def active_scene(self) -> Scene | None:
        return resolve_active_scene(self._project, self.cursor)

    def active_scene_ref(self) -> SceneRef | None:
        if self.active_scene() is None:
            return None
        cursor = self.cursor
        return SceneRef(cursor.season_id, cursor.episode_id, cursor.scene_id)  # type: ignore[arg-type]

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def season(self, season_id: str) -> Season:
        try:
            return self._project.seasons[season_id]
        except KeyError:
            raise EntityNotFoundError("Season", season_id) from None

    def episode(self, season_id: str, episode_id: str) -> Episode:
        episodes = self.season(season_id).episodes
        try:
            return episodes[episode_id]
        except KeyError:
            raise EntityNotFoundError("Episode", episode_id) from None

    def scene(self, season_id: str, episode_id: str, scene_id: str) -> Scene:
        scenes = self.episode(season_id, episode_id).scenes
        try:
            return scenes[scene_id]
        except KeyError:
            raise EntityNotFoundError("Scene", scene_id) from None

    def scene_at(self, ref: SceneRef) -> Scene:
        return self.scene(ref.season_id, ref.episode_id, ref.scene_id)

    def character(self, character_id: str) -> Character:
        try:
            return self._project.characters[character_id]
        except KeyError:
            raise EntityNotFoundError("Character", character_id) from None

    # ------------------------------------------------------------------
    # Seasons, episodes and scenes
    # ------------------------------------------------------------------

    def create_season(self, name: str) -> Season:
        seasons = self._project.seasons
        season_id = allocate_identifier("s", seasons)
        season = Season(id=season_id, name=name)
        seasons[season_id] = season
        logger.debug("Created season '%s'", season_id)
        return season

    def create_episode(self, season_id: str, name: str) -> Episode:
        episodes = self.season(season_id).episodes
        episode_id = allocate_identifier("ep", episodes)
        episode = Episode(id=episode_id, name=name)
        episodes[episode_id] = episode
        logger.debug("Created episode '%s' in season '%s'", episode_id, season_id)
        return episode

    def create_scene(self, season_id: str, episode_id: str, name: str) -> Scene:
        """Create a scene and open it, which also creates its script graph."""

        scenes = self.episode(season_id, episode_id).scenes
        scene_id = allocate_identifier("scene", scenes)
        scene = Scene(id=scene_id, name=name)
        scenes[scene_id] = scene
        logger.debug("Created scene '%s' in episode '%s'", scene_id, episode_id)
        self.open_scene(season_id, episode_id, scene_id)
        return scene

    def open_scene(self, season_id: str, episode_id: str, scene_id: str) -> Scene:
        """Point the cursor at a scene and activate its script graph.

        Raises:
            EntityNotFoundError: If any of the identifiers is unknown.
        """

        scene = self.scene(season_id, episode_id, scene_id)
        self._project.active_season_id = season_id
        self._project.active_episode_id = episode_id
        self._project.active_scene_id = scene_id
        self._graphs.activate(scene_id)
        return scene

    def delete_season(self, season_id: str) -> Season:
        season = self.season(season_id)
        del self._project.seasons[season_id]
        if self._project.active_season_id == season_id:
            self._project.active_season_id = None
            self._project.active_episode_id = None
            self._project.active_scene_id = None
        return season

    def delete_episode(self, season_id: str, episode_id: str) -> Episode:
        episode = self.episode(season_id, episode_id)
        del self.season(season_id).episodes[episode_id]
        cursor = self.cursor
        if cursor.season_id == season_id and cursor.episode_id == episode_id:
            self._project.active_episode_id = None
            self._project.active_scene_id = None
        return episode

    def delete_scene(self, season_id: str, episode_id: str, scene_id: str) -> Scene:
        scene = self.scene(season_id, episode_id, scene_id)
        del self.episode(season_id, episode_id).scenes[scene_id]
        cursor = self.cursor
        if (
            cursor.season_id == season_id
            and cursor.episode_id == episode_id
            and cursor.scene_id == scene_id
        ):
            self._project.active_scene_id = None
        return scene

    def rename_season(self, season_id: str, name: str) -> Season:
        season = self.season(season_id)
        season.name = name
        return season

    def rename_episode(self, season_id: str, episode_id: str, name: str) -> Episode:
        episode = self.episode(season_id, episode_id)
        episode.name = name
        return episode

    def rename_scene(self, ref: SceneRef, name: str) -> Scene:
        scene = self.scene_at(ref)
        scene.name = name
        return scene

    def set_scene_background(self, ref: SceneRef, background: str | None) -> Scene:
        scene = self.scene_at(ref)
        scene.background = background
        return scene

    def store_scene(self, ref: SceneRef, scene: Scene) -> None:
        """Write ``scene`` back into its episode, replacing the stored copy."""

        self.episode(ref.season_id, ref.episode_id).scenes[ref.scene_id] = scene

    # ------------------------------------------------------------------
    # Characters
    # ------------------------------------------------------------------

    def create_character(
        self,
        name: str,
        *,
        color: str = "#ffffff",
        default_sprite: str | None = None,
    ) -> Character:
        characters = self._project.characters
        character_id = allocate_identifier("char", characters)
        character = Character(
            id=character_id, name=name, color=color, default_sprite=default_sprite
        )
        characters[character_id] = character
        return character

    def update_character(
        self, character_id: str, changes: CharacterUpdate | Mapping[str, object]
    ) -> Character:
        """Merge the explicitly supplied fields of ``changes`` into a character.

        Raises:
            pydantic.ValidationError: If the merged character is invalid, for
                example when ``name`` is explicitly set to ``None``.
        """

        if not isinstance(changes, CharacterUpdate):
            changes = CharacterUpdate.model_validate(changes)
        current = self.character(character_id)
        updated = Character.model_validate(
            {**current.model_dump(), **changes.model_dump(exclude_unset=True)}
        )
        self._project.characters[character_id] = updated
        return updated

    def delete_character(self, character_id: str) -> Character:
        character = self.character(character_id)
        del self._project.characters[character_id]
        return character

    # ------------------------------------------------------------------
    # Scene elements
    # ------------------------------------------------------------------

    def find_element(self, scene: Scene, element_id: str) -> tuple[int, SceneElement]:
        for index, element in enumerate(scene.elements):
            if element.id == element_id:
                return index, element
        raise EntityNotFoundError("Element", element_id)

    def build_element(
        self,
        scene: Scene,
        kind: ElementType,
        x: float,
        y: float,
        *,
        content: str | None = None,
        properties: Mapping[str, str] | None = None,
    ) -> SceneElement:
        """Return a new element for ``scene`` without inserting it."""

        width, height = default_element_size(kind)
        taken = {element.id for element in scene.elements}
        return SceneElement(
            id=allocate_identifier("el", taken),
            type=kind,
            x=x,
            y=y,
            width=width,
            height=height,
            content=content or DEFAULT_ELEMENT_CONTENT,
            z_index=len(scene.elements),
            properties=dict(properties or {}),
        )

    def add_element(
        self,
        scene: Scene,
        kind: ElementType,
        x: float,
        y: float,
        *,
        content: str | None = None,
        properties: Mapping[str, str] | None = None,
    ) -> SceneElement:
        element = self.build_element(
            scene, kind, x, y, content=content, properties=properties
        )
        self.insert_element(scene, len(scene.elements), element)
        return element

    def insert_element(self, scene: Scene, index: int, element: SceneElement) -> None:
        if any(existing.id == element.id for existing in scene.elements):
            raise ValueError(f"Element '{element.id}' already exists in scene '{scene.id}'")
        scene.elements.insert(index, element)
        restack(scene)

    def remove_element(self, scene: Scene, element_id: str) -> tuple[int, SceneElement]:
        """Remove an element and return its former index alongside it."""

        index, element = self.find_element(scene, element_id)
        del scene.elements[index]
        restack(scene)
        return index, element

    def move_element(
        self, scene: Scene, element_id: str, x: float, y: float
    ) -> SceneElement:
        _, element = self.find_element(scene, element_id)
        element.x = x
        element.y = y
        return element

    def update_element(self, scene: Scene, element: SceneElement) -> SceneElement:
        """Replace the element sharing ``element.id``, keeping its list position."""

        index, _ = self.find_element(scene, element.id)
        scene.elements[index] = element
        restack(scene)
        return element

    def reorder_scene_elements(self, scene: Scene, order: Sequence[str]) -> None:
        """Reorder elements to follow ``order`` and re-derive their z-index.

        Raises:
            ValueError: If ``order`` is not a permutation of the element ids.
        """

        by_id = {element.id: element for element in scene.elements}
        if len(order) != len(by_id) or set(order) != set(by_id):
            raise ValueError(
                f"Element order for scene '{scene.id}' must list every element exactly once"
            )
        scene.elements[:] = [by_id[element_id] for element_id in order]
        restack(scene)


__all__ = [
    "ContentTree",
    "DEFAULT_ELEMENT_CONTENT",
    "allocate_identifier",
    "default_element_size",
    "resolve_active_scene",
    "restack",
]
