"""Persistence gateway consumed by the project session.

The engine never touches storage directly. It talks to a
:class:`PersistenceGateway`, whose operations are all asynchronous and may
fail. Project-returning calls hand back the raw persisted payload; the
session always runs it through :func:`~novastate.migrations.migrate_project`.
"""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from pathlib import PurePath
from typing import Any, Dict, List, Mapping

from .errors import PersistenceError
from .models import Project, Scene

ProjectPayload = Mapping[str, Any]


class PersistenceGateway(ABC):
    """Interface describing how projects, scenes and assets are stored."""

    @abstractmethod
    async def create_project(self, name: str) -> ProjectPayload:
        """Create and activate a new, unsaved project."""

    @abstractmethod
    async def get_current_project(self) -> ProjectPayload | None:
        """Return the project the backend currently holds, if any."""

    @abstractmethod
    async def load_project(self, path: str) -> ProjectPayload:
        """Load and activate the project stored at ``path``."""

    @abstractmethod
    async def save_project(self, project: Project) -> str:
        """Persist ``project`` at its current location and return that path."""

    @abstractmethod
    async def save_project_as(self, path: str, project: Project) -> None:
        """Persist ``project`` at ``path`` and make it the current location."""

    @abstractmethod
    async def save_scene(self, season_id: str, episode_id: str, scene: Scene) -> None:
        """Store one scene inside its episode."""

    @abstractmethod
    async def delete_scene(self, season_id: str, episode_id: str, scene_id: str) -> None:
        """Remove a stored scene."""

    @abstractmethod
    async def delete_episode(self, season_id: str, episode_id: str) -> None:
        """Remove a stored episode and everything below it."""

    @abstractmethod
    async def delete_season(self, season_id: str) -> None:
        """Remove a stored season and everything below it."""

    @abstractmethod
    async def import_asset(self, file_path: str) -> str:
        """Copy an external file into the project's assets and return its id."""

    @abstractmethod
    async def get_project_assets(self) -> List[str]:
        """Return the identifiers of every imported asset."""


class InMemoryPersistenceGateway(PersistenceGateway):
    """Keep projects as camelCase payloads in local process memory.

    ``documents`` maps saved paths to payloads, standing in for files on disk,
    so tests can seed legacy payloads and inspect what was written.
    """

    def __init__(self, documents: Mapping[str, ProjectPayload] | None = None) -> None:
        self.documents: Dict[str, Dict[str, Any]] = {
            path: copy.deepcopy(dict(payload))
            for path, payload in (documents or {}).items()
        }
        self._project: Dict[str, Any] | None = None
        self._current_path: str | None = None
        self._assets: List[str] = []

    @property
    def current_path(self) -> str | None:
        return self._current_path

    async def create_project(self, name: str) -> ProjectPayload:
        self._project = Project(name=name).to_payload()
        self._current_path = None
        return copy.deepcopy(self._project)

    async def get_current_project(self) -> ProjectPayload | None:
        if self._project is None:
            return None
        return copy.deepcopy(self._project)

    async def load_project(self, path: str) -> ProjectPayload:
        try:
            payload = self.documents[path]
        except KeyError as exc:
            raise PersistenceError(f"No project stored at '{path}'") from exc
        self._project = copy.deepcopy(payload)
        self._current_path = path
        return copy.deepcopy(payload)

    async def save_project(self, project: Project) -> str:
        self._project = project.to_payload()
        if self._current_path is None:
            raise PersistenceError("Project has not been saved yet (use save_project_as)")
        self.documents[self._current_path] = copy.deepcopy(self._project)
        return self._current_path

    async def save_project_as(self, path: str, project: Project) -> None:
        self._project = project.to_payload()
        self._current_path = path
        self.documents[path] = copy.deepcopy(self._project)

    async def save_scene(self, season_id: str, episode_id: str, scene: Scene) -> None:
        episode = self._episode(season_id, episode_id)
        episode.setdefault("scenes", {})[scene.id] = scene.model_dump(
            mode="json", by_alias=True
        )

    async def delete_scene(self, season_id: str, episode_id: str, scene_id: str) -> None:
        scenes = self._episode(season_id, episode_id).get("scenes", {})
        if scenes.pop(scene_id, None) is None:
            raise PersistenceError(f"Scene '{scene_id}' not found")

    async def delete_episode(self, season_id: str, episode_id: str) -> None:
        episodes = self._season(season_id).get("episodes", {})
        if episodes.pop(episode_id, None) is None:
            raise PersistenceError(f"Episode '{episode_id}' not found")

    async def delete_season(self, season_id: str) -> None:
        seasons = self._require_project().get("seasons", {})
        if seasons.pop(season_id, None) is None:
            raise PersistenceError(f"Season '{season_id}' not found")

    async def import_asset(self, file_path: str) -> str:
        if self._current_path is None:
            raise PersistenceError("Save the project before importing assets")
        name = PurePath(file_path).name
        if not name:
            raise PersistenceError(f"Invalid asset path '{file_path}'")
        if name not in self._assets:
            self._assets.append(name)
        return name

    async def get_project_assets(self) -> List[str]:
        if self._current_path is None:
            raise PersistenceError("Project has no location on disk yet")
        return sorted(self._assets)

    def _require_project(self) -> Dict[str, Any]:
        if self._project is None:
            raise PersistenceError("No active project")
        return self._project

    def _season(self, season_id: str) -> Dict[str, Any]:
        season = self._require_project().get("seasons", {}).get(season_id)
        if season is None:
            raise PersistenceError(f"Season '{season_id}' not found")
        return season

    def _episode(self, season_id: str, episode_id: str) -> Dict[str, Any]:
        episode = self._season(season_id).get("episodes", {}).get(episode_id)
        if episode is None:
            raise PersistenceError(f"Episode '{episode_id}' not found")
        return episode


__all__ = [
    "InMemoryPersistenceGateway",
    "PersistenceGateway",
    "ProjectPayload",
]
