"""Test configuration for the project state engine."""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from typing import Any, Dict, List

import pytest

from novastate.content_tree import ContentTree
from novastate.errors import PersistenceError
from novastate.gateway import InMemoryPersistenceGateway, PersistenceGateway
from novastate.models import Project, Scene
from novastate.settings import EngineSettings


class FailingGateway(PersistenceGateway):
    """Gateway whose every call raises, simulating an unreachable backend."""

    def __init__(self, message: str = "backend unavailable") -> None:
        self.message = message
        self.calls: List[str] = []

    def _fail(self, name: str) -> None:
        self.calls.append(name)
        raise PersistenceError(self.message)

    async def create_project(self, name: str) -> Dict[str, Any]:
        self._fail("create_project")
        return {}

    async def get_current_project(self) -> Dict[str, Any] | None:
        self._fail("get_current_project")
        return None

    async def load_project(self, path: str) -> Dict[str, Any]:
        self._fail("load_project")
        return {}

    async def save_project(self, project: Project) -> str:
        self._fail("save_project")
        return ""

    async def save_project_as(self, path: str, project: Project) -> None:
        self._fail("save_project_as")

    async def save_scene(self, season_id: str, episode_id: str, scene: Scene) -> None:
        self._fail("save_scene")

    async def delete_scene(self, season_id: str, episode_id: str, scene_id: str) -> None:
        self._fail("delete_scene")

    async def delete_episode(self, season_id: str, episode_id: str) -> None:
        self._fail("delete_episode")

    async def delete_season(self, season_id: str) -> None:
        self._fail("delete_season")

    async def import_asset(self, file_path: str) -> str:
        self._fail("import_asset")
        return ""

    async def get_project_assets(self) -> List[str]:
        self._fail("get_project_assets")
        return []


@pytest.fixture
def project() -> Project:
    return Project(name="Test Project")


@pytest.fixture
def tree(project: Project) -> ContentTree:
    return ContentTree(project)


@pytest.fixture
def gateway() -> InMemoryPersistenceGateway:
    return InMemoryPersistenceGateway()


@pytest.fixture
def failing_gateway() -> FailingGateway:
    return FailingGateway()


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings(default_project_name="Test Project")


@pytest.fixture
def legacy_payload() -> Dict[str, Any]:
    """Project saved before seasons existed, using pages and old node types."""

    return {
        "name": "Legacy",
        "scenes": {
            "intro": {
                "name": "Intro",
                "elements": [
                    {"id": "el_a", "type": "text", "x": 10, "y": 20, "content": "Hi"},
                    {"id": "el_b", "type": "hologram"},
                ],
            },
        },
        "activePageId": "intro",
        "scriptGraphs": {
            "intro": {
                "id": "intro",
                "name": "Script for intro",
                "nodes": [
                    {"id": "start_intro", "type": "start", "x": 100, "y": 100},
                    {
                        "id": "n_jump",
                        "type": "change_page",
                        "data": {"pageId": "outro"},
                    },
                    {"id": "n_line", "type": "dialogue", "data": {"text": "Hello"}},
                    {"id": "n_weird", "type": "teleport"},
                ],
                "connections": [
                    {"id": "c1", "fromNode": "start_intro", "toNode": "n_line"},
                ],
            }
        },
    }
