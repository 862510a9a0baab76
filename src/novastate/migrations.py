"""Normalise persisted project payloads into the current schema.

Projects saved by earlier releases use older field layouts: scenes stored
directly on the project, episodes holding ``pages`` rather than ``scenes``, an
``activePageId`` selector and a handful of renamed script node types. The
functions in this module rewrite such payloads into the current camelCase
shape before validation.

Each step in :data:`MIGRATION_STEPS` is idempotent, mutates the payload in
place and never raises on missing or malformed fields. Absent collections
become empty ones; entries that are not objects are dropped with a warning.
New schema changes should append a step rather than edit an existing one.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Mapping

from pydantic import ValidationError

from .errors import ProjectSchemaError
from .models import (
    ELEMENT_TYPES,
    NODE_TYPES,
    Character,
    Episode,
    Project,
    Scene,
    SceneElement,
    ScriptConnection,
    ScriptGraph,
    Season,
    parse_script_node,
)

logger = logging.getLogger(__name__)

MigrationStep = Callable[[dict[str, Any]], None]

LEGACY_SEASON_ID = "s_legacy"
LEGACY_EPISODE_ID = "ep_legacy"
LEGACY_CONTAINER_NAME = "Imported"

_LEGACY_NODE_TYPES: Mapping[str, str] = {
    "change_page": "change_scene",
    "dialogue": "text",
    "set-flag": "set_variable",
    "jump": "change_scene",
}


def _entity_mapping(value: Any, *, kind: str) -> dict[str, dict[str, Any]]:
    """Return ``value`` as a mapping of id to entity dict, dropping bad entries."""

    if value is None:
        return {}
    if not isinstance(value, Mapping):
        logger.warning("Discarding %s collection of type %s", kind, type(value).__name__)
        return {}

    entities: dict[str, dict[str, Any]] = {}
    for key, entity in value.items():
        if not isinstance(entity, Mapping):
            logger.warning("Dropping %s '%s': expected an object", kind, key)
            continue
        normalised = dict(entity)
        normalised.setdefault("id", str(key))
        normalised.setdefault("name", str(key))
        entities[str(key)] = normalised
    return entities


def _entity_list(value: Any, *, kind: str) -> list[dict[str, Any]]:
    if value is None:
        return []
    if not isinstance(value, list):
        logger.warning("Discarding %s list of type %s", kind, type(value).__name__)
        return []

    entries: list[dict[str, Any]] = []
    for index, entry in enumerate(value):
        if not isinstance(entry, Mapping):
            logger.warning("Dropping %s #%d: expected an object", kind, index)
            continue
        entries.append(dict(entry))
    return entries


def _iter_episodes(payload: Mapping[str, Any]):
    seasons = payload.get("seasons")
    if not isinstance(seasons, Mapping):
        return
    for season in seasons.values():
        if not isinstance(season, Mapping):
            continue
        episodes = season.get("episodes")
        if not isinstance(episodes, Mapping):
            continue
        for episode in episodes.values():
            if isinstance(episode, dict):
                yield episode


def flat_scenes_to_seasons(payload: dict[str, Any]) -> None:
    """Move a project-level ``scenes`` mapping under an imported season/episode."""

    if "seasons" in payload or "scenes" not in payload:
        return

    scenes = payload.pop("scenes")
    if not isinstance(scenes, Mapping):
        scenes = {}

    payload["seasons"] = {
        LEGACY_SEASON_ID: {
            "id": LEGACY_SEASON_ID,
            "name": LEGACY_CONTAINER_NAME,
            "episodes": {
                LEGACY_EPISODE_ID: {
                    "id": LEGACY_EPISODE_ID,
                    "name": LEGACY_CONTAINER_NAME,
                    "scenes": dict(scenes),
                }
            },
        }
    }

    active_scene = payload.get("activeSceneId", payload.get("activePageId"))
    if isinstance(active_scene, str) and active_scene in scenes:
        if payload.get("activeSeasonId") is None:
            payload["activeSeasonId"] = LEGACY_SEASON_ID
        if payload.get("activeEpisodeId") is None:
            payload["activeEpisodeId"] = LEGACY_EPISODE_ID


def pages_to_scenes(payload: dict[str, Any]) -> None:
    """Rename each episode's legacy ``pages`` collection to ``scenes``."""

    for episode in _iter_episodes(payload):
        if "scenes" in episode:
            continue
        if "pages" in episode:
            episode["scenes"] = episode.pop("pages")
        else:
            episode["scenes"] = {}


def active_page_to_active_scene(payload: dict[str, Any]) -> None:
    """Rename the legacy ``activePageId`` selector to ``activeSceneId``."""

    if "activePageId" in payload and "activeSceneId" not in payload:
        payload["activeSceneId"] = payload.pop("activePageId")


def _fill_identifier(entry: dict[str, Any], prefix: str, index: int, taken: set[str]) -> None:
    """Give ``entry`` a deterministic id unique within ``taken`` if it has none."""

    identifier = entry.get("id")
    if isinstance(identifier, str) and identifier:
        taken.add(identifier)
        return

    candidate = f"{prefix}_{index}"
    suffix = 0
    while candidate in taken:
        suffix += 1
        candidate = f"{prefix}_{index}_{suffix}"
    entry["id"] = candidate
    taken.add(candidate)


def _string_properties(value: Any) -> dict[str, str]:
    if not isinstance(value, Mapping):
        return {}
    return {str(key): str(item) for key, item in value.items()}


def default_collections(payload: dict[str, Any]) -> None:
    """Ensure every collection exists and every entity carries its id."""

    seasons = _entity_mapping(payload.get("seasons"), kind="season")
    for season in seasons.values():
        episodes = _entity_mapping(season.get("episodes"), kind="episode")
        for episode in episodes.values():
            scenes = _entity_mapping(episode.get("scenes"), kind="scene")
            for scene_id, scene in scenes.items():
                elements = []
                for element in _entity_list(scene.get("elements"), kind="element"):
                    if element.get("type") not in ELEMENT_TYPES:
                        logger.warning(
                            "Dropping element of unknown type %r from scene '%s'",
                            element.get("type"),
                            scene_id,
                        )
                        continue
                    if "properties" in element:
                        element["properties"] = _string_properties(element["properties"])
                    elements.append(element)

                taken: set[str] = set()
                for element in elements:
                    if isinstance(element.get("id"), str) and element["id"]:
                        taken.add(element["id"])
                for index, element in enumerate(elements):
                    _fill_identifier(element, "el", index, taken)
                scene["elements"] = elements
            episode["scenes"] = scenes
        season["episodes"] = episodes
    payload["seasons"] = seasons

    payload["characters"] = _entity_mapping(payload.get("characters"), kind="character")
    payload["scriptGraphs"] = _entity_mapping(
        payload.get("scriptGraphs"), kind="script graph"
    )


def legacy_node_types(payload: dict[str, Any]) -> None:
    """Rename historical script node types and drop nodes nobody understands."""

    graphs = payload.get("scriptGraphs")
    if not isinstance(graphs, Mapping):
        return

    for graph_id, graph in graphs.items():
        if not isinstance(graph, dict):
            continue

        nodes: list[dict[str, Any]] = []
        for node in _entity_list(graph.get("nodes"), kind="script node"):
            node_type = node.get("type")
            if isinstance(node_type, str):
                node_type = _LEGACY_NODE_TYPES.get(node_type, node_type)
            if node_type not in NODE_TYPES:
                logger.warning(
                    "Dropping node '%s' of unknown type %r from graph '%s'",
                    node.get("id"),
                    node_type,
                    graph_id,
                )
                continue

            data = node.get("data")
            data = dict(data) if isinstance(data, Mapping) else {}
            if node_type == "change_scene" and "pageId" in data and "sceneId" not in data:
                data["sceneId"] = data.pop("pageId")

            node["type"] = node_type
            node["data"] = data
            nodes.append(node)

        connections: list[dict[str, Any]] = []
        for connection in _entity_list(graph.get("connections"), kind="connection"):
            if not connection.get("fromNode") or not connection.get("toNode"):
                logger.warning(
                    "Dropping connection '%s' without both endpoints from graph '%s'",
                    connection.get("id"),
                    graph_id,
                )
                continue
            connections.append(connection)

        for prefix, entries in (("node", nodes), ("conn", connections)):
            taken = {
                entry["id"]
                for entry in entries
                if isinstance(entry.get("id"), str) and entry["id"]
            }
            for index, entry in enumerate(entries):
                _fill_identifier(entry, prefix, index, taken)

        graph["nodes"] = nodes
        graph["connections"] = connections


def _is_valid(model: Any, entity: Mapping[str, Any], *, kind: str, key: Any) -> bool:
    try:
        model(entity)
    except ValidationError as exc:
        logger.warning(
            "Dropping %s '%s': %s", kind, key, exc.errors(include_url=False)
        )
        return False
    return True


def _valid_mapping(
    entities: Mapping[str, Any], model: Any, *, kind: str
) -> dict[str, Any]:
    return {
        key: entity
        for key, entity in entities.items()
        if _is_valid(model, entity, kind=kind, key=key)
    }


def _valid_list(entries: list[Any], model: Any, *, kind: str) -> list[Any]:
    return [
        entry
        for entry in entries
        if _is_valid(model, entry, kind=kind, key=entry.get("id"))
    ]


_PROJECT_SCALAR_FIELDS = ("name", "width", "height")


def drop_invalid_entities(payload: dict[str, Any]) -> None:
    """Validate entities one at a time and drop those that still do not fit.

    Children are checked before their parents, so a parent is only dropped
    for a problem in its own fields. Element stacking order is re-derived from
    the surviving list.
    """

    seasons = payload.get("seasons", {})
    for season in seasons.values():
        episodes = season.get("episodes", {})
        for episode in episodes.values():
            scenes = episode.get("scenes", {})
            for scene in scenes.values():
                elements = _valid_list(
                    scene.get("elements", []),
                    SceneElement.model_validate,
                    kind="element",
                )
                for index, element in enumerate(elements):
                    element["zIndex"] = index
                scene["elements"] = elements
            episode["scenes"] = _valid_mapping(
                scenes, Scene.model_validate, kind="scene"
            )
        season["episodes"] = _valid_mapping(
            episodes, Episode.model_validate, kind="episode"
        )
    payload["seasons"] = _valid_mapping(seasons, Season.model_validate, kind="season")

    payload["characters"] = _valid_mapping(
        payload.get("characters", {}), Character.model_validate, kind="character"
    )

    graphs = payload.get("scriptGraphs", {})
    for graph in graphs.values():
        graph["nodes"] = _valid_list(
            graph.get("nodes", []), parse_script_node, kind="script node"
        )
        graph["connections"] = _valid_list(
            graph.get("connections", []),
            ScriptConnection.model_validate,
            kind="connection",
        )
    payload["scriptGraphs"] = _valid_mapping(
        graphs, ScriptGraph.model_validate, kind="script graph"
    )

    for field_name in _PROJECT_SCALAR_FIELDS:
        if field_name in payload and not _is_valid(
            Project.model_validate,
            {field_name: payload[field_name]},
            kind="project field",
            key=field_name,
        ):
            del payload[field_name]


def clear_dangling_cursor(payload: dict[str, Any]) -> None:
    """Null every cursor field that does not resolve, and all fields below it."""

    fields = ("activeSeasonId", "activeEpisodeId", "activeSceneId")
    children_key = ("episodes", "scenes", None)
    container: Any = payload.get("seasons", {})
    for depth, field_name in enumerate(fields):
        identifier = payload.get(field_name)
        entity = None
        if isinstance(identifier, str) and isinstance(container, Mapping):
            entity = container.get(identifier)
        if entity is None:
            if identifier is not None:
                logger.warning("Clearing %s '%s': no such entity", field_name, identifier)
            for cleared in fields[depth:]:
                payload[cleared] = None
            return
        if children_key[depth] is not None:
            container = entity.get(children_key[depth], {})


MIGRATION_STEPS: tuple[MigrationStep, ...] = (
    flat_scenes_to_seasons,
    pages_to_scenes,
    active_page_to_active_scene,
    default_collections,
    legacy_node_types,
    drop_invalid_entities,
    clear_dangling_cursor,
)


def migrate_project_payload(payload: Any) -> dict[str, Any]:
    """Return a copy of ``payload`` rewritten into the current schema.

    The input is never mutated. Anything that is not a mapping is treated as
    an empty project.
    """

    if isinstance(payload, Mapping):
        migrated = copy.deepcopy(dict(payload))
    else:
        if payload is not None:
            logger.warning(
                "Project payload of type %s is not an object; starting empty",
                type(payload).__name__,
            )
        migrated = {}

    for step in MIGRATION_STEPS:
        step(migrated)
    return migrated


def migrate_project(payload: Any) -> Project:
    """Migrate ``payload`` and validate it as a :class:`~novastate.models.Project`.

    Malformed entities are dropped during migration, so validation only fails
    if a step leaves the payload inconsistent.

    Raises:
        ProjectSchemaError: If the migrated payload cannot be validated.
    """

    migrated = migrate_project_payload(payload)
    try:
        return Project.model_validate(migrated)
    except ValidationError as exc:
        raise ProjectSchemaError(f"Project payload is invalid: {exc}") from exc


__all__ = [
    "LEGACY_EPISODE_ID",
    "LEGACY_SEASON_ID",
    "MIGRATION_STEPS",
    "MigrationStep",
    "active_page_to_active_scene",
    "clear_dangling_cursor",
    "default_collections",
    "drop_invalid_entities",
    "flat_scenes_to_seasons",
    "legacy_node_types",
    "migrate_project",
    "migrate_project_payload",
    "pages_to_scenes",
]
