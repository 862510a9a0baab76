"""Tests for upgrading persisted project payloads."""

import copy

import pytest

from novastate.migrations import (
    LEGACY_EPISODE_ID,
    LEGACY_SEASON_ID,
    active_page_to_active_scene,
    migrate_project,
    migrate_project_payload,
)
from novastate.models import ChangeSceneNode, Project, TextNode


def test_flat_scenes_move_under_imported_season(legacy_payload) -> None:
    project = migrate_project(legacy_payload)

    episode = project.seasons[LEGACY_SEASON_ID].episodes[LEGACY_EPISODE_ID]
    assert list(episode.scenes) == ["intro"]
    assert episode.scenes["intro"].name == "Intro"
    assert project.active_scene_id == "intro"
    assert project.active_season_id == LEGACY_SEASON_ID
    assert project.active_episode_id == LEGACY_EPISODE_ID


def test_unknown_elements_and_nodes_are_dropped(legacy_payload) -> None:
    project = migrate_project(legacy_payload)

    scene = project.seasons[LEGACY_SEASON_ID].episodes[LEGACY_EPISODE_ID].scenes["intro"]
    assert [element.id for element in scene.elements] == ["el_a"]
    node_ids = [node.id for node in project.script_graphs["intro"].nodes]
    assert node_ids == ["start_intro", "n_jump", "n_line"]


def test_legacy_node_types_are_renamed(legacy_payload) -> None:
    graph = migrate_project(legacy_payload).script_graphs["intro"]

    jump = graph.nodes[1]
    line = graph.nodes[2]
    assert isinstance(jump, ChangeSceneNode)
    assert jump.data.scene_id == "outro"
    assert isinstance(line, TextNode)
    assert line.data.text == "Hello"


def test_pages_become_scenes_without_losing_content() -> None:
    payload = {
        "seasons": {
            "s1": {
                "name": "One",
                "episodes": {
                    "e1": {
                        "name": "Pilot",
                        "pages": {"p1": {"name": "Cold open", "background": "bg.png"}},
                    }
                },
            }
        },
        "activeSeasonId": "s1",
        "activeEpisodeId": "e1",
        "activePageId": "p1",
    }

    project = migrate_project(payload)

    scene = project.seasons["s1"].episodes["e1"].scenes["p1"]
    assert scene.id == "p1"
    assert scene.background == "bg.png"
    assert project.active_scene_id == "p1"


def test_existing_active_scene_wins_over_active_page() -> None:
    payload = {"activeSceneId": "new", "activePageId": "old"}

    active_page_to_active_scene(payload)

    assert payload == {"activeSceneId": "new", "activePageId": "old"}


def test_missing_collections_become_empty() -> None:
    project = migrate_project({"name": "Bare"})

    assert project.name == "Bare"
    assert project.seasons == {}
    assert project.characters == {}
    assert project.script_graphs == {}


@pytest.mark.parametrize("payload", [None, [], "project", 42])
def test_non_mapping_payload_yields_empty_project(payload) -> None:
    assert migrate_project(payload) == Project()


def test_malformed_entries_are_dropped() -> None:
    payload = {
        "seasons": {"s1": "not a season", "s2": {"episodes": None}},
        "characters": ["alice"],
        "scriptGraphs": {"g": {"nodes": "nope", "connections": [1, 2]}},
    }

    project = migrate_project(payload)

    assert list(project.seasons) == ["s2"]
    assert project.seasons["s2"].episodes == {}
    assert project.characters == {}
    assert project.script_graphs["g"].nodes == []
    assert project.script_graphs["g"].connections == []


def test_migration_is_idempotent(legacy_payload) -> None:
    once = migrate_project_payload(legacy_payload)
    twice = migrate_project_payload(once)

    assert twice == once


def test_migration_does_not_mutate_input(legacy_payload) -> None:
    original = copy.deepcopy(legacy_payload)

    migrate_project_payload(legacy_payload)

    assert legacy_payload == original


def test_current_payload_survives_unchanged() -> None:
    project = Project(name="Current", width=1280, height=720)
    payload = project.to_payload()

    assert migrate_project(payload) == project



def _single_scene_payload(elements) -> dict:
    return {
        "seasons": {
            "s1": {"episodes": {"e1": {"scenes": {"sc": {"elements": elements}}}}}
        }
    }


def _scene(project: Project):
    return project.seasons["s1"].episodes["e1"].scenes["sc"]


def test_element_without_id_gets_one() -> None:
    payload = _single_scene_payload(
        [
            {"id": "el_0", "type": "image"},
            {"type": "text", "x": 1, "y": 2},
        ]
    )

    elements = _scene(migrate_project(payload)).elements

    assert [element.id for element in elements] == ["el_0", "el_1"]
    assert (elements[1].x, elements[1].y) == (1, 2)


def test_element_properties_are_stringified() -> None:
    payload = _single_scene_payload(
        [{"id": "el", "type": "text", "properties": {"fontSize": 24, "bold": True}}]
    )

    element = _scene(migrate_project(payload)).elements[0]

    assert element.properties == {"fontSize": "24", "bold": "True"}


def test_invalid_element_is_dropped_alone() -> None:
    payload = _single_scene_payload(
        [
            {"id": "bad", "type": "text", "x": "left"},
            {"id": "good", "type": "text", "x": 5},
        ]
    )

    elements = _scene(migrate_project(payload)).elements

    assert [element.id for element in elements] == ["good"]


def test_element_stacking_is_rederived() -> None:
    payload = _single_scene_payload(
        [
            {"id": "a", "type": "text", "zIndex": 7},
            {"id": "b", "type": "text", "zIndex": 3},
            {"id": "c", "type": "text", "zIndex": 3},
        ]
    )

    elements = _scene(migrate_project(payload)).elements

    assert [(element.id, element.z_index) for element in elements] == [
        ("a", 0),
        ("b", 1),
        ("c", 2),
    ]


def test_connections_get_ids_and_need_both_endpoints() -> None:
    payload = {
        "scriptGraphs": {
            "g": {
                "nodes": [
                    {"id": "a", "type": "start"},
                    {"type": "text"},
                ],
                "connections": [
                    {"fromNode": "a", "toNode": "b"},
                    {"id": "c_half", "fromNode": "a"},
                    {"id": "c_named", "fromNode": "a", "toNode": "node_1"},
                ],
            }
        }
    }

    graph = migrate_project(payload).script_graphs["g"]

    assert [node.id for node in graph.nodes] == ["a", "node_1"]
    assert [connection.id for connection in graph.connections] == ["conn_0", "c_named"]


def test_invalid_node_and_character_are_dropped_alone() -> None:
    payload = {
        "characters": {
            "alice": {"name": "Alice"},
            "ghost": {"name": None},
        },
        "scriptGraphs": {
            "g": {
                "nodes": [
                    {"id": "ok", "type": "text", "data": {"text": "Hi"}},
                    {"id": "broken", "type": "music", "data": {"loop": "sometimes"}},
                ]
            }
        },
    }

    project = migrate_project(payload)

    assert list(project.characters) == ["alice"]
    assert [node.id for node in project.script_graphs["g"].nodes] == ["ok"]


def test_invalid_project_fields_fall_back_to_defaults() -> None:
    project = migrate_project({"name": ["not", "a", "name"], "width": "wide"})

    assert project.name == "New Project"
    assert project.width == 1920


def test_messy_payload_migration_is_idempotent() -> None:
    payload = _single_scene_payload(
        [
            {"type": "text", "zIndex": 4, "properties": {"size": 3}},
            {"id": "x", "type": "text", "y": "down"},
        ]
    )

    once = migrate_project_payload(payload)

    assert migrate_project_payload(once) == once


@pytest.mark.parametrize(
    ("cursor", "expected"),
    [
        (("nope", "e1", "sc"), (None, None, None)),
        (("s1", "nope", "sc"), ("s1", None, None)),
        (("s1", "e1", "ghost"), ("s1", "e1", None)),
        ((None, "e1", "sc"), (None, None, None)),
        (("s1", "e1", "sc"), ("s1", "e1", "sc")),
    ],
)
def test_dangling_cursor_fields_are_cleared(cursor, expected) -> None:
    payload = _single_scene_payload([])
    payload["activeSeasonId"], payload["activeEpisodeId"], payload["activeSceneId"] = cursor

    project = migrate_project(payload)

    assert (
        project.active_season_id,
        project.active_episode_id,
        project.active_scene_id,
    ) == expected
