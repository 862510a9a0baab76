"""Tests for the season/episode/scene hierarchy and its selection cursor."""

import pytest

from novastate.content_tree import (
    DEFAULT_ELEMENT_CONTENT,
    ContentTree,
    allocate_identifier,
    resolve_active_scene,
)
from novastate.errors import EntityNotFoundError
from novastate.models import (
    CharacterUpdate,
    Project,
    SceneElement,
    SceneRef,
    SelectionCursor,
    StartNode,
)


def _scene_path(tree: ContentTree):
    season = tree.create_season("S1")
    episode = tree.create_episode(season.id, "E1")
    scene = tree.create_scene(season.id, episode.id, "Sc1")
    return season, episode, scene


def test_create_hierarchy_opens_the_new_scene(tree: ContentTree) -> None:
    season, episode, scene = _scene_path(tree)

    assert season.id.startswith("s_")
    assert episode.id.startswith("ep_")
    assert scene.id.startswith("scene_")
    assert tree.cursor == SelectionCursor(season.id, episode.id, scene.id)
    assert tree.active_scene() is scene
    assert tree.active_scene_ref() == SceneRef(season.id, episode.id, scene.id)


def test_create_scene_creates_graph_with_single_start_node(tree: ContentTree) -> None:
    _, _, scene = _scene_path(tree)

    graph = tree.graphs.active_graph
    assert graph.id == scene.id
    assert [type(node) for node in graph.nodes] == [StartNode]
    assert graph.nodes[0].id == f"start_{scene.id}"
    assert (graph.nodes[0].x, graph.nodes[0].y) == (100.0, 100.0)
    assert graph.connections == []
    assert tree.project.script_graphs[scene.id] is graph


def test_create_episode_in_unknown_season_raises(tree: ContentTree) -> None:
    with pytest.raises(EntityNotFoundError) as excinfo:
        tree.create_episode("s_missing", "E1")

    assert excinfo.value.kind == "Season"
    assert tree.project.seasons == {}


def test_open_unknown_scene_leaves_cursor_alone(tree: ContentTree) -> None:
    season, episode, scene = _scene_path(tree)

    with pytest.raises(EntityNotFoundError):
        tree.open_scene(season.id, episode.id, "scene_missing")

    assert tree.cursor.scene_id == scene.id


def test_delete_season_clears_whole_cursor(tree: ContentTree) -> None:
    season, _, _ = _scene_path(tree)

    tree.delete_season(season.id)

    assert tree.cursor == SelectionCursor()
    assert tree.active_scene() is None


def test_delete_episode_keeps_season_selected(tree: ContentTree) -> None:
    season, episode, _ = _scene_path(tree)

    tree.delete_episode(season.id, episode.id)

    assert tree.cursor == SelectionCursor(season.id, None, None)


def test_delete_scene_only_clears_scene_level(tree: ContentTree) -> None:
    season, episode, scene = _scene_path(tree)

    removed = tree.delete_scene(season.id, episode.id, scene.id)

    assert removed is scene
    assert tree.cursor == SelectionCursor(season.id, episode.id, None)
    assert tree.episode(season.id, episode.id).scenes == {}


def test_deleting_other_entity_keeps_cursor(tree: ContentTree) -> None:
    season, episode, scene = _scene_path(tree)
    other = tree.create_episode(season.id, "E2")

    tree.delete_episode(season.id, other.id)

    assert tree.cursor == SelectionCursor(season.id, episode.id, scene.id)


def test_deleted_scene_keeps_its_script_graph(tree: ContentTree) -> None:
    season, episode, scene = _scene_path(tree)

    tree.delete_scene(season.id, episode.id, scene.id)

    assert scene.id in tree.graphs


def test_resolve_active_scene_handles_dangling_cursor() -> None:
    project = Project(active_season_id="s", active_episode_id="e", active_scene_id="x")

    assert resolve_active_scene(project, project.cursor) is None
    assert resolve_active_scene(project, SelectionCursor("s", None, "x")) is None


def test_rename_and_background(tree: ContentTree) -> None:
    season, episode, scene = _scene_path(tree)
    ref = SceneRef(season.id, episode.id, scene.id)

    tree.rename_season(season.id, "Season One")
    tree.rename_episode(season.id, episode.id, "Pilot")
    tree.rename_scene(ref, "Opening")
    tree.set_scene_background(ref, "sky.png")

    assert tree.season(season.id).name == "Season One"
    assert tree.episode(season.id, episode.id).name == "Pilot"
    assert tree.scene_at(ref).name == "Opening"
    assert tree.scene_at(ref).background == "sky.png"


def test_add_element_uses_defaults_and_stacks_on_top(tree: ContentTree) -> None:
    _, _, scene = _scene_path(tree)

    text = tree.add_element(scene, "text", 10, 20)
    image = tree.add_element(scene, "image", 0, 0, content="hero.png")

    assert (text.width, text.height) == (300.0, 100.0)
    assert (image.width, image.height) == (200.0, 200.0)
    assert text.content == DEFAULT_ELEMENT_CONTENT
    assert image.content == "hero.png"
    assert [element.z_index for element in scene.elements] == [0, 1]


def test_remove_element_restacks_remaining(tree: ContentTree) -> None:
    _, _, scene = _scene_path(tree)
    first = tree.add_element(scene, "text", 0, 0)
    second = tree.add_element(scene, "text", 0, 0)
    third = tree.add_element(scene, "text", 0, 0)

    index, removed = tree.remove_element(scene, second.id)

    assert (index, removed) == (1, second)
    assert [element.id for element in scene.elements] == [first.id, third.id]
    assert [element.z_index for element in scene.elements] == [0, 1]


def test_insert_element_rejects_duplicate_id(tree: ContentTree) -> None:
    _, _, scene = _scene_path(tree)
    element = tree.add_element(scene, "text", 0, 0)

    with pytest.raises(ValueError):
        tree.insert_element(scene, 0, SceneElement(id=element.id, type="image"))


def test_reorder_scene_elements_rewrites_z_index(tree: ContentTree) -> None:
    _, _, scene = _scene_path(tree)
    ids = [tree.add_element(scene, "text", 0, 0).id for _ in range(3)]

    tree.reorder_scene_elements(scene, list(reversed(ids)))

    assert [element.id for element in scene.elements] == list(reversed(ids))
    assert [element.z_index for element in scene.elements] == [0, 1, 2]


@pytest.mark.parametrize("mutation", ["drop", "duplicate", "unknown"])
def test_reorder_requires_exact_permutation(tree: ContentTree, mutation: str) -> None:
    _, _, scene = _scene_path(tree)
    ids = [tree.add_element(scene, "text", 0, 0).id for _ in range(2)]
    order = {
        "drop": ids[:1],
        "duplicate": [ids[0], ids[0]],
        "unknown": [ids[0], "el_other"],
    }[mutation]

    with pytest.raises(ValueError):
        tree.reorder_scene_elements(scene, order)

    assert [element.id for element in scene.elements] == ids


def test_move_and_update_element(tree: ContentTree) -> None:
    _, _, scene = _scene_path(tree)
    element = tree.add_element(scene, "dialogue", 0, 0)

    tree.move_element(scene, element.id, 40, 50)
    edited = element.model_copy(update={"content": "Changed"})
    tree.update_element(scene, edited)

    stored = scene.elements[0]
    assert (stored.x, stored.y) == (40, 50)
    assert stored.content == "Changed"


def test_find_missing_element_raises(tree: ContentTree) -> None:
    _, _, scene = _scene_path(tree)

    with pytest.raises(EntityNotFoundError):
        tree.move_element(scene, "el_missing", 1, 1)


def test_character_partial_update_keeps_other_fields(tree: ContentTree) -> None:
    character = tree.create_character("Alice", color="#ff0000")

    updated = tree.update_character(character.id, {"name": "Alicia"})

    assert updated.name == "Alicia"
    assert updated.color == "#ff0000"
    assert tree.character(character.id) is updated


def test_character_update_can_clear_sprite(tree: ContentTree) -> None:
    character = tree.create_character("Bob", default_sprite="bob.png")

    updated = tree.update_character(character.id, CharacterUpdate(default_sprite=None))

    assert updated.default_sprite is None
    assert updated.name == "Bob"


def test_delete_character(tree: ContentTree) -> None:
    character = tree.create_character("Carol")

    tree.delete_character(character.id)

    with pytest.raises(EntityNotFoundError):
        tree.character(character.id)


def test_allocate_identifier_avoids_taken_ids() -> None:
    first = allocate_identifier("el")
    second = allocate_identifier("el", {first})

    assert first.startswith("el_")
    assert first != second


@pytest.mark.parametrize("changes", [{"name": None}, {"color": None}])
def test_character_update_rejects_null_required_fields(
    tree: ContentTree, changes: dict
) -> None:
    character = tree.create_character("Dana", color="#123456")

    with pytest.raises(ValueError):
        tree.update_character(character.id, changes)

    assert tree.character(character.id) is character
    assert (character.name, character.color) == ("Dana", "#123456")
