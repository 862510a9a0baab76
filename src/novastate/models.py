"""Data model for authoring projects and their script graphs.

Every persisted structure is a pydantic model. Python code uses snake_case
attributes while the stored representation uses camelCase keys, so payloads
must be dumped with ``model_dump(by_alias=True)`` before they leave the engine.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

ElementType = Literal["text", "image", "choice", "dialogue"]
ELEMENT_TYPES: tuple[str, ...] = ("text", "image", "choice", "dialogue")

NodeType = Literal[
    "start",
    "end",
    "text",
    "choice",
    "set_variable",
    "check_variable",
    "change_scene",
    "music",
    "character",
    "background",
]
NODE_TYPES: tuple[str, ...] = (
    "start",
    "end",
    "text",
    "choice",
    "set_variable",
    "check_variable",
    "change_scene",
    "music",
    "character",
    "background",
)

VariableValue = Union[bool, int, float, str, None]


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


@dataclass(frozen=True)
class SelectionCursor:
    """Identifiers of the season, episode and scene currently open for editing."""

    season_id: str | None = None
    episode_id: str | None = None
    scene_id: str | None = None

    @property
    def is_complete(self) -> bool:
        """Return ``True`` when every level of the cursor is set."""

        return (
            self.season_id is not None
            and self.episode_id is not None
            and self.scene_id is not None
        )


@dataclass(frozen=True)
class SceneRef:
    """Explicit address of a scene inside the content tree."""

    season_id: str
    episode_id: str
    scene_id: str


# ---------------------------------------------------------------------------
# Content tree
# ---------------------------------------------------------------------------


class SceneElement(_Model):
    """A positioned visual element placed on a scene."""

    id: str
    type: ElementType
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    content: str = ""
    z_index: int = 0
    properties: dict[str, str] = Field(default_factory=dict)
    # Editor-only flags; the engine carries them but never interprets them.
    selected: bool | None = None
    visible: bool | None = None


class Scene(_Model):
    """One visual page of content: a background plus ordered elements."""

    id: str
    name: str
    background: str | None = None
    elements: list[SceneElement] = Field(default_factory=list)


class Episode(_Model):
    id: str
    name: str
    scenes: dict[str, Scene] = Field(default_factory=dict)


class Season(_Model):
    id: str
    name: str
    episodes: dict[str, Episode] = Field(default_factory=dict)


class Character(_Model):
    """A cast member referenced by id from dialogue elements and script nodes."""

    id: str
    name: str
    color: str = "#ffffff"
    default_sprite: str | None = None


class CharacterUpdate(_Model):
    """Partial character update; only explicitly provided fields are merged."""

    name: str | None = None
    color: str | None = None
    default_sprite: str | None = None


# ---------------------------------------------------------------------------
# Script graphs
# ---------------------------------------------------------------------------


class ChoiceOption(_Model):
    id: str
    label: str = ""


class EmptyPayload(_Model):
    pass


class TextPayload(_Model):
    character_id: str | None = None
    text: str = ""


class ChoicePayload(_Model):
    choices: list[ChoiceOption] = Field(default_factory=list)


class SetVariablePayload(_Model):
    name: str = ""
    value: VariableValue = None


class CheckVariablePayload(_Model):
    name: str = ""
    operator: str = "=="
    value: VariableValue = None


class ChangeScenePayload(_Model):
    scene_id: str | None = None


class MusicPayload(_Model):
    track: str | None = None
    loop: bool = True


class CharacterPayload(_Model):
    character_id: str | None = None
    sprite: str | None = None
    action: Literal["show", "hide"] = "show"


class BackgroundPayload(_Model):
    background: str | None = None


class _NodeBase(_Model):
    id: str
    label: str | None = None
    x: float = 0.0
    y: float = 0.0


class StartNode(_NodeBase):
    type: Literal["start"] = "start"
    data: EmptyPayload = Field(default_factory=EmptyPayload)


class EndNode(_NodeBase):
    type: Literal["end"] = "end"
    data: EmptyPayload = Field(default_factory=EmptyPayload)


class TextNode(_NodeBase):
    type: Literal["text"] = "text"
    data: TextPayload = Field(default_factory=TextPayload)


class ChoiceNode(_NodeBase):
    type: Literal["choice"] = "choice"
    data: ChoicePayload = Field(default_factory=ChoicePayload)


class SetVariableNode(_NodeBase):
    type: Literal["set_variable"] = "set_variable"
    data: SetVariablePayload = Field(default_factory=SetVariablePayload)


class CheckVariableNode(_NodeBase):
    type: Literal["check_variable"] = "check_variable"
    data: CheckVariablePayload = Field(default_factory=CheckVariablePayload)


class ChangeSceneNode(_NodeBase):
    type: Literal["change_scene"] = "change_scene"
    data: ChangeScenePayload = Field(default_factory=ChangeScenePayload)


class MusicNode(_NodeBase):
    type: Literal["music"] = "music"
    data: MusicPayload = Field(default_factory=MusicPayload)


class CharacterNode(_NodeBase):
    type: Literal["character"] = "character"
    data: CharacterPayload = Field(default_factory=CharacterPayload)


class BackgroundNode(_NodeBase):
    type: Literal["background"] = "background"
    data: BackgroundPayload = Field(default_factory=BackgroundPayload)


ScriptNode = Annotated[
    Union[
        StartNode,
        EndNode,
        TextNode,
        ChoiceNode,
        SetVariableNode,
        CheckVariableNode,
        ChangeSceneNode,
        MusicNode,
        CharacterNode,
        BackgroundNode,
    ],
    Field(discriminator="type"),
]

_SCRIPT_NODE_ADAPTER: TypeAdapter[Any] = TypeAdapter(ScriptNode)


def parse_script_node(payload: Any) -> ScriptNode:
    """Validate ``payload`` as one of the script node variants."""

    return _SCRIPT_NODE_ADAPTER.validate_python(payload)


class ScriptConnection(_Model):
    """Directed edge between an output port and an input port."""

    id: str
    from_node: str
    from_port: str = "out"
    to_node: str
    to_port: str = "in"


class ScriptGraph(_Model):
    """Narrative logic for one scene, or the project-level main flow."""

    id: str
    name: str
    nodes: list[ScriptNode] = Field(default_factory=list)
    connections: list[ScriptConnection] = Field(default_factory=list)

    def node_index(self, node_id: str) -> int | None:
        """Return the position of ``node_id`` in :attr:`nodes`, if present."""

        for index, node in enumerate(self.nodes):
            if node.id == node_id:
                return index
        return None

    def connection_index(self, connection_id: str) -> int | None:
        for index, connection in enumerate(self.connections):
            if connection.id == connection_id:
                return index
        return None


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------


class Project(_Model):
    """The aggregate root owned by the content tree."""

    name: str = "New Project"
    width: int = 1920
    height: int = 1080
    seasons: dict[str, Season] = Field(default_factory=dict)
    characters: dict[str, Character] = Field(default_factory=dict)
    script_graphs: dict[str, ScriptGraph] = Field(default_factory=dict)
    active_season_id: str | None = None
    active_episode_id: str | None = None
    active_scene_id: str | None = None

    @property
    def cursor(self) -> SelectionCursor:
        return SelectionCursor(
            season_id=self.active_season_id,
            episode_id=self.active_episode_id,
            scene_id=self.active_scene_id,
        )

    def to_payload(self) -> dict[str, Any]:
        """Return the camelCase, JSON-serialisable representation."""

        return self.model_dump(mode="json", by_alias=True)


__all__ = [
    "BackgroundNode",
    "BackgroundPayload",
    "ChangeSceneNode",
    "ChangeScenePayload",
    "Character",
    "CharacterNode",
    "CharacterPayload",
    "CharacterUpdate",
    "CheckVariableNode",
    "CheckVariablePayload",
    "ChoiceNode",
    "ChoiceOption",
    "ChoicePayload",
    "ELEMENT_TYPES",
    "ElementType",
    "EmptyPayload",
    "EndNode",
    "Episode",
    "MusicNode",
    "MusicPayload",
    "NODE_TYPES",
    "NodeType",
    "Project",
    "Scene",
    "SceneElement",
    "SceneRef",
    "ScriptConnection",
    "ScriptGraph",
    "ScriptNode",
    "Season",
    "SelectionCursor",
    "SetVariableNode",
    "SetVariablePayload",
    "StartNode",
    "TextNode",
    "TextPayload",
    "VariableValue",
    "parse_script_node",
]
