"""State engine for interactive fiction and visual novel projects."""

from .autosave import PersistenceFailure, PersistenceOutcome, PersistenceScheduler
from .commands import (
    AddElementCommand,
    AddNodeCommand,
    Command,
    ConnectNodesCommand,
    DisconnectCommand,
    EditorState,
    GraphCommand,
    MoveElementCommand,
    RemoveElementCommand,
    RemoveNodeCommand,
    ReorderElementsCommand,
    SceneCommand,
    UpdateNodeCommand,
)
from .content_tree import ContentTree, resolve_active_scene
from .errors import (
    EntityNotFoundError,
    NoActiveProjectError,
    NoActiveSceneError,
    NovaStateError,
    PersistenceError,
    ProjectSchemaError,
)
from .executor import ScriptExecutor
from .gateway import InMemoryPersistenceGateway, PersistenceGateway
from .graph_store import MAIN_FLOW_GRAPH_ID, ScriptGraphStore
from .history import CommandHistory
from .logging_config import configure_logging
from .migrations import migrate_project, migrate_project_payload
from .models import (
    Character,
    CharacterUpdate,
    ChoiceNode,
    ChoiceOption,
    ChoicePayload,
    EndNode,
    Episode,
    Project,
    Scene,
    SceneElement,
    SceneRef,
    ScriptConnection,
    ScriptGraph,
    ScriptNode,
    Season,
    SelectionCursor,
    StartNode,
    TextNode,
    TextPayload,
    parse_script_node,
)
from .session import ProjectSession
from .settings import EngineSettings

__all__ = [
    "AddElementCommand",
    "AddNodeCommand",
    "Character",
    "CharacterUpdate",
    "ChoiceNode",
    "ChoiceOption",
    "ChoicePayload",
    "Command",
    "CommandHistory",
    "ConnectNodesCommand",
    "ContentTree",
    "DisconnectCommand",
    "EditorState",
    "EndNode",
    "EngineSettings",
    "EntityNotFoundError",
    "Episode",
    "GraphCommand",
    "InMemoryPersistenceGateway",
    "MAIN_FLOW_GRAPH_ID",
    "MoveElementCommand",
    "NoActiveProjectError",
    "NoActiveSceneError",
    "NovaStateError",
    "PersistenceError",
    "PersistenceFailure",
    "PersistenceGateway",
    "PersistenceOutcome",
    "PersistenceScheduler",
    "Project",
    "ProjectSchemaError",
    "ProjectSession",
    "RemoveElementCommand",
    "RemoveNodeCommand",
    "ReorderElementsCommand",
    "Scene",
    "SceneCommand",
    "SceneElement",
    "SceneRef",
    "ScriptConnection",
    "ScriptExecutor",
    "ScriptGraph",
    "ScriptGraphStore",
    "ScriptNode",
    "Season",
    "SelectionCursor",
    "StartNode",
    "TextNode",
    "TextPayload",
    "UpdateNodeCommand",
    "configure_logging",
    "migrate_project",
    "migrate_project_payload",
    "parse_script_node",
    "resolve_active_scene",
]
