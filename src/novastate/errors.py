"""Exception hierarchy shared by the project state engine."""

from __future__ import annotations


class NovaStateError(Exception):
    """Base class for errors raised by :mod:`novastate`."""


class EntityNotFoundError(NovaStateError, KeyError):
    """Raised when a season, episode, scene, element, node or character is unknown."""

    def __init__(self, kind: str, identifier: str) -> None:
        super().__init__(f"{kind} '{identifier}' does not exist")
        self.kind = kind
        self.identifier = identifier

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the readable message instead.
        return str(self.args[0])


class ProjectSchemaError(NovaStateError, ValueError):
    """Raised when a migrated payload still cannot be validated as a project."""


class PersistenceError(NovaStateError, RuntimeError):
    """Raised by persistence gateways when a storage operation fails."""


class NoActiveProjectError(NovaStateError, RuntimeError):
    """Raised when an operation requires a project but the session has none."""


class NoActiveSceneError(NovaStateError, RuntimeError):
    """Raised when an element edit is requested while no scene is open."""


__all__ = [
    "EntityNotFoundError",
    "NoActiveProjectError",
    "NoActiveSceneError",
    "NovaStateError",
    "PersistenceError",
    "ProjectSchemaError",
]
