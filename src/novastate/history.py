"""Linear undo/redo history for editor commands."""

from __future__ import annotations

import logging
from typing import List, Sequence

from .commands import Command, EditorState

logger = logging.getLogger(__name__)


class CommandHistory:
    """Execute commands and move them between the undo and redo stacks.

    There is a single timeline: executing a new command discards everything
    that was undone before it.
    """

    def __init__(self, *, limit: int | None = None) -> None:
        if limit is not None and limit < 1:
            raise ValueError("limit must be a positive integer when provided")
        self._limit = limit
        self._undo: List[Command] = []
        self._redo: List[Command] = []

    @property
    def undo_stack(self) -> Sequence[Command]:
        return tuple(self._undo)

    @property
    def redo_stack(self) -> Sequence[Command]:
        return tuple(self._redo)

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def execute(self, command: Command, state: EditorState) -> None:
        """Apply ``command`` and record it, clearing the redo stack.

        A command whose ``apply`` raises is not recorded and the redo stack is
        left untouched.
        """

        command.apply(state)
        self._undo.append(command)
        self._redo.clear()
        if self._limit is not None and len(self._undo) > self._limit:
            del self._undo[0]
        logger.info("Executed: %s", command.label)

    def undo(self, state: EditorState) -> Command | None:
        """Reverse the most recent command; return it, or ``None`` if empty."""

        if not self._undo:
            return None
        command = self._undo[-1]
        command.reverse(state)
        self._undo.pop()
        self._redo.append(command)
        logger.info("Undid: %s", command.label)
        return command

    def redo(self, state: EditorState) -> Command | None:
        """Re-apply the most recently undone command, if any."""

        if not self._redo:
            return None
        command = self._redo[-1]
        command.apply(state)
        self._redo.pop()
        self._undo.append(command)
        logger.info("Redid: %s", command.label)
        return command

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()


__all__ = ["CommandHistory"]
