"""Configuration helpers for the project state engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _normalise_string(value: str | None, *, default: str) -> str:
    if value is None:
        return default

    trimmed = value.strip()
    return trimmed or default


def _normalise_bool(value: str | None, *, name: str, default: bool) -> bool:
    if value is None:
        return default

    trimmed = value.strip().lower()
    if not trimmed:
        return default
    if trimmed in _TRUE_VALUES:
        return True
    if trimmed in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean flag such as 'true' or 'false'.")


def _normalise_positive_int(value: str | None, *, name: str) -> int | None:
    if value is None:
        return None

    trimmed = value.strip()
    if not trimmed:
        return None
    try:
        parsed = int(trimmed)
    except ValueError as exc:
        raise ValueError(f"{name} must be a positive integer.") from exc
    if parsed < 1:
        raise ValueError(f"{name} must be greater than zero.")
    return parsed


@dataclass(frozen=True)
class EngineSettings:
    """Runtime settings for :class:`~novastate.session.ProjectSession`.

    Values are read from environment variables so hosts can tune the engine
    without code changes. Empty strings are treated as if the variable was
    unset.
    """

    default_project_name: str = "My Nova Project"
    offline_suffix: str = " (offline)"
    autosave: bool = True
    history_limit: int | None = None
    log_level: str = "INFO"

    @property
    def offline_project_name(self) -> str:
        return f"{self.default_project_name}{self.offline_suffix}"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "EngineSettings":
        """Return settings populated from ``environ``.

        Args:
            environ: Optional mapping of environment variables. When omitted,
                :data:`os.environ` is used.
        """

        source = environ if environ is not None else os.environ

        offline_suffix = source.get("NOVASTATE_OFFLINE_SUFFIX")
        if offline_suffix is None or not offline_suffix.strip():
            offline_suffix = " (offline)"

        return cls(
            default_project_name=_normalise_string(
                source.get("NOVASTATE_DEFAULT_PROJECT_NAME"),
                default="My Nova Project",
            ),
            offline_suffix=offline_suffix,
            autosave=_normalise_bool(
                source.get("NOVASTATE_AUTOSAVE"),
                name="NOVASTATE_AUTOSAVE",
                default=True,
            ),
            history_limit=_normalise_positive_int(
                source.get("NOVASTATE_HISTORY_LIMIT"),
                name="NOVASTATE_HISTORY_LIMIT",
            ),
            log_level=_normalise_string(
                source.get("NOVASTATE_LOG_LEVEL"), default="INFO"
            ).upper(),
        )


__all__ = ["EngineSettings"]
