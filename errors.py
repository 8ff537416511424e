"""Failure types raised by the food desert pipeline."""

from __future__ import annotations

from typing import Any, Iterable

_MAX_KEYS_SHOWN = 10


class PipelineError(Exception):
    """Base class for every failure that aborts a pipeline run.

    Parameters
    ----------
    message:
        Human readable description of what went wrong.
    step:
        Pipeline stage that raised the error (``"demographics"``, ``"join"`` ...).
    keys:
        Offending tract ids or column names, if known.
    """

    def __init__(self, message: str, *, step: str | None = None, keys: Iterable[Any] | None = None):
        self.step = step
        self.keys = list(keys) if keys is not None else []
        super().__init__(message)

    def __str__(self) -> str:
        text = super().__str__()
        if self.step:
            text = f"[{self.step}] {text}"
        if self.keys:
            shown = ", ".join(str(key) for key in self.keys[:_MAX_KEYS_SHOWN])
            if len(self.keys) > _MAX_KEYS_SHOWN:
                shown += f", ... ({len(self.keys)} total)"
            text += f" (keys: {shown})"
        return text


class DataUnavailable(PipelineError):
    """The upstream source has no data for the requested parameters."""


class SchemaMismatch(PipelineError):
    """Expected columns are absent from a loaded table."""


class DataIntegrity(PipelineError):
    """Loaded data violates a required invariant."""


class ArithmeticUndefined(PipelineError):
    """A ratio was requested with a zero or negative denominator."""
