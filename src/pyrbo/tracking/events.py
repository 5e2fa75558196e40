"""Mutation events and the advisory event channel.

Events are emitted synchronously at the moment a tracked value changes.
They are purely observational: nothing is queued, persisted or retried,
and a failing listener never affects the mutation that triggered it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

_logger = logging.getLogger(__name__)

#: Subscribe to every event kind.
WILDCARD = "*"


class MutationKind(StrEnum):
    SET = "set"
    DELETE = "delete"
    RESET = "reset"
    SAVE = "save"


class MutationEvent(BaseModel):
    """A single observed change to a backed object."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: MutationKind
    path: tuple[str, ...] = Field(default=(), description="Keys from the root to the mutated location")
    value: Any = Field(default=None, description="The live root after the mutation")

    @field_validator("path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> tuple[str, ...]:
        return tuple(str(part) for part in value)


Handler = Callable[[MutationEvent], None]


class EventEmitter:
    """Minimal synchronous pub/sub keyed by event kind."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = {}

    def on(self, kind: MutationKind | str, handler: Handler) -> Callable[[], None]:
        """Register *handler* for *kind* (or ``"*"``); returns an unsubscribe callable."""
        name = str(kind)
        self._handlers.setdefault(name, []).append(handler)

        def _unsubscribe() -> None:
            self.off(name, handler)

        return _unsubscribe

    def off(self, kind: MutationKind | str, handler: Handler) -> None:
        handlers = self._handlers.get(str(kind))
        if not handlers:
            return
        try:
            handlers.remove(handler)
        except ValueError:
            return
        if not handlers:
            del self._handlers[str(kind)]

    def has_listeners(self) -> bool:
        return bool(self._handlers)

    def emit(self, event: MutationEvent) -> None:
        # Copy so handlers may unsubscribe while being dispatched.
        handlers = [*self._handlers.get(str(event.kind), ()), *self._handlers.get(WILDCARD, ())]
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                _logger.debug("%s event handler failed", event.kind, exc_info=True)
