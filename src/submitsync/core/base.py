"""Model bases shared by configuration and runtime state.

Kept apart from config.py so that log.py can build on them without an
import cycle.
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from typing import Protocol, runtime_checkable

from pydantic import BaseModel


@runtime_checkable
class Closeable(Protocol):
    def close(self) -> None:
        ...


class BaseCloseable(BaseModel):
    """Model that closes the resources held in its fields.

    close() visits fields in reverse declaration order, so a model
    releases what it acquired last first. Closing cascades: State
    closes Config, Config closes Logger, Logger closes each Sink.
    Every child is closed even if an earlier one fails.
    """

    def _closeable_children(self) -> Iterator[tuple[str, Closeable]]:
        for name in reversed(list(self.__class__.model_fields)):
            child = getattr(self, name, None)
            if child is not None and isinstance(child, Closeable):
                yield name, child

    def close(self):
        for name, child in self._closeable_children():
            try:
                child.close()
            except Exception as e:
                # The logger itself may be what failed, so use stderr
                print(
                    f"Warning: error closing {name}: {e}",
                    file=sys.stderr,
                )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):  # noqa: U100
        self.close()
        return False


class BaseConfig(BaseCloseable):
    """Marks a model as configuration loaded from YAML, env or CLI."""


class BaseState(BaseCloseable):
    """Marks a model as runtime state mutated while a command runs."""


__all__ = ["BaseCloseable", "BaseConfig", "BaseState", "Closeable"]
