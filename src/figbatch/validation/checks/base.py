"""Shared contract for row check units."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from figbatch.config import ValidationConfig
from figbatch.filesystem import RootDirectory
from figbatch.models import CheckResult, Flow

if TYPE_CHECKING:
    from figbatch.validation.row import RowTask

Emit = Callable[[CheckResult], Flow]


@dataclass(frozen=True)
class ValidationContext:
    """Read-only inputs shared by every row of a batch.

    Per-row mutable state lives on ``RowTask.scratch``, never here.
    """

    root_dir: RootDirectory | None = None
    config: ValidationConfig = field(default_factory=ValidationConfig)


class RowCheck(ABC):
    """A named validation step run once per row.

    ``run`` reports through *emit* and must finish with at least one
    terminal result (success, skipped or failed). Whenever *emit* answers
    ``Flow.HALT`` the check returns immediately. Expected problems are
    reported as failed results, never raised.
    """

    name: ClassVar[str]

    @abstractmethod
    async def run(self, row: RowTask, emit: Emit, context: ValidationContext) -> None:
        """Validate *row*, reporting results through *emit*."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
