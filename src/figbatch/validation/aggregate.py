"""Cross-row checks, run once after every row task has finished."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from figbatch.models import AggregateStatus, DataError

logger = logging.getLogger(__name__)


class AggregateCheck(ABC):
    """A check over the whole batch, keyed by spreadsheet row number."""

    name: str = ""

    def __init__(self) -> None:
        self.status = AggregateStatus.CHECKING
        self.errors: list[DataError] = []
        self.warnings: list[str] = []

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status.value!r}, errors={len(self.errors)})"

    @property
    def complete(self) -> bool:
        return self.status is not AggregateStatus.CHECKING

    @abstractmethod
    def check(self) -> None:
        """Evaluate the batch and set ``status``/``errors``."""

    def _settle(self) -> None:
        self.status = AggregateStatus.ERROR if self.errors else AggregateStatus.VALID
        logger.debug("%s: %s (%d errors)", self.name, self.status.value, len(self.errors))


class TitlesAreUnique(AggregateCheck):
    """No two rows of the batch may share a title."""

    name = "Titles are unique"

    def __init__(self, rows: Mapping[int, Any]) -> None:
        super().__init__()
        self.rows = rows

    def check(self) -> None:
        self.errors = []
        groups: dict[str, list[int]] = {}
        for row_number, row in self.rows.items():
            title = (row.data or {}).get("title")
            if title is None:
                continue
            groups.setdefault(str(title), []).append(row_number)

        for title, numbers in groups.items():
            if len(numbers) > 1:
                self.errors.append(DataError(
                    f'{len(numbers)} rows titled "{title}": {", ".join(map(str, numbers))}',
                    "DuplicateTitleError",
                ))
        self._settle()


class QuotaCheck(AggregateCheck):
    """Total referenced file size must fit the remaining storage quota."""

    name = "Data quota is sufficient"

    def __init__(self, rows: Mapping[int, Any], quota_remaining: int) -> None:
        super().__init__()
        self.rows = rows
        self.quota_remaining = quota_remaining

    def check(self) -> None:
        self.errors = []
        total = sum(row.scratch.quota_used for row in self.rows.values())
        if total > self.quota_remaining:
            self.errors.append(DataError(
                f"Total quota used ({total}b) exceeds quota ({self.quota_remaining}b) "
                f"by {total - self.quota_remaining}b",
                "QuotaExceededError",
            ))
        self._settle()
