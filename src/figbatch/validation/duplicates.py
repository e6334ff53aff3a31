"""Review of row titles that match records already in the repository."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from figbatch.fuzzy import find_near_match
from figbatch.models import RowStatus

logger = logging.getLogger(__name__)


class DuplicatesNotAcknowledgedError(RuntimeError):
    """Raised when an upload starts before duplicate matches are acknowledged."""


@dataclass(frozen=True)
class TitleMatch:
    row_id: str
    row_number: int
    title: str
    existing_title: str


class DuplicateReview:
    """Exact and near title matches against existing records.

    Exact matches start out selected for skipping; the user may toggle
    any of them to upload anyway. Any change to the selection withdraws
    an earlier acknowledgment.
    """

    def __init__(
        self,
        rows: Iterable[RowStatus],
        existing_titles: Sequence[str],
        threshold: float = 95.0,
    ) -> None:
        existing = list(existing_titles)
        existing_set = set(existing)
        self.exact_matches: list[TitleMatch] = []
        self.near_matches: list[TitleMatch] = []

        for row in rows:
            if not row.title:
                continue
            if row.title in existing_set:
                self.exact_matches.append(
                    TitleMatch(row.id, row.row_number, row.title, row.title)
                )
                continue
            near = find_near_match(row.title, existing, threshold)
            if near is not None:
                self.near_matches.append(TitleMatch(row.id, row.row_number, row.title, near))

        self.skip_rows: set[str] = {m.row_id for m in self.exact_matches}
        self.acknowledged = False
        logger.info(
            "Duplicate review: %d exact, %d near matches",
            len(self.exact_matches), len(self.near_matches),
        )

    @property
    def has_matches(self) -> bool:
        return bool(self.exact_matches or self.near_matches)

    @property
    def needs_acknowledgment(self) -> bool:
        return self.has_matches and not self.acknowledged

    def toggle(self, row_id: str) -> None:
        """Flip skip/upload for one exactly-matching row."""
        if row_id not in {m.row_id for m in self.exact_matches}:
            raise KeyError(row_id)
        self.skip_rows ^= {row_id}
        self.acknowledged = False

    def toggle_all(self, skip: bool) -> None:
        self.skip_rows = {m.row_id for m in self.exact_matches} if skip else set()
        self.acknowledged = False

    def acknowledge(self) -> None:
        self.acknowledged = True

    def require_acknowledged(self) -> None:
        if self.needs_acknowledgment:
            raise DuplicatesNotAcknowledgedError(
                f"{len(self.exact_matches)} exact and {len(self.near_matches)} near "
                "duplicate titles must be acknowledged before upload"
            )

    def summary(self) -> str:
        skip = len(self.skip_rows)
        return f"Upload {len(self.exact_matches) - skip} anyway, skip {skip}"
