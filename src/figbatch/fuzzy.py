"""Loose string matching for controlled vocabularies and record titles.

Two levels of looseness:

* ``fuzzy_coerce`` -- case-insensitive, treats runs of spaces, hyphens and
  underscores as one separator and ignores a trailing full stop. Used to
  coerce select values ("cc-by 4.0." -> "CC BY 4.0").
* ``find_near_match`` -- additionally scores cleaned strings with
  rapidfuzz so near-identical titles are surfaced for review.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from rapidfuzz import fuzz, process

_SEPARATORS = re.compile(r"[\s_\-]+")


def clean_string(value: str) -> str:
    """Lowercase, collapse separator runs to one space, drop a trailing '.'."""
    collapsed = " ".join(p for p in _SEPARATORS.split(value.strip().lower()) if p)
    return collapsed.rstrip(".").rstrip()


def string_to_fuzzy_regex(value: str) -> re.Pattern[str]:
    """Compile a case-insensitive pattern matching *value* loosely.

    Separators (whitespace, ``-``, ``_``) are interchangeable and a
    trailing full stop is optional; any other punctuation must match.
    """
    parts = [p for p in _SEPARATORS.split(value.strip().rstrip(".")) if p]
    body = r"[\s_\-]+".join(re.escape(p) for p in parts)
    return re.compile(rf"^\s*{body}\.?\s*$", re.IGNORECASE)


def fuzzy_coerce(
    value: str,
    target_values: Sequence[str],
    clean_value: bool = True,
    compiled_regexes: Sequence[re.Pattern[str]] | None = None,
) -> str:
    """Return the first target that loosely matches *value*, else *value*.

    Args:
        value: The raw value to coerce.
        target_values: Canonical values, in priority order.
        clean_value: Strip surrounding whitespace before matching.
        compiled_regexes: Precompiled patterns aligned with *target_values*.

    Raises:
        ValueError: If *compiled_regexes* and *target_values* differ in length.
    """
    if compiled_regexes is None:
        compiled_regexes = [string_to_fuzzy_regex(t) for t in target_values]
    elif len(compiled_regexes) != len(target_values):
        raise ValueError("Compiled regexes and target values must be the same length")

    candidate = value.strip() if clean_value else value
    for target, pattern in zip(target_values, compiled_regexes):
        if pattern.match(candidate):
            return target
    return value


def find_near_match(
    title: str,
    existing_titles: Sequence[str],
    threshold: float = 95.0,
) -> str | None:
    """Return the existing title that *title* nearly duplicates, if any.

    Cleaned-string equality always matches; otherwise the best rapidfuzz
    ratio at or above *threshold* (0-100) wins.
    """
    if not existing_titles:
        return None
    cleaned = [clean_string(t) for t in existing_titles]
    needle = clean_string(title)
    if needle in cleaned:
        return existing_titles[cleaned.index(needle)]
    best = process.extractOne(needle, cleaned, scorer=fuzz.ratio, score_cutoff=threshold)
    if best is None:
        return None
    _, _, index = best
    return existing_titles[index]
