"""Find-in-log: match every projected row against a search term.

State machine: CLOSED -> OPEN (term editing, matches live) -> CLOSED.
Matches are computed over the LogItems of the current Projection in display
order, so each match carries the same log_index the selection layer uses,
synthetic rows included.

// [LAW:one-source-of-truth] compile_find_pattern() is the only place a term
// becomes a regex; the TUI highlighter reuses it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import IntFlag

from logdeck.core.projection import LogItem, Projection


class FindOption(IntFlag):
    CASE_SENSITIVE = 1
    WHOLE_WORD = 2
    REGEX = 4


DEFAULT_FIND_OPTIONS = FindOption(0)


@dataclass(frozen=True)
class FindMatch:
    """One match. index is its position in the global match list."""

    index: int
    log_index: int
    start: int
    length: int


def compile_find_pattern(term: str, options: FindOption) -> re.Pattern | None:
    """Build a regex for term. None for an empty term or an invalid regex."""
    if not term:
        return None

    pattern_str = term if options & FindOption.REGEX else re.escape(term)
    if options & FindOption.WHOLE_WORD:
        pattern_str = rf"\b{pattern_str}\b"

    flags = 0 if options & FindOption.CASE_SENSITIVE else re.IGNORECASE
    try:
        return re.compile(pattern_str, flags)
    except re.error:
        return None


def find_all_matches(text: str, term: str, options: FindOption = DEFAULT_FIND_OPTIONS) -> list[tuple[int, int]]:
    """(start, length) of every match of term in text."""
    if not text:
        return []
    pattern = compile_find_pattern(term, options)
    if pattern is None:
        return []
    return [(m.start(), m.end() - m.start()) for m in pattern.finditer(text)]


class FindState:
    """Mutable find-overlay state owned by the app shell."""

    def __init__(self):
        self.is_open: bool = False
        self.term: str = ""
        self.options: FindOption = DEFAULT_FIND_OPTIONS
        self.current_index: int = 0
        self.matches: list[FindMatch] = []
        # Inputs the current matches were computed from
        self._projection: Projection | None = None
        self._query: tuple[bool, str, FindOption] | None = None

    # ── Lifecycle ──

    def open(self) -> None:
        self.is_open = True

    def close(self) -> None:
        self.is_open = False
        self.term = ""
        self.current_index = 0
        self.matches = []
        self._projection = None
        self._query = None

    def set_term(self, term: str, projection: Projection) -> None:
        if term != self.term:
            self.current_index = 0
        self.term = term
        self.refresh(projection)

    def toggle_option(self, option: FindOption, projection: Projection) -> None:
        self.options ^= option
        self.current_index = 0
        self.refresh(projection)

    def refresh(self, projection: Projection) -> None:
        """Recompute matches when the projection or the query changed; clamp the cursor.

        Projections are memoized, so an unchanged view arrives as the same object.
        """
        query = (self.is_open, self.term, self.options)
        if projection is self._projection and query == self._query:
            return
        self._projection = projection
        self._query = query
        self.matches = self._compute(projection)
        if not self.matches:
            self.current_index = 0
        elif self.current_index >= len(self.matches):
            self.current_index = len(self.matches) - 1

    def _compute(self, projection: Projection) -> list[FindMatch]:
        if not self.is_open:
            return []
        pattern = compile_find_pattern(self.term, self.options)
        if pattern is None:
            return []
        matches: list[FindMatch] = []
        for item in projection.items:
            if not isinstance(item, LogItem):
                continue
            for m in pattern.finditer(item.log.message):
                matches.append(
                    FindMatch(
                        index=len(matches),
                        log_index=item.log_index,
                        start=m.start(),
                        length=m.end() - m.start(),
                    )
                )
        return matches

    # ── Navigation ──

    @property
    def current_log_index(self) -> int | None:
        if not self.matches:
            return None
        return self.matches[self.current_index].log_index

    def go_to_next(self) -> int | None:
        """Advance with wrap-around. Returns the log_index to navigate to."""
        if not self.matches:
            return None
        self.current_index = (self.current_index + 1) % len(self.matches)
        return self.matches[self.current_index].log_index

    def go_to_prev(self) -> int | None:
        if not self.matches:
            return None
        self.current_index = (self.current_index - 1) % len(self.matches)
        return self.matches[self.current_index].log_index

    def matches_for_log(self, log_index: int) -> list[FindMatch]:
        return [m for m in self.matches if m.log_index == log_index]
