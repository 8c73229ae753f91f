"""
SearchEngine - incremental query filtering over the option set.

Each query keeps a candidate list next to the ranked result set. A longer
query that extends the previous one only rescans those candidates instead
of the full option set. The candidate predicate is monotone in the query:
- ordinary entries: name starts with the query
- shell commands: name and the query's first token are prefix-comparable
so a refined scan always equals a full rescan.
"""
import logging
import random
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from quicklaunch.Calculator import format_value
from quicklaunch.index.IndexBuilder import APP_DESCRIPTION
from quicklaunch.LauncherState import LauncherState
from quicklaunch.protocols import ExpressionEvaluator
from quicklaunch.search.ParallelFilter import parallel_filter
from quicklaunch.types import Calculate, Entry, GoogleSearch, Page, RandomVar

RANDOM_LITERAL = "randomvar"
SEARCH_SUFFIX = "?"
CLIPBOARD_LITERAL = "cbhist"
MAIN_LITERAL = "main"


@dataclass
class SearchOutcome:
    """What a query update asks of the window.

    Attributes:
        results: The new result set (unchanged on page switches)
        switch_page: Page requested by a page literal, else None
        collapse: Window must collapse to its default height immediately
    """
    results: List[Entry] = field(default_factory=list)
    switch_page: Optional[Page] = None
    collapse: bool = False


def first_token(normalized_lc: str) -> str:
    return normalized_lc.split(" ", 1)[0]


def is_exact_match(entry: Entry, normalized_lc: str, token: str) -> bool:
    if entry.is_shell_command:
        return token.startswith(entry.name_lc)
    return entry.name_lc == normalized_lc


def is_prefix_match(entry: Entry, normalized_lc: str) -> bool:
    return (not entry.is_shell_command
            and entry.name_lc != normalized_lc
            and entry.name_lc.startswith(normalized_lc))


def is_candidate(entry: Entry, normalized_lc: str, token: str) -> bool:
    """True if entry can match normalized_lc or any extension of it."""
    if entry.is_shell_command:
        return token.startswith(entry.name_lc) or entry.name_lc.startswith(token)
    return entry.name_lc.startswith(normalized_lc)


def generic_filter(base: Sequence[Entry], normalized_lc: str,
                   executor: Optional[Executor] = None) -> List[Entry]:
    """Exact matches followed by prefix matches, each in base order."""
    token = first_token(normalized_lc)
    exact = parallel_filter(base, lambda e: is_exact_match(e, normalized_lc, token), executor)
    prefix = parallel_filter(base, lambda e: is_prefix_match(e, normalized_lc), executor)
    return exact + prefix


class SearchEngine:
    """Turns query text into a ranked result set.

    Args:
        evaluator: Arithmetic fallback for queries nothing matches
        executor: Thread pool for chunked scans, None to scan inline
        rng: Random source for the randomvar literal
        verbose: Enable verbose logging
    """

    def __init__(self, evaluator: ExpressionEvaluator, executor: Optional[Executor] = None,
                 rng: Optional[random.Random] = None, verbose: bool = False) -> None:
        self.evaluator = evaluator
        self.executor = executor
        self.rng = rng or random.Random()
        self.verbose = verbose

    def search(self, state: LauncherState, raw: str) -> SearchOutcome:
        """Update state.query, state.candidates and state.results for raw.

        Page switches are only reported; the caller applies them.
        """
        query = state.query
        normalized = raw.strip().lower()
        query.raw = raw
        query.normalized_lc = normalized

        if not normalized and state.window.page == Page.MAIN:
            state.clear_results()
            return SearchOutcome(results=[], collapse=True)

        if normalized == CLIPBOARD_LITERAL:
            return SearchOutcome(results=state.results, switch_page=Page.CLIPBOARD_HISTORY)
        if normalized == MAIN_LITERAL:
            return SearchOutcome(results=state.results, switch_page=Page.MAIN)

        if normalized == RANDOM_LITERAL:
            n = self.rng.randrange(100)
            return self._replace(state, [Entry(str(n), "Easter egg", RandomVar(n))])
        if normalized.endswith(SEARCH_SUFFIX):
            return self._replace(state, [Entry(f"Search for: {raw}", "Search", GoogleSearch(raw))])

        base = self._base(state, normalized)
        token = first_token(normalized)
        candidates = parallel_filter(base, lambda e: is_candidate(e, normalized, token), self.executor)
        results = generic_filter(candidates, normalized, self.executor)

        if not results:
            value = self.evaluator.parse(raw)
            if value is not None:
                results = [Entry(format_value(value), APP_DESCRIPTION, Calculate(value))]

        # Refinement base and results are updated together
        state.candidates = candidates
        query.previous_normalized_lc = normalized

        if self.verbose:
            logging.debug(f"SearchEngine: '{normalized}' scanned {len(base)}, "
                          f"{len(candidates)} candidates, {len(results)} results")

        state.results = results
        return SearchOutcome(results=results)

    def _base(self, state: LauncherState, normalized: str) -> Sequence[Entry]:
        previous = state.query.previous_normalized_lc
        if previous is not None and normalized.startswith(previous):
            return state.candidates
        return state.options

    def _replace(self, state: LauncherState, results: List[Entry]) -> SearchOutcome:
        state.clear_results()
        state.results = results
        return SearchOutcome(results=results)
