"""Per-category cache of completion candidates.

Lookup order for ``complete(category, query)``:

1. Drop entries older than the staleness window (lazily, on access).
2. An entry for exactly ``query`` wins.
3. Unless the category is exact-match-only, the entry with the longest
   query that is a prefix of ``query`` is reused as-is. Its candidates may
   include names that no longer match or miss ones created since; this
   approximation saves a p4 round trip per keystroke.
4. Otherwise fetch, store at the front of the category's list, and return.

The annotations of whichever entry answered become the active side channel
read through :meth:`CompletionCache.annotation`. Only one result set is
annotated at a time.

Entries are kept per config root as well (the directory holding the
P4CONFIG file in effect), so two workspaces never answer for each other.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field

from p4shell.completion.category import CompletionCategory, CompletionResult
from p4shell.logging import get_logger

log = get_logger("completion.cache")

DEFAULT_TIMEOUT = 600.0

FetchCallback = Callable[[CompletionCategory, str], CompletionResult]
# Config root currently in effect, None outside any workspace
RootCallback = Callable[[], str | None]


@dataclass
class CacheEntry:
    query: str
    timestamp: float
    results: list[str]
    annotations: dict[str, str] = field(default_factory=dict)


class CompletionCache:
    """Completion candidates keyed by (category, config root, query).

    One instance per application; owned by the application context.
    """

    def __init__(
        self,
        fetcher: FetchCallback,
        *,
        root: RootCallback | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._fetcher = fetcher
        self._root = root
        self.timeout = timeout
        self._clock = clock
        self._entries: dict[tuple[str, str | None], list[CacheEntry]] = {}
        self._annotations: dict[str, str] = {}

    def entries(self, category: CompletionCategory | str) -> list[CacheEntry]:
        """Cached entries for a category, most recent first (a copy)."""
        return list(self._entries.get(self._key(category), []))

    def purge(self, category: CompletionCategory | str) -> int:
        """Remove stale entries for ``category``.

        "Now" is sampled once, so every entry is judged against the same
        instant.

        Returns:
            Number of entries removed.
        """
        key = self._key(category)
        entries = self._entries.get(key)
        if not entries:
            return 0
        stale = self._clock() - self.timeout
        kept = [entry for entry in entries if stale < entry.timestamp]
        removed = len(entries) - len(kept)
        if removed:
            log.debug("Purged %d stale %s entries", removed, key[0])
            self._entries[key] = kept
        return removed

    def lookup(self, category: CompletionCategory, query: str) -> CacheEntry | None:
        """Find a usable entry without fetching (no purge)."""
        entries = self._entries.get(self._key(category), [])
        for entry in entries:
            if entry.query == query:
                return entry
        if category.exact_match_only:
            return None

        best: CacheEntry | None = None
        for entry in entries:
            if query.startswith(entry.query) and (best is None or len(entry.query) > len(best.query)):
                best = entry
        return best

    def complete(self, category: CompletionCategory, query: str) -> list[str]:
        """Candidates for ``query``, from the cache or a fresh fetch.

        Raises:
            Whatever the fetch callback raises. Failed fetches are not cached.
        """
        self.purge(category)
        entry = self.lookup(category, query)
        if entry is not None:
            log.debug("%s: %r answered from cached %r", category.name, query, entry.query)
        else:
            result = self._fetcher(category, query)
            entry = CacheEntry(
                query=query,
                timestamp=self._clock(),
                results=list(result.candidates),
                annotations=dict(result.annotations),
            )
            self._entries.setdefault(self._key(category), []).insert(0, entry)
        self._annotations = entry.annotations
        return list(entry.results)

    def annotation(self, candidate: str) -> str | None:
        """Annotation for a candidate of the most recently returned set."""
        return self._annotations.get(candidate)

    @property
    def annotations(self) -> dict[str, str]:
        return dict(self._annotations)

    def clear(self, category: CompletionCategory | str | None = None) -> None:
        """Drop cached entries for one category in every root, or for all of them."""
        if category is None:
            self._entries.clear()
        else:
            name = _name(category)
            for key in [key for key in self._entries if key[0] == name]:
                del self._entries[key]
        self._annotations = {}

    def _key(self, category: CompletionCategory | str) -> tuple[str, str | None]:
        return _name(category), self._root() if self._root is not None else None


def _name(category: CompletionCategory | str) -> str:
    return category if isinstance(category, str) else category.name
