"""Completion categories and fetch results."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from p4shell.completion.fetchers import Fetcher


@dataclass
class CompletionResult:
    """Candidates from one fetch, with optional per-candidate annotations."""

    candidates: list[str] = field(default_factory=list)
    annotations: dict[str, str] = field(default_factory=dict)


FetchFunction = Callable[["Fetcher", str], CompletionResult]


@dataclass(frozen=True)
class CompletionCategory:
    """A kind of completable p4 entity.

    Either ``fetch`` is set (a custom strategy), or candidates come from
    running ``p4 <query_cmd> <query_args> <query_prefix><query>*`` and taking
    ``group`` of ``regexp`` from each matching line.

    Attributes:
        name: Category name, also the cache key.
        query_cmd: p4 command for the generic strategy.
        query_args: Extra arguments placed before the query.
        query_prefix: Text glued in front of the query (e.g. "job=").
        regexp: Line pattern (multiline) for the generic strategy.
        group: Capture group holding the candidate.
        annotation_group: Capture group holding a short description.
        server_filter: Pass ``<query>*`` to p4; otherwise list everything.
        fetch: Custom fetch strategy.
        exact_match_only: Never answer from a shorter cached prefix.
        history: History list identity (defaults to ``name``).
    """

    name: str
    query_cmd: str | None = None
    query_args: tuple[str, ...] = ()
    query_prefix: str = ""
    regexp: str | None = None
    group: int = 1
    annotation_group: int | None = None
    server_filter: bool = True
    fetch: FetchFunction | None = field(default=None, compare=False)
    exact_match_only: bool = False
    history: str | None = None

    @property
    def history_name(self) -> str:
        return self.history or self.name
