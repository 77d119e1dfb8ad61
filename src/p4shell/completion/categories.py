"""Static table of completion categories."""

from __future__ import annotations

from p4shell.completion.category import CompletionCategory
from p4shell.completion.fetchers import (
    fetch_changes,
    fetch_filespecs,
    fetch_help,
    fetch_pending,
    fetch_shelved,
)

BRANCH = CompletionCategory(
    name="branch",
    query_cmd="branches",
    query_args=("-E",),
    regexp=r"^Branch (\S+) \d+/\d+/\d+ '(.*)'$",
    annotation_group=2,
)

CLIENT = CompletionCategory(
    name="client",
    query_cmd="clients",
    query_args=("-E",),
    regexp=r"^Client (\S+) \d+/\d+/\d+ root .* '(.*)'$",
    annotation_group=2,
)

FILESPEC = CompletionCategory(
    name="filespec",
    fetch=fetch_filespecs,
    exact_match_only=True,
)

GROUP = CompletionCategory(
    name="group",
    query_cmd="groups",
    regexp=r"^(\S+)$",
    server_filter=False,
)

HELP = CompletionCategory(
    name="help",
    fetch=fetch_help,
)

JOB = CompletionCategory(
    name="job",
    query_cmd="jobs",
    query_args=("-e",),
    query_prefix="job=",
    regexp=r"^(\S+) on \d+/\d+/\d+ by \S+ \*\S+\* '(.*)'$",
    annotation_group=2,
)

LABEL = CompletionCategory(
    name="label",
    query_cmd="labels",
    query_args=("-E",),
    regexp=r"^Label (\S+) \d+/\d+/\d+ '(.*)'$",
    annotation_group=2,
)

CHANGELIST = CompletionCategory(
    name="changelist",
    fetch=fetch_changes,
)

PENDING = CompletionCategory(
    name="pending",
    fetch=fetch_pending,
    history="changelist",
)

SHELVED = CompletionCategory(
    name="shelved",
    fetch=fetch_shelved,
    history="changelist",
)

USER = CompletionCategory(
    name="user",
    query_cmd="users",
    regexp=r"^(\S+) <[^>]*> \((.*)\) accessed",
    annotation_group=2,
)

CATEGORIES: dict[str, CompletionCategory] = {
    category.name: category
    for category in (
        BRANCH,
        CHANGELIST,
        CLIENT,
        FILESPEC,
        GROUP,
        HELP,
        JOB,
        LABEL,
        PENDING,
        SHELVED,
        USER,
    )
}


def get_category(name: str) -> CompletionCategory:
    """Look up a category by name.

    Raises:
        KeyError: With the list of known names.
    """
    try:
        return CATEGORIES[name]
    except KeyError:
        raise KeyError(f"Unknown completion category {name!r}; known: {', '.join(CATEGORIES)}") from None
