"""Strategies that fetch completion candidates from p4.

Every strategy runs p4 through the retry engine, so a completion can log in
or accept a server fingerprint like any other command. Failures raise
ToolReportedError; the cache never stores them.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

from p4shell.completion.category import CompletionCategory, CompletionResult
from p4shell.logging import get_logger
from p4shell.session.retry import RetryEngine
from p4shell.session.state import SessionState
from p4shell.tagged import parse_tagged

log = get_logger("completion.fetch")

# `p4 help commands` / `p4 help administration` list entries as "\tname  description"
_HELP_LINE_RE = re.compile(r"^\t(\S+)\s+(.*)$", re.MULTILINE)

# `p4 files` output: "//depot/a.c#3 - edit change 12 (text)"
_FILES_LINE_RE = re.compile(r"^(//[^#\n]+)#\d+ - ", re.MULTILINE)

HELP_TOPICS = (
    "simple",
    "commands",
    "charset",
    "environment",
    "filetypes",
    "jobview",
    "networking",
    "revisions",
    "usage",
    "views",
)


class Fetcher:
    """The cache's fetch callback: dispatches a category to its strategy."""

    def __init__(
        self,
        engine: RetryEngine,
        state: SessionState,
        *,
        cwd: str | None = None,
        max_changes: int = 200,
    ) -> None:
        self.engine = engine
        self.state = state
        self.cwd = cwd or os.getcwd()
        self.max_changes = max_changes

    def __call__(self, category: CompletionCategory, query: str) -> CompletionResult:
        log.debug("Fetching %s completions for %r", category.name, query)
        if category.fetch is not None:
            return category.fetch(self, query)
        return fetch_matches(self, category, query)

    def output(self, arguments: list[str], *, allow_no_matches: bool = False) -> str:
        return self.engine.output(arguments, cwd=self.cwd, allow_no_matches=allow_no_matches)


def fetch_matches(fetcher: Fetcher, category: CompletionCategory, query: str) -> CompletionResult:
    """Run the category's query command and extract a regexp group per line."""
    if category.query_cmd is None or category.regexp is None:
        raise ValueError(f"Category {category.name!r} has no query command or pattern")

    arguments = [category.query_cmd, *category.query_args]
    if category.server_filter:
        arguments.append(f"{category.query_prefix}{query}*")
    text = fetcher.output(arguments, allow_no_matches=True)

    result = CompletionResult()
    seen: set[str] = set()
    for match in re.finditer(category.regexp, text, re.MULTILINE):
        candidate = match.group(category.group)
        if candidate in seen or not candidate.startswith(query):
            continue
        seen.add(candidate)
        result.candidates.append(candidate)
        if category.annotation_group is not None:
            annotation = match.group(category.annotation_group)
            if annotation:
                result.annotations[candidate] = annotation.strip()
    return result


def fetch_changes(fetcher: Fetcher, query: str, status: str | None = None) -> CompletionResult:
    """Change numbers from ``p4 -ztag changes``, annotated with their description.

    Pending and shelved changes are limited to the current client.
    """
    arguments = ["-ztag", "changes", "-m", str(fetcher.max_changes)]
    if status is not None:
        arguments += ["-s", status]
        client = fetcher.state.client
        if client:
            arguments += ["-c", client]
    text = fetcher.output(arguments)

    result = CompletionResult()
    for record in parse_tagged(text):
        change = record.get("change")
        if not change or not change.startswith(query):
            continue
        result.candidates.append(change)
        desc = record.get("desc", "").strip()
        if desc:
            result.annotations[change] = desc.splitlines()[0]
    return result


def fetch_pending(fetcher: Fetcher, query: str) -> CompletionResult:
    return fetch_changes(fetcher, query, status="pending")


def fetch_shelved(fetcher: Fetcher, query: str) -> CompletionResult:
    return fetch_changes(fetcher, query, status="shelved")


def fetch_filespecs(fetcher: Fetcher, query: str) -> CompletionResult:
    """Depot paths (``//...``) from p4 dirs/files, otherwise local paths."""
    if query.startswith("//"):
        return _fetch_depot_paths(fetcher, query)
    return _fetch_local_paths(fetcher.cwd, query)


def _fetch_depot_paths(fetcher: Fetcher, query: str) -> CompletionResult:
    result = CompletionResult()
    pattern = f"{query}*"
    for line in fetcher.output(["dirs", pattern], allow_no_matches=True).splitlines():
        if line.startswith("//"):
            result.candidates.append(line.strip() + "/")
    # "//" or "//dep" can only name depots, which hold no files directly
    if query.count("/") > 2:
        files = fetcher.output(["files", "-e", pattern], allow_no_matches=True)
        result.candidates.extend(_FILES_LINE_RE.findall(files))
    return result


def _fetch_local_paths(cwd: str, query: str) -> CompletionResult:
    directory, _, stem = query.rpartition("/")
    base = Path(cwd) / directory if directory else Path(cwd)
    prefix = f"{directory}/" if directory else ""

    result = CompletionResult()
    try:
        entries = sorted(base.iterdir(), key=lambda p: p.name)
    except OSError as e:
        log.debug("Cannot list %s: %s", base, e)
        return result
    for entry in entries:
        if not entry.name.startswith(stem):
            continue
        if entry.name.startswith(".") and not stem.startswith("."):
            continue
        suffix = "/" if entry.is_dir() else ""
        result.candidates.append(f"{prefix}{entry.name}{suffix}")
    return result


def fetch_help(fetcher: Fetcher, query: str) -> CompletionResult:
    """Help topics plus every command listed by ``p4 help``."""
    result = CompletionResult()
    for topic in HELP_TOPICS:
        result.candidates.append(topic)
    for section in ("commands", "administration"):
        text = fetcher.output(["help", section])
        for match in _HELP_LINE_RE.finditer(text):
            name, description = match.group(1), match.group(2).strip()
            if name in result.candidates:
                continue
            result.candidates.append(name)
            if description:
                result.annotations[name] = description
    result.candidates = [c for c in result.candidates if c.startswith(query)]
    return result
