"""Argument completion for p4 entities.

- CompletionCache: per-category cache with staleness and prefix reuse
- CATEGORIES: the static category table
- Fetcher: fetch callback running p4 through the retry engine
- P4Completer: prompt_toolkit completer for command lines
"""

from p4shell.completion.cache import DEFAULT_TIMEOUT, CacheEntry, CompletionCache
from p4shell.completion.categories import CATEGORIES, get_category
from p4shell.completion.category import CompletionCategory, CompletionResult
from p4shell.completion.completer import P4Completer, complete_arg
from p4shell.completion.fetchers import Fetcher

__all__ = [
    "CATEGORIES",
    "DEFAULT_TIMEOUT",
    "CacheEntry",
    "CompletionCache",
    "CompletionCategory",
    "CompletionResult",
    "Fetcher",
    "P4Completer",
    "complete_arg",
    "get_category",
]
