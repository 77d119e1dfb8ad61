"""prompt_toolkit completer backed by the completion cache."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from prompt_toolkit.completion import CompleteEvent, Completer, Completion
from prompt_toolkit.document import Document

from p4shell.commands.table import COMMANDS, CommandDescriptor
from p4shell.completion.cache import CompletionCache
from p4shell.completion.category import CompletionCategory
from p4shell.completion.categories import CATEGORIES
from p4shell.errors import P4ShellError
from p4shell.logging import get_logger

log = get_logger("completion.completer")


def complete_arg(cache: CompletionCache, category: CompletionCategory, line: str) -> list[str]:
    """Complete the last word of a whole argument line.

    Each returned string is the full line with the last word completed.
    """
    head, sep, word = line.rpartition(" ")
    prefix = head + sep
    return [prefix + candidate for candidate in cache.complete(category, word) if candidate.startswith(word)]


class P4Completer(Completer):
    """Complete ``command args...`` lines.

    The first word completes p4 command names. Later words complete through
    the command's category, or the category of the option they follow
    (``submit -c <pending change>``). Annotations from the cache appear as
    completion meta text.
    """

    def __init__(
        self,
        cache: CompletionCache,
        commands: Mapping[str, CommandDescriptor] = COMMANDS,
        categories: Mapping[str, CompletionCategory] = CATEGORIES,
    ) -> None:
        self._cache = cache
        self._commands = commands
        self._categories = categories

    def category_for(self, words: list[str]) -> CompletionCategory | None:
        """Category for the word after ``words`` (the command and its args so far)."""
        descriptor = self._commands.get(words[0])
        if descriptor is None:
            return None
        name = None
        if len(words) > 1 and words[-1].startswith("-"):
            name = descriptor.category_for_option(words[-1])
        if name is None:
            name = descriptor.category
        return self._categories.get(name) if name else None

    def get_completions(
        self, document: Document, complete_event: CompleteEvent
    ) -> Iterable[Completion]:
        text = document.text_before_cursor.lstrip()
        if text.startswith(":"):
            return
        words = text.split()
        current = "" if not text or text[-1].isspace() else words.pop()
        if words[:1] == ["p4"]:
            words = words[1:]

        if not words:
            for name in sorted(self._commands):
                if name.startswith(current):
                    yield Completion(
                        name,
                        start_position=-len(current),
                        display_meta=self._commands[name].help,
                    )
            return

        if current.startswith("-"):
            return
        category = self.category_for(words)
        if category is None:
            return

        try:
            candidates = self._cache.complete(category, current)
        except P4ShellError as e:
            log.warning("%s completion failed: %s", category.name, e)
            return

        for candidate in candidates:
            if candidate.startswith(current):
                yield Completion(
                    candidate,
                    start_position=-len(current),
                    display_meta=self._cache.annotation(candidate) or "",
                )
