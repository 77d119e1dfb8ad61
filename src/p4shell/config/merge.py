"""Merging of the config cascade (system, user, project, environment)."""

from __future__ import annotations

from typing import Any

# Lists of command names that a later layer may edit with "+name" / "-name"
EDITABLE_LISTS = frozenset({"synchronous_commands"})


def edit_list(base: list[str], edits: list[str]) -> list[str]:
    """Apply ``+name`` / ``-name`` edits to ``base``, keeping its order."""
    result = list(base)
    for edit in edits:
        name = edit[1:]
        if edit.startswith("+"):
            if name not in result:
                result.append(name)
        elif name in result:
            result.remove(name)
    return result


def _is_edit(value: list[Any]) -> bool:
    return bool(value) and all(
        isinstance(item, str) and item[:1] in ("+", "-") for item in value
    )


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``.

    Nested dicts merge key by key and None never overrides. Lists replace
    the base list, except an editable list (``synchronous_commands``) made
    only of ``+name`` / ``-name`` entries, which edits it instead::

        p4:
          synchronous_commands: ["-edit", "+shelve"]
    """
    result = base.copy()

    for key, value in override.items():
        if value is None:
            continue
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = deep_merge(current, value)
        elif key in EDITABLE_LISTS and isinstance(value, list) and _is_edit(value):
            result[key] = edit_list(current if isinstance(current, list) else [], value)
        else:
            result[key] = value

    return result


def merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
    """Merge layers in order; later layers win."""
    result: dict[str, Any] = {}
    for config in configs:
        if config:
            result = deep_merge(result, config)
    return result
