"""Parser for p4's tagged output (``p4 -ztag <command>``).

Tagged output is a stable key/value line format::

    ... change 1234
    ... user alice
    ... desc Fix the frobnicator
        so it stops frobbing

    ... change 1235
    ...

Rules:
- ``... name value`` starts a field. Nested fields (``... ... name value``)
  are flattened into the same record.
- Any other line inside a record continues the previous field's value,
  with leading whitespace dropped. p4 does not indent the lines of a
  multi-line ``desc``, so an unindented line is a continuation too.
- A blank line ends the current record.
- A field name that repeats inside a record starts a new record, for commands
  that do not separate records with blank lines.
- A non-field line with no field before it in the record is a parse error.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping

from p4shell.errors import TaggedOutputError

_FIELD_RE = re.compile(r"^(?:\.\.\. )+(\S+)(?: (.*))?$")


class TaggedRecord(Mapping[str, str]):
    """One record of tagged output, in field order."""

    def __init__(self, fields: dict[str, str] | None = None) -> None:
        self._fields: dict[str, str] = dict(fields or {})

    def __getitem__(self, name: str) -> str:
        return self._fields[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"TaggedRecord({self._fields!r})"

    @property
    def fields(self) -> dict[str, str]:
        return dict(self._fields)

    def indexed(self, prefix: str) -> list[str]:
        """Values of ``prefix0``, ``prefix1``, ... up to the first gap."""
        values: list[str] = []
        index = 0
        while f"{prefix}{index}" in self._fields:
            values.append(self._fields[f"{prefix}{index}"])
            index += 1
        return values


def parse_tagged(text: str) -> list[TaggedRecord]:
    """Parse tagged output into records.

    Raises:
        TaggedOutputError: On a continuation line with no field to continue.
    """
    records: list[TaggedRecord] = []
    current: dict[str, str] | None = None
    last_field: str | None = None

    for line_number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            if current:
                records.append(TaggedRecord(current))
            current, last_field = None, None
            continue

        match = _FIELD_RE.match(line)
        if match:
            name, value = match.group(1), match.group(2) or ""
            if current is None:
                current = {}
            elif name in current:
                records.append(TaggedRecord(current))
                current = {}
            current[name] = value
            last_field = name
            continue

        if current is not None and last_field is not None:
            current[last_field] += "\n" + line.lstrip()
            continue

        raise TaggedOutputError(line_number, line)

    if current:
        records.append(TaggedRecord(current))
    return records
