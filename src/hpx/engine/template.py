"""Placeholder templates — parsed once into nodes, rendered as a pure function.

A template is line oriented. A line is either plain text, a sequence of text
and ``{{slot}}`` parts, or malformed (an open marker with no close marker
after it on the same line). Rendering resolves every slot on a line:

* a string replaces the slot span; multi-line values are indented to the
  slot's leading whitespace,
* ``None`` drops the whole line,
* a slot the resolver does not know is handled by the ``UnknownPlaceholder``
  policy, a malformed line by the ``MalformedLine`` policy.
"""

from __future__ import annotations

import enum
import functools
from collections.abc import Callable, Container
from dataclasses import dataclass

OPEN = "{{"
CLOSE = "}}"


class UnknownPlaceholder(enum.Enum):
    """What to do with a line holding a slot nobody handles."""

    PASS_THROUGH = "pass-through"
    DROP = "drop"
    ERROR = "error"


class MalformedLine(enum.Enum):
    """What to do with a line holding an unterminated open marker."""

    DROP = "drop"
    PASS_THROUGH = "pass-through"


@dataclass(frozen=True)
class Slot:
    name: str


@dataclass(frozen=True)
class Line:
    """A template line; ``parts`` mixes literal strings and slots."""

    text: str
    parts: tuple[str | Slot, ...]

    @property
    def slots(self) -> tuple[Slot, ...]:
        return tuple(p for p in self.parts if isinstance(p, Slot))


@dataclass(frozen=True)
class Malformed:
    text: str


Node = Line | Malformed


@dataclass(frozen=True)
class Template:
    nodes: tuple[Node, ...]

    @property
    def slot_names(self) -> frozenset[str]:
        return frozenset(
            slot.name
            for node in self.nodes
            if isinstance(node, Line)
            for slot in node.slots
        )


class UnknownSlotError(LookupError):
    """Raised by ``render`` under ``UnknownPlaceholder.ERROR``."""

    def __init__(self, name: str, line: str) -> None:
        self.name = name
        self.line = line
        super().__init__(f"No handler for placeholder '{name}' in line: {line.strip()}")


@functools.lru_cache(maxsize=64)
def parse_template(text: str) -> Template:
    """Parse template text into nodes. Cached per template string."""
    return Template(nodes=tuple(_parse_line(line) for line in text.splitlines()))


def _parse_line(line: str) -> Node:
    parts: list[str | Slot] = []
    rest = line
    while True:
        start = rest.find(OPEN)
        if start == -1:
            break
        end = rest.find(CLOSE, start + len(OPEN))
        if end == -1:
            return Malformed(line)
        if start:
            parts.append(rest[:start])
        parts.append(Slot(rest[start + len(OPEN) : end].strip()))
        rest = rest[end + len(CLOSE) :]
    if rest or not parts:
        parts.append(rest)
    return Line(text=line, parts=tuple(parts))


def render(
    template: Template,
    resolve: Callable[[str], str | None],
    known: Container[str],
    *,
    unknown: UnknownPlaceholder = UnknownPlaceholder.PASS_THROUGH,
    malformed: MalformedLine = MalformedLine.DROP,
) -> list[str]:
    """Render ``template`` to output lines.

    ``resolve`` is only called for names in ``known``.
    """
    out: list[str] = []
    for node in template.nodes:
        if isinstance(node, Malformed):
            if malformed is MalformedLine.PASS_THROUGH:
                out.append(node.text)
            continue

        rendered = _render_line(node, resolve, known, unknown)
        if rendered is not None:
            out.extend(rendered.split("\n"))
    return out


def _render_line(
    line: Line,
    resolve: Callable[[str], str | None],
    known: Container[str],
    unknown: UnknownPlaceholder,
) -> str | None:
    unknown_slots = [s.name for s in line.slots if s.name not in known]
    if unknown_slots:
        if unknown is UnknownPlaceholder.ERROR:
            raise UnknownSlotError(unknown_slots[0], line.text)
        if unknown is UnknownPlaceholder.DROP:
            return None
        return line.text

    pieces: list[str] = []
    for part in line.parts:
        if isinstance(part, str):
            pieces.append(part)
            continue
        value = resolve(part.name)
        if value is None:
            return None
        pieces.append(_indent_continuation(value, "".join(pieces)))
    return "".join(pieces)


def _indent_continuation(value: str, prefix: str) -> str:
    """Indent every line after the first to ``prefix``'s leading whitespace."""
    if "\n" not in value:
        return value
    indent = prefix[: len(prefix) - len(prefix.lstrip())]
    first, *rest = value.split("\n")
    return "\n".join([first] + [indent + r if r else r for r in rest])
