from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Union

from usecasegen.errors import RecoverableParseError


@dataclass(frozen=True)
class RegistryEntry:
    """A keyed unit inside a group; `lines` keep their line endings."""

    key: str
    lines: tuple[str, ...]

    @property
    def text(self) -> str:
        return "".join(self.lines)


# opaque lines inside a group are kept as plain strings
GroupItem = Union[RegistryEntry, str]


@dataclass
class EntryGroup:
    name: str
    header: list[str] = field(default_factory=list)
    items: list[GroupItem] = field(default_factory=list)
    footer: list[str] = field(default_factory=list)
    # header line holds the whole region (e.g. `export const API = {};`)
    inline: bool = False

    def entries(self) -> list[RegistryEntry]:
        return [i for i in self.items if isinstance(i, RegistryEntry)]

    def keys(self) -> list[str]:
        return [e.key for e in self.entries()]

    def lines(self) -> Iterator[str]:
        yield from self.header
        for item in self.items:
            if isinstance(item, RegistryEntry):
                yield from item.lines
            else:
                yield item
        yield from self.footer


@dataclass
class Fragment:
    """Text outside any recognised region, preserved verbatim."""

    lines: list[str] = field(default_factory=list)


Segment = Union[Fragment, EntryGroup]


@dataclass
class RegistryDocument:
    format_name: str
    segments: list[Segment] = field(default_factory=list)
    newline: str = "\n"
    path: str | None = None

    def groups(self) -> dict[str, EntryGroup]:
        out: dict[str, EntryGroup] = {}
        for s in self.segments:
            if isinstance(s, EntryGroup) and s.name not in out:
                out[s.name] = s
        return out

    def has_group(self, name: str) -> bool:
        return name in self.groups()

    def group(self, name: str) -> EntryGroup:
        g = self.groups().get(name)
        if g is None:
            raise RecoverableParseError(name, self.path)
        return g

    def keys(self, name: str) -> list[str]:
        g = self.groups().get(name)
        return g.keys() if g else []

    def lines(self) -> Iterator[str]:
        for s in self.segments:
            if isinstance(s, Fragment):
                yield from s.lines
            else:
                yield from s.lines()
