from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Optional

from usecasegen.errors import RecoverableParseError
from usecasegen.registry.formats import RegistryFormat
from usecasegen.registry.model import (
    EntryGroup,
    Fragment,
    RegistryDocument,
    RegistryEntry,
)

log = logging.getLogger(__name__)

_LEADING_WS = re.compile(r"^[ \t]*")


class InsertOutcome(str, Enum):
    INSERTED = "inserted"
    ALREADY_PRESENT = "already_present"


def _detect_newline(lines: list[str]) -> str:
    for line in lines:
        if line.endswith("\r\n"):
            return "\r\n"
        if line.endswith("\n"):
            return "\n"
    return "\n"


def parse(
    text: str,
    fmt: RegistryFormat,
    strict: bool = False,
    path: Optional[str] = None,
) -> RegistryDocument:
    """
    Split registry text into opaque fragments and named entry groups.

    Never fails on unfamiliar content: anything the format does not recognise
    is kept verbatim. With strict=True a missing expected group raises
    RecoverableParseError.
    """
    lines = text.splitlines(keepends=True)
    doc = RegistryDocument(format_name=fmt.name, newline=_detect_newline(lines), path=path)

    pending: list[str] = []
    seen: set[str] = set()
    i = 0

    def flush() -> None:
        if pending:
            doc.segments.append(Fragment(lines=list(pending)))
            pending.clear()

    while i < len(lines):
        inline = fmt.inline_group(lines[i])
        if inline is not None and inline not in seen:
            flush()
            doc.segments.append(EntryGroup(name=inline, header=[lines[i]], inline=True))
            seen.add(inline)
            i += 1
            continue

        opened = fmt.open_group(lines, i, seen)
        if opened is None:
            pending.append(lines[i])
            i += 1
            continue

        name, body_start = opened
        flush()
        group = EntryGroup(name=name, header=list(lines[i:body_start]))

        j = body_start
        while j < len(lines) and not fmt.closes_group(name, lines, j):
            span = fmt.entry_at(name, lines, j)
            if span is None:
                group.items.append(lines[j])
                j += 1
                continue
            key, end = span
            end = max(end, j + 1)
            group.items.append(RegistryEntry(key=key, lines=tuple(lines[j:end])))
            j = end

        if j < len(lines) and fmt.keeps_terminator(name):
            group.footer.append(lines[j])
            j += 1

        doc.segments.append(group)
        seen.add(name)
        i = j

    flush()

    if strict:
        for name in fmt.expected_groups:
            if name not in seen:
                raise RecoverableParseError(name, path)

    return doc


def serialize(doc: RegistryDocument) -> str:
    return "".join(doc.lines())


def _with_newline(line: str, newline: str) -> str:
    if line.endswith("\n"):
        return line
    return line + newline


def _convert_newlines(lines: tuple[str, ...], newline: str) -> list[str]:
    out = []
    for line in lines:
        body = line.rstrip("\r\n")
        out.append(body + newline if line.endswith("\n") else body)
    return out


def _terminate_previous(doc: RegistryDocument, seg_index: int) -> None:
    """Make sure the text right before segment `seg_index` ends a line."""
    for k in range(seg_index - 1, -1, -1):
        seg = doc.segments[k]
        if isinstance(seg, Fragment):
            if seg.lines:
                seg.lines[-1] = _with_newline(seg.lines[-1], doc.newline)
                return
        elif _terminate_group(seg, doc.newline):
            return


def _terminate_items(group: EntryGroup, newline: str) -> bool:
    if not group.items:
        return False
    last = group.items[-1]
    if isinstance(last, RegistryEntry):
        fixed = list(last.lines)
        fixed[-1] = _with_newline(fixed[-1], newline)
        group.items[-1] = RegistryEntry(key=last.key, lines=tuple(fixed))
    else:
        group.items[-1] = _with_newline(last, newline)
    return True


def _separate_last(group: EntryGroup, fmt: RegistryFormat) -> None:
    for k in range(len(group.items) - 1, -1, -1):
        item = group.items[k]
        if isinstance(item, RegistryEntry):
            group.items[k] = fmt.separate(item)
            return


def _terminate_group(group: EntryGroup, newline: str) -> bool:
    """Terminate the group's last line; False if the group has no lines."""
    if group.footer:
        group.footer[-1] = _with_newline(group.footer[-1], newline)
        return True
    if _terminate_items(group, newline):
        return True
    if group.header:
        group.header[-1] = _with_newline(group.header[-1], newline)
        return True
    return False


def _doc_is_empty(doc: RegistryDocument) -> bool:
    return not any(True for _ in doc.lines())


def _ends_with_blank(doc: RegistryDocument) -> bool:
    last = None
    for line in doc.lines():
        last = line
    return last is not None and not last.strip()


def _create_group(doc: RegistryDocument, fmt: RegistryFormat, name: str) -> EntryGroup:
    """
    Add an empty group at the position the format's canonical order implies:
    after the closest preceding group, else before the closest following one,
    else before the format's tail line, else at the end.
    """
    header, footer = fmt.new_group(name)
    nl = doc.newline
    header = [h.replace("\n", nl) if nl != "\n" else h for h in header]
    footer = [f.replace("\n", nl) if nl != "\n" else f for f in footer]
    group = EntryGroup(name=name, header=header, footer=footer)

    order = list(fmt.group_order)
    rank = order.index(name) if name in order else len(order)
    present = {
        s.name: idx for idx, s in enumerate(doc.segments) if isinstance(s, EntryGroup)
    }

    before = [g for g in present if g in order and order.index(g) < rank]
    after = [g for g in present if g not in order or order.index(g) > rank]

    if before:
        anchor = max(before, key=order.index)
        pos = present[anchor] + 1
        doc.segments.insert(pos, Fragment(lines=[nl]))
        doc.segments.insert(pos + 1, group)
        _terminate_previous(doc, pos)
        return group

    if after:
        anchor = min(after, key=lambda g: order.index(g) if g in order else len(order))
        pos = present[anchor]
        doc.segments.insert(pos, group)
        doc.segments.insert(pos + 1, Fragment(lines=[nl]))
        _terminate_previous(doc, pos)
        return group

    for idx, seg in enumerate(doc.segments):
        if not isinstance(seg, Fragment):
            continue
        for li, line in enumerate(seg.lines):
            if fmt.is_tail(line):
                head, tail = seg.lines[:li], seg.lines[li:]
                doc.segments[idx:idx + 1] = [
                    Fragment(lines=head),
                    group,
                    Fragment(lines=[nl]),
                    Fragment(lines=tail),
                ]
                _terminate_previous(doc, idx + 1)
                return group

    if not _doc_is_empty(doc):
        _terminate_previous(doc, len(doc.segments))
        if not _ends_with_blank(doc):
            doc.segments.append(Fragment(lines=[nl]))
    doc.segments.append(group)
    return group


def _expand_inline(group: EntryGroup, fmt: RegistryFormat, newline: str) -> None:
    line = group.header[0]
    indent = _LEADING_WS.match(line).group(0)
    header, footer = fmt.new_group(group.name)
    group.header = [indent + h.replace("\n", newline) for h in header]
    group.footer = [indent + f.replace("\n", newline) for f in footer]
    if not line.endswith("\n") and group.footer:
        # keep "no newline at end of file" as it was
        group.footer[-1] = group.footer[-1].rstrip("\r\n")
    group.inline = False


def _reindent(entry: RegistryEntry, group: EntryGroup, fmt: RegistryFormat) -> RegistryEntry:
    existing = group.entries()
    if existing:
        indent = _LEADING_WS.match(existing[-1].lines[0]).group(0)
    else:
        indent = fmt.default_indent
    if len(entry.lines) != 1:
        return entry
    return RegistryEntry(key=entry.key, lines=(indent + entry.lines[0].lstrip(" \t"),))


def insert(
    doc: RegistryDocument,
    fmt: RegistryFormat,
    group_name: str,
    entry: RegistryEntry,
) -> InsertOutcome:
    """
    Append `entry` to `group_name`, creating the group if the file lacks it.

    Uniqueness is scoped to the group: a key present elsewhere in the file
    does not count. A duplicate key is a no-op.
    """
    try:
        group = doc.group(group_name)
    except RecoverableParseError:
        log.debug("%s: creating missing group %s", doc.path or fmt.name, group_name)
        group = _create_group(doc, fmt, group_name)

    if fmt.contains(group, entry.key):
        return InsertOutcome.ALREADY_PRESENT

    if group.inline:
        _expand_inline(group, fmt, doc.newline)

    new_entry = _reindent(entry, group, fmt)
    new_entry = RegistryEntry(
        key=new_entry.key,
        lines=tuple(_convert_newlines(new_entry.lines, doc.newline)),
    )
    if new_entry.lines and not new_entry.lines[-1].endswith("\n"):
        last = list(new_entry.lines)
        last[-1] = last[-1] + doc.newline
        new_entry = RegistryEntry(key=new_entry.key, lines=tuple(last))

    _separate_last(group, fmt)
    if not _terminate_items(group, doc.newline):
        if group.header:
            group.header[-1] = _with_newline(group.header[-1], doc.newline)
        else:
            pos = next(k for k, s in enumerate(doc.segments) if s is group)
            _terminate_previous(doc, pos)

    group.items.append(new_entry)
    log.debug("%s: inserted %s into %s", doc.path or fmt.name, entry.key, group_name)
    return InsertOutcome.INSERTED
