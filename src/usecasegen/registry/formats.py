from __future__ import annotations

import re
from typing import Optional, Sequence

from usecasegen.errors import RegistryLayoutError
from usecasegen.registry.model import EntryGroup, RegistryEntry

_STRING = re.compile(r"'(?:\\.|[^'\\])*'|\"(?:\\.|[^\"\\])*\"|`(?:\\.|[^`\\])*`")
_COMMENT = re.compile(r"^\s*(?://|/\*|\*)")


def _comment_start(line: str) -> int:
    """Index of a trailing // comment outside string literals, else len(line)."""
    pos = 0
    while True:
        cut = line.find("//", pos)
        if cut < 0:
            return len(line)
        inside = next((m for m in _STRING.finditer(line) if m.start() < cut < m.end()), None)
        if inside is None:
            return cut
        pos = inside.end()


def _code_only(line: str) -> str:
    # drop trailing // comments and string literals before counting brackets
    return _STRING.sub("", line[:_comment_start(line)])


def _is_filler(line: str) -> bool:
    return not line.strip() or bool(_COMMENT.match(line))


def _followed_by(lines: Sequence[str], i: int, pattern: re.Pattern, stop: Optional[re.Pattern] = None) -> bool:
    """Whether the first line at or after i that is not blank or a comment matches pattern."""
    k = i
    while k < len(lines) and _is_filler(lines[k]):
        if stop is not None and stop.match(lines[k]):
            return False
        k += 1
    return k < len(lines) and bool(pattern.match(lines[k]))


def balanced_end(lines: Sequence[str], start: int, open_ch: str, close_ch: str) -> int:
    """
    Index one past the line where brackets opened on lines[start] are closed.
    A line that opens nothing is a single-line unit.
    """
    depth = 0
    j = start
    while j < len(lines):
        code = _code_only(lines[j])
        depth += code.count(open_ch) - code.count(close_ch)
        j += 1
        if depth <= 0:
            return j
    return j


class RegistryFormat:
    """
    Textual convention of one kind of registry file.

    The store scans lines and asks the format where regions start and end and
    which lines are entries. Everything the store does not recognise through
    these hooks stays opaque.
    """

    name = "base"
    group_order: tuple[str, ...] = ()
    expected_groups: tuple[str, ...] = ()
    default_indent = ""

    def open_group(self, lines: Sequence[str], i: int, seen: set[str]) -> Optional[tuple[str, int]]:
        """(group name, index of first body line) if a region starts at i."""
        return None

    def inline_group(self, line: str) -> Optional[str]:
        """Name of an empty region written on a single line, if any."""
        return None

    def closes_group(self, name: str, lines: Sequence[str], i: int) -> bool:
        """Whether lines[i] ends the region; gets the whole file for lookahead."""
        return False

    def keeps_terminator(self, name: str) -> bool:
        """Whether the closing line belongs to the group (as its footer)."""
        return False

    def entry_at(self, name: str, lines: Sequence[str], i: int) -> Optional[tuple[str, int]]:
        """(key, end index) if an entry starts at i."""
        return None

    def contains(self, group: EntryGroup, key: str) -> bool:
        return key in group.keys()

    def separate(self, entry: RegistryEntry) -> RegistryEntry:
        """The group's last entry, fixed up so another entry can follow it."""
        return entry

    def new_group(self, name: str) -> tuple[list[str], list[str]]:
        """(header, footer) lines for a region created from scratch."""
        raise RegistryLayoutError(f"{self.name} registry cannot create group {name!r}")

    def is_tail(self, line: str) -> bool:
        """Line before which new groups go when nothing else anchors them."""
        return False


class _ImportsMixin:
    """
    `imports` region: the leading import statements. Blank and comment lines
    between imports stay inside the region as opaque lines.
    """

    _IMPORT = re.compile(r"^import\b")
    _NAMED = re.compile(r"^import\s+(?:type\s+)?\{([^}]*)\}\s*from\b", re.S)
    _DEFAULT = re.compile(r"^import\s+(?:type\s+)?(\*\s+as\s+[\w$]+|[\w$]+)\s+from\b")
    _SIDE_EFFECT = re.compile(r"^import\s+(['\"])([^'\"]+)\1")

    def _open_imports(self, lines: Sequence[str], i: int, seen: set[str]) -> Optional[tuple[str, int]]:
        if "imports" not in seen and self._IMPORT.match(lines[i]):
            return ("imports", i)
        return None

    def _closes_imports(self, lines: Sequence[str], i: int) -> bool:
        if self._IMPORT.match(lines[i]):
            return False
        return not _followed_by(lines, i, self._IMPORT)

    def _import_entry(self, lines: Sequence[str], i: int) -> Optional[tuple[str, int]]:
        if not self._IMPORT.match(lines[i]):
            return None
        end = balanced_end(lines, i, "{", "}")
        text = "".join(lines[i:end])
        return (import_key(text), end)

    def _contains_import(self, group: EntryGroup, key: str) -> bool:
        have: set[str] = set()
        for k in group.keys():
            have.update(_split_names(k))
        return set(_split_names(key)) <= have


def _split_names(key: str) -> list[str]:
    return [n.strip() for n in key.split(",") if n.strip()]


def import_key(text: str) -> str:
    """
    Key of an import statement: the imported names, or the module for a
    side-effect import.
    """
    flat = " ".join(text.split())
    m = _ImportsMixin._NAMED.match(flat)
    if m:
        return ", ".join(_split_names(m.group(1)))
    m = _ImportsMixin._DEFAULT.match(flat)
    if m:
        return " ".join(m.group(1).split())
    m = _ImportsMixin._SIDE_EFFECT.match(flat)
    if m:
        return m.group(2)
    return flat.rstrip(";")


class SymbolsFormat(RegistryFormat):
    """
    src/di/symbols: `export const NAME = {` ... `};` regions holding
    `KEY: Symbol('KEY'),` entries.
    """

    name = "symbols"
    group_order = ("BASE", "API", "USE_CASES", "REPOSITORIES")
    expected_groups = ("BASE", "API", "USE_CASES")
    default_indent = "  "

    _OPEN = re.compile(r"^\s*export\s+const\s+([A-Za-z_$][\w$]*)\s*=\s*\{\s*$")
    _INLINE = re.compile(r"^\s*export\s+const\s+([A-Za-z_$][\w$]*)\s*=\s*\{\s*\}\s*;?\s*$")
    _CLOSE = re.compile(r"^\s*\}\s*(?:as\s+const\s*)?;?\s*$")
    _ENTRY = re.compile(r"^\s*([A-Za-z_$][\w$]*)\s*:")

    def open_group(self, lines, i, seen):
        m = self._OPEN.match(lines[i])
        if m and m.group(1) not in seen:
            return (m.group(1), i + 1)
        return None

    def inline_group(self, line):
        m = self._INLINE.match(line)
        return m.group(1) if m else None

    def closes_group(self, name, lines, i):
        return bool(self._CLOSE.match(lines[i]))

    def keeps_terminator(self, name):
        return True

    def entry_at(self, name, lines, i):
        m = self._ENTRY.match(lines[i])
        if not m:
            return None
        return (m.group(1), balanced_end(lines, i, "{", "}"))

    def separate(self, entry):
        # object members need a comma before the next one
        last = entry.lines[-1]
        code = last[:_comment_start(last)].rstrip()
        if not code.strip() or code.endswith(","):
            return entry
        fixed = code + "," + last[len(code):]
        return RegistryEntry(key=entry.key, lines=entry.lines[:-1] + (fixed,))

    def new_group(self, name):
        return ([f"export const {name} = {{\n"], ["};\n"])


class ContainerFormat(_ImportsMixin, RegistryFormat):
    """
    src/di/container: an imports region, then `// Register <title>` sections
    of `container.registerSingleton(GROUP.KEY, Class);` calls. A section runs
    until the next header, the export statement, or the first code line that
    is not a registration. Blank and comment lines between registrations stay
    in the section.
    """

    name = "container"
    group_order = ("imports", "base", "api", "use-cases", "repositories")
    expected_groups = ("imports", "base", "api", "use-cases")

    TITLES = {
        "base": "base dependencies",
        "api": "API clients",
        "use-cases": "use cases",
        "repositories": "repositories",
    }

    _HEADER = re.compile(r"^\s*//\s*Register\s+(.+?)\s*$")
    _EXPORT = re.compile(r"^\s*export\b")
    _CALL = re.compile(r"^\s*container\.register\w*\(")
    _KEY = re.compile(r"^container\.register\w*\(\s*([A-Za-z_$][\w$]*)\s*\.\s*([A-Za-z_$][\w$]*)")

    def group_for_title(self, title: str) -> str:
        lowered = title.strip().lower()
        for name, t in self.TITLES.items():
            if t.lower() == lowered:
                return name
        return "-".join(lowered.split())

    def open_group(self, lines, i, seen):
        opened = self._open_imports(lines, i, seen)
        if opened:
            return opened
        m = self._HEADER.match(lines[i])
        if m:
            name = self.group_for_title(m.group(1))
            if name not in seen:
                return (name, i + 1)
        return None

    def closes_group(self, name, lines, i):
        if name == "imports":
            return self._closes_imports(lines, i)
        line = lines[i]
        if self._HEADER.match(line) or self._EXPORT.match(line):
            return True
        if self._CALL.match(line) or _COMMENT.match(line):
            return False
        if not line.strip():
            return not _followed_by(lines, i, self._CALL, stop=self._HEADER)
        return True

    def entry_at(self, name, lines, i):
        if name == "imports":
            return self._import_entry(lines, i)
        if not self._CALL.match(lines[i]):
            return None
        end = balanced_end(lines, i, "(", ")")
        flat = " ".join("".join(lines[i:end]).split())
        m = self._KEY.match(flat)
        # calls without a GROUP.KEY token are still one unit
        key = f"{m.group(1)}.{m.group(2)}" if m else flat.rstrip(";")
        return (key, end)

    def contains(self, group, key):
        if group.name == "imports":
            return self._contains_import(group, key)
        return super().contains(group, key)

    def new_group(self, name):
        if name == "imports":
            return ([], [])
        title = self.TITLES.get(name, name.replace("-", " "))
        return ([f"// Register {title}\n"], [])

    def is_tail(self, line):
        return bool(self._EXPORT.match(line))


class ApiClientFormat(_ImportsMixin, RegistryFormat):
    """
    src/infrastructure/api/<api>/<api>.api: an imports region and a `methods`
    region spanning the exported class body; entries are method blocks.
    """

    name = "api-client"
    group_order = ("imports", "methods")
    expected_groups = ("imports", "methods")

    _CLASS = re.compile(r"^\s*export\s+(?:default\s+)?class\s+[\w$]+[^{]*\{\s*$")
    _CLOSE = re.compile(r"^\}\s*;?\s*$")
    _METHOD = re.compile(
        r"^\s+(?:(?:public|private|protected|static|readonly)\s+)*(?:async\s+)?([A-Za-z_$][\w$]*)\s*[<(]"
    )
    _KEYWORDS = {"if", "for", "while", "switch", "return", "catch", "await", "throw"}

    def open_group(self, lines, i, seen):
        opened = self._open_imports(lines, i, seen)
        if opened:
            return opened
        if "methods" not in seen and self._CLASS.match(lines[i]):
            return ("methods", i + 1)
        return None

    def closes_group(self, name, lines, i):
        if name == "imports":
            return self._closes_imports(lines, i)
        return bool(self._CLOSE.match(lines[i]))

    def keeps_terminator(self, name):
        return name == "methods"

    def entry_at(self, name, lines, i):
        if name == "imports":
            return self._import_entry(lines, i)
        m = self._METHOD.match(lines[i])
        if not m or m.group(1) in self._KEYWORDS:
            return None
        return (m.group(1), balanced_end(lines, i, "{", "}"))

    def contains(self, group, key):
        if group.name == "imports":
            return self._contains_import(group, key)
        return super().contains(group, key)

    def new_group(self, name):
        if name == "imports":
            return ([], [])
        return super().new_group(name)


FORMATS: dict[str, RegistryFormat] = {
    f.name: f for f in (SymbolsFormat(), ContainerFormat(), ApiClientFormat())
}


def get_format(name: str) -> RegistryFormat:
    try:
        return FORMATS[name]
    except KeyError:
        raise ValueError(f"unknown registry format: {name!r}") from None
