from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping

from usecasegen.registry.formats import get_format
from usecasegen.registry.model import RegistryDocument
from usecasegen.registry.store import parse

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectSnapshot:
    """
    What the filesystem looked like when planning started.

    Paths are project-relative with forward slashes. Only the paths the planner
    asked about are recorded.
    """

    root: Path
    existing_paths: frozenset[str] = frozenset()
    registries: Mapping[str, RegistryDocument] = field(default_factory=dict)


def read_text_exact(path: Path) -> str:
    # newline="" keeps \r\n intact so unchanged files stay byte-identical
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def take_snapshot(
    project_root: Path,
    paths: Iterable[str],
    registry_paths: Mapping[str, str],
) -> ProjectSnapshot:
    """
    Record which of `paths` exist and parse the existing registry files
    (`registry_paths` maps rel path -> format name).

    Unreadable registries are left out; the executor reports the I/O error
    when it tries the patch.
    """
    root = project_root.resolve()
    existing = {p for p in paths if (root / p).exists()}
    existing.update(p for p in registry_paths if (root / p).exists())

    registries: dict[str, RegistryDocument] = {}
    for rel, fmt_name in registry_paths.items():
        if rel not in existing:
            continue
        try:
            text = read_text_exact(root / rel)
        except (OSError, UnicodeDecodeError) as exc:
            log.warning("cannot read registry %s: %s", rel, exc)
            continue
        registries[rel] = parse(text, get_format(fmt_name), path=rel)

    return ProjectSnapshot(root=root, existing_paths=frozenset(existing), registries=registries)
