from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional

from usecasegen.errors import ConcurrentModificationError, UsecasegenError
from usecasegen.planner.plan import ActionKind, FileAction
from usecasegen.registry.formats import get_format
from usecasegen.registry.store import InsertOutcome, insert, parse, serialize
from usecasegen.repo.snapshot import read_text_exact

log = logging.getLogger(__name__)


class ActionStatus(str, Enum):
    CREATED = "created"
    PATCHED = "patched"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ActionResult:
    action: FileAction
    status: ActionStatus
    message: str
    inserted: tuple[str, ...] = ()
    present: tuple[str, ...] = ()
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is not ActionStatus.FAILED


def _write_new(target: Path, text: str) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    try:
        # "x" refuses to clobber a file created since the snapshot
        with open(target, "x", encoding="utf-8", newline="") as f:
            f.write(text)
    except FileExistsError:
        raise ConcurrentModificationError(target.as_posix()) from None


def _overwrite(target: Path, text: str) -> None:
    with open(target, "w", encoding="utf-8", newline="") as f:
        f.write(text)


def _create(action: FileAction, root: Path) -> ActionResult:
    _write_new(root / action.path, action.content or "")
    return ActionResult(action=action, status=ActionStatus.CREATED, message=f"Created {action.path}")


def _patch(action: FileAction, root: Path) -> ActionResult:
    target = root / action.path
    fmt = get_format(action.registry or "")

    existed = target.exists()
    original = read_text_exact(target) if existed else ""
    base = original if existed else (action.skeleton or "")

    doc = parse(base, fmt, path=action.path)
    inserted: list[str] = []
    present: list[str] = []
    for ins in action.insertions:
        outcome = insert(doc, fmt, ins.group, ins.entry)
        label = f"{ins.group}:{ins.entry.key}"
        if outcome is InsertOutcome.INSERTED:
            inserted.append(label)
        else:
            present.append(label)

    text = serialize(doc)
    if text == original:
        return ActionResult(
            action=action,
            status=ActionStatus.UNCHANGED,
            message=f"{action.path}: already present",
            present=tuple(present),
        )

    if existed:
        _overwrite(target, text)
        status = ActionStatus.PATCHED
        message = f"Updated {action.path} ({len(inserted)} added)"
    else:
        _write_new(target, text)
        status = ActionStatus.CREATED
        message = f"Created {action.path}"

    return ActionResult(
        action=action,
        status=status,
        message=message,
        inserted=tuple(inserted),
        present=tuple(present),
    )


def execute_action(action: FileAction, project_root: Path) -> ActionResult:
    """Apply one action; errors become a FAILED result instead of raising."""
    try:
        if action.kind is ActionKind.SKIP:
            note = f" ({action.note})" if action.note else ""
            return ActionResult(
                action=action,
                status=ActionStatus.SKIPPED,
                message=f"Skipped {action.path}{note}",
            )
        if action.kind is ActionKind.CREATE_FILE:
            return _create(action, project_root)
        if action.kind is ActionKind.PATCH_REGISTRY:
            return _patch(action, project_root)
        raise ValueError(f"unknown action kind: {action.kind!r}")
    except (OSError, UnicodeDecodeError, UsecasegenError, ValueError) as exc:
        log.warning("%s %s failed: %s", action.kind.value, action.path, exc)
        return ActionResult(
            action=action,
            status=ActionStatus.FAILED,
            message=f"Failed {action.path}: {exc}",
            error=str(exc),
        )


def execute(actions: Iterable[FileAction], project_root: Path) -> list[ActionResult]:
    """
    Apply actions in order. Each action is independent: a failure is recorded
    in its result and the remaining actions still run.
    """
    root = project_root.resolve()
    results = []
    for action in actions:
        result = execute_action(action, root)
        log.debug("%s -> %s", action.path, result.status.value)
        results.append(result)
    return results
