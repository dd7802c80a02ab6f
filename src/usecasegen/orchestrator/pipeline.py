from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from usecasegen.config import GeneratorConfig
from usecasegen.domain.models import GenerationRequest
from usecasegen.orchestrator.executor import ActionResult, ActionStatus, execute
from usecasegen.planner.plan import FileAction, plan, project_paths
from usecasegen.repo.snapshot import ProjectSnapshot, take_snapshot

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerateResult:
    request: GenerationRequest
    project_root: Path
    actions: tuple[FileAction, ...]
    results: list[ActionResult] = field(default_factory=list)
    executed: bool = False

    @property
    def failed(self) -> list[ActionResult]:
        return [r for r in self.results if r.status is ActionStatus.FAILED]

    @property
    def ok(self) -> bool:
        return not self.failed


def snapshot_for(request: GenerationRequest, project_root: Path, config: GeneratorConfig) -> ProjectSnapshot:
    paths = project_paths(request, config)
    return take_snapshot(project_root, paths.generated(), paths.registries())


def plan_generate(
    request: GenerationRequest,
    project_root: Path,
    config: Optional[GeneratorConfig] = None,
) -> GenerateResult:
    """Read the project once and compute the plan without touching disk."""
    config = config or GeneratorConfig()
    snap = snapshot_for(request, project_root, config)
    actions = plan(request, snap.existing_paths, snap.registries, config)
    return GenerateResult(request=request, project_root=snap.root, actions=actions)


def run_generate(
    request: GenerationRequest,
    project_root: Path,
    config: Optional[GeneratorConfig] = None,
) -> GenerateResult:
    """
    Snapshot, plan, execute.

    Between snapshot and execution another process may change the tree; the
    executor's refusal to overwrite newly appeared files is the only guard.
    """
    planned = plan_generate(request, project_root, config)
    log.debug("planned %d actions for %s", len(planned.actions), request.usecase_name)
    results = execute(planned.actions, planned.project_root)
    return GenerateResult(
        request=request,
        project_root=planned.project_root,
        actions=planned.actions,
        results=results,
        executed=True,
    )
