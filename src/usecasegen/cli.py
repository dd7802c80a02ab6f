from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from usecasegen.config import GeneratorConfig, load_config
from usecasegen.domain.models import (
    GenerationRequest,
    build_request,
    identifier_error,
    normalize_http_method,
)
from usecasegen.errors import ConfigError, ValidationError
from usecasegen.naming.casing import is_identifier
from usecasegen.orchestrator.executor import ActionResult, ActionStatus, execute
from usecasegen.orchestrator.pipeline import GenerateResult, plan_generate
from usecasegen.planner.plan import ActionKind, project_paths

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
    help="Generate clean architecture use case boilerplate for TypeScript projects.",
)

console = Console()
err_console = Console(stderr=True)

DOMAIN_ARG = typer.Argument(None, help="Domain name in kebab-case (e.g. products)")
USECASE_ARG = typer.Argument(None, help="Use case name in kebab-case (e.g. get-product)")
API_ARG = typer.Argument(None, help="API name in kebab-case (defaults to the domain)")
METHOD_ARG = typer.Argument(None, help="HTTP method: GET, POST, PUT, PATCH or DELETE [default: GET]")
ROOT_OPT = typer.Option(Path("."), "--project-root", "-C", help="Project root to generate into")
CONFIG_OPT = typer.Option(None, "--config", help="Path to a usecasegen.json config file")
VERBOSE_OPT = typer.Option(False, "--verbose", "-v", help="Debug logging")


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False, show_time=False)],
        force=True,
    )


def _fail(message: str) -> typer.Exit:
    console.print(f"[bold red]Error:[/bold red] {message}")
    return typer.Exit(code=1)


def _ask(question: str, check: Callable[[str], Optional[str]], default: Optional[str] = None) -> str:
    """Prompt until `check` accepts the answer (returns None for valid input)."""
    while True:
        answer = typer.prompt(question, default=default, show_default=default is not None)
        answer = str(answer).strip()
        problem = check(answer)
        if problem is None:
            return answer
        console.print(f"[red]Error:[/red] {problem}")


def _identifier_check(label: str) -> Callable[[str], Optional[str]]:
    def check(value: str) -> Optional[str]:
        if not value:
            return f"{label} cannot be empty"
        return None if is_identifier(value) else identifier_error(label, value)

    return check


def _method_check(value: str) -> Optional[str]:
    try:
        normalize_http_method(value)
    except ValidationError as exc:
        return str(exc)
    return None


def _collect_request(
    domain: Optional[str],
    usecase_name: Optional[str],
    api_name: Optional[str],
    http_method: Optional[str],
) -> GenerationRequest:
    """
    Fill in missing arguments interactively, then validate everything once.

    Arguments given on the command line are not re-prompted. The HTTP method
    is only asked for in interactive mode; otherwise it defaults to GET.
    """
    interactive = not (domain and usecase_name and api_name)
    if interactive:
        console.print("Interactive mode: you will be prompted for any missing parameters.\n")

    if not domain:
        domain = _ask("Enter domain (e.g. users, products)", _identifier_check("Domain"))
    if not usecase_name:
        usecase_name = _ask(
            "Enter use case name in kebab-case (e.g. get-product)",
            _identifier_check("Use case name"),
        )
    if not api_name:
        api_name = _ask(
            "Enter API name in kebab-case (e.g. products)",
            _identifier_check("API name"),
            default=domain,
        )
    if not http_method and interactive:
        http_method = _ask("Enter HTTP method (GET, POST, PUT, PATCH, DELETE)", _method_check, default="GET")

    return build_request(domain, usecase_name, api_name, http_method)


def _resolve_root(project_root: Path) -> Path:
    root = project_root.expanduser().resolve()
    if not root.exists():
        raise _fail(f"Project root does not exist: {root}")
    if not root.is_dir():
        raise _fail(f"Project root is not a directory: {root}")
    return root


def _load(root: Path, config_path: Optional[Path]) -> GeneratorConfig:
    try:
        return load_config(root, config_path)
    except ConfigError as exc:
        raise _fail(str(exc))


def _request_or_exit(
    domain: Optional[str],
    usecase_name: Optional[str],
    api_name: Optional[str],
    http_method: Optional[str],
) -> GenerationRequest:
    try:
        return _collect_request(domain, usecase_name, api_name, http_method)
    except ValidationError as exc:
        raise _fail(str(exc))


def _decide_entity(
    request: GenerationRequest,
    root: Path,
    config: GeneratorConfig,
    entity: Optional[bool],
    assume_yes: bool,
) -> GenerationRequest:
    entity_path = project_paths(request, config).entity
    if (root / entity_path).exists():
        if entity:
            console.print(f"Domain model already exists at: {entity_path}")
        return request.model_copy(update={"include_entity": bool(entity)})
    if entity is None:
        entity = False if assume_yes else typer.confirm(
            f"Would you like to create a domain model for '{request.domain}'?", default=False
        )
    return request.model_copy(update={"include_entity": bool(entity)})


_KIND_LABELS = {
    ActionKind.CREATE_FILE: "[green]create[/green]",
    ActionKind.PATCH_REGISTRY: "[yellow]update[/yellow]",
    ActionKind.SKIP: "[dim]skip[/dim]",
}

_STATUS_LABELS = {
    ActionStatus.CREATED: "[green]created[/green]",
    ActionStatus.PATCHED: "[yellow]updated[/yellow]",
    ActionStatus.UNCHANGED: "[dim]unchanged[/dim]",
    ActionStatus.SKIPPED: "[dim]skipped[/dim]",
    ActionStatus.FAILED: "[bold red]failed[/bold red]",
}


def _print_plan(planned: GenerateResult) -> None:
    r = planned.request
    console.print(f"[bold]Project:[/bold] {planned.project_root}")
    console.print(
        f"[bold]Use case:[/bold] {r.usecase_name}  [bold]domain:[/bold] {r.domain}  "
        f"[bold]api:[/bold] {r.api_name}  [bold]method:[/bold] {r.http_method}"
    )

    table = Table(show_header=True, header_style="bold")
    table.add_column("ACTION", no_wrap=True)
    table.add_column("PATH")
    table.add_column("DESCRIPTION")

    for a in planned.actions:
        desc = a.description if not a.note else f"{a.description} ({a.note})"
        table.add_row(_KIND_LABELS[a.kind], a.path, desc)

    console.print(table)


def _print_results(results: list[ActionResult]) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("STATUS", no_wrap=True)
    table.add_column("PATH")
    table.add_column("DETAIL")

    for res in results:
        if res.status is ActionStatus.FAILED:
            detail = res.error or res.message
        elif res.inserted:
            detail = "added " + ", ".join(res.inserted)
        elif res.present:
            detail = "already present"
        else:
            detail = res.action.note or res.action.description
        table.add_row(_STATUS_LABELS[res.status], res.action.path, detail)

    console.print(table)


def _print_next_steps(request: GenerationRequest, config: GeneratorConfig) -> None:
    paths = project_paths(request, config)
    steps = ["Review and customize the generated files"]
    if request.include_entity:
        steps.append(f"Update the domain model in {paths.entity}")
    steps.append(f"Implement the API request in {paths.api_client}")
    steps.append("Create the components or pages that use the new action")

    console.print("")
    console.print("[bold]Next steps:[/bold]")
    for n, step in enumerate(steps, start=1):
        console.print(f"  {n}. {step}")


@app.command()
def generate(
    domain: Optional[str] = DOMAIN_ARG,
    usecase_name: Optional[str] = USECASE_ARG,
    api_name: Optional[str] = API_ARG,
    http_method: Optional[str] = METHOD_ARG,
    project_root: Path = ROOT_OPT,
    entity: Optional[bool] = typer.Option(
        None, "--entity/--no-entity", help="Also create the domain entity model"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    config_path: Optional[Path] = CONFIG_OPT,
    verbose: bool = VERBOSE_OPT,
) -> None:
    """Generate the files for one use case and register it in the DI files."""
    _setup_logging(verbose)
    root = _resolve_root(project_root)
    config = _load(root, config_path)

    request = _request_or_exit(domain, usecase_name, api_name, http_method)
    request = _decide_entity(request, root, config, entity, yes)

    planned = plan_generate(request, root, config)
    _print_plan(planned)

    if not yes and not typer.confirm("\nDo you want to proceed with creating these files?", default=True):
        console.print("Operation cancelled. No files were created.")
        raise typer.Exit(code=0)

    results = execute(planned.actions, planned.project_root)
    console.print("")
    _print_results(results)

    failed = [r for r in results if r.status is ActionStatus.FAILED]
    if failed:
        console.print(f"[bold red]{len(failed)} action(s) failed.[/bold red]")
        raise typer.Exit(code=1)

    console.print(f"[bold green]usecasegen[/bold green] use case created: {request.usecase_name}")
    _print_next_steps(request, config)


@app.command("plan")
def plan_command(
    domain: str = typer.Argument(..., help="Domain name in kebab-case"),
    usecase_name: str = typer.Argument(..., help="Use case name in kebab-case"),
    api_name: Optional[str] = API_ARG,
    http_method: Optional[str] = METHOD_ARG,
    project_root: Path = ROOT_OPT,
    entity: bool = typer.Option(False, "--entity", help="Include the domain entity model"),
    config_path: Optional[Path] = CONFIG_OPT,
    verbose: bool = VERBOSE_OPT,
) -> None:
    """Show what `generate` would do, without writing anything."""
    _setup_logging(verbose)
    root = _resolve_root(project_root)
    config = _load(root, config_path)

    try:
        request = build_request(domain, usecase_name, api_name or domain, http_method, include_entity=entity)
    except ValidationError as exc:
        raise _fail(str(exc))

    _print_plan(plan_generate(request, root, config))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
