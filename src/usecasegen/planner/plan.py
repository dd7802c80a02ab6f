from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

from usecasegen.config import GeneratorConfig
from usecasegen.domain.models import GenerationRequest
from usecasegen.registry.formats import import_key
from usecasegen.registry.model import RegistryDocument, RegistryEntry
from usecasegen.templates.render import (
    TemplateKind,
    TemplateParams,
    named_import,
    registration_entry,
    render,
    symbol_entry,
)


class ActionKind(str, Enum):
    CREATE_FILE = "create"
    PATCH_REGISTRY = "patch"
    SKIP = "skip"


@dataclass(frozen=True)
class Insertion:
    group: str
    entry: RegistryEntry


@dataclass(frozen=True)
class FileAction:
    kind: ActionKind
    path: str                  # project-relative, forward slashes
    role: str                  # usecase | entity | support | registry
    description: str
    content: Optional[str] = None
    registry: Optional[str] = None          # registry format name for patches
    insertions: tuple[Insertion, ...] = ()
    skeleton: Optional[str] = None          # registry text when the file is absent
    note: str = ""


@dataclass(frozen=True)
class ProjectPaths:
    interface: str
    implementation: str
    api_client: str
    action: str
    entity: str
    base_interface: str
    api_client_util: str
    symbols: str
    container: str

    def generated(self) -> list[str]:
        return [
            self.base_interface,
            self.api_client_util,
            self.entity,
            self.interface,
            self.implementation,
            self.api_client,
            self.action,
        ]

    def registries(self) -> dict[str, str]:
        return {
            self.api_client: "api-client",
            self.symbols: "symbols",
            self.container: "container",
        }


def project_paths(request: GenerationRequest, config: GeneratorConfig) -> ProjectPaths:
    ext = config.extension
    p = TemplateParams.from_request(request, api_prefix=config.api_prefix)
    d, u, a = request.domain, request.usecase_name, request.api_name
    return ProjectPaths(
        interface=f"src/domains/{d}/usecases/{u}.usecase.interface.{ext}",
        implementation=f"src/application/use-cases/{u}.usecase.{ext}",
        api_client=f"src/infrastructure/api/{a}/{a}.api.{ext}",
        action=f"src/presenter/actions/{p.usecase_camel}.action.{ext}",
        entity=f"src/domains/{d}/entities/{d}.entity.{ext}",
        base_interface=f"src/domains/_base/base.usecase.{ext}",
        api_client_util=f"src/infrastructure/utils/apiClient.{ext}",
        symbols=config.resolve(config.symbols_path),
        container=config.resolve(config.container_path),
    )


def _entry(key: str, text: str) -> RegistryEntry:
    return RegistryEntry(key=key, lines=tuple(text.splitlines(keepends=True)))


def _file_action(
    path: str,
    role: str,
    description: str,
    kind: TemplateKind,
    params: TemplateParams,
    existing: frozenset[str] | set[str],
) -> FileAction:
    if path in existing:
        return FileAction(
            kind=ActionKind.SKIP,
            path=path,
            role=role,
            description=description,
            note="already exists",
        )
    return FileAction(
        kind=ActionKind.CREATE_FILE,
        path=path,
        role=role,
        description=description,
        content=render(kind, params),
    )


def _api_client_action(
    path: str,
    params: TemplateParams,
    existing: frozenset[str] | set[str],
    registries: Mapping[str, RegistryDocument],
) -> FileAction:
    description = "API client implementation"
    if path not in existing:
        return FileAction(
            kind=ActionKind.CREATE_FILE,
            path=path,
            role="usecase",
            description=description,
            content=render(TemplateKind.API_CLIENT_NEW, params),
        )

    doc = registries.get(path)
    if doc is not None and params.usecase_camel in doc.keys("methods"):
        return FileAction(
            kind=ActionKind.SKIP,
            path=path,
            role="usecase",
            description=description,
            note=f"method {params.usecase_camel} already exists",
        )

    type_import = render(TemplateKind.API_CLIENT_IMPORT, params)
    return FileAction(
        kind=ActionKind.PATCH_REGISTRY,
        path=path,
        role="usecase",
        description=f"{description} (add {params.usecase_camel} method)",
        registry="api-client",
        insertions=(
            Insertion("imports", _entry(import_key(type_import), type_import)),
            Insertion(
                "methods",
                _entry(params.usecase_camel, render(TemplateKind.API_CLIENT_METHOD, params)),
            ),
        ),
    )


def _symbols_action(path: str, params: TemplateParams) -> FileAction:
    return FileAction(
        kind=ActionKind.PATCH_REGISTRY,
        path=path,
        role="registry",
        description="DI symbols",
        registry="symbols",
        skeleton=render(TemplateKind.SYMBOLS_SKELETON, params),
        insertions=(
            Insertion("API", _entry(params.api_symbol, symbol_entry(params.api_symbol))),
            Insertion("USE_CASES", _entry(params.usecase_symbol, symbol_entry(params.usecase_symbol))),
        ),
    )


def _container_action(path: str, params: TemplateParams) -> FileAction:
    api_class = f"{params.api_pascal}Api"
    usecase_class = f"{params.usecase_pascal}Usecase"
    return FileAction(
        kind=ActionKind.PATCH_REGISTRY,
        path=path,
        role="registry",
        description="DI container registrations",
        registry="container",
        skeleton=render(TemplateKind.CONTAINER_SKELETON, params),
        insertions=(
            Insertion("imports", _entry(api_class, named_import(api_class, params.api_module))),
            Insertion("imports", _entry(usecase_class, named_import(usecase_class, params.usecase_module))),
            Insertion(
                "api",
                _entry(f"API.{params.api_symbol}", registration_entry("API", params.api_symbol, api_class)),
            ),
            Insertion(
                "use-cases",
                _entry(
                    f"USE_CASES.{params.usecase_symbol}",
                    registration_entry("USE_CASES", params.usecase_symbol, usecase_class),
                ),
            ),
        ),
    )


def plan(
    request: GenerationRequest,
    existing_paths: frozenset[str] | set[str],
    existing_registries: Mapping[str, RegistryDocument],
    config: Optional[GeneratorConfig] = None,
) -> tuple[FileAction, ...]:
    """
    Desired state vs observed state -> ordered actions. No IO.

    Registry patches are always planned; whether an insertion is a no-op is
    decided when the patch is applied.
    """
    config = config or GeneratorConfig()
    params = TemplateParams.from_request(request, api_prefix=config.api_prefix)
    paths = project_paths(request, config)

    actions: list[FileAction] = []

    if config.support_files:
        actions.append(
            _file_action(paths.base_interface, "support", "Base use case interface",
                         TemplateKind.BASE_INTERFACE, params, existing_paths)
        )
        actions.append(
            _file_action(paths.api_client_util, "support", "ApiClient utility",
                         TemplateKind.API_CLIENT_UTIL, params, existing_paths)
        )

    if request.include_entity:
        actions.append(
            _file_action(paths.entity, "entity", "Domain entity model",
                         TemplateKind.ENTITY, params, existing_paths)
        )

    actions.append(
        _file_action(paths.interface, "usecase", "Interface definition for the use case",
                     TemplateKind.INTERFACE, params, existing_paths)
    )
    actions.append(
        _file_action(paths.implementation, "usecase", "Use case implementation",
                     TemplateKind.IMPLEMENTATION, params, existing_paths)
    )
    actions.append(_api_client_action(paths.api_client, params, existing_paths, existing_registries))
    actions.append(
        _file_action(paths.action, "usecase", "Server action",
                     TemplateKind.ACTION, params, existing_paths)
    )

    actions.append(_symbols_action(paths.symbols, params))
    actions.append(_container_action(paths.container, params))

    return tuple(actions)
