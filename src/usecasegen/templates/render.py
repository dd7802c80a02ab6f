from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from usecasegen.domain.models import GenerationRequest
from usecasegen.naming.casing import (
    to_camel_case,
    to_const_case,
    to_pascal_case,
    to_path_segments,
)


class TemplateKind(str, Enum):
    INTERFACE = "interface"
    IMPLEMENTATION = "implementation"
    API_CLIENT_NEW = "api_client_new"
    API_CLIENT_METHOD = "api_client_method"
    API_CLIENT_IMPORT = "api_client_import"
    ACTION = "action"
    ENTITY = "entity"
    BASE_INTERFACE = "base_interface"
    API_CLIENT_UTIL = "api_client_util"
    SYMBOLS_SKELETON = "symbols_skeleton"
    CONTAINER_SKELETON = "container_skeleton"


@dataclass(frozen=True)
class TemplateParams:
    """
    Everything a template needs, already derived. Built from a request so the
    casing forms never drift from the identifiers they come from.
    """

    domain: str
    usecase: str
    api: str
    http_method: str
    api_prefix: str = "/api/v1"

    @classmethod
    def from_request(cls, request: GenerationRequest, api_prefix: str = "/api/v1") -> "TemplateParams":
        return cls(
            domain=request.domain,
            usecase=request.usecase_name,
            api=request.api_name,
            http_method=request.http_method,
            api_prefix=api_prefix,
        )

    @property
    def usecase_camel(self) -> str:
        return to_camel_case(self.usecase)

    @property
    def usecase_pascal(self) -> str:
        return to_pascal_case(self.usecase)

    @property
    def usecase_symbol(self) -> str:
        return f"{to_const_case(self.usecase)}_USE_CASE"

    @property
    def api_camel(self) -> str:
        return to_camel_case(self.api)

    @property
    def api_pascal(self) -> str:
        return to_pascal_case(self.api)

    @property
    def api_symbol(self) -> str:
        return to_const_case(self.api)

    @property
    def domain_pascal(self) -> str:
        return to_pascal_case(self.domain)

    @property
    def endpoint(self) -> str:
        # get-product -> /api/v1/get/product
        prefix = "" if self.api_prefix == "/" else self.api_prefix
        return f"{prefix}/{to_path_segments(self.usecase)}"

    @property
    def interface_module(self) -> str:
        return f"@/domains/{self.domain}/usecases/{self.usecase}.usecase.interface"

    @property
    def usecase_module(self) -> str:
        return f"@/application/use-cases/{self.usecase}.usecase"

    @property
    def api_module(self) -> str:
        return f"@/infrastructure/api/{self.api}/{self.api}.api"


def api_method_body(p: TemplateParams) -> str:
    """
    Body of the generated API client method, one branch per verb.

    Unknown verbs get a stub that throws when called.
    """
    out = f"{p.usecase_pascal}Output"
    method = p.http_method.upper()

    if method == "GET":
        return (
            f"return await this.apiClient.fetch<{out}>(`{p.endpoint}${{request.id ? `/${{request.id}}` : ''}}`, {{\n"
            f"      method: 'GET',\n"
            f"    }});"
        )
    if method == "POST":
        return (
            f"return await this.apiClient.fetch<{out}>('{p.endpoint}', {{\n"
            f"      method: 'POST',\n"
            f"      body: JSON.stringify(request),\n"
            f"    }});"
        )
    if method in ("PUT", "PATCH"):
        return (
            f"return await this.apiClient.fetch<{out}>(`{p.endpoint}/${{request.id}}`, {{\n"
            f"      method: '{method}',\n"
            f"      body: JSON.stringify(request),\n"
            f"    }});"
        )
    if method == "DELETE":
        return (
            f"return await this.apiClient.fetch<{out}>(`{p.endpoint}/${{request.id}}`, {{\n"
            f"      method: 'DELETE',\n"
            f"    }});"
        )
    return (
        f"// Implement the API method for {p.http_method}\n"
        f"    throw new Error('Not implemented');"
    )


def _api_method(p: TemplateParams) -> str:
    return (
        f"  async {p.usecase_camel}(request: {p.usecase_pascal}Input): Promise<{p.usecase_pascal}Output> {{\n"
        f"    {api_method_body(p)}\n"
        f"  }}\n"
    )


def _api_import(p: TemplateParams) -> str:
    return (
        f"import type {{ {p.usecase_pascal}Input, {p.usecase_pascal}Output }} "
        f"from '{p.interface_module}'\n"
    )


def _interface(p: TemplateParams) -> str:
    n = p.usecase_pascal
    return (
        'import type { IBaseUsecase } from "@/domains/_base/base.usecase"\n'
        "\n"
        f"export type {n}Input = {{\n"
        "  // Define input properties for the use case\n"
        "  id?: string;\n"
        "}\n"
        "\n"
        f"export type {n}Output = {{\n"
        "  // Define output properties for the use case\n"
        "  success: boolean;\n"
        "  data?: any;\n"
        "}\n"
        "\n"
        f"export interface I{n}Usecase extends IBaseUsecase<{n}Input, {n}Output> {{}}\n"
    )


def _implementation(p: TemplateParams) -> str:
    n = p.usecase_pascal
    return (
        'import { API } from "@/di/symbols"\n'
        'import { inject, injectable } from "tsyringe"\n'
        f'import {{ {p.api_pascal}Api }} from "{p.api_module}"\n'
        f'import {{ I{n}Usecase, {n}Input, {n}Output }} from "{p.interface_module}"\n'
        "\n"
        "@injectable()\n"
        f"export class {n}Usecase implements I{n}Usecase {{\n"
        f"  constructor(@inject(API.{p.api_symbol}) private readonly {p.api_camel}Api: {p.api_pascal}Api) {{}}\n"
        "\n"
        f"  async execute(request: {n}Input): Promise<{n}Output> {{\n"
        f"    return this.{p.api_camel}Api.{p.usecase_camel}(request)\n"
        "  }\n"
        "}\n"
    )


def _api_client_new(p: TemplateParams) -> str:
    return (
        "import { BASE } from '@/di/symbols'\n"
        "import { inject, injectable } from 'tsyringe'\n"
        "import { ApiClient } from '@/infrastructure/utils/apiClient'\n"
        + _api_import(p)
        + "\n"
        "@injectable()\n"
        f"export class {p.api_pascal}Api {{\n"
        "  constructor(@inject(BASE.API_CLIENT) private readonly apiClient: ApiClient) {}\n"
        "\n"
        + _api_method(p)
        + "}\n"
    )


def _action(p: TemplateParams) -> str:
    n = p.usecase_pascal
    c = p.usecase_camel
    return (
        "'use server'\n"
        "\n"
        'import { USE_CASES } from "@/di/symbols"\n'
        'import { container } from "@/di/container"\n'
        f'import {{ I{n}Usecase, {n}Input }} from "{p.interface_module}"\n'
        "\n"
        f"export async function {c}(\n"
        f"  input: {n}Input\n"
        ") {\n"
        f"  const {c}Usecase = container.resolve<I{n}Usecase>(USE_CASES.{p.usecase_symbol})\n"
        f"  return await {c}Usecase.execute(input)\n"
        "}\n"
    )


def _entity(p: TemplateParams) -> str:
    n = p.domain_pascal
    return (
        "/**\n"
        f" * {n} entity representing the domain model.\n"
        " */\n"
        f"export interface {n} {{\n"
        "  id: string;\n"
        "  // Add more properties that describe this entity\n"
        "  createdAt?: Date;\n"
        "  updatedAt?: Date;\n"
        "}\n"
        "\n"
        "/**\n"
        f" * Factory function to create a new {n} entity.\n"
        " */\n"
        f"export function create{n}(data: Partial<{n}> = {{}}): {n} {{\n"
        "  return {\n"
        "    id: data.id || crypto.randomUUID(),\n"
        "    createdAt: data.createdAt || new Date(),\n"
        "    updatedAt: data.updatedAt || new Date(),\n"
        "    ...data,\n"
        "  };\n"
        "}\n"
        "\n"
        "/**\n"
        f" * Repository interface for {n} entities.\n"
        " */\n"
        f"export interface I{n}Repository {{\n"
        f"  findById(id: string): Promise<{n} | null>;\n"
        f"  findAll(): Promise<{n}[]>;\n"
        f"  create(entity: {n}): Promise<{n}>;\n"
        f"  update(entity: {n}): Promise<{n}>;\n"
        "  delete(id: string): Promise<boolean>;\n"
        "}\n"
    )


_BASE_INTERFACE = """\
/**
 * Base usecase interface that all usecases should implement
 */
export interface IBaseUsecase<TInput, TOutput> {
  execute(request: TInput): Promise<TOutput>;
}
"""

_API_CLIENT_UTIL = """\
/**
 * ApiClient for making HTTP requests
 */
import { injectable } from 'tsyringe';

interface FetchOptions {
  method: string;
  headers?: Record<string, string>;
  body?: string;
}

@injectable()
export class ApiClient {
  private baseUrl: string;

  constructor() {
    this.baseUrl = process.env.API_BASE_URL || '';
  }

  async fetch<T>(url: string, options: FetchOptions): Promise<T> {
    const defaultHeaders = {
      'Content-Type': 'application/json',
    };

    const response = await fetch(`${this.baseUrl}${url}`, {
      ...options,
      headers: {
        ...defaultHeaders,
        ...options.headers,
      },
    });

    if (!response.ok) {
      throw new Error(`API Error: ${response.status} ${response.statusText}`);
    }

    // 204 No Content
    if (response.status === 204) {
      return { success: true } as unknown as T;
    }

    return await response.json();
  }
}
"""

_SYMBOLS_SKELETON = """\
/**
 * Dependency Injection symbols
 */

export const BASE = {
  API_CLIENT: Symbol('API_CLIENT'),
};

export const API = {
};

export const USE_CASES = {
};
"""

_CONTAINER_SKELETON = """\
/**
 * Dependency Injection container
 */
import 'reflect-metadata';
import { container } from 'tsyringe';
import { BASE, API, USE_CASES } from './symbols';
import { ApiClient } from '@/infrastructure/utils/apiClient';

// Register base dependencies
container.registerSingleton(BASE.API_CLIENT, ApiClient);

export { container };
"""


def render(kind: TemplateKind, params: TemplateParams) -> str:
    """Full text for one generated file (or fragment). Pure."""
    if kind is TemplateKind.INTERFACE:
        return _interface(params)
    if kind is TemplateKind.IMPLEMENTATION:
        return _implementation(params)
    if kind is TemplateKind.API_CLIENT_NEW:
        return _api_client_new(params)
    if kind is TemplateKind.API_CLIENT_METHOD:
        return "\n" + _api_method(params)
    if kind is TemplateKind.API_CLIENT_IMPORT:
        return _api_import(params)
    if kind is TemplateKind.ACTION:
        return _action(params)
    if kind is TemplateKind.ENTITY:
        return _entity(params)
    if kind is TemplateKind.BASE_INTERFACE:
        return _BASE_INTERFACE
    if kind is TemplateKind.API_CLIENT_UTIL:
        return _API_CLIENT_UTIL
    if kind is TemplateKind.SYMBOLS_SKELETON:
        return _SYMBOLS_SKELETON
    if kind is TemplateKind.CONTAINER_SKELETON:
        return _CONTAINER_SKELETON
    raise ValueError(f"unknown template kind: {kind!r}")


def symbol_entry(key: str, indent: str = "  ") -> str:
    return f"{indent}{key}: Symbol('{key}'),\n"


def registration_entry(group: str, key: str, class_name: str) -> str:
    return f"container.registerSingleton({group}.{key}, {class_name});\n"


def named_import(name: str, module: str) -> str:
    return f"import {{ {name} }} from '{module}';\n"
