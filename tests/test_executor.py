from pathlib import Path

import pytest

from usecasegen.config import GeneratorConfig
from usecasegen.domain.models import build_request
from usecasegen.errors import ValidationError
from usecasegen.orchestrator.executor import ActionStatus, execute
from usecasegen.orchestrator.pipeline import plan_generate, run_generate

SYMBOLS_AFTER_FIRST = """\
/**
 * Dependency Injection symbols
 */

export const BASE = {
  API_CLIENT: Symbol('API_CLIENT'),
};

export const API = {
  PRODUCTS: Symbol('PRODUCTS'),
};

export const USE_CASES = {
  GET_PRODUCT_USE_CASE: Symbol('GET_PRODUCT_USE_CASE'),
};
"""

CONTAINER_AFTER_FIRST = """\
/**
 * Dependency Injection container
 */
import 'reflect-metadata';
import { container } from 'tsyringe';
import { BASE, API, USE_CASES } from './symbols';
import { ApiClient } from '@/infrastructure/utils/apiClient';
import { ProductsApi } from '@/infrastructure/api/products/products.api';
import { GetProductUsecase } from '@/application/use-cases/get-product.usecase';

// Register base dependencies
container.registerSingleton(BASE.API_CLIENT, ApiClient);

// Register API clients
container.registerSingleton(API.PRODUCTS, ProductsApi);

// Register use cases
container.registerSingleton(USE_CASES.GET_PRODUCT_USE_CASE, GetProductUsecase);

export { container };
"""

USECASE_FILES = [
    "src/domains/products/usecases/get-product.usecase.interface.ts",
    "src/application/use-cases/get-product.usecase.ts",
    "src/infrastructure/api/products/products.api.ts",
    "src/presenter/actions/getProduct.action.ts",
]


def get_product(method="GET"):
    return build_request("products", "get-product", "products", method)


def snapshot_files(root: Path) -> dict[str, bytes]:
    return {p.relative_to(root).as_posix(): p.read_bytes() for p in root.rglob("*") if p.is_file()}


def test_scenario_a_empty_project(tmp_path: Path):
    result = run_generate(get_product(), tmp_path)
    assert result.ok
    assert all(r.status is ActionStatus.CREATED for r in result.results)

    for rel in USECASE_FILES:
        assert (tmp_path / rel).is_file()
    assert not (tmp_path / "src/domains/products/entities").exists()

    assert (tmp_path / "src/di/symbols.ts").read_text() == SYMBOLS_AFTER_FIRST
    assert (tmp_path / "src/di/container.ts").read_text() == CONTAINER_AFTER_FIRST


def test_scenario_b_repeat_changes_nothing(tmp_path: Path):
    run_generate(get_product(), tmp_path)
    before = snapshot_files(tmp_path)

    result = run_generate(get_product(), tmp_path)
    assert result.ok
    by_path = {r.action.path: r for r in result.results}

    for rel in USECASE_FILES:
        assert by_path[rel].status is ActionStatus.SKIPPED
    for rel in ("src/di/symbols.ts", "src/di/container.ts"):
        assert by_path[rel].status is ActionStatus.UNCHANGED
        assert by_path[rel].inserted == ()
    assert by_path["src/di/symbols.ts"].present == ("API:PRODUCTS", "USE_CASES:GET_PRODUCT_USE_CASE")

    assert snapshot_files(tmp_path) == before


def test_scenario_c_delete_method(tmp_path: Path):
    run_generate(get_product("DELETE"), tmp_path)
    client = (tmp_path / "src/infrastructure/api/products/products.api.ts").read_text()
    assert "fetch<GetProductOutput>(`/api/v1/get/product/${request.id}`, {" in client
    assert "method: 'DELETE'" in client
    assert "body:" not in client


def test_scenario_d_invalid_method_never_reaches_disk(tmp_path: Path):
    with pytest.raises(ValidationError):
        run_generate(build_request("products", "get-product", "products", "PURGE"), tmp_path)
    assert list(tmp_path.iterdir()) == []


def test_second_use_case_on_same_api(tmp_path: Path):
    run_generate(get_product(), tmp_path)
    second = build_request("products", "create-product", "products", "POST")
    result = run_generate(second, tmp_path)
    assert result.ok

    by_path = {r.action.path: r for r in result.results}
    api_path = "src/infrastructure/api/products/products.api.ts"
    assert by_path[api_path].status is ActionStatus.PATCHED
    assert by_path["src/di/symbols.ts"].inserted == ("USE_CASES:CREATE_PRODUCT_USE_CASE",)
    assert by_path["src/di/symbols.ts"].present == ("API:PRODUCTS",)

    client = (tmp_path / api_path).read_text()
    assert client.count("export class ProductsApi") == 1
    assert "async getProduct(" in client
    assert "async createProduct(" in client
    assert "'/api/v1/create/product'" in client

    container = (tmp_path / "src/di/container.ts").read_text()
    assert container.count("import { ProductsApi }") == 1
    assert container.count("container.registerSingleton(API.PRODUCTS, ProductsApi);") == 1
    assert (
        "container.registerSingleton(USE_CASES.GET_PRODUCT_USE_CASE, GetProductUsecase);\n"
        "container.registerSingleton(USE_CASES.CREATE_PRODUCT_USE_CASE, CreateProductUsecase);\n"
    ) in container


def test_entity_created_when_requested(tmp_path: Path):
    req = build_request("products", "get-product", "products", include_entity=True)
    result = run_generate(req, tmp_path)
    assert result.ok
    assert (tmp_path / "src/domains/products/entities/products.entity.ts").is_file()


def test_existing_crlf_registry_stays_crlf(tmp_path: Path):
    symbols = tmp_path / "src/di/symbols.ts"
    symbols.parent.mkdir(parents=True)
    symbols.write_bytes(b"export const API = {\r\n};\r\n\r\nexport const USE_CASES = {\r\n};\r\n")

    run_generate(get_product(), tmp_path)
    data = symbols.read_bytes()
    assert b"  PRODUCTS: Symbol('PRODUCTS'),\r\n" in data
    assert b"\n" not in data.replace(b"\r\n", b"")


def test_file_appearing_after_planning_is_not_overwritten(tmp_path: Path):
    planned = plan_generate(get_product(), tmp_path)

    intruder = tmp_path / USECASE_FILES[0]
    intruder.parent.mkdir(parents=True)
    intruder.write_text("// written by someone else\n")

    results = execute(planned.actions, tmp_path)
    failed = [r for r in results if r.status is ActionStatus.FAILED]
    assert [r.action.path for r in failed] == [USECASE_FILES[0]]
    assert "refusing to overwrite" in failed[0].error
    assert intruder.read_text() == "// written by someone else\n"

    # the rest of the plan still ran
    assert (tmp_path / USECASE_FILES[1]).is_file()
    assert (tmp_path / "src/di/container.ts").is_file()


def test_unreadable_registry_fails_only_its_action(tmp_path: Path):
    (tmp_path / "src/di/symbols.ts").mkdir(parents=True)

    result = run_generate(get_product(), tmp_path)
    assert not result.ok
    assert [r.action.path for r in result.failed] == ["src/di/symbols.ts"]
    assert (tmp_path / "src/di/container.ts").is_file()
    for rel in USECASE_FILES:
        assert (tmp_path / rel).is_file()


def test_custom_registry_paths(tmp_path: Path):
    cfg = GeneratorConfig(symbols_path="lib/ioc/tokens.{ext}", container_path="lib/ioc/container.{ext}")
    result = run_generate(get_product(), tmp_path, cfg)
    assert result.ok
    assert (tmp_path / "lib/ioc/tokens.ts").read_text() == SYMBOLS_AFTER_FIRST
    assert not (tmp_path / "src/di").exists()
