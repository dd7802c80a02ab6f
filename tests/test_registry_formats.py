from usecasegen.registry.formats import balanced_end, get_format, import_key
from usecasegen.registry.model import RegistryEntry
from usecasegen.registry.store import InsertOutcome, insert, parse, serialize
from usecasegen.templates.render import (
    TemplateKind,
    TemplateParams,
    named_import,
    registration_entry,
    render,
)

CONTAINER = get_format("container")
API_CLIENT = get_format("api-client")

HAND_WRITTEN_CONTAINER = """\
import 'reflect-metadata';
import { container } from 'tsyringe';
import { API, USE_CASES } from './symbols';
import { ListOrdersUsecase } from '@/application/use-cases/list-orders.usecase';

// Register API clients
// API clients are registered here

// Register use cases
container.registerSingleton(USE_CASES.LIST_ORDERS_USE_CASE, ListOrdersUsecase);

export { container };
"""


def entry(key, text):
    return RegistryEntry(key=key, lines=tuple(text.splitlines(keepends=True)))


def params(usecase="get-product"):
    return TemplateParams(domain="products", usecase=usecase, api="products", http_method="GET")


def test_import_key():
    assert import_key("import { A, B } from 'x';") == "A, B"
    assert import_key("import type {\n  A,\n  B,\n} from 'x'") == "A, B"
    assert import_key("import Foo from 'foo'") == "Foo"
    assert import_key("import * as path from 'path'") == "* as path"
    assert import_key("import 'reflect-metadata';") == "reflect-metadata"


def test_balanced_end_ignores_brackets_in_strings():
    lines = ["a('{', {\n", "  b: '}',\n", "})\n", "next\n"]
    assert balanced_end(lines, 0, "{", "}") == 3
    assert balanced_end(["single\n", "x\n"], 0, "{", "}") == 1


def test_container_groups_by_section_title():
    doc = parse(HAND_WRITTEN_CONTAINER, CONTAINER)
    assert list(doc.groups()) == ["imports", "api", "use-cases"]
    assert doc.keys("use-cases") == ["USE_CASES.LIST_ORDERS_USE_CASE"]
    assert doc.keys("api") == []
    assert serialize(doc) == HAND_WRITTEN_CONTAINER


def test_container_insert_keeps_comment_and_layout():
    doc = parse(HAND_WRITTEN_CONTAINER, CONTAINER)
    insert(doc, CONTAINER, "imports", entry("ProductsApi", named_import("ProductsApi", "@/infrastructure/api/products/products.api")))
    insert(doc, CONTAINER, "api", entry("API.PRODUCTS", registration_entry("API", "PRODUCTS", "ProductsApi")))

    assert serialize(doc) == HAND_WRITTEN_CONTAINER.replace(
        "import { ListOrdersUsecase } from '@/application/use-cases/list-orders.usecase';\n",
        "import { ListOrdersUsecase } from '@/application/use-cases/list-orders.usecase';\n"
        "import { ProductsApi } from '@/infrastructure/api/products/products.api';\n",
    ).replace(
        "// API clients are registered here\n",
        "// API clients are registered here\n"
        "container.registerSingleton(API.PRODUCTS, ProductsApi);\n",
    )


def test_container_creates_missing_base_section_before_api():
    doc = parse(HAND_WRITTEN_CONTAINER, CONTAINER)
    insert(doc, CONTAINER, "base", entry("BASE.API_CLIENT", registration_entry("BASE", "API_CLIENT", "ApiClient")))
    out = serialize(doc)
    assert (
        "import { ListOrdersUsecase } from '@/application/use-cases/list-orders.usecase';\n"
        "\n"
        "// Register base dependencies\n"
        "container.registerSingleton(BASE.API_CLIENT, ApiClient);\n"
        "\n"
        "// Register API clients\n"
    ) in out


def test_container_creates_section_before_export_when_nothing_anchors_it():
    text = "// wiring\n\nexport { container };\n"
    doc = parse(text, CONTAINER)
    insert(doc, CONTAINER, "use-cases", entry("USE_CASES.X", registration_entry("USE_CASES", "X", "X")))
    assert serialize(doc) == (
        "// wiring\n"
        "\n"
        "// Register use cases\n"
        "container.registerSingleton(USE_CASES.X, X);\n"
        "\n"
        "export { container };\n"
    )


def test_import_already_present_in_a_combined_statement():
    doc = parse("import { BASE, ApiClient } from './x';\n", CONTAINER)
    outcome = insert(doc, CONTAINER, "imports", entry("ApiClient", named_import("ApiClient", "./y")))
    assert outcome is InsertOutcome.ALREADY_PRESENT


def test_container_without_trailing_newline():
    text = "import { A } from './a';\n\n// Register API clients\ncontainer.registerSingleton(API.A, A);"
    doc = parse(text, CONTAINER)
    insert(doc, CONTAINER, "api", entry("API.B", registration_entry("API", "B", "B")))
    assert serialize(doc) == (
        "import { A } from './a';\n"
        "\n"
        "// Register API clients\n"
        "container.registerSingleton(API.A, A);\n"
        "container.registerSingleton(API.B, B);\n"
    )


def test_api_client_methods_are_entries():
    doc = parse(render(TemplateKind.API_CLIENT_NEW, params()), API_CLIENT)
    assert doc.keys("methods") == ["constructor", "getProduct"]
    assert doc.keys("imports")[-1] == "GetProductInput, GetProductOutput"


def test_api_client_gets_second_method():
    original = render(TemplateKind.API_CLIENT_NEW, params())
    second = params("create-product")
    doc = parse(original, API_CLIENT)

    imp = render(TemplateKind.API_CLIENT_IMPORT, second)
    insert(doc, API_CLIENT, "imports", entry(import_key(imp), imp))
    insert(doc, API_CLIENT, "methods", entry("createProduct", render(TemplateKind.API_CLIENT_METHOD, second)))

    out = serialize(doc)
    assert out.endswith("  }\n\n  async createProduct(request: CreateProductInput): Promise<CreateProductOutput> {\n"
                        "    return await this.apiClient.fetch<CreateProductOutput>(`/api/v1/create/product${request.id ? `/${request.id}` : ''}`, {\n"
                        "      method: 'GET',\n"
                        "    });\n"
                        "  }\n"
                        "}\n")
    assert "import type { CreateProductInput, CreateProductOutput }" in out
    assert parse(out, API_CLIENT).keys("methods") == ["constructor", "getProduct", "createProduct"]


def test_api_client_ignores_control_flow_lines():
    text = (
        "export class A {\n"
        "  run() {\n"
        "    if (x) {\n"
        "    }\n"
        "  }\n"
        "  if (y) {}\n"
        "}\n"
    )
    assert parse(text, API_CLIENT).keys("methods") == ["run"]


SPLIT_IMPORTS_CONTAINER = """\
import 'reflect-metadata';
import { container } from 'tsyringe';

// API clients
import { ProductsApi } from '@/infrastructure/api/products/products.api';

// Register API clients
container.registerSingleton(API.PRODUCTS, ProductsApi);

export { container };
"""


def test_imports_separated_by_blank_and_comment_lines():
    doc = parse(SPLIT_IMPORTS_CONTAINER, CONTAINER)
    assert doc.keys("imports") == ["reflect-metadata", "container", "ProductsApi"]
    assert serialize(doc) == SPLIT_IMPORTS_CONTAINER

    outcome = insert(doc, CONTAINER, "imports", entry("ProductsApi", named_import("ProductsApi", "@/infrastructure/api/products/products.api")))
    assert outcome is InsertOutcome.ALREADY_PRESENT
    assert serialize(doc).count("import { ProductsApi }") == 1

    insert(doc, CONTAINER, "imports", entry("GetProductUsecase", named_import("GetProductUsecase", "@/application/use-cases/get-product.usecase")))
    assert (
        "import { ProductsApi } from '@/infrastructure/api/products/products.api';\n"
        "import { GetProductUsecase } from '@/application/use-cases/get-product.usecase';\n"
        "\n"
        "// Register API clients\n"
    ) in serialize(doc)


def test_registrations_separated_by_blank_line_stay_in_section():
    text = (
        "// Register API clients\n"
        "container.registerSingleton(API.USERS, UsersApi);\n"
        "\n"
        "container.registerSingleton(API.PRODUCTS, ProductsApi);\n"
        "\n"
        "// Register use cases\n"
        "\n"
        "export { container };\n"
    )
    doc = parse(text, CONTAINER)
    assert doc.keys("api") == ["API.USERS", "API.PRODUCTS"]

    dup = entry("API.PRODUCTS", registration_entry("API", "PRODUCTS", "ProductsApi"))
    assert insert(doc, CONTAINER, "api", dup) is InsertOutcome.ALREADY_PRESENT
    assert serialize(doc) == text

    insert(doc, CONTAINER, "api", entry("API.ORDERS", registration_entry("API", "ORDERS", "OrdersApi")))
    assert (
        "container.registerSingleton(API.PRODUCTS, ProductsApi);\n"
        "container.registerSingleton(API.ORDERS, OrdersApi);\n"
        "\n"
        "// Register use cases\n"
    ) in serialize(doc)


def test_multiline_registration_is_one_entry():
    text = (
        "// Register API clients\n"
        "container.registerSingleton(\n"
        "  API.PRODUCTS,\n"
        "  ProductsApi\n"
        ");\n"
        "\n"
        "export { container };\n"
    )
    doc = parse(text, CONTAINER)
    assert doc.keys("api") == ["API.PRODUCTS"]

    dup = entry("API.PRODUCTS", registration_entry("API", "PRODUCTS", "ProductsApi"))
    assert insert(doc, CONTAINER, "api", dup) is InsertOutcome.ALREADY_PRESENT
    assert serialize(doc) == text


def test_plain_code_ends_a_registration_section():
    text = (
        "// Register API clients\n"
        "container.registerSingleton(API.A, A);\n"
        "const ready = true;\n"
    )
    doc = parse(text, CONTAINER)
    insert(doc, CONTAINER, "api", entry("API.B", registration_entry("API", "B", "B")))
    assert serialize(doc) == (
        "// Register API clients\n"
        "container.registerSingleton(API.A, A);\n"
        "container.registerSingleton(API.B, B);\n"
        "const ready = true;\n"
    )
