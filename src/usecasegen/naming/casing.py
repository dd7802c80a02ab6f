from __future__ import annotations

import re

IDENTIFIER_PATTERN = re.compile(r"^[a-z][a-z0-9]*(-[a-z0-9]+)*$")


def is_identifier(value: str) -> bool:
    return bool(IDENTIFIER_PATTERN.fullmatch(value or ""))


def _segments(identifier: str) -> list[str]:
    return identifier.split("-")


def to_camel_case(identifier: str) -> str:
    # get-product -> getProduct
    parts = _segments(identifier)
    return parts[0].lower() + "".join(p[:1].upper() + p[1:].lower() for p in parts[1:])


def to_pascal_case(identifier: str) -> str:
    # get-product -> GetProduct
    return "".join(p[:1].upper() + p[1:].lower() for p in _segments(identifier))


def to_const_case(identifier: str) -> str:
    # get-product -> GET_PRODUCT
    return identifier.upper().replace("-", "_")


def to_path_segments(identifier: str) -> str:
    # get-product -> get/product (endpoint path fragment)
    return "/".join(_segments(identifier))
