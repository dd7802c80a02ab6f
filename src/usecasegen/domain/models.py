from __future__ import annotations

from typing import Any, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic import ValidationError as PydanticValidationError

from usecasegen.errors import ValidationError
from usecasegen.naming.casing import is_identifier

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]

HTTP_METHODS: tuple[str, ...] = get_args(HttpMethod)

_LABELS = {
    "domain": "Domain",
    "usecase_name": "Use case name",
    "api_name": "API name",
    "http_method": "HTTP method",
}


def identifier_error(label: str, value: str) -> str:
    return (
        f"{label} must be kebab-case (lowercase letters and digits separated by "
        f"single hyphens, e.g. get-product), got {value!r}"
    )


def method_error(value: str) -> str:
    return f"HTTP method must be one of: {', '.join(HTTP_METHODS)}, got {value!r}"


def normalize_http_method(value: Optional[str]) -> str:
    """Upper-case and validate an HTTP method; empty means GET."""
    method = (value or "").strip().upper() or "GET"
    if method not in HTTP_METHODS:
        raise ValidationError(method_error(value or ""))
    return method


class GenerationRequest(BaseModel):
    """Validated input for one use case generation. Immutable."""

    model_config = ConfigDict(frozen=True)

    domain: str
    usecase_name: str
    api_name: str
    http_method: HttpMethod = "GET"
    include_entity: bool = False

    @field_validator("domain", "usecase_name", "api_name", mode="before")
    @classmethod
    def _check_identifier(cls, value: Any, info) -> str:
        text = str(value or "").strip()
        if not is_identifier(text):
            raise ValueError(identifier_error(_LABELS[info.field_name], text))
        return text

    @field_validator("http_method", mode="before")
    @classmethod
    def _upper_method(cls, value: Any) -> Any:
        if value is None:
            return "GET"
        if isinstance(value, str):
            return value.strip().upper() or "GET"
        return value


def build_request(
    domain: str,
    usecase_name: str,
    api_name: str,
    http_method: Optional[str] = None,
    include_entity: bool = False,
) -> GenerationRequest:
    """
    Construct a GenerationRequest, translating pydantic errors into
    ValidationError with the first failing field's message.
    """
    if http_method is not None:
        http_method = normalize_http_method(http_method)
    try:
        return GenerationRequest(
            domain=domain,
            usecase_name=usecase_name,
            api_name=api_name,
            http_method=http_method or "GET",
            include_entity=include_entity,
        )
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        field = str(first["loc"][0]) if first.get("loc") else ""
        if field == "http_method":
            raise ValidationError(method_error(str(http_method))) from None
        msg = str(first.get("msg", "invalid value"))
        # pydantic prefixes ValueError messages
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        raise ValidationError(msg) from None
