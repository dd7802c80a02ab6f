from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from usecasegen.errors import ConfigError

log = logging.getLogger(__name__)

CONFIG_FILENAME = "usecasegen.json"


class GeneratorConfig(BaseModel):
    """
    Project-level knobs. Every field has a default so a project without
    usecasegen.json behaves like the stock layout.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    extension: str = "ts"
    api_prefix: str = "/api/v1"
    support_files: bool = True
    symbols_path: str = Field(default="src/di/symbols.{ext}")
    container_path: str = Field(default="src/di/container.{ext}")

    @field_validator("extension")
    @classmethod
    def _strip_dot(cls, value: str) -> str:
        value = value.strip().lstrip(".")
        if not value:
            raise ValueError("extension must not be empty")
        return value

    @field_validator("api_prefix")
    @classmethod
    def _normalize_prefix(cls, value: str) -> str:
        p = value.strip()
        if not p.startswith("/"):
            p = "/" + p
        # keep "/" as-is, otherwise no trailing slash
        if p != "/" and p.endswith("/"):
            p = p.rstrip("/")
        return p

    def resolve(self, template: str) -> str:
        return template.replace("{ext}", self.extension)


def load_config(project_root: Path, config_path: Optional[Path] = None) -> GeneratorConfig:
    """
    Load usecasegen.json from the project root (or an explicit path).

    A missing default file is not an error; a missing explicit file is.
    """
    path = config_path or (project_root / CONFIG_FILENAME)
    if not path.exists():
        if config_path is not None:
            raise ConfigError(f"config file not found: {path}")
        log.debug("no %s in %s, using defaults", CONFIG_FILENAME, project_root)
        return GeneratorConfig()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"cannot read config {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"config {path} must contain a JSON object")

    try:
        cfg = GeneratorConfig.model_validate(raw)
    except PydanticValidationError as exc:
        raise ConfigError(f"invalid config {path}: {exc}") from exc

    log.debug("loaded config from %s: %s", path, cfg)
    return cfg
