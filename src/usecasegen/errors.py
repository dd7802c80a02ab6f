from __future__ import annotations


class UsecasegenError(Exception):
    """Base class for errors raised by usecasegen."""


class ValidationError(UsecasegenError, ValueError):
    """Malformed user input (identifier or HTTP method). Nothing is written."""


class ConfigError(UsecasegenError):
    """Config file exists but cannot be read or does not validate."""


class RecoverableParseError(UsecasegenError):
    """
    A registry file lacks an expected group region.

    Not corruption: the file may simply not have that section yet, and
    inserting into the group creates it.
    """

    def __init__(self, group: str, path: str | None = None):
        self.group = group
        self.path = path
        where = f" in {path}" if path else ""
        super().__init__(f"registry group {group!r} not found{where}")


class ConcurrentModificationError(UsecasegenError):
    """A path that was absent at plan time exists at write time."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"{path} appeared after planning; refusing to overwrite")


class RegistryLayoutError(UsecasegenError):
    """A registry group is missing and the file convention cannot create it."""
