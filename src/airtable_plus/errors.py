"""Error types for record operations."""

from enum import StrEnum
from typing import final


class ErrorKind(StrEnum):
    """Classification of client and store errors."""

    EMPTY_INPUT = "empty_input"
    MISSING_ARGUMENTS = "missing_arguments"
    NOT_FOUND = "not_found"
    CONNECTION = "connection"
    INVALID_CONFIGURATION = "invalid_configuration"
    REMOTE = "remote"


@final
class AirtablePlusError(Exception):
    """Base error for all record operations."""

    __slots__ = ("kind", "message", "source")

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.REMOTE,
        source: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.source = source

    def __repr__(self) -> str:
        return f"AirtablePlusError({self.message!r}, kind={self.kind!r})"
