"""Errors raised while hydrating a request."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hydrator.models.core import ContentKind


class HydrationError(Exception):
    """Base exception for request hydration."""


class BodyDecodeError(HydrationError):
    """Request body could not be decoded as its declared content type."""

    def __init__(self, kind: "ContentKind", message: str, cause: BaseException | None = None) -> None:
        self.kind = kind
        self.cause = cause
        if cause is not None:
            message = f"{message}\n{type(cause).__name__}: {cause}"
        super().__init__(message)


class BodyConsumedError(HydrationError):
    """Request body stream was already read."""


class MemoryLimitError(HydrationError):
    """Request body grew past its configured memory ceiling."""

    def __init__(self, limit: int, received: int) -> None:
        self.limit = limit
        self.received = received
        super().__init__(f"Body exceeds memory allocation of {limit} bytes (received {received})")
