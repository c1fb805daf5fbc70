# src/signoff/models/result.py
"""Typed success/failure envelope returned by public operations."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

from signoff.errors import (
    AuthError,
    ConflictError,
    ErrorKind,
    NotFoundError,
    PersistenceError,
    ReviewError,
    ValidationError,
)

T = TypeVar("T")

_ERRORS_BY_KIND: dict[ErrorKind | None, type[ReviewError]] = {
    ErrorKind.VALIDATION: ValidationError,
    ErrorKind.NOT_FOUND: NotFoundError,
    ErrorKind.AUTH: AuthError,
    ErrorKind.CONFLICT: ConflictError,
}


class ServiceResult(BaseModel, Generic[T]):
    """Outcome of a review operation.

    Expected failures (validation, not-found, auth, conflict) are reported
    here instead of being raised.
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None

    @classmethod
    def ok(cls, data: T | None = None) -> ServiceResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, kind: ErrorKind, error: str) -> ServiceResult[T]:
        return cls(success=False, error=error, error_kind=kind)

    @classmethod
    def from_error(cls, exc: ReviewError) -> ServiceResult[T]:
        return cls.fail(exc.kind, str(exc) or exc.kind.value)

    def unwrap(self) -> T:
        """Return ``data`` or raise the matching :class:`ReviewError`."""
        if self.success:
            return self.data  # type: ignore[return-value]
        exc_type = _ERRORS_BY_KIND.get(self.error_kind, PersistenceError)
        raise exc_type(self.error or "")


__all__ = ["ServiceResult"]
