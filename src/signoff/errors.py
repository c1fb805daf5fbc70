# src/signoff/errors.py
"""Error taxonomy for the review workflow."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Kinds of failure a public operation can report."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    AUTH = "auth"
    CONFLICT = "conflict"
    PERSISTENCE = "persistence"


class ReviewError(Exception):
    """Base class for expected review workflow failures."""

    kind: ErrorKind = ErrorKind.PERSISTENCE


class ValidationError(ReviewError):
    """Malformed or missing required input."""

    kind = ErrorKind.VALIDATION


class NotFoundError(ReviewError):
    """Referenced record is missing or not visible to the participant."""

    kind = ErrorKind.NOT_FOUND


class AuthError(ReviewError):
    """Review token is unknown, expired or already used."""

    kind = ErrorKind.AUTH


class ConflictError(ReviewError):
    """A concurrent status recomputation won the race."""

    kind = ErrorKind.CONFLICT


class PersistenceError(ReviewError):
    """The review store failed unexpectedly."""

    kind = ErrorKind.PERSISTENCE


__all__ = [
    "ErrorKind",
    "ReviewError",
    "ValidationError",
    "NotFoundError",
    "AuthError",
    "ConflictError",
    "PersistenceError",
]
