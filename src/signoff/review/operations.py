# src/signoff/review/operations.py
"""Wrap public review operations in :class:`ServiceResult` envelopes."""

from __future__ import annotations

import functools
import time
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

from signoff.core.logs import EventType, Priority, get_event_logger
from signoff.errors import ErrorKind, ReviewError
from signoff.models import ServiceResult

P = ParamSpec("P")
T = TypeVar("T")

event_logger = get_event_logger()

GENERIC_FAILURE = "The review service could not complete the request."


def service_operation(
    name: str,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[ServiceResult[T]]]]:
    """Turn an operation that raises into one that reports a result.

    Expected failures become a failed result carrying their kind.  Anything
    else is logged with its details and reported as a generic persistence
    failure so store internals never leave the service.
    """

    def decorator(
        func: Callable[P, Awaitable[T]],
    ) -> Callable[P, Awaitable[ServiceResult[T]]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> ServiceResult[T]:
            start_time = time.time()
            try:
                data = await func(*args, **kwargs)
            except ReviewError as exc:
                level = Priority.HIGH if exc.kind is ErrorKind.CONFLICT else Priority.NORMAL
                event_logger.info(
                    f"{name} failed: {exc.kind.value}: {exc}",
                    event_type=EventType.WARNING,
                    priority=level,
                    component=func.__module__,
                    operation=name,
                    error_kind=exc.kind.value,
                )
                return ServiceResult.from_error(exc)
            except Exception as exc:
                event_logger.log_error_handling_start(
                    error_type=type(exc).__name__,
                    error_msg=str(exc),
                    context=name,
                    component=func.__module__,
                    duration=time.time() - start_time,
                )
                return ServiceResult.fail(ErrorKind.PERSISTENCE, GENERIC_FAILURE)
            return ServiceResult.ok(data)

        return wrapper

    return decorator


__all__ = ["service_operation", "GENERIC_FAILURE"]
