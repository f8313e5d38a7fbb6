"""Whole-call timeout for dispatches.

No cancellation: when the deadline passes the caller gets
``OperationTimeout`` and the work keeps running in a daemon thread until its
own network calls return. Outstanding sends are abandoned, not aborted.
"""

from __future__ import annotations

import functools
import logging
import threading
from typing import Any, Callable, TypeVar

from notify_relay.errors import InternalError

log = logging.getLogger("notify_relay.resilience")

T = TypeVar("T")


class OperationTimeout(InternalError):
    """Raised when an operation exceeds its configured timeout."""


def with_timeout(seconds: float) -> Callable:
    """Decorator that raises ``OperationTimeout`` if the wrapped function
    takes longer than *seconds*.

    Uses a daemon thread so we don't block the caller forever.
    Note: this only interrupts at the Python level; it cannot interrupt
    blocking C-level calls.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            result: list[Any] = []
            exception: list[BaseException] = []

            def target() -> None:
                try:
                    result.append(func(*args, **kwargs))
                except BaseException as e:
                    exception.append(e)

            thread = threading.Thread(target=target, daemon=True)
            thread.start()
            thread.join(timeout=seconds)
            if thread.is_alive():
                log.warning("%s abandoned after %ss", func.__name__, seconds)
                raise OperationTimeout(
                    f"{func.__name__} exceeded timeout of {seconds}s"
                )
            if exception:
                raise exception[0]
            return result[0]

        return wrapper
    return decorator
