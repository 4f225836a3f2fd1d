"""Backing store guard and bounded retry helper."""
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from functools import wraps
from typing import Callable, TypeVar

from django.conf import settings
from django.db import InterfaceError, OperationalError

from .exceptions import DependencyError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@contextmanager
def store_guard():
    """Translate connection-level database failures into `DependencyError`."""
    try:
        yield
    except (OperationalError, InterfaceError) as exc:
        raise DependencyError(f"Backing store unavailable: {exc}") from exc


def guarded(func: Callable[..., T]) -> Callable[..., T]:
    """Decorator form of `store_guard` for core operations."""

    @wraps(func)
    def _wrapped(*args, **kwargs):
        with store_guard():
            return func(*args, **kwargs)

    return _wrapped


def with_retries(func: Callable[..., T], *args, attempts: int | None = None, backoff: float | None = None, **kwargs) -> T:
    """Call `func`, retrying on `DependencyError` with linear backoff.

    Other errors propagate immediately. When retries are exhausted the last
    `DependencyError` is re-raised.
    """
    attempts = attempts if attempts is not None else settings.COURSEDESK_STORE_RETRIES
    backoff = backoff if backoff is not None else settings.COURSEDESK_STORE_BACKOFF
    attempts = max(1, attempts)
    for attempt in range(attempts):
        try:
            return func(*args, **kwargs)
        except DependencyError as exc:
            if attempt + 1 >= attempts:
                logger.warning("%s failed after %d attempts: %s", getattr(func, "__name__", func), attempts, exc)
                raise
            delay = backoff * (attempt + 1)
            logger.warning("%s unavailable (attempt %d/%d), retrying in %.2fs", getattr(func, "__name__", func), attempt + 1, attempts, delay)
            time.sleep(delay)
    raise AssertionError("unreachable")  # pragma: no cover
