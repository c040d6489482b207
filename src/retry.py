import time
from contextlib import contextmanager
from functools import wraps
from typing import Callable, Optional, TypeVar

from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from src.config import settings
from src.exceptions import TransientStorageError
from src.logger import logger

R = TypeVar("R")

TRANSIENT_DB_ERRORS = (OperationalError, InterfaceError, DisconnectionError, PoolTimeoutError)


@contextmanager
def translate_storage_errors(operation: str):
    """Re-raise connection, lock-wait and timeout failures as TransientStorageError"""
    try:
        yield
    except TRANSIENT_DB_ERRORS as e:
        logger.warning(f"Transient storage failure during {operation}: {e}")
        raise TransientStorageError(
            f"Storage temporarily unavailable during {operation}",
            details={"operation": operation},
        ) from e


def retry_transient(
    max_attempts: Optional[int] = None, backoff_seconds: Optional[float] = None
) -> Callable[[Callable[..., R]], Callable[..., R]]:
    """
    Decorator for retrying idempotent reads with exponential backoff.

    Only TransientStorageError is retried; every other exception (including
    conflicts) propagates on the first attempt.

    Args:
        max_attempts: Maximum number of attempts, defaults to READ_RETRY_ATTEMPTS
        backoff_seconds: Initial backoff, defaults to RETRY_BACKOFF_SECONDS
    """

    def decorator(func: Callable[..., R]) -> Callable[..., R]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> R:
            attempts = max_attempts or settings.READ_RETRY_ATTEMPTS
            backoff = settings.RETRY_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds

            for attempt in range(attempts):
                try:
                    return func(*args, **kwargs)
                except TransientStorageError as e:
                    if attempt >= attempts - 1:
                        logger.error(f"All {attempts} attempts failed for {func.__name__}: {e}")
                        raise
                    wait_time = backoff * (2 ** attempt)
                    logger.warning(
                        f"Attempt {attempt + 1}/{attempts} failed for {func.__name__}: {e}. "
                        f"Retrying in {wait_time}s..."
                    )
                    time.sleep(wait_time)

            raise RuntimeError("Retry loop exited without a result")

        return wrapper

    return decorator
