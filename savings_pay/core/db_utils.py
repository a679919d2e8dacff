"""
Database utilities for connection management and error handling
"""
import asyncio
import functools
import logging
from typing import Callable, Any, TypeVar, cast, Awaitable, Tuple

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Matched against the exception class name so asyncpg and SQLAlchemy errors
# are recognised without importing either driver here
RETRYABLE_ERROR_NAMES: Tuple[str, ...] = (
    "ConnectionError",
    "OperationalError",
    "ConnectionDoesNotExistError",
    "ConnectionRefusedError",
    "InterfaceError",
)


def is_connection_error(exc: BaseException) -> bool:
    error_name = type(exc).__name__
    return any(name in error_name for name in RETRYABLE_ERROR_NAMES)


def with_db_retry(
    max_retries: int = 3,
    retry_delay: float = 0.5
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Retry a read-only database coroutine on connection errors.

    Only use this on queries that are safe to repeat; settlement writes are
    never retried here because a repeated insert would duplicate history.

    Args:
        max_retries: Maximum number of retries before giving up
        retry_delay: Base delay in seconds, doubled on every attempt
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if not is_connection_error(e):
                        raise
                    attempt += 1
                    if attempt > max_retries:
                        logger.error(f"{func.__name__} failed after {max_retries} retries: {e}")
                        raise
                    delay = retry_delay * (2 ** (attempt - 1))
                    logger.warning(
                        f"Database connection error in {func.__name__}: {str(e)}. "
                        f"Retrying in {delay:.2f}s... (Attempt {attempt}/{max_retries})"
                    )
                    await asyncio.sleep(delay)

        return cast(Callable[..., Awaitable[T]], wrapper)

    return decorator
