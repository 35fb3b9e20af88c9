from typing import TypeVar, Callable, Optional
from functools import wraps
from loguru import logger

T = TypeVar('T')


def log_errors_async(message: Optional[str] = None) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Log any exception raised by the wrapped coroutine and return None instead.

    CancelledError is not an Exception subclass, so task cancellation still propagates.
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        @logger.catch(message=message or f"Error in {func.__qualname__}")
        async def wrapper(*args, **kwargs) -> T:
            return await func(*args, **kwargs)

        return wrapper

    return decorator
