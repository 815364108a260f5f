"""Decorators for application functionality."""

import asyncio
import functools
import time
from typing import Callable, Optional

from app.core.v1.log_manager import LogManager
from app.core.v1.exceptions import RuntimeException
from app.settings.v1.general import SETTINGS


def async_retry(
    max_retries: Optional[int] = None,
    delay: Optional[float] = None,
    exceptions: tuple = (Exception,)
):
    """Decorator for bounded async retry.

    The wrapped coroutine runs at most ``max_retries + 1`` times. When every
    attempt fails the last error is wrapped in ``RuntimeException``.

    Args:
        max_retries (Optional[int]): Maximum number of retries.
        delay (Optional[float]): Delay between retries in seconds.
        exceptions (tuple): Tuple of exceptions to catch and retry.

    Returns:
        Callable: Decorated async function.
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            logger = LogManager(func.__module__)
            retries = SETTINGS.MIRROR_RETRIES if max_retries is None else max_retries
            pause = SETTINGS.MIRROR_RETRY_DELAY if delay is None else delay
            
            for attempt in range(retries + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions as err:
                    if attempt == retries:
                        logger.error(
                            f"Async function {func.__name__} failed after {retries} retries",
                            error=str(err),
                            attempt=attempt + 1
                        )
                        raise RuntimeException(
                            f"Async function {func.__name__} failed after {retries} retries: {err}"
                        ) from err
                    
                    logger.warning(
                        f"Async function {func.__name__} failed, retrying...",
                        error=str(err),
                        attempt=attempt + 1,
                        max_retries=retries
                    )
                    if pause:
                        await asyncio.sleep(pause)
            
        return wrapper
    return decorator


def log_execution_time(func: Callable) -> Callable:
    """Decorator to log how long an async function took.

    Args:
        func (Callable): Coroutine function to decorate.

    Returns:
        Callable: Decorated function.
    """
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        logger = LogManager(func.__module__)
        start_time = time.time()
        
        try:
            result = await func(*args, **kwargs)
        except Exception as err:
            logger.error(
                f"Function {func.__name__} failed",
                execution_time=f"{time.time() - start_time:.3f}s",
                error=str(err)
            )
            raise
        
        logger.info(
            f"Function {func.__name__} executed successfully",
            execution_time=f"{time.time() - start_time:.3f}s"
        )
        return result
    
    return wrapper
