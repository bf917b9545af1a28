"""
Background task utilities
"""
from typing import Callable, Any
from functools import wraps
from concurrent.futures import ThreadPoolExecutor

from temanly.core.logging_config import logger

# Thread pool executor for background tasks
_executor = ThreadPoolExecutor(max_workers=4)


def run_in_background(func: Callable) -> Callable:
    """
    Decorator to run a function in background thread

    Usage:
        @run_in_background
        def send_message_task(phone, text):
            ...
    """
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> None:
        def _run() -> None:
            try:
                func(*args, **kwargs)
            except Exception as e:
                logger.error(f"Background task {func.__name__} failed: {str(e)}", exc_info=True)

        try:
            _executor.submit(_run)
        except RuntimeError as e:
            logger.error(f"Error running background task {func.__name__}: {str(e)}")
    return wrapper
