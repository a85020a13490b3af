"""
Resilient Calls

Best-effort wrapper for unreliable collaborators (the generative provider).
Every call site supplies the value to use when the primary operation fails,
so a flaky completion never aborts an analysis.
"""

import logging
from typing import Awaitable, Callable, Tuple, Type, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def resilient_call(
    primary: Callable[[], Awaitable[T]],
    fallback: Union[T, Callable[[], T]],
    label: str = "operation",
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
) -> T:
    """
    Run `primary`; on failure return `fallback` (or its result if callable).

    Args:
        primary: Zero-argument coroutine function
        fallback: Value, or zero-argument function producing the value
        label: Name used in log messages
        exceptions: Exception types treated as recoverable

    Returns:
        Result of `primary`, or the fallback value
    """
    try:
        return await primary()
    except exceptions as e:
        logger.warning(f"{label} failed, using fallback: {e}")
        return fallback() if callable(fallback) else fallback
