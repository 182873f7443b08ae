"""
Timing utilities.
"""

import time
from typing import Callable, Tuple, Type, TypeVar

T = TypeVar('T')


def format_uptime(seconds: float) -> str:
    """
    Format a duration as e.g. "1d 2h 30m 45s".
    """
    seconds = int(seconds)

    days, rest = divmod(seconds, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)

    parts = []
    if days:
        parts.append(f'{days}d')
    if hours:
        parts.append(f'{hours}h')
    if minutes:
        parts.append(f'{minutes}m')
    parts.append(f'{secs}s')

    return ' '.join(parts)


def retry_with_backoff(
    func: Callable[[], T],
    max_attempts: int = 3,
    initial_delay: float = 0.5,
    backoff_factor: float = 2.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)
) -> T:
    """
    Call func until it succeeds, sleeping longer after each failure.

    Args:
        func: Function to retry
        max_attempts: Maximum number of attempts
        initial_delay: Delay after the first failure in seconds
        backoff_factor: Delay multiplier
        retry_on: Exception types that trigger a retry

    Returns:
        Function result

    Raises:
        The last exception if all attempts fail
    """
    if max_attempts < 1:
        raise ValueError('max_attempts must be at least 1')

    delay = initial_delay

    for attempt in range(max_attempts):
        try:
            return func()
        except retry_on:
            if attempt == max_attempts - 1:
                raise
            time.sleep(delay)
            delay *= backoff_factor

    raise RuntimeError('unreachable')
