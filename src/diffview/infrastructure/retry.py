"""Retry utilities for starting git processes, using tenacity.

Only transient spawn failures (fork hitting a resource limit, an interrupted
system call) are retried; a missing binary or a failing git command is not.
"""

from __future__ import annotations

import logging
from typing import Callable

from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from diffview.domain.config.retry import RetryConfig

logger = logging.getLogger(__name__)

TRANSIENT_SPAWN_ERRORS = (BlockingIOError, InterruptedError)


def is_transient_spawn_error(exception: BaseException) -> bool:
    """Check if a process spawn failure should be retried."""
    return isinstance(exception, TRANSIENT_SPAWN_ERRORS)


def retry_git_spawn(retry_config: RetryConfig) -> Callable[[Callable], Callable]:
    """Create a retry decorator for functions that spawn git.

    Args:
        retry_config: Retry configuration

    Returns:
        Retry decorator
    """
    # Exponential backoff: initial_delay * (backoff_multiplier ^ attempt)
    wait = wait_exponential(
        multiplier=retry_config.initial_delay,
        exp_base=retry_config.backoff_multiplier,
        min=retry_config.initial_delay,
        max=30.0,
    )
    if retry_config.jitter > 0:
        jitter_amount = retry_config.initial_delay * retry_config.jitter
        wait = wait + wait_random(-jitter_amount, jitter_amount)

    def _before_sleep_log(retry_state: RetryCallState) -> None:
        if retry_state.outcome is None:
            return
        exception = retry_state.outcome.exception()
        attempt = retry_state.attempt_number
        logger.warning(
            f"Failed to start git (attempt {attempt}/{retry_config.max_attempts}): {exception}. Retrying..."
        )

    return retry(
        stop=stop_after_attempt(retry_config.max_attempts),
        wait=wait,
        retry=retry_if_exception(is_transient_spawn_error),
        reraise=True,
        before_sleep=_before_sleep_log,
    )
