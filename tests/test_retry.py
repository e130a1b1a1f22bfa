from __future__ import annotations

import pytest

from diffview.domain.config.retry import RetryConfig
from diffview.infrastructure.retry import is_transient_spawn_error, retry_git_spawn


def _flaky(failures: int, exc_type=BlockingIOError):
    calls = {"n": 0}

    def spawn():
        calls["n"] += 1
        if calls["n"] <= failures:
            raise exc_type("Resource temporarily unavailable")
        return "started"

    return spawn, calls


def test_is_transient_spawn_error():
    assert is_transient_spawn_error(BlockingIOError())
    assert is_transient_spawn_error(InterruptedError())
    assert not is_transient_spawn_error(FileNotFoundError())
    assert not is_transient_spawn_error(PermissionError())


def test_spawn_retries_on_transient_error():
    spawn, calls = _flaky(1)
    sleep_calls = []

    wrapped = retry_git_spawn(
        RetryConfig(max_attempts=2, initial_delay=0.1, backoff_multiplier=2, jitter=0)
    )(spawn).retry_with(sleep=sleep_calls.append)

    assert wrapped() == "started"
    assert calls["n"] == 2
    assert len(sleep_calls) == 1


def test_spawn_does_not_retry_missing_binary():
    spawn, calls = _flaky(1, exc_type=FileNotFoundError)

    wrapped = retry_git_spawn(RetryConfig(max_attempts=3, initial_delay=0.1, jitter=0))(spawn)

    with pytest.raises(FileNotFoundError):
        wrapped()
    assert calls["n"] == 1


def test_spawn_gives_up_after_max_attempts():
    """Test the last error is re-raised when every attempt fails"""
    spawn, calls = _flaky(10)

    wrapped = retry_git_spawn(
        RetryConfig(max_attempts=3, initial_delay=0.1, backoff_multiplier=2, jitter=0)
    )(spawn).retry_with(sleep=lambda _: None)

    with pytest.raises(BlockingIOError):
        wrapped()
    assert calls["n"] == 3


def test_spawn_with_jitter():
    """Test that jitter adds randomness to retry delays"""
    spawn, calls = _flaky(2)
    sleep_calls = []

    wrapped = retry_git_spawn(
        RetryConfig(max_attempts=3, initial_delay=1.0, backoff_multiplier=2, jitter=0.1)
    )(spawn).retry_with(sleep=sleep_calls.append)

    assert wrapped() == "started"
    assert calls["n"] == 3
    assert len(sleep_calls) == 2
    # With jitter=0.1, delays should vary by +/-10%
    # First delay: 1.0 * 2^0 = 1.0 +/- 0.1
    assert 0.9 <= sleep_calls[0] <= 1.1
    # Second delay: 1.0 * 2^1 = 2.0, jitter is relative to the initial delay
    assert 1.9 <= sleep_calls[1] <= 2.1


def test_spawn_with_custom_backoff_multiplier():
    """Test that custom backoff_multiplier works correctly"""
    spawn, _ = _flaky(2)
    sleep_calls = []

    wrapped = retry_git_spawn(
        RetryConfig(max_attempts=3, initial_delay=1.0, backoff_multiplier=3, jitter=0)
    )(spawn).retry_with(sleep=sleep_calls.append)

    assert wrapped() == "started"
    # With backoff_multiplier=3: first delay = 1.0, second delay = 3.0
    assert sleep_calls[0] == pytest.approx(1.0, rel=0.1)
    assert sleep_calls[1] == pytest.approx(3.0, rel=0.1)
