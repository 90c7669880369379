from __future__ import annotations

import pytest

from omnicomment.retry import retry


def test_retry_returns_first_success_without_sleeping() -> None:
    sleeps: list[float] = []
    seen: list[tuple[int, int]] = []

    def operation(attempt: int, max_attempts: int) -> str:
        seen.append((attempt, max_attempts))
        return "ok"

    assert retry(operation, max_attempts=3, delay_seconds=1.0, sleep=sleeps.append) == "ok"
    assert seen == [(0, 3)]
    assert sleeps == []


def test_retry_waits_fixed_delay_between_failures() -> None:
    sleeps: list[float] = []
    attempts: list[int] = []

    def operation(attempt: int, max_attempts: int) -> int:
        _ = max_attempts
        attempts.append(attempt)
        if attempt < 2:
            raise RuntimeError(f"fail {attempt}")
        return attempt

    assert retry(operation, max_attempts=5, delay_seconds=0.25, sleep=sleeps.append) == 2
    assert attempts == [0, 1, 2]
    assert sleeps == [0.25, 0.25]


def test_retry_propagates_last_failure_after_max_attempts() -> None:
    sleeps: list[float] = []
    attempts: list[int] = []

    def operation(attempt: int, max_attempts: int) -> None:
        _ = max_attempts
        attempts.append(attempt)
        raise ValueError(f"boom {attempt}")

    with pytest.raises(ValueError, match="boom 3"):
        retry(operation, max_attempts=4, delay_seconds=1.0, sleep=sleeps.append)
    assert attempts == [0, 1, 2, 3]
    # No wait after the final attempt.
    assert sleeps == [1.0, 1.0, 1.0]


def test_retry_single_attempt_does_not_sleep() -> None:
    sleeps: list[float] = []

    def operation(attempt: int, max_attempts: int) -> None:
        _ = attempt, max_attempts
        raise RuntimeError("nope")

    with pytest.raises(RuntimeError, match="nope"):
        retry(operation, max_attempts=1, delay_seconds=5.0, sleep=sleeps.append)
    assert sleeps == []


def test_retry_rejects_invalid_policy() -> None:
    with pytest.raises(ValueError, match="max_attempts must be >= 1"):
        retry(lambda attempt, total: None, max_attempts=0, delay_seconds=1.0)
    with pytest.raises(ValueError, match="delay_seconds must be >= 0"):
        retry(lambda attempt, total: None, max_attempts=1, delay_seconds=-1.0)


def test_retry_uses_time_sleep_by_default(monkeypatch: pytest.MonkeyPatch) -> None:
    sleeps: list[float] = []
    monkeypatch.setattr("omnicomment.retry.time.sleep", sleeps.append)

    def operation(attempt: int, max_attempts: int) -> str:
        _ = max_attempts
        if attempt == 0:
            raise RuntimeError("first")
        return "second"

    assert retry(operation, max_attempts=2, delay_seconds=1.0) == "second"
    assert sleeps == [1.0]
