"""Testes do backoff exponencial com jitter."""

from __future__ import annotations

import pytest

from app.infra.resilience.backoff import JITTER_RATIO, base_backoff, compute_backoff


def test_base_backoff_doubles_until_cap() -> None:
    delays = [base_backoff(n, 1.0, 60.0, 2.0) for n in range(1, 10)]
    assert delays == [1.0, 2.0, 4.0, 8.0, 16.0, 32.0, 60.0, 60.0, 60.0]


def test_base_backoff_is_non_decreasing() -> None:
    delays = [base_backoff(n, 0.5, 5.0, 1.7) for n in range(1, 50)]
    assert delays == sorted(delays)
    assert max(delays) == 5.0


def test_base_backoff_handles_huge_attempts() -> None:
    assert base_backoff(10_000, 1.0, 60.0, 2.0) == 60.0


def test_attempt_below_one_uses_initial_delay() -> None:
    assert base_backoff(0, 1.5, 60.0, 2.0) == 1.5


@pytest.mark.parametrize("attempt", [1, 2, 5, 10, 100])
def test_compute_backoff_stays_within_jitter_bounds(attempt: int) -> None:
    base = base_backoff(attempt, 1.0, 60.0, 2.0)
    for _ in range(200):
        delay = compute_backoff(attempt, 1.0, 60.0, 2.0)
        assert base <= delay <= base * (1 + JITTER_RATIO)
        assert delay <= 60.0 * 1.25


def test_compute_backoff_uses_injected_jitter() -> None:
    assert compute_backoff(3, 1.0, 60.0, 2.0, jitter_source=lambda upper: 0.0) == 4.0
    assert compute_backoff(3, 1.0, 60.0, 2.0, jitter_source=lambda upper: upper) == 5.0


def test_compute_backoff_clamps_out_of_range_jitter() -> None:
    assert compute_backoff(1, 1.0, 60.0, 2.0, jitter_source=lambda upper: 99.0) == 1.25
    assert compute_backoff(1, 1.0, 60.0, 2.0, jitter_source=lambda upper: -5.0) == 1.0
