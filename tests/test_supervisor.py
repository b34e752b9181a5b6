"""Tests for supervised tasks and the bounded-wait fan-out."""

import asyncio
import time

from ctxbudget.supervisor import Outcome, run_with_deadline, supervised


async def _value(v, delay=0.0):
    await asyncio.sleep(delay)
    return v


async def _boom():
    raise RuntimeError("disk on fire")


class TestSupervised:
    """Test cases for the single-task wrapper."""

    def test_success_is_not_a_fallback(self):
        outcome = asyncio.run(supervised("ok", lambda: _value(5), default=0))
        assert outcome.value == 5
        assert outcome.fallback is False
        assert outcome.error is None

    def test_failure_returns_default(self):
        outcome = asyncio.run(supervised("bad", _boom, default=-1))
        assert outcome == Outcome(-1, fallback=True, error="disk on fire", elapsed_ms=outcome.elapsed_ms)


class TestRunWithDeadline:
    """Test cases for the fan-out."""

    def test_all_complete(self):
        jobs = {
            "a": (lambda: _value(1), 0),
            "b": (lambda: _value(2), 0),
        }
        outcomes = asyncio.run(run_with_deadline(jobs, timeout=1.0))
        assert {k: o.value for k, o in outcomes.items()} == {"a": 1, "b": 2}
        assert not any(o.fallback for o in outcomes.values())

    def test_failures_and_timeouts_get_defaults(self):
        jobs = {
            "fast": (lambda: _value("done"), "fast-default"),
            "broken": (_boom, "broken-default"),
            "slow": (lambda: _value("late", delay=5), "slow-default"),
        }

        start = time.monotonic()
        outcomes = asyncio.run(run_with_deadline(jobs, timeout=0.1, grace=0.1))
        elapsed = time.monotonic() - start

        assert elapsed < 2
        assert list(outcomes) == ["fast", "broken", "slow"]
        assert outcomes["fast"].value == "done"
        assert outcomes["broken"].value == "broken-default"
        assert outcomes["broken"].fallback
        assert outcomes["slow"].value == "slow-default"
        assert outcomes["slow"].error == "timeout"

    def test_no_jobs(self):
        assert asyncio.run(run_with_deadline({}, timeout=0.1)) == {}
