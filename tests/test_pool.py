"""Tests for the bounded task pool and confirmation policies."""

import asyncio
from unittest.mock import patch

import pytest

from releasepack.core.confirmation import (
    CONFIRMATION_PROMPT,
    AutoApprove,
    AutoReject,
    InteractiveConfirmation,
)
from releasepack.core.pool import TaskPool


class TestTaskPool:
    """Test TaskPool concurrency limits."""

    def test_invalid_limit(self):
        """Test limits below one are rejected."""
        with pytest.raises(ValueError, match="at least 1"):
            TaskPool(0)

    @pytest.mark.asyncio
    async def test_limit_respected(self):
        """Test no more than limit tasks run at once."""
        pool = TaskPool(3)
        peak = 0

        async def work(item):
            nonlocal peak
            peak = max(peak, pool.active)
            await asyncio.sleep(0.01)
            return item * 2

        results = await pool.map(work, range(10))

        assert results == [item * 2 for item in range(10)]
        assert peak == 3
        assert pool.active == 0

    @pytest.mark.asyncio
    async def test_first_error_raised_after_all_settle(self):
        """Test every task finishes before the first failure propagates."""
        pool = TaskPool(2)
        finished = []

        async def work(item):
            await asyncio.sleep(0.01 * item)
            if item in (1, 3):
                raise RuntimeError(f"failed {item}")
            finished.append(item)

        with pytest.raises(RuntimeError, match="failed 1"):
            await pool.map(work, range(5))

        assert sorted(finished) == [0, 2, 4]

    @pytest.mark.asyncio
    async def test_empty_map(self):
        """Test mapping nothing returns nothing."""
        assert await TaskPool(1).map(None, []) == []

    @pytest.mark.asyncio
    async def test_map_blocking(self):
        """Test blocking callables run in the executor."""
        results = await TaskPool(2).map_blocking(str.upper, ["a", "b"])

        assert results == ["A", "B"]

    @pytest.mark.asyncio
    async def test_submit(self):
        """Test a single submission returns its value."""

        async def work(a, b):
            return a + b

        assert await TaskPool(1).submit(work, 1, 2) == 3


class TestConfirmation:
    """Test confirmation gate policies."""

    @pytest.mark.asyncio
    async def test_auto_policies(self):
        """Test the non-interactive answers."""
        assert await AutoApprove().confirm("A [FLAC]") is True
        assert await AutoReject().confirm("A [FLAC]") is False

    @pytest.mark.asyncio
    async def test_interactive_defaults_to_no(self):
        """Test the prompt is asked with a No default."""
        with patch("releasepack.core.confirmation.click.confirm", return_value=False) as mock_confirm:
            assert await InteractiveConfirmation().confirm("A [FLAC]") is False

        mock_confirm.assert_called_once_with(CONFIRMATION_PROMPT, default=False)
