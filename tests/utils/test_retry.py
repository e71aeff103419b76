"""
Tests for the retry helper.
"""

from unittest.mock import AsyncMock

import pytest

from memhub.utils.exceptions import EmbeddingInputError, EmbeddingUnavailableError
from memhub.utils.retry import retry_async


@pytest.mark.unit
@pytest.mark.asyncio
class TestRetryAsync:
    async def test_success_first_try(self):
        operation = AsyncMock(return_value="ok")

        result = await retry_async(operation, "op", retry_on=(EmbeddingUnavailableError,))

        assert result == "ok"
        assert operation.await_count == 1

    async def test_retries_transient_failure(self):
        operation = AsyncMock(
            side_effect=[EmbeddingUnavailableError("down"), EmbeddingUnavailableError("down"), 42]
        )

        result = await retry_async(
            operation, "op", retry_on=(EmbeddingUnavailableError,), max_retries=3, base_delay=0
        )

        assert result == 42
        assert operation.await_count == 3

    async def test_gives_up_after_max_retries(self):
        operation = AsyncMock(side_effect=EmbeddingUnavailableError("still down"))

        with pytest.raises(EmbeddingUnavailableError, match="still down"):
            await retry_async(
                operation, "op", retry_on=(EmbeddingUnavailableError,), max_retries=2, base_delay=0
            )

        assert operation.await_count == 2

    async def test_non_retryable_propagates_immediately(self):
        operation = AsyncMock(side_effect=EmbeddingInputError("bad input"))

        with pytest.raises(EmbeddingInputError):
            await retry_async(
                operation, "op", retry_on=(EmbeddingUnavailableError,), max_retries=5, base_delay=0
            )

        assert operation.await_count == 1

    async def test_zero_retries_still_attempts_once(self):
        operation = AsyncMock(return_value="once")

        assert await retry_async(operation, "op", retry_on=(Exception,), max_retries=0) == "once"
        assert operation.await_count == 1
