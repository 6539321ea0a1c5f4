"""Bounded retry with exponential backoff for model gateway calls.

Only ModelTransportError is retried. Parse failures are not transport
failures and never reach this layer as exceptions.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from cement_ops.core.exceptions import ModelTransportError
from cement_ops.core.logging import get_logger


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable


logger = get_logger(__name__)

T = TypeVar("T")


class RetryConfig(BaseModel):
    """Configuration for stage retry behavior."""

    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(
        default=2,
        ge=0,
        le=10,
        description="Maximum number of retry attempts",
    )
    backoff_factor: float = Field(
        default=2.0,
        ge=1.0,
        le=10.0,
        description="Exponential backoff multiplier",
    )
    initial_delay: float = Field(
        default=0.5,
        ge=0.0,
        le=60.0,
        description="Initial delay in seconds before first retry",
    )

    def delay_for(self, retry_number: int) -> float:
        """Delay before the given retry (1-based)."""
        return self.initial_delay * (self.backoff_factor ** (retry_number - 1))


NO_RETRY = RetryConfig(max_retries=0)


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    retry_config: RetryConfig,
    stage: str | None = None,
) -> T:
    """Run ``operation`` retrying transport failures with backoff.

    Raises:
        ModelTransportError: The last failure once the retry budget is spent,
            tagged with ``stage``
    """
    retries = 0
    while True:
        try:
            return await operation()
        except ModelTransportError as exc:
            if exc.stage is None:
                exc.stage = stage
            if retries >= retry_config.max_retries:
                logger.error(
                    "Model call failed, retries exhausted",
                    stage=stage,
                    attempts=retries + 1,
                    error=exc.message,
                )
                raise
            retries += 1
            delay = retry_config.delay_for(retries)
            logger.warning(
                "Model call failed, retrying",
                stage=stage,
                retry=retries,
                delay_seconds=delay,
                error=exc.message,
            )
            await asyncio.sleep(delay)
