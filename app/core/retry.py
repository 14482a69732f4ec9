import asyncio
from typing import Awaitable, Callable, TypeVar

import structlog
from pydantic import BaseModel, Field
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class RetryPolicy(BaseModel):
    """Bounded retry with exponential backoff for calls at the storage boundary.

    The n-th retry waits ``base_delay * backoff_multiplier ** (n - 1)`` seconds.
    """

    max_attempts: int = Field(default=3, ge=1)
    base_delay: float = Field(default=0.2, ge=0)
    backoff_multiplier: float = Field(default=2.0, ge=1)

    model_config = {"frozen": True}

    def retrying(
        self,
        *,
        name: str,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> AsyncRetrying:
        def log_retry(retry_state: RetryCallState) -> None:
            logger.warning(
                "Operation failed, retrying",
                operation=name,
                attempt=retry_state.attempt_number,
                delay=retry_state.next_action.sleep,
                error=str(retry_state.outcome.exception()),
            )

        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(
                multiplier=self.base_delay, exp_base=self.backoff_multiplier
            ),
            retry=retry_if_exception_type(Exception),
            before_sleep=log_retry,
            sleep=sleep,
            reraise=True,
        )

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        name: str,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> T:
        """Run the operation, retrying on failure until attempts are exhausted.

        The last exception is re-raised unchanged once ``max_attempts`` calls
        have failed. Cancellation is never retried.
        """
        try:
            return await self.retrying(name=name, sleep=sleep)(operation)
        except Exception as e:
            logger.error(
                "Operation failed, giving up",
                operation=name,
                attempts=self.max_attempts,
                exc_info=e,
            )
            raise


NO_RETRY = RetryPolicy(max_attempts=1, base_delay=0)
