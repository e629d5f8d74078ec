from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Tuple, Type, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry with a fixed delay between attempts."""
    max_attempts: int = 3
    delay_seconds: float = 2.0
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        return cls(max_attempts=settings.prediction_max_attempts, delay_seconds=settings.prediction_retry_delay)

    def call(self, fn: Callable[[], T], *, sleep: Callable[[float], None] = time.sleep) -> T:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        last_exc = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return fn()
            except self.retry_on as e:
                last_exc = e
                if attempt == self.max_attempts:
                    break
                logger.warning("attempt %d/%d failed: %s", attempt, self.max_attempts, e)
                sleep(self.delay_seconds)
        assert last_exc is not None
        raise last_exc
