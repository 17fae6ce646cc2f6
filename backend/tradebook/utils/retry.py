# tradebook/utils/retry.py
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Type, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry with exponential backoff.

    Attempt n (1-based) that fails waits min(base_delay * 2**(n-1), max_delay)
    before attempt n+1. After the last attempt the last error is re-raised.
    """
    attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 5.0

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be >= 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be >= 0")

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

    def call(
        self,
        fn: Callable[[], T],
        *,
        retry_on: Tuple[Type[BaseException], ...] = (Exception,),
        sleep: Callable[[float], None] = time.sleep,
        on_retry: Optional[Callable[[int, BaseException, float], None]] = None,
        what: str = "operation",
    ) -> T:
        last_exc: Optional[BaseException] = None
        for attempt in range(1, self.attempts + 1):
            try:
                return fn()
            except retry_on as e:
                last_exc = e
                log.error(f"{what}: attempt {attempt}/{self.attempts} failed: {e}")
                if attempt >= self.attempts:
                    break
                delay = self.delay_for(attempt)
                if on_retry is not None:
                    on_retry(attempt, e, delay)
                log.info(f"{what}: retrying in {delay:.2f}s")
                sleep(delay)
        assert last_exc is not None
        raise last_exc
