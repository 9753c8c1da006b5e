from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple, Type

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)


@dataclass
class RetryPolicy:
    """
    Retry with exponential backoff, built on tenacity. Shared by the rate
    lookups in CurrencyService and the HTTP rate provider.

    attempts   total tries, including the first one
    backoff    seconds to wait before the second try
    multiplier backoff growth factor per retry
    timeout    per-call timeout handed to callers that support one (seconds)
    sleep      replaces tenacity's sleep; tests pass a no-op
    """
    attempts: int = 3
    backoff: float = 0.5
    multiplier: float = 2.0
    timeout: float = 10.0
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)
    sleep: Optional[Callable[[float], None]] = field(default=None, repr=False)

    def retrying(self) -> Retrying:
        kwargs = dict(
            stop=stop_after_attempt(max(self.attempts, 1)),
            wait=wait_exponential(multiplier=self.backoff, exp_base=self.multiplier, min=0),
            retry=retry_if_exception_type(self.retry_on),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        if self.sleep is not None:
            kwargs["sleep"] = self.sleep
        return Retrying(**kwargs)

    def call(self, fn: Callable, *args, **kwargs):
        """Run fn, retrying on retry_on. The last error is re-raised."""
        return self.retrying()(fn, *args, **kwargs)


NO_RETRY = RetryPolicy(attempts=1)
