"""
Bounded fixed-interval polling.

Used by interactive payment verification (several attempts, caller waits) and
by the background sweep (single attempt per run). The polled function returns
an ``Outcome``; polling stops on the first terminal one.
"""
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

PENDING = 'pending'
SUCCESS = 'success'
FAILURE = 'failure'


@dataclass(frozen=True)
class Outcome:
    state: str
    value: Any = None
    raw_status: Optional[str] = None

    @property
    def is_terminal(self):
        return self.state in (SUCCESS, FAILURE)

    @classmethod
    def pending(cls, raw_status=None, value=None):
        return cls(PENDING, value, raw_status)

    @classmethod
    def success(cls, raw_status=None, value=None):
        return cls(SUCCESS, value, raw_status)

    @classmethod
    def failure(cls, raw_status=None, value=None):
        return cls(FAILURE, value, raw_status)


def poll_until_terminal(
    fetch: Callable[[], Outcome],
    attempts: int,
    delay: float,
    sleep: Callable[[float], None] = time.sleep,
) -> tuple:
    """
    Call ``fetch`` up to ``attempts`` times, sleeping ``delay`` seconds between
    calls, until it returns a terminal outcome.

    Returns:
        tuple: (last outcome, number of attempts made)
    """
    attempts = max(1, int(attempts))
    outcome = Outcome.pending()
    for attempt in range(1, attempts + 1):
        outcome = fetch()
        if outcome.is_terminal:
            return outcome, attempt
        logger.info("Attempt %s/%s not terminal yet (status=%s)", attempt, attempts, outcome.raw_status)
        if attempt < attempts and delay:
            sleep(delay)
    return outcome, attempts
