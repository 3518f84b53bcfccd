"""Fixed-cadence probing bounded by an overall deadline."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TypeAlias

from tenacity import RetryCallState, RetryError, Retrying, retry_if_result, wait_fixed

from vc_manager.provisioning.errors import ProvisionTimeoutError

Clock: TypeAlias = Callable[[], float]
Sleeper: TypeAlias = Callable[[float], None]


def poll_until(
    probe: Callable[[], bool],
    *,
    interval_seconds: float,
    timeout_seconds: float,
    description: str,
    clock: Clock = time.monotonic,
    sleep: Sleeper = time.sleep,
) -> int:
    """Call ``probe`` every interval until it returns True.

    The first probe happens one full interval after the call starts. When the
    next probe would not happen before the deadline, the deadline wins: the
    call sleeps until the deadline and raises ProvisionTimeoutError.
    Exceptions raised by ``probe`` propagate unchanged and are not retried.

    Returns the number of probes made.
    """
    if interval_seconds <= 0:
        raise ValueError("interval_seconds must be positive")
    if timeout_seconds <= interval_seconds:
        raise ValueError("timeout_seconds must be greater than interval_seconds")

    deadline = clock() + timeout_seconds

    def _deadline_reached(_: RetryCallState) -> bool:
        return clock() + interval_seconds >= deadline

    retrying = Retrying(
        stop=_deadline_reached,
        wait=wait_fixed(interval_seconds),
        retry=retry_if_result(lambda done: not done),
        sleep=sleep,
        reraise=True,
    )

    sleep(interval_seconds)
    try:
        retrying(probe)
    except RetryError as exc:
        remaining = deadline - clock()
        if remaining > 0:
            sleep(remaining)
        attempts = exc.last_attempt.attempt_number
        raise ProvisionTimeoutError(
            f"{description} timeout after {timeout_seconds:g}s ({attempts} probes)",
            timeout_seconds=timeout_seconds,
            attempts=attempts,
        ) from exc
    return retrying.statistics["attempt_number"]
