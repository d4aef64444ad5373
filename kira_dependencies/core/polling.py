"""Bounded polling helper.

Used to wait for GitLab to finish computing a merge request's
mergeability. Running out of attempts is not an error: the caller gets
the last observed value together with ``pending=True``.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class PollResult(Generic[T]):
    """Last value observed by :func:`poll`.

    Attributes:
        value: Last value returned by the probe.
        pending: Whether the value was still pending when polling stopped.
        attempts: Number of probe calls made.
    """

    value: T
    pending: bool
    attempts: int


def poll(
    probe: Callable[[], T],
    is_pending: Callable[[T], bool],
    *,
    max_attempts: int,
    delay: float,
    sleep: Callable[[float], None] = time.sleep,
) -> PollResult[T]:
    """Call ``probe`` until its result is no longer pending.

    The first probe runs immediately; later probes are spaced by
    ``delay`` seconds. At most ``max_attempts`` probes are made.

    Args:
        probe: Zero-argument callable returning the current value.
        is_pending: Predicate telling whether a value is still pending.
        max_attempts: Upper bound on probe calls, at least 1.
        delay: Seconds to sleep between probes.
        sleep: Sleep function, injectable for tests.

    Returns:
        A :class:`PollResult` with the last value.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    value = probe()
    attempts = 1
    while is_pending(value) and attempts < max_attempts:
        sleep(delay)
        value = probe()
        attempts += 1

    return PollResult(value=value, pending=is_pending(value), attempts=attempts)
