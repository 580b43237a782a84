"""Polling helper shared by the REST job wait and the replication finalizer."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional, TypeVar

from lib.exceptions import CutoverCancelledError, PollTimeoutError, TransientError

T = TypeVar("T")


def poll_until(
    description: str,
    fetch_fn: Callable[[], T],
    done_fn: Callable[[T], bool],
    *,
    interval: float,
    logger: logging.Logger,
    timeout: Optional[float] = None,
    cancel_event: Optional[threading.Event] = None,
    transient_retries: int = 3,
) -> T:
    """
    Fetch a resource repeatedly until done_fn accepts it.

    Args:
        description: Resource description for log messages
        fetch_fn: Reads the current resource state
        done_fn: Returns True once the state is terminal
        interval: Seconds between reads
        logger: Logger for progress messages
        timeout: Give up after this many seconds (None polls without bound)
        cancel_event: Set from outside to stop polling
        transient_retries: Consecutive TransientErrors tolerated before re-raising

    Returns:
        The first fetched value accepted by done_fn

    Raises:
        PollTimeoutError: timeout elapsed
        CutoverCancelledError: cancel_event was set
        TransientError: more consecutive transient failures than allowed
    """
    start_time = time.time()
    failures = 0

    while True:
        if cancel_event is not None and cancel_event.is_set():
            raise CutoverCancelledError(f"Polling {description} cancelled")

        try:
            value = fetch_fn()
        except TransientError as e:
            failures += 1
            if failures > transient_retries:
                raise
            logger.warning(
                "Transient error polling %s (attempt %s/%s): %s", description, failures, transient_retries, e
            )
        else:
            failures = 0
            if done_fn(value):
                logger.debug("%s reached terminal state: %s", description, value)
                return value
            logger.debug("%s in progress: %s (elapsed: %ss)", description, value, int(time.time() - start_time))

        if timeout is not None and time.time() - start_time >= timeout:
            raise PollTimeoutError(f"{description} not complete after {timeout}s")

        time.sleep(interval)
