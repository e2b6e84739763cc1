"""
Bounded concurrent network probes.

Discovery has one overall time budget. A Deadline tracks what is left of
it, and fan_out runs a batch of independent probes in a thread pool with
an additional per-probe timeout that starts when the probe does. Results
come back in the order the probes were given, whatever order they
complete in. Probes still running or queued when their time is up are
abandoned and reported as ProbeTimeoutError.
"""

import concurrent.futures
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Generic, Optional, Sequence, TypeVar

from mailhost.common.exceptions import ProbeTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# A probe is called with the number of seconds it may take.
Probe = Callable[[float], T]


class Deadline:
    """A point in time after which no more waiting is done."""

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self.seconds = seconds
        self.expires_at = clock() + seconds

    def remaining(self) -> float:
        """Seconds left, never negative."""
        return max(self.expires_at - self._clock(), 0.0)

    def expired(self) -> bool:
        return self.remaining() <= 0

    def sub(self, seconds: float) -> "Deadline":
        """A deadline `seconds` from now, but no later than this one."""
        return Deadline(min(seconds, self.remaining()), clock=self._clock)


@dataclass
class ProbeOutcome(Generic[T]):
    """Result slot of one probe: either a value or the error it ended with."""

    value: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class _Slot:
    """Start signal and sub-deadline of one submitted probe."""

    def __init__(self) -> None:
        self.started = threading.Event()
        self.deadline: Optional[Deadline] = None


def fan_out(
    probes: Sequence[Probe[T]],
    deadline: Deadline,
    probe_timeout: float,
    max_workers: int = 20,
) -> list[ProbeOutcome[T]]:
    """
    Run probes concurrently, each bounded by probe_timeout and deadline.

    A probe's own probe_timeout starts when a worker picks it up, not when
    it is queued. A probe still queued when the overall deadline passes is
    abandoned without running.

    Returns one outcome per probe, in input order. Errors raised by a
    probe are captured in its outcome, never raised.
    """
    if not probes:
        return []

    def run(probe: Probe[T], slot: _Slot) -> T:
        slot.deadline = deadline.sub(probe_timeout)
        slot.started.set()
        return probe(slot.deadline.remaining())

    outcomes: list[ProbeOutcome[T]] = []
    executor = ThreadPoolExecutor(
        max_workers=min(max_workers, len(probes)),
        thread_name_prefix="probe",
    )
    try:
        slots = [_Slot() for _ in probes]
        futures = [
            executor.submit(run, probe, slot) for probe, slot in zip(probes, slots)
        ]
        for index, (future, slot) in enumerate(zip(futures, slots)):
            if not slot.started.wait(deadline.remaining()):
                future.cancel()
                logger.debug(f"Probe {index} not started before the deadline")
                outcomes.append(ProbeOutcome(error=ProbeTimeoutError(deadline.seconds)))
                continue

            try:
                value = future.result(timeout=slot.deadline.remaining())
            except concurrent.futures.TimeoutError:
                logger.debug(f"Probe {index} abandoned after {slot.deadline.seconds:.1f}s")
                outcomes.append(ProbeOutcome(error=ProbeTimeoutError(slot.deadline.seconds)))
            except concurrent.futures.CancelledError:
                outcomes.append(ProbeOutcome(error=ProbeTimeoutError(deadline.seconds)))
            except Exception as e:
                outcomes.append(ProbeOutcome(error=e))
            else:
                outcomes.append(ProbeOutcome(value=value))
    finally:
        # Do not wait for abandoned probes, their threads finish on their own.
        executor.shutdown(wait=False, cancel_futures=True)

    return outcomes
