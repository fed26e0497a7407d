"""
Wall-clock timing of fit phases.

A fit records its total duration plus the time spent in each phase
(basis construction, design assembly, smoothing parameter search). The
breakdown ends up in Result.timing.
"""

import time
from contextlib import contextmanager
from typing import Callable, Iterator


class Timer:
    """
    Total time plus accumulated per-phase times.

    Usage:
        timer = Timer()
        timer.start()
        with timer.section('basis'):
            basis = build_basis(x, k=10, degree=3)
        with timer.section('smoothing'):
            sel = select_smoothing(...)
        timer.stop()
        timer.result()
        # {'total_seconds': 0.05, 'basis': 0.001, 'smoothing': 0.049}

    Args:
        clock: Monotonic clock returning seconds; time.perf_counter by
            default.
    """

    def __init__(self, clock: Callable[[], float] = time.perf_counter) -> None:
        self._clock = clock
        self._phases: dict[str, float] = {}
        self._t0: float | None = None
        self._total: float | None = None

    def start(self) -> None:
        self._t0 = self._clock()
        self._total = None

    def stop(self) -> float:
        """Stop the overall clock and return the total in seconds."""
        if self._t0 is None:
            raise RuntimeError("Timer.stop() called before start()")
        self._total = self._clock() - self._t0
        return self._total

    @contextmanager
    def section(self, name: str) -> Iterator[None]:
        """Time one phase. Repeated phases add up."""
        t = self._clock()
        try:
            yield
        finally:
            self._phases[name] = self._phases.get(name, 0.0) + (self._clock() - t)

    @property
    def phases(self) -> dict[str, float]:
        return dict(self._phases)

    def result(self) -> dict[str, float]:
        """'total_seconds' plus one entry per phase.

        Raises:
            RuntimeError: If the timer has not been stopped.
        """
        if self._total is None:
            raise RuntimeError("Timer.result() called before stop()")
        return {'total_seconds': self._total, **self._phases}
