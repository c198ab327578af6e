"""Sampling decisions for traces."""

import random
import threading
import time
from typing import Callable, Optional


class Sampler:
    """Decides whether a new trace should be recorded and reported."""

    def check(self) -> bool:
        raise NotImplementedError


class ProbabilitySampler(Sampler):
    """Head-based sampler using a fixed probability."""

    def __init__(self, sample_rate: float = 1.0) -> None:
        if not 0.0 <= sample_rate <= 1.0:
            raise ValueError("sample_rate must be between 0.0 and 1.0")
        self.sample_rate = sample_rate

    def check(self) -> bool:
        return random.random() < self.sample_rate


class RateSampler(Sampler):
    """
    Time-based sampler that records at most ``qps`` traces per second.

    A request is sampled when at least ``1 / qps`` seconds have passed since
    the last sampled request. The first request is always sampled.
    """

    def __init__(self, qps: float = 0.1, clock: Optional[Callable[[], float]] = None) -> None:
        if qps <= 0:
            raise ValueError("qps must be positive")
        self.qps = qps
        self._interval = 1.0 / qps
        self._clock = clock or time.monotonic
        self._last_sampled: Optional[float] = None
        self._lock = threading.Lock()

    def check(self) -> bool:
        now = self._clock()
        with self._lock:
            if self._last_sampled is None or now - self._last_sampled >= self._interval:
                self._last_sampled = now
                return True
        return False


class _ConstantSampler(Sampler):
    def __init__(self, decision: bool) -> None:
        self._decision = decision

    def check(self) -> bool:
        return self._decision

    def __repr__(self) -> str:
        return f"_ConstantSampler({self._decision})"


ALWAYS_ON = _ConstantSampler(True)
ALWAYS_OFF = _ConstantSampler(False)
