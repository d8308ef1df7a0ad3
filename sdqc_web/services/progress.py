from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Optional, Sequence


@dataclass(frozen=True)
class ProgressStep:
    percent: int
    label: str


# Cosmetic: a fixed timed sequence, not tied to real transfer progress
PROGRESS_STEPS: tuple[ProgressStep, ...] = (
    ProgressStep(10, "Uploading PDF..."),
    ProgressStep(25, "Extracting pages..."),
    ProgressStep(45, "Analyzing drawing..."),
    ProgressStep(70, "Checking spelling & formatting..."),
    ProgressStep(85, "Validating requirements..."),
    ProgressStep(95, "Generating report..."),
)


class ProgressTicker:
    """
    Walks PROGRESS_STEPS on a background timer.

    Progress only moves forward, stops at the last step (never 100 on its
    own) and stays put once cancelled. `complete()` is the only way to 100.
    """

    def __init__(
        self,
        steps: Sequence[ProgressStep] = PROGRESS_STEPS,
        interval_seconds: float = 1.2,
        on_tick: Optional[Callable[[int, str], None]] = None,
    ):
        self._steps = tuple(steps)
        self._interval = interval_seconds
        self._on_tick = on_tick
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._percent = 0
        self._label = ""

    @property
    def percent(self) -> int:
        with self._lock:
            return self._percent

    @property
    def label(self) -> str:
        with self._lock:
            return self._label

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _advance(self, percent: int, label: str) -> bool:
        with self._lock:
            if self._stop.is_set() or percent <= self._percent:
                return False
            self._percent = percent
            self._label = label
        if self._on_tick:
            self._on_tick(percent, label)
        return True

    def _run(self) -> None:
        for step in self._steps:
            if self._stop.wait(self._interval):
                return
            self._advance(min(step.percent, 99), step.label)

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("ProgressTicker already started")
        self._thread = threading.Thread(target=self._run, name="progress-ticker", daemon=True)
        self._thread.start()

    def cancel(self) -> None:
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=self._interval + 1)

    def complete(self, label: str = "Done") -> None:
        self.cancel()
        with self._lock:
            self._percent = 100
            self._label = label
        if self._on_tick:
            self._on_tick(100, label)
