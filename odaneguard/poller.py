# poller.py
"""
Bounded polling of a pending VirusTotal analysis.

An AnalysisPoller owns one background thread. It calls `check` right away,
then every `interval` seconds while the check keeps answering
{"status": "pending"}, and stops at the first success, the first error,
when `timeout` elapses, or when cancel() is called.

    poller = AnalysisPoller(lambda: backend_check(analysis_id, url)).start()
    outcome = poller.wait()
"""

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from odaneguard import config

logger = logging.getLogger("poller")


class PollState(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class PollOutcome:
    state: PollState
    payload: Optional[dict] = None
    message: Optional[str] = None
    attempts: int = 0


class AnalysisPoller:

    def __init__(self, check: Callable[[], dict], interval: Optional[float] = None,
                 timeout: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self._check = check
        self.interval = config.poll_interval() if interval is None else interval
        self.timeout = config.poll_timeout() if timeout is None else timeout
        self._clock = clock
        self._cancel = threading.Event()
        self._done = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._outcome: Optional[PollOutcome] = None
        self._attempts = 0

    @property
    def done(self) -> bool:
        return self._done.is_set()

    @property
    def outcome(self) -> Optional[PollOutcome]:
        return self._outcome

    def start(self) -> "AnalysisPoller":
        if self._thread is not None:
            raise RuntimeError("poller already started")
        self._thread = threading.Thread(target=self._run, name="analysis-poller", daemon=True)
        self._thread.start()
        return self

    def cancel(self) -> None:
        self._cancel.set()

    def wait(self, timeout: Optional[float] = None) -> Optional[PollOutcome]:
        """Block until a terminal outcome (or `timeout` seconds); None if still running."""
        self._done.wait(timeout)
        return self._outcome

    def _finish(self, state: PollState, payload: Optional[dict] = None, message: Optional[str] = None) -> None:
        self._outcome = PollOutcome(state, payload=payload, message=message, attempts=self._attempts)
        self._done.set()
        logger.info("Polling finished: %s after %d attempt(s)", state.value, self._attempts)

    def _run(self) -> None:
        deadline = self._clock() + self.timeout
        while True:
            if self._cancel.is_set():
                return self._finish(PollState.CANCELLED)
            if self._clock() >= deadline:
                return self._finish(PollState.TIMEOUT, message="Analysis timed out. Please try again.")

            self._attempts += 1
            try:
                payload = self._check()
            except Exception as e:
                logger.exception("Status check failed")
                return self._finish(PollState.ERROR, message=str(e))

            status = (payload or {}).get("status")
            if status == "success":
                return self._finish(PollState.SUCCESS, payload=payload)
            if status != "pending":
                message = (payload or {}).get("message") or "Analysis failed"
                return self._finish(PollState.ERROR, payload=payload, message=message)

            remaining = deadline - self._clock()
            if remaining > 0:
                # wakes early on cancel()
                self._cancel.wait(min(self.interval, remaining))


def poll_until_complete(check: Callable[[], dict], interval: Optional[float] = None,
                        timeout: Optional[float] = None) -> PollOutcome:
    poller = AnalysisPoller(check, interval=interval, timeout=timeout).start()
    return poller.wait()
