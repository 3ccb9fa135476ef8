"""A named background thread that runs a work loop and can be stopped and restarted."""

from __future__ import annotations

import signal
import threading
from abc import ABC, abstractmethod
from enum import Enum

from hashminer.log import Channel, log_line, set_thread_name

__all__ = ["WorkerState", "Worker"]


class WorkerState(Enum):
    """Life cycle of a worker thread."""

    STARTING = 0
    STARTED = 1
    STOPPING = 2
    STOPPED = 3
    KILLING = 4


class Worker(ABC):
    """Runs ``work_loop`` on its own thread each time it is started.

    The thread is created on the first start and then parked between runs;
    ``close`` ends it for good. ``work_loop`` should return once
    ``should_stop`` becomes true.
    """

    def __init__(self, name: str, exit_on_error: bool = False) -> None:
        self.name = name
        self.exit_on_error = exit_on_error
        self.last_error: BaseException | None = None
        self._work_lock = threading.Lock()
        self._cond = threading.Condition()
        self._state = WorkerState.STARTING
        self._thread: threading.Thread | None = None

    @property
    def state(self) -> WorkerState:
        """The current state of the worker."""
        with self._cond:
            return self._state

    def _compare_exchange(self, expected: WorkerState, new: WorkerState) -> bool:
        with self._cond:
            if self._state is not expected:
                return False
            self._state = new
            self._cond.notify_all()
            return True

    def _set_state(self, new: WorkerState) -> WorkerState:
        with self._cond:
            previous = self._state
            self._state = new
            self._cond.notify_all()
            return previous

    def _run(self) -> None:
        set_thread_name(self.name)
        while self.state is not WorkerState.KILLING:
            self._compare_exchange(WorkerState.STARTING, WorkerState.STARTED)
            try:
                self.work_loop()
            except Exception as exc:
                self.last_error = exc
                log_line(Channel.WARN, f"Exception thrown in Worker thread: {exc}")
                if self.exit_on_error:
                    log_line(Channel.WARN, "Terminating due to --exit")
                    signal.raise_signal(signal.SIGTERM)

            with self._cond:
                previous = self._state
                self._state = WorkerState.STOPPED
                if previous in (WorkerState.KILLING, WorkerState.STARTING):
                    self._state = previous
                self._cond.notify_all()
                self._cond.wait_for(lambda: self._state is not WorkerState.STOPPED)

    def start_working(self) -> None:
        """Start the work loop, creating the thread on first use; waits until it runs."""
        with self._work_lock:
            if self._thread is not None:
                self._compare_exchange(WorkerState.STOPPED, WorkerState.STARTING)
            else:
                self._set_state(WorkerState.STARTING)
                self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
                self._thread.start()
        with self._cond:
            self._cond.wait_for(lambda: self._state is not WorkerState.STARTING)

    def trigger_stop_working(self) -> None:
        """Ask the work loop to stop without waiting for it."""
        with self._work_lock:
            if self._thread is not None:
                self._compare_exchange(WorkerState.STARTED, WorkerState.STOPPING)

    def stop_working(self) -> None:
        """Ask the work loop to stop and wait until it has."""
        with self._work_lock:
            if self._thread is not None:
                self._compare_exchange(WorkerState.STARTED, WorkerState.STOPPING)
                with self._cond:
                    self._cond.wait_for(lambda: self._state is WorkerState.STOPPED)

    def should_stop(self) -> bool:
        """Return whether the work loop ought to return."""
        return self.state is not WorkerState.STARTED

    def close(self) -> None:
        """End the worker thread for good and wait for it."""
        with self._work_lock:
            if self._thread is not None:
                self._set_state(WorkerState.KILLING)
                self._thread.join()
                self._thread = None

    def __enter__(self) -> Worker:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @abstractmethod
    def work_loop(self) -> None:
        """Do the work until ``should_stop`` returns true."""