"""
Single-flight background parsing.

A ParseChannel hands one parse job at a time to a worker process so that a
large export never stalls the caller. Requests posted while a job is in
flight are rejected with LoadBlocked instead of being queued.
"""

import logging
import threading
from concurrent.futures import Executor, Future, ProcessPoolExecutor
from concurrent.futures.process import BrokenProcessPool
from enum import Enum
from typing import Any, Callable, Optional

from cite_core.exceptions import LoadBlocked, LoadFailed
from cite_core.parsing import parse_request

logger = logging.getLogger(__name__)


class ChannelState(Enum):
    IDLE = "idle"
    BUSY = "busy"


class ParseChannel:
    """Worker channel with an Idle/Busy state machine and one pending slot."""

    def __init__(self, job: Callable[[Any], Any] = parse_request,
                 executor: Optional[Executor] = None):
        """
        Args:
            job: Picklable callable run in the worker for each request
            executor: Executor to run jobs on. When omitted the channel owns a
                single-process ProcessPoolExecutor, created on first use.
        """
        self._job = job
        self._executor = executor
        self._owns_executor = executor is None
        self._lock = threading.Lock()
        self._pending: Optional[Future] = None

    @property
    def state(self) -> ChannelState:
        with self._lock:
            return ChannelState.BUSY if self._in_flight() else ChannelState.IDLE

    @property
    def busy(self) -> bool:
        return self.state is ChannelState.BUSY

    def post(self, request: Any,
             on_dispatch: Optional[Callable[[Future], None]] = None) -> Future:
        """
        Dispatch a request to the worker.

        Args:
            request: Request handed to the job
            on_dispatch: Called with the job's future while the channel is
                still locked, so no other post can be dispatched in between

        Returns:
            Future resolving to the job result, or failing with the job's error

        Raises:
            LoadBlocked: if a previous request is still in flight
        """
        with self._lock:
            if self._in_flight():
                raise LoadBlocked("A bibliography parse is already in progress")
            try:
                future = self._get_executor().submit(self._job, request)
            except (RuntimeError, BrokenProcessPool) as e:
                logger.error(f"Could not dispatch parse job: {e}")
                self._discard_executor()
                future = Future()
                future.set_exception(LoadFailed(f"Could not start parse worker: {e}"))
            else:
                self._pending = future
            if on_dispatch is not None:
                on_dispatch(future)
        future.add_done_callback(self._on_done)
        return future

    def shutdown(self, wait: bool = True) -> None:
        """Stop the owned worker process, if any."""
        with self._lock:
            executor = self._executor if self._owns_executor else None
            self._executor = None if self._owns_executor else self._executor
        if executor is not None:
            executor.shutdown(wait=wait)

    def __enter__(self) -> 'ParseChannel':
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()

    def _in_flight(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def _get_executor(self) -> Executor:
        if self._executor is None:
            self._executor = ProcessPoolExecutor(max_workers=1)
        return self._executor

    def _discard_executor(self) -> None:
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None

    def _on_done(self, future: Future) -> None:
        with self._lock:
            if self._pending is future:
                self._pending = None
            if not future.cancelled() and isinstance(future.exception(), BrokenProcessPool):
                logger.warning("Parse worker crashed; a new worker will be started on the next request")
                self._discard_executor()
