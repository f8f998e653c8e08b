"""A pausable pool of worker threads that run submitted callables."""

from __future__ import annotations

import os
import threading
from collections import deque
from concurrent.futures import Future
from typing import Any, Callable, Deque, List, Optional, Tuple

_Task = Tuple[Callable[[], Any], Future]


class ThreadPool:
    """Runs submitted callables on a fixed set of worker threads.

    Tasks can only be submitted while the pool is running. Pausing stops
    workers from taking new tasks; stopping lets them finish everything
    already queued before they exit.
    """

    def __init__(self, workers: Optional[int] = None) -> None:
        if workers is None:
            workers = os.cpu_count() or 1
        if workers < 1:
            raise ValueError("A thread pool needs at least one worker")
        self._worker_count = workers
        self._workers: List[threading.Thread] = []
        self._tasks: Deque[_Task] = deque()
        self._condition = threading.Condition()
        self._running = False
        self._paused = False
        self._active = 0

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        """Queue ``fn(*args, **kwargs)`` and return a future for its result."""
        future: Future = Future()
        with self._condition:
            if not self._running:
                raise RuntimeError("ThreadPool not running")
            self._tasks.append((lambda: fn(*args, **kwargs), future))
            self._condition.notify()
        return future

    def start(self) -> None:
        """Start the workers; does nothing if the pool is already running."""
        with self._condition:
            if self._running:
                return
            self._running = True
            self._paused = False
            for index in range(self._worker_count):
                worker = threading.Thread(
                    target=self._work, name=f"mtfs-worker-{index}", daemon=True
                )
                self._workers.append(worker)
                worker.start()

    def stop(self) -> None:
        """Stop accepting tasks, let the queue drain and join every worker."""
        with self._condition:
            self._running = False
            self._paused = False
            self._condition.notify_all()
            workers, self._workers = self._workers, []
        for worker in workers:
            if worker is not threading.current_thread():
                worker.join()

    def pause(self) -> None:
        """Keep workers from taking new tasks until resumed."""
        with self._condition:
            self._paused = True

    def resume(self) -> None:
        """Let workers take tasks again."""
        with self._condition:
            self._paused = False
            self._condition.notify_all()

    def is_running(self) -> bool:
        """Whether the pool accepts tasks."""
        with self._condition:
            return self._running

    def is_paused(self) -> bool:
        """Whether the pool is paused."""
        with self._condition:
            return self._paused

    def active_threads(self) -> int:
        """Number of workers currently running a task."""
        with self._condition:
            return self._active

    def queued_tasks(self) -> int:
        """Number of tasks waiting for a worker."""
        with self._condition:
            return len(self._tasks)

    def _ready(self) -> bool:
        return not self._running or (not self._paused and bool(self._tasks))

    def _work(self) -> None:
        while True:
            with self._condition:
                self._condition.wait_for(self._ready)
                if not self._running and not self._tasks:
                    return
                if self._paused:
                    continue
                call, future = self._tasks.popleft()
                self._active += 1
            try:
                if future.set_running_or_notify_cancel():
                    try:
                        result = call()
                    except BaseException as exc:  # the future carries the failure
                        future.set_exception(exc)
                    else:
                        future.set_result(result)
            finally:
                with self._condition:
                    if self._active > 0:
                        self._active -= 1