"""Background worker that runs gateway coroutines off the orchestrator thread."""

import time
import asyncio
import logging
import threading
import queue
from typing import Any, Awaitable, Callable, NamedTuple, Optional

logger = logging.getLogger(__name__)

DoneCallback = Callable[[Any, Optional[Exception]], None]


class WorkerTask(NamedTuple):
    """A task to be processed by the worker thread."""
    name: str
    coroutine_factory: Callable[[], Awaitable[Any]]
    on_done: Optional[DoneCallback]


class BackgroundWorker:
    """Runs submitted coroutines one at a time, in submission order, on its own event loop."""

    def __init__(self, name: str = "gateway"):
        self.name = name
        self.task_queue = queue.Queue()
        self.worker_thread: Optional[threading.Thread] = None
        self.shutdown_event = threading.Event()

    def start(self) -> None:
        """Create and start the worker thread."""
        if self.worker_thread is not None:
            return
        self.shutdown_event.clear()
        self.worker_thread = threading.Thread(target=self._worker_loop, daemon=True)
        self.worker_thread.name = f"worker_{self.name}"
        self.worker_thread.start()
        logger.info(f"Started {self.name} worker")

    def submit(self, name: str, coroutine_factory: Callable[[], Awaitable[Any]],
               on_done: Optional[DoneCallback] = None) -> bool:
        """Queue a coroutine. ``on_done(result, error)`` runs on the worker thread.

        Returns:
            False if the worker is shutting down and the task was not queued
        """
        if self.shutdown_event.is_set():
            logger.warning(f"[{self.name}] Rejecting task '{name}': worker is shutting down")
            return False
        self.task_queue.put(WorkerTask(name, coroutine_factory, on_done))
        return True

    def _worker_loop(self) -> None:
        """The main loop for the worker thread. Owns an asyncio loop."""
        thread_name = threading.current_thread().name
        logger.debug(f"Worker thread {thread_name} starting")

        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)

        try:
            while True:
                # Block indefinitely until a task is available
                task = self.task_queue.get()

                if task is None:
                    # Sentinel value received, time to exit
                    logger.debug(f"Worker {thread_name} received sentinel, exiting.")
                    self.task_queue.task_done()
                    break

                logger.debug(f"Worker {thread_name} running task '{task.name}'")
                result, error = None, None
                try:
                    result = loop.run_until_complete(task.coroutine_factory())
                except Exception as e:
                    logger.debug(f"Task '{task.name}' failed: {e}")
                    error = e

                if task.on_done is not None:
                    try:
                        task.on_done(result, error)
                    except Exception as e:
                        logger.error(f"Completion callback for '{task.name}' failed: {e}", exc_info=True)
                self.task_queue.task_done()
        finally:
            loop.close()
            logger.debug(f"Worker thread {thread_name} exiting and closing its event loop.")

    def shutdown(self, timeout: float = 30.0) -> bool:
        """Let queued tasks finish, then stop the worker thread.

        Returns:
            True if the queue drained before the timeout
        """
        logger.info(f"Shutting down {self.name} worker...")
        self.shutdown_event.set()
        if self.worker_thread is None:
            return True

        drained = True
        start_time = time.time()
        while self.task_queue.unfinished_tasks > 0:
            if time.time() - start_time >= timeout:
                logger.warning(
                    f"[{self.name}] Timeout reached while waiting for queue. "
                    f"{self.task_queue.unfinished_tasks} tasks remain."
                )
                drained = False
                break
            time.sleep(0.05)

        self.task_queue.put(None)
        self.worker_thread.join(2.0)
        if self.worker_thread.is_alive():
            logger.warning(f"Worker thread {self.worker_thread.name} did not terminate cleanly.")
        self.worker_thread = None

        logger.info(f"{self.name} worker shutdown complete.")
        return drained

    def get_pending_task_count(self) -> int:
        """Get the number of pending tasks."""
        return self.task_queue.qsize()
