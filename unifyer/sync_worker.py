"""
Sync Worker - runs blocking network operations in background threads.

Uses ThreadPoolExecutor so several subscriptions can sync at once.
Results are delivered through optional callbacks as operations complete.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait as wait_futures
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class SyncWorker:
    """
    Runs sync operations in background threads.

    on_finished(operation_id, result) or on_error(operation_id, message) is
    called from the worker thread when an operation completes.
    """

    def __init__(
        self,
        max_workers: int = 3,
        on_finished: Optional[Callable[[str, Any], None]] = None,
        on_error: Optional[Callable[[str, str], None]] = None,
    ):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="sync")
        self._pending: dict[str, Future] = {}
        self._on_finished = on_finished
        self._on_error = on_error

    def submit(self, operation_id: str, func: Callable, *args, **kwargs) -> Future:
        """
        Submit a blocking operation to run in a background thread.

        Args:
            operation_id: Unique identifier for this operation (for callback matching)
            func: The blocking function to run
            *args, **kwargs: Arguments to pass to func

        Returns:
            The Future of the operation.
        """
        future = self._executor.submit(func, *args, **kwargs)
        self._pending[operation_id] = future
        future.add_done_callback(lambda f: self._on_done(operation_id, f))
        return future

    def _on_done(self, operation_id: str, future: Future) -> None:
        """Handle completion of a background operation."""
        self._pending.pop(operation_id, None)
        if future.cancelled():
            logger.debug("Operation %s cancelled", operation_id)
            return

        error = future.exception()
        if error is None:
            if self._on_finished:
                self._on_finished(operation_id, future.result())
            return

        error_msg = f"{type(error).__name__}: {error}"
        logger.warning("Operation '%s' failed: %s", operation_id, error_msg)
        if self._on_error:
            self._on_error(operation_id, error_msg)

    def is_pending(self, operation_id: str) -> bool:
        """Check if an operation is still pending."""
        return operation_id in self._pending

    def cancel(self, operation_id: str) -> bool:
        """
        Attempt to cancel a pending operation.

        Returns True if cancelled, False if already running or completed.
        """
        future = self._pending.get(operation_id)
        if future:
            return future.cancel()
        return False

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until all pending operations finish. False on timeout."""
        _, not_done = wait_futures(list(self._pending.values()), timeout=timeout)
        return not not_done

    def shutdown(self, wait: bool = True) -> None:
        """Shutdown the executor, optionally waiting for pending operations."""
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> 'SyncWorker':
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown(wait=True)
