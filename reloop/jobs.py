"""
Detached background jobs.

Work handed to the runner is not awaited by the caller; progress is observed
through the document store.
"""

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

from reloop.utils.logger import logger


class BackgroundJobRunner:
    """Runs jobs on a small thread pool."""

    def __init__(self, max_workers: int = 4):
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="reloop-job")

    def dispatch(self, func: Callable[..., Any], *args, **kwargs) -> Future:
        future = self.executor.submit(func, *args, **kwargs)
        future.add_done_callback(self._log_failure)
        return future

    @staticmethod
    def _log_failure(future: Future):
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"Background job crashed: {error}")

    def shutdown(self, wait: bool = True):
        self.executor.shutdown(wait=wait)


class InlineJobRunner:
    """Runs jobs immediately in the calling thread."""

    def dispatch(self, func: Callable[..., Any], *args, **kwargs) -> Future:
        future: Future = Future()
        try:
            future.set_result(func(*args, **kwargs))
        except Exception as e:
            logger.error(f"Inline job crashed: {e}")
            future.set_exception(e)
        return future

    def shutdown(self, wait: bool = True):
        pass
