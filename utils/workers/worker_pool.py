import itertools
import logging
from typing import Dict, List, Any, Callable, Optional
from concurrent.futures import Future, ThreadPoolExecutor, wait

from config import HEALTH_CHECK_CONCURRENCY

logger = logging.getLogger(__name__)


class WorkerPool:
    """
    Thread pool for fanning out blocking network calls to nodes.
    """

    def __init__(self, max_workers: Optional[int] = None, name: str = 'worker'):
        self.max_workers = max_workers or HEALTH_CHECK_CONCURRENCY
        self.name = name
        self.executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix=name)
        self.results: Dict[str, Dict[str, Any]] = {}
        self.is_running = False
        self._task_counter = itertools.count(1)

        logger.debug(f"Worker pool '{name}' initialized with {self.max_workers} workers")

    def submit_task(self, task_func: Callable, *args, **kwargs) -> str:
        """
        Submit a task to the worker pool.
        Returns a task ID for tracking.
        """
        if not self.is_running:
            self.start()

        task_id = f"{self.name}_{next(self._task_counter)}"
        future = self.executor.submit(task_func, *args, **kwargs)

        self.results[task_id] = {
            'future': future,
            'status': 'pending',
        }
        future.add_done_callback(lambda f, tid=task_id: self._mark_done(tid, f))

        logger.debug(f"Task {task_id} submitted to worker pool")
        return task_id

    def _mark_done(self, task_id: str, future: Future):
        task_info = self.results.get(task_id)
        if task_info is None:
            return
        if future.cancelled():
            task_info['status'] = 'cancelled'
        elif future.exception() is not None:
            task_info['status'] = 'failed'
        else:
            task_info['status'] = 'completed'

    def run_batch(self, tasks: List[tuple], timeout: Optional[float] = None) -> List[Future]:
        """
        Submit multiple tasks and block until every one of them has finished.
        Each task should be a tuple: (task_func, args, kwargs)

        Returns the futures in submission order.
        """
        task_ids = [self.submit_task(task_func, *args, **kwargs) for task_func, args, kwargs in tasks]
        futures = [self.results[task_id]['future'] for task_id in task_ids]

        wait(futures, timeout=timeout)
        logger.debug(f"Batch of {len(futures)} tasks finished in worker pool '{self.name}'")
        return futures

    def start(self):
        """
        Start the worker pool.
        """
        if not self.is_running:
            self.is_running = True
            logger.debug(f"Worker pool '{self.name}' started")

    def stop(self, wait: bool = True):
        """
        Stop the worker pool and wait for tasks to complete if requested.
        """
        if self.is_running:
            self.is_running = False
            self.executor.shutdown(wait=wait)
            logger.debug(f"Worker pool '{self.name}' stopped")

    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the worker pool.
        """
        statuses = [info['status'] for info in self.results.values()]

        return {
            'total_tasks': len(statuses),
            'pending': statuses.count('pending'),
            'completed': statuses.count('completed'),
            'failed': statuses.count('failed'),
            'cancelled': statuses.count('cancelled'),
            'max_workers': self.max_workers,
            'is_running': self.is_running
        }

    def __enter__(self):
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.stop(wait=True)
