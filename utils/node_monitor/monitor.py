"""
Polling scheduler that keeps the status cache up to date.
"""

import threading
import logging
from enum import Enum
from typing import Callable, List, Optional

from config import ENABLE_POLLING, HEALTH_CHECK_CONCURRENCY, HEALTH_CHECK_TIMEOUT_MS, POLL_INTERVAL
from utils.models import HealthResult, Node
from utils.store.status_cache import StatusCache
from .health_checker import check_multiple_nodes

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    IDLE = 'idle'
    CHECKING = 'checking'


class NodeMonitor:
    """
    Runs health check cycles over the current node set.

    A cycle is started on start-up, when the node set changes, on manual
    refresh, when the consumer becomes visible again and on every timer tick
    while the consumer is visible. Only one cycle runs at a time: a trigger
    that arrives during a cycle is dropped, not queued.
    """

    def __init__(
        self,
        status_cache: StatusCache,
        nodes: Optional[List[Node]] = None,
        poll_interval: float = POLL_INTERVAL,
        concurrency: int = HEALTH_CHECK_CONCURRENCY,
        timeout_ms: int = HEALTH_CHECK_TIMEOUT_MS,
        enable_polling: bool = ENABLE_POLLING,
        prober: Callable[..., List[HealthResult]] = check_multiple_nodes,
    ):
        """
        Initialize node monitor.

        Args:
            status_cache: Cache receiving the probe results
            nodes: Initial node set
            poll_interval: Seconds between timer ticks
            concurrency: Maximum concurrent probes per cycle
            timeout_ms: Per-probe timeout in milliseconds
            enable_polling: Whether timer ticks run at all
            prober: Batch prober, called as prober(nodes, concurrency, timeout_ms)
        """
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")
        if concurrency <= 0:
            raise ValueError(f"concurrency must be positive, got {concurrency}")

        self.status_cache = status_cache
        self.poll_interval = poll_interval
        self.concurrency = concurrency
        self.timeout_ms = timeout_ms
        self.enable_polling = enable_polling
        self.prober = prober

        self._nodes: List[Node] = list(nodes or [])
        self._visible = True
        self._checking = False
        self._started = False
        self._state_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> SchedulerState:
        return SchedulerState.CHECKING if self._checking else SchedulerState.IDLE

    @property
    def nodes(self) -> List[Node]:
        return list(self._nodes)

    @property
    def is_visible(self) -> bool:
        return self._visible

    @property
    def is_running(self) -> bool:
        return self._started and not self._stop_event.is_set()

    @property
    def is_stopped(self) -> bool:
        return self._stop_event.is_set()

    def start(self):
        """Start the monitoring thread. The first cycle runs immediately."""
        if self._started:
            return
        logger.info(f"Starting NodeMonitor thread ({len(self._nodes)} nodes, {self.poll_interval}s interval)")
        self._started = True
        self._thread = threading.Thread(target=self._run, name='NodeMonitor', daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None):
        """Stop the monitoring thread. Results of an in-flight cycle are dropped."""
        logger.info("Stopping NodeMonitor thread.")
        # Serialized with the cache write in check_all_statuses
        with self._state_lock:
            self._stop_event.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def _run(self):
        """Main monitoring loop."""
        self._safe_check()

        if not self.enable_polling:
            return

        # wait() returns early on stop; ticks missed while hidden are not replayed
        while not self._stop_event.wait(self.poll_interval):
            if self._visible:
                self._safe_check()
            else:
                logger.debug("Consumer not visible, skipping tick")

    def _safe_check(self):
        try:
            self.check_all_statuses()
        except Exception as e:
            logger.error(f"Unexpected error in health check cycle: {e}")

    def check_all_statuses(self) -> Optional[List[HealthResult]]:
        """
        Run one health check cycle in the calling thread.

        Returns:
            The probe results, or None if the cycle was skipped because another
            cycle is running, there are no nodes or the monitor was stopped
        """
        with self._state_lock:
            if self._checking or not self._nodes or self._stop_event.is_set():
                return None
            self._checking = True
            nodes = list(self._nodes)

        try:
            logger.info(f"Starting health check cycle for {len(nodes)} nodes")
            results = self.prober(nodes, self.concurrency, self.timeout_ms)

            with self._state_lock:
                if self._stop_event.is_set():
                    logger.debug("Monitor stopped during cycle, discarding results")
                    return results

                known_ids = {node.node_id for node in self._nodes}
                accepted = [result for result in results if result.node_id in known_ids]
                if len(accepted) != len(results):
                    logger.debug(f"Discarded {len(results) - len(accepted)} results for unknown nodes")
                self.status_cache.update(accepted)
            return results
        finally:
            with self._state_lock:
                self._checking = False

    def refresh(self) -> Optional[List[HealthResult]]:
        """Manual refresh trigger."""
        return self.check_all_statuses()

    def update_nodes(self, nodes: List[Node]) -> Optional[List[HealthResult]]:
        """
        Replace the node set. Cached results of removed nodes are dropped. A
        changed, non-empty set triggers a cycle once the monitor has been
        started.
        """
        nodes = list(nodes)
        with self._state_lock:
            changed = nodes != self._nodes
            self._nodes = nodes
            if changed:
                dropped = self.status_cache.retain(node.node_id for node in nodes)
        if not changed:
            return None

        logger.info(f"Node set changed, now tracking {len(nodes)} nodes")
        if dropped:
            logger.debug(f"Dropped cached results of {dropped} removed nodes")
        if nodes and self.is_running:
            return self.check_all_statuses()
        return None

    def set_visible(self, visible: bool) -> Optional[List[HealthResult]]:
        """
        Record the consumer's foreground state. Becoming visible triggers a
        cycle; while hidden, timer ticks are skipped.
        """
        became_visible = visible and not self._visible
        self._visible = visible
        if became_visible and self.is_running:
            logger.info("Consumer visible again, checking node statuses")
            return self.check_all_statuses()
        return None
