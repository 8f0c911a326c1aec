# Workers subpackage for bounded concurrent fan-out

from .worker_pool import WorkerPool

__all__ = ['WorkerPool']
