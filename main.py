import threading
import logging
from typing import List

from api import app
from config import (
    HOST_ADDRESS,
    HOST_PORT,
    REDIS_HOST,
    REDIS_PORT,
    REDIS_DB,
    STORE_FALLBACK_PATH,
    REGISTRY_REFRESH_INTERVAL,
)
from utils.errors import RegistryError
from utils.models import Node
from utils.node_monitor.monitor import NodeMonitor
from utils.redis import get_redis_client
from utils.registry import MetadataService, RegistryClient
from utils.store import NodeStore

logging.basicConfig(level=logging.INFO, format='[%(asctime)s] %(levelname)s in %(module)s: %(message)s')
logger = logging.getLogger(__name__)


def setup_store() -> NodeStore:
    """
    Connect the durable key-value store and restore cached state.
    """
    client = get_redis_client(REDIS_HOST, REDIS_PORT, REDIS_DB, fallback_path=STORE_FALLBACK_PATH)
    return NodeStore(client).rehydrate()


def load_nodes(registry: RegistryClient) -> List[Node]:
    try:
        return registry.list_nodes()
    except RegistryError as e:
        logger.error(f"Initial node registry read failed: {e}")
        return []


def watch_registry(registry: RegistryClient, monitor: NodeMonitor, metadata_service: MetadataService,
                   stop_event: threading.Event):
    """
    Periodically re-read the registry, feed node set changes to the monitor
    and fill the metadata cache.
    """
    while True:
        try:
            metadata_service.fetch_all_metadata(node.node_id for node in monitor.nodes)
        except Exception as e:
            logger.error(f"Error fetching node metadata: {e}")

        if stop_event.wait(REGISTRY_REFRESH_INTERVAL):
            break

        try:
            monitor.update_nodes(registry.list_nodes())
        except RegistryError as e:
            logger.error(f"Node registry read failed, keeping {len(monitor.nodes)} known nodes: {e}")
        except Exception as e:
            logger.error(f"Unexpected error in registry watch loop: {e}")


def setup_server(store: NodeStore, monitor: NodeMonitor, registry: RegistryClient):
    """
    Set up and start the Flask status API.
    """
    app.config["NODE_STORE"] = store
    app.config["NODE_MONITOR"] = monitor
    app.config["REGISTRY"] = registry
    logger.info(f"Starting Flask API server at {HOST_ADDRESS}:{HOST_PORT}")
    app.run(host=HOST_ADDRESS, port=HOST_PORT, threaded=True)


def main():
    """
    Node status monitor entry point.
    """
    logger.info("Starting Node Status Monitor")

    store = setup_store()
    registry = RegistryClient()
    metadata_service = MetadataService(store.metadata_cache, registry)

    nodes = load_nodes(registry)
    logger.info(f"Tracking {len(nodes)} nodes")

    monitor = NodeMonitor(store.status_cache, nodes)
    monitor.start()

    stop_event = threading.Event()
    watcher = threading.Thread(
        target=watch_registry,
        args=(registry, monitor, metadata_service, stop_event),
        name="RegistryWatcher",
        daemon=True,
    )
    watcher.start()

    try:
        setup_server(store, monitor, registry)
    except KeyboardInterrupt:
        pass
    finally:
        logger.info("Shutting down Node Status Monitor...")
        stop_event.set()
        monitor.stop(timeout=5)
        watcher.join(timeout=5)
        logger.info("Shutdown complete")


if __name__ == "__main__":
    main()
