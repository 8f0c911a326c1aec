"""
Health checking for registry nodes over gRPC-Web.

Each probe calls the node's GetVersion method with an empty message and
decodes the version string from the answer.
"""

import time
import logging
import requests
from urllib3.exceptions import ReadTimeoutError
from typing import Dict, List, Optional, Iterable

from config import HEALTH_CHECK_TIMEOUT_MS, HEALTH_CHECK_CONCURRENCY, VERSION_SERVICE_PATH
from utils.errors import ConfigurationError, ProbeTimeoutError, ProtocolError, TransportError
from utils.models import HealthResult, Node, NodeStatus
from utils.workers.worker_pool import WorkerPool

logger = logging.getLogger(__name__)

GRPC_WEB_HEADERS = {
    'Content-Type': 'application/grpc-web',
    'Accept': 'application/grpc-web',
}

# 1 flag byte + 4 byte big-endian length
FRAME_HEADER_SIZE = 5

# protobuf tag for field 1, wire type 2 (length-delimited)
VERSION_FIELD_TAG = 0x0A


def create_empty_grpc_web_request() -> bytes:
    """Frame an empty protobuf message: zero flags and zero length."""
    return bytes(FRAME_HEADER_SIZE)


def parse_version_response(data: bytes) -> Optional[str]:
    """
    Extract the version string from a GetVersion gRPC-Web response.

    Only a single-byte length is understood. Anything that does not match the
    expected layout yields None rather than an exception.
    """
    if len(data) < FRAME_HEADER_SIZE + 2:
        return None

    if data[FRAME_HEADER_SIZE] != VERSION_FIELD_TAG:
        return None

    length = data[FRAME_HEADER_SIZE + 1]
    if length & 0x80:
        # Multi-byte varint length, not supported
        return None

    start = FRAME_HEADER_SIZE + 2
    version = data[start:start + length].decode('utf-8', errors='replace')
    return version or None


def normalize_address(http_address: str) -> str:
    """
    Default to https and drop one trailing slash.

    Raises:
        ConfigurationError: If the address is empty
    """
    base_url = (http_address or '').strip()
    if not base_url:
        raise ConfigurationError("No HTTP address configured")
    if not base_url.startswith('http://') and not base_url.startswith('https://'):
        base_url = f"https://{base_url}"
    if base_url.endswith('/'):
        base_url = base_url[:-1]
    return base_url


def build_version_url(http_address: str, service_path: str = VERSION_SERVICE_PATH) -> str:
    return f"{normalize_address(http_address)}/{service_path}"


def _check_deadline(deadline: float):
    if time.monotonic() > deadline:
        raise ProbeTimeoutError("Request timeout")


def request_version(url: str, timeout_ms: int, session=None) -> Optional[str]:
    """
    POST the empty GetVersion request and decode the answer.

    `timeout_ms` bounds the whole exchange. requests only applies its timeout
    to the connect and to each socket read, so the body is streamed byte by
    byte and checked against a deadline.

    Raises:
        ProbeTimeoutError: The request timed out
        TransportError: The connection could not be established
        ProtocolError: The node answered with a non-2xx status
    """
    http = session or requests
    timeout = timeout_ms / 1000
    deadline = time.monotonic() + timeout
    body = bytearray()
    try:
        response = http.post(
            url,
            data=create_empty_grpc_web_request(),
            headers=GRPC_WEB_HEADERS,
            timeout=timeout,
            stream=True,
        )
        try:
            _check_deadline(deadline)
            if not 200 <= response.status_code < 300:
                raise ProtocolError(f"HTTP {response.status_code}: {response.reason}",
                                    status_code=response.status_code)

            # The version frame is a few dozen bytes at most
            for chunk in response.iter_content(chunk_size=1):
                body.extend(chunk)
                _check_deadline(deadline)
        finally:
            response.close()
    except requests.exceptions.Timeout as e:
        raise ProbeTimeoutError("Request timeout") from e
    except requests.exceptions.ConnectionError as e:
        # iter_content reports a stalled body read as a ConnectionError
        if e.args and isinstance(e.args[0], ReadTimeoutError):
            raise ProbeTimeoutError("Request timeout") from e
        raise TransportError(str(e) or "Connection failed") from e

    return parse_version_response(bytes(body))


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def check_node_health(node_id: int, http_address: str, timeout_ms: int = HEALTH_CHECK_TIMEOUT_MS,
                      session=None) -> HealthResult:
    """
    Check the health of a single node by calling its GetVersion endpoint.

    Never raises: every outcome is reported as a HealthResult.

    Args:
        node_id: The node ID
        http_address: The node's HTTP address as published in the registry
        timeout_ms: Request timeout in milliseconds
        session: Optional requests.Session to issue the request with

    Returns:
        HealthResult for this attempt
    """
    try:
        url = build_version_url(http_address)
    except ConfigurationError as e:
        logger.warning(f"Node {node_id} has no HTTP address")
        return HealthResult(node_id=node_id, http_address='', status=NodeStatus.UNKNOWN, error=str(e))

    logger.debug(f"Checking node {node_id} at {url}")
    start_time = time.monotonic()

    try:
        version = request_version(url, timeout_ms, session=session)
    except ProbeTimeoutError as e:
        return HealthResult(node_id=node_id, http_address=http_address, status=NodeStatus.OFFLINE,
                            latency_ms=_elapsed_ms(start_time), error=str(e))
    except TransportError as e:
        return HealthResult(node_id=node_id, http_address=http_address, status=NodeStatus.OFFLINE,
                            latency_ms=_elapsed_ms(start_time), error=str(e))
    except ProtocolError as e:
        return HealthResult(node_id=node_id, http_address=http_address, status=NodeStatus.ERROR,
                            latency_ms=_elapsed_ms(start_time), error=str(e))
    except Exception as e:
        logger.warning(f"Unexpected error checking node {node_id}: {e}")
        return HealthResult(node_id=node_id, http_address=http_address, status=NodeStatus.ERROR,
                            latency_ms=_elapsed_ms(start_time), error=str(e) or type(e).__name__)

    # A responding endpoint is online even when the version can't be decoded
    return HealthResult(
        node_id=node_id,
        http_address=http_address,
        status=NodeStatus.ONLINE,
        version=version or 'unknown',
        latency_ms=_elapsed_ms(start_time),
    )


def _chunks(nodes: List[Node], size: int) -> Iterable[List[Node]]:
    for i in range(0, len(nodes), size):
        yield nodes[i:i + size]


def check_multiple_nodes(nodes: List[Node], concurrency: int = HEALTH_CHECK_CONCURRENCY,
                         timeout_ms: int = HEALTH_CHECK_TIMEOUT_MS, session=None) -> List[HealthResult]:
    """
    Check the health of multiple nodes, at most `concurrency` at a time.

    Nodes are probed in sequential chunks; the next chunk starts only once
    every probe of the current one has finished. One result is returned per
    input node.

    Args:
        nodes: Nodes to check
        concurrency: Chunk size and maximum number of concurrent requests
        timeout_ms: Timeout per request in milliseconds
        session: Optional requests.Session shared by all probes

    Returns:
        Health results in chunk order
    """
    if concurrency <= 0:
        raise ValueError(f"concurrency must be positive, got {concurrency}")

    nodes = list(nodes)
    results: List[HealthResult] = []
    if not nodes:
        return results

    with WorkerPool(max_workers=concurrency, name='probe') as pool:
        for chunk in _chunks(nodes, concurrency):
            futures = pool.run_batch([
                (check_node_health, (node.node_id, node.http_address, timeout_ms), {'session': session})
                for node in chunk
            ])
            for node, future in zip(chunk, futures):
                error = future.exception()
                if error is not None:
                    logger.error(f"Probe for node {node.node_id} failed: {error}")
                    results.append(HealthResult(node_id=node.node_id, http_address=node.http_address,
                                                status=NodeStatus.ERROR, error=str(error)))
                else:
                    results.append(future.result())

    online = sum(1 for r in results if r.status == NodeStatus.ONLINE)
    logger.info(f"Health check complete: {online}/{len(results)} nodes online")
    return results


def create_health_result_map(results: Iterable[HealthResult]) -> Dict[int, HealthResult]:
    """Map node IDs to their results; a later result for the same node wins."""
    return {result.node_id: result for result in results}
