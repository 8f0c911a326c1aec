import logging
from flask import Flask, request, jsonify, current_app

from utils.errors import RegistryError
from utils.models import NodeFilterType
from utils.node_filter import filter_nodes
from utils.node_monitor.health_checker import check_node_health
from utils.node_monitor.monitor import SchedulerState
from utils.node_monitor.network_status import compute_network_status, count_statuses, get_status_config

app = Flask(__name__)
logger = logging.getLogger(__name__)


def _store():
    return current_app.config["NODE_STORE"]


def _monitor():
    return current_app.config["NODE_MONITOR"]


def _find_node(node_id: int):
    for node in _monitor().nodes:
        if node.node_id == node_id:
            return node
    return None


def _node_payload(node, statuses, metadata_cache):
    payload = node.to_dict()
    health = statuses.get(node.node_id)
    metadata = metadata_cache.get(node.node_id)
    payload["health"] = health.to_dict() if health else None
    payload["metadata"] = metadata.to_dict() if metadata else None
    return payload


@app.route("/health", methods=["GET"])
def service_health():
    monitor = _monitor()
    return jsonify({
        "status": "ok",
        "monitor": monitor.state.value,
        "polling": monitor.is_running,
        "visible": monitor.is_visible,
        "nodes": len(monitor.nodes),
    })


@app.route("/status", methods=["GET"])
def network_status():
    nodes = _monitor().nodes
    # One snapshot for both the aggregate and the counts
    statuses = _store().status_cache.snapshot()

    info = compute_network_status(nodes, statuses)
    payload = info.to_dict()
    payload.update(get_status_config(info.status))
    payload["counts"] = count_statuses(nodes, statuses)
    return jsonify(payload)


@app.route("/nodes", methods=["GET"])
def list_nodes():
    store = _store()
    filter_value = request.args.get("filter") or store.filter_type.value
    try:
        filter_type = NodeFilterType(filter_value)
    except ValueError:
        return jsonify({"error": f"Unknown filter: {filter_value}"}), 400

    nodes = _monitor().nodes
    statuses = store.status_cache.snapshot()
    metadata = {node.node_id: store.metadata_cache.get(node.node_id) for node in nodes}
    selected = filter_nodes(nodes, filter_type, request.args.get("q", ""), statuses, metadata)

    return jsonify({
        "filter": filter_type.value,
        "nodes": [_node_payload(node, statuses, metadata) for node in selected],
    })


@app.route("/nodes/<int:node_id>", methods=["GET"])
def get_node(node_id: int):
    node = _find_node(node_id)
    if node is None:
        return jsonify({"error": f"Node {node_id} not found"}), 404

    store = _store()
    return jsonify(_node_payload(node, store.status_cache.snapshot(), store.metadata_cache))


@app.route("/nodes/<int:node_id>/check", methods=["POST"])
def check_node(node_id: int):
    node = _find_node(node_id)
    if node is None:
        return jsonify({"error": f"Node {node_id} not found"}), 404

    result = check_node_health(node.node_id, node.http_address, _monitor().timeout_ms)
    _store().status_cache.set(node.node_id, result)
    return jsonify(result.to_dict())


@app.route("/nodes/reload", methods=["POST"])
def reload_nodes():
    registry = current_app.config["REGISTRY"]
    try:
        nodes = registry.list_nodes()
    except RegistryError as e:
        logger.error(f"Node registry read failed: {e}")
        return jsonify({"error": "Failed to read node registry"}), 502

    _monitor().update_nodes(nodes)
    return jsonify({"nodes": len(nodes)})


@app.route("/refresh", methods=["POST"])
def refresh():
    monitor = _monitor()
    if monitor.is_stopped:
        return jsonify({"error": "Node monitor is stopped"}), 503
    if monitor.state == SchedulerState.CHECKING:
        return jsonify({"error": "A health check is already running"}), 409

    results = monitor.refresh()
    if results is None:
        if not monitor.nodes:
            return jsonify({"checked": 0})
        return jsonify({"error": "A health check is already running"}), 409
    return jsonify({"checked": len(results)})


@app.route("/visibility", methods=["PUT"])
def set_visibility():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return jsonify({"error": "Expected a JSON object"}), 400
    visible = body.get("visible")
    if not isinstance(visible, bool):
        return jsonify({"error": "'visible' must be a boolean"}), 400

    results = _monitor().set_visible(visible)
    return jsonify({"visible": visible, "checked": len(results) if results is not None else 0})


@app.route("/preferences/filter", methods=["PUT"])
def set_filter_preference():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return jsonify({"error": "Expected a JSON object"}), 400
    try:
        _store().set_filter_type(body.get("filter"))
    except ValueError:
        return jsonify({"error": f"Unknown filter: {body.get('filter')}"}), 400
    return jsonify({"filter": _store().filter_type.value})
