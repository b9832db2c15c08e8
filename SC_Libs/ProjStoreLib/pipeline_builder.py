"""
Pipeline Builder for Render Graph Execution

This module turns a render graph (node dicts plus connections) into staged
execution plans. Each node is assigned a stage one past the highest stage of
its inputs, so Tint -> Adjust -> Composite -> Encode -> Output runs as five
single-node stages while independent branches share a stage.

Partial "update" pipelines re-run only the changed node and everything
downstream of it; inputs that fall outside the partial plan are read from a
cache of earlier results.
"""

import concurrent.futures
import logging
from collections import deque
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from SC_Libs.constants import (
    FIELD_FROM_NODE,
    FIELD_NODE_ID,
    FIELD_NODE_TYPE,
    FIELD_TO_NODE,
)

logger = logging.getLogger(__name__)


class PipelineExecutionError(RuntimeError):
    """A node raised while the pipeline was running."""

    def __init__(self, node_id: str, node_type: str, cause: BaseException):
        self.node_id = node_id
        self.node_type = node_type
        super().__init__(f"Error executing node {node_id} ({node_type}): {cause}")


def _empty_pipeline() -> Dict[str, Any]:
    return {"stages": [], "max_stage": -1, "execution_order": []}


def _node_id(node: Dict[str, Any]) -> str:
    return str(node.get(FIELD_NODE_ID, "")).strip()


def _edge(connection: Dict[str, str]) -> Tuple[str, str]:
    return (
        str(connection.get(FIELD_FROM_NODE, "")).strip(),
        str(connection.get(FIELD_TO_NODE, "")).strip(),
    )


def build_dependency_map(nodes: List[Dict[str, Any]], connections: List[Dict[str, str]]) -> Dict[str, List[str]]:
    """
    Build a mapping of each node to its input dependencies.

    Input order follows connection order, which is the order executors see
    their inputs in (e.g. template before overlay).

    Example:
        >>> nodes = [{"id": "tint"}, {"id": "adjust"}]
        >>> build_dependency_map(nodes, [{"from_node": "tint", "to_node": "adjust"}])
        {'tint': [], 'adjust': ['tint']}
    """
    dependencies: Dict[str, List[str]] = {}
    for node in nodes:
        node_id = _node_id(node)
        if node_id:
            dependencies[node_id] = []

    for connection in connections:
        from_node, to_node = _edge(connection)
        if from_node and to_node in dependencies and from_node not in dependencies[to_node]:
            dependencies[to_node].append(from_node)

    return dependencies


def calculate_pipeline_stages(
    nodes: List[Dict[str, Any]],
    dependencies: Dict[str, List[str]]
) -> Dict[str, int]:
    """
    Assign a stage number to each node.

    Source nodes get stage 0; every other node gets max(input stages) + 1.
    Dependencies on nodes outside ``dependencies`` are ignored.

    Raises:
        ValueError: If a circular dependency is detected
    """
    known = set(dependencies)
    remaining = {
        node_id: len([dep for dep in deps if dep in known])
        for node_id, deps in dependencies.items()
    }
    dependents: Dict[str, List[str]] = {node_id: [] for node_id in dependencies}
    for node_id, deps in dependencies.items():
        for dep in deps:
            if dep in known:
                dependents[dep].append(node_id)

    node_stages: Dict[str, int] = {}
    ready = deque(sorted(node_id for node_id, count in remaining.items() if count == 0))
    for node_id in ready:
        node_stages[node_id] = 0

    while ready:
        current = ready.popleft()
        for child in dependents[current]:
            node_stages[child] = max(node_stages.get(child, 0), node_stages[current] + 1)
            remaining[child] -= 1
            if remaining[child] == 0:
                ready.append(child)

    unresolved = [node_id for node_id, count in remaining.items() if count > 0]
    if unresolved:
        raise ValueError(
            f"Circular dependency detected: cannot assign stages to nodes: {', '.join(sorted(unresolved))}"
        )

    return node_stages


def build_execution_pipeline(
    nodes: List[Dict[str, Any]],
    node_stages: Dict[str, int],
    dependencies: Dict[str, List[str]]
) -> Dict[str, Any]:
    """
    Group nodes by stage and create the execution plan.

    Returns:
        {
            "stages": [{"stage_number": 0, "can_parallelize": bool, "nodes": [...]}, ...],
            "max_stage": int,
            "execution_order": ["node-id-1", ...]
        }

        Each node copy carries an "inputs" list of upstream node ids.
    """
    if not node_stages:
        return _empty_pipeline()

    max_stage = max(node_stages.values())
    buckets: List[List[Dict[str, Any]]] = [[] for _ in range(max_stage + 1)]

    for node in nodes:
        node_id = _node_id(node)
        if node_id in node_stages:
            node_data = dict(node)
            node_data["inputs"] = list(dependencies.get(node_id, []))
            buckets[node_stages[node_id]].append(node_data)

    stages = [
        {
            "stage_number": stage_number,
            "can_parallelize": len(stage_nodes) >= 2,
            "nodes": stage_nodes,
        }
        for stage_number, stage_nodes in enumerate(buckets)
    ]
    execution_order = [_node_id(node) for stage in stages for node in stage["nodes"]]

    return {
        "stages": stages,
        "max_stage": max_stage,
        "execution_order": execution_order,
    }


def validate_pipeline(
    pipeline: Dict[str, Any],
    nodes: List[Dict[str, Any]],
    connections: List[Dict[str, str]]
) -> Tuple[bool, List[str]]:
    """
    Validate pipeline integrity.

    Critical checks: every node is scheduled exactly once, stage 0 is not
    empty, and connections reference known nodes. Disconnected nodes are
    reported with a "Warning:" prefix and do not invalidate the pipeline.

    Returns:
        Tuple of (is_valid, messages)
    """
    errors: List[str] = []

    all_node_ids = {_node_id(node) for node in nodes if _node_id(node)}
    execution_order = list(pipeline.get("execution_order", []))
    scheduled = set(execution_order)

    missing = all_node_ids - scheduled
    if missing:
        errors.append(f"Nodes missing from pipeline: {', '.join(sorted(missing))}")

    extra = scheduled - all_node_ids
    if extra:
        errors.append(f"Unknown nodes in pipeline: {', '.join(sorted(extra))}")

    if len(execution_order) != len(scheduled):
        duplicates = sorted({nid for nid in execution_order if execution_order.count(nid) > 1})
        errors.append(f"Nodes appear multiple times in pipeline: {', '.join(duplicates)}")

    stages = pipeline.get("stages", [])
    if not stages:
        errors.append("Pipeline has no stages")
    elif not stages[0].get("nodes"):
        errors.append("Pipeline has no input nodes (stage 0 is empty)")

    connected: Set[str] = set()
    for index, connection in enumerate(connections):
        from_node, to_node = _edge(connection)
        if from_node and from_node not in all_node_ids:
            errors.append(f"Connection {index}: from_node '{from_node}' does not exist")
        if to_node and to_node not in all_node_ids:
            errors.append(f"Connection {index}: to_node '{to_node}' does not exist")
        connected.update(n for n in (from_node, to_node) if n)

    # A single-node graph has nothing to connect
    disconnected = all_node_ids - connected if len(all_node_ids) > 1 else set()
    if disconnected:
        labels = [
            f"{node.get(FIELD_NODE_TYPE, 'Unknown')} ({_node_id(node)})"
            for node in nodes
            if _node_id(node) in disconnected
        ]
        errors.append(f"Warning: Disconnected nodes detected: {', '.join(labels)}")

    is_valid = not [e for e in errors if not e.startswith("Warning:")]
    return is_valid, errors


def build_pipeline_from_graph(
    nodes: List[Dict[str, Any]],
    connections: List[Dict[str, str]]
) -> Tuple[Dict[str, Any], bool, List[str]]:
    """
    Build a complete pipeline from a render graph.

    Returns:
        Tuple of (pipeline, is_valid, errors). Structural errors such as
        cycles produce an empty pipeline and is_valid=False.
    """
    try:
        dependencies = build_dependency_map(nodes, connections)
        node_stages = calculate_pipeline_stages(nodes, dependencies)
    except ValueError as e:
        logger.warning(f"Pipeline build failed: {e}")
        return _empty_pipeline(), False, [str(e)]

    pipeline = build_execution_pipeline(nodes, node_stages, dependencies)
    is_valid, errors = validate_pipeline(pipeline, nodes, connections)
    logger.debug(f"Built pipeline with {len(pipeline['execution_order'])} nodes, valid={is_valid}")
    return pipeline, is_valid, errors


def collect_downstream(connections: List[Dict[str, str]], start_ids: Iterable[str]) -> Set[str]:
    """Return ``start_ids`` plus every node reachable from them."""
    downstream: Dict[str, List[str]] = {}
    for connection in connections:
        from_node, to_node = _edge(connection)
        if from_node and to_node:
            downstream.setdefault(from_node, []).append(to_node)

    affected = set(start_ids)
    queue = deque(affected)
    while queue:
        current = queue.popleft()
        for child in downstream.get(current, []):
            if child not in affected:
                affected.add(child)
                queue.append(child)
    return affected


def build_update_pipeline(
    nodes: List[Dict[str, Any]],
    connections: List[Dict[str, str]],
    updated_node_ids: Iterable[str]
) -> Tuple[Dict[str, Any], bool, List[str]]:
    """
    Build a partial pipeline starting from updated node(s).

    Only the updated nodes and their downstream dependents are scheduled.
    Each scheduled node keeps its full input list, so inputs produced by
    nodes outside the partial plan must be supplied via ``cached_results``
    when executing.

    Returns:
        Tuple of (pipeline, is_valid, errors)
    """
    if not nodes:
        return _empty_pipeline(), False, ["No nodes provided"]

    all_node_ids = {_node_id(node) for node in nodes if _node_id(node)}
    updated = {str(nid).strip() for nid in updated_node_ids} & all_node_ids
    if not updated:
        return _empty_pipeline(), False, ["No valid updated nodes provided"]

    affected = collect_downstream(connections, updated)
    affected_nodes = [node for node in nodes if _node_id(node) in affected]
    affected_connections = [
        c for c in connections
        if _edge(c)[0] in affected and _edge(c)[1] in affected
    ]

    full_dependencies = build_dependency_map(nodes, connections)
    staged_dependencies = {
        node_id: [dep for dep in full_dependencies.get(node_id, []) if dep in affected]
        for node_id in affected
    }

    try:
        node_stages = calculate_pipeline_stages(affected_nodes, staged_dependencies)
    except ValueError as e:
        return _empty_pipeline(), False, [str(e)]

    pipeline = build_execution_pipeline(affected_nodes, node_stages, full_dependencies)
    is_valid, errors = validate_pipeline(pipeline, affected_nodes, affected_connections)
    logger.debug(
        f"Built update pipeline from {sorted(updated)}: {' -> '.join(pipeline['execution_order'])}"
    )
    return pipeline, is_valid, errors


def get_pipeline_summary(pipeline: Dict[str, Any]) -> str:
    """Generate a human-readable summary of the pipeline structure."""
    execution_order = pipeline.get("execution_order", [])
    lines = [
        "Pipeline Summary:",
        f"  Total Stages: {pipeline.get('max_stage', -1) + 1}",
        f"  Total Nodes: {len(execution_order)}",
        "",
    ]

    for stage in pipeline.get("stages", []):
        stage_nodes = stage.get("nodes", [])
        marker = " [PARALLEL]" if stage.get("can_parallelize") else ""
        plural = "s" if len(stage_nodes) != 1 else ""
        lines.append(f"Stage {stage.get('stage_number', 0)}{marker}: ({len(stage_nodes)} node{plural})")
        for node in stage_nodes:
            inputs = node.get("inputs", [])
            input_str = f" <- [{', '.join(inputs)}]" if inputs else " (source)"
            lines.append(f"  - {node.get(FIELD_NODE_TYPE, 'Unknown')} ({_node_id(node)}){input_str}")
        lines.append("")

    lines.append(f"Execution Order: {' -> '.join(execution_order)}")
    return "\n".join(lines)


def _run_node(
    node: Dict[str, Any],
    node_executors: Dict[str, Any],
    results: Dict[str, Any],
) -> Any:
    node_type = node.get(FIELD_NODE_TYPE, "")
    node_id = _node_id(node)

    if node_type not in node_executors:
        raise KeyError(f"No executor registered for node type: {node_type}")

    try:
        inputs = [results[dep_id] for dep_id in node.get("inputs", [])]
    except KeyError as e:
        raise KeyError(f"Node {node_id} is missing input from {e.args[0]}") from e

    logger.debug(f"Executing {node_type} ({node_id}) with {len(inputs)} input(s)")
    try:
        return node_executors[node_type](node, inputs)
    except Exception as e:
        raise PipelineExecutionError(node_id, node_type, e) from e


def execute_pipeline(
    pipeline: Dict[str, Any],
    node_executors: Dict[str, Any],
    use_threading: bool = True,
    max_workers: Optional[int] = None,
    cached_results: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Execute nodes in pipeline order.

    Stages with can_parallelize=True run their nodes on a ThreadPoolExecutor
    when use_threading is enabled.

    Args:
        pipeline: Pipeline from build_pipeline_from_graph() or build_update_pipeline()
        node_executors: Mapping node type -> executor(node, inputs)
        use_threading: Run parallelizable stages concurrently
        max_workers: Thread pool size (default: executor default)
        cached_results: Results of nodes outside the pipeline, keyed by node id

    Returns:
        Dictionary mapping node_id -> result for every executed node

    Raises:
        KeyError: If a node type has no executor or an input is unavailable
        PipelineExecutionError: If a node executor raises
    """
    results: Dict[str, Any] = dict(cached_results or {})
    executed: Dict[str, Any] = {}

    for stage in pipeline.get("stages", []):
        stage_nodes = stage.get("nodes", [])
        stage_results: Dict[str, Any] = {}

        if stage.get("can_parallelize") and use_threading and len(stage_nodes) > 1:
            with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as pool:
                futures = {
                    pool.submit(_run_node, node, node_executors, results): _node_id(node)
                    for node in stage_nodes
                }
                for future in concurrent.futures.as_completed(futures):
                    stage_results[futures[future]] = future.result()
        else:
            for node in stage_nodes:
                stage_results[_node_id(node)] = _run_node(node, node_executors, results)

        results.update(stage_results)
        executed.update(stage_results)

    return executed
