"""
Node Executors Registry and Manager.

This module provides a centralized registry for node type executors. It enables
registration, lookup, and execution of the render pipeline's node types.

Classes:
    NodeExecutorRegistry: Registry for node executors

Functions:
    get_default_registry: Get the global default registry (singleton)
    register_default_executors: Register all built-in node executors
"""

from typing import Any, Callable, Dict, List, Optional
import logging
import threading

from SC_Libs.constants import (
    NODE_TYPE_ADJUST,
    NODE_TYPE_COMPOSITE,
    NODE_TYPE_ENCODE,
    NODE_TYPE_OUTPUT,
    NODE_TYPE_TINT,
)

logger = logging.getLogger(__name__)

# Type alias for executor function
ExecutorFunction = Callable[[Dict[str, Any], List[Any]], Any]


class NodeExecutorRegistry:
    """
    Registry for node type executors.

    Example:
        >>> registry = NodeExecutorRegistry()
        >>> registry.register("Color Tint", execute_tint_node)
        >>> result = registry.execute("Color Tint", node_dict, [template])
    """

    def __init__(self):
        self._executors: Dict[str, ExecutorFunction] = {}
        self._node_metadata: Dict[str, Dict[str, Any]] = {}

    def register(
        self,
        node_type: str,
        executor: ExecutorFunction,
        description: str = "",
        input_count: int = 0,
        output_count: int = 1,
        tags: Optional[List[str]] = None,
    ) -> None:
        """
        Register a node executor.

        Args:
            node_type: Unique identifier for the node type (e.g., "Color Tint")
            executor: Callable that executes the node. Must accept (node_dict, inputs)
            description: Human-readable description of the node
            input_count: Expected number of inputs (0 for source nodes)
            output_count: Expected number of outputs (usually 1)
            tags: Optional list of tags for categorization

        Raises:
            ValueError: If node_type is empty or executor is not callable
            RuntimeError: If node_type is already registered
        """
        node_type = str(node_type).strip()

        if not node_type:
            raise ValueError("node_type cannot be empty")

        if not callable(executor):
            raise ValueError(f"executor must be callable, got {type(executor)}")

        if node_type in self._executors:
            raise RuntimeError(
                f"Node type '{node_type}' is already registered. "
                f"Use unregister() first to replace it."
            )

        self._executors[node_type] = executor
        self._node_metadata[node_type] = {
            "description": str(description),
            "input_count": int(input_count),
            "output_count": int(output_count),
            "tags": list(tags) if tags else [],
        }

        logger.debug(f"Registered executor for node type: {node_type}")

    def unregister(self, node_type: str) -> bool:
        """Unregister a node executor. Returns False if it was not registered."""
        node_type = str(node_type).strip()

        if node_type in self._executors:
            del self._executors[node_type]
            del self._node_metadata[node_type]
            logger.debug(f"Unregistered executor for node type: {node_type}")
            return True

        return False

    def get_executor(self, node_type: str) -> ExecutorFunction:
        """
        Get an executor for a node type.

        Raises:
            KeyError: If node_type is not registered
        """
        node_type = str(node_type).strip()

        if node_type not in self._executors:
            available = ", ".join(self.list_node_types())
            raise KeyError(
                f"No executor registered for node type '{node_type}'. "
                f"Available types: {available}"
            )

        return self._executors[node_type]

    def has_executor(self, node_type: str) -> bool:
        return str(node_type).strip() in self._executors

    def execute(
        self,
        node_type: str,
        node_dict: Dict[str, Any],
        inputs: List[Any],
    ) -> Any:
        """Execute a node by looking up its executor."""
        executor = self.get_executor(node_type)
        return executor(node_dict, inputs)

    def list_node_types(self) -> List[str]:
        return sorted(self._executors.keys())

    def get_metadata(self, node_type: str) -> Dict[str, Any]:
        """
        Get metadata for a node type.

        Raises:
            KeyError: If node_type is not registered
        """
        node_type = str(node_type).strip()

        if node_type not in self._node_metadata:
            raise KeyError(f"No metadata for node type: {node_type}")

        return dict(self._node_metadata[node_type])

    def filter_by_tag(self, tag: str) -> List[str]:
        """Get all node types with a specific tag."""
        tag = str(tag).strip().lower()
        return sorted([
            node_type
            for node_type, meta in self._node_metadata.items()
            if tag in [t.lower() for t in meta.get("tags", [])]
        ])

    def as_executor_map(self) -> Dict[str, ExecutorFunction]:
        """Snapshot of node_type -> executor, as taken by execute_pipeline()."""
        return dict(self._executors)


# Global singleton registry
_default_registry: Optional[NodeExecutorRegistry] = None
_default_registry_lock = threading.Lock()


def get_default_registry() -> NodeExecutorRegistry:
    """
    Get the global default registry (singleton).

    Creates the registry on first call and registers default executors.
    """
    global _default_registry

    with _default_registry_lock:
        if _default_registry is None:
            registry = NodeExecutorRegistry()
            register_default_executors(registry)
            _default_registry = registry

    return _default_registry


def register_default_executors(registry: NodeExecutorRegistry) -> None:
    """
    Register all built-in node executors.

    This function registers:
    - Color Tint node
    - Adjustments node
    - Layer Compositor node
    - Size-Constrained Encoder node
    - Output node
    """
    from SC_Libs.NodesLib.tint_node import execute_tint_node
    from SC_Libs.NodesLib.adjustment_node import execute_adjustment_node
    from SC_Libs.NodesLib.layer_compositor_node import execute_layer_compositor_node
    from SC_Libs.NodesLib.encoder_node import execute_encoder_node
    from SC_Libs.NodesLib.output_node import execute_output_node

    registry.register(
        node_type=NODE_TYPE_TINT,
        executor=execute_tint_node,
        description="Recolor the template toward a hex color, preserving shading",
        input_count=1,
        output_count=1,
        tags=["processing", "color", "source"],
    )

    registry.register(
        node_type=NODE_TYPE_ADJUST,
        executor=execute_adjustment_node,
        description="Apply hue, saturation, brightness, contrast and sharpness",
        input_count=1,
        output_count=1,
        tags=["processing", "color", "filter"],
    )

    registry.register(
        node_type=NODE_TYPE_COMPOSITE,
        executor=execute_layer_compositor_node,
        description="Composite background, template and overlay",
        input_count=1,
        output_count=1,
        tags=["processing", "composition", "layer"],
    )

    registry.register(
        node_type=NODE_TYPE_ENCODE,
        executor=execute_encoder_node,
        description="Encode to WebP under a byte budget",
        input_count=1,
        output_count=1,
        tags=["output", "encode"],
    )

    registry.register(
        node_type=NODE_TYPE_OUTPUT,
        executor=execute_output_node,
        description="Write encoded bytes with a templated filename",
        input_count=1,
        output_count=0,
        tags=["output", "sink"],
    )

    logger.info("Registered default node executors")
