"""
Hierarchical model: which entities travel together with a primary entity.

The model is a forest of typed nodes. Every non-root node names the relation
that leads to it from its parent. Nodes live in a flat arena indexed by
integer id, with explicit parent links, so parent and path lookups never
have to walk the forest.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from graph_dispatcher.namespaces import expand
from graph_dispatcher.settings import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class ModelNode:
    """One node of the hierarchical model."""
    id: int
    type: str
    relation: Optional[str] = None
    parent: Optional[int] = None
    children: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "relation": self.relation,
            "parent": self.parent,
            "children": list(self.children),
        }


class ModelArena:
    """
    The hierarchical model forest.

    Node ids are assigned in preorder, so a depth-first search over the
    forest visits nodes in id order.
    """

    def __init__(self):
        self._nodes: List[ModelNode] = []
        self._roots: List[int] = []

    # =========================================================================
    # Construction
    # =========================================================================

    def add_node(self, type_: str, relation: Optional[str] = None,
                 parent: Optional[ModelNode] = None) -> ModelNode:
        """
        Append a node.

        Raises:
            ConfigurationError: If a child has no relation, or if ``type_``
                already occurs on the path from the root to ``parent``.
        """
        if parent is not None:
            if not relation:
                raise ConfigurationError(f"Model node {type_} needs a relation to its parent")
            ancestors = [n.type for n in self.path_between(self.root_of(parent), parent)]
            if type_ in ancestors:
                raise ConfigurationError(
                    f"Type {type_} repeats on its own path: {' -> '.join(ancestors)}"
                )

        node = ModelNode(
            id=len(self._nodes),
            type=type_,
            relation=relation,
            parent=parent.id if parent is not None else None,
        )
        self._nodes.append(node)
        if parent is None:
            self._roots.append(node.id)
        else:
            parent.children.append(node.id)
        return node

    @classmethod
    def from_list(cls, items: List[Dict[str, Any]]) -> "ModelArena":
        """
        Build the forest from nested dicts.

        Each dict has a ``type``, a ``relation`` (except roots) and optional
        ``children``. Prefixed names are expanded.
        """
        arena = cls()

        def add(item: Dict[str, Any], parent: Optional[ModelNode]) -> None:
            if not isinstance(item, dict) or "type" not in item:
                raise ConfigurationError(f"Invalid model node {item!r}")
            try:
                type_ = expand(item["type"])
                relation = expand(item["relation"]) if item.get("relation") else None
            except ValueError as e:
                raise ConfigurationError(f"Invalid model node {item!r}: {e}") from e
            node = arena.add_node(type_, relation, parent)
            for child in item.get("children") or []:
                add(child, node)

        for item in items:
            add(item, None)
        return arena

    # =========================================================================
    # Lookups
    # =========================================================================

    def __len__(self) -> int:
        return len(self._nodes)

    def __getitem__(self, node_id: int) -> ModelNode:
        return self._nodes[node_id]

    @property
    def roots(self) -> List[ModelNode]:
        return [self._nodes[i] for i in self._roots]

    def children(self, node: ModelNode) -> List[ModelNode]:
        return [self._nodes[i] for i in node.children]

    def parent(self, node: ModelNode) -> Optional[ModelNode]:
        if node.parent is None:
            return None
        return self._nodes[node.parent]

    def root_of(self, node: ModelNode) -> ModelNode:
        while node.parent is not None:
            node = self._nodes[node.parent]
        return node

    def find_node_for_type(self, type_: str) -> Optional[ModelNode]:
        """First node in depth-first order declaring ``type_``."""
        for node in self._nodes:
            if node.type == type_:
                return node
        return None

    def subtree_flat(self, node: Optional[ModelNode]) -> List[ModelNode]:
        """
        The node followed by its descendants.

        All children of a node come before any of their own children, e.g.
        ``[m, m.c0, m.c1, m.c0.c0, m.c0.c1, m.c1.c0]``.
        """
        if node is None:
            return []
        flat = [node]

        def append(current: ModelNode) -> None:
            children = self.children(current)
            flat.extend(children)
            for child in children:
                append(child)

        append(node)
        return flat

    def flatten(self) -> List[ModelNode]:
        """Every node, one root subtree after the other."""
        flat: List[ModelNode] = []
        for root in self.roots:
            flat.extend(self.subtree_flat(root))
        return flat

    def path_between(self, top: ModelNode, bottom: ModelNode) -> List[ModelNode]:
        """
        Nodes from ``top`` down to ``bottom``, both included.

        Returns:
            ``[top]`` when both are the same node, an empty list when
            ``bottom`` is not a descendant of ``top``.
        """
        path = [bottom]
        current = bottom
        while current.id != top.id:
            parent = self.parent(current)
            if parent is None:
                return []
            path.append(parent)
            current = parent
        path.reverse()
        return path


def load_model(path: Union[str, Path]) -> ModelArena:
    """
    Load the model from a YAML file with a top-level ``model`` list.

    Raises:
        ConfigurationError: If the file is missing or malformed.
    """
    path = Path(path)
    try:
        content = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read model configuration {path}: {e}") from e

    if not isinstance(content, dict) or not isinstance(content.get("model"), list):
        raise ConfigurationError(f"{path} must contain a 'model' list")

    arena = ModelArena.from_list(content["model"])
    logger.info(f"Loaded model with {len(arena.roots)} roots and {len(arena)} nodes from {path}")
    return arena
