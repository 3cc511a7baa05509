"""Tree assembly over flat node lists.

Nodes are stored with a ``parent_id`` key only. This module is the single
place that turns those ids into a traversable structure, for the tree view
(``build_tree``) and the flow view (``build_levels``). Everything here is
pure and works on any object exposing ``id``, ``parent_id`` and ``order``.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol


class HierarchyItem(Protocol):
    id: int
    parent_id: int | None
    order: int | None


@dataclass
class TreeNode:
    """A node plus its ordered children."""

    node: Any
    children: list["TreeNode"] = field(default_factory=list)

    @property
    def id(self) -> int:
        return self.node.id


def _order_key(tree_node: TreeNode) -> int:
    return tree_node.node.order or 0


def _sort_forest(forest: list[TreeNode]) -> None:
    # list.sort is stable, so equal orders keep their input position
    forest.sort(key=_order_key)
    for tree_node in forest:
        _sort_forest(tree_node.children)


def build_tree(nodes: Iterable[HierarchyItem]) -> list[TreeNode]:
    """Assemble a flat node list into an ordered forest.

    A node whose ``parent_id`` is not in ``nodes`` (deleted parent, parent
    in another roadmap) becomes a root instead of disappearing. Siblings are
    sorted by ``order``; ties keep input order, so callers should pass nodes
    sorted by creation time.

    Args:
        nodes: Nodes of one roadmap, unique ids

    Returns:
        Root tree nodes, each with recursively populated children
    """
    items = list(nodes)
    lookup = {item.id: TreeNode(item) for item in items}

    roots: list[TreeNode] = []
    for item in items:
        tree_node = lookup[item.id]
        parent = lookup.get(item.parent_id) if item.parent_id is not None else None
        if parent is not None and parent is not tree_node:
            parent.children.append(tree_node)
        else:
            roots.append(tree_node)

    _sort_forest(roots)
    return roots


def build_levels(nodes: Sequence[HierarchyItem]) -> list[list[HierarchyItem]]:
    """Group nodes into breadth-first levels for the flow view.

    Level 0 holds the nodes without a parent; level n+1 holds the children
    of level n that were not placed earlier. The processed set keeps a
    cyclic parent chain from looping forever, but nodes on such a cycle are
    dropped rather than reported. Nodes whose parent is missing from
    ``nodes`` never reach a level either.
    """
    levels: list[list[HierarchyItem]] = []
    processed: set[int] = set()

    current = [n for n in nodes if n.parent_id is None]
    while current:
        levels.append(current)
        processed.update(n.id for n in current)

        next_level: list[HierarchyItem] = []
        for parent in current:
            for n in nodes:
                if n.parent_id == parent.id and n.id not in processed:
                    next_level.append(n)
                    processed.add(n.id)
        current = next_level

    return levels


def count_tree(forest: Iterable[TreeNode]) -> int:
    """Count every node in a forest."""
    return sum(1 + count_tree(t.children) for t in forest)


def would_create_cycle(
    parent_of: Mapping[int, int | None],
    node_id: int,
    new_parent_id: int | None,
) -> bool:
    """Check whether making ``new_parent_id`` the parent of ``node_id`` closes a loop.

    Walks the ancestor chain of the proposed parent through ``parent_of``
    (id -> parent id). Reaching ``node_id`` means the node would become its
    own ancestor. A pre-existing loop further up the chain stops the walk
    without a verdict on this move.
    """
    seen: set[int] = set()
    current = new_parent_id
    while current is not None and current not in seen:
        if current == node_id:
            return True
        seen.add(current)
        current = parent_of.get(current)
    return False


def has_cycle(parent_of: Mapping[int, int | None], start_ids: Iterable[int]) -> bool:
    """True if walking up from any of ``start_ids`` runs into a loop."""
    for start in start_ids:
        seen: set[int] = set()
        current: int | None = start
        while current is not None:
            if current in seen:
                return True
            seen.add(current)
            current = parent_of.get(current)
    return False


def descendant_ids(nodes: Iterable[HierarchyItem], node_id: int) -> list[int]:
    """Ids of every node below ``node_id``, breadth first."""
    children: dict[int, list[int]] = {}
    for n in nodes:
        if n.parent_id is not None:
            children.setdefault(n.parent_id, []).append(n.id)

    found: list[int] = []
    seen = {node_id}
    frontier = [node_id]
    while frontier:
        next_frontier = []
        for parent_id in frontier:
            for child_id in children.get(parent_id, []):
                if child_id not in seen:
                    seen.add(child_id)
                    found.append(child_id)
                    next_frontier.append(child_id)
        frontier = next_frontier
    return found
