"""
Resource tree construction for the state explorer.

Resources reference their parent by URN. The builder keeps every node in an
arena keyed by URN, resolves parent edges by lookup, and groups the visible
roots by simple type.
"""

import logging
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Set, Union

from .identity import simple_type
from .models import Resource, TreeNode, TypeGroup

logger = logging.getLogger(__name__)


STACK_ROOT_MARKER = "pulumi:pulumi:Stack"

# Top-level building blocks lifted to the root in categorized mode
PROMOTED_TYPES = frozenset({
    "Bucket",
    "Function",
    "Dynamo",
    "Table",
    "Api",
    "ApiGateway",
    "Vpc",
    "Aurora",
    "Cluster",
    "Cron",
    "Queue",
    "StateMachine",
    "States",
    "StaticSite",
    "CDN",
})


class TreeMode(Enum):
    """How resources are arranged into roots."""
    TREE = "tree"
    CATEGORIZED = "categorized"
    GROUPED = "grouped"  # every resource is its own root


def is_stack_child(resource: Resource) -> bool:
    """True when the resource has no parent or hangs directly off the stack."""
    return not resource.parent or STACK_ROOT_MARKER in resource.parent


def should_be_root(resource: Resource, mode: TreeMode) -> bool:
    if mode is TreeMode.GROUPED:
        return True
    if mode is TreeMode.CATEGORIZED and simple_type(resource.type) in PROMOTED_TYPES:
        return True
    return is_stack_child(resource)


def _resolve_parents(resources: Sequence[Resource], mode: TreeMode) -> List[Optional[int]]:
    """
    Map each resource index to the index of the node it attaches under.

    Dangling parents and parent chains that loop back to the node are
    resolved to None, i.e. the node becomes a root.
    """
    arena: Dict[str, int] = {}
    for index, resource in enumerate(resources):
        if resource.urn in arena:
            logger.warning(f"Duplicate URN in state, only the first can be a parent: {resource.urn}")
            continue
        arena[resource.urn] = index

    parents: List[Optional[int]] = []
    for resource in resources:
        if should_be_root(resource, mode):
            parents.append(None)
        elif resource.parent in arena:
            parents.append(arena[resource.parent])
        else:
            logger.debug(f"Parent {resource.parent} of {resource.urn} not in state; promoting to root")
            parents.append(None)

    settled: Set[int] = set()
    for index in range(len(resources)):
        path = [index]
        seen = {index}
        current = parents[index]
        while current is not None and current not in settled:
            if current == index:
                logger.warning(f"Parent cycle detected at {resources[index].urn}; promoting to root")
                parents[index] = None
                break
            if current in seen:
                # Loop further up the chain; it is broken when its own members are visited
                path = []
                break
            seen.add(current)
            path.append(current)
            current = parents[current]
        settled.update(path)

    return parents


def _propagate_visibility(root: TreeNode) -> bool:
    """Set is_visible bottom-up for a subtree and return the root's flag."""
    stack = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if expanded:
            node.is_visible = node.is_match or any(child.is_visible for child in node.children)
            continue
        stack.append((node, True))
        for child in node.children:
            stack.append((child, False))
    return root.is_visible


def build_roots(
    resources: Iterable[Resource],
    matched_keys: Set[str],
    mode: Union[TreeMode, str] = TreeMode.CATEGORIZED,
) -> List[TreeNode]:
    """
    Arrange resources into root nodes with match and visibility flags set.

    Args:
        resources: Flat resource list from state
        matched_keys: URNs satisfying the active search
        mode: Tree arrangement

    Returns:
        Root nodes in encounter order; every resource appears exactly once
    """
    mode = TreeMode(mode)
    resources = list(resources)
    nodes = [TreeNode(resource=r, is_match=r.urn in matched_keys) for r in resources]

    roots: List[TreeNode] = []
    for node, parent in zip(nodes, _resolve_parents(resources, mode)):
        if parent is None:
            roots.append(node)
        else:
            nodes[parent].children.append(node)

    for root in roots:
        _propagate_visibility(root)

    return roots


def group_roots(roots: Iterable[TreeNode]) -> List[TypeGroup]:
    """Bucket visible roots by simple type, sorted by type name."""
    buckets: Dict[str, List[TreeNode]] = {}
    for node in roots:
        if not node.is_visible:
            continue
        buckets.setdefault(simple_type(node.resource.type), []).append(node)

    return [
        TypeGroup(type_name=name, nodes=tuple(buckets[name]))
        for name in sorted(buckets, key=lambda name: (name.lower(), name))
    ]


def build_forest(
    resources: Iterable[Resource],
    matched_keys: Set[str],
    mode: Union[TreeMode, str] = TreeMode.CATEGORIZED,
) -> List[TypeGroup]:
    """
    Build the grouped resource forest for the tree and categorized views.

    Args:
        resources: Flat resource list from state
        matched_keys: URNs satisfying the active search
        mode: Tree arrangement

    Returns:
        Type groups of visible roots, sorted by type name
    """
    return group_roots(build_roots(resources, matched_keys, mode))
