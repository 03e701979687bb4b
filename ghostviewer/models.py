"""
Data models for declared state, resource trees and orphan scans.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple


@dataclass
class Resource:
    """A resource record from an SST/Pulumi state snapshot."""
    type: str  # "sst:aws:Bucket", "aws:s3/bucket:Bucket", ...
    urn: str
    id: Optional[str] = None
    outputs: Dict[str, Any] = field(default_factory=dict)
    parent: Optional[str] = None
    inputs: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Resource":
        """
        Build a resource from a raw state-file record.

        Args:
            data: Record from the state's resource list

        Returns:
            Resource with unknown or mistyped optional fields dropped

        Raises:
            ValueError: If the record has no string urn or type
        """
        if not isinstance(data, dict):
            raise ValueError(f"Resource record must be an object, got {type(data).__name__}")

        urn = data.get("urn")
        rtype = data.get("type")
        if not isinstance(urn, str) or not urn:
            raise ValueError("Resource record has no urn")
        if not isinstance(rtype, str) or not rtype:
            raise ValueError(f"Resource {urn} has no type")

        rid = data.get("id")
        parent = data.get("parent")
        outputs = data.get("outputs")
        inputs = data.get("inputs")

        return cls(
            type=rtype,
            urn=urn,
            id=rid if isinstance(rid, str) and rid else None,
            outputs=outputs if isinstance(outputs, dict) else {},
            parent=parent if isinstance(parent, str) and parent else None,
            inputs=inputs if isinstance(inputs, dict) else {},
        )

    def output(self, key: str, default: Any = None) -> Any:
        """Look up a provider output, returning default when absent."""
        return self.outputs.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type, "urn": self.urn}
        if self.id is not None:
            data["id"] = self.id
        if self.outputs:
            data["outputs"] = self.outputs
        if self.parent is not None:
            data["parent"] = self.parent
        return data


@dataclass
class TreeNode:
    """A resource placed in a tree for one build pass."""
    resource: Resource
    children: List["TreeNode"] = field(default_factory=list)
    is_match: bool = False
    is_visible: bool = False

    @property
    def urn(self) -> str:
        return self.resource.urn

    def walk(self):
        """Yield this node and all descendants, depth first."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


def flatten_nodes(roots: Iterable[TreeNode]) -> List[Dict[str, Any]]:
    """
    Serialize trees as flat rows in depth-first order.

    Each row carries its own index and the index of its parent row
    (None for roots), so trees of any depth serialize without recursion.

    Args:
        roots: Root nodes, emitted in the given order

    Returns:
        Rows with index, parentIndex, depth, resource, isMatch and isVisible
    """
    rows: List[Dict[str, Any]] = []
    stack = [(root, None, 0) for root in reversed(list(roots))]
    while stack:
        node, parent_index, depth = stack.pop()
        index = len(rows)
        rows.append({
            "index": index,
            "parentIndex": parent_index,
            "depth": depth,
            "resource": node.resource.to_dict(),
            "isMatch": node.is_match,
            "isVisible": node.is_visible,
        })
        stack.extend((child, index, depth + 1) for child in reversed(node.children))
    return rows


@dataclass(frozen=True)
class TypeGroup:
    """Visible root nodes sharing a simple type."""
    type_name: str
    nodes: Tuple[TreeNode, ...]

    @property
    def is_visible(self) -> bool:
        return len(self.nodes) > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "typeName": self.type_name,
            "isVisible": self.is_visible,
            "nodes": flatten_nodes(self.nodes),
        }


@dataclass
class ObservedResource:
    """A resource returned by the tagging API."""
    arn: str
    tags: List[Dict[str, str]] = field(default_factory=list)  # [{"Key": ..., "Value": ...}]

    def tag_map(self) -> Dict[str, str]:
        """Flatten the tag list into a key -> value mapping."""
        flattened: Dict[str, str] = {}
        for tag in self.tags:
            if not isinstance(tag, dict) or "Key" not in tag:
                continue
            flattened[tag["Key"]] = tag.get("Value", "")
        return flattened


@dataclass(frozen=True)
class Orphan:
    """A tagged cloud resource with no declared counterpart."""
    arn: str
    type: str
    tags: Dict[str, str]
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "arn": self.arn,
            "type": self.type,
            "tags": dict(self.tags),
            "name": self.name,
        }


@dataclass(frozen=True)
class ScanResult:
    """Outcome of one reconciliation pass."""
    total_found: int
    managed_count: int
    orphans: Tuple[Orphan, ...]
    warnings: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalFound": self.total_found,
            "managedCount": self.managed_count,
            "orphans": [orphan.to_dict() for orphan in self.orphans],
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class StateMetadata:
    """Best-effort summary of where a state snapshot was deployed."""
    app: str = "Unknown"
    stage: str = "Unknown"
    region: str = "Unknown"
    account: str = "Unknown"

    def to_dict(self) -> Dict[str, str]:
        return {
            "app": self.app,
            "stage": self.stage,
            "region": self.region,
            "account": self.account,
        }


@dataclass
class DeclaredState:
    """Resources read from a state source."""
    resources: List[Resource] = field(default_factory=list)
    stack: Optional[str] = None  # "project/app/stage" when the state carries one
    source: Optional[str] = None
