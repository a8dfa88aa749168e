"""Data models for the concept hierarchy and its materialized-path records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Separates labels inside a stored path. Never appears inside a label.
DELIMITER = " > "

# Label used when a source node carries no label of its own.
UNKNOWN_LABEL = "unknown"


def join_path(parts: list[str] | tuple[str, ...], delimiter: str = DELIMITER) -> str:
    return delimiter.join(parts)


def split_path(path: str, delimiter: str = DELIMITER) -> list[str]:
    return path.split(delimiter)


def name_of(path: str, delimiter: str = DELIMITER) -> str:
    """Display name of a node: the last label of its path."""
    return path.rsplit(delimiter, 1)[-1]


def child_path(parent: str, label: str, delimiter: str = DELIMITER) -> str:
    return f"{parent}{delimiter}{label}" if parent else label


@dataclass
class ConceptNode:
    """One node of the nested source tree (before flattening)."""

    label: str
    children: list[ConceptNode] = field(default_factory=list)


@dataclass
class ConceptRecord:
    """A flattened, persisted concept: one row of the concepts relation."""

    path: str
    size: int = 0                  # strict descendant count
    deleted: bool = False

    @classmethod
    def from_row(cls, row: tuple[Any, ...]) -> ConceptRecord:
        path, size, *rest = row
        return cls(path=path, size=int(size), deleted=bool(rest[0]) if rest else False)


@dataclass
class TreeNode:
    """A node as served to tree-browsing clients.

    ``children`` is None until a level has actually been fetched. Whether a
    node can be expanded is carried by ``has_children`` alone, so a client can
    tell a leaf from an unfetched subtree without another round trip.
    """

    name: str
    size: int
    path: str | None = None
    has_children: bool = False
    children: list[TreeNode] | None = None

    @classmethod
    def from_record(cls, record: ConceptRecord, delimiter: str = DELIMITER) -> TreeNode:
        return cls(
            name=name_of(record.path, delimiter),
            size=record.size,
            path=record.path,
            has_children=record.size > 0,
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"name": self.name, "size": self.size}
        if self.path is not None:
            d["path"] = self.path
        if self.children is not None:
            d["children"] = [c.to_dict() for c in self.children]
        elif self.has_children:
            d["children"] = []     # expandable, not fetched yet
        return d


@dataclass
class TreeResponse:
    root: TreeNode
    total_concepts: int
    empty: bool = False

    @classmethod
    def no_data(cls, total_concepts: int = 0) -> TreeResponse:
        return cls(
            root=TreeNode(name="No data", size=0, children=[]),
            total_concepts=total_concepts,
            empty=True,
        )

    def to_dict(self) -> dict[str, Any]:
        return {"tree": self.root.to_dict(), "totalSynsets": self.total_concepts}


@dataclass
class SearchResult:
    path: str
    size: int
    name: str
    path_parts: list[str]

    @classmethod
    def from_record(cls, record: ConceptRecord, delimiter: str = DELIMITER) -> SearchResult:
        parts = split_path(record.path, delimiter)
        return cls(path=record.path, size=record.size, name=parts[-1], path_parts=parts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "size": self.size,
            "name": self.name,
            "pathParts": list(self.path_parts),
        }


@dataclass
class SearchResponse:
    query: str
    results: list[SearchResult] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.results)

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "count": self.count,
            "results": [r.to_dict() for r in self.results],
        }
