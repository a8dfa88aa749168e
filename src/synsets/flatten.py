"""Flatten a nested concept tree into unique materialized-path records.

Pipeline:
    flatten_tree(roots)        # post-order walk → (path, provisional size)
    dedupe(records)            # first write wins per path
    recalculate_sizes(records) # exact descendant counts from the paths alone

The source lists some concepts more than once under the same parent, so the
sizes produced by the walk over-count. Only the recalculated sizes are stored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from synsets.models import DELIMITER, UNKNOWN_LABEL, ConceptRecord, child_path

if TYPE_CHECKING:
    from collections.abc import Iterable

    from synsets.models import ConceptNode

logger = logging.getLogger("synsets.flatten")


class StructuralError(ValueError):
    """A record's ancestor path is missing from the record set."""


@dataclass
class _Frame:
    node: ConceptNode
    path: str
    next_child: int = 0
    descendants: int = 0


@dataclass
class DedupeResult:
    records: list[ConceptRecord] = field(default_factory=list)
    duplicates: int = 0


def flatten_tree(roots: Iterable[ConceptNode], delimiter: str = DELIMITER) -> list[ConceptRecord]:
    """Walk every root post-order and emit one record per visited node.

    Uses an explicit stack so very deep taxonomies cannot exhaust the
    interpreter's recursion limit. A node's size is the sum over its children
    of 1 + child size.
    """
    results: list[ConceptRecord] = []
    for root in roots:
        stack = [_Frame(root, root.label or UNKNOWN_LABEL)]
        while stack:
            frame = stack[-1]
            children = frame.node.children
            if frame.next_child < len(children):
                child = children[frame.next_child]
                frame.next_child += 1
                stack.append(_Frame(child, child_path(frame.path, child.label or UNKNOWN_LABEL, delimiter)))
                continue
            stack.pop()
            results.append(ConceptRecord(path=frame.path, size=frame.descendants))
            if stack:
                stack[-1].descendants += 1 + frame.descendants
    return results


def dedupe(records: Iterable[ConceptRecord]) -> DedupeResult:
    """Keep the first record seen for each path; count the rest."""
    unique: dict[str, ConceptRecord] = {}
    total = 0
    for record in records:
        total += 1
        unique.setdefault(record.path, record)
    return DedupeResult(records=list(unique.values()), duplicates=total - len(unique))


def recalculate_sizes(records: list[ConceptRecord], delimiter: str = DELIMITER) -> list[ConceptRecord]:
    """Set every size to the exact number of (non-deleted) descendants.

    Each record adds exactly one to every proper ancestor, so the result is
    independent of input order and of how unevenly the tree branches.
    Records are updated in place and returned for chaining.
    """
    by_path: dict[str, ConceptRecord] = {}
    for record in records:
        if record.path in by_path:
            msg = f"duplicate path {record.path!r}; dedupe before recalculating"
            raise ValueError(msg)
        record.size = 0
        by_path[record.path] = record

    for record in records:
        if record.deleted:
            continue
        prefix = record.path
        while (cut := prefix.rfind(delimiter)) != -1:
            prefix = prefix[:cut]
            ancestor = by_path.get(prefix)
            if ancestor is None or ancestor.deleted:
                msg = f"ancestor {prefix!r} of {record.path!r} is missing"
                raise StructuralError(msg)
            ancestor.size += 1
    return records


def build_records(
    roots: Iterable[ConceptNode], delimiter: str = DELIMITER
) -> tuple[list[ConceptRecord], int]:
    """Run the full flatten → dedupe → recalculate pipeline.

    Returns (unique records, number of duplicate paths removed).
    """
    flat = flatten_tree(roots, delimiter)
    logger.info("Parsed %d synsets from XML (before deduplication)", len(flat))

    result = dedupe(flat)
    if result.duplicates:
        logger.warning("Removed %d duplicate path(s)", result.duplicates)

    recalculate_sizes(result.records, delimiter)
    logger.info("Final count: %d unique synsets", len(result.records))
    return result.records, result.duplicates
