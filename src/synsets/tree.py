"""Lazy tree queries: the root, and one level of children at a time.

Children of ``p`` are found with a range scan over ``[p + " > ", p + " >!")``
on the primary key, then anything with a further delimiter in its remaining
suffix is dropped. Grandchildren are never returned, and a child's stored
size alone says whether it can be expanded.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from synsets.db import current_version, read_snapshot
from synsets.models import DELIMITER, ConceptRecord, TreeNode, TreeResponse

if TYPE_CHECKING:
    import sqlite3


def prefix_bounds(parent: str, delimiter: str = DELIMITER) -> tuple[str, str]:
    """Half-open [lower, upper) range holding every path under parent."""
    lower = parent + delimiter
    upper = lower[:-1] + chr(ord(lower[-1]) + 1)
    return lower, upper


def _count(conn: sqlite3.Connection, version: int) -> int:
    row = conn.execute(
        "SELECT COUNT(*) FROM concepts WHERE version = ? AND deleted = 0", (version,)
    ).fetchone()
    return int(row[0])


def count_concepts(conn: sqlite3.Connection) -> int:
    with read_snapshot(conn):
        version = current_version(conn)
        return 0 if version is None else _count(conn, version)


def get_concept(conn: sqlite3.Connection, path: str) -> ConceptRecord | None:
    """Exact lookup of a single current record."""
    with read_snapshot(conn):
        version = current_version(conn)
        if version is None:
            return None
        row = conn.execute(
            "SELECT path, size, deleted FROM concepts WHERE version = ? AND path = ? AND deleted = 0",
            (version, path),
        ).fetchone()
    return ConceptRecord.from_row(row) if row else None


def fetch_tree(conn: sqlite3.Connection, delimiter: str = DELIMITER) -> TreeResponse:
    """Return the root node and the total number of concepts.

    With several single-label paths the lexicographically smallest one is the
    root. An empty store gives ``TreeResponse.no_data()``. The total and the
    root always come from the same snapshot version.
    """
    with read_snapshot(conn):
        version = current_version(conn)
        if version is None:
            return TreeResponse.no_data()

        total = _count(conn, version)
        if total == 0:
            return TreeResponse.no_data()

        row = conn.execute(
            """SELECT path, size FROM concepts
               WHERE version = ? AND deleted = 0 AND instr(path, ?) = 0
               ORDER BY path ASC
               LIMIT 1""",
            (version, delimiter),
        ).fetchone()
        if row is None:
            return TreeResponse.no_data(total)

        record = ConceptRecord.from_row(row)
        lower, upper = prefix_bounds(record.path, delimiter)
        has_children = conn.execute(
            """SELECT 1 FROM concepts
               WHERE version = ? AND deleted = 0 AND path >= ? AND path < ?
               LIMIT 1""",
            (version, lower, upper),
        ).fetchone() is not None

    root = TreeNode(
        name=record.path,
        size=record.size,
        path=record.path,
        has_children=has_children,
    )
    return TreeResponse(root=root, total_concepts=total)


def fetch_children(conn: sqlite3.Connection, path: str, delimiter: str = DELIMITER) -> list[TreeNode]:
    """Direct children of path, ordered by full path. Unknown path or leaf → []."""
    if not path:
        return []
    lower, upper = prefix_bounds(path, delimiter)
    with read_snapshot(conn):
        version = current_version(conn)
        if version is None:
            return []
        rows = conn.execute(
            """SELECT path, size FROM concepts
               WHERE version = ? AND deleted = 0
                 AND path >= ? AND path < ?
                 AND instr(substr(path, ?), ?) = 0
               ORDER BY path ASC""",
            (version, lower, upper, len(lower) + 1, delimiter),
        ).fetchall()
    return [TreeNode.from_record(ConceptRecord.from_row(r), delimiter) for r in rows]
