"""Substring search over stored concept paths.

A path matches when the whole query, or any single whitespace-separated word
of it, occurs in the path (case-insensitively). Results come back in plain
path order: the multi-clause match looks like it should rank exact-phrase hits
first, but no scoring is applied. That limitation is kept as-is; callers that
need relevance ordering must add it themselves.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from synsets.db import current_version, read_snapshot
from synsets.models import DELIMITER, ConceptRecord, SearchResponse, SearchResult

if TYPE_CHECKING:
    import sqlite3

DEFAULT_LIMIT = 100

_CASEFOLD_FN = "synsets_casefold"


def _terms(query: str) -> list[str]:
    """Whole query first, then each word; case-folded, duplicates dropped."""
    terms: list[str] = []
    for term in (query, *query.split()):
        folded = term.casefold()
        if folded and folded not in terms:
            terms.append(folded)
    return terms


def search(
    conn: sqlite3.Connection,
    query: str,
    *,
    limit: int = DEFAULT_LIMIT,
    delimiter: str = DELIMITER,
) -> SearchResponse:
    """Return up to ``limit`` concepts whose path contains the query or any of its words."""
    query = query.strip()
    if not query:
        msg = "Search query cannot be empty"
        raise ValueError(msg)
    if limit < 1:
        msg = f"limit must be >= 1, got {limit}"
        raise ValueError(msg)

    # SQLite's own LIKE/lower() only fold ASCII; str.casefold covers the rest.
    conn.create_function(_CASEFOLD_FN, 1, str.casefold, deterministic=True)

    terms = _terms(query)
    clauses = " OR ".join(f"instr({_CASEFOLD_FN}(path), ?) > 0" for _ in terms)
    with read_snapshot(conn):
        version = current_version(conn)
        if version is None:
            return SearchResponse(query=query)
        rows = conn.execute(
            f"""SELECT path, size FROM concepts
                WHERE version = ? AND deleted = 0 AND ({clauses})
                ORDER BY path ASC
                LIMIT ?""",  # noqa: S608
            (version, *terms, limit),
        ).fetchall()

    results = [SearchResult.from_record(ConceptRecord.from_row(r), delimiter) for r in rows]
    return SearchResponse(query=query, results=results)
