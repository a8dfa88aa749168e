"""Replace the stored concept relation with a freshly built record set.

Entry points:
    bulk_load(conn, records)   # batched insert under a new version, then swap
    seed(cfg)                  # source XML → records → bulk_load
"""

from __future__ import annotations

import contextlib
import logging
import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from synsets.db import CURRENT_VERSION_KEY, SEEDED_AT_KEY, ensure_schema, get_conn, next_version
from synsets.flatten import build_records
from synsets.source import load_source_tree
from synsets.tree import fetch_tree

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from synsets.config import SynsetsConfig
    from synsets.models import ConceptRecord

logger = logging.getLogger("synsets.loader")

DEFAULT_BATCH_SIZE = 500


@dataclass
class LoadResult:
    version: int
    inserted: int
    batches: int


@dataclass
class SeedSummary:
    version: int
    total_concepts: int
    duplicates: int
    root_path: str | None
    root_size: int


def bulk_load(
    conn: sqlite3.Connection,
    records: Sequence[ConceptRecord],
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    progress: Callable[[int, int], None] | None = None,
) -> LoadResult:
    """Load records as a new snapshot version and make it current.

    Rows go in batch by batch (one commit per batch) under a version no reader
    is looking at. The pointer flip and the removal of every older version
    happen in a single transaction afterwards. If anything fails before the
    flip, the partial version is removed and the error re-raised; readers
    never observe it.
    """
    if batch_size < 1:
        msg = f"batch_size must be >= 1, got {batch_size}"
        raise ValueError(msg)

    ensure_schema(conn)
    version = next_version(conn)
    total = len(records)
    inserted = 0
    batches = 0
    if total == 0:
        logger.warning("No records to load; the tree will be empty")

    try:
        for start in range(0, total, batch_size):
            batch = records[start:start + batch_size]
            with conn:
                conn.executemany(
                    "INSERT INTO concepts(version, path, size, deleted) VALUES (?, ?, ?, ?)",
                    [(version, r.path, r.size, int(r.deleted)) for r in batch],
                )
            inserted += len(batch)
            batches += 1
            logger.info("Inserted %d/%d (%.1f%%)", inserted, total, inserted / total * 100)
            if progress is not None:
                progress(inserted, total)

        with conn:
            conn.execute(
                "INSERT OR REPLACE INTO meta(key, val) VALUES (?, ?)",
                (CURRENT_VERSION_KEY, str(version)),
            )
            conn.execute(
                "INSERT OR REPLACE INTO meta(key, val) VALUES (?, ?)",
                (SEEDED_AT_KEY, datetime.now(UTC).isoformat()),
            )
            conn.execute("DELETE FROM concepts WHERE version != ?", (version,))
    except Exception:
        logger.error("Load of version %d failed after %d/%d rows; discarding it", version, inserted, total)
        with contextlib.suppress(sqlite3.Error), conn:  # best-effort: keep the original error
            conn.execute("DELETE FROM concepts WHERE version = ?", (version,))
        raise

    logger.info("Version %d is now current (%d rows)", version, inserted)
    return LoadResult(version=version, inserted=inserted, batches=batches)


def seed(
    cfg: SynsetsConfig,
    *,
    force_download: bool = False,
    progress: Callable[[int, int], None] | None = None,
) -> SeedSummary:
    """Full reseed: fetch + parse the source, rebuild records, swap them in."""
    roots = load_source_tree(cfg, force_download=force_download)
    records, duplicates = build_records(roots)

    cfg.ensure_dirs()
    conn = get_conn(cfg)
    try:
        result = bulk_load(conn, records, batch_size=cfg.ingest.batch_size, progress=progress)
        tree = fetch_tree(conn)
    finally:
        conn.close()

    return SeedSummary(
        version=result.version,
        total_concepts=tree.total_concepts,
        duplicates=duplicates,
        root_path=None if tree.empty else tree.root.path,
        root_size=tree.root.size,
    )
