"""Shared fixtures: the entity/animal/plant scenario tree, stores, projects."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from synsets.config import load_config
from synsets.db import open_db
from synsets.flatten import build_records
from synsets.loader import bulk_load
from synsets.models import ConceptNode

if TYPE_CHECKING:
    import sqlite3
    from collections.abc import Iterator
    from pathlib import Path

    from synsets.config import SynsetsConfig

SCENARIO_XML = """\
<?xml version="1.0" encoding="UTF-8"?>
<ImageNetStructure>
  <releaseData>fall2011</releaseData>
  <synset wnid="n00001740" words="entity" gloss="that which is perceived">
    <synset wnid="n00015388" words="animal" gloss="a living organism">
      <synset wnid="n02084071" words="dog"/>
      <synset wnid="n02121808" words="cat"/>
    </synset>
    <synset wnid="n00017222" words="plant"/>
  </synset>
</ImageNetStructure>
"""

SCENARIO_SIZES = {
    "entity": 4,
    "entity > animal": 2,
    "entity > animal > dog": 0,
    "entity > animal > cat": 0,
    "entity > plant": 0,
}

_ENV_KEYS = ("XML_URL", "DATABASE_PATH", "PORT", "BACKEND_PORT", "HOST", "FRONTEND_URL", "LOG_LEVEL")


def scenario_tree() -> list[ConceptNode]:
    return [
        ConceptNode("entity", [
            ConceptNode("animal", [ConceptNode("dog"), ConceptNode("cat")]),
            ConceptNode("plant"),
        ]),
    ]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def scenario_roots() -> list[ConceptNode]:
    return scenario_tree()


@pytest.fixture
def conn(tmp_path: Path) -> Iterator[sqlite3.Connection]:
    c = open_db(tmp_path / "store" / "synsets.db")
    yield c
    c.close()


@pytest.fixture
def seeded_conn(conn: sqlite3.Connection, scenario_roots: list[ConceptNode]) -> sqlite3.Connection:
    records, _ = build_records(scenario_roots)
    bulk_load(conn, records)
    return conn


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> SynsetsConfig:
    """A project dir with synsets.toml and the scenario XML already cached."""
    (tmp_path / "synsets.toml").write_text(
        '[synsets]\nname = "test"\n\n[ingest]\nbatch_size = 2\n\n[logging]\nlevel = "WARNING"\n'
    )
    cfg = load_config(tmp_path)
    cfg.ensure_dirs()
    cfg.xml_path.write_text(SCENARIO_XML)
    monkeypatch.chdir(tmp_path)
    return cfg
