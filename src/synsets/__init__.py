"""Lazy browsing and search over a large concept hierarchy.

The nested source taxonomy is flattened into one SQLite relation keyed by
materialized path:

    entity                          size 4
    entity > animal                 size 2
    entity > animal > cat           size 0
    entity > animal > dog           size 0
    entity > plant                  size 0

``size`` is the exact number of descendants, so a client knows whether a node
can be expanded without fetching its children. Queries only ever touch one
level of the tree (prefix range scan on the path), whatever its total size.

Layout:
    .synsets/
        structure_released.xml    # cached source (downloaded once)
        synsets.db                # SQLite: concepts(version, path, size, deleted) + meta
"""

from synsets.config import SynsetsConfig, init_config, load_config
from synsets.models import DELIMITER, ConceptNode, ConceptRecord, TreeNode, TreeResponse

__all__ = [
    "DELIMITER",
    "ConceptNode",
    "ConceptRecord",
    "SynsetsConfig",
    "TreeNode",
    "TreeResponse",
    "init_config",
    "load_config",
]
