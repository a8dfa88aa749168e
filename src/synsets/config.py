"""SynsetsConfig: project-local config for the synset tree service.

Default layout (all relative to the project root):

    synsets.toml              # project config (git-tracked)
    .env                      # optional: XML_URL, DATABASE_PATH, PORT, LOG_LEVEL
    .synsets/
        structure_released.xml    # cached source taxonomy (downloaded once)
        synsets.db                # SQLite store (rebuilt by `synsets seed`)
        .gitignore                # auto-written: ignores everything above

synsets.toml example:

    [synsets]
    name = "imagenet"
    # data_dir = ".synsets"   # default

    [source]
    xml_url = "https://example.org/structure_released.xml"
    # xml_file = "structure_released.xml"

    [database]
    # path = ".synsets/synsets.db"

    [ingest]
    batch_size = 500

    [search]
    limit = 100

    [server]
    host = "127.0.0.1"
    port = 3000
    cors_origin = ""

    [logging]
    level = "INFO"
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from importlib import metadata
from pathlib import Path
from typing import Any

_CONFIG_FILENAME = "synsets.toml"
_DEFAULT_DATA_DIR = ".synsets"
_DEFAULT_XML_FILE = "structure_released.xml"
_DEFAULT_DB_FILE = "synsets.db"
_GITIGNORE_CONTENT = "*\n"


@dataclass
class SourceConfig:
    xml_url: str = ""
    xml_file: str = _DEFAULT_XML_FILE


@dataclass
class DatabaseConfig:
    path: str = ""    # empty = <data_dir>/synsets.db


@dataclass
class IngestConfig:
    batch_size: int = 500


@dataclass
class SearchConfig:
    limit: int = 100


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 3000
    cors_origin: str = ""     # empty = no CORS header


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class SynsetsConfig:
    """Resolved configuration for a synsets project."""

    root: Path                      # directory that contains synsets.toml
    name: str = ""
    data_dir: Path = field(default_factory=Path)
    version: str = "unknown"        # package version, resolved once at load time
    source: SourceConfig = field(default_factory=SourceConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    ingest: IngestConfig = field(default_factory=IngestConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def db_path(self) -> Path:
        if self.database.path:
            p = Path(self.database.path)
            return p if p.is_absolute() else self.root / p
        return self.data_dir / _DEFAULT_DB_FILE

    @property
    def xml_path(self) -> Path:
        return self.data_dir / self.source.xml_file

    def ensure_dirs(self) -> None:
        """Create data_dir (and the db parent) if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._write_gitignore()

    def _write_gitignore(self) -> None:
        gitignore = self.data_dir / ".gitignore"
        if not gitignore.exists():
            gitignore.write_text(_GITIGNORE_CONTENT)


def _load_env(root: Path) -> dict[str, str]:
    """Parse a simple KEY=VALUE .env file."""
    env_file = root / ".env"
    if not env_file.exists():
        return {}
    env: dict[str, str] = {}
    for line in env_file.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith("#") and "=" in line:
            k, _, v = line.partition("=")
            env[k.strip()] = v.strip().strip('"').strip("'")
    return env


def _lookup(env: dict[str, str], *keys: str) -> str | None:
    """Process environment wins over .env; first key found wins."""
    for key in keys:
        if os.environ.get(key):
            return os.environ[key]
        if env.get(key):
            return env[key]
    return None


def package_version() -> str:
    try:
        return metadata.version("synsets")
    except metadata.PackageNotFoundError:
        return "unknown"


def load_config(root: Path | str | None = None) -> SynsetsConfig:
    """Load synsets.toml from root (or search upward from cwd if root is None)."""
    root_path = _find_root(Path(root) if root else Path.cwd())
    config_path = root_path / _CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_path.exists():
        with config_path.open("rb") as f:
            raw = tomllib.load(f)

    env = _load_env(root_path)

    main_section = raw.get("synsets", {})
    src_section = raw.get("source", {})
    db_section = raw.get("database", {})
    ing_section = raw.get("ingest", {})
    srch_section = raw.get("search", {})
    srv_section = raw.get("server", {})
    log_section = raw.get("logging", {})

    port = _lookup(env, "BACKEND_PORT", "PORT") or srv_section.get("port", 3000)

    return SynsetsConfig(
        root=root_path,
        name=main_section.get("name", root_path.name),
        data_dir=root_path / main_section.get("data_dir", _DEFAULT_DATA_DIR),
        version=package_version(),
        source=SourceConfig(
            xml_url=_lookup(env, "XML_URL") or str(src_section.get("xml_url", "")),
            xml_file=str(src_section.get("xml_file", _DEFAULT_XML_FILE)),
        ),
        database=DatabaseConfig(
            path=_lookup(env, "DATABASE_PATH") or str(db_section.get("path", "")),
        ),
        ingest=IngestConfig(
            batch_size=int(ing_section.get("batch_size", 500)),
        ),
        search=SearchConfig(
            limit=int(srch_section.get("limit", 100)),
        ),
        server=ServerConfig(
            host=_lookup(env, "HOST") or str(srv_section.get("host", "127.0.0.1")),
            port=int(port),
            cors_origin=_lookup(env, "FRONTEND_URL") or str(srv_section.get("cors_origin", "")),
        ),
        logging=LoggingConfig(
            level=(_lookup(env, "LOG_LEVEL") or str(log_section.get("level", "INFO"))).upper(),
        ),
    )


def _find_root(start: Path) -> Path:
    """Walk upward from start looking for synsets.toml."""
    for directory in (start, *start.parents):
        if (directory / _CONFIG_FILENAME).exists():
            return directory
    return start


def init_config(root: Path, name: str | None = None, xml_url: str = "") -> Path:
    """Write a default synsets.toml at root. Raises if already exists."""
    config_path = root / _CONFIG_FILENAME
    if config_path.exists():
        msg = f"synsets.toml already exists at {config_path}"
        raise FileExistsError(msg)

    project_name = name or root.name
    content = f"""\
[synsets]
name = "{project_name}"
# data_dir = ".synsets"   # default; holds the cached XML and the SQLite store

[source]
xml_url = "{xml_url}"     # or set XML_URL in .env
# xml_file = "structure_released.xml"

# [database]
# path = ".synsets/synsets.db"   # or set DATABASE_PATH in .env

# [ingest]
# batch_size = 500

# [search]
# limit = 100

# [server]
# host = "127.0.0.1"
# port = 3000          # or set PORT / BACKEND_PORT in .env
# cors_origin = ""     # e.g. "http://localhost:5173"

# [logging]
# level = "INFO"
"""
    config_path.write_text(content)
    return config_path
