"""Plain-SQL migration runner for the SQLite database.

Migration files live next to this module as `NNNN_description.sql` and
are applied in lexical order. Applied names are recorded in a
`schema_migrations` table so each file runs exactly once.
"""

import logging
import sqlite3
from pathlib import Path
from typing import List, Optional

from ..config import settings

MIGRATIONS_DIR = Path(__file__).resolve().parent

_LOGGER = logging.getLogger("storefront.migrations")


def sqlite_path(database_url: str) -> Path:
    """Return the file path of a `sqlite:///` URL."""
    prefix = "sqlite:///"
    if not database_url.startswith(prefix):
        raise RuntimeError(f"SQL migrations only support SQLite databases (got {database_url.split(':', 1)[0]})")
    return Path(database_url[len(prefix):])


def pending(db_path: Path, migrations_dir: Path = MIGRATIONS_DIR) -> List[Path]:
    files = sorted(migrations_dir.glob("*.sql"))
    if not db_path.exists():
        return files
    conn = sqlite3.connect(db_path)
    try:
        conn.execute("CREATE TABLE IF NOT EXISTS schema_migrations (name TEXT PRIMARY KEY, applied_at TEXT NOT NULL)")
        done = {row[0] for row in conn.execute("SELECT name FROM schema_migrations")}
    finally:
        conn.close()
    return [f for f in files if f.name not in done]


def run(db_path: Optional[Path] = None, migrations_dir: Path = MIGRATIONS_DIR) -> List[str]:
    """Apply every pending migration and return the names applied."""
    db_path = Path(db_path) if db_path else sqlite_path(settings.DATABASE_URL)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    todo = pending(db_path, migrations_dir)
    _LOGGER.info("Using database: %s", db_path)
    applied = []
    conn = sqlite3.connect(db_path)
    try:
        conn.execute("CREATE TABLE IF NOT EXISTS schema_migrations (name TEXT PRIMARY KEY, applied_at TEXT NOT NULL)")
        for m in todo:
            _LOGGER.info("Applying: %s", m.name)
            conn.executescript(m.read_text(encoding="utf-8"))
            conn.execute("INSERT INTO schema_migrations (name, applied_at) VALUES (?, datetime('now'))", (m.name,))
            conn.commit()
            applied.append(m.name)
    finally:
        conn.close()
    return applied
