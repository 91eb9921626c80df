"""
Forward-only SQL migrations for the analytics database.

Each `migrations/NNN_name.sql` file holds an Up section followed by an
optional `-- Down` section; only the Up part is ever executed. Applied
files are recorded in `schema_migrations` and never run twice.
"""

import logging
import sqlite3
from datetime import UTC, datetime
from pathlib import Path

logger = logging.getLogger(__name__)

DOWN_MARKER = "-- Down"


class SQLiteMigrator:
    def __init__(self, db_path: str, migrations_dir: str | Path):
        self.db_path = db_path
        self.migrations_dir = Path(migrations_dir)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_migrations (
                filename TEXT PRIMARY KEY,
                applied_at TEXT NOT NULL
            )
            """
        )
        return conn

    def pending(self, conn: sqlite3.Connection) -> list[Path]:
        """Migration files not yet recorded, in filename order."""
        done = {row[0] for row in conn.execute("SELECT filename FROM schema_migrations")}
        return [p for p in sorted(self.migrations_dir.glob("*.sql")) if p.name not in done]

    def run_migrations(self) -> list[str]:
        """Apply every pending migration. Returns the filenames applied."""
        conn = self._connect()
        try:
            applied: list[str] = []
            for script_path in self.pending(conn):
                logger.info("Applying migration %s", script_path.name)
                self._apply(conn, script_path)
                applied.append(script_path.name)
            return applied
        finally:
            conn.close()

    def _apply(self, conn: sqlite3.Connection, script_path: Path) -> None:
        up_sql = script_path.read_text().split(DOWN_MARKER, 1)[0]
        try:
            conn.executescript(up_sql)
            conn.execute(
                "INSERT INTO schema_migrations (filename, applied_at) VALUES (?, ?)",
                (script_path.name, datetime.now(UTC).isoformat()),
            )
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise RuntimeError(f"Migration {script_path.name} failed: {e}") from e
