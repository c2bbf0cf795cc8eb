from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)


class SQLiteMigrator:
    """
    Applies ``*.sql`` files from a directory in filename order.

    Applied files are recorded in ``_migrations`` so re-running is a no-op.
    Only the part of a file above a ``-- Down`` marker is executed.
    """

    def __init__(self, db_path: str, migrations_dir: str | Path):
        self.db_path = db_path
        self.migrations_dir = Path(migrations_dir)

    def _get_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def _ensure_migration_table(self, conn: sqlite3.Connection) -> None:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS _migrations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                filename TEXT UNIQUE NOT NULL,
                applied_at DATETIME DEFAULT CURRENT_TIMESTAMP
            );
        """)

    def _get_applied_migrations(self, conn: sqlite3.Connection) -> set[str]:
        cursor = conn.execute("SELECT filename FROM _migrations")
        return {row[0] for row in cursor.fetchall()}

    def pending_migrations(self) -> list[str]:
        conn = self._get_connection()
        try:
            self._ensure_migration_table(conn)
            applied = self._get_applied_migrations(conn)
        finally:
            conn.close()
        return [f for f in self._migration_files() if f not in applied]

    def run_migrations(self) -> list[str]:
        """Apply all pending migrations. Returns the filenames applied."""
        if not self.migrations_dir.is_dir():
            raise FileNotFoundError(f"Migrations directory not found: {self.migrations_dir}")

        conn = self._get_connection()
        applied_now: list[str] = []
        try:
            self._ensure_migration_table(conn)
            applied = self._get_applied_migrations(conn)

            for filename in self._migration_files():
                if filename not in applied:
                    logger.info("Applying migration: %s", filename)
                    self._apply_migration(conn, filename)
                    applied_now.append(filename)

            logger.info("All migrations applied (%d new)", len(applied_now))
        finally:
            conn.close()
        return applied_now

    def _migration_files(self) -> list[str]:
        return sorted(p.name for p in self.migrations_dir.glob("*.sql"))

    def _read_up_script(self, filename: str) -> str:
        content = (self.migrations_dir / filename).read_text(encoding="utf-8")
        return content.split("-- Down")[0]

    def _apply_migration(self, conn: sqlite3.Connection, filename: str) -> None:
        script = self._read_up_script(filename)
        try:
            # executescript commits any open transaction first, so the whole
            # script plus its bookkeeping row run in one explicit transaction.
            conn.executescript(
                f"BEGIN;\n{script}\n"
                f"INSERT INTO _migrations (filename) VALUES ('{_sql_literal(filename)}');\n"
                "COMMIT;"
            )
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.rollback()
            raise RuntimeError(f"Migration {filename} failed: {e}") from e


def _sql_literal(value: str) -> str:
    return value.replace("'", "''")
