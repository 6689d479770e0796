"""L2 cache record store backed by SQLite."""

from __future__ import annotations

import logging
import sqlite3
import time
from pathlib import Path

from imgcache.cache.stats import CacheObject

logger = logging.getLogger(__name__)

_DEFAULT_DB_PATH = Path.home() / ".imgcache" / "cache.db"


class DiskCache:
    """SQLite-backed persistent index of cached files."""

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path or _DEFAULT_DB_PATH
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.row_factory = sqlite3.Row
        self._create_table()

    def get(self, key: str) -> CacheObject | None:
        row = self._conn.execute(
            "SELECT * FROM cache_object WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_object(row)

    def set(self, obj: CacheObject) -> None:
        self._conn.execute(
            """INSERT OR REPLACE INTO cache_object
               (key, url, relative_path, valid_till, touched, length, etag)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                obj.key, obj.url, obj.relative_path, obj.valid_till,
                obj.touched, obj.length, obj.etag,
            ),
        )
        self._conn.commit()

    def delete(self, key: str) -> int:
        cursor = self._conn.execute("DELETE FROM cache_object WHERE key = ?", (key,))
        self._conn.commit()
        return cursor.rowcount

    def get_all(self) -> list[CacheObject]:
        rows = self._conn.execute("SELECT * FROM cache_object").fetchall()
        return [self._row_to_object(r) for r in rows]

    def get_objects_to_remove(
        self,
        stale_period_seconds: float,
        max_objects: int,
    ) -> list[CacheObject]:
        """Records untouched for longer than the stale period, then the least
        recently touched ones beyond ``max_objects``."""
        cutoff = time.time() - stale_period_seconds
        old = self._conn.execute(
            "SELECT * FROM cache_object WHERE touched < ? ORDER BY touched ASC",
            (cutoff,),
        ).fetchall()
        over = self._conn.execute(
            """SELECT * FROM cache_object WHERE touched >= ?
               ORDER BY touched DESC LIMIT -1 OFFSET ?""",
            (cutoff, max_objects),
        ).fetchall()
        return [self._row_to_object(r) for r in [*old, *over]]

    def clear(self) -> None:
        self._conn.execute("DELETE FROM cache_object")
        self._conn.commit()

    @property
    def entry_count(self) -> int:
        row = self._conn.execute("SELECT COUNT(*) FROM cache_object").fetchone()
        return row[0]

    @property
    def size_mb(self) -> float:
        row = self._conn.execute(
            "SELECT COALESCE(SUM(length), 0) FROM cache_object"
        ).fetchone()
        return row[0] / (1024 * 1024)

    def close(self) -> None:
        self._conn.close()

    def _create_table(self) -> None:
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS cache_object (
                key TEXT PRIMARY KEY,
                url TEXT,
                relative_path TEXT,
                valid_till REAL,
                touched REAL,
                length INTEGER,
                etag TEXT
            )
        """)
        self._conn.commit()

    @staticmethod
    def _row_to_object(row: sqlite3.Row) -> CacheObject:
        return CacheObject(
            key=row["key"],
            url=row["url"] or "",
            relative_path=row["relative_path"],
            valid_till=row["valid_till"],
            touched=row["touched"],
            length=row["length"],
            etag=row["etag"],
        )
