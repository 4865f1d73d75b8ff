import sqlite3
import threading
from pathlib import Path

from .utils import utc_now_iso


class SQLitePageCache:
    """SQLite-backed page cache keyed by request URL."""

    def __init__(self, db_path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")
        self._conn.execute("PRAGMA busy_timeout=5000")
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS pages (
                url TEXT PRIMARY KEY,
                status INTEGER,
                payload BLOB,
                ts TEXT
            )
            """
        )
        self._conn.commit()

    def get(self, url):
        with self._lock:
            row = self._conn.execute(
                "SELECT status, payload, ts FROM pages WHERE url = ?",
                (url,),
            ).fetchone()
        return row

    def put(self, url, status, payload):
        now = utc_now_iso()
        with self._lock:
            self._conn.execute(
                """
                INSERT INTO pages (url, status, payload, ts)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(url) DO UPDATE SET
                    status=excluded.status,
                    payload=excluded.payload,
                    ts=excluded.ts
                """,
                (url, status, payload, now),
            )
            self._conn.commit()

    def delete(self, url):
        with self._lock:
            self._conn.execute("DELETE FROM pages WHERE url = ?", (url,))
            self._conn.commit()

    def close(self):
        with self._lock:
            self._conn.close()
