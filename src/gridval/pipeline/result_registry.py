"""SQLite-based registry of written result files.

Records every result layer that was persisted, with the check, dataset,
severity and iteration unit it belongs to, and the source grids it was
computed from. The surrounding application uses it to list, plot or clean
up results after a run.
"""

import json
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pandas as pd

__all__ = ['ResultRegistry']

logger = logging.getLogger(__name__)


class ResultRegistry:
    """Tracks result files and their provenance.

    **Database Schema:**

    SQLite table `result_files`:

    - path: Result file (primary key)
    - check_name, dataset, severity: What produced the file
    - entry, period, label: Iteration unit
    - result_count: Cells carrying at least one finding
    - findings: JSON object of cells per finding label
    - created_at: Registration time (ISO format)

    SQLite table `result_sources`: one row per (result_path, source_path).

    **Re-runs:**

    Registering a path that is already known replaces its record and its
    sources, so re-running a check over the same output directory keeps
    one row per file.

    **Thread Safety:**

    All methods are thread-safe via internal locking.

    **Typical Usage:**

        registry = ResultRegistry(output_dirs["registry"])
        layer.write_result_file(output_dirs["results"], registry=registry)
        df = registry.get_results(check_name="ANI")
        registry.close()
    """

    def __init__(self, db_path: Path | str):
        """Initialize registry.

        Parameters
        ----------
        db_path : Path or str
            Path to SQLite database file. Created if doesn't exist.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = None
        self._lock = threading.Lock()

        self._init_database()
        logger.info("Result registry initialized: %s", self.db_path)

    def _get_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row  # Enable dict-like access
        return self._conn

    def _init_database(self):
        """Create database schema if it doesn't exist."""
        conn = self._get_connection()

        with self._lock:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS result_files (
                    path TEXT PRIMARY KEY,
                    check_name TEXT NOT NULL,
                    dataset TEXT NOT NULL,
                    severity TEXT NOT NULL,
                    entry INTEGER,
                    period INTEGER,
                    label TEXT,
                    result_count INTEGER DEFAULT 0,
                    findings TEXT,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS result_sources (
                    result_path TEXT NOT NULL,
                    source_path TEXT NOT NULL,
                    PRIMARY KEY (result_path, source_path)
                )
            """)

            conn.execute("CREATE INDEX IF NOT EXISTS idx_check_name ON result_files(check_name)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_severity ON result_files(severity)")

            conn.commit()

    def register_result(self, path: Path | str, check_name: str, dataset: str,
                        severity: str, entry: Optional[int] = None,
                        period: Optional[int] = None, label: Optional[str] = None,
                        result_count: int = 0, findings: Optional[Dict[str, int]] = None,
                        sources: Iterable = ()) -> bool:
        """Register (or re-register) a written result file.

        Parameters
        ----------
        path : Path or str
            Result file.
        check_name, dataset, severity : str
            Producer of the file.
        entry, period : int, optional
            Iteration unit.
        label : str, optional
            Extra unit label.
        result_count : int
            Cells carrying at least one finding.
        findings : dict, optional
            Cells per finding label.
        sources : iterable of Path or str
            Source grids, duplicates are ignored.

        Returns
        -------
        bool
            True if the path was new, False if an existing record was replaced.
        """
        path = str(path)
        conn = self._get_connection()

        with self._lock:
            cursor = conn.execute("SELECT path FROM result_files WHERE path = ?", (path,))
            is_new = cursor.fetchone() is None

            conn.execute("DELETE FROM result_sources WHERE result_path = ?", (path,))
            conn.execute("""
                INSERT OR REPLACE INTO result_files
                (path, check_name, dataset, severity, entry, period, label,
                 result_count, findings, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                path,
                check_name,
                dataset,
                severity,
                entry,
                period,
                label,
                result_count,
                json.dumps(findings or {}),
                datetime.now(timezone.utc).isoformat(),
            ))
            conn.executemany(
                "INSERT OR IGNORE INTO result_sources (result_path, source_path) VALUES (?, ?)",
                [(path, str(s)) for s in sources],
            )
            conn.commit()

        logger.debug("Registered result: %s", path)
        return is_new

    def get_result(self, path: Path | str) -> Optional[Dict]:
        """Record of one result file, with ``findings`` decoded; None if unknown."""
        conn = self._get_connection()

        with self._lock:
            cursor = conn.execute("SELECT * FROM result_files WHERE path = ?", (str(path),))
            row = cursor.fetchone()

        if row is None:
            return None
        record = dict(row)
        record["findings"] = json.loads(record["findings"] or "{}")
        return record

    def get_sources(self, path: Path | str) -> List[str]:
        conn = self._get_connection()

        with self._lock:
            cursor = conn.execute(
                "SELECT source_path FROM result_sources WHERE result_path = ? ORDER BY source_path",
                (str(path),),
            )
            return [row["source_path"] for row in cursor.fetchall()]

    def get_results(self, check_name: Optional[str] = None,
                    severity: Optional[str] = None) -> pd.DataFrame:
        """Result records as a DataFrame, ordered by check, period and entry."""
        query = "SELECT * FROM result_files WHERE 1 = 1"
        params = []
        if check_name:
            query += " AND check_name = ?"
            params.append(check_name)
        if severity:
            query += " AND severity = ?"
            params.append(severity)
        query += " ORDER BY check_name, period, entry, severity"

        conn = self._get_connection()
        with self._lock:
            return pd.read_sql_query(query, conn, params=params)

    def get_statistics(self) -> Dict:
        """Counts of check result files: files, errors, warnings and flagged cells.

        Run summary files (check name ``SUMMARY``) are not counted.
        """
        conn = self._get_connection()

        with self._lock:
            cursor = conn.execute("""
                SELECT
                    COUNT(*) as total,
                    SUM(CASE WHEN severity = 'error' THEN 1 ELSE 0 END) as errors,
                    SUM(CASE WHEN severity = 'warning' THEN 1 ELSE 0 END) as warnings,
                    COALESCE(SUM(result_count), 0) as flagged_cells
                FROM result_files
                WHERE check_name != 'SUMMARY'
            """)
            row = cursor.fetchone()
            return {k: (v or 0) for k, v in dict(row).items()} if row else {}

    def close(self):
        """Close database connection. Safe to call multiple times."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
