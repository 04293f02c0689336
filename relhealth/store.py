"""
Record store for RelHealth
SQLite-backed interactions, versioned baselines and boundary goals
"""

import json
import sqlite3
import logging
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from . import config
from .models import BaselinePreferences, BoundaryGoal, InteractionRecord

logger = logging.getLogger(__name__)


class InteractionStore:
    """
    Ordered retrieval of interaction records plus baseline/goal persistence.

    Interactions and baselines are stored as JSON payloads; the indexed
    columns only exist for filtering and ordering.
    """

    def __init__(self, db_path: Optional[Path] = None):
        """
        Initialize store.

        Args:
            db_path: SQLite database file (default from config)
        """
        self.db_path = Path(db_path or config.DB_PATH)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        """Initialize database schema."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS interactions (
                    id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    relationship_id TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    payload TEXT NOT NULL,
                    PRIMARY KEY (user_id, id)
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_interactions_rel "
                "ON interactions(user_id, relationship_id, created_at)"
            )
            conn.execute("""
                CREATE TABLE IF NOT EXISTS baselines (
                    user_id TEXT NOT NULL,
                    version INTEGER NOT NULL,
                    created_at TEXT NOT NULL,
                    payload TEXT NOT NULL,
                    UNIQUE(user_id, version)
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS boundary_goals (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    boundary_name TEXT NOT NULL,
                    description TEXT,
                    target_respect_rate INTEGER NOT NULL,
                    is_from_baseline INTEGER NOT NULL,
                    is_active INTEGER NOT NULL,
                    created_at TEXT NOT NULL,
                    UNIQUE(user_id, boundary_name, is_from_baseline)
                )
            """)
            conn.commit()
        logger.debug(f"Store database initialized at {self.db_path}")

    # ------------------------------------------------------------------
    # Interactions
    # ------------------------------------------------------------------

    def add_interaction(self, record: InteractionRecord):
        """Insert an interaction. Records are immutable once stored."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                "INSERT INTO interactions (id, user_id, relationship_id, created_at, payload) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    str(record.id),
                    record.user_id,
                    str(record.relationship_id),
                    record.created_at.isoformat(),
                    json.dumps(record.to_dict()),
                ),
            )
            conn.commit()

    def add_interactions(self, records: Iterable[InteractionRecord]) -> int:
        count = 0
        for record in records:
            self.add_interaction(record)
            count += 1
        logger.info(f"Stored {count} interactions")
        return count

    def get_interactions(self, relationship_id: Any, user_id: str) -> List[InteractionRecord]:
        """One relationship's interactions, oldest first."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                "SELECT payload FROM interactions WHERE user_id = ? AND relationship_id = ? "
                "ORDER BY created_at, rowid",
                (user_id, str(relationship_id)),
            )
            rows = cursor.fetchall()
        return [InteractionRecord.from_dict(json.loads(row[0])) for row in rows]

    def get_all_interactions(self, user_id: str) -> List[InteractionRecord]:
        """All of a user's interactions, oldest first."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                "SELECT payload FROM interactions WHERE user_id = ? ORDER BY created_at, rowid",
                (user_id,),
            )
            rows = cursor.fetchall()
        return [InteractionRecord.from_dict(json.loads(row[0])) for row in rows]

    # ------------------------------------------------------------------
    # Baselines
    # ------------------------------------------------------------------

    def save_baseline(self, baseline: BaselinePreferences) -> BaselinePreferences:
        """
        Store a baseline as the user's next version.

        Returns:
            The stored baseline with its assigned version and timestamp
        """
        stored, _ = self.save_baseline_with_goals(baseline)
        return stored

    def save_baseline_with_goals(
        self,
        baseline: BaselinePreferences,
        build_goals: Optional[Callable[[BaselinePreferences], List[BoundaryGoal]]] = None,
    ) -> Tuple[BaselinePreferences, List[BoundaryGoal]]:
        """
        Store a baseline and, if it is the user's first, its starter goals.

        The version row and the goal rows are written in one transaction, so
        a failed goal insert leaves no baseline behind and a retry is still
        treated as the first baseline.

        Args:
            baseline: Baseline to store (its version is reassigned)
            build_goals: Called with the stored baseline when it is version 1

        Returns:
            (stored_baseline, goals_built)
        """
        created_at = baseline.created_at or datetime.now()
        goals: List[BoundaryGoal] = []

        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                "SELECT COALESCE(MAX(version), 0) FROM baselines WHERE user_id = ?",
                (baseline.user_id,),
            )
            version = cursor.fetchone()[0] + 1
            stored = replace(baseline, version=version, created_at=created_at)

            conn.execute(
                "INSERT INTO baselines (user_id, version, created_at, payload) VALUES (?, ?, ?, ?)",
                (stored.user_id, version, created_at.isoformat(), json.dumps(stored.to_dict())),
            )

            if version == 1 and build_goals is not None:
                goals = build_goals(stored)
                self._insert_goals(conn, goals)

            conn.commit()

        logger.info(f"Saved baseline v{version} for {stored.user_id} ({len(goals)} goals)")
        return stored, goals

    def get_latest_baseline(self, user_id: str) -> Optional[BaselinePreferences]:
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                "SELECT payload FROM baselines WHERE user_id = ? ORDER BY version DESC LIMIT 1",
                (user_id,),
            )
            row = cursor.fetchone()

        if row is None:
            return None
        return BaselinePreferences.from_dict(json.loads(row[0]))

    def get_baseline_versions(self, user_id: str) -> List[BaselinePreferences]:
        """All baseline versions, newest first."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                "SELECT payload FROM baselines WHERE user_id = ? ORDER BY version DESC",
                (user_id,),
            )
            rows = cursor.fetchall()
        return [BaselinePreferences.from_dict(json.loads(row[0])) for row in rows]

    # ------------------------------------------------------------------
    # Boundary goals
    # ------------------------------------------------------------------

    def insert_goals(self, goals: Iterable[BoundaryGoal]) -> int:
        """
        Bulk insert goals, skipping any the user already has.

        Safe to retry: duplicates on (user_id, boundary_name, is_from_baseline)
        are ignored.

        Returns:
            Number of goals actually inserted
        """
        with sqlite3.connect(self.db_path) as conn:
            inserted = self._insert_goals(conn, goals)
            conn.commit()

        logger.info(f"Inserted {inserted} boundary goals")
        return inserted

    def _insert_goals(self, conn: sqlite3.Connection, goals: Iterable[BoundaryGoal]) -> int:
        timestamp = datetime.now().isoformat()
        inserted = 0
        for goal in goals:
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO boundary_goals
                (user_id, boundary_name, description, target_respect_rate,
                 is_from_baseline, is_active, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    goal.user_id,
                    goal.boundary_name,
                    goal.description,
                    goal.target_respect_rate,
                    int(goal.is_from_baseline),
                    int(goal.is_active),
                    timestamp,
                ),
            )
            inserted += cursor.rowcount
        return inserted

    def get_goals(self, user_id: str) -> List[BoundaryGoal]:
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                """
                SELECT user_id, boundary_name, description, target_respect_rate,
                       is_from_baseline, is_active
                FROM boundary_goals WHERE user_id = ? ORDER BY id
                """,
                (user_id,),
            )
            rows = cursor.fetchall()

        return [
            BoundaryGoal(
                user_id=row[0],
                boundary_name=row[1],
                description=row[2] or "",
                target_respect_rate=row[3],
                is_from_baseline=bool(row[4]),
                is_active=bool(row[5]),
            )
            for row in rows
        ]

    def stats(self) -> Dict[str, Any]:
        """Get row counts per table."""
        with sqlite3.connect(self.db_path) as conn:
            counts = {
                table: conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
                for table in ("interactions", "baselines", "boundary_goals")
            }
        counts["db_path"] = str(self.db_path)
        return counts
