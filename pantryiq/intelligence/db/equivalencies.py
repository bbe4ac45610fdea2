"""Equivalency rule tables (system defaults and household overrides)."""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path

from ..models import EquivalencyEdge, Scope
from ..normalizer import normalize
from ..store import EquivalencyStore, StoreUnavailable, edge_from_record, validate_edge
from .schema import ensure_schema

logger = logging.getLogger(__name__)

_SYSTEM_TABLE = "system_ingredient_equivalencies"
_HOUSEHOLD_TABLE = "household_ingredient_equivalencies"


class EquivalencyDB(EquivalencyStore):
    """Manages both equivalency tables and serves them as an EquivalencyStore.

    Any ``sqlite3.Error`` raised while reading is reported as
    StoreUnavailable so callers can tell "no rule" from "could not check".
    One connection is shared by all threads; statements run under a lock.
    """

    def __init__(self, db_path: str | Path = "~/.config/pantryiq/pantry.db") -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    def _get_conn(self) -> sqlite3.Connection:
        with self._lock:
            if self._conn is None:
                self._conn = ensure_schema(self._db_path)
            return self._conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    # -- EquivalencyStore ----------------------------------------------------

    def get_system_edges(self, food_name: str) -> list[EquivalencyEdge]:
        rows = self._query(
            f"""SELECT * FROM {_SYSTEM_TABLE}
                WHERE subject_name = ?
                   OR (bidirectional = 1 AND equivalent_name = ?)
                ORDER BY id""",
            (food_name, food_name),
        )
        return [edge_from_record(r, Scope.SYSTEM) for r in rows]

    def get_household_edges(
        self, household_id: str, food_name: str
    ) -> list[EquivalencyEdge]:
        rows = self._query(
            f"""SELECT * FROM {_HOUSEHOLD_TABLE}
                WHERE household_id = ?
                  AND (subject_name = ?
                       OR (bidirectional = 1 AND equivalent_name = ?))
                ORDER BY id""",
            (household_id, food_name, food_name),
        )
        return [edge_from_record(r, Scope.HOUSEHOLD) for r in rows]

    def _query(self, sql: str, params: tuple) -> list[dict]:
        try:
            with self._lock:
                rows = self._get_conn().execute(sql, params).fetchall()
        except sqlite3.Error as e:
            logger.warning("Equivalency lookup failed: %s", e)
            raise StoreUnavailable(f"Equivalency store unavailable: {e}") from e
        return [dict(r) for r in rows]

    # -- Administration ------------------------------------------------------

    def add_system_edge(
        self,
        subject_name: str,
        equivalent_name: str,
        *,
        confidence: float = 1.0,
        substitution_ratio: str = "1:1",
        bidirectional: bool = False,
        notes: str = "",
        overwrite: bool = True,
    ) -> int | None:
        """Insert or update a system default rule.

        With ``overwrite=False`` an existing row for the pair is left as it
        is, including any edits made to it since it was first written.

        Returns:
            The row ID, or None if the pair existed and was not overwritten.
        """
        edge = self._checked(
            {
                "subject_name": subject_name,
                "equivalent_name": equivalent_name,
                "confidence": confidence,
                "substitution_ratio": substitution_ratio,
                "bidirectional": bidirectional,
            },
            Scope.SYSTEM,
        )
        if overwrite:
            conflict = """DO UPDATE SET
                 confidence=excluded.confidence,
                 substitution_ratio=excluded.substitution_ratio,
                 bidirectional=excluded.bidirectional,
                 active=1,
                 notes=excluded.notes,
                 updated_at=datetime('now', 'localtime')"""
        else:
            conflict = "DO NOTHING"
        with self._lock:
            conn = self._get_conn()
            cur = conn.execute(
                f"""INSERT INTO {_SYSTEM_TABLE}
                   (subject_name, equivalent_name, confidence, substitution_ratio,
                    bidirectional, active, notes)
                   VALUES (?, ?, ?, ?, ?, 1, ?)
                   ON CONFLICT(subject_name, equivalent_name) {conflict}""",
                (
                    edge.subject_name,
                    edge.equivalent_name,
                    edge.confidence,
                    substitution_ratio,
                    int(bidirectional),
                    notes,
                ),
            )
            conn.commit()
            if cur.rowcount == 0:
                return None
            return self._row_id(
                _SYSTEM_TABLE,
                "subject_name = ? AND equivalent_name = ?",
                (edge.subject_name, edge.equivalent_name),
            )

    def add_household_edge(
        self,
        household_id: str,
        subject_name: str,
        equivalent_name: str,
        *,
        confidence: float = 1.0,
        substitution_ratio: str = "1:1",
        bidirectional: bool = False,
        notes: str = "",
    ) -> int:
        """Create or edit a household override rule.

        Returns:
            The row ID.
        """
        edge = self._checked(
            {
                "household_id": household_id,
                "subject_name": subject_name,
                "equivalent_name": equivalent_name,
                "confidence": confidence,
                "substitution_ratio": substitution_ratio,
                "bidirectional": bidirectional,
            },
            Scope.HOUSEHOLD,
        )
        with self._lock:
            conn = self._get_conn()
            conn.execute(
                f"""INSERT INTO {_HOUSEHOLD_TABLE}
                   (household_id, subject_name, equivalent_name, confidence,
                    substitution_ratio, bidirectional, active, notes)
                   VALUES (?, ?, ?, ?, ?, ?, 1, ?)
                   ON CONFLICT(household_id, subject_name, equivalent_name) DO UPDATE SET
                     confidence=excluded.confidence,
                     substitution_ratio=excluded.substitution_ratio,
                     bidirectional=excluded.bidirectional,
                     active=1,
                     notes=excluded.notes,
                     updated_at=datetime('now', 'localtime')""",
                (
                    household_id,
                    edge.subject_name,
                    edge.equivalent_name,
                    edge.confidence,
                    substitution_ratio,
                    int(bidirectional),
                    notes,
                ),
            )
            conn.commit()
            return self._row_id(
                _HOUSEHOLD_TABLE,
                "household_id = ? AND subject_name = ? AND equivalent_name = ?",
                (household_id, edge.subject_name, edge.equivalent_name),
            )

    def deactivate_household_edge(
        self, household_id: str, subject_name: str, equivalent_name: str
    ) -> int:
        """Set active=0 on a household rule.

        Returns:
            Number of rows updated.
        """
        with self._lock:
            conn = self._get_conn()
            cur = conn.execute(
                f"""UPDATE {_HOUSEHOLD_TABLE}
                   SET active = 0,
                       updated_at = datetime('now', 'localtime')
                   WHERE household_id = ? AND subject_name = ? AND equivalent_name = ?""",
                (household_id, normalize(subject_name), normalize(equivalent_name)),
            )
            conn.commit()
            return cur.rowcount

    def delete_household_edge(
        self, household_id: str, subject_name: str, equivalent_name: str
    ) -> int:
        """Delete a household override, restoring the system default.

        Returns:
            Number of rows deleted.
        """
        with self._lock:
            conn = self._get_conn()
            cur = conn.execute(
                f"""DELETE FROM {_HOUSEHOLD_TABLE}
                   WHERE household_id = ? AND subject_name = ? AND equivalent_name = ?""",
                (household_id, normalize(subject_name), normalize(equivalent_name)),
            )
            conn.commit()
            return cur.rowcount

    def get_household_overrides(self, household_id: str) -> list[EquivalencyEdge]:
        """Return every rule a household has authored, active or not."""
        rows = self._query(
            f"SELECT * FROM {_HOUSEHOLD_TABLE} WHERE household_id = ? ORDER BY id",
            (household_id,),
        )
        return [edge_from_record(r, Scope.HOUSEHOLD) for r in rows]

    @staticmethod
    def _checked(record: dict, scope: Scope) -> EquivalencyEdge:
        edge = edge_from_record(record, scope)
        validate_edge(edge)
        return edge

    def _row_id(self, table: str, where: str, params: tuple) -> int:
        with self._lock:
            row = self._get_conn().execute(
                f"SELECT id FROM {table} WHERE {where}", params
            ).fetchone()
        return row["id"]
