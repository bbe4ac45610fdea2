"""Household inventory and consumption audit log."""

from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import date, datetime, timezone
from pathlib import Path

from ..models import ConsumptionEvent, InventoryItem, Product
from ..providers import ConsumptionEventProvider, InventorySnapshotProvider
from .schema import ensure_schema

logger = logging.getLogger(__name__)

_REMOVAL_ACTIONS = ("remove", "consume")


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


class InventoryDB(InventorySnapshotProvider, ConsumptionEventProvider):
    """Manages the products, inventory_items and inventory_audit_log tables.

    Every quantity removal is appended to the audit log, which is the
    source of consumption events. One connection is shared by all threads;
    statements run under a lock.
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

    def add_product(self, product: Product) -> None:
        """Insert or update a product record."""
        with self._lock:
            conn = self._get_conn()
            conn.execute(
                """INSERT INTO products (id, name, category, brand)
                   VALUES (?, ?, ?, ?)
                   ON CONFLICT(id) DO UPDATE SET
                     name=excluded.name,
                     category=excluded.category,
                     brand=excluded.brand""",
                (product.id, product.name, product.category, product.brand),
            )
            conn.commit()

    def add_item(
        self,
        household_id: str,
        product_id: str,
        quantity: float,
        *,
        unit: str = "pieces",
        purchase_date: date | None = None,
        expiration_date: date | None = None,
        at: datetime | None = None,
    ) -> int:
        """Add stock for a product.

        Returns:
            The inserted inventory item ID.
        """
        with self._lock:
            conn = self._get_conn()
            cur = conn.execute(
                """INSERT INTO inventory_items
                   (household_id, product_id, quantity, unit, purchase_date,
                    expiration_date, is_consumed)
                   VALUES (?, ?, ?, ?, ?, ?, 0)""",
                (
                    household_id,
                    product_id,
                    quantity,
                    unit,
                    (purchase_date or date.today()).isoformat(),
                    expiration_date.isoformat() if expiration_date else None,
                ),
            )
            item_id = cur.lastrowid
            self._log_action(
                conn, household_id, item_id, product_id, "add", quantity, unit, at
            )
            conn.commit()
            return item_id

    def consume_item(
        self, item_id: int, amount: float = 1.0, *, at: datetime | None = None
    ) -> None:
        """Remove ``amount`` from an item and record it in the audit log.

        If the remaining quantity reaches zero the item is marked consumed.
        """
        with self._lock:
            conn = self._get_conn()
            row = conn.execute(
                "SELECT * FROM inventory_items WHERE id = ?", (item_id,)
            ).fetchone()
            if row is None:
                raise KeyError(f"Unknown inventory item: {item_id}")

            used = min(amount, row["quantity"])
            remaining = row["quantity"] - used
            conn.execute(
                """UPDATE inventory_items
                   SET quantity = ?,
                       is_consumed = CASE WHEN ? <= 0 THEN 1 ELSE is_consumed END,
                       updated_at = datetime('now', 'localtime')
                   WHERE id = ?""",
                (remaining, remaining, item_id),
            )
            self._log_action(
                conn,
                row["household_id"],
                item_id,
                row["product_id"],
                "consume",
                -used,
                row["unit"],
                at,
            )
            conn.commit()

    def get_inventory(self, household_id: str) -> list[InventoryItem]:
        """Return unconsumed items for a household, products joined."""
        with self._lock:
            rows = self._get_conn().execute(
                """SELECT i.*, p.name AS product_name, p.category AS product_category,
                          p.brand AS product_brand
                   FROM inventory_items i
                   LEFT JOIN products p ON p.id = i.product_id
                   WHERE i.household_id = ? AND i.is_consumed = 0
                   ORDER BY i.expiration_date, i.id""",
                (household_id,),
            ).fetchall()

        items: list[InventoryItem] = []
        for r in rows:
            product = None
            if r["product_name"] is not None:
                product = Product(
                    id=r["product_id"],
                    name=r["product_name"],
                    category=r["product_category"] or "",
                    brand=r["product_brand"] or "",
                )
            items.append(
                InventoryItem(
                    product=product,
                    quantity=r["quantity"],
                    unit=r["unit"],
                    purchase_date=_parse_date(r["purchase_date"]),
                    expiration_date=_parse_date(r["expiration_date"]),
                    is_consumed=bool(r["is_consumed"]),
                    id=str(r["id"]),
                )
            )
        return items

    def get_consumption_events(
        self, household_id: str, since: datetime
    ) -> list[ConsumptionEvent]:
        """Return removal events from the audit log at or after ``since``.

        Product name and category are joined in so that products which have
        since been used up can still be grouped by category.
        """
        if since.tzinfo is not None:
            since = since.astimezone(timezone.utc).replace(tzinfo=None)
        with self._lock:
            rows = self._get_conn().execute(
                f"""SELECT a.product_id, a.quantity_delta, a.unit, a.action_date,
                          p.name AS product_name, p.category AS product_category
                   FROM inventory_audit_log a
                   LEFT JOIN products p ON p.id = a.product_id
                   WHERE a.household_id = ?
                     AND a.action_type IN ({", ".join("?" for _ in _REMOVAL_ACTIONS)})
                     AND a.action_date >= ?
                   ORDER BY a.action_date DESC, a.id DESC""",
                (household_id, *_REMOVAL_ACTIONS, since.isoformat()),
            ).fetchall()

        events: list[ConsumptionEvent] = []
        for r in rows:
            occurred_at = _parse_datetime(r["action_date"])
            if occurred_at is None or r["product_id"] is None:
                logger.debug("Skipping malformed audit row: %s", dict(r))
                continue
            events.append(
                ConsumptionEvent(
                    product_id=r["product_id"],
                    quantity_delta=abs(r["quantity_delta"]),
                    occurred_at=occurred_at.replace(tzinfo=timezone.utc),
                    unit=r["unit"],
                    product_name=r["product_name"] or "",
                    category=r["product_category"] or "",
                )
            )
        return events

    @staticmethod
    def _log_action(
        conn: sqlite3.Connection,
        household_id: str,
        item_id: int,
        product_id: str | None,
        action_type: str,
        quantity_delta: float,
        unit: str | None,
        at: datetime | None,
    ) -> None:
        when = at or datetime.now(timezone.utc)
        if when.tzinfo is not None:
            when = when.astimezone(timezone.utc).replace(tzinfo=None)
        conn.execute(
            """INSERT INTO inventory_audit_log
               (household_id, inventory_item_id, product_id, action_type,
                quantity_delta, unit, action_date)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                household_id,
                item_id,
                product_id,
                action_type,
                quantity_delta,
                unit,
                when.isoformat(),
            ),
        )
