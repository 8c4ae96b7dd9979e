"""Shopping list CRUD operations."""

from __future__ import annotations

import dataclasses
import functools
import sqlite3
import threading
from collections.abc import Iterable
from pathlib import Path

from ..errors import NotFoundError
from ..models import ShoppingItem, ShoppingList, new_id
from .schema import ensure_schema

_UPDATABLE = ("name", "quantity", "unit", "category", "completed", "notes")


def _locked(method):
    # One connection is shared by the event loop and the threadpool
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


class ShoppingListDB:
    """Manages the shopping_lists and shopping_items tables.

    All reads return immutable ShoppingList/ShoppingItem snapshots; changes
    go through explicit write calls.
    """

    def __init__(self, db_path: str | Path = "~/.config/shoplist/shoplist.db") -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = ensure_schema(self._db_path)
        return self._conn

    @_locked
    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    @_locked
    def create_list(
        self,
        name: str,
        items: Iterable[ShoppingItem] = (),
        *,
        active: bool = False,
    ) -> ShoppingList:
        """Create a list, optionally with initial items.

        Returns:
            The stored list snapshot.
        """
        if not name or not name.strip():
            raise ValueError("Shopping list must have a name")
        conn = self._get_conn()
        list_id = new_id()
        try:
            self._issue_id(conn, list_id)
            conn.execute(
                "INSERT INTO shopping_lists (id, name) VALUES (?, ?)",
                (list_id, name.strip()),
            )
            for position, item in enumerate(items):
                self._insert_item(conn, list_id, position, item)
            if active:
                self._activate(conn, list_id)
        except Exception:
            conn.rollback()
            raise
        conn.commit()
        return self.get_list(list_id)

    @_locked
    def get_list(self, list_id: str) -> ShoppingList:
        """Return a list snapshot.

        Raises:
            NotFoundError: If no list has that id.
        """
        conn = self._get_conn()
        row = conn.execute(
            "SELECT * FROM shopping_lists WHERE id = ?", (list_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError(f"Shopping list with id {list_id} not found")
        return self._snapshot(conn, row)

    @_locked
    def find_active(self) -> ShoppingList | None:
        """Return the active list, or None if no list is active."""
        conn = self._get_conn()
        row = conn.execute(
            "SELECT * FROM shopping_lists WHERE active = 1 LIMIT 1"
        ).fetchone()
        return self._snapshot(conn, row) if row is not None else None

    @_locked
    def list_all(self) -> list[ShoppingList]:
        conn = self._get_conn()
        rows = conn.execute(
            "SELECT * FROM shopping_lists ORDER BY created_at, rowid"
        ).fetchall()
        return [self._snapshot(conn, r) for r in rows]

    @_locked
    def set_active(self, list_id: str) -> None:
        """Make ``list_id`` the only active list."""
        conn = self._get_conn()
        self._require_list(conn, list_id)
        self._activate(conn, list_id)
        conn.commit()

    @_locked
    def replace_items(self, list_id: str, items: Iterable[ShoppingItem]) -> ShoppingList:
        """Replace all items of a list in one transaction."""
        conn = self._get_conn()
        self._require_list(conn, list_id)
        current = frozenset(
            r["id"]
            for r in conn.execute(
                "SELECT id FROM shopping_items WHERE list_id = ?", (list_id,)
            ).fetchall()
        )
        try:
            conn.execute("DELETE FROM shopping_items WHERE list_id = ?", (list_id,))
            for position, item in enumerate(items):
                self._insert_item(conn, list_id, position, item, current)
            self._touch(conn, list_id)
        except Exception:
            conn.rollback()
            raise
        conn.commit()
        return self.get_list(list_id)

    @_locked
    def add_item(self, list_id: str, item: ShoppingItem) -> ShoppingList:
        """Append an item to a list."""
        conn = self._get_conn()
        self._require_list(conn, list_id)
        row = conn.execute(
            "SELECT COALESCE(MAX(position) + 1, 0) AS next FROM shopping_items WHERE list_id = ?",
            (list_id,),
        ).fetchone()
        try:
            self._insert_item(conn, list_id, row["next"], item)
        except Exception:
            conn.rollback()
            raise
        self._touch(conn, list_id)
        conn.commit()
        return self.get_list(list_id)

    @_locked
    def update_item(self, list_id: str, item_id: str, **changes) -> ShoppingItem:
        """Update fields of one item.

        Args:
            changes: Any of name, quantity, unit, category, completed, notes.

        Raises:
            NotFoundError: If the list or item does not exist.
            ValueError: On unknown fields or invalid values.
        """
        unknown = set(changes) - set(_UPDATABLE)
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        current = self.get_list(list_id).item(item_id)
        if current is None:
            raise NotFoundError(f"Item with id {item_id} not found in shopping list")
        updated = dataclasses.replace(current, **changes)
        _validate(updated)

        conn = self._get_conn()
        conn.execute(
            """UPDATE shopping_items
               SET name = ?, quantity = ?, unit = ?, category = ?,
                   completed = ?, notes = ?
               WHERE id = ? AND list_id = ?""",
            (
                updated.name,
                updated.quantity,
                updated.unit,
                updated.category,
                int(updated.completed),
                updated.notes,
                item_id,
                list_id,
            ),
        )
        self._touch(conn, list_id)
        conn.commit()
        return updated

    @_locked
    def delete_item(self, list_id: str, item_id: str) -> None:
        conn = self._get_conn()
        cur = conn.execute(
            "DELETE FROM shopping_items WHERE id = ? AND list_id = ?",
            (item_id, list_id),
        )
        if cur.rowcount == 0:
            conn.rollback()
            raise NotFoundError(f"Item with id {item_id} not found in shopping list")
        self._touch(conn, list_id)
        conn.commit()

    @_locked
    def delete_list(self, list_id: str) -> None:
        conn = self._get_conn()
        cur = conn.execute("DELETE FROM shopping_lists WHERE id = ?", (list_id,))
        if cur.rowcount == 0:
            conn.rollback()
            raise NotFoundError(f"Shopping list with id {list_id} not found")
        conn.commit()

    # -- helpers ---------------------------------------------------------

    def _require_list(self, conn: sqlite3.Connection, list_id: str) -> None:
        row = conn.execute(
            "SELECT 1 FROM shopping_lists WHERE id = ?", (list_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError(f"Shopping list with id {list_id} not found")

    def _activate(self, conn: sqlite3.Connection, list_id: str) -> None:
        conn.execute("UPDATE shopping_lists SET active = (id = ?)", (list_id,))

    def _touch(self, conn: sqlite3.Connection, list_id: str) -> None:
        conn.execute(
            "UPDATE shopping_lists SET updated_at = datetime('now', 'localtime') WHERE id = ?",
            (list_id,),
        )

    def _issue_id(self, conn: sqlite3.Connection, id_: str) -> None:
        conn.execute("INSERT INTO issued_ids (id) VALUES (?)", (id_,))

    def _insert_item(
        self,
        conn: sqlite3.Connection,
        list_id: str,
        position: int,
        item: ShoppingItem,
        reusable: frozenset[str] = frozenset(),
    ) -> None:
        # Ids in ``reusable`` are the list's own items being rewritten
        _validate(item)
        issued = conn.execute(
            "SELECT 1 FROM issued_ids WHERE id = ?", (item.id,)
        ).fetchone()
        if issued is None:
            self._issue_id(conn, item.id)
        elif item.id not in reusable:
            raise ValueError(f"Item id {item.id} has already been used")
        conn.execute(
            """INSERT INTO shopping_items
               (id, list_id, position, name, quantity, unit, category, completed, notes)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                item.id,
                list_id,
                position,
                item.name,
                item.quantity,
                item.unit,
                item.category,
                int(item.completed),
                item.notes,
            ),
        )

    def _snapshot(self, conn: sqlite3.Connection, row: sqlite3.Row) -> ShoppingList:
        items = conn.execute(
            "SELECT * FROM shopping_items WHERE list_id = ? ORDER BY position",
            (row["id"],),
        ).fetchall()
        return ShoppingList(
            id=row["id"],
            name=row["name"],
            items=tuple(
                ShoppingItem(
                    id=r["id"],
                    name=r["name"],
                    quantity=r["quantity"],
                    unit=r["unit"],
                    category=r["category"],
                    completed=bool(r["completed"]),
                    notes=r["notes"],
                )
                for r in items
            ),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            active=bool(row["active"]),
        )


def _validate(item: ShoppingItem) -> None:
    if not item.name or not item.name.strip():
        raise ValueError("Shopping item must have a name")
    if item.quantity < 0:
        raise ValueError("Quantity cannot be negative")
