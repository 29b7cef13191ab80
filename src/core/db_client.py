"""SQLite task store backend with row-level CRUD operations."""

import asyncio
import json
import logging
from collections.abc import Sequence
from datetime import date, datetime
from pathlib import Path
from typing import Any

import aiosqlite

from src.core.config import settings
from src.core.errors import RecordNotFoundError, StoreError
from src.core.store import Filter, validate_identifier


logger = logging.getLogger(__name__)


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


def _encode_value(value: Any) -> Any:
    """Convert a Python value to something SQLite can bind."""
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, dict | list):
        return json.dumps(value)
    return value


def compile_filters(filters: Sequence[Filter]) -> tuple[str, list[Any]]:
    """Compile filter predicates into a SQL WHERE clause and parameter list."""
    conditions: list[str] = []
    params: list[Any] = []

    for item in filters:
        validate_identifier(item.column)
        if item.operator == "eq":
            conditions.append(f"{item.column} = ?")
            params.append(_encode_value(item.value))
        else:
            values = list(item.value)
            if not values:
                # An empty membership set matches nothing
                conditions.append("0")
                continue
            placeholders = ", ".join("?" for _ in values)
            conditions.append(f"{item.column} IN ({placeholders})")
            params.extend(_encode_value(v) for v in values)

    if not conditions:
        return "", []
    return "WHERE " + " AND ".join(conditions), params


def _rows_to_dicts(cursor: aiosqlite.Cursor, rows: Sequence[Any]) -> list[dict[str, Any]]:
    columns = [description[0] for description in cursor.description]
    return [dict(zip(columns, row, strict=True)) for row in rows]


class SqliteTaskStore:
    """Task store backed by a local SQLite file through aiosqlite."""

    def __init__(self, *, db_path: str | None = None) -> None:
        self._path = get_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def get_connection(self) -> aiosqlite.Connection:
        """Get or lazily open the cached connection."""
        if self._conn is not None:
            return self._conn

        async with self._lock:
            # Double-check after acquiring lock
            if self._conn is not None:
                return self._conn

            self._path.parent.mkdir(parents=True, exist_ok=True)
            conn = await aiosqlite.connect(str(self._path))
            await conn.execute("PRAGMA journal_mode = WAL")
            self._conn = conn

            logger.info("Created new SQLite connection", extra={"db_path": str(self._path)})
            return conn

    async def close(self) -> None:
        """Close the cached connection if one is open."""
        if self._conn is None:
            return

        async with self._lock:
            if self._conn is not None:
                try:
                    await self._conn.close()
                    logger.info("Closed SQLite connection", extra={"db_path": str(self._path)})
                except Exception as e:
                    logger.warning("Error closing SQLite connection", extra={"error": str(e)})
                finally:
                    self._conn = None

    async def execute_script(self, script: str) -> None:
        """Run a multi-statement SQL script (used for schema creation)."""
        try:
            conn = await self.get_connection()
            await conn.executescript(script)
            await conn.commit()
        except Exception as e:
            logger.error("execute_script_failed", extra={"error": str(e)})
            msg = f"Failed to execute script: {e}"
            raise StoreError(msg) from e

    async def select(
        self,
        table: str,
        *,
        filters: Sequence[Filter] = (),
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        """Select rows matching the filters, optionally ordered by one column."""
        try:
            validate_identifier(table)
            where_clause, params = compile_filters(filters)

            order_clause = ""
            if order_by:
                validate_identifier(order_by)
                order_clause = f"ORDER BY {order_by} {'DESC' if descending else 'ASC'}"

            conn = await self.get_connection()
            query = f"SELECT * FROM {table} {where_clause} {order_clause}"  # noqa: S608 - identifiers are validated
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
            records = _rows_to_dicts(cursor, rows)

            logger.info("Selected records", extra={"table": table, "count": len(records)})
            return records
        except Exception as e:
            logger.error("select_failed", extra={"table": table, "error": str(e)})
            msg = f"Failed to select from {table}: {e}"
            raise StoreError(msg) from e

    async def insert(self, table: str, data: dict[str, Any]) -> dict[str, Any]:
        """Insert a new row and return it with its assigned id and created_at."""
        try:
            validate_identifier(table)
            for column in data:
                validate_identifier(column)

            columns_str = ", ".join(data)
            placeholders_str = ", ".join("?" for _ in data)
            values = [_encode_value(v) for v in data.values()]

            conn = await self.get_connection()
            query = f"INSERT INTO {table} ({columns_str}) VALUES ({placeholders_str})"  # noqa: S608 - identifiers are validated
            cursor = await conn.execute(query, values)
            await conn.commit()
            record_id = cursor.lastrowid

            cursor = await conn.execute(f"SELECT * FROM {table} WHERE id = ?", (record_id,))  # noqa: S608
            row = await cursor.fetchone()
            if row is None:
                msg = f"Inserted row {record_id} vanished from {table}"
                raise RecordNotFoundError(msg)
            record = _rows_to_dicts(cursor, [row])[0]

            logger.info("Inserted record", extra={"table": table, "record_id": record_id})
            return record
        except StoreError:
            raise
        except Exception as e:
            logger.error("insert_failed", extra={"table": table, "error": str(e)})
            msg = f"Failed to insert into {table}: {e}"
            raise StoreError(msg) from e

    async def update(self, table: str, data: dict[str, Any], *, filters: Sequence[Filter]) -> list[dict[str, Any]]:
        """Update matching rows and return them as stored."""
        if not data:
            msg = "Empty update payload"
            raise ValueError(msg)

        try:
            validate_identifier(table)
            for column in data:
                validate_identifier(column)

            set_clause = ", ".join(f"{key} = ?" for key in data)
            where_clause, params = compile_filters(filters)
            values = [_encode_value(v) for v in data.values()] + params

            conn = await self.get_connection()
            query = f"UPDATE {table} SET {set_clause} {where_clause}"  # noqa: S608 - identifiers are validated
            cursor = await conn.execute(query, values)
            await conn.commit()

            if cursor.rowcount == 0:
                msg = f"Record not found in {table}: update matched no rows"
                raise RecordNotFoundError(msg)

            cursor = await conn.execute(f"SELECT * FROM {table} {where_clause}", params)  # noqa: S608
            records = _rows_to_dicts(cursor, await cursor.fetchall())

            logger.info("Updated records", extra={"table": table, "count": len(records)})
            return records
        except StoreError:
            raise
        except Exception as e:
            logger.error("update_failed", extra={"table": table, "error": str(e)})
            msg = f"Failed to update {table}: {e}"
            raise StoreError(msg) from e

    async def delete(self, table: str, *, filters: Sequence[Filter]) -> None:
        """Delete matching rows. Matching nothing is not an error."""
        try:
            validate_identifier(table)
            where_clause, params = compile_filters(filters)
            if not where_clause:
                msg = "Refusing to delete without a filter"
                raise ValueError(msg)

            conn = await self.get_connection()
            query = f"DELETE FROM {table} {where_clause}"  # noqa: S608 - identifiers are validated
            cursor = await conn.execute(query, params)
            await conn.commit()

            logger.info("Deleted records", extra={"table": table, "count": cursor.rowcount})
        except Exception as e:
            logger.error("delete_failed", extra={"table": table, "error": str(e)})
            msg = f"Failed to delete from {table}: {e}"
            raise StoreError(msg) from e
