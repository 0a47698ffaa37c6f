"""SQLite database client wrapper with CRUD, conditional update and transaction support."""

import asyncio
import contextvars
import json
import logging
import re
import threading
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from src.core.config import settings
from src.core.errors import NotFoundError, StorageError


logger = logging.getLogger(__name__)


def _validate_collection_name(collection: str) -> None:
    """Validate that a collection name contains only alphanumeric characters and underscores."""
    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def _validate_field_name(field: str) -> None:
    """Validate that a column name is a plain identifier."""
    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", field):
        msg = f"Invalid field name: {field}"
        raise ValueError(msg)


def sanitize_param(value: str | int | float | bool | None) -> str:
    """Escape a value for safe embedding in filter queries via json.dumps."""
    return json.dumps(str(value))[1:-1]


def _convert_record_ids(record: dict[str, Any]) -> dict[str, Any]:
    """Convert integer ID and foreign key fields to strings for Pydantic compatibility."""
    fk_fields = {"id", "assigned_to", "created_by", "proposed_by", "suggested_for"}

    converted = record.copy()
    for key, value in converted.items():
        if isinstance(value, int) and (key in fk_fields or key.endswith("_id")):
            converted[key] = str(value)
    return converted


def _coerce_record_id(collection: str, record_id: str) -> int:
    """Turn an API-facing string id into the integer primary key, or raise NotFoundError."""
    if not str(record_id).isdigit():
        msg = f"Record not found in {collection}: {record_id}"
        raise NotFoundError(msg)
    return int(record_id)


def _encode_value(val: Any) -> Any:
    if isinstance(val, datetime):
        return val.isoformat()
    if isinstance(val, dict | list):
        return json.dumps(val)
    return val


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


def _parse_value(value: str, *, is_like: bool = False) -> str | int | float | bool | None:
    """Parse a string value to the appropriate Python type for SQLite."""
    if is_like:
        escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        return "%" + escaped + "%"

    # Zero-padded digits ("007", "012345") are text, not numbers
    if value.isdigit() and (value == "0" or not value.startswith("0")):
        return int(value)
    if value.replace(".", "", 1).isdigit() and not value.startswith("0"):
        return float(value)

    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False

    return value


def _get_sql_operator(op: str) -> str:
    """Map filter operator to SQL operator."""
    op_map = {
        "=": "=",
        "!=": "!=",
        ">": ">",
        "<": "<",
        ">=": ">=",
        "<=": "<=",
        "~": "LIKE",
    }
    sql_op = op_map.get(op)
    if not sql_op:
        msg = f"Unsupported operator: {op}"
        raise ValueError(msg)
    return sql_op


def _parse_single_comparison(comparison: str) -> tuple[str, str | int | float | None]:
    """Parse a single comparison expression into a SQL condition and parameter."""
    match = re.fullmatch(
        r"""(\w+)\s*(>=|<=|!=|=|>|<|~)\s*(?:"((?:[^"\\]|\\.)*)"|'([^']*)')""",
        comparison.strip(),
    )
    if not match:
        msg = f"Invalid filter syntax: {comparison}"
        raise ValueError(msg)

    field = match.group(1)
    op = match.group(2)
    if match.group(3) is not None:
        # Double-quoted values carry sanitize_param's JSON escaping
        raw_value = json.loads(f'"{match.group(3)}"')
    else:
        raw_value = match.group(4)

    sql_op = _get_sql_operator(op)
    is_like = sql_op == "LIKE"
    value = _parse_value(raw_value, is_like=is_like)

    if is_like:
        return f"{field} LIKE ? ESCAPE '\\'", value
    return f"{field} {sql_op} ?", value


def _parse_or_group(or_group: str) -> tuple[str, list[str | int | float | None]]:
    """Parse a parenthesized OR group into a SQL condition and parameters."""
    inner = or_group[1:-1]
    or_parts = [p.strip() for p in inner.split("||")]
    or_conditions = []
    or_params = []

    for part in or_parts:
        cond, value = _parse_single_comparison(part)
        or_conditions.append(cond)
        or_params.append(value)

    return f"({' OR '.join(or_conditions)})", or_params


def _split_and_conditions(filter_query: str) -> list[str]:
    """Split filter query by && while preserving parenthesized groups."""
    parts = []
    current = ""
    paren_depth = 0

    for char in filter_query:
        if char == "(":
            paren_depth += 1
        elif char == ")":
            paren_depth -= 1

        current += char

        if paren_depth == 0 and current.endswith("&&"):
            parts.append(current[:-2].strip())
            current = ""

    if current.strip():
        parts.append(current.strip())

    return parts


def parse_filter(filter_query: str) -> tuple[str, list[str | int | float | None]]:
    """Parse filter syntax into a SQL WHERE clause and parameter list.

    Filters look like `family_id = "3" && (status = "OPEN" || status = "ASSIGNED")`.
    """
    if not filter_query:
        return "", []

    parts = _split_and_conditions(filter_query)
    conditions = []
    params = []

    for raw_part in parts:
        part = raw_part.strip()

        if part.startswith("(") and part.endswith(")"):
            cond, cond_params = _parse_or_group(part)
            conditions.append(cond)
            params.extend(cond_params)
        else:
            cond, value = _parse_single_comparison(part)
            conditions.append(cond)
            params.append(value)

    return " AND ".join(conditions), params


def _parse_sort(sort: str) -> str:
    """Translate `+field`, `-field` or `field [ASC|DESC]` (comma separated) to an ORDER BY clause."""
    clauses = []
    for raw in sort.split(","):
        item = raw.strip()
        if not item:
            continue
        direction = "ASC"
        if item[0] in "+-":
            direction = "DESC" if item[0] == "-" else "ASC"
            item = item[1:]
        match = re.match(r"^([A-Za-z_][A-Za-z0-9_]*)\s*(ASC|DESC)?$", item, re.IGNORECASE)
        if not match:
            logger.warning("Invalid sort parameter, using default", extra={"sort": sort})
            return "id ASC"
        clauses.append(f"{match.group(1)} {(match.group(2) or direction).upper()}")
    return ", ".join(clauses) or "id ASC"


_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_write_locks: dict[tuple[int, int, str], asyncio.Lock] = {}
_db_lock = threading.Lock()
_in_transaction: contextvars.ContextVar[bool] = contextvars.ContextVar("_in_transaction", default=False)


def _cache_key(db_path: str | None) -> tuple[int, int, str]:
    loop = asyncio.get_running_loop()
    return (threading.get_ident(), id(loop), str(get_db_path(db_path)))


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the current thread, loop, and db path."""
    cache_key = _cache_key(db_path)

    cached_conn = _db_connections.get(cache_key)
    if cached_conn is not None:
        return cached_conn

    path = get_db_path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(str(path))
    await conn.execute("PRAGMA foreign_keys = ON")
    await conn.execute("PRAGMA journal_mode = WAL")

    with _db_lock:
        existing = _db_connections.get(cache_key)
        if existing is None:
            _db_connections[cache_key] = conn
            _write_locks[cache_key] = asyncio.Lock()

    if existing is not None:
        # Another coroutine won the race while we were connecting
        await conn.close()
        return existing

    logger.info(
        "Created new SQLite connection",
        extra={"db_path": str(path), "thread_id": cache_key[0], "loop_id": cache_key[1]},
    )
    return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connection for the current thread, loop, and db path."""
    cache_key = _cache_key(db_path)

    with _db_lock:
        conn = _db_connections.pop(cache_key, None)
        _write_locks.pop(cache_key, None)

    if conn is None:
        return

    try:
        await conn.close()
        logger.info("Closed SQLite connection", extra={"db_path": cache_key[2]})
    except Exception as e:
        logger.warning("Error closing SQLite connection", extra={"error": str(e), "db_path": cache_key[2]})


def _get_write_lock() -> asyncio.Lock:
    return _write_locks[_cache_key(None)]


async def init_db(*, db_path: str | None = None) -> None:
    """Initialize the database schema by delegating to schema.init_db()."""
    from src.core import schema

    await schema.init_db(db_path=db_path)


@asynccontextmanager
async def transaction() -> AsyncIterator[None]:
    """Run the enclosed writes as one all-or-nothing SQLite transaction.

    Writes issued inside the block are neither committed individually nor
    interleaved with writes from other coroutines. Nested blocks join the
    outermost transaction.
    """
    if _in_transaction.get():
        yield
        return

    conn = await get_connection()
    async with _get_write_lock():
        token = _in_transaction.set(True)
        try:
            await conn.execute("BEGIN IMMEDIATE")
            try:
                yield
            except BaseException:
                await conn.rollback()
                logger.info("Rolled back transaction")
                raise
            await conn.commit()
        except aiosqlite.Error as e:
            logger.error("transaction_failed", extra={"error": str(e)})
            msg = f"Transaction failed: {e}"
            raise StorageError(msg) from e
        finally:
            _in_transaction.reset(token)


async def _execute_write(query: str, params: list[Any] | tuple[Any, ...]) -> aiosqlite.Cursor:
    """Execute a write statement, committing it unless a transaction is open."""
    conn = await get_connection()
    if _in_transaction.get():
        return await conn.execute(query, params)

    async with _get_write_lock():
        try:
            cursor = await conn.execute(query, params)
            await conn.commit()
        except BaseException:
            await conn.rollback()
            raise
        return cursor


def _wrap_storage_error(e: Exception, *, operation: str, collection: str) -> StorageError:
    if isinstance(e, aiosqlite.OperationalError) and "no such table" in str(e):
        logger.error("Table not found", extra={"collection": collection})
        return StorageError(f"Table '{collection}' does not exist. Call init_db() first.")
    logger.error(f"{operation}_failed", extra={"collection": collection, "error": str(e)})
    return StorageError(f"Failed to {operation.replace('_', ' ')} in {collection}: {e}")


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a new record and return it with its assigned id."""
    try:
        _validate_collection_name(collection)

        columns = list(data.keys())
        for column in columns:
            _validate_field_name(column)
        columns_str = ", ".join(columns)
        placeholders_str = ", ".join("?" for _ in columns)
        values = [_encode_value(data[key]) for key in columns]

        query = f"INSERT INTO {collection} ({columns_str}) VALUES ({placeholders_str})"  # noqa: S608 - names are validated
        cursor = await _execute_write(query, values)

        record_id = cursor.lastrowid
        result = await get_record(collection=collection, record_id=str(record_id))

        logger.info("Created record", extra={"collection": collection, "record_id": record_id})
        return result
    except (NotFoundError, StorageError, ValueError):
        raise
    except Exception as e:
        raise _wrap_storage_error(e, operation="create_record", collection=collection) from e


async def get_record(*, collection: str, record_id: str) -> dict[str, Any]:
    """Fetch a single record by ID, raising NotFoundError if not found."""
    _validate_collection_name(collection)
    pk = _coerce_record_id(collection, record_id)
    try:
        conn = await get_connection()

        query = f"SELECT * FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, (pk,))
        row = await cursor.fetchone()
        columns = [description[0] for description in cursor.description]
    except Exception as e:
        raise _wrap_storage_error(e, operation="get_record", collection=collection) from e

    if row is None:
        msg = f"Record not found in {collection}: {record_id}"
        raise NotFoundError(msg)

    logger.debug("Retrieved record", extra={"collection": collection, "record_id": record_id})
    return _convert_record_ids(dict(zip(columns, row, strict=True)))


async def update_record(*, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Update a record by ID and return the updated record."""
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    updated = await update_record_if(collection=collection, record_id=record_id, data=data)
    if updated is None:
        msg = f"Record not found in {collection}: {record_id}"
        raise NotFoundError(msg)
    return updated


async def update_record_if(
    *,
    collection: str,
    record_id: str,
    data: dict[str, Any],
    filter_query: str = "",
) -> dict[str, Any] | None:
    """Conditionally update a record (compare-and-swap).

    The update is a single `UPDATE ... WHERE id = ? AND <filter>` statement, so
    concurrent callers racing on the same guard see exactly one winner.

    Returns:
        The updated record, or None when no row matched the id and filter.
    """
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    _validate_collection_name(collection)
    pk = _coerce_record_id(collection, record_id)
    for key in data:
        _validate_field_name(key)

    try:
        set_clause = ", ".join(f"{key} = ?" for key in data)
        values: list[Any] = [_encode_value(val) for val in data.values()]
        values.append(pk)

        where_clause = "id = ?"
        if filter_query:
            guard, guard_params = parse_filter(filter_query)
            where_clause = f"{where_clause} AND {guard}"
            values.extend(guard_params)

        query = f"UPDATE {collection} SET {set_clause} WHERE {where_clause}"  # noqa: S608 - names are validated
        cursor = await _execute_write(query, values)
    except (ValueError, StorageError):
        raise
    except Exception as e:
        raise _wrap_storage_error(e, operation="update_record", collection=collection) from e

    if cursor.rowcount == 0:
        logger.info(
            "Conditional update matched no rows",
            extra={"collection": collection, "record_id": record_id, "filter_query": filter_query},
        )
        return None

    logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
    return await get_record(collection=collection, record_id=record_id)


async def increment_field(*, collection: str, record_id: str, field: str, amount: int) -> dict[str, Any]:
    """Atomically add `amount` to a numeric field and return the updated record."""
    _validate_collection_name(collection)
    _validate_field_name(field)
    pk = _coerce_record_id(collection, record_id)

    try:
        query = f"UPDATE {collection} SET {field} = {field} + ? WHERE id = ?"  # noqa: S608 - names are validated
        cursor = await _execute_write(query, (amount, pk))
    except Exception as e:
        raise _wrap_storage_error(e, operation="increment_field", collection=collection) from e

    if cursor.rowcount == 0:
        msg = f"Record not found in {collection}: {record_id}"
        raise NotFoundError(msg)

    logger.info(
        "Incremented field",
        extra={"collection": collection, "record_id": record_id, "field": field, "amount": amount},
    )
    return await get_record(collection=collection, record_id=record_id)


async def delete_record(*, collection: str, record_id: str) -> None:
    """Delete a record by ID, raising NotFoundError if not found."""
    _validate_collection_name(collection)
    pk = _coerce_record_id(collection, record_id)

    try:
        query = f"DELETE FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await _execute_write(query, (pk,))
    except Exception as e:
        raise _wrap_storage_error(e, operation="delete_record", collection=collection) from e

    if cursor.rowcount == 0:
        msg = f"Record not found in {collection}: {record_id}"
        raise NotFoundError(msg)

    logger.info("Deleted record", extra={"collection": collection, "record_id": record_id})


async def list_records(
    *,
    collection: str,
    page: int = 1,
    per_page: int = 500,
    filter_query: str = "",
    sort: str = "",
) -> list[dict[str, Any]]:
    """List records with optional filtering, sorting, and pagination."""
    _validate_collection_name(collection)
    try:
        conn = await get_connection()

        where_clause = ""
        params: list[Any] = []
        if filter_query:
            where_clause, params = parse_filter(filter_query)
            where_clause = f"WHERE {where_clause}"

        order_by = _parse_sort(sort) if sort else "id ASC"
        offset = (page - 1) * per_page

        query = f"SELECT * FROM {collection} {where_clause} ORDER BY {order_by} LIMIT ? OFFSET ?"  # noqa: S608 - collection is validated
        params.extend([per_page, offset])

        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()

        columns = [description[0] for description in cursor.description]
        records = [_convert_record_ids(dict(zip(columns, row, strict=True))) for row in rows]
    except ValueError:
        raise
    except Exception as e:
        raise _wrap_storage_error(e, operation="list_records", collection=collection) from e

    logger.debug("Listed records", extra={"collection": collection, "count": len(records)})
    return records


async def count_records(*, collection: str, filter_query: str = "") -> int:
    """Count records matching the filter."""
    _validate_collection_name(collection)
    try:
        conn = await get_connection()

        where_clause, params = parse_filter(filter_query)
        query = f"SELECT COUNT(*) FROM {collection}"  # noqa: S608 - collection is validated
        if where_clause:
            query = f"{query} WHERE {where_clause}"

        cursor = await conn.execute(query, params)
        row = await cursor.fetchone()
    except ValueError:
        raise
    except Exception as e:
        raise _wrap_storage_error(e, operation="count_records", collection=collection) from e

    return int(row[0]) if row else 0


async def get_first_record(*, collection: str, filter_query: str) -> dict[str, Any] | None:
    """Return the first record matching the filter, or None."""
    records = await list_records(collection=collection, filter_query=filter_query, per_page=1)
    return records[0] if records else None


async def get_first_record_by(*, collection: str, field: str, value: Any) -> dict[str, Any] | None:
    """Return the first record whose `field` equals `value`, or None.

    The value is bound as-is, so free-form user input (names, invite codes)
    never goes through the filter grammar.
    """
    _validate_collection_name(collection)
    _validate_field_name(field)
    try:
        conn = await get_connection()

        query = f"SELECT * FROM {collection} WHERE {field} = ? ORDER BY id ASC LIMIT 1"  # noqa: S608 - names are validated
        cursor = await conn.execute(query, (value,))
        row = await cursor.fetchone()
        columns = [description[0] for description in cursor.description]
    except Exception as e:
        raise _wrap_storage_error(e, operation="get_first_record", collection=collection) from e

    if row is None:
        return None
    return _convert_record_ids(dict(zip(columns, row, strict=True)))
