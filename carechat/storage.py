"""Table-scoped storage collaborator.

Every clinical read and write goes through :class:`Storage`, which exposes
``select`` / ``insert`` / ``update`` / ``delete`` over the tables created in
:mod:`carechat.database` and returns a :class:`StorageResult` instead of
raising. Filters are exact match (``eq``) or case-insensitive substring
(``ilike``). Table and column names are checked against the schema so that
callers can never inject SQL through them.
"""

from __future__ import annotations

import json
import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Iterable

from carechat.database import DatabaseAdapter, get_db

logger = logging.getLogger(__name__)

TABLE_COLUMNS: dict[str, frozenset[str]] = {
    "profiles": frozenset({
        "id", "email", "full_name", "role", "department", "password_hash", "created_at",
    }),
    "sessions": frozenset({"token", "user_id", "created_at", "expires_at"}),
    "patients": frozenset({
        "id", "full_name", "date_of_birth", "gender", "blood_type", "phone", "email",
        "address", "emergency_contact_name", "emergency_contact_phone", "department",
        "admission_date", "status", "created_by", "created_at", "updated_at",
    }),
    "medical_records": frozenset({
        "id", "patient_id", "diagnosis", "treatment_plan", "medications", "allergies",
        "medical_history", "created_by", "created_at",
    }),
    "surgeries": frozenset({
        "id", "patient_id", "surgery_type", "surgery_date", "surgeon_name",
        "duration_minutes", "notes", "created_by", "created_at",
    }),
    "post_operative_notes": frozenset({
        "id", "patient_id", "surgery_id", "day_number", "vital_signs", "pain_level",
        "mobility_status", "wound_condition", "complications", "notes", "created_by",
        "created_at",
    }),
    "recovery_milestones": frozenset({
        "id", "patient_id", "milestone_type", "milestone_description", "achieved",
        "achieved_date", "target_date", "notes", "created_at",
    }),
    "chat_history": frozenset({
        "id", "user_id", "patient_id", "message", "response", "context_data", "created_at",
    }),
}

PRIMARY_KEYS = {"sessions": "token"}

JSON_COLUMNS = {
    "post_operative_notes": frozenset({"vital_signs"}),
    "chat_history": frozenset({"context_data"}),
}

BOOL_COLUMNS = {
    "recovery_milestones": frozenset({"achieved"}),
}

# Named CHECK constraints from the schema, mapped to messages staff can act on.
CONSTRAINT_MESSAGES = {
    "pain_level_range": "Pain level must be between 0 and 10.",
    "patient_department_valid": "Department must be one of cardiology, oncology or surgery.",
    "patient_status_valid": "Status must be one of admitted, recovering or discharged.",
    "patient_gender_valid": "Gender must be one of male, female or other.",
    "profile_role_valid": "Role must be doctor or intern.",
    "profile_department_valid": "Department must be one of cardiology, oncology or surgery.",
}

_FOREIGN_KEY_PATTERN = re.compile(r"foreign key", re.IGNORECASE)
_UNIQUE_PATTERN = re.compile(r"unique", re.IGNORECASE)


@dataclass(frozen=True)
class Filter:
    column: str
    value: Any
    op: str = "eq"


def eq(column: str, value: Any) -> Filter:
    return Filter(column, value, "eq")


def ilike(column: str, pattern: str) -> Filter:
    return Filter(column, pattern, "ilike")


@dataclass(frozen=True)
class Order:
    column: str
    descending: bool = True


@dataclass
class StorageResult:
    data: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class StorageError(ValueError):
    """Raised internally for unknown tables/columns; surfaced as StorageResult.error."""


def now_iso() -> str:
    return datetime.now(UTC).isoformat()


def describe_error(exc: Exception) -> str:
    """Turn a driver exception into a message fit for a user-facing reply."""
    text = str(exc)
    for name, message in CONSTRAINT_MESSAGES.items():
        if name in text:
            return message
    if _FOREIGN_KEY_PATTERN.search(text):
        return "Referenced record does not exist."
    if _UNIQUE_PATTERN.search(text):
        return "A record with the same unique value already exists."
    return text or exc.__class__.__name__


@dataclass
class Storage:
    db: DatabaseAdapter
    _like: str = field(init=False, default="LIKE")

    def __post_init__(self) -> None:
        # SQLite LIKE is already case-insensitive for ASCII text.
        self._like = "ILIKE" if self.db.engine == "postgres" else "LIKE"

    # --- validation / row conversion ---

    @staticmethod
    def _columns(table: str) -> frozenset[str]:
        try:
            return TABLE_COLUMNS[table]
        except KeyError:
            raise StorageError(f"Unknown table: {table}") from None

    def _check_columns(self, table: str, names: Iterable[str]) -> None:
        allowed = self._columns(table)
        for name in names:
            if name not in allowed:
                raise StorageError(f"Unknown column {table}.{name}")

    @staticmethod
    def _encode(table: str, row: dict[str, Any]) -> dict[str, Any]:
        json_cols = JSON_COLUMNS.get(table, frozenset())
        encoded = {}
        for key, value in row.items():
            if key in json_cols and value is not None and not isinstance(value, str):
                value = json.dumps(value)
            encoded[key] = value
        return encoded

    @staticmethod
    def _decode(table: str, row: Any) -> dict[str, Any]:
        data = dict(row)
        for col in JSON_COLUMNS.get(table, frozenset()):
            value = data.get(col)
            if isinstance(value, str):
                try:
                    data[col] = json.loads(value) if value else {}
                except json.JSONDecodeError:
                    logger.warning("Invalid JSON in %s.%s", table, col)
                    data[col] = {}
        for col in BOOL_COLUMNS.get(table, frozenset()):
            if col in data and data[col] is not None:
                data[col] = bool(data[col])
        return data

    def _where(self, table: str, filters: Iterable[Filter]) -> tuple[str, list[Any]]:
        clauses: list[str] = []
        params: list[Any] = []
        for f in filters:
            self._check_columns(table, [f.column])
            if f.op == "eq":
                if f.value is None:
                    clauses.append(f"{f.column} IS NULL")
                    continue
                clauses.append(f"{f.column} = ?")
            elif f.op == "ilike":
                clauses.append(f"{f.column} {self._like} ?")
            else:
                raise StorageError(f"Unsupported filter operator: {f.op}")
            params.append(f.value)
        if not clauses:
            return "", params
        return " WHERE " + " AND ".join(clauses), params

    # --- operations ---

    async def select(
        self,
        table: str,
        filters: Iterable[Filter] = (),
        order: Order | None = None,
        limit: int | None = None,
        columns: Iterable[str] | None = None,
    ) -> StorageResult:
        try:
            cols = list(columns) if columns else ["*"]
            if cols != ["*"]:
                self._check_columns(table, cols)
            else:
                self._columns(table)
            where, params = self._where(table, filters)
            query = f"SELECT {', '.join(cols)} FROM {table}{where}"
            if order is not None:
                self._check_columns(table, [order.column])
                query += f" ORDER BY {order.column} {'DESC' if order.descending else 'ASC'}"
            if limit is not None:
                query += " LIMIT ?"
                params.append(int(limit))
            rows = await self.db.fetch_all(query, params)
            return StorageResult(data=[self._decode(table, row) for row in rows])
        except Exception as exc:
            logger.error("Storage select on %s failed: %s", table, exc)
            return StorageResult(error=describe_error(exc))

    async def select_one(
        self,
        table: str,
        filters: Iterable[Filter],
        columns: Iterable[str] | None = None,
    ) -> StorageResult:
        result = await self.select(table, filters, limit=1, columns=columns)
        if not result.ok:
            return result
        return StorageResult(data=result.data[0] if result.data else None)

    async def count(self, table: str, filters: Iterable[Filter] = ()) -> StorageResult:
        try:
            self._columns(table)
            where, params = self._where(table, filters)
            row = await self.db.fetch_one(f"SELECT COUNT(*) AS count FROM {table}{where}", params)
            return StorageResult(data=int(row["count"]) if row else 0)
        except Exception as exc:
            logger.error("Storage count on %s failed: %s", table, exc)
            return StorageResult(error=describe_error(exc))

    async def insert(self, table: str, row: dict[str, Any]) -> StorageResult:
        try:
            allowed = self._columns(table)
            key = PRIMARY_KEYS.get(table, "id")
            values = {k: v for k, v in row.items() if v is not None}
            values.setdefault(key, str(uuid.uuid4()))
            if "created_at" in allowed:
                values.setdefault("created_at", now_iso())
            if "updated_at" in allowed:
                values.setdefault("updated_at", values["created_at"])
            self._check_columns(table, values)
            values = self._encode(table, values)
            names = list(values)
            placeholders = ", ".join("?" for _ in names)
            await self.db.execute(
                f"INSERT INTO {table} ({', '.join(names)}) VALUES ({placeholders})",
                [values[n] for n in names],
            )
            await self.db.commit()
        except Exception as exc:
            logger.error("Storage insert into %s failed: %s", table, exc)
            await self._rollback()
            return StorageResult(error=describe_error(exc))
        return await self.select_one(table, [eq(key, values[key])])

    async def update(self, table: str, row_id: str, patch: dict[str, Any]) -> StorageResult:
        try:
            allowed = self._columns(table)
            key = PRIMARY_KEYS.get(table, "id")
            values = dict(patch)
            values.pop(key, None)
            if "updated_at" in allowed:
                values["updated_at"] = now_iso()
            if not values:
                return await self.select_one(table, [eq(key, row_id)])
            self._check_columns(table, values)
            values = self._encode(table, values)
            names = list(values)
            assignments = ", ".join(f"{n} = ?" for n in names)
            await self.db.execute(
                f"UPDATE {table} SET {assignments} WHERE {key} = ?",
                [values[n] for n in names] + [row_id],
            )
            await self.db.commit()
        except Exception as exc:
            logger.error("Storage update on %s failed: %s", table, exc)
            await self._rollback()
            return StorageResult(error=describe_error(exc))
        return await self.select_one(table, [eq(key, row_id)])

    async def delete(self, table: str, filters: Iterable[Filter]) -> StorageResult:
        try:
            filters = list(filters)
            if not filters:
                raise StorageError("Refusing to delete without a filter")
            where, params = self._where(table, filters)
            await self.db.execute(f"DELETE FROM {table}{where}", params)
            await self.db.commit()
            return StorageResult(data=True)
        except Exception as exc:
            logger.error("Storage delete on %s failed: %s", table, exc)
            return StorageResult(error=describe_error(exc))

    async def _rollback(self) -> None:
        conn = getattr(self.db, "conn", None)
        if conn is None:
            return
        try:
            await conn.rollback()
        except Exception:
            logger.debug("Rollback after failed write did not complete")


async def get_storage() -> Storage:
    return Storage(await get_db())
