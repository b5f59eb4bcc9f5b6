from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from exceptions import StoreConflictError, StoreError


@dataclass(frozen=True)
class Filter:
    column: str
    op: str  # "eq" or "startswith"
    value: Any

    def matches(self, record: dict[str, Any]) -> bool:
        current = record.get(self.column)
        if self.op == "eq":
            return current == self.value
        if self.op == "startswith":
            return isinstance(current, str) and current.startswith(self.value)
        raise StoreError(f"Unsupported filter operator: {self.op}")


def eq(column: str, value: Any) -> Filter:
    return Filter(column, "eq", value)


def starts_with(column: str, prefix: str) -> Filter:
    return Filter(column, "startswith", prefix)


@dataclass(frozen=True)
class Order:
    column: str
    descending: bool = False


class RecordStorePort(ABC):
    @abstractmethod
    def select(
        self,
        table: str,
        columns: list[str] | None = None,
        filters: list[Filter] | None = None,
        order: Order | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Return matching records as plain dicts, restricted to `columns` when given."""
        raise NotImplementedError

    @abstractmethod
    def insert(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        """Insert one record and return the stored row, including generated fields."""
        raise NotImplementedError

    @abstractmethod
    def update(self, table: str, patch: dict[str, Any], filters: list[Filter]) -> list[dict[str, Any]]:
        """Apply `patch` to every matching record. Returns the updated rows."""
        raise NotImplementedError


IMMUTABLE_TABLES = frozenset({"invoices"})

UNIQUE_COLUMNS: dict[str, tuple[str, ...]] = {
    "bookings": ("booking_number",),
    "invoices": ("booking_id", "invoice_number"),
}


class MemoryRecordStore(RecordStorePort):
    def __init__(self, unique: dict[str, tuple[str, ...]] | None = None) -> None:
        self._tables: dict[str, list[dict[str, Any]]] = {}
        self._next_id: dict[str, int] = {}
        self._unique = UNIQUE_COLUMNS if unique is None else unique

    def select(
        self,
        table: str,
        columns: list[str] | None = None,
        filters: list[Filter] | None = None,
        order: Order | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        rows = [r for r in self._tables.get(table, []) if all(f.matches(r) for f in filters or [])]
        if order is not None:
            # None sorts first ascending, last descending
            rows.sort(key=lambda r: _sort_key(r.get(order.column)), reverse=order.descending)
        if limit is not None:
            rows = rows[:limit]
        return [_project(r, columns) for r in rows]

    def insert(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        rows = self._tables.setdefault(table, [])
        for column in self._unique.get(table, ()):
            value = record.get(column)
            if value is not None and any(r.get(column) == value for r in rows):
                raise StoreConflictError(f"Duplicate value for {table}.{column}: {value}")

        row = copy.deepcopy(record)
        if row.get("id") is None:
            self._next_id[table] = self._next_id.get(table, 0) + 1
            row["id"] = self._next_id[table]
        rows.append(row)
        return copy.deepcopy(row)

    def update(self, table: str, patch: dict[str, Any], filters: list[Filter]) -> list[dict[str, Any]]:
        if table in IMMUTABLE_TABLES:
            raise StoreError(f"Records in {table} are immutable")
        updated = []
        for row in self._tables.get(table, []):
            if all(f.matches(row) for f in filters):
                row.update(copy.deepcopy(patch))
                updated.append(copy.deepcopy(row))
        return updated


def _sort_key(value: Any) -> tuple[bool, Any]:
    return (False, 0) if value is None else (True, value)


def _project(record: dict[str, Any], columns: list[str] | None) -> dict[str, Any]:
    if not columns:
        return copy.deepcopy(record)
    return {c: copy.deepcopy(record.get(c)) for c in columns}
