from __future__ import annotations

from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from exceptions import StoreConflictError, StoreError
from models import Booking, Invoice
from store import IMMUTABLE_TABLES, Filter, Order, RecordStorePort


TABLES = {
    "bookings": Booking,
    "invoices": Invoice,
}


class SqlRecordStore(RecordStorePort):
    """Record store over the SQLAlchemy models in `models.py`."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def select(
        self,
        table: str,
        columns: list[str] | None = None,
        filters: list[Filter] | None = None,
        order: Order | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        model = _model(table)
        for name in columns or []:
            _column(model, name)

        db: Session = self._session_factory()
        try:
            query = db.query(model).filter(*_criteria(model, filters or []))
            if order is not None:
                column = _column(model, order.column)
                query = query.order_by(column.desc() if order.descending else column.asc())
            if limit is not None:
                query = query.limit(limit)
            return [_to_dict(row, columns) for row in query.all()]
        except SQLAlchemyError as e:
            raise StoreError(f"Select from {table} failed: {e}") from e
        finally:
            db.close()

    def insert(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        model = _model(table)
        unknown = set(record) - set(model.__table__.columns.keys())
        if unknown:
            raise StoreError(f"Unknown columns for {table}: {', '.join(sorted(unknown))}")

        db: Session = self._session_factory()
        try:
            row = model(**record)
            db.add(row)
            db.commit()
            db.refresh(row)
            return _to_dict(row)
        except IntegrityError as e:
            db.rollback()
            raise StoreConflictError(f"Insert into {table} violates a constraint: {e.orig}") from e
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreError(f"Insert into {table} failed: {e}") from e
        finally:
            db.close()

    def update(self, table: str, patch: dict[str, Any], filters: list[Filter]) -> list[dict[str, Any]]:
        if table in IMMUTABLE_TABLES:
            raise StoreError(f"Records in {table} are immutable")
        model = _model(table)

        db: Session = self._session_factory()
        try:
            rows = db.query(model).filter(*_criteria(model, filters)).all()
            for row in rows:
                for key, value in patch.items():
                    _column(model, key)
                    setattr(row, key, value)
            db.commit()
            for row in rows:
                db.refresh(row)
            return [_to_dict(row) for row in rows]
        except IntegrityError as e:
            db.rollback()
            raise StoreConflictError(f"Update of {table} violates a constraint: {e.orig}") from e
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreError(f"Update of {table} failed: {e}") from e
        finally:
            db.close()


def _model(table: str):
    try:
        return TABLES[table]
    except KeyError:
        raise StoreError(f"Unknown table: {table}") from None


def _column(model, name: str):
    if name not in model.__table__.columns:
        raise StoreError(f"Unknown column {model.__tablename__}.{name}")
    return getattr(model, name)


def _criteria(model, filters: list[Filter]) -> list:
    criteria = []
    for f in filters:
        column = _column(model, f.column)
        if f.op == "eq":
            criteria.append(column == f.value)
        elif f.op == "startswith":
            criteria.append(column.startswith(f.value, autoescape=True))
        else:
            raise StoreError(f"Unsupported filter operator: {f.op}")
    return criteria


def _to_dict(row, columns: list[str] | None = None) -> dict[str, Any]:
    names = columns or [c.name for c in row.__table__.columns]
    return {name: getattr(row, name) for name in names}
