"""Bulk fetchers backed by SQLAlchemy Core.

Each fetcher issues exactly one ``SELECT ... WHERE column IN (...)`` per call
and returns rows as dicts, in the order produced by ``order_by``. Loaders
correlate rows with requested keys using :py:meth:`FetchQuery.key_fn`.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence

import sqlalchemy
from sqlalchemy.engine import Engine, Row
from sqlalchemy.sql import Select
from sqlalchemy.sql.elements import BinaryExpression, ColumnElement


def _table_repr(table: sqlalchemy.Table) -> str:
    return "Table({})".format(
        ", ".join(
            [
                repr(table.name),
                repr(table.metadata),
                "...",
                "schema={!r}".format(table.schema),
            ]
        )
    )


def row_to_dict(row: Row) -> Dict[str, Any]:
    return dict(row._mapping)


class FetchQuery:
    def __init__(
        self,
        sa_engine: Any,
        key_column: sqlalchemy.Column,
        *,
        where: Optional[ColumnElement] = None,
        order_by: Sequence[ColumnElement] = (),
    ) -> None:
        self.sa_engine = sa_engine
        self.key_column = key_column
        self.from_clause = key_column.table
        self.where = where
        self.order_by = tuple(order_by)
        self.name = "{}.{}".format(self.from_clause.name, key_column.name)

    def __repr__(self) -> str:
        return "<{}.{}: from_clause={}, key_column={!r}>".format(
            self.__class__.__module__,
            self.__class__.__name__,
            _table_repr(self.from_clause),
            self.key_column.name,
        )

    def key_fn(self, record: Dict[str, Any]) -> Any:
        return record[self.key_column.name]

    def in_impl(
        self, column: sqlalchemy.Column, values: Iterable
    ) -> BinaryExpression:
        return column.in_(values)

    def select_expr(self, keys: Iterable) -> Optional[Select]:
        filtered_keys = [k for k in dict.fromkeys(keys) if k is not None]
        if not filtered_keys:
            return None

        expr = (
            sqlalchemy.select(self.from_clause)
            .where(self.in_impl(self.key_column, filtered_keys))
        )
        if self.where is not None:
            expr = expr.where(self.where)
        if self.order_by:
            expr = expr.order_by(*self.order_by)
        return expr

    def __call__(self, keys: List) -> List[Dict[str, Any]]:
        expr = self.select_expr(keys)
        if expr is None:
            return []

        sa_engine: Engine = self.sa_engine
        with sa_engine.connect() as connection:
            rows = connection.execute(expr).fetchall()
        return [row_to_dict(row) for row in rows]
