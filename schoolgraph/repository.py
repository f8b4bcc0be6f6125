"""Create, read, update and soft-delete of the stored entities.

Reads only see active rows, a soft-deleted row keeps its data and gets
``deleted_at`` set. Validation is limited to presence of required fields,
known field names and enumerated choices.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import sqlalchemy
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from schoolgraph.error import ValidationError
from schoolgraph.models import (
    ROLES,
    active,
    new_id,
    school_table,
    student_table,
    user_table,
    utcnow,
)
from schoolgraph.sources.sqlalchemy import row_to_dict

log = logging.getLogger(__name__)

Record = Dict[str, Any]


class Repository:
    table: sqlalchemy.Table
    fields: Tuple[str, ...] = ()
    required: Tuple[str, ...] = ()
    choices: Mapping[str, Sequence[str]] = MappingProxyType({})

    def __init__(self, sa_engine: Engine) -> None:
        self.sa_engine = sa_engine

    def __repr__(self) -> str:
        return "<{}: table={!r}>".format(
            self.__class__.__name__, self.table.name
        )

    def validate(
        self, connection: Connection, data: Mapping[str, Any], *, partial: bool
    ) -> List[str]:
        errors = []
        unknown = sorted(set(data).difference(self.fields))
        if unknown:
            errors.append("Unknown field(s): {}".format(", ".join(unknown)))
        for name in self.required:
            if partial:
                if name in data and data[name] is None:
                    errors.append("Field {!r} can not be null".format(name))
            elif data.get(name) is None:
                errors.append("Field {!r} is required".format(name))
        for name, options in self.choices.items():
            value = data.get(name)
            if value is not None and value not in options:
                errors.append(
                    "Field {!r} should be one of: {}".format(
                        name, ", ".join(options)
                    )
                )
        return errors

    def _check(
        self, connection: Connection, data: Mapping[str, Any], *, partial: bool
    ) -> None:
        errors = self.validate(connection, data, partial=partial)
        if errors:
            raise ValidationError(errors)

    def _select_one(
        self, connection: Connection, id_: str, *, deleted: bool = False
    ) -> Optional[Record]:
        expr = sqlalchemy.select(self.table).where(self.table.c.id == id_)
        if not deleted:
            expr = expr.where(active(self.table))
        row = connection.execute(expr).first()
        return row_to_dict(row) if row is not None else None

    def get(self, id_: str) -> Optional[Record]:
        with self.sa_engine.connect() as connection:
            return self._select_one(connection, id_)

    def list(self) -> List[Record]:
        expr = (
            sqlalchemy.select(self.table)
            .where(active(self.table))
            .order_by(self.table.c.created_at, self.table.c.id)
        )
        with self.sa_engine.connect() as connection:
            return [row_to_dict(r) for r in connection.execute(expr)]

    def create(self, data: Mapping[str, Any]) -> Record:
        values = dict(data, id=new_id())
        try:
            with self.sa_engine.begin() as connection:
                self._check(connection, data, partial=False)
                connection.execute(self.table.insert().values(**values))
                record = self._select_one(connection, values["id"])
        except IntegrityError as e:
            raise ValidationError([str(e.orig)]) from e
        assert record is not None
        log.info("Created %s %s", self.table.name, record["id"])
        return record

    def update(self, id_: str, data: Mapping[str, Any]) -> Optional[Record]:
        try:
            with self.sa_engine.begin() as connection:
                self._check(connection, data, partial=True)
                if data:
                    result = connection.execute(
                        self.table.update()
                        .where(self.table.c.id == id_)
                        .where(active(self.table))
                        .values(**data)
                    )
                    if not result.rowcount:
                        return None
                return self._select_one(connection, id_)
        except IntegrityError as e:
            raise ValidationError([str(e.orig)]) from e

    def soft_delete(self, id_: str) -> Optional[Record]:
        with self.sa_engine.begin() as connection:
            result = connection.execute(
                self.table.update()
                .where(self.table.c.id == id_)
                .where(active(self.table))
                .values(deleted_at=utcnow())
            )
            if not result.rowcount:
                return None
            log.info("Soft-deleted %s %s", self.table.name, id_)
            return self._select_one(connection, id_, deleted=True)


class UserRepository(Repository):
    table = user_table
    fields = ("first_name", "last_name", "email", "password", "role")
    required = ("first_name", "last_name", "email", "password")
    choices = {"role": ROLES}


class SchoolRepository(Repository):
    table = school_table
    fields = ("name", "address")
    required = ("name",)


class StudentRepository(Repository):
    table = student_table
    fields = (
        "first_name",
        "last_name",
        "email",
        "date_of_birth",
        "school_id",
    )
    required = ("first_name", "last_name", "email", "school_id")

    def validate(
        self, connection: Connection, data: Mapping[str, Any], *, partial: bool
    ) -> List[str]:
        errors = super().validate(connection, data, partial=partial)
        school_id = data.get("school_id")
        if school_id is not None:
            exists = connection.execute(
                sqlalchemy.select(school_table.c.id)
                .where(school_table.c.id == school_id)
                .where(active(school_table))
            ).first()
            if exists is None:
                errors.append("School {!r} does not exist".format(school_id))
        return errors


@dataclass
class Repositories:
    users: UserRepository
    schools: SchoolRepository
    students: StudentRepository


def create_repositories(sa_engine: Engine) -> Repositories:
    return Repositories(
        users=UserRepository(sa_engine),
        schools=SchoolRepository(sa_engine),
        students=StudentRepository(sa_engine),
    )
