import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    MetaData,
    String,
    Table,
    Unicode,
)

metadata = MetaData()

ROLES = ("operator", "acadir", "student")


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _timestamps() -> list:
    return [
        Column("created_at", DateTime(timezone=True), default=utcnow),
        Column(
            "updated_at",
            DateTime(timezone=True),
            default=utcnow,
            onupdate=utcnow,
        ),
        # soft delete marker, row is active while it is NULL
        Column("deleted_at", DateTime(timezone=True), nullable=True),
    ]


user_table = Table(
    "user",
    metadata,
    Column("id", String(32), primary_key=True, default=new_id),
    Column("first_name", Unicode, nullable=False),
    Column("last_name", Unicode, nullable=False),
    Column("email", Unicode, nullable=False, unique=True),
    Column("password", Unicode, nullable=False),
    Column(
        "role",
        Enum(*ROLES, name="user_role"),
        nullable=False,
        default="operator",
    ),
    *_timestamps(),
)

school_table = Table(
    "school",
    metadata,
    Column("id", String(32), primary_key=True, default=new_id),
    Column("name", Unicode, nullable=False),
    Column("address", Unicode),
    *_timestamps(),
)

student_table = Table(
    "student",
    metadata,
    Column("id", String(32), primary_key=True, default=new_id),
    Column("first_name", Unicode, nullable=False),
    Column("last_name", Unicode, nullable=False),
    Column("email", Unicode, nullable=False, unique=True),
    Column("date_of_birth", Date),
    Column(
        "school_id", String(32), ForeignKey("school.id"), nullable=False
    ),
    *_timestamps(),
)


def active(table: Table):
    return table.c.deleted_at.is_(None)
