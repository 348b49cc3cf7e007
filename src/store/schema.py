"""Relational layout of the bookings store.

Column lists come from the field mapping tables so the schema and the
normalized payloads cannot drift apart.
"""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    false,
    func,
)
from sqlalchemy.types import TypeEngine

from core.constants import (
    BOOKING_KEY_COLUMN,
    BOOKINGS_COLLECTION,
    DETAILS_COLLECTION,
    MIGRATIONS_TABLE,
    SEQUENCE_KEY_COLUMN,
)
from ingest.field_mapping import (
    BOOKING_FIELDS,
    BOOLEAN,
    DATE,
    DETAIL_FIELDS,
    INTEGER,
    NUMERIC,
    FieldSpec,
)

metadata = MetaData()


def _column_type(kind: str) -> TypeEngine:
    if kind == BOOLEAN:
        return Boolean()
    if kind == NUMERIC:
        return Numeric()
    if kind == INTEGER:
        return Integer()
    if kind == DATE:
        # Dates are stored as received; no calendar validation happens upstream.
        return String(32)
    return Text()


def _attribute_column(spec: FieldSpec) -> Column:
    if spec.kind == BOOLEAN:
        return Column(spec.column, Boolean(), nullable=False, server_default=false())
    return Column(spec.column, _column_type(spec.kind), nullable=True)


def _timestamp_columns() -> list[Column]:
    return [
        Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
        Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    ]


bookings_table = Table(
    BOOKINGS_COLLECTION,
    metadata,
    Column(BOOKING_KEY_COLUMN, Text(), primary_key=True),
    *[_attribute_column(spec) for spec in BOOKING_FIELDS],
    *_timestamp_columns(),
)

detail_sequences_table = Table(
    DETAILS_COLLECTION,
    metadata,
    Column(
        BOOKING_KEY_COLUMN,
        Text(),
        ForeignKey(f"{BOOKINGS_COLLECTION}.{BOOKING_KEY_COLUMN}", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(SEQUENCE_KEY_COLUMN, Integer(), primary_key=True, autoincrement=False),
    *[_attribute_column(spec) for spec in DETAIL_FIELDS],
    *_timestamp_columns(),
)

schema_migrations_table = Table(
    MIGRATIONS_TABLE,
    metadata,
    Column("version", Integer(), primary_key=True, autoincrement=False),
    Column("description", Text(), nullable=False),
    Column("applied_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

COLLECTION_TABLES: dict[str, Table] = {
    BOOKINGS_COLLECTION: bookings_table,
    DETAILS_COLLECTION: detail_sequences_table,
}
