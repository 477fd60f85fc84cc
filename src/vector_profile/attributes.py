"""Attribute tables joined to features by category.

Tables live in SQLite: either an existing database file linked to the
dataset, or the shapefile's own DBF table loaded into an in-memory database.
"""

from __future__ import annotations

import datetime
import re
import sqlite3
from pathlib import Path

import shapefile
from loguru import logger

from .errors import AttributeLookupError, ResourceError
from .models import Column

# Declared base types whose values are written inside quotes
QUOTED_TYPES = frozenset({
    "CHAR", "CHARACTER", "VARCHAR", "CHARACTER VARYING", "NCHAR", "NVARCHAR", "TEXT", "CLOB",
    "DATE", "TIME", "TIMESTAMP", "DATETIME", "INTERVAL", "SERIAL",
})


def base_type(sql_type: str) -> str:
    """Declared type without its size suffix, e.g. ``VARCHAR(20)`` -> ``VARCHAR``."""
    return re.sub(r"\s*\(.*\)\s*$", "", sql_type).strip().upper()


def is_quoted(column: Column) -> bool:
    return base_type(column.sql_type) in QUOTED_TYPES


def _quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _dbf_sql_type(field_type: str, size: int, decimal: int) -> str:
    """SQL type for a DBF field descriptor."""
    if field_type == "C":
        return f"CHARACTER({size})"
    if field_type == "D":
        return "DATE"
    if field_type == "L":
        return "BOOLEAN"
    if field_type == "M":
        return "TEXT"
    if field_type == "N" and decimal == 0:
        return "INTEGER"
    return "DOUBLE PRECISION"


def _dbf_value(value):
    if isinstance(value, datetime.date):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def _to_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


class AttributeStore:
    """A table keyed by category in a SQLite database."""

    def __init__(self, connection: sqlite3.Connection, table: str, key: str, database: str = ":memory:"):
        self.connection = connection
        self.table = table
        self.key = key
        self.database = database
        self._columns: list[Column] | None = None

    @classmethod
    def open(cls, database: str | Path, table: str, key: str) -> AttributeStore:
        """Link to ``table`` in an existing SQLite database file."""
        path = Path(database)
        if not path.exists():
            raise ResourceError(f"Unable to open database <{database}>: no such file")
        try:
            connection = sqlite3.connect(f"file:{path}?mode=ro", uri=True)
        except sqlite3.Error as e:
            raise ResourceError(f"Unable to open database <{database}>: {e}") from e
        store = cls(connection, table, key, database=str(path))
        try:
            store.describe()
        except ResourceError:
            store.close()
            raise
        return store

    @classmethod
    def from_dbf(cls, reader: shapefile.Reader, table: str, key: str, add_key: bool = False) -> AttributeStore:
        """Load a shapefile's DBF records into an in-memory table.

        With ``add_key`` an INTEGER ``key`` column numbering the records from 1
        is put in front of the DBF fields.
        """
        fields = reader.fields[1:]  # skip DeletionFlag
        columns = [(name, _dbf_sql_type(ftype, size, decimal)) for name, ftype, size, decimal in fields]
        if add_key:
            columns.insert(0, (key, "INTEGER"))

        connection = sqlite3.connect(":memory:")
        ddl = ", ".join(f"{_quote_ident(name)} {sql_type}" for name, sql_type in columns)
        connection.execute(f"CREATE TABLE {_quote_ident(table)} ({ddl})")

        placeholders = ", ".join("?" for _ in columns)
        insert = f"INSERT INTO {_quote_ident(table)} VALUES ({placeholders})"
        rows = []
        for i, record in enumerate(reader.iterRecords()):
            values = [_dbf_value(v) for v in record]
            if add_key:
                values.insert(0, i + 1)
            rows.append(values)
        connection.executemany(insert, rows)
        connection.commit()
        logger.debug(f"Loaded {len(rows)} DBF records into table <{table}>")
        return cls(connection, table, key)

    def describe(self) -> list[Column]:
        """Columns of the table in declared order."""
        if self._columns is None:
            try:
                info = self.connection.execute(f"PRAGMA table_info({_quote_ident(self.table)})").fetchall()
            except sqlite3.Error as e:
                raise ResourceError(f"Unable to describe table <{self.table}>: {e}") from e
            if not info:
                raise ResourceError(f"Unable to describe table <{self.table}>")
            self._columns = [Column(name=row[1], sql_type=row[2] or "") for row in info]
        return self._columns

    def select_keys(self, where: str) -> list[int]:
        """Keys of the rows matching an SQL WHERE clause, passed through as given."""
        sql = f"SELECT {_quote_ident(self.key)} FROM {_quote_ident(self.table)} WHERE {where}"
        logger.debug(f'SQL: "{sql}"')
        try:
            rows = self.connection.execute(sql).fetchall()
        except sqlite3.Error as e:
            raise ResourceError(f"Unable to select keys from table <{self.table}>: {e}") from e
        return [int(row[0]) for row in rows if row[0] is not None]

    def select_row(self, category: int) -> list[str] | None:
        """Text values of the first row with key ``category``, or None when there is none."""
        sql = f"SELECT * FROM {_quote_ident(self.table)} WHERE {_quote_ident(self.key)} = ?"
        logger.debug(f'SQL: "{sql}" [{category}]')
        try:
            cursor = self.connection.cursor()
            try:
                cursor.execute(sql, (category,))
                row = cursor.fetchone()
            finally:
                cursor.close()
        except sqlite3.Error as e:
            raise AttributeLookupError(f"Unable to get attribute data for cat {category}: {e}") from e
        if row is None:
            return None
        return [_to_text(v) for v in row]

    def close(self) -> None:
        self.connection.close()

    def __enter__(self) -> AttributeStore:
        return self

    def __exit__(self, *exc) -> None:
        self.close()
