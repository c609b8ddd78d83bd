"""SQLite storage for device readings."""

from __future__ import annotations

import sqlite3
from os import PathLike
from types import TracebackType
from typing import Union

DEFAULT_PATH = "test.db"
TABLE = "QT5"
COLUMNS = ("ID", "NAME", "TEMP", "RH", "STATE", "DATE_TIME")

_SCHEMA = (
    f"CREATE TABLE IF NOT EXISTS {TABLE} ("
    "ID INTEGER PRIMARY KEY AUTOINCREMENT, "
    "NAME TEXT, TEMP TEXT, RH TEXT, STATE TEXT, DATE_TIME TEXT)"
)

StrPath = Union[str, "PathLike[str]"]


class DeviceDatabase:
    """A table of device readings kept in an SQLite file.

    Every operation opens the database first if it is not open yet.
    SQLite errors are raised as :class:`sqlite3.Error`.
    """

    def __init__(self, path: StrPath = DEFAULT_PATH) -> None:
        self.path = path
        self._conn: sqlite3.Connection | None = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> "DeviceDatabase":
        """Open the database and make sure the readings table exists."""
        if self._conn is None:
            conn = sqlite3.connect(self.path)
            try:
                with conn:
                    conn.execute(_SCHEMA)
            except sqlite3.Error:
                conn.close()
                raise
            self._conn = conn
        return self

    def close(self) -> None:
        """Close the database; closing a closed database does nothing."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "DeviceDatabase":
        return self.open()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _connection(self) -> sqlite3.Connection:
        self.open()
        assert self._conn is not None
        return self._conn

    def add(self, name: str, temp: str, rh: str, state: str, date_time: str) -> int:
        """Insert one reading and return its ID."""
        conn = self._connection()
        with conn:
            cursor = conn.execute(
                f"INSERT INTO {TABLE}(NAME, TEMP, RH, STATE, DATE_TIME) "
                "VALUES(:name, :temp, :rh, :state, :date_time)",
                {"name": name, "temp": temp, "rh": rh, "state": state, "date_time": date_time},
            )
        return int(cursor.lastrowid)

    def select(self, field: str) -> list[str]:
        """The values of one column, as text, in row order.

        Column names match without regard to case; an unknown name
        raises ValueError.
        """
        column = next((c for c in COLUMNS if c.lower() == field.lower()), None)
        if column is None:
            raise ValueError(f"unknown field: {field!r}")
        rows = self._connection().execute(f"SELECT {column} FROM {TABLE} ORDER BY ID")
        return ["" if value is None else str(value) for (value,) in rows]

    def update(
        self,
        record_id: int,
        name: str,
        temp: str,
        rh: str,
        state: str,
        date_time: str,
    ) -> bool:
        """Replace the reading with ``record_id``; True if such a row existed."""
        conn = self._connection()
        with conn:
            cursor = conn.execute(
                f"UPDATE {TABLE} SET NAME=:name, TEMP=:temp, RH=:rh, "
                "STATE=:state, DATE_TIME=:date_time WHERE ID=:id",
                {
                    "id": record_id,
                    "name": name,
                    "temp": temp,
                    "rh": rh,
                    "state": state,
                    "date_time": date_time,
                },
            )
        return cursor.rowcount > 0

    def delete(self, record_id: int) -> bool:
        """Remove the reading with ``record_id``; True if such a row existed."""
        conn = self._connection()
        with conn:
            cursor = conn.execute(f"DELETE FROM {TABLE} WHERE ID = :id", {"id": record_id})
        return cursor.rowcount > 0