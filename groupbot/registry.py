"""Per-group marriage registry kept in a SQLite database, renewed daily."""

from __future__ import annotations

import sqlite3
import threading
from dataclasses import dataclass
from datetime import date, datetime
from enum import IntEnum

DATE_FORMAT = "%Y/%m/%d"
ALL_GROUPS = "ALL"

_UPDATE_TABLE = "updateinfo"
_COLUMNS = "user, target, username, targetname, updatetime"


class HouseholdStatus(IntEnum):
    """Where a member stands in today's registry of a group."""

    WIFE = 0  # registered as the target of someone else
    HUSBAND = 1  # registered as the one who married
    SINGLE = 3  # not registered today


@dataclass(frozen=True)
class MarriageRecord:
    """One registered couple; a target of 0 marks a declared single."""

    user: int
    target: int
    username: str
    targetname: str
    updatetime: str


def _table_name(gid: int | str) -> str:
    return str(int(gid))


def _stamp(today: date) -> str:
    return today.strftime(DATE_FORMAT)


class MarriageRegistry:
    """Stores couples per group plus the day each group was last renewed."""

    def __init__(self, path: str) -> None:
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._lock = threading.RLock()
        with self._lock, self._conn:
            self._ensure_updateinfo()

    def _ensure_updateinfo(self) -> None:
        self._conn.execute(
            f"CREATE TABLE IF NOT EXISTS {_UPDATE_TABLE} "
            "(gid INTEGER PRIMARY KEY NOT NULL, updatetime TEXT NOT NULL)"
        )

    def _ensure_group(self, table: str) -> None:
        self._conn.execute(
            f'CREATE TABLE IF NOT EXISTS "{table}" ('
            "user INTEGER PRIMARY KEY NOT NULL, "
            "target INTEGER NOT NULL, "
            "username TEXT NOT NULL, "
            "targetname TEXT NOT NULL, "
            "updatetime TEXT NOT NULL)"
        )

    def check_update(self, gid: int, today: date) -> date:
        """Return the day the group was last renewed, recording today if never."""
        with self._lock, self._conn:
            self._ensure_updateinfo()
            row = self._conn.execute(
                f"SELECT updatetime FROM {_UPDATE_TABLE} WHERE gid = ?", (int(gid),)
            ).fetchone()
            if row is None:
                self._conn.execute(
                    f"INSERT OR REPLACE INTO {_UPDATE_TABLE} VALUES (?, ?)",
                    (int(gid), _stamp(today)),
                )
                return today
            return datetime.strptime(row[0], DATE_FORMAT).date()

    def reset(self, gid: int | str, today: date) -> None:
        """Clear a group's registry, or every group's when gid is ``ALL``."""
        with self._lock, self._conn:
            self._ensure_updateinfo()
            if str(gid) == ALL_GROUPS:
                rows = self._conn.execute(
                    "SELECT name FROM sqlite_master WHERE type = 'table' AND name != ?",
                    (_UPDATE_TABLE,),
                ).fetchall()
                names = [name for (name,) in rows if name.lstrip("-").isdigit()]
            else:
                names = [_table_name(gid)]
            for name in names:
                self._conn.execute(f'DROP TABLE IF EXISTS "{name}"')
                self._conn.execute(
                    f"INSERT OR REPLACE INTO {_UPDATE_TABLE} VALUES (?, ?)",
                    (int(name), _stamp(today)),
                )

    def divorce(self, gid: int, target: int) -> None:
        """Remove every couple whose target is the given member."""
        table = _table_name(gid)
        with self._lock, self._conn:
            self._ensure_group(table)
            self._conn.execute(f'DELETE FROM "{table}" WHERE target = ?', (int(target),))

    def remarry(
        self, gid: int, uid: int, target: int, username: str, targetname: str, today: date
    ) -> None:
        """Register uid with target, replacing uid's couple.

        Nothing changes when both uid and target already head a couple.
        """
        table = _table_name(gid)
        with self._lock, self._conn:
            self._ensure_group(table)
            query = f'SELECT 1 FROM "{table}" WHERE user = ? LIMIT 1'
            if (
                self._conn.execute(query, (int(uid),)).fetchone() is not None
                and self._conn.execute(query, (int(target),)).fetchone() is not None
            ):
                return
            self._insert(table, uid, target, username, targetname, today)

    def roster(self, gid: int) -> list[MarriageRecord]:
        """Return today's couples of a group, leaving out declared singles."""
        table = _table_name(gid)
        with self._lock, self._conn:
            self._ensure_group(table)
            rows = self._conn.execute(
                f'SELECT {_COLUMNS} FROM "{table}" WHERE target != 0 ORDER BY user'
            ).fetchall()
        return [MarriageRecord(*row) for row in rows]

    def lookup(self, gid: int, uid: int) -> tuple[MarriageRecord | None, HouseholdStatus]:
        """Return the member's couple and the side of it they are on."""
        table = _table_name(gid)
        with self._lock, self._conn:
            self._ensure_group(table)
            row = self._conn.execute(
                f'SELECT {_COLUMNS} FROM "{table}" WHERE user = ? LIMIT 1', (int(uid),)
            ).fetchone()
            if row is not None:
                return MarriageRecord(*row), HouseholdStatus.HUSBAND
            row = self._conn.execute(
                f'SELECT {_COLUMNS} FROM "{table}" WHERE target = ? LIMIT 1', (int(uid),)
            ).fetchone()
            if row is not None:
                return MarriageRecord(*row), HouseholdStatus.WIFE
        return None, HouseholdStatus.SINGLE

    def register(
        self, gid: int, uid: int, target: int, username: str, targetname: str, today: date
    ) -> None:
        """Register a couple headed by uid."""
        table = _table_name(gid)
        with self._lock, self._conn:
            self._ensure_group(table)
            self._insert(table, uid, target, username, targetname, today)

    def _insert(
        self, table: str, uid: int, target: int, username: str, targetname: str, today: date
    ) -> None:
        self._conn.execute(
            f'INSERT OR REPLACE INTO "{table}" ({_COLUMNS}) VALUES (?, ?, ?, ?, ?)',
            (int(uid), int(target), username, targetname, _stamp(today)),
        )

    def close(self) -> None:
        """Close the database."""
        with self._lock:
            self._conn.close()