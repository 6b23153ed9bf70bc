"""Good-night and good-morning tracking per group, stored in SQLite."""

from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import datetime, timedelta

log = logging.getLogger(__name__)

_MICROS_PER_SECOND = 1_000_000
_MICROS_PER_MINUTE = 60 * _MICROS_PER_SECOND
_MICROS_PER_HOUR = 60 * _MICROS_PER_MINUTE


def _stamp(moment: datetime) -> str:
    return moment.isoformat(sep=" ", timespec="microseconds")


def _since_hour(now: datetime, hours_back: int) -> datetime:
    return now - timedelta(hours=hours_back, minutes=now.minute, seconds=now.second)


class SleepDB:
    """Keeps the last sleep or wake time of every member of every group."""

    def __init__(self, path: str) -> None:
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._lock = threading.RLock()
        with self._lock, self._conn:
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS sleep_manage ("
                "id INTEGER PRIMARY KEY AUTOINCREMENT, "
                "group_id INTEGER NOT NULL, "
                "user_id INTEGER NOT NULL, "
                "sleep_time TEXT NOT NULL)"
            )

    def _record(
        self, gid: int, uid: int, now: datetime, since: datetime
    ) -> tuple[int, timedelta]:
        elapsed = timedelta(0)
        with self._lock, self._conn:
            row = self._conn.execute(
                "SELECT sleep_time FROM sleep_manage "
                "WHERE group_id = ? AND user_id = ? ORDER BY id LIMIT 1",
                (int(gid), int(uid)),
            ).fetchone()
            if row is None:
                self._conn.execute(
                    "INSERT INTO sleep_manage (group_id, user_id, sleep_time) VALUES (?, ?, ?)",
                    (int(gid), int(uid), _stamp(now)),
                )
            else:
                previous = datetime.fromisoformat(row[0])
                log.debug("previous time of %s in %s: %s", uid, gid, previous)
                elapsed = now - previous
                self._conn.execute(
                    "UPDATE sleep_manage SET sleep_time = ? WHERE group_id = ? AND user_id = ?",
                    (_stamp(now), int(gid), int(uid)),
                )
            (position,) = self._conn.execute(
                "SELECT COUNT(*) FROM sleep_manage "
                "WHERE group_id = ? AND sleep_time <= ? AND sleep_time >= ?",
                (int(gid), _stamp(now), _stamp(since)),
            ).fetchone()
        return position, elapsed

    def sleep(
        self, gid: int, uid: int, now: datetime | None = None
    ) -> tuple[int, timedelta]:
        """Record going to sleep; return the position tonight and the time awake."""
        now = now if now is not None else datetime.now()
        if now.hour >= 21:
            since = _since_hour(now, now.hour - 21)
        elif now.hour <= 3:
            since = _since_hour(now, now.hour + 3)
        else:
            since = datetime.min
        return self._record(gid, uid, now, since)

    def get_up(
        self, gid: int, uid: int, now: datetime | None = None
    ) -> tuple[int, timedelta]:
        """Record waking up; return the position this morning and the time slept."""
        now = now if now is not None else datetime.now()
        return self._record(gid, uid, now, _since_hour(now, now.hour - 6))

    def close(self) -> None:
        """Close the database."""
        with self._lock:
            self._conn.close()


def split_duration(duration: timedelta) -> tuple[int, int, int]:
    """Split a duration into whole hours, minutes and seconds."""
    micros = duration // timedelta(microseconds=1)
    sign = -1 if micros < 0 else 1
    micros = abs(micros)
    hours = micros // _MICROS_PER_HOUR
    minutes = (micros - hours * _MICROS_PER_HOUR) // _MICROS_PER_MINUTE
    seconds = (
        micros - hours * _MICROS_PER_HOUR - minutes * _MICROS_PER_MINUTE
    ) // _MICROS_PER_SECOND
    return sign * hours, sign * minutes, sign * seconds


def is_morning(hour: int) -> bool:
    """Good mornings count from 6 to 12 o'clock."""
    return 6 <= hour <= 12


def is_evening(hour: int) -> bool:
    """Good nights count from 21 o'clock to 3 o'clock."""
    return hour >= 21 or hour <= 3


def _untracked(duration: timedelta) -> bool:
    hours, minutes, seconds = split_duration(duration)
    return (hours == 0 and minutes == 0 and seconds == 0) or hours >= 24


def good_morning_text(position: int, duration: timedelta) -> str:
    """Return the reply to a good morning."""
    if _untracked(duration):
        return f"早安成功！你是今天第{position}个起床的"
    hours, minutes, seconds = split_duration(duration)
    return (
        f"早安成功！你的睡眠时长为{hours}时{minutes}分{seconds}秒,"
        f"你是今天第{position}个起床的"
    )


def good_night_text(position: int, duration: timedelta) -> str:
    """Return the reply to a good night."""
    if _untracked(duration):
        return f"晚安成功！你是今天第{position}个睡觉的"
    hours, minutes, seconds = split_duration(duration)
    return (
        f"晚安成功！你的清醒时长为{hours}时{minutes}分{seconds}秒,"
        f"你是今天第{position}个睡觉的"
    )