"""Daily sign-in that earns points and levels, stored in SQLite."""

from __future__ import annotations

import json
import os
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime

import requests

BACKGROUND_URL = "https://mirlkoi.ifast3.vipnps.vip/api.php?sort=pc&type=json"
REFERER = "https://iw233.cn/main.html"
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/96.0.4664.110 Safari/537.36"
)
SIGNIN_MAX = 1
SCOREMAX = 120
SIGNIN_REWARD = 1
LEVELS = (0, 1, 2, 5, 10, 20, 35, 55, 75, 100, 120)

_DAY_FORMAT = "%Y%m%d"
_TIMEOUT = 30


@dataclass(frozen=True)
class SignIn:
    """How often a user has signed in and when that was last updated."""

    uid: int
    count: int
    updated_at: datetime


@dataclass(frozen=True)
class SignInResult:
    """Outcome of one sign-in attempt."""

    already_signed: bool
    count: int
    score: int
    level: int
    next_level_score: int
    hour_word: str
    month_word: str
    capped: bool = False


class ScoreDB:
    """Scores and sign-in counts per user."""

    def __init__(self, path: str) -> None:
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._lock = threading.RLock()
        with self._lock, self._conn:
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS score "
                "(uid INTEGER PRIMARY KEY NOT NULL, score INTEGER NOT NULL DEFAULT 0)"
            )
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS sign_in "
                "(uid INTEGER PRIMARY KEY NOT NULL, count INTEGER NOT NULL DEFAULT 0, "
                "updated_at TEXT NOT NULL)"
            )

    def get_score(self, uid: int) -> int:
        """Return the user's score, creating a zero score if there is none."""
        with self._lock, self._conn:
            row = self._conn.execute(
                "SELECT score FROM score WHERE uid = ?", (int(uid),)
            ).fetchone()
            if row is None:
                self._conn.execute("INSERT INTO score (uid, score) VALUES (?, 0)", (int(uid),))
                return 0
            return row[0]

    def set_score(self, uid: int, score: int) -> None:
        """Insert or update the user's score."""
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT INTO score (uid, score) VALUES (?, ?) "
                "ON CONFLICT(uid) DO UPDATE SET score = excluded.score",
                (int(uid), int(score)),
            )

    def get_sign_in(self, uid: int) -> SignIn:
        """Return the user's sign-in record, creating an empty one if needed."""
        with self._lock, self._conn:
            row = self._conn.execute(
                "SELECT count, updated_at FROM sign_in WHERE uid = ?", (int(uid),)
            ).fetchone()
            if row is None:
                now = datetime.now()
                self._conn.execute(
                    "INSERT INTO sign_in (uid, count, updated_at) VALUES (?, 0, ?)",
                    (int(uid), now.isoformat()),
                )
                return SignIn(int(uid), 0, now)
            return SignIn(int(uid), row[0], datetime.fromisoformat(row[1]))

    def set_sign_in_count(self, uid: int, count: int, now: datetime) -> None:
        """Insert or update the user's sign-in count, stamping it with now."""
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT INTO sign_in (uid, count, updated_at) VALUES (?, ?, ?) "
                "ON CONFLICT(uid) DO UPDATE SET count = excluded.count, "
                "updated_at = excluded.updated_at",
                (int(uid), int(count), now.isoformat()),
            )

    def top_scores(self, n: int) -> list[tuple[int, int]]:
        """Return up to n (uid, score) pairs, highest score first."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT uid, score FROM score ORDER BY score DESC, uid LIMIT ?", (int(n),)
            ).fetchall()
        return [(uid, score) for uid, score in rows]

    def close(self) -> None:
        """Close the database."""
        with self._lock:
            self._conn.close()


def get_level(count: int) -> int:
    """Return the level reached with a score, or -1 when out of range."""
    for level, threshold in enumerate(LEVELS):
        if count == threshold:
            return level
        if count < threshold:
            return level - 1
    return -1


def get_hour_word(moment: datetime) -> str:
    """Return the greeting for the hour of the given moment."""
    hour = moment.hour
    if 6 <= hour < 12:
        return "早上好"
    if 12 <= hour < 14:
        return "中午好"
    if 14 <= hour < 19:
        return "下午好"
    if 19 <= hour < 24:
        return "晚上好"
    return "凌晨好"


def next_level_score(level: int) -> int:
    """Return the score that the next level needs."""
    if level < len(LEVELS) - 1:
        return LEVELS[level + 1]
    return SCOREMAX


def sign_in(db: ScoreDB, uid: int, now: datetime | None = None) -> SignInResult:
    """Sign the user in for the day and award the reward once a day."""
    now = now if now is not None else datetime.now()
    today = now.strftime(_DAY_FORMAT)
    hour_word = get_hour_word(now)
    month_word = now.strftime("%m/%d")
    record = db.get_sign_in(uid)
    signed_day = record.updated_at.strftime(_DAY_FORMAT)
    if record.count >= SIGNIN_MAX and signed_day == today:
        score = db.get_score(uid)
        level = get_level(score)
        return SignInResult(
            already_signed=True,
            count=record.count,
            score=score,
            level=level,
            next_level_score=next_level_score(level),
            hour_word=hour_word,
            month_word=month_word,
        )
    if signed_day != today:
        db.set_sign_in_count(uid, 0, now)
    count = record.count + 1
    db.set_sign_in_count(uid, count, now)
    score = db.get_score(uid) + SIGNIN_REWARD
    capped = score > SCOREMAX
    if capped:
        score = SCOREMAX
    db.set_score(uid, score)
    level = get_level(score)
    return SignInResult(
        already_signed=False,
        count=count,
        score=score,
        level=level,
        next_level_score=next_level_score(level),
        hour_word=hour_word,
        month_word=month_word,
        capped=capped,
    )


def _get(session: requests.Session, url: str, referer: str) -> bytes:
    headers = {"User-Agent": USER_AGENT}
    if referer:
        headers["Referer"] = referer
    response = session.get(url, headers=headers, timeout=_TIMEOUT)
    if response.status_code != 200:
        raise requests.HTTPError(f"status code {response.status_code}")
    return response.content


def fetch_background(path: str, session: requests.Session | None = None) -> str:
    """Download a random background picture to path unless it is already there."""
    if os.path.exists(path):
        return path
    http = session if session is not None else requests.Session()
    data = json.loads(_get(http, BACKGROUND_URL, REFERER))
    pics = data.get("pic") if isinstance(data, dict) else None
    pic_url = pics[0] if isinstance(pics, list) and pics else ""
    if not isinstance(pic_url, str) or not pic_url:
        raise ValueError("background response holds no picture url")
    image = _get(http, pic_url, "")
    with open(path, "wb") as fh:
        fh.write(image)
    return path