"""Voice quotes of virtual streamers, grouped in three levels of categories."""

from __future__ import annotations

import json
import random
import re
import sqlite3
import threading
from dataclasses import dataclass
from urllib.parse import quote_plus

import requests

VTB_LIST_URL = "https://vtbkeyboard.moe/api/get_vtb_list"
VTB_PAGE_URL = "https://vtbkeyboard.moe/api/get_vtb_page?uid="

FIRST_PROMPT = "请选择一个vtb并发送序号:\n"
SECOND_PROMPT = "请选择一个语录类别并发送序号:\n"
THIRD_PROMPT = "请选择一个语录并发送序号:\n"

_USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/96.0.4664.110 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:95.0) Gecko/20100101 Firefox/95.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/15.1 Safari/605.1.15",
)
_TIMEOUT = 30

_UNICODE_ESCAPE = re.compile(r"\\u(.{0,4})", re.S)
_HEX = frozenset("0123456789abcdefABCDEF")
_LAST_SEGMENT = re.compile(r".*/(.*)")

_SCHEMA = (
    "CREATE TABLE IF NOT EXISTS first_category ("
    "id INTEGER PRIMARY KEY AUTOINCREMENT, "
    "first_category_index INTEGER NOT NULL DEFAULT 0, "
    "first_category_name TEXT NOT NULL DEFAULT '', "
    "first_category_uid TEXT NOT NULL DEFAULT '', "
    "first_category_description TEXT NOT NULL DEFAULT '', "
    "first_category_icon_path TEXT NOT NULL DEFAULT '')",
    "CREATE TABLE IF NOT EXISTS second_category ("
    "id INTEGER PRIMARY KEY AUTOINCREMENT, "
    "second_category_index INTEGER NOT NULL DEFAULT 0, "
    "first_category_uid TEXT NOT NULL DEFAULT '', "
    "second_category_name TEXT NOT NULL DEFAULT '', "
    "second_category_author TEXT NOT NULL DEFAULT '', "
    "second_category_description TEXT NOT NULL DEFAULT '')",
    "CREATE TABLE IF NOT EXISTS third_category ("
    "id INTEGER PRIMARY KEY AUTOINCREMENT, "
    "third_category_index INTEGER NOT NULL DEFAULT 0, "
    "second_category_index INTEGER NOT NULL DEFAULT 0, "
    "first_category_uid TEXT NOT NULL DEFAULT '', "
    "third_category_name TEXT NOT NULL DEFAULT '', "
    "third_category_path TEXT NOT NULL DEFAULT '', "
    "third_category_author TEXT NOT NULL DEFAULT '', "
    "third_category_description TEXT NOT NULL DEFAULT '')",
)

_FIRST_COLUMNS = (
    "first_category_index, first_category_name, first_category_uid, "
    "first_category_description, first_category_icon_path"
)
_THIRD_COLUMNS = (
    "third_category_index, second_category_index, first_category_uid, "
    "third_category_name, third_category_path, third_category_author, "
    "third_category_description"
)


@dataclass(frozen=True)
class FirstCategory:
    """A streamer."""

    first_category_index: int
    first_category_name: str
    first_category_uid: str
    first_category_description: str = ""
    first_category_icon_path: str = ""


@dataclass(frozen=True)
class SecondCategory:
    """A category of quotes of one streamer."""

    second_category_index: int
    first_category_uid: str
    second_category_name: str
    second_category_author: str = ""
    second_category_description: str = ""


@dataclass(frozen=True)
class ThirdCategory:
    """One voice quote."""

    third_category_index: int
    second_category_index: int
    first_category_uid: str
    third_category_name: str
    third_category_path: str = ""
    third_category_author: str = ""
    third_category_description: str = ""


def decode_unicode_escapes(text: str | bytes) -> str:
    """Turn every ``\\uXXXX`` sequence in the text into its character.

    Raises ``ValueError`` for a malformed sequence or a surrogate code point.
    """
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")

    def replace(match: re.Match) -> str:
        digits = match.group(1)
        if len(digits) != 4 or not set(digits) <= _HEX:
            raise ValueError(f"invalid unicode escape: \\u{digits}")
        code = int(digits, 16)
        if 0xD800 <= code <= 0xDFFF:
            raise ValueError(f"invalid unicode escape: \\u{digits}")
        return chr(code)

    return _UNICODE_ESCAPE.sub(replace, text)


def escape_record_url(url: str) -> str:
    """Percent-escape the last path segment of a record address."""
    match = _LAST_SEGMENT.search(url)
    if match is None:
        return url
    segment = match.group(1)
    url = url.replace(segment, quote_plus(segment, safe=""))
    return url.replace("+", "%20")


def _text(data: object, path: str) -> str:
    for key in path.split("."):
        if not isinstance(data, dict) or key not in data:
            return ""
        data = data[key]
    if data is None:
        return ""
    if isinstance(data, str):
        return data
    if isinstance(data, bool):
        return "true" if data else "false"
    return json.dumps(data, ensure_ascii=False)


def _items(data: object, path: str = "") -> list:
    if path:
        for key in path.split("."):
            if not isinstance(data, dict) or key not in data:
                return []
            data = data[key]
    return data if isinstance(data, list) else []


def _load(payload: str | bytes) -> object:
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8", errors="replace")
    return json.loads(payload, strict=False)


class VtbDB:
    """Streamers, their quote categories and quotes."""

    def __init__(self, path: str) -> None:
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._lock = threading.RLock()
        with self._lock, self._conn:
            for ddl in _SCHEMA:
                self._conn.execute(ddl)

    def _first_uid(self, first_index: int) -> str:
        row = self._conn.execute(
            "SELECT first_category_uid FROM first_category "
            "WHERE first_category_index = ? ORDER BY id LIMIT 1",
            (int(first_index),),
        ).fetchone()
        return row[0] if row is not None else ""

    def first_category_message(self) -> str:
        """Return the numbered list of streamers."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT first_category_index, first_category_name "
                "FROM first_category ORDER BY id"
            ).fetchall()
        return FIRST_PROMPT + "".join(f"{index}. {name}\n" for index, name in rows)

    def second_category_message(self, first_index: int) -> str:
        """Return the numbered categories of a streamer, or "" when none."""
        with self._lock:
            uid = self._first_uid(first_index)
            rows = self._conn.execute(
                "SELECT second_category_index, second_category_name FROM second_category "
                "WHERE first_category_uid = ? ORDER BY id",
                (uid,),
            ).fetchall()
        if not rows:
            return ""
        return SECOND_PROMPT + "".join(f"{index}. {name}\n" for index, name in rows)

    def third_category_message(self, first_index: int, second_index: int) -> str:
        """Return the numbered quotes of a category, or "" when none."""
        with self._lock:
            uid = self._first_uid(first_index)
            rows = self._conn.execute(
                "SELECT third_category_index, third_category_name FROM third_category "
                "WHERE first_category_uid = ? AND second_category_index = ? ORDER BY id",
                (uid, int(second_index)),
            ).fetchall()
        if not rows:
            return ""
        return THIRD_PROMPT + "".join(f"{index}. {name}\n" for index, name in rows)

    def third_category(
        self, first_index: int, second_index: int, third_index: int
    ) -> ThirdCategory | None:
        """Return the quote at the three indexes, or None."""
        with self._lock:
            uid = self._first_uid(first_index)
            row = self._conn.execute(
                f"SELECT {_THIRD_COLUMNS} FROM third_category WHERE first_category_uid = ? "
                "AND second_category_index = ? AND third_category_index = ? "
                "ORDER BY id LIMIT 1",
                (uid, int(second_index), int(third_index)),
            ).fetchone()
        return ThirdCategory(*row) if row is not None else None

    def random_vtb(self, rng=None) -> ThirdCategory | None:
        """Return a random quote, or None when there are none."""
        rng = rng if rng is not None else random.Random()
        with self._lock:
            (count,) = self._conn.execute("SELECT COUNT(*) FROM third_category").fetchone()
            if count == 0:
                return None
            row = self._conn.execute(
                f"SELECT {_THIRD_COLUMNS} FROM third_category ORDER BY id LIMIT 1 OFFSET ?",
                (rng.randrange(count),),
            ).fetchone()
        return ThirdCategory(*row) if row is not None else None

    def first_category_by_uid(self, uid: str) -> FirstCategory | None:
        """Return the streamer with the given uid, or None."""
        with self._lock:
            row = self._conn.execute(
                f"SELECT {_FIRST_COLUMNS} FROM first_category "
                "WHERE first_category_uid = ? ORDER BY id LIMIT 1",
                (str(uid),),
            ).fetchone()
        return FirstCategory(*row) if row is not None else None

    def store_vtb_list(self, payload: str | bytes) -> list[str]:
        """Store the streamers of a list response; return their uids in order."""
        uids = []
        with self._lock, self._conn:
            for index, item in enumerate(_items(_load(payload))):
                name = _text(item, "name")
                description = _text(item, "description")
                icon = _text(item, "icon_path")
                uid = _text(item, "uid")
                exists = self._conn.execute(
                    "SELECT 1 FROM first_category WHERE first_category_uid = ? LIMIT 1",
                    (uid,),
                ).fetchone()
                if exists is None:
                    self._conn.execute(
                        f"INSERT INTO first_category ({_FIRST_COLUMNS}) VALUES (?, ?, ?, ?, ?)",
                        (index, name, uid, description, icon),
                    )
                else:
                    self._conn.execute(
                        "UPDATE first_category SET first_category_index = ?, "
                        "first_category_name = ?, first_category_description = ?, "
                        "first_category_icon_path = ? WHERE first_category_uid = ?",
                        (index, name, description, icon, uid),
                    )
                uids.append(uid)
        return uids

    def store_vtb(self, uid: str, payload: str | bytes) -> None:
        """Store the categories and quotes of one streamer's page response."""
        data = _load(payload)
        with self._lock, self._conn:
            for second_index, second in enumerate(_items(data, "data.voices")):
                name = _text(second, "categoryName")
                author = _text(second, "author")
                description = _text(second, "categoryDescription.zh-CN")
                key = (uid, second_index)
                exists = self._conn.execute(
                    "SELECT 1 FROM second_category WHERE first_category_uid = ? "
                    "AND second_category_index = ? LIMIT 1",
                    key,
                ).fetchone()
                if exists is None:
                    self._conn.execute(
                        "INSERT INTO second_category (second_category_index, "
                        "first_category_uid, second_category_name, second_category_author, "
                        "second_category_description) VALUES (?, ?, ?, ?, ?)",
                        (second_index, uid, name, author, description),
                    )
                else:
                    self._conn.execute(
                        "UPDATE second_category SET second_category_name = ?, "
                        "second_category_author = ?, second_category_description = ? "
                        "WHERE first_category_uid = ? AND second_category_index = ?",
                        (name, author, description, *key),
                    )
                for third_index, third in enumerate(_items(second, "voiceList")):
                    self._store_third(uid, second_index, third_index, third)

    def _store_third(self, uid: str, second_index: int, third_index: int, item: object) -> None:
        name = _text(item, "name")
        description = _text(item, "description.zh-CN")
        path = _text(item, "path")
        author = _text(item, "author")
        key = (uid, second_index, third_index)
        exists = self._conn.execute(
            "SELECT 1 FROM third_category WHERE first_category_uid = ? "
            "AND second_category_index = ? AND third_category_index = ? LIMIT 1",
            key,
        ).fetchone()
        if exists is None:
            self._conn.execute(
                f"INSERT INTO third_category ({_THIRD_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (third_index, second_index, uid, name, path, author, description),
            )
        else:
            self._conn.execute(
                "UPDATE third_category SET third_category_name = ?, "
                "third_category_description = ?, third_category_path = ?, "
                "third_category_author = ? WHERE first_category_uid = ? "
                "AND second_category_index = ? AND third_category_index = ?",
                (name, description, path, author, *key),
            )

    @staticmethod
    def _get(session: requests.Session | None, url: str) -> str:
        http = session if session is not None else requests.Session()
        response = http.get(
            url, headers={"User-Agent": random.choice(_USER_AGENTS)}, timeout=_TIMEOUT
        )
        return decode_unicode_escapes(response.content)

    def fetch_vtb_list(self, session: requests.Session | None = None) -> list[str]:
        """Download and store the streamer list; return their uids."""
        return self.store_vtb_list(self._get(session, VTB_LIST_URL))

    def fetch_vtb(self, uid: str, session: requests.Session | None = None) -> None:
        """Download and store one streamer's quotes."""
        self.store_vtb(uid, self._get(session, VTB_PAGE_URL + uid))

    def close(self) -> None:
        """Close the database."""
        with self._lock:
            self._conn.close()