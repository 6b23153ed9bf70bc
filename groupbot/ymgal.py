"""Galgame CG and sticker picture sets scraped from a galgame site."""

from __future__ import annotations

import random
import re
import sqlite3
import threading
import time
from dataclasses import dataclass
from typing import Callable
from urllib.parse import quote_plus

import lxml.html
import requests

WEB_URL = "https://www.ymgal.com"
CG_TYPE = "Gal CG"
EMOTICON_TYPE = "其他"
WEB_PIC_URL = WEB_URL + "/co/picset/"
CG_URL = WEB_URL + "/search?type=picset&sort=default&category=" + quote_plus(CG_TYPE) + "&page="
EMOTICON_URL = (
    WEB_URL + "/search?type=picset&sort=default&category=" + quote_plus(EMOTICON_TYPE) + "&page="
)

_PAGE_NUMBER_XPATH = (
    "//*[@id='pager-box']/div/a[@class='icon item pager-next']/preceding-sibling::a[1]/text()"
)
_PICSET_LINK_XPATH = "//*[@id='picset-result-list']/ul/div/div[1]/a"
_PICTURE_COUNT_XPATH = "//div[@class='meta-info']/div[@class='meta-right']/span[2]/text()"
_CG_ITEM_XPATH = (
    "//*[@id='main-picset-warp']/div/div[2]/div/div[@class='swiper-wrapper']/div[{}]"
)
_EMOTICON_ITEM_XPATH = "//*[@id='main-picset-warp']/div/div[@class='stream-list']/div[{}]/img"
_NUMBER = re.compile(r"\d+")
_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/96.0.4664.110 Safari/537.36"
)
_TIMEOUT = 30
_COLUMNS = "id, title, picture_type, picture_description, picture_list"


@dataclass(frozen=True)
class Ymgal:
    """A stored picture set."""

    id: int
    title: str
    picture_type: str
    picture_description: str
    picture_list: str

    @property
    def pictures(self) -> list[str]:
        """The picture addresses of the set."""
        return self.picture_list.split(",") if self.picture_list else []


class YmgalDB:
    """Picture sets keyed by their site id."""

    def __init__(self, path: str) -> None:
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._lock = threading.RLock()
        with self._lock, self._conn:
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS ymgal ("
                "id INTEGER PRIMARY KEY NOT NULL, "
                "title TEXT NOT NULL DEFAULT '', "
                "picture_type TEXT NOT NULL DEFAULT '', "
                "picture_description TEXT NOT NULL DEFAULT '', "
                "picture_list TEXT NOT NULL DEFAULT '')"
            )

    def upsert(
        self,
        id: int,
        title: str,
        picture_type: str,
        picture_description: str,
        picture_list: str,
    ) -> None:
        """Insert a picture set or replace the stored one with the same id."""
        with self._lock, self._conn:
            self._conn.execute(
                f"INSERT INTO ymgal ({_COLUMNS}) VALUES (?, ?, ?, ?, ?) "
                "ON CONFLICT(id) DO UPDATE SET title = excluded.title, "
                "picture_type = excluded.picture_type, "
                "picture_description = excluded.picture_description, "
                "picture_list = excluded.picture_list",
                (int(id), title, picture_type, picture_description, picture_list),
            )

    def get_by_id(self, id: int | str) -> Ymgal | None:
        """Return the picture set with the id, or None."""
        try:
            key = int(id)
        except ValueError:
            return None
        with self._lock:
            row = self._conn.execute(
                f"SELECT {_COLUMNS} FROM ymgal WHERE id = ?", (key,)
            ).fetchone()
        return Ymgal(*row) if row is not None else None

    def _pick(self, where: str, params: tuple, rng) -> Ymgal | None:
        rng = rng if rng is not None else random.Random()
        with self._lock:
            (count,) = self._conn.execute(
                f"SELECT COUNT(*) FROM ymgal WHERE {where}", params
            ).fetchone()
            if count == 0:
                return None
            row = self._conn.execute(
                f"SELECT {_COLUMNS} FROM ymgal WHERE {where} ORDER BY id LIMIT 1 OFFSET ?",
                (*params, rng.randrange(count)),
            ).fetchone()
        return Ymgal(*row) if row is not None else None

    def random(self, picture_type: str, rng=None) -> Ymgal | None:
        """Return a random picture set of the type, or None."""
        return self._pick("picture_type = ?", (picture_type,), rng)

    def search(self, picture_type: str, key: str, rng=None) -> Ymgal | None:
        """Return a random set of the type whose title or description holds key."""
        pattern = f"%{key}%"
        return self._pick(
            "picture_type = ? AND (picture_description LIKE ? OR title LIKE ?)",
            (picture_type, pattern, pattern),
            rng,
        )

    def close(self) -> None:
        """Close the database."""
        with self._lock:
            self._conn.close()


def _document(html: str | bytes):
    if isinstance(html, bytes):
        html = html.decode("utf-8", errors="replace")
    return lxml.html.document_fromstring(html)


def _one(document, xpath: str):
    found = document.xpath(xpath)
    if not found:
        raise ValueError(f"nothing found at {xpath}")
    return found[0]


def _attribute(element, position: int) -> str:
    values = list(element.attrib.values())
    if len(values) <= position:
        raise ValueError(f"element <{element.tag}> lacks attribute {position}")
    return values[position]


def parse_page_count(html: str | bytes) -> int:
    """Return the number of the last result page of a search page."""
    text = str(_one(_document(html), _PAGE_NUMBER_XPATH)).strip()
    try:
        return int(text)
    except ValueError:
        raise ValueError(f"invalid page number: {text!r}") from None


def parse_picset_ids(html: str | bytes) -> list[str]:
    """Return the picture set ids listed on a search page, in page order."""
    ids = []
    for link in _document(html).xpath(_PICSET_LINK_XPATH):
        match = _NUMBER.search(_attribute(link, 0))
        ids.append(match.group() if match else "")
    return ids


def _parse_picset(html: str | bytes, item_xpath: str) -> tuple[str, str, list[str]]:
    document = _document(html)
    title = _attribute(_one(document, "//meta[@name='name']"), 1)
    description = _attribute(_one(document, "//meta[@name='description']"), 1)
    count_text = str(_one(document, _PICTURE_COUNT_XPATH))
    match = _NUMBER.search(count_text)
    if match is None:
        raise ValueError(f"no picture count in {count_text!r}")
    pictures = [
        _attribute(_one(document, item_xpath.format(i)), 1)
        for i in range(1, int(match.group()) + 1)
    ]
    return title, description, pictures


def parse_cg_picset(html: str | bytes) -> tuple[str, str, list[str]]:
    """Return the title, description and picture addresses of a CG set page."""
    return _parse_picset(html, _CG_ITEM_XPATH)


def parse_emoticon_picset(html: str | bytes) -> tuple[str, str, list[str]]:
    """Return the title, description and picture addresses of a sticker set page."""
    return _parse_picset(html, _EMOTICON_ITEM_XPATH)


def _load(session: requests.Session, url: str) -> bytes:
    response = session.get(url, headers={"User-Agent": _USER_AGENT}, timeout=_TIMEOUT)
    return response.content


def _store(
    db: YmgalDB,
    session: requests.Session,
    pic_id: str,
    picture_type: str,
    parser: Callable[[bytes], tuple[str, str, list[str]]],
) -> None:
    try:
        numeric_id = int(pic_id)
    except ValueError:
        raise ValueError(f"invalid picture set id: {pic_id!r}") from None
    title, description, pictures = parser(_load(session, WEB_PIC_URL + pic_id))
    db.upsert(numeric_id, title, picture_type, description, ",".join(pictures))


def update_pictures(
    db: YmgalDB, session: requests.Session | None = None, delay: float = 0.5
) -> int:
    """Store picture sets newer than the stored ones; return how many were stored.

    Sets are visited from the oldest listed to the newest, and each kind stops
    at the first set that is already stored.
    """
    http = session if session is not None else requests.Session()
    cg_pages = parse_page_count(_load(http, CG_URL + "1"))
    emoticon_pages = parse_page_count(_load(http, EMOTICON_URL + "1"))
    cg_ids: list[str] = []
    for page in range(1, cg_pages + 1):
        cg_ids.extend(parse_picset_ids(_load(http, CG_URL + str(page))))
        time.sleep(delay)
    emoticon_ids: list[str] = []
    for page in range(1, emoticon_pages + 1):
        emoticon_ids.extend(parse_picset_ids(_load(http, EMOTICON_URL + str(page))))
        time.sleep(delay)
    stored = 0
    for picture_type, ids, parser in (
        (CG_TYPE, cg_ids, parse_cg_picset),
        (EMOTICON_TYPE, emoticon_ids, parse_emoticon_picset),
    ):
        for pic_id in reversed(ids):
            existing = db.get_by_id(pic_id)
            if existing is not None and existing.picture_list:
                break
            _store(db, http, pic_id, picture_type, parser)
            stored += 1
            time.sleep(delay)
    return stored