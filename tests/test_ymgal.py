import random

import pytest

from groupbot.ymgal import (
    CG_TYPE,
    CG_URL,
    EMOTICON_TYPE,
    EMOTICON_URL,
    WEB_PIC_URL,
    Ymgal,
    YmgalDB,
    parse_cg_picset,
    parse_emoticon_picset,
    parse_page_count,
    parse_picset_ids,
    update_pictures,
)


class FakeResponse:
    def __init__(self, content):
        self.content = content
        self.status_code = 200


class FakeSession:
    def __init__(self, pages):
        self.pages = pages
        self.calls = []

    def get(self, url, headers=None, timeout=None):
        self.calls.append(url)
        return FakeResponse(self.pages[url].encode("utf-8"))


def search_page(ids, last_page=1):
    links = "".join(
        f'<div><div><a href="/co/picset/{i}">set</a></div><div><a href="/other/9">x</a></div></div>'
        for i in ids
    )
    return (
        "<html><body>"
        f'<div id="pager-box"><div><a class="icon item">1</a><a class="icon item">{last_page}</a>'
        '<a class="icon item pager-next">next</a></div></div>'
        f'<div id="picset-result-list"><ul>{links}</ul></div>'
        "</body></html>"
    )


def picset_head(title, description, count):
    return (
        f'<html><head><meta name="name" content="{title}">'
        f'<meta name="description" content="{description}"></head><body>'
        '<div class="meta-info"><div class="meta-right">'
        f"<span>author</span><span>共{count}张</span></div></div>"
    )


def cg_page(title, description, urls):
    slides = "".join(f'<div class="swiper-slide" data-src="{u}"></div>' for u in urls)
    return (
        picset_head(title, description, len(urls))
        + '<div id="main-picset-warp"><div><div>head</div>'
        + f'<div><div><div class="swiper-wrapper">{slides}</div></div></div>'
        + "</div></div></body></html>"
    )


def emoticon_page(title, description, urls):
    items = "".join(f'<div><img alt="pic" src="{u}"></div>' for u in urls)
    return (
        picset_head(title, description, len(urls))
        + f'<div id="main-picset-warp"><div><div class="stream-list">{items}</div>'
        + "</div></div></body></html>"
    )


@pytest.fixture
def db(tmp_path):
    database = YmgalDB(str(tmp_path / "ymgal.db"))
    yield database
    database.close()


def test_search_urls_carry_escaped_category():
    assert CG_URL.endswith("category=Gal+CG&page=")
    assert "category=%E5%85%B6%E4%BB%96&page=" in EMOTICON_URL


def test_upsert_and_get(db):
    db.upsert(5, "Title", CG_TYPE, "desc", "a,b")
    assert db.get_by_id(5) == Ymgal(5, "Title", CG_TYPE, "desc", "a,b")
    assert db.get_by_id("5").pictures == ["a", "b"]


def test_upsert_replaces(db):
    db.upsert(5, "Title", CG_TYPE, "desc", "a")
    db.upsert(5, "New", EMOTICON_TYPE, "other", "c")
    assert db.get_by_id(5) == Ymgal(5, "New", EMOTICON_TYPE, "other", "c")


def test_get_missing(db):
    assert db.get_by_id(1) is None
    assert db.get_by_id("abc") is None


def test_empty_pictures():
    assert Ymgal(1, "t", CG_TYPE, "", "").pictures == []


def test_random_by_type(db):
    assert db.random(CG_TYPE, random.Random(0)) is None
    db.upsert(1, "one", CG_TYPE, "", "a")
    db.upsert(2, "two", EMOTICON_TYPE, "", "b")
    db.upsert(3, "three", CG_TYPE, "", "c")
    rng = random.Random(1)
    for _ in range(10):
        assert db.random(CG_TYPE, rng).picture_type == CG_TYPE
    assert db.random(EMOTICON_TYPE, rng).id == 2


def test_search_title_and_description(db):
    db.upsert(1, "Summer Days", CG_TYPE, "beach", "a")
    db.upsert(2, "Winter", CG_TYPE, "snowy mountain", "b")
    db.upsert(3, "Summer", EMOTICON_TYPE, "", "c")
    rng = random.Random(0)
    assert db.search(CG_TYPE, "Summer", rng).id == 1
    assert db.search(CG_TYPE, "snow", rng).id == 2
    assert db.search(CG_TYPE, "autumn", rng) is None


def test_parse_page_count():
    assert parse_page_count(search_page([], last_page=37)) == 37


def test_parse_page_count_missing():
    with pytest.raises(ValueError):
        parse_page_count("<html><body><p>none</p></body></html>")


def test_parse_picset_ids():
    assert parse_picset_ids(search_page([101, 102])) == ["101", "102"]


def test_parse_cg_picset():
    urls = ["https://img.example.com/1.jpg", "https://img.example.com/2.jpg"]
    assert parse_cg_picset(cg_page("T", "D", urls)) == ("T", "D", urls)


def test_parse_emoticon_picset():
    urls = ["https://img.example.com/e1.png"]
    assert parse_emoticon_picset(emoticon_page("E", "F", urls)) == ("E", "F", urls)


def test_parse_picset_without_count():
    html = '<html><head><meta name="name" content="T"><meta name="description" content="D"></head></html>'
    with pytest.raises(ValueError):
        parse_cg_picset(html)


def site(cg_ids, emoticon_ids):
    pages = {
        CG_URL + "1": search_page(cg_ids),
        EMOTICON_URL + "1": search_page(emoticon_ids),
    }
    for i in cg_ids:
        pages[WEB_PIC_URL + str(i)] = cg_page(f"cg{i}", f"d{i}", [f"https://img.example.com/{i}.jpg"])
    for i in emoticon_ids:
        pages[WEB_PIC_URL + str(i)] = emoticon_page(
            f"em{i}", f"e{i}", [f"https://img.example.com/{i}.png"]
        )
    return pages


def test_update_pictures_stores_all(db):
    session = FakeSession(site([101, 102], [201]))
    assert update_pictures(db, session, delay=0) == 3
    assert db.get_by_id(101).title == "cg101"
    assert db.get_by_id(102).picture_type == CG_TYPE
    assert db.get_by_id(201).picture_type == EMOTICON_TYPE
    assert db.get_by_id(201).pictures == ["https://img.example.com/201.png"]


def test_update_pictures_stops_at_stored(db):
    db.upsert(102, "kept", CG_TYPE, "", "https://img.example.com/old.jpg")
    session = FakeSession(site([101, 102], [201]))
    assert update_pictures(db, session, delay=0) == 1
    assert db.get_by_id(101) is None
    assert db.get_by_id(102).title == "kept"
    assert WEB_PIC_URL + "101" not in session.calls