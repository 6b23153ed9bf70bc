import json
import random

import pytest

from groupbot.vtb import (
    FIRST_PROMPT,
    SECOND_PROMPT,
    THIRD_PROMPT,
    VTB_LIST_URL,
    VTB_PAGE_URL,
    ThirdCategory,
    VtbDB,
    decode_unicode_escapes,
    escape_record_url,
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
        self.calls.append((url, headers))
        return FakeResponse(self.pages[url])


VTB_LIST = [
    {"name": "Alice", "uid": "11", "description": "first", "icon_path": "/a.png"},
    {"name": "Bob", "uid": "22", "description": "second", "icon_path": "/b.png"},
]

VTB_PAGE = {
    "data": {
        "voices": [
            {
                "categoryName": "Greetings",
                "author": "fan",
                "categoryDescription": {"zh-CN": "hello lines"},
                "voiceList": [
                    {"name": "hi", "path": "https://example.com/v/hi.mp3", "author": "x",
                     "description": {"zh-CN": "d1"}},
                    {"name": "bye", "path": "https://example.com/v/bye.mp3", "author": "y",
                     "description": {"zh-CN": "d2"}},
                ],
            },
            {"categoryName": "Songs", "author": "fan", "voiceList": []},
        ]
    }
}


@pytest.fixture
def db(tmp_path):
    database = VtbDB(str(tmp_path / "vtb.db"))
    yield database
    database.close()


def test_decode_unicode_escapes():
    assert decode_unicode_escapes("\\u4f60\\u597d") == "你好"


def test_decode_leaves_plain_text():
    assert decode_unicode_escapes('{"a": "b"}') == '{"a": "b"}'


def test_decode_rejects_malformed_escape():
    with pytest.raises(ValueError):
        decode_unicode_escapes("\\uZZZZ")


def test_decode_rejects_surrogate():
    with pytest.raises(ValueError):
        decode_unicode_escapes("\\ud83d")


def test_escape_record_url_space():
    assert escape_record_url("https://example.com/voice/a b.mp3") == (
        "https://example.com/voice/a%20b.mp3"
    )


def test_escape_record_url_without_slash_is_unchanged():
    assert escape_record_url("plainname") == "plainname"


def test_escape_record_url_keeps_prefix():
    result = escape_record_url("https://example.com/voice/x y+z.mp3")
    assert result.startswith("https://example.com/voice/")
    assert " " not in result and "+" not in result
    assert result.endswith(".mp3")


def test_store_list_and_first_message(db):
    uids = db.store_vtb_list(json.dumps(VTB_LIST))
    assert uids == ["11", "22"]
    assert db.first_category_message() == FIRST_PROMPT + "0. Alice\n" + "1. Bob\n"


def test_empty_first_message(db):
    assert db.first_category_message() == FIRST_PROMPT


def test_store_list_updates_existing(db):
    db.store_vtb_list(json.dumps(VTB_LIST))
    changed = [{"name": "Bobby", "uid": "22"}, {"name": "Alice", "uid": "11"}]
    db.store_vtb_list(json.dumps(changed))
    bob = db.first_category_by_uid("22")
    assert bob.first_category_name == "Bobby"
    assert bob.first_category_index == 0
    assert db.first_category_message().count("\n") == 3


def test_first_category_by_uid_missing(db):
    assert db.first_category_by_uid("99") is None


def test_store_vtb_messages(db):
    db.store_vtb_list(json.dumps(VTB_LIST))
    db.store_vtb("11", json.dumps(VTB_PAGE))
    assert db.second_category_message(0) == SECOND_PROMPT + "0. Greetings\n" + "1. Songs\n"
    assert db.third_category_message(0, 0) == THIRD_PROMPT + "0. hi\n" + "1. bye\n"
    assert db.third_category_message(0, 1) == ""
    assert db.second_category_message(1) == ""


def test_third_category(db):
    db.store_vtb_list(json.dumps(VTB_LIST))
    db.store_vtb("11", json.dumps(VTB_PAGE))
    quote = db.third_category(0, 0, 1)
    assert quote == ThirdCategory(1, 0, "11", "bye", "https://example.com/v/bye.mp3", "y", "d2")
    assert db.third_category(0, 0, 5) is None


def test_store_vtb_twice_does_not_duplicate(db):
    db.store_vtb_list(json.dumps(VTB_LIST))
    db.store_vtb("11", json.dumps(VTB_PAGE))
    db.store_vtb("11", json.dumps(VTB_PAGE))
    assert db.third_category_message(0, 0).count("\n") == 3


def test_random_vtb_empty(db):
    assert db.random_vtb(random.Random(0)) is None


def test_random_vtb_returns_stored_quote(db):
    db.store_vtb_list(json.dumps(VTB_LIST))
    db.store_vtb("11", json.dumps(VTB_PAGE))
    rng = random.Random(3)
    for _ in range(10):
        quote = db.random_vtb(rng)
        assert quote.third_category_name in {"hi", "bye"}
        assert quote.first_category_uid == "11"


def test_fetch_vtb_list_decodes_escapes(db):
    session = FakeSession({VTB_LIST_URL: b'[{"name": "\\u4f60", "uid": "7"}]'})
    assert db.fetch_vtb_list(session) == ["7"]
    assert db.first_category_by_uid("7").first_category_name == "你"
    url, headers = session.calls[0]
    assert url == VTB_LIST_URL
    assert headers["User-Agent"]


def test_fetch_vtb(db):
    db.store_vtb_list(json.dumps(VTB_LIST))
    session = FakeSession({VTB_PAGE_URL + "11": json.dumps(VTB_PAGE).encode()})
    db.fetch_vtb("11", session)
    assert session.calls[0][0] == VTB_PAGE_URL + "11"
    assert db.third_category(0, 0, 0).third_category_name == "hi"