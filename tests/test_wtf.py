import json

import pytest

from groupbot.wtf import API_PREFIX, TABLE, Wtf, get_wtf, list_text, parse_result


class _Response:
    def __init__(self, status_code, content):
        self.status_code = status_code
        self.content = content


class _Session:
    def __init__(self, response):
        self.response = response
        self.urls = []

    def get(self, url, timeout=None):
        self.urls.append(url)
        return self.response


def test_get_wtf_first():
    assert get_wtf(0) == Wtf("你的意义是什么?", "mRIFuS")


@pytest.mark.parametrize("index", [-1, len(TABLE)])
def test_get_wtf_out_of_range(index):
    with pytest.raises(IndexError):
        get_wtf(index)


def test_list_text_lines():
    lines = list_text().split("\n")
    assert lines[-1] == ""
    assert len(lines) - 1 == len(TABLE)
    assert lines[0] == "00. 你的意义是什么?"
    assert lines[len(TABLE) - 1].startswith(f"{len(TABLE) - 1:02d}. ")


def test_url_escapes_names():
    w = get_wtf(2)
    assert w.url("a b", "c/d") == API_PREFIX + w.path + "/a+b/c%2Fd"


def test_url_without_names():
    w = get_wtf(5)
    assert w.url() == "https://wtf.hiigara.net/api/run/titlegen"


def test_parse_result_ok():
    w = get_wtf(0)
    payload = json.dumps({"ok": True, "text": "result", "msg": ""})
    assert parse_result(w, payload) == "> " + w.name + "\nresult"


def test_parse_result_error():
    with pytest.raises(ValueError, match="boom"):
        parse_result(get_wtf(0), json.dumps({"ok": False, "text": "", "msg": "boom"}))


def test_predict_uses_session():
    w = get_wtf(3)
    session = _Session(_Response(200, json.dumps({"ok": True, "text": "hi"}).encode()))
    assert w.predict("alice", "bob", session=session) == "> " + w.name + "\nhi"
    assert session.urls == [w.url("alice", "bob")]


def test_predict_bad_status():
    w = get_wtf(0)
    session = _Session(_Response(500, b""))
    with pytest.raises(Exception) as excinfo:
        w.predict("alice", session=session)
    assert "500" in str(excinfo.value)
    assert session.urls == [w.url("alice")]