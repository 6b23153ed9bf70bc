import json
from datetime import datetime, timedelta

import pytest
import requests

from groupbot import score
from groupbot.score import (
    LEVELS,
    SCOREMAX,
    ScoreDB,
    get_hour_word,
    get_level,
    next_level_score,
    sign_in,
)


@pytest.fixture
def db(tmp_path):
    database = ScoreDB(str(tmp_path / "score.db"))
    yield database
    database.close()


NOW = datetime(2022, 6, 13, 8, 30)


def test_first_sign_in_awards_reward(db):
    result = sign_in(db, 42, NOW)
    assert not result.already_signed
    assert result.score == score.SIGNIN_REWARD
    assert result.count == score.SIGNIN_MAX
    assert result.hour_word == "早上好"
    assert db.get_score(42) == result.score


def test_second_sign_in_same_day_is_refused(db):
    first = sign_in(db, 42, NOW)
    second = sign_in(db, 42, NOW + timedelta(hours=2))
    assert second.already_signed
    assert second.score == first.score
    assert db.get_score(42) == first.score


def test_sign_in_next_day_adds_again(db):
    first = sign_in(db, 42, NOW)
    second = sign_in(db, 42, NOW + timedelta(days=1))
    assert not second.already_signed
    assert second.score == first.score + score.SIGNIN_REWARD
    assert second.level == get_level(second.score)


def test_score_is_capped(db):
    db.set_score(7, SCOREMAX)
    result = sign_in(db, 7, NOW)
    assert result.capped
    assert result.score == SCOREMAX
    assert db.get_score(7) == SCOREMAX
    assert result.next_level_score == SCOREMAX


def test_levels_round_trip():
    for level, threshold in enumerate(LEVELS):
        assert get_level(threshold) == level
        if level + 1 < len(LEVELS):
            assert get_level(LEVELS[level + 1] - 1) == (
                level if LEVELS[level + 1] - 1 >= threshold else level - 1
            )
            assert next_level_score(level) == LEVELS[level + 1]


def test_level_out_of_range():
    assert get_level(-1) == -1
    assert get_level(SCOREMAX + 1) == -1
    assert next_level_score(len(LEVELS) - 1) == SCOREMAX


@pytest.mark.parametrize(
    "hour, word",
    [
        (6, "早上好"),
        (11, "早上好"),
        (12, "中午好"),
        (14, "下午好"),
        (19, "晚上好"),
        (23, "晚上好"),
        (0, "凌晨好"),
        (5, "凌晨好"),
    ],
)
def test_hour_word(hour, word):
    assert get_hour_word(datetime(2022, 1, 1, hour)) == word


def test_top_scores_order_and_limit(db):
    for uid, value in [(1, 10), (2, 50), (3, 30), (4, 20), (5, 40)]:
        db.set_score(uid, value)
    top = db.top_scores(3)
    assert top == [(2, 50), (5, 40), (3, 30)]
    assert len(db.top_scores(10)) == 5


def test_sign_in_count_persisted(db):
    db.set_sign_in_count(9, 4, NOW)
    record = db.get_sign_in(9)
    assert record.count == 4
    assert record.updated_at == NOW


class FakeResponse:
    def __init__(self, content, status_code=200):
        self.content = content
        self.status_code = status_code


class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, headers=None, timeout=None):
        self.calls.append((url, headers))
        return self.responses.pop(0)


def test_fetch_background_downloads(tmp_path):
    pic_url = "https://img.example.com/a.png"
    session = FakeSession(
        [
            FakeResponse(json.dumps({"pic": [pic_url]}).encode()),
            FakeResponse(b"imagebytes"),
        ]
    )
    target = tmp_path / "bg.png"
    score.fetch_background(str(target), session)
    assert target.read_bytes() == b"imagebytes"
    assert session.calls[0][0] == score.BACKGROUND_URL
    assert session.calls[0][1]["Referer"] == score.REFERER
    assert session.calls[1][0] == pic_url


def test_fetch_background_keeps_existing(tmp_path):
    target = tmp_path / "bg.png"
    target.write_bytes(b"old")
    session = FakeSession([])
    score.fetch_background(str(target), session)
    assert target.read_bytes() == b"old"
    assert session.calls == []


def test_fetch_background_bad_status(tmp_path):
    session = FakeSession([FakeResponse(b"", status_code=500)])
    with pytest.raises(requests.HTTPError):
        score.fetch_background(str(tmp_path / "bg.png"), session)