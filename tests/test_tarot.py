import json
import random

import pytest

from groupbot.tarot import (
    REVERSED,
    UPRIGHT,
    TarotDeck,
    card_image_url,
    parse_draw_count,
)


def _cards_json():
    cards = {
        str(i): {
            "name": f"card{i}(Card {i})",
            "info": {
                "description": f"up{i}",
                "reverseDescription": f"down{i}",
                "imgUrl": f"img/{i}.png",
            },
        }
        for i in range(22)
    }
    return json.dumps(cards)


def _formations_json():
    return json.dumps(
        {"圣三角": {"cards_num": 3, "is_cut": False, "represent": [["past", "now", "future"]]}}
    )


@pytest.fixture
def deck():
    return TarotDeck.from_json(_cards_json(), _formations_json())


def test_card_image_url_reverse():
    assert (
        card_image_url(3, True)
        == "https://gitcode.net/shudorcl/zbp-tarot/-/raw/master/MajorArcanaReverse/3.png"
    )


def test_card_image_url_upright():
    assert card_image_url(0, False).endswith("/MajorArcana/0.png")


def test_parse_draw_count_default():
    assert parse_draw_count("", False) == 1


def test_parse_draw_count_number():
    assert parse_draw_count("5张", True) == 5


@pytest.mark.parametrize(
    "text,in_group",
    [("0张", True), ("3张", False), ("21张", True)],
)
def test_parse_draw_count_rejects(text, in_group):
    with pytest.raises(ValueError):
        parse_draw_count(text, in_group)


def test_draw_gives_distinct_cards(deck):
    drawn = deck.draw(20, random.Random(1))
    assert len(drawn) == 20
    assert len({card.index for card in drawn}) == 20
    assert all(0 <= card.index < 22 for card in drawn)


def test_drawn_card_names_match_deck(deck):
    for card in deck.draw(5, random.Random(2)):
        assert card.name == deck.cards[str(card.index)].name
        assert card.position == (REVERSED if card.reverse else UPRIGHT)
        assert card.image_url == card_image_url(card.index, card.reverse)


def test_draw_too_many(deck):
    with pytest.raises(ValueError):
        deck.draw(23)


def test_explain_uses_name_before_parenthesis(deck):
    info = deck.explain("card4")
    assert info.description == "up4"
    assert info.reverse_description == "down4"
    assert info.img_url == "img/4.png"


def test_explain_unknown(deck):
    with pytest.raises(KeyError):
        deck.explain("nothing")


def test_spread_text(deck):
    text, drawn = deck.spread("圣三角", "alice", random.Random(3))
    lines = text.split("\n")
    assert lines[0] == "alice"
    assert len(drawn) == 3
    for label, card, line in zip(["past", "now", "future"], drawn, lines[1:]):
        assert line == f"{label}: {card.position} 的 {card.name}"
    assert text.endswith("\n")


def test_spread_unknown(deck):
    with pytest.raises(KeyError):
        deck.spread("missing", "alice")