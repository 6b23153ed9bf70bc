"""Tarot card draws, meanings and spreads over the major arcana."""

from __future__ import annotations

import json
import logging
import random
from dataclasses import dataclass, field
from typing import Mapping

log = logging.getLogger(__name__)

IMAGE_BASE = "https://gitcode.net/shudorcl/zbp-tarot/-/raw/master/"
MAJOR_ARCANA = 22
MAX_DRAW = 20
REASONS = ("您抽到的是~\n", "锵锵锵，塔罗牌的预言是~\n", "诶，让我看看您抽到了~\n")
UPRIGHT = "正位"
REVERSED = "逆位"


@dataclass(frozen=True)
class CardInfo:
    """Meaning of a card upright and reversed, and its picture."""

    description: str
    reverse_description: str
    img_url: str


@dataclass(frozen=True)
class Card:
    """A named card with its meaning."""

    name: str
    info: CardInfo


@dataclass(frozen=True)
class Formation:
    """A spread: how many cards it takes and what each position stands for."""

    cards_num: int
    is_cut: bool
    represent: list[list[str]] = field(default_factory=list)


@dataclass(frozen=True)
class DrawnCard:
    """A card drawn from the deck, upright or reversed."""

    index: int
    name: str
    reverse: bool

    @property
    def position(self) -> str:
        return REVERSED if self.reverse else UPRIGHT

    @property
    def image_url(self) -> str:
        return card_image_url(self.index, self.reverse)


def card_image_url(index: int, reverse: bool) -> str:
    """Return the picture address of a major arcana card."""
    folder = "MajorArcanaReverse" if reverse else "MajorArcana"
    return f"{IMAGE_BASE}{folder}/{index}.png"


def parse_draw_count(text: str, in_group: bool) -> int:
    """Turn the ``n张`` part of a draw command into a card count.

    An empty text means one card. Raises ``ValueError`` for counts that
    are not allowed.
    """
    if not text:
        return 1
    try:
        n = int(text.removesuffix("张"))
    except ValueError:
        raise ValueError(f"invalid card count: {text!r}") from None
    if n <= 0:
        raise ValueError("张数必须为正")
    if n > 1 and not in_group:
        raise ValueError("抽取多张仅支持群聊")
    if n > MAX_DRAW:
        raise ValueError("抽取张数过多")
    return n


def _card_from_json(data: Mapping) -> Card:
    info = data.get("info") or {}
    return Card(
        name=data.get("name", ""),
        info=CardInfo(
            description=info.get("description", ""),
            reverse_description=info.get("reverseDescription", ""),
            img_url=info.get("imgUrl", ""),
        ),
    )


def _formation_from_json(data: Mapping) -> Formation:
    return Formation(
        cards_num=int(data.get("cards_num", 0)),
        is_cut=bool(data.get("is_cut", False)),
        represent=[list(row) for row in data.get("represent") or []],
    )


class TarotDeck:
    """The cards keyed by their number, and the known spreads."""

    def __init__(
        self, cards: Mapping[str, Card], formations: Mapping[str, Formation]
    ) -> None:
        self.cards = dict(cards)
        self.formations = dict(formations)
        self.infos = {card.name.split("(")[0]: card.info for card in self.cards.values()}

    @classmethod
    def from_json(cls, cards_json: str | bytes, formations_json: str | bytes) -> TarotDeck:
        """Build a deck from the card and spread JSON documents."""
        cards = {key: _card_from_json(value) for key, value in json.loads(cards_json).items()}
        log.info("[tarot] loaded %d major arcana cards", len(cards))
        formations = {
            key: _formation_from_json(value)
            for key, value in json.loads(formations_json).items()
        }
        log.info("[tarot] loaded %d spreads", len(formations))
        return cls(cards, formations)

    def _drawn(self, index: int, rng) -> DrawnCard:
        reverse = rng.randrange(2) == 1
        card = self.cards.get(str(index))
        return DrawnCard(index, card.name if card is not None else "", reverse)

    def draw(self, n: int = 1, rng=None) -> list[DrawnCard]:
        """Draw n different cards at random."""
        rng = rng if rng is not None else random.Random()
        if n <= 0 or n > MAJOR_ARCANA:
            raise ValueError(f"cannot draw {n} cards")
        return [self._drawn(index, rng) for index in rng.sample(range(MAJOR_ARCANA), n)]

    def explain(self, name: str) -> CardInfo:
        """Return the meaning of a card by name; ``KeyError`` when unknown."""
        try:
            return self.infos[name]
        except KeyError:
            raise KeyError(f"没有找到{name}噢~") from None

    def spread(self, name: str, user: str, rng=None) -> tuple[str, list[DrawnCard]]:
        """Lay out a spread for the user; return its description and the cards."""
        try:
            formation = self.formations[name]
        except KeyError:
            raise KeyError(f"没有找到{name}噢~") from None
        drawn = self.draw(formation.cards_num, rng)
        lines = [user]
        lines.extend(
            f"{formation.represent[0][i]}: {card.position} 的 {card.name}"
            for i, card in enumerate(drawn)
        )
        return "\n".join(lines) + "\n", drawn