"""Reincarnation draw: a weighted random country and gender."""

from __future__ import annotations

import bisect
import itertools
import json
import logging
import random
from typing import Iterable, Sequence

log = logging.getLogger(__name__)

FAILURE_TEXT = "投胎失败！\n您没能活到出生，祝您下次好运！"
_SUCCESS_TEMPLATE = "投胎成功！\n您出生在 {}, 是 {}。"
_SUCCESS_THRESHOLD = 1 << 27


class WeightedChooser:
    """Pick items at random with probability proportional to integer weights."""

    def __init__(self, choices: Iterable[tuple[object, int]]) -> None:
        pairs = list(choices)
        for _, weight in pairs:
            if weight < 0:
                raise ValueError(f"negative weight: {weight}")
        self.items: list[object] = [item for item, _ in pairs]
        self._totals = list(itertools.accumulate(int(weight) for _, weight in pairs))
        if not self._totals or self._totals[-1] <= 0:
            raise ValueError("no choices with a positive weight")

    @property
    def total(self) -> int:
        return self._totals[-1]

    def pick(self, rng: random.Random | None = None) -> object:
        """Return one item drawn by weight."""
        rng = rng if rng is not None else random
        r = rng.randint(1, self.total)
        return self.items[bisect.bisect_left(self._totals, r)]


GENDERS = WeightedChooser([("男孩子", 50707), ("女孩子", 48292), ("雌雄同体", 1001)])


def _chooser_from_rates(rates: Sequence[dict]) -> WeightedChooser:
    return WeightedChooser((entry["name"], int(entry["weight"] * 1e9)) for entry in rates)


def load_areas(path: str) -> WeightedChooser:
    """Load a JSON list of ``{"name", "weight"}`` into a country chooser."""
    with open(path, encoding="utf-8") as fh:
        rates = json.load(fh)
    chooser = _chooser_from_rates(rates)
    log.info("[Reborn] loaded %d countries/regions", len(rates))
    return chooser


def reborn(areas: WeightedChooser, rng: random.Random | None = None) -> str:
    """Return the reincarnation message: a birth place and gender, or failure."""
    rng = rng if rng is not None else random.Random()
    if rng.getrandbits(31) > _SUCCESS_THRESHOLD:
        country = areas.pick(rng)
        gender = GENDERS.pick(rng)
        return _SUCCESS_TEMPLATE.format(country, gender)
    return FAILURE_TEXT