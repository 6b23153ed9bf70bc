"""Hot word statistics over a group's chat history."""

from __future__ import annotations

import re
from collections import Counter
from typing import Callable, Iterable

_CHINESE_WORD = re.compile(r"[一-龥]+")


def load_stopwords(text: str) -> list[str]:
    """Split a stop word file into a sorted list, ignoring carriage returns."""
    return sorted(text.replace("\r", "").split("\n"))


def is_chinese_word(text: str) -> bool:
    """Whether the text consists only of common Chinese characters."""
    return _CHINESE_WORD.fullmatch(text) is not None


def count_words(
    messages: Iterable[str],
    segment: Callable[[str], Iterable[str]],
    stopwords: Iterable[str],
) -> Counter:
    """Count the Chinese words of the messages that are not stop words."""
    stops = set(stopwords)
    counts: Counter = Counter()
    for message in messages:
        text = message.strip()
        if not text:
            continue
        for piece in segment(text):
            word = piece.strip()
            if is_chinese_word(word) and word not in stops:
                counts[word] += 1
    return counts


def rank_by_word_count(frequencies: dict[str, int]) -> list[tuple[str, int]]:
    """Return (word, count) pairs from the most to the least frequent."""
    return sorted(frequencies.items(), key=lambda pair: pair[1], reverse=True)