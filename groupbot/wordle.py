"""Word guessing game: guess a hidden word within a limited number of tries."""

from __future__ import annotations

import bisect
import io
from enum import Enum
from typing import Iterable

from PIL import Image, ImageDraw, ImageFont

_CLASSES = {
    "": 5,
    "五阶": 5,
    "六阶": 6,
    "七阶": 7,
}

_SIDE = 20
_SPACE = 10
_WHITE = (255, 255, 255)


class WordleError(Exception):
    """Base class for errors raised by a guess."""


class LengthNotEnoughError(WordleError):
    """The guess does not have the length of the hidden word."""

    def __init__(self) -> None:
        super().__init__("length not enough")


class UnknownWordError(WordleError):
    """The guess is not in the dictionary."""

    def __init__(self) -> None:
        super().__init__("unknown word")


class TimesRunOutError(WordleError):
    """The last allowed guess was used without finding the word."""

    def __init__(self) -> None:
        super().__init__("times run out")


class LetterState(Enum):
    """State of one cell of the board, valued by the colour it is drawn in."""

    MATCH = (125, 166, 108)
    EXIST = (199, 183, 96)
    NOTEXIST = (123, 123, 123)
    UNDONE = (219, 219, 219)

    @property
    def color(self) -> tuple[int, int, int]:
        return self.value


def load_word_list(text: str) -> list[str]:
    """Split a newline separated word list and return it sorted."""
    return sorted(text.split("\n"))


def class_for_name(name: str) -> int:
    """Return the word length for a difficulty name such as ``六阶``."""
    try:
        return _CLASSES[name]
    except KeyError:
        raise ValueError(f"unknown word class: {name!r}") from None


class WordleGame:
    """One round of the game against a fixed target word."""

    def __init__(self, target: str, dictionary: Iterable[str]) -> None:
        self.target = target
        self.length = len(target)
        self.max_attempts = self.length + 1
        self._dictionary = sorted(dictionary)
        self.record: list[str] = []

    def _known(self, word: str) -> bool:
        i = bisect.bisect_left(self._dictionary, word)
        return i < len(self._dictionary) and self._dictionary[i] == word

    def guess(self, word: str) -> bool:
        """Record a guess and return whether it is the target.

        An empty guess changes nothing. Raises ``TimesRunOutError`` when a
        wrong guess uses up the last attempt.
        """
        if not word:
            return False
        word = word.lower()
        win = word == self.target
        if not win:
            if len(word) != self.length:
                raise LengthNotEnoughError()
            if not self._known(word):
                raise UnknownWordError()
        self.record.append(word)
        if not win and len(self.record) >= self.max_attempts:
            raise TimesRunOutError()
        return win

    def _state(self, letter: str, column: int) -> LetterState:
        if letter == self.target[column]:
            return LetterState.MATCH
        if letter in self.target:
            return LetterState.EXIST
        return LetterState.NOTEXIST

    def grid(self) -> list[list[tuple[str, LetterState]]]:
        """Return the board as rows of (letter, state) cells."""
        rows = []
        for i in range(self.max_attempts):
            if i < len(self.record):
                word = self.record[i]
                rows.append([(word[j], self._state(word[j], j)) for j in range(self.length)])
            else:
                rows.append([("", LetterState.UNDONE)] * self.length)
        return rows

    def render(self) -> bytes:
        """Draw the board and return it as PNG bytes."""
        step = _SIDE + 4
        width = step * self.length + _SPACE * 2 - 4
        height = step * self.max_attempts + _SPACE * 2 - 4
        image = Image.new("RGB", (width, height), _WHITE)
        draw = ImageDraw.Draw(image)
        font = ImageFont.load_default()
        for i, row in enumerate(self.grid()):
            for j, (letter, state) in enumerate(row):
                x = _SPACE + j * step
                y = _SPACE + i * step
                if state is LetterState.UNDONE:
                    draw.rectangle(
                        [x + 1, y + 1, x + _SIDE - 2, y + _SIDE - 2],
                        outline=state.color,
                        width=1,
                    )
                else:
                    draw.rectangle([x, y, x + _SIDE - 1, y + _SIDE - 1], fill=state.color)
                    draw.text((x + 7, y + 15 - 11), letter.upper(), fill=_WHITE, font=font)
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()