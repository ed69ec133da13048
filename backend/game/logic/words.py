"""Pure helpers for secret words: masking, letter lookup and format rules."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from game.logic.exceptions import InvalidWordError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from game.logic.settings import GameSettings

MASK_CHAR = "_"
_LETTER_PATTERN = re.compile(r"^[a-z]$")


def normalize_word(word: str) -> str:
    """Lower-case and collapse surrounding/inner whitespace runs."""
    return " ".join(word.lower().split())


def normalize_letter(letter: str) -> str:
    """Return the lower-cased letter, or raise ValueError if it is not a single a-z letter."""
    lowered = letter.strip().lower()
    if not _LETTER_PATTERN.match(lowered):
        raise ValueError(f"guess must be a single letter a-z, got {letter!r}")
    return lowered


def distinct_letters(word: str) -> frozenset[str]:
    """Distinct letters of the word, spaces excluded."""
    return frozenset(ch for ch in word.lower() if ch != " ")


def word_length(word: str) -> int:
    """Number of letters in the word, spaces excluded."""
    return sum(1 for ch in word if not ch.isspace())


def letter_positions(word: str, letter: str) -> list[int]:
    """Zero-based positions of the letter in the word."""
    return [i for i, ch in enumerate(word.lower()) if ch == letter]


def mask_word(word: str | None, revealed: Iterable[str]) -> str:
    """Replace every unrevealed letter with MASK_CHAR, keeping spaces."""
    if not word:
        return ""
    shown = set(revealed)
    return "".join(ch if ch == " " or ch in shown else MASK_CHAR for ch in word.lower())


def is_word_complete(word: str | None, correct_letters: Iterable[str]) -> bool:
    """True when every distinct non-space letter of the word has been revealed."""
    if not word:
        return False
    return distinct_letters(word) <= set(correct_letters)


class WordRules:
    """
    Pluggable length/alphabet check applied to every candidate word.

    This is the only legality check the engine performs itself; dictionary
    validation belongs to the word-source collaborator.
    """

    def __init__(self, min_length: int = 3, max_length: int = 20, *, allow_spaces: bool = False) -> None:
        self.min_length = min_length
        self.max_length = max_length
        self.allow_spaces = allow_spaces
        self._pattern = re.compile(r"^[a-z]+( [a-z]+)*$" if allow_spaces else r"^[a-z]+$")

    @classmethod
    def from_settings(cls, settings: GameSettings) -> WordRules:
        return cls(settings.min_word_length, settings.max_word_length, allow_spaces=settings.allow_spaces)

    def check(self, word: str) -> str:
        """Return the normalized word or raise InvalidWordError."""
        cleaned = normalize_word(word)
        length = word_length(cleaned)
        if length < self.min_length:
            raise InvalidWordError(f"Word must be at least {self.min_length} characters")
        if length > self.max_length:
            raise InvalidWordError(f"Word cannot exceed {self.max_length} characters")
        if not self._pattern.match(cleaned):
            raise InvalidWordError("Word must contain only letters")
        return cleaned

    def accepts(self, word: str) -> bool:
        try:
            self.check(word)
        except InvalidWordError:
            return False
        return True
