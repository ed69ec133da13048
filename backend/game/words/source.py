"""
Word-source collaborators.

The engine asks a WordSource to validate the word-master's word or to
supply a random one. Dictionary legality lives here, not in the engine,
which only applies WordRules before calling in.
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel, ConfigDict

from game.logic.enums import WordCategory
from game.logic.exceptions import WordSourceError
from game.words.fallback_words import FALLBACK_WORDS

if TYPE_CHECKING:
    from game.logic.words import WordRules

logger = structlog.get_logger()

# categories backed by a curated list; the random-word API knows nothing about them
CURATED_CATEGORIES = frozenset(c.value for c in WordCategory) - {WordCategory.ALL.value, WordCategory.RANDOM.value}


class WordChoice(BaseModel):
    model_config = ConfigDict(frozen=True)

    word: str
    category: str


def pick_fallback_word(
    category: str = "all",
    rng: random.Random | None = None,
    rules: WordRules | None = None,
) -> WordChoice:
    """
    Draw a word from the built-in lists; unknown categories use the general list.

    With rules given, only words they accept are drawn. A category with no
    such word falls back to the general list.

    Raises:
        WordSourceError: If no built-in word satisfies the rules

    """
    key = category if category in FALLBACK_WORDS else WordCategory.ALL.value
    for candidate_key in dict.fromkeys((key, WordCategory.ALL.value)):
        words = [w for w in FALLBACK_WORDS[candidate_key] if rules is None or rules.accepts(w)]
        if words:
            return WordChoice(word=(rng or random).choice(words), category=candidate_key)  # noqa: S311
    raise WordSourceError("no built-in word satisfies the word rules")


class WordSource(ABC):
    @abstractmethod
    async def validate(self, word: str, category: str = "all") -> WordChoice:
        """
        Accept or reject an already format-checked word.

        Raises:
            InvalidWordError: If the word is not a real word
            WordSourceError: If the source could not be reached

        """

    @abstractmethod
    async def random_word(self, category: str = "all") -> WordChoice:
        """
        Supply a random word.

        Raises:
            WordSourceError: If the source has no word to offer

        """


class FallbackWordSource(WordSource):
    """Offline source: accepts every well-formed word, draws from the built-in lists."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()  # noqa: S311

    async def validate(self, word: str, category: str = "all") -> WordChoice:
        return WordChoice(word=word, category=category)

    async def random_word(self, category: str = "all") -> WordChoice:
        return pick_fallback_word(category, self._rng)


class ResilientWordSource(WordSource):
    """
    Wrap a network-backed source with graceful degradation.

    An unreachable primary never fails a submission: validation falls back
    to accepting the format-checked word, random draws fall back to the
    built-in lists. Curated categories always come from the lists.
    """

    def __init__(self, primary: WordSource, fallback: WordSource | None = None) -> None:
        self._primary = primary
        self._fallback = fallback or FallbackWordSource()

    async def validate(self, word: str, category: str = "all") -> WordChoice:
        try:
            return await self._primary.validate(word, category)
        except WordSourceError as e:
            logger.warning("dictionary lookup failed, accepting word", error=str(e))
            return await self._fallback.validate(word, category)

    async def random_word(self, category: str = "all") -> WordChoice:
        if category in CURATED_CATEGORIES:
            return await self._fallback.random_word(category)
        try:
            return await self._primary.random_word(category)
        except WordSourceError as e:
            logger.warning("random word lookup failed, using fallback list", error=str(e))
            return await self._fallback.random_word(category)
