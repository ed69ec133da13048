"""Word source backed by the public dictionary and random-word HTTP APIs."""

from __future__ import annotations

import re
from http import HTTPStatus

import httpx

from game.logic.enums import WordCategory
from game.logic.exceptions import InvalidWordError, WordSourceError
from game.words.source import WordChoice, WordSource

DEFAULT_DICTIONARY_API_URL = "https://api.dictionaryapi.dev/api/v2/entries/en"
DEFAULT_RANDOM_WORD_API_URL = "https://random-word-api.herokuapp.com/word"

# random words outside this shape are rejected as unusable
_RANDOM_WORD_PATTERN = re.compile(r"^[a-z]{4,15}$")


class HttpWordSource(WordSource):
    def __init__(
        self,
        dictionary_url: str = DEFAULT_DICTIONARY_API_URL,
        random_word_url: str = DEFAULT_RANDOM_WORD_API_URL,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._dictionary_url = dictionary_url.rstrip("/")
        self._random_word_url = random_word_url
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def validate(self, word: str, category: str = "all") -> WordChoice:
        async with self._client() as client:
            try:
                response = await client.get(f"{self._dictionary_url}/{word}")
            except httpx.RequestError as e:
                raise WordSourceError(f"dictionary API unreachable: {e}") from e
        if response.status_code == HTTPStatus.OK:
            return WordChoice(word=word, category=category)
        if response.status_code == HTTPStatus.NOT_FOUND:
            raise InvalidWordError("Word not found in dictionary")
        raise WordSourceError(f"dictionary API returned {response.status_code}")

    async def random_word(self, category: str = "all") -> WordChoice:
        async with self._client() as client:
            try:
                response = await client.get(self._random_word_url)
            except httpx.RequestError as e:
                raise WordSourceError(f"random word API unreachable: {e}") from e
        if response.status_code != HTTPStatus.OK:
            raise WordSourceError(f"random word API returned {response.status_code}")
        try:
            payload = response.json()
        except ValueError as e:
            raise WordSourceError("random word API returned invalid JSON") from e
        if not isinstance(payload, list) or not payload or not isinstance(payload[0], str):
            raise WordSourceError("random word API returned no word")
        word = payload[0].lower()
        if not _RANDOM_WORD_PATTERN.match(word):
            raise WordSourceError(f"unusable random word {word!r}")
        return WordChoice(word=word, category=WordCategory.RANDOM.value)
