from enum import StrEnum
from typing import Annotated, Any, Literal, Self

from pydantic import BaseModel, Field, TypeAdapter, field_validator, model_validator

from game.logic.enums import WordCategory

# ASCII control character boundaries for input validation
_SPACE_ORD = 0x20
_DEL_ORD = 0x7F

_PARTICIPANT_ID_FIELD = Field(min_length=1, max_length=64, pattern=r"^[a-zA-Z0-9_-]+$")


class ClientMessageType(StrEnum):
    JOIN_GAME = "join_game"
    SUBMIT_WORD = "submit_word"
    GUESS_LETTER = "guess_letter"
    SEND_HINT = "send_hint"
    PING = "ping"


class SessionMessageType(StrEnum):
    JOINED = "joined"
    GUESS_RESULT = "guess_result"
    ERROR = "session_error"
    PONG = "pong"


class SessionErrorCode(StrEnum):
    """Transport-level errors; rule violations reuse GameErrorCode values."""

    INVALID_MESSAGE = "invalid_message"
    NOT_JOINED = "not_joined"
    SESSION_NOT_FOUND = "session_not_found"
    NOT_A_PARTICIPANT = "not_a_participant"
    ACTION_FAILED = "action_failed"


class JoinGameMessage(BaseModel):
    type: Literal[ClientMessageType.JOIN_GAME] = ClientMessageType.JOIN_GAME
    participant_id: str = _PARTICIPANT_ID_FIELD


class SubmitWordMessage(BaseModel):
    type: Literal[ClientMessageType.SUBMIT_WORD] = ClientMessageType.SUBMIT_WORD
    word: str | None = Field(default=None, max_length=100)
    use_random: bool = False
    category: WordCategory = WordCategory.ALL

    @model_validator(mode="after")
    def _word_or_random(self) -> Self:
        if not self.use_random and not self.word:
            raise ValueError("either word or use_random is required")
        return self


class GuessLetterMessage(BaseModel):
    type: Literal[ClientMessageType.GUESS_LETTER] = ClientMessageType.GUESS_LETTER
    letter: str = Field(min_length=1, max_length=1)


class SendHintMessage(BaseModel):
    type: Literal[ClientMessageType.SEND_HINT] = ClientMessageType.SEND_HINT
    text: str = Field(min_length=1, max_length=200)

    @field_validator("text")
    @classmethod
    def _validate_text(cls, v: str) -> str:
        if any((ord(c) < _SPACE_ORD and c not in ("\t", "\n", "\r")) or ord(c) == _DEL_ORD for c in v):
            raise ValueError("text must not contain control characters")
        return v


class PingMessage(BaseModel):
    type: Literal[ClientMessageType.PING] = ClientMessageType.PING


ClientMessage = JoinGameMessage | SubmitWordMessage | GuessLetterMessage | SendHintMessage | PingMessage


class JoinedMessage(BaseModel):
    """Acknowledges a join_game; followed by the session-state notification."""

    type: Literal[SessionMessageType.JOINED] = SessionMessageType.JOINED
    session_id: str
    participant_id: str


class GuessResultMessage(BaseModel):
    """Outcome of a guess, sent to the guesser only."""

    type: Literal[SessionMessageType.GUESS_RESULT] = SessionMessageType.GUESS_RESULT
    letter: str
    correct: bool
    revealed_positions: list[int]
    word_complete: bool
    incorrect_budget_exhausted: bool


class ErrorMessage(BaseModel):
    type: Literal[SessionMessageType.ERROR] = SessionMessageType.ERROR
    code: str
    message: str


class PongMessage(BaseModel):
    type: Literal[SessionMessageType.PONG] = SessionMessageType.PONG


_ClientMessage = Annotated[ClientMessage, Field(discriminator="type")]

_client_adapter = TypeAdapter(_ClientMessage)


def parse_client_message(data: dict[str, Any]) -> ClientMessage:
    """Parse a raw dict into a typed ClientMessage."""
    return _client_adapter.validate_python(data)
