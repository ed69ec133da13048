"""
String enum definitions for word-guessing game concepts.
"""

from enum import Enum


class SessionStatus(str, Enum):
    """Phase of a game session."""

    WORD_SELECTION = "word-selection"
    IN_PROGRESS = "in-progress"
    ROUND_END = "round-end"
    GAME_OVER = "game-over"


class ConnectionState(str, Enum):
    """Participant reachability as seen by the engine."""

    CONNECTED = "connected"
    PENDING_DISCONNECT = "pending-disconnect"  # inside the grace window
    DISCONNECTED = "disconnected"


class TimerKind(str, Enum):
    """Session-owned timer classes."""

    TURN = "turn"
    GRACE = "grace"
    SETTLE = "settle"


class SkipReason(str, Enum):
    """Why a turn was skipped without a guess."""

    TIMEOUT = "timeout"
    DISCONNECT = "disconnect"


class GameErrorCode(str, Enum):
    """Error codes reported to the caller of a rejected mutation."""

    NOT_FOUND = "not_found"
    INVALID_PHASE = "invalid_phase"
    NOT_WORD_MASTER = "not_word_master"
    NOT_YOUR_TURN = "not_your_turn"
    LETTER_ALREADY_GUESSED = "letter_already_guessed"
    NO_HINTS_REMAINING = "no_hints_remaining"
    INSUFFICIENT_PLAYERS = "insufficient_players"
    TOO_MANY_PLAYERS = "too_many_players"
    NO_ELIGIBLE_PLAYERS = "no_eligible_players"
    ALREADY_IN_PROGRESS = "already_in_progress"
    INVALID_WORD = "invalid_word"
    INVALID_LETTER = "invalid_letter"


class WordCategory(str, Enum):
    """Word categories offered to the word-master."""

    ALL = "all"
    MOVIES = "movies"
    ANIMALS = "animals"
    TECHNOLOGY = "technology"
    SPORTS = "sports"
    FOOD = "food"
    COUNTRIES = "countries"
    SCIENCE = "science"
    RANDOM = "random"  # word came from the external random-word API
