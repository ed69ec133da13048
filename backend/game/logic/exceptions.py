"""Typed domain exceptions for rejected session mutations.

Every caller-visible failure is a subclass of GameRuleError carrying a
stable error code. The session raises them before touching state, so a
rejected mutation never leaves a partial update behind. The transport
layer converts them into an error message for the originating caller only.
"""

from game.logic.enums import GameErrorCode


class GameRuleError(Exception):
    """Base exception for rejected game mutations."""

    code: GameErrorCode = GameErrorCode.INVALID_PHASE

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFoundError(GameRuleError):
    """Unknown session or participant."""

    code = GameErrorCode.NOT_FOUND


class InvalidPhaseError(GameRuleError):
    """Action is not legal in the session's current status."""

    code = GameErrorCode.INVALID_PHASE


class NotWordMasterError(GameRuleError):
    """Only the current word-master may perform this action."""

    code = GameErrorCode.NOT_WORD_MASTER


class NotYourTurnError(GameRuleError):
    """Only the current-turn guesser may guess."""

    code = GameErrorCode.NOT_YOUR_TURN


class LetterAlreadyGuessedError(GameRuleError):
    code = GameErrorCode.LETTER_ALREADY_GUESSED


class NoHintsRemainingError(GameRuleError):
    code = GameErrorCode.NO_HINTS_REMAINING


class InsufficientPlayersError(GameRuleError):
    code = GameErrorCode.INSUFFICIENT_PLAYERS


class TooManyPlayersError(GameRuleError):
    code = GameErrorCode.TOO_MANY_PLAYERS


class NoEligiblePlayersError(GameRuleError):
    """No connected guesser can take a turn."""

    code = GameErrorCode.NO_ELIGIBLE_PLAYERS


class AlreadyInProgressError(GameRuleError):
    """The room (or a participant) already has an active session."""

    code = GameErrorCode.ALREADY_IN_PROGRESS


class InvalidWordError(GameRuleError):
    """Submitted word failed the format check or the word-source validation."""

    code = GameErrorCode.INVALID_WORD


class InvalidLetterError(GameRuleError):
    """Guess is not a single letter a-z."""

    code = GameErrorCode.INVALID_LETTER


class WordSourceError(Exception):
    """Raised by a word-source collaborator that could not be reached.

    Not a caller error: the call site catches it and degrades to a fallback.
    """
