"""
Score deltas for guesses, round outcomes and hints.

Every function here is pure: it maps an outcome to a dict of
participant_id -> integer delta and never touches session state.
The caller folds the whole dict into the single mutation that
produced it, so one event's deltas are never split across two
observable states.
"""

from __future__ import annotations

CORRECT_LETTER = 10
WRONG_GUESS = -5
SOLVE_WORD = 50
WORD_MASTER_CONSOLATION = 10  # guessers solved the word
WORD_MASTER_DEFENDED = 30  # guessers exhausted the incorrect budget
HINT_COST = -15

ScoreDeltas = dict[str, int]


def merge_deltas(*parts: ScoreDeltas) -> ScoreDeltas:
    """Sum several delta dicts, dropping entries that net to zero."""
    merged: ScoreDeltas = {}
    for part in parts:
        for participant_id, delta in part.items():
            merged[participant_id] = merged.get(participant_id, 0) + delta
    return {pid: delta for pid, delta in merged.items() if delta != 0}


def letter_deltas(guesser_id: str, *, correct: bool) -> ScoreDeltas:
    return {guesser_id: CORRECT_LETTER if correct else WRONG_GUESS}


def solved_deltas(guesser_id: str, word_master_id: str) -> ScoreDeltas:
    """Bonus for revealing the last letter, plus the word-master's consolation."""
    return merge_deltas({guesser_id: SOLVE_WORD}, {word_master_id: WORD_MASTER_CONSOLATION})


def defended_deltas(word_master_id: str) -> ScoreDeltas:
    """The word survived the full incorrect budget."""
    return {word_master_id: WORD_MASTER_DEFENDED}


def hint_deltas(word_master_id: str) -> ScoreDeltas:
    return {word_master_id: HINT_COST}


def guess_deltas(
    guesser_id: str,
    word_master_id: str,
    *,
    correct: bool,
    word_complete: bool,
    budget_exhausted: bool,
) -> ScoreDeltas:
    """
    Total deltas produced by a single letter guess.

    Word completion takes priority over budget exhaustion when both
    could be true for the same guess.
    """
    deltas = letter_deltas(guesser_id, correct=correct)
    if word_complete:
        return merge_deltas(deltas, solved_deltas(guesser_id, word_master_id))
    if budget_exhausted:
        return merge_deltas(deltas, defended_deltas(word_master_id))
    return deltas
