from game.logic.scoring import (
    CORRECT_LETTER,
    HINT_COST,
    SOLVE_WORD,
    WORD_MASTER_CONSOLATION,
    WORD_MASTER_DEFENDED,
    WRONG_GUESS,
    guess_deltas,
    hint_deltas,
    merge_deltas,
)


class TestGuessDeltas:
    def test_correct_letter(self):
        deltas = guess_deltas("p1", "wm", correct=True, word_complete=False, budget_exhausted=False)
        assert deltas == {"p1": CORRECT_LETTER}

    def test_wrong_letter(self):
        deltas = guess_deltas("p1", "wm", correct=False, word_complete=False, budget_exhausted=False)
        assert deltas == {"p1": WRONG_GUESS}

    def test_completing_letter_pays_solve_bonus_and_consolation(self):
        deltas = guess_deltas("p1", "wm", correct=True, word_complete=True, budget_exhausted=False)
        assert deltas == {"p1": CORRECT_LETTER + SOLVE_WORD, "wm": WORD_MASTER_CONSOLATION}

    def test_exhausting_guess_pays_word_master(self):
        deltas = guess_deltas("p1", "wm", correct=False, word_complete=False, budget_exhausted=True)
        assert deltas == {"p1": WRONG_GUESS, "wm": WORD_MASTER_DEFENDED}

    def test_completion_wins_over_exhaustion(self):
        deltas = guess_deltas("p1", "wm", correct=True, word_complete=True, budget_exhausted=True)
        assert "wm" in deltas
        assert deltas["wm"] == WORD_MASTER_CONSOLATION


class TestMergeDeltas:
    def test_sums_per_participant(self):
        assert merge_deltas({"a": 10}, {"a": 5, "b": -5}) == {"a": 15, "b": -5}

    def test_drops_zero_entries(self):
        assert merge_deltas({"a": 10}, {"a": -10}) == {}


def test_hint_costs_word_master():
    assert hint_deltas("wm") == {"wm": HINT_COST}
    assert HINT_COST == -15
