import asyncio

import pytest

from game.logic.enums import ConnectionState, SessionStatus, SkipReason, TimerKind
from game.logic.events import ParticipantTarget
from game.logic.exceptions import (
    InvalidPhaseError,
    InvalidWordError,
    NotWordMasterError,
    NotYourTurnError,
)
from game.logic.settings import GameSettings
from game.session.commands import (
    GuessLetter,
    PlayerDisconnected,
    PlayerReconnected,
    SendHint,
    SubmitWord,
    TimerFired,
)
from game.session.game_session import GameSession
from game.tests.conftest import FAST_SETTINGS, create_game_state, wait_until
from game.tests.mocks import FailingWordSource, StaticWordSource
from game.words.fallback_words import FALLBACK_WORDS

# long turns so only the timer under test can fire
SLOW_TURNS = GameSettings(turn_seconds=5, grace_seconds=0.1, settle_seconds=5, tick_seconds=0)


async def _start_round(session, word="cat"):
    await session.handle(SubmitWord(caller_id=session.state.word_master_id, word=word))
    assert session.state.status == SessionStatus.IN_PROGRESS


async def _solve(session, word):
    for letter in dict.fromkeys(word):
        await session.handle(GuessLetter(caller_id=session.state.current_turn_player_id, letter=letter))


class TestWordSubmission:
    async def test_word_master_starts_the_round(self, session_factory, sink, word_source):
        session = session_factory(create_game_state(settings=SLOW_TURNS))
        await session.handle(SubmitWord(caller_id="wm", word=" Otter "))

        state = session.state
        assert state.secret_word == "otter"
        assert state.current_turn_player_id == "alice"
        assert state.sequence == 1
        assert word_source.validated == ["otter"]
        assert session.scheduler.armed_turn == state.turn_number
        assert sink.types() == ["word-set"]

    async def test_only_word_master(self, session_factory, sink):
        session = session_factory(create_game_state())
        with pytest.raises(NotWordMasterError):
            await session.handle(SubmitWord(caller_id="alice", word="otter"))
        assert session.state.status == SessionStatus.WORD_SELECTION
        assert sink.events == []

    async def test_format_is_checked_before_lookup(self, session_factory, word_source):
        session = session_factory(create_game_state())
        with pytest.raises(InvalidWordError):
            await session.handle(SubmitWord(caller_id="wm", word="o7ter"))
        assert word_source.validated == []

    async def test_dictionary_rejection(self, sink):
        session = GameSession(create_game_state(), sink, StaticWordSource(known={"otter"}))
        with pytest.raises(InvalidWordError, match="dictionary"):
            await session.handle(SubmitWord(caller_id="wm", word="qzxv"))
        assert session.state.secret_word is None

    async def test_unreachable_dictionary_accepts_word(self, sink):
        session = GameSession(create_game_state(settings=SLOW_TURNS), sink, FailingWordSource())
        await session.handle(SubmitWord(caller_id="wm", word="otter"))
        assert session.state.secret_word == "otter"
        await session.close()

    async def test_random_word(self, session_factory):
        session = session_factory(create_game_state(settings=SLOW_TURNS))
        await session.handle(SubmitWord(caller_id="wm", use_random=True))
        assert session.state.secret_word == "planet"

    async def test_random_word_falls_back_to_built_in_list(self, sink):
        session = GameSession(create_game_state(settings=SLOW_TURNS), sink, FailingWordSource())
        await session.handle(SubmitWord(caller_id="wm", use_random=True, category="food"))
        assert session.state.secret_word in FALLBACK_WORDS["food"]
        assert session.state.category == "food"
        await session.close()

    async def test_second_submission_rejected(self, session_factory):
        session = session_factory(create_game_state(settings=SLOW_TURNS))
        await _start_round(session)
        with pytest.raises(InvalidPhaseError):
            await session.handle(SubmitWord(caller_id="wm", word="dog"))


class TestGuessing:
    async def test_guess_returns_outcome_and_broadcasts(self, session_factory, sink):
        session = session_factory(create_game_state(settings=SLOW_TURNS))
        await _start_round(session, "cat")
        sink.clear()

        outcome = await session.handle(GuessLetter(caller_id="alice", letter="a"))
        assert outcome.correct
        assert outcome.revealed_positions == [1]
        assert session.state.current_turn_player_id == "bob"
        assert sink.types() == ["letter-result", "word-mask-update", "score-update", "turn-changed"]

    async def test_rejected_guess_changes_nothing(self, session_factory, sink):
        session = session_factory(create_game_state(settings=SLOW_TURNS))
        await _start_round(session)
        before = session.state
        sink.clear()

        with pytest.raises(NotYourTurnError):
            await session.handle(GuessLetter(caller_id="bob", letter="a"))
        assert session.state is before
        assert sink.events == []

    async def test_hint(self, session_factory, sink):
        session = session_factory(create_game_state(settings=SLOW_TURNS))
        await _start_round(session)
        await session.handle(SendHint(caller_id="wm", text="purrs"))
        assert session.state.hints == ("purrs",)
        assert session.state.get_player("wm").score == -15
        assert "hint-issued" in sink.types()


class TestTurnTimer:
    async def test_timeout_skips_to_next_guesser(self, session_factory, sink):
        settings = GameSettings(turn_seconds=0.1, settle_seconds=5, tick_seconds=0)
        session = session_factory(create_game_state(settings=settings))
        await _start_round(session)
        first_turn = session.state.turn_number

        await wait_until(lambda: session.state.current_turn_player_id == "bob")
        skipped = sink.of_type("turn-skipped")
        assert len(skipped) == 1
        assert skipped[0].data.reason == SkipReason.TIMEOUT
        assert skipped[0].data.skipped_player_id == "alice"
        assert [p.score for p in session.state.players] == [0, 0, 0]
        assert session.scheduler.armed_turn == first_turn + 1

    async def test_ticks_are_broadcast(self, session_factory, sink):
        settings = GameSettings(turn_seconds=0.3, tick_seconds=0.05, settle_seconds=5)
        session = session_factory(create_game_state(settings=settings))
        await _start_round(session)
        await wait_until(lambda: len(sink.of_type("turn-timer-tick")) >= 2)
        tick = sink.of_type("turn-timer-tick")[0].data
        assert tick.turn_number == session.state.turn_number

    async def test_stale_turn_timer_is_ignored(self, session_factory, sink):
        session = session_factory(create_game_state(settings=SLOW_TURNS))
        await _start_round(session)
        stale = session.state.turn_number
        await session.handle(GuessLetter(caller_id="alice", letter="c"))
        sink.clear()

        await session.handle(TimerFired(kind=TimerKind.TURN, turn_number=stale))
        assert sink.events == []
        assert session.state.current_turn_player_id == "bob"

    async def test_guess_and_timeout_for_same_turn_never_both_apply(self, session_factory, sink):
        session = session_factory(create_game_state(settings=SLOW_TURNS))
        await _start_round(session)
        turn = session.state.turn_number
        sink.clear()

        results = await asyncio.gather(
            session.handle(GuessLetter(caller_id="alice", letter="c")),
            session.handle(TimerFired(kind=TimerKind.TURN, turn_number=turn)),
            return_exceptions=True,
        )
        assert not any(isinstance(r, Exception) for r in results)
        assert len(sink.of_type("letter-result")) == 1
        assert sink.of_type("turn-skipped") == []

    async def test_timeout_first_rejects_late_guess(self, session_factory, sink):
        session = session_factory(create_game_state(settings=SLOW_TURNS))
        await _start_round(session)
        turn = session.state.turn_number
        sink.clear()

        results = await asyncio.gather(
            session.handle(TimerFired(kind=TimerKind.TURN, turn_number=turn)),
            session.handle(GuessLetter(caller_id="alice", letter="c")),
            return_exceptions=True,
        )
        assert isinstance(results[1], NotYourTurnError)
        assert len(sink.of_type("turn-skipped")) == 1
        assert sink.of_type("letter-result") == []


class TestDisconnects:
    async def test_reconnect_within_grace_keeps_turn(self, session_factory, sink):
        session = session_factory(create_game_state(settings=SLOW_TURNS))
        await _start_round(session)

        await session.handle(PlayerDisconnected(participant_id="alice"))
        assert session.state.get_player("alice").connection == ConnectionState.PENDING_DISCONNECT
        assert session.monitor.is_pending("alice")

        await asyncio.sleep(0.05)
        await session.handle(PlayerReconnected(participant_id="alice"))
        await asyncio.sleep(0.1)

        assert session.state.get_player("alice").connection == ConnectionState.CONNECTED
        assert session.state.current_turn_player_id == "alice"
        assert sink.of_type("turn-skipped") == []
        snapshot = sink.of_type("session-state")[-1]
        assert snapshot.target == ParticipantTarget(participant_id="alice")

    async def test_grace_expiry_skips_current_player(self, session_factory, sink):
        session = session_factory(create_game_state(settings=SLOW_TURNS))
        await _start_round(session)

        await session.handle(PlayerDisconnected(participant_id="alice"))
        await wait_until(lambda: session.state.current_turn_player_id == "bob")

        assert session.state.get_player("alice").connection == ConnectionState.DISCONNECTED
        skipped = sink.of_type("turn-skipped")
        assert len(skipped) == 1
        assert skipped[0].data.reason == SkipReason.DISCONNECT

    async def test_duplicate_disconnect_is_ignored(self, session_factory, sink):
        session = session_factory(create_game_state(settings=SLOW_TURNS))
        await session.handle(PlayerDisconnected(participant_id="bob"))
        await session.handle(PlayerDisconnected(participant_id="bob"))
        assert len(sink.of_type("player-disconnected")) == 1

    async def test_extra_connection_only_gets_a_snapshot(self, session_factory, sink):
        session = session_factory(create_game_state(settings=SLOW_TURNS))
        await _start_round(session, "cat")
        sink.clear()

        await session.handle(PlayerReconnected(participant_id="wm"))
        assert sink.types() == ["session-state"]
        assert sink.events[0].data.view.secret_word == "cat"

    async def test_round_pauses_and_resumes(self, session_factory, sink):
        session = session_factory(create_game_state(settings=SLOW_TURNS))
        await _start_round(session)

        await session.handle(PlayerDisconnected(participant_id="alice"))
        await session.handle(PlayerDisconnected(participant_id="bob"))
        await wait_until(lambda: session.state.is_paused)
        assert not session.scheduler.active

        await session.handle(PlayerReconnected(participant_id="bob"))
        assert session.state.current_turn_player_id == "bob"
        assert session.scheduler.active

    async def test_word_master_gone_during_selection_gets_auto_word(self, session_factory, sink):
        session = session_factory(create_game_state(settings=SLOW_TURNS))
        await session.handle(PlayerDisconnected(participant_id="wm"))
        await wait_until(lambda: session.state.status == SessionStatus.IN_PROGRESS)

        word_set = sink.of_type("word-set")[0].data
        assert word_set.auto_selected
        assert session.state.secret_word in FALLBACK_WORDS["all"]
        assert session.state.current_turn_player_id == "alice"

    async def test_everyone_gone_abandons_the_game(self, sink, word_source, stats, archive):
        finished = []

        async def on_finished(session, summary):
            finished.append(summary)

        session = GameSession(
            create_game_state(("wm", "alice"), settings=SLOW_TURNS),
            sink,
            word_source,
            stats=stats,
            archive=archive,
            on_finished=on_finished,
        )
        await session.handle(PlayerDisconnected(participant_id="wm"))
        await session.handle(PlayerDisconnected(participant_id="alice"))
        await wait_until(lambda: session.finished)

        assert session.state.abandoned
        assert "game-abandoned" in sink.types()
        assert finished[0].abandoned
        assert archive.get("test-session").abandoned
        assert stats.get_entry("alice") is None
        with pytest.raises(InvalidPhaseError):
            await session.handle(PlayerReconnected(participant_id="alice"))


class TestFullGame:
    async def test_two_rounds_then_hand_off(self, sink, word_source, stats, archive):
        finished = []

        async def on_finished(session, summary):
            finished.append(summary)

        session = GameSession(
            create_game_state(("wm", "alice"), settings=FAST_SETTINGS),
            sink,
            word_source,
            stats=stats,
            archive=archive,
            on_finished=on_finished,
        )

        await _start_round(session, "cat")
        await _solve(session, "cat")
        assert session.state.status == SessionStatus.ROUND_END

        await wait_until(lambda: session.state.status == SessionStatus.WORD_SELECTION)
        assert session.state.round_index == 2
        assert session.state.word_master_id == "alice"

        await _start_round(session, "dog")
        assert session.state.current_turn_player_id == "wm"
        await _solve(session, "dog")

        await wait_until(lambda: session.finished)
        final = session.state
        assert final.status == SessionStatus.GAME_OVER
        assert final.get_player("alice").score == final.get_player("wm").score == 90
        # same score reached by the same guess: turn order decides
        assert final.game_winner_id == "wm"
        assert sink.types()[-1] == "game-ended"

        summary = finished[0]
        assert summary.rounds_played == 2
        assert {p.participant_id: p.perfect_rounds for p in summary.players} == {"wm": 1, "alice": 1}
        assert stats.get_entry("wm").games_won == 1
        assert archive.get("test-session") == summary
        assert not session.scheduler.active
        assert not session.coordinator.active

        with pytest.raises(InvalidPhaseError, match="game is over"):
            await session.handle(SubmitWord(caller_id="wm", word="owl"))


class TestNarrowWordRules:
    NINE_LETTERS = GameSettings(
        turn_seconds=5, grace_seconds=0.1, settle_seconds=5, tick_seconds=0, min_word_length=9, max_word_length=9
    )

    async def test_auto_word_respects_length_rules(self, session_factory, sink):
        session = session_factory(create_game_state(settings=self.NINE_LETTERS))
        await session.handle(PlayerDisconnected(participant_id="wm"))
        await wait_until(lambda: session.state.status == SessionStatus.IN_PROGRESS)
        assert len(session.state.secret_word) == 9

    async def test_random_fallback_respects_length_rules(self, sink):
        session = GameSession(create_game_state(settings=self.NINE_LETTERS), sink, FailingWordSource())
        await session.handle(SubmitWord(caller_id="wm", use_random=True, category="animals"))
        assert len(session.state.secret_word) == 9
        await session.close()

    async def test_no_fitting_random_word_is_rejected(self, sink):
        settings = GameSettings(turn_seconds=5, settle_seconds=5, min_word_length=20, max_word_length=20)
        session = GameSession(create_game_state(settings=settings), sink, FailingWordSource())
        with pytest.raises(InvalidWordError):
            await session.handle(SubmitWord(caller_id="wm", use_random=True))
        assert session.state.status == SessionStatus.WORD_SELECTION
        await session.close()


class TestInvariantsAcrossFlows:
    async def test_every_committed_state_is_consistent(self, session_factory, sink, monkeypatch):
        settings = GameSettings(total_rounds=2, turn_seconds=5, grace_seconds=0.1, settle_seconds=5, tick_seconds=0)
        session = session_factory(create_game_state(settings=settings))
        committed = []
        violations = []
        commit = session._commit

        async def checked_commit(state, events):
            try:
                state.check_invariants()
            except AssertionError as e:
                violations.append(e)
            committed.append(state)
            await commit(state, events)

        monkeypatch.setattr(session, "_commit", checked_commit)

        await _start_round(session, "otter")
        await session.handle(GuessLetter(caller_id="alice", letter="z"))
        await session.handle(TimerFired(kind=TimerKind.TURN, turn_number=session.state.turn_number))
        assert session.state.current_turn_player_id == "alice"

        await session.handle(PlayerDisconnected(participant_id="alice"))
        await session.handle(PlayerReconnected(participant_id="alice"))

        await session.handle(PlayerDisconnected(participant_id="bob"))
        await wait_until(lambda: session.state.get_player("bob").connection == ConnectionState.DISCONNECTED)
        await session.handle(PlayerDisconnected(participant_id="alice"))
        await wait_until(lambda: session.state.is_paused)

        await session.handle(PlayerReconnected(participant_id="bob"))
        await session.handle(PlayerReconnected(participant_id="alice"))
        await _solve(session, "otter")
        assert session.state.status == SessionStatus.ROUND_END

        await session.handle(TimerFired(kind=TimerKind.SETTLE, round_index=session.state.round_index))
        assert session.state.status == SessionStatus.WORD_SELECTION
        assert session.state.round_index == 2

        assert violations == []
        assert len(committed) >= 12
        assert any(s.is_paused for s in committed)
        assert {s.status for s in committed} >= {
            SessionStatus.IN_PROGRESS,
            SessionStatus.ROUND_END,
            SessionStatus.WORD_SELECTION,
        }
