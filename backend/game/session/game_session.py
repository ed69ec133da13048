"""
GameSession: the serialized owner of one game's state.

Every inbound event, including the session's own timer firings, enters
through handle() and runs to completion under the session's asyncio.Lock
before the next one starts. The lock is FIFO, so events are applied in
arrival order. Word lookups, which may hit the network, are resolved
before the lock is taken and re-validated once it is held.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

import structlog

from game.logic.enums import ConnectionState, SessionStatus, SkipReason, TimerKind, WordCategory
from game.logic.events import (
    GameEvent,
    PlayerDisconnectedEvent,
    PlayerReconnectedEvent,
    ServiceEvent,
    SessionStateEvent,
    TurnTimerTickEvent,
    broadcast,
    to_participant,
)
from game.logic.exceptions import (
    GameRuleError,
    InvalidPhaseError,
    InvalidWordError,
    NoEligiblePlayersError,
    NotFoundError,
    NotWordMasterError,
    WordSourceError,
)
from game.logic.game import abandon_game
from game.logic.round import begin_round, guess_letter, send_hint
from game.logic.state_utils import advance_sequence, update_player
from game.logic.turn import resume_turn, skip_turn
from game.logic.view import SessionView, build_view
from game.logic.words import WordRules
from game.session.commands import (
    GuessLetter,
    PlayerDisconnected,
    PlayerReconnected,
    SendHint,
    SessionCommand,
    SubmitWord,
    TimerFired,
    TurnTick,
)
from game.session.coordinator import RoundLifecycleCoordinator
from game.session.disconnect_monitor import DisconnectionMonitor
from game.session.turn_scheduler import TurnScheduler
from game.words.source import WordChoice, pick_fallback_word

if TYPE_CHECKING:
    import random
    from collections.abc import Awaitable, Callable

    from game.logic.round import GuessOutcome
    from game.logic.state import GameState, PlayerState
    from game.session.broadcast import EventSink
    from game.session.results import GameArchive, GameSummary, StatsRecorder
    from game.words.source import WordSource

    FinishedCallback = Callable[["GameSession", GameSummary], Awaitable[None]]

logger = structlog.get_logger()

_CATEGORIES = frozenset(c.value for c in WordCategory)


class GameSession:
    def __init__(  # noqa: PLR0913
        self,
        state: GameState,
        sink: EventSink,
        word_source: WordSource,
        *,
        stats: StatsRecorder | None = None,
        archive: GameArchive | None = None,
        on_finished: FinishedCallback | None = None,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ) -> None:
        self.session_id = state.session_id
        self._state = state
        self._lock = asyncio.Lock()
        self._sink = sink
        self._word_source = word_source
        self._rules = WordRules.from_settings(state.settings)
        self._on_finished = on_finished
        self._clock = clock
        self._rng = rng
        self._finished = False
        self._scheduler = TurnScheduler(self.session_id, self._on_turn_expired, self._on_turn_tick)
        self._monitor = DisconnectionMonitor(self.session_id, self._on_grace_expired)
        self._coordinator = RoundLifecycleCoordinator(self.session_id, self._on_settled, stats, archive)

    @property
    def state(self) -> GameState:
        """Latest committed snapshot; safe to read without the lock."""
        return self._state

    @property
    def room_id(self) -> str:
        return self._state.room_id

    @property
    def participant_ids(self) -> tuple[str, ...]:
        return self._state.turn_order

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def scheduler(self) -> TurnScheduler:
        return self._scheduler

    @property
    def monitor(self) -> DisconnectionMonitor:
        return self._monitor

    @property
    def coordinator(self) -> RoundLifecycleCoordinator:
        return self._coordinator

    def view(self, viewer_id: str | None = None) -> SessionView:
        return build_view(self._state, viewer_id)

    async def start(self, events: list[GameEvent]) -> None:
        """Publish the game's opening notifications."""
        async with self._lock:
            await self._sink.publish(self.session_id, [broadcast(e) for e in events])

    async def handle(self, command: SessionCommand) -> GuessOutcome | None:
        """
        Apply one inbound event.

        Raises GameRuleError subclasses for rejected caller events; the
        state is left unchanged and nothing is broadcast in that case.
        Only a GuessLetter returns a value.
        """
        choice = None
        if isinstance(command, SubmitWord):
            choice = await self._resolve_word(command)

        async with self._lock:
            with structlog.contextvars.bound_contextvars(session_id=self.session_id):
                result = await self._apply(command, choice)
        await self._maybe_finish()
        return result

    async def close(self) -> None:
        """Release every timer without handing the game off."""
        self._finished = True
        self._release_timers()

    # ------------------------------------------------------------------
    # dispatch
    # ------------------------------------------------------------------

    async def _apply(self, command: SessionCommand, choice: WordChoice | None) -> GuessOutcome | None:
        internal = isinstance(command, (TimerFired, TurnTick))
        if self._state.is_terminal or self._finished:
            if internal:
                return None
            raise InvalidPhaseError("game is over")

        outcome: GuessOutcome | None = None
        if isinstance(command, SubmitWord) and choice is not None:
            await self._submit_word(command, choice)
        elif isinstance(command, GuessLetter):
            outcome = await self._guess_letter(command)
        elif isinstance(command, SendHint):
            await self._send_hint(command)
        elif isinstance(command, PlayerDisconnected):
            await self._player_disconnected(command.participant_id)
        elif isinstance(command, PlayerReconnected):
            await self._player_reconnected(command.participant_id)
        elif isinstance(command, TimerFired):
            await self._timer_fired(command)
        elif isinstance(command, TurnTick):
            await self._turn_tick(command)
        else:
            raise TypeError(f"unsupported session command {type(command).__name__}")
        return outcome

    async def _commit(self, state: GameState, events: list[ServiceEvent]) -> None:
        """Swap in the new snapshot, reconcile timers, then publish."""
        self._state = state
        if state.is_terminal:
            self._release_timers()
        else:
            self._scheduler.sync(state)
            self._coordinator.sync(state)
        if events:
            await self._sink.publish(self.session_id, events)

    def _require_player(self, participant_id: str) -> PlayerState:
        player = self._state.get_player(participant_id)
        if player is None:
            raise NotFoundError(f"participant {participant_id} is not in session {self.session_id}")
        return player

    def _now(self) -> float:
        return self._clock()

    # ------------------------------------------------------------------
    # word selection
    # ------------------------------------------------------------------

    def _check_word_submission(self, caller_id: str) -> None:
        state = self._state
        if state.is_terminal:
            raise InvalidPhaseError("game is over")
        self._require_player(caller_id)
        if state.status != SessionStatus.WORD_SELECTION:
            raise InvalidPhaseError(f"cannot set a word during {state.status.value}")
        if caller_id != state.word_master_id:
            raise NotWordMasterError("only the word master can choose the word")

    async def _resolve_word(self, command: SubmitWord) -> WordChoice:
        """Check authority and resolve the word through the word source, outside the lock."""
        self._check_word_submission(command.caller_id)
        category = command.category if command.category in _CATEGORIES else WordCategory.ALL.value

        if command.use_random:
            try:
                choice = await self._word_source.random_word(category)
                return choice.model_copy(update={"word": self._rules.check(choice.word)})
            except (WordSourceError, InvalidWordError) as e:
                logger.warning("random word unavailable, using fallback list", error=str(e))
            try:
                return pick_fallback_word(category, self._rng, self._rules)
            except WordSourceError:
                raise InvalidWordError("no random word fits the word length rules") from None

        word = self._rules.check(command.word or "")
        try:
            return await self._word_source.validate(word, category)
        except WordSourceError as e:
            logger.warning("word validation unavailable, accepting word", error=str(e))
            return WordChoice(word=word, category=category)

    async def _submit_word(self, command: SubmitWord, choice: WordChoice) -> None:
        # phase or word-master may have changed while the word was being resolved
        self._check_word_submission(command.caller_id)
        state, events = begin_round(advance_sequence(self._state), choice.word, choice.category, self._now())
        await self._commit(state, [broadcast(e) for e in events])

    def _auto_select_word(self, state: GameState) -> tuple[GameState, list[GameEvent]]:
        """Start the round with a fallback word when the word-master is gone."""
        try:
            choice = pick_fallback_word(WordCategory.ALL.value, self._rng, self._rules)
        except WordSourceError as e:
            logger.warning("no fallback word fits the word rules, waiting", error=str(e))
            return state, []
        try:
            return begin_round(state, choice.word, choice.category, self._now(), auto_selected=True)
        except NoEligiblePlayersError:
            logger.info("word master gone and no guesser connected, waiting", round_index=state.round_index)
            return state, []

    def _needs_auto_word(self, state: GameState) -> bool:
        if state.status != SessionStatus.WORD_SELECTION:
            return False
        word_master = state.get_player(state.word_master_id)
        return word_master is not None and word_master.connection == ConnectionState.DISCONNECTED

    # ------------------------------------------------------------------
    # guessing phase
    # ------------------------------------------------------------------

    async def _guess_letter(self, command: GuessLetter) -> GuessOutcome:
        state, outcome, events = guess_letter(
            advance_sequence(self._state),
            command.caller_id,
            command.letter,
            self._now(),
        )
        await self._commit(state, [broadcast(e) for e in events])
        return outcome

    async def _send_hint(self, command: SendHint) -> None:
        state, events = send_hint(advance_sequence(self._state), command.caller_id, command.text)
        await self._commit(state, [broadcast(e) for e in events])

    # ------------------------------------------------------------------
    # connectivity
    # ------------------------------------------------------------------

    async def _player_disconnected(self, participant_id: str) -> None:
        player = self._require_player(participant_id)
        if player.connection != ConnectionState.CONNECTED:
            logger.debug("disconnect ignored", participant_id=participant_id, connection=player.connection.value)
            return

        grace = self._state.settings.grace_seconds
        state = update_player(
            advance_sequence(self._state),
            participant_id,
            connection=ConnectionState.PENDING_DISCONNECT,
        )
        self._monitor.start_grace(participant_id, grace)
        logger.info("player disconnected, grace period started", participant_id=participant_id, grace=grace)
        await self._commit(
            state,
            [
                broadcast(
                    PlayerDisconnectedEvent(
                        session_id=self.session_id,
                        participant_id=participant_id,
                        connection=ConnectionState.PENDING_DISCONNECT,
                        grace_seconds=grace,
                    ),
                ),
            ],
        )

    async def _player_reconnected(self, participant_id: str) -> None:
        player = self._require_player(participant_id)
        if player.connection == ConnectionState.CONNECTED:
            # a second socket for a live participant only needs the current view
            await self._sink.publish(self.session_id, [self._state_snapshot_for(self._state, participant_id)])
            return

        self._monitor.cancel_grace(participant_id)
        state = update_player(advance_sequence(self._state), participant_id, connection=ConnectionState.CONNECTED)
        events: list[GameEvent] = [PlayerReconnectedEvent(session_id=self.session_id, participant_id=participant_id)]

        if state.is_paused:
            state, resumed = resume_turn(state, participant_id, self._now())
            events.extend(resumed)
        elif self._needs_auto_word(state):
            state, started = self._auto_select_word(state)
            events.extend(started)

        logger.info("player reconnected", participant_id=participant_id, previous=player.connection.value)
        service_events = [broadcast(e) for e in events]
        service_events.append(self._state_snapshot_for(state, participant_id))
        await self._commit(state, service_events)

    def _state_snapshot_for(self, state: GameState, participant_id: str) -> ServiceEvent:
        return to_participant(
            participant_id,
            SessionStateEvent(session_id=self.session_id, view=build_view(state, participant_id)),
        )

    # ------------------------------------------------------------------
    # timers
    # ------------------------------------------------------------------

    async def _timer_fired(self, command: TimerFired) -> None:
        if command.kind == TimerKind.TURN:
            await self._turn_expired(command.turn_number)
        elif command.kind == TimerKind.GRACE and command.participant_id is not None:
            await self._grace_expired(command.participant_id, command.generation)
        elif command.kind == TimerKind.SETTLE:
            await self._round_settled(command.round_index)

    async def _turn_expired(self, turn_number: int | None) -> None:
        state = self._state
        if (
            state.status != SessionStatus.IN_PROGRESS
            or state.current_turn_player_id is None
            or turn_number != state.turn_number
        ):
            logger.debug("stale turn timer ignored", turn_number=turn_number, current=state.turn_number)
            return
        new_state, events = skip_turn(advance_sequence(state), SkipReason.TIMEOUT, self._now())
        await self._commit(new_state, [broadcast(e) for e in events])

    async def _turn_tick(self, command: TurnTick) -> None:
        state = self._state
        if state.status != SessionStatus.IN_PROGRESS or command.turn_number != state.turn_number:
            return
        tick = TurnTimerTickEvent(
            session_id=self.session_id,
            turn_number=command.turn_number,
            seconds_left=command.seconds_left,
        )
        await self._sink.publish(self.session_id, [broadcast(tick)])

    async def _grace_expired(self, participant_id: str, generation: int | None) -> None:
        player = self._state.get_player(participant_id)
        if (
            generation is None
            or not self._monitor.is_current(participant_id, generation)
            or player is None
            or player.connection != ConnectionState.PENDING_DISCONNECT
        ):
            logger.debug("stale grace timer ignored", participant_id=participant_id, generation=generation)
            return

        self._monitor.release(participant_id)
        state = update_player(
            advance_sequence(self._state),
            participant_id,
            connection=ConnectionState.DISCONNECTED,
        )
        events: list[GameEvent] = [
            PlayerDisconnectedEvent(
                session_id=self.session_id,
                participant_id=participant_id,
                connection=ConnectionState.DISCONNECTED,
            ),
        ]
        logger.info("grace period elapsed", participant_id=participant_id)

        if state.all_disconnected:
            state, more = abandon_game(state)
        elif state.status == SessionStatus.IN_PROGRESS and state.current_turn_player_id == participant_id:
            state, more = skip_turn(state, SkipReason.DISCONNECT, self._now())
        elif self._needs_auto_word(state):
            state, more = self._auto_select_word(state)
        else:
            more = []
        events.extend(more)
        await self._commit(state, [broadcast(e) for e in events])

    async def _round_settled(self, round_index: int | None) -> None:
        state = self._state
        if state.status != SessionStatus.ROUND_END or round_index != state.round_index:
            logger.debug("stale settle timer ignored", round_index=round_index)
            return
        new_state, events = self._coordinator.conclude_round(advance_sequence(state))
        if self._needs_auto_word(new_state):
            new_state, more = self._auto_select_word(new_state)
            events.extend(more)
        await self._commit(new_state, [broadcast(e) for e in events])

    async def _fire(self, command: SessionCommand) -> None:
        """Route a timer firing through the serialized entry point."""
        try:
            await self.handle(command)
        except GameRuleError as e:
            logger.warning("timer event rejected", session_id=self.session_id, code=e.code.value, error=e.message)

    async def _on_turn_expired(self, turn_number: int) -> None:
        await self._fire(TimerFired(kind=TimerKind.TURN, turn_number=turn_number))

    async def _on_turn_tick(self, turn_number: int, seconds_left: int) -> None:
        await self._fire(TurnTick(turn_number=turn_number, seconds_left=seconds_left))

    async def _on_grace_expired(self, participant_id: str, generation: int) -> None:
        await self._fire(TimerFired(kind=TimerKind.GRACE, participant_id=participant_id, generation=generation))

    async def _on_settled(self, round_index: int) -> None:
        await self._fire(TimerFired(kind=TimerKind.SETTLE, round_index=round_index))

    # ------------------------------------------------------------------
    # teardown
    # ------------------------------------------------------------------

    def _release_timers(self) -> None:
        self._scheduler.cancel()
        self._monitor.cancel_all()
        self._coordinator.cancel()

    async def _maybe_finish(self) -> None:
        """Hand a terminal game off and signal the registry, outside the lock."""
        if self._finished or not self._state.is_terminal:
            return
        self._finished = True
        self._release_timers()
        summary = await self._coordinator.hand_off(self._state)
        if self._on_finished is not None:
            await self._on_finished(self, summary)
