import random
import secrets
import time
from dataclasses import dataclass
from datetime import datetime
from threading import RLock
from typing import Callable, Dict, List, Optional

from .phases import (
    IN_GAME,
    NOT_STARTED,
    TURN_PHASES,
    CluePhase,
    CountdownPhase,
    GameOverPhase,
    GuessPhase,
    LobbyPhase,
    RoundOverPhase,
    SecretPhase,
    WaitingPhase,
)
from .quiz import QuizState, is_correct
from .rotation import RoundConfig, round_config
from .scoring import empty_scores, record_game_result, team_of, winning_team
from .timers import RoomTimers

# Secret word used when the secret holder misses the disconnect grace period
AUTO_SECRET_WORD = 'asocijacija'
WIN_SCORE_RANGE = (3, 50)
GUESS_TIME_RANGE = (10, 120)
MAX_NAME_LENGTH = 20
MAX_CHAT_LENGTH = 200


def normalize_word(raw) -> Optional[str]:
    """Trim, reject empty, keep only the first whitespace-delimited token."""
    if not isinstance(raw, str):
        return None
    trimmed = raw.strip()
    if not trimmed:
        return None
    return trimmed.split()[0]


@dataclass
class Reservation:
    user_id: Optional[int] = None
    token: Optional[str] = None

    def matches(self, user_id, token) -> bool:
        return bool((user_id and self.user_id == user_id) or (token and self.token == token))


@dataclass
class Seat:
    sid: Optional[str] = None
    name: Optional[str] = None
    profile: Optional[dict] = None
    disconnected: bool = False
    reservation: Optional[Reservation] = None
    bot: bool = False

    @property
    def connected(self) -> bool:
        return self.sid is not None

    @property
    def empty(self) -> bool:
        return self.sid is None and not self.disconnected

    @property
    def user_id(self) -> Optional[int]:
        return self.profile.get('id') if self.profile else None

    def clear(self) -> None:
        self.sid = None
        self.name = None
        self.profile = None
        self.disconnected = False
        self.reservation = None
        self.bot = False


@dataclass
class Participant:
    sid: str
    slot: int = -1
    name: str = 'Spectator'
    user_id: Optional[int] = None
    stats: Optional[dict] = None
    bot: bool = False


class Room:
    """One live game: seats, phase machine, timers, chat and quiz.

    Every public method takes the room lock, mutates state, and publishes the
    resulting snapshots before returning. Game actions that fail turn or admin
    checks return False without touching state.
    """

    def __init__(self, code: str, name: str, creator_id: Optional[int], *, scheduler, store,
                 emit: Callable[[str, dict, str], None], config, logger,
                 scheduled_start: Optional[str] = None, rng: Optional[random.Random] = None):
        self.code = code
        self.name = name
        self.creator_id = creator_id
        self.scheduled_start = scheduled_start
        self.store = store
        self.emit = emit
        self.logger = logger
        self.rng = rng or random.Random()

        self.win_score = int(config.get('DEFAULT_WIN_SCORE', 10))
        self.guess_time = int(config.get('GUESS_DURATION_SEC', 30))
        self.round_over_sec = config.get('ROUND_OVER_DURATION_SEC', 3)
        self.grace_sec = config.get('DISCONNECT_GRACE_SEC', 15)
        self.countdown_range = (int(config.get('COUNTDOWN_MIN_SEC', 5)), int(config.get('COUNTDOWN_MAX_SEC', 300)))
        self.quiz_question_sec = int(config.get('QUIZ_QUESTION_SEC', 20))
        self.quiz_pause_sec = config.get('QUIZ_PAUSE_SEC', 3)
        self.chat_limit = int(config.get('CHAT_HISTORY_LIMIT', 200))

        self.phase = WaitingPhase()
        self.seats: List[Seat] = [Seat() for _ in range(4)]
        self.participants: Dict[str, Participant] = {}
        self.admin_slot = -1
        self.scores = empty_scores()
        self.rotation = 0
        self.turn = 0
        self.clues: List[dict] = []
        self.chat: List[dict] = []
        self.quiz: Optional[QuizState] = None

        self.lock = RLock()
        self.timers = RoomTimers(scheduler, self.lock)
        self._grace_key = None

    # ---- Queries ----

    def current_round(self) -> Optional[RoundConfig]:
        if isinstance(self.phase, TURN_PHASES):
            return round_config(self.rotation, self.turn)
        return None

    def slot_of(self, sid: str) -> int:
        participant = self.participants.get(sid)
        return participant.slot if participant else -1

    def is_admin(self, slot: int) -> bool:
        return slot >= 0 and slot == self.admin_slot

    def all_seats_filled(self) -> bool:
        return all(seat.connected for seat in self.seats)

    def is_empty(self) -> bool:
        return not any(not p.bot for p in self.participants.values())

    def _human_seated(self) -> bool:
        return any(seat.connected and not seat.bot for seat in self.seats)

    # ---- Membership ----

    def join(self, sid: str, name: Optional[str] = None, user_id: Optional[int] = None,
             profile: Optional[dict] = None, token: Optional[str] = None) -> int:
        """Seat a connection: reclaim a reservation, else take a free seat, else spectate."""
        with self.lock:
            existing = self.participants.get(sid)
            if existing is not None:
                self._send_assigned(existing)
                self.broadcast()
                return existing.slot

            participant = Participant(sid=sid, user_id=user_id, stats=profile)
            self.participants[sid] = participant

            slot = self._match_reservation(user_id, token)
            if slot >= 0:
                self._occupy(slot, participant, profile, name, reconnect=True)
                self.logger.info(f"[reconnect] room={self.code} slot={slot} sid={sid}")
            elif not self._holds_connected_seat(user_id):
                slot = next((i for i, seat in enumerate(self.seats) if seat.empty), -1)
                if slot >= 0:
                    self._occupy(slot, participant, profile, name)

            if participant.slot < 0:
                participant.name = _clean_name(name) or 'Spectator'

            self._send_assigned(participant)
            self._sync_grace()
            self.broadcast()
            return participant.slot

    def leave(self, sid: str) -> bool:
        """Voluntary leave: the seat is released outright, never reserved."""
        with self.lock:
            participant = self.participants.pop(sid, None)
            if participant is None:
                return False
            if participant.slot >= 0:
                self._vacate(participant.slot, keep_reservation=False)
            self._after_departure()
            return True

    def disconnect(self, sid: str) -> bool:
        with self.lock:
            participant = self.participants.pop(sid, None)
            if participant is None:
                return False
            if participant.slot >= 0:
                self._vacate(participant.slot, keep_reservation=isinstance(self.phase, IN_GAME))
                self.logger.info(f"[disconnect] room={self.code} slot={participant.slot} phase={self.phase.name}")
            self._after_departure()
            return True

    def _match_reservation(self, user_id, token) -> int:
        if not user_id and not token:
            return -1
        for slot, seat in enumerate(self.seats):
            if seat.disconnected and seat.reservation and seat.reservation.matches(user_id, token):
                return slot
        return -1

    def _holds_connected_seat(self, user_id) -> bool:
        return bool(user_id) and any(seat.connected and seat.user_id == user_id for seat in self.seats)

    def _occupy(self, slot: int, participant: Participant, profile, name, reconnect: bool = False) -> None:
        seat = self.seats[slot]
        seat.sid = participant.sid
        seat.disconnected = False
        seat.bot = participant.bot
        if profile:
            seat.profile = dict(profile)
            seat.name = profile.get('username') or f'Player {slot + 1}'
        elif not (reconnect and seat.name):
            seat.profile = None
            seat.name = _clean_name(name) or f'Player {slot + 1}'
        # Reconnection tokens are single use: every seating issues a fresh one.
        seat.reservation = Reservation(user_id=seat.user_id, token=secrets.token_urlsafe(16))

        participant.slot = slot
        participant.name = seat.name
        if participant.user_id is None:
            participant.user_id = seat.user_id

        if not participant.bot and (self.admin_slot < 0 or (self.creator_id and seat.user_id == self.creator_id)):
            self.admin_slot = slot
        if seat.user_id:
            self.store.add_participant(self.code, seat.user_id, slot)

    def _vacate(self, slot: int, keep_reservation: bool) -> None:
        seat = self.seats[slot]
        if keep_reservation and seat.reservation is not None:
            seat.sid = None
            seat.disconnected = True
        else:
            if seat.user_id:
                self.store.remove_participant(self.code, seat.user_id)
            seat.clear()
        if self.admin_slot == slot:
            self._reassign_admin()

    def _reassign_admin(self) -> None:
        if 0 <= self.admin_slot < 4:
            seat = self.seats[self.admin_slot]
            if seat.connected and not seat.bot:
                return
        self.admin_slot = next(
            (i for i, seat in enumerate(self.seats) if seat.connected and not seat.bot), -1
        )

    def _after_departure(self) -> None:
        if isinstance(self.phase, CountdownPhase):
            self.timers.cancel('countdown')
            self.phase = LobbyPhase()
            self.logger.info(f"[phase] room={self.code} countdown -> lobby (seat lost)")
        if not self._human_seated():
            finished = isinstance(self.phase, GameOverPhase)
            self._drop_bots()
            self._reset_state(status=None if finished else 'lobby')
            self.logger.info(f"[reset] room={self.code} no seat connected")
        else:
            self._sync_grace()
        self.broadcast()

    def _drop_bots(self) -> None:
        for sid in [sid for sid, p in self.participants.items() if p.bot]:
            participant = self.participants.pop(sid)
            if participant.slot >= 0:
                self.seats[participant.slot].clear()

    def _send_assigned(self, participant: Participant) -> None:
        if participant.bot:
            return
        slot = participant.slot
        seat = self.seats[slot] if slot >= 0 else None
        self.emit('assigned', {
            'room_code': self.code,
            'slot': slot,
            'name': participant.name,
            'team': team_of(slot) if slot >= 0 else None,
            'reconnect_token': seat.reservation.token if seat and seat.reservation else None,
        }, participant.sid)

    # ---- Seat management ----

    def kick(self, slot: int, target) -> bool:
        with self.lock:
            if not self.is_admin(slot) or not _valid_slot(target) or target == slot:
                return False
            seat = self.seats[target]
            if seat.empty:
                return False
            participant = self.participants.get(seat.sid) if seat.sid else None
            if seat.user_id:
                self.store.remove_participant(self.code, seat.user_id)
            seat.clear()
            if participant is not None:
                if participant.bot:
                    del self.participants[participant.sid]
                else:
                    participant.slot = -1
                    self.emit('kicked', {'room_code': self.code, 'slot': target}, participant.sid)
                    self._send_assigned(participant)
            self.logger.info(f"[kick] room={self.code} slot={target}")
            self._sync_grace()
            self.broadcast()
            return True

    def move_seat(self, slot: int, from_slot, to_slot) -> bool:
        """Admin swaps any two seats; anyone else may only move into an empty seat."""
        with self.lock:
            if not isinstance(self.phase, NOT_STARTED) or slot < 0:
                return False
            if not _valid_slot(from_slot) or not _valid_slot(to_slot) or from_slot == to_slot:
                return False
            if not self.is_admin(slot) and (from_slot != slot or not self.seats[to_slot].empty):
                return False
            order = list(range(4))
            order[from_slot], order[to_slot] = order[to_slot], order[from_slot]
            self._reorder_seats(order)
            return True

    def randomize_seats(self, slot: int) -> bool:
        with self.lock:
            if not self.is_admin(slot) or not isinstance(self.phase, NOT_STARTED):
                return False
            order = list(range(4))
            self.rng.shuffle(order)
            self._reorder_seats(order)
            return True

    def _reorder_seats(self, order: List[int]) -> None:
        admin_seat = self.seats[self.admin_slot] if self.admin_slot >= 0 else None
        self.seats = [self.seats[i] for i in order]
        for slot, seat in enumerate(self.seats):
            if seat is admin_seat:
                self.admin_slot = slot
            if seat.sid:
                participant = self.participants[seat.sid]
                if participant.slot != slot:
                    participant.slot = slot
                    if seat.user_id:
                        self.store.add_participant(self.code, seat.user_id, slot)
                    self._send_assigned(participant)
        self.broadcast()

    def fill_with_bots(self) -> int:
        """Test mode: put a bot on every empty seat."""
        with self.lock:
            filled = 0
            for slot, seat in enumerate(self.seats):
                if not seat.empty:
                    continue
                bot = Participant(sid=f"bot:{self.code}:{slot}", bot=True)
                self.participants[bot.sid] = bot
                self._occupy(slot, bot, None, f'Bot {slot + 1}')
                filled += 1
            self.broadcast()
            return filled

    # ---- Settings ----

    def _settings_open(self) -> bool:
        return isinstance(self.phase, NOT_STARTED + (GameOverPhase,))

    def set_win_score(self, slot: int, value) -> bool:
        with self.lock:
            if not self.is_admin(slot) or not self._settings_open():
                return False
            score = _as_int(value)
            if score is None or not WIN_SCORE_RANGE[0] <= score <= WIN_SCORE_RANGE[1]:
                return False
            self.win_score = score
            self.broadcast()
            return True

    def set_guess_time(self, slot: int, value) -> bool:
        with self.lock:
            if not self.is_admin(slot) or not self._settings_open():
                return False
            seconds = _as_int(value)
            if seconds is None or (seconds != 0 and not GUESS_TIME_RANGE[0] <= seconds <= GUESS_TIME_RANGE[1]):
                return False
            self.guess_time = seconds
            self.broadcast()
            return True

    def set_schedule(self, slot: int, value) -> bool:
        with self.lock:
            if not self.is_admin(slot) or not self._settings_open():
                return False
            if value in (None, ''):
                when = None
            else:
                try:
                    when = datetime.fromisoformat(str(value)).isoformat()
                except ValueError:
                    return False
            self.scheduled_start = when
            self.store.update_room_schedule(self.code, when)
            self.broadcast()
            return True

    # ---- Game flow ----

    def start_countdown(self, slot: int, seconds) -> bool:
        with self.lock:
            if not self.is_admin(slot) or not isinstance(self.phase, (WaitingPhase, LobbyPhase)):
                return False
            seconds = _as_int(seconds)
            if seconds is None:
                return False
            low, high = self.countdown_range
            seconds = max(low, min(high, seconds))
            self.phase = CountdownPhase(remaining=seconds)
            self.timers.countdown('countdown', seconds, self._on_countdown_tick, self._on_countdown_done)
            self.logger.info(f"[countdown] room={self.code} seconds={seconds}")
            self.broadcast()
            return True

    def cancel_countdown(self, slot: int) -> bool:
        with self.lock:
            if not self.is_admin(slot) or not isinstance(self.phase, CountdownPhase):
                return False
            self.timers.cancel('countdown')
            self._enter(LobbyPhase())
            return True

    def _on_countdown_tick(self, remaining: int) -> None:
        if isinstance(self.phase, CountdownPhase):
            self.phase.remaining = remaining
            self._emit_all('tick', {'kind': 'countdown', 'time_left': remaining})

    def _on_countdown_done(self) -> None:
        if not isinstance(self.phase, CountdownPhase):
            return
        if self.all_seats_filled():
            self._begin_game()
        else:
            self._enter(LobbyPhase())

    def start_game(self, slot: int) -> bool:
        with self.lock:
            if not self.is_admin(slot) or not isinstance(self.phase, (WaitingPhase, LobbyPhase)):
                return False
            if not self.all_seats_filled():
                return False
            self._begin_game()
            return True

    def _begin_game(self) -> None:
        self.timers.cancel('countdown')
        self._stop_quiz()
        self.scores = empty_scores()
        self.rotation = 0
        self.store.update_room_status(self.code, 'playing')
        self.logger.info(f"[start] room={self.code} win_score={self.win_score} guess_time={self.guess_time}")
        self._start_round()

    def _start_round(self) -> None:
        self.turn = 0
        self.clues = []
        self._enter(SecretPhase())

    def _enter(self, phase) -> None:
        self.logger.info(f"[phase] room={self.code} {self.phase.name} -> {phase.name}")
        self.phase = phase
        self._sync_grace()
        self.broadcast()

    def submit_secret(self, slot: int, raw) -> bool:
        with self.lock:
            if not isinstance(self.phase, SecretPhase) or slot != self.current_round().secret_holder:
                return False
            word = normalize_word(raw)
            if not word:
                return False
            self._enter(CluePhase(secret_word=word))
            return True

    def submit_clue(self, slot: int, raw) -> bool:
        with self.lock:
            if not isinstance(self.phase, CluePhase) or slot != self.current_round().clue_giver:
                return False
            word = normalize_word(raw)
            if not word:
                return False
            self.clues.append({'from': slot, 'word': word})
            self._enter(GuessPhase(
                secret_word=self.phase.secret_word,
                clue=word,
                time_left=self.guess_time or None,
            ))
            if self.guess_time:
                self.timers.countdown('guess', self.guess_time, self._on_guess_tick, self._on_guess_timeout)
            return True

    def submit_guess(self, slot: int, raw) -> bool:
        with self.lock:
            if not isinstance(self.phase, GuessPhase) or slot != self.current_round().guesser:
                return False
            word = normalize_word(raw)
            if not word:
                return False
            self.timers.cancel('guess')
            secret = self.phase.secret_word
            if word.lower() != secret.lower():
                self.clues.append({'from': slot, 'word': word, 'is_guess': True, 'wrong': True})
                self._next_turn()
                return True

            finished = self.current_round()
            team = team_of(slot)
            self.scores[team] += 1
            self.clues.append({'from': slot, 'word': word, 'is_guess': True, 'correct': True})
            self.logger.info(f"[score] room={self.code} team={team} scores={self.scores}")
            winner = winning_team(self.scores, self.win_score)
            if winner:
                self._finish(winner)
                return True
            self.rotation = (self.rotation + 1) % 4
            self._enter(RoundOverPhase(secret_word=secret, scoring_team=team, finished=finished))
            self.timers.after('round_over', self.round_over_sec, self._on_round_over_elapsed)
            return True

    def _on_guess_tick(self, remaining: int) -> None:
        if isinstance(self.phase, GuessPhase):
            self.phase.time_left = remaining
            self._emit_all('tick', {'kind': 'guess', 'time_left': remaining})

    def _on_guess_timeout(self) -> None:
        if isinstance(self.phase, GuessPhase):
            self.logger.info(f"[timeout] room={self.code} turn={self.turn}")
            self._next_turn()

    def _next_turn(self) -> None:
        self.timers.cancel('guess')
        secret = self.phase.secret_word
        self.turn += 1
        self._enter(CluePhase(secret_word=secret))

    def _on_round_over_elapsed(self) -> None:
        if isinstance(self.phase, RoundOverPhase):
            self._start_round()

    def _finish(self, winner: str) -> None:
        self.timers.cancel_all()
        self._grace_key = None
        record_game_result(self.store, self.seats, winner)
        self.store.update_room_status(self.code, 'finished')
        self._enter(GameOverPhase(winner=winner))

    def reset(self, slot: int) -> bool:
        with self.lock:
            if not self.is_admin(slot):
                return False
            self._reset_state(status='lobby')
            self.logger.info(f"[reset] room={self.code} by slot={slot}")
            self._emit_all('game_reset', {'room_code': self.code})
            self.broadcast()
            return True

    def _reset_state(self, status: Optional[str] = 'lobby') -> None:
        self.timers.cancel_all()
        self._grace_key = None
        self._stop_quiz()
        self.scores = empty_scores()
        self.rotation = 0
        self.turn = 0
        self.clues = []
        self.phase = LobbyPhase()
        vacant = not self._human_seated()
        for seat in self.seats:
            if not seat.connected:
                if seat.user_id and not vacant:
                    self.store.remove_participant(self.code, seat.user_id)
                seat.clear()
        if vacant:
            self.store.remove_all_participants(self.code)
        self._reassign_admin()
        if status is not None:
            self.store.update_room_status(self.code, status)

    # ---- Disconnect grace ----

    def _turn_owner(self) -> Optional[int]:
        cfg = self.current_round()
        if cfg is None:
            return None
        if isinstance(self.phase, SecretPhase):
            return cfg.secret_holder
        if isinstance(self.phase, CluePhase):
            return cfg.clue_giver
        return cfg.guesser

    def _sync_grace(self) -> None:
        owner = self._turn_owner()
        if owner is None or self.seats[owner].connected:
            self.timers.cancel('grace')
            self._grace_key = None
            return
        key = (owner, self.phase.name, self.rotation, self.turn)
        if key == self._grace_key and self.timers.active('grace'):
            return
        self._grace_key = key
        self.timers.after('grace', self.grace_sec, self._on_grace_expired)

    def _on_grace_expired(self) -> None:
        self._grace_key = None
        owner = self._turn_owner()
        if owner is None or self.seats[owner].connected:
            return
        self.logger.info(f"[auto-skip] room={self.code} slot={owner} phase={self.phase.name}")
        if isinstance(self.phase, SecretPhase):
            self._enter(CluePhase(secret_word=AUTO_SECRET_WORD))
        else:
            self._next_turn()

    # ---- Chat and quiz ----

    def send_chat(self, sid: str, text) -> bool:
        with self.lock:
            participant = self.participants.get(sid)
            if participant is None or not isinstance(text, str):
                return False
            text = text.strip()[:MAX_CHAT_LENGTH]
            if not text:
                return False
            message = {
                'slot': participant.slot,
                'name': participant.name,
                'text': text,
                'ts': int(time.time() * 1000),
            }
            self.chat.append(message)
            if len(self.chat) > self.chat_limit:
                self.chat = self.chat[-self.chat_limit:]
            self._emit_all('chat_message', message)

            question = self.quiz.question if self.quiz else None
            if question is not None and is_correct(text, question):
                self.timers.cancel('quiz')
                points = self.quiz.award(sid, participant.name)
                self._emit_all('quiz_correct', {
                    'name': participant.name,
                    'answer': question.answer,
                    'points': points,
                    'scores': self.quiz.standings(),
                })
                self.timers.after('quiz_pause', self.quiz_pause_sec, self._ask_question)
            return True

    def start_quiz(self, slot: int) -> bool:
        with self.lock:
            if not self.is_admin(slot) or not isinstance(self.phase, NOT_STARTED) or self.quiz is not None:
                return False
            self.quiz = QuizState()
            self.logger.info(f"[quiz] room={self.code} started")
            self._ask_question()
            return True

    def stop_quiz(self, slot: int) -> bool:
        with self.lock:
            if not self.is_admin(slot) or self.quiz is None:
                return False
            self._stop_quiz()
            self.broadcast()
            return True

    def _ask_question(self) -> None:
        if self.quiz is None:
            return
        question = self.quiz.next_question(self.rng)
        self.quiz.time_left = self.quiz_question_sec
        self._emit_all('quiz_question', {'question': question.text, 'time_left': self.quiz_question_sec})
        self.timers.countdown('quiz', self.quiz_question_sec, self._on_quiz_tick, self._on_quiz_timeout)
        self.broadcast()

    def _on_quiz_tick(self, remaining: int) -> None:
        if self.quiz is not None:
            self.quiz.time_left = remaining
            self._emit_all('tick', {'kind': 'quiz', 'time_left': remaining})

    def _on_quiz_timeout(self) -> None:
        if self.quiz is None or self.quiz.question is None:
            return
        answer = self.quiz.question.answer
        self.quiz.current = None
        self._emit_all('quiz_answer', {'answer': answer})
        self.timers.after('quiz_pause', self.quiz_pause_sec, self._ask_question)

    def _stop_quiz(self) -> None:
        if self.quiz is None:
            return
        self.timers.cancel('quiz')
        self.timers.cancel('quiz_pause')
        self.quiz = None
        self._emit_all('quiz_stopped', {'room_code': self.code})

    # ---- Teardown ----

    def close(self) -> None:
        """Tell every participant the room is gone and stop all timers."""
        with self.lock:
            self.timers.cancel_all()
            self._grace_key = None
            self._emit_all('room_deleted', {'room_code': self.code})
            self.participants.clear()
            for seat in self.seats:
                seat.clear()
            self.admin_slot = -1

    # ---- Views ----

    def seat_view(self, slot: int) -> dict:
        seat = self.seats[slot]
        profile = seat.profile or {}
        return {
            'slot': slot,
            'name': seat.name,
            'team': team_of(slot),
            'occupied': not seat.empty,
            'connected': seat.connected,
            'disconnected': seat.disconnected,
            'bot': seat.bot,
            'user_id': seat.user_id,
            'avatar': profile.get('avatar'),
            'games_played': profile.get('games_played'),
            'games_won': profile.get('games_won'),
        }

    def lobby_snapshot(self) -> dict:
        return {
            'code': self.code,
            'name': self.name,
            'creator_id': self.creator_id,
            'phase': self.phase.name,
            'admin_slot': self.admin_slot,
            'seats': [self.seat_view(i) for i in range(4)],
            'spectators': sum(1 for p in self.participants.values() if p.slot < 0),
            'win_score': self.win_score,
            'guess_time': self.guess_time,
            'scheduled_start': self.scheduled_start,
            'countdown': self.phase.remaining if isinstance(self.phase, CountdownPhase) else None,
            'quiz': self.quiz.to_dict() if self.quiz else {'active': False},
        }

    def game_snapshot(self, slot: int) -> dict:
        """Per-recipient game view; the secret word only reaches holder and receiver."""
        phase = self.phase
        cfg = phase.finished if isinstance(phase, RoundOverPhase) else self.current_round()
        state = {
            'code': self.code,
            'phase': phase.name,
            'scores': dict(self.scores),
            'my_slot': slot,
            'rotation': self.rotation,
            'turn': self.turn,
            'current_turn': cfg.to_dict() if cfg else None,
            'clues': list(self.clues),
            'time_left': phase.time_left if isinstance(phase, GuessPhase) else None,
            'secret_word': None,
            'scoring_team': phase.scoring_team if isinstance(phase, RoundOverPhase) else None,
            'winner': phase.winner if isinstance(phase, GameOverPhase) else None,
            'win_score': self.win_score,
            'guess_time': self.guess_time,
            'admin_slot': self.admin_slot,
            'seats': [self.seat_view(i) for i in range(4)],
        }
        secret = getattr(phase, 'secret_word', None)
        if secret and cfg and slot in (cfg.secret_holder, cfg.receiver):
            state['secret_word'] = secret
        return state

    def summary(self) -> dict:
        return {
            'code': self.code,
            'name': self.name,
            'phase': self.phase.name,
            'players': sum(1 for seat in self.seats if not seat.empty),
            'spectators': sum(1 for p in self.participants.values() if p.slot < 0),
            'scheduled_start': self.scheduled_start,
        }

    def broadcast(self) -> None:
        """Publish the lobby snapshot and each recipient's game view."""
        lobby = self.lobby_snapshot()
        for sid, participant in list(self.participants.items()):
            if participant.bot:
                continue
            self.emit('lobby_state', lobby, sid)
            self.emit('game_state', self.game_snapshot(participant.slot), sid)

    def _emit_all(self, event: str, payload: dict) -> None:
        for sid, participant in list(self.participants.items()):
            if not participant.bot:
                self.emit(event, payload, sid)


def _clean_name(name) -> str:
    if not isinstance(name, str):
        return ''
    return name.strip()[:MAX_NAME_LENGTH]


def _valid_slot(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value < 4


def _as_int(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
