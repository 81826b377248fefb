"""Room phases.

Each phase is its own small dataclass carrying only the fields that are
valid while the room is in it; `name` is the value sent to clients.
"""
from dataclasses import dataclass
from typing import ClassVar, Optional

from .rotation import RoundConfig


@dataclass
class WaitingPhase:
    name: ClassVar[str] = 'waiting'


@dataclass
class LobbyPhase:
    name: ClassVar[str] = 'lobby'


@dataclass
class CountdownPhase:
    remaining: int
    name: ClassVar[str] = 'countdown'


@dataclass
class SecretPhase:
    name: ClassVar[str] = 'secret'


@dataclass
class CluePhase:
    secret_word: str
    name: ClassVar[str] = 'clue'


@dataclass
class GuessPhase:
    secret_word: str
    clue: str
    time_left: Optional[int] = None
    name: ClassVar[str] = 'guess'


@dataclass
class RoundOverPhase:
    secret_word: str
    scoring_team: str
    finished: Optional[RoundConfig] = None
    name: ClassVar[str] = 'roundOver'


@dataclass
class GameOverPhase:
    winner: str
    name: ClassVar[str] = 'gameOver'


NOT_STARTED = (WaitingPhase, LobbyPhase, CountdownPhase)
# Phases where a specific seat owes an action
TURN_PHASES = (SecretPhase, CluePhase, GuessPhase)
# Phases during which a disconnect reserves the seat instead of releasing it
IN_GAME = (SecretPhase, CluePhase, GuessPhase, RoundOverPhase)
