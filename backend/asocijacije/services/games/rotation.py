from typing import NamedTuple


class RoundConfig(NamedTuple):
    secret_holder: int
    receiver: int
    clue_giver: int
    guesser: int

    def to_dict(self):
        return {
            'secret_holder': self.secret_holder,
            'receiver': self.receiver,
            'clue_giver': self.clue_giver,
            'guesser': self.guesser,
        }


# (clue_giver, guesser) per rotation start and turn parity. The receiver gives
# the first clue, then the secret holder; guesses go to the other two seats.
_TURN_TABLE = {
    0: ((1, 2), (0, 3)),
    1: ((2, 3), (1, 0)),
    2: ((3, 0), (2, 1)),
    3: ((0, 1), (3, 2)),
}


def round_config(rotation_index: int, turn_counter: int) -> RoundConfig:
    """Derive the active roles for a turn. Pure and deterministic."""
    holder = rotation_index % 4
    clue_giver, guesser = _TURN_TABLE[holder][turn_counter % 2]
    return RoundConfig(holder, (holder + 1) % 4, clue_giver, guesser)
