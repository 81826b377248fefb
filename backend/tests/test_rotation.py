import pytest

from asocijacije.services.games.rotation import round_config
from asocijacije.services.games.scoring import TEAM_A, TEAM_B, team_of, winning_team


@pytest.mark.parametrize('rotation', range(4))
@pytest.mark.parametrize('turn', range(6))
def test_round_roles(rotation, turn):
    cfg = round_config(rotation, turn)
    assert cfg.secret_holder == rotation
    assert cfg.receiver == (rotation + 1) % 4
    # Guessers never know the word; clue givers always do
    assert cfg.guesser not in (cfg.secret_holder, cfg.receiver)
    assert cfg.clue_giver in (cfg.secret_holder, cfg.receiver)
    assert cfg.clue_giver != cfg.guesser


def test_turn_parity_swaps_pairs():
    even = round_config(0, 0)
    odd = round_config(0, 1)
    assert (even.clue_giver, even.guesser) == (1, 2)
    assert (odd.clue_giver, odd.guesser) == (0, 3)
    assert round_config(0, 2) == even


def test_rotation_index_wraps():
    assert round_config(5, 0) == round_config(1, 0)
    assert round_config(2, 3) == round_config(2, 3)


def test_team_mapping():
    assert [team_of(s) for s in range(4)] == [TEAM_A, TEAM_B, TEAM_B, TEAM_A]


def test_win_requires_two_point_lead():
    assert winning_team({TEAM_A: 10, TEAM_B: 9}, 10) is None
    assert winning_team({TEAM_A: 10, TEAM_B: 8}, 10) == TEAM_A
    assert winning_team({TEAM_A: 11, TEAM_B: 13}, 10) == TEAM_B
    assert winning_team({TEAM_A: 9, TEAM_B: 0}, 10) is None
