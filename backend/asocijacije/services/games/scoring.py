from typing import Optional

TEAM_A = 'team_a'
TEAM_B = 'team_b'

# Seats 0 and 3 play together, as do seats 1 and 2.
TEAM_SLOTS = {
    TEAM_A: (0, 3),
    TEAM_B: (1, 2),
}


def team_of(slot: int) -> str:
    return TEAM_A if slot in TEAM_SLOTS[TEAM_A] else TEAM_B


def empty_scores() -> dict:
    return {TEAM_A: 0, TEAM_B: 0}


def winning_team(scores: dict, win_score: int) -> Optional[str]:
    """Return the winning team once it has reached win_score with a 2 point lead."""
    a, b = scores[TEAM_A], scores[TEAM_B]
    if max(a, b) >= win_score and abs(a - b) >= 2:
        return TEAM_A if a > b else TEAM_B
    return None


def record_game_result(store, seats, winner: str) -> None:
    """Persist win/play counters for every seat linked to an account.

    Cached stats on the seat profile are bumped too so the next snapshot
    shows them without another lookup.
    """
    for slot, seat in enumerate(seats):
        if not seat.user_id:
            continue
        won = team_of(slot) == winner
        if won:
            store.add_game_won(seat.user_id)
        else:
            store.add_game_played(seat.user_id)
        if seat.profile is not None:
            seat.profile['games_played'] = seat.profile.get('games_played', 0) + 1
            if won:
                seat.profile['games_won'] = seat.profile.get('games_won', 0) + 1
