# ranking/ranking_system.py

import math

from processing.catalog import INITIAL_RATING, K_FACTOR


def expected_score(rating_self, rating_opponent):
    """Probability that `rating_self` beats `rating_opponent` (logistic, base 10, scale 400)."""
    return 1 / (1 + 10 ** ((rating_opponent - rating_self) / 400))


def update_after_match(rating_self, rating_opponent, actual_score, k_factor=K_FACTOR):
    """New (unrounded) rating after one match; actual_score is 1 for a win, 0 for a loss."""
    return rating_self + k_factor * (actual_score - expected_score(rating_self, rating_opponent))


def round_rating(value):
    # half-up, not Python's banker's rounding
    return int(math.floor(value + 0.5))


def apply_vote(rating_map, winner_id, loser_id, k_factor=K_FACTOR):
    """
    Return a copy of `rating_map` with the winner and loser updated.

    Both new ratings are computed from the pre-vote ratings, then rounded.
    Every other entry is copied through untouched.
    """
    if winner_id == loser_id:
        raise ValueError("Winner and loser must be different albums")

    winner_rating = rating_map.get(winner_id, INITIAL_RATING)
    loser_rating = rating_map.get(loser_id, INITIAL_RATING)

    new_winner = update_after_match(winner_rating, loser_rating, 1, k_factor)
    new_loser = update_after_match(loser_rating, winner_rating, 0, k_factor)

    updated = dict(rating_map)
    updated[winner_id] = round_rating(new_winner)
    updated[loser_id] = round_rating(new_loser)
    return updated


def rank(rating_map, catalog):
    """Every catalog album with its rating, highest first; ties keep catalog order."""
    projected = [(album, rating_map.get(album.id, INITIAL_RATING)) for album in catalog]
    # sorted() is stable, so equal ratings stay in catalog order
    return sorted(projected, key=lambda x: x[1], reverse=True)


def rank_position(rankings, album_id):
    for idx, (album, _) in enumerate(rankings, start=1):
        if album.id == album_id:
            return idx
    raise KeyError(album_id)
