# ranking/session.py

import random
from dataclasses import dataclass

from processing.catalog import K_FACTOR, validate_catalog
from ranking.ranking_system import apply_vote, rank, rank_position

CROWD_MESSAGES = (
    "You're with the crowd!",
    "Most people agree!",
    "Popular opinion!",
    "You picked the favorite!",
)

HOT_TAKE_MESSAGES = (
    "Hot take!",
    "Going against the grain!",
    "Minority opinion!",
    "Bold choice!",
)


@dataclass
class VoteResult:
    actor_ratings: dict
    global_ratings: dict
    winner_rank: int
    loser_rank: int

    @property
    def agrees_with_majority(self):
        return self.winner_rank < self.loser_rank


def reaction_message(agrees, rng=None):
    rng = rng or random
    return rng.choice(CROWD_MESSAGES if agrees else HOT_TAKE_MESSAGES)


class RankingSession:
    """Applies one vote to both the personal and global rating maps. Does no I/O."""

    def __init__(self, catalog, k_factor=K_FACTOR):
        self.catalog = validate_catalog(catalog)
        self.k_factor = k_factor

    def record_vote(self, actor_ratings, global_ratings, winner_id, loser_id):
        known = {album.id for album in self.catalog}
        for album_id in (winner_id, loser_id):
            if album_id not in known:
                raise ValueError(f"Unknown album id: {album_id!r}")

        new_actor = apply_vote(actor_ratings, winner_id, loser_id, self.k_factor)
        new_global = apply_vote(global_ratings, winner_id, loser_id, self.k_factor)

        rankings = rank(new_global, self.catalog)
        return VoteResult(
            actor_ratings=new_actor,
            global_ratings=new_global,
            winner_rank=rank_position(rankings, winner_id),
            loser_rank=rank_position(rankings, loser_id),
        )
