# ranking/matchups.py

import random
from dataclasses import dataclass

from processing.catalog import Album, validate_catalog


@dataclass(frozen=True)
class Matchup:
    left: Album
    right: Album

    @property
    def key(self):
        return pair_key(self.left.id, self.right.id)

    def other(self, album_id):
        if album_id == self.left.id:
            return self.right
        if album_id == self.right.id:
            return self.left
        raise ValueError(f"{album_id!r} is not part of this matchup")


def pair_key(a_id, b_id):
    """Order-independent key for an unordered pair of ids."""
    return tuple(sorted((a_id, b_id)))


class MatchupSampler:
    """
    Random album pairs without repeats until every unordered pair has been shown.

    Once all n*(n-1)/2 pairs have been produced the history is cleared and a
    new epoch starts.
    """
    def __init__(self, catalog, rng=None):
        self.catalog = validate_catalog(catalog)
        self.rng = rng or random.Random()
        self.used_pairs = set()

    @property
    def total_pairs(self):
        n = len(self.catalog)
        return n * (n - 1) // 2

    @property
    def remaining_pairs(self):
        return self.total_pairs - len(self.used_pairs)

    def reset(self):
        self.used_pairs.clear()

    def next(self):
        if len(self.used_pairs) >= self.total_pairs:
            self.reset()

        n = len(self.catalog)
        while True:
            index_a = self.rng.randrange(n)
            index_b = self.rng.randrange(n)
            while index_b == index_a:
                index_b = self.rng.randrange(n)

            album_a, album_b = self.catalog[index_a], self.catalog[index_b]
            key = pair_key(album_a.id, album_b.id)
            if key not in self.used_pairs:
                break

        self.used_pairs.add(key)
        return Matchup(album_a, album_b)
