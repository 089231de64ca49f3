# database/rating_store.py

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field


class StoreUnavailable(RuntimeError):
    """No backend configured, or the backend could not be reached."""


class MalformedPersistedData(ValueError):
    """A persisted record could not be decoded into the expected shape."""


@dataclass
class AggregateRatingRecord:
    ratings: dict = field(default_factory=dict)
    total_votes: int = 0
    last_updated: int = None


@dataclass(frozen=True)
class VoteEvent:
    actor_id: str
    winner_id: str
    loser_id: str
    timestamp: int


def coerce_rating_map(raw, catalog_ids, default):
    """
    Validate a persisted rating map against the catalog.
    Unknown ids are dropped, missing or unusable values become `default`.
    """
    if not isinstance(raw, dict):
        raise MalformedPersistedData(f"Expected a mapping of ratings, got {type(raw).__name__}")

    ratings = {}
    for album_id in catalog_ids:
        value = raw.get(album_id, default)
        if isinstance(value, bool):
            value = default
        try:
            value = float(value)
        except (TypeError, ValueError):
            value = default
        if not math.isfinite(value):
            value = default
        ratings[album_id] = int(math.floor(value + 0.5))
    return ratings


class RatingStore(ABC):
    """
    Persistence contract for per-user rating maps and the shared global aggregate.
    Any operation may raise StoreUnavailable.
    """

    @abstractmethod
    def get_user_ratings(self, actor_id):
        """Raw rating map for `actor_id`, or None."""
        raise NotImplementedError

    @abstractmethod
    def put_user_ratings(self, actor_id, ratings):
        raise NotImplementedError

    @abstractmethod
    def get_global_aggregate(self):
        """AggregateRatingRecord, or None if nothing has been stored yet."""
        raise NotImplementedError

    @abstractmethod
    def merge_global_aggregate(self, winner_id, new_winner_rating, loser_id, new_loser_rating):
        """Write only the two given entries and add one to the vote counter, atomically."""
        raise NotImplementedError

    @abstractmethod
    def append_vote_event(self, event):
        """Store a VoteEvent and return its id."""
        raise NotImplementedError

    @abstractmethod
    def record_unique_voter(self, actor_id, timestamp):
        raise NotImplementedError

    @abstractmethod
    def count_unique_voters(self):
        raise NotImplementedError

    @abstractmethod
    def get_user_votes(self, actor_id):
        """Vote events cast by `actor_id`, as dicts with id, userId, winnerId, loserId and timestamp."""
        raise NotImplementedError
