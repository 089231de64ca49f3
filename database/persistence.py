# database/persistence.py

from database.db_manager import (
    ACTIVE_TAB_KEY,
    USER_ID_KEY,
    vote_count_key,
)
from database.rating_store import (
    AggregateRatingRecord,
    MalformedPersistedData,
    RatingStore,
    StoreUnavailable,
    coerce_rating_map,
)
from processing.catalog import DEFAULT_ALBUMS, INITIAL_RATING
from utilities.helpers import log_message

STORE_ERRORS = (StoreUnavailable, MalformedPersistedData)


class RatingPersistence(RatingStore):
    """
    Remote-first persistence with a local fallback.

    Every operation is tried against the remote store when one is configured;
    failures are logged and the local store takes over. Nothing here raises
    into the rating computation: a failed write returns False and a failed
    read returns None.
    """
    def __init__(self, local, remote=None, catalog=DEFAULT_ALBUMS, logger=None):
        self.local = local
        self.remote = remote
        self.catalog_ids = [album.id for album in catalog]
        self.logger = logger or log_message

    @property
    def remote_enabled(self):
        return self.remote is not None and getattr(self.remote, 'configured', True)

    def _call(self, operation, *args, failed=None):
        if self.remote_enabled:
            try:
                return getattr(self.remote, operation)(*args)
            except STORE_ERRORS as e:
                self.logger(f"Remote store unavailable for {operation}: {e}")
        try:
            return getattr(self.local, operation)(*args)
        except STORE_ERRORS as e:
            self.logger(f"Local store failed for {operation}: {e}")
        return failed

    def _coerce(self, raw, what):
        if raw is None:
            return None
        try:
            return coerce_rating_map(raw, self.catalog_ids, INITIAL_RATING)
        except MalformedPersistedData as e:
            self.logger(f"Discarding malformed {what}: {e}")
            return None

    # --- RatingStore ---

    def get_user_ratings(self, actor_id):
        return self._coerce(self._call('get_user_ratings', actor_id), f"ratings for {actor_id}")

    def put_user_ratings(self, actor_id, ratings):
        return bool(self._call('put_user_ratings', actor_id, ratings, failed=False))

    def get_global_aggregate(self):
        record = self._call('get_global_aggregate')
        if record is None:
            return None
        ratings = self._coerce(record.ratings, "global ratings")
        if ratings is None:
            return None
        return AggregateRatingRecord(
            ratings=ratings,
            total_votes=max(int(record.total_votes or 0), 0),
            last_updated=record.last_updated,
        )

    def merge_global_aggregate(self, winner_id, new_winner_rating, loser_id, new_loser_rating):
        return bool(self._call(
            'merge_global_aggregate', winner_id, new_winner_rating, loser_id, new_loser_rating,
            failed=False,
        ))

    def append_vote_event(self, event):
        return self._call('append_vote_event', event)

    def record_unique_voter(self, actor_id, timestamp):
        return bool(self._call('record_unique_voter', actor_id, timestamp, failed=False))

    def count_unique_voters(self):
        return self._call('count_unique_voters', failed=0)

    def get_user_votes(self, actor_id):
        return self._call('get_user_votes', actor_id, failed=[]) or []

    # --- local-only keys ---

    def _get_local(self, key):
        try:
            return self.local.get_value(key)
        except STORE_ERRORS as e:
            self.logger(f"Local store failed reading {key}: {e}")
            return None

    def _set_local(self, key, value):
        try:
            self.local.set_value(key, value)
            return True
        except STORE_ERRORS as e:
            self.logger(f"Local store failed writing {key}: {e}")
            return False

    def get_vote_count(self, actor_id):
        raw = self._get_local(vote_count_key(actor_id))
        try:
            return max(int(raw), 0) if raw is not None else 0
        except ValueError:
            self.logger(f"Discarding malformed vote count for {actor_id}: {raw!r}")
            return 0

    def put_vote_count(self, actor_id, count):
        return self._set_local(vote_count_key(actor_id), int(count))

    def get_saved_user_id(self):
        return self._get_local(USER_ID_KEY) or None

    def save_user_id(self, actor_id):
        return self._set_local(USER_ID_KEY, actor_id)

    def get_active_tab(self):
        return self._get_local(ACTIVE_TAB_KEY)

    def save_active_tab(self, tab_id):
        return self._set_local(ACTIVE_TAB_KEY, tab_id)
