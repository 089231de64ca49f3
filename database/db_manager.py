import os
import json
import sqlite3
import tempfile
import time
from contextlib import contextmanager

from database.rating_store import (
    AggregateRatingRecord,
    MalformedPersistedData,
    RatingStore,
    StoreUnavailable,
)
from utilities.helpers import log_message

GLOBAL_RATINGS_KEY = 'global-ratings'
TOTAL_VOTES_KEY = 'total-votes'
LAST_UPDATED_KEY = 'global-last-updated'
USER_ID_KEY = 'user-id'
ACTIVE_TAB_KEY = 'active-tab'


def ratings_key(actor_id):
    return f'ratings-{actor_id}'


def vote_count_key(actor_id):
    return f'vote-count-{actor_id}'


class DatabaseManager(RatingStore):
    """
    Local SQLite key-value store used when no remote backend is available.
    Each call opens its own connection, so one manager can be shared between threads.
    """
    def __init__(self, db_name='albumvote.db', db_dir='database', timeout=30.0):
        # Ensure the database directory exists
        os.makedirs(db_dir, exist_ok=True)
        self.db_name = os.path.join(db_dir, db_name)
        self.timeout = timeout
        self.create_tables()

    @contextmanager
    def connect(self):
        # autocommit mode; transactions are opened explicitly
        try:
            conn = sqlite3.connect(self.db_name, timeout=self.timeout, isolation_level=None)
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Cannot open {self.db_name}: {e}") from e
        try:
            yield conn
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Local database error: {e}") from e
        finally:
            conn.close()

    @contextmanager
    def transaction(self):
        with self.connect() as conn:
            # IMMEDIATE takes the write lock up front so read-merge-write is atomic
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except Exception:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def create_tables(self):
        with self.transaction() as conn:
            conn.execute("""
            CREATE TABLE IF NOT EXISTS kv (
                key TEXT PRIMARY KEY,
                value TEXT
            )"""
            )
            # Append-only vote log
            conn.execute("""
            CREATE TABLE IF NOT EXISTS votes (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                actor_id TEXT NOT NULL,
                winner_id TEXT NOT NULL,
                loser_id TEXT NOT NULL,
                timestamp INTEGER NOT NULL
            )"""
            )
            conn.execute("""
            CREATE TABLE IF NOT EXISTS unique_users (
                actor_id TEXT PRIMARY KEY,
                first_vote INTEGER NOT NULL
            )"""
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_votes_actor_id ON votes(actor_id)"
            )

    # --- raw key/value access ---

    def _get(self, conn, key):
        row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def _set(self, conn, key, value):
        conn.execute(
            "INSERT INTO kv (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, value)
        )

    def get_value(self, key):
        with self.connect() as conn:
            return self._get(conn, key)

    def set_value(self, key, value):
        with self.transaction() as conn:
            self._set(conn, key, None if value is None else str(value))

    def _load_json(self, key, raw):
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise MalformedPersistedData(f"Corrupt record under {key!r}: {e}") from e
        if not isinstance(data, dict):
            raise MalformedPersistedData(f"Record under {key!r} is not a mapping")
        return data

    def _load_int(self, key, raw, default=0):
        if raw is None:
            return default
        try:
            return int(raw)
        except ValueError as e:
            raise MalformedPersistedData(f"Corrupt counter under {key!r}: {raw!r}") from e

    # --- RatingStore ---

    def get_user_ratings(self, actor_id):
        key = ratings_key(actor_id)
        return self._load_json(key, self.get_value(key))

    def put_user_ratings(self, actor_id, ratings):
        self.set_value(ratings_key(actor_id), json.dumps(ratings))
        return True

    def get_global_aggregate(self):
        with self.connect() as conn:
            raw_ratings = self._get(conn, GLOBAL_RATINGS_KEY)
            raw_total = self._get(conn, TOTAL_VOTES_KEY)
            raw_updated = self._get(conn, LAST_UPDATED_KEY)
        if raw_ratings is None and raw_total is None:
            return None
        return AggregateRatingRecord(
            ratings=self._load_json(GLOBAL_RATINGS_KEY, raw_ratings) or {},
            total_votes=self._load_int(TOTAL_VOTES_KEY, raw_total),
            last_updated=self._load_int(LAST_UPDATED_KEY, raw_updated, default=None),
        )

    def merge_global_aggregate(self, winner_id, new_winner_rating, loser_id, new_loser_rating):
        now = int(time.time() * 1000)
        with self.transaction() as conn:
            try:
                ratings = self._load_json(GLOBAL_RATINGS_KEY, self._get(conn, GLOBAL_RATINGS_KEY)) or {}
            except MalformedPersistedData:
                ratings = {}
            try:
                total = self._load_int(TOTAL_VOTES_KEY, self._get(conn, TOTAL_VOTES_KEY))
            except MalformedPersistedData:
                total = 0

            ratings[winner_id] = new_winner_rating
            ratings[loser_id] = new_loser_rating

            self._set(conn, GLOBAL_RATINGS_KEY, json.dumps(ratings))
            self._set(conn, TOTAL_VOTES_KEY, str(total + 1))
            self._set(conn, LAST_UPDATED_KEY, str(now))
        return True

    def append_vote_event(self, event):
        with self.transaction() as conn:
            cur = conn.execute(
                "INSERT INTO votes (actor_id, winner_id, loser_id, timestamp) VALUES (?, ?, ?, ?)",
                (event.actor_id, event.winner_id, event.loser_id, event.timestamp)
            )
            return str(cur.lastrowid)

    def record_unique_voter(self, actor_id, timestamp):
        with self.transaction() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO unique_users (actor_id, first_vote) VALUES (?, ?)",
                (actor_id, timestamp)
            )
        return True

    def count_unique_voters(self):
        with self.connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM unique_users").fetchone()[0]

    def get_user_votes(self, actor_id):
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT id, actor_id, winner_id, loser_id, timestamp FROM votes "
                "WHERE actor_id = ? ORDER BY id",
                (actor_id,)
            ).fetchall()
        return [
            {'id': str(r[0]), 'userId': r[1], 'winnerId': r[2], 'loserId': r[3], 'timestamp': r[4]}
            for r in rows
        ]


def open_local_store(db_name='albumvote.db', db_dir='database', logger=None):
    """
    The configured database, or a scratch one in a temp directory when the
    configured file cannot be opened. Votes still count in the scratch store
    but do not survive the run.
    """
    logger = logger or log_message
    try:
        return DatabaseManager(db_name, db_dir)
    except (StoreUnavailable, OSError) as e:
        scratch_dir = tempfile.mkdtemp(prefix='albumvote-')
        logger(f"Local database unavailable ({e}). Votes this session will not be saved.")
        return DatabaseManager(db_name, scratch_dir)
