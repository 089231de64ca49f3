import os
import re
import time

import requests
from dotenv import load_dotenv

from database.rating_store import (
    AggregateRatingRecord,
    MalformedPersistedData,
    RatingStore,
    StoreUnavailable,
)

FIRESTORE_URL = 'https://firestore.googleapis.com/v1'
GLOBAL_DOC = 'globalELO/ratings'

_SIMPLE_FIELD = re.compile(r'^[a-zA-Z_][a-zA-Z_0-9]*$')


def encode_value(value):
    """Python value -> Firestore REST `Value`."""
    if value is None:
        return {'nullValue': None}
    if isinstance(value, bool):
        return {'booleanValue': value}
    if isinstance(value, int):
        return {'integerValue': str(value)}
    if isinstance(value, float):
        return {'doubleValue': value}
    if isinstance(value, str):
        return {'stringValue': value}
    if isinstance(value, dict):
        return {'mapValue': {'fields': encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {'arrayValue': {'values': [encode_value(v) for v in value]}}
    raise TypeError(f"Cannot encode {type(value).__name__} for Firestore")


def encode_fields(data):
    return {str(k): encode_value(v) for k, v in data.items()}


def decode_value(value):
    """Firestore REST `Value` -> Python value."""
    if not isinstance(value, dict) or len(value) != 1:
        raise MalformedPersistedData(f"Not a Firestore value: {value!r}")
    kind, raw = next(iter(value.items()))
    try:
        if kind == 'nullValue':
            return None
        if kind == 'booleanValue':
            return bool(raw)
        if kind == 'integerValue':
            return int(raw)
        if kind == 'doubleValue':
            return float(raw)
        if kind in ('stringValue', 'timestampValue', 'referenceValue'):
            return raw
        if kind == 'mapValue':
            return decode_fields(raw.get('fields', {}))
        if kind == 'arrayValue':
            return [decode_value(v) for v in raw.get('values', [])]
    except (TypeError, ValueError, AttributeError) as e:
        raise MalformedPersistedData(f"Bad {kind}: {raw!r}") from e
    raise MalformedPersistedData(f"Unsupported Firestore value type: {kind}")


def decode_fields(fields):
    return {k: decode_value(v) for k, v in (fields or {}).items()}


def field_path(*parts):
    """Dotted field path, backtick-quoting segments that are not plain identifiers."""
    quoted = []
    for part in parts:
        if _SIMPLE_FIELD.match(part):
            quoted.append(part)
        else:
            escaped = part.replace('\\', '\\\\').replace('`', '\\`')
            quoted.append(f'`{escaped}`')
    return '.'.join(quoted)


def _now_ms():
    return int(time.time() * 1000)


class FirestoreClient(RatingStore):
    def __init__(self, project_id=None, api_key=None, session=None, timeout=10):
        """Credentials default to FIREBASE_PROJECT_ID / FIREBASE_API_KEY from the environment or .env"""
        load_dotenv()
        self.project_id = project_id or os.getenv('FIREBASE_PROJECT_ID')
        self.api_key = api_key or os.getenv('FIREBASE_API_KEY')
        self.session = session or requests.Session()
        self.timeout = timeout

    @property
    def configured(self):
        return bool(self.project_id and self.api_key)

    @property
    def documents_root(self):
        return f'projects/{self.project_id}/databases/(default)/documents'

    def _url(self, path=''):
        root = f'{FIRESTORE_URL}/{self.documents_root}'
        return f'{root}/{path}' if path and not path.startswith(':') else root + path

    def _request(self, method, path='', allow=(), **kwargs):
        if not self.configured:
            raise StoreUnavailable("Firestore is not configured")

        params = dict(kwargs.pop('params', None) or {})
        params['key'] = self.api_key
        try:
            r = self.session.request(
                method, self._url(path), params=params, timeout=self.timeout, **kwargs
            )
            if r.status_code in allow:
                return r
            r.raise_for_status()
            return r
        except requests.HTTPError as e:
            raise StoreUnavailable(f"Firestore {method} {path or '/'} failed: {e}") from e
        except requests.RequestException as e:
            raise StoreUnavailable(f"Firestore unreachable: {e}") from e

    def _json(self, r):
        try:
            return r.json()
        except ValueError as e:
            raise MalformedPersistedData(f"Invalid JSON from Firestore: {e}") from e

    def get_document(self, path):
        r = self._request('GET', path, allow=(404,))
        if r.status_code == 404:
            return None
        return decode_fields(self._json(r).get('fields', {}))

    # --- RatingStore ---

    def get_user_ratings(self, actor_id):
        doc = self.get_document(f'userStats/{actor_id}')
        if not doc:
            return None
        ratings = doc.get('personalRatings')
        if ratings is None:
            return None
        if not isinstance(ratings, dict):
            raise MalformedPersistedData(f"personalRatings for {actor_id!r} is not a map")
        return ratings

    def put_user_ratings(self, actor_id, ratings):
        body = {'fields': encode_fields({
            'personalRatings': dict(ratings),
            'lastUpdated': _now_ms(),
        })}
        self._request('PATCH', f'userStats/{actor_id}', json=body)
        return True

    def get_global_aggregate(self):
        doc = self.get_document(GLOBAL_DOC)
        if doc is None:
            return None
        ratings = doc.get('ratings') or {}
        if not isinstance(ratings, dict):
            raise MalformedPersistedData("globalELO ratings field is not a map")
        try:
            total = int(doc.get('totalVotes') or 0)
        except (TypeError, ValueError) as e:
            raise MalformedPersistedData("globalELO totalVotes is not a number") from e
        return AggregateRatingRecord(
            ratings=ratings,
            total_votes=total,
            last_updated=doc.get('lastUpdated'),
        )

    def merge_global_aggregate(self, winner_id, new_winner_rating, loser_id, new_loser_rating):
        # Only the two ratings and lastUpdated are in the mask; the counter is a server-side increment.
        write = {
            'update': {
                'name': f'{self.documents_root}/{GLOBAL_DOC}',
                'fields': encode_fields({
                    'ratings': {winner_id: new_winner_rating, loser_id: new_loser_rating},
                    'lastUpdated': _now_ms(),
                }),
            },
            'updateMask': {'fieldPaths': [
                field_path('ratings', winner_id),
                field_path('ratings', loser_id),
                'lastUpdated',
            ]},
            'updateTransforms': [
                {'fieldPath': 'totalVotes', 'increment': {'integerValue': '1'}},
            ],
        }
        self._request('POST', ':commit', json={'writes': [write]})
        return True

    def append_vote_event(self, event):
        body = {'fields': encode_fields({
            'userId': event.actor_id,
            'winnerId': event.winner_id,
            'loserId': event.loser_id,
            'timestamp': event.timestamp,
        })}
        r = self._request('POST', 'votes', json=body)
        name = self._json(r).get('name', '')
        return name.rsplit('/', 1)[-1] or None

    def record_unique_voter(self, actor_id, timestamp):
        # createDocument refuses to overwrite, so firstVote keeps its original value
        body = {'fields': encode_fields({'firstVote': timestamp})}
        self._request('POST', 'uniqueUsers', allow=(409,),
                      params={'documentId': actor_id}, json=body)
        return True

    def count_unique_voters(self):
        body = {'structuredAggregationQuery': {
            'structuredQuery': {'from': [{'collectionId': 'uniqueUsers'}]},
            'aggregations': [{'alias': 'count', 'count': {}}],
        }}
        r = self._request('POST', ':runAggregationQuery', json=body)
        for row in self._json(r):
            fields = row.get('result', {}).get('aggregateFields', {})
            if 'count' in fields:
                return decode_value(fields['count'])
        return 0

    def get_user_votes(self, actor_id):
        body = {'structuredQuery': {
            'from': [{'collectionId': 'votes'}],
            'where': {'fieldFilter': {
                'field': {'fieldPath': 'userId'},
                'op': 'EQUAL',
                'value': encode_value(actor_id),
            }},
        }}
        r = self._request('POST', ':runQuery', json=body)
        votes = []
        for row in self._json(r):
            doc = row.get('document')
            if not doc:
                continue
            vote_id = doc.get('name', '').rsplit('/', 1)[-1]
            votes.append({'id': vote_id, **decode_fields(doc.get('fields'))})
        return votes
