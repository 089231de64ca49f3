from unittest.mock import Mock

import pytest

from api.firestore_client import FirestoreClient
from database.db_manager import ratings_key, vote_count_key
from database.persistence import RatingPersistence
from database.rating_store import (
    AggregateRatingRecord,
    MalformedPersistedData,
    StoreUnavailable,
    VoteEvent,
    coerce_rating_map,
)


@pytest.fixture
def down_remote():
    remote = Mock(spec=FirestoreClient)
    remote.configured = True
    for name in ('get_user_ratings', 'put_user_ratings', 'get_global_aggregate',
                 'merge_global_aggregate', 'append_vote_event', 'record_unique_voter',
                 'count_unique_voters', 'get_user_votes'):
        getattr(remote, name).side_effect = StoreUnavailable('offline')
    return remote


@pytest.fixture
def broken_local():
    local = Mock()
    for name in ('get_user_ratings', 'put_user_ratings', 'get_global_aggregate',
                 'merge_global_aggregate', 'append_vote_event', 'record_unique_voter',
                 'count_unique_voters', 'get_user_votes', 'get_value', 'set_value'):
        getattr(local, name).side_effect = StoreUnavailable('disk gone')
    return local


def test_coerce_rating_map_validates_against_catalog():
    raw = {'x': 1516.4, 'y': 'junk', 'ghost': 2000, 'z': float('nan')}
    assert coerce_rating_map(raw, ['x', 'y', 'z', 'w'], 1500) == {
        'x': 1516, 'y': 1500, 'z': 1500, 'w': 1500
    }


def test_coerce_rating_map_keeps_zero():
    assert coerce_rating_map({'x': 0}, ['x'], 1500) == {'x': 0}


def test_coerce_rating_map_rejects_non_mapping():
    with pytest.raises(MalformedPersistedData):
        coerce_rating_map(['x'], ['x'], 1500)


def test_local_only_roundtrip(db, xyz_catalog):
    p = RatingPersistence(db, catalog=xyz_catalog)
    assert p.get_user_ratings('alice') is None

    assert p.put_user_ratings('alice', {'x': 1516, 'y': 1484, 'z': 1500})
    assert p.get_user_ratings('alice') == {'x': 1516, 'y': 1484, 'z': 1500}


def test_reads_are_filled_to_the_catalog(db, xyz_catalog):
    p = RatingPersistence(db, catalog=xyz_catalog)
    db.put_user_ratings('alice', {'x': 1600, 'retired-album': 1700})
    assert p.get_user_ratings('alice') == {'x': 1600, 'y': 1500, 'z': 1500}


def test_malformed_local_record_is_treated_as_absent(db, xyz_catalog, log_lines):
    p = RatingPersistence(db, catalog=xyz_catalog, logger=log_lines.append)
    db.set_value(ratings_key('alice'), '{broken')

    assert p.get_user_ratings('alice') is None
    assert any('get_user_ratings' in line for line in log_lines)


def test_remote_is_preferred_when_available(db, xyz_catalog):
    remote = Mock(spec=FirestoreClient)
    remote.configured = True
    remote.get_global_aggregate.return_value = AggregateRatingRecord({'x': 1700}, 12, 5)

    p = RatingPersistence(db, remote, catalog=xyz_catalog)
    record = p.get_global_aggregate()

    assert record.ratings == {'x': 1700, 'y': 1500, 'z': 1500}
    assert record.total_votes == 12
    assert db.get_global_aggregate() is None


def test_unconfigured_remote_is_skipped(db, xyz_catalog):
    remote = Mock(spec=FirestoreClient)
    remote.configured = False

    p = RatingPersistence(db, remote, catalog=xyz_catalog)
    p.merge_global_aggregate('x', 1516, 'y', 1484)

    remote.merge_global_aggregate.assert_not_called()
    assert db.get_global_aggregate().total_votes == 1


def test_remote_failure_falls_back_to_local(db, xyz_catalog, down_remote, log_lines):
    p = RatingPersistence(db, down_remote, catalog=xyz_catalog, logger=log_lines.append)

    assert p.merge_global_aggregate('x', 1516, 'y', 1484)
    assert p.put_user_ratings('alice', {'x': 1516})
    assert p.append_vote_event(VoteEvent('alice', 'x', 'y', 1)) is not None
    assert p.record_unique_voter('alice', 1)

    assert db.get_global_aggregate().ratings == {'x': 1516, 'y': 1484}
    assert p.get_user_ratings('alice')['x'] == 1516
    assert p.count_unique_voters() == 1
    assert [v['winnerId'] for v in p.get_user_votes('alice')] == ['x']
    assert any('Remote store unavailable for merge_global_aggregate' in l for l in log_lines)


def test_all_stores_down_reports_failure(broken_local, down_remote, xyz_catalog, log_lines):
    p = RatingPersistence(broken_local, down_remote, catalog=xyz_catalog,
                          logger=log_lines.append)

    assert p.get_user_ratings('alice') is None
    assert p.put_user_ratings('alice', {'x': 1}) is False
    assert p.get_global_aggregate() is None
    assert p.merge_global_aggregate('x', 1516, 'y', 1484) is False
    assert p.append_vote_event(VoteEvent('alice', 'x', 'y', 1)) is None
    assert p.count_unique_voters() == 0
    assert p.get_user_votes('alice') == []
    assert p.get_vote_count('alice') == 0
    assert p.save_user_id('alice') is False
    assert log_lines


def test_vote_count_and_local_keys(db, xyz_catalog, log_lines):
    p = RatingPersistence(db, catalog=xyz_catalog, logger=log_lines.append)
    assert p.get_vote_count('alice') == 0
    p.put_vote_count('alice', 3)
    assert p.get_vote_count('alice') == 3

    db.set_value(vote_count_key('bob'), 'lots')
    assert p.get_vote_count('bob') == 0

    assert p.get_saved_user_id() is None
    p.save_user_id('user-1')
    assert p.get_saved_user_id() == 'user-1'

    p.save_active_tab('my-rankings-tab')
    assert p.get_active_tab() == 'my-rankings-tab'
