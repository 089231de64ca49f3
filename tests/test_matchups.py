import random

import pytest

from processing.catalog import Album, DEFAULT_ALBUMS, InvalidCatalog
from ranking.matchups import MatchupSampler, pair_key


def make_catalog(n):
    return tuple(Album(f"album-{i}", f"Album {i}") for i in range(n))


def test_pair_key_is_order_independent():
    assert pair_key('red', '1989') == pair_key('1989', 'red')


def test_pair_key_does_not_collide_on_dashed_ids():
    assert pair_key('a-b', 'c') != pair_key('a', 'b-c')


@pytest.mark.parametrize('n', [0, 1])
def test_rejects_catalogs_smaller_than_two(n):
    with pytest.raises(InvalidCatalog):
        MatchupSampler(make_catalog(n))


def test_rejects_duplicate_ids():
    with pytest.raises(InvalidCatalog):
        MatchupSampler([Album('a', 'A'), Album('a', 'Again')])


def test_matchup_sides_are_distinct():
    sampler = MatchupSampler(make_catalog(2), rng=random.Random(1))
    for _ in range(10):
        m = sampler.next()
        assert m.left.id != m.right.id


@pytest.mark.parametrize('seed', [0, 7, 42])
def test_one_epoch_covers_every_pair_exactly_once(seed):
    catalog = make_catalog(6)
    sampler = MatchupSampler(catalog, rng=random.Random(seed))
    assert sampler.total_pairs == 15

    keys = [sampler.next().key for _ in range(sampler.total_pairs)]

    assert len(set(keys)) == 15
    expected = {pair_key(a.id, b.id) for i, a in enumerate(catalog) for b in catalog[i + 1:]}
    assert set(keys) == expected
    assert sampler.remaining_pairs == 0


def test_epoch_resets_after_all_pairs_used():
    sampler = MatchupSampler(make_catalog(4), rng=random.Random(3))
    for _ in range(6):
        sampler.next()

    m = sampler.next()

    assert sampler.used_pairs == {m.key}
    assert sampler.remaining_pairs == 5


def test_default_catalog_epoch():
    sampler = MatchupSampler(DEFAULT_ALBUMS, rng=random.Random(12))
    keys = {sampler.next().key for _ in range(66)}
    assert len(keys) == 66
    sampler.next()


def test_left_is_the_first_drawn_album():
    catalog = make_catalog(3)

    class FixedRng:
        def __init__(self, values):
            self.values = iter(values)

        def randrange(self, n):
            return next(self.values)

    m = MatchupSampler(catalog, rng=FixedRng([2, 2, 0])).next()
    assert (m.left.id, m.right.id) == ('album-2', 'album-0')


def test_matchup_other_side():
    m = MatchupSampler(make_catalog(2), rng=random.Random(0)).next()
    assert m.other(m.left.id) == m.right
    assert m.other(m.right.id) == m.left
    with pytest.raises(ValueError):
        m.other('missing')
