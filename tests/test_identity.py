import random
import re
from datetime import datetime

from database.persistence import RatingPersistence
from utilities.identity import Identity, generate_actor_id, resolve_identity, share_url


def test_generate_actor_id_format():
    now = datetime(2024, 5, 1, 12, 0, 0)
    actor_id = generate_actor_id(now=now, rng=random.Random(1))
    assert re.fullmatch(r'user-\d+-[0-9a-z]{9}', actor_id)
    assert actor_id.startswith(f"user-{int(now.timestamp() * 1000)}-")


def test_generated_ids_differ():
    assert generate_actor_id() != generate_actor_id()


def test_resolve_identity_creates_and_reuses_viewer(db, xyz_catalog):
    p = RatingPersistence(db, catalog=xyz_catalog)

    first = resolve_identity(None, p)
    second = resolve_identity('', p)

    assert first.viewer_id == second.viewer_id == p.get_saved_user_id()
    assert first.subject_id == first.viewer_id
    assert not first.is_viewing_other


def test_link_user_only_changes_subject(db, xyz_catalog):
    p = RatingPersistence(db, catalog=xyz_catalog)
    p.save_user_id('user-me')

    identity = resolve_identity(' user-friend ', p)

    assert identity == Identity(viewer_id='user-me', subject_id='user-friend')
    assert identity.is_viewing_other
    assert p.get_saved_user_id() == 'user-me'


def test_link_to_self_is_not_viewing_other(db, xyz_catalog):
    p = RatingPersistence(db, catalog=xyz_catalog)
    p.save_user_id('user-me')
    assert not resolve_identity('user-me', p).is_viewing_other


def test_share_url():
    assert share_url('https://albumvote.app/', 'user-1') == 'https://albumvote.app/?user=user-1'
    assert share_url('https://a.app/vote?user=old&tab=x', 'user-2') == \
        'https://a.app/vote?tab=x&user=user-2'
