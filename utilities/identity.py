# utilities/identity.py

import random
import string
from dataclasses import dataclass
from urllib.parse import urlencode, urlsplit, urlunsplit, parse_qsl

from utilities.helpers import timestamp_ms

BASE36 = string.digits + string.ascii_lowercase


@dataclass(frozen=True)
class Identity:
    viewer_id: str    # casts votes
    subject_id: str   # whose personal ranking is shown

    @property
    def is_viewing_other(self):
        return self.viewer_id != self.subject_id


def generate_actor_id(now=None, rng=None):
    """Opaque id of the form user-<epoch ms>-<9 base36 chars>."""
    rng = rng or random.SystemRandom()
    suffix = ''.join(rng.choice(BASE36) for _ in range(9))
    return f"user-{timestamp_ms(now)}-{suffix}"


def resolve_identity(link_user, persistence, rng=None):
    """
    The viewer id always comes from local storage (created on first run);
    a shared-link user only changes whose ranking is displayed.
    """
    viewer_id = persistence.get_saved_user_id()
    if not viewer_id:
        viewer_id = generate_actor_id(rng=rng)
        persistence.save_user_id(viewer_id)

    link_user = (link_user or '').strip()
    return Identity(viewer_id=viewer_id, subject_id=link_user or viewer_id)


def share_url(base_url, actor_id):
    scheme, netloc, path, query, fragment = urlsplit(base_url)
    params = [(k, v) for k, v in parse_qsl(query) if k != 'user']
    params.append(('user', actor_id))
    return urlunsplit((scheme, netloc, path, urlencode(params), fragment))
