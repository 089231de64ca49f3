import requests

from utilities.helpers import log_message


class CoverArtCache:
    def __init__(self, session=None, logger=None, timeout=10):
        """
        logger: function taking a single string argument for logging (e.g. GUI log_message)
        """
        self.session = session or requests.Session()
        self.logger = logger or log_message
        self.timeout = timeout
        self._cache = {}

    def fetch(self, url):
        """Raw image bytes for `url`, or None. Failures are not retried within a run."""
        if not url:
            return None
        if url in self._cache:
            return self._cache[url]

        data = None
        try:
            r = self.session.get(
                url, headers={'User-Agent': 'AlbumVote/1.0'}, timeout=self.timeout
            )
            r.raise_for_status()
            data = r.content
        except requests.RequestException as e:
            self.logger(f"Cover art error from {url}: {e}")
        self._cache[url] = data
        return data
