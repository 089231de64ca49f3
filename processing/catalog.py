# processing/catalog.py

import os
import re
from dataclasses import dataclass
from html import unescape

import pandas as pd

INITIAL_RATING = 1500
K_FACTOR = 32


class InvalidCatalog(ValueError):
    """Raised when a catalog cannot support pairwise voting."""


@dataclass(frozen=True)
class Album:
    id: str
    name: str
    year: int = None
    image: str = ''


DEFAULT_ALBUMS = (
    Album('taylor-swift', 'Taylor Swift', 2006,
          'https://upload.wikimedia.org/wikipedia/en/1/1f/Taylor_Swift_-_Taylor_Swift.png'),
    Album('fearless', 'Fearless', 2008,
          'https://upload.wikimedia.org/wikipedia/en/8/86/Taylor_Swift_-_Fearless.png'),
    Album('speak-now', 'Speak Now', 2010,
          'https://upload.wikimedia.org/wikipedia/en/8/8f/Taylor_Swift_-_Speak_Now_cover.png'),
    Album('red', 'Red', 2012,
          'https://upload.wikimedia.org/wikipedia/en/e/e8/Taylor_Swift_-_Red.png'),
    Album('1989', '1989', 2014,
          'https://upload.wikimedia.org/wikipedia/en/f/f6/Taylor_Swift_-_1989.png'),
    Album('reputation', 'Reputation', 2017,
          'https://upload.wikimedia.org/wikipedia/en/f/f2/Taylor_Swift_-_Reputation.png'),
    Album('lover', 'Lover', 2019,
          'https://upload.wikimedia.org/wikipedia/en/c/cd/Taylor_Swift_-_Lover.png'),
    Album('folklore', 'Folklore', 2020,
          'https://upload.wikimedia.org/wikipedia/en/f/f8/Taylor_Swift_-_Folklore.png'),
    Album('evermore', 'Evermore', 2020,
          'https://upload.wikimedia.org/wikipedia/en/0/0a/Taylor_Swift_-_Evermore.png'),
    Album('midnights', 'Midnights', 2022,
          'https://upload.wikimedia.org/wikipedia/en/9/9f/Midnights_-_Taylor_Swift.png'),
    Album('ttpd', 'The Tortured Poets Department', 2024,
          'https://upload.wikimedia.org/wikipedia/en/9/9c/'
          'Taylor_Swift_-_The_Tortured_Poets_Department_%28album_cover%29.png'),
    Album('life-of-a-showgirl', 'Life of A showgirl', 2024,
          'https://i.scdn.co/image/ab67616d0000b273e5b19c8b86e08fa582f23c16'),
)


def validate_catalog(albums):
    """Return the catalog as a tuple, or raise InvalidCatalog."""
    albums = tuple(albums)
    if len(albums) < 2:
        raise InvalidCatalog(f"At least two albums are required, got {len(albums)}")
    seen = set()
    for album in albums:
        if album.id in seen:
            raise InvalidCatalog(f"Duplicate album id: {album.id!r}")
        seen.add(album.id)
    return albums


def slugify(name):
    slug = re.sub(r'[^a-z0-9]+', '-', str(name).lower()).strip('-')
    return slug


def _parse_year(value):
    m = re.search(r"(\d{4})", str(value or ''))
    return int(m.group(1)) if m else None


_CONTROL_CHARS = re.compile(r'[\x00-\x1f\x7f-\x9f]')


def clean_cell(value):
    """Imported cell as trimmed text. Missing cells become ''; HTML entities are decoded."""
    if value is None or (pd.api.types.is_scalar(value) and pd.isna(value)):
        return ''
    text = str(value)
    # exported sheets sometimes carry double-escaped entities (&amp;amp;)
    decoded = unescape(text)
    while decoded != text:
        text, decoded = decoded, unescape(decoded)
    return _CONTROL_CHARS.sub('', text).strip()


def load_catalog(filepath):
    """
    Load albums from CSV or Excel.
    Recognised headers (any case): id, name (or title/album), year, image (or cover).
    Rows without a name are skipped; a missing id is derived from the name.
    """
    ext = os.path.splitext(filepath)[1].lower()
    if ext == '.csv':
        df = pd.read_csv(filepath, quotechar='"', escapechar='\\', dtype=str)
    elif ext in ('.xls', '.xlsx'):
        df = pd.read_excel(filepath, dtype=str)
    else:
        raise ValueError(f"Unsupported file type: {ext}")

    df.columns = df.columns.str.strip()
    cols_lc = {col.lower(): col for col in df.columns}

    def pick(*names):
        for n in names:
            if n in cols_lc:
                return cols_lc[n]
        return None

    name_col = pick('name', 'title', 'album')
    if name_col is None:
        raise InvalidCatalog(f"No name column found in {filepath}")
    id_col = pick('id')
    year_col = pick('year', 'release_date')
    image_col = pick('image', 'cover', 'coverart')

    albums = []
    for rec in df.to_dict(orient='records'):
        name = clean_cell(rec.get(name_col))
        if not name:
            continue
        album_id = clean_cell(rec.get(id_col)) if id_col else ''
        albums.append(Album(
            id=album_id or slugify(name),
            name=name,
            year=_parse_year(rec.get(year_col)) if year_col else None,
            image=clean_cell(rec.get(image_col)) if image_col else '',
        ))
    return validate_catalog(albums)
