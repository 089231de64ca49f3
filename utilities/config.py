# utilities/config.py

import os
from dotenv import load_dotenv

from processing.catalog import K_FACTOR

DEFAULTS = {
    'k_factor':            K_FACTOR,
    'db_dir':              'database',
    'db_name':             'albumvote.db',
    'catalog_path':        None,
    'share_base_url':      'https://albumvote.app/',
    'firebase_project_id': None,
    'firebase_api_key':    None,
    'request_timeout':     10.0,
}

ENV_VARS = {
    'k_factor':            'ALBUMVOTE_K_FACTOR',
    'db_dir':              'ALBUMVOTE_DB_DIR',
    'db_name':             'ALBUMVOTE_DB_NAME',
    'catalog_path':        'ALBUMVOTE_CATALOG',
    'share_base_url':      'ALBUMVOTE_SHARE_URL',
    'firebase_project_id': 'FIREBASE_PROJECT_ID',
    'firebase_api_key':    'FIREBASE_API_KEY',
    'request_timeout':     'ALBUMVOTE_TIMEOUT',
}


def _positive_number(raw, default, cast):
    try:
        value = cast(raw)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def load_configuration(env=None):
    """
    Build the app configuration dict.
    `env` overrides the process environment (used by tests); otherwise .env is loaded first.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    config = dict(DEFAULTS)
    for key, var in ENV_VARS.items():
        raw = env.get(var)
        if raw is None or str(raw).strip() == '':
            continue
        raw = str(raw).strip()
        if key in ('k_factor', 'request_timeout'):
            config[key] = _positive_number(raw, DEFAULTS[key], float)
        else:
            config[key] = raw
    return config
