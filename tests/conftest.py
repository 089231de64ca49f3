import pytest

from database.db_manager import DatabaseManager
from processing.catalog import Album


@pytest.fixture
def xyz_catalog():
    return (Album('x', 'X'), Album('y', 'Y'), Album('z', 'Z'))


@pytest.fixture
def db(tmp_path):
    return DatabaseManager(db_name='test.db', db_dir=str(tmp_path))


@pytest.fixture
def log_lines():
    return []
