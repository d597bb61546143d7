"""
Shared fixtures: every test gets its own db.json in a temp directory
"""
import pytest
from fastapi.testclient import TestClient

from carecompass.database import JsonFileStore, set_store
from carecompass.main import app


@pytest.fixture
def store(tmp_path):
    """Temporary JSON store installed as the app's store"""
    temp_store = JsonFileStore(str(tmp_path / "db.json"))
    set_store(temp_store)
    yield temp_store
    set_store(None)


@pytest.fixture
def client(store):
    """Test client bound to the temporary store"""
    return TestClient(app)
