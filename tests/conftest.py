"""Shared test fixtures for labsite package."""

import json

import pytest
from fakes import FIXED_YEAR, FakeRemote

from labsite.content.store import PartitionedContentStore


@pytest.fixture
def fake_remote():
    """Empty in-memory remote."""
    return FakeRemote()


@pytest.fixture
def store(fake_remote):
    """Store over the fake remote whose current year is 2024."""
    return PartitionedContentStore(fake_remote, year_provider=lambda: FIXED_YEAR, workers=2)


@pytest.fixture
def sample_json_file(tmp_path):
    """Create a sample JSON file for testing."""
    data = {"key": "value", "number": 42}
    file_path = tmp_path / "sample.json"
    file_path.write_text(json.dumps(data))
    return file_path


@pytest.fixture
def mock_site_root(tmp_path, monkeypatch):
    """Create a mock site structure with .labsite/ directory."""
    data_dir = tmp_path / ".labsite"
    (data_dir / "collections").mkdir(parents=True)
    (data_dir / "cache").mkdir()
    (data_dir / "backups").mkdir()

    # Mock get_site_root to return our tmp_path
    from labsite.core import config

    # Clear the lru_cache first
    config.get_site_root.cache_clear()
    monkeypatch.setattr(config, "get_site_root", lambda: tmp_path)

    return tmp_path


@pytest.fixture
def admin_site(mock_site_root):
    """Site with a local admin account (admin@lab.edu / secret)."""
    import yaml

    from labsite.auth.session import hash_password

    config_path = mock_site_root / ".labsite" / "config.yaml"
    config_path.write_text(
        yaml.dump({"auth": {"provider": "local", "users": {"admin@lab.edu": hash_password("secret")}}})
    )
    return mock_site_root


@pytest.fixture
def signed_in(admin_site):
    """Site with the local admin already signed in."""
    from labsite.services import get_session_manager

    get_session_manager().sign_in("admin@lab.edu", "secret")
    return admin_site
