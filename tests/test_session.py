"""AuthSession and store tests: token lifecycle and device id stability."""

import json
import uuid

import pytest

from shopai.config import ClientSettings, load_settings
from shopai.session import AuthSession, JSONFileStore, MemoryStore


class TestDeviceId:

    def test_generated_once_and_stable(self):
        store = MemoryStore()
        session = AuthSession(store)
        first = session.device_id
        assert first == session.device_id
        assert store.get("deviceId") == first

    def test_uppercase_uuid(self):
        device_id = AuthSession(MemoryStore()).device_id
        assert device_id == device_id.upper()
        uuid.UUID(device_id)

    def test_survives_restart(self, tmp_path):
        path = tmp_path / "state.json"
        first = AuthSession(JSONFileStore(path)).device_id
        assert AuthSession(JSONFileStore(path)).device_id == first, (
            "Device id must persist across process restarts"
        )

    def test_survives_sign_out(self):
        session = AuthSession(MemoryStore())
        device_id = session.device_id
        session.set_token("t1")
        session.clear_token()
        assert session.device_id == device_id


class TestToken:

    def test_loaded_at_construction(self):
        session = AuthSession(MemoryStore({"authToken": "stored"}))
        assert session.token == "stored"
        assert session.is_authenticated

    def test_absent_token(self):
        session = AuthSession(MemoryStore())
        assert session.token is None
        assert not session.is_authenticated

    def test_set_and_clear_persist(self, tmp_path):
        path = tmp_path / "state.json"
        session = AuthSession(JSONFileStore(path))
        session.set_token("t1")
        assert AuthSession(JSONFileStore(path)).token == "t1"

        session.clear_token()
        assert AuthSession(JSONFileStore(path)).token is None


class TestJSONFileStore:

    def test_missing_file_reads_empty(self, tmp_path):
        store = JSONFileStore(tmp_path / "nested" / "state.json")
        assert store.get("authToken") is None

    def test_creates_parent_directories(self, tmp_path):
        path = tmp_path / "nested" / "state.json"
        JSONFileStore(path).set("deviceId", "D1")
        assert json.loads(path.read_text()) == {"deviceId": "D1"}

    def test_no_temp_file_left_behind(self, tmp_path):
        path = tmp_path / "state.json"
        JSONFileStore(path).set("authToken", "t1")
        assert sorted(p.name for p in tmp_path.iterdir()) == ["state.json"]

    def test_delete_absent_key_is_noop(self, tmp_path):
        store = JSONFileStore(tmp_path / "state.json")
        store.delete("authToken")
        assert not store.path.exists()

    def test_rejects_non_object_file(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("[1, 2]")
        with pytest.raises(ValueError):
            JSONFileStore(path).get("authToken")

    def test_rejects_corrupt_file(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json")
        with pytest.raises(ValueError, match="not valid JSON"):
            AuthSession(JSONFileStore(path))


class TestSettings:

    def test_defaults(self, monkeypatch):
        for name in (
            "SHOPAI_API_BASE_URL", "SHOPAI_STATE_PATH", "SHOPAI_REGION",
            "SHOPAI_CURRENCY", "SHOPAI_LOG_LEVEL",
        ):
            monkeypatch.delenv(name, raising=False)
        settings = load_settings()
        assert settings.base_url == "http://localhost:3000/api"
        assert settings.region == "UK"
        assert settings.currency == "GBP"
        assert settings.state_path.name == "state.json"

    def test_env_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("SHOPAI_API_BASE_URL", "https://api.shopai.test/api/")
        monkeypatch.setenv("SHOPAI_STATE_PATH", str(tmp_path / "s.json"))
        monkeypatch.setenv("SHOPAI_REGION", "us")
        monkeypatch.delenv("SHOPAI_CURRENCY", raising=False)
        settings = load_settings()
        assert settings.base_url == "https://api.shopai.test/api"
        assert settings.state_path == tmp_path / "s.json"
        assert settings.region == "US"
        assert settings.currency == "USD", "Currency should follow the region"

    def test_settings_are_frozen(self):
        settings = ClientSettings()
        with pytest.raises(AttributeError):
            settings.base_url = "http://other"
