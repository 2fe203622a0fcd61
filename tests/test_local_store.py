"""
Unit tests for the JSON key-value store.
"""

import json
import shutil
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from app.services.storage.local_store import LocalStore


class TestLocalStore:
    """Test cases for LocalStore."""

    @pytest.fixture
    def temp_data_dir(self):
        """Create temporary directory for test data."""
        temp_dir = tempfile.mkdtemp()
        yield temp_dir
        shutil.rmtree(temp_dir)

    @pytest.fixture
    def store(self, temp_data_dir):
        return LocalStore(temp_data_dir)

    def test_creates_data_directory(self, temp_data_dir):
        nested = Path(temp_data_dir) / "nested" / "data"
        LocalStore(str(nested))
        assert nested.is_dir()

    def test_load_missing_key_returns_default(self, store):
        assert store.load("smartwealth_assets", []) == []
        assert store.load("smartwealth_assets", None) is None

    def test_load_does_not_persist_default(self, store, temp_data_dir):
        store.load("smartwealth_assets", [{"id": "1"}])
        assert not (Path(temp_data_dir) / "smartwealth_assets.json").exists()

    def test_save_then_load(self, store):
        value = [{"id": "1", "quantity": 50, "currentPrice": 175.5}]
        assert store.save("smartwealth_assets", value) is True
        assert store.load("smartwealth_assets", []) == value

    def test_save_preserves_ints(self, store, temp_data_dir):
        store.save("smartwealth_pnl", [{"id": "1", "amount": 100}])
        raw = json.loads((Path(temp_data_dir) / "smartwealth_pnl.json").read_text(encoding="utf-8"))
        assert raw[0]["amount"] == 100
        assert isinstance(raw[0]["amount"], int)

    def test_save_overwrites_whole_value(self, store):
        store.save("smartwealth_trades", [{"id": "1"}, {"id": "2"}])
        store.save("smartwealth_trades", [])
        assert store.load("smartwealth_trades", None) == []

    def test_load_corrupt_json_returns_default(self, store, temp_data_dir):
        (Path(temp_data_dir) / "smartwealth_assets.json").write_text("{not json", encoding="utf-8")
        assert store.load("smartwealth_assets", "fallback") == "fallback"

    def test_save_unserializable_value_returns_false(self, store, temp_data_dir):
        assert store.save("smartwealth_assets", {"bad": object()}) is False
        assert not (Path(temp_data_dir) / "smartwealth_assets.json").exists()
        assert not (Path(temp_data_dir) / "smartwealth_assets.tmp").exists()

    def test_failed_save_keeps_previous_value(self, store):
        store.save("smartwealth_assets", [{"id": "1"}])
        assert store.save("smartwealth_assets", [object()]) is False
        assert store.load("smartwealth_assets", None) == [{"id": "1"}]

    def test_save_reports_os_error(self, store):
        with patch("builtins.open", side_effect=OSError("disk full")):
            assert store.save("smartwealth_assets", []) is False

    def test_invalid_key_rejected(self, store):
        with pytest.raises(ValueError):
            store.load("../escape", None)
        with pytest.raises(ValueError):
            store.save("a/b", [])

    def test_unicode_round_trip(self, store):
        store.save("smartwealth_airdrops", [{"name": "空投"}])
        assert store.load("smartwealth_airdrops", None) == [{"name": "空投"}]
