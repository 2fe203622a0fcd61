"""
Unit tests for gist backup and restore.
"""

import json
import shutil
import tempfile
from unittest.mock import Mock

import pytest

from app.integrations.base_client import AuthenticationError, NetworkError
from app.integrations.gist_client import GistNotFoundError
from app.services.config_service import AppSettings, ConfigService
from app.services.data_service import DataService
from app.services.storage.local_store import LocalStore
from app.services.sync_service import (
    GIST_DESCRIPTION,
    GIST_FILENAME,
    GIST_NOT_FOUND_MESSAGE,
    SyncService,
    SyncStatus,
)


class TestSyncService:
    """Test cases for SyncService."""

    @pytest.fixture
    def temp_data_dir(self):
        temp_dir = tempfile.mkdtemp()
        yield temp_dir
        shutil.rmtree(temp_dir)

    @pytest.fixture
    def store(self, temp_data_dir):
        return LocalStore(temp_data_dir)

    @pytest.fixture
    def data_service(self, store):
        return DataService(store)

    @pytest.fixture
    def config_service(self, store, temp_data_dir):
        return ConfigService(store, AppSettings(data_path=temp_data_dir, master_key="test-key"))

    @pytest.fixture
    def client(self):
        return Mock()

    @pytest.fixture
    def client_factory(self, client):
        return Mock(return_value=client)

    @pytest.fixture
    def sync_service(self, data_service, config_service, client_factory):
        return SyncService(data_service, config_service, client_factory=client_factory)

    def _configure(self, config_service, token="ghp_token", gist_id=""):
        config_service.update_sync_config(github_token=token, gist_id=gist_id)

    @staticmethod
    def _gist(content, **file_fields):
        entry = {"filename": GIST_FILENAME, "content": content}
        entry.update(file_fields)
        return {"id": "abc", "files": {GIST_FILENAME: entry}}

    def test_upload_without_token_fails_precondition(self, sync_service, client_factory):
        result = sync_service.upload()

        assert result.status == SyncStatus.ERROR
        assert result.precondition_failed is True
        client_factory.assert_not_called()

    def test_upload_creates_gist_and_stores_id(self, sync_service, config_service, client):
        self._configure(config_service)
        client.create_gist.return_value = {"id": "new-gist"}

        result = sync_service.upload()

        assert result.ok
        assert result.message == "Upload Successful!"
        client.update_gist.assert_not_called()
        files = client.create_gist.call_args[0][0]
        assert client.create_gist.call_args[1] == {"description": GIST_DESCRIPTION, "public": False}
        payload = json.loads(files[GIST_FILENAME])
        assert set(payload) == {"assets", "trades", "manualPnL", "airdrops", "lastUpdated"}
        assert payload["assets"][0]["ticker"] == "AAPL"

        config = config_service.get_sync_config()
        assert config.gist_id == "new-gist"
        assert config.last_sync_time is not None

    def test_upload_updates_existing_gist(self, sync_service, config_service, client, client_factory):
        self._configure(config_service, gist_id="abc")

        result = sync_service.upload()

        assert result.ok
        client.create_gist.assert_not_called()
        assert client.update_gist.call_args[0][0] == "abc"
        client_factory.assert_called_once_with("ghp_token", timeout=10.0)

    def test_upload_to_missing_gist_does_not_create(self, sync_service, config_service, client):
        self._configure(config_service, gist_id="gone")
        client.update_gist.side_effect = GistNotFoundError("Gist not found", 404)

        result = sync_service.upload()

        assert result.status == SyncStatus.ERROR
        assert result.message == GIST_NOT_FOUND_MESSAGE
        assert result.precondition_failed is False
        client.create_gist.assert_not_called()
        assert config_service.get_sync_config().gist_id == "gone"
        assert config_service.get_sync_config().last_sync_time is None

    def test_upload_network_error(self, sync_service, config_service, client):
        self._configure(config_service)
        client.create_gist.side_effect = NetworkError("timed out")

        result = sync_service.upload()

        assert result.status == SyncStatus.ERROR
        assert "timed out" in result.message
        assert sync_service.status == SyncStatus.ERROR

    def test_download_requires_token_and_gist(self, sync_service, config_service, client_factory):
        self._configure(config_service, gist_id="")
        result = sync_service.download()

        assert result.precondition_failed is True
        client_factory.assert_not_called()

    def test_download_restores_present_collections(self, sync_service, config_service, data_service, client):
        self._configure(config_service, gist_id="abc")
        backup = {
            "assets": [{"id": "9", "name": "Gold", "type": "STOCK", "quantity": 1, "currentPrice": 2000}],
            "trades": [],
            "lastUpdated": "2024-05-01T00:00:00",
        }
        client.get_gist.return_value = self._gist(json.dumps(backup))

        result = sync_service.download()

        assert result.ok
        assert result.message == "Data Restored!"
        assert [a.id for a in data_service.assets] == ["9"]
        assert data_service.trades == []
        # Missing keys leave the local collection alone
        assert [p.name for p in data_service.airdrops] == ["Example Layer2"]
        assert config_service.get_sync_config().last_sync_time is not None

    def test_download_empty_list_clears_collection(self, sync_service, config_service, data_service, client):
        self._configure(config_service, gist_id="abc")
        client.get_gist.return_value = self._gist(json.dumps({"airdrops": []}))

        assert sync_service.download().ok
        assert data_service.airdrops == []
        assert len(data_service.assets) == 3

    def test_download_skips_non_list_values(self, sync_service, config_service, data_service, client):
        self._configure(config_service, gist_id="abc")
        client.get_gist.return_value = self._gist(json.dumps({"assets": {"id": "1"}, "manualPnL": [
            {"id": "p1", "month": "2024-01", "amount": 5}
        ]}))

        assert sync_service.download().ok
        assert len(data_service.assets) == 3
        assert [e.id for e in data_service.pnl_entries] == ["p1"]

    def test_download_truncated_file_uses_raw_url(self, sync_service, config_service, data_service, client):
        self._configure(config_service, gist_id="abc")
        client.get_gist.return_value = self._gist("{\"assets\": [", truncated=True, raw_url="https://raw/x")
        client.get_raw.return_value = json.dumps({"assets": []})

        assert sync_service.download().ok
        client.get_raw.assert_called_once_with("https://raw/x")
        assert data_service.assets == []

    def test_download_missing_file(self, sync_service, config_service, client):
        self._configure(config_service, gist_id="abc")
        client.get_gist.return_value = {"id": "abc", "files": {"other.json": {"content": "{}"}}}

        result = sync_service.download()

        assert result.status == SyncStatus.ERROR
        assert result.message == "Invalid Gist format"

    def test_download_invalid_json(self, sync_service, config_service, data_service, client):
        self._configure(config_service, gist_id="abc")
        client.get_gist.return_value = self._gist("not json")

        result = sync_service.download()

        assert result.status == SyncStatus.ERROR
        assert len(data_service.assets) == 3
        assert config_service.get_sync_config().last_sync_time is None

    def test_download_auth_failure(self, sync_service, config_service, client):
        self._configure(config_service, gist_id="abc")
        client.get_gist.side_effect = AuthenticationError("github rejected the credentials", 401)

        result = sync_service.download()

        assert result.status == SyncStatus.ERROR
        assert "401" in result.message
        assert "gist scope" in result.message

    def test_download_drops_duplicate_ids(self, sync_service, config_service, data_service, client):
        self._configure(config_service, gist_id="abc")
        record = {"id": "1", "month": "2024-01", "amount": 5}
        client.get_gist.return_value = self._gist(json.dumps({"manualPnL": [record, dict(record, month="2024-02")]}))

        assert sync_service.download().ok
        assert [e.month for e in data_service.pnl_entries] == ["2024-01"]

    def test_build_payload_round_trips(self, sync_service, data_service):
        payload = sync_service.build_payload()
        restored = json.loads(json.dumps(payload))
        for name in ("assets", "trades", "manualPnL", "airdrops"):
            assert restored[name] == data_service.export_dataset()[name]
