"""
Backup and restore of the whole dataset through a private GitHub Gist.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional

from ..integrations.base_client import IntegrationError
from ..integrations.gist_client import GistClient, GistNotFoundError
from ..utils.error_handler import DataValidationError, recovery_hint
from ..utils.validators import DataValidator
from .config_service import ConfigService
from .data_service import AIRDROPS, ASSETS, MANUAL_PNL, TRADES, DataService

logger = logging.getLogger(__name__)

GIST_FILENAME = "smartwealth_data.json"
GIST_DESCRIPTION = "SmartWealth HK Backup Data"
BACKUP_COLLECTIONS = (ASSETS, TRADES, MANUAL_PNL, AIRDROPS)

MISSING_TOKEN_MESSAGE = "Please set a GitHub token first"
MISSING_GIST_MESSAGE = "Please set both a GitHub token and a Gist ID"
GIST_NOT_FOUND_MESSAGE = "Gist ID not found. Clear ID to create new."


def _failure_message(action: str, error: IntegrationError) -> str:
    hint = recovery_hint(error)
    return f"{action} failed: {error}" + (f" {hint}" if hint else "")


class SyncStatus(Enum):
    IDLE = "idle"
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class SyncResult:
    """Outcome of an upload or download."""

    status: SyncStatus
    message: str
    precondition_failed: bool = False

    @property
    def ok(self) -> bool:
        return self.status == SyncStatus.SUCCESS


class SyncService:
    """
    Uploads and downloads the tracker data as a single JSON file in a gist.

    Operations run one at a time and are never retried; the caller disables
    the sync controls while ``status`` is IN_PROGRESS.
    """

    def __init__(self, data_service: DataService, config_service: ConfigService,
                 client_factory: Callable[..., GistClient] = GistClient):
        """
        Initialize the sync service.

        Args:
            data_service: Owner of the collections being backed up
            config_service: Source of the token and gist id
            client_factory: Builds a gist client from ``(token, timeout=...)``
        """
        self.data_service = data_service
        self.config_service = config_service
        self.client_factory = client_factory
        self.status = SyncStatus.IDLE
        self.message = ""

    def _client(self, token: str) -> GistClient:
        timeout = self.config_service.get_settings().request_timeout
        return self.client_factory(token, timeout=timeout)

    def _start(self, message: str) -> None:
        self.status = SyncStatus.IN_PROGRESS
        self.message = message

    def _finish(self, status: SyncStatus, message: str, precondition_failed: bool = False) -> SyncResult:
        self.status = status
        self.message = message
        if status == SyncStatus.ERROR:
            logger.error(f"Sync failed: {DataValidator.sanitize_for_logging(message)}")
        else:
            logger.info(message)
        return SyncResult(status, message, precondition_failed)

    def _record_sync_time(self) -> None:
        self.config_service.update_sync_config(last_sync_time=datetime.now().strftime("%Y-%m-%d %H:%M:%S"))

    def build_payload(self) -> Dict[str, Any]:
        """Backup document: every collection plus an ISO timestamp."""
        payload: Dict[str, Any] = dict(self.data_service.export_dataset())
        payload["lastUpdated"] = datetime.now().isoformat()
        return payload

    def upload(self) -> SyncResult:
        """
        Write the current data to the gist, creating it when no id is stored.

        A stored id that no longer exists is reported, never replaced with a
        new gist.
        """
        config = self.config_service.get_sync_config()
        if not config.has_token():
            return self._finish(SyncStatus.ERROR, MISSING_TOKEN_MESSAGE, precondition_failed=True)

        self._start("Uploading...")
        files = {GIST_FILENAME: json.dumps(self.build_payload(), indent=2)}

        try:
            client = self._client(config.github_token)
            if config.has_gist():
                client.update_gist(config.gist_id.strip(), files, description=GIST_DESCRIPTION)
            else:
                created = client.create_gist(files, description=GIST_DESCRIPTION, public=False)
                self.config_service.update_sync_config(gist_id=created["id"])
        except GistNotFoundError:
            return self._finish(SyncStatus.ERROR, GIST_NOT_FOUND_MESSAGE)
        except IntegrationError as e:
            return self._finish(SyncStatus.ERROR, _failure_message("Upload", e))

        self._record_sync_time()
        return self._finish(SyncStatus.SUCCESS, "Upload Successful!")

    def download(self) -> SyncResult:
        """
        Restore collections from the gist.

        Only collections whose key is present in the backup are replaced, so
        an explicit empty list clears a collection and a missing key leaves it
        alone.
        """
        config = self.config_service.get_sync_config()
        if not config.has_token() or not config.has_gist():
            return self._finish(SyncStatus.ERROR, MISSING_GIST_MESSAGE, precondition_failed=True)

        self._start("Downloading...")
        try:
            client = self._client(config.github_token)
            content = self._read_backup_file(client, config.gist_id.strip())
        except GistNotFoundError:
            return self._finish(SyncStatus.ERROR, "Failed to fetch Gist")
        except IntegrationError as e:
            return self._finish(SyncStatus.ERROR, _failure_message("Download", e))

        if content is None:
            return self._finish(SyncStatus.ERROR, "Invalid Gist format")

        try:
            data = json.loads(content)
        except ValueError as e:
            return self._finish(SyncStatus.ERROR, f"Download failed: backup is not valid JSON ({e})")
        if not isinstance(data, dict):
            return self._finish(SyncStatus.ERROR, "Invalid Gist format")

        try:
            restored = self._restore(data)
        except DataValidationError as e:
            return self._finish(SyncStatus.ERROR, f"Download failed: {e.message}")

        self._record_sync_time()
        logger.info(f"Restored collections: {restored}")
        return self._finish(SyncStatus.SUCCESS, "Data Restored!")

    def _read_backup_file(self, client: GistClient, gist_id: str) -> Optional[str]:
        gist = client.get_gist(gist_id)
        files = gist.get("files") or {}
        entry = files.get(GIST_FILENAME)
        if not isinstance(entry, dict):
            return None

        if entry.get("truncated") and entry.get("raw_url"):
            logger.info("Backup file is truncated, fetching raw content")
            return client.get_raw(entry["raw_url"])

        content = entry.get("content")
        return content if isinstance(content, str) and content else None

    def _restore(self, data: Dict[str, Any]) -> Dict[str, int]:
        restored = {}
        for name in BACKUP_COLLECTIONS:
            if name not in data:
                continue
            records = data[name]
            if not isinstance(records, list):
                logger.warning(f"Backup field {name} is not a list, skipping")
                continue
            restored[name] = self.data_service.restore_collection(name, records)
        return restored
