"""
Configuration service for runtime settings and the persisted gist sync settings.
"""

import logging
import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from ..models.sync_config import SyncConfig
from ..utils.encryption import CredentialEncryption, EncryptionError
from ..utils.serialization import DataSerializer
from .storage.local_store import LocalStore

logger = logging.getLogger(__name__)

SYNC_CONFIG_KEY = "smartwealth_sync_config"
DEFAULT_PROXY_URL = "https://api.allorigins.win/get?url="
DEFAULT_MASTER_KEY = "smartwealth-local-master-key"
_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class AppSettings:
    """Runtime settings resolved from the environment."""

    data_path: str = "data"
    log_level: str = "INFO"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    use_cors_proxy: bool = False
    cors_proxy_url: str = DEFAULT_PROXY_URL
    request_timeout: float = 10.0
    master_key: str = DEFAULT_MASTER_KEY

    @property
    def proxy_url(self) -> Optional[str]:
        return self.cors_proxy_url if self.use_cors_proxy else None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AppSettings":
        """
        Build settings from environment variables.

        The Gemini key is read from GEMINI_API_KEY, then API_KEY; an empty key
        disables the search fallback.
        """
        env = os.environ if environ is None else environ

        try:
            timeout = float(env.get("SMARTWEALTH_REQUEST_TIMEOUT", "10"))
        except ValueError:
            logger.warning("Invalid SMARTWEALTH_REQUEST_TIMEOUT, using 10 seconds")
            timeout = 10.0

        return cls(
            data_path=env.get("DATA_PATH", "data"),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            gemini_api_key=(env.get("GEMINI_API_KEY") or env.get("API_KEY") or "").strip(),
            gemini_model=env.get("GEMINI_MODEL", "gemini-2.5-flash"),
            use_cors_proxy=env.get("SMARTWEALTH_USE_PROXY", "").strip().lower() in _TRUTHY,
            cors_proxy_url=env.get("SMARTWEALTH_PROXY_URL", DEFAULT_PROXY_URL),
            request_timeout=timeout if timeout > 0 else 10.0,
            master_key=env.get("SMARTWEALTH_MASTER_KEY") or DEFAULT_MASTER_KEY,
        )


class ConfigService:
    """
    Service for reading runtime settings and persisting the gist sync config.

    The GitHub token is encrypted before it is written to the store.
    """

    def __init__(self, store: LocalStore, settings: Optional[AppSettings] = None):
        """
        Initialize configuration service.

        Args:
            store: Key-value store holding the sync config
            settings: Runtime settings; read from the environment when omitted
        """
        self.store = store
        self.settings = settings or AppSettings.from_env()
        self.encryption_manager = CredentialEncryption(self.settings.master_key)
        self._sync_config: Optional[SyncConfig] = None

    def get_settings(self) -> AppSettings:
        return self.settings

    def get_sync_config(self) -> SyncConfig:
        """Return the sync config with a decrypted token."""
        if self._sync_config is None:
            self._sync_config = self._load_sync_config()
        return replace(self._sync_config)

    def _load_sync_config(self) -> SyncConfig:
        raw = self.store.load(SYNC_CONFIG_KEY, None)
        if not isinstance(raw, dict):
            if raw is not None:
                logger.error("Stored sync config is not an object, using defaults")
            return SyncConfig()

        config = DataSerializer.deserialize_sync_config(raw)
        if config.github_token:
            try:
                config.github_token = self.encryption_manager.decrypt_credential(config.github_token)
            except EncryptionError:
                logger.warning("Stored GitHub token is not encrypted with the current key, using it as-is")
        return config

    def save_sync_config(self, config: SyncConfig) -> bool:
        """Persist the sync config, encrypting the token."""
        self._sync_config = replace(config)

        stored = replace(config)
        if stored.github_token.strip():
            stored.github_token = self.encryption_manager.encrypt_credential(stored.github_token.strip())
        else:
            stored.github_token = ""

        return self.store.save(SYNC_CONFIG_KEY, DataSerializer.serialize_sync_config(stored))

    def update_sync_config(self, **changes) -> SyncConfig:
        """Apply field changes (github_token, gist_id, last_sync_time) and persist."""
        config = replace(self.get_sync_config(), **changes)
        self.save_sync_config(config)
        return config

    def clear_gist_id(self) -> SyncConfig:
        """Forget the remote gist so the next upload creates a new one."""
        logger.info("Clearing stored gist id")
        return self.update_sync_config(gist_id="")
