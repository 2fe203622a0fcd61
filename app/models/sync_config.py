from dataclasses import dataclass
from typing import Optional


@dataclass
class SyncConfig:
    """
    Credentials and state for gist backup/restore.
    """

    github_token: str = ""
    gist_id: str = ""
    last_sync_time: Optional[str] = None

    def has_token(self) -> bool:
        return bool(self.github_token and self.github_token.strip())

    def has_gist(self) -> bool:
        return bool(self.gist_id and self.gist_id.strip())
