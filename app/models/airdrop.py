from dataclasses import dataclass
from enum import Enum
from typing import Optional


class AirdropStatus(Enum):
    NEW = "New"
    FARMING = "Farming"
    WAITLIST = "Waitlist"
    CLAIMABLE = "Claimable"
    FINISHED = "Finished"


class Priority(Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


@dataclass
class AirdropProject:
    """Airdrop farming task tracked by the user."""
    id: str
    name: str
    status: AirdropStatus = AirdropStatus.NEW
    priority: Priority = Priority.MEDIUM
    twitter_url: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.status, str):
            self.status = AirdropStatus(self.status)
        if isinstance(self.priority, str):
            self.priority = Priority(self.priority)
        self.validate()

    def validate(self) -> None:
        """Validate airdrop project data integrity."""
        if not self.id or not isinstance(self.id, str):
            raise ValueError("Airdrop ID must be a non-empty string")

        if not self.name or not isinstance(self.name, str):
            raise ValueError("Project name must be a non-empty string")

        if not isinstance(self.status, AirdropStatus):
            raise ValueError(f"Status must be an AirdropStatus enum, got {type(self.status)}")

        if not isinstance(self.priority, Priority):
            raise ValueError(f"Priority must be a Priority enum, got {type(self.priority)}")
