import re
from dataclasses import dataclass
from typing import Optional

MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


@dataclass
class PnLEntry:
    """Manually entered profit or loss for a calendar month."""
    id: str
    month: str
    amount: float
    description: Optional[str] = None

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        if not self.id or not isinstance(self.id, str):
            raise ValueError("PnL entry ID must be a non-empty string")

        if not isinstance(self.month, str) or not MONTH_PATTERN.match(self.month):
            raise ValueError("Month must be in YYYY-MM format")

        if not isinstance(self.amount, (int, float)) or isinstance(self.amount, bool):
            raise ValueError("Amount must be a number")
