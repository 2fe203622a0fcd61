from dataclasses import dataclass
from enum import Enum
from typing import Optional


class OptionType(Enum):
    SHORT_PUT = "SHORT_PUT"
    LONG_CALL = "LONG_CALL"


class OptionStatus(Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    EXPIRED = "EXPIRED"


@dataclass
class OptionTrade:
    """
    Option journal entry.

    For a SHORT_PUT, ``collateral_or_cost`` is the cash secured against
    assignment. For a LONG_CALL it is the total cost of the position, and
    ``close_price`` is the total proceeds received when the position is closed.
    """
    id: str
    ticker: str
    type: OptionType
    status: OptionStatus
    open_date: str
    strike_price: float
    premium: float
    collateral_or_cost: float
    expiry_date: str = ""
    close_price: Optional[float] = None
    notes: Optional[str] = None

    def __post_init__(self):
        """Coerce enum values and validate trade data after initialization."""
        if isinstance(self.type, str):
            self.type = OptionType(self.type)
        if isinstance(self.status, str):
            self.status = OptionStatus(self.status)
        self.validate()

    def validate(self) -> None:
        """Validate option trade data integrity."""
        if not self.id or not isinstance(self.id, str):
            raise ValueError("Trade ID must be a non-empty string")

        if not self.ticker or not isinstance(self.ticker, str):
            raise ValueError("Ticker must be a non-empty string")

        if not isinstance(self.type, OptionType):
            raise ValueError(f"Type must be an OptionType enum, got {type(self.type)}")

        if not isinstance(self.status, OptionStatus):
            raise ValueError(f"Status must be an OptionStatus enum, got {type(self.status)}")

        if not self.open_date or not isinstance(self.open_date, str):
            raise ValueError("Open date must be a non-empty string")

        if not isinstance(self.expiry_date, str):
            raise ValueError("Expiry date must be a string")

        for field_name in ("strike_price", "premium", "collateral_or_cost"):
            value = getattr(self, field_name)
            if not isinstance(value, (int, float)) or value < 0:
                raise ValueError(f"{field_name} must be a non-negative number")

        if self.close_price is not None:
            if not isinstance(self.close_price, (int, float)) or self.close_price < 0:
                raise ValueError("Close price must be a non-negative number when provided")

    @property
    def is_open(self) -> bool:
        return self.status == OptionStatus.OPEN

    @property
    def open_month(self) -> str:
        """Month (YYYY-MM) the position was opened in."""
        return self.open_date[:7]
