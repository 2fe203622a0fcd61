from dataclasses import dataclass
from enum import Enum
from typing import Optional


class AssetType(Enum):
    STOCK = "STOCK"
    CRYPTO = "CRYPTO"
    CASH = "CASH"


@dataclass
class Asset:
    """
    Asset holding with a manually entered or market-refreshed unit price.
    """
    id: str
    name: str
    type: AssetType
    quantity: float
    current_price: float
    ticker: Optional[str] = None
    currency: str = "USD"
    last_updated: Optional[str] = None

    def __post_init__(self):
        """Coerce enum values and validate asset data after initialization."""
        if isinstance(self.type, str):
            self.type = AssetType(self.type)
        self.validate()

    def validate(self) -> None:
        """Validate asset data integrity."""
        if not self.id or not isinstance(self.id, str):
            raise ValueError("Asset ID must be a non-empty string")

        if not self.name or not isinstance(self.name, str):
            raise ValueError("Asset name must be a non-empty string")

        if not isinstance(self.type, AssetType):
            raise ValueError(f"Type must be an AssetType enum, got {type(self.type)}")

        if not isinstance(self.quantity, (int, float)) or self.quantity < 0:
            raise ValueError("Quantity must be a non-negative number")

        if not isinstance(self.current_price, (int, float)) or self.current_price < 0:
            raise ValueError("Current price must be a non-negative number")

        if self.ticker is not None and not isinstance(self.ticker, str):
            raise ValueError("Ticker must be a string when provided")

        if not self.currency or not isinstance(self.currency, str):
            raise ValueError("Currency must be a non-empty string")

    @property
    def display_key(self) -> str:
        """Key used for price lookups and chart labels."""
        return self.ticker or self.name

    @property
    def value(self) -> float:
        return self.quantity * self.current_price
