"""
Data serialization and deserialization utilities for JSON persistence.

Records are stored with the camelCase keys used by the browser version of the
tracker so that gist backups stay interchangeable between the two. Optional
fields that are unset are omitted rather than written as null.
"""

from typing import Any, Callable, Dict, List, Optional, TypeVar, Union

from app.models.airdrop import AirdropProject, AirdropStatus, Priority
from app.models.asset import Asset, AssetType
from app.models.option_trade import OptionStatus, OptionTrade, OptionType
from app.models.pnl_entry import PnLEntry
from app.models.sync_config import SyncConfig

T = TypeVar("T")


def _number(value: Any, field_name: str) -> Union[int, float]:
    """Coerce a JSON number (or numeric string) without losing int-ness."""
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be a number, got bool")
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str) and value.strip():
        return float(value)
    raise ValueError(f"{field_name} must be a number, got {value!r}")


def _optional_number(value: Any, field_name: str) -> Optional[Union[int, float]]:
    if value is None or value == "":
        return None
    return _number(value, field_name)


def _compact(data: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys whose value is None."""
    return {key: value for key, value in data.items() if value is not None}


class DataSerializer:
    """Utility class for serializing and deserializing application data."""

    @staticmethod
    def serialize_asset(asset: Asset) -> Dict[str, Any]:
        """Serialize an Asset object to dictionary."""
        return _compact({
            "id": asset.id,
            "name": asset.name,
            "ticker": asset.ticker,
            "type": asset.type.value,
            "quantity": asset.quantity,
            "currentPrice": asset.current_price,
            "currency": asset.currency,
            "lastUpdated": asset.last_updated,
        })

    @staticmethod
    def deserialize_asset(data: Dict[str, Any]) -> Asset:
        """Deserialize dictionary to Asset object."""
        return Asset(
            id=str(data["id"]),
            name=data["name"],
            ticker=data.get("ticker") or None,
            type=AssetType(data["type"]),
            quantity=_number(data["quantity"], "quantity"),
            current_price=_number(data.get("currentPrice", 0), "currentPrice"),
            currency=data.get("currency") or "USD",
            last_updated=data.get("lastUpdated"),
        )

    @staticmethod
    def serialize_option_trade(trade: OptionTrade) -> Dict[str, Any]:
        """Serialize an OptionTrade object to dictionary."""
        return _compact({
            "id": trade.id,
            "ticker": trade.ticker,
            "type": trade.type.value,
            "status": trade.status.value,
            "openDate": trade.open_date,
            "expiryDate": trade.expiry_date,
            "strikePrice": trade.strike_price,
            "premium": trade.premium,
            "collateralOrCost": trade.collateral_or_cost,
            "closePrice": trade.close_price,
            "notes": trade.notes,
        })

    @staticmethod
    def deserialize_option_trade(data: Dict[str, Any]) -> OptionTrade:
        """Deserialize dictionary to OptionTrade object."""
        return OptionTrade(
            id=str(data["id"]),
            ticker=data["ticker"],
            type=OptionType(data["type"]),
            status=OptionStatus(data.get("status", "OPEN")),
            open_date=data["openDate"],
            expiry_date=data.get("expiryDate") or "",
            strike_price=_number(data["strikePrice"], "strikePrice"),
            premium=_number(data.get("premium", 0), "premium"),
            collateral_or_cost=_number(data.get("collateralOrCost", 0), "collateralOrCost"),
            close_price=_optional_number(data.get("closePrice"), "closePrice"),
            notes=data.get("notes"),
        )

    @staticmethod
    def serialize_airdrop(project: AirdropProject) -> Dict[str, Any]:
        """Serialize an AirdropProject object to dictionary."""
        return _compact({
            "id": project.id,
            "name": project.name,
            "twitterUrl": project.twitter_url,
            "status": project.status.value,
            "priority": project.priority.value,
            "notes": project.notes,
        })

    @staticmethod
    def deserialize_airdrop(data: Dict[str, Any]) -> AirdropProject:
        """Deserialize dictionary to AirdropProject object."""
        return AirdropProject(
            id=str(data["id"]),
            name=data["name"],
            twitter_url=data.get("twitterUrl"),
            status=AirdropStatus(data.get("status", "New")),
            priority=Priority(data.get("priority", "Medium")),
            notes=data.get("notes"),
        )

    @staticmethod
    def serialize_pnl_entry(entry: PnLEntry) -> Dict[str, Any]:
        """Serialize a PnLEntry object to dictionary."""
        return _compact({
            "id": entry.id,
            "month": entry.month,
            "amount": entry.amount,
            "description": entry.description,
        })

    @staticmethod
    def deserialize_pnl_entry(data: Dict[str, Any]) -> PnLEntry:
        """Deserialize dictionary to PnLEntry object."""
        return PnLEntry(
            id=str(data["id"]),
            month=data["month"],
            amount=_number(data["amount"], "amount"),
            description=data.get("description"),
        )

    @staticmethod
    def serialize_sync_config(config: SyncConfig) -> Dict[str, Any]:
        """Serialize a SyncConfig object to dictionary."""
        return _compact({
            "githubToken": config.github_token,
            "gistId": config.gist_id,
            "lastSyncTime": config.last_sync_time,
        })

    @staticmethod
    def deserialize_sync_config(data: Dict[str, Any]) -> SyncConfig:
        """Deserialize dictionary to SyncConfig object."""
        return SyncConfig(
            github_token=data.get("githubToken") or "",
            gist_id=data.get("gistId") or "",
            last_sync_time=data.get("lastSyncTime"),
        )

    @staticmethod
    def serialize_list(records: List[T], serializer: Callable[[T], Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Serialize a list of records with the given per-record serializer."""
        return [serializer(record) for record in records]

