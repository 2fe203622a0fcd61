"""
Data models for the SmartWealth personal finance tracker.
"""

from .airdrop import AirdropProject, AirdropStatus, Priority
from .asset import Asset, AssetType
from .option_trade import OptionStatus, OptionTrade, OptionType
from .pnl_entry import PnLEntry
from .sync_config import SyncConfig

__all__ = [
    "Asset",
    "AssetType",
    "OptionTrade",
    "OptionType",
    "OptionStatus",
    "AirdropProject",
    "AirdropStatus",
    "Priority",
    "PnLEntry",
    "SyncConfig",
]
