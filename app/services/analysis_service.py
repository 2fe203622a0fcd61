from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import pandas as pd

from app.models.airdrop import AirdropProject, AirdropStatus
from app.models.asset import Asset
from app.models.option_trade import OptionStatus, OptionTrade, OptionType
from app.models.pnl_entry import PnLEntry

MONTHLY_PNL_COLUMNS = ["month", "options_pnl", "manual_pnl", "total_pnl"]


@dataclass
class StrikeDistance:
    """How far the market price sits from an option's strike."""

    percent: float
    favorable: bool
    label: str


@dataclass
class OptionStats:
    """Headline numbers for the options journal."""

    total_premium: float
    open_collateral: float
    open_count: int
    closed_count: int
    expired_count: int


class AnalysisService:
    """Derived values for the dashboards. Nothing computed here is persisted."""

    def total_value(self, assets: List[Asset]) -> float:
        """Net worth: sum of quantity × current price."""
        return sum(asset.value for asset in assets)

    def allocation(self, assets: List[Asset]) -> List[Dict[str, Any]]:
        """
        Allocation slices for the portfolio pie chart.

        Returns:
            List of ``{"name", "value", "type"}`` dicts, largest value first.
            ``name`` is the ticker, or the asset name when there is no ticker.
        """
        slices = [
            {"name": asset.display_key, "value": asset.value, "type": asset.type.value}
            for asset in assets
        ]
        return sorted(slices, key=lambda s: s["value"], reverse=True)

    def calculate_roi(self, trade: OptionTrade) -> float:
        """
        Return on investment of an option trade, in percent.

        SHORT_PUT: premium over collateral.
        LONG_CALL: realized only once closed with a close price.
        """
        if not trade.premium or not trade.collateral_or_cost:
            return 0.0

        if trade.type == OptionType.SHORT_PUT:
            return trade.premium / trade.collateral_or_cost * 100

        if trade.status == OptionStatus.CLOSED and trade.close_price is not None:
            return (trade.close_price - trade.premium) / trade.premium * 100
        return 0.0

    def distance_to_strike(self, trade: OptionTrade, market_price: Optional[float]) -> Optional[StrikeDistance]:
        """
        Percent distance of the strike from the market price, for open trades only.

        A positive distance (market above strike) is favorable. For a short put
        that means out of the money, for a long call in the money.
        """
        if trade.status != OptionStatus.OPEN or market_price is None or market_price <= 0:
            return None

        percent = (market_price - trade.strike_price) / market_price * 100
        favorable = market_price > trade.strike_price
        if trade.type == OptionType.SHORT_PUT:
            label = "OTM" if favorable else "ITM"
        else:
            label = "ITM" if favorable else "OTM"
        return StrikeDistance(percent=percent, favorable=favorable, label=label)

    def option_stats(self, trades: List[OptionTrade]) -> OptionStats:
        """Total short put premium collected and collateral tied up in open short puts."""
        short_puts = [t for t in trades if t.type == OptionType.SHORT_PUT]
        statuses = Counter(t.status for t in trades)
        return OptionStats(
            total_premium=sum(t.premium for t in short_puts),
            open_collateral=sum(t.collateral_or_cost for t in short_puts if t.is_open),
            open_count=statuses[OptionStatus.OPEN],
            closed_count=statuses[OptionStatus.CLOSED],
            expired_count=statuses[OptionStatus.EXPIRED],
        )

    def airdrop_status_counts(self, airdrops: List[AirdropProject]) -> Dict[str, int]:
        """Number of projects per status, every status present."""
        counts = Counter(project.status for project in airdrops)
        return {status.value: counts[status] for status in AirdropStatus}

    def option_pnl(self, trade: OptionTrade) -> float:
        """Realized P&L of a single trade."""
        closed_with_price = trade.status == OptionStatus.CLOSED and trade.close_price is not None

        if trade.type == OptionType.SHORT_PUT:
            return trade.premium - (trade.close_price if closed_with_price else 0.0)

        if closed_with_price:
            return trade.close_price - trade.premium
        if trade.status == OptionStatus.EXPIRED:
            return -trade.premium
        return 0.0

    def monthly_pnl(self, trades: List[OptionTrade], manual_entries: List[PnLEntry]) -> pd.DataFrame:
        """
        Combine option P&L (by month opened) with manual entries.

        Returns:
            DataFrame with month, options_pnl, manual_pnl, total_pnl columns,
            sorted by month
        """
        option_rows = [
            {"month": trade.open_month, "options_pnl": self.option_pnl(trade)}
            for trade in trades
        ]
        manual_rows = [
            {"month": entry.month, "manual_pnl": float(entry.amount)}
            for entry in manual_entries
        ]

        if not option_rows and not manual_rows:
            return pd.DataFrame(columns=MONTHLY_PNL_COLUMNS)

        options_df = pd.DataFrame(option_rows, columns=["month", "options_pnl"])
        manual_df = pd.DataFrame(manual_rows, columns=["month", "manual_pnl"])

        options_by_month = options_df.groupby("month")["options_pnl"].sum()
        manual_by_month = manual_df.groupby("month")["manual_pnl"].sum()

        df = pd.concat([options_by_month, manual_by_month], axis=1).fillna(0.0)
        df = df.astype(float)
        df["total_pnl"] = df["options_pnl"] + df["manual_pnl"]
        df = df.sort_index().reset_index().rename(columns={"index": "month"})
        return df[MONTHLY_PNL_COLUMNS]
