"""
Data service owning the in-memory record collections and their persistence.
"""

import logging
import secrets
import time
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from app.models.airdrop import AirdropProject
from app.models.asset import Asset
from app.models.option_trade import OptionTrade
from app.models.pnl_entry import PnLEntry
from app.services.storage.local_store import LocalStore
from app.utils.error_handler import DataValidationError, RecordNotFoundError
from app.utils.serialization import DataSerializer
from app.utils.validators import DataValidator, ValidationError

logger = logging.getLogger(__name__)

ASSETS = "assets"
TRADES = "trades"
AIRDROPS = "airdrops"
MANUAL_PNL = "manualPnL"

DEFAULT_ASSETS = [
    {"id": "1", "name": "Apple", "ticker": "AAPL", "type": "STOCK", "quantity": 50, "currentPrice": 175.50, "currency": "USD"},
    {"id": "2", "name": "Bitcoin", "ticker": "BTC", "type": "CRYPTO", "quantity": 0.5, "currentPrice": 64000, "currency": "USD"},
    {"id": "3", "name": "Cash Reserve", "ticker": "USD", "type": "CASH", "quantity": 25000, "currentPrice": 1, "currency": "USD"},
]

DEFAULT_AIRDROPS = [
    {"id": "1", "name": "Example Layer2", "status": "Farming", "notes": "Bridge weekly",
     "twitterUrl": "https://twitter.com/example", "priority": "High"},
]


@dataclass(frozen=True)
class CollectionSpec:
    """How one record collection is stored and (de)serialized."""

    name: str
    storage_key: str
    serialize: Callable[[Any], Dict[str, Any]]
    deserialize: Callable[[Dict[str, Any]], Any]
    defaults: List[Dict[str, Any]]


COLLECTIONS: Dict[str, CollectionSpec] = {
    ASSETS: CollectionSpec(ASSETS, "smartwealth_assets", DataSerializer.serialize_asset,
                           DataSerializer.deserialize_asset, DEFAULT_ASSETS),
    TRADES: CollectionSpec(TRADES, "smartwealth_trades", DataSerializer.serialize_option_trade,
                           DataSerializer.deserialize_option_trade, []),
    MANUAL_PNL: CollectionSpec(MANUAL_PNL, "smartwealth_pnl", DataSerializer.serialize_pnl_entry,
                               DataSerializer.deserialize_pnl_entry, []),
    AIRDROPS: CollectionSpec(AIRDROPS, "smartwealth_airdrops", DataSerializer.serialize_airdrop,
                             DataSerializer.deserialize_airdrop, DEFAULT_AIRDROPS),
}


def generate_record_id(existing_ids: Optional[set] = None) -> str:
    """Millisecond timestamp plus a short random suffix, unique among ``existing_ids``."""
    existing_ids = existing_ids or set()
    while True:
        record_id = f"{int(time.time() * 1000)}{secrets.token_hex(2)}"
        if record_id not in existing_ids:
            return record_id


def _today() -> str:
    return datetime.now().strftime("%Y-%m-%d")


class DataService:
    """
    Single owner of the assets, option trades, manual P&L entries and airdrop
    collections.

    Every mutation builds a new list, validates it, swaps it in and writes the
    whole collection back to the store. A mutation that fails validation leaves
    both memory and storage untouched.
    """

    def __init__(self, store: LocalStore):
        """
        Initialize DataService and load all collections from the store.

        Args:
            store: Key-value store used for persistence
        """
        self.store = store
        self._collections: Dict[str, List[Any]] = {}
        self.reload()

    def reload(self) -> None:
        """(Re)load every collection from the store, falling back to seed data."""
        for spec in COLLECTIONS.values():
            self._collections[spec.name] = self._load_collection(spec)

    def _load_collection(self, spec: CollectionSpec) -> List[Any]:
        raw = self.store.load(spec.storage_key, None)
        if raw is None:
            raw = spec.defaults
        elif not isinstance(raw, list):
            logger.error(f"Stored {spec.name} is not a list, using defaults")
            raw = spec.defaults

        records = self._deserialize_records(spec, raw)
        logger.info(f"Loaded {len(records)} {spec.name}")
        return records

    @staticmethod
    def _deserialize_records(spec: CollectionSpec, raw: List[Any]) -> List[Any]:
        records = []
        seen_ids = set()
        for i, item in enumerate(raw):
            try:
                record = spec.deserialize(item)
            except Exception as e:
                logger.error(f"Error loading {spec.name} record at index {i}: {e}")
                # Continue loading other records instead of failing completely
                continue
            if record.id in seen_ids:
                logger.warning(f"Dropping duplicate {spec.name} id {record.id}")
                continue
            seen_ids.add(record.id)
            records.append(record)
        return records

    # ------------------------------------------------------------------
    # Collection access
    # ------------------------------------------------------------------

    @property
    def assets(self) -> List[Asset]:
        return list(self._collections[ASSETS])

    @property
    def trades(self) -> List[OptionTrade]:
        return list(self._collections[TRADES])

    @property
    def airdrops(self) -> List[AirdropProject]:
        return list(self._collections[AIRDROPS])

    @property
    def pnl_entries(self) -> List[PnLEntry]:
        return list(self._collections[MANUAL_PNL])

    def _spec(self, name: str) -> CollectionSpec:
        if name not in COLLECTIONS:
            raise ValueError(f"Unknown collection: {name}")
        return COLLECTIONS[name]

    def replace_collection(self, name: str, records: List[Any]) -> None:
        """
        Replace a whole collection and persist it.

        Raises:
            DataValidationError: If a record is invalid or ids are duplicated
        """
        spec = self._spec(name)
        ids = set()
        for record in records:
            try:
                record.validate()
            except ValueError as e:
                raise DataValidationError(f"Invalid {name} record {getattr(record, 'id', '?')}: {e}",
                                          error_code="INVALID_RECORD")
            if record.id in ids:
                raise DataValidationError(f"Duplicate {name} id {record.id}", error_code="DUPLICATE_ID")
            ids.add(record.id)

        self._collections[name] = list(records)
        saved = self.store.save(spec.storage_key, DataSerializer.serialize_list(records, spec.serialize))
        if not saved:
            logger.warning(f"{name} changed in memory but could not be persisted")

    def restore_collection(self, name: str, raw_records: List[Dict[str, Any]]) -> int:
        """
        Replace a collection from serialized records (e.g. a downloaded backup).

        Records that fail to deserialize are skipped and logged.

        Returns:
            Number of records restored
        """
        spec = self._spec(name)
        records = self._deserialize_records(spec, raw_records)
        self.replace_collection(name, records)
        logger.info(f"Restored {len(records)} of {len(raw_records)} {name}")
        return len(records)

    def export_dataset(self) -> Dict[str, List[Dict[str, Any]]]:
        """Serialize every collection, keyed by its backup name."""
        return {
            name: DataSerializer.serialize_list(self._collections[name], spec.serialize)
            for name, spec in COLLECTIONS.items()
        }

    # ------------------------------------------------------------------
    # Generic CRUD helpers
    # ------------------------------------------------------------------

    def _new_id(self, name: str) -> str:
        return generate_record_id({record.id for record in self._collections[name]})

    def _build(self, factory: Callable[..., Any], *args, **fields) -> Any:
        try:
            return factory(*args, **fields)
        except ValueError as e:
            raise DataValidationError(str(e), error_code="INVALID_RECORD")

    def _validate_form(self, validator: Callable[[Dict[str, Any]], Dict[str, Any]], data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            return validator(data)
        except ValidationError as e:
            raise DataValidationError(str(e), error_code="INVALID_INPUT",
                                      recovery_suggestion="Check the form values and try again.")

    def _insert(self, name: str, record: Any, prepend: bool) -> Any:
        current = self._collections[name]
        records = [record] + current if prepend else current + [record]
        self.replace_collection(name, records)
        logger.info(f"Added {name} record {record.id}")
        return record

    def _update(self, name: str, record_id: str, build: Callable[[Any], Any]) -> Any:
        current = self._collections[name]
        for index, record in enumerate(current):
            if record.id == record_id:
                updated = build(record)
                records = list(current)
                records[index] = updated
                self.replace_collection(name, records)
                logger.info(f"Updated {name} record {record_id}")
                return updated
        raise RecordNotFoundError(f"{name} record {record_id} not found", error_code="NOT_FOUND")

    def _delete(self, name: str, record_id: str, confirmed: bool) -> bool:
        if not confirmed:
            logger.debug(f"Delete of {name} record {record_id} not confirmed, ignoring")
            return False

        current = self._collections[name]
        records = [record for record in current if record.id != record_id]
        if len(records) == len(current):
            logger.warning(f"{name} record {record_id} not found for deletion")
            return False

        self.replace_collection(name, records)
        logger.info(f"Deleted {name} record {record_id}")
        return True

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    def add_asset(self, **fields) -> Asset:
        """Create an asset from form fields and append it."""
        validated = self._validate_form(DataValidator.validate_asset_form, fields)
        asset = self._build(Asset, id=self._new_id(ASSETS), last_updated=_today(), **validated)
        return self._insert(ASSETS, asset, prepend=False)

    def update_asset(self, asset_id: str, **fields) -> Asset:
        """Apply form fields to an existing asset and mark it updated today."""
        def build(asset: Asset) -> Asset:
            merged = {
                "name": asset.name,
                "ticker": asset.ticker,
                "type": asset.type,
                "quantity": asset.quantity,
                "current_price": asset.current_price,
                "currency": asset.currency,
            }
            merged.update(fields)
            validated = self._validate_form(DataValidator.validate_asset_form, merged)
            return self._build(replace, asset, last_updated=_today(), **validated)

        return self._update(ASSETS, asset_id, build)

    def delete_asset(self, asset_id: str, confirmed: bool = False) -> bool:
        return self._delete(ASSETS, asset_id, confirmed)

    def apply_asset_prices(self, priced_assets: List[Asset]) -> None:
        """Persist assets returned by a price refresh."""
        self.replace_collection(ASSETS, priced_assets)

    # ------------------------------------------------------------------
    # Option trades
    # ------------------------------------------------------------------

    def add_trade(self, **fields) -> OptionTrade:
        """Create an option trade from form fields; newest first."""
        validated = self._validate_form(DataValidator.validate_trade_form, fields)
        trade = self._build(OptionTrade, id=self._new_id(TRADES), **validated)
        return self._insert(TRADES, trade, prepend=True)

    def update_trade(self, trade_id: str, **fields) -> OptionTrade:
        def build(trade: OptionTrade) -> OptionTrade:
            merged = {
                "ticker": trade.ticker,
                "type": trade.type,
                "status": trade.status,
                "open_date": trade.open_date,
                "expiry_date": trade.expiry_date,
                "strike_price": trade.strike_price,
                "premium": trade.premium,
                "collateral_or_cost": trade.collateral_or_cost,
                "close_price": trade.close_price,
                "notes": trade.notes,
            }
            merged.update(fields)
            validated = self._validate_form(DataValidator.validate_trade_form, merged)
            return self._build(replace, trade, **validated)

        return self._update(TRADES, trade_id, build)

    def delete_trade(self, trade_id: str, confirmed: bool = False) -> bool:
        return self._delete(TRADES, trade_id, confirmed)

    # ------------------------------------------------------------------
    # Airdrops
    # ------------------------------------------------------------------

    def add_airdrop(self, **fields) -> AirdropProject:
        validated = self._validate_form(DataValidator.validate_airdrop_form, fields)
        project = self._build(AirdropProject, id=self._new_id(AIRDROPS), **validated)
        return self._insert(AIRDROPS, project, prepend=True)

    def update_airdrop(self, project_id: str, **fields) -> AirdropProject:
        def build(project: AirdropProject) -> AirdropProject:
            merged = {
                "name": project.name,
                "twitter_url": project.twitter_url,
                "status": project.status,
                "priority": project.priority,
                "notes": project.notes,
            }
            merged.update(fields)
            validated = self._validate_form(DataValidator.validate_airdrop_form, merged)
            return self._build(replace, project, **validated)

        return self._update(AIRDROPS, project_id, build)

    def delete_airdrop(self, project_id: str, confirmed: bool = False) -> bool:
        return self._delete(AIRDROPS, project_id, confirmed)

    # ------------------------------------------------------------------
    # Manual P&L entries
    # ------------------------------------------------------------------

    def add_pnl_entry(self, **fields) -> PnLEntry:
        validated = self._validate_form(DataValidator.validate_pnl_form, fields)
        entry = self._build(PnLEntry, id=self._new_id(MANUAL_PNL), **validated)
        return self._insert(MANUAL_PNL, entry, prepend=True)

    def update_pnl_entry(self, entry_id: str, **fields) -> PnLEntry:
        def build(entry: PnLEntry) -> PnLEntry:
            merged = {"month": entry.month, "amount": entry.amount, "description": entry.description}
            merged.update(fields)
            validated = self._validate_form(DataValidator.validate_pnl_form, merged)
            return self._build(replace, entry, **validated)

        return self._update(MANUAL_PNL, entry_id, build)

    def delete_pnl_entry(self, entry_id: str, confirmed: bool = False) -> bool:
        return self._delete(MANUAL_PNL, entry_id, confirmed)
