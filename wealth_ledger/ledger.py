"""
Ledger Store Module

Owns the canonical collections of assets and yield records. Entities are kept
in id-keyed maps (insertion ordered) with a per-asset index of yield records,
so lookups and cascade deletes never scan the whole collection. The full state
is written to a key-value storage backend after every mutation; persistence is
best-effort and its outcome is reported through OperationResult rather than
raised.
"""

from decimal import Decimal
from datetime import date, datetime, timezone
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union
import json
import logging
import uuid

from .errors import NotFoundError, PersistenceError, ValidationError
from .logging_config import log_action
from .models import (
    Asset, AssetType, YieldRecord,
    parse_date, to_decimal, validate_asset_fields, validate_interest_rate, validate_name,
)
from .storage import StorageInterface


logger = logging.getLogger(__name__)


DEFAULT_ASSETS_KEY = "wealth-management-assets"
DEFAULT_YIELD_RECORDS_KEY = "wealth-management-yields"

UPDATABLE_FIELDS = {
    "name", "asset_type", "interest_rate", "investment_date", "description", "current_value"
}


@dataclass
class OperationResult:
    """Outcome of a persistence operation"""
    success: bool = True
    errors: List[str] = field(default_factory=list)

    def fail(self, message: str) -> None:
        self.success = False
        self.errors.append(message)


class LedgerStore:
    """
    Authoritative store of assets and their yield records
    """

    def __init__(
        self,
        storage: StorageInterface,
        assets_key: str = DEFAULT_ASSETS_KEY,
        yield_records_key: str = DEFAULT_YIELD_RECORDS_KEY,
        today: Callable[[], date] = date.today
    ):
        self.storage = storage
        self.assets_key = assets_key
        self.yield_records_key = yield_records_key
        self._today = today

        self._assets: Dict[str, Asset] = {}
        self._records: Dict[str, YieldRecord] = {}
        self._records_by_asset: Dict[str, List[str]] = {}

        self.last_save_result: Optional[OperationResult] = None

    # Queries

    def get_asset(self, asset_id: str) -> Optional[Asset]:
        """Get asset by ID"""
        return self._assets.get(asset_id)

    def require_asset(self, asset_id: str) -> Asset:
        """Get asset by ID, raising NotFoundError if absent"""
        asset = self._assets.get(asset_id)
        if asset is None:
            raise NotFoundError(asset_id)
        return asset

    def list_assets(self) -> List[Asset]:
        """All assets in insertion order"""
        return list(self._assets.values())

    def list_yield_records(self, asset_id: Optional[str] = None) -> List[YieldRecord]:
        """Yield records in calculation order, optionally for one asset"""
        if asset_id is None:
            return list(self._records.values())
        return [self._records[record_id] for record_id in self._records_by_asset.get(asset_id, [])]

    def yield_records_for_asset(self, asset_id: str, newest_first: bool = True) -> List[YieldRecord]:
        """Yield history of one asset sorted by calculation date"""
        return sorted(
            self.list_yield_records(asset_id),
            key=lambda record: record.date,
            reverse=newest_first
        )

    def __len__(self) -> int:
        return len(self._assets)

    def __contains__(self, asset_id: object) -> bool:
        return asset_id in self._assets

    # Mutations

    def add_asset(
        self,
        name: str,
        asset_type: Union[AssetType, str],
        initial_amount: Union[Decimal, int, float, str],
        interest_rate: Union[Decimal, int, float, str] = Decimal('0'),
        investment_date: Optional[Union[date, str]] = None,
        description: Optional[str] = None
    ) -> Asset:
        """
        Create a new asset

        Args:
            name: Display label, must not be blank
            asset_type: One of the fixed asset types (or its code)
            initial_amount: Principal invested, must be positive
            interest_rate: Annual nominal rate in percent, must not be negative
            investment_date: Compounding start date (defaults to today)
            description: Optional free text

        Returns:
            Created Asset, with current_value equal to initial_amount

        Raises:
            ValidationError: If any field is invalid; the store is unchanged
        """
        name, amount, rate = validate_asset_fields(name, initial_amount, interest_rate)
        asset_type = AssetType.parse(asset_type)
        if investment_date is None:
            investment_date = self._today()
        else:
            investment_date = parse_date(investment_date, "investmentDate")

        asset = Asset(
            id=str(uuid.uuid4()),
            name=name,
            asset_type=asset_type,
            initial_amount=amount,
            current_value=amount,
            interest_rate=rate,
            investment_date=investment_date,
            last_updated=datetime.now(timezone.utc),
            description=description
        )
        self._assets[asset.id] = asset
        self._records_by_asset[asset.id] = []

        log_action(
            logger, "info", f"Asset {asset.name} added",
            action="asset_added", resource=asset.id,
            extra={"type": asset_type.code, "initial_amount": str(amount)}
        )
        self.save_state()
        return asset

    def update_asset(self, asset_id: str, **changes: Any) -> Optional[Asset]:
        """
        Merge the given fields into an existing asset

        Accepted fields are name, asset_type, interest_rate, investment_date,
        description and current_value. initial_amount is fixed at creation.

        Returns:
            The updated Asset, or None if asset_id is unknown
        """
        if "initial_amount" in changes:
            raise ValidationError("Initial amount cannot be changed after creation",
                                  field="initialAmount")
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown asset fields: {', '.join(sorted(unknown))}")

        asset = self._assets.get(asset_id)
        if asset is None:
            logger.warning("Update ignored, asset %s not found", asset_id)
            return None

        # Validate everything before touching the asset
        normalized: Dict[str, Any] = {}
        if "name" in changes:
            normalized["name"] = validate_name(changes["name"])
        if "asset_type" in changes:
            normalized["asset_type"] = AssetType.parse(changes["asset_type"])
        if "interest_rate" in changes:
            normalized["interest_rate"] = validate_interest_rate(changes["interest_rate"])
        if "investment_date" in changes:
            normalized["investment_date"] = parse_date(changes["investment_date"], "investmentDate")
        if "description" in changes:
            normalized["description"] = changes["description"]
        if "current_value" in changes:
            value = to_decimal(changes["current_value"], "currentValue")
            if value < 0:
                raise ValidationError("Current value must not be negative", field="currentValue")
            normalized["current_value"] = value

        for key, value in normalized.items():
            setattr(asset, key, value)
        asset.last_updated = datetime.now(timezone.utc)

        log_action(
            logger, "info", f"Asset {asset.name} updated",
            action="asset_updated", resource=asset.id,
            extra={"fields": sorted(normalized)}
        )
        self.save_state()
        return asset

    def delete_asset(self, asset_id: str) -> bool:
        """
        Remove an asset and every yield record that refers to it

        Returns:
            True if the asset existed
        """
        asset = self._assets.pop(asset_id, None)
        if asset is None:
            logger.warning("Delete ignored, asset %s not found", asset_id)
            return False

        record_ids = self._records_by_asset.pop(asset_id, [])
        for record_id in record_ids:
            del self._records[record_id]

        log_action(
            logger, "info", f"Asset {asset.name} deleted",
            action="asset_deleted", resource=asset_id,
            extra={"yield_records_removed": len(record_ids)}
        )
        self.save_state()
        return True

    def record_yield(self, asset_id: str, new_value: Decimal,
                     record: Optional[YieldRecord] = None) -> Asset:
        """
        Write a yield calculation back to the ledger

        Sets the asset's current value, appends the record when one is given
        and persists once.
        """
        asset = self.require_asset(asset_id)
        if record is not None and record.asset_id != asset_id:
            raise ValidationError(
                f"Yield record belongs to {record.asset_id}, not {asset_id}", field="assetId"
            )

        asset.current_value = new_value
        asset.last_updated = datetime.now(timezone.utc)
        if record is not None:
            self._append_record(record)

        self.save_state()
        return asset

    def clear_all(self) -> OperationResult:
        """Drop every asset and yield record, in memory and in storage"""
        self._assets.clear()
        self._records.clear()
        self._records_by_asset.clear()

        result = OperationResult()
        for key in (self.assets_key, self.yield_records_key):
            try:
                self.storage.delete(key)
            except PersistenceError as e:
                logger.error("Failed to remove %s from storage: %s", key, e)
                result.fail(str(e))

        log_action(logger, "info", "All ledger data cleared", action="ledger_cleared")
        return result

    def _append_record(self, record: YieldRecord) -> None:
        self._records[record.id] = record
        self._records_by_asset.setdefault(record.asset_id, []).append(record.id)

    # Persistence

    def save_state(self) -> OperationResult:
        """
        Serialize both collections to storage

        Failures are logged and reported in the result, never raised; the
        in-memory state stays authoritative.
        """
        result = OperationResult()
        payloads = {
            self.assets_key: [asset.to_dict() for asset in self._assets.values()],
            self.yield_records_key: [record.to_dict() for record in self._records.values()],
        }
        for key, payload in payloads.items():
            try:
                self.storage.set(key, json.dumps(payload, ensure_ascii=False))
            except (PersistenceError, TypeError, ValueError) as e:
                logger.error("Failed to save %s: %s", key, e)
                result.fail(f"{key}: {e}")

        self.last_save_result = result
        return result

    def load_state(self) -> OperationResult:
        """
        Replace the in-memory collections with the stored state

        A missing key loads as an empty collection. Corrupt data for one key
        loads as empty for that part only and is reported in the result.
        """
        result = OperationResult()

        assets = self._load_collection(self.assets_key, Asset.from_dict, result)
        records = self._load_collection(self.yield_records_key, YieldRecord.from_dict, result)

        self._assets = {asset.id: asset for asset in assets}
        self._records = {}
        self._records_by_asset = {asset_id: [] for asset_id in self._assets}
        for record in records:
            self._append_record(record)

        logger.info("Loaded %d assets and %d yield records",
                    len(self._assets), len(self._records))
        return result

    def _load_collection(self, key: str, from_dict: Callable[[Dict[str, Any]], Any],
                         result: OperationResult) -> List[Any]:
        try:
            raw = self.storage.get(key)
        except PersistenceError as e:
            logger.error("Failed to read %s: %s", key, e)
            result.fail(f"{key}: {e}")
            return []

        if raw is None:
            return []

        try:
            items = json.loads(raw)
            if not isinstance(items, list):
                raise ValueError(f"expected a list, got {type(items).__name__}")
            return [from_dict(item) for item in items]
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            # json.JSONDecodeError and ValidationError are ValueErrors
            logger.error("Stored data under %s is corrupt, starting empty: %s", key, e)
            result.fail(f"{key}: {e}")
            return []
