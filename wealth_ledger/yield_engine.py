"""
Yield Engine Module

Daily compound-interest calculation over single assets and aggregation of the
whole portfolio. Values are always recompounded from the original principal
over the full elapsed period, so recalculating on the same day is idempotent
and a changed rate applies to the whole holding period.
"""

from decimal import Decimal, localcontext
from datetime import date
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional
import logging
import uuid

from .errors import ValidationError
from .ledger import LedgerStore
from .logging_config import log_action
from .models import Asset, AssetType, YieldRecord


logger = logging.getLogger(__name__)

DAYS_PER_YEAR = Decimal('365')
ZERO = Decimal('0')
HUNDRED = Decimal('100')


def daily_rate(annual_rate: Decimal) -> Decimal:
    """Convert an annual nominal percentage to a daily fraction"""
    return annual_rate / DAYS_PER_YEAR / HUNDRED


def compound_value(principal: Decimal, annual_rate: Decimal, days: int) -> Decimal:
    """
    Value of principal after compounding daily for the given number of days

    Args:
        principal: Starting amount
        annual_rate: Annual nominal rate in percent
        days: Whole days elapsed, non-negative
    """
    if days < 0:
        raise ValidationError("Days must not be negative", field="days")
    return principal * (1 + daily_rate(annual_rate)) ** days


def percentage_of(part: Decimal, whole: Decimal) -> Decimal:
    """part as a percentage of whole, 0 when whole is 0"""
    if whole == 0:
        return ZERO
    return part / whole * HUNDRED


def _quantize(value: Decimal, places: int) -> Decimal:
    exponent = Decimal(1).scaleb(-places)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + places + 2)
        return value.quantize(exponent)


@dataclass
class YieldOutcome:
    """Result of recalculating one asset"""
    asset_id: str
    days: int
    previous_value: Decimal
    new_value: Decimal
    yield_amount: Decimal
    yield_rate: Decimal
    record: Optional[YieldRecord] = None

    @property
    def recorded(self) -> bool:
        return self.record is not None


@dataclass
class BulkYieldResult:
    """Result of recalculating every asset"""
    outcomes: List[YieldOutcome] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)

    @property
    def records_created(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.recorded)

    @property
    def success(self) -> bool:
        return not self.failures


@dataclass
class TypeBreakdown:
    """Per-type slice of the portfolio"""
    count: int = 0
    total_value: Decimal = ZERO
    percentage: Decimal = ZERO


@dataclass
class AssetSummary:
    """Portfolio totals, derived on demand and never stored"""
    total_value: Decimal
    total_initial: Decimal
    total_yield: Decimal
    total_yield_rate: Decimal
    asset_count: int
    by_type: Dict[AssetType, TypeBreakdown]

    def to_dict(self) -> Dict:
        return {
            "totalValue": str(self.total_value),
            "totalInitial": str(self.total_initial),
            "totalYield": str(self.total_yield),
            "totalYieldRate": str(self.total_yield_rate),
            "assetCount": self.asset_count,
            "assetsByType": {
                asset_type.code: {
                    "count": breakdown.count,
                    "totalValue": str(breakdown.total_value),
                    "percentage": str(breakdown.percentage),
                }
                for asset_type, breakdown in self.by_type.items()
            },
        }


class YieldEngine:
    """
    Computes compounded asset values and writes them back through the ledger
    """

    def __init__(
        self,
        ledger: LedgerStore,
        clock: Callable[[], date] = date.today,
        precision: int = 10
    ):
        self.ledger = ledger
        self.clock = clock
        self.precision = precision

    def days_since_investment(self, asset: Asset) -> int:
        """Whole days between the investment date and today, in either direction"""
        return abs((self.clock() - asset.investment_date).days)

    def calculate_yield(self, asset_id: str) -> Optional[YieldOutcome]:
        """
        Recompound one asset from its principal and record any gain

        A record is appended only when the value grew relative to the
        asset's current value; flat or falling results update the value
        without a record.

        Returns:
            YieldOutcome, or None if asset_id is unknown
        """
        asset = self.ledger.get_asset(asset_id)
        if asset is None:
            logger.warning("Yield calculation skipped, asset %s not found", asset_id)
            return None

        today = self.clock()
        days = self.days_since_investment(asset)
        new_value = _quantize(
            compound_value(asset.initial_amount, asset.interest_rate, days), self.precision
        )

        previous_value = asset.current_value
        yield_amount = new_value - previous_value
        yield_rate = _quantize(percentage_of(yield_amount, previous_value), self.precision)

        record = None
        if yield_amount > 0:
            record = YieldRecord(
                id=str(uuid.uuid4()),
                asset_id=asset.id,
                date=today,
                previous_value=previous_value,
                new_value=new_value,
                yield_amount=yield_amount,
                yield_rate=yield_rate
            )

        self.ledger.record_yield(asset.id, new_value, record)

        log_action(
            logger, "info", f"Yield calculated for {asset.name}",
            action="yield_calculated", resource=asset.id,
            extra={
                "days": days,
                "previous_value": str(previous_value),
                "new_value": str(new_value),
                "yield_amount": str(yield_amount),
                "recorded": record is not None,
            }
        )

        return YieldOutcome(
            asset_id=asset.id,
            days=days,
            previous_value=previous_value,
            new_value=new_value,
            yield_amount=yield_amount,
            yield_rate=yield_rate,
            record=record
        )

    def calculate_all_yields(self) -> BulkYieldResult:
        """Recalculate every asset independently; one failure does not stop the rest"""
        result = BulkYieldResult()

        for asset in self.ledger.list_assets():
            try:
                outcome = self.calculate_yield(asset.id)
                if outcome is not None:
                    result.outcomes.append(outcome)
            except Exception as e:
                logger.exception("Yield calculation failed for asset %s", asset.id)
                result.failures[asset.id] = str(e)

        logger.info("Bulk yield calculation: %d assets, %d records, %d failures",
                    len(result.outcomes), result.records_created, len(result.failures))
        return result

    def project_yield(self, asset_id: str, days: int) -> Decimal:
        """
        Expected additional gain if the current value keeps compounding

        Unlike calculate_yield this starts from the current value and
        writes nothing back.
        """
        asset = self.ledger.require_asset(asset_id)
        future_value = compound_value(asset.current_value, asset.interest_rate, days)
        return _quantize(future_value - asset.current_value, self.precision)

    def get_summary(self) -> AssetSummary:
        """Aggregate totals and per-type breakdown over all assets"""
        assets = self.ledger.list_assets()
        by_type = {asset_type: TypeBreakdown() for asset_type in AssetType}

        total_value = ZERO
        total_initial = ZERO
        for asset in assets:
            total_value += asset.current_value
            total_initial += asset.initial_amount
            breakdown = by_type[asset.asset_type]
            breakdown.count += 1
            breakdown.total_value += asset.current_value

        for breakdown in by_type.values():
            breakdown.percentage = percentage_of(breakdown.total_value, total_value)

        total_yield = total_value - total_initial
        return AssetSummary(
            total_value=total_value,
            total_initial=total_initial,
            total_yield=total_yield,
            total_yield_rate=percentage_of(total_yield, total_initial),
            asset_count=len(assets),
            by_type=by_type
        )
