"""
Asset Model Module

Defines the tracked investment positions and the yield records produced each
time their value is recalculated. Monetary values and rates are Decimal;
persisted field names follow the camelCase names used by the stored state
and the interchange formats.
"""

from decimal import Decimal, InvalidOperation
from datetime import date, datetime, timezone
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union
from enum import Enum

from .errors import ValidationError


class AssetType(Enum):
    """Investment types with their display labels"""
    STOCK = ("stock", "股票")
    FUND = ("fund", "基金")
    DEPOSIT = ("deposit", "定期存款")
    WEALTH_MANAGEMENT = ("wealth_management", "理财产品")
    REAL_ESTATE = ("real_estate", "房产")
    BOND = ("bond", "债券")
    OTHER = ("other", "其他")

    def __init__(self, code: str, label: str):
        self.code = code
        self.label = label

    @classmethod
    def from_code(cls, code: Any) -> Optional['AssetType']:
        """Map an internal code (e.g. "real_estate") to its type"""
        for asset_type in cls:
            if asset_type.code == code:
                return asset_type
        return None

    @classmethod
    def from_label(cls, label: Any) -> Optional['AssetType']:
        """Map a display label back through the fixed label table"""
        for asset_type in cls:
            if asset_type.label == label:
                return asset_type
        return None

    @classmethod
    def parse(cls, value: Union['AssetType', str]) -> 'AssetType':
        """Accept a type, its code or its enum name"""
        if isinstance(value, cls):
            return value
        asset_type = cls.from_code(value)
        if asset_type is None and isinstance(value, str) and value.upper() in cls.__members__:
            asset_type = cls[value.upper()]
        if asset_type is None:
            raise ValidationError(f"Unknown asset type: {value!r}", field="type")
        return asset_type


def to_decimal(value: Any, field: str) -> Decimal:
    """Coerce a numeric input to Decimal"""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be numeric", field=field)
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError(f"{field} must be numeric, got {value!r}", field=field)
    if not result.is_finite():
        raise ValidationError(f"{field} must be finite", field=field)
    return result


def parse_date(value: Any, field: str) -> date:
    """Accept a date, a datetime or an ISO string"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            pass
    raise ValidationError(f"{field} must be an ISO date, got {value!r}", field=field)


def parse_timestamp(value: Any) -> datetime:
    """Parse a stored timestamp, tolerating the trailing Z of JavaScript ISO strings"""
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def validate_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Asset name must not be empty", field="name")
    return name.strip()


def validate_interest_rate(interest_rate: Any) -> Decimal:
    rate = to_decimal(interest_rate, "interestRate")
    if rate < 0:
        raise ValidationError("Interest rate must not be negative", field="interestRate")
    return rate


def validate_asset_fields(name: Any, initial_amount: Any, interest_rate: Any):
    """
    Validate the user-supplied fields of a new asset

    Returns:
        Tuple of (name, initial_amount, interest_rate) normalized
    """
    name = validate_name(name)
    amount = to_decimal(initial_amount, "initialAmount")
    if amount <= 0:
        raise ValidationError("Initial amount must be greater than zero", field="initialAmount")
    rate = validate_interest_rate(interest_rate)
    return name, amount, rate


@dataclass
class Asset:
    """
    One investment position

    current_value starts at initial_amount and moves only through yield
    calculation or an explicit edit.
    """
    id: str
    name: str
    asset_type: AssetType
    initial_amount: Decimal
    current_value: Decimal
    interest_rate: Decimal  # Annual nominal rate in percent (5 means 5%)
    investment_date: date
    last_updated: datetime
    description: Optional[str] = None

    @property
    def total_yield(self) -> Decimal:
        return self.current_value - self.initial_amount

    @property
    def total_yield_rate(self) -> Decimal:
        """Growth over the principal in percent"""
        if self.initial_amount == 0:
            return Decimal('0')
        return self.total_yield / self.initial_amount * 100

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        result = {
            "id": self.id,
            "name": self.name,
            "type": self.asset_type.code,
            "initialAmount": str(self.initial_amount),
            "currentValue": str(self.current_value),
            "interestRate": str(self.interest_rate),
            "investmentDate": self.investment_date.isoformat(),
            "lastUpdated": self.last_updated.isoformat(),
        }
        if self.description is not None:
            result["description"] = self.description
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Asset':
        """Create instance from a stored dictionary"""
        asset_type = AssetType.from_code(data["type"])
        if asset_type is None:
            raise ValidationError(f"Unknown asset type: {data['type']!r}", field="type")
        return cls(
            id=str(data["id"]),
            name=data["name"],
            asset_type=asset_type,
            initial_amount=to_decimal(data["initialAmount"], "initialAmount"),
            current_value=to_decimal(data["currentValue"], "currentValue"),
            interest_rate=to_decimal(data.get("interestRate", 0), "interestRate"),
            investment_date=parse_date(data["investmentDate"], "investmentDate"),
            last_updated=parse_timestamp(data["lastUpdated"]),
            description=data.get("description"),
        )


@dataclass(frozen=True)
class YieldRecord:
    """Immutable snapshot of one yield calculation"""
    id: str
    asset_id: str
    date: date
    previous_value: Decimal
    new_value: Decimal
    yield_amount: Decimal
    yield_rate: Decimal  # Percent of previous_value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "assetId": self.asset_id,
            "date": self.date.isoformat(),
            "previousValue": str(self.previous_value),
            "newValue": str(self.new_value),
            "yieldAmount": str(self.yield_amount),
            "yieldRate": str(self.yield_rate),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'YieldRecord':
        return cls(
            id=str(data["id"]),
            asset_id=str(data["assetId"]),
            date=parse_date(data["date"], "date"),
            previous_value=to_decimal(data["previousValue"], "previousValue"),
            new_value=to_decimal(data["newValue"], "newValue"),
            yield_amount=to_decimal(data["yieldAmount"], "yieldAmount"),
            yield_rate=to_decimal(data["yieldRate"], "yieldRate"),
        )
