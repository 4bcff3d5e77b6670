"""
Tests for the asset model

Covers the fixed type table, numeric and date coercion, field validation and
the stored dictionary shape of assets and yield records.
"""

import pytest
from decimal import Decimal
from datetime import date, datetime, timezone

from wealth_ledger.errors import ValidationError
from wealth_ledger.models import (
    Asset, AssetType, YieldRecord,
    parse_date, parse_timestamp, to_decimal, validate_asset_fields
)


class TestAssetType:
    """Test the closed set of asset types"""

    def test_seven_types(self):
        """Test the fixed type set"""
        codes = [asset_type.code for asset_type in AssetType]
        assert codes == [
            "stock", "fund", "deposit", "wealth_management", "real_estate", "bond", "other"
        ]

    def test_label_lookup(self):
        """Test labels map back to their type"""
        assert AssetType.from_label("股票") == AssetType.STOCK
        assert AssetType.from_label("房产") == AssetType.REAL_ESTATE
        assert AssetType.from_label("crypto") is None

    def test_code_lookup(self):
        """Test internal codes map back to their type"""
        assert AssetType.from_code("wealth_management") == AssetType.WEALTH_MANAGEMENT
        assert AssetType.from_code("STOCK") is None

    def test_parse(self):
        """Test parse accepts types, codes and enum names"""
        assert AssetType.parse(AssetType.BOND) == AssetType.BOND
        assert AssetType.parse("bond") == AssetType.BOND
        assert AssetType.parse("REAL_ESTATE") == AssetType.REAL_ESTATE

        with pytest.raises(ValidationError, match="Unknown asset type"):
            AssetType.parse("crypto")


class TestCoercion:
    """Test numeric and date parsing helpers"""

    def test_to_decimal(self):
        """Test numeric inputs become Decimal"""
        assert to_decimal(10000, "amount") == Decimal("10000")
        assert to_decimal("5.5", "rate") == Decimal("5.5")
        assert to_decimal(0.1, "rate") == Decimal("0.1")
        assert to_decimal(Decimal("3"), "amount") == Decimal("3")

    @pytest.mark.parametrize("value", ["abc", "", None, True, "NaN", "Infinity"])
    def test_to_decimal_rejects(self, value):
        """Test non-numeric inputs are rejected"""
        with pytest.raises(ValidationError):
            to_decimal(value, "amount")

    def test_parse_date(self):
        """Test ISO strings and datetimes become dates"""
        assert parse_date("2024-01-15", "d") == date(2024, 1, 15)
        assert parse_date("2024-01-15T08:30:00.000Z", "d") == date(2024, 1, 15)
        assert parse_date(datetime(2024, 1, 15, 8, 30), "d") == date(2024, 1, 15)

        with pytest.raises(ValidationError):
            parse_date("15/01/2024", "d")

    def test_parse_timestamp_javascript_format(self):
        """Test trailing Z timestamps are read as UTC"""
        parsed = parse_timestamp("2024-01-15T08:30:00.000Z")
        assert parsed.tzinfo is not None
        assert parsed.utcoffset().total_seconds() == 0
        assert parsed.hour == 8


class TestValidation:
    """Test new-asset field validation"""

    def test_valid_fields(self):
        """Test valid fields are normalized"""
        name, amount, rate = validate_asset_fields("  Index Fund ", "1000", 0)
        assert name == "Index Fund"
        assert amount == Decimal("1000")
        assert rate == Decimal("0")

    def test_empty_name(self):
        """Test blank names are rejected"""
        with pytest.raises(ValidationError, match="name") as exc_info:
            validate_asset_fields("   ", 1000, 5)
        assert exc_info.value.field == "name"

    @pytest.mark.parametrize("amount", [0, -100])
    def test_non_positive_amount(self, amount):
        """Test the principal must be positive"""
        with pytest.raises(ValidationError, match="greater than zero"):
            validate_asset_fields("Deposit", amount, 5)

    def test_negative_rate(self):
        """Test negative rates are rejected"""
        with pytest.raises(ValidationError, match="negative"):
            validate_asset_fields("Deposit", 1000, -1)


class TestSerialization:
    """Test stored dictionary shape"""

    def test_asset_dict_uses_camel_case(self):
        """Test asset fields are stored under their camelCase names"""
        asset = Asset(
            id="a1",
            name="Bank Deposit",
            asset_type=AssetType.DEPOSIT,
            initial_amount=Decimal("10000"),
            current_value=Decimal("10250.5"),
            interest_rate=Decimal("2.5"),
            investment_date=date(2024, 1, 1),
            last_updated=datetime(2024, 6, 1, tzinfo=timezone.utc),
            description="3 year term"
        )

        data = asset.to_dict()
        assert data == {
            "id": "a1",
            "name": "Bank Deposit",
            "type": "deposit",
            "initialAmount": "10000",
            "currentValue": "10250.5",
            "interestRate": "2.5",
            "investmentDate": "2024-01-01",
            "lastUpdated": "2024-06-01T00:00:00+00:00",
            "description": "3 year term",
        }
        assert Asset.from_dict(data) == asset

    def test_asset_from_numeric_json(self):
        """Test stored state written with JSON numbers still loads"""
        asset = Asset.from_dict({
            "id": "lx0abc",
            "name": "Fund",
            "type": "fund",
            "initialAmount": 5000,
            "currentValue": 5100.25,
            "interestRate": 3,
            "investmentDate": "2024-02-01",
            "lastUpdated": "2024-06-01T10:00:00.000Z",
        })
        assert asset.asset_type == AssetType.FUND
        assert asset.current_value == Decimal("5100.25")
        assert asset.description is None

    def test_asset_from_dict_unknown_type(self):
        """Test unknown stored types are rejected"""
        with pytest.raises(ValidationError):
            Asset.from_dict({
                "id": "x", "name": "X", "type": "crypto", "initialAmount": 1,
                "currentValue": 1, "investmentDate": "2024-01-01",
                "lastUpdated": "2024-01-01T00:00:00+00:00",
            })

    def test_yield_record_is_immutable(self):
        """Test yield records cannot be modified after creation"""
        record = YieldRecord(
            id="r1", asset_id="a1", date=date(2024, 6, 1),
            previous_value=Decimal("100"), new_value=Decimal("110"),
            yield_amount=Decimal("10"), yield_rate=Decimal("10")
        )

        with pytest.raises(AttributeError):
            record.new_value = Decimal("120")

        assert record.to_dict()["assetId"] == "a1"
        assert YieldRecord.from_dict(record.to_dict()) == record

    def test_asset_total_yield(self):
        """Test derived growth properties"""
        asset = Asset(
            id="a1", name="Stock", asset_type=AssetType.STOCK,
            initial_amount=Decimal("2000"), current_value=Decimal("2500"),
            interest_rate=Decimal("0"), investment_date=date(2024, 1, 1),
            last_updated=datetime.now(timezone.utc)
        )
        assert asset.total_yield == Decimal("500")
        assert asset.total_yield_rate == Decimal("25")
