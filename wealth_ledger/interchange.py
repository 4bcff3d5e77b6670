"""
Interchange Module

Full-backup (JSON) and tabular (CSV) export and import of the ledger. Imports
are additive: every accepted row becomes a new asset with a fresh id, and a
malformed row is skipped without aborting the rest of the import.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union
import csv
import io
import json
import logging

from .errors import ImportRowError, ValidationError
from .ledger import LedgerStore
from .models import Asset, AssetType, parse_date, to_decimal


logger = logging.getLogger(__name__)

BACKUP_FORMAT_VERSION = "1.0"

CSV_HEADERS = [
    "资产名称",
    "资产类型",
    "初始金额",
    "当前价值",
    "年化利率(%)",
    "投资日期",
    "最后更新",
    "描述",
]

# Rows shorter than this cannot carry a date column
MIN_CSV_COLUMNS = 6


@dataclass
class ImportResult:
    """Aggregate outcome of a bulk import"""
    imported: List[Asset] = field(default_factory=list)
    errors: List[ImportRowError] = field(default_factory=list)

    @property
    def imported_count(self) -> int:
        return len(self.imported)

    @property
    def skipped_count(self) -> int:
        return len(self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "imported": self.imported_count,
            "skipped": self.skipped_count,
            "assetIds": [asset.id for asset in self.imported],
            "errors": [{"row": error.row, "reason": error.reason} for error in self.errors],
        }


def export_backup(ledger: LedgerStore, exported_at: Optional[datetime] = None,
                  version: str = BACKUP_FORMAT_VERSION) -> Dict[str, Any]:
    """Snapshot both collections as a backup document"""
    exported_at = exported_at or datetime.now(timezone.utc)
    return {
        "assets": [asset.to_dict() for asset in ledger.list_assets()],
        "yieldRecords": [record.to_dict() for record in ledger.list_yield_records()],
        "exportDate": exported_at.isoformat(),
        "version": version,
    }


def dumps_backup(ledger: LedgerStore, exported_at: Optional[datetime] = None,
                 version: str = BACKUP_FORMAT_VERSION) -> str:
    return json.dumps(export_backup(ledger, exported_at, version), ensure_ascii=False, indent=2)


def import_backup(ledger: LedgerStore, content: Union[str, bytes, Dict[str, Any]]) -> ImportResult:
    """
    Import the assets of a backup document

    Args:
        ledger: Ledger to add the assets to
        content: JSON text or an already decoded document

    Returns:
        ImportResult with the created assets and the rejected entries

    Raises:
        ValidationError: If the document is not JSON or has no assets array
    """
    if isinstance(content, (str, bytes)):
        try:
            document = json.loads(content)
        except ValueError as e:
            raise ValidationError(f"Backup is not valid JSON: {e}")
    else:
        document = content

    if not isinstance(document, dict) or not isinstance(document.get("assets"), list):
        raise ValidationError("Backup must contain an assets array", field="assets")

    result = ImportResult()
    for row, entry in enumerate(document["assets"], start=1):
        try:
            asset = _import_backup_entry(ledger, row, entry)
        except ImportRowError as e:
            logger.warning("Skipping backup entry: %s", e)
            result.errors.append(e)
            continue
        result.imported.append(asset)

    logger.info("Backup import finished: %d imported, %d skipped",
                result.imported_count, result.skipped_count)
    return result


def _import_backup_entry(ledger: LedgerStore, row: int, entry: Any) -> Asset:
    if not isinstance(entry, dict):
        raise ImportRowError(row, "entry is not an object")
    if not entry.get("name"):
        raise ImportRowError(row, "missing name")
    asset_type = AssetType.from_code(entry.get("type"))
    if asset_type is None:
        raise ImportRowError(row, f"unrecognized type {entry.get('type')!r}")

    try:
        initial_amount = to_decimal(entry.get("initialAmount"), "initialAmount")
        interest_rate = _rate_or_zero(entry.get("interestRate"))
        return ledger.add_asset(
            name=entry["name"],
            asset_type=asset_type,
            initial_amount=initial_amount,
            interest_rate=interest_rate,
            investment_date=entry.get("investmentDate") or None,
            description=entry.get("description") or ""
        )
    except ValidationError as e:
        raise ImportRowError(row, str(e)) from e


def export_csv(ledger: LedgerStore) -> str:
    """One quoted row per asset, with the type written as its label"""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for asset in ledger.list_assets():
        writer.writerow([
            asset.name,
            asset.asset_type.label,
            str(asset.initial_amount),
            str(asset.current_value),
            str(asset.interest_rate),
            asset.investment_date.isoformat(),
            asset.last_updated.isoformat(),
            asset.description or "",
        ])
    return buffer.getvalue()


def import_csv(ledger: LedgerStore, content: Union[str, bytes]) -> ImportResult:
    """
    Import assets from tabular text

    The first non-blank row is a header and is skipped. Columns are
    positional: name, type label, initial amount, current value (ignored),
    rate, investment date, last updated (ignored), description. Quoted
    fields may span lines; rows are numbered by the line they end on.

    Raises:
        ValidationError: If there is no header plus at least one data row
    """
    if isinstance(content, bytes):
        content = content.decode("utf-8-sig")
    else:
        content = content.lstrip("\ufeff")

    reader = csv.reader(io.StringIO(content), skipinitialspace=True)
    rows = []
    try:
        for values in reader:
            values = [value.strip() for value in values]
            if any(values):
                rows.append((reader.line_num, values))
    except csv.Error as e:
        raise ValidationError(f"CSV is malformed near line {reader.line_num}: {e}")

    if len(rows) < 2:
        raise ValidationError("CSV must contain a header and at least one row")

    result = ImportResult()
    for row, values in rows[1:]:
        try:
            asset = _import_csv_row(ledger, row, values)
        except ImportRowError as e:
            logger.warning("Skipping CSV row: %s", e)
            result.errors.append(e)
            continue
        result.imported.append(asset)

    logger.info("CSV import finished: %d imported, %d skipped",
                result.imported_count, result.skipped_count)
    return result


def _import_csv_row(ledger: LedgerStore, row: int, values: List[str]) -> Asset:
    if len(values) < MIN_CSV_COLUMNS:
        raise ImportRowError(row, f"expected at least {MIN_CSV_COLUMNS} columns, got {len(values)}")

    name = values[0]
    if not name:
        raise ImportRowError(row, "missing name")
    asset_type = AssetType.from_label(values[1])
    if asset_type is None:
        raise ImportRowError(row, f"unrecognized type label {values[1]!r}")

    try:
        initial_amount = to_decimal(values[2], "initialAmount")
        investment_date = parse_date(values[5], "investmentDate") if values[5] else None
        return ledger.add_asset(
            name=name,
            asset_type=asset_type,
            initial_amount=initial_amount,
            interest_rate=_rate_or_zero(values[4]),
            investment_date=investment_date,
            description=values[7] if len(values) > 7 else ""
        )
    except ValidationError as e:
        raise ImportRowError(row, str(e)) from e


def _rate_or_zero(value: Any) -> Decimal:
    """Missing or unreadable rates import as 0"""
    if value is None or value == "":
        return Decimal('0')
    try:
        return to_decimal(value, "interestRate")
    except ValidationError:
        return Decimal('0')
