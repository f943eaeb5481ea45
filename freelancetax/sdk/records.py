"""
Local records store for invoices and expenses.

This module contains all business logic for records storage and validation.
CLI and MCP tools should be thin wrappers that call these functions. The tax
calculation reads records through RecordsLedger (ledger.py), never directly.

Layout:
    <data_dir>/records/<taxpayer>/<year>/<id>.json

Each file holds {"meta": {...}, "data": {...}}. meta carries type
("invoice" or "expense"), taxpayer, year, month (the period the record is
attributed to) and imported_at.

Record IDs are the first 8 hex chars of a content hash. Numbered records
(invoice number, expense document_number) keep their ID, so importing them
again replaces the stored copy. Unnumbered records always get a fresh ID.
"""

import hashlib
import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml

from .config import get_data_path

logger = logging.getLogger(__name__)

RecordType = Literal["invoice", "expense"]
RECORD_TYPES = ("invoice", "expense")


# =============================================================================
# VALIDATION
# =============================================================================

class RecordValidationError(Exception):
    """Raised when a record fails validation."""
    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__(f"Validation failed: {'; '.join(errors)}")


INVOICE_SCHEMA = {
    "required": {
        "amount": (int, float),
        "currency": str,
        "issue_date": str,          # YYYY-MM-DD, used for currency conversion
        "status": str,              # DRAFT, SENT, PAID, CANCELLED
    },
    "optional": {
        "number": str,
        "label": str,
        "client": str,
        "archived": bool,
        "period_year": int,
        "period_month": int,
    }
}

EXPENSE_SCHEMA = {
    "required": {
        "name": str,
        "amount_pln": (int, float),  # gross, PLN
        "expense_date": str,         # YYYY-MM-DD
    },
    "optional": {
        "net_amount": (int, float),
        "vat_rate": (int, float),
        "deductible_percent": (int, float),
        "is_deductible": bool,
        "expense_type": str,         # BUSINESS or PERSONAL
        "category": str,
        "currency": str,
        "amount": (int, float),
        "document_number": str,
    }
}

DEFAULT_VAT_RATE = 23


def _validate_schema(data: Dict[str, Any], schema: Dict, record_type: str) -> List[str]:
    errors = []
    for field, expected in schema["required"].items():
        if field not in data or data[field] is None:
            errors.append(f"{record_type}: missing required field '{field}'")
        elif not isinstance(data[field], expected) or isinstance(data[field], bool) and expected != bool:
            errors.append(f"{record_type}: field '{field}' has wrong type {type(data[field]).__name__}")
    for field, expected in schema["optional"].items():
        if field not in data or data[field] is None:
            continue
        if not isinstance(data[field], expected) or isinstance(data[field], bool) and expected != bool:
            errors.append(f"{record_type}: field '{field}' has wrong type {type(data[field]).__name__}")
    unknown = set(data) - set(schema["required"]) - set(schema["optional"])
    for field in sorted(unknown):
        errors.append(f"{record_type}: unknown field '{field}'")
    return errors


def _validate_date_format(date_str: str, field_name: str) -> List[str]:
    try:
        date.fromisoformat(date_str)
        return []
    except (TypeError, ValueError):
        return [f"{field_name}: invalid date '{date_str}' (expected YYYY-MM-DD)"]


def validate_record(record_type: RecordType, data: Dict[str, Any]) -> None:
    """Validate record data.

    Raises:
        RecordValidationError: With every problem found
    """
    if record_type == "invoice":
        errors = _validate_schema(data, INVOICE_SCHEMA, "invoice")
        if isinstance(data.get("issue_date"), str):
            errors += _validate_date_format(data["issue_date"], "issue_date")
        month = data.get("period_month")
        if isinstance(month, int) and not isinstance(month, bool) and not 1 <= month <= 12:
            errors.append(f"period_month: {month} not in 1..12")
        if (data.get("period_year") is None) != (data.get("period_month") is None):
            errors.append("period_year and period_month must be given together")
    elif record_type == "expense":
        errors = _validate_schema(data, EXPENSE_SCHEMA, "expense")
        if isinstance(data.get("expense_date"), str):
            errors += _validate_date_format(data["expense_date"], "expense_date")
        pct = data.get("deductible_percent")
        if isinstance(pct, (int, float)) and not isinstance(pct, bool) and not 0 <= pct <= 100:
            errors.append(f"deductible_percent: {pct} not in 0..100")
        expense_type = data.get("expense_type")
        if expense_type is not None and expense_type not in ("BUSINESS", "PERSONAL"):
            errors.append(f"expense_type: '{expense_type}' must be BUSINESS or PERSONAL")
    else:
        errors = [f"record type must be one of {RECORD_TYPES}, got: {record_type}"]

    if errors:
        raise RecordValidationError(errors)


def normalize_expense_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """Fill derived expense fields.

    - net_amount from amount_pln and vat_rate (default 23%) when missing
    - PERSONAL expenses are never deductible
    - deductible_percent defaults to 100
    """
    data = dict(data)
    vat_rate = data.get("vat_rate")
    if vat_rate is None:
        vat_rate = DEFAULT_VAT_RATE
        data["vat_rate"] = vat_rate
    if data.get("net_amount") is None:
        data["net_amount"] = round(data["amount_pln"] / (1 + vat_rate / 100), 2)

    if data.get("expense_type", "BUSINESS") == "PERSONAL":
        data["is_deductible"] = False
        data["deductible_percent"] = 0
    else:
        data.setdefault("is_deductible", True)
        if data.get("deductible_percent") is None:
            data["deductible_percent"] = 100
    return data


# =============================================================================
# STORAGE
# =============================================================================

def get_records_dir() -> Path:
    """Get the records base directory (<data_dir>/records/)."""
    records_dir = get_data_path() / "records"
    records_dir.mkdir(parents=True, exist_ok=True)
    return records_dir


def record_period(record_type: RecordType, data: Dict[str, Any]) -> tuple:
    """(year, month) a record is attributed to."""
    if record_type == "invoice":
        if data.get("period_year") is not None:
            return int(data["period_year"]), int(data["period_month"])
        issued = date.fromisoformat(data["issue_date"])
        return issued.year, issued.month
    spent = date.fromisoformat(data["expense_date"])
    return spent.year, spent.month


def _document_number(record_type: RecordType, data: Dict[str, Any]) -> Optional[str]:
    """The number printed on the document, if the record has one."""
    key = "number" if record_type == "invoice" else "document_number"
    return data.get(key) or None


def _generate_record_id(record_type: RecordType, taxpayer: str, data: Dict[str, Any], sequence: int = 0) -> str:
    """Content-based record ID, first 8 chars of a sha256.

    For invoices: hash of "invoice|{taxpayer}|{number or issue_date}|{amount}|{currency}"
    For expenses: hash of "expense|{taxpayer}|{document_number or expense_date|name}|{amount_pln}"
    A non-zero sequence is appended for unnumbered records that share content.
    """
    if record_type == "invoice":
        identifier = data.get("number") or data.get("issue_date", "")
        content = f"invoice|{taxpayer}|{identifier}|{float(data.get('amount', 0)):.2f}|{data.get('currency', '')}"
    else:
        identifier = data.get("document_number") or f"{data.get('expense_date', '')}|{data.get('name', '')}"
        content = f"expense|{taxpayer}|{identifier}|{float(data.get('amount_pln', 0)):.2f}"
    if sequence:
        content += f"|{sequence}"
    return hashlib.sha256(content.encode()).hexdigest()[:8]


def _find_record_files(taxpayer: str, record_id: str) -> List[Path]:
    taxpayer_dir = get_records_dir() / taxpayer
    if not taxpayer_dir.exists():
        return []
    return sorted(taxpayer_dir.rglob(f"{record_id}.json"))


def add_record(record_type: RecordType, taxpayer: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate and save a record.

    A numbered record (invoice number, expense document_number) replaces the
    stored record with the same number, also when its period moved to
    another year. An unnumbered record never replaces anything: when its
    content matches a stored record it is saved under a new ID.

    Args:
        record_type: "invoice" or "expense"
        taxpayer: Taxpayer id the record belongs to
        data: Record data

    Returns:
        The saved record with 'id' and '_path' keys

    Raises:
        RecordValidationError: If the data is invalid
    """
    validate_record(record_type, data)
    if record_type == "expense":
        data = normalize_expense_data(data)

    year, month = record_period(record_type, data)
    record_id = _generate_record_id(record_type, taxpayer, data)
    existing = _find_record_files(taxpayer, record_id)

    if _document_number(record_type, data) is None:
        sequence = 0
        while existing:
            sequence += 1
            record_id = _generate_record_id(record_type, taxpayer, data, sequence)
            existing = _find_record_files(taxpayer, record_id)
        if sequence:
            logger.warning(
                f"Unnumbered {record_type} matches {sequence} stored record(s); "
                f"saved as new record {record_id}. Add a number to make re-imports replace it."
            )

    target_dir = get_records_dir() / taxpayer / str(year)
    target_dir.mkdir(parents=True, exist_ok=True)
    record_path = target_dir / f"{record_id}.json"

    for stale in existing:
        if stale != record_path:
            stale.unlink()
            logger.info(f"Moved {record_type} {record_id} from {stale.parent.name} to {year}")

    meta = {
        "type": record_type,
        "taxpayer": taxpayer,
        "year": year,
        "month": month,
        "imported_at": datetime.now().isoformat(),
    }

    record = {"meta": meta, "data": data}
    with open(record_path, "w") as f:
        json.dump(record, f, indent=2)

    logger.debug(f"Saved {record_type} {record_id} for {taxpayer} ({year}-{month:02d})")
    return {**record, "id": record_id, "_path": str(record_path)}


def list_records(
    taxpayer: str,
    year: Optional[int] = None,
    month: Optional[int] = None,
    type_filter: Optional[RecordType] = None,
) -> List[Dict[str, Any]]:
    """List records with optional filters.

    Args:
        taxpayer: Taxpayer id
        year: Filter by period year
        month: Filter by period month (1-12)
        type_filter: Filter by type ("invoice", "expense")

    Returns:
        Records sorted by period and date, each with 'meta', 'data', 'id'
    """
    taxpayer_dir = get_records_dir() / taxpayer
    if not taxpayer_dir.exists():
        return []

    if year is not None:
        scan_dirs = [taxpayer_dir / str(year)]
    else:
        scan_dirs = [d for d in taxpayer_dir.iterdir() if d.is_dir()]

    results = []
    for scan_dir in scan_dirs:
        if not scan_dir.exists():
            continue
        for json_file in scan_dir.glob("*.json"):
            try:
                with open(json_file) as f:
                    record = json.load(f)
            except (json.JSONDecodeError, IOError) as e:
                logger.warning(f"Skipping unreadable record {json_file}: {e}")
                continue

            meta = record.get("meta", {})
            if type_filter and meta.get("type") != type_filter:
                continue
            if month is not None and meta.get("month") != month:
                continue

            record["id"] = json_file.stem
            record["_path"] = str(json_file)
            results.append(record)

    def sort_key(r):
        meta = r.get("meta", {})
        data = r.get("data") or {}
        day = data.get("issue_date") or data.get("expense_date") or ""
        return (meta.get("year", 0), meta.get("month", 0), day, r["id"])

    results.sort(key=sort_key)
    return results


def get_record(record_id: str) -> Optional[Dict[str, Any]]:
    """Get a single record by ID, or None if not found."""
    for json_file in get_records_dir().rglob(f"{record_id}.json"):
        try:
            with open(json_file) as f:
                record = json.load(f)
        except (json.JSONDecodeError, IOError):
            return None
        record["id"] = json_file.stem
        record["_path"] = str(json_file)
        return record
    return None


def remove_record(record_id: str) -> bool:
    """Delete a record by its ID. Returns False if it was not found."""
    for json_file in get_records_dir().rglob(f"{record_id}.json"):
        json_file.unlink()
        return True
    return False


def _stringify_dates(data: Dict[str, Any]) -> Dict[str, Any]:
    # YAML loads unquoted YYYY-MM-DD values as date objects
    return {
        key: value.isoformat() if isinstance(value, date) else value
        for key, value in dict(data).items()
    }


def _load_import_file(path: Path) -> List[tuple]:
    """Read (type, data) pairs from a JSON or YAML file.

    Accepted shapes:
        {"invoices": [...], "expenses": [...]}
        [{"type": "invoice", ...}, {"type": "expense", ...}]
    """
    with open(path) as f:
        if path.suffix.lower() in (".yaml", ".yml"):
            content = yaml.safe_load(f)
        else:
            content = json.load(f)

    items = []
    if isinstance(content, dict):
        for key, record_type in (("invoices", "invoice"), ("expenses", "expense")):
            for data in content.get(key) or []:
                items.append((record_type, _stringify_dates(data)))
    elif isinstance(content, list):
        for data in content:
            data = _stringify_dates(data)
            items.append((data.pop("type", None), data))
    else:
        raise RecordValidationError([f"{path.name}: expected a mapping or a list"])
    return items


def import_records(path: Path, taxpayer: str) -> Dict[str, Any]:
    """Import invoices and expenses from a file.

    Invalid entries are reported and skipped; valid ones are saved.

    Returns:
        {"added": [ids], "errors": [messages]}
    """
    added, errors = [], []
    for index, (record_type, data) in enumerate(_load_import_file(Path(path)), start=1):
        try:
            record = add_record(record_type, taxpayer, data)
        except RecordValidationError as e:
            errors.append(f"entry {index}: {'; '.join(e.errors)}")
            continue
        added.append(record["id"])
    logger.info(f"Imported {len(added)} record(s) from {path} ({len(errors)} error(s))")
    return {"added": added, "errors": errors}
