"""Bulk import of cards from CSV and Excel uploads.

An upload is parsed into plain row dicts keyed by header, each row is mapped
onto card fields with a caller-supplied column mapping, numeric fields are
coerced, and every candidate is validated and stored on its own. A bad row
never aborts the batch; only an unreadable file does.
"""

import io
import json
import logging
import math
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import pandas as pd
from pydantic import ValidationError

from card_notes import cleanup_listing_notes
from errors import ColumnMappingError, ImportFileError, format_validation_errors
from schemas import UNGRADED_CONDITION, CardCreate, CardRead, ImportResponse, ImportRowResult
from storage import CardRepository

logger = logging.getLogger(__name__)

CSV_CONTENT_TYPE = "text/csv"
SPREADSHEET_CONTENT_TYPES = {
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}
IMPORT_CONTENT_TYPES = {CSV_CONTENT_TYPE} | SPREADSHEET_CONTENT_TYPES

UNMAPPED = "none"
MAPPABLE_FIELDS = [
    "playerName",
    "sport",
    "year",
    "brand",
    "condition",
    "purchasePrice",
    "cardSet",
    "cardNumber",
    "notes",
    "imageUrl",
]
PRICE_FIELDS = ("purchasePrice", "currentValue")

# Header names that always map to one field.
EXACT_HEADERS = {
    "card name": "notes",
    "player/athlete": "playerName",
    "player name": "playerName",
    "sport": "sport",
    "card number": "cardNumber",
    "features": "cardSet",
    "image url": "imageUrl",
    "season": "year",
    "condition": "condition",
    "brand": "brand",
    "manufacturer": "brand",
}
# Used for notes only while notes is still unmapped.
NOTES_FALLBACK_HEADERS = ("league", "team")
HEADER_ALIASES = {
    "playerName": ["player", "player name", "name", "player_name"],
    "sport": ["sport", "type", "category"],
    "year": ["year", "season", "yr"],
    "brand": ["brand", "manufacturer", "company"],
    "condition": ["condition", "quality", "grade"],
    "purchasePrice": ["price", "purchase price", "cost", "value", "purchase_price"],
    "cardSet": ["set", "card set", "series", "collection", "card_set", "features"],
    "cardNumber": ["number", "card number", "card #", "card_number", "id"],
    "notes": ["card name", "notes", "description", "comment", "comments", "team", "league"],
    "imageUrl": [
        "image", "image url", "image_url", "pic", "picture", "photo",
        "pic url", "picurl", "image link",
    ],
}

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def is_csv_upload(content_type: Optional[str], filename: Optional[str] = None) -> bool:
    if content_type == CSV_CONTENT_TYPE:
        return True
    return bool(filename) and filename.lower().endswith(".csv")


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _cell_value(value: Any) -> str:
    """Render a cell as the trimmed text a CSV of the same sheet would hold."""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if hasattr(value, "item"):
        value = value.item()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_csv(content: bytes, skip_bad_lines: bool = False) -> List[Dict[str, Any]]:
    """Parse CSV bytes into rows of trimmed strings keyed by header."""
    try:
        frame = pd.read_csv(
            io.BytesIO(content),
            dtype=str,
            keep_default_na=False,
            encoding="utf-8-sig",
            on_bad_lines="skip" if skip_bad_lines else "error",
        )
    except Exception as e:
        raise ImportFileError(f"Could not parse CSV file: {str(e)}") from e
    frame.columns = [str(column).strip() for column in frame.columns]
    return [
        {key: _cell_value(value) for key, value in record.items()}
        for record in frame.to_dict(orient="records")
    ]


def parse_spreadsheet(content: bytes) -> List[Dict[str, Any]]:
    """Parse the first sheet of an Excel workbook; blank cells are left out."""
    try:
        frame = pd.read_excel(io.BytesIO(content), sheet_name=0, dtype=object)
    except Exception as e:
        raise ImportFileError(f"Could not parse spreadsheet: {str(e)}") from e
    frame.columns = [str(column).strip() for column in frame.columns]
    return [
        {key: _cell_value(value) for key, value in record.items() if not _is_blank(value)}
        for record in frame.to_dict(orient="records")
    ]


def parse_upload(content: bytes, content_type: Optional[str], filename: Optional[str] = None) -> List[Dict[str, Any]]:
    if is_csv_upload(content_type, filename):
        return parse_csv(content)
    return parse_spreadsheet(content)


def read_headers(content: bytes, content_type: Optional[str], filename: Optional[str] = None) -> List[str]:
    """Return the header row of an upload without reading its data rows."""
    try:
        if is_csv_upload(content_type, filename):
            frame = pd.read_csv(io.BytesIO(content), nrows=0, encoding="utf-8-sig")
        else:
            frame = pd.read_excel(io.BytesIO(content), sheet_name=0, nrows=0)
    except Exception as e:
        raise ImportFileError(f"Could not read file headers: {str(e)}") from e
    return [str(column).strip() for column in frame.columns]


def parse_column_mapping(raw: Optional[str]) -> Dict[str, str]:
    """Decode the ``columnMap`` form field."""
    try:
        mapping = json.loads(raw) if raw else None
    except (TypeError, ValueError) as e:
        raise ColumnMappingError("Invalid column mapping") from e
    if not isinstance(mapping, dict):
        raise ColumnMappingError("Invalid column mapping")
    if not all(isinstance(value, str) or value is None for value in mapping.values()):
        raise ColumnMappingError("Invalid column mapping")
    return mapping


def suggest_column_mapping(headers: List[str]) -> Dict[str, str]:
    """Guess which header feeds each card field from the header names."""
    mapping = {field: UNMAPPED for field in MAPPABLE_FIELDS}
    for header in headers:
        lowered = header.lower().strip()
        if lowered in EXACT_HEADERS:
            mapping[EXACT_HEADERS[lowered]] = header
        elif lowered in NOTES_FALLBACK_HEADERS:
            if mapping["notes"] == UNMAPPED:
                mapping["notes"] = header
        else:
            for field, aliases in HEADER_ALIASES.items():
                if lowered in aliases:
                    mapping[field] = header
    return mapping


def apply_column_mapping(row: Dict[str, Any], mapping: Dict[str, str]) -> Dict[str, Any]:
    record = {}
    for field, column in mapping.items():
        if not column or column == UNMAPPED or column not in row:
            continue
        if _is_blank(row[column]):
            continue
        record[field] = row[column]
    return record


def parse_int(value: Any) -> Optional[int]:
    """Leading-integer parse: ``"2023-24"`` gives 2023, ``"abc"`` gives None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def parse_price(value: Any) -> Optional[float]:
    """Parse an amount such as ``"$1,250.50"``; None when no number leads."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    text = str(value).replace("$", "").replace(",", "").strip()
    match = _LEADING_FLOAT.match(text)
    return float(match.group(1)) if match else None


def coerce_record(record: Dict[str, Any]) -> Dict[str, Any]:
    """Convert numeric fields; unparsable values are kept so validation rejects them."""
    coerced = dict(record)
    if "year" in coerced:
        year = parse_int(coerced["year"])
        if year is not None:
            coerced["year"] = year
    for field in PRICE_FIELDS:
        if field in coerced:
            price = parse_price(coerced[field])
            if price is not None:
                coerced[field] = price
    return coerced


def map_rows(rows: List[Dict[str, Any]], mapping: Dict[str, str]) -> List[Dict[str, Any]]:
    return [coerce_record(apply_column_mapping(row, mapping)) for row in rows]


def import_record(repository: CardRepository, record: Dict[str, Any]) -> ImportRowResult:
    """Validate and store one candidate card, reporting instead of raising."""
    label = record.get("playerName") or "Unknown"
    try:
        data = CardCreate.model_validate(record)
    except ValidationError as e:
        return ImportRowResult(
            success=False,
            error=f"Validation error: {label} - {format_validation_errors(e.errors())}",
            data=record,
        )

    try:
        card = repository.create(data)
    except Exception as e:
        repository.session.rollback()
        logger.error(f"Error importing record {label}: {str(e)}")
        return ImportRowResult(
            success=False,
            error=f"Error processing record: {label}",
            data=record,
        )

    stored = CardRead.model_validate(card).model_dump(by_alias=True, mode="json")
    return ImportRowResult(success=True, data=stored)


def import_records(repository: CardRepository, records: List[Dict[str, Any]]) -> ImportResponse:
    results = [import_record(repository, record) for record in records]
    imported = sum(1 for result in results if result.success)
    failed = len(results) - imported
    logger.info(f"Import completed: {imported} cards imported, {failed} failed")
    return ImportResponse(
        message=f"Import completed: {imported} cards imported, {failed} failed",
        results=results,
    )


# eBay bulk-listing exports

EBAY_ADD_ACTION = "Add"
TITLE_STOP_WORDS = {"refractor", "auto", "autograph", "parallel", "insert", "prizm", "optic"}
_FIXED_PRICE = re.compile(r"Fixed Price(?:\s+Auction)?: \$([0-9.]+)")
_AUCTION_PRICE = re.compile(r"Starting at: \$([0-9.]+)")
_IMG_SRC = re.compile(r'<img src="([^"]+)"')


def extract_player_from_title(title: str) -> str:
    """Pull the player out of a title like ``"Topps Finest MLS 101 Cristian Arango Refractor"``.

    The player is taken as up to three words after the first all-digit token
    (the card number). Falls back to the whole title.
    """
    if not title:
        return ""
    words = title.split(" ")
    if len(words) >= 6:
        start = next(
            (i + 1 for i, word in enumerate(words) if word.isdigit() and i < len(words) - 2),
            None,
        )
        if start is not None:
            name = []
            for word in words[start:start + 3]:
                if word.lower() in TITLE_STOP_WORDS:
                    break
                name.append(word)
            return " ".join(name)
    return title


def normalize_condition(condition: str) -> str:
    condition = (condition or "").lower()
    if "mint" in condition or "nm" in condition:
        return "mint"
    if "excellent" in condition or "ex" in condition:
        return "excellent"
    if "very good" in condition or "vg" in condition:
        return "very good"
    if "good" in condition or "g" in condition:
        return "good"
    if "fair" in condition or "poor" in condition:
        return "fair"
    return UNGRADED_CONDITION


def extract_listing_price(description: str) -> float:
    """Fixed price wins over an auction start price; 0 when neither is present."""
    if description:
        for pattern in (_FIXED_PRICE, _AUCTION_PRICE):
            match = pattern.search(description)
            if match:
                price = parse_price(match.group(1))
                if price is not None:
                    return price
    return 0.0


def extract_image_url(text: str) -> Optional[str]:
    """First picture URL from a ``|``-separated PicURL or an HTML description."""
    if not text:
        return None
    if "<img src=" in text:
        match = _IMG_SRC.search(text)
        return match.group(1) if match else None
    first = text.split("|")[0].strip()
    return first if first.startswith("http") else None


def ebay_row_to_record(row: Dict[str, Any]) -> Dict[str, Any]:
    player = row.get("C:Player/Athlete") or extract_player_from_title(row.get("Title") or "")
    year = parse_int(row.get("C:Year Manufactured") or "")
    return {
        "playerName": player,
        "sport": (row.get("C:Sport") or "").lower() or "unknown",
        "year": year or datetime.now().year,
        "brand": row.get("C:Manufacturer") or "",
        "cardSet": row.get("C:Set") or "",
        "cardNumber": row.get("C:Card Number") or "",
        "condition": normalize_condition(
            row.get("C:ConditionDescription") or row.get("ConditionDescription") or ""
        ),
        "purchasePrice": extract_listing_price(row.get("Description") or ""),
        "currentValue": 0,
        "notes": cleanup_listing_notes(
            row.get("C:Features") or row.get("C:Card Name") or row.get("Subtitle") or ""
        ),
        "imageUrl": extract_image_url(row.get("PicURL") or row.get("Description") or "") or "",
    }


def ebay_records(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Card candidates for every listing row whose action adds an item."""
    return [
        ebay_row_to_record(row)
        for row in rows
        if str(row.get("Action") or "").startswith(EBAY_ADD_ACTION)
    ]
