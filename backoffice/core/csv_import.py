# =========================================================
# CSV BULK IMPORT FORMAT
#
# Import rows carry no header and use IMPORT_COLUMNS order.
# The validation endpoint expects a header row naming at
# least REQUIRED_HEADERS.
# =========================================================

import csv
import io
from datetime import date
from decimal import Decimal, InvalidOperation

from backoffice.core.validation import check_product_rules, parse_expiry_date

IMPORT_COLUMNS = [
    "productName",
    "productId",
    "category",
    "costPrice",
    "sellingPrice",
    "quantity",
    "unit",
    "expiryDate",
    "thresholdValue",
    "description",
]

REQUIRED_HEADERS = [
    "productName",
    "category",
    "costPrice",
    "sellingPrice",
    "quantity",
    "unit",
    "expiryDate",
    "thresholdValue",
]

# quantity may be left empty on import and defaults to 1
REQUIRED_IMPORT_FIELDS = [
    "productName",
    "category",
    "costPrice",
    "sellingPrice",
    "unit",
    "expiryDate",
    "thresholdValue",
]

MISSING_FIELDS = "MISSING_FIELDS"
INVALID_FORMAT = "INVALID_FORMAT"
DATE_FORMAT_ERROR = "DATE_FORMAT_ERROR"
VALIDATION_ERROR = "VALIDATION_ERROR"
DUPLICATE = "DUPLICATE"
DATABASE_ERROR = "DATABASE_ERROR"

SUMMARY_MESSAGES = {
    MISSING_FIELDS: "Missing required fields in {rows}",
    DATE_FORMAT_ERROR: "Invalid date format in {rows} (use DD/MM/YY)",
    INVALID_FORMAT: "Invalid field format in {rows}",
    VALIDATION_ERROR: "Invalid product values in {rows}",
    DUPLICATE: "Duplicate products in {rows}",
}

CSV_FORMAT = {
    "columnOrder": IMPORT_COLUMNS,
    "description": "CSV file should contain only data rows without headers, in the same order as frontend form",
    "requirements": {
        "productName": "Text - Name of the product (required)",
        "productId": "Text - Product ID (leave empty for auto-generation)",
        "category": "Text - Product category (required)",
        "costPrice": "Number - Cost price for internal calculations (required)",
        "sellingPrice": "Number - Selling price displayed in inventory (required)",
        "quantity": "Number - Current stock quantity (defaults to 1 when empty)",
        "unit": "Text - Unit of measurement (piece, kg, liter, etc.) (required)",
        "expiryDate": "Date - Format: DD/MM/YY (e.g., 31/12/25) (required)",
        "thresholdValue": "Number - Minimum stock threshold (required)",
        "description": "Text - Product description (optional)",
    },
    "example": [
        "Laptop Pro,,Electronics,800,1200,15,piece,31/12/26,5,High-performance laptop for professionals",
        "Gaming Mouse,,Electronics,40,75,50,piece,30/06/27,10,Wireless gaming mouse with RGB lighting",
        "Office Chair,,Furniture,200,350,25,piece,15/03/28,3,Ergonomic office chair with lumbar support",
    ],
    "notes": [
        "No header row required in CSV file",
        "Each row represents one product",
        "Columns must be in the exact order specified (matching frontend form)",
        "Use commas to separate fields, quote values that contain commas",
        "Leave productId empty for auto-generation",
        "Cost price is for internal calculations only",
        "Selling price will be displayed in inventory",
        "Date format must be DD/MM/YY",
        "Empty lines will be skipped",
    ],
}


class RowError(Exception):
    def __init__(self, error_type: str, message: str, details: dict | None = None):
        super().__init__(message)
        self.error_type = error_type
        self.message = message
        self.details = details or {}


def _read_lines(text: str):
    reader = csv.reader(io.StringIO(text))

    for line_number, values in enumerate(reader, start=1):
        values = [value.strip() for value in values]
        if not any(values):
            continue
        yield line_number, values


def read_import_rows(text: str) -> list[dict]:
    """Split headerless CSV text into rows keyed by IMPORT_COLUMNS.

    Rows with the wrong number of columns are returned with ``column_count``
    set so the caller can report them instead of dropping them.
    """
    rows = []

    for line_number, values in _read_lines(text):
        row = {"row_number": line_number}

        if len(values) != len(IMPORT_COLUMNS):
            row["column_count"] = len(values)
        else:
            row.update(zip(IMPORT_COLUMNS, values))

        rows.append(row)

    return rows


def read_validation_rows(text: str) -> tuple[list[str], list[dict]]:
    lines = list(_read_lines(text))

    if not lines:
        raise ValueError("CSV file is empty")

    _, headers = lines[0]
    headers = [header.strip("'\"") for header in headers]

    missing = [header for header in REQUIRED_HEADERS if header not in headers]
    if missing:
        raise ValueError(f"Missing required columns: {', '.join(missing)}")

    rows = []
    for line_number, values in lines[1:]:
        row = {"row_number": line_number}

        if len(values) != len(headers):
            row["column_count"] = len(values)
        else:
            row.update(zip(headers, values))

        rows.append(row)

    return headers, rows


def _parse_decimal(value: str) -> Decimal:
    try:
        number = Decimal(value)
    except InvalidOperation:
        raise ValueError(value)

    if not number.is_finite():
        raise ValueError(value)

    return number


def parse_product_row(row: dict, today: date, required_fields=REQUIRED_IMPORT_FIELDS) -> dict:
    """Turn one CSV row into product values, raising RowError on the first problem."""
    row_number = row["row_number"]

    if "column_count" in row:
        raise RowError(
            INVALID_FORMAT,
            f"Row {row_number}: Expected {len(IMPORT_COLUMNS)} columns but found {row['column_count']}",
        )

    missing = [field for field in required_fields if not row.get(field)]
    if missing:
        raise RowError(
            MISSING_FIELDS,
            f"Row {row_number}: Missing required fields: {', '.join(missing)}",
            {"missing_fields": missing},
        )

    invalid = []
    values = {}

    for field in ("costPrice", "sellingPrice"):
        try:
            values[field] = _parse_decimal(row[field])
        except ValueError:
            invalid.append(f"{field} (must be a valid number)")

    for field in ("quantity", "thresholdValue"):
        raw = row.get(field) or ""
        if field == "quantity" and raw == "":
            values[field] = 1
            continue
        try:
            values[field] = int(raw)
        except ValueError:
            invalid.append(f"{field} (must be a valid number)")

    if invalid:
        raise RowError(
            INVALID_FORMAT,
            f"Row {row_number}: Invalid field format: {', '.join(invalid)}",
            {"invalid_fields": invalid},
        )

    try:
        expiry_date = parse_expiry_date(row["expiryDate"])
    except ValueError as exc:
        raise RowError(
            DATE_FORMAT_ERROR,
            f"Row {row_number}: Date format error - {exc}. Expected format: DD/MM/YY (e.g., 31/12/25)",
            {"provided_date": row["expiryDate"], "expected_format": "DD/MM/YY"},
        )

    violation = check_product_rules(
        values["costPrice"],
        values["sellingPrice"],
        values["quantity"],
        values["thresholdValue"],
        expiry_date,
        today,
    )
    if violation:
        raise RowError(VALIDATION_ERROR, f"Row {row_number}: {violation}")

    return {
        "name": row["productName"],
        "product_id": row.get("productId") or None,
        "category": row["category"],
        "cost_price": values["costPrice"],
        "selling_price": values["sellingPrice"],
        "quantity": values["quantity"],
        "unit": row["unit"],
        "expiry_date": expiry_date,
        "threshold_value": values["thresholdValue"],
        "description": row.get("description") or "",
    }


def summarize_failures(failed: list[dict]) -> list[str]:
    rows_by_type = {}
    for failure in failed:
        rows_by_type.setdefault(failure["error_type"], []).append(failure["row_number"])

    messages = []
    for error_type, rows in rows_by_type.items():
        if len(rows) == 1:
            row_text = f"row {rows[0]}"
        else:
            row_text = f"rows {', '.join(str(row) for row in rows)}"

        template = SUMMARY_MESSAGES.get(error_type, "Processing errors in {rows}")
        messages.append(template.format(rows=row_text))

    return messages
