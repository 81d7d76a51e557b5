# backoffice/core/identifiers.py

import secrets
import string
import time

from sqlalchemy.orm import Session

BASE36_ALPHABET = string.digits + string.ascii_uppercase

# Attempts before giving up on finding a free identifier
MAX_ID_ATTEMPTS = 10


def to_base36(number: int) -> str:
    if number == 0:
        return "0"

    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36_ALPHABET[remainder])

    return "".join(reversed(digits))


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def generate_product_id() -> str:
    # PROD-<base36 timestamp>-<6 hex chars>
    return f"PROD-{to_base36(_timestamp_ms())}-{secrets.token_hex(3).upper()}"


def generate_order_id() -> str:
    # ORD-<BASE36 TIMESTAMP>-<5 BASE36 CHARS>
    random_part = "".join(secrets.choice(BASE36_ALPHABET) for _ in range(5))
    return f"ORD-{to_base36(_timestamp_ms())}-{random_part}"


def generate_invoice_id() -> str:
    # INV-<last 4 digits of timestamp><1 random digit>
    timestamp = str(_timestamp_ms())[-4:]
    return f"INV-{timestamp}{secrets.randbelow(10)}"


def generate_reference_number() -> str:
    return f"REF-{secrets.randbelow(1_000_000):06d}"


def unique_identifier(db: Session, column, generator) -> str:
    """Generate a value for ``column`` that no stored row uses yet."""
    for _ in range(MAX_ID_ATTEMPTS):
        candidate = generator()
        exists = db.query(column).filter(column == candidate).first()
        if not exists:
            return candidate

    raise RuntimeError(f"Unable to generate a unique value for {column.key}")
