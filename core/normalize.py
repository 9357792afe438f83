"""
Amount normalization, credit/debit classification and display formatting.
Amounts are stored as signed decimal strings; the sign decides the type.
"""
from datetime import date, datetime, timezone, tzinfo
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any, Literal, Optional

from core.logger import setup_logger

logger = setup_logger(__name__)

TransactionType = Literal["credit", "debit"]
TypeFilter = Literal["all", "credit", "debit"]

CENTS = Decimal("0.01")
ZERO = Decimal("0")


def parse_amount(value: Any) -> Decimal:
    """
    Parse a stored amount into a Decimal.
    Removes spaces, thousands separators and a leading currency sign.

    Args:
        value: Raw amount (string, number or None)

    Returns:
        Parsed Decimal, or zero when the value is missing or unparseable
    """
    if value is None:
        return ZERO

    if isinstance(value, Decimal):
        return value

    amount_str = str(value).strip()
    if not amount_str:
        return ZERO

    amount_str = (
        amount_str.replace(" ", "")
        .replace(",", "")
        .replace("\xa0", "")
        .replace("$", "")
    )

    try:
        result = Decimal(amount_str)
    except InvalidOperation:
        logger.warning(f"Failed to parse amount: '{value}', treating as zero")
        return ZERO

    if not result.is_finite():
        logger.warning(f"Non-finite amount: '{value}', treating as zero")
        return ZERO
    return result


def classify_amount(value: Any) -> TransactionType:
    """Label an amount: strictly positive is a credit, anything else a debit."""
    return "credit" if parse_amount(value) > ZERO else "debit"


def matches_type(value: Any, kind: TypeFilter) -> bool:
    """
    Check an amount against a type filter.
    Zero amounts match neither "credit" nor "debit".
    """
    if kind == "all":
        return True
    amount = parse_amount(value)
    if kind == "credit":
        return amount > ZERO
    return amount < ZERO


def format_money(value: Any) -> str:
    """Format an absolute amount as $1234.56."""
    amount = parse_amount(value).copy_abs()
    with localcontext() as ctx:
        # Quantizing needs every integer digit plus the two cents
        ctx.prec = max(ctx.prec, amount.adjusted() + 3)
        amount = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    return f"${amount}"


def format_signed_amount(value: Any) -> str:
    """Format an amount with its credit/debit sign, e.g. +$12.50 or -$3.00."""
    sign = "+" if classify_amount(value) == "credit" else "-"
    return f"{sign}{format_money(value)}"


def receipt_number(transaction_id: str) -> str:
    """Receipt number shown on printed receipts."""
    return f"RCP-{transaction_id[-8:].upper()}"


def truncate_id(value: str, keep: int) -> str:
    """Keep the tail of a long identifier for table display."""
    return f"{value[-keep:]}..."


def _as_utc(dt: datetime) -> datetime:
    # The document store hands back naive datetimes unless tz_aware is set
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def to_local(dt: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Convert a stored datetime into the display timezone."""
    return _as_utc(dt).astimezone(tz or timezone.utc)


def to_display_date(dt: datetime, tz: Optional[tzinfo] = None) -> date:
    """Calendar date of a timestamp in the display timezone."""
    return to_local(dt, tz).date()


def to_iso_utc(dt: datetime) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    utc = _as_utc(dt).astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def format_receipt_datetime(dt: datetime, tz: Optional[tzinfo] = None) -> str:
    """Long form used on receipts: Monday, January 1, 2024 at 09:05:07 AM."""
    local = to_local(dt, tz)
    return (
        f"{local:%A}, {local:%B} {local.day}, {local.year} "
        f"at {local:%I:%M:%S %p}"
    )


def format_short_datetime(dt: datetime, tz: Optional[tzinfo] = None) -> str:
    """Short form used in exports: 1/2/2024, 3:04:05 PM."""
    local = to_local(dt, tz)
    hour = local.hour % 12 or 12
    return (
        f"{local.month}/{local.day}/{local.year}, "
        f"{hour}:{local:%M:%S %p}"
    )


def format_short_date(dt: datetime, tz: Optional[tzinfo] = None) -> str:
    """Short date used in the receipts table: 1/2/2024."""
    local = to_local(dt, tz)
    return f"{local.month}/{local.day}/{local.year}"
