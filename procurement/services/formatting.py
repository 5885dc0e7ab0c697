# procurement/services/formatting.py
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

import pytz

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = 'Africa/Accra'
CENTS = Decimal('0.01')
MAX_AMOUNT = Decimal('99999999.99')


def utcnow():
    """Current time as a naive UTC datetime, the form every column stores."""
    return datetime.now(pytz.utc).replace(tzinfo=None)


def format_datetime(value):
    """
    Format a stored (naive UTC) datetime for API responses.

    Returns an ISO string with an explicit 'Z' suffix so browsers do not
    read it as local time.
    """
    if not value:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(pytz.utc).replace(tzinfo=None)
    return value.isoformat() + 'Z'


def parse_deadline(value, timezone_name=DEFAULT_TIMEZONE):
    """
    Parse a deadline into a naive UTC datetime.

    Accepts ISO 8601 strings with or without an offset ('Z' included) and
    plain 'YYYY-MM-DD' dates, which close at the end of that day. Values
    without an offset are read in ``timezone_name``.

    Raises:
        ValueError: if the value cannot be parsed
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        if not value or not isinstance(value, str):
            raise ValueError("Deadline must be a non-empty date string")
        date_str = value.strip()
        try:
            if 'T' not in date_str and date_str.count('-') == 2 and len(date_str) == 10:
                parsed = datetime.strptime(date_str, '%Y-%m-%d').replace(hour=23, minute=59, second=59)
            else:
                parsed = datetime.fromisoformat(date_str.replace('Z', '+00:00'))
        except ValueError:
            logger.warning(f"Unparseable deadline: '{value}'")
            raise ValueError(f"Deadline must be a valid date: '{value}'")

    if parsed.tzinfo is None:
        parsed = pytz.timezone(timezone_name).localize(parsed)
    return parsed.astimezone(pytz.utc).replace(tzinfo=None)


def to_decimal(value, field_name='value', max_value=MAX_AMOUNT):
    """Convert request input to a 2-place Decimal; rejects floats' binary noise."""
    if isinstance(value, bool) or value is None:
        raise ValueError(f"{field_name} must be a number")
    try:
        number = Decimal(str(value))
        if not number.is_finite():
            raise ValueError(f"{field_name} must be a number")
        # Numeric(10, 2) columns hold at most 8 integer digits
        if abs(number) > max_value:
            raise ValueError(f"{field_name} must not exceed {max_value}")
        return number.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"{field_name} must be a number")


def format_decimal(value):
    if value is None:
        return None
    return str(Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP))


def to_id(value, field_name='id'):
    """Positive integer id from request input."""
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be an integer id")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field_name} must be an integer id")
    if number <= 0 or (isinstance(value, float) and value != number):
        raise ValueError(f"{field_name} must be an integer id")
    return number
