"""
Straight-line book value of an asset.

    months      = calendar-month difference between purchase and now
    depreciation = purchase_value * rate% * months
    value       = max(0, purchase_value - depreciation)

Day of month is ignored, so depreciation steps once per month boundary.
Arithmetic is done in Decimal so equal inputs always give equal output.
"""

from datetime import date, datetime
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal

ZERO = Decimal('0')
CENT = Decimal('0.01')


def _decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value if value is not None else 0))


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value)[:10], '%Y-%m-%d').date()


def months_between(start, end) -> int:
    start, end = _as_date(start), _as_date(end)
    return (end.year - start.year) * 12 + (end.month - start.month)


def asset_age_in_months(purchase_date, now=None) -> int:
    return months_between(purchase_date, now or datetime.utcnow())


def compute_book_value(purchase_value, purchase_date, depreciation_rate,
                       depreciation_enabled=True, round_to_integer=True, now=None):
    """
    Pure book-value calculation.

    Returns an int when rounding to the nearest integer, otherwise a float
    truncated to two decimal places.
    """
    if not depreciation_enabled:
        return purchase_value

    value = _decimal(purchase_value)
    # A purchase date in the future never appreciates the asset
    months = max(0, months_between(purchase_date, now or datetime.utcnow()))
    depreciation = value * (_decimal(depreciation_rate) / Decimal(100)) * months
    current = max(ZERO, value - depreciation)

    if round_to_integer:
        return int(current.quantize(Decimal('1'), rounding=ROUND_HALF_UP))
    return float(current.quantize(CENT, rounding=ROUND_DOWN))


def book_value(asset, settings, now=None):
    """Book value of an Asset under the given AppSettings."""
    return compute_book_value(
        asset.purchase_value,
        asset.purchase_date,
        settings.depreciation_rate,
        depreciation_enabled=settings.is_depreciation_enabled,
        round_to_integer=settings.round_to_nearest_integer,
        now=now,
    )
