"""
Parsers for the abbreviations players type in chat

Prices and incomes: "1k", "1.5M", "2B", "3Qa"
Durations: "30s", "10min", "2h", "1j", "2sem", "1m" (month), "1an"
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from core.errors import ValidationError

# Units are case-sensitive: "M" is million, "m" is not a price unit
PRICE_UNITS = {
    'k': 10 ** 3,
    'K': 10 ** 3,
    'thousand': 10 ** 3,
    'M': 10 ** 6,
    'million': 10 ** 6,
    'B': 10 ** 9,
    'billion': 10 ** 9,
    'T': 10 ** 12,
    'trillion': 10 ** 12,
    'Qa': 10 ** 15,
    'quadrillion': 10 ** 15,
    'Qi': 10 ** 18,
    'quintillion': 10 ** 18,
}

# Largest first, used by format_price
PRICE_SUFFIXES = [
    (10 ** 18, 'Qi'),
    (10 ** 15, 'Qa'),
    (10 ** 12, 'T'),
    (10 ** 9, 'B'),
    (10 ** 6, 'M'),
    (10 ** 3, 'k'),
]

SECOND_MS = 1000
MINUTE_MS = 60 * SECOND_MS
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS
WEEK_MS = 7 * DAY_MS
MONTH_MS = 30 * DAY_MS
YEAR_MS = 365 * DAY_MS

# Matched case-insensitively. "m" is a month, minutes are "min"
DURATION_UNITS = {
    's': SECOND_MS, 'sec': SECOND_MS, 'second': SECOND_MS, 'seconds': SECOND_MS,
    'seconde': SECOND_MS, 'secondes': SECOND_MS,
    'min': MINUTE_MS, 'mins': MINUTE_MS, 'minute': MINUTE_MS, 'minutes': MINUTE_MS,
    'h': HOUR_MS, 'hr': HOUR_MS, 'hour': HOUR_MS, 'hours': HOUR_MS,
    'heure': HOUR_MS, 'heures': HOUR_MS,
    'j': DAY_MS, 'd': DAY_MS, 'day': DAY_MS, 'days': DAY_MS,
    'jour': DAY_MS, 'jours': DAY_MS,
    'w': WEEK_MS, 'sem': WEEK_MS, 'week': WEEK_MS, 'weeks': WEEK_MS,
    'semaine': WEEK_MS, 'semaines': WEEK_MS,
    'm': MONTH_MS, 'mo': MONTH_MS, 'month': MONTH_MS, 'months': MONTH_MS, 'mois': MONTH_MS,
    'y': YEAR_MS, 'an': YEAR_MS, 'ans': YEAR_MS, 'year': YEAR_MS, 'years': YEAR_MS,
}

DURATION_LABELS = [
    (YEAR_MS, 'y'),
    (MONTH_MS, 'mo'),
    (WEEK_MS, 'w'),
    (DAY_MS, 'd'),
    (HOUR_MS, 'h'),
    (MINUTE_MS, 'min'),
    (SECOND_MS, 's'),
]

_AMOUNT_RE = re.compile(r'^\s*(\d+(?:[.,]\d+)?)\s*([A-Za-z]*)\s*$')


def _split_amount(text, field):
    if text is None:
        raise ValidationError(f"{field} is required", field=field)
    match = _AMOUNT_RE.match(str(text))
    if not match:
        raise ValidationError(f"Invalid {field}: '{text}'", field=field)
    try:
        number = Decimal(match.group(1).replace(',', '.'))
    except InvalidOperation:
        raise ValidationError(f"Invalid {field}: '{text}'", field=field)
    return number, match.group(2)


def parse_price(text):
    """
    Parse an abbreviated amount into an integer

    >>> parse_price("1.5M")
    1500000
    >>> parse_price("250")
    250

    Raises:
        ValidationError: unknown unit or not a number
    """
    if isinstance(text, (int, float)) and not isinstance(text, bool):
        if text < 0:
            raise ValidationError("Amount cannot be negative", field='price')
        return int(Decimal(str(text)).to_integral_value(ROUND_HALF_UP))

    number, unit = _split_amount(text, 'price')
    multiplier = 1
    if unit:
        multiplier = PRICE_UNITS.get(unit) or PRICE_UNITS.get(unit.lower())
        if multiplier is None:
            raise ValidationError(f"Unknown amount unit '{unit}' in '{text}'", field='price')

    return int((number * multiplier).to_integral_value(ROUND_HALF_UP))


def format_price(value):
    """
    Format an amount with the largest fitting abbreviation

    >>> format_price(1500000)
    '1.5M'
    """
    value = int(value)
    sign = '-' if value < 0 else ''
    magnitude = abs(value)
    for threshold, suffix in PRICE_SUFFIXES:
        if magnitude >= threshold:
            scaled = (Decimal(magnitude) / threshold).quantize(Decimal('0.01'), ROUND_HALF_UP)
            return f"{sign}{_strip_zeros(scaled)}{suffix}"
    return f"{sign}{magnitude}"


def _strip_zeros(number):
    text = f"{number:f}"
    if '.' in text:
        text = text.rstrip('0').rstrip('.')
    return text


def parse_duration(text):
    """
    Parse an abbreviated duration into milliseconds

    >>> parse_duration("2h")
    7200000

    Raises:
        ValidationError: unknown unit, missing unit or non-positive value
    """
    number, unit = _split_amount(text, 'duration')
    if not unit:
        raise ValidationError(f"Missing time unit in '{text}' (e.g. 30s, 10min, 2h, 1j)", field='duration')

    multiplier = DURATION_UNITS.get(unit.lower())
    if multiplier is None:
        raise ValidationError(f"Unknown time unit '{unit}' in '{text}'", field='duration')

    duration = int((number * multiplier).to_integral_value(ROUND_HALF_UP))
    if duration <= 0:
        raise ValidationError("Duration must be greater than zero", field='duration')
    return duration


def format_duration(ms):
    """
    Human readable duration, two largest units

    >>> format_duration(5400000)
    '1h 30min'
    """
    ms = int(ms)
    if ms < SECOND_MS:
        return "0s"

    parts = []
    remaining = ms
    for unit_ms, label in DURATION_LABELS:
        if remaining >= unit_ms:
            count, remaining = divmod(remaining, unit_ms)
            parts.append(f"{count}{label}")
        if len(parts) == 2:
            break
    return ' '.join(parts)
