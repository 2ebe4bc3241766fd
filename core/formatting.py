"""
Display formatting in the en-IN conventions used on screen and in exports.
"""
import re
from datetime import date, datetime
from typing import Optional, Union

CURRENCY_SYMBOL = "₹"
# Spreadsheet number formats
CURRENCY_NUMBER_FORMAT = f"{CURRENCY_SYMBOL} #,##0.00"
COUNT_NUMBER_FORMAT = "0"
DATE_NUMBER_FORMAT = "dd-mmm-yyyy"

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9]")


def format_amount(amount: float) -> str:
    """
    Two decimals with Indian digit grouping (last three, then pairs).

    >>> format_amount(1234567.5)
    '12,34,567.50'
    """
    sign = "-" if amount < 0 else ""
    whole, fraction = f"{abs(amount):.2f}".split(".")
    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join(groups + [tail])
    return f"{sign}{whole}.{fraction}"


def format_date(value: Optional[Union[date, datetime]]) -> str:
    """``05 Mar 2024`` style; empty string for a missing date."""
    if value is None:
        return ""
    return value.strftime("%d %b %Y")


def format_report_date(value: date) -> str:
    """Numeric en-IN date used for the "Report Date" line, e.g. ``5/3/2024``."""
    return f"{value.day}/{value.month}/{value.year}"


def sanitize_name(name: str) -> str:
    """Replace every non-alphanumeric character with ``-`` for filenames."""
    return _UNSAFE_NAME_CHARS.sub("-", name)
