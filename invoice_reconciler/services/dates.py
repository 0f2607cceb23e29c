import re
from datetime import date

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_iso_date(value: str | None) -> date | None:
    """Return the calendar date for a strict YYYY-MM-DD string, else None."""
    if not value or not ISO_DATE_PATTERN.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        # Right shape, impossible day (2024-02-30)
        return None


def is_valid_iso_date(value: str | None) -> bool:
    return parse_iso_date(value) is not None


def due_before_invoice(invoice_date: str | None, due_date: str | None) -> bool:
    """True when both dates parse and the due date precedes the invoice date."""
    issued = parse_iso_date(invoice_date)
    due = parse_iso_date(due_date)
    if issued is None or due is None:
        return False
    return due < issued
