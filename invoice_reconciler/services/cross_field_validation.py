"""
Deterministic repairs for internally inconsistent invoice records.

The total amount is ground truth and is never touched. Rules run in a fixed
order and each one that fires appends a description to applied_fixes. A rule
whose precondition does not hold is skipped; validate_and_fix never raises.
"""

from loguru import logger
from ..models.invoice import InvoiceRecord
from .dates import due_before_invoice
from .invoice_types import ValidationResult

SUM_TOLERANCE = 0.01


def _money(value: float) -> float:
    return round(value, 2)


def _repair_subtotal(record: InvoiceRecord, fixes: list[str]) -> InvoiceRecord:
    if record.tax_amount is None or record.total_amount is None:
        return record
    if record.subtotal_amount:
        return record
    subtotal = record.subtotal_amount or 0.0
    if abs(subtotal + record.tax_amount - record.total_amount) <= SUM_TOLERANCE:
        return record
    repaired = record.total_amount - record.tax_amount
    fixes.append(f"Fixed subtotal from total minus tax: {repaired}")
    return record.model_copy(update={"subtotal_amount": repaired})


def _derive_tax_rate(record: InvoiceRecord, fixes: list[str]) -> InvoiceRecord:
    if record.tax_rate is not None or record.tax_amount is None or not record.subtotal_amount:
        return record
    rate = round(record.tax_amount / record.subtotal_amount * 100, 2)
    fixes.append(f"Calculated tax rate: {rate}%")
    return record.model_copy(update={"tax_rate": rate})


def _subtotal_from_line_items(record: InvoiceRecord, fixes: list[str]) -> InvoiceRecord:
    if record.subtotal_amount or not record.line_items:
        return record
    items_total = _money(sum(item.total_price or 0.0 for item in record.line_items))
    if items_total <= 0:
        return record
    fixes.append(f"Calculated subtotal from line items: {items_total}")
    return record.model_copy(update={"subtotal_amount": items_total})


def _repair_date_order(record: InvoiceRecord, fixes: list[str]) -> InvoiceRecord:
    if not due_before_invoice(record.invoice_date, record.due_date):
        return record
    fixes.append("Swapped invoice_date and due_date (were reversed)")
    return record.model_copy(
        update={"invoice_date": record.due_date, "due_date": record.invoice_date}
    )


RULES = (
    _repair_subtotal,
    _derive_tax_rate,
    _subtotal_from_line_items,
    _repair_date_order,
)


def validate_and_fix(record: InvoiceRecord) -> ValidationResult:
    """
    Apply every cross-field repair whose precondition matches.

    Examples:
        total 120, tax 20, no subtotal      -> subtotal 100, tax rate 20.0
        no subtotal, items 40 + 60          -> subtotal 100
        invoice 2024-03-10, due 2024-02-01  -> dates swapped
    """
    fixes: list[str] = []
    fixed = record
    # A later rule can enable an earlier one (line-item subtotal -> tax rate),
    # so repeat the ordered sweep until nothing fires. Each rule fires at most once.
    for _ in range(len(RULES)):
        fired = len(fixes)
        for rule in RULES:
            fixed = rule(fixed, fixes)
        if len(fixes) == fired:
            break

    if fixes:
        logger.debug("Cross-field repairs applied", fixes=fixes)

    return ValidationResult(data=fixed, applied_fixes=tuple(fixes))
