"""
Single-field extraction requests used by targeted re-extraction.

Each re-extractable field is a member of ReExtractField and maps to exactly one
FieldRequest: a schema holding only that field plus a narrow instruction. The
table is checked for completeness at import time so adding an enum member
without a request fails loudly.
"""

from enum import Enum
from pydantic import BaseModel, ConfigDict


class ReExtractField(str, Enum):
    TOTAL_AMOUNT = "total_amount"
    CURRENCY = "currency"
    VENDOR_NAME = "vendor_name"
    INVOICE_NUMBER = "invoice_number"
    INVOICE_DATE = "invoice_date"
    DUE_DATE = "due_date"
    TAX_AMOUNT = "tax_amount"
    TAX_RATE = "tax_rate"
    CUSTOMER_NAME = "customer_name"


# Higher is re-extracted first. Covers fields that have no FieldRequest too.
FIELD_PRIORITIES: dict[str, int] = {
    "total_amount": 10,
    "currency": 10,
    "vendor_name": 9,
    "invoice_number": 8,
    "invoice_date": 8,
    "due_date": 7,
    "tax_amount": 6,
    "tax_rate": 5,
    "customer_name": 5,
    "subtotal_amount": 4,
    "line_items": 4,
}


class TotalAmountOnly(BaseModel):
    total_amount: float | None = None


class CurrencyOnly(BaseModel):
    currency: str | None = None


class VendorNameOnly(BaseModel):
    vendor_name: str | None = None


class InvoiceNumberOnly(BaseModel):
    invoice_number: str | None = None


class InvoiceDateOnly(BaseModel):
    invoice_date: str | None = None


class DueDateOnly(BaseModel):
    due_date: str | None = None


class TaxAmountOnly(BaseModel):
    tax_amount: float | None = None


class TaxRateOnly(BaseModel):
    tax_rate: float | None = None


class CustomerNameOnly(BaseModel):
    customer_name: str | None = None


class FieldRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: ReExtractField
    schema_model: type[BaseModel]
    instruction: str

    def value_from(self, candidate) -> object | None:
        """Pull the single field out of whatever the backend returned."""
        if candidate is None:
            return None
        if isinstance(candidate, dict):
            return candidate.get(self.field.value)
        return getattr(candidate, self.field.value, None)


FIELD_REQUESTS: dict[ReExtractField, FieldRequest] = {
    ReExtractField.TOTAL_AMOUNT: FieldRequest(
        field=ReExtractField.TOTAL_AMOUNT,
        schema_model=TotalAmountOnly,
        instruction="Extract ONLY the final total amount (the amount to be paid). Return as a number.",
    ),
    ReExtractField.CURRENCY: FieldRequest(
        field=ReExtractField.CURRENCY,
        schema_model=CurrencyOnly,
        instruction="Extract ONLY the currency code. Return ISO 4217 code (EUR, USD, RSD, etc.).",
    ),
    ReExtractField.VENDOR_NAME: FieldRequest(
        field=ReExtractField.VENDOR_NAME,
        schema_model=VendorNameOnly,
        instruction="Extract ONLY the vendor/seller company name (who issued this invoice).",
    ),
    ReExtractField.INVOICE_NUMBER: FieldRequest(
        field=ReExtractField.INVOICE_NUMBER,
        schema_model=InvoiceNumberOnly,
        instruction="Extract ONLY the invoice number/ID. Common formats: INV-2024-001, FA-123456, #12345.",
    ),
    ReExtractField.INVOICE_DATE: FieldRequest(
        field=ReExtractField.INVOICE_DATE,
        schema_model=InvoiceDateOnly,
        instruction="Extract ONLY the invoice date. Return in YYYY-MM-DD format.",
    ),
    ReExtractField.DUE_DATE: FieldRequest(
        field=ReExtractField.DUE_DATE,
        schema_model=DueDateOnly,
        instruction="Extract ONLY the payment due date. Return in YYYY-MM-DD format.",
    ),
    ReExtractField.TAX_AMOUNT: FieldRequest(
        field=ReExtractField.TAX_AMOUNT,
        schema_model=TaxAmountOnly,
        instruction="Extract ONLY the tax/VAT/PDV amount as a number. Return null if not found.",
    ),
    ReExtractField.TAX_RATE: FieldRequest(
        field=ReExtractField.TAX_RATE,
        schema_model=TaxRateOnly,
        instruction="Extract ONLY the tax rate as a percentage number (e.g., 20 for 20%). Return null if not found.",
    ),
    ReExtractField.CUSTOMER_NAME: FieldRequest(
        field=ReExtractField.CUSTOMER_NAME,
        schema_model=CustomerNameOnly,
        instruction="Extract ONLY the customer/buyer name (who receives this invoice).",
    ),
}

_missing_requests = set(ReExtractField) - set(FIELD_REQUESTS)
if _missing_requests:
    raise RuntimeError(f"No FieldRequest defined for: {sorted(f.value for f in _missing_requests)}")


def request_for(field_name: str) -> FieldRequest | None:
    """FieldRequest for a record field name, or None if it cannot be re-extracted."""
    try:
        return FIELD_REQUESTS[ReExtractField(field_name)]
    except ValueError:
        return None


def sort_by_priority(field_names: list[str]) -> list[str]:
    """Highest priority first; ties keep their incoming order."""
    return sorted(field_names, key=lambda name: -FIELD_PRIORITIES.get(name, 0))
