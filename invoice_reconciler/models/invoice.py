from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator


class TaxType(str, Enum):
    VAT = "vat"
    SALES_TAX = "sales_tax"
    GST = "gst"
    WITHHOLDING_TAX = "withholding_tax"
    PDV = "pdv"
    OTHER = "other"


class LineItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    description: str | None = None
    quantity: float | None = None
    unit_price: float | None = None
    total_price: float | None = None


class InvoiceRecord(BaseModel):
    """
    Canonical extracted invoice.

    Every field is nullable because extraction backends are best-effort.
    Instances are frozen: passes build new records with model_copy(update=...).
    """

    model_config = ConfigDict(frozen=True)

    invoice_number: str | None = Field(default=None, description="Unique invoice identifier")
    invoice_date: str | None = Field(default=None, description="Invoice date in YYYY-MM-DD format")
    due_date: str | None = Field(default=None, description="Payment due date in YYYY-MM-DD format")
    currency: str | None = Field(default=None, description="ISO 4217 currency code (EUR, USD, RSD, etc.)")
    total_amount: float | None = Field(default=None, description="Final total amount due")
    subtotal_amount: float | None = Field(default=None, description="Subtotal before tax")
    tax_amount: float | None = Field(default=None, description="Tax amount")
    tax_rate: float | None = Field(default=None, description="Tax rate as percentage (e.g. 20 for 20%)")
    tax_type: TaxType | None = Field(default=None, description="Type of tax applied")
    vendor_name: str | None = Field(default=None, description="Legal name of the company issuing the invoice")
    vendor_address: str | None = Field(default=None, description="Complete vendor address")
    vendor_vat_number: str | None = Field(default=None, description="Vendor VAT/Tax ID number")
    customer_name: str | None = Field(default=None, description="Name of the customer/buyer")
    customer_address: str | None = Field(default=None, description="Complete customer address")
    customer_vat_number: str | None = Field(default=None, description="Customer VAT/Tax ID number")
    website: str | None = Field(default=None, description="Vendor website (root domain only)")
    email: str | None = Field(default=None, description="Vendor email address")
    phone: str | None = Field(default=None, description="Vendor phone number")
    line_items: tuple[LineItem, ...] = Field(default=(), description="Invoice line items in document order")
    payment_instructions: str | None = Field(default=None, description="Payment terms or bank details")
    notes: str | None = Field(default=None, description="Additional notes")
    language: str | None = Field(default=None, description="Document language (english, serbian, german, etc.)")

    @field_validator("tax_type", mode="before")
    @classmethod
    def _coerce_tax_type(cls, value):
        # Backends sometimes answer "VAT" or "Sales Tax"; anything unknown becomes "other"
        if value is None or isinstance(value, TaxType):
            return value
        normalized = str(value).strip().lower().replace(" ", "_").replace("-", "_")
        if not normalized:
            return None
        try:
            return TaxType(normalized)
        except ValueError:
            return TaxType.OTHER

    @field_validator("line_items", mode="before")
    @classmethod
    def _null_line_items(cls, value):
        return () if value is None else value
