import asyncio
import hashlib
from loguru import logger
from azure.ai.documentintelligence import DocumentIntelligenceClient
from azure.core.credentials import AzureKeyCredential
from azure.core.exceptions import AzureError
from ..models.invoice import InvoiceRecord, LineItem
from .extractor import ExtractionError, UnsupportedDocumentError, project_record
from .invoice_types import InvoiceDocument

CURRENCY_SYMBOLS = {"$": "USD", "€": "EUR", "£": "GBP"}


def _field_content(fields, field_name):
    if not fields or field_name not in fields:
        return None
    field = fields[field_name]
    value = getattr(field, "value_string", None)
    if value:
        return value
    if getattr(field, "content", None):
        return field.content
    return None


def _field_date(fields, field_name):
    if not fields or field_name not in fields:
        return None
    field = fields[field_name]
    value = getattr(field, "value_date", None)
    if value is not None:
        return value.isoformat()
    # Leave unparsed text as-is; the scorer penalises non-ISO dates
    return getattr(field, "content", None)


def _parse_amount(raw) -> float | None:
    # Handle currency symbols, currency codes, and commas
    # Examples: "$123.45", "USD 123.45", "123.45", "1,234.56"
    if raw is None:
        return None
    text = str(raw)
    for symbol in CURRENCY_SYMBOLS:
        text = text.replace(symbol, "")
    text = text.replace(",", "")
    for curr_code in ["USD", "AUD", "EUR", "GBP", "CAD", "JPY", "CNY", "RSD", "CHF"]:
        text = text.replace(curr_code, "")
    try:
        return float(text.strip())
    except ValueError:
        logger.warning(f"Could not parse amount: {raw}")
        return None


def _field_amount(fields, field_name):
    """(amount, currency code) for a currency or number field."""
    if not fields or field_name not in fields:
        return None, None
    field = fields[field_name]
    currency_value = getattr(field, "value_currency", None)
    if currency_value is not None and getattr(currency_value, "amount", None) is not None:
        code = getattr(currency_value, "currency_code", None)
        if not code:
            code = CURRENCY_SYMBOLS.get(getattr(currency_value, "currency_symbol", None) or "")
        return float(currency_value.amount), code
    number = getattr(field, "value_number", None)
    if number is not None:
        return float(number), None
    return _parse_amount(getattr(field, "content", None)), None


def _line_items(fields) -> tuple[LineItem, ...]:
    if not fields or "Items" not in fields:
        return ()
    items = []
    for entry in getattr(fields["Items"], "value_array", None) or []:
        item_fields = getattr(entry, "value_object", None) or {}
        quantity, _ = _field_amount(item_fields, "Quantity")
        unit_price, _ = _field_amount(item_fields, "UnitPrice")
        amount, _ = _field_amount(item_fields, "Amount")
        items.append(LineItem(
            description=_field_content(item_fields, "Description"),
            quantity=quantity,
            unit_price=unit_price,
            total_price=amount,
        ))
    return tuple(items)


def record_from_analyze_result(result) -> InvoiceRecord:
    """Map a prebuilt-invoice AnalyzeResult onto an InvoiceRecord."""
    if not result.documents:
        # No structured invoice data found - likely not an invoice document
        logger.warning(
            "Azure DI prebuilt-invoice model found no structured invoice data. "
            "Document may be a quote, receipt, or other non-invoice type."
        )
        return InvoiceRecord()

    doc = result.documents[0]
    fields = doc.fields if hasattr(doc, "fields") else {}

    total, total_currency = _field_amount(fields, "InvoiceTotal")
    subtotal, subtotal_currency = _field_amount(fields, "SubTotal")
    tax, _ = _field_amount(fields, "TotalTax")
    currency = _field_content(fields, "CurrencyCode") or total_currency or subtotal_currency

    return InvoiceRecord(
        invoice_number=_field_content(fields, "InvoiceId"),
        invoice_date=_field_date(fields, "InvoiceDate"),
        due_date=_field_date(fields, "DueDate"),
        currency=currency,
        total_amount=total,
        subtotal_amount=subtotal,
        tax_amount=tax,
        vendor_name=_field_content(fields, "VendorName"),
        vendor_address=_field_content(fields, "VendorAddress"),
        vendor_vat_number=_field_content(fields, "VendorTaxId"),
        # Use whichever is available
        customer_name=_field_content(fields, "CustomerName") or _field_content(fields, "BillingAddressRecipient"),
        customer_address=_field_content(fields, "CustomerAddress"),
        customer_vat_number=_field_content(fields, "CustomerTaxId"),
        payment_instructions=_field_content(fields, "PaymentTerm"),
        line_items=_line_items(fields),
    )


class DocumentIntelligenceExtractor:
    """
    Extraction backed by an Azure Document Intelligence invoice model.

    The model decides what it extracts, so `instructions` are ignored; the
    full mapped record is projected onto whichever schema was requested.
    `backend` overrides the model id (default prebuilt-invoice).

    Analyses are cached per (model id, document bytes), so the later passes of
    one run reuse the first analysis instead of paying for it again. The
    extractor is built per request, which bounds the cache to one run.
    """

    def __init__(self, endpoint: str, api_key: str, model_id: str = "prebuilt-invoice", client=None):
        self.endpoint = endpoint
        self.model_id = model_id
        self._analyses: dict[tuple[str, str], InvoiceRecord] = {}
        self.client = client or DocumentIntelligenceClient(
            endpoint=endpoint,
            credential=AzureKeyCredential(api_key),
        )

    @classmethod
    def from_settings(cls, settings) -> "DocumentIntelligenceExtractor":
        return cls(
            endpoint=settings.az_di_endpoint,
            api_key=settings.az_di_api_key,
            model_id=settings.az_di_model_id,
        )

    def _analyze(self, document: InvoiceDocument, model_id: str) -> InvoiceRecord:
        logger.info(
            "Using Azure Document Intelligence for invoice extraction",
            endpoint=self.endpoint[:50] + "..." if len(self.endpoint) > 50 else self.endpoint,
            model_id=model_id,
        )
        logger.info(f"Analyzing document of size {len(document.image)} bytes")

        try:
            poller = self.client.begin_analyze_document(
                model_id,
                body=document.image,
                content_type="application/octet-stream",
            )
            result = poller.result()
        except AzureError as e:
            logger.error(f"Azure DI extraction failed: {str(e)}")
            raise ExtractionError(f"Invoice extraction failed: {str(e)}") from e

        record = record_from_analyze_result(result)
        logger.info(
            "Successfully extracted invoice data from Azure DI",
            vendor=record.vendor_name,
            invoice_number=record.invoice_number,
        )
        return record

    async def extract(self, document, schema, instructions, *, backend=None):
        if not document.is_image:
            raise UnsupportedDocumentError("Azure Document Intelligence needs an image or PDF, not raw text")
        model_id = backend or self.model_id
        key = (model_id, hashlib.sha256(document.image).hexdigest())
        record = self._analyses.get(key)
        if record is None:
            # The SDK client is synchronous
            record = await asyncio.to_thread(self._analyze, document, model_id)
            self._analyses[key] = record
        else:
            logger.debug("Reusing cached Azure DI analysis", model_id=model_id)
        return project_record(record, schema)
